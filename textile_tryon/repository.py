"""Entity lookup and persistence used by the try-on pipeline.

The pipeline only depends on the ``TryOnRepository`` protocol. The bundled
``InMemoryRepository`` backs the API server and the tests; a database-backed
implementation can be swapped in by satisfying the same protocol.
"""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field

from .models import Garment, GarmentImage, TryonResult, UserPhoto, UserProfile


logger = logging.getLogger(__name__)


class SeedGarment(Garment):
    primary_image_url: str | None = None


class SeedPhoto(BaseModel):
    id: int | None = None
    session_id: str
    photo_url: str
    photo_name: str | None = None


class SeedProfile(BaseModel):
    session_id: str
    profile_name: str | None = None


class SeedData(BaseModel):
    """Shape of the JSON file accepted by ``load_seed_data``."""

    profiles: list[SeedProfile] = Field(default_factory=list)
    garments: list[SeedGarment] = Field(default_factory=list)
    photos: list[SeedPhoto] = Field(default_factory=list)


class TryOnRepository(Protocol):
    def find_profile_by_session(self, session_id: str) -> UserProfile | None: ...

    def get_garment(self, garment_id: int) -> Garment | None: ...

    def get_user_photo(self, photo_id: int) -> UserPhoto | None: ...

    def find_primary_image(self, garment_id: int) -> GarmentImage | None: ...

    def save_result(
        self,
        user_profile_id: int,
        garment_id: int,
        user_photo_id: int,
        result_image_url: str,
        ai_model_used: str,
    ) -> TryonResult: ...

    def get_result(self, result_id: int) -> TryonResult | None: ...

    def list_results(self, user_profile_id: int, offset: int, limit: int) -> list[TryonResult]: ...

    def count_results(self, user_profile_id: int) -> int: ...

    def delete_result(self, result_id: int) -> None: ...


class InMemoryRepository:
    """Thread-safe dictionary store keyed by integer ids."""

    def __init__(self):
        self._lock = threading.RLock()
        self._last_ids: dict[str, int] = {}
        self.profiles: dict[int, UserProfile] = {}
        self.garments: dict[int, Garment] = {}
        self.garment_images: dict[int, GarmentImage] = {}
        self.photos: dict[int, UserPhoto] = {}
        self.results: dict[int, TryonResult] = {}

    def _allocate(self, table: str, requested: int | None = None) -> int:
        """Next id for ``table``; explicit ids move the counter past them."""
        last = self._last_ids.get(table, 0)
        new_id = requested if requested is not None else last + 1
        self._last_ids[table] = max(last, new_id)
        return new_id

    # Seeding ------------------------------------------------------------------

    def add_profile(self, session_id: str, profile_name: str | None = None, id: int | None = None) -> UserProfile:
        with self._lock:
            if self.find_profile_by_session(session_id) is not None:
                raise ValueError(f"Profile already exists for session {session_id}")
            profile = UserProfile(id=self._allocate("profiles", id), session_id=session_id, profile_name=profile_name)
            self.profiles[profile.id] = profile
            return profile

    def add_garment(self, garment: Garment) -> Garment:
        with self._lock:
            self._allocate("garments", garment.id)
            self.garments[garment.id] = garment
            return garment

    def add_garment_image(
        self,
        garment_id: int,
        image_url: str,
        is_primary: bool = False,
        display_order: int = 0,
    ) -> GarmentImage:
        with self._lock:
            if is_primary:
                # Only one primary image per garment
                for image in list(self.garment_images.values()):
                    if image.garment_id == garment_id and image.is_primary:
                        self.garment_images[image.id] = image.model_copy(update={"is_primary": False})
            image = GarmentImage(
                id=self._allocate("garment_images"),
                garment_id=garment_id,
                image_url=image_url,
                is_primary=is_primary,
                display_order=display_order,
            )
            self.garment_images[image.id] = image
            return image

    def add_user_photo(
        self,
        user_profile_id: int,
        photo_url: str,
        photo_name: str | None = None,
        id: int | None = None,
    ) -> UserPhoto:
        with self._lock:
            photo = UserPhoto(
                id=self._allocate("photos", id),
                user_profile_id=user_profile_id,
                photo_url=photo_url,
                photo_name=photo_name,
            )
            self.photos[photo.id] = photo
            return photo

    def delete_profile(self, profile_id: int) -> list[TryonResult]:
        """Delete a profile with its photos and results.

        Returns the removed results so the caller can clean up stored images.
        """
        with self._lock:
            removed = [r for r in self.results.values() if r.user_profile_id == profile_id]
            for result in removed:
                del self.results[result.id]
            for photo_id in [p.id for p in self.photos.values() if p.user_profile_id == profile_id]:
                del self.photos[photo_id]
            self.profiles.pop(profile_id, None)
            logger.info("Deleted profile %s with %d try-on results", profile_id, len(removed))
            return removed

    # TryOnRepository ----------------------------------------------------------

    def find_profile_by_session(self, session_id: str) -> UserProfile | None:
        with self._lock:
            for profile in self.profiles.values():
                if profile.session_id == session_id:
                    return profile
            return None

    def get_garment(self, garment_id: int) -> Garment | None:
        with self._lock:
            return self.garments.get(garment_id)

    def get_user_photo(self, photo_id: int) -> UserPhoto | None:
        with self._lock:
            return self.photos.get(photo_id)

    def find_primary_image(self, garment_id: int) -> GarmentImage | None:
        with self._lock:
            for image in self.garment_images.values():
                if image.garment_id == garment_id and image.is_primary:
                    return image
            return None

    def save_result(
        self,
        user_profile_id: int,
        garment_id: int,
        user_photo_id: int,
        result_image_url: str,
        ai_model_used: str,
    ) -> TryonResult:
        with self._lock:
            result = TryonResult(
                id=self._allocate("results"),
                user_profile_id=user_profile_id,
                garment_id=garment_id,
                user_photo_id=user_photo_id,
                result_image_url=result_image_url,
                ai_model_used=ai_model_used,
                created_at=datetime.now(),
            )
            self.results[result.id] = result
            return result

    def get_result(self, result_id: int) -> TryonResult | None:
        with self._lock:
            return self.results.get(result_id)

    def list_results(self, user_profile_id: int, offset: int, limit: int) -> list[TryonResult]:
        with self._lock:
            owned = [r for r in self.results.values() if r.user_profile_id == user_profile_id]
        # Newest first; ids break ties between results created in the same instant
        owned.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return owned[offset:offset + limit]

    def count_results(self, user_profile_id: int) -> int:
        with self._lock:
            return sum(1 for r in self.results.values() if r.user_profile_id == user_profile_id)

    def delete_result(self, result_id: int) -> None:
        with self._lock:
            self.results.pop(result_id, None)


def load_seed_data(repository: InMemoryRepository, path: Path) -> SeedData:
    """Populate an empty repository from a JSON seed file.

    Skipped when the repository already holds garments.
    """
    if repository.garments:
        logger.info("Catalogue already populated, skipping seed data")
        return SeedData()

    data = SeedData.model_validate_json(Path(path).read_text(encoding="utf-8"))

    for seed_profile in data.profiles:
        repository.add_profile(seed_profile.session_id, seed_profile.profile_name)

    for seed_garment in data.garments:
        garment = Garment(**seed_garment.model_dump(exclude={"primary_image_url"}))
        repository.add_garment(garment)
        if seed_garment.primary_image_url:
            repository.add_garment_image(garment.id, seed_garment.primary_image_url, is_primary=True)

    for seed_photo in data.photos:
        profile = repository.find_profile_by_session(seed_photo.session_id)
        if profile is None:
            raise ValueError(f"Seed photo references unknown session {seed_photo.session_id}")
        repository.add_user_photo(profile.id, seed_photo.photo_url, seed_photo.photo_name, id=seed_photo.id)

    logger.info(
        "Loaded seed data: %d profiles, %d garments, %d photos",
        len(data.profiles), len(data.garments), len(data.photos),
    )
    return data
