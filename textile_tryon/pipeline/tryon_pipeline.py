"""Try-on pipeline: session profile + garment + user photo -> stored try-on image."""

import asyncio
import logging
import time

from ..agents.prompt_generator import MAX_CUSTOM_PROMPT_LENGTH, TryOnPromptGenerator
from ..config import TryOnConfig
from ..errors import (
    ForbiddenError,
    ImageFetchError,
    InvalidRequestError,
    NotFoundError,
    RemoteServiceError,
    TryOnError,
)
from ..models import (
    Garment,
    Page,
    TryOnModel,
    TryOnOutcome,
    TryOnStatus,
    TryonResult,
    UserPhoto,
    UserProfile,
)
from ..repository import TryOnRepository
from ..services import GeminiClient, ImageFetcher, StorageService, create_storage
from ..services.storage import tryon_namespace


logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int(round((time.perf_counter() - started) * 1000))


class TryOnPipeline:
    """Generates virtual try-on images with Gemini.

    Flow for ``generate``:
    1. Resolve profile (by session), garment, user photo and primary image
    2. Download the garment image and the user photo
    3. Build the prompt for the garment category (optionally enhanced)
    4. Call Gemini with both images and the prompt
    5. Store the image and persist a TryonResult

    ``generate`` never raises: every failure becomes a FAILED outcome, or a
    DEGRADED one when a fallback image is configured and the failure came
    from downloading or generating.
    """

    def __init__(
        self,
        config: TryOnConfig,
        repository: TryOnRepository,
        storage: StorageService | None = None,
        gemini: GeminiClient | None = None,
        fetcher: ImageFetcher | None = None,
    ):
        self.config = config
        self.repository = repository

        # Initialize services
        self.storage = storage or create_storage(config.storage)
        self.gemini = gemini or GeminiClient(config.gemini)
        self.fetcher = fetcher or ImageFetcher(timeout=config.fetch_timeout_seconds)

        self.prompt_generator = TryOnPromptGenerator(self.gemini)

    # Resolution ---------------------------------------------------------------

    def _get_profile(self, session_id: str) -> UserProfile:
        profile = self.repository.find_profile_by_session(session_id)
        if profile is None:
            raise NotFoundError(f"User profile not found for session: {session_id}")
        return profile

    def _get_garment(self, garment_id: int) -> Garment:
        garment = self.repository.get_garment(garment_id)
        if garment is None:
            raise NotFoundError(f"Garment not found with ID: {garment_id}")
        return garment

    def _get_user_photo(self, photo_id: int, profile: UserProfile) -> UserPhoto:
        photo = self.repository.get_user_photo(photo_id)
        if photo is None:
            raise NotFoundError(f"User photo not found with ID: {photo_id}")
        if photo.user_profile_id != profile.id:
            raise ForbiddenError(f"User photo {photo_id} does not belong to this user")
        return photo

    def _get_primary_image_url(self, garment: Garment) -> str:
        image = self.repository.find_primary_image(garment.id)
        if image is None:
            raise NotFoundError(f"No primary image found for garment {garment.id}")
        return image.image_url

    async def _build_prompt(
        self,
        garment: Garment,
        model: TryOnModel,
        custom_prompt: str | None,
        style: str | None,
    ) -> str:
        if model.enhances_prompt:
            return await self.prompt_generator.generate_enhanced(garment, custom_prompt, style)
        return self.prompt_generator.generate_simple(garment, custom_prompt, style)

    # Generation ---------------------------------------------------------------

    async def generate(
        self,
        session_id: str,
        garment_id: int,
        user_photo_id: int,
        model: str | None = None,
        custom_prompt: str | None = None,
        style: str | None = None,
    ) -> TryOnOutcome:
        """Generate, store and record a try-on image.

        Args:
            session_id: Session id of the requesting user profile
            garment_id: Garment to try on
            user_photo_id: One of the profile's photos
            model: Model code (see ``TryOnModel``); defaults to the configured one
            custom_prompt: Extra instructions appended to the prompt (max 500 chars)
            style: Extra style instructions, e.g. "festive" or "office wear"

        Returns:
            TryOnOutcome with status SUCCESS, FAILED or DEGRADED
        """
        started = time.perf_counter()
        model_code = model or self.config.default_model
        garment: Garment | None = None
        photo: UserPhoto | None = None
        garment_image_url: str | None = None

        try:
            tryon_model = TryOnModel.from_code(model_code)
            model_code = tryon_model.value
            if custom_prompt and len(custom_prompt) > MAX_CUSTOM_PROMPT_LENGTH:
                raise InvalidRequestError(
                    f"Custom prompt must not exceed {MAX_CUSTOM_PROMPT_LENGTH} characters"
                )

            profile = self._get_profile(session_id)
            garment = self._get_garment(garment_id)
            photo = self._get_user_photo(user_photo_id, profile)
            garment_image_url = self._get_primary_image_url(garment)

            garment_bytes = await self.fetcher.fetch(garment_image_url)
            photo_bytes = await self.fetcher.fetch(photo.photo_url)

            prompt = await self._build_prompt(garment, tryon_model, custom_prompt, style)
            logger.debug("Prompt for garment %s: %s", garment.id, prompt)

            result_bytes = await self.gemini.generate_image(garment_bytes, photo_bytes, prompt)

            result_url = await asyncio.to_thread(
                self.storage.store, result_bytes, tryon_namespace(profile.id, garment.id)
            )
            try:
                record = self.repository.save_result(
                    user_profile_id=profile.id,
                    garment_id=garment.id,
                    user_photo_id=photo.id,
                    result_image_url=result_url,
                    ai_model_used=model_code,
                )
            except Exception:
                await self._discard(result_url)
                raise

        except (ImageFetchError, RemoteServiceError) as exc:
            elapsed = _elapsed_ms(started)
            if self.config.fallback_image_url:
                logger.warning(
                    "DEGRADED try-on for session %s, garment %s: %s. Returning placeholder %s",
                    session_id, garment_id, exc, self.config.fallback_image_url,
                )
                return TryOnOutcome(
                    status=TryOnStatus.DEGRADED,
                    result_image_url=self.config.fallback_image_url,
                    ai_model_used=model_code,
                    garment_image_url=garment_image_url,
                    user_photo_url=photo.photo_url if photo else None,
                    garment_id=garment_id,
                    garment_name=garment.garment_name if garment else None,
                    user_photo_id=user_photo_id,
                    user_photo_name=photo.display_name if photo else None,
                    processing_time_ms=elapsed,
                    error_message=exc.message,
                    error_code=exc.code,
                )
            logger.error(
                "Try-on generation failed for session %s, garment %s: %s",
                session_id, garment_id, exc,
            )
            return TryOnOutcome.failure(exc.message, exc.code, model_code, garment_id, user_photo_id, elapsed)

        except TryOnError as exc:
            logger.warning(
                "Try-on request rejected for session %s, garment %s: %s",
                session_id, garment_id, exc,
            )
            return TryOnOutcome.failure(
                exc.message, exc.code, model_code, garment_id, user_photo_id, _elapsed_ms(started)
            )

        except Exception as exc:
            logger.exception(
                "Unexpected error generating try-on for session %s, garment %s",
                session_id, garment_id,
            )
            return TryOnOutcome.failure(
                f"Unexpected error: {exc}", TryOnError.code, model_code,
                garment_id, user_photo_id, _elapsed_ms(started),
            )

        elapsed = _elapsed_ms(started)
        logger.info(
            "Try-on %s generated for session %s with garment %s using %s in %d ms",
            record.id, session_id, garment.id, model_code, elapsed,
        )
        return TryOnOutcome(
            status=TryOnStatus.SUCCESS,
            id=record.id,
            result_image_url=record.result_image_url,
            ai_model_used=record.ai_model_used,
            garment_image_url=garment_image_url,
            user_photo_url=photo.photo_url,
            garment_id=garment.id,
            garment_name=garment.garment_name,
            user_photo_id=photo.id,
            user_photo_name=photo.display_name,
            processing_time_ms=elapsed,
            created_at=record.created_at,
        )

    async def _discard(self, result_url: str) -> None:
        """Delete an image whose result record could not be saved."""
        try:
            await asyncio.to_thread(self.storage.delete, result_url)
        except Exception:
            # The persistence error is the one reported
            logger.exception("Failed to delete unreferenced try-on image %s", result_url)

    # History ------------------------------------------------------------------

    def _to_outcome(self, result: TryonResult) -> TryOnOutcome:
        garment = self.repository.get_garment(result.garment_id)
        photo = self.repository.get_user_photo(result.user_photo_id)
        primary_image = self.repository.find_primary_image(result.garment_id)
        return TryOnOutcome(
            status=TryOnStatus.SUCCESS,
            id=result.id,
            result_image_url=result.result_image_url,
            ai_model_used=result.ai_model_used,
            garment_image_url=primary_image.image_url if primary_image else None,
            user_photo_url=photo.photo_url if photo else None,
            garment_id=result.garment_id,
            garment_name=garment.garment_name if garment else None,
            user_photo_id=result.user_photo_id,
            user_photo_name=photo.display_name if photo else None,
            created_at=result.created_at,
        )

    def list_results(self, session_id: str, page: int = 0, size: int = 20) -> Page[TryOnOutcome]:
        """Return one page of the profile's try-on results, newest first.

        Raises:
            NotFoundError: if no profile has this session id
        """
        profile = self._get_profile(session_id)
        page = max(page, 0)
        size = max(size, 1)
        results = self.repository.list_results(profile.id, offset=page * size, limit=size)
        return Page[TryOnOutcome](
            items=[self._to_outcome(r) for r in results],
            page=page,
            size=size,
            total=self.repository.count_results(profile.id),
        )

    async def delete_result(self, session_id: str, result_id: int) -> None:
        """Delete a try-on result and its stored image.

        Raises:
            NotFoundError: unknown session or result
            ForbiddenError: the result belongs to another profile
        """
        profile = self._get_profile(session_id)
        result = self.repository.get_result(result_id)
        if result is None:
            raise NotFoundError(f"Try-on result not found with ID: {result_id}")
        if result.user_profile_id != profile.id:
            raise ForbiddenError(f"Try-on result {result_id} does not belong to this user")

        await asyncio.to_thread(self.storage.delete, result.result_image_url)
        self.repository.delete_result(result.id)
        logger.info("Deleted try-on result %s for session %s", result_id, session_id)

    def available_models(self) -> list[TryOnModel]:
        return list(TryOnModel)

    async def close(self):
        """Close the HTTP clients."""
        await self.gemini.close()
        await self.fetcher.close()
