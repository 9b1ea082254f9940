"""Try-on result records and the outcome returned to callers."""

from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, computed_field

from ..errors import InvalidRequestError


class TryOnModel(str, Enum):
    """Supported generation variants.

    Both variants generate with the configured Gemini image model; they differ
    in how the text prompt is produced.
    """

    GEMINI = "gemini-tryon"
    GEMINI_ENHANCED = "gemini-tryon-enhanced"

    @property
    def display_name(self) -> str:
        return {
            TryOnModel.GEMINI: "Gemini Virtual Try-On",
            TryOnModel.GEMINI_ENHANCED: "Gemini Virtual Try-On (enhanced prompt)",
        }[self]

    @property
    def enhances_prompt(self) -> bool:
        return self is TryOnModel.GEMINI_ENHANCED

    @classmethod
    def from_code(cls, code: str) -> "TryOnModel":
        """Parse a model code, case-insensitively."""
        normalized = (code or "").strip().lower()
        for model in cls:
            if model.value == normalized:
                return model
        supported = ", ".join(m.value for m in cls)
        raise InvalidRequestError(f"Unsupported AI model: {code!r} (expected one of {supported})")


class TryOnStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    DEGRADED = "DEGRADED"  # placeholder image, nothing persisted


class TryonResult(BaseModel):
    """A persisted, immutable try-on generation."""

    id: int
    user_profile_id: int
    garment_id: int
    user_photo_id: int
    result_image_url: str
    ai_model_used: str
    created_at: datetime = Field(default_factory=datetime.now)


class TryOnOutcome(BaseModel):
    """What ``TryOnPipeline.generate`` returns, success or not."""

    status: TryOnStatus
    id: int | None = None
    result_image_url: str | None = None
    ai_model_used: str | None = None

    # Source images, so clients can show before/after
    garment_image_url: str | None = None
    user_photo_url: str | None = None

    garment_id: int | None = None
    garment_name: str | None = None
    user_photo_id: int | None = None
    user_photo_name: str | None = None

    processing_time_ms: int | None = None
    error_message: str | None = None
    error_code: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)

    @computed_field
    @property
    def success(self) -> bool:
        return self.status is TryOnStatus.SUCCESS

    @classmethod
    def failure(
        cls,
        error_message: str,
        error_code: str,
        ai_model_used: str | None,
        garment_id: int | None,
        user_photo_id: int | None,
        processing_time_ms: int | None = None,
    ) -> "TryOnOutcome":
        return cls(
            status=TryOnStatus.FAILED,
            ai_model_used=ai_model_used,
            garment_id=garment_id,
            user_photo_id=user_photo_id,
            processing_time_ms=processing_time_ms,
            error_message=error_message,
            error_code=error_code,
        )


T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """A slice of a newest-first listing."""

    items: list[T]
    page: int
    size: int
    total: int

    @computed_field
    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return (self.total + self.size - 1) // self.size
