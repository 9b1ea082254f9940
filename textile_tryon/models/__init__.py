"""Data models for the textile try-on service."""

from .catalog import Garment, GarmentImage
from .profile import UserProfile, UserPhoto
from .tryon import Page, TryOnModel, TryOnOutcome, TryOnStatus, TryonResult

__all__ = [
    "Garment",
    "GarmentImage",
    "UserProfile",
    "UserPhoto",
    "Page",
    "TryOnModel",
    "TryOnOutcome",
    "TryOnStatus",
    "TryonResult",
]
