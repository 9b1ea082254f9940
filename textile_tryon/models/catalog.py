"""Garment catalogue models."""

from datetime import datetime

from pydantic import BaseModel, Field


class GarmentImage(BaseModel):
    """One photo of a garment. Exactly one per garment should be primary."""

    id: int
    garment_id: int
    image_url: str
    is_primary: bool = False
    display_order: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=datetime.now)


class Garment(BaseModel):
    """A sellable garment.

    Only ``category`` and ``garment_name`` influence try-on generation; the
    rest is catalogue detail.
    """

    id: int
    name_id: str = Field(description="Catalogue code, e.g. 'SAR001'")
    garment_name: str = Field(description="Display name, e.g. 'Elegant Silk Saree'")
    category: str = Field(description="e.g. 'Saree', 'Vesti', 'Kurta'")
    garment_type: str | None = Field(default=None, description="e.g. 'Traditional', 'Casual'")
    color: str | None = None
    pattern_style: str | None = Field(default=None, description="e.g. 'Embroidered', 'Printed'")
    created_at: datetime = Field(default_factory=datetime.now)
