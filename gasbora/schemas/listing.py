# gasbora/schemas/listing.py
from __future__ import annotations

import datetime as dt
import enum
import math
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError


class CylinderSize(str, enum.Enum):
    KG3  = "3kg"
    KG6  = "6kg"
    KG13 = "13kg"
    KG22 = "22kg"
    KG45 = "45kg"


class ListingStatus(str, enum.Enum):
    AVAILABLE = "available"
    RESERVED  = "reserved"
    SOLD      = "sold"


CYLINDER_SIZES = [s.value for s in CylinderSize]

# fields a seller may edit; everything else is owned by the storage layer
EDITABLE_FIELDS = (
    "title", "description", "brand", "cylinder_size",
    "price", "quantity", "is_refill", "location",
)


class Listing(BaseModel):
    """A seller's offer as stored by the backend."""

    id: str
    seller_id: str
    title: str
    description: Optional[str] = None
    brand: Optional[str] = None
    cylinder_size: str                     # read leniently, legacy rows may hold other labels
    price: float
    quantity: int = 1
    is_refill: bool = False
    location: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None        # legacy single image
    status: ListingStatus = ListingStatus.AVAILABLE
    created_at: dt.datetime
    updated_at: Optional[dt.datetime] = None

    @field_validator("images", mode="before")
    @classmethod
    def _images_not_null(cls, v):
        return v or []

    @property
    def gallery(self) -> list[str]:
        # older rows only carry image_url
        if self.images:
            return list(self.images)
        return [self.image_url] if self.image_url else []

    @property
    def main_image(self) -> str | None:
        gallery = self.gallery
        return gallery[0] if gallery else None

    def editable_fields(self) -> dict:
        return {name: getattr(self, name) for name in EDITABLE_FIELDS}

    def to_dict(self) -> dict:
        data = self.model_dump(mode="json")
        data["images"] = self.gallery
        data["main_image"] = self.main_image
        return data


# ---------- raw input -> validated listing ----------

def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value: Any, max_len: int, message: str) -> str | None:
    text = _text(value)
    if not text:
        return None
    if len(text) > max_len:
        raise PydanticCustomError("too_long", message)
    return text


class ListingInput(BaseModel):
    """
    Seller-submitted listing fields after trimming and coercion.

    Each field validator raises on the first problem it finds, so pydantic
    reports at most one message per field.
    """

    model_config = ConfigDict(extra="ignore")

    title: str
    description: Optional[str] = None
    brand: Optional[str] = None
    cylinder_size: CylinderSize
    price: float
    quantity: int = 1
    is_refill: bool = False
    location: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, v):
        text = _text(v)
        if len(text) < 3:
            raise PydanticCustomError("too_short", "Title must be at least 3 characters")
        if len(text) > 100:
            raise PydanticCustomError("too_long", "Title must be less than 100 characters")
        return text

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v):
        return _optional_text(v, 500, "Description must be less than 500 characters")

    @field_validator("brand", mode="before")
    @classmethod
    def _brand(cls, v):
        return _optional_text(v, 50, "Brand must be less than 50 characters")

    @field_validator("location", mode="before")
    @classmethod
    def _location(cls, v):
        return _optional_text(v, 100, "Location must be less than 100 characters")

    @field_validator("cylinder_size", mode="before")
    @classmethod
    def _cylinder_size(cls, v):
        if isinstance(v, CylinderSize):
            return v
        text = _text(v)
        if text not in CYLINDER_SIZES:
            raise PydanticCustomError("size", "Please select a cylinder size")
        return CylinderSize(text)

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, v):
        if isinstance(v, bool):
            raise PydanticCustomError("number", "Price must be a number")
        try:
            price = float(_text(v)) if isinstance(v, str) or v is None else float(v)
        except (TypeError, ValueError):
            raise PydanticCustomError("number", "Price must be a number")
        if math.isnan(price) or math.isinf(price):
            raise PydanticCustomError("number", "Price must be a number")
        if price <= 0:
            raise PydanticCustomError("positive", "Price must be greater than 0")
        if price > 1_000_000:
            raise PydanticCustomError("too_high", "Price is too high")
        return price

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, v):
        if isinstance(v, bool):
            raise PydanticCustomError("integer", "Quantity must be a whole number")
        text = _text(v)
        if not text:
            return 1
        try:
            number = float(text)
        except ValueError:
            raise PydanticCustomError("integer", "Quantity must be a whole number")
        if math.isnan(number) or math.isinf(number) or number != int(number):
            raise PydanticCustomError("integer", "Quantity must be a whole number")
        quantity = int(number)
        if quantity < 1:
            raise PydanticCustomError("too_low", "Quantity must be at least 1")
        if quantity > 1000:
            raise PydanticCustomError("too_high", "Quantity is too high")
        return quantity

    @field_validator("is_refill", mode="before")
    @classmethod
    def _is_refill(cls, v):
        if isinstance(v, bool):
            return v
        return _text(v).lower() in ("1", "true", "yes", "on", "refill")
