# gasbora/models/listing.py
import datetime as dt

from sqlalchemy import Column, String, Float, Integer, Boolean, DateTime, JSON, Index

from .base import Base


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class ListingRow(Base):
    __tablename__ = "listings"

    id = Column(String(36), primary_key=True)
    seller_id = Column(String(36), nullable=False, index=True)

    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    brand = Column(String(50), nullable=True)
    cylinder_size = Column(String(10), nullable=False)
    price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    is_refill = Column(Boolean, nullable=False, default=False)
    location = Column(String(100), nullable=True)

    images = Column(JSON, nullable=False, default=list)
    image_url = Column(String(1000), nullable=True)    # legacy: mirrors images[0]

    status = Column(String(16), nullable=False, default="available")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_listings_status_created", "status", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "title": self.title,
            "description": self.description,
            "brand": self.brand,
            "cylinder_size": self.cylinder_size,
            "price": self.price,
            "quantity": self.quantity,
            "is_refill": self.is_refill,
            "location": self.location,
            "images": list(self.images or []),
            "image_url": self.image_url,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
