"""
Storage schema for the listings pipeline.

regions     -> covered Italian regions (seeded, never mutated by a run)
sources     -> agencies listings are scraped from
properties  -> one row per canonical listing URL
"""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship

from utils.parsing import utcnow

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite)
ImageList = JSON().with_variant(JSONB(), "postgresql")


class Region(Base):
    __tablename__ = "regions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    slug = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    properties = relationship("Property", back_populates="region")

    def __repr__(self):
        return f"<Region slug={self.slug!r}>"


class Source(Base):
    __tablename__ = "sources"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), unique=True, nullable=False)
    base_url = Column(String(500), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    properties = relationship("Property", back_populates="source")

    def __repr__(self):
        return f"<Source name={self.name!r}>"


class Property(Base):
    __tablename__ = "properties"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    region_id = Column(Uuid, ForeignKey("regions.id", ondelete="RESTRICT"), nullable=False, index=True)
    source_id = Column(Uuid, ForeignKey("sources.id", ondelete="RESTRICT"), nullable=False, index=True)

    # Location (coordinates are filled by a separate geocoding job)
    city = Column(String(200), nullable=False, index=True)
    address = Column(String(500), nullable=True)
    latitude = Column(Numeric(10, 8), nullable=True)
    longitude = Column(Numeric(11, 8), nullable=True)

    price_eur = Column(Integer, nullable=False, index=True)

    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)
    living_area_sqm = Column(Integer, nullable=True)
    property_type = Column(String(100), nullable=False, index=True)

    image_urls = Column(ImageList, nullable=False, default=list)
    description_it = Column(Text, nullable=True)
    description_en = Column(Text, nullable=True)

    # Amenities (NULL = unknown)
    has_sea_view = Column(Boolean, nullable=True)
    has_garden = Column(Boolean, nullable=True)
    has_pool = Column(Boolean, nullable=True)
    has_terrace = Column(Boolean, nullable=True)
    has_balcony = Column(Boolean, nullable=True)
    has_parking = Column(Boolean, nullable=True)
    has_garage = Column(Boolean, nullable=True)
    has_fireplace = Column(Boolean, nullable=True)
    has_air_conditioning = Column(Boolean, nullable=True)
    has_elevator = Column(Boolean, nullable=True)
    is_renovated = Column(Boolean, nullable=True)
    has_mountain_view = Column(Boolean, nullable=True)
    has_panoramic_view = Column(Boolean, nullable=True)
    floor_number = Column(Integer, nullable=True)
    year_built = Column(Integer, nullable=True)
    energy_class = Column(String(10), nullable=True)

    listing_url = Column(String(1000), unique=True, nullable=False)

    # Archival
    is_archived = Column(Boolean, nullable=False, default=False)
    archived_at = Column(DateTime, nullable=True)

    # Timestamps (created_at doubles as first-seen)
    last_seen_at = Column(DateTime, default=utcnow)
    source_updated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    region = relationship("Region", back_populates="properties")
    source = relationship("Source", back_populates="properties")

    __table_args__ = (
        Index("idx_properties_region_price", "region_id", "price_eur"),
        Index("idx_properties_source_region_active", "source_id", "region_id", "is_archived"),
    )

    def __repr__(self):
        return f"<Property city={self.city!r} price={self.price_eur} url={self.listing_url!r}>"
