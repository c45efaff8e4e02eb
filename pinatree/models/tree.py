from sqlalchemy import Column, String, Float, Date, DateTime, Text, JSON
from sqlalchemy.sql import func
from pinatree.database import Base


class Tree(Base):
    __tablename__ = "trees"

    # Opaque identifier assigned on creation
    id = Column(String(64), primary_key=True, index=True)

    name = Column(String(255), nullable=False)
    species = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    date_planted = Column(Date, nullable=False)

    # GPS coordinates; every tree has a resolved location
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    address = Column(String(512), nullable=True)
    location_source = Column(String(32), nullable=False)

    image_url = Column(String(512), nullable=True)

    submitter_id = Column(String(64), nullable=True, index=True)
    submitter_name = Column(String(255), nullable=True)

    status = Column(String(32), nullable=False, default="healthy")
    tags = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
