# This project was developed with assistance from AI tools.
"""
Application wizard -- storage models

One table backs every durable storage area: a row per (area, key), where an
area is the server-side counterpart of one browser tab's sessionStorage.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from .database import Base


class StorageEntry(Base):
    """A single key/value pair inside a storage area."""

    __tablename__ = "wizard_storage"
    __table_args__ = (
        UniqueConstraint("area", "key", name="uq_wizard_storage_area_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    area = Column(String(255), nullable=False, index=True)
    key = Column(String(100), nullable=False)
    value = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<StorageEntry(area='{self.area}', key='{self.key}')>"
