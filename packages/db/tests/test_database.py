# This project was developed with assistance from AI tools.
"""Database service and storage model tests (in-memory SQLite)."""

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError

from db import DatabaseService, StorageEntry


@pytest.fixture
def db_service():
    service = DatabaseService("sqlite://")
    service.create_all()
    yield service
    service.dispose()


def test_database_connection(db_service):
    """Test database connection."""
    with db_service.engine.connect() as conn:
        result = conn.execute(text("SELECT 1"))
        assert result.scalar() == 1


def test_storage_entry_roundtrip(db_service):
    with db_service.session() as session:
        session.add(StorageEntry(area="tab-1", key="applicationId", value="42"))
        session.commit()

    with db_service.session() as session:
        row = session.execute(
            select(StorageEntry).where(StorageEntry.area == "tab-1")
        ).scalar_one()
        assert row.key == "applicationId"
        assert row.value == "42"
        assert row.created_at is not None


def test_storage_entry_unique_per_area_and_key(db_service):
    """The same key may exist in two areas but only once per area."""
    with db_service.session() as session:
        session.add(StorageEntry(area="tab-1", key="borrowerId", value="7"))
        session.add(StorageEntry(area="tab-2", key="borrowerId", value="8"))
        session.commit()

    with db_service.session() as session:
        session.add(StorageEntry(area="tab-1", key="borrowerId", value="9"))
        with pytest.raises(IntegrityError):
            session.commit()
