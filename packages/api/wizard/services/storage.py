# This project was developed with assistance from AI tools.
"""Durable per-tab key/value storage.

A *storage area* is the server-side counterpart of one browser tab's
sessionStorage: a flat string -> string namespace. Each request attaches a
``StorageHandle`` to its area; when one handle writes, every *other* handle
attached to the same area receives a ``StorageEvent`` (the cross-tab
``storage`` event). The writing handle is never notified of its own writes.

Backends:
  * ``memory``   -- process-local dicts, lost on restart.
  * ``sql``      -- one ``wizard_storage`` row per (area, key) via SQLAlchemy.
  * ``disabled`` -- every operation raises ``StorageUnavailable``.

The module exposes a singleton initialised at app startup via
``init_storage_backend()``.

Store operations are synchronous and may run on worker threads; the backend
serialises attaching and evicting areas behind a lock. An area with no
attached handles and nothing worth keeping in memory is evicted.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from db import DatabaseService, StorageEntry
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from ..core.config import Settings

logger = logging.getLogger(__name__)


class StorageUnavailable(RuntimeError):
    """Raised when the storage backend is disabled or failing."""


@dataclass(frozen=True)
class StorageEvent:
    """A change made to a storage area by another handle."""

    area: str
    key: str
    old_value: str | None
    new_value: str | None


StorageListener = Callable[[StorageEvent], None]


class StorageArea:
    """Base class: handle registry and event fan-out.

    Subclasses implement ``_read``, ``_write`` and ``_remove``, and override
    ``holds_data`` when the area object itself is the only copy of its data.
    """

    def __init__(self, name: str):
        self.name = name
        self._handles: list["StorageHandle"] = []
        self.on_idle: Callable[["StorageArea"], None] | None = None

    def attach(self) -> "StorageHandle":
        handle = StorageHandle(self)
        self._handles.append(handle)
        return handle

    @property
    def handle_count(self) -> int:
        return len(self._handles)

    def holds_data(self) -> bool:
        return False

    def _detach(self, handle: "StorageHandle") -> None:
        if handle in self._handles:
            self._handles.remove(handle)
        if not self._handles and self.on_idle is not None:
            self.on_idle(self)

    def _dispatch(self, origin: "StorageHandle", event: StorageEvent) -> None:
        for handle in list(self._handles):
            if handle is not origin:
                handle._notify(event)

    def _read(self, key: str) -> str | None:
        raise NotImplementedError

    def _write(self, key: str, value: str) -> None:
        raise NotImplementedError

    def _remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStorageArea(StorageArea):
    """Process-local storage area."""

    def __init__(self, name: str):
        super().__init__(name)
        self._data: dict[str, str] = {}

    def holds_data(self) -> bool:
        return bool(self._data)

    def _read(self, key: str) -> str | None:
        return self._data.get(key)

    def _write(self, key: str, value: str) -> None:
        self._data[key] = value

    def _remove(self, key: str) -> None:
        self._data.pop(key, None)


class SqlStorageArea(StorageArea):
    """Storage area persisted in the ``wizard_storage`` table."""

    def __init__(self, name: str, db_service: DatabaseService):
        super().__init__(name)
        self._db = db_service

    def _read(self, key: str) -> str | None:
        try:
            with self._db.session() as session:
                return session.execute(
                    select(StorageEntry.value).where(
                        StorageEntry.area == self.name,
                        StorageEntry.key == key,
                    )
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"Failed to read '{key}' from area '{self.name}'") from exc

    def _write(self, key: str, value: str) -> None:
        try:
            with self._db.session() as session:
                entry = session.execute(
                    select(StorageEntry).where(
                        StorageEntry.area == self.name,
                        StorageEntry.key == key,
                    )
                ).scalar_one_or_none()
                if entry is None:
                    session.add(StorageEntry(area=self.name, key=key, value=value))
                else:
                    entry.value = value
                session.commit()
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"Failed to write '{key}' to area '{self.name}'") from exc

    def _remove(self, key: str) -> None:
        try:
            with self._db.session() as session:
                session.execute(
                    delete(StorageEntry).where(
                        StorageEntry.area == self.name,
                        StorageEntry.key == key,
                    )
                )
                session.commit()
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"Failed to remove '{key}' from area '{self.name}'") from exc


class DisabledStorageArea(StorageArea):
    """Storage that is switched off (private browsing, quota exhausted)."""

    def _read(self, key: str) -> str | None:
        raise StorageUnavailable("Storage is disabled")

    def _write(self, key: str, value: str) -> None:
        raise StorageUnavailable("Storage is disabled")

    def _remove(self, key: str) -> None:
        raise StorageUnavailable("Storage is disabled")


class StorageHandle:
    """One tab's connection to a storage area."""

    def __init__(self, area: StorageArea):
        self._area = area
        self._listeners: list[StorageListener] = []

    def read(self, key: str) -> str | None:
        return self._area._read(key)

    def _has_peers(self) -> bool:
        return self._area.handle_count > 1

    def write(self, key: str, value: str) -> None:
        if not self._has_peers():
            self._area._write(key, value)
            return
        old_value = self._area._read(key)
        self._area._write(key, value)
        if old_value != value:
            self._area._dispatch(self, StorageEvent(self._area.name, key, old_value, value))

    def remove(self, key: str) -> None:
        if not self._has_peers():
            self._area._remove(key)
            return
        old_value = self._area._read(key)
        self._area._remove(key)
        if old_value is not None:
            self._area._dispatch(self, StorageEvent(self._area.name, key, old_value, None))

    def add_listener(self, listener: StorageListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def close(self) -> None:
        """Detach from the area; no further events are delivered."""
        self._listeners.clear()
        self._area._detach(self)

    def _notify(self, event: StorageEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                # A broken listener in one tab must not fail the writer's request
                logger.exception("Storage listener failed (area=%s, key=%s)", event.area, event.key)


class StorageBackend:
    """Registry of storage areas by name."""

    kind = "memory"

    def __init__(self):
        self._areas: dict[str, StorageArea] = {}
        self._lock = threading.Lock()

    @property
    def area_count(self) -> int:
        return len(self._areas)

    def area(self, name: str) -> StorageArea:
        with self._lock:
            return self._get_or_create(name)

    def attach(self, name: str) -> StorageHandle:
        """Attach a new handle to the area ``name``, creating the area if needed."""
        with self._lock:
            return self._get_or_create(name).attach()

    def _get_or_create(self, name: str) -> StorageArea:
        if name not in self._areas:
            area = self._create_area(name)
            area.on_idle = self._evict_if_idle
            self._areas[name] = area
        return self._areas[name]

    def _evict_if_idle(self, area: StorageArea) -> None:
        with self._lock:
            if area.handle_count or area.holds_data():
                return
            if self._areas.get(area.name) is area:
                del self._areas[area.name]

    def _create_area(self, name: str) -> StorageArea:
        return MemoryStorageArea(name)

    def close(self) -> None:
        with self._lock:
            self._areas.clear()


class SqlStorageBackend(StorageBackend):
    kind = "sql"

    def __init__(self, db_service: DatabaseService):
        super().__init__()
        self._db = db_service

    def _create_area(self, name: str) -> StorageArea:
        return SqlStorageArea(name, self._db)

    def close(self) -> None:
        super().close()
        self._db.dispose()


class DisabledStorageBackend(StorageBackend):
    kind = "disabled"

    def _create_area(self, name: str) -> StorageArea:
        return DisabledStorageArea(name)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_backend: StorageBackend | None = None


def build_storage_backend(cfg: Settings) -> StorageBackend:
    """Construct the backend named by ``cfg.STORAGE_BACKEND``."""
    if cfg.STORAGE_BACKEND == "sql":
        db_service = DatabaseService(cfg.DATABASE_URL)
        if cfg.CREATE_TABLES:
            db_service.create_all()
        return SqlStorageBackend(db_service)
    if cfg.STORAGE_BACKEND == "disabled":
        return DisabledStorageBackend()
    return StorageBackend()


def init_storage_backend(cfg: Settings) -> StorageBackend:
    """Initialise the singleton (called once from app lifespan)."""
    global _backend  # noqa: PLW0603
    _backend = build_storage_backend(cfg)
    logger.info("Storage backend initialised (kind=%s)", _backend.kind)
    return _backend


def get_storage_backend() -> StorageBackend:
    """Return the initialised StorageBackend singleton."""
    if _backend is None:
        raise RuntimeError("StorageBackend not initialised -- call init_storage_backend() first")
    return _backend


def close_storage_backend() -> None:
    global _backend  # noqa: PLW0603
    if _backend is not None:
        _backend.close()
        _backend = None
