# This project was developed with assistance from AI tools.
"""Per-tab application state store.

Typed view over one storage area: application (deal) id, borrower and
co-borrower ids, the current form step, and the deal/borrower progress maps.

Behaviour worth knowing before using it:
  * Setters write through immediately and return the refreshed state; that
    return value is the same-tab notification.  ``subscribe()`` listeners
    only fire for writes made through *another* handle on the same area.
  * ``update_progress()`` is a read-modify-write.  Two tabs updating
    different sections of the same map concurrently can lose one update
    (last writer wins on the whole map).  This is a known limitation.
  * When the storage backend is unavailable, writes are dropped and reads
    return all-absent; callers carry the application id in route
    parameters so the flow survives.
"""

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from db.enums import ProgressScope

from ..schemas.state import ApplicationState
from .storage import StorageEvent, StorageHandle, StorageUnavailable

logger = logging.getLogger(__name__)

STORAGE_KEYS: dict[str, str] = {
    "deal_id": "applicationId",  # historical key name, kept for older pages
    "borrower_id": "borrowerId",
    "co_borrower_id": "coBorrowerId",
    "current_form_step": "currentFormStep",
    "deal_progress": "dealProgress",
    "borrower_progress": "borrowerProgress",
}

_PROGRESS_FIELDS: dict[ProgressScope, str] = {
    ProgressScope.DEAL: "deal_progress",
    ProgressScope.BORROWER: "borrower_progress",
}

StateListener = Callable[[ApplicationState], None]


def _identifier(value: Any) -> str | None:
    """Stringify an id from an API payload; None/blank/non-scalar is absent."""
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    text = str(value)
    return text if text.strip() else None


class ApplicationStateStore:
    """Get/set access to ``ApplicationState`` over a storage handle."""

    def __init__(self, storage: StorageHandle):
        self._storage = storage

    # -- reads ---------------------------------------------------------------

    def get(self) -> ApplicationState:
        """Return the full state; every absent field is None."""
        return ApplicationState(
            deal_id=self._read(STORAGE_KEYS["deal_id"]),
            borrower_id=self._read(STORAGE_KEYS["borrower_id"]),
            co_borrower_id=self._read(STORAGE_KEYS["co_borrower_id"]),
            current_form_step=self._read(STORAGE_KEYS["current_form_step"]),
            deal_progress=self._read_progress(STORAGE_KEYS["deal_progress"]),
            borrower_progress=self._read_progress(STORAGE_KEYS["borrower_progress"]),
        )

    # -- scalar setters ------------------------------------------------------

    def set_deal_id(self, deal_id: str) -> ApplicationState:
        self._write(STORAGE_KEYS["deal_id"], str(deal_id))
        return self.get()

    def set_borrower_id(self, borrower_id: str) -> ApplicationState:
        self._write(STORAGE_KEYS["borrower_id"], str(borrower_id))
        return self.get()

    def set_co_borrower_id(self, co_borrower_id: str) -> ApplicationState:
        self._write(STORAGE_KEYS["co_borrower_id"], str(co_borrower_id))
        return self.get()

    def set_current_form_step(self, step: str) -> ApplicationState:
        self._write(STORAGE_KEYS["current_form_step"], str(step))
        return self.get()

    def set_fields(self, **fields: str) -> ApplicationState:
        """Write several scalar fields by attribute name."""
        for name, value in fields.items():
            if name not in STORAGE_KEYS or name in _PROGRESS_FIELDS.values():
                raise ValueError(f"Unknown scalar state field: {name}")
            self._write(STORAGE_KEYS[name], str(value))
        return self.get()

    # -- progress ------------------------------------------------------------

    def update_progress(
        self,
        scope: ProgressScope,
        section: str,
        completed: bool,
    ) -> ApplicationState:
        """Set one section flag in the deal or borrower progress map."""
        key = STORAGE_KEYS[_PROGRESS_FIELDS[scope]]
        current = self._read_progress(key) or {}
        current[section] = bool(completed)
        self._write(key, json.dumps(current))
        return self.get()

    def sync_progress_from_api(
        self,
        scope: ProgressScope,
        payload: Mapping[str, Any] | None,
    ) -> ApplicationState:
        """Merge the ``sections`` map of a progress response into the store.

        Non-boolean flags are ignored; sections missing from the payload keep
        their stored value.
        """
        sections = payload.get("sections") if isinstance(payload, Mapping) else None
        if not isinstance(sections, Mapping):
            return self.get()
        key = STORAGE_KEYS[_PROGRESS_FIELDS[scope]]
        current = self._read_progress(key) or {}
        for section, flag in sections.items():
            if isinstance(flag, bool):
                current[str(section)] = flag
        self._write(key, json.dumps(current))
        return self.get()

    # -- sync / clear --------------------------------------------------------

    def sync_from_api(self, payload: Any) -> ApplicationState:
        """Copy identifiers out of an arbitrary API response.

        Only fields present in the payload are written; nothing is cleared.
        """
        if not isinstance(payload, Mapping):
            return self.get()

        deal_id = _identifier(payload.get("id"))
        if deal_id:
            self._write(STORAGE_KEYS["deal_id"], deal_id)

        borrower = payload.get("borrower")
        borrower_id = _identifier(borrower.get("id")) if isinstance(borrower, Mapping) else None
        borrower_id = borrower_id or _identifier(payload.get("borrowerId"))
        if borrower_id:
            self._write(STORAGE_KEYS["borrower_id"], borrower_id)

        co_borrower = payload.get("coBorrower")
        co_borrower_id = (
            _identifier(co_borrower.get("id")) if isinstance(co_borrower, Mapping) else None
        )
        co_borrower_id = co_borrower_id or _identifier(payload.get("coBorrowerId"))
        if co_borrower_id:
            self._write(STORAGE_KEYS["co_borrower_id"], co_borrower_id)

        step = payload.get("currentFormStep")
        if isinstance(step, str) and step.strip():
            self._write(STORAGE_KEYS["current_form_step"], step)

        return self.get()

    def forget_deal_id(self) -> ApplicationState:
        """Drop only the application id (it no longer resolves on the server)."""
        try:
            self._storage.remove(STORAGE_KEYS["deal_id"])
        except StorageUnavailable:
            logger.warning("Storage unavailable, cannot forget '%s'", STORAGE_KEYS["deal_id"])
        return self.get()

    def clear(self) -> ApplicationState:
        """Remove every field (logout, abandoned application)."""
        for key in STORAGE_KEYS.values():
            try:
                self._storage.remove(key)
            except StorageUnavailable:
                logger.warning("Storage unavailable, cannot clear '%s'", key)
        return self.get()

    # -- notification --------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with fresh state when another tab changes ours."""
        watched = set(STORAGE_KEYS.values())

        def _on_storage_event(event: StorageEvent) -> None:
            if event.key in watched:
                listener(self.get())

        return self._storage.add_listener(_on_storage_event)

    # -- internals -----------------------------------------------------------

    def _read(self, key: str) -> str | None:
        try:
            return self._storage.read(key)
        except StorageUnavailable:
            logger.warning("Storage unavailable, reading '%s' as absent", key)
            return None

    def _write(self, key: str, value: str) -> None:
        try:
            self._storage.write(key, value)
        except StorageUnavailable:
            logger.warning("Storage unavailable, dropping write of '%s'", key)

    def _read_progress(self, key: str) -> dict[str, bool] | None:
        raw = self._read(key)
        if not raw:
            return None
        try:
            parsed = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Malformed progress data under '%s', treating as absent", key)
            return None
        if not isinstance(parsed, dict) or not all(
            isinstance(flag, bool) for flag in parsed.values()
        ):
            logger.warning("Progress data under '%s' is not a flag map, treating as absent", key)
            return None
        return parsed
