# This project was developed with assistance from AI tools.
"""Per-tab application state request/response schemas."""

from typing import Any

from db.enums import DealSection, ProgressScope
from pydantic import ConfigDict, Field

from . import CamelModel


class ApplicationState(CamelModel):
    """Fully populated view of a storage area; absent fields are None."""

    model_config = ConfigDict(frozen=True)

    deal_id: str | None = None
    borrower_id: str | None = None
    co_borrower_id: str | None = None
    current_form_step: str | None = None
    deal_progress: dict[str, bool] | None = None
    borrower_progress: dict[str, bool] | None = None


class ProgressState(ApplicationState):
    """State plus the first deal section not yet marked complete."""

    next_section: DealSection | None = None


class StateUpdate(CamelModel):
    """Partial write of scalar state fields. Unset fields are left alone."""

    deal_id: str | None = None
    borrower_id: str | None = None
    co_borrower_id: str | None = None
    current_form_step: str | None = None


class ProgressUpdate(CamelModel):
    """Mark one section of a progress map complete or incomplete."""

    scope: ProgressScope
    section: str = Field(min_length=1)
    completed: bool


class SyncRequest(CamelModel):
    """Arbitrary API payload to sync identifiers from."""

    payload: dict[str, Any] = Field(default_factory=dict)
