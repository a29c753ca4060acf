# This project was developed with assistance from AI tools.
"""Application snapshot as returned by the URLA API.

Every field is optional and every validator is lenient: a snapshot with the
wrong shape degrades to "field absent" instead of failing validation, so the
progress resolver never raises on data-shape issues.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import ConfigDict, field_validator

from . import CamelModel

_TRUE_ANSWERS = {"true", "yes", "y", "1"}
_FALSE_ANSWERS = {"false", "no", "n", "0"}


def _scalar_or_none(value: Any) -> Any:
    """Keep strings and numbers; anything else (dicts, lists) counts as absent."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int, float)):
        return value
    return None


class ApplicantInfo(CamelModel):
    """Borrower or co-borrower record nested in a snapshot."""

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str | None = None
    first_name: Any = None
    last_name: Any = None
    email: Any = None
    marital_status: Any = None
    current_address: Any = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str | None:
        value = _scalar_or_none(value)
        return None if value is None else str(value)


class ApplicationSnapshot(CamelModel):
    """Point-in-time read of an application's persisted data."""

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str | None = None
    loan_purpose: str | None = None
    borrower: ApplicantInfo | None = None
    borrower_id: str | None = None
    co_borrower: ApplicantInfo | None = None
    co_borrower_id: str | None = None
    has_co_borrower: bool | None = None
    current_form_step: str | None = None

    @field_validator("id", "borrower_id", "co_borrower_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> str | None:
        value = _scalar_or_none(value)
        return None if value is None else str(value)

    @field_validator("loan_purpose", "current_form_step", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        return value if isinstance(value, str) else None

    @field_validator("borrower", "co_borrower", mode="before")
    @classmethod
    def _coerce_applicant(cls, value: Any) -> Any:
        if isinstance(value, (Mapping, ApplicantInfo)):
            return value
        return None

    @field_validator("has_co_borrower", mode="before")
    @classmethod
    def _coerce_answer(cls, value: Any) -> bool | None:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in _TRUE_ANSWERS:
                return True
            if normalized in _FALSE_ANSWERS:
                return False
        return None
