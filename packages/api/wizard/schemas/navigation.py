# This project was developed with assistance from AI tools.
"""Navigation outcome and advance request schemas."""

import enum

from db.enums import StepToken
from pydantic import model_validator

from . import CamelModel


class NavigationKind(str, enum.Enum):
    REDIRECT = "redirect"
    NO_ACTIVE_APPLICATION = "no_active_application"
    ERROR = "error"
    LOADING = "loading"


class NavigationOutcome(CamelModel):
    """What an entry page should do after resolution.

    Only ``REDIRECT`` carries a location; ``replace`` is always True for
    resolver-driven redirects so back-navigation never loops through the
    entry page.
    """

    kind: NavigationKind
    step: StepToken | None = None
    location: str | None = None
    application_id: str | None = None
    replace: bool = True
    detail: str | None = None


class AdvanceRequest(CamelModel):
    """Move the wizard forward and persist the target as the step marker.

    Name the target with ``step``, or send ``current_step`` (plus
    ``has_co_borrower``) to move to the step that follows it.
    """

    step: StepToken | None = None
    current_step: StepToken | None = None
    has_co_borrower: bool = False
    application_id: str | None = None
    loan_purpose: str | None = None

    @model_validator(mode="after")
    def _require_target(self) -> "AdvanceRequest":
        if self.step is None and self.current_step is None:
            raise ValueError("either step or currentStep is required")
        return self
