# This project was developed with assistance from AI tools.
"""Application progress resolver.

Pure functions that map an application snapshot to the next wizard step.
The decision policy is the ordered ``STEP_RULES`` table: the first rule whose
section is incomplete wins, and only when every rule is satisfied does the
server-side step marker decide. Nothing here performs I/O or touches the
per-tab state store.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

from db.enums import DealSection, FlowNamespace, StepToken

from ..schemas.snapshot import ApplicationSnapshot

logger = logging.getLogger(__name__)

# Markers written by older releases that no longer match a step token
_LEGACY_STEP_MARKERS: dict[str, StepToken] = {
    "co-borrower-info": StepToken.CO_BORROWER_INFO_1,
}

# Longest first so "co-borrower-info-1..." never matches a shorter token
_MARKER_PREFIXES: list[tuple[str, StepToken]] = sorted(
    [(step.value, step) for step in StepToken] + list(_LEGACY_STEP_MARKERS.items()),
    key=lambda item: len(item[0]),
    reverse=True,
)

_PURCHASE_PURPOSES = {"purchase", "buy", "home purchase"}

_CATALOGUE = StepToken.catalogue()


def is_present(value: Any) -> bool:
    """A field counts as present when it is not None and not blank text."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def coerce_snapshot(data: ApplicationSnapshot | Mapping[str, Any] | None) -> ApplicationSnapshot:
    """Accept a parsed snapshot or a raw API payload."""
    if isinstance(data, ApplicationSnapshot):
        return data
    if isinstance(data, Mapping):
        return ApplicationSnapshot.model_validate(dict(data))
    return ApplicationSnapshot()


def normalize_step_marker(marker: str | None) -> StepToken | None:
    """Map a persisted step marker to a step token, or None if unrecognized.

    Markers are matched by prefix, so suffixed markers such as
    ``loan-completed`` resolve to their step.
    """
    if not is_present(marker):
        return None
    value = marker.strip().lower()
    for prefix, step in _MARKER_PREFIXES:
        if value.startswith(prefix):
            return step
    return None


def has_basic_identity(snapshot: ApplicationSnapshot) -> bool:
    borrower = snapshot.borrower
    if borrower is None:
        return False
    return all(is_present(v) for v in (borrower.first_name, borrower.last_name, borrower.email))


def has_extended_identity(snapshot: ApplicationSnapshot) -> bool:
    borrower = snapshot.borrower
    if borrower is None:
        return False
    return is_present(borrower.marital_status) and is_present(borrower.current_address)


def has_co_borrower(snapshot: ApplicationSnapshot) -> bool:
    """Whether a second applicant exists on the application."""
    if snapshot.has_co_borrower is True:
        return True
    return snapshot.co_borrower is not None or is_present(snapshot.co_borrower_id)


def has_co_borrower_answer(snapshot: ApplicationSnapshot) -> bool:
    """Whether the "applying with another applicant?" question was answered.

    An explicit ``hasCoBorrower`` flag, an existing co-borrower, or a step
    marker past the question all count as a recorded answer: the server only
    advances the marker beyond the question once it has been answered.
    """
    if snapshot.has_co_borrower is not None or has_co_borrower(snapshot):
        return True
    marker = normalize_step_marker(snapshot.current_form_step)
    if marker is None:
        return False
    return _CATALOGUE.index(marker) > _CATALOGUE.index(StepToken.CO_BORROWER_QUESTION)


@dataclass(frozen=True)
class StepRule:
    """Send the user to ``step`` while ``is_satisfied`` does not hold."""

    name: str
    is_satisfied: Callable[[ApplicationSnapshot], bool]
    step: StepToken


STEP_RULES: tuple[StepRule, ...] = (
    StepRule("basic_identity", has_basic_identity, StepToken.BORROWER_INFO_1),
    StepRule("extended_identity", has_extended_identity, StepToken.BORROWER_INFO_2),
    StepRule("co_borrower_answer", has_co_borrower_answer, StepToken.CO_BORROWER_QUESTION),
)


def resolve_next_step(
    snapshot: ApplicationSnapshot | Mapping[str, Any] | None,
    rules: tuple[StepRule, ...] = STEP_RULES,
) -> StepToken:
    """Return the canonical next step for an application snapshot.

    Evaluates ``rules`` top to bottom; when all are satisfied the persisted
    ``currentFormStep`` decides, defaulting to ``review`` when it is absent
    or unrecognized.
    """
    snap = coerce_snapshot(snapshot)
    for rule in rules:
        if not rule.is_satisfied(snap):
            logger.debug("Application %s stops at rule %s", snap.id, rule.name)
            return rule.step
    return normalize_step_marker(snap.current_form_step) or StepToken.REVIEW


def flow_namespace(loan_purpose: str | None) -> FlowNamespace:
    """Pick the route namespace for a loan purpose.

    Purchase-like purposes use ``/buy``; everything else, including a missing
    or unrecognized purpose, uses the refinance-compatible flow.
    """
    if not is_present(loan_purpose):
        return FlowNamespace.REFINANCE
    normalized = " ".join(loan_purpose.replace("-", " ").replace("_", " ").lower().split())
    if normalized in _PURCHASE_PURPOSES:
        return FlowNamespace.BUY
    return FlowNamespace.REFINANCE


def step_route(
    step: StepToken,
    loan_purpose: str | None = None,
    application_id: str | None = None,
) -> str:
    """Build the route for ``step``, carrying the application id when known."""
    path = f"/{flow_namespace(loan_purpose).value}/{step.value}"
    if is_present(application_id):
        path = f"{path}?{urlencode({'applicationId': application_id})}"
    return path


def next_step_after(step: StepToken, has_co_borrower: bool = False) -> StepToken:
    """Return the step that follows ``step`` in wizard order."""
    skipped = frozenset() if has_co_borrower else StepToken.co_borrower_steps()
    for candidate in _CATALOGUE[_CATALOGUE.index(step) + 1:]:
        if candidate not in skipped:
            return candidate
    return StepToken.DONE


def next_incomplete_section(progress: Mapping[str, bool] | None) -> DealSection | None:
    """First deal section not marked complete, or None when all are done."""
    progress = progress or {}
    for section in DealSection:
        if progress.get(section.value) is not True:
            return section
    return None
