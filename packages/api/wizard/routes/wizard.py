# This project was developed with assistance from AI tools.
"""Wizard routes: entry pages that resolve progress, and per-tab state.

Every route is scoped to the caller's storage area, named by the session
header (one value per browser tab). Handlers that only touch the store are
plain ``def`` so FastAPI runs their storage calls in its threadpool.
"""

import logging
from collections.abc import Iterator
from typing import Annotated

from db.enums import ProgressScope
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from ..core.config import settings
from ..schemas.navigation import AdvanceRequest, NavigationKind, NavigationOutcome
from ..schemas.state import (
    ApplicationState,
    ProgressState,
    ProgressUpdate,
    StateUpdate,
    SyncRequest,
)
from ..services.data_source import ApplicationFetchError, get_data_source
from ..services.navigation import InFlightGuard, NavigationController
from ..services.progress import next_incomplete_section
from ..services.state_store import ApplicationStateStore
from ..services.storage import get_storage_backend

logger = logging.getLogger(__name__)

pages_router = APIRouter()
router = APIRouter()

_guard = InFlightGuard()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_session_key(request: Request) -> str:
    """Storage area name from the session header; 400 when missing."""
    session_key = request.headers.get(settings.SESSION_HEADER, "").strip()
    if not session_key:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing {settings.SESSION_HEADER} header",
        )
    return session_key


SessionKey = Annotated[str, Depends(get_session_key)]


def get_state_store(session_key: SessionKey) -> Iterator[ApplicationStateStore]:
    """Attach a handle to the caller's storage area for this request."""
    handle = get_storage_backend().attach(session_key)
    try:
        yield ApplicationStateStore(handle)
    finally:
        handle.close()


StateStore = Annotated[ApplicationStateStore, Depends(get_state_store)]


def get_in_flight_guard() -> InFlightGuard:
    return _guard


def get_navigation_controller(
    store: StateStore,
    session_key: SessionKey,
    guard: InFlightGuard = Depends(get_in_flight_guard),
) -> NavigationController:
    return NavigationController(store, get_data_source(), guard=guard, session_key=session_key)


Controller = Annotated[NavigationController, Depends(get_navigation_controller)]


# ---------------------------------------------------------------------------
# Entry pages
# ---------------------------------------------------------------------------


async def _enter(controller: NavigationController, page: str, application_id: str | None):
    outcome = await controller.enter(page, application_id)
    if outcome.kind == NavigationKind.REDIRECT:
        # 303 replaces the entry page: it never lands in the back-button history
        return RedirectResponse(outcome.location, status_code=status.HTTP_303_SEE_OTHER)
    if outcome.kind == NavigationKind.ERROR:
        raise ApplicationFetchError(outcome.application_id or "", outcome.detail or "fetch failed")
    if outcome.kind == NavigationKind.LOADING:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=outcome.model_dump(mode="json", by_alias=True),
        )
    return JSONResponse(content=outcome.model_dump(mode="json", by_alias=True))


@pages_router.get("/application/resume", response_model=None)
async def resume_application(
    controller: Controller,
    application_id: str | None = Query(default=None, alias="applicationId"),
):
    """Send the user to the next incomplete step of their application."""
    return await _enter(controller, "resume", application_id)


@pages_router.get("/getting-started", response_model=None)
async def getting_started(
    controller: Controller,
    application_id: str | None = Query(default=None, alias="applicationId"),
):
    """Resume an existing application; without one, render the purpose choice."""
    return await _enter(controller, "getting-started", application_id)


# ---------------------------------------------------------------------------
# State API
# ---------------------------------------------------------------------------


def _with_next_section(state: ApplicationState) -> ProgressState:
    return ProgressState(
        **state.model_dump(),
        next_section=next_incomplete_section(state.deal_progress),
    )


@router.get("/state", response_model=ApplicationState)
def get_state(store: StateStore) -> ApplicationState:
    """Current state of the caller's tab."""
    return store.get()


@router.patch("/state", response_model=ApplicationState)
def update_state(body: StateUpdate, store: StateStore) -> ApplicationState:
    """Write the scalar fields present in the body; others are untouched."""
    fields = {name: value for name, value in body.model_dump(exclude_unset=True).items() if value is not None}
    if not fields:
        return store.get()
    return store.set_fields(**fields)


@router.post("/state/progress", response_model=ProgressState)
def update_progress(body: ProgressUpdate, store: StateStore) -> ProgressState:
    """Mark one section of the deal or borrower progress map."""
    return _with_next_section(store.update_progress(body.scope, body.section, body.completed))


@router.post("/state/progress/sync", response_model=ProgressState)
async def sync_progress(
    controller: Controller,
    scope: ProgressScope = ProgressScope.DEAL,
    application_id: str | None = Query(default=None, alias="applicationId"),
) -> ProgressState:
    """Refresh a progress map from the application API."""
    state = await controller.refresh_progress(scope, application_id)
    if state is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active application",
        )
    return _with_next_section(state)


@router.post("/state/sync", response_model=ApplicationState)
def sync_state(body: SyncRequest, store: StateStore) -> ApplicationState:
    """Copy identifiers out of an API payload the browser already holds."""
    return store.sync_from_api(body.payload)


@router.delete("/state", response_model=ApplicationState)
def clear_state(store: StateStore) -> ApplicationState:
    """Forget the active application (logout or abandonment)."""
    return store.clear()


@router.post("/advance", response_model=NavigationOutcome)
async def advance(body: AdvanceRequest, controller: Controller) -> NavigationOutcome:
    """Persist the next step marker and return where to navigate."""
    return await controller.advance(
        body.step,
        body.application_id,
        body.loan_purpose,
        current_step=body.current_step,
        has_co_borrower=body.has_co_borrower,
    )
