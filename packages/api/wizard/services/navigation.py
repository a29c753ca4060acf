# This project was developed with assistance from AI tools.
"""Entry-page navigation controller.

Glue between the state store, the progress resolver and the application
data source. An entry page asks ``enter()`` where the user belongs:

  1. application id from the route parameter, else from the store;
  2. no id -> NO_ACTIVE_APPLICATION, no navigation;
  3. fetch the snapshot -> on failure ERROR, no navigation (never guess a
     step from stale data); an id the API no longer recognises (401/404)
     is dropped from the store and reported as NO_ACTIVE_APPLICATION;
  4. resolve the step, write identifiers into the store, REDIRECT with
     ``replace=True`` and the application id in the query string.

Store calls can block (SQL backend), so they run in the default executor.
"""

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from functools import partial

from db.enums import ProgressScope, StepToken

from ..schemas.navigation import NavigationKind, NavigationOutcome
from ..schemas.state import ApplicationState
from .data_source import ApplicationDataSource, ApplicationFetchError, ApplicationSaveError
from .progress import is_present, next_step_after, resolve_next_step, step_route
from .state_store import ApplicationStateStore

logger = logging.getLogger(__name__)

# Statuses meaning the id itself is stale, not that the API is down
_STALE_ID_STATUSES = frozenset({401, 404})


class InFlightGuard:
    """Tracks resolutions in progress so one page never resolves twice at once.

    Claims happen on the event loop only, so plain set operations are atomic.
    """

    def __init__(self):
        self._active: set[str] = set()

    def is_active(self, key: str) -> bool:
        return key in self._active

    @contextmanager
    def claim(self, key: str) -> Iterator[bool]:
        """Yield True if ``key`` was free (and hold it), False otherwise."""
        if key in self._active:
            yield False
            return
        self._active.add(key)
        try:
            yield True
        finally:
            self._active.discard(key)


class NavigationController:
    """Resolve where a user belongs and keep the per-tab store in step."""

    def __init__(
        self,
        store: ApplicationStateStore,
        data_source: ApplicationDataSource,
        guard: InFlightGuard | None = None,
        session_key: str = "",
    ):
        self._store = store
        self._data_source = data_source
        self._guard = guard or InFlightGuard()
        self._session_key = session_key

    async def _in_executor(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args))

    def resolve_application_id(self, route_application_id: str | None = None) -> str | None:
        """Route parameter first, then the store; None when neither has one.

        An id that arrives through the route becomes the tab's active
        application, replacing whatever the store held before.
        """
        if is_present(route_application_id):
            application_id = route_application_id.strip()
            if self._store.get().deal_id != application_id:
                self._store.set_deal_id(application_id)
            return application_id
        return self._store.get().deal_id

    async def enter(self, page: str, route_application_id: str | None = None) -> NavigationOutcome:
        """Resolve the next step for an entry page."""
        with self._guard.claim(f"{self._session_key}:{page}") as claimed:
            if not claimed:
                logger.info("Resolution already in flight for page %s", page)
                return NavigationOutcome(kind=NavigationKind.LOADING)
            return await self._enter(route_application_id)

    async def _enter(self, route_application_id: str | None) -> NavigationOutcome:
        application_id = await self._in_executor(self.resolve_application_id, route_application_id)
        if application_id is None:
            return NavigationOutcome(kind=NavigationKind.NO_ACTIVE_APPLICATION)

        try:
            snapshot = await self._data_source.fetch_application(application_id)
        except ApplicationFetchError as exc:
            if exc.status_code in _STALE_ID_STATUSES:
                logger.info(
                    "Application %s not available (%s), forgetting it",
                    application_id,
                    exc.reason,
                )
                await self._in_executor(self._store.forget_deal_id)
                return NavigationOutcome(
                    kind=NavigationKind.NO_ACTIVE_APPLICATION,
                    detail=exc.reason,
                )
            logger.warning("Snapshot fetch failed for application %s: %s", application_id, exc.reason)
            return NavigationOutcome(
                kind=NavigationKind.ERROR,
                application_id=application_id,
                detail=exc.reason,
            )

        step = resolve_next_step(snapshot)
        await self._in_executor(
            self._store.sync_from_api,
            snapshot.model_dump(by_alias=True, exclude_none=True),
        )
        await self._in_executor(self._store.set_current_form_step, step.value)
        target_id = snapshot.id or application_id

        logger.info("Application %s resolved to step %s", target_id, step.value)
        return NavigationOutcome(
            kind=NavigationKind.REDIRECT,
            step=step,
            location=step_route(step, snapshot.loan_purpose, target_id),
            application_id=target_id,
        )

    async def advance(
        self,
        step: StepToken | None = None,
        application_id: str | None = None,
        loan_purpose: str | None = None,
        current_step: StepToken | None = None,
        has_co_borrower: bool = False,
    ) -> NavigationOutcome:
        """Persist the next step marker and navigate to it.

        Either ``step`` names the target directly, or it is computed as the
        step after ``current_step`` in wizard order. A failing save is logged
        and navigation continues: the resolver puts the user back on track
        the next time an entry page resolves.
        """
        if step is None:
            if current_step is None:
                raise ValueError("advance() needs either step or current_step")
            step = next_step_after(current_step, has_co_borrower=has_co_borrower)

        application_id = await self._in_executor(self.resolve_application_id, application_id)
        if application_id is not None:
            try:
                await self._data_source.save_application(application_id, {"nextFormStep": step.value})
            except ApplicationSaveError as exc:
                logger.warning(
                    "Failed to persist step %s for application %s: %s",
                    step.value,
                    application_id,
                    exc.reason,
                )
        await self._in_executor(self._store.set_current_form_step, step.value)
        return NavigationOutcome(
            kind=NavigationKind.REDIRECT,
            step=step,
            location=step_route(step, loan_purpose, application_id),
            application_id=application_id,
            replace=False,
        )

    async def refresh_progress(
        self,
        scope: ProgressScope = ProgressScope.DEAL,
        application_id: str | None = None,
    ) -> ApplicationState | None:
        """Pull section flags from the API into the store.

        Returns None when there is no active application. Raises
        ``ApplicationFetchError`` when the API call fails.
        """
        application_id = await self._in_executor(self.resolve_application_id, application_id)
        if application_id is None:
            return None
        payload = await self._data_source.fetch_progress(application_id)
        return await self._in_executor(self._store.sync_progress_from_api, scope, payload)
