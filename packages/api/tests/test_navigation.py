# This project was developed with assistance from AI tools.
"""Tests for the entry-page navigation controller."""

import asyncio
import threading
from unittest.mock import AsyncMock

import pytest
from db.enums import ProgressScope, StepToken

from factories import make_borrower, make_snapshot
from wizard.schemas.navigation import NavigationKind
from wizard.schemas.snapshot import ApplicationSnapshot
from wizard.services.data_source import ApplicationFetchError, ApplicationSaveError
from wizard.services.navigation import InFlightGuard, NavigationController
from wizard.services.state_store import ApplicationStateStore
from wizard.services.storage import DisabledStorageArea


def _snapshot(**kwargs) -> ApplicationSnapshot:
    return ApplicationSnapshot.model_validate(make_snapshot(**kwargs))


@pytest.fixture
def controller(store, data_source):
    return NavigationController(store, data_source, session_key="tab-1")


# ---------------------------------------------------------------------------
# enter()
# ---------------------------------------------------------------------------


async def test_no_application_id_means_no_navigation(controller, data_source):
    outcome = await controller.enter("resume")

    assert outcome.kind == NavigationKind.NO_ACTIVE_APPLICATION
    assert outcome.location is None
    data_source.fetch_application.assert_not_awaited()


async def test_redirects_to_resolved_step(controller, data_source, store):
    data_source.fetch_application.return_value = _snapshot(
        borrower=make_borrower(extended=False)
    )

    outcome = await controller.enter("resume", "42")

    assert outcome.kind == NavigationKind.REDIRECT
    assert outcome.step == StepToken.BORROWER_INFO_2
    assert outcome.location == "/buy/borrower-info-2?applicationId=42"
    assert outcome.replace is True
    data_source.fetch_application.assert_awaited_once_with("42")

    state = store.get()
    assert state.deal_id == "42"
    assert state.borrower_id == "b-7"
    assert state.current_form_step == "borrower-info-2"


async def test_uses_stored_application_id(controller, data_source, store):
    store.set_deal_id("42")
    data_source.fetch_application.return_value = _snapshot(
        loan_purpose="Refinance", has_co_borrower=False, current_form_step="loan"
    )

    outcome = await controller.enter("getting-started")

    assert outcome.location == "/refinance/loan?applicationId=42"
    data_source.fetch_application.assert_awaited_once_with("42")


async def test_route_id_takes_precedence_over_store(controller, data_source, store):
    store.set_deal_id("41")
    data_source.fetch_application.return_value = _snapshot(app_id="42", has_co_borrower=False)

    outcome = await controller.enter("resume", "42")

    data_source.fetch_application.assert_awaited_once_with("42")
    assert outcome.application_id == "42"
    assert store.get().deal_id == "42"


async def test_route_id_written_to_empty_store(controller, store):
    assert controller.resolve_application_id(" 42 ") == "42"
    assert store.get().deal_id == "42"


async def test_fetch_failure_is_error_without_navigation(controller, data_source, store):
    data_source.fetch_application.side_effect = ApplicationFetchError("42", "HTTP 500", 500)

    outcome = await controller.enter("resume", "42")

    assert outcome.kind == NavigationKind.ERROR
    assert outcome.location is None
    assert outcome.application_id == "42"
    assert "HTTP 500" in outcome.detail
    assert store.get().current_form_step is None


async def test_completed_application_redirects_to_marker(controller, data_source):
    data_source.fetch_application.return_value = _snapshot(
        has_co_borrower=True,
        current_form_step="co-borrower-info-2",
        coBorrower={"id": "cb-1", "firstName": "Cy"},
    )

    outcome = await controller.enter("resume", "42")

    assert outcome.step == StepToken.CO_BORROWER_INFO_2
    assert outcome.location == "/buy/co-borrower-info-2?applicationId=42"


async def test_unavailable_storage_still_navigates(data_source):
    store = ApplicationStateStore(DisabledStorageArea("tab-1").attach())
    controller = NavigationController(store, data_source)
    data_source.fetch_application.return_value = _snapshot(has_co_borrower=False)

    outcome = await controller.enter("resume", "42")

    assert outcome.kind == NavigationKind.REDIRECT
    assert outcome.location == "/buy/review?applicationId=42"


async def test_unavailable_storage_without_route_id(data_source):
    store = ApplicationStateStore(DisabledStorageArea("tab-1").attach())
    controller = NavigationController(store, data_source)

    outcome = await controller.enter("resume")

    assert outcome.kind == NavigationKind.NO_ACTIVE_APPLICATION


# ---------------------------------------------------------------------------
# In-flight guard
# ---------------------------------------------------------------------------


def test_guard_claims_and_releases():
    guard = InFlightGuard()
    with guard.claim("tab-1:resume") as first:
        assert first is True
        assert guard.is_active("tab-1:resume")
        with guard.claim("tab-1:resume") as second:
            assert second is False
        with guard.claim("tab-2:resume") as other:
            assert other is True
    assert not guard.is_active("tab-1:resume")


def test_guard_releases_on_error():
    guard = InFlightGuard()
    with pytest.raises(ValueError):
        with guard.claim("tab-1:resume"):
            raise ValueError("boom")
    assert not guard.is_active("tab-1:resume")


async def test_concurrent_enter_resolves_once(store):
    release = asyncio.Event()

    async def slow_fetch(application_id):
        await release.wait()
        return _snapshot(has_co_borrower=False)

    source = AsyncMock()
    source.fetch_application = AsyncMock(side_effect=slow_fetch)
    controller = NavigationController(store, source, session_key="tab-1")

    first = asyncio.create_task(controller.enter("resume", "42"))
    await asyncio.sleep(0)
    second = await controller.enter("resume", "42")
    release.set()
    first_outcome = await first

    assert second.kind == NavigationKind.LOADING
    assert first_outcome.kind == NavigationKind.REDIRECT
    assert source.fetch_application.await_count == 1


async def test_claimed_page_reports_loading(store, data_source):
    guard = InFlightGuard()
    controller = NavigationController(store, data_source, guard=guard, session_key="tab-1")

    with guard.claim("tab-1:resume"):
        outcome = await controller.enter("resume", "42")

    assert outcome.kind == NavigationKind.LOADING
    data_source.fetch_application.assert_not_awaited()


# ---------------------------------------------------------------------------
# advance() and refresh_progress()
# ---------------------------------------------------------------------------


async def test_advance_saves_marker_and_navigates(controller, data_source, store):
    store.set_deal_id("42")

    outcome = await controller.advance(StepToken.REVIEW, loan_purpose="Purchase")

    data_source.save_application.assert_awaited_once_with("42", {"nextFormStep": "review"})
    assert outcome.kind == NavigationKind.REDIRECT
    assert outcome.location == "/buy/review?applicationId=42"
    assert outcome.replace is False
    assert store.get().current_form_step == "review"


async def test_advance_continues_when_save_fails(controller, data_source, store):
    data_source.save_application.side_effect = ApplicationSaveError("42", "HTTP 503", 503)

    outcome = await controller.advance(StepToken.LOAN, "42", "Refinance")

    assert outcome.location == "/refinance/loan?applicationId=42"
    assert store.get().current_form_step == "loan"


async def test_advance_without_application(controller, data_source):
    outcome = await controller.advance(StepToken.BORROWER_INFO_1)

    data_source.save_application.assert_not_awaited()
    assert outcome.location == "/refinance/borrower-info-1"


async def test_refresh_progress(controller, data_source, store):
    data_source.fetch_progress.return_value = {"sections": {"section1a": True}}

    state = await controller.refresh_progress(ProgressScope.DEAL, "42")

    data_source.fetch_progress.assert_awaited_once_with("42")
    assert state.deal_progress == {"section1a": True}
    assert store.get().deal_id == "42"


async def test_refresh_progress_without_application(controller, data_source):
    assert await controller.refresh_progress() is None
    data_source.fetch_progress.assert_not_awaited()


async def test_refresh_progress_propagates_fetch_error(controller, data_source):
    data_source.fetch_progress.side_effect = ApplicationFetchError("42", "HTTP 502", 502)
    with pytest.raises(ApplicationFetchError):
        await controller.refresh_progress(ProgressScope.BORROWER, "42")


# ---------------------------------------------------------------------------
# Application id precedence and stale ids
# ---------------------------------------------------------------------------


async def test_route_id_wins_when_snapshot_has_no_id(controller, data_source, store):
    store.set_deal_id("41")
    data_source.fetch_application.return_value = _snapshot(app_id=None, has_co_borrower=False)

    outcome = await controller.enter("resume", "42")

    data_source.fetch_application.assert_awaited_once_with("42")
    assert outcome.application_id == "42"
    assert outcome.location == "/buy/review?applicationId=42"
    assert store.get().deal_id == "42"


def test_route_id_replaces_stored_id(controller, store):
    store.set_deal_id("41")
    assert controller.resolve_application_id("42") == "42"
    assert store.get().deal_id == "42"


@pytest.mark.parametrize("status_code", [401, 404])
async def test_stale_stored_id_is_forgotten(controller, data_source, store, status_code):
    store.set_deal_id("42")
    store.set_borrower_id("b-7")
    data_source.fetch_application.side_effect = ApplicationFetchError(
        "42", f"HTTP {status_code}", status_code
    )

    outcome = await controller.enter("getting-started")

    assert outcome.kind == NavigationKind.NO_ACTIVE_APPLICATION
    assert outcome.location is None
    state = store.get()
    assert state.deal_id is None
    assert state.borrower_id == "b-7"

    # The next entry no longer tries the dead id
    data_source.fetch_application.reset_mock()
    assert (await controller.enter("getting-started")).kind == NavigationKind.NO_ACTIVE_APPLICATION
    data_source.fetch_application.assert_not_awaited()


async def test_server_error_keeps_stored_id(controller, data_source, store):
    store.set_deal_id("42")
    data_source.fetch_application.side_effect = ApplicationFetchError("42", "HTTP 503", 503)

    outcome = await controller.enter("getting-started")

    assert outcome.kind == NavigationKind.ERROR
    assert store.get().deal_id == "42"


# ---------------------------------------------------------------------------
# Computed advance target
# ---------------------------------------------------------------------------


async def test_advance_from_current_step_skips_co_borrower_pages(controller, data_source):
    outcome = await controller.advance(
        application_id="42",
        loan_purpose="Purchase",
        current_step=StepToken.CO_BORROWER_QUESTION,
    )

    assert outcome.step == StepToken.REVIEW
    data_source.save_application.assert_awaited_once_with("42", {"nextFormStep": "review"})


async def test_advance_from_current_step_with_co_borrower(controller):
    outcome = await controller.advance(
        application_id="42",
        current_step=StepToken.CO_BORROWER_QUESTION,
        has_co_borrower=True,
    )

    assert outcome.step == StepToken.CO_BORROWER_INFO_1
    assert outcome.location == "/refinance/co-borrower-info-1?applicationId=42"


async def test_advance_needs_a_target(controller):
    with pytest.raises(ValueError):
        await controller.advance(application_id="42")


# ---------------------------------------------------------------------------
# Blocking store calls
# ---------------------------------------------------------------------------


class _ThreadRecordingStore(ApplicationStateStore):
    def __init__(self, storage):
        super().__init__(storage)
        self.threads: set[int] = set()

    def get(self):
        self.threads.add(threading.get_ident())
        return super().get()


async def test_store_calls_run_off_the_event_loop(area, data_source):
    handle = area.attach()
    store = _ThreadRecordingStore(handle)
    controller = NavigationController(store, data_source)
    data_source.fetch_application.return_value = _snapshot(has_co_borrower=False)

    outcome = await controller.enter("resume", "42")

    handle.close()
    assert outcome.kind == NavigationKind.REDIRECT
    assert store.threads
    assert threading.get_ident() not in store.threads
