# This project was developed with assistance from AI tools.
"""Application data source backed by the URLA REST API.

The wizard never owns application records; it reads snapshots and persists
step markers through this client. Failures surface as ``ApplicationFetchError``
or ``ApplicationSaveError`` and are never retried here -- retry policy belongs
to whoever owns the API.

The module exposes a singleton initialised at app startup via
``init_data_source()``.
"""

import logging
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from ..core.config import Settings
from ..schemas.snapshot import ApplicationSnapshot

logger = logging.getLogger(__name__)


class ApplicationFetchError(Exception):
    """The data source could not return a snapshot (network, auth, 4xx/5xx)."""

    def __init__(self, application_id: str, reason: str, status_code: int | None = None):
        self.application_id = application_id
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Could not fetch application {application_id}: {reason}")


class ApplicationSaveError(Exception):
    """A partial update could not be persisted."""

    def __init__(self, application_id: str, reason: str, status_code: int | None = None):
        self.application_id = application_id
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Could not save application {application_id}: {reason}")


class ApplicationDataSource(Protocol):
    """What the navigation controller needs from the application API."""

    async def fetch_application(self, application_id: str) -> ApplicationSnapshot: ...

    async def save_application(
        self, application_id: str, update: dict[str, Any]
    ) -> dict[str, Any]: ...

    async def fetch_progress(self, application_id: str) -> dict[str, Any]: ...


def _describe(exc: httpx.HTTPError) -> tuple[str, int | None]:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}", exc.response.status_code
    if isinstance(exc, httpx.TimeoutException):
        return "timed out", None
    return exc.__class__.__name__, None


class UrlaApiClient:
    """Thin async wrapper around the URLA application endpoints."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @staticmethod
    def _path(application_id: str, suffix: str = "") -> str:
        return f"/urla/applications/{quote(str(application_id), safe='')}{suffix}"

    async def _get_json(self, application_id: str, suffix: str = "") -> dict[str, Any]:
        try:
            response = await self._client.get(self._path(application_id, suffix))
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            reason, status_code = _describe(exc)
            raise ApplicationFetchError(application_id, reason, status_code) from exc
        except ValueError as exc:
            raise ApplicationFetchError(application_id, "response is not JSON") from exc
        if not isinstance(data, dict):
            raise ApplicationFetchError(application_id, "response is not a JSON object")
        return data

    async def fetch_application(self, application_id: str) -> ApplicationSnapshot:
        """GET /urla/applications/{id} as a snapshot."""
        data = await self._get_json(application_id)
        return ApplicationSnapshot.model_validate(data)

    async def fetch_progress(self, application_id: str) -> dict[str, Any]:
        """GET /urla/applications/{id}/progress (section completion flags)."""
        return await self._get_json(application_id, "/progress")

    async def save_application(self, application_id: str, update: dict[str, Any]) -> dict[str, Any]:
        """POST a partial update, commonly just ``{"nextFormStep": <step>}``."""
        try:
            response = await self._client.post(self._path(application_id, "/save"), json=update)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            reason, status_code = _describe(exc)
            raise ApplicationSaveError(application_id, reason, status_code) from exc
        try:
            body = response.json()
        except ValueError:
            body = None
        return body if isinstance(body, dict) else {}

    async def aclose(self) -> None:
        await self._client.aclose()


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_client: UrlaApiClient | None = None


def init_data_source(cfg: Settings) -> UrlaApiClient:
    """Initialise the singleton (called once from app lifespan)."""
    global _client  # noqa: PLW0603
    _client = UrlaApiClient(cfg.URLA_API_URL, timeout=cfg.URLA_API_TIMEOUT)
    logger.info("URLA API client initialised (base_url=%s)", cfg.URLA_API_URL)
    return _client


def get_data_source() -> UrlaApiClient:
    """Return the initialised UrlaApiClient singleton."""
    if _client is None:
        raise RuntimeError("UrlaApiClient not initialised -- call init_data_source() first")
    return _client


async def close_data_source() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None
