"""Komodor REST API client.

Wraps the three endpoints komodor-rca needs:

    POST /api/v2/klaudia/rca/sessions               start an RCA session
    GET  /api/v2/klaudia/rca/sessions/{sessionId}   poll a session
    GET  /api/v2/clusters                           list clusters

Every request carries the ``x-api-key`` header. httpx failures are
translated into the komodor-rca error taxonomy here, so callers never
handle httpx exceptions directly.
"""

from __future__ import annotations

from types import TracebackType

import httpx
import structlog
from pydantic import ValidationError

from komodor_rca.errors import ResolutionError, TransientPollError, TriggerError
from komodor_rca.models.clusters import ClustersResponse, KomodorCluster
from komodor_rca.models.session import SessionHandle, SessionRequest, SessionSnapshot

_log = structlog.get_logger(component="api.client")

_SESSIONS_PATH = "/api/v2/klaudia/rca/sessions"
_CLUSTERS_PATH = "/api/v2/clusters"

_TRIGGER_TIMEOUT_S: float = 30.0
_POLL_TIMEOUT_S: float = 360.0  # the analysis backend can be slow to answer
_CLUSTERS_TIMEOUT_S: float = 30.0

_BODY_LOG_MAX_CHARS: int = 500

# Request construction problems (bad base URL, bad session id) are not
# httpx.HTTPError subclasses.
_REQUEST_ERRORS: tuple[type[Exception], ...] = (httpx.HTTPError, httpx.InvalidURL)


class KomodorClient:
    """Async client for the Komodor API.

    Uses one persistent ``httpx.AsyncClient``. Use as an async context
    manager or call :meth:`aclose` when done.

    Args:
        api_key:   Komodor API key, sent as ``x-api-key``.
        base_url:  API base URL, e.g. ``https://api.komodor.com``.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"x-api-key": api_key},
            timeout=httpx.Timeout(_TRIGGER_TIMEOUT_S),
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> KomodorClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client and release connections."""
        await self._client.aclose()

    async def create_session(self, request: SessionRequest) -> SessionHandle:
        """Start an RCA session.

        Raises TriggerError on transport errors, statuses other than
        200/201, or an undecodable body. An empty session id is returned
        as-is; the trigger step decides what that means.
        """
        try:
            response = await self._client.post(
                _SESSIONS_PATH,
                json=request.to_payload(),
                timeout=_TRIGGER_TIMEOUT_S,
            )
        except _REQUEST_ERRORS as exc:
            raise TriggerError(f"failed to make request: {exc}") from exc

        body = response.text
        if response.status_code not in (200, 201):
            raise TriggerError(
                f"RCA failed (HTTP {response.status_code}): {body}",
                status_code=response.status_code,
                body=body,
            )

        try:
            return SessionHandle.model_validate_json(response.content)
        except ValidationError as exc:
            raise TriggerError(
                f"failed to decode response: {exc}",
                status_code=response.status_code,
                body=body,
            ) from exc

    async def get_session(self, session_id: str) -> SessionSnapshot:
        """Fetch the current state of a session.

        Every failure, whatever the stage, is raised as TransientPollError.
        """
        try:
            response = await self._client.get(
                f"{_SESSIONS_PATH}/{session_id}",
                timeout=_POLL_TIMEOUT_S,
            )
        except _REQUEST_ERRORS as exc:
            raise TransientPollError(f"failed to make request: {exc}") from exc

        if response.status_code != 200:
            raise TransientPollError(
                f"polling failed (HTTP {response.status_code}): {response.text}",
                status_code=response.status_code,
            )

        try:
            return SessionSnapshot.model_validate_json(response.content)
        except ValidationError as exc:
            _log.debug(
                "session_response_undecodable",
                session_id=session_id,
                body=response.text[:_BODY_LOG_MAX_CHARS],
            )
            raise TransientPollError(
                f"failed to parse response: {exc}",
                status_code=response.status_code,
            ) from exc

    async def list_clusters(self) -> list[KomodorCluster]:
        """List every cluster known to Komodor.

        Raises ResolutionError on any failure, since cluster resolution is
        the only caller.
        """
        _log.info("fetching_komodor_clusters")
        try:
            response = await self._client.get(_CLUSTERS_PATH, timeout=_CLUSTERS_TIMEOUT_S)
        except _REQUEST_ERRORS as exc:
            _log.error("cluster_list_request_failed", error=str(exc))
            raise ResolutionError(f"failed to fetch Komodor clusters: {exc}") from exc

        if response.status_code != 200:
            _log.error(
                "cluster_list_unexpected_status",
                status_code=response.status_code,
                body=response.text[:_BODY_LOG_MAX_CHARS],
            )
            raise ResolutionError(
                f"failed to fetch Komodor clusters: API request failed (HTTP {response.status_code}): {response.text}"
            )

        try:
            clusters = ClustersResponse.model_validate_json(response.content).clusters
        except ValidationError as exc:
            _log.error("cluster_list_undecodable", error=str(exc))
            raise ResolutionError(f"failed to fetch Komodor clusters: {exc}") from exc

        _log.info("fetched_komodor_clusters", count=len(clusters))
        return clusters
