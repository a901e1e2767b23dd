"""Start a Komodor RCA session."""

from __future__ import annotations

from typing import TYPE_CHECKING

from komodor_rca.errors import EmptySessionError, TriggerError
from komodor_rca.observability.logging import get_logger
from komodor_rca.observability.metrics import sessions_triggered_total

if TYPE_CHECKING:
    from komodor_rca.api.client import KomodorClient
    from komodor_rca.models.session import SessionHandle, SessionRequest

_logger = get_logger("session.trigger")


async def trigger_session(client: KomodorClient, request: SessionRequest) -> SessionHandle:
    """Submit *request* once and return the new session handle.

    Raises TriggerError if Komodor rejects the request and
    EmptySessionError if it accepts it without a session id.
    """
    _logger.info(
        "rca_trigger",
        kind=request.kind,
        name=request.name,
        namespace=request.namespace,
        cluster=request.cluster_name,
    )
    try:
        handle = await client.create_session(request)
    except TriggerError as exc:
        sessions_triggered_total.labels(outcome="rejected").inc()
        _logger.error("rca_trigger_failed", status_code=exc.status_code, error=str(exc))
        raise

    if not handle.session_id:
        sessions_triggered_total.labels(outcome="empty_session").inc()
        _logger.error("rca_trigger_empty_session", status=handle.status)
        raise EmptySessionError("no session ID received from Komodor API")

    sessions_triggered_total.labels(outcome="success").inc()
    _logger.info("rca_triggered", session_id=handle.session_id, status=handle.status)
    return handle
