"""One komodor-rca run: validate -> resolve cluster -> trigger -> poll.

Every fatal error is shown through the active render sink and turned into
exit code 1. Reaching COMPLETE or TIMED_OUT, or a successful trigger in
background mode, is exit code 0.

Waiting for the user to dismiss the output and closing the sink are left
to the caller, outside the event loop, so Ctrl+C always interrupts them.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from komodor_rca.api.client import KomodorClient
from komodor_rca.cluster.mapping import ClusterMappingStore
from komodor_rca.cluster.resolver import ClusterResolver
from komodor_rca.config import validate_config
from komodor_rca.errors import (
    ConfigError,
    EmptySessionError,
    PollExhaustedError,
    ResolutionError,
    TriggerError,
)
from komodor_rca.observability.logging import get_logger
from komodor_rca.session.poller import SessionPoller
from komodor_rca.session.trigger import trigger_session

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from komodor_rca.models.config import RCAConfig
    from komodor_rca.render.base import RenderSink

EXIT_OK = 0
EXIT_FAILURE = 1


async def run_rca(
    config: RCAConfig,
    sink: RenderSink,
    *,
    poll: bool = True,
    client: KomodorClient | None = None,
    uid_lookup: Callable[[], Awaitable[str]] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> int:
    """Run one RCA session end to end and return the process exit code.

    Args:
        config:     Loaded configuration (validated here).
        sink:       Render sink for all user-visible output.
        poll:       Follow the session after triggering it.
        client:     Komodor client; created from *config* when omitted and
                    closed on return in that case.
        uid_lookup: Local cluster UID lookup used by the resolver.
        sleep:      Awaitable sleep used by the poll loop.
    """
    log = get_logger("app")
    try:
        validate_config(config)
    except ConfigError as exc:
        log.error("config_invalid", error=str(exc))
        return _fail(sink, "Validation error", exc)

    owns_client = client is None
    api = client or KomodorClient(config.api_key, config.base_url)
    try:
        resolver = ClusterResolver(api, ClusterMappingStore(config.mapping_file), uid_lookup=uid_lookup)
        try:
            komodor_cluster = await resolver.resolve(config.cluster_name)
        except ResolutionError as exc:
            return _fail(sink, "Cluster resolution failed", exc)

        request = config.session_request(komodor_cluster)
        sink.on_message(
            f"Triggering RCA for {request.kind}: {request.name} "
            f"in namespace: {request.namespace} on cluster: {request.cluster_name}"
        )
        try:
            handle = await trigger_session(api, request)
        except EmptySessionError as exc:
            return _fail(sink, "No session ID received", exc)
        except TriggerError as exc:
            return _fail(sink, "RCA trigger failed", exc)

        structlog.contextvars.bind_contextvars(session_id=handle.session_id)
        sink.on_message(f"RCA triggered successfully! Session ID: {handle.session_id}")
        if not poll:
            log.info("background_mode_exit")
            return EXIT_OK

        poller = SessionPoller(api.get_session, sink, sleep=sleep)
        try:
            result = await poller.run(handle.session_id)
        except PollExhaustedError as exc:
            # The poller already reported the error through the sink.
            log.error("poll_loop_failed", attempts=exc.attempts, last_error=str(exc.last_error))
            return EXIT_FAILURE

        log.info("poll_loop_finished", state=result.state.value, poll_count=result.poll_count)
        return EXIT_OK
    finally:
        structlog.contextvars.unbind_contextvars("session_id")
        if owns_client:
            await api.aclose()


def _fail(sink: RenderSink, message: str, exc: Exception) -> int:
    sink.on_error(message, exc)
    return EXIT_FAILURE
