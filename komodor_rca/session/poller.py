"""Poll loop for a running RCA session.

State machine
-------------
POLLING    - a status request is due or in flight.
RETRYING   - the last request failed; waiting out the retry backoff.
COMPLETE   - the session reported ``isComplete`` (terminal).
FAILED     - 72 consecutive transient failures (terminal, raises).
TIMED_OUT  - more than 300 poll iterations without completion (terminal,
             not an error: the session may still finish remotely).

Budgets
-------
Transient failures back off a fixed 5 s and are tolerated 72 times in a
row (~6 minutes); any success resets the count. Independently, the loop
gives up after 300 iterations at a 2 s spacing. Both budgets count every
iteration, failed or not, towards the poll count.

The loop is strictly sequential: at most one status request is in flight.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

from komodor_rca.errors import PollExhaustedError, TransientPollError
from komodor_rca.models.session import Fingerprint, PollResult, PollState, RetryState, SessionSnapshot
from komodor_rca.observability.logging import get_logger
from komodor_rca.observability.metrics import poll_duration_seconds, poll_loop_outcomes_total, polls_total

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from komodor_rca.render.base import RenderSink

_logger = get_logger("session.poller")

MAX_ATTEMPTS: int = 72
RETRY_DELAY_S: float = 5.0
POLL_INTERVAL_S: float = 2.0
MAX_POLLS: int = 300

IN_PROGRESS_TEXT = "In Progress..."


class SessionPoller:
    """Drives one session from first poll to a terminal state.

    Args:
        fetch:         Async callable ``session_id -> SessionSnapshot`` that
                       raises TransientPollError on any failure
                       (normally ``KomodorClient.get_session``).
        sink:          Where events are rendered.
        sleep:         Awaitable sleep, replaceable in tests.
        max_attempts:  Consecutive failures tolerated before FAILED.
        retry_delay:   Seconds to wait after a failed poll.
        poll_interval: Seconds to wait after a successful, unfinished poll.
        max_polls:     Poll count after which the loop times out.
    """

    def __init__(
        self,
        fetch: Callable[[str], Awaitable[SessionSnapshot]],
        sink: RenderSink,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_S,
        poll_interval: float = POLL_INTERVAL_S,
        max_polls: int = MAX_POLLS,
    ) -> None:
        self._fetch = fetch
        self._sink = sink
        self._sleep = sleep
        self._retry_delay = retry_delay
        self._poll_interval = poll_interval
        self._max_polls = max_polls

        self.state = PollState.POLLING
        self.retry = RetryState(max_attempts=max_attempts)
        self.poll_count = 0
        self._last_fingerprint: Fingerprint | None = None

    async def run(self, session_id: str) -> PollResult:
        """Poll *session_id* until COMPLETE or TIMED_OUT.

        Raises PollExhaustedError (state FAILED) when the retry budget is
        spent; ``last_error`` is the final TransientPollError.
        """
        if self.state.is_terminal:
            raise RuntimeError(f"poller already finished in state {self.state}")

        self._sink.on_message("Starting live RCA monitoring...")
        self._sink.on_message("Press Ctrl+C to stop monitoring")
        _logger.info("poll_loop_started", session_id=session_id)

        while True:
            self.poll_count += 1
            started = time.monotonic()
            try:
                snapshot = await self._fetch(session_id)
            except TransientPollError as exc:
                poll_duration_seconds.observe(time.monotonic() - started)
                polls_total.labels(outcome="transient_failure").inc()
                await self._on_failure(session_id, exc)
                continue

            poll_duration_seconds.observe(time.monotonic() - started)
            polls_total.labels(outcome="success").inc()

            result = self._on_success(snapshot)
            if result is not None:
                return result
            await self._sleep(self._poll_interval)

    async def _on_failure(self, session_id: str, exc: TransientPollError) -> None:
        attempt = self.retry.record_failure()
        max_attempts = self.retry.max_attempts
        self._sink.on_progress(f"Poll failed: {exc} (retry {attempt}/{max_attempts})")
        _logger.warning(
            "poll_failed",
            session_id=session_id,
            attempt=attempt,
            max_attempts=max_attempts,
            status_code=exc.status_code,
            error=str(exc),
        )

        if self.retry.exhausted:
            self._transition(PollState.FAILED)
            _logger.error("poll_retries_exhausted", session_id=session_id, attempts=attempt)
            self._sink.on_error(f"Polling failed after {max_attempts} retries", exc)
            raise PollExhaustedError(attempt, exc) from exc

        self._transition(PollState.RETRYING)
        await self._sleep(self._retry_delay)

    def _on_success(self, snapshot: SessionSnapshot) -> PollResult | None:
        self.retry.reset()
        self._transition(PollState.POLLING)

        fingerprint = snapshot.fingerprint()
        if fingerprint != self._last_fingerprint:
            _logger.info("rca_data_updated", session_id=snapshot.session_id, poll_count=self.poll_count)
            self._sink.clear()
            self._sink.on_live_update(snapshot, self.poll_count)
            self._last_fingerprint = fingerprint
        else:
            self._sink.on_progress(IN_PROGRESS_TEXT)

        if snapshot.is_complete:
            self._sink.clear()
            self._sink.on_final(snapshot)
            _logger.info("rca_completed", session_id=snapshot.session_id, poll_count=self.poll_count)
            _logger.debug("rca_final_response", session_id=snapshot.session_id, fields=snapshot.raw_fields)
            return self._finish(PollState.COMPLETE, snapshot)

        if self.poll_count > self._max_polls:
            self._sink.on_message(f"Timeout reached after {self.poll_count} polls. RCA may still be processing.")
            _logger.warning("rca_poll_timeout", session_id=snapshot.session_id, poll_count=self.poll_count)
            return self._finish(PollState.TIMED_OUT, snapshot)

        return None

    def _transition(self, state: PollState) -> None:
        if state is not self.state:
            _logger.debug("poll_state_changed", from_state=self.state.value, to_state=state.value)
        self.state = state
        if state.is_terminal:
            poll_loop_outcomes_total.labels(state=state.value).inc()

    def _finish(self, state: PollState, snapshot: SessionSnapshot) -> PollResult:
        self._transition(state)
        return PollResult(state=state, poll_count=self.poll_count, snapshot=snapshot)
