"""Error taxonomy for komodor-rca.

Fatal errors end the run with a non-zero exit code and are never retried.
``TransientPollError`` is the only retryable error; the poll loop turns a
run of them into ``PollExhaustedError`` once its retry budget is spent.
A poll timeout is not an error at all (see ``PollState.TIMED_OUT``).
"""

from __future__ import annotations


class KomodorRCAError(Exception):
    """Base class for every error raised by komodor-rca."""


class ConfigError(KomodorRCAError):
    """A required input is missing or a configuration value is invalid."""


class ResolutionError(KomodorRCAError):
    """The local cluster name could not be mapped to a Komodor cluster."""


class TriggerError(KomodorRCAError):
    """Komodor rejected the RCA session request.

    Attributes:
        status_code: HTTP status of the response, or None on transport errors.
        body:        Raw response body, kept verbatim for diagnosis.
    """

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class EmptySessionError(TriggerError):
    """The trigger call succeeded but returned no session id."""


class TransientPollError(KomodorRCAError):
    """One poll iteration failed; the poll loop retries these."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PollExhaustedError(KomodorRCAError):
    """The poll retry budget ran out without an intervening success."""

    def __init__(self, attempts: int, last_error: Exception) -> None:
        super().__init__(f"polling failed after {attempts} retries: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class LocalClusterError(KomodorRCAError):
    """The local Kubernetes cluster could not be queried for its identity."""
