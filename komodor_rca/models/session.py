"""RCA session data structures: request, handle, poll snapshot and loop state."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# (problemShort, recommendation, sessionId, len(whatHappened), len(evidence), len(operations))
Fingerprint = tuple[str, str, str, int, int, int]

_DEFAULT_MAX_ATTEMPTS: int = 72


class PollState(StrEnum):
    """Poll loop states. COMPLETE, FAILED and TIMED_OUT are terminal."""

    POLLING = "polling"
    RETRYING = "retrying"
    COMPLETE = "complete"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (PollState.COMPLETE, PollState.FAILED, PollState.TIMED_OUT)


@dataclass(frozen=True)
class SessionRequest:
    """What to analyse. Built once from validated configuration."""

    namespace: str
    name: str
    kind: str
    cluster_name: str

    def to_payload(self) -> dict[str, str]:
        """Request body for ``POST /api/v2/klaudia/rca/sessions``."""
        return {
            "namespace": self.namespace,
            "name": self.name,
            "kind": self.kind,
            "clusterName": self.cluster_name,
        }


class SessionHandle(BaseModel):
    """Response of the trigger call."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    session_id: str = Field(default="", alias="sessionId")
    status: str = ""

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class EvidenceItem(BaseModel):
    """One piece of evidence gathered by the analysis."""

    model_config = ConfigDict(frozen=True)

    query: str = ""
    snippet: str = ""


_EVIDENCE_COLLECTION_KEY = "evidenceCollection"
_EVIDENCE_QUERIES_KEY = "evidenceQueries"


def _normalise_evidence(raw: object) -> object:
    """Map either evidence representation onto a list of EvidenceItem dicts.

    Strings become items with an empty snippet. Anything that is not a list
    is returned unchanged so model validation reports it.
    """
    if not isinstance(raw, list):
        return raw
    items: list[object] = []
    for entry in raw:
        if entry is None:
            continue
        if isinstance(entry, str):
            items.append({"query": entry})
        elif isinstance(entry, dict):
            items.append({k: v for k, v in entry.items() if v is not None})
        else:
            items.append(entry)
    return items


class SessionSnapshot(BaseModel):
    """Full result of one successful poll.

    Unknown response fields are kept as pydantic extras; see
    :attr:`extra_fields` and :attr:`raw_fields`.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    session_id: str = Field(default="", alias="sessionId")
    is_complete: bool = Field(default=False, alias="isComplete")
    is_failed: bool = Field(default=False, alias="isFailed")
    is_stuck: bool = Field(default=False, alias="isStuck")
    problem_summary: str = Field(default="", alias="problemShort")
    recommendation: str = ""
    timeline: list[str] = Field(default_factory=list, alias="whatHappened")
    evidence: list[EvidenceItem] = Field(default_factory=list)
    operations_log: list[str] = Field(default_factory=list, alias="operations")

    @model_validator(mode="before")
    @classmethod
    def _normalise(cls, data: Any) -> Any:
        """Drop nulls and fold both evidence shapes into ``evidence``.

        ``evidenceCollection`` wins over ``evidenceQueries`` when it is a
        non-empty list. A bare ``evidence`` key is only used when neither is
        present, and is dropped unless it is a list.
        """
        if not isinstance(data, dict):
            return data
        data = {k: v for k, v in data.items() if v is not None}
        collection = data.pop(_EVIDENCE_COLLECTION_KEY, None)
        queries = data.pop(_EVIDENCE_QUERIES_KEY, None)
        bare = data.pop("evidence", None)
        if collection or (collection is not None and queries is None):
            data["evidence"] = _normalise_evidence(collection)
        elif queries is not None:
            data["evidence"] = _normalise_evidence(queries)
        elif isinstance(bare, list):
            data["evidence"] = _normalise_evidence(bare)
        return data

    @property
    def extra_fields(self) -> dict[str, Any]:
        """Response fields that are not part of the typed model."""
        return dict(self.model_extra or {})

    @property
    def raw_fields(self) -> dict[str, Any]:
        """Typed fields (by wire name) plus extras, JSON-compatible."""
        return self.model_dump(by_alias=True, mode="json")

    @property
    def status_text(self) -> str:
        if self.is_complete:
            return "Complete"
        if self.is_failed:
            return "Failed"
        if self.is_stuck:
            return "Stuck"
        return "In Progress"

    def fingerprint(self) -> Fingerprint:
        """Cheap summary used to skip re-rendering unchanged content."""
        return (
            self.problem_summary,
            self.recommendation,
            self.session_id,
            len(self.timeline),
            len(self.evidence),
            len(self.operations_log),
        )


@dataclass
class RetryState:
    """Consecutive transient-failure counter owned by the poll loop."""

    attempt_count: int = 0
    max_attempts: int = _DEFAULT_MAX_ATTEMPTS

    @property
    def exhausted(self) -> bool:
        return self.attempt_count >= self.max_attempts

    def record_failure(self) -> int:
        self.attempt_count += 1
        return self.attempt_count

    def reset(self) -> None:
        self.attempt_count = 0


@dataclass(frozen=True)
class PollResult:
    """How a poll loop run ended (COMPLETE or TIMED_OUT)."""

    state: PollState
    poll_count: int
    snapshot: SessionSnapshot | None = None
