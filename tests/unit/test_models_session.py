"""Tests for komodor_rca.models.session: snapshot decoding and loop state."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from komodor_rca.models.session import (
    EvidenceItem,
    PollState,
    RetryState,
    SessionHandle,
    SessionRequest,
    SessionSnapshot,
)


def _snapshot_json(**overrides: object) -> str:
    body: dict[str, object] = {
        "sessionId": "sess-1",
        "isComplete": False,
        "problemShort": "Pod crash looping",
        "recommendation": "Raise the memory limit",
        "whatHappened": ["container started", "container OOMKilled"],
        "operations": ["fetched logs"],
    }
    body.update(overrides)
    return json.dumps(body)


class TestSessionRequest:
    def test_payload_uses_wire_names(self) -> None:
        request = SessionRequest(namespace="prod", name="api", kind="Deployment", cluster_name="prod-eu")
        assert request.to_payload() == {
            "namespace": "prod",
            "name": "api",
            "kind": "Deployment",
            "clusterName": "prod-eu",
        }

    def test_is_immutable(self) -> None:
        request = SessionRequest(namespace="prod", name="api", kind="Deployment", cluster_name="prod-eu")
        with pytest.raises(AttributeError):
            request.name = "other"  # type: ignore[misc]


class TestSessionHandle:
    def test_decodes_session_id(self) -> None:
        handle = SessionHandle.model_validate_json('{"sessionId": "abc", "status": "running"}')
        assert handle.session_id == "abc"
        assert handle.status == "running"

    def test_null_session_id_is_empty(self) -> None:
        handle = SessionHandle.model_validate_json('{"sessionId": null, "status": "ok"}')
        assert handle.session_id == ""


class TestSessionSnapshotDecoding:
    def test_typed_fields(self) -> None:
        snap = SessionSnapshot.model_validate_json(_snapshot_json())
        assert snap.session_id == "sess-1"
        assert snap.is_complete is False
        assert snap.problem_summary == "Pod crash looping"
        assert snap.recommendation == "Raise the memory limit"
        assert snap.timeline == ["container started", "container OOMKilled"]
        assert snap.operations_log == ["fetched logs"]

    def test_missing_fields_default_to_empty(self) -> None:
        snap = SessionSnapshot.model_validate_json("{}")
        assert snap.session_id == ""
        assert snap.is_complete is False
        assert snap.is_failed is False
        assert snap.is_stuck is False
        assert snap.timeline == []
        assert snap.evidence == []
        assert snap.operations_log == []

    def test_null_fields_default_to_empty(self) -> None:
        body = '{"sessionId": "s", "whatHappened": null, "operations": null, "recommendation": null}'
        snap = SessionSnapshot.model_validate_json(body)
        assert snap.timeline == []
        assert snap.operations_log == []
        assert snap.recommendation == ""

    def test_flat_evidence_queries(self) -> None:
        snap = SessionSnapshot.model_validate_json(_snapshot_json(evidenceQueries=["kubectl logs api", "events"]))
        assert snap.evidence == [EvidenceItem(query="kubectl logs api"), EvidenceItem(query="events")]

    def test_structured_evidence_collection(self) -> None:
        snap = SessionSnapshot.model_validate_json(
            _snapshot_json(evidenceCollection=[{"query": "logs", "snippet": "OOMKilled"}, {"query": "events"}])
        )
        assert snap.evidence == [
            EvidenceItem(query="logs", snippet="OOMKilled"),
            EvidenceItem(query="events", snippet=""),
        ]

    def test_collection_wins_over_queries(self) -> None:
        snap = SessionSnapshot.model_validate_json(
            _snapshot_json(
                evidenceQueries=["flat"],
                evidenceCollection=[{"query": "structured", "snippet": "s"}],
            )
        )
        assert [e.query for e in snap.evidence] == ["structured"]

    def test_empty_collection_falls_back_to_queries(self) -> None:
        snap = SessionSnapshot.model_validate_json(_snapshot_json(evidenceQueries=["flat"], evidenceCollection=[]))
        assert [e.query for e in snap.evidence] == ["flat"]

    def test_bare_evidence_non_list_is_ignored(self) -> None:
        snap = SessionSnapshot.model_validate_json(_snapshot_json(evidence="see attached"))
        assert snap.evidence == []
        assert snap.session_id == "sess-1"

    def test_bare_evidence_list_used_without_wire_shapes(self) -> None:
        snap = SessionSnapshot.model_validate_json(_snapshot_json(evidence=["kubectl get events"]))
        assert snap.evidence == [EvidenceItem(query="kubectl get events")]

    def test_wire_shapes_win_over_bare_evidence(self) -> None:
        snap = SessionSnapshot.model_validate_json(
            _snapshot_json(evidence={"unexpected": True}, evidenceQueries=["flat"])
        )
        assert [e.query for e in snap.evidence] == ["flat"]

    def test_unknown_fields_kept_as_extras(self) -> None:
        snap = SessionSnapshot.model_validate_json(_snapshot_json(confidence=0.8, rootCauseKind="OOM"))
        assert snap.extra_fields == {"confidence": 0.8, "rootCauseKind": "OOM"}
        raw = snap.raw_fields
        assert raw["confidence"] == 0.8
        assert raw["sessionId"] == "sess-1"
        assert raw["problemShort"] == "Pod crash looping"

    def test_known_fields_are_not_extras(self) -> None:
        snap = SessionSnapshot.model_validate_json(_snapshot_json(evidenceQueries=["q"]))
        assert "evidenceQueries" not in snap.extra_fields
        assert "sessionId" not in snap.extra_fields

    def test_invalid_json_raises(self) -> None:
        with pytest.raises(ValidationError):
            SessionSnapshot.model_validate_json("not json")

    def test_non_object_raises(self) -> None:
        with pytest.raises(ValidationError):
            SessionSnapshot.model_validate_json("[1, 2, 3]")

    def test_wrong_field_type_raises(self) -> None:
        with pytest.raises(ValidationError):
            SessionSnapshot.model_validate_json(_snapshot_json(whatHappened="not a list"))


class TestSnapshotFingerprint:
    def test_fingerprint_fields(self) -> None:
        snap = SessionSnapshot.model_validate_json(_snapshot_json(evidenceQueries=["a", "b", "c"]))
        assert snap.fingerprint() == ("Pod crash looping", "Raise the memory limit", "sess-1", 2, 3, 1)

    def test_same_counts_different_text_in_lists_is_same_fingerprint(self) -> None:
        a = SessionSnapshot.model_validate_json(_snapshot_json(whatHappened=["x"]))
        b = SessionSnapshot.model_validate_json(_snapshot_json(whatHappened=["y"]))
        assert a.fingerprint() == b.fingerprint()

    def test_recommendation_change_changes_fingerprint(self) -> None:
        a = SessionSnapshot.model_validate_json(_snapshot_json())
        b = SessionSnapshot.model_validate_json(_snapshot_json(recommendation="Roll back"))
        assert a.fingerprint() != b.fingerprint()


class TestStatusText:
    @pytest.mark.parametrize(
        ("flags", "expected"),
        [
            ({}, "In Progress"),
            ({"isStuck": True}, "Stuck"),
            ({"isFailed": True, "isStuck": True}, "Failed"),
            ({"isComplete": True, "isFailed": True}, "Complete"),
        ],
    )
    def test_status_text(self, flags: dict[str, bool], expected: str) -> None:
        snap = SessionSnapshot.model_validate_json(_snapshot_json(**flags))
        assert snap.status_text == expected


class TestRetryState:
    def test_record_failure_increments_by_one(self) -> None:
        state = RetryState(max_attempts=3)
        assert state.record_failure() == 1
        assert state.record_failure() == 2
        assert not state.exhausted

    def test_exhausted_at_max(self) -> None:
        state = RetryState(max_attempts=2)
        state.record_failure()
        state.record_failure()
        assert state.exhausted

    def test_reset(self) -> None:
        state = RetryState()
        state.record_failure()
        state.reset()
        assert state.attempt_count == 0
        assert state.max_attempts == 72


class TestPollState:
    def test_terminal_states(self) -> None:
        assert {s for s in PollState if s.is_terminal} == {
            PollState.COMPLETE,
            PollState.FAILED,
            PollState.TIMED_OUT,
        }
