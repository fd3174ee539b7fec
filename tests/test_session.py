"""Tests for session event models and the JSONL recorder."""

from __future__ import annotations

import json
import re
import threading
from pathlib import Path
from typing import Any

import pytest
from pydantic import TypeAdapter

from orka.session.models import (
    ErrorEvent,
    SessionEvent,
    SessionObservedEvent,
    SlaveDoneEvent,
    StatusEvent,
    ToolCallEvent,
    TurnEndEvent,
    TurnStartEvent,
)
from orka.session.recorder import SessionRecorder

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_EVENT_ADAPTER: TypeAdapter[SessionEvent] = TypeAdapter(SessionEvent)


def _base(seq: int = 0) -> dict[str, Any]:
    """Return the common envelope fields."""
    return {"ts": "2026-02-14T12:00:00.000Z", "seq": seq}


def _lines(path: Path) -> list[dict[str, Any]]:
    return [json.loads(line) for line in path.read_text().splitlines()]


# ===================================================================
# Event model tests
# ===================================================================


class TestEventModels:
    def test_turn_start_serializes(self) -> None:
        evt = TurnStartEvent(
            **_base(),
            project_path="/work",
            command_line="claude -p hi",
        )
        data = json.loads(evt.model_dump_json(by_alias=True))
        assert data["type"] == "turn_start"
        assert data["resume_session_id"] is None

    def test_discriminated_union(self) -> None:
        raw = {**_base(), "type": "session_observed", "cli_session_id": "s-1"}
        evt = _EVENT_ADAPTER.validate_python(raw)
        assert isinstance(evt, SessionObservedEvent)

    def test_tool_call_args_any(self) -> None:
        raw = {**_base(), "type": "tool_call", "call_id": "c", "tool": "t", "args": [1]}
        evt = _EVENT_ADAPTER.validate_python(raw)
        assert isinstance(evt, ToolCallEvent)
        assert evt.args == [1]

    def test_slave_done_status_restricted(self) -> None:
        with pytest.raises(ValueError):
            SlaveDoneEvent(
                **_base(), task_id="t", agent="a", status="pending", duration_ms=0
            )

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValueError):
            StatusEvent(**_base(), agent="a", status="ok", extra="nope")


# ===================================================================
# Recorder tests
# ===================================================================


class TestRecorder:
    def test_file_created_with_start_event(self, tmp_path: Path) -> None:
        rec = SessionRecorder("proj", "hash1", sessions_dir=tmp_path)
        try:
            assert rec.session_file is not None
            assert re.fullmatch(
                r"\d{4}-\d{2}-\d{2}_proj_[0-9a-f]{12}\.jsonl", rec.session_file.name
            )
            events = _lines(rec.session_file)
            assert events[0]["type"] == "session_start"
            assert events[0]["session_id"] == rec.session_id
            assert events[0]["config_hash"] == "hash1"
        finally:
            rec.close()

    def test_seq_and_ts_stamped(self, tmp_path: Path) -> None:
        rec = SessionRecorder("proj", "h", sessions_dir=tmp_path)
        rec.record(StatusEvent(ts="", seq=0, agent="master", status="init"))
        rec.record(StatusEvent(ts="", seq=0, agent="master", status="busy"))
        rec.close()

        events = _lines(rec.session_file)
        assert [e["seq"] for e in events] == [0, 1, 2]
        assert all(e["ts"].endswith("Z") for e in events)

    def test_end_counts_turns(self, tmp_path: Path) -> None:
        rec = SessionRecorder("proj", "h", sessions_dir=tmp_path)
        for code in (0, 1):
            rec.record(TurnEndEvent(ts="", seq=0, exit_code=code, duration_ms=5))
        rec.end("complete")

        end = _lines(rec.session_file)[-1]
        assert end["type"] == "session_end"
        assert end["reason"] == "complete"
        assert end["turns"] == 2
        assert rec.turns == 2

    def test_end_is_idempotent(self, tmp_path: Path) -> None:
        rec = SessionRecorder("proj", "h", sessions_dir=tmp_path)
        rec.end("ctrl_c")
        rec.end("complete")
        ends = [e for e in _lines(rec.session_file) if e["type"] == "session_end"]
        assert len(ends) == 1

    def test_events_after_close_dropped(self, tmp_path: Path) -> None:
        rec = SessionRecorder("proj", "h", sessions_dir=tmp_path)
        rec.close()
        rec.record(ErrorEvent(ts="", seq=0, error="late", retrying=False))
        assert len(_lines(rec.session_file)) == 1

    def test_disabled_writes_nothing(self, tmp_path: Path) -> None:
        sessions = tmp_path / "sessions"
        rec = SessionRecorder("proj", "h", sessions_dir=sessions, enabled=False)
        rec.record(StatusEvent(ts="", seq=0, agent="a", status="s"))
        rec.record(TurnEndEvent(ts="", seq=0, exit_code=0, duration_ms=1))
        rec.end("complete")
        assert rec.session_file is None
        assert rec.enabled is False
        assert not sessions.exists()
        assert rec.turns == 1

    def test_invalid_name(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Invalid project name"):
            SessionRecorder("../escape", "h", sessions_dir=tmp_path)

    def test_thread_safe_writes(self, tmp_path: Path) -> None:
        rec = SessionRecorder("proj", "h", sessions_dir=tmp_path)

        def _writer(n: int) -> None:
            for i in range(50):
                rec.record(StatusEvent(ts="", seq=0, agent=f"w{n}", status=str(i)))

        threads = [threading.Thread(target=_writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        rec.close()

        seqs = [e["seq"] for e in _lines(rec.session_file)]
        assert seqs == list(range(201))
