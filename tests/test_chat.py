"""Tests for the ``orka chat`` REPL: slash commands and the input loop."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from orka.commands.chat import _handle_command, _run_chat
from orka.config.models import OrkaConfig
from orka.master.session import TurnOutcome
from orka.terminal.base import ReadinessTimeoutError

# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _mock_orchestrator(tmp_path: Path) -> MagicMock:
    orchestrator = MagicMock()
    orchestrator.project_path = tmp_path
    orchestrator.session_id = "s-1"
    orchestrator.handle_prompt = AsyncMock(
        return_value=TurnOutcome(exit_code=0, session_id="s-1")
    )
    orchestrator.abort = AsyncMock(return_value=False)
    orchestrator.close = AsyncMock()
    orchestrator.format_status.return_value = "No slave tasks have been executed yet."
    orchestrator.format_task.return_value = "Task x not found"
    return orchestrator


def _session_events(tmp_path: Path) -> list[dict]:
    (log,) = (tmp_path / "sessions").glob("*.jsonl")
    return [json.loads(line) for line in log.read_text().splitlines()]


# ------------------------------------------------------------------ #
# Slash commands
# ------------------------------------------------------------------ #


class TestHandleCommand:
    @pytest.mark.parametrize("cmd", ["/exit", "/quit", "/done", "/EXIT"])
    async def test_exit_commands(self, cmd: str, tmp_path: Path) -> None:
        assert await _handle_command(cmd, _mock_orchestrator(tmp_path)) is True

    async def test_help(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        assert await _handle_command("/help", _mock_orchestrator(tmp_path)) is False
        assert "/status" in capsys.readouterr().out

    async def test_status(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        orchestrator = _mock_orchestrator(tmp_path)
        await _handle_command("/status", orchestrator)
        assert "No slave tasks" in capsys.readouterr().out

    async def test_task(self, tmp_path: Path) -> None:
        orchestrator = _mock_orchestrator(tmp_path)
        await _handle_command("/task task_1_1", orchestrator)
        orchestrator.format_task.assert_called_once_with("task_1_1")

    async def test_task_usage(
        self, tmp_path: Path, capsys: pytest.CaptureFixture
    ) -> None:
        await _handle_command("/task", _mock_orchestrator(tmp_path))
        assert "Usage: /task <id>" in capsys.readouterr().out

    async def test_session(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        await _handle_command("/session", _mock_orchestrator(tmp_path))
        assert "s-1" in capsys.readouterr().out

    async def test_abort_when_idle(
        self, tmp_path: Path, capsys: pytest.CaptureFixture
    ) -> None:
        orchestrator = _mock_orchestrator(tmp_path)
        await _handle_command("/abort", orchestrator)
        orchestrator.abort.assert_awaited_once()
        assert "No turn is running." in capsys.readouterr().out

    async def test_unknown(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        assert await _handle_command("/bogus", _mock_orchestrator(tmp_path)) is False
        assert "Unknown command: /bogus" in capsys.readouterr().out


# ------------------------------------------------------------------ #
# Input loop
# ------------------------------------------------------------------ #


class TestRunChat:
    async def test_prompts_then_exit(self, tmp_path: Path) -> None:
        orchestrator = _mock_orchestrator(tmp_path)
        config = OrkaConfig(project_path=str(tmp_path))
        inputs = ["hello", "", "/status", "second", "/exit"]

        with (
            patch("orka.commands.chat.Orchestrator", return_value=orchestrator),
            patch("orka.commands.chat._read_input", side_effect=inputs),
        ):
            await _run_chat(config, session_id=None)

        prompts = [c.args[0] for c in orchestrator.handle_prompt.await_args_list]
        assert prompts == ["hello", "second"]
        orchestrator.close.assert_awaited_once()
        end = _session_events(tmp_path)[-1]
        assert end["type"] == "session_end"
        assert end["reason"] == "user_shutdown"

    async def test_eof_ends_chat(self, tmp_path: Path) -> None:
        orchestrator = _mock_orchestrator(tmp_path)
        config = OrkaConfig(project_path=str(tmp_path))

        with (
            patch("orka.commands.chat.Orchestrator", return_value=orchestrator),
            patch("orka.commands.chat._read_input", side_effect=EOFError),
        ):
            await _run_chat(config, session_id="resume-me")

        orchestrator.handle_prompt.assert_not_awaited()
        orchestrator.close.assert_awaited_once()

    async def test_readiness_timeout_keeps_chat_alive(self, tmp_path: Path) -> None:
        orchestrator = _mock_orchestrator(tmp_path)
        orchestrator.handle_prompt.side_effect = [
            ReadinessTimeoutError("slow"),
            TurnOutcome(exit_code=0, session_id="s-1"),
        ]
        config = OrkaConfig(project_path=str(tmp_path))

        with (
            patch("orka.commands.chat.Orchestrator", return_value=orchestrator),
            patch("orka.commands.chat._read_input", side_effect=["a", "b", EOFError]),
        ):
            await _run_chat(config, session_id=None)

        assert orchestrator.handle_prompt.await_count == 2
