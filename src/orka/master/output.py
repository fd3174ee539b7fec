"""Per-turn text output policy for the master session."""

from __future__ import annotations

from collections.abc import Callable


class TurnOutput:
    """Chooses one source of truth for a turn's text.

    The consolidated ``result`` message wins: when it arrives it is emitted
    and any buffered incremental text is dropped, so the same words are
    never shown twice. If the turn ends without a result, buffered
    assistant messages are emitted, and failing those, the joined deltas.
    """

    def __init__(self, emit: Callable[[str], None]) -> None:
        self._emit = emit
        self._deltas: list[str] = []
        self._assistant: list[str] = []
        self._result_seen = False

    @property
    def result_seen(self) -> bool:
        return self._result_seen

    def add_delta(self, text: str) -> None:
        if text and not self._result_seen:
            self._deltas.append(text)

    def add_assistant(self, text: str) -> None:
        if text and not self._result_seen:
            self._assistant.append(text)

    def add_result(self, text: str) -> None:
        self._result_seen = True
        self._deltas.clear()
        self._assistant.clear()
        if text:
            self._emit(text)

    def emit(self, text: str) -> None:
        """Emit text that is not part of the delta/result family."""
        if text:
            self._emit(text)

    def finish(self) -> None:
        """Flush fallback text if no result was observed."""
        if not self._result_seen:
            text = "\n\n".join(self._assistant) or "".join(self._deltas)
            if text:
                self._emit(text)
        self._deltas.clear()
        self._assistant.clear()
