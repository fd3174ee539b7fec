"""Stream sanitizer — strips terminal noise and reassembles logical lines."""

from __future__ import annotations

import re
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator

#: Shell-integration OSC 633 markers: ESC ] 633 ; ... (BEL | ESC \).
_OSC_SHELL_INTEGRATION = re.compile(r"\x1b\]633;.*?(?:\x07|\x1b\\)", re.DOTALL)

#: Any other OSC sequence with the same terminators.
_OSC_GENERIC = re.compile(r"\x1b\].*?(?:\x07|\x1b\\)", re.DOTALL)

#: CSI sequences (cursor movement, SGR colors): ESC [ params final-byte.
_CSI_ANY = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")

#: An OSC still open at end of line.
_OSC_UNTERMINATED = re.compile(r"\x1b\][^\n]*")

#: A CSI cut off before its final byte.
_CSI_TRUNCATED = re.compile(r"\x1b\[[0-?]*[ -/]*")

#: Any other escape, such as the ESC ( B charset designation or a lone ESC.
_ESC_OTHER = re.compile(r"\x1b[ -/]*[0-~]?")


def strip_terminal_noise(text: str) -> str:
    """Remove control sequences and collapse carriage-return redraws.

    Within each newline-delimited line, the segments between bare ``\\r``
    characters are earlier renderings of the same terminal row, so only
    the last non-blank segment survives (``"abc\\rdef"`` becomes ``"def"``).
    Line structure, including a trailing newline, is preserved.
    """
    if not text:
        return text

    cleaned = _OSC_SHELL_INTEGRATION.sub("", text)
    cleaned = _OSC_GENERIC.sub("", cleaned)
    cleaned = _CSI_ANY.sub("", cleaned)
    cleaned = _OSC_UNTERMINATED.sub("", cleaned)
    cleaned = _CSI_TRUNCATED.sub("", cleaned)
    cleaned = _ESC_OTHER.sub("", cleaned)
    cleaned = cleaned.replace("\r\n", "\n")

    return "\n".join(_collapse_redraws(line) for line in cleaned.split("\n"))


def _collapse_redraws(line: str) -> str:
    if "\r" not in line:
        return line
    segments = [s for s in line.split("\r") if s.strip()]
    return segments[-1] if segments else ""


class LineAssembler:
    """Reassembles arbitrarily chunked terminal output into clean lines.

    Raw text is buffered until a newline arrives; only complete raw lines
    are sanitized, so escape sequences and ``\\r\\n`` pairs split across
    chunk boundaries are handled the same as if they arrived whole.
    """

    def __init__(self) -> None:
        self._pending = ""

    @property
    def pending(self) -> str:
        """The unterminated raw tail carried over to the next chunk."""
        return self._pending

    def feed(self, chunk: str) -> list[str]:
        """Add *chunk* and return every line it completes."""
        if not chunk:
            return []
        self._pending += chunk
        *complete, self._pending = self._pending.split("\n")
        lines: list[str] = []
        for raw in complete:
            lines.extend(_clean_lines(raw))
        return lines

    def flush(self) -> list[str]:
        """Return the pending tail as final line(s) and clear it."""
        tail, self._pending = self._pending, ""
        return _clean_lines(tail)


def _clean_lines(raw: str) -> list[str]:
    return [s.strip() for s in strip_terminal_noise(raw).split("\n") if s.strip()]


def iter_lines(chunks: Iterable[str]) -> Iterator[str]:
    """Yield clean lines from a finite sequence of raw chunks."""
    assembler = LineAssembler()
    for chunk in chunks:
        yield from assembler.feed(chunk)
    yield from assembler.flush()


async def aiter_lines(chunks: AsyncIterable[str]) -> AsyncIterator[str]:
    """Yield clean lines from an async stream of raw chunks."""
    assembler = LineAssembler()
    async for chunk in chunks:
        for line in assembler.feed(chunk):
            yield line
    for line in assembler.flush():
        yield line
