"""JSONL session log for one orchestration run."""

from __future__ import annotations

import re
import threading
import time
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import IO

from orka.session.models import (
    EndReason,
    SessionEndEvent,
    SessionEvent,
    SessionStartEvent,
)

#: Project names end up in the log filename.
_SAFE_NAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


class SessionRecorder:
    """Appends every session event to ``<date>_<name>_<id>.jsonl``.

    Events are stamped with ``ts`` and ``seq`` under a lock and flushed as
    they are written. A disabled recorder (``recording.enabled: false``)
    opens no file, so components can record unconditionally. Completed
    master turns are counted from ``turn_end`` events for the closing
    ``session_end`` summary.
    """

    def __init__(
        self,
        name: str,
        config_hash: str,
        sessions_dir: Path | None = None,
        enabled: bool = True,
    ) -> None:
        if not _SAFE_NAME_RE.match(name):
            msg = (
                f"Invalid project name {name!r}: must contain only "
                "alphanumeric characters, hyphens, and underscores."
            )
            raise ValueError(msg)

        self.session_id = uuid.uuid4().hex[:12]
        self._lock = threading.Lock()
        self._seq = 0
        self._turns = 0
        self._closed = False
        self._started = time.monotonic()
        self._fh: IO[str] | None = None
        self._path: Path | None = None

        if enabled:
            self._open(name, config_hash, sessions_dir or Path("sessions"))

    def _open(self, name: str, config_hash: str, sessions_dir: Path) -> None:
        sessions_dir.mkdir(parents=True, exist_ok=True)
        date_str = datetime.now(tz=UTC).strftime("%Y-%m-%d")
        self._path = sessions_dir / f"{date_str}_{name}_{self.session_id}.jsonl"
        self._fh = self._path.open("a", encoding="utf-8")
        try:
            self.record(
                SessionStartEvent(
                    ts="",
                    seq=0,
                    session_id=self.session_id,
                    name=name,
                    config_hash=config_hash,
                )
            )
        except Exception:
            self._fh.close()
            raise

    @property
    def session_file(self) -> Path | None:
        """Log path, or ``None`` when recording is disabled."""
        return self._path

    @property
    def enabled(self) -> bool:
        return self._path is not None

    @property
    def turns(self) -> int:
        return self._turns

    def record(self, event: SessionEvent) -> None:
        """Stamp and append *event*; dropped once the recorder is closed."""
        with self._lock:
            if event.type == "turn_end":
                self._turns += 1
            if self._closed or self._fh is None:
                return
            event.seq = self._seq
            event.ts = _iso_now()
            self._seq += 1
            self._fh.write(event.model_dump_json(by_alias=True) + "\n")
            self._fh.flush()

    def end(self, reason: EndReason) -> None:
        """Write ``session_end`` and close. Later calls do nothing."""
        if self._closed:
            return
        self.record(
            SessionEndEvent(
                ts="",
                seq=0,
                reason=reason,
                duration_ms=int((time.monotonic() - self._started) * 1000),
                turns=self._turns,
            )
        )
        self.close()

    def close(self) -> None:
        """Close the log without a ``session_end`` event."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._fh is not None:
                self._fh.close()


def _iso_now() -> str:
    """Current UTC time as ISO 8601 with milliseconds."""
    return datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
