"""Tool call, tool result, and slave task models."""

from __future__ import annotations

import time
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

TaskStatus = Literal["pending", "running", "completed", "error"]

_FINAL_STATUSES = frozenset({"completed", "error"})


class ToolCall(BaseModel):
    """A tool request issued by the master during a turn."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(description="Opaque id correlating the call to its result")
    name: str = Field(description="Tool name")
    arguments: Any = Field(default_factory=dict, description="Tool input")

    def argument(self, key: str) -> Any:
        """Look up one argument, tolerating non-dict inputs."""
        if isinstance(self.arguments, dict):
            return self.arguments.get(key)
        return None


class ToolResult(BaseModel):
    """Payload returned to the master for every tool call."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    agent: str | None = None
    task_id: str | None = None
    output: str | None = None
    files_modified: list[str] | None = None
    execution_time: float | None = Field(
        default=None, description="Elapsed seconds"
    )
    error: str | None = None

    def to_wire(self) -> str:
        """JSON with unset fields omitted."""
        return self.model_dump_json(exclude_none=True)


class SlaveTask(BaseModel):
    """One slave execution tracked by the registry.

    Status only moves forward; :meth:`complete` and :meth:`fail` refuse to
    touch a task that already finished.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str
    agent: str
    instruction: str
    context: str | None = None
    status: TaskStatus = "pending"
    result: ToolResult | None = None
    error: str | None = None
    start_time: float = Field(default_factory=time.time)
    end_time: float | None = None

    @property
    def finished(self) -> bool:
        return self.status in _FINAL_STATUSES

    @property
    def duration(self) -> float | None:
        """Seconds between start and end, or ``None`` while running."""
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    def start(self) -> None:
        if self.status != "pending":
            msg = f"Task {self.id} cannot start from status '{self.status}'"
            raise RuntimeError(msg)
        self.status = "running"

    def complete(self, result: ToolResult) -> None:
        self._ensure_running()
        self.result = result
        self.end_time = time.time()
        self.status = "completed"

    def fail(self, error: str) -> None:
        self._ensure_running()
        self.error = error
        self.end_time = time.time()
        self.status = "error"

    def _ensure_running(self) -> None:
        if self.status != "running":
            msg = f"Task {self.id} is '{self.status}', not running"
            raise RuntimeError(msg)
