"""Pydantic v2 models for orka.yaml configuration."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from orka.constants import DEFAULT_NOISE_CAPACITY, DEFAULT_READINESS_TIMEOUT

_AGENT_NAME_RE = re.compile(r"^[a-z0-9_-]+$")


class MasterConfig(BaseModel):
    """How the master CLI is invoked."""

    model_config = ConfigDict(extra="forbid")

    command: str = Field(default="claude", description="Master CLI executable")
    args: list[str] = Field(
        default_factory=lambda: ["-p", "--output-format", "stream-json", "--verbose"],
        description="Arguments placed right after the executable",
    )
    resume_flag: str = Field(
        default="--resume",
        description="Flag that carries a prior session identifier",
    )
    model: str | None = Field(
        default=None,
        description="Model for new sessions (omitted when resuming)",
    )
    model_flag: str = Field(default="--model", description="Model selection flag")
    max_turns: int = Field(
        default=0,
        ge=0,
        description="Iteration cap per turn (0 means no cap option)",
    )
    max_turns_flag: str = Field(default="--max-turns", description="Cap flag")
    tools_flag: str | None = Field(
        default=None,
        description="Flag used to advertise orchestration tools as JSON",
    )
    noise_capacity: int = Field(
        default=DEFAULT_NOISE_CAPACITY,
        ge=1,
        description="Non-protocol lines kept for failure diagnostics",
    )

    @field_validator("command")
    @classmethod
    def _non_empty_command(cls, value: str) -> str:
        if not value.strip():
            msg = "Master command must not be empty"
            raise ValueError(msg)
        return value


class SlaveAgentConfig(BaseModel):
    """A one-shot slave CLI; the instruction is appended as the last argument."""

    model_config = ConfigDict(extra="forbid")

    command: list[str] = Field(
        min_length=1,
        description="Executable and fixed arguments",
    )
    description: str | None = Field(
        default=None,
        description="What the master should use this agent for",
    )


def default_slaves() -> dict[str, SlaveAgentConfig]:
    return {
        "codex": SlaveAgentConfig(
            command=["codex", "exec", "--json"],
            description=(
                "Coding tasks: implementation, bug fixes, and code generation."
            ),
        ),
        "gemini": SlaveAgentConfig(
            command=["gemini", "-p"],
            description="Alternative agent for a different approach to a task.",
        ),
    }


class TerminalConfig(BaseModel):
    """Settings for the terminals processes run in."""

    model_config = ConfigDict(extra="forbid")

    readiness_timeout: float = Field(
        default=DEFAULT_READINESS_TIMEOUT,
        gt=0,
        description="Seconds to wait for a terminal to accept commands",
    )
    shell: str | None = Field(
        default=None,
        description="Shell used to run commands (defaults to $SHELL)",
    )


class RecordingConfig(BaseModel):
    """Session log settings."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(default=True, description="Write a JSONL session log")
    directory: str = Field(default="sessions", description="Session log directory")


class OrkaConfig(BaseModel):
    """Top-level orka.yaml configuration."""

    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="1", description="Config schema version")
    name: str = Field(default="orka", description="Project name")
    project_path: str | None = Field(
        default=None,
        description="Directory agents run in (defaults to the config's directory)",
    )
    master: MasterConfig = Field(
        default_factory=MasterConfig, description="Master CLI settings"
    )
    slaves: dict[str, SlaveAgentConfig] = Field(
        default_factory=default_slaves,
        description="Slave agents keyed by identity",
    )
    terminal: TerminalConfig = Field(
        default_factory=TerminalConfig, description="Terminal settings"
    )
    recording: RecordingConfig = Field(
        default_factory=RecordingConfig, description="Session log settings"
    )

    @model_validator(mode="after")
    def _validate_slave_names(self) -> OrkaConfig:
        bad = sorted(n for n in self.slaves if not _AGENT_NAME_RE.match(n))
        if bad:
            joined = ", ".join(f"'{n}'" for n in bad)
            msg = (
                f"Invalid slave agent names: {joined} — use lowercase letters, "
                "digits, hyphens, and underscores"
            )
            raise ValueError(msg)
        return self
