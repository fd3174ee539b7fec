"""Configuration models and parser for orka.yaml."""

from orka.config.models import (
    MasterConfig,
    OrkaConfig,
    RecordingConfig,
    SlaveAgentConfig,
    TerminalConfig,
)
from orka.config.parser import ConfigError, load_config

__all__ = [
    "ConfigError",
    "MasterConfig",
    "OrkaConfig",
    "RecordingConfig",
    "SlaveAgentConfig",
    "TerminalConfig",
    "load_config",
]
