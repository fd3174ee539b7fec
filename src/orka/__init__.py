"""Orka: master/slave orchestration for JSON-lines AI CLIs."""

__version__ = "0.1.0"
