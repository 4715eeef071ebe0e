"""Exception types raised by the orbital mechanics and transit engine."""

from __future__ import annotations

from pathlib import Path


class OrreryError(Exception):
    """Base class for all engine errors."""


class InputError(OrreryError, ValueError):
    """Raised when a request carries invalid endpoints, elements or construct data."""


class UnknownNodeError(InputError):
    """Raised when a node id is not present in the system snapshot."""

    def __init__(self, node_id: str, context: str = "system"):
        self.node_id = node_id
        self.context = context
        super().__init__(f"Unknown node '{node_id}' in {context}")


class ConfigurationError(OrreryError):
    """Raised when a rule pack cannot be read or does not validate."""

    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Invalid rule pack {self.path}: {reason}")
