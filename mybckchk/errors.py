"""Exception types shared across the probe.

ConfigError and ModeConflictError are fatal at startup.
BackendConnectionError and QueryError never leave the evaluator: they are
logged and folded into a failed command.
"""

from __future__ import annotations


class ProbeError(Exception):
    """Base class for all probe errors."""


class ConfigError(ProbeError):
    """Raised when the configuration file is missing or unreadable."""

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Can't load config file {path}: {detail}")


class ModeConflictError(ProbeError):
    """Raised when force-enable and force-disable are both requested."""


class BackendConnectionError(ProbeError):
    """Raised when the backend can't be reached or pinged."""


class QueryError(ProbeError):
    """Raised when a check query fails or returns no usable scalar."""
