"""Backend state — the one boolean shared by the probe loop and HTTP handlers.

The probe loop is the only writer; any number of request handlers read.
Every access goes through a lock that is never held across I/O, so readers
always see the last completed cycle and never a cycle still in progress.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Any

from mybckchk.evaluator import CycleResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackendStatus:
    """Richer view of the published state for logs and diagnostics."""

    available: bool
    last_check: str | None = None
    failures: tuple[str, ...] = field(default_factory=tuple)
    cycles: int = 0
    last_transition: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "available": self.available,
            "last_check": self.last_check,
            "failures": list(self.failures),
            "cycles": self.cycles,
            "last_transition": self.last_transition,
        }


class BackendState:
    """Thread-safe container for the published availability flag.

    ``frozen=True`` pins the value for the static force-enable/disable modes.
    """

    def __init__(self, initial: bool = False, frozen: bool = False) -> None:
        self._lock = threading.Lock()
        self._status = BackendStatus(available=initial)
        self.frozen = frozen

    def read(self) -> bool:
        with self._lock:
            return self._status.available

    def snapshot(self) -> BackendStatus:
        with self._lock:
            return self._status

    def write(self, available: bool) -> None:
        self.swap_and_get_previous(available)

    def swap_and_get_previous(self, available: bool) -> bool:
        """Store ``available`` and return the value it replaced, atomically."""
        self._check_writable()
        with self._lock:
            previous = self._status.available
            self._status = replace(self._status, available=available)
        return previous

    def publish(self, cycle: CycleResult) -> bool:
        """Publish a completed cycle; logs once per state change.

        Returns True when the state changed.
        """
        self._check_writable()
        with self._lock:
            previous = self._status.available
            changed = previous != cycle.available
            self._status = BackendStatus(
                available=cycle.available,
                last_check=cycle.timestamp,
                failures=tuple(cycle.failures),
                cycles=self._status.cycles + 1,
                last_transition=cycle.timestamp if changed else self._status.last_transition,
            )

        if changed:
            if cycle.available:
                logger.info("Backend state changed: Backend enabled")
            else:
                logger.warning(
                    "Backend state changed: Backend disabled (failing: %s)",
                    ", ".join(cycle.failures) or "none",
                )
        return changed

    def _check_writable(self) -> None:
        if self.frozen:
            raise RuntimeError("Backend state is pinned by a static mode")
