"""Check evaluator — runs every command in order and ANDs the outcomes.

A command passes only when its own query returned a value equal to
``command.expect``. Connection and query errors fail the command and the
cycle moves on; nothing here raises to the caller.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from mybckchk.config import Command
from mybckchk.errors import BackendConnectionError, QueryError

logger = logging.getLogger(__name__)


class Connector(Protocol):
    def connect(self) -> Any: ...

    def ping(self, conn: Any) -> None: ...

    def run_scalar(self, conn: Any, query: str) -> str: ...


# ── Models ───────────────────────────────────────────────────────────────────


@dataclass
class CommandResult:
    """Outcome of a single command within a cycle."""

    name: str
    passed: bool
    value: str | None = None
    expect: str = ""
    error: str | None = None
    latency_ms: float = 0.0


@dataclass
class CycleResult:
    """Outcome of one full pass over the configured commands."""

    available: bool
    results: list[CommandResult] = field(default_factory=list)
    timestamp: str = ""

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    @property
    def failures(self) -> list[str]:
        return [r.name for r in self.results if not r.passed]


# ── Evaluation ───────────────────────────────────────────────────────────────


def run_command(connector: Connector, command: Command) -> CommandResult:
    """Connect, ping, run the scalar query and compare it with the expectation."""
    t0 = time.perf_counter()

    def _done(passed: bool, value: str | None = None, error: str | None = None) -> CommandResult:
        return CommandResult(
            name=command.name, passed=passed, value=value, expect=command.expect,
            error=error, latency_ms=round((time.perf_counter() - t0) * 1000, 1),
        )

    logger.debug("[%s] %s", command.name, command.query)

    try:
        conn = connector.connect()
    except BackendConnectionError as e:
        logger.error("[%s] connection failed: %s", command.name, e)
        return _done(False, error=str(e))

    try:
        # A failed ping is only reported; the query decides the outcome
        try:
            connector.ping(conn)
        except BackendConnectionError as e:
            logger.error("[%s] ping failed: %s", command.name, e)

        try:
            value = connector.run_scalar(conn, command.query)
        except QueryError as e:
            logger.error("[%s] query failed: %s", command.name, e)
            return _done(False, error=str(e))
    finally:
        conn.close()

    passed = value == command.expect
    logger.debug("[%s] got %r, expected %r", command.name, value, command.expect)
    return _done(passed, value=value)


def evaluate_cycle(connector: Connector, commands: Sequence[Command]) -> CycleResult:
    """Run all commands sequentially; no early exit on the first failure."""
    logger.debug("Running checks")
    results: list[CommandResult] = []

    for command in commands:
        try:
            results.append(run_command(connector, command))
        except Exception as e:
            logger.exception("[%s] unexpected check error", command.name)
            results.append(
                CommandResult(
                    name=command.name, passed=False, expect=command.expect,
                    error=f"{type(e).__name__}: {e}",
                )
            )

    return CycleResult(available=all(r.passed for r in results), results=results)


def evaluate(connector: Connector, commands: Sequence[Command]) -> bool:
    """True when every command passed (vacuously true for no commands)."""
    return evaluate_cycle(connector, commands).available
