"""Probe scheduler — runs one evaluation cycle per check interval.

Cycles execute in a single-worker thread pool so the event loop serving
HTTP never waits on the database, and two cycles can never overlap.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from mybckchk.config import Command
from mybckchk.evaluator import Connector, CycleResult, evaluate_cycle
from mybckchk.state import BackendState

logger = logging.getLogger(__name__)


class ProbeScheduler:
    """Fires the evaluator on a fixed period and publishes each result."""

    def __init__(
        self,
        connector: Connector,
        commands: Sequence[Command],
        state: BackendState,
        interval: float,
    ) -> None:
        self.connector = connector
        self.commands = list(commands)
        self.state = state
        self.interval = interval
        self._executor: ThreadPoolExecutor | None = None
        self._task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background probe loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._probe_loop(), name="backend-probe")
        logger.info(
            "Probe scheduler started: %d commands every %.3fs",
            len(self.commands), self.interval,
        )

    async def stop(self) -> None:
        """Stop the loop; a cycle already in its worker thread runs to completion."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._executor is not None:
            # Let an in-flight cycle finish so a restart never overlaps it
            executor, self._executor = self._executor, None
            await asyncio.get_running_loop().run_in_executor(None, executor.shutdown, True)
        logger.info("Probe scheduler stopped")

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="probe")
        return self._executor

    async def run_once(self) -> CycleResult:
        """Run a single cycle in the worker thread and publish it."""
        loop = asyncio.get_running_loop()
        cycle = await loop.run_in_executor(
            self._get_executor(), evaluate_cycle, self.connector, self.commands,
        )
        self.state.publish(cycle)
        return cycle

    async def _probe_loop(self) -> None:
        """Start-to-start fixed period; overruns drop the missed ticks."""
        loop = asyncio.get_running_loop()
        while self._running:
            started = loop.time()
            try:
                cycle = await self.run_once()
                logger.debug(
                    "Cycle done: available=%s failures=%s (%.0fms)",
                    cycle.available, cycle.failures, (loop.time() - started) * 1000,
                )
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Probe cycle error")

            elapsed = loop.time() - started
            if elapsed > self.interval:
                logger.debug("Cycle overran the %.3fs interval by %.3fs", self.interval, elapsed - self.interval)
            try:
                await asyncio.sleep(max(self.interval - elapsed, 0))
            except asyncio.CancelledError:
                break
