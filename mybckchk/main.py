"""Entry point — `mybckchk` console script.

Picks one of three modes at startup: always available, always unavailable,
or actively probing the backend. Fatal startup errors exit with status 1
before any listener is bound.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from enum import Enum

import uvicorn
from fastapi import FastAPI
from rich.console import Console
from rich.panel import Panel

from mybckchk.api.server import create_app
from mybckchk.config import DEFAULT_CONFIG_FILE, Command, ProbeConfig, Settings, load_config, settings
from mybckchk.connector import MySQLConnector
from mybckchk.errors import ConfigError, ModeConflictError
from mybckchk.scheduler import ProbeScheduler
from mybckchk.state import BackendState

logger = logging.getLogger(__name__)

console = Console()


class Mode(str, Enum):
    ACTIVE = "active"
    FORCE_ENABLED = "force-enabled"
    FORCE_DISABLED = "force-disabled"


def select_mode(enable: bool, disable: bool) -> Mode:
    if enable and disable:
        raise ModeConflictError("-enable and -disable can't be used together")
    if enable:
        return Mode.FORCE_ENABLED
    if disable:
        return Mode.FORCE_DISABLED
    return Mode.ACTIVE


def build_app(
    mode: Mode,
    config: ProbeConfig,
    commands: Sequence[Command],
    proc_settings: Settings | None = None,
) -> FastAPI:
    """Wire state, connector and scheduler for the selected mode."""
    proc_settings = proc_settings or settings

    if mode is Mode.FORCE_ENABLED:
        logger.info("Always reporting available backend")
        app = create_app(BackendState(initial=True, frozen=True))
        app.state.connector = None
        return app

    if mode is Mode.FORCE_DISABLED:
        logger.info("Always reporting unavailable backend")
        app = create_app(BackendState(initial=False, frozen=True))
        app.state.connector = None
        return app

    state = BackendState(initial=False)
    connector = MySQLConnector(
        config,
        connect_timeout=proc_settings.connect_timeout,
        query_timeout=proc_settings.query_timeout,
    )
    scheduler = ProbeScheduler(
        connector=connector,
        commands=commands,
        state=state,
        interval=config.check_interval_seconds,
    )
    app = create_app(state, scheduler=scheduler)
    app.state.connector = connector
    return app


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mybckchk",
        description="MySQL backend checker behind an HTTP health check",
    )
    parser.add_argument("-cfg", "--cfg", default=DEFAULT_CONFIG_FILE, help="Configuration file")
    parser.add_argument("-debug", "--debug", action="store_true", help="Debug messages")
    parser.add_argument("-enable", "--enable", action="store_true", help="Return always enabled")
    parser.add_argument("-disable", "--disable", action="store_true", help="Return always disabled")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    """Parse flags, load config and serve the health check until shutdown."""
    args = parse_args(argv)

    level = "DEBUG" if args.debug else settings.log_level.upper()
    level_no = getattr(logging, level, logging.INFO)
    if not isinstance(level_no, int):
        level_no = logging.INFO
    # uvicorn only accepts the standard level names
    level = logging.getLevelName(level_no)
    logging.basicConfig(
        level=level_no,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    if args.debug:
        logger.info("Debug mode enabled")

    try:
        mode = select_mode(args.enable, args.disable)
    except ModeConflictError as e:
        logger.error("%s", e)
        sys.exit(1)

    try:
        config, commands = load_config(args.cfg)
    except ConfigError as e:
        logger.error("Can't load config file!")
        logger.critical("%s", e.detail)
        sys.exit(1)
    logger.info("Configuration loaded")

    app = build_app(mode, config, commands)
    connector: MySQLConnector | None = app.state.connector

    console.print(
        Panel.fit(
            f"[bold]MySQL backend checker[/bold]\n"
            f"Mode:     {mode.value}\n"
            f"Listen:   {settings.listen_host}:{config.listen}\n"
            f"Backend:  {connector.target if connector else '-'}\n"
            f"Commands: {len(commands)} every {config.check_interval}ms",
            title="mybckchk",
            border_style="green" if mode is Mode.ACTIVE else "yellow",
        )
    )

    try:
        uvicorn.run(
            app,
            host=settings.listen_host,
            port=config.listen,
            log_level=level.lower(),
        )
    finally:
        if connector is not None:
            connector.dispose()


if __name__ == "__main__":
    main()
