"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from mybckchk.config import Command
from mybckchk.errors import BackendConnectionError, QueryError


class FakeConnection:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeConnector:
    """In-memory stand-in for MySQLConnector.

    ``answers`` maps a query to the string it returns, or to an exception
    instance to raise. ``down`` makes every connect() fail.
    """

    def __init__(self, answers: dict[str, Any] | None = None) -> None:
        self.answers = answers or {}
        self.down = False
        self.ping_fails = False
        self.queries: list[str] = []
        self.connections: list[FakeConnection] = []

    def connect(self) -> FakeConnection:
        if self.down:
            raise BackendConnectionError("Can't connect to MySQL server")
        conn = FakeConnection()
        self.connections.append(conn)
        return conn

    def ping(self, conn: FakeConnection) -> None:
        if self.ping_fails:
            raise BackendConnectionError("MySQL server has gone away")

    def run_scalar(self, conn: FakeConnection, query: str) -> str:
        self.queries.append(query)
        answer = self.answers.get(query, QueryError(f"unknown query: {query}"))
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector({"SELECT 1": "1", "SELECT 0": "0"})


@pytest.fixture
def select_one() -> Command:
    return Command(name="alive", query="SELECT 1", expect="1")


@pytest.fixture
def write_config(tmp_path: Path):
    """Write a config file into tmp_path and return its path."""

    def _write(text: str, name: str = "mybckchk.cfg") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_connector():
    """Factory for FakeConnector with custom answers."""
    return FakeConnector
