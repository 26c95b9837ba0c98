"""MySQL connector — connect / ping / scalar query on top of SQLAlchemy.

Every connect() opens a brand-new connection (NullPool), so one command's
broken connection can never leak into the next command's check.
All driver failures surface as BackendConnectionError or QueryError.
"""

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.pool import NullPool

from mybckchk.config import ProbeConfig
from mybckchk.errors import BackendConnectionError, QueryError

logger = logging.getLogger(__name__)

DRIVER = "mysql+pymysql"


def build_url(config: ProbeConfig) -> URL:
    """Connection target: unix socket when no host is set, TCP otherwise."""
    if config.uses_local_socket:
        return URL.create(
            DRIVER,
            username=config.mysql_user or None,
            password=config.mysql_password or None,
            database=config.mysql_db or None,
            query={"unix_socket": config.mysql_socket},
        )
    return URL.create(
        DRIVER,
        username=config.mysql_user or None,
        password=config.mysql_password or None,
        host=config.mysql_host,
        port=config.mysql_port,
        database=config.mysql_db or None,
    )


def scalar_to_str(value: object) -> str:
    """Render a scalar column value the way it would read as text."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _describe(exc: Exception) -> str:
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return f"{type(exc.orig).__name__}: {exc.orig}"
    return f"{type(exc).__name__}: {exc}"


class MySQLConnector:
    """Opens short-lived connections to the backend under test."""

    def __init__(
        self,
        config: ProbeConfig,
        connect_timeout: int = 5,
        query_timeout: int = 10,
    ) -> None:
        self.config = config
        self.url = build_url(config)
        self._engine: Engine = create_engine(
            self.url,
            poolclass=NullPool,
            connect_args={
                "connect_timeout": connect_timeout,
                "read_timeout": query_timeout,
                "write_timeout": query_timeout,
            },
        )
        logger.debug("Backend target: %s", self.target)

    @property
    def target(self) -> str:
        """Connection URL with the password masked, safe for logs."""
        return self.url.render_as_string(hide_password=True)

    def connect(self) -> Connection:
        try:
            return self._engine.connect()
        except (SQLAlchemyError, OSError) as e:
            raise BackendConnectionError(_describe(e)) from e

    def ping(self, conn: Connection) -> None:
        try:
            self._engine.dialect.do_ping(conn.connection.dbapi_connection)
        except Exception as e:
            raise BackendConnectionError(_describe(e)) from e

    def run_scalar(self, conn: Connection, query: str) -> str:
        """Run ``query`` and return its first column of the first row as text.

        No rows and SQL NULL are errors: neither has a string value.
        """
        try:
            # no_parameters keeps literal % signs away from the driver's formatter
            result = conn.execution_options(no_parameters=True).exec_driver_sql(query)
            row = result.first()
        except SQLAlchemyError as e:
            raise QueryError(_describe(e)) from e

        if row is None:
            raise QueryError("query returned no rows")
        if row[0] is None:
            raise QueryError("query returned NULL")
        return scalar_to_str(row[0])

    def dispose(self) -> None:
        self._engine.dispose()
