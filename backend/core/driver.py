"""
Database driver — one shared SQLAlchemy connection per connector.
Opened lazily, reused while the parameters match and the link is open,
closed and reopened otherwise.
"""
import logging
from typing import Any, Optional
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine, Result
from sqlalchemy.exc import SQLAlchemyError

from core.dialects import Dialect, get_dialect
from core.errors import ConnectionOpenError
from models.connection import ConnectionParameters

logger = logging.getLogger(__name__)


class SqlAlchemyDriver:
    def __init__(self):
        self._engine: Optional[Engine] = None
        self._conn: Optional[Connection] = None
        self._params: Optional[ConnectionParameters] = None
        self.dialect: Optional[Dialect] = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None and not self._conn.closed and not self._conn.invalidated

    @property
    def parameters(self) -> Optional[ConnectionParameters]:
        return self._params

    def open(self, params: ConnectionParameters) -> bool:
        """Make sure a connection for ``params`` is open. Returns True if one was (re)opened."""
        if self.is_open and params == self._params:
            return False
        if self._conn is not None or self._engine is not None:
            logger.info("Reopening connection (parameters changed or link closed)")
            self.close()

        engine = None
        try:
            engine = create_engine(params.get_sqlalchemy_url(), **params.get_engine_kwargs())
            if params.db_type == "mssql":
                _apply_query_timeout(engine, params.query_timeout)
            conn = engine.connect()
            conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, ValueError, ImportError) as e:
            if engine is not None:
                engine.dispose()
            raise ConnectionOpenError(f"Could not connect to {params.describe()}: {e}") from e

        self._engine, self._conn, self._params = engine, conn, params
        self.dialect = get_dialect(params.db_type)
        logger.info("Connected to %s", params.describe())
        return True

    def close(self) -> None:
        conn, engine = self._conn, self._engine
        self._conn = self._engine = self._params = None
        self.dialect = None
        try:
            if conn is not None:
                conn.close()
        finally:
            if engine is not None:
                engine.dispose()

    def _connection(self) -> Connection:
        if not self.is_open:
            raise ConnectionOpenError("No open connection")
        return self._conn

    def fetch_all(self, sql: str, params: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        result = self._connection().execute(text(sql), params or {})
        return [dict(row) for row in result.mappings()]

    def execute(self, sql: str, params: Optional[dict[str, Any]] = None, stream: bool = False) -> Result:
        conn = self._connection()
        options = {"stream_results": True} if stream and self.dialect.stream_results else {}
        return conn.execute(text(sql), params or {}, execution_options=options)


def _apply_query_timeout(engine: Engine, seconds: int) -> None:
    @event.listens_for(engine, "connect")
    def _set_timeout(dbapi_conn, _record):
        dbapi_conn.timeout = seconds
