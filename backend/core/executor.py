"""
Execution adapter — runs a synthesized statement on the shared connection.
Reads come back as a lazy RowStream; writes are drained into a list.
"""
import logging
import re
import threading
from collections import deque
from typing import Any, Iterator, Optional, Union
from sqlalchemy.engine import Result
from sqlalchemy.exc import SQLAlchemyError

from config import settings
from core.binder import SynthesizedStatement, deparameterize
from core.errors import ExecutionError, StreamConsumedError
from models.resource import Operation

logger = logging.getLogger(__name__)

# Same shape SQLAlchemy's text() treats as a bind parameter.
_BIND_RE = re.compile(r"(?<![:\w\\]):(\w+)(?!:)")


def prepare_sql(sql: str, names: set[str]) -> str:
    """Escape ``:word`` sequences that are not our own parameter tokens.

    Raw caller predicates may contain colons (``'10:30'``, ``:name``); only
    tokens the binder produced are left as driver binds.
    """
    return _BIND_RE.sub(lambda m: m.group(0) if m.group(1) in names else "\\" + m.group(0), sql)


class RowStream:
    """Forward-only, single-pass sequence of row dicts.

    Not restartable: iterating a second time raises StreamConsumedError, run
    the Read again instead. ``columns`` is fixed from the result at execution
    time and every row carries every column, NULL as None.

    Each fetch runs under ``lock`` (the connector's). Before the connector
    touches the connection again it calls ``detach()``, which pulls the
    remaining rows into memory and releases the cursor, so the stream stays
    readable after the connection is reused or replaced.
    """

    def __init__(self, result: Result, lock=None):
        self._result = result
        self._lock = lock if lock is not None else threading.RLock()
        self.columns: list[str] = list(result.keys())
        self._consumed = False
        self._buffer: Optional[deque] = None
        self._error: Optional[ExecutionError] = None

    @property
    def is_attached(self) -> bool:
        """True while rows are still read from the live cursor."""
        return self._buffer is None and not self._result.closed

    def __iter__(self) -> Iterator[dict[str, Any]]:
        if self._consumed:
            raise StreamConsumedError("Row stream was already consumed")
        self._consumed = True
        return self._rows()

    def _rows(self) -> Iterator[dict[str, Any]]:
        try:
            while True:
                row = self._next_row()
                if row is None:
                    return
                yield dict(zip(self.columns, row))
        finally:
            self.close()

    def _next_row(self):
        with self._lock:
            if self._buffer is not None:
                if self._buffer:
                    return self._buffer.popleft()
                if self._error is not None:
                    raise self._error
                return None
            if self._result.closed:
                return None
            try:
                return self._result.fetchone()
            except SQLAlchemyError as e:
                raise ExecutionError(f"Reading rows failed: {e}", e) from e

    def detach(self) -> None:
        """Buffer the unread rows and release the cursor."""
        with self._lock:
            if not self.is_attached:
                return
            self._buffer = deque()
            try:
                self._buffer.extend(self._result.fetchall())
            except SQLAlchemyError as e:
                # Raised to the reader once the rows fetched so far are used up.
                self._error = ExecutionError(f"Reading rows failed: {e}", e)
            finally:
                self._result.close()

    def close(self) -> None:
        with self._lock:
            self._consumed = True
            self._buffer = deque()
            self._error = None
            self._result.close()


class ExecutionAdapter:
    def __init__(self, driver, lock=None):
        self.driver = driver
        self.lock = lock

    def execute(self, statement: SynthesizedStatement, operation: Operation) -> Union[RowStream, list[dict]]:
        if settings.LOG_SQL_STATEMENTS:
            logger.info("%s: %s", operation.value, deparameterize(statement))
        if operation == Operation.READ:
            return self._stream(statement)
        return self._drain(statement)

    def _stream(self, statement: SynthesizedStatement) -> RowStream:
        sql = statement.text
        try:
            result = self.driver.execute(
                prepare_sql(sql, statement.parameter_names()),
                statement.driver_parameters(sql),
                stream=True,
            )
        except SQLAlchemyError as e:
            raise ExecutionError(f"Statement failed: {e}", e) from e
        return RowStream(result, self.lock)

    def _drain(self, statement: SynthesizedStatement) -> list[dict]:
        dialect = self.driver.dialect
        batches = [dialect.batch(statement.parts)] if dialect.batch_writes else statement.parts
        names = statement.parameter_names()
        rows: list[dict] = []
        for sql in batches:
            result = None
            try:
                result = self.driver.execute(prepare_sql(sql, names), statement.driver_parameters(sql))
                if result.returns_rows:
                    columns = list(result.keys())
                    rows = [dict(zip(columns, row)) for row in result]
            except SQLAlchemyError as e:
                raise ExecutionError(f"Statement failed: {e}", e) from e
            finally:
                if result is not None:
                    result.close()
        return rows
