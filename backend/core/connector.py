"""
Connector — the plugin entry points the orchestrator calls.

Owns the shared connection, the metadata store and the execution adapter.
One lock serializes connect → refresh → synthesize → execute, so concurrent
callers never see a half-replaced cache or interleave on the connection.
A Read stream fetches its rows under the same lock. The next call on the
connector buffers whatever the stream has not read yet before it touches
the connection.
"""
import json
import logging
import threading
import time
from typing import Any, Callable, Optional, Union
from pydantic import ValidationError

from core.binder import normalize_value
from core.capabilities import discover, parameter_contract, supported_operations
from core.driver import SqlAlchemyDriver
from core.errors import InvalidParameterError, UnknownRelationError, UnsupportedOperationError
from core.executor import ExecutionAdapter, RowStream
from core.metadata_store import MetadataStore
from core.synthesizer import synthesize
from models.connection import CONNECTION_FIELDS, ConnectionField, ConnectionParameters
from models.resource import DiscoveryRow, Operation, ParameterDescriptor, RelationMetadata

logger = logging.getLogger(__name__)


def decode_parameters(raw: Union[str, dict, None]) -> dict[str, Any]:
    """Decode the JSON parameter map; JSON null becomes the SQL NULL marker."""
    if raw is None or raw == "":
        return {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidParameterError(f"Parameters are not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise InvalidParameterError("Parameters must be a JSON object")
    return {str(k): normalize_value(v) for k, v in raw.items()}


def parse_connection(raw: Union[ConnectionParameters, str, dict]) -> ConnectionParameters:
    if isinstance(raw, ConnectionParameters):
        return raw
    try:
        if isinstance(raw, str):
            return ConnectionParameters.model_validate_json(raw or "{}")
        return ConnectionParameters.model_validate(raw or {})
    except ValidationError as e:
        raise InvalidParameterError(f"Invalid connection parameters: {e}") from e


def parse_operation(raw: Union[Operation, str, None]) -> Operation:
    if isinstance(raw, Operation):
        return raw
    try:
        return Operation.parse(raw)
    except ValueError as e:
        raise InvalidParameterError(str(e)) from e


class Connector:
    def __init__(self, driver=None, ttl_ms: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        self.driver = driver if driver is not None else SqlAlchemyDriver()
        self.store = MetadataStore(self.driver, ttl_ms=ttl_ms, clock=clock)
        self._lock = threading.RLock()
        self.executor = ExecutionAdapter(self.driver, lock=self._lock)
        self._active_stream: Optional[RowStream] = None

    # ── Entry points ─────────────────────────────────────────────────────────

    def connection_fields(self) -> list[ConnectionField]:
        return list(CONNECTION_FIELDS)

    def discover(self, params: ConnectionParameters) -> list[DiscoveryRow]:
        with self._lock:
            self.connect(params)
            self.store.ensure_fresh(force=True)
            return discover(self.store.relations)

    def describe(self, params: ConnectionParameters, relation_name: str, operation: Operation) -> list[ParameterDescriptor]:
        with self._lock:
            relation = self._resolve(params, relation_name, operation)
            return parameter_contract(relation, operation)

    def execute(
        self,
        params: ConnectionParameters,
        relation_name: str,
        operation: Operation,
        parameters: Union[str, dict, None] = None,
    ) -> Union[RowStream, list[dict]]:
        with self._lock:
            relation = self._resolve(params, relation_name, operation)
            keys = self.store.execution_keys(relation.full_name)
            statement = synthesize(operation, relation, keys, decode_parameters(parameters), self.driver.dialect)
            result = self.executor.execute(statement, operation)
            if isinstance(result, RowStream):
                self._active_stream = result
            return result

    def unload(self) -> None:
        with self._lock:
            self._release_stream()
            try:
                self.driver.close()
            except Exception as e:
                logger.warning("Ignoring error while closing connection: %s", e)
            self.store.invalidate()
            logger.info("Connector unloaded")

    def handle(
        self,
        connection: Union[ConnectionParameters, str, dict],
        class_name: str = "",
        operation: Union[Operation, str, None] = None,
        get_meta: bool = False,
        parameters: Union[str, dict, None] = None,
    ):
        """Dispatch one orchestrator call: discovery, per-operation metadata or execute."""
        params = parse_connection(connection)
        if get_meta and not class_name:
            return self.discover(params)
        if not class_name:
            raise InvalidParameterError("A relation name is required to execute an operation")
        op = parse_operation(operation)
        if get_meta:
            return self.describe(params, class_name, op)
        return self.execute(params, class_name, op, parameters)

    # ── Internals ────────────────────────────────────────────────────────────

    def connect(self, params: ConnectionParameters) -> None:
        with self._lock:
            self._release_stream()
            if self.driver.open(params):
                # Metadata is connection-scoped.
                self.store.invalidate()
                self.store.schema_filter = params.db_schema

    def _resolve(self, params: ConnectionParameters, relation_name: str, operation: Operation) -> RelationMetadata:
        self.connect(params)
        self.store.ensure_fresh()
        relation = self.store.lookup(relation_name)
        if relation is None:
            raise UnknownRelationError(f"Relation '{relation_name}' not found")
        if operation not in supported_operations(relation):
            raise UnsupportedOperationError(
                f"{operation.value} is not supported on {relation.full_name} ({relation.kind.value})"
            )
        return relation

    def _release_stream(self) -> None:
        stream, self._active_stream = self._active_stream, None
        if stream is not None:
            stream.detach()
