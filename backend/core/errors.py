"""Connector error taxonomy."""
from typing import Optional


class ConnectorError(Exception):
    """Base class for every error surfaced to the orchestrator."""


class SchemaIntrospectionError(ConnectorError):
    """A discovery query failed; the previous metadata snapshot stays in use."""


class ConnectionOpenError(ConnectorError):
    """Opening (or reopening) the shared connection failed."""


class ExecutionError(ConnectorError):
    """The driver reported a failure while executing a statement."""

    def __init__(self, message: str, original: Optional[BaseException] = None):
        super().__init__(message)
        self.original = original


class MissingKeyError(ConnectorError):
    """Update/Delete was called without every primary-key value."""

    def __init__(self, relation: str, missing: list[str]):
        super().__init__(f"Missing primary key value(s) for {relation}: {', '.join(missing)}")
        self.relation = relation
        self.missing = missing


class UnknownRelationError(ConnectorError):
    pass


class UnsupportedOperationError(ConnectorError):
    pass


class InvalidParameterError(ConnectorError):
    pass


class StreamConsumedError(ConnectorError):
    """A read stream was iterated a second time; re-execute the Read instead."""
