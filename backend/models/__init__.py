from models.connection import ConnectionParameters, ConnectionField  # noqa: F401
from models.resource import (  # noqa: F401
    Allowance,
    ColumnMetadata,
    DiscoveryRow,
    ExecutionKeys,
    Operation,
    ParameterDescriptor,
    RelationKind,
    RelationMetadata,
)
from models.dispatch import DispatchRequest  # noqa: F401
