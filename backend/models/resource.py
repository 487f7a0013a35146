"""Pydantic schemas for relation metadata, operations and parameter contracts."""
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class RelationKind(str, Enum):
    TABLE = "Table"
    VIEW = "View"
    OTHER = "Other"

    @classmethod
    def from_catalog(cls, table_type: str) -> "RelationKind":
        """Map an information-schema style table type ("BASE TABLE", "view", ...) to a kind."""
        t = (table_type or "").strip().upper()
        if t in ("BASE TABLE", "TABLE"):
            return cls.TABLE
        if t == "VIEW":
            return cls.VIEW
        return cls.OTHER


class Operation(str, Enum):
    CREATE = "Create"
    READ = "Read"
    UPDATE = "Update"
    DELETE = "Delete"

    @classmethod
    def parse(cls, value: str) -> "Operation":
        for op in cls:
            if op.value.lower() == (value or "").strip().lower():
                return op
        raise ValueError(f"Unknown operation '{value}'")


class Allowance(str, Enum):
    MANDATORY = "mandatory"
    OPTIONAL = "optional"
    PROHIBITED = "prohibited"


class ColumnMetadata(BaseModel):
    name: str
    is_primary_key: bool = False
    is_identity: bool = False
    is_computed: bool = False
    is_nullable: bool = True

    @property
    def tag(self) -> str:
        """Human-readable flags, e.g. "Primary key | Generated"."""
        parts = []
        if self.is_primary_key:
            parts.append("Primary key")
        if self.is_identity:
            parts.append("Generated")
        if self.is_computed:
            parts.append("Computed")
        if self.is_nullable:
            parts.append("Nullable")
        return " | ".join(parts)


class RelationMetadata(BaseModel):
    full_name: str                  # schema.table
    kind: RelationKind
    columns: list[ColumnMetadata] = Field(default_factory=list)

    @property
    def primary_keys(self) -> list[str]:
        return [c.name for c in self.columns if c.is_primary_key]

    def column(self, name: str) -> Optional[ColumnMetadata]:
        return next((c for c in self.columns if c.name == name), None)


class ExecutionKeys(BaseModel):
    """Per-relation values the synthesizer needs on every execute call."""
    primary_keys: list[str] = Field(default_factory=list)
    identity_column: Optional[str] = None


class DiscoveryRow(BaseModel):
    name: str
    operation: Operation
    source_type: RelationKind
    primary_keys: str = ""          # comma-joined
    capabilities: Optional[str] = None   # only on Read rows: "R", "CR" or "CRUD"


class ColumnOption(BaseModel):
    value: str
    tag: str = ""


class ParameterDescriptor(BaseModel):
    name: str
    type: str                        # column | boolean | string | multiselect
    allowance: Allowance
    description: str = ""
    default: Optional[Any] = None
    options: list[ColumnOption] = Field(default_factory=list)
