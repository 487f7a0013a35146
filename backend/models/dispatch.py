"""Pydantic schemas for the orchestrator dispatch API."""
import json
from typing import Any, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.connection import ConnectionParameters
from models.resource import DiscoveryRow, ParameterDescriptor


class DispatchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    connection: ConnectionParameters
    class_name: str = Field("", alias="class")
    operation: Optional[str] = None
    get_meta: bool = Field(False, alias="getMeta")
    parameters: Union[dict[str, Any], str, None] = None

    @field_validator("connection", mode="before")
    @classmethod
    def _decode_connection(cls, v):
        # The orchestrator sends the bundle as a JSON-encoded string.
        if isinstance(v, str):
            return json.loads(v) if v.strip() else {}
        return v


class DiscoveryResponse(BaseModel):
    rows: list[DiscoveryRow]


class ParameterContractResponse(BaseModel):
    relation: str
    operation: str
    parameters: list[ParameterDescriptor]


class WriteResponse(BaseModel):
    relation: str
    operation: str
    rows: list[dict[str, Any]]
