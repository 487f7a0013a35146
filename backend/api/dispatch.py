"""POST /api/dispatch — discovery, per-operation metadata and execute calls."""
import base64
import json
import logging
from fastapi import APIRouter, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import StreamingResponse

from core.connector import Connector
from core.errors import (
    ConnectionOpenError,
    ConnectorError,
    ExecutionError,
    InvalidParameterError,
    MissingKeyError,
    SchemaIntrospectionError,
    UnknownRelationError,
    UnsupportedOperationError,
)
from core.executor import RowStream
from models.dispatch import DiscoveryResponse, DispatchRequest, ParameterContractResponse, WriteResponse

router = APIRouter()
logger = logging.getLogger(__name__)

# Process-wide connector: one shared connection and metadata cache.
_connector = Connector()


def get_connector() -> Connector:
    return _connector


def to_http_error(e: ConnectorError) -> HTTPException:
    if isinstance(e, UnknownRelationError):
        return HTTPException(404, detail=str(e))
    if isinstance(e, (MissingKeyError, InvalidParameterError, UnsupportedOperationError)):
        return HTTPException(400, detail=str(e))
    if isinstance(e, SchemaIntrospectionError):
        return HTTPException(502, detail=str(e))
    if isinstance(e, ConnectionOpenError):
        return HTTPException(503, detail=str(e))
    if isinstance(e, ExecutionError):
        return HTTPException(500, detail=f"Execution error: {e}")
    return HTTPException(500, detail=str(e))


def _b64(value) -> str:
    return base64.b64encode(bytes(value)).decode("ascii")


# Binary column values (BLOB, bytea, varbinary) travel as base64 text.
_BINARY_ENCODERS = {bytes: _b64, bytearray: _b64, memoryview: _b64}


def encode_rows(rows):
    return jsonable_encoder(rows, custom_encoder=_BINARY_ENCODERS)


def _ndjson(stream: RowStream):
    for row in stream:
        yield json.dumps(encode_rows(row)) + "\n"


@router.post("/dispatch")
def dispatch(req: DispatchRequest):
    connector = get_connector()
    try:
        result = connector.handle(
            connection=req.connection,
            class_name=req.class_name,
            operation=req.operation,
            get_meta=req.get_meta,
            parameters=req.parameters,
        )
    except ConnectorError as e:
        logger.warning("Dispatch failed for '%s' %s: %s", req.class_name, req.operation, e)
        raise to_http_error(e)

    if req.get_meta and not req.class_name:
        return DiscoveryResponse(rows=result)
    if req.get_meta:
        return ParameterContractResponse(relation=req.class_name, operation=req.operation, parameters=result)
    if isinstance(result, RowStream):
        return StreamingResponse(
            _ndjson(result),
            media_type="application/x-ndjson",
            headers={"X-Columns": ",".join(result.columns)},
        )
    return WriteResponse(relation=req.class_name, operation=req.operation, rows=encode_rows(result))
