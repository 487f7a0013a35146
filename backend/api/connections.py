"""GET /api/connection/fields and POST /api/unload — connection lifecycle."""
from fastapi import APIRouter

from api.dispatch import get_connector
from models.connection import ConnectionField

router = APIRouter()


@router.get("/connection/fields", response_model=list[ConnectionField])
def connection_fields():
    return get_connector().connection_fields()


@router.post("/unload")
def unload():
    get_connector().unload()
    return {"message": "Connection closed."}
