"""GET /api/health — connection and metadata cache state."""
import logging
from fastapi import APIRouter

from api.dispatch import get_connector

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health_check():
    connector = get_connector()
    store = connector.store
    params = connector.driver.parameters
    return {
        "status": "ok",
        "connection": {
            "open": connector.driver.is_open,
            "target": params.describe() if params else None,
        },
        "metadata": {
            "relations": len(store.relations),
            "stale": store.is_stale(),
            "ttl_ms": store.ttl_ms,
        },
    }
