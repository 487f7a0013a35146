"""
TableBridge — schema-driven CRUD connector.
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import health, connections, dispatch
from config import settings

# ── Logging ──────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger("tablebridge")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("TableBridge starting up…")
    yield
    dispatch.get_connector().unload()
    logger.info("TableBridge shutting down.")


# ── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="TableBridge — schema-driven CRUD connector",
    description="Exposes any table or view as a discoverable Create/Read/Update/Delete resource.",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ──────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(health.router,      prefix="/api")
app.include_router(connections.router, prefix="/api")
app.include_router(dispatch.router,    prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.API_HOST, port=settings.API_PORT)
