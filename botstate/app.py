"""HTTP surface: a health endpoint over the state store."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter
from loguru import logger

from botstate.deps import StateStoreDep
from botstate.log import setup_logging
from botstate.settings import get_settings
from botstate.store.tiered import TieredStateStore


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level)

    _app.state.store = None

    if settings.mongo_uri:
        store = TieredStateStore.from_settings(settings)
        status_ = await store.connect()
        _app.state.store = store
        logger.info(
            "State store: {}.{} (cache={}, safe_writes={})",
            settings.database,
            settings.collection,
            "on" if status_.cache_up else "off",
            settings.safe_writes,
        )
    else:
        logger.warning("BOTSTATE_MONGO_URI not set -- state store disabled")

    yield

    # -- Shutdown --------------------------------------------------------------
    if _app.state.store is not None:
        await _app.state.store.close()
        logger.info("State store: closed")


app = FastAPI(title="botstate", lifespan=lifespan)

api = APIRouter(prefix="/api")


@api.get("/health")
async def health(store: StateStoreDep) -> JSONResponse:
    result = await store.health()
    return JSONResponse(
        result.model_dump(exclude_none=True),
        status_code=status.HTTP_200_OK if result.overall else status.HTTP_503_SERVICE_UNAVAILABLE,
    )


app.include_router(api)
