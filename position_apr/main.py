from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from position_apr.api.deps import get_cache_sweeper, get_key_value_store
from position_apr.api.routers import health, pools, positions
from position_apr.shared.config import get_settings


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    store = get_key_value_store()
    sweeper = get_cache_sweeper()
    store.open()
    sweeper.start()
    logger.info("position_apr: started")
    try:
        yield
    finally:
        sweeper.stop()
        store.close()
        logger.info("position_apr: stopped")


app = FastAPI(title="Position APR API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(positions.router)
app.include_router(health.router)
app.include_router(pools.router)
