# swishmatch/entrypoints/fastapi_app.py
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..db import engine
from ..models import Base
from .api.routers import bookings, debug, health, integrations, jobs


@asynccontextmanager
async def _lifespan(app: FastAPI):
    # Single place where DB tables are created in dev.
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield


def create_app(*, create_tables: bool = True) -> FastAPI:
    app = FastAPI(
        title="GoSwish - Cleaner Matching Engine",
        lifespan=_lifespan if create_tables else None,
    )

    app.include_router(health.router)
    app.include_router(bookings.router)
    app.include_router(jobs.router)
    app.include_router(integrations.router)
    app.include_router(debug.router)

    return app
