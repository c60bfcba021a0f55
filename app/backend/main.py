"""Index Advisor App — FastAPI entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import health, indexes

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("index_advisor_app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Index Advisor app starting up")
    yield
    logger.info("Index Advisor app shutting down")


app = FastAPI(
    title="Index Advisor",
    description="Read-only index usage and fragmentation reports with generated ALTER INDEX text",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(indexes.router)


@app.get("/")
async def root():
    """Endpoint listing."""
    return {
        "status": "ok",
        "app": "Index Advisor",
        "endpoints": [
            "/api/health",
            "/api/indexes/report",
            "/api/indexes/overview",
            "/api/indexes/unused",
            "/api/indexes/actions",
            "/api/indexes/commands",
        ],
    }
