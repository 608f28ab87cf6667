from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from soulbound.api.certificates import router as certificates_router
from soulbound.api.events import router as events_router
from soulbound.api.health import router as health_router
from soulbound.api.metadata import router as metadata_router
from soulbound.api.metrics_endpoint import router as metrics_router
from soulbound.api.network import router as network_router
from soulbound.api.participants import router as participants_router
from soulbound.api.roles import router as roles_router
from soulbound.core.config import SETTINGS
from soulbound.core.logging import setup_logging
from soulbound.db.redis import lifespan_redis
from soulbound.middleware.metrics import MetricsMiddleware
from soulbound.middleware.request_context import RequestContextMiddleware

setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_redis():
        yield


app = FastAPI(
    title="soulbound-registry",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last added runs first: RequestContext -> Metrics -> CORS -> route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(network_router)
app.include_router(participants_router)
app.include_router(certificates_router)
app.include_router(roles_router)
app.include_router(events_router)
app.include_router(metadata_router)

logger.info(
    "soulbound-registry started  env=%s chain_id=%d log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.chain_id,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
