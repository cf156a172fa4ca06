from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from sharedplan.api.admin import router as admin_router
from sharedplan.api.auth import router as auth_router
from sharedplan.api.health import router as health_router
from sharedplan.api.member import router as member_router
from sharedplan.api.metrics_endpoint import router as metrics_router
from sharedplan.api.pages import router as pages_router
from sharedplan.api.pages import store_unavailable_page
from sharedplan.api.payments import router as payments_router
from sharedplan.core.config import SETTINGS
from sharedplan.core.logging import setup_logging
from sharedplan.core.notices import notice
from sharedplan.db.engine import lifespan_db
from sharedplan.db.redis import lifespan_redis
from sharedplan.middleware.metrics import MetricsMiddleware
from sharedplan.middleware.request_context import RequestContextMiddleware
from sharedplan.repos.errors import StoreError

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Teardown in reverse order of startup
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="sharedplan",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last added runs first: RequestContext → Metrics → CORS → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(member_router)
app.include_router(payments_router)
app.include_router(pages_router)


@app.exception_handler(StoreError)
async def handle_store_error(request: Request, exc: StoreError) -> Response:
    # Directory outage on a read no route handles itself: generic notice only
    logger.error("Directory unavailable  path=%s: %s", request.url.path, exc)
    route = request.scope.get("route")
    if "pages" in getattr(route, "tags", ()):
        return store_unavailable_page()
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": notice("load_failed").as_detail()},
    )


logger.info(
    "sharedplan started  env=%s log_level=%s port=%d capacity=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.group_capacity,
    "on" if SETTINGS.is_dev else "off",
)
