"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskboard.api.v1 import auth, columns, profiles, sync, tasks, views
from taskboard.config import settings
from taskboard.core.exceptions import BackendError
from taskboard.core.logging import setup_logging
from taskboard.middleware.metrics import setup_metrics
from taskboard.services.bootstrap_service import build_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    services = build_services(settings)
    app.state.services = services
    try:
        async with services.store:
            yield
    finally:
        # Shutdown
        await services.close()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_metrics(app)


@app.exception_handler(BackendError)
async def backend_error_handler(request: Request, exc: BackendError):
    """Backend failures are reported to the caller, never retried."""
    logger.error("Backend request failed on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


# Include routers
app.include_router(auth.router, prefix=f"{settings.API_V1_PREFIX}/auth", tags=["auth"])
app.include_router(tasks.router, prefix=f"{settings.API_V1_PREFIX}/tasks", tags=["tasks"])
app.include_router(columns.router, prefix=f"{settings.API_V1_PREFIX}/columns", tags=["columns"])
app.include_router(profiles.router, prefix=f"{settings.API_V1_PREFIX}/profiles", tags=["profiles"])
app.include_router(views.router, prefix=settings.API_V1_PREFIX, tags=["views"])
app.include_router(sync.router, prefix=f"{settings.API_V1_PREFIX}/sync", tags=["sync"])


@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    store = request.app.state.services.store
    health_status = {
        "status": "ok",
        "checks": {
            "store": "loading" if store.is_loading else "ok",
            "change_feed": "connected" if store.is_connected else "disconnected",
        },
    }
    if store.is_loading or not store.is_connected:
        health_status["status"] = "degraded"
    return health_status
