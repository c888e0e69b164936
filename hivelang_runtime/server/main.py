"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS),
and includes all API routers. It serves as the root of the web server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hivelang_runtime.core.config import settings
from hivelang_runtime.core.logging_config import get_logger, setup_logging
from hivelang_runtime.core.monitoring import initialize_logfire

from .api.v1 import health, integrations
from .core import constant
from .exception_handlers import setup_exception_handlers
from .services.deps import get_integration_service, shutdown_integration_service

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Builds the integration service on startup and closes its cache and HTTP
    client on shutdown.
    """
    # Startup
    logger.info("Starting up HiveLang Runtime Server...")
    service = get_integration_service()
    logger.info(
        f"Integration service ready: cache capacity={service.cache.max_size}, eviction={service.cache.eviction}"
    )

    yield

    # Shutdown
    logger.info("Shutting down HiveLang Runtime Server...")
    await shutdown_integration_service()


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    HiveLang Capability Runtime API

    This API loads HiveLang integration sources, compiles their capabilities,
    and invokes them on behalf of the bot-execution service with per-user credentials.
    """,
    version=constant.VERSION,
    openapi_url=f"{constant.API_V1_STR}/openapi.json",
    docs_url=f"{constant.API_V1_STR}/docs",
    redoc_url=f"{constant.API_V1_STR}/redoc",
    lifespan=lifespan,
)

initialize_logfire(app)

# Set all CORS enabled origins
cors = settings.cors
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors.origins,
    allow_credentials=cors.allow_credentials,
    allow_methods=cors.allow_methods,
    allow_headers=cors.allow_headers,
)

setup_exception_handlers(app)

app.include_router(health.router, tags=["health"])
app.include_router(integrations.router, prefix=f"{constant.API_V1_STR}/integrations", tags=["integrations"])


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run(app, host=settings.server_host, port=settings.server_port, log_config=None)
