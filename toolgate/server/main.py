"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS),
registers exception handlers and includes all API routers. The execution
runtime is built once in the lifespan and shared through ``app.state``.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from toolgate import __version__
from toolgate.core.config import settings
from toolgate.core.logging_config import get_logger, setup_logging
from toolgate.exec_core.scheduling import MetricSchedulerLoop

from .api.v1 import capabilities, health, intent_graphs, metrics, scheduler, specs
from .core import constant
from .core.database import Database, build_sql_runtime
from .exception_handlers import setup_exception_handlers

setup_logging(
    log_level=settings.log_level,
    log_format=settings.log_format,
    enable_file=settings.enable_file_logging,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Startup builds the database engine, the process-scoped execution runtime
    and, when enabled, the background scheduler loop. Shutdown stops the loop
    and disposes the engine.
    """
    logger.info("Starting up Toolgate Server...")
    database = Database(settings.database_url)
    try:
        await database.init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    app.state.runtime = build_sql_runtime(database, settings)

    loop = None
    if settings.scheduler_enabled:
        loop = MetricSchedulerLoop(app.state.runtime.scheduler, interval_seconds=settings.scheduler_interval_seconds)
        loop.start()

    yield

    logger.info("Shutting down Toolgate Server...")
    if loop is not None:
        await loop.stop()
    await database.dispose()


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    Toolgate Server API

    Governed execution of integration capabilities: capability catalog, intent graph
    validation, dashboard specification execution and metric scheduling.
    """,
    version=__version__,
    openapi_url=f"{constant.API_V1_STR}/openapi.json",
    docs_url=f"{constant.API_V1_STR}/docs",
    redoc_url=f"{constant.API_V1_STR}/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

app.include_router(health.router, tags=["health"])
app.include_router(capabilities.router, prefix=f"{constant.API_V1_STR}/capabilities", tags=["capabilities"])
app.include_router(intent_graphs.router, prefix=f"{constant.API_V1_STR}/intent-graphs", tags=["intent-graphs"])
app.include_router(specs.router, prefix=f"{constant.API_V1_STR}/specs", tags=["specs"])
app.include_router(metrics.router, prefix=f"{constant.API_V1_STR}/metrics", tags=["metrics"])
app.include_router(scheduler.router, prefix=f"{constant.API_V1_STR}/scheduler", tags=["scheduler"])
