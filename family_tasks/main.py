"""family-tasks - Family todo tasks with recurring task generation."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from family_tasks.core.config import settings
from family_tasks.core.db_client import DocumentBackend, SQLiteDocumentBackend
from family_tasks.core.logging import configure_logfire, instrument_fastapi
from family_tasks.interface.api_router import register_exception_handlers, router as api_router
from family_tasks.services.periodic_task_service import PeriodicTaskService
from family_tasks.services.recurrence_engine import RecurrenceEngine
from family_tasks.services.task_store import TaskStore


logger = logging.getLogger(__name__)


def create_app(
    backend: DocumentBackend | None = None,
    *,
    media_root: str | None = None,
    generate_on_startup: bool | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        backend: Document backend to use; defaults to SQLite at `settings.sqlite_db_path`
        media_root: Directory for task media; defaults to `settings.media_root`
        generate_on_startup: Override for `settings.generate_on_startup`
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan context manager."""
        # Startup
        configure_logfire()

        store_backend = backend
        if store_backend is None:
            sqlite_backend = SQLiteDocumentBackend()
            await sqlite_backend.init_db()
            logger.info("Database initialized", extra={"db_path": str(sqlite_backend.path)})
            store_backend = sqlite_backend

        task_store = TaskStore(store_backend, media_root=media_root or settings.media_root)
        periodic_tasks = PeriodicTaskService(store_backend)
        engine = RecurrenceEngine(periodic_tasks, task_store, timezone=settings.timezone)

        app.state.backend = store_backend
        app.state.task_store = task_store
        app.state.periodic_tasks = periodic_tasks
        app.state.recurrence_engine = engine

        run_generation = settings.generate_on_startup if generate_on_startup is None else generate_on_startup
        if run_generation:
            generated = await engine.generate_today()
            logger.info("startup_generation", extra={"generated": generated})

        yield
        # Shutdown
        await store_backend.close()

    app = FastAPI(
        title="family-tasks",
        description="Family todo tasks with recurring task generation",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Instrument FastAPI with Logfire
    instrument_fastapi(app)

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/health")
    async def health_check() -> JSONResponse:
        """Health check endpoint."""
        return JSONResponse(content={"status": "healthy"}, status_code=200)

    return app


app = create_app()
