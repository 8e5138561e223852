import time
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles

from config import BASE_DIR, Settings, load_settings
from db import IN_MEMORY_URL, RecordStore
from errors import register_error_handlers
from logging_config import configure_logging
from routers import (
    adoptable_animals,
    auth,
    geocode,
    pages,
    reported_animals,
    veterinarians,
)
from uploads import URL_PREFIX

logger = structlog.get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application around one explicitly constructed record store.
    Without DATABASE_URL, development runs on an in-memory SQLite database;
    production refuses to start.
    """
    settings = settings or load_settings()
    configure_logging(settings.is_development)

    database_url = settings.database_url
    if database_url is None:
        if not settings.is_development:
            raise RuntimeError("DATABASE_URL must be set in production")
        logger.warning("no_database_url", fallback="in-memory sqlite")
        database_url = IN_MEMORY_URL

    app = FastAPI(title="StrayCare")
    app.state.settings = settings
    app.state.store = RecordStore(database_url, echo=settings.is_development)

    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount(URL_PREFIX, StaticFiles(directory=settings.upload_dir), name="uploads")
    app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")

    register_error_handlers(app)

    @app.on_event("startup")
    def on_startup() -> None:
        app.state.store.create_tables()
        logger.info("app_started", mode=settings.mode)

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        app.state.store.dispose()

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            method=request.method, path=request.url.path
        )
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "request_completed",
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response

    app.include_router(auth.router)
    app.include_router(reported_animals.router)
    app.include_router(adoptable_animals.router)
    app.include_router(veterinarians.router)
    app.include_router(geocode.router)
    app.include_router(pages.router)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
