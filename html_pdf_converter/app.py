"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from html_pdf_converter.config import STATIC_DIR, Settings
from html_pdf_converter.routers import converter
from html_pdf_converter.services.print_engine import ChromePrintEngine
from html_pdf_converter.services.sessions import SessionStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    settings: Settings = app.state.settings
    store: SessionStore = app.state.sessions

    try:
        from html_pdf_converter.scheduler import build_scheduler
        scheduler = build_scheduler(store, settings.cleanup_interval_minutes)
        scheduler.start()
        logger.info("Scheduler started, expiring idle sessions every %d minutes",
                    settings.cleanup_interval_minutes)
    except Exception as e:
        scheduler = None
        logger.warning("Scheduler failed to start: %s", e)

    yield

    # Shutdown
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    store.close_all()
    logger.info("Removed temporary files for all sessions")


def create_app(settings: Settings | None = None, engine=None) -> FastAPI:
    settings = settings or Settings.from_env()
    engine = engine or ChromePrintEngine(
        chrome_path=settings.chrome_path,
        timeout_secs=settings.print_timeout_secs,
    )

    app = FastAPI(
        title="HTML to PDF Converter",
        description="Upload an HTML file, preview it, and download it as a paginated PDF.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.sessions = SessionStore(
        engine=engine,
        work_dir=settings.work_dir,
        wait_secs=settings.print_wait_secs,
        ttl_secs=settings.session_ttl_minutes * 60,
    )

    # Static files
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    @app.get("/health", include_in_schema=False)
    async def health():
        return {"status": "ok"}

    app.include_router(converter.router)

    return app
