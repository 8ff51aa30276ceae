import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import exc

from . import database
from .cache_static import CacheStaticFiles
from .config import Settings
from .errors import register_exception_handlers
from .routers import meta, pages, qr
from .version import __version__

logger = logging.getLogger(__name__)

STATIC_DIR = os.path.join(os.path.dirname(__file__), "static")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _log_async_fault(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    error = context.get("exception")
    if error is not None:
        logger.error(
            "Unhandled asynchronous error: %s",
            context.get("message", error),
            exc_info=(type(error), error, error.__traceback__),
        )
    else:
        logger.error("Unhandled asynchronous error: %s", context.get("message"))


def _log_uncaught(exc_type, exc_value, exc_tb) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_tb)
        return
    logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_tb))
    logging.shutdown()


def install_fault_logging() -> None:
    sys.excepthook = _log_uncaught


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    asyncio.get_running_loop().set_exception_handler(_log_async_fault)
    settings: Settings = app.state.settings
    try:
        database.init_db(app.state.engine, max_attempts=settings.DB_CONNECT_ATTEMPTS)
    except exc.OperationalError:
        logger.critical("Failed to connect to the database at startup", exc_info=True)
        raise
    logger.info("Connected to database %s", app.state.engine.url.render_as_string())
    yield
    # Shutdown
    app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="QR Studio", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = database.build_engine(settings.DATABASE_URL)
    app.state.session_factory = database.build_session_factory(app.state.engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    app.mount("/static", CacheStaticFiles(directory=STATIC_DIR), name="static")
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

    app.include_router(meta.router)
    app.include_router(qr.router)
    app.include_router(pages.router)
    return app
