import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from src.api.deps import get_not_found_handler, get_request_logger
from src.shell.http.notfound_middleware import NotFoundMiddleware

logging.basicConfig(
    level=os.environ.get("NOTFOUND_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    # Build the handler on startup so a broken redirects file fails fast
    try:
        handler = get_not_found_handler()
    except Exception as e:
        logger.critical("Not-found handler setup failed: %s", e)
        sys.exit(1)

    logger.info(
        "Not-found handler ready (mode: %s, fallback page: %s)",
        handler.settings.handler_mode.value,
        handler.settings.fallback_page,
    )
    request_logger = get_request_logger()
    request_logger.start()

    yield

    request_logger.close()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Not-Found Interceptor",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # --- Routers ---
    from src.api.routes import admin_notfound, notfound_page

    app.include_router(notfound_page.router, tags=["Not Found"])
    app.include_router(
        admin_notfound.router,
        prefix="/api/admin/notfound",
        tags=["Admin Not Found"],
    )

    app.add_middleware(
        NotFoundMiddleware,
        get_handler=get_not_found_handler,
        skip_prefixes=("/api/", "/docs", "/redoc", "/openapi.json"),
    )

    @app.get("/health")
    def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        return {"status": "ok", "service": "notfound"}

    return app


app = create_app()
