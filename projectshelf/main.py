import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from projectshelf.api.analytics import router as analytics_router
from projectshelf.api.auth import google_disabled_router, google_router, router as auth_router
from projectshelf.api.media import router as media_router
from projectshelf.api.projects import router as projects_router
from projectshelf.api.users import router as users_router
from projectshelf.config import Settings, get_settings
from projectshelf.context import AppContext
from projectshelf.database import init_db
from projectshelf.errors import (
    http_exception_handler,
    request_validation_handler,
    unhandled_exception_handler,
)

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the API around an explicit context. Tests pass their own context
    (in-memory database, fake media host / OAuth provider).
    """
    if context is None:
        context = AppContext.from_settings(settings or get_settings())
    settings = context.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(context.engine)
        yield
        context.engine.dispose()

    app = FastAPI(
        title="ProjectShelf API",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    # Google routes only exist when the provider is configured; otherwise 501
    app.include_router(google_router if context.oauth is not None else google_disabled_router)
    app.include_router(projects_router)
    app.include_router(users_router)
    app.include_router(media_router)
    app.include_router(analytics_router)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
