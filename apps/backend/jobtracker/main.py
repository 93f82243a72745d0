import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from jobtracker.api.router.v1.resume import resume_router
from jobtracker.core import (
    Settings,
    build_async_engine,
    build_session_factory,
    init_models,
    settings as default_settings,
    setup_logging,
)
from jobtracker.models.base import Base
from jobtracker.storage import build_object_store

logger = logging.getLogger(__name__)

_UNSET = object()


class PreviewExemptCORSMiddleware(CORSMiddleware):
    """Application CORS policy that leaves resume preview paths alone.

    Preview routes answer their own preflights with a wildcard origin, so
    the restrictive policy here must not intercept them.
    """

    def __init__(self, app, exempt_suffixes=("/preview",), **kwargs) -> None:
        super().__init__(app, **kwargs)
        self.exempt_suffixes = tuple(exempt_suffixes)

    async def __call__(self, scope, receive, send) -> None:
        if scope["type"] == "http" and scope["path"].rstrip("/").endswith(self.exempt_suffixes):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


def create_app(settings: Settings | None = None, object_store=_UNSET) -> FastAPI:
    settings = settings or default_settings
    setup_logging()

    engine = build_async_engine(settings)
    if object_store is _UNSET:
        object_store = build_object_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_models(engine, Base)
        yield
        await engine.dispose()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Resume upload, preview, download and storage reconciliation",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.object_store = object_store

    app.add_middleware(
        PreviewExemptCORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(resume_router, prefix="/api/v1/resumes", tags=["Resumes"])

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "objectStore": "configured" if app.state.object_store is not None else "database-only",
        }

    logger.info(
        "%s ready (object store %s)",
        settings.PROJECT_NAME,
        "configured" if object_store is not None else "not configured",
    )
    return app
