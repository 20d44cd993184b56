"""
Movie Catalog Service - FastAPI application and AWS Lambda entry point

Configuration is read once at process start and injected into the store and
translator constructors; nothing reads the environment per request.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from movie_catalog import __version__
from movie_catalog.api.v1 import movies
from movie_catalog.core.config import Settings, get_settings
from movie_catalog.core.exceptions import CatalogException, catalog_exception_handler
from movie_catalog.core.logging_config import set_request_id, setup_logging
from movie_catalog.database.movie_store import MovieStore
from movie_catalog.services.dispatcher import MovieDispatcher
from movie_catalog.services.translation_cache import TranslationCacheService
from movie_catalog.services.translator import Translator, build_translator

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[MovieStore] = None,
    translator: Optional[Translator] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Process configuration (defaults to the environment)
        store: Movie store; built from settings when omitted
        translator: Translator; picked by TRANSLATION_MODE when omitted
    """
    settings = settings or get_settings()
    store = store or MovieStore(settings)
    translator = translator or build_translator(settings)

    translation_cache = TranslationCacheService(
        store,
        translator,
        failure_policy=settings.TRANSLATION_FAILURE_POLICY,
    )
    dispatcher = MovieDispatcher(store, translation_cache)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"{settings.PROJECT_NAME} starting up", extra={
            "version": __version__,
            "table": settings.MOVIES_TABLE,
            "translation_mode": settings.TRANSLATION_MODE.value,
        })
        yield
        await translation_cache.drain()
        logger.info(f"{settings.PROJECT_NAME} shutting down")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Movie catalog with cached description translations",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.dispatcher = dispatcher
    app.state.translation_cache = translation_cache

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Api-Key", "X-Amz-Date", "X-Amz-Security-Token"],
    )
    app.add_exception_handler(CatalogException, catalog_exception_handler)

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        """Tag logs with the API Gateway request id (or X-Request-ID, or a fresh one)"""
        aws_context = request.scope.get("aws.context")
        request_id = (
            request.headers.get("X-Request-ID")
            or getattr(aws_context, "aws_request_id", None)
            or str(uuid.uuid4())
        )
        set_request_id(request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.get("/")
    async def health_check():
        """Health check endpoint"""
        return {
            "service": settings.PROJECT_NAME,
            "status": "healthy",
            "version": __version__,
            "translation_mode": settings.TRANSLATION_MODE.value,
            "failure_policy": settings.TRANSLATION_FAILURE_POLICY.value,
        }

    app.include_router(movies.router)
    return app


_settings = get_settings()
setup_logging(_settings.LOG_LEVEL, _settings.LOG_FORMAT, _settings.is_production)

app = create_app(_settings)

# Lambda handler
handler = Mangum(app)


def lambda_handler(event, context):
    """AWS Lambda handler function"""
    return handler(event, context)
