"""
Movie API routes

Thin HTTP layer: each route turns the request into an OperationRequest,
hands it to the dispatcher, and maps the OperationResult onto a status code
and JSON body. Writes (POST/PUT) sit behind the API key gate.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader

from movie_catalog.core.exceptions import (
    AuthenticationError,
    CatalogException,
    create_error_response,
)
from movie_catalog.services.dispatcher import (
    MovieDispatcher,
    OperationRequest,
    OperationResult,
    OutcomeKind,
)

router = APIRouter(prefix="/movies", tags=["movies"])

API_KEY_NAME = "X-API-Key"
api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)

STATUS_CODES = {
    OutcomeKind.SUCCESS: 200,
    OutcomeKind.CREATED: 201,
    OutcomeKind.NO_OP: 200,
    OutcomeKind.NOT_FOUND: 404,
    OutcomeKind.VALIDATION_ERROR: 400,
    OutcomeKind.SERVICE_ERROR: 502,
    OutcomeKind.STORE_UNAVAILABLE: 503,
}

ERROR_KINDS = (
    OutcomeKind.NOT_FOUND,
    OutcomeKind.VALIDATION_ERROR,
    OutcomeKind.SERVICE_ERROR,
    OutcomeKind.STORE_UNAVAILABLE,
)


def get_dispatcher(request: Request) -> MovieDispatcher:
    return request.app.state.dispatcher


async def verify_api_key(request: Request, api_key: Optional[str] = Depends(api_key_header)) -> bool:
    """Pass/fail gate for write operations; no configured keys means open"""
    valid_keys = request.app.state.settings.api_keys
    if not valid_keys:
        return True
    if not api_key or api_key not in valid_keys:
        raise AuthenticationError()
    return True


def result_to_response(result: OperationResult) -> JSONResponse:
    status_code = STATUS_CODES[result.kind]

    if result.kind in ERROR_KINDS:
        error = CatalogException(
            result.message or result.kind.value,
            result.error_code or result.kind.value.upper(),
            result.details,
            status_code,
        )
        extra = {}
        if result.movie is not None:
            extra["movie"] = result.movie.model_dump(mode="json")
        if result.language:
            extra["language"] = result.language
        return create_error_response(error, extra=extra)

    content: Dict[str, Any]
    if result.language is not None:
        content = {
            "movie": result.movie.model_dump(mode="json") if result.movie else None,
            "language": result.language,
            "translatedText": result.translated_text,
            "fromCache": result.from_cache,
            "degraded": result.degraded,
        }
    elif result.movies is not None:
        content = {
            "movies": [movie.model_dump(mode="json") for movie in result.movies],
            "count": len(result.movies),
        }
        if result.degraded:
            content["degraded"] = True
    elif result.kind == OutcomeKind.CREATED:
        content = {"movieId": result.movie.id, "movie": result.movie.model_dump(mode="json")}
    elif result.kind == OutcomeKind.NO_OP:
        content = {"updated": False}
    else:
        content = {"movie": result.movie.model_dump(mode="json")}

    if result.message:
        content["message"] = result.message
    return JSONResponse(status_code=status_code, content=content)


async def _run(
    request: Request,
    dispatcher: MovieDispatcher,
    resource: str,
    path_params: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body = None
    if request.method in ("POST", "PUT"):
        body = await request.body() or None

    operation = OperationRequest(
        method=request.method,
        resource=resource,
        path_params=path_params or {},
        query_params=dict(request.query_params),
        body=body,
    )
    return result_to_response(await dispatcher.dispatch(operation))


@router.get("")
async def list_movies(request: Request, dispatcher: MovieDispatcher = Depends(get_dispatcher)):
    """
    List movies, or fetch one by query string.

    ?category=drama&year=1999&director=Mann&isAvailable=true  -> filtered list
    ?category=drama&id=m1                                     -> one movie
    ?id=m1                                                    -> one movie (table scan)
    """
    return await _run(request, dispatcher, "/movies")


@router.post("", dependencies=[Depends(verify_api_key)])
async def create_movie(request: Request, dispatcher: MovieDispatcher = Depends(get_dispatcher)):
    return await _run(request, dispatcher, "/movies")


@router.get("/translation")
async def translate_by_id(request: Request, dispatcher: MovieDispatcher = Depends(get_dispatcher)):
    """Translated description when only the movie id is known (?id=m1&language=fr)"""
    return await _run(request, dispatcher, "/movies/translation")


@router.get("/{category}/{movie_id}")
async def get_movie(
    category: str,
    movie_id: str,
    request: Request,
    dispatcher: MovieDispatcher = Depends(get_dispatcher),
):
    return await _run(request, dispatcher, "/movies/{category}/{id}", {"category": category, "id": movie_id})


@router.put("/{category}/{movie_id}", dependencies=[Depends(verify_api_key)])
async def update_movie(
    category: str,
    movie_id: str,
    request: Request,
    dispatcher: MovieDispatcher = Depends(get_dispatcher),
):
    return await _run(request, dispatcher, "/movies/{category}/{id}", {"category": category, "id": movie_id})


@router.get("/{category}/{movie_id}/translation")
async def get_translation(
    category: str,
    movie_id: str,
    request: Request,
    dispatcher: MovieDispatcher = Depends(get_dispatcher),
):
    """Description translated into ?language=, cached on the movie after the first call"""
    return await _run(
        request,
        dispatcher,
        "/movies/{category}/{id}/translation",
        {"category": category, "id": movie_id},
    )
