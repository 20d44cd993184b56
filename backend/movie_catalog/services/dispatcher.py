"""
Movie Dispatcher

Maps a normalized operation request (method, resource, path/query params,
body) onto one catalog operation and returns a typed OperationResult. HTTP
status codes and headers belong to the routing layer; nothing here raises
for expected failures.

    GET  .../translation            -> translate(category?, id, language)
    GET  with category and id       -> get_movie
    GET  with id only               -> get_movie_by_id (table scan)
    GET  otherwise                  -> list_movies(category?, filters)
    POST                            -> create_movie(payload)
    PUT                             -> update_movie(category, id, payload)
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from movie_catalog.core.exceptions import ValidationError, handle_validation_error
from movie_catalog.database.movie_store import MovieStore, StoreResult, StoreStatus
from movie_catalog.models.movie import ListFilters, Movie, MovieCreate, MovieUpdate
from movie_catalog.services.translation_cache import (
    TranslationCacheService,
    TranslationStatus,
)

logger = logging.getLogger(__name__)

LANGUAGE_CODE_PATTERN = re.compile(r"^[a-z]{2,3}(-[A-Za-z]{2,4})?$")

_TRUE_VALUES = ("true", "1", "yes")
_FALSE_VALUES = ("false", "0", "no")

REQUIRED_CREATE_FIELDS = ("category", "title", "description")


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    CREATED = "created"
    NO_OP = "no_op"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    SERVICE_ERROR = "service_error"
    STORE_UNAVAILABLE = "store_unavailable"


@dataclass
class OperationRequest:
    """What the routing layer hands the core"""
    method: str
    resource: str = "/movies"
    path_params: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, str] = field(default_factory=dict)
    body: Union[str, bytes, Dict[str, Any], None] = None


@dataclass
class OperationResult:
    """What the core hands back to the routing layer"""
    kind: OutcomeKind
    message: Optional[str] = None
    movie: Optional[Movie] = None
    movies: Optional[List[Movie]] = None
    translated_text: Optional[str] = None
    language: Optional[str] = None
    from_cache: bool = False
    degraded: bool = False
    error_code: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


def _validation_result(error: ValidationError) -> OperationResult:
    return OperationResult(
        kind=OutcomeKind.VALIDATION_ERROR,
        message=error.message,
        error_code=error.error_code,
        details=error.details,
    )


def _store_unavailable(error_code: Optional[str]) -> OperationResult:
    return OperationResult(
        kind=OutcomeKind.STORE_UNAVAILABLE,
        message="Movie store is temporarily unavailable",
        error_code="STORE_UNAVAILABLE",
        details={"store_error": error_code},
    )


def _store_failure(result: StoreResult) -> OperationResult:
    """Create/Update write failures: a rejected item is the caller's fault, anything else is an outage"""
    if result.status == StoreStatus.INVALID:
        return _validation_result(ValidationError(
            "Movie contains values DynamoDB cannot store",
            {"store_error": result.error},
        ))
    return _store_unavailable(result.error)


def _pydantic_to_validation_error(message: str, error: PydanticValidationError) -> ValidationError:
    fields = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in error.errors()
    ]
    return ValidationError(message, {"fields": fields})


def parse_body(body: Union[str, bytes, Dict[str, Any], None]) -> Dict[str, Any]:
    """Decode a request body into a JSON object; absent body means {}"""
    if body is None or body == "" or body == b"":
        return {}
    if isinstance(body, (str, bytes)):
        try:
            body = json.loads(body)
        except ValueError:
            raise ValidationError("Malformed JSON request body")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def parse_filters(params: Dict[str, str]) -> ListFilters:
    """Build List filters from query string values"""
    year = params.get("year")
    director = params.get("director")
    available = params.get("isAvailable")

    filters = ListFilters()
    if year:
        try:
            filters.year = int(year)
        except ValueError:
            raise handle_validation_error("year", "must be an integer", year)
    if director:
        filters.director = director
    if available:
        lowered = available.lower()
        if lowered in _TRUE_VALUES:
            filters.isAvailable = True
        elif lowered in _FALSE_VALUES:
            filters.isAvailable = False
        else:
            raise handle_validation_error("isAvailable", "must be true or false", available)
    return filters


class MovieDispatcher:
    """Routes operation requests to the store and the translation cache"""

    def __init__(self, store: MovieStore, translation_cache: TranslationCacheService):
        self.store = store
        self.translation_cache = translation_cache

    async def dispatch(self, request: OperationRequest) -> OperationResult:
        method = request.method.upper()
        try:
            if method == "GET":
                return await self._dispatch_get(request)
            if method == "POST":
                return await self.create_movie(parse_body(request.body))
            if method == "PUT":
                return await self.update_movie(
                    self._param(request, "category"),
                    self._param(request, "id"),
                    parse_body(request.body),
                )
        except ValidationError as e:
            return _validation_result(e)

        return OperationResult(
            kind=OutcomeKind.VALIDATION_ERROR,
            message=f"Unsupported method: {request.method}",
            error_code="UNSUPPORTED_METHOD",
            details={"method": request.method},
        )

    @staticmethod
    def _param(request: OperationRequest, name: str) -> Optional[str]:
        """Path parameters win over query parameters; blanks count as absent"""
        value = request.path_params.get(name) or request.query_params.get(name)
        if value is None:
            return None
        value = value.strip()
        return value or None

    async def _dispatch_get(self, request: OperationRequest) -> OperationResult:
        category = self._param(request, "category")
        movie_id = self._param(request, "id")

        if request.resource.rstrip("/").endswith("/translation"):
            return await self.translate(category, movie_id, self._param(request, "language"))
        if movie_id and category:
            return await self.get_movie(category, movie_id)
        if movie_id:
            return await self.get_movie_by_id(movie_id)
        return await self.list_movies(category, parse_filters(request.query_params))

    async def list_movies(self, category: Optional[str], filters: Optional[ListFilters] = None) -> OperationResult:
        if category:
            result = await self.store.list_by_partition(category, filters)
        else:
            result = await self.store.list_all(filters)

        if result.status == StoreStatus.UNAVAILABLE:
            # An empty list is a safe answer for a listing, but flagged as degraded
            return OperationResult(
                kind=OutcomeKind.SUCCESS,
                movies=[],
                degraded=True,
                message="Movie store is temporarily unavailable; no movies returned",
                error_code="STORE_UNAVAILABLE",
            )
        return OperationResult(kind=OutcomeKind.SUCCESS, movies=result.movies)

    async def get_movie(self, category: str, movie_id: str) -> OperationResult:
        return self._single(await self.store.get_by_key(category, movie_id), movie_id)

    async def get_movie_by_id(self, movie_id: str) -> OperationResult:
        return self._single(await self.store.get_by_sort_key_only(movie_id), movie_id)

    @staticmethod
    def _not_found(movie_id: str) -> OperationResult:
        return OperationResult(
            kind=OutcomeKind.NOT_FOUND,
            message=f"Movie {movie_id} not found",
            error_code="NOT_FOUND",
            details={"id": movie_id},
        )

    def _single(self, result: StoreResult, movie_id: str) -> OperationResult:
        if result.status == StoreStatus.NOT_FOUND:
            return self._not_found(movie_id)
        if result.status != StoreStatus.OK:
            return _store_unavailable(result.error)
        return OperationResult(kind=OutcomeKind.SUCCESS, movie=result.movie)

    async def create_movie(self, payload: Dict[str, Any]) -> OperationResult:
        """Validate then put; no store call is made for an invalid payload"""
        try:
            create = MovieCreate(**payload)
        except PydanticValidationError as e:
            missing_required = all(err["loc"][0] in REQUIRED_CREATE_FIELDS for err in e.errors())
            message = "Title, category and description are required" if missing_required else "Invalid movie payload"
            return _validation_result(_pydantic_to_validation_error(message, e))

        movie = create.to_movie()
        result = await self.store.insert(movie)
        if not result.ok:
            return _store_failure(result)

        logger.info(f"Created movie {movie.category}/{movie.id}")
        return OperationResult(kind=OutcomeKind.CREATED, message="Movie created", movie=movie)

    async def update_movie(
        self,
        category: Optional[str],
        movie_id: Optional[str],
        payload: Dict[str, Any],
    ) -> OperationResult:
        if not category or not movie_id:
            return _validation_result(
                ValidationError("Both category and id are required to update a movie")
            )

        try:
            update = MovieUpdate(**payload)
        except PydanticValidationError as e:
            return _validation_result(_pydantic_to_validation_error("Invalid update payload", e))

        result = await self.store.update_fields(category, movie_id, update.changed_fields())

        if result.status == StoreStatus.NO_OP:
            return OperationResult(kind=OutcomeKind.NO_OP, message="No updatable fields supplied")
        if result.status == StoreStatus.NOT_FOUND:
            return self._single(result, movie_id)
        if result.status != StoreStatus.OK:
            return _store_failure(result)
        return OperationResult(kind=OutcomeKind.SUCCESS, message="Movie updated", movie=result.movie)

    async def translate(
        self,
        category: Optional[str],
        movie_id: Optional[str],
        language: Optional[str],
    ) -> OperationResult:
        if not movie_id:
            return _validation_result(handle_validation_error("id", "is required", movie_id))
        if not language:
            return _validation_result(handle_validation_error("language", "is required", language))
        if not LANGUAGE_CODE_PATTERN.match(language):
            return _validation_result(
                handle_validation_error("language", "must be a language code such as 'fr' or 'zh-TW'", language)
            )

        outcome = await self.translation_cache.get_translated_description(category, movie_id, language)

        if outcome.status == TranslationStatus.NOT_FOUND:
            return self._not_found(movie_id)
        if outcome.status == TranslationStatus.STORE_UNAVAILABLE:
            return _store_unavailable(outcome.store_error)
        if outcome.status == TranslationStatus.SERVICE_ERROR:
            return OperationResult(
                kind=OutcomeKind.SERVICE_ERROR,
                message=outcome.error.message,
                movie=outcome.movie,
                language=language,
                error_code=outcome.error.error_code,
                details=outcome.error.details,
            )

        return OperationResult(
            kind=OutcomeKind.SUCCESS,
            movie=outcome.movie,
            translated_text=outcome.translated_text,
            language=language,
            from_cache=outcome.from_cache,
            degraded=outcome.degraded,
            message="Translation unavailable; returning original description" if outcome.degraded else None,
        )
