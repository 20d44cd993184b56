"""
Translation Cache Service

Serves a movie's description in a requested language, caching each
translation inside the movie's own `translations` map:

1. Resolve the movie (by full key, or by id alone when no category is given)
2. Blank description -> "" without calling the translator
3. translations[language] present -> return it (no translator call, no write)
4. Otherwise translate, return the text, and persist the merged movie in a
   detached task whose failure is only logged

Entries are write-once per language: the cache is consulted before the
translator and nothing is written unless the translator succeeded.
Concurrent misses for the same language both translate and the last put
wins; there is no locking.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Set

from movie_catalog.core.config import TranslationFailurePolicy
from movie_catalog.core.exceptions import TranslationServiceError
from movie_catalog.database.movie_store import MovieStore, StoreStatus
from movie_catalog.models.movie import Movie
from movie_catalog.services.translator import AUTO_DETECT, Translator

logger = logging.getLogger(__name__)


class TranslationStatus(str, Enum):
    TRANSLATED = "translated"
    CACHE_HIT = "cache_hit"
    EMPTY_SOURCE = "empty_source"
    DEGRADED = "degraded"
    NOT_FOUND = "not_found"
    STORE_UNAVAILABLE = "store_unavailable"
    SERVICE_ERROR = "service_error"


@dataclass
class TranslationOutcome:
    """Result of a translated-description lookup"""
    status: TranslationStatus
    language: str
    movie: Optional[Movie] = None
    translated_text: Optional[str] = None
    error: Optional[TranslationServiceError] = None
    store_error: Optional[str] = None

    @property
    def from_cache(self) -> bool:
        return self.status == TranslationStatus.CACHE_HIT

    @property
    def degraded(self) -> bool:
        return self.status == TranslationStatus.DEGRADED


class TranslationCacheService:
    """Decides when to call the translator and merges results back into the movie"""

    def __init__(
        self,
        store: MovieStore,
        translator: Translator,
        failure_policy: TranslationFailurePolicy = TranslationFailurePolicy.STRICT,
    ):
        self.store = store
        self.translator = translator
        self.failure_policy = failure_policy
        # Strong references so pending writes are not garbage collected mid-flight
        self._pending_writes: Set[asyncio.Task] = set()

    async def get_translated_description(
        self,
        category: Optional[str],
        movie_id: str,
        language: str,
    ) -> TranslationOutcome:
        if category:
            lookup = await self.store.get_by_key(category, movie_id)
        else:
            lookup = await self.store.get_by_sort_key_only(movie_id)

        if lookup.status == StoreStatus.NOT_FOUND:
            return TranslationOutcome(status=TranslationStatus.NOT_FOUND, language=language)
        if lookup.status != StoreStatus.OK:
            return TranslationOutcome(
                status=TranslationStatus.STORE_UNAVAILABLE,
                language=language,
                store_error=lookup.error,
            )

        movie = lookup.movie

        if not movie.description or not movie.description.strip():
            return TranslationOutcome(
                status=TranslationStatus.EMPTY_SOURCE,
                language=language,
                movie=movie,
                translated_text="",
            )

        if language in movie.translations:
            logger.info("Cache HIT", extra={
                "movie_id": movie.id,
                "target_lang": language,
                "cache_result": "hit",
            })
            return TranslationOutcome(
                status=TranslationStatus.CACHE_HIT,
                language=language,
                movie=movie,
                translated_text=movie.translations[language],
            )

        logger.info("Cache MISS", extra={
            "movie_id": movie.id,
            "target_lang": language,
            "cache_result": "miss",
        })

        try:
            translated = await asyncio.to_thread(
                self.translator.translate,
                text=movie.description,
                source_language=AUTO_DETECT,
                target_language=language,
            )
        except TranslationServiceError as e:
            return self._translation_failed(movie, language, e)

        updated = movie.model_copy(update={
            "translations": {**movie.translations, language: translated},
        })
        self._schedule_write(updated)

        return TranslationOutcome(
            status=TranslationStatus.TRANSLATED,
            language=language,
            movie=updated,
            translated_text=translated,
        )

    def _translation_failed(
        self,
        movie: Movie,
        language: str,
        error: TranslationServiceError,
    ) -> TranslationOutcome:
        """Nothing is cached on failure; the policy decides what the caller sees"""
        logger.error(f"Translation failed for movie {movie.id}: {error.message}", extra={
            "movie_id": movie.id,
            "target_lang": language,
            "translator_code": error.code,
            "failure_policy": self.failure_policy.value,
        })

        if self.failure_policy == TranslationFailurePolicy.LENIENT:
            return TranslationOutcome(
                status=TranslationStatus.DEGRADED,
                language=language,
                movie=movie,
                translated_text=movie.description,
                error=error,
            )

        return TranslationOutcome(
            status=TranslationStatus.SERVICE_ERROR,
            language=language,
            movie=movie,
            error=error,
        )

    def _schedule_write(self, movie: Movie) -> None:
        """Fire-and-forget put of the merged movie; the response never waits on it"""
        task = asyncio.create_task(self._write_translation(movie))
        self._pending_writes.add(task)
        task.add_done_callback(self._write_done)

    async def _write_translation(self, movie: Movie) -> None:
        result = await self.store.insert(movie)
        if not result.ok:
            logger.warning(
                f"Translation cache write failed for {movie.category}/{movie.id} "
                f"(next read will translate again)",
                extra={"movie_id": movie.id, "error_code": result.error},
            )

    def _write_done(self, task: asyncio.Task) -> None:
        self._pending_writes.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Translation cache write crashed", exc_info=error)

    @property
    def pending_writes(self) -> int:
        return len(self._pending_writes)

    async def drain(self) -> None:
        """Wait for in-flight cache writes (shutdown hook and tests)"""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)
