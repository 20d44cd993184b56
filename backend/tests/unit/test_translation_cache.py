"""
Unit tests for the Translation Cache Service

Tests the translate-on-read protocol:
- Cache hits never call the translator or write
- Blank descriptions short-circuit to ""
- Misses translate, return immediately and persist in the background
- Translator failures are never cached
- Store failures surface as their own outcome
"""

import asyncio
import logging
import threading

import pytest

from movie_catalog.core.exceptions import TranslationServiceError
from movie_catalog.services.translation_cache import TranslationStatus


class TestCacheHit:
    """translations[language] already present"""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cached_translation_returned_without_translator_call(
        self, translation_cache, translator, seeded_table
    ):
        outcome = await translation_cache.get_translated_description("action", "m2", "de")

        assert outcome.status == TranslationStatus.CACHE_HIT
        assert outcome.from_cache is True
        assert outcome.translated_text == "Ein Taxifahrer hat eine lange Nacht"
        assert translator.calls == []
        assert seeded_table.calls_to("put_item") == []
        assert translation_cache.pending_writes == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_repeated_reads_are_idempotent(self, translation_cache, translator):
        first = await translation_cache.get_translated_description("action", "m1", "fr")
        await translation_cache.drain()
        second = await translation_cache.get_translated_description("action", "m1", "fr")

        assert first.translated_text == second.translated_text == "Bonjour"
        assert first.from_cache is False
        assert second.from_cache is True
        assert len(translator.calls) == 1


class TestEmptyDescription:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_blank_description_returns_empty_text(self, translation_cache, translator, seeded_table):
        outcome = await translation_cache.get_translated_description("drama", "d2", "fr")

        assert outcome.status == TranslationStatus.EMPTY_SOURCE
        assert outcome.translated_text == ""
        assert translator.calls == []
        assert seeded_table.calls_to("put_item") == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_blank_description_ignores_existing_cache_entry(self, translation_cache, translator, movies_table):
        movies_table.seed({
            "category": "drama", "id": "d3", "title": "Blank", "description": "   ",
            "translations": {"fr": "stale"},
        })

        outcome = await translation_cache.get_translated_description("drama", "d3", "fr")

        assert outcome.translated_text == ""
        assert translator.calls == []


class TestCacheMiss:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_translator_called_with_auto_detect(self, translation_cache, translator):
        outcome = await translation_cache.get_translated_description("action", "m1", "fr")

        assert outcome.status == TranslationStatus.TRANSLATED
        assert outcome.translated_text == "Bonjour"
        assert translator.calls == [
            {"text": "Hello", "source_language": "auto", "target_language": "fr"}
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_translation_persisted_into_movie(self, translation_cache, seeded_table):
        await translation_cache.get_translated_description("action", "m1", "fr")
        await translation_cache.drain()

        stored = seeded_table.item("action", "m1")
        assert stored["translations"] == {"fr": "Bonjour"}
        assert stored["description"] == "Hello"
        assert len(seeded_table.calls_to("put_item")) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_read_returns_before_cache_write(self, translation_cache, seeded_table):
        outcome = await translation_cache.get_translated_description("action", "m1", "fr")

        assert outcome.translated_text == "Bonjour"
        assert translation_cache.pending_writes == 1
        assert seeded_table.calls_to("put_item") == []
        assert seeded_table.item("action", "m1")["translations"] == {}

        await translation_cache.drain()

        assert translation_cache.pending_writes == 0
        assert seeded_table.item("action", "m1")["translations"] == {"fr": "Bonjour"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_slow_cache_write_does_not_delay_read(self, translation_cache, seeded_table):
        write_started = threading.Event()
        release_write = threading.Event()
        real_put_item = seeded_table.put_item

        def slow_put_item(**kwargs):
            write_started.set()
            release_write.wait(timeout=5)
            return real_put_item(**kwargs)

        seeded_table.put_item = slow_put_item
        try:
            outcome = await asyncio.wait_for(
                translation_cache.get_translated_description("action", "m1", "fr"), timeout=1
            )
            assert outcome.translated_text == "Bonjour"
            assert not release_write.is_set()
        finally:
            release_write.set()
            await translation_cache.drain()

        assert write_started.is_set()
        assert seeded_table.item("action", "m1")["translations"] == {"fr": "Bonjour"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_merge_keeps_other_languages(self, translation_cache, seeded_table):
        outcome = await translation_cache.get_translated_description("action", "m2", "fr")
        await translation_cache.drain()

        assert outcome.movie.translations == {
            "de": "Ein Taxifahrer hat eine lange Nacht",
            "fr": "A cab driver has a long night (fr)",
        }
        assert seeded_table.item("action", "m2")["translations"]["de"] == "Ein Taxifahrer hat eine lange Nacht"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_write_failure_does_not_fail_read(self, translation_cache, seeded_table, caplog):
        seeded_table.fail_on["put_item"] = "ProvisionedThroughputExceededException"

        with caplog.at_level(logging.WARNING, logger="movie_catalog.services.translation_cache"):
            outcome = await translation_cache.get_translated_description("action", "m1", "fr")
            await translation_cache.drain()

        assert outcome.status == TranslationStatus.TRANSLATED
        assert outcome.translated_text == "Bonjour"
        assert seeded_table.item("action", "m1")["translations"] == {}
        assert "Translation cache write failed" in caplog.text

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_resolves_by_id_when_category_missing(self, translation_cache, translator, seeded_table):
        outcome = await translation_cache.get_translated_description(None, "m1", "fr")

        assert outcome.translated_text == "Bonjour"
        assert outcome.movie.category == "action"
        assert seeded_table.calls_to("get_item") == []
        assert len(seeded_table.calls_to("scan")) >= 1


class TestTranslatorFailure:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_strict_policy_reports_service_error(self, translation_cache, translator, seeded_table):
        translator.error = TranslationServiceError("unsupported", code="UnsupportedLanguagePairException")

        outcome = await translation_cache.get_translated_description("action", "m1", "xx")
        await translation_cache.drain()

        assert outcome.status == TranslationStatus.SERVICE_ERROR
        assert outcome.error.code == "UnsupportedLanguagePairException"
        assert outcome.movie.id == "m1"
        assert outcome.movie.translations == {}
        assert seeded_table.item("action", "m1")["translations"] == {}
        assert seeded_table.calls_to("put_item") == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_lenient_policy_returns_original_text(self, lenient_cache, translator, seeded_table):
        translator.error = TranslationServiceError("throttled", code="ThrottlingException")

        outcome = await lenient_cache.get_translated_description("action", "m1", "fr")
        await lenient_cache.drain()

        assert outcome.status == TranslationStatus.DEGRADED
        assert outcome.degraded is True
        assert outcome.translated_text == "Hello"
        assert seeded_table.item("action", "m1")["translations"] == {}
        assert seeded_table.calls_to("put_item") == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_then_success_caches_real_translation(self, translation_cache, translator, seeded_table):
        translator.error = TranslationServiceError("throttled", code="ThrottlingException")
        await translation_cache.get_translated_description("action", "m1", "fr")

        translator.error = None
        outcome = await translation_cache.get_translated_description("action", "m1", "fr")
        await translation_cache.drain()

        assert outcome.translated_text == "Bonjour"
        assert seeded_table.item("action", "m1")["translations"] == {"fr": "Bonjour"}


class TestLookupFailures:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_movie_is_not_found(self, translation_cache, translator):
        outcome = await translation_cache.get_translated_description("action", "missing", "fr")

        assert outcome.status == TranslationStatus.NOT_FOUND
        assert translator.calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_store_outage_is_distinct_from_not_found(self, translation_cache, translator, seeded_table):
        seeded_table.fail_on["get_item"] = "InternalServerError"

        outcome = await translation_cache.get_translated_description("action", "m1", "fr")

        assert outcome.status == TranslationStatus.STORE_UNAVAILABLE
        assert outcome.store_error == "InternalServerError"
        assert translator.calls == []
