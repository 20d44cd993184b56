"""
Movie Catalog Test Configuration and Fixtures

This module provides:
- Test environment variables (set before the app is imported)
- An in-memory stand-in for the boto3 DynamoDB Table resource
- A call-counting translator
- Store, translation cache, dispatcher and HTTP client fixtures
"""

import copy
import os
import sys
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import pytest
from boto3.dynamodb.conditions import And, Contains, Equals
from botocore.exceptions import ClientError

# Add backend to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["MOVIES_TABLE"] = "movies-test"
os.environ["TRANSLATION_MODE"] = "mock"
os.environ["LOG_LEVEL"] = "WARNING"

from fastapi.testclient import TestClient

from movie_catalog.core.config import Settings, TranslationFailurePolicy
from movie_catalog.core.exceptions import TranslationServiceError
from movie_catalog.database.movie_store import MovieStore
from movie_catalog.main import create_app
from movie_catalog.services.dispatcher import MovieDispatcher
from movie_catalog.services.translation_cache import TranslationCacheService
from movie_catalog.services.translator import Translator


def client_error(code: str, operation: str = "Operation", message: str = "boom") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


# =============================================================================
# In-memory DynamoDB Table
# =============================================================================

def _matches(condition, item: Dict[str, Any]) -> bool:
    """Evaluate the subset of boto3 conditions the store builds"""
    if condition is None:
        return True

    values = condition.get_expression()["values"]
    if isinstance(condition, And):
        return all(_matches(part, item) for part in values)

    attr, expected = values
    actual = item.get(attr.name)
    if isinstance(condition, Equals):
        return actual == expected
    if isinstance(condition, Contains):
        return actual is not None and expected in actual
    raise NotImplementedError(type(condition).__name__)


class FakeMoviesTable:
    """
    Just enough of boto3's Table resource for MovieStore.

    Items are kept sorted by (category, id) like a real table's key order.
    `fail_on` maps an operation name to the ClientError code it should raise;
    `scan_page_size` forces scan pagination.
    """

    def __init__(self, scan_page_size: Optional[int] = None):
        self.items: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.fail_on: Dict[str, str] = {}
        self.scan_page_size = scan_page_size

    def seed(self, *items: Dict[str, Any]) -> None:
        for item in items:
            item = {k: Decimal(str(v)) if isinstance(v, float) else v for k, v in item.items()}
            item.setdefault("translations", {})
            self.items[(item["category"], item["id"])] = item

    def item(self, category: str, movie_id: str) -> Optional[Dict[str, Any]]:
        return self.items.get((category, movie_id))

    def calls_to(self, operation: str) -> List[Dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == operation]

    def _record(self, operation: str, kwargs: Dict[str, Any]) -> None:
        self.calls.append((operation, kwargs))
        if operation in self.fail_on:
            raise client_error(self.fail_on[operation], operation)

    def _sorted(self) -> List[Dict[str, Any]]:
        return [self.items[key] for key in sorted(self.items)]

    def get_item(self, **kwargs):
        self._record("get_item", kwargs)
        key = kwargs["Key"]
        item = self.items.get((key["category"], key["id"]))
        return {"Item": copy.deepcopy(item)} if item else {}

    def put_item(self, **kwargs):
        self._record("put_item", kwargs)
        item = copy.deepcopy(kwargs["Item"])
        self.items[(item["category"], item["id"])] = item
        return {}

    def query(self, **kwargs):
        self._record("query", kwargs)
        key_condition = kwargs["KeyConditionExpression"]
        filter_expression = kwargs.get("FilterExpression")
        items = [
            copy.deepcopy(item) for item in self._sorted()
            if _matches(key_condition, item) and _matches(filter_expression, item)
        ]
        return {"Items": items, "Count": len(items)}

    def scan(self, **kwargs):
        self._record("scan", kwargs)
        ordered = self._sorted()

        start = 0
        start_key = kwargs.get("ExclusiveStartKey")
        if start_key:
            keys = sorted(self.items)
            start = keys.index((start_key["category"], start_key["id"])) + 1

        limit = kwargs.get("Limit") or self.scan_page_size or len(ordered)
        page = ordered[start:start + limit]
        filter_expression = kwargs.get("FilterExpression")

        response = {
            "Items": [copy.deepcopy(item) for item in page if _matches(filter_expression, item)],
            "ScannedCount": len(page),
        }
        if start + limit < len(ordered):
            last = page[-1]
            response["LastEvaluatedKey"] = {"category": last["category"], "id": last["id"]}
        return response

    def update_item(self, **kwargs):
        self._record("update_item", kwargs)
        key = (kwargs["Key"]["category"], kwargs["Key"]["id"])
        if key not in self.items:
            raise client_error("ConditionalCheckFailedException", "UpdateItem")

        names = kwargs["ExpressionAttributeNames"]
        values = kwargs["ExpressionAttributeValues"]
        item = self.items[key]
        for assignment in kwargs["UpdateExpression"][len("SET "):].split(", "):
            name_ref, value_ref = assignment.split(" = ")
            item[names[name_ref]] = copy.deepcopy(values[value_ref])

        return {"Attributes": copy.deepcopy(item)}


# =============================================================================
# Translator
# =============================================================================

class CountingTranslator(Translator):
    """Records every call; answers from `responses` or raises `error`"""

    def __init__(self, responses: Optional[Dict[Tuple[str, str], str]] = None):
        self.responses = responses or {}
        self.calls: List[Dict[str, str]] = []
        self.error: Optional[TranslationServiceError] = None

    def translate(self, text: str, target_language: str, source_language: str = "auto") -> str:
        self.calls.append({
            "text": text,
            "source_language": source_language,
            "target_language": target_language,
        })
        if self.error is not None:
            raise self.error
        return self.responses.get((text, target_language), f"{text} ({target_language})")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(
        ENVIRONMENT="test",
        MOVIES_TABLE="movies-test",
        TRANSLATION_MODE="mock",
        TRANSLATION_FAILURE_POLICY="strict",
        TRANSLATE_RETRY_WAIT_MAX=0,
        VALID_API_KEYS="",
    )


@pytest.fixture
def movies_table() -> FakeMoviesTable:
    return FakeMoviesTable()


@pytest.fixture
def sample_movies() -> List[Dict[str, Any]]:
    return [
        {
            "category": "action", "id": "m1", "title": "Heat", "director": "Michael Mann",
            "year": 1995, "rating": 8.3, "description": "Hello", "isAvailable": True,
            "translations": {},
        },
        {
            "category": "action", "id": "m2", "title": "Collateral", "director": "Michael Mann",
            "year": 2004, "rating": 7.5, "description": "A cab driver has a long night",
            "isAvailable": False, "translations": {"de": "Ein Taxifahrer hat eine lange Nacht"},
        },
        {
            "category": "drama", "id": "d1", "title": "Magnolia", "director": "Paul Thomas Anderson",
            "year": 1999, "rating": 8.0, "description": "Lives intertwine in the Valley",
            "isAvailable": True, "translations": {},
        },
        {
            "category": "drama", "id": "d2", "title": "The Insider", "director": "Michael Mann",
            "year": 1999, "rating": 7.8, "description": "", "isAvailable": True,
            "translations": {},
        },
    ]


@pytest.fixture
def seeded_table(movies_table, sample_movies) -> FakeMoviesTable:
    movies_table.seed(*sample_movies)
    return movies_table


@pytest.fixture
def store(settings, seeded_table) -> MovieStore:
    return MovieStore(settings, table=seeded_table)


@pytest.fixture
def translator() -> CountingTranslator:
    return CountingTranslator({("Hello", "fr"): "Bonjour"})


@pytest.fixture
def translation_cache(store, translator) -> TranslationCacheService:
    return TranslationCacheService(store, translator)


@pytest.fixture
def lenient_cache(store, translator) -> TranslationCacheService:
    return TranslationCacheService(store, translator, failure_policy=TranslationFailurePolicy.LENIENT)


@pytest.fixture
def dispatcher(store, translation_cache) -> MovieDispatcher:
    return MovieDispatcher(store, translation_cache)


@pytest.fixture
def app(settings, store, translator):
    return create_app(settings, store=store, translator=translator)


@pytest.fixture
def client(app):
    """Synchronous test client; `client.portal` runs coroutines on the app's loop"""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_table(sample_movies):
    """Build a seeded FakeMoviesTable with custom scan paging"""
    def _make(scan_page_size: Optional[int] = None) -> FakeMoviesTable:
        table = FakeMoviesTable(scan_page_size=scan_page_size)
        table.seed(*sample_movies)
        return table
    return _make
