"""
Movie Store - DynamoDB adapter for the movies table

Every public method is a coroutine that returns a StoreResult and never
raises for store-side failures: botocore errors are logged and reported as
StoreStatus.UNAVAILABLE so callers can pick their own fallback instead of
confusing an outage with an empty table. Items the serializer rejects
(NaN, out-of-range numbers) come back as StoreStatus.INVALID, and stored
items that no longer fit the Movie model are skipped with a warning.
"""

import asyncio
import decimal
import functools
import logging
import operator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError as PydanticValidationError

from movie_catalog.core.config import Settings
from movie_catalog.models.movie import (
    UPDATABLE_FIELDS,
    ListFilters,
    Movie,
    dynamodb_to_movie,
    float_to_decimal,
    movie_to_dynamodb,
)

logger = logging.getLogger(__name__)


class StoreStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    NO_OP = "no_op"
    INVALID = "invalid"          # item rejected by the DynamoDB serializer
    UNAVAILABLE = "unavailable"


@dataclass
class StoreResult:
    """Result from a movie store operation"""
    status: StoreStatus
    movie: Optional[Movie] = None
    movies: List[Movie] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == StoreStatus.OK


def _error_code(error: Exception) -> str:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "ClientError")
    return type(error).__name__


class MovieStore:
    """
    Movie store backed by a DynamoDB table keyed on (category, id)
    """

    def __init__(self, settings: Settings, table: Any = None):
        """
        Args:
            settings: Process configuration (table name, region, endpoint, page size)
            table: Pre-built boto3 Table resource; built from settings when omitted
        """
        self.page_size = settings.LIST_PAGE_SIZE

        if table is None:
            kwargs = {"region_name": settings.AWS_REGION}
            if settings.DYNAMODB_ENDPOINT:
                kwargs["endpoint_url"] = settings.DYNAMODB_ENDPOINT
            dynamodb = boto3.resource("dynamodb", **kwargs)
            table = dynamodb.Table(settings.MOVIES_TABLE)

        self.table = table
        logger.info(f"Movie store bound to table {settings.MOVIES_TABLE}")

    def _unavailable(self, operation: str, error: Exception, **context) -> StoreResult:
        code = _error_code(error)
        logger.error(f"DynamoDB {operation} failed: {error}", extra={
            "operation": operation,
            "error_code": code,
            **context,
        })
        return StoreResult(status=StoreStatus.UNAVAILABLE, error=code)

    def _rejected(self, operation: str, error: Exception, **context) -> StoreResult:
        logger.warning(f"DynamoDB {operation} rejected the item: {error!r}", extra={
            "operation": operation,
            "error_code": type(error).__name__,
            **context,
        })
        return StoreResult(status=StoreStatus.INVALID, error=type(error).__name__)

    @staticmethod
    def _to_movie(item: Dict[str, Any]) -> Optional[Movie]:
        """None (and a warning) for a stored item that no longer fits the Movie model"""
        try:
            return dynamodb_to_movie(item)
        except PydanticValidationError as e:
            logger.warning(
                f"Skipping unreadable movie {item.get('category')}/{item.get('id')}: {e.error_count()} invalid field(s)",
                extra={"movie_id": item.get("id"), "errors": [err["loc"] for err in e.errors()]},
            )
            return None

    def _movies(self, items: List[Dict[str, Any]]) -> List[Movie]:
        return [movie for movie in map(self._to_movie, items) if movie is not None]

    def _found(self, item: Dict[str, Any]) -> StoreResult:
        movie = self._to_movie(item)
        if movie is None:
            return StoreResult(status=StoreStatus.UNAVAILABLE, error="InvalidItem")
        return StoreResult(status=StoreStatus.OK, movie=movie)

    @staticmethod
    def _build_filter(filters: Optional[ListFilters]):
        """AND together whichever filter predicates are set"""
        if filters is None or filters.is_empty():
            return None

        conditions = []
        if filters.year is not None:
            conditions.append(Attr("year").eq(filters.year))
        if filters.director:
            conditions.append(Attr("director").contains(filters.director))
        if filters.isAvailable is not None:
            conditions.append(Attr("isAvailable").eq(filters.isAvailable))

        if not conditions:
            return None
        return functools.reduce(operator.and_, conditions)

    async def get_by_key(self, category: str, movie_id: str) -> StoreResult:
        """Exact point lookup on the full primary key"""
        try:
            response = await asyncio.to_thread(
                self.table.get_item,
                Key={"category": category, "id": movie_id}
            )
        except (ClientError, BotoCoreError) as e:
            return self._unavailable("get_item", e, category=category, movie_id=movie_id)

        item = response.get("Item")
        if not item:
            return StoreResult(status=StoreStatus.NOT_FOUND)
        return self._found(item)

    async def get_by_sort_key_only(self, movie_id: str) -> StoreResult:
        """
        Find a movie when only its id is known.

        This scans the whole table page by page until the first match, so it
        costs O(table size) in read capacity. Ids are not guaranteed unique
        across categories; the first match wins. A GSI on `id` would turn
        this into a query if the access pattern becomes hot.
        """
        scan_kwargs: Dict[str, Any] = {"FilterExpression": Attr("id").eq(movie_id)}
        pages = 0

        try:
            while True:
                response = await asyncio.to_thread(self.table.scan, **scan_kwargs)
                pages += 1

                items = response.get("Items", [])
                if items:
                    logger.debug(f"Found movie {movie_id} after scanning {pages} page(s)")
                    return self._found(items[0])

                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    return StoreResult(status=StoreStatus.NOT_FOUND)
                scan_kwargs["ExclusiveStartKey"] = last_key

        except (ClientError, BotoCoreError) as e:
            return self._unavailable("scan", e, movie_id=movie_id, pages=pages)

    async def list_by_partition(self, category: str, filters: Optional[ListFilters] = None) -> StoreResult:
        """Query every movie in one category, optionally filtered"""
        query_kwargs: Dict[str, Any] = {"KeyConditionExpression": Key("category").eq(category)}
        filter_expression = self._build_filter(filters)
        if filter_expression is not None:
            query_kwargs["FilterExpression"] = filter_expression

        try:
            response = await asyncio.to_thread(self.table.query, **query_kwargs)
        except (ClientError, BotoCoreError) as e:
            return self._unavailable("query", e, category=category)

        return StoreResult(status=StoreStatus.OK, movies=self._movies(response.get("Items", [])))

    async def list_all(self, filters: Optional[ListFilters] = None) -> StoreResult:
        """
        Scan one page of the table.

        Limit caps the items DynamoDB evaluates, so with filters the page
        may hold fewer than page_size matches. Not a full-table listing.
        """
        scan_kwargs: Dict[str, Any] = {"Limit": self.page_size}
        filter_expression = self._build_filter(filters)
        if filter_expression is not None:
            scan_kwargs["FilterExpression"] = filter_expression

        try:
            response = await asyncio.to_thread(self.table.scan, **scan_kwargs)
        except (ClientError, BotoCoreError) as e:
            return self._unavailable("scan", e)

        return StoreResult(status=StoreStatus.OK, movies=self._movies(response.get("Items", [])))

    async def insert(self, movie: Movie) -> StoreResult:
        """Put the whole movie; an existing item with the same key is overwritten"""
        try:
            await asyncio.to_thread(self.table.put_item, Item=movie_to_dynamodb(movie))
        except (ClientError, BotoCoreError) as e:
            return self._unavailable("put_item", e, category=movie.category, movie_id=movie.id)
        except (TypeError, decimal.DecimalException) as e:
            return self._rejected("put_item", e, category=movie.category, movie_id=movie.id)

        logger.info(f"Stored movie {movie.category}/{movie.id}")
        return StoreResult(status=StoreStatus.OK, movie=movie)

    async def update_fields(self, category: str, movie_id: str, partial: Dict[str, Any]) -> StoreResult:
        """
        SET only the whitelisted attributes present in `partial`.

        Returns NO_OP without touching the table when nothing updatable was
        supplied, and NOT_FOUND when the key does not exist (the condition
        keeps UpdateItem from creating a new item).
        """
        fields = {
            name: value for name, value in partial.items()
            if name in UPDATABLE_FIELDS and value is not None
        }
        if not fields:
            return StoreResult(status=StoreStatus.NO_OP)

        names = {"#category": "category", "#id": "id"}
        values = {}
        assignments = []
        for index, (name, value) in enumerate(fields.items()):
            names[f"#f{index}"] = name
            values[f":v{index}"] = float_to_decimal(value)
            assignments.append(f"#f{index} = :v{index}")

        try:
            response = await asyncio.to_thread(
                self.table.update_item,
                Key={"category": category, "id": movie_id},
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression="attribute_exists(#category) AND attribute_exists(#id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if _error_code(e) == "ConditionalCheckFailedException":
                return StoreResult(status=StoreStatus.NOT_FOUND)
            return self._unavailable("update_item", e, category=category, movie_id=movie_id)
        except BotoCoreError as e:
            return self._unavailable("update_item", e, category=category, movie_id=movie_id)
        except (TypeError, decimal.DecimalException) as e:
            return self._rejected("update_item", e, category=category, movie_id=movie_id)

        logger.info(f"Updated movie {category}/{movie_id}: {sorted(fields)}")
        return self._found(response["Attributes"])
