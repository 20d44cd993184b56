"""
Movie Schema Definitions

DynamoDB Table: MOVIES_TABLE (movies-dev by default)
Partition Key: category (String)
Sort Key: id (String)

The `translations` attribute is a map of language code -> translated
description, filled lazily by the Translate operation.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Attributes Update may touch; category/id form the key and never change
UPDATABLE_FIELDS = (
    "title",
    "director",
    "year",
    "rating",
    "description",
    "isAvailable",
    "translations",
)

# DynamoDB numbers hold at most 38 significant digits; years stay four-digit
YEAR_MIN = 1
YEAR_MAX = 9999


def float_to_decimal(obj: Any) -> Any:
    """Convert float values to Decimal recursively for DynamoDB compatibility"""
    if isinstance(obj, float):
        return Decimal(str(obj))
    elif isinstance(obj, dict):
        return {k: float_to_decimal(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [float_to_decimal(item) for item in obj]
    return obj


def decimal_to_number(obj: Any) -> Any:
    """Convert DynamoDB Decimals back to int (when integral) or float"""
    if isinstance(obj, Decimal):
        return int(obj) if obj == obj.to_integral_value() else float(obj)
    elif isinstance(obj, dict):
        return {k: decimal_to_number(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [decimal_to_number(item) for item in obj]
    return obj


class Movie(BaseModel):
    """A catalog record as stored in DynamoDB"""
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "category": "action",
                "id": "5b0f7a4e-8f63-4bd4-9a7e-2f7f4c2f3a11",
                "title": "Heat",
                "director": "Michael Mann",
                "year": 1995,
                "rating": 8.3,
                "description": "A group of professional bank robbers start to feel the heat.",
                "isAvailable": True,
                "translations": {"fr": "Un groupe de braqueurs professionnels commence à sentir la pression."}
            }
        },
    )

    category: str = Field(..., description="Partition key")
    id: str = Field(..., description="Sort key")
    title: str = Field(default="", description="Movie title")
    director: str = Field(default="Unknown", description="Director name")
    year: int = Field(default_factory=lambda: datetime.utcnow().year, description="Release year")
    rating: float = Field(default=0, description="Rating")
    description: str = Field(default="", description="Source text for translation")
    isAvailable: bool = Field(default=True, description="Availability flag")
    translations: Dict[str, str] = Field(default_factory=dict, description="Language code -> translated description")

    @field_validator("translations", mode="before")
    @classmethod
    def _none_translations(cls, value):
        return {} if value is None else value


class MovieCreate(BaseModel):
    """Create payload. Defaults mirror what the catalog assigns on creation."""
    model_config = ConfigDict(extra="ignore")

    category: str
    title: str
    description: str
    director: str = "Unknown"
    year: Optional[int] = Field(default=None, ge=YEAR_MIN, le=YEAR_MAX)
    rating: float = Field(default=0, allow_inf_nan=False)
    isAvailable: bool = True

    @field_validator("category", "title", "description")
    @classmethod
    def _required_non_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value

    def to_movie(self) -> Movie:
        return Movie(
            category=self.category,
            id=str(uuid.uuid4()),
            title=self.title,
            director=self.director or "Unknown",
            year=self.year or datetime.utcnow().year,
            rating=self.rating or 0,
            description=self.description,
            isAvailable=self.isAvailable,
            translations={},
        )


class MovieUpdate(BaseModel):
    """Partial update payload; unknown keys (including the key attributes) are dropped"""
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    director: Optional[str] = None
    year: Optional[int] = Field(default=None, ge=YEAR_MIN, le=YEAR_MAX)
    rating: Optional[float] = Field(default=None, allow_inf_nan=False)
    description: Optional[str] = None
    isAvailable: Optional[bool] = None
    translations: Optional[Dict[str, str]] = None

    def changed_fields(self) -> Dict[str, Any]:
        """Fields actually supplied with a value; blank strings count as not supplied"""
        return {
            name: value for name, value in self.model_dump(exclude_none=True).items()
            if not (isinstance(value, str) and not value.strip())
        }


class ListFilters(BaseModel):
    """Conjunction of optional predicates for List"""
    year: Optional[int] = None          # equality
    director: Optional[str] = None      # contains
    isAvailable: Optional[bool] = None  # equality

    def is_empty(self) -> bool:
        return self.year is None and not self.director and self.isAvailable is None


def movie_to_dynamodb(movie: Movie) -> Dict[str, Any]:
    """Convert Movie model to a DynamoDB resource-layer item"""
    return float_to_decimal(movie.model_dump())


def dynamodb_to_movie(item: Dict[str, Any]) -> Movie:
    """Convert DynamoDB resource-layer item to Movie model"""
    return Movie(**decimal_to_number(item))
