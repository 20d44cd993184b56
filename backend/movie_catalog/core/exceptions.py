"""
Centralized Exception Handling for the Movie Catalog Service

This module provides:
- Custom exception classes for the catalog's error taxonomy
- Standardized error response format
- Exception handler for FastAPI
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

__all__ = [
    "CatalogException",
    "AuthenticationError",
    "ValidationError",
    "TranslationServiceError",
    "create_error_response",
    "catalog_exception_handler",
    "handle_validation_error",
]


class CatalogException(Exception):
    """Base exception for the catalog service"""

    def __init__(self, message: str, error_code: str = "INTERNAL_ERROR", details: Dict[str, Any] = None, status_code: int = 500):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)


class AuthenticationError(CatalogException):
    """Missing or invalid API key"""

    def __init__(self, message: str = "Invalid or missing API key", details: Dict[str, Any] = None):
        super().__init__(message, "AUTH_ERROR", details, 401)


class ValidationError(CatalogException):
    """Request failed validation before any store access"""

    def __init__(self, message: str = "Validation failed", details: Dict[str, Any] = None):
        super().__init__(message, "VALIDATION_ERROR", details, 400)


class TranslationServiceError(CatalogException):
    """
    The external translator failed.

    `code` is the translator's own error code (e.g. the AWS error code)
    so callers can tell throttling apart from an unsupported language pair.
    """

    def __init__(self, message: str = "Translation service error", code: str = "TRANSLATION_FAILED",
                 details: Dict[str, Any] = None):
        self.code = code
        super().__init__(message, "TRANSLATION_SERVICE_ERROR", {**(details or {}), "code": code}, 502)


def create_error_response(
    error: CatalogException,
    status_code: Optional[int] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """Create standardized error response; `extra` adds top-level context such as the movie"""

    if status_code is None:
        status_code = error.status_code

    error_response = {
        "success": False,
        "error": {
            "code": error.error_code,
            "message": error.message,
            "details": error.details
        },
        "timestamp": datetime.utcnow().isoformat()
    }
    if extra:
        error_response.update(extra)

    log = logger.error if status_code >= 500 else logger.info
    log(f"Catalog error: {error.error_code} - {error.message}", extra={
        "error_code": error.error_code,
        "status_code": status_code,
        "details": error.details
    })

    return JSONResponse(
        status_code=status_code,
        content=error_response
    )


async def catalog_exception_handler(request, exc: CatalogException) -> JSONResponse:
    """Global exception handler for catalog exceptions"""
    return create_error_response(exc)


def handle_validation_error(field: str, message: str, value: Any = None) -> ValidationError:
    """Create a validation error for a specific field"""
    details = {
        "field": field,
        "value": value,
        "constraint": message
    }
    return ValidationError(f"Validation failed for field '{field}': {message}", details)
