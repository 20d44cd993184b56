#!/usr/bin/env python3
"""
Local development server for the Movie Catalog Service

Runs the same FastAPI app the Lambda function wraps. Point DYNAMODB_ENDPOINT
at DynamoDB Local and set TRANSLATION_MODE=mock to run without AWS.
"""

import logging
import os

import uvicorn

from movie_catalog.core.config import get_settings

logger = logging.getLogger(__name__)


def main():
    settings = get_settings()

    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))
    reload = settings.ENVIRONMENT == "development"

    logger.info(f"Table: {settings.MOVIES_TABLE} ({settings.DYNAMODB_ENDPOINT or settings.AWS_REGION})")
    logger.info(f"Translation mode: {settings.TRANSLATION_MODE.value}, "
                f"failure policy: {settings.TRANSLATION_FAILURE_POLICY.value}")

    uvicorn.run(
        "movie_catalog.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="debug" if reload else "info",
    )


if __name__ == "__main__":
    main()
