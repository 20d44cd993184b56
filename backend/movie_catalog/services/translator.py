"""
Translator clients

The translation cache only needs text-in/text-out. AmazonTranslator wraps
Amazon Translate's TranslateText; MockTranslator keeps local development and
demos free of AWS charges.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from movie_catalog.core.config import Settings, TranslationMode
from movie_catalog.core.exceptions import TranslationServiceError

logger = logging.getLogger(__name__)

AUTO_DETECT = "auto"

# Transient Amazon Translate failures worth another attempt
RETRYABLE_ERROR_CODES = frozenset((
    "ThrottlingException",
    "TooManyRequestsException",
    "ServiceUnavailableException",
    "InternalServerException",
))


def _is_retryable(error: BaseException) -> bool:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code") in RETRYABLE_ERROR_CODES
    return isinstance(error, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError))


class Translator(ABC):
    """Text-in/text-out translation capability"""

    @abstractmethod
    def translate(self, text: str, target_language: str, source_language: str = AUTO_DETECT) -> str:
        """
        Translate `text` into `target_language`.

        Raises:
            TranslationServiceError: the service failed or rejected the request
        """


class AmazonTranslator(Translator):
    """Amazon Translate with retry on throttling and transient errors"""

    def __init__(self, settings: Settings, client: Any = None):
        if client is None:
            boto_config = Config(
                region_name=settings.AWS_REGION,
                retries={"max_attempts": 2, "mode": "adaptive"},
                connect_timeout=5,
                read_timeout=30,
            )
            kwargs = {"config": boto_config}
            if settings.TRANSLATE_ENDPOINT:
                kwargs["endpoint_url"] = settings.TRANSLATE_ENDPOINT
            client = boto3.client("translate", **kwargs)

        self.client = client
        self.max_attempts = max(1, settings.TRANSLATE_MAX_ATTEMPTS)
        self.retry_wait_max = settings.TRANSLATE_RETRY_WAIT_MAX

    def _translate_text(self, text: str, source_language: str, target_language: str) -> Dict[str, Any]:
        return self.client.translate_text(
            Text=text,
            SourceLanguageCode=source_language,
            TargetLanguageCode=target_language,
        )

    def translate(self, text: str, target_language: str, source_language: str = AUTO_DETECT) -> str:
        logger.info(f"Calling Amazon Translate {source_language} -> {target_language}", extra={
            "target_lang": target_language,
            "text_length": len(text),
        })

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=0, max=self.retry_wait_max),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        try:
            response = retrying(self._translate_text, text, source_language, target_language)
        except ClientError as e:
            error = e.response.get("Error", {})
            code = error.get("Code", "ClientError")
            raise TranslationServiceError(
                f"Amazon Translate error: {error.get('Message', str(e))}",
                code=code,
                details={"target_language": target_language},
            ) from e
        except BotoCoreError as e:
            raise TranslationServiceError(
                f"Amazon Translate unreachable: {e}",
                code=type(e).__name__,
                details={"target_language": target_language},
            ) from e

        return response.get("TranslatedText", "")


class MockTranslator(Translator):
    """Deterministic fake translations for local runs (no AWS calls)"""

    def __init__(self, translations: Optional[Dict[str, Dict[str, str]]] = None):
        self.translations = translations or {}

    def translate(self, text: str, target_language: str, source_language: str = AUTO_DETECT) -> str:
        known = self.translations.get(target_language, {})
        return known.get(text, f"{text} [MOCK:{target_language}]")


def build_translator(settings: Settings) -> Translator:
    """Pick the translator implementation for the configured mode"""
    if settings.TRANSLATION_MODE == TranslationMode.MOCK:
        logger.warning("TRANSLATION_MODE=mock: descriptions will not really be translated")
        return MockTranslator()
    return AmazonTranslator(settings)
