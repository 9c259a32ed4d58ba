"""Shared provider behavior: config validation, error normalization, and message helpers."""

import dataclasses
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from carfind_api.constants import MAX_TEMPERATURE, MIN_TEMPERATURE, RETRYABLE_ERROR_PATTERNS, MessageRole
from carfind_api.errors import APIError, ServiceError, ValidationError
from carfind_api.schemas import ChatMessage, ChatRequest, ChatResponse

from .base import ResponseStream, ServiceConfig

logger = logging.getLogger(__name__)


def is_retryable_error(error: BaseException) -> bool:
    error_text = f"{type(error).__name__} {error}"
    return any(pattern.search(error_text) for pattern in RETRYABLE_ERROR_PATTERNS)


def is_blank(value: object) -> bool:
    return not isinstance(value, str) or not value.strip()


def is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class BaseAIService(ABC):
    """Base class for concrete providers.

    Subclasses only translate requests and responses for their vendor SDK.
    The configuration is validated before any subclass state is created, so
    an invalid config never produces a usable instance.
    """

    service_name = "AIService"

    def __init__(self, config: ServiceConfig) -> None:
        self.validate_config(config)
        self._config = config
        self._created_at = datetime.now(timezone.utc)

    @abstractmethod
    def generate_response(self, request: ChatRequest) -> ChatResponse: ...

    @abstractmethod
    def generate_stream_response(self, request: ChatRequest) -> ResponseStream: ...

    def validate_config(self, config: ServiceConfig) -> None:
        if is_blank(config.api_key):
            raise ValidationError(
                "api_key",
                config.api_key,
                "non-empty string",
                "API key is required for AI service initialization",
            )
        if is_blank(config.model):
            raise ValidationError(
                "model",
                config.model,
                "non-empty string",
                "Model identifier is required for AI service initialization",
            )
        max_tokens = config.max_tokens
        if max_tokens is not None and not is_positive_int(max_tokens):
            raise ValidationError(
                "max_tokens",
                max_tokens,
                "positive integer",
                "Max tokens must be a positive integer",
            )
        temperature = config.temperature
        if temperature is not None and (
            not is_number(temperature) or not MIN_TEMPERATURE <= temperature <= MAX_TEMPERATURE
        ):
            raise ValidationError(
                "temperature",
                temperature,
                "range 0.0-2.0",
                "Temperature must be between 0.0 and 2.0",
            )

    def update_config(self, config: ServiceConfig) -> None:
        self.validate_config(config)
        self._config = config

    def close(self) -> None:
        """Release SDK clients held by the provider. No-op unless a subclass owns one."""

    def handle_error(self, error: object, operation: str) -> APIError:
        """Normalize any raised value into a structured error for ``operation``."""
        if isinstance(error, APIError):
            return error
        if isinstance(error, Exception):
            retryable = is_retryable_error(error)
            logger.warning(
                "AI service operation failed",
                extra={
                    "service_name": self.service_name,
                    "operation": operation,
                    "error_type": type(error).__name__,
                    "retryable": retryable,
                },
            )
            return ServiceError(
                self.service_name,
                operation,
                f"AI service operation failed: {operation} - {error}",
                retryable=retryable,
            )
        return ServiceError(
            self.service_name,
            operation,
            f"Unknown error during AI service operation: {operation}",
            retryable=False,
        )

    def create_chat_message(
        self,
        role: MessageRole,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> ChatMessage:
        return ChatMessage(
            id=str(uuid4()),
            role=role,
            content=content,
            timestamp=datetime.now(timezone.utc),
            metadata=metadata,
        )

    def resolve_session_id(self, request: ChatRequest) -> str:
        return request.session_id or f"session_{uuid4().hex}"

    def resolve_generation_params(self, request: ChatRequest) -> tuple[int | None, float | None]:
        """Per-call overrides win over the configured defaults."""
        max_tokens = request.max_tokens if request.max_tokens is not None else self._config.max_tokens
        temperature = (
            request.temperature if request.temperature is not None else self._config.temperature
        )
        return max_tokens, temperature

    def get_config(self) -> ServiceConfig:
        return dataclasses.replace(self._config)

    def get_service_info(self) -> dict[str, Any]:
        return {
            "model": self._config.model,
            "has_api_key": bool(self._config.api_key),
            "base_url": self._config.base_url or "default",
            "max_tokens": self._config.max_tokens,
            "temperature": self._config.temperature,
            "created_at": self._created_at.isoformat(),
        }
