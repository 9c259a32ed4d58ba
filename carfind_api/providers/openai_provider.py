"""OpenAI provider implementation for chat requests."""

import logging
import time
from collections.abc import Generator
from typing import Any

from openai import OpenAI

from carfind_api.constants import SERVICE_TYPE_OPENAI
from carfind_api.infra.runtime import build_openai_client, invoke_openai_responses
from carfind_api.message_mappers import build_openai_input
from carfind_api.model_registry import SERVICE_CAPABILITIES, is_model_supported
from carfind_api.schemas import ChatRequest, ChatResponse, Usage

from .base import ResponseStream, ServiceConfig
from .base_service import BaseAIService

logger = logging.getLogger(__name__)


def _usage_from_openai(usage: Any) -> Usage | None:
    if usage is None:
        return None
    input_tokens = getattr(usage, "input_tokens", 0) or 0
    output_tokens = getattr(usage, "output_tokens", 0) or 0
    return Usage(
        prompt_tokens=input_tokens,
        completion_tokens=output_tokens,
        total_tokens=getattr(usage, "total_tokens", 0) or input_tokens + output_tokens,
    )


def _stream_error_message(event: Any) -> str:
    response = getattr(event, "response", None)
    error = getattr(response, "error", None) if response is not None else None
    message = getattr(error, "message", None) or getattr(event, "message", None)
    return message or f"OpenAI stream ended with event {event.type}"


class OpenAIService(BaseAIService):
    service_name = "OpenAIService"

    def __init__(self, config: ServiceConfig, client: OpenAI | None = None) -> None:
        super().__init__(config)
        self._client = client or build_openai_client(config.api_key, config.base_url)

    def validate_config(self, config: ServiceConfig) -> None:
        super().validate_config(config)
        if (
            config.base_url
            and "openai.com" not in config.base_url
            and "localhost" not in config.base_url
        ):
            logger.warning(
                "Using non-standard OpenAI API endpoint", extra={"base_url": config.base_url}
            )
        if not is_model_supported(SERVICE_TYPE_OPENAI, config.model):
            logger.warning("Model may not be supported by OpenAI", extra={"model": config.model})

    def _build_request_params(self, request: ChatRequest) -> dict[str, Any]:
        max_tokens, temperature = self.resolve_generation_params(request)
        request_params: dict[str, Any] = {
            "model": self._config.model,
            "input": build_openai_input(request.messages),
        }
        if max_tokens is not None:
            request_params["max_output_tokens"] = max_tokens
        if temperature is not None:
            request_params["temperature"] = temperature
        if request.tools:
            request_params["tools"] = request.tools
        return request_params

    def generate_response(self, request: ChatRequest) -> ChatResponse:
        request_params = self._build_request_params(request)
        start = time.time()
        try:
            response = invoke_openai_responses(self._client, request_params)
        except Exception as e:
            raise self.handle_error(e, "generate_response") from e
        duration_ms = int((time.time() - start) * 1000)
        content = response.output_text or ""
        usage = _usage_from_openai(response.usage)

        logger.info(
            "Chat response generated",
            extra={
                "openai_duration_ms": duration_ms,
                "model": response.model,
                "usage_prompt_tokens": usage.prompt_tokens if usage else None,
                "usage_completion_tokens": usage.completion_tokens if usage else None,
                "response_length": len(content),
                "response_id": response.id,
            },
        )
        return ChatResponse(
            message=self.create_chat_message("assistant", content),
            session_id=self.resolve_session_id(request),
            usage=usage,
            metadata={
                "finish_reason": getattr(response, "status", None),
                "model": self._config.model,
                "response_id": response.id,
                "duration_seconds": round(duration_ms / 1000, 2),
            },
        )

    def generate_stream_response(self, request: ChatRequest) -> ResponseStream:
        return ResponseStream(self._stream(request, self._build_request_params(request)))

    def _stream(
        self, request: ChatRequest, request_params: dict[str, Any]
    ) -> Generator[str, None, ChatResponse]:
        fragments: list[str] = []
        completed: Any = None
        start = time.time()
        try:
            stream = self._client.responses.create(**request_params, stream=True)
            with stream:
                for event in stream:
                    if event.type == "response.output_text.delta":
                        fragments.append(event.delta)
                        yield event.delta
                    elif event.type == "response.completed":
                        completed = event.response
                    elif event.type in ("response.failed", "error"):
                        raise RuntimeError(_stream_error_message(event))
        except Exception as e:
            raise self.handle_error(e, "generate_stream_response") from e

        duration_ms = int((time.time() - start) * 1000)
        content = "".join(fragments)
        usage = _usage_from_openai(getattr(completed, "usage", None))
        max_tokens, temperature = self.resolve_generation_params(request)
        logger.info(
            "Chat stream completed",
            extra={
                "openai_duration_ms": duration_ms,
                "model": self._config.model,
                "usage_prompt_tokens": usage.prompt_tokens if usage else None,
                "usage_completion_tokens": usage.completion_tokens if usage else None,
                "response_length": len(content),
                "fragment_count": len(fragments),
            },
        )
        return ChatResponse(
            message=self.create_chat_message("assistant", content),
            session_id=self.resolve_session_id(request),
            usage=usage,
            metadata={
                "finish_reason": getattr(completed, "status", None),
                "model": self._config.model,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "response_id": getattr(completed, "id", None),
            },
        )

    def close(self) -> None:
        self._client.close()

    def get_feature_availability(self) -> dict[str, bool]:
        model = self._config.model.lower()
        return {
            "streaming": True,
            "function_calling": "gpt-4" in model or "gpt-3.5" in model,
            "vision": "gpt-4o" in model or "gpt-4-vision" in model,
            "json_mode": "gpt-4" in model or "gpt-3.5" in model,
            "system_messages": True,
            "conversation_context": True,
        }

    def get_service_info(self) -> dict[str, Any]:
        capability = SERVICE_CAPABILITIES[SERVICE_TYPE_OPENAI]
        return {
            **super().get_service_info(),
            "provider": capability.provider,
            "supports_streaming": capability.supports_streaming,
            "supports_tools": capability.supports_tools,
            "supported_models": list(capability.supported_models),
            "capabilities": list(capability.capabilities),
        }
