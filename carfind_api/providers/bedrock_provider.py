"""Bedrock provider implementation for chat requests."""

import logging
import time
from collections.abc import Callable, Generator
from contextlib import closing
from functools import partial
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessageChunk
from langchain_core.runnables import Runnable, RunnableConfig

from carfind_api.constants import SERVICE_TYPE_BEDROCK
from carfind_api.infra.runtime import build_bedrock_chat_model, build_bedrock_client
from carfind_api.message_mappers import build_bedrock_messages, message_text
from carfind_api.model_registry import SERVICE_CAPABILITIES, is_model_supported
from carfind_api.schemas import ChatRequest, ChatResponse, Usage

from .base import ResponseStream, ServiceConfig
from .base_service import BaseAIService

logger = logging.getLogger(__name__)

ChatModelFactory = Callable[[dict[str, Any]], BaseChatModel]


def _usage_from_metadata(usage: Any) -> Usage | None:
    if not usage:
        return None
    input_tokens = usage.get("input_tokens", 0) or 0
    output_tokens = usage.get("output_tokens", 0) or 0
    return Usage(
        prompt_tokens=input_tokens,
        completion_tokens=output_tokens,
        total_tokens=usage.get("total_tokens", 0) or input_tokens + output_tokens,
    )


class BedrockService(BaseAIService):
    service_name = "BedrockService"

    def __init__(
        self,
        config: ServiceConfig,
        chat_model_factory: ChatModelFactory | None = None,
    ) -> None:
        super().__init__(config)
        self._client: Any = None
        if chat_model_factory is None:
            self._client = build_bedrock_client(config.api_key, config.base_url)
            chat_model_factory = partial(build_bedrock_chat_model, client=self._client)
        self._chat_model_factory = chat_model_factory

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    def validate_config(self, config: ServiceConfig) -> None:
        super().validate_config(config)
        if not is_model_supported(SERVICE_TYPE_BEDROCK, config.model):
            logger.warning("Model may not be supported by Bedrock", extra={"model": config.model})

    def _build_chat_model(self, request: ChatRequest) -> Runnable[Any, Any]:
        max_tokens, temperature = self.resolve_generation_params(request)
        model = self._chat_model_factory(
            {
                "model_id": self._config.model,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if request.tools:
            return model.bind_tools(request.tools)
        return model

    def _run_config(self, request: ChatRequest, run_name: str) -> RunnableConfig:
        return {
            "run_name": run_name,
            "tags": ["carfind-api", self._config.model],
            "metadata": {
                "message_count": len(request.messages),
                "session_id": request.session_id,
            },
        }

    def generate_response(self, request: ChatRequest) -> ChatResponse:
        lc_messages = build_bedrock_messages(request.messages)
        start = time.time()
        try:
            response = self._build_chat_model(request).invoke(
                lc_messages, config=self._run_config(request, "carfind_bedrock_converse")
            )
        except Exception as e:
            raise self.handle_error(e, "generate_response") from e
        duration_ms = int((time.time() - start) * 1000)

        content = message_text(response.content)
        usage = _usage_from_metadata(response.usage_metadata)
        response_metadata = response.response_metadata or {}
        request_id = (
            response_metadata.get("ResponseMetadata", {}).get("RequestId", "") or response.id or ""
        )

        logger.info(
            "Chat response generated",
            extra={
                "bedrock_duration_ms": duration_ms,
                "model": self._config.model,
                "usage_prompt_tokens": usage.prompt_tokens if usage else None,
                "usage_completion_tokens": usage.completion_tokens if usage else None,
                "response_length": len(content),
                "response_id": request_id,
            },
        )
        return ChatResponse(
            message=self.create_chat_message("assistant", content),
            session_id=self.resolve_session_id(request),
            usage=usage,
            metadata={
                "finish_reason": response_metadata.get("stopReason"),
                "model": self._config.model,
                "response_id": request_id,
                "duration_seconds": round(duration_ms / 1000, 2),
            },
        )

    def generate_stream_response(self, request: ChatRequest) -> ResponseStream:
        return ResponseStream(self._stream(request))

    def _stream(self, request: ChatRequest) -> Generator[str, None, ChatResponse]:
        lc_messages = build_bedrock_messages(request.messages)
        fragments: list[str] = []
        aggregate: AIMessageChunk | None = None
        start = time.time()
        try:
            chunks = self._build_chat_model(request).stream(
                lc_messages, config=self._run_config(request, "carfind_bedrock_converse_stream")
            )
            with closing(chunks):
                for chunk in chunks:
                    aggregate = chunk if aggregate is None else aggregate + chunk
                    text = message_text(chunk.content)
                    if text:
                        fragments.append(text)
                        yield text
        except Exception as e:
            raise self.handle_error(e, "generate_stream_response") from e

        duration_ms = int((time.time() - start) * 1000)
        content = "".join(fragments)
        usage = _usage_from_metadata(aggregate.usage_metadata if aggregate else None)
        response_metadata = (aggregate.response_metadata if aggregate else None) or {}
        max_tokens, temperature = self.resolve_generation_params(request)
        logger.info(
            "Chat stream completed",
            extra={
                "bedrock_duration_ms": duration_ms,
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
                "finish_reason": response_metadata.get("stopReason"),
                "model": self._config.model,
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
        )

    def get_service_info(self) -> dict[str, Any]:
        capability = SERVICE_CAPABILITIES[SERVICE_TYPE_BEDROCK]
        return {
            **super().get_service_info(),
            "provider": capability.provider,
            "supports_streaming": capability.supports_streaming,
            "supports_tools": capability.supports_tools,
            "supported_models": list(capability.supported_models),
            "capabilities": list(capability.capabilities),
        }
