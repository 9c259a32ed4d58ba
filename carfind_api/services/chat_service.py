"""Application service for chat requests."""

import logging

from carfind_api.orchestration.base import ChatOrchestrator
from carfind_api.providers.base import ResponseStream
from carfind_api.schemas import ChatApiRequest, ChatApiResponse, ChatMessage, ChatRequest

logger = logging.getLogger(__name__)


class ChatService:
    def __init__(self, orchestrator: ChatOrchestrator) -> None:
        self._orchestrator = orchestrator

    @staticmethod
    def build_chat_request(payload: ChatApiRequest) -> ChatRequest:
        messages: list[ChatMessage] = []
        if payload.system_prompt:
            messages.append(ChatMessage(role="system", content=payload.system_prompt))
        messages.extend(
            ChatMessage(role=message.role, content=message.content) for message in payload.messages
        )
        return ChatRequest(
            messages=messages,
            session_id=payload.session_id,
            max_tokens=payload.max_tokens,
            temperature=payload.temperature,
        )

    def handle_chat(self, payload: ChatApiRequest) -> ChatApiResponse:
        logger.info(
            "Chat request received",
            extra={"message_count": len(payload.messages), "service_type": payload.service_type},
        )
        request = self.build_chat_request(payload)
        response = self._orchestrator.run(request, payload.service_type)
        return ChatApiResponse.from_chat_response(response)

    def stream_chat(self, payload: ChatApiRequest) -> ResponseStream:
        logger.info(
            "Chat stream requested",
            extra={"message_count": len(payload.messages), "service_type": payload.service_type},
        )
        request = self.build_chat_request(payload)
        return self._orchestrator.stream(request, payload.service_type)
