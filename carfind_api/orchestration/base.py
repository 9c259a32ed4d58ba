"""Orchestration interfaces for chat execution."""

from typing import Protocol

from carfind_api.providers.base import ResponseStream
from carfind_api.schemas import ChatRequest, ChatResponse


class ChatOrchestrator(Protocol):
    def run(self, request: ChatRequest, service_type: str | None = None) -> ChatResponse:
        """Execute the chat request using the selected orchestration strategy."""

    def stream(self, request: ChatRequest, service_type: str | None = None) -> ResponseStream:
        """Open a fragment stream for the chat request."""
