"""Direct provider dispatch orchestration."""

from carfind_api.orchestration.base import ChatOrchestrator
from carfind_api.providers.base import AIService, ResponseStream
from carfind_api.schemas import ChatRequest, ChatResponse
from carfind_api.services.container import ServiceContainer


class DirectChatOrchestrator(ChatOrchestrator):
    def __init__(self, container: ServiceContainer) -> None:
        self._container = container

    def _resolve(self, service_type: str | None) -> AIService:
        # Providers are shared across chat sessions; the session id only travels on the request.
        return self._container.get_service_with_fallback(
            service_type or self._container.default_service_type
        )

    def run(self, request: ChatRequest, service_type: str | None = None) -> ChatResponse:
        return self._resolve(service_type).generate_response(request)

    def stream(self, request: ChatRequest, service_type: str | None = None) -> ResponseStream:
        return self._resolve(service_type).generate_stream_response(request)
