"""LangGraph-based orchestration strategy for chat execution."""

from typing import Literal, NotRequired, TypedDict, cast

from langgraph.graph import END, START, StateGraph

from carfind_api.providers.base import AIService, ResponseStream
from carfind_api.schemas import ChatRequest, ChatResponse
from carfind_api.services.container import ServiceContainer

from .base import ChatOrchestrator


class ChatGraphState(TypedDict):
    request: ChatRequest
    service_type: str
    streaming: bool
    service: NotRequired[AIService]
    response: NotRequired[ChatResponse]
    stream: NotRequired[ResponseStream]


class LangGraphChatOrchestrator(ChatOrchestrator):
    def __init__(self, container: ServiceContainer) -> None:
        self._container = container
        graph = StateGraph(ChatGraphState)
        graph.add_node("resolve_service", self._resolve_service)
        graph.add_node("generate_response", self._generate_response)
        graph.add_node("open_stream", self._open_stream)
        graph.add_edge(START, "resolve_service")
        graph.add_conditional_edges("resolve_service", self._route_generation)
        graph.add_edge("generate_response", END)
        graph.add_edge("open_stream", END)
        self._graph = graph.compile()

    def _resolve_service(self, state: ChatGraphState) -> dict[str, AIService]:
        return {"service": self._container.get_service_with_fallback(state["service_type"])}

    @staticmethod
    def _route_generation(state: ChatGraphState) -> Literal["generate_response", "open_stream"]:
        return "open_stream" if state["streaming"] else "generate_response"

    def _generate_response(self, state: ChatGraphState) -> dict[str, ChatResponse]:
        return {"response": state["service"].generate_response(state["request"])}

    def _open_stream(self, state: ChatGraphState) -> dict[str, ResponseStream]:
        return {"stream": state["service"].generate_stream_response(state["request"])}

    def _invoke(self, request: ChatRequest, service_type: str | None, streaming: bool) -> ChatGraphState:
        initial_state: ChatGraphState = {
            "request": request,
            "service_type": service_type or self._container.default_service_type,
            "streaming": streaming,
        }
        return cast("ChatGraphState", self._graph.invoke(initial_state))

    def run(self, request: ChatRequest, service_type: str | None = None) -> ChatResponse:
        response = self._invoke(request, service_type, streaming=False).get("response")
        if response is None:
            raise RuntimeError("LangGraph execution did not return a chat response")
        return response

    def stream(self, request: ChatRequest, service_type: str | None = None) -> ResponseStream:
        stream = self._invoke(request, service_type, streaming=True).get("stream")
        if stream is None:
            raise RuntimeError("LangGraph execution did not return a response stream")
        return stream
