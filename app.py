"""CarFind chat API backend using FastAPI + Mangum for AWS Lambda."""

import json
import logging
from collections.abc import Iterator
from dataclasses import asdict
from functools import lru_cache
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from mangum import Mangum

from carfind_api.config import build_service_container, check_config_health, load_environment
from carfind_api.errors import APIError, ServiceError, ValidationError
from carfind_api.infra.runtime import (
    ensure_langsmith_configured,
    flush_langsmith_traces,
    get_api_credentials,
)
from carfind_api.orchestration.base import ChatOrchestrator
from carfind_api.orchestration.direct import DirectChatOrchestrator
from carfind_api.orchestration.langgraph_flow import LangGraphChatOrchestrator
from carfind_api.providers.base import ResponseStream
from carfind_api.schemas import ChatApiRequest, ChatApiResponse
from carfind_api.services.chat_service import ChatService
from carfind_api.services.container import ServiceContainer
from carfind_api.services.factory import AIServiceFactory, build_default_factory

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

app = FastAPI()
router = APIRouter(prefix="/api")


@lru_cache(maxsize=1)
def get_service_factory() -> AIServiceFactory:
    return build_default_factory()


@lru_cache(maxsize=1)
def get_service_container() -> ServiceContainer:
    return build_service_container(
        load_environment(), get_api_credentials(), get_service_factory()
    )


@lru_cache(maxsize=1)
def get_chat_service() -> ChatService:
    env = load_environment()
    container = get_service_container()
    orchestrator: ChatOrchestrator
    if env.chat_orchestrator == "langgraph":
        orchestrator = LangGraphChatOrchestrator(container)
    else:
        orchestrator = DirectChatOrchestrator(container)
    return ChatService(orchestrator)


def _to_http_exception(error: Exception) -> HTTPException:
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=error.message)
    if isinstance(error, ServiceError):
        return HTTPException(status_code=503 if error.retryable else 502, detail=error.message)
    return HTTPException(status_code=502, detail=str(error))


def _sse_frame(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def _stream_events(stream: ResponseStream) -> Iterator[str]:
    try:
        with stream:
            for fragment in stream:
                yield _sse_frame({"type": "text-delta", "delta": fragment})
            response = ChatApiResponse.from_chat_response(stream.response)
            yield _sse_frame({"type": "finish", **response.model_dump(by_alias=True)})
    except APIError as e:
        logger.exception("Chat stream failed")
        yield _sse_frame({"type": "error", **e.to_dict()})
    except Exception:
        logger.exception("AI service stream failed")
        yield _sse_frame(
            {
                "type": "error",
                "code": "STREAM_FAILED",
                "message": "AI service stream failed",
                "retryable": False,
            }
        )
    finally:
        flush_langsmith_traces()


@router.post("/chat", response_model=ChatApiResponse)
def chat(request: ChatApiRequest) -> ChatApiResponse:
    """Send the conversation to the configured AI service and return the assistant reply."""
    ensure_langsmith_configured()
    try:
        return get_chat_service().handle_chat(request)
    except APIError as e:
        logger.warning("Chat request failed", extra={"error_code": e.code})
        raise _to_http_exception(e) from e
    except Exception as e:
        logger.exception("AI service call failed")
        raise _to_http_exception(e) from e
    finally:
        flush_langsmith_traces()


@router.post("/chat/stream")
def chat_stream(request: ChatApiRequest) -> StreamingResponse:
    """Stream the assistant reply as server-sent events."""
    ensure_langsmith_configured()
    try:
        stream = get_chat_service().stream_chat(request)
    except Exception as e:
        if not isinstance(e, APIError):
            logger.exception("AI service call failed")
        flush_langsmith_traces()
        raise _to_http_exception(e) from e
    return StreamingResponse(_stream_events(stream), media_type="text/event-stream")


@router.get("/services")
def services() -> dict[str, Any]:
    """Describe the registered AI service types and their capabilities."""
    return get_service_factory().get_factory_info()


@router.get("/health/services")
def services_health() -> dict[str, Any]:
    """Report configuration health and try building every configured service."""
    container = get_service_container()
    validation = container.validate_configuration()
    return {
        "configuration": check_config_health(container),
        "validation": asdict(validation),
        "services": {
            service_type: asdict(health)
            for service_type, health in container.perform_health_check().items()
        },
        "container": container.get_container_info(),
    }


@router.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


app.include_router(router)


handler = Mangum(app)
