"""Pydantic schemas for chat messages and the chat API."""

from datetime import datetime, timezone
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .constants import MAX_MAX_TOKENS, MessageRole


def _new_message_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_message_id)
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)
    metadata: dict[str, Any] | None = None


class ChatRequest(BaseModel):
    """Conversation so far (oldest first) plus optional per-call overrides."""

    messages: list[ChatMessage] = Field(min_length=1)
    session_id: str | None = None
    user_id: str | None = None
    max_tokens: int | None = Field(default=None, ge=1)
    temperature: float | None = Field(default=None, ge=0, le=2)
    tools: list[dict[str, Any]] | None = None


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatResponse(BaseModel):
    message: ChatMessage
    session_id: str
    usage: Usage | None = None
    metadata: dict[str, Any] | None = None

    @model_validator(mode="after")
    def validate_assistant_role(self) -> "ChatResponse":
        if self.message.role != "assistant":
            raise ValueError("ChatResponse message must have role 'assistant'")
        return self


class ApiMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatApiRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: list[ApiMessage] = Field(min_length=1)
    session_id: str | None = Field(default=None, alias="sessionId")
    service_type: str | None = Field(default=None, alias="serviceType")
    system_prompt: str | None = Field(default=None, alias="systemPrompt")
    temperature: float | None = Field(default=None, ge=0, le=2)
    max_tokens: int | None = Field(default=None, alias="maxTokens", ge=1, le=MAX_MAX_TOKENS)


class ChatApiResponse(BaseModel):
    message: str
    message_id: str = Field(serialization_alias="messageId")
    session_id: str = Field(serialization_alias="sessionId")
    input_tokens: int | None = Field(default=None, serialization_alias="inputTokens")
    output_tokens: int | None = Field(default=None, serialization_alias="outputTokens")
    total_tokens: int | None = Field(default=None, serialization_alias="totalTokens")
    finish_reason: str | None = Field(default=None, serialization_alias="finishReason")

    @classmethod
    def from_chat_response(cls, response: ChatResponse) -> "ChatApiResponse":
        usage = response.usage
        metadata = response.metadata or {}
        return cls(
            message=response.message.content,
            message_id=response.message.id,
            session_id=response.session_id,
            input_tokens=usage.prompt_tokens if usage else None,
            output_tokens=usage.completion_tokens if usage else None,
            total_tokens=usage.total_tokens if usage else None,
            finish_reason=metadata.get("finish_reason"),
        )
