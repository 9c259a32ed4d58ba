"""Conversion helpers between chat messages and provider-specific formats."""

from collections.abc import Sequence
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from .schemas import ChatMessage


def build_openai_input(messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
    """Build OpenAI Responses API input items, preserving conversation order."""
    return [{"role": message.role, "content": message.content} for message in messages]


def build_bedrock_messages(messages: Sequence[ChatMessage]) -> list[BaseMessage]:
    """Convert chat messages to LangChain message format for Bedrock."""
    lc_messages: list[BaseMessage] = []
    for message in messages:
        if message.role == "system":
            lc_messages.append(SystemMessage(content=message.content, id=message.id))
        elif message.role == "assistant":
            lc_messages.append(AIMessage(content=message.content, id=message.id))
        else:
            lc_messages.append(HumanMessage(content=message.content, id=message.id))
    return lc_messages


def message_text(content: str | list[Any]) -> str:
    """Flatten LangChain message content (plain text or content blocks) to text."""
    if isinstance(content, str):
        return content
    return "".join(
        block.get("text", "") if isinstance(block, dict) else str(block) for block in content
    )
