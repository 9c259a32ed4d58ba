"""Service capability registry."""

from dataclasses import dataclass

from .constants import MAX_TEMPERATURE, MIN_TEMPERATURE, SERVICE_TYPE_BEDROCK, SERVICE_TYPE_OPENAI


@dataclass(frozen=True)
class ServiceCapability:
    provider: str
    capabilities: tuple[str, ...]
    supported_models: tuple[str, ...]
    max_tokens_limit: int
    temperature_range: tuple[float, float] = (MIN_TEMPERATURE, MAX_TEMPERATURE)
    supports_streaming: bool = True
    supports_tools: bool = True


SERVICE_CAPABILITIES: dict[str, ServiceCapability] = {
    SERVICE_TYPE_OPENAI: ServiceCapability(
        provider="openai",
        capabilities=(
            "text-generation",
            "streaming",
            "function-calling",
            "conversation-context",
            "vision",
            "json-mode",
        ),
        supported_models=(
            "gpt-4o",
            "gpt-4o-mini",
            "gpt-4-turbo",
            "gpt-4.1",
            "gpt-3.5-turbo",
            "o1-mini",
            "o1-preview",
        ),
        max_tokens_limit=128_000,
    ),
    SERVICE_TYPE_BEDROCK: ServiceCapability(
        provider="bedrock",
        capabilities=(
            "text-generation",
            "streaming",
            "function-calling",
            "conversation-context",
        ),
        supported_models=(
            "anthropic.claude-opus-4-6",
            "anthropic.claude-sonnet-4-6",
            "anthropic.claude-haiku-4-5",
        ),
        max_tokens_limit=64_000,
    ),
}


def is_model_supported(service_type: str, model: str) -> bool:
    """Return True when ``model`` matches a known model prefix for ``service_type``.

    Unknown service types have no model list, so every model is accepted.
    """
    capability = SERVICE_CAPABILITIES.get(service_type)
    if capability is None:
        return True
    return any(supported in model for supported in capability.supported_models)
