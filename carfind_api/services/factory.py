"""Registry-backed construction of AI service instances."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from carfind_api.constants import (
    MAX_TEMPERATURE,
    MIN_TEMPERATURE,
    SERVICE_TYPE_BEDROCK,
    SERVICE_TYPE_OPENAI,
)
from carfind_api.errors import APIError, ServiceError, ValidationError
from carfind_api.model_registry import SERVICE_CAPABILITIES, ServiceCapability
from carfind_api.providers.base import AIService, ServiceConfig
from carfind_api.providers.base_service import is_blank, is_number, is_positive_int
from carfind_api.providers.bedrock_provider import BedrockService
from carfind_api.providers.openai_provider import OpenAIService

logger = logging.getLogger(__name__)

ServiceConstructor = Callable[[ServiceConfig], AIService]


@dataclass(frozen=True)
class ConfigValidationResult:
    is_valid: bool
    issues: list[str] = field(default_factory=list)


class AIServiceFactory:
    """Maps service type tags to constructors and builds validated instances."""

    def __init__(
        self, capabilities: Mapping[str, ServiceCapability] = SERVICE_CAPABILITIES
    ) -> None:
        self._registry: dict[str, ServiceConstructor] = {}
        self._capabilities = capabilities

    def register(self, service_type: str, constructor: ServiceConstructor) -> None:
        """Register ``constructor`` for ``service_type``, replacing any previous entry."""
        self._registry[service_type] = constructor

    def create(self, service_type: str, config: ServiceConfig) -> AIService:
        constructor = self._registry.get(service_type)
        if constructor is None:
            raise ServiceError(
                "AIServiceFactory",
                "create",
                f"AI service type '{service_type}' is not supported. "
                f"Available types: {', '.join(self.get_available_services())}",
                code="UNSUPPORTED_SERVICE_TYPE",
            )
        try:
            service = constructor(config)
        except APIError:
            raise
        except Exception as e:
            raise ServiceError(
                "AIServiceFactory",
                "create",
                f"Failed to create AI service of type '{service_type}': {e}",
                code="SERVICE_CREATION_FAILED",
            ) from e
        logger.info(
            "AI service created", extra={"service_type": service_type, "model": config.model}
        )
        return service

    def get_available_services(self) -> list[str]:
        return list(self._registry)

    def is_service_supported(self, service_type: str) -> bool:
        return service_type in self._registry

    def get_service_constructor(self, service_type: str) -> ServiceConstructor | None:
        return self._registry.get(service_type)

    def validate_config(self, service_type: str, config: ServiceConfig) -> ConfigValidationResult:
        """Collect every configuration problem without raising."""
        issues: list[str] = []
        if not self.is_service_supported(service_type):
            issues.append(f"Service type '{service_type}' is not supported")
        if is_blank(config.api_key):
            issues.append("API key is required")
        if is_blank(config.model):
            issues.append("Model identifier is required")
        if config.max_tokens is not None and not is_positive_int(config.max_tokens):
            issues.append("Max tokens must be a positive integer")
        if config.temperature is not None and not is_number(config.temperature):
            issues.append("Temperature must be a number")

        capability = self._capabilities.get(service_type)
        if capability is not None:
            self._validate_against_capability(service_type, capability, config, issues)
        elif is_number(config.temperature) and not (
            MIN_TEMPERATURE <= config.temperature <= MAX_TEMPERATURE
        ):
            issues.append(f"Temperature must be between {MIN_TEMPERATURE} and {MAX_TEMPERATURE}")

        return ConfigValidationResult(is_valid=not issues, issues=issues)

    @staticmethod
    def _validate_against_capability(
        service_type: str,
        capability: ServiceCapability,
        config: ServiceConfig,
        issues: list[str],
    ) -> None:
        if not is_blank(config.model) and not any(
            supported in config.model for supported in capability.supported_models
        ):
            issues.append(
                f"Model '{config.model}' may not be supported by {service_type}. "
                f"Supported models: {', '.join(capability.supported_models)}"
            )
        low, high = capability.temperature_range
        if is_number(config.temperature) and not low <= config.temperature <= high:
            issues.append(f"Temperature must be between {low} and {high} for {service_type} models")
        if is_positive_int(config.max_tokens) and config.max_tokens > capability.max_tokens_limit:
            issues.append(
                f"Max tokens must be between 1 and {capability.max_tokens_limit:,} "
                f"for {service_type} models"
            )

    def create_with_validation(self, service_type: str, config: ServiceConfig) -> AIService:
        validation = self.validate_config(service_type, config)
        if not validation.is_valid:
            raise ValidationError(
                "config",
                config,
                "service configuration requirements",
                f"Configuration validation failed: {', '.join(validation.issues)}",
                details={"issues": validation.issues},
            )
        return self.create(service_type, config)

    def get_factory_info(self) -> dict[str, Any]:
        registered_services = self.get_available_services()
        return {
            "registered_services": registered_services,
            "service_count": len(registered_services),
            "supported_capabilities": {
                service_type: list(self._capabilities[service_type].capabilities)
                for service_type in registered_services
                if service_type in self._capabilities
            },
        }


def build_default_factory() -> AIServiceFactory:
    factory = AIServiceFactory()
    factory.register(SERVICE_TYPE_OPENAI, OpenAIService)
    factory.register(SERVICE_TYPE_BEDROCK, BedrockService)
    return factory
