"""Environment validation and AI service configuration loading."""

import logging
import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .constants import (
    DEFAULT_BEDROCK_MODEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_SERVICE_TYPE,
    DEFAULT_TEMPERATURE,
    MAX_MAX_TOKENS,
    MAX_TEMPERATURE,
    MIN_MAX_TOKENS,
    MIN_TEMPERATURE,
    OPENAI_BASE_URL,
    SERVICE_TYPE_BEDROCK,
    SERVICE_TYPE_OPENAI,
    OrchestratorKind,
)
from .errors import ServiceError, ValidationError
from .infra.runtime import ApiCredentials
from .providers.base import ServiceConfig
from .services.container import ServiceContainer
from .services.factory import AIServiceFactory

logger = logging.getLogger(__name__)

KNOWN_SERVICE_TYPES = (SERVICE_TYPE_OPENAI, SERVICE_TYPE_BEDROCK)


class Environment(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    openai_model: str = Field(default=DEFAULT_OPENAI_MODEL, alias="OPENAI_MODEL", min_length=1)
    openai_base_url: str = Field(default=OPENAI_BASE_URL, alias="OPENAI_BASE_URL")
    bedrock_model: str = Field(default=DEFAULT_BEDROCK_MODEL, alias="BEDROCK_MODEL", min_length=1)
    bedrock_endpoint: str | None = Field(default=None, alias="BEDROCK_ENDPOINT")
    max_tokens_default: int = Field(
        default=DEFAULT_MAX_TOKENS,
        alias="MAX_TOKENS_DEFAULT",
        ge=MIN_MAX_TOKENS,
        le=MAX_MAX_TOKENS,
    )
    temperature_default: float = Field(
        default=DEFAULT_TEMPERATURE,
        alias="TEMPERATURE_DEFAULT",
        ge=MIN_TEMPERATURE,
        le=MAX_TEMPERATURE,
    )
    default_ai_service: str = Field(default=DEFAULT_SERVICE_TYPE, alias="DEFAULT_AI_SERVICE")
    chat_orchestrator: OrchestratorKind = Field(default="direct", alias="CHAT_ORCHESTRATOR")


def load_environment(environ: Mapping[str, str] | None = None) -> Environment:
    """Validate the process environment (or ``environ``) into an :class:`Environment`."""
    source = os.environ if environ is None else environ
    try:
        return Environment.model_validate(dict(source))
    except PydanticValidationError as e:
        details = ", ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise ValidationError(
            "environment_variables",
            sorted(source),
            "environment schema",
            f"Environment variable validation failed: {details}",
        ) from e


def build_service_configs(
    env: Environment, credentials: ApiCredentials
) -> dict[str, ServiceConfig]:
    configs = {
        SERVICE_TYPE_OPENAI: ServiceConfig(
            api_key=credentials.openai_api_key,
            model=env.openai_model,
            max_tokens=env.max_tokens_default,
            temperature=env.temperature_default,
            base_url=env.openai_base_url,
        )
    }
    if credentials.bedrock_api_key:
        configs[SERVICE_TYPE_BEDROCK] = ServiceConfig(
            api_key=credentials.bedrock_api_key,
            model=env.bedrock_model,
            max_tokens=env.max_tokens_default,
            temperature=env.temperature_default,
            base_url=env.bedrock_endpoint,
        )
    return configs


def build_service_container(
    env: Environment, credentials: ApiCredentials, factory: AIServiceFactory
) -> ServiceContainer:
    container = ServiceContainer(factory, default_service_type=env.default_ai_service)
    for service_type, config in build_service_configs(env, credentials).items():
        container.register_config(service_type, config)

    validation = container.validate_configuration()
    if not validation.is_valid:
        raise ServiceError(
            "ConfigurationManager",
            "initialize",
            f"Configuration initialization failed: {', '.join(validation.issues)}",
        )
    logger.info(
        "Service container initialized",
        extra={
            "configured_services": container.get_available_service_types(),
            "default_service": container.default_service_type,
        },
    )
    return container


def check_config_health(
    container: ServiceContainer, environ: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """Summarize environment and AI service configuration as healthy/warning/error."""
    health: dict[str, Any] = {
        "overall": "healthy",
        "environment": {"status": "healthy"},
        "ai_services": {"status": "healthy", "services": {}},
    }

    try:
        load_environment(environ)
    except ValidationError as e:
        health["environment"] = {"status": "error", "message": e.message}
        health["overall"] = "error"

    services = health["ai_services"]["services"]
    configured_types = container.get_available_service_types()
    for service_type in dict.fromkeys([*KNOWN_SERVICE_TYPES, *configured_types]):
        if service_type in configured_types:
            services[service_type] = {"status": "healthy"}
            continue
        services[service_type] = {
            "status": "error",
            "message": f"Service {service_type} is not configured",
        }
        health["ai_services"]["status"] = "warning"
        if health["overall"] == "healthy":
            health["overall"] = "warning"

    validation = container.validate_configuration()
    if not validation.is_valid:
        health["ai_services"]["status"] = "error"
        health["ai_services"]["issues"] = validation.issues
        health["overall"] = "error"
    if validation.warnings:
        health["ai_services"]["warnings"] = validation.warnings
    return health
