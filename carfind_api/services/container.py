"""Process-wide cache of AI service instances with session scoping and fallback."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from carfind_api.constants import DEFAULT_SERVICE_TYPE
from carfind_api.errors import APIError, ServiceError
from carfind_api.providers.base import AIService, ServiceConfig

from .factory import AIServiceFactory

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str | None]


@dataclass(frozen=True)
class ServiceHealth:
    healthy: bool
    error: str | None = None


@dataclass(frozen=True)
class ContainerValidationResult:
    is_valid: bool
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _close_service(service: AIService) -> None:
    close = getattr(service, "close", None)
    if not callable(close):
        return
    try:
        close()
    except Exception:
        logger.warning(
            "Failed to close AI service", extra={"service": type(service).__name__}, exc_info=True
        )


def _format_key(key: CacheKey) -> str:
    service_type, session_id = key
    return service_type if session_id is None else f"{service_type}:{session_id}"


class ServiceContainer:
    """Caches one service instance per ``(service_type, session_id)`` key.

    Lookups, construction and invalidation all run under a single re-entrant
    lock, so concurrent callers asking for the same uncached key get the
    same instance and the factory is invoked at most once per key.
    """

    def __init__(
        self,
        factory: AIServiceFactory,
        default_service_type: str = DEFAULT_SERVICE_TYPE,
    ) -> None:
        self._factory = factory
        self._default_service_type = default_service_type
        self._configs: dict[str, ServiceConfig] = {}
        self._services: dict[CacheKey, AIService] = {}
        self._lock = threading.RLock()

    @property
    def factory(self) -> AIServiceFactory:
        return self._factory

    @property
    def default_service_type(self) -> str:
        return self._default_service_type

    def register_config(self, service_type: str, config: ServiceConfig) -> None:
        with self._lock:
            self._configs[service_type] = config

    def set_default_service_type(self, service_type: str) -> None:
        with self._lock:
            self._default_service_type = service_type

    def get_service(
        self, service_type: str | None = None, session_id: str | None = None
    ) -> AIService:
        resolved_type = service_type or self._default_service_type
        key: CacheKey = (resolved_type, session_id or None)
        with self._lock:
            service = self._services.get(key)
            if service is not None:
                return service

            config = self._configs.get(resolved_type)
            if config is None:
                raise ServiceError(
                    "ServiceContainer",
                    "get_service",
                    f"No configuration found for service type '{resolved_type}'. "
                    f"Available types: {', '.join(self.get_available_service_types())}",
                )

            service = self._factory.create(resolved_type, config)
            self._services[key] = service
        logger.info(
            "AI service instance cached",
            extra={"service_type": resolved_type, "session_id": session_id},
        )
        return service

    def get_service_with_fallback(
        self, service_type: str, session_id: str | None = None
    ) -> AIService:
        try:
            return self.get_service(service_type, session_id)
        except APIError:
            default_type = self._default_service_type
            if not service_type or service_type == default_type:
                raise
            logger.warning(
                "Service type not available, falling back to default",
                extra={"service_type": service_type, "default_service_type": default_type},
            )
            return self.get_service(default_type, session_id)

    def clear_services(self) -> None:
        with self._lock:
            self._services.clear()

    def clear_session_services(self, session_id: str) -> None:
        with self._lock:
            stale_keys = [key for key in self._services if key[1] == session_id]
            for key in stale_keys:
                del self._services[key]
        logger.info(
            "Session services cleared",
            extra={"session_id": session_id, "evicted_count": len(stale_keys)},
        )

    def get_available_service_types(self) -> list[str]:
        with self._lock:
            return list(self._configs)

    def is_service_configured(self, service_type: str) -> bool:
        with self._lock:
            return service_type in self._configs

    def get_service_config(self, service_type: str) -> ServiceConfig | None:
        with self._lock:
            return self._configs.get(service_type)

    def update_service_config(self, service_type: str, config: ServiceConfig) -> None:
        """Replace the config for ``service_type`` and evict every instance built from it."""
        with self._lock:
            self._configs[service_type] = config
            stale_keys = [key for key in self._services if key[0] == service_type]
            for key in stale_keys:
                del self._services[key]
        logger.info(
            "Service config updated",
            extra={"service_type": service_type, "evicted_count": len(stale_keys)},
        )

    def get_container_info(self) -> dict[str, Any]:
        with self._lock:
            return {
                "configured_services": list(self._configs),
                "cached_instances": len(self._services),
                "default_service": self._default_service_type,
                "instance_keys": [_format_key(key) for key in self._services],
            }

    def validate_configuration(self) -> ContainerValidationResult:
        issues: list[str] = []
        warnings: list[str] = []
        configured_types = self.get_available_service_types()

        if self._default_service_type not in configured_types:
            issues.append(f"Default service type '{self._default_service_type}' is not configured")
        if not configured_types:
            issues.append("No AI services are configured")
        for service_type in configured_types:
            if not self._factory.is_service_supported(service_type):
                warnings.append(
                    f"Service type '{service_type}' is configured but not supported by factory"
                )

        for warning in warnings:
            logger.warning("Service configuration warning", extra={"warning": warning})
        return ContainerValidationResult(is_valid=not issues, issues=issues, warnings=warnings)

    def perform_health_check(self) -> dict[str, ServiceHealth]:
        """Build an uncached instance of every configured type and report whether it works."""
        with self._lock:
            configs = dict(self._configs)

        results: dict[str, ServiceHealth] = {}
        for service_type, config in configs.items():
            try:
                service = self._factory.create(service_type, config)
            except APIError as e:
                results[service_type] = ServiceHealth(healthy=False, error=e.message)
                continue
            try:
                if callable(getattr(service, "generate_response", None)) and callable(
                    getattr(service, "generate_stream_response", None)
                ):
                    results[service_type] = ServiceHealth(healthy=True)
                else:
                    results[service_type] = ServiceHealth(
                        healthy=False, error="Service missing required methods"
                    )
            finally:
                _close_service(service)
        return results
