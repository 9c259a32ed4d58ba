import unittest

from carfind_api.errors import ServiceError, ValidationError
from carfind_api.providers.base import ResponseStream, ServiceConfig
from carfind_api.providers.base_service import BaseAIService
from carfind_api.providers.bedrock_provider import BedrockService
from carfind_api.providers.openai_provider import OpenAIService
from carfind_api.schemas import ChatRequest, ChatResponse
from carfind_api.services.factory import AIServiceFactory, build_default_factory


class StubService(BaseAIService):
    def generate_response(self, request: ChatRequest) -> ChatResponse:
        return ChatResponse(
            message=self.create_chat_message("assistant", "ok"),
            session_id=self.resolve_session_id(request),
        )

    def generate_stream_response(self, request: ChatRequest) -> ResponseStream:
        raise NotImplementedError


class FactoryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = AIServiceFactory()
        self.config = ServiceConfig(api_key="k", model="m")

    def test_create_unregistered_type_lists_registered_types(self) -> None:
        self.factory.register("alpha", StubService)
        self.factory.register("beta", StubService)

        with self.assertRaises(ServiceError) as ctx:
            self.factory.create("stub", self.config)

        self.assertEqual(ctx.exception.code, "UNSUPPORTED_SERVICE_TYPE")
        self.assertEqual(ctx.exception.operation, "create")
        self.assertIn("alpha, beta", ctx.exception.message)

        self.factory.register("stub", StubService)
        service = self.factory.create("stub", self.config)
        self.assertIsInstance(service, StubService)

    def test_register_replaces_existing_constructor(self) -> None:
        created: list[str] = []

        def first(config: ServiceConfig) -> StubService:
            created.append("first")
            return StubService(config)

        def second(config: ServiceConfig) -> StubService:
            created.append("second")
            return StubService(config)

        self.factory.register("stub", first)
        self.factory.register("stub", second)
        self.factory.create("stub", self.config)

        self.assertEqual(created, ["second"])
        self.assertEqual(self.factory.get_available_services(), ["stub"])
        self.assertIs(self.factory.get_service_constructor("stub"), second)

    def test_structured_construction_errors_propagate_unchanged(self) -> None:
        self.factory.register("stub", StubService)

        with self.assertRaises(ValidationError) as ctx:
            self.factory.create("stub", ServiceConfig(api_key="", model="m"))

        self.assertEqual(ctx.exception.field, "api_key")

    def test_unstructured_construction_errors_are_wrapped(self) -> None:
        def broken(config: ServiceConfig) -> StubService:
            raise KeyError("missing")

        self.factory.register("broken", broken)

        with self.assertRaises(ServiceError) as ctx:
            self.factory.create("broken", self.config)

        self.assertEqual(ctx.exception.code, "SERVICE_CREATION_FAILED")
        self.assertIn("Failed to create AI service of type 'broken'", ctx.exception.message)
        self.assertIsInstance(ctx.exception.__cause__, KeyError)
        self.assertFalse(ctx.exception.retryable)

    def test_validate_config_collects_every_issue(self) -> None:
        result = self.factory.validate_config(
            "openai", ServiceConfig(api_key="", model="llama-3", temperature=2.5, max_tokens=200_000)
        )

        self.assertFalse(result.is_valid)
        self.assertEqual(len(result.issues), 5)
        self.assertIn("Service type 'openai' is not supported", result.issues)
        self.assertIn("API key is required", result.issues)
        self.assertTrue(any("llama-3" in issue for issue in result.issues))
        self.assertTrue(any("Temperature" in issue for issue in result.issues))
        self.assertTrue(any("128,000" in issue for issue in result.issues))

    def test_validate_config_reports_malformed_values_without_raising(self) -> None:
        self.factory.register("openai", StubService)
        cases = [
            ({"api_key": "   "}, "API key is required"),
            ({"model": "  "}, "Model identifier is required"),
            ({"max_tokens": True}, "Max tokens must be a positive integer"),
            ({"max_tokens": "100"}, "Max tokens must be a positive integer"),
            ({"max_tokens": 1.5}, "Max tokens must be a positive integer"),
            ({"max_tokens": 0}, "Max tokens must be a positive integer"),
            ({"temperature": "hot"}, "Temperature must be a number"),
            ({"temperature": False}, "Temperature must be a number"),
        ]
        for overrides, issue in cases:
            values: dict[str, object] = {"api_key": "k", "model": "gpt-4o"}
            values.update(overrides)
            config = ServiceConfig(**values)  # type: ignore[arg-type]
            with self.subTest(overrides=overrides):
                result = self.factory.validate_config("openai", config)

                self.assertFalse(result.is_valid)
                self.assertEqual(result.issues, [issue])
                with self.assertRaises(ValidationError):
                    self.factory.create_with_validation("openai", config)
                with self.assertRaises(ValidationError):
                    StubService(config)

    def test_validate_config_checks_temperature_range_without_capability(self) -> None:
        self.factory.register("stub", StubService)

        result = self.factory.validate_config(
            "stub", ServiceConfig(api_key="k", model="m", temperature=2.5)
        )

        self.assertEqual(result.issues, ["Temperature must be between 0.0 and 2.0"])

    def test_validate_config_accepts_known_model(self) -> None:
        self.factory.register("openai", StubService)

        result = self.factory.validate_config(
            "openai", ServiceConfig(api_key="k", model="gpt-4o-mini", max_tokens=1000)
        )

        self.assertTrue(result.is_valid)
        self.assertEqual(result.issues, [])

    def test_validate_config_skips_capability_checks_for_unknown_types(self) -> None:
        self.factory.register("stub", StubService)

        result = self.factory.validate_config("stub", ServiceConfig(api_key="k", model="anything"))

        self.assertTrue(result.is_valid)

    def test_create_with_validation_raises_aggregated_error(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.factory.create_with_validation("stub", ServiceConfig(api_key="", model=""))

        self.assertEqual(ctx.exception.field, "config")
        self.assertEqual(len(ctx.exception.details["issues"]), 3)
        self.assertTrue(ctx.exception.message.startswith("Configuration validation failed: "))

        self.factory.register("stub", StubService)
        service = self.factory.create_with_validation("stub", self.config)
        self.assertIsInstance(service, StubService)

    def test_factory_info_reports_registered_services(self) -> None:
        self.factory.register("openai", StubService)
        self.factory.register("stub", StubService)

        info = self.factory.get_factory_info()

        self.assertEqual(info["registered_services"], ["openai", "stub"])
        self.assertEqual(info["service_count"], 2)
        self.assertIn("streaming", info["supported_capabilities"]["openai"])
        self.assertNotIn("stub", info["supported_capabilities"])
        self.assertTrue(self.factory.is_service_supported("stub"))
        self.assertFalse(self.factory.is_service_supported("bedrock"))

    def test_default_factory_registers_builtin_providers(self) -> None:
        factory = build_default_factory()

        self.assertEqual(factory.get_available_services(), ["openai", "bedrock"])
        self.assertIs(factory.get_service_constructor("openai"), OpenAIService)
        self.assertIs(factory.get_service_constructor("bedrock"), BedrockService)


if __name__ == "__main__":
    unittest.main()
