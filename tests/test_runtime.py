import os
import unittest
from unittest.mock import Mock, patch

from carfind_api.infra import runtime


def ssm_value(value: str) -> dict[str, dict[str, str]]:
    return {"Parameter": {"Value": value}}


class ApiCredentialsTests(unittest.TestCase):
    def setUp(self) -> None:
        runtime.get_api_credentials.cache_clear()
        self.addCleanup(runtime.get_api_credentials.cache_clear)

    def test_environment_variables_take_precedence(self) -> None:
        ssm_client = Mock()
        environ = {
            "OPENAI_API_KEY": "env-openai",
            "BEDROCK_API_KEY": "env-bedrock",
            "LANGSMITH_API_KEY": "env-langsmith",
        }

        with patch.dict(os.environ, environ), patch.object(
            runtime.boto3, "client", return_value=ssm_client
        ):
            credentials = runtime.get_api_credentials()

        self.assertEqual(
            credentials, runtime.ApiCredentials("env-openai", "env-bedrock", "env-langsmith")
        )
        ssm_client.get_parameter.assert_not_called()

    def test_missing_optional_parameters_disable_features(self) -> None:
        ssm_client = Mock()

        def get_parameter(Name: str, WithDecryption: bool) -> dict[str, dict[str, str]]:
            if Name == runtime.OPENAI_API_KEY_PARAMETER_NAME:
                return ssm_value("ssm-openai")
            raise RuntimeError("ParameterNotFound")

        ssm_client.get_parameter.side_effect = get_parameter
        cleared = {"OPENAI_API_KEY": "", "BEDROCK_API_KEY": "", "LANGSMITH_API_KEY": ""}

        with patch.dict(os.environ, cleared), patch.object(
            runtime.boto3, "client", return_value=ssm_client
        ):
            credentials = runtime.get_api_credentials()

        self.assertEqual(credentials, runtime.ApiCredentials("ssm-openai", None, None))

    def test_missing_openai_key_is_fatal(self) -> None:
        ssm_client = Mock()
        ssm_client.get_parameter.return_value = {"Parameter": {}}

        with patch.dict(os.environ, {"OPENAI_API_KEY": ""}), patch.object(
            runtime.boto3, "client", return_value=ssm_client
        ):
            with self.assertRaisesRegex(RuntimeError, "has no value"):
                runtime.get_api_credentials()


class LangSmithConfigurationTests(unittest.TestCase):
    def test_tracing_follows_key_availability(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            runtime._configure_langsmith("ls-key")
            self.assertEqual(os.environ["LANGSMITH_TRACING"], "true")
            self.assertEqual(os.environ["LANGSMITH_PROJECT"], runtime.LANGSMITH_PROJECT)

            runtime._configure_langsmith(None)
            self.assertNotIn("LANGSMITH_TRACING", os.environ)
            self.assertNotIn("LANGSMITH_API_KEY", os.environ)

    def test_flush_is_skipped_when_tracing_is_off(self) -> None:
        with patch.dict(os.environ, {}, clear=True), patch.object(
            runtime, "get_cached_client"
        ) as get_client:
            runtime.flush_langsmith_traces()

        get_client.assert_not_called()


class BedrockClientTests(unittest.TestCase):
    def test_requests_carry_bearer_token(self) -> None:
        client = runtime.build_bedrock_client("br-key", "https://bedrock.example.test")
        request = Mock(headers={})

        client.meta.events.emit(
            "before-send.bedrock-runtime.Converse", request=request
        )

        self.assertEqual(request.headers["Authorization"], "Bearer br-key")
        self.assertEqual(client.meta.endpoint_url, "https://bedrock.example.test")


if __name__ == "__main__":
    unittest.main()
