"""Runtime infrastructure helpers for credentials, tracing, and provider SDK clients."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import boto3
from botocore import UNSIGNED
from botocore.config import Config
from langchain_aws import ChatBedrockConverse
from langsmith import traceable
from langsmith.run_trees import get_cached_client
from openai import OpenAI

from carfind_api.constants import (
    AWS_REGION,
    BEDROCK_API_KEY_PARAMETER_NAME,
    LANGSMITH_API_KEY_PARAMETER_NAME,
    LANGSMITH_PROJECT,
    OPENAI_API_KEY_PARAMETER_NAME,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiCredentials:
    openai_api_key: str
    bedrock_api_key: str | None
    langsmith_api_key: str | None


def _get_secure_parameter(ssm_client: Any, parameter_name: str) -> str:
    result = ssm_client.get_parameter(Name=parameter_name, WithDecryption=True)
    value = result["Parameter"].get("Value")
    if not value:
        raise RuntimeError(f"SSM parameter {parameter_name} has no value")
    return value


def _get_optional_secure_parameter(ssm_client: Any, parameter_name: str) -> str | None:
    try:
        return _get_secure_parameter(ssm_client, parameter_name)
    except Exception:
        logger.warning(
            "Optional SSM parameter is unavailable; disabling dependent feature",
            extra={"parameter_name": parameter_name},
            exc_info=True,
        )
        return None


@lru_cache(maxsize=1)
def get_api_credentials() -> ApiCredentials:
    """Resolve provider keys, preferring environment variables over SSM parameters."""
    ssm_client = boto3.client("ssm", region_name=AWS_REGION)
    return ApiCredentials(
        openai_api_key=os.environ.get("OPENAI_API_KEY")
        or _get_secure_parameter(ssm_client, OPENAI_API_KEY_PARAMETER_NAME),
        bedrock_api_key=os.environ.get("BEDROCK_API_KEY")
        or _get_optional_secure_parameter(ssm_client, BEDROCK_API_KEY_PARAMETER_NAME),
        langsmith_api_key=os.environ.get("LANGSMITH_API_KEY")
        or _get_optional_secure_parameter(ssm_client, LANGSMITH_API_KEY_PARAMETER_NAME),
    )


def _configure_langsmith(langsmith_api_key: str | None) -> None:
    if not langsmith_api_key:
        os.environ.pop("LANGSMITH_TRACING", None)
        os.environ.pop("LANGSMITH_API_KEY", None)
        logger.info("LangSmith tracing disabled because API key is unavailable")
        return

    os.environ["LANGSMITH_TRACING"] = "true"
    os.environ["LANGSMITH_API_KEY"] = langsmith_api_key
    os.environ.setdefault("LANGSMITH_PROJECT", LANGSMITH_PROJECT)


@lru_cache(maxsize=1)
def ensure_langsmith_configured() -> None:
    """Configure LangSmith environment variables (called once via lru_cache)."""
    credentials = get_api_credentials()
    _configure_langsmith(credentials.langsmith_api_key)


def flush_langsmith_traces() -> None:
    if os.environ.get("LANGSMITH_TRACING", "").lower() != "true":
        return
    if not os.environ.get("LANGSMITH_API_KEY"):
        return
    try:
        get_cached_client().flush()
    except Exception:
        logger.warning("Failed to flush LangSmith traces", exc_info=True)


def build_openai_client(api_key: str, base_url: str | None = None) -> OpenAI:
    return OpenAI(api_key=api_key, base_url=base_url)


@traceable(run_type="llm", name="openai.responses.create")
def invoke_openai_responses(client: OpenAI, request_params: dict[str, Any]) -> Any:
    return client.responses.create(**request_params)


def build_bedrock_client(api_key: str, endpoint_url: str | None = None) -> Any:
    """Create a bedrock-runtime client that authenticates with a Bedrock API key.

    Requests are left unsigned and carry the key as a bearer token instead.
    """
    client = boto3.client(
        "bedrock-runtime",
        region_name=AWS_REGION,
        endpoint_url=endpoint_url,
        config=Config(signature_version=UNSIGNED),
    )

    def _add_bearer_token(request: Any, **_: Any) -> None:
        request.headers["Authorization"] = f"Bearer {api_key}"

    client.meta.events.register("before-send.bedrock-runtime.*", _add_bearer_token)
    return client


def build_bedrock_chat_model(params: dict[str, Any], *, client: Any) -> ChatBedrockConverse:
    return ChatBedrockConverse(
        model=params["model_id"],
        client=client,
        region_name=AWS_REGION,
        **({"max_tokens": params["max_tokens"]} if params.get("max_tokens") is not None else {}),
        **(
            {"temperature": params["temperature"]}
            if params.get("temperature") is not None
            else {}
        ),
    )
