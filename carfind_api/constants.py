"""Shared constants and literal types for the CarFind AI service layer."""

import re
from typing import Literal

OPENAI_API_KEY_PARAMETER_NAME = "/carfind/openai-api-key"
BEDROCK_API_KEY_PARAMETER_NAME = "/carfind/bedrock-api-key"
LANGSMITH_API_KEY_PARAMETER_NAME = "/carfind/langsmith-api-key"
AWS_REGION = "ap-northeast-1"
LANGSMITH_PROJECT = "carfind"

SERVICE_TYPE_OPENAI = "openai"
SERVICE_TYPE_BEDROCK = "bedrock"
DEFAULT_SERVICE_TYPE = SERVICE_TYPE_OPENAI

DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_BEDROCK_MODEL = "global.anthropic.claude-haiku-4-5-20251001-v1:0"
OPENAI_BASE_URL = "https://api.openai.com/v1"

DEFAULT_MAX_TOKENS = 1000
MIN_MAX_TOKENS = 1
MAX_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.7
MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0

RETRYABLE_ERROR_PATTERNS = (
    re.compile(r"network", re.IGNORECASE),
    re.compile(r"timeout", re.IGNORECASE),
    re.compile(r"rate.?limit", re.IGNORECASE),
    re.compile(r"temporary", re.IGNORECASE),
    re.compile(r"server.?error", re.IGNORECASE),
    re.compile(r"503"),
    re.compile(r"502"),
    re.compile(r"504"),
)

MessageRole = Literal["user", "assistant", "system"]
OrchestratorKind = Literal["direct", "langgraph"]
