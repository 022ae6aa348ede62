"""LLM integration — LiteLLM providers and hypothesis generation."""

from mcp_rca.llm.config import ModelConfig
from mcp_rca.llm.generator import GeneratedHypothesis, GeneratedTestPlan, HypothesisGenerator
from mcp_rca.llm.provider import (
    LiteLLMProvider,
    LLMError,
    LLMMessage,
    LLMProvider,
    LLMProviderManager,
    LLMResponse,
    LLMUsage,
)

__all__ = [
    "GeneratedHypothesis",
    "GeneratedTestPlan",
    "HypothesisGenerator",
    "LLMError",
    "LLMMessage",
    "LLMProvider",
    "LLMProviderManager",
    "LLMResponse",
    "LLMUsage",
    "LiteLLMProvider",
    "ModelConfig",
]
