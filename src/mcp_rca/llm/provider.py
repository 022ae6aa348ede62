"""LLM providers — LiteLLM-backed chat completion behind one small interface.

The server never talks to a vendor SDK directly.  Each configured provider is
a :class:`LiteLLMProvider` bound to one :class:`ModelConfig`, and the
:class:`LLMProviderManager` picks one by name.  The manager is built once at
startup and passed to whatever needs it.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from typing import Any, Literal, Protocol, runtime_checkable

import litellm
from pydantic import BaseModel

from mcp_rca.llm.config import ModelConfig
from mcp_rca.utils.telemetry import (
    ATTR_BACKEND,
    ATTR_MODEL,
    ATTR_PROVIDER,
    ATTR_TOKENS_COMPLETION,
    ATTR_TOKENS_PROMPT,
    ATTR_TOKENS_TOTAL,
    get_tracer,
)

logger = logging.getLogger(__name__)

_tracer = get_tracer(__name__)

PROVIDER_ENV = "MCP_RCA_LLM_PROVIDER"
DEFAULT_OPENAI_MODEL = "openai/gpt-4o-mini"
DEFAULT_ANTHROPIC_MODEL = "anthropic/claude-3-5-haiku-latest"


class LLMError(Exception):
    """Raised when no provider is usable or a completion call fails."""


class LLMMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class LLMUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMResponse(BaseModel):
    content: str
    model: str
    usage: LLMUsage | None = None


@runtime_checkable
class LLMProvider(Protocol):
    """Anything that can turn a message list into a completion."""

    @property
    def name(self) -> str: ...

    async def generate(self, messages: Sequence[LLMMessage], **options: Any) -> LLMResponse: ...

    async def health_check(self) -> bool: ...


class LiteLLMProvider:
    """A named provider that calls ``litellm.acompletion`` with a fixed config.

    Usage::

        provider = LiteLLMProvider("openai", ModelConfig(model="openai/gpt-4o-mini"))
        response = await provider.generate([LLMMessage(role="user", content="ping")])
    """

    def __init__(self, name: str, config: ModelConfig) -> None:
        self._name = name
        self.config = config

    @property
    def name(self) -> str:
        return self._name

    async def generate(self, messages: Sequence[LLMMessage], **options: Any) -> LLMResponse:
        """Run one completion.  ``options`` are passed through to LiteLLM.

        Raises:
            LLMError: If the LiteLLM call fails or returns no choices.
        """
        with _tracer.start_as_current_span("llm.generate") as span:
            span.set_attribute(ATTR_PROVIDER, self._name)
            span.set_attribute(ATTR_MODEL, self.config.model)
            span.set_attribute(ATTR_BACKEND, self.config.provider)

            call_kwargs: dict[str, Any] = {
                "model": self.config.model,
                "messages": [message.model_dump() for message in messages],
                **self.config.extra,
            }
            if self.config.api_key:
                call_kwargs["api_key"] = self.config.api_key
            if self.config.api_base:
                call_kwargs["api_base"] = self.config.api_base
            if self.config.max_tokens is not None:
                call_kwargs["max_tokens"] = self.config.max_tokens
            if self.config.temperature is not None:
                call_kwargs["temperature"] = self.config.temperature
            call_kwargs.update(options)

            try:
                response = await litellm.acompletion(**call_kwargs)  # pyright: ignore[reportUnknownMemberType]
                result = self._parse_response(response)
            except Exception as exc:
                raise LLMError(f"{self._name} generate failed: {exc}") from exc

            if result.usage is not None:
                span.set_attribute(ATTR_TOKENS_PROMPT, result.usage.prompt_tokens)
                span.set_attribute(ATTR_TOKENS_COMPLETION, result.usage.completion_tokens)
                span.set_attribute(ATTR_TOKENS_TOTAL, result.usage.total_tokens)
            return result

    async def health_check(self) -> bool:
        try:
            await self.generate([LLMMessage(role="user", content="ping")], max_tokens=5)
        except LLMError:
            logger.warning("Health check failed for provider %s", self._name, exc_info=True)
            return False
        return True

    def _parse_response(self, response: Any) -> LLMResponse:
        """Convert a LiteLLM (OpenAI-compatible) response to :class:`LLMResponse`."""
        message = response.choices[0].message
        usage: LLMUsage | None = None
        if getattr(response, "usage", None):
            usage = LLMUsage(
                prompt_tokens=int(response.usage.prompt_tokens or 0),
                completion_tokens=int(response.usage.completion_tokens or 0),
                total_tokens=int(response.usage.total_tokens or 0),
            )
        return LLMResponse(
            content=message.content or "",
            model=str(getattr(response, "model", None) or self.config.model),
            usage=usage,
        )


class LLMProviderManager:
    """Holds the configured providers and routes requests to one of them.

    A manager with no providers is valid; :meth:`generate` then raises
    :class:`LLMError` and callers fall back to their own defaults.
    """

    def __init__(
        self,
        providers: Sequence[LLMProvider] = (),
        default: str | None = None,
    ) -> None:
        self._providers: dict[str, LLMProvider] = {provider.name: provider for provider in providers}
        if default is not None and default not in self._providers:
            raise LLMError(
                f"Default provider '{default}' is not configured. "
                f"Available providers: {', '.join(self._providers) or 'none'}"
            )
        self._default = default or next(iter(self._providers), None)

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        default: str | None = None,
    ) -> LLMProviderManager:
        """Register a provider for every API key present in *env* (``os.environ`` by default)."""
        source = os.environ if env is None else env
        providers: list[LiteLLMProvider] = []

        openai_key = source.get("OPENAI_API_KEY", "").strip()
        if openai_key:
            model = source.get("MCP_RCA_OPENAI_MODEL", "").strip() or DEFAULT_OPENAI_MODEL
            providers.append(LiteLLMProvider("openai", ModelConfig(model=model, api_key=openai_key)))

        anthropic_key = source.get("ANTHROPIC_API_KEY", "").strip()
        if anthropic_key:
            model = source.get("MCP_RCA_ANTHROPIC_MODEL", "").strip() or DEFAULT_ANTHROPIC_MODEL
            providers.append(LiteLLMProvider("anthropic", ModelConfig(model=model, api_key=anthropic_key)))

        for provider in providers:
            logger.debug(
                "Registered %s provider: %s via %s", provider.name, provider.config.model, provider.config.provider
            )

        chosen = default or source.get(PROVIDER_ENV, "").strip() or None
        if chosen == "claude":
            chosen = "anthropic"
        manager = cls(providers, default=chosen)
        logger.info("LLM providers available: %s", manager.available_providers() or "none")
        return manager

    @property
    def default_provider(self) -> str | None:
        return self._default

    def available_providers(self) -> list[str]:
        return list(self._providers)

    def get(self, name: str | None = None) -> LLMProvider | None:
        key = name or self._default
        if key is None:
            return None
        return self._providers.get(key)

    async def generate(
        self,
        messages: Sequence[LLMMessage],
        provider: str | None = None,
        **options: Any,
    ) -> LLMResponse:
        """Generate with *provider* (or the default).

        Raises:
            LLMError: If the provider is not configured or the call fails.
        """
        selected = self.get(provider)
        if selected is None:
            available = ", ".join(self._providers) or "none"
            raise LLMError(
                f"Provider '{provider or self._default}' not available. Available providers: {available}"
            )
        return await selected.generate(messages, **options)

    async def health_check_all(self) -> dict[str, bool]:
        results: dict[str, bool] = {}
        for name, provider in self._providers.items():
            results[name] = await provider.health_check()
        return results
