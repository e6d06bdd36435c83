# =============================================================================
# Generation Gateway — Anthropic and OpenAI-Compatible Chat Models
# =============================================================================
#
# The agent core only ever sees one call:
#
#     await generator.generate(prompt, provider, model) -> str
#
# Every prompt in the pipeline (query rewrite, draft, judge rubric,
# synthesis) is a single user turn, so providers expose complete(prompt)
# and flatten their SDK's reply into an LLMResponse before returning.
# Any failure on the way out is a GenerationError.
#
# LAYOUT:
#   TextGenerator (Protocol)      — what the agents depend on
#   LLMGateway                    — TextGenerator; one client per (provider, model)
#   AnthropicProvider             — AsyncAnthropic, text blocks joined
#   OpenAICompatibleProvider      — AsyncOpenAI, optional base_url
#   parse_model_id() / create_provider()
#
# Model ids read "provider_type/model" or "provider_type/model@base_url",
# e.g. "openai_compatible/qwen-plus@https://dashscope.aliyuncs.com/v1".
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from rag_agent.config import settings
from rag_agent.errors import ConfigurationError, GenerationError

logger = logging.getLogger(__name__)

KNOWN_PROVIDER_TYPES = frozenset({"anthropic", "openai_compatible"})


@dataclass
class LLMResponse:
    """A provider reply reduced to text plus token accounting."""

    content: str
    model: str
    input_tokens: int
    output_tokens: int


class TextGenerator(Protocol):
    """
    The opaque generation capability consumed by the agent core.

    Implementations must return plain text and raise GenerationError on
    any upstream failure.
    """

    async def generate(self, prompt: str, provider: str, model: str) -> str:
        ...


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class _ChatProvider:
    """Model name and sampling defaults shared by both SDK wrappers."""

    def __init__(self, model: str | None) -> None:
        self.model = model or settings.llm_model
        self.temperature = settings.llm_temperature
        self.max_tokens = settings.llm_max_tokens

    def _sampling(self) -> dict:
        return {"temperature": self.temperature, "max_tokens": self.max_tokens}


class AnthropicProvider(_ChatProvider):
    """Claude via AsyncAnthropic."""

    def __init__(self, api_key: str | None = None, model: str | None = None) -> None:
        from anthropic import AsyncAnthropic

        super().__init__(model)
        key = api_key or settings.llm_api_key or settings.anthropic_api_key
        if not key:
            raise ConfigurationError(
                "Anthropic generation needs LLM_API_KEY or ANTHROPIC_API_KEY"
            )
        self._client = AsyncAnthropic(api_key=key)
        logger.info("Anthropic client ready (model=%s)", self.model)

    async def complete(self, prompt: str) -> LLMResponse:
        reply = await self._client.messages.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            **self._sampling(),
        )

        # Tool-use and thinking blocks carry no answer text
        text = "".join(part.text for part in reply.content if part.type == "text")
        return LLMResponse(
            content=text,
            model=reply.model,
            input_tokens=reply.usage.input_tokens,
            output_tokens=reply.usage.output_tokens,
        )


class OpenAICompatibleProvider(_ChatProvider):
    """
    Any chat-completions API: OpenAI, DeepSeek, Qwen, Kimi, GLM and others.

    base_url falls back to LLM_BASE_URL, then to the OpenAI default.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ) -> None:
        from openai import AsyncOpenAI

        super().__init__(model)
        key = api_key or settings.llm_api_key or settings.openai_api_key
        if not key:
            raise ConfigurationError(
                "OpenAI-compatible generation needs LLM_API_KEY or OPENAI_API_KEY"
            )
        endpoint = base_url or settings.llm_base_url
        self._client = AsyncOpenAI(api_key=key, base_url=endpoint or None)
        logger.info(
            "OpenAI-compatible client ready (model=%s, endpoint=%s)",
            self.model, endpoint or "default",
        )

    async def complete(self, prompt: str) -> LLMResponse:
        reply = await self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            **self._sampling(),
        )

        usage = reply.usage
        return LLMResponse(
            content=reply.choices[0].message.content or "",
            model=reply.model or self.model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )


# ---------------------------------------------------------------------------
# Model Ids
# ---------------------------------------------------------------------------


def _require_known(provider_type: str) -> None:
    if provider_type not in KNOWN_PROVIDER_TYPES:
        raise ConfigurationError(
            f"Unknown provider type '{provider_type}' "
            f"(expected one of {sorted(KNOWN_PROVIDER_TYPES)})"
        )


def parse_model_id(model_id: str) -> tuple[str, str]:
    """
    "anthropic/claude-sonnet-4-6" → ("anthropic", "claude-sonnet-4-6")

    An "@base_url" suffix is left on the model; create_provider() splits it.

    Raises:
        ConfigurationError: Missing "/", unknown provider type, or no model.
    """
    provider_type, sep, model = model_id.partition("/")
    if not sep:
        raise ConfigurationError(
            f"Model id '{model_id}' must look like 'provider_type/model'"
        )
    _require_known(provider_type)
    if not model:
        raise ConfigurationError(f"Model id '{model_id}' names no model")
    return provider_type, model


def create_provider(
    provider_type: str,
    model: str,
    api_key: str | None = None,
) -> AnthropicProvider | OpenAICompatibleProvider:
    """Build a new provider; "model@base_url" selects a custom endpoint."""
    _require_known(provider_type)
    model, _, base_url = model.partition("@")

    if provider_type == "anthropic":
        return AnthropicProvider(api_key=api_key, model=model)
    return OpenAICompatibleProvider(
        api_key=api_key, model=model, base_url=base_url or None,
    )


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------


class LLMGateway:
    """
    TextGenerator that routes each call to a cached provider per
    (provider, model). Judges sharing a model share its client.
    """

    def __init__(self, api_key: str | None = None) -> None:
        self._api_key = api_key
        self._providers: dict[
            tuple[str, str], AnthropicProvider | OpenAICompatibleProvider
        ] = {}

    def _get_provider(
        self, provider: str, model: str,
    ) -> AnthropicProvider | OpenAICompatibleProvider:
        key = (provider, model)
        if key not in self._providers:
            self._providers[key] = create_provider(
                provider, model, api_key=self._api_key,
            )
        return self._providers[key]

    async def generate(self, prompt: str, provider: str, model: str) -> str:
        """
        Raises:
            GenerationError: On configuration or upstream failure.
        """
        try:
            response = await self._get_provider(provider, model).complete(prompt)
        except Exception as e:
            raise GenerationError(
                f"Generation failed ({provider}/{model}): {e}",
                provider=provider,
                model=model,
            ) from e

        logger.debug(
            "%s/%s replied with %d chars (%d in / %d out tokens)",
            provider, response.model, len(response.content),
            response.input_tokens, response.output_tokens,
        )
        return response.content
