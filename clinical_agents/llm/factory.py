"""Chat backend selection.

A backend is picked by name ("openai" covers every OpenAI-compatible server,
LM Studio included) or inferred from the model id.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from clinical_agents.llm.anthropic import AnthropicProvider
from clinical_agents.llm.base import BaseLLMProvider
from clinical_agents.llm.openai_compat import OpenAICompatibleProvider

if TYPE_CHECKING:
    from clinical_agents.utils.config import LLMConfig

DEFAULT_PROVIDER = "openai"

# Model id prefix -> provider name; anything unmatched uses DEFAULT_PROVIDER
_MODEL_PREFIXES: tuple[tuple[str, str], ...] = (("claude", "anthropic"),)


class LLMProviderFactory:
    _providers: dict[str, type[BaseLLMProvider]] = {
        "openai": OpenAICompatibleProvider,
        "anthropic": AnthropicProvider,
    }

    @classmethod
    def list_providers(cls) -> list[str]:
        return sorted(cls._providers)

    @classmethod
    def get_provider_for_model(cls, model: str) -> str:
        lowered = model.lower()
        for prefix, provider in _MODEL_PREFIXES:
            if lowered.startswith(prefix):
                return provider
        return DEFAULT_PROVIDER

    @classmethod
    def create(
        cls,
        provider: str | None = None,
        model: str | None = None,
        api_key: str | None = None,
        **kwargs: Any,
    ) -> BaseLLMProvider:
        """Instantiate a backend.

        Args:
            provider: Registered name; inferred from ``model`` when omitted.
            model: Default model id for the backend.
            api_key: Passed through; each backend falls back to its own
                environment variable when this is None.
            **kwargs: Backend options such as ``base_url`` or ``timeout``.

        Raises:
            ValueError: ``provider`` is not registered.
        """
        name = provider or (cls.get_provider_for_model(model) if model else DEFAULT_PROVIDER)
        provider_class = cls._providers.get(name)
        if provider_class is None:
            raise ValueError(
                f"Unknown provider: {name}. Available: {', '.join(cls.list_providers())}"
            )
        return provider_class(api_key=api_key, model=model, **kwargs)

    @classmethod
    def from_llm_config(cls, config: LLMConfig) -> BaseLLMProvider:
        """Backend described by the ``llm`` section of the app config."""
        return cls.create(
            provider=config.provider.value,
            model=config.model,
            api_key=config.api_key,
            base_url=config.base_url,
        )
