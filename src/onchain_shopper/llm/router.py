"""Builds the configured LLM provider."""

from __future__ import annotations

import importlib
import logging

from onchain_shopper.config import LLMConfig, LLMProviderConfig, is_unset
from onchain_shopper.llm.base import BaseLLMProvider

logger = logging.getLogger(__name__)

# Provider name -> implementation class.  Imports are deferred so that only
# the SDK of the provider actually used gets loaded.
_PROVIDER_FACTORIES: dict[str, str] = {
    "anthropic": "onchain_shopper.llm.anthropic.AnthropicProvider",
    "openai": "onchain_shopper.llm.openai.OpenAIProvider",
}


def _import_provider_class(dotted_path: str) -> type[BaseLLMProvider]:
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    if not (isinstance(cls, type) and issubclass(cls, BaseLLMProvider)):
        raise TypeError(
            f"Expected a BaseLLMProvider subclass at '{dotted_path}', got {cls!r}"
        )
    return cls


class LLMRouter:
    """Creates provider instances from :class:`LLMConfig` and caches them.

    Parameters
    ----------
    llm_config:
        The ``llm`` section of the shopper configuration.
    """

    def __init__(self, llm_config: LLMConfig):
        self._config = llm_config
        self._providers: dict[str, BaseLLMProvider] = {}

    def _get_provider_config(self, provider_name: str) -> LLMProviderConfig:
        config_block = getattr(self._config, provider_name, None)
        if config_block is None:
            raise ValueError(
                f"Provider '{provider_name}' is not configured. "
                f"Add an 'llm.{provider_name}' section to your configuration."
            )
        return config_block

    def get_provider(
        self,
        provider_name: str | None = None,
        model_override: str | None = None,
    ) -> BaseLLMProvider:
        """Get or create a provider instance.

        Raises
        ------
        ValueError
            If the provider is unknown, not configured, or has no API key or
            model.
        """
        name = provider_name or self._config.default_provider
        cache_key = f"{name}:{model_override}" if model_override else name
        if cache_key in self._providers:
            return self._providers[cache_key]

        if name not in _PROVIDER_FACTORIES:
            raise ValueError(
                f"Unknown provider '{name}'. "
                f"Supported providers: {sorted(_PROVIDER_FACTORIES)}"
            )

        provider_config = self._get_provider_config(name)
        if is_unset(provider_config.api_key):
            raise ValueError(
                f"API key for provider '{name}' is empty. Set it in your "
                f"configuration file or via {name.upper()}_API_KEY."
            )

        model = model_override or provider_config.model
        if not model:
            raise ValueError(f"No model specified for provider '{name}'.")

        provider_cls = _import_provider_class(_PROVIDER_FACTORIES[name])
        provider = provider_cls(
            api_key=provider_config.api_key,
            model=model,
            base_url=provider_config.base_url,
            max_tokens=provider_config.max_tokens,
        )

        self._providers[cache_key] = provider
        logger.info(
            "Created %s provider (model=%s, base_url=%s)",
            name,
            model,
            provider_config.base_url or "default",
        )
        return provider
