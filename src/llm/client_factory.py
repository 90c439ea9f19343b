# src/llm/client_factory.py - v3
"""Factory: instantiate an LLM client from provider name."""

from __future__ import annotations

import importlib
import logging

from careocr.config.settings import Settings
from careocr.core.errors import CareOCRError
from careocr.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Provider name -> adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "anthropic": "careocr.llm.adapters.anthropic_adapter.AnthropicAdapter",
    "openai": "careocr.llm.adapters.openai_adapter.OpenAIAdapter",
    "google": "careocr.llm.adapters.google_adapter.GoogleAdapter",
}

_API_KEY_FIELDS: dict[str, str] = {
    "anthropic": "anthropic_api_key",
    "openai": "openai_api_key",
    "google": "google_api_key",
}


class UnsupportedProviderError(CareOCRError, ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(
    provider: str,
    model: str,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Instantiate the adapter registered for a provider.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])

    init_kwargs = dict(kwargs)
    init_kwargs["model"] = model
    key_field = _API_KEY_FIELDS.get(provider)
    if settings is not None and key_field:
        init_kwargs.setdefault("api_key", getattr(settings, key_field))

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, model)
    return adapter_cls(**init_kwargs)


def register_provider(name: str, class_path: str, api_key_field: str | None = None) -> None:
    """Register a custom provider adapter implementing BaseLLMClient."""
    _PROVIDER_REGISTRY[name] = class_path
    if api_key_field:
        _API_KEY_FIELDS[name] = api_key_field
    logger.info("Registered LLM provider: %s -> %s", name, class_path)


def _import_class(class_path: str) -> type:
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
