"""
Backend Factory - central factory for creating generation backends across providers.
"""
from typing import Optional

from .backends import GeminiBackend, GenerationBackend, OpenRouterBackend, gemini_supports_structured_output
from .errors import BackendNotConfiguredError


class BackendFactory:
    """Central factory for creating search-grounded generation backends."""

    PROVIDER_DEFAULTS = {
        "gemini": "gemini-2.5-flash",
        "openrouter": "google/gemini-2.5-flash",
    }

    @classmethod
    def create(
        cls,
        provider: str = "gemini",
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> GenerationBackend:
        """
        Create a backend for the specified provider.

        Args:
            provider: Backend provider ("gemini", "openrouter")
            model: Model name (provider-specific). If None, uses provider default.
            api_key: Credential. If None, resolved from environment and configuration.
            timeout: Transport timeout in seconds

        Returns:
            GenerationBackend instance configured for the provider
        """
        if provider not in cls.PROVIDER_DEFAULTS:
            raise ValueError(f"Unknown provider: {provider}. Supported: {', '.join(cls.PROVIDER_DEFAULTS)}")

        model = model or cls.PROVIDER_DEFAULTS[provider]
        api_key = api_key or cls._resolve_api_key(provider)
        if not api_key:
            raise BackendNotConfiguredError(f"No API key configured for provider '{provider}'")

        if provider == "gemini":
            return GeminiBackend(api_key=api_key, model=model, timeout=timeout)
        return OpenRouterBackend(api_key=api_key, model=model, timeout=timeout)

    @classmethod
    def _resolve_api_key(cls, provider: str) -> Optional[str]:
        from .config import get_config

        return get_config(validate_startup=False).resolve_api_key(provider)

    @classmethod
    def supports_structured_output(cls, provider: str, model: Optional[str] = None) -> bool:
        """Whether the provider's model can combine search grounding with an output schema."""
        if provider == "gemini":
            return gemini_supports_structured_output(model or cls.PROVIDER_DEFAULTS["gemini"])
        return False

    @classmethod
    def list_providers(cls) -> list[str]:
        """List available providers."""
        return list(cls.PROVIDER_DEFAULTS.keys())

    @classmethod
    def get_default_model(cls, provider: str) -> str:
        """Get default model for a provider."""
        return cls.PROVIDER_DEFAULTS.get(provider, "")
