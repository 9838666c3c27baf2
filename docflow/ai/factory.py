from typing import ClassVar

from docflow.ai.client_base import BaseAIClient
from docflow.ai.example_client_adapter import ExampleClientAdapter
from docflow.ai.openai_client_adapter import OpenAIClientAdapter
from docflow.ai.provider import AIProvider
from docflow.config.settings import Settings
from docflow.logging.logger import Log


class AIProviderFactory:
    """Creates the configured AI provider."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    KEYLESS_PROVIDERS: ClassVar[frozenset[str]] = frozenset({"ollama"})

    @classmethod
    def create(cls, settings: Settings) -> AIProvider:
        """Create a provider from settings.

        A known provider without an API key yields an unavailable provider
        instead of failing at startup.
        """
        provider = settings.ai_provider.lower()
        if provider == "example":
            return AIProvider(
                client=ExampleClientAdapter(),
                model="example",
                max_input_chars=settings.ai_max_input_chars,
            )
        if provider in ("", "none", "disabled"):
            return AIProvider(client=None, model="", max_input_chars=settings.ai_max_input_chars)

        base_url = cls._resolve_base_url(provider, settings)
        api_key = cls._resolve_api_key(provider, settings)
        client: BaseAIClient | None = None
        if api_key or provider in cls.KEYLESS_PROVIDERS:
            client = OpenAIClientAdapter(
                api_key=api_key or provider,
                timeout_seconds=cls._resolve_timeout_seconds(provider, settings),
                base_url=base_url,
            )
        else:
            Log.warning(f"AI provider '{provider}' has no API key; AI stages are unavailable")
        return AIProvider(
            client=client,
            model=cls._resolve_model_name(provider, settings),
            max_input_chars=settings.ai_max_input_chars,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = (settings.ai_openai_compatible_base_url or "").strip()
            if not url:
                raise ValueError(
                    "ai_openai_compatible_base_url is required for "
                    "ai_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        supported = [
            "example",
            "disabled",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(f"Unknown AI provider '{provider}'. Choose from: {supported}")

    @classmethod
    def _resolve_api_key(cls, provider: str, settings: Settings) -> str:
        return str(getattr(settings, f"ai_{provider}_api_key", "") or "")

    @classmethod
    def _resolve_model_name(cls, provider: str, settings: Settings) -> str:
        return str(getattr(settings, f"ai_{provider}_model_name", "") or "")

    @classmethod
    def _resolve_timeout_seconds(cls, provider: str, settings: Settings) -> int:
        return int(getattr(settings, f"ai_{provider}_timeout_seconds", 60) or 60)
