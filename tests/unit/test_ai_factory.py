from unittest.mock import patch

import pytest

from docflow.ai.example_client_adapter import ExampleClientAdapter
from docflow.ai.factory import AIProviderFactory
from docflow.config.settings import Settings


def _settings(**overrides: object) -> Settings:
    return Settings(_env_file=None, **overrides)  # type: ignore[arg-type]


class TestAIProviderFactory:
    def test_example_provider_is_offline(self) -> None:
        provider = AIProviderFactory.create(_settings(ai_provider="example"))
        assert provider.available
        assert isinstance(provider._client, ExampleClientAdapter)

    def test_disabled_provider_is_unavailable(self) -> None:
        assert not AIProviderFactory.create(_settings(ai_provider="disabled")).available

    def test_missing_api_key_is_unavailable(self) -> None:
        with patch("docflow.ai.factory.OpenAIClientAdapter") as mock_adapter:
            provider = AIProviderFactory.create(_settings(ai_provider="openai", ai_openai_api_key=""))
        assert not provider.available
        mock_adapter.assert_not_called()

    def test_uses_openai_settings(self) -> None:
        settings = _settings(
            ai_provider="openai",
            ai_openai_api_key="openai-key",
            ai_openai_model_name="gpt-4o",
            ai_openai_timeout_seconds=42,
            ai_max_input_chars=100,
        )
        with patch("docflow.ai.factory.OpenAIClientAdapter") as mock_adapter:
            provider = AIProviderFactory.create(settings)
        mock_adapter.assert_called_once_with(
            api_key="openai-key",
            timeout_seconds=42,
            base_url=None,
        )
        assert provider.available
        assert provider.truncate("x" * 101) == "x" * 100 + "..."

    def test_uses_provider_default_base_url_for_openrouter(self) -> None:
        settings = _settings(
            ai_provider="openrouter",
            ai_openrouter_api_key="k",
            ai_openrouter_model_name="m",
        )
        with patch("docflow.ai.factory.OpenAIClientAdapter") as mock_adapter:
            AIProviderFactory.create(settings)
        mock_adapter.assert_called_once_with(
            api_key="k",
            timeout_seconds=60,
            base_url="https://openrouter.ai/api/v1",
        )

    def test_ollama_needs_no_key(self) -> None:
        with patch("docflow.ai.factory.OpenAIClientAdapter") as mock_adapter:
            provider = AIProviderFactory.create(_settings(ai_provider="ollama"))
        assert provider.available
        assert mock_adapter.call_args.kwargs["base_url"] == "http://localhost:11434/v1"

    def test_uses_custom_base_url_for_openai_compatible(self) -> None:
        settings = _settings(
            ai_provider="openai_compatible",
            ai_openai_compatible_api_key="k",
            ai_openai_compatible_base_url="https://example.com/v1",
        )
        with patch("docflow.ai.factory.OpenAIClientAdapter") as mock_adapter:
            AIProviderFactory.create(settings)
        assert mock_adapter.call_args.kwargs["base_url"] == "https://example.com/v1"

    def test_openai_compatible_requires_base_url(self) -> None:
        with pytest.raises(ValueError, match="ai_openai_compatible_base_url is required"):
            AIProviderFactory.create(_settings(ai_provider="openai_compatible"))

    def test_unknown_provider_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown AI provider"):
            AIProviderFactory.create(_settings(ai_provider="mystery"))
