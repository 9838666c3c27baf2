import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from docflow.ai.analyzer import DocumentAnalyzer
from docflow.ai.data_extractor import (
    MISSING_TEMPLATE_NOTE,
    DataExtractor,
    build_json_schema,
    parse_json_object,
)
from docflow.ai.example_client_adapter import ExampleClientAdapter
from docflow.ai.prompt_loader import load_prompt
from docflow.ai.provider import AIProvider
from docflow.errors import AIProviderError, AIProviderUnavailableError, ParseError
from docflow.store.models import NarrativeData, RawUnparsedData, StructuredData


def _provider(response: str, max_input_chars: int = 4000) -> tuple[AIProvider, MagicMock]:
    client = MagicMock()
    client.create_chat_completion.return_value = response
    return AIProvider(client=client, model="m", max_input_chars=max_input_chars), client


class TestAIProvider:
    def test_truncates_long_text(self) -> None:
        provider = AIProvider(client=None, model="m", max_input_chars=5)
        assert provider.truncate("abcdefgh") == "abcde..."
        assert provider.truncate("abc") == "abc"

    def test_unconfigured_provider_is_unavailable(self) -> None:
        provider = AIProvider(client=None, model="")
        assert not provider.available
        with pytest.raises(AIProviderUnavailableError, match="AI service not available"):
            provider.complete(system_prompt="s", user_prompt="u", temperature=0.1, max_tokens=10)

    def test_passes_model_to_client(self) -> None:
        provider, client = _provider("ok")
        provider.complete(system_prompt="s", user_prompt="u", temperature=0.1, max_tokens=10)
        assert client.create_chat_completion.call_args.kwargs["model"] == "m"


class TestJsonHelpers:
    def test_schema_lists_exactly_template_fields(self) -> None:
        schema = build_json_schema({"sample_size": "number", "design": "string"})
        assert schema["required"] == ["sample_size", "design"]
        assert schema["additionalProperties"] is False
        assert schema["properties"] == {
            "sample_size": {"type": ["number", "null"]},
            "design": {"type": ["string", "null"]},
        }

    def test_unknown_declared_type_falls_back_to_string(self) -> None:
        schema = build_json_schema({"x": "free text please"})
        assert schema["properties"] == {"x": {"type": ["string", "null"]}}

    def test_parses_fenced_json(self) -> None:
        assert parse_json_object('```json\n{"a": 1}\n```') == {"a": 1}

    def test_rejects_non_object(self) -> None:
        with pytest.raises(ParseError, match="must be an object"):
            parse_json_object("[1, 2]")

    def test_rejects_invalid_json(self) -> None:
        with pytest.raises(ParseError, match="Invalid JSON response"):
            parse_json_object("not json")


class TestDataExtractor:
    def test_keeps_exactly_template_fields(self) -> None:
        provider, _client = _provider(json.dumps({"sample_size": 120, "extra": "drop me"}))
        data = DataExtractor(provider=provider).extract(
            "text", {"sample_size": "number", "design": "string"}
        )
        assert data == StructuredData(value={"sample_size": 120, "design": None})

    def test_missing_template_skips_ai_call(self) -> None:
        provider, client = _provider("{}")
        data = DataExtractor(provider=provider).extract("text", None)
        assert data == StructuredData(value={}, note=MISSING_TEMPLATE_NOTE)
        client.create_chat_completion.assert_not_called()

    def test_unparseable_response_is_kept_raw(self) -> None:
        provider, _client = _provider("Sample size was 120.")
        data = DataExtractor(provider=provider).extract("text", {"sample_size": "number"})
        assert data == RawUnparsedData(text="Sample size was 120.")

    def test_prompt_contains_truncated_text_and_template(self) -> None:
        provider, client = _provider("{}", max_input_chars=10)
        DataExtractor(provider=provider).extract("x" * 50, {"design": "string"})
        kwargs = client.create_chat_completion.call_args.kwargs
        assert "x" * 10 + "..." in kwargs["user_prompt"]
        assert "x" * 11 not in kwargs["user_prompt"]
        assert '"design": "string"' in kwargs["user_prompt"]
        assert kwargs["json_schema"]["required"] == ["design"]

    def test_temperature_is_clamped_low(self) -> None:
        provider, client = _provider("{}")
        DataExtractor(provider=provider, temperature=0.9).extract("t", {"a": "string"})
        assert client.create_chat_completion.call_args.kwargs["temperature"] == 0.2

    def test_provider_failure_propagates(self) -> None:
        provider, client = _provider("{}")
        client.create_chat_completion.side_effect = AIProviderError("AI provider API error: HTTP 500")
        with pytest.raises(AIProviderError, match="HTTP 500"):
            DataExtractor(provider=provider).extract("t", {"a": "string"})

    def test_example_adapter_yields_nulls(self) -> None:
        provider = AIProvider(client=ExampleClientAdapter(), model="example")
        data = DataExtractor(provider=provider).extract("t", {"a": "string", "b": "number"})
        assert data == StructuredData(value={"a": None, "b": None})


class TestDocumentAnalyzer:
    def test_returns_narrative_verbatim(self) -> None:
        provider, client = _provider("Methodology: RCT\nFindings: positive")
        result = DocumentAnalyzer(provider=provider).analyze("document body")
        assert result == NarrativeData(text="Methodology: RCT\nFindings: positive")
        kwargs = client.create_chat_completion.call_args.kwargs
        assert kwargs["json_schema"] is None
        assert "document body" in kwargs["user_prompt"]

    def test_example_adapter_narrative(self) -> None:
        provider = AIProvider(client=ExampleClientAdapter(), model="example")
        result = DocumentAnalyzer(provider=provider).analyze("t")
        assert result.text == ExampleClientAdapter.NARRATIVE


class TestExampleClientAdapter:
    def _complete(self, json_schema: dict[str, object] | None) -> str:
        return ExampleClientAdapter().create_chat_completion(
            model="example", temperature=0.0, max_tokens=100,
            system_prompt="s", user_prompt="u", json_schema=json_schema,
        )

    def test_schema_properties_become_nulls(self) -> None:
        assert json.loads(self._complete({"properties": {"a": {}, "b": {}}})) == {"a": None, "b": None}

    def test_schema_without_properties_yields_empty_object(self) -> None:
        assert json.loads(self._complete({"type": "object"})) == {}
        assert json.loads(self._complete({"properties": ["a"]})) == {}


class TestLoadPrompt:
    def test_loads_bundled_prompt(self) -> None:
        assert "{document_text}" in load_prompt("full_analysis_prompt.txt")
        template = load_prompt("data_extraction_prompt.txt")
        assert "{template}" in template

    def test_loads_custom_directory(self, tmp_path: Path) -> None:
        (tmp_path / "custom.txt").write_text("Hello {document_text}")
        assert load_prompt("custom.txt", tmp_path) == "Hello {document_text}"

    def test_missing_file_raises_error(self) -> None:
        with pytest.raises(AIProviderUnavailableError, match="Failed to load prompt"):
            load_prompt("missing.txt", Path("/nonexistent"))
