"""AI-assisted extraction of template fields from document text."""

import json
from pathlib import Path
from typing import Any

from docflow.ai.prompt_loader import load_prompt
from docflow.ai.provider import AIProvider
from docflow.errors import ParseError
from docflow.logging.logger import Log
from docflow.store.models import RawUnparsedData, StructuredData

MISSING_TEMPLATE_NOTE = "No extraction template provided"

_JSON_TYPES = {
    "string": "string",
    "text": "string",
    "number": "number",
    "integer": "integer",
    "int": "integer",
    "float": "number",
    "boolean": "boolean",
    "bool": "boolean",
}


def build_json_schema(template: dict[str, str]) -> dict[str, object]:
    """JSON schema requiring exactly the template fields, each nullable."""
    properties: dict[str, object] = {}
    for name, declared in template.items():
        json_type = _JSON_TYPES.get(str(declared).strip().lower(), "string")
        properties[name] = {"type": [json_type, "null"]}
    return {
        "type": "object",
        "properties": properties,
        "required": list(template),
        "additionalProperties": False,
    }


def parse_json_object(raw: str) -> dict[str, Any]:
    """Parse a provider response as a JSON object, tolerating markdown fences.

    Raises:
        ParseError: if the content is not a JSON object.
    """
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = cleaned.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON response: {exc}") from exc

    if not isinstance(parsed, dict):
        raise ParseError("JSON response must be an object")
    return parsed


class DataExtractor:
    """Asks the AI provider for values of exactly the template's fields."""

    def __init__(
        self,
        *,
        provider: AIProvider,
        temperature: float = 0.1,
        max_tokens: int = 1500,
        prompt_dir: Path | None = None,
    ) -> None:
        self._provider = provider
        self._temperature = max(0.0, min(0.2, temperature))
        self._max_tokens = max_tokens
        self._system_prompt = load_prompt("data_extraction_system.txt", prompt_dir)
        self._prompt_template = load_prompt("data_extraction_prompt.txt", prompt_dir)

    def extract(
        self,
        text: str,
        template: dict[str, str] | None,
    ) -> StructuredData | RawUnparsedData:
        """Extract template fields from text.

        An unparseable response is kept verbatim as RawUnparsedData rather
        than raised.

        Raises:
            AIProviderError: if the provider is unavailable or fails.
        """
        if not template:
            Log.warning("Data extraction requested without a template")
            return StructuredData(value={}, note=MISSING_TEMPLATE_NOTE)

        prompt = self._prompt_template.format(
            template=json.dumps(template, indent=2),
            document_text=self._provider.truncate(text),
        )
        raw_response = self._provider.complete(
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            json_schema=build_json_schema(template),
        )

        try:
            parsed = parse_json_object(raw_response)
        except ParseError as exc:
            Log.warning(f"Keeping unparsed AI response: {exc}")
            return RawUnparsedData(text=raw_response)

        values = {name: parsed.get(name) for name in template}
        dropped = sorted(set(parsed) - set(template))
        if dropped:
            Log.debug(f"Dropped fields outside the template: {dropped}")
        Log.info(f"Data extraction complete: {len(values)} fields")
        return StructuredData(value=values)
