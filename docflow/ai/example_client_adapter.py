"""Offline AI client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseAIClient and register the provider in AIProviderFactory.
"""

import json
from typing import ClassVar

from docflow.ai.client_base import BaseAIClient


class ExampleClientAdapter(BaseAIClient):
    """Adapter that answers without network calls.

    Structured requests get a JSON object with a null value for every schema
    property; free-text requests get a fixed narrative. Useful for local
    development and tests.
    """

    NARRATIVE: ClassVar[str] = (
        "Methodology: not assessed (offline provider).\n"
        "Findings: not assessed (offline provider).\n"
        "Limitations: not assessed (offline provider)."
    )

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object] | None = None,
    ) -> str:
        _ = model, temperature, max_tokens, system_prompt, user_prompt
        if json_schema is None:
            return self.NARRATIVE
        properties = json_schema.get("properties")
        names = list(properties) if isinstance(properties, dict) else []
        return json.dumps({name: None for name in names})
