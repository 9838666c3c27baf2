from pathlib import Path

from docflow.ai.prompt_loader import load_prompt
from docflow.ai.provider import AIProvider
from docflow.logging.logger import Log
from docflow.store.models import NarrativeData


class DocumentAnalyzer:
    """Produces a methodology/findings/limitations narrative for a document."""

    def __init__(
        self,
        *,
        provider: AIProvider,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        prompt_dir: Path | None = None,
    ) -> None:
        self._provider = provider
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._system_prompt = load_prompt("full_analysis_system.txt", prompt_dir)
        self._prompt_template = load_prompt("full_analysis_prompt.txt", prompt_dir)

    def analyze(self, text: str) -> NarrativeData:
        prompt = self._prompt_template.format(document_text=self._provider.truncate(text))
        narrative = self._provider.complete(
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        Log.info(f"Full analysis complete: {len(narrative)} chars")
        return NarrativeData(text=narrative)
