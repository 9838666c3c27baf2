from pathlib import Path

from docflow.errors import AIProviderUnavailableError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt(name: str, prompt_dir: Path | None = None) -> str:
    """Load a bundled prompt file by name.

    Args:
        name: File name inside the prompt directory, e.g. ``full_analysis_system.txt``.
        prompt_dir: Directory to read from. Defaults to the bundled prompts.

    Returns:
        The raw prompt text, possibly with ``str.format`` placeholders.

    Raises:
        AIProviderUnavailableError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise AIProviderUnavailableError(f"Failed to load prompt {name}: {exc}") from exc
