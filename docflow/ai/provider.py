from docflow.ai.client_base import BaseAIClient
from docflow.errors import AIProviderUnavailableError
from docflow.logging.logger import Log


class AIProvider:
    """Binds a chat client to a model and trims document text to the input limit.

    A provider without a client is valid: every call then fails with
    AIProviderUnavailableError, which keeps a misconfigured deployment
    distinguishable from a failing one.
    """

    def __init__(
        self,
        *,
        client: BaseAIClient | None,
        model: str,
        max_input_chars: int = 4000,
    ) -> None:
        self._client = client
        self._model = model
        self._max_input_chars = max_input_chars

    @property
    def available(self) -> bool:
        return self._client is not None

    def truncate(self, text: str) -> str:
        if len(text) <= self._max_input_chars:
            return text
        return text[: self._max_input_chars] + "..."

    def complete(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
        json_schema: dict[str, object] | None = None,
    ) -> str:
        if self._client is None:
            raise AIProviderUnavailableError(
                "AI service not available: no AI provider is configured"
            )
        Log.debug(f"AI prompt ({self._model}):\n{user_prompt}")
        content = self._client.create_chat_completion(
            model=self._model,
            temperature=temperature,
            max_tokens=max_tokens,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            json_schema=json_schema,
        )
        Log.debug(f"AI raw response:\n{content}")
        return content
