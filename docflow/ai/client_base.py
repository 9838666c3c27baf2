from abc import ABC, abstractmethod


class BaseAIClient(ABC):
    """Contract for provider-specific chat completion clients."""

    @abstractmethod
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
        """Return provider response as plain text.

        Raises:
            AIProviderError: on network, API, or empty-response failures.
        """
