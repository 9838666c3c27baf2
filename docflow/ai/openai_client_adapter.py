from typing import Any

import httpx
import openai

from docflow.ai.client_base import BaseAIClient
from docflow.errors import AIProviderError


class OpenAIClientAdapter(BaseAIClient):
    """AI client adapter built on the OpenAI-compatible chat API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=1,
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
        kwargs: dict[str, Any] = {}
        if json_schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": "extraction_result",
                    "strict": True,
                    "schema": json_schema,
                },
            }
        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                **kwargs,
            )
        except (openai.APITimeoutError, httpx.TimeoutException) as exc:
            raise AIProviderError(f"AI provider timed out: {exc}") from exc
        except (openai.APIConnectionError, httpx.ConnectError) as exc:
            raise AIProviderError(f"AI provider network error: {exc}") from exc
        except openai.APIStatusError as exc:
            raise AIProviderError(
                f"AI provider API error: HTTP {exc.status_code}: {exc.message}"
            ) from exc
        except openai.APIError as exc:
            raise AIProviderError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise AIProviderError("AI provider returned no choices")
        content = response.choices[0].message.content
        if not content:
            raise AIProviderError("AI provider returned an empty response")
        return content
