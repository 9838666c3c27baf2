from abc import ABC, abstractmethod

import httpx
import pydantic

from docflow.dispatcher.dispatcher import ExtractionDispatcher
from docflow.dispatcher.models import DispatchRequest, DispatchResponse
from docflow.errors import TransportError

PROCESS_DOCUMENT_PATH = "/process-document"


class BaseDispatcherClient(ABC):
    """Contract for submitting one document to the extraction dispatcher."""

    @abstractmethod
    def submit(self, request: DispatchRequest) -> DispatchResponse:
        """Send a request and return the dispatcher's answer.

        Structured failures come back as ``success=False`` responses.

        Raises:
            TransportError: if no usable response was received.
        """


class LocalDispatcherClient(BaseDispatcherClient):
    """Calls an in-process dispatcher with a fixed bearer token."""

    def __init__(self, dispatcher: ExtractionDispatcher, bearer_token: str | None) -> None:
        self._dispatcher = dispatcher
        self._bearer_token = bearer_token

    def submit(self, request: DispatchRequest) -> DispatchResponse:
        return self._dispatcher.handle(request, self._bearer_token)


class HttpDispatcherClient(BaseDispatcherClient):
    """Posts submissions to the dispatcher's HTTP endpoint with httpx."""

    def __init__(
        self,
        *,
        base_url: str,
        bearer_token: str,
        timeout_seconds: float = 120.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._client = http_client or httpx.Client(base_url=base_url, timeout=timeout_seconds)
        self._bearer_token = bearer_token

    def submit(self, request: DispatchRequest) -> DispatchResponse:
        try:
            response = self._client.post(
                PROCESS_DOCUMENT_PATH,
                json=request.to_wire(),
                headers={"Authorization": f"Bearer {self._bearer_token}"},
            )
        except httpx.TimeoutException as exc:
            raise TransportError(f"Dispatcher request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Dispatcher request failed: {exc}") from exc

        try:
            return DispatchResponse.model_validate(response.json())
        except (ValueError, pydantic.ValidationError) as exc:
            raise TransportError(
                f"Invalid response from dispatcher (HTTP {response.status_code})"
            ) from exc

    def close(self) -> None:
        self._client.close()
