"""HTTP surface of the extraction dispatcher."""

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from docflow.auth.base import extract_bearer_token
from docflow.dispatcher.client import PROCESS_DOCUMENT_PATH
from docflow.dispatcher.dispatcher import ExtractionDispatcher
from docflow.dispatcher.models import DispatchRequest, DispatchResponse
from docflow.errors import BAD_REQUEST, BadRequestError
from docflow.logging.logger import Log


def _json(response: DispatchResponse) -> JSONResponse:
    return JSONResponse(status_code=response.http_status, content=response.to_wire())


def create_app(dispatcher: ExtractionDispatcher) -> FastAPI:
    """Build the FastAPI app exposing ``POST /process-document``."""
    app = FastAPI(title="docflow extraction dispatcher")

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        )
        Log.warning(f"Rejected malformed submission: {details}")
        return _json(
            DispatchResponse(
                success=False,
                error=f"Invalid request: {details}",
                reason=BadRequestError.reason,
                status_category=BAD_REQUEST,
            )
        )

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    # Sync handler: FastAPI runs it in its threadpool, one request per worker thread.
    @app.post(PROCESS_DOCUMENT_PATH)
    def process_document(
        body: DispatchRequest,
        authorization: str | None = Header(default=None),
    ) -> JSONResponse:
        return _json(dispatcher.handle(body, extract_bearer_token(authorization)))

    return app
