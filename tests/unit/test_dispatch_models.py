import pytest
from pydantic import ValidationError

from docflow.dispatcher.models import DispatchRequest, DispatchResponse
from docflow.store.models import ProcessingStage


class TestDispatchRequest:
    def test_parses_camel_case_wire_format(self) -> None:
        request = DispatchRequest.model_validate(
            {
                "projectId": "p1",
                "fileName": "a.pdf",
                "processingStage": "data_extraction",
                "fileContentBase64": "YQ==",
                "extractionTemplate": {"n": "number"},
            }
        )
        assert request.processing_stage == ProcessingStage.DATA_EXTRACTION
        assert request.extraction_template == {"n": "number"}
        assert not request.retry

    def test_to_wire_uses_aliases_and_drops_none(self) -> None:
        request = DispatchRequest(
            project_id="p1", file_name="a.pdf",
            processing_stage=ProcessingStage.TEXT_EXTRACTION, source_reference="https://x/a.pdf",
        )
        wire = request.to_wire()
        assert wire["sourceReference"] == "https://x/a.pdf"
        assert wire["processingStage"] == "text_extraction"
        assert "fileContentBase64" not in wire

    def test_requires_exactly_one_source(self) -> None:
        with pytest.raises(ValidationError, match="Exactly one of"):
            DispatchRequest(project_id="p1", file_name="a.pdf",
                            processing_stage=ProcessingStage.TEXT_EXTRACTION)
        with pytest.raises(ValidationError, match="Exactly one of"):
            DispatchRequest(project_id="p1", file_name="a.pdf",
                            processing_stage=ProcessingStage.TEXT_EXTRACTION,
                            file_content_base64="YQ==", source_reference="local:p1/x")

    def test_retry_requires_document_id(self) -> None:
        with pytest.raises(ValidationError, match="documentId is required"):
            DispatchRequest(project_id="p1", file_name="a.pdf",
                            processing_stage=ProcessingStage.TEXT_EXTRACTION, retry=True)

    def test_retry_without_content(self) -> None:
        request = DispatchRequest(project_id="p1", file_name="a.pdf",
                                  processing_stage=ProcessingStage.TEXT_EXTRACTION,
                                  retry=True, document_id="d1")
        assert request.file_content_base64 is None

    def test_rejects_unknown_stage(self) -> None:
        with pytest.raises(ValidationError):
            DispatchRequest.model_validate(
                {"projectId": "p1", "fileName": "a.pdf", "processingStage": "summarize",
                 "fileContentBase64": "YQ=="}
            )


class TestDispatchResponse:
    @pytest.mark.parametrize(
        "category,status",
        [("unauthorized", 401), ("forbidden", 403), ("bad-request", 400), ("server-error", 500)],
    )
    def test_http_status_by_category(self, category: str, status: int) -> None:
        response = DispatchResponse(success=False, error="e", status_category=category)
        assert response.http_status == status

    def test_success_is_200(self) -> None:
        assert DispatchResponse(success=True).http_status == 200
