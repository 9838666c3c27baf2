import io
from pathlib import Path

import pytest
from docx import Document as DocxDocument
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from docflow.ai.example_client_adapter import ExampleClientAdapter
from docflow.ai.provider import AIProvider
from docflow.auth.static_authorizer import StaticAuthorizer
from docflow.config.settings import Settings
from docflow.dispatcher.dispatcher import build_dispatcher
from docflow.feed.topic import Topic
from docflow.storage.file_storage import DocumentStorage
from docflow.store.memory_store import InMemoryStatusStore

from pipeline_harness import OTHER_TOKEN, OWNER_ID, PROJECT_ID, TOKEN, Harness


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_docx_bytes() -> bytes:
    """Generate a Word document with a paragraph and a one-row table."""
    doc = DocxDocument()
    doc.add_paragraph("Randomized trial of vitamin D")
    table = doc.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Sample size"
    table.rows[0].cells[1].text = "120"
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        ai_provider="example",
        files_root=str(tmp_path / "files"),
    )


@pytest.fixture()
def harness(settings: Settings) -> Harness:
    """In-process pipeline: memory store, static auth, offline AI provider."""
    topic = Topic()
    store = InMemoryStatusStore(topic)
    storage = DocumentStorage(files_root=Path(settings.files_root))
    authorizer = StaticAuthorizer(
        tokens={TOKEN: OWNER_ID, OTHER_TOKEN: "user-2"},
        project_owners={PROJECT_ID: OWNER_ID},
    )
    dispatcher = build_dispatcher(
        settings,
        store,
        authorizer,
        storage=storage,
        ai_provider=AIProvider(client=ExampleClientAdapter(), model="example"),
    )
    return Harness(
        settings=settings,
        topic=topic,
        store=store,
        storage=storage,
        dispatcher=dispatcher,
    )
