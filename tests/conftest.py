"""Pytest configuration and fixtures."""

import io
from types import SimpleNamespace
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.backend.main import app
from app.backend.services.ai import AIService, get_ai_service
from app.backend.services.document_service import DocumentImage


class FakeModels:
    """Stands in for ``genai.Client().models``."""

    def __init__(self, response: Any = None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def generate_content(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


class FakeGeminiClient:
    """Minimal Gemini client returning a canned response."""

    def __init__(self, response: Any = None, error: Exception | None = None):
        self.models = FakeModels(response, error)
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeCompletions:
    """Stands in for ``OpenAI().chat.completions``."""

    def __init__(self, response: Any = None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


class FakeOpenAIClient:
    """Minimal OpenAI client returning a canned response."""

    def __init__(self, response: Any = None, error: Exception | None = None):
        self.chat = SimpleNamespace(completions=FakeCompletions(response, error))
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeProviderError(Exception):
    """Mimics SDK errors that expose an HTTP status."""

    def __init__(self, message: str, status_code: int | None = None, code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code


def make_image_bytes(size: tuple[int, int] = (64, 48), format: str = "PNG") -> bytes:
    """Encode a blank RGB image."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color="white").save(buffer, format=format)
    return buffer.getvalue()


def gemini_service(client: Any, api_key: str = "server-key") -> AIService:
    """AIService wired to a fake Gemini client."""
    service = AIService(api_key=api_key, provider="gemini", use_mock=False)
    service._client = client
    return service


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def override_ai_service():
    """Install an AIService instance for the duration of a test."""

    def install(service: AIService) -> AIService:
        app.dependency_overrides[get_ai_service] = lambda: service
        return service

    yield install
    app.dependency_overrides.pop(get_ai_service, None)


@pytest.fixture
def mock_ai_service(override_ai_service) -> AIService:
    """AIService in mock mode, installed into the app."""
    return override_ai_service(AIService(api_key="", provider="gemini", use_mock=True))


@pytest.fixture
def png_bytes() -> bytes:
    """A small valid PNG image."""
    return make_image_bytes()


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A small valid JPEG image."""
    return make_image_bytes(format="JPEG")


@pytest.fixture
def document_images(png_bytes: bytes) -> list[DocumentImage]:
    """Prepared images as produced by the document service."""
    return [DocumentImage(data=png_bytes, mime_type="image/png")]


@pytest.fixture
def invalid_file_bytes() -> bytes:
    """Create invalid (non-image) file bytes for testing."""
    return b"This is not an image file"


@pytest.fixture
def sample_extraction_json() -> str:
    """A typical JSON answer from the extraction model."""
    return (
        '{"patientName": "Jane Doe", "age": "54 years", "sex": "Female", '
        '"diagnosis": "Type 2 diabetes mellitus", '
        '"prescription": ["Metformin 500 mg twice daily"], '
        '"labResults": ["HbA1c 7.8%"], "reportDate": "2024-01-15"}'
    )


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """Bytes that resolve as a PDF upload."""
    return b"%PDF-1.4\n% scanned report\n"


@pytest.fixture
def rendered_pdf_pages(monkeypatch) -> list[dict[str, Any]]:
    """Replace pdf2image rendering with a five-page document; returns the calls."""
    import pdf2image

    calls: list[dict[str, Any]] = []

    def convert_from_bytes(pdf_file: bytes, **kwargs: Any) -> list[Image.Image]:
        calls.append(kwargs)
        first = kwargs.get("first_page") or 1
        last = min(kwargs.get("last_page") or 5, 5)
        return [Image.new("RGB", (120, 160), color="white") for _ in range(first, last + 1)]

    monkeypatch.setattr(pdf2image, "convert_from_bytes", convert_from_bytes)
    return calls
