"""
AI service package for medical document extraction.

This package provides:
- instructions: Static system instruction, prompt and response schema
- extraction: Request construction and the provider call
- response: Response-shape normalization and JSON payload location
- exceptions: Error types carrying user-facing messages

The AIService class wires these to the configured provider and API key.
"""

import logging
from typing import Any

from ...config import get_settings
from ...models import ExtractedMedicalData, MedicalExtractionResult
from ..document_service import DocumentImage
from .exceptions import (
    AIServiceError,
    BlockedResponseError,
    EmptyResponseError,
    InternalExtractionError,
    InvalidAPIKeyError,
    MissingAPIKeyError,
    ProviderRequestError,
    RateLimitError,
    ResponseParseError,
)
from .extraction import (
    PROVIDERS,
    build_gemini_request,
    build_openai_request,
    extract_medical_data,
    translate_provider_error,
)
from .response import extract_response_text, find_json_payload, normalize_response, unwrap_payload

logger = logging.getLogger(__name__)

__all__ = [
    "AIService",
    "AIServiceError",
    "BlockedResponseError",
    "EmptyResponseError",
    "InternalExtractionError",
    "InvalidAPIKeyError",
    "MissingAPIKeyError",
    "ProviderRequestError",
    "RateLimitError",
    "ResponseParseError",
    "build_gemini_request",
    "build_openai_request",
    "extract_medical_data",
    "extract_response_text",
    "find_json_payload",
    "get_ai_service",
    "normalize_response",
    "translate_provider_error",
    "unwrap_payload",
]

MOCK_WARNING = "DEVELOPMENT MODE: Using mock data. Set MOCK_MODE=false and provide an API key for real extraction."


class AIService:
    """
    Service for AI-powered medical document extraction.

    Calls Gemini (default) or OpenAI with vision input. A key supplied with
    the request takes precedence over the key configured on the server.
    """

    def __init__(
        self,
        api_key: str | None = None,
        provider: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        use_mock: bool | None = None,
    ):
        """
        Initialize the AI service.

        Args:
            api_key: Server-side API key. If None, read from settings.
            provider: "gemini" or "openai". If None, read from settings.
            model: Model id. If None, the provider default from settings.
            temperature: Sampling temperature. If None, read from settings.
            use_mock: If True, return mock data instead of calling the provider.
        """
        settings = get_settings()
        self.provider = provider or settings.ai_provider
        if self.provider not in PROVIDERS:
            raise AIServiceError(f"Unknown extraction provider: {self.provider}")

        # gemini_api_key / openai_api_key, gemini_model / openai_model
        if api_key is None:
            api_key = getattr(settings, f"{self.provider}_api_key")
        self.api_key = api_key
        self.model = model or getattr(settings, f"{self.provider}_model")
        self.temperature = (
            settings.extraction_temperature if temperature is None else temperature
        )
        self.use_mock = settings.mock_mode if use_mock is None else use_mock
        self._client = None

        if self.use_mock:
            logger.warning(
                "AI Service running in MOCK MODE. Set MOCK_MODE=false for real extraction."
            )

    def _create_client(self, api_key: str) -> Any:
        if self.provider == "openai":
            from openai import OpenAI

            return OpenAI(api_key=api_key)

        from google import genai

        return genai.Client(api_key=api_key)

    @property
    def client(self) -> Any:
        """Lazy-load the client for the server-side key."""
        if self._client is None:
            if not self.api_key:
                raise MissingAPIKeyError("No API key configured on the server")
            self._client = self._create_client(self.api_key)
        return self._client

    def client_for(self, api_key: str | None = None) -> Any:
        """
        Return a client for a request.

        A request key gets a fresh client; otherwise the cached server client.

        Raises:
            MissingAPIKeyError: If neither key is available.
        """
        api_key = (api_key or "").strip()
        if api_key:
            return self._create_client(api_key)
        return self.client

    async def extract_medical_data(
        self,
        images: list[DocumentImage],
        api_key: str | None = None,
    ) -> MedicalExtractionResult:
        """
        Extract medical fields from prepared document images.

        Args:
            images: Images produced by the document service.
            api_key: Key supplied by the user for this request, if any.

        Returns:
            MedicalExtractionResult with the data and any warnings.
        """
        if self.use_mock:
            logger.info("Extracting medical data (MOCK MODE) from %d image(s)", len(images))
            return self._get_mock_extraction()

        client = self.client_for(api_key)
        try:
            data = await extract_medical_data(
                images,
                client=client,
                provider=self.provider,
                model=self.model,
                temperature=self.temperature,
            )
        finally:
            if client is not self._client:
                self._close_client(client)
        return MedicalExtractionResult(data=data, provider=self.provider, model=self.model)

    @staticmethod
    def _close_client(client: Any) -> None:
        """Release the HTTP resources of a per-request client."""
        # genai.Client gained close() later than openai.OpenAI
        close = getattr(client, "close", None)
        if callable(close):
            close()

    def _get_mock_extraction(self) -> MedicalExtractionResult:
        """Return mock extraction data for development."""
        data = ExtractedMedicalData.model_validate({
            "patientName": "MOCK PATIENT",
            "age": "54 years",
            "sex": "Female",
            "diagnosis": "Type 2 diabetes mellitus",
            "prescription": [
                "Metformin 500 mg twice daily after meals",
                "Atorvastatin 10 mg once daily at night",
            ],
            "procedures": [],
            "medicalHistory": ["Hypertension"],
            "labResults": ["HbA1c 7.8%", "Fasting glucose 142 mg/dL"],
            "doctorNotes": "Review in 3 months with repeat HbA1c.",
            "reportDate": "2024-01-15",
            "rawTextSummary": "Outpatient prescription for diabetes follow-up.",
        })
        return MedicalExtractionResult(
            data=data,
            provider=self.provider,
            model="mock",
            warnings=[MOCK_WARNING],
        )


# =============================================================================
# Singleton Factory
# =============================================================================

_ai_service: AIService | None = None


def get_ai_service() -> AIService:
    """Get or create the AI service singleton."""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service
