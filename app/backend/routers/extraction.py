"""
Router for document extraction endpoints.

Handles:
- Multipart photo/PDF upload for medical field extraction
- Base64 document extraction (payloads produced by a browser FileReader)
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Header, UploadFile

from ..models import (
    Base64ExtractionRequest,
    ErrorResponse,
    ExtractionResponse,
    MedicalExtractionResult,
)
from ..services.ai import AIService, AIServiceError, get_ai_service
from ..services.ai.exceptions import InternalExtractionError
from ..services.display import build_display_fields
from ..services.document_service import (
    DocumentImage,
    DocumentService,
    decode_base64_document,
    get_document_service,
)
from ..services.prompt_service import build_care_plan_prompt

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/extract", tags=["extraction"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Empty or malformed upload"},
    401: {"model": ErrorResponse, "description": "Missing or rejected API key"},
    413: {"model": ErrorResponse, "description": "Upload too large"},
    415: {"model": ErrorResponse, "description": "Not an image or PDF"},
    422: {"model": ErrorResponse, "description": "Request blocked by the model"},
    429: {"model": ErrorResponse, "description": "Provider rate limit"},
    500: {"model": ErrorResponse, "description": "Unexpected extraction failure"},
    502: {"model": ErrorResponse, "description": "Provider failed or returned no data"},
}


def build_extraction_response(
    result: MedicalExtractionResult,
    source_file: str | None = None,
) -> ExtractionResponse:
    """Shape an extraction result into the API response with display rows and prompt."""
    return ExtractionResponse(
        source_file=source_file,
        provider=result.provider,
        model=result.model,
        data=result.data.emitted(),
        fields=build_display_fields(result.data),
        prompt=build_care_plan_prompt(result.data),
        warnings=result.warnings,
    )


async def _run_extraction(
    images: list[DocumentImage],
    source_file: str | None,
    api_key: str | None,
    ai_service: AIService,
) -> ExtractionResponse:
    try:
        result = await ai_service.extract_medical_data(images, api_key=api_key)
    except AIServiceError:
        raise
    except Exception as e:
        logger.exception("Unexpected error extracting %s", source_file or "<unnamed>")
        raise InternalExtractionError(f"Unexpected extraction failure: {e}") from e

    logger.info(
        "Extracted %d field(s) from %s",
        len(result.data.emitted()),
        source_file or "<unnamed>",
    )
    return build_extraction_response(result, source_file)


@router.post("", response_model=ExtractionResponse, responses=ERROR_RESPONSES)
async def extract_document(
    file: Annotated[UploadFile, File(description="Photo or scan of a medical document")],
    x_api_key: Annotated[str | None, Header(description="Provider API key for this request")] = None,
    ai_service: AIService = Depends(get_ai_service),
    document_service: DocumentService = Depends(get_document_service),
) -> ExtractionResponse:
    """
    Upload a medical document photo and extract its fields.

    Accepts an image (or a PDF scan), sends it to the extraction model and
    returns the emitted fields, their display rows and the care plan prompt.
    """
    try:
        file_bytes = await file.read()
        logger.info(
            "Received upload %s (%d bytes, %s)",
            file.filename,
            len(file_bytes),
            file.content_type,
        )
        images = document_service.prepare(file_bytes, file.content_type, file.filename)
        return await _run_extraction(images, file.filename, x_api_key, ai_service)
    finally:
        await file.close()


@router.post("/base64", response_model=ExtractionResponse, responses=ERROR_RESPONSES)
async def extract_base64_document(
    request: Base64ExtractionRequest,
    x_api_key: Annotated[str | None, Header(description="Provider API key for this request")] = None,
    ai_service: AIService = Depends(get_ai_service),
    document_service: DocumentService = Depends(get_document_service),
) -> ExtractionResponse:
    """
    Extract fields from a base64-encoded document.

    The payload may carry a ``data:<mime>;base64,`` prefix, in which case
    the MIME type is taken from it when ``mimeType`` is not given.
    """
    file_bytes, mime_type = decode_base64_document(request.data, request.mime_type)
    images = document_service.prepare(file_bytes, mime_type, request.filename)
    return await _run_extraction(images, request.filename, x_api_key, ai_service)
