"""
Medical data extraction from document images.

Builds the provider request (images + response schema + instructions),
runs it, and maps the response or the failure onto the service's types.
"""

import asyncio
import base64
import logging
import time
from typing import Any

from google.genai import types

from ...models import ExtractedMedicalData
from ..document_service import DocumentImage
from .exceptions import (
    AIServiceError,
    InvalidAPIKeyError,
    ProviderRequestError,
    RateLimitError,
)
from .instructions import (
    DEFAULT_GEMINI_MODEL,
    DEFAULT_TEMPERATURE,
    EXTRACTION_SYSTEM_INSTRUCTION,
    EXTRACTION_USER_PROMPT,
    RESPONSE_SCHEMA,
    build_json_object_prompt,
)
from .response import normalize_response

logger = logging.getLogger(__name__)

PROVIDERS = ("gemini", "openai")


# =============================================================================
# Request Builders
# =============================================================================


def build_gemini_request(
    images: list[DocumentImage],
    model: str = DEFAULT_GEMINI_MODEL,
    temperature: float = DEFAULT_TEMPERATURE,
) -> dict[str, Any]:
    """Keyword arguments for ``client.models.generate_content``."""
    parts = [
        types.Part.from_bytes(data=image.data, mime_type=image.mime_type)
        for image in images
    ]
    parts.append(types.Part.from_text(text=EXTRACTION_USER_PROMPT))

    return {
        "model": model,
        "contents": [types.Content(role="user", parts=parts)],
        "config": types.GenerateContentConfig(
            system_instruction=EXTRACTION_SYSTEM_INSTRUCTION,
            response_mime_type="application/json",
            response_schema=RESPONSE_SCHEMA,
            temperature=temperature,
        ),
    }


def build_openai_request(
    images: list[DocumentImage],
    model: str = "gpt-4.1",
    temperature: float = DEFAULT_TEMPERATURE,
) -> dict[str, Any]:
    """Keyword arguments for ``client.chat.completions.create``."""
    content: list[dict[str, Any]] = [
        {"type": "text", "text": build_json_object_prompt()},
    ]
    for image in images:
        encoded = base64.b64encode(image.data).decode("utf-8")
        content.append({
            "type": "image_url",
            "image_url": {
                "url": f"data:{image.mime_type};base64,{encoded}",
                "detail": "high",
            },
        })

    return {
        "model": model,
        "messages": [
            {"role": "system", "content": EXTRACTION_SYSTEM_INSTRUCTION.strip()},
            {"role": "user", "content": content},
        ],
        "response_format": {"type": "json_object"},
        "temperature": temperature,
    }


# =============================================================================
# Error Translation
# =============================================================================


def _provider_status(exc: Exception) -> int | None:
    """HTTP status reported by an SDK exception (openai: status_code, genai: code)."""
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def translate_provider_error(exc: Exception) -> AIServiceError:
    """Map an exception raised by a provider SDK onto an AIServiceError."""
    status = _provider_status(exc)
    if status in (401, 403):
        return InvalidAPIKeyError(f"Provider rejected credentials: {exc}")
    if status == 400 and "api key" in str(exc).lower():
        # Gemini reports invalid keys as 400 API_KEY_INVALID
        return InvalidAPIKeyError(f"Provider rejected credentials: {exc}")
    if status == 429:
        return RateLimitError(f"Provider rate limit: {exc}")
    return ProviderRequestError(f"Extraction request failed: {exc}")


# =============================================================================
# Main Extraction Function
# =============================================================================


def _call_provider(client: Any, provider: str, request: dict[str, Any]) -> Any:
    if provider == "openai":
        return client.chat.completions.create(**request)
    return client.models.generate_content(**request)


async def extract_medical_data(
    images: list[DocumentImage],
    client: Any,
    provider: str = "gemini",
    model: str = DEFAULT_GEMINI_MODEL,
    temperature: float = DEFAULT_TEMPERATURE,
) -> ExtractedMedicalData:
    """
    Extract medical fields from document images.

    Args:
        images: Prepared document images, sent in order.
        client: ``google.genai.Client`` or ``openai.OpenAI`` instance.
        provider: "gemini" or "openai"; selects the request shape.
        model: Model id to call.
        temperature: Sampling temperature.

    Returns:
        ExtractedMedicalData holding whatever the model emitted.

    Raises:
        AIServiceError: Subclass describing what went wrong.
    """
    if provider not in PROVIDERS:
        raise AIServiceError(f"Unknown extraction provider: {provider}")
    if not images:
        raise AIServiceError("No document images to extract from")

    if provider == "openai":
        request = build_openai_request(images, model, temperature)
    else:
        request = build_gemini_request(images, model, temperature)

    logger.info(
        "Extracting medical data with %s/%s from %d image(s) (%d bytes)",
        provider,
        model,
        len(images),
        sum(len(image.data) for image in images),
    )

    started = time.perf_counter()
    try:
        # SDK calls block; keep them off the event loop
        response = await asyncio.to_thread(_call_provider, client, provider, request)
    except Exception as e:
        logger.exception("Extraction request to %s failed", provider)
        raise translate_provider_error(e) from e
    elapsed = time.perf_counter() - started

    payload = normalize_response(response)
    data = ExtractedMedicalData.model_validate(payload)

    logger.info(
        "Extraction completed in %.2fs: %d field(s) returned",
        elapsed,
        len(payload),
    )
    return data
