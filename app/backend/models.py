"""
Pydantic models for the medical document extraction service.

Defines the extracted-data payload, the display rows shown to the user,
and the request/response bodies of the HTTP API.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator
from pydantic.alias_generators import to_camel


class AppStatus(str, Enum):
    """Lifecycle of a single document analysis, as seen by the front end."""

    IDLE = "IDLE"
    PROCESSING = "PROCESSING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


class ExtractedMedicalData(BaseModel):
    """
    Structured fields extracted from a medical document.

    Values are passed through exactly as the remote model emitted them:
    no coercion, no validation. Keys the model adds beyond the declared
    fields are kept. Serialized with camelCase names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    patient_name: Any = Field(default=None, description="Name of the patient")
    age: Any = Field(default=None, description="Age of the patient (e.g. '34 years')")
    sex: Any = Field(default=None, description="Biological sex or gender of the patient")
    diagnosis: Any = Field(default=None, description="Primary diagnosis or condition")
    prescription: Any = Field(
        default=None,
        description="Medications, including dosage and frequency",
    )
    procedures: Any = Field(default=None, description="Procedures or operations mentioned")
    medical_history: Any = Field(default=None, description="Relevant past medical history")
    lab_results: Any = Field(
        default=None,
        description="Laboratory results, vital signs, or test findings",
    )
    doctor_notes: Any = Field(default=None, description="Notes or advice from the doctor")
    report_date: Any = Field(default=None, description="Date of the report or prescription")
    raw_text_summary: Any = Field(default=None, description="Brief summary of the document")

    # camelCase keys in the order the source payload listed them
    _key_order: list[str] = PrivateAttr(default_factory=list)

    @model_validator(mode="wrap")
    @classmethod
    def _record_key_order(cls, data: Any, handler):
        instance = handler(data)
        if isinstance(data, dict):
            instance._key_order = [
                to_camel(key) if key in cls.model_fields else key for key in data
            ]
        return instance

    def emitted(self) -> dict[str, Any]:
        """Return only the keys present in the source payload, camelCased, in source order."""
        dumped = self.model_dump(by_alias=True, exclude_unset=True)
        ordered = {key: dumped[key] for key in self._key_order if key in dumped}
        ordered.update((key, value) for key, value in dumped.items() if key not in ordered)
        return ordered


class DisplayField(BaseModel):
    """A single label/value row of the extracted-data card."""

    key: str = Field(..., description="Key as emitted by the model")
    label: str = Field(..., description="Human readable label")
    value: str = Field(..., description="Display text for the value")
    empty: bool = Field(default=False, description="Whether the value was missing")


class DisplayResponse(BaseModel):
    """Display rows for an extraction result."""

    fields: list[DisplayField] = Field(default_factory=list)
    message: str | None = Field(
        default=None,
        description="Shown instead of the rows when nothing was extracted",
    )


class PromptResponse(BaseModel):
    """Care plan prompt assembled from extracted data."""

    prompt: str = Field(..., description="Prompt text to paste into a chat assistant")
    next_step: str = Field(..., description="Hint shown next to the prompt")


class MedicalExtractionResult(BaseModel):
    """Result of one extraction call, before it is shaped for the API."""

    data: ExtractedMedicalData
    provider: str
    model: str
    warnings: list[str] = Field(default_factory=list)


class ExtractionResponse(BaseModel):
    """Response model for the extract endpoints."""

    status: AppStatus = Field(default=AppStatus.COMPLETE)
    source_file: str | None = Field(default=None, description="Uploaded filename")
    provider: str = Field(..., description="Extraction provider used")
    model: str = Field(..., description="Model id used")
    data: dict[str, Any] = Field(
        ...,
        description="Extracted fields exactly as emitted (camelCase keys)",
    )
    fields: list[DisplayField] = Field(default_factory=list)
    prompt: str = Field(..., description="Care plan prompt pre-filled with the data")
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None


class Base64ExtractionRequest(BaseModel):
    """Extraction request carrying the document as base64 text."""

    model_config = ConfigDict(populate_by_name=True)

    data: str = Field(
        ...,
        min_length=1,
        description="Base64 document content; a data: URL prefix is accepted",
    )
    mime_type: str | None = Field(
        default=None,
        alias="mimeType",
        description="MIME type of the document, e.g. image/jpeg",
    )
    filename: str | None = Field(default=None)


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint."""

    status: AppStatus = Field(default=AppStatus.ERROR)
    detail: str = Field(..., description="User-facing message")
    error_type: str = Field(..., description="Error class name")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    message: str = Field(default="")
    version: str = Field(default="1.0.0")
