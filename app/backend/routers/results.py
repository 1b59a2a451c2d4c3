"""
Router for result presentation endpoints.

Handles:
- Display rows for extracted data (the extracted-data card)
- Care plan prompt generation from extracted data
"""

import logging

from fastapi import APIRouter

from ..models import DisplayResponse, ExtractedMedicalData, PromptResponse
from ..services.display import NOTHING_EXTRACTED, build_display_fields
from ..services.prompt_service import NEXT_STEP_HINT, build_care_plan_prompt

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/results", tags=["results"])


@router.post("/fields", response_model=DisplayResponse)
async def display_fields(data: ExtractedMedicalData) -> DisplayResponse:
    """Render extracted data as label/value rows."""
    fields = build_display_fields(data)
    return DisplayResponse(
        fields=fields,
        message=None if fields else NOTHING_EXTRACTED,
    )


@router.post("/prompt", response_model=PromptResponse)
async def care_plan_prompt(data: ExtractedMedicalData) -> PromptResponse:
    """
    Build the care plan prompt for extracted data.

    Lets the front end regenerate the prompt after the user edits fields.
    """
    prompt = build_care_plan_prompt(data)
    logger.info("Generated care plan prompt (%d characters)", len(prompt))
    return PromptResponse(prompt=prompt, next_step=NEXT_STEP_HINT)
