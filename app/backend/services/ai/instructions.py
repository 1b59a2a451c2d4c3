"""
Static extraction configuration sent to the provider verbatim.

Holds the system instruction, the per-request text part and the
response schema describing the medical fields to extract.
"""

import json

from google.genai import types

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_TEMPERATURE = 0.1  # Low temperature for extraction accuracy


EXTRACTION_SYSTEM_INSTRUCTION = """
You are an advanced medical optical character recognition (OCR) and analysis AI.
Your task is to analyze medical documents (images) and extract specific structured information.
Be precise. If a field is not clearly visible or applicable, leave it null or empty.
Focus on extracting:
1. Patient Info (Name, Age, Sex). Anonymize name if needed, but extract specific age and sex if visible.
2. Diagnosis/Conditions.
3. Prescriptions (Medications, Dosages, Frequencies).
4. Procedures or Operations.
5. Medical History or relevant Medical Report details.
6. Lab Results, Vital Signs, or Test Values.
"""

EXTRACTION_USER_PROMPT = "Extract the medical information from this image according to the schema."


# (name, is_list, description) in display order
MEDICAL_FIELDS: list[tuple[str, bool, str]] = [
    ("patientName", False, "Name of the patient found in the document"),
    ("age", False, "Age of the patient (e.g. '34 years', '2 months')"),
    ("sex", False, "Biological sex or gender of the patient (e.g. 'Male', 'Female')"),
    ("diagnosis", False, "Primary diagnosis or medical condition identified"),
    ("prescription", True, "List of medications, including dosage and frequency"),
    ("procedures", True, "List of medical procedures or operations mentioned"),
    ("medicalHistory", True, "Relevant past medical history or background"),
    (
        "labResults",
        True,
        "List of laboratory results, vital signs, or test findings found in the report",
    ),
    ("doctorNotes", False, "Any specific notes, advice, or remarks from the doctor"),
    ("reportDate", False, "Date of the report or prescription"),
    ("rawTextSummary", False, "A brief summary of the document content"),
]


def _field_schema(is_list: bool, description: str) -> types.Schema:
    if is_list:
        return types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING),
            description=description,
        )
    return types.Schema(type=types.Type.STRING, description=description)


RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        name: _field_schema(is_list, description)
        for name, is_list, description in MEDICAL_FIELDS
    },
)


def build_json_object_prompt() -> str:
    """
    Build the user prompt for providers without schema-constrained output.

    Spells out the same fields the response schema declares, so the JSON
    object that comes back has the same shape.
    """
    field_lines = [
        f"- **{name}** ({'array of strings' if is_list else 'string'}): {description}"
        for name, is_list, description in MEDICAL_FIELDS
    ]
    field_names = [name for name, _, _ in MEDICAL_FIELDS]
    fields_text = "\n".join(field_lines)
    return f"""{EXTRACTION_USER_PROMPT}

## Fields to Extract:
{fields_text}

Return a single JSON object using exactly these keys. Use null for any field that
is not clearly visible and an empty array for list fields with no entries.

Field names to extract: {json.dumps(field_names)}"""
