"""
Care plan prompt assembly.

Fills a fixed natural-language template with the extracted fields so the
user can paste it into a general-purpose chat assistant.
"""

from typing import Any

from ..models import ExtractedMedicalData

NEXT_STEP_HINT = (
    "Copy the prompt above and paste it into ChatGPT, Claude, or Gemini "
    "to generate a personalized caregiver guide."
)

PROMPT_HEADER = [
    "CONTEXT: I have extracted the following medical information from a document/report.",
    "ROLE: Act as a highly experienced clinical medical assistant and patient advocate.",
    "TASK: Analyze the provided data and generate a comprehensive care plan.",
]

DATA_SECTION_START = "\n--- EXTRACTED MEDICAL DATA ---"
DATA_SECTION_END = "------------------------------"

RESPONSE_REQUIREMENTS = [
    "\nRESPONSE REQUIREMENTS:",
    "Please provide a structured response with the following sections:",
    "1. ✅ USAGE GUIDELINES: Detailed instructions for medications and treatments mentioned.",
    "2. ⚠️ LIMITATIONS & CONTRAINDICATIONS: What to strictly avoid (foods, activities, drug interactions).",
    "3. 🔔 IMPORTANT SAFETY NOTES: Warning signs to watch for that require immediate medical attention.",
    "4. 📋 CAREGIVER'S ACTION PLAN: A step-by-step daily checklist for the caregiver to ensure patient safety and recovery.",
    "5. 🥗 LIFESTYLE & DIETARY RECOMMENDATIONS: Supportive measures based on the diagnosis.",
]

# (attribute, label, separator); separator None marks a single value
DATA_LINES: list[tuple[str, str, str | None]] = [
    ("patient_name", "Patient Name", None),
    ("age", "Age", None),
    ("sex", "Sex", None),
    ("report_date", "Report Date", None),
    ("diagnosis", "Primary Diagnosis", None),
    ("prescription", "Medications", ", "),
    ("lab_results", "Lab Results/Vitals", "; "),
    ("procedures", "Procedures", ", "),
    ("medical_history", "Medical History", ", "),
    ("doctor_notes", "Doctor Notes", None),
]


def _text(value: Any) -> str:
    if isinstance(value, dict):
        return ", ".join(f"{k}: {_text(v)}" for k, v in value.items() if v not in (None, ""))
    if isinstance(value, (list, tuple)):
        return ", ".join(_text(item) for item in value if item not in (None, ""))
    return str(value)


def _data_line(label: str, value: Any, separator: str | None) -> str | None:
    if not value:
        return None
    if separator is not None and isinstance(value, (list, tuple)):
        items = [_text(item) for item in value if item not in (None, "")]
        if not items:
            return None
        return f"{label}: {separator.join(items)}"
    return f"{label}: {_text(value)}"


def build_care_plan_prompt(data: ExtractedMedicalData) -> str:
    """
    Build the care plan prompt for the extracted data.

    Fields with no value are left out; list fields are joined on one line.
    """
    lines = list(PROMPT_HEADER)
    lines.append(DATA_SECTION_START)
    for attribute, label, separator in DATA_LINES:
        line = _data_line(label, getattr(data, attribute), separator)
        if line:
            lines.append(line)
    lines.append(DATA_SECTION_END)
    lines.extend(RESPONSE_REQUIREMENTS)
    return "\n".join(lines)
