"""Tests for extracted data display formatting."""

from app.backend.models import ExtractedMedicalData
from app.backend.services.display import (
    NO_DATA,
    NOT_PROVIDED,
    build_display_fields,
    format_key,
    render_value,
)


class TestFormatKey:
    """Tests for key to label conversion."""

    def test_camel_case(self):
        """Test camelCase keys become spaced Title Case."""
        assert format_key("patientName") == "Patient Name"
        assert format_key("rawTextSummary") == "Raw Text Summary"

    def test_snake_case(self):
        """Test snake_case keys become spaced Title Case."""
        assert format_key("lab_results") == "Lab Results"

    def test_single_word(self):
        """Test a single lowercase word is capitalized."""
        assert format_key("diagnosis") == "Diagnosis"


class TestRenderValue:
    """Tests for value rendering."""

    def test_missing_values(self):
        """Test null and empty values render as not provided."""
        assert render_value(None) == NOT_PROVIDED
        assert render_value("") == NOT_PROVIDED

    def test_empty_containers(self):
        """Test empty lists and objects render as no data."""
        assert render_value([]) == NO_DATA
        assert render_value({}) == NO_DATA

    def test_scalars(self):
        """Test strings, numbers and booleans."""
        assert render_value("Asthma") == "Asthma"
        assert render_value(42) == "42"
        assert render_value(True) == "Yes"
        assert render_value(False) == "No"

    def test_list_of_strings(self):
        """Test lists render one bullet per item."""
        assert render_value(["Metformin", "Aspirin"]) == "- Metformin\n- Aspirin"

    def test_list_of_small_objects(self):
        """Test small objects inside a list render inline."""
        value = [{"name": "Metformin", "dose": "500 mg"}]
        assert render_value(value) == "- Name: Metformin; Dose: 500 mg"

    def test_top_level_object(self):
        """Test a top-level object renders as indented blocks."""
        value = {"systolic": 120, "diastolic": 80}
        assert render_value(value) == "Systolic:\n  120\nDiastolic:\n  80"

    def test_nested_containers_inline(self):
        """Test containers inside an inline object are written as JSON."""
        value = [{"test": "CBC", "values": [1, 2]}]
        assert render_value(value) == "- Test: CBC; Values: [1, 2]"

    def test_nested_lists(self):
        """Test nested lists keep their indentation."""
        assert render_value([["a", "b"]]) == "- - a\n  - b"


class TestBuildDisplayFields:
    """Tests for display row construction."""

    def test_only_emitted_keys(self):
        """Test rows are built for the keys the model sent, nothing else."""
        data = ExtractedMedicalData.model_validate({"patientName": "Jane", "prescription": []})
        fields = build_display_fields(data)

        assert [f.key for f in fields] == ["patientName", "prescription"]
        assert fields[0].label == "Patient Name"
        assert fields[0].value == "Jane"
        assert fields[0].empty is False
        assert fields[1].value == NO_DATA
        assert fields[1].empty is True

    def test_rows_follow_emission_order(self):
        """Test an extra key listed before declared fields keeps its place."""
        data = ExtractedMedicalData.model_validate({
            "rawTextSummary": "Visit",
            "diagnosis": "Flu",
            "bloodType": "O+",
            "patientName": "Jo",
        })
        fields = build_display_fields(data)
        assert [f.key for f in fields] == ["rawTextSummary", "diagnosis", "bloodType", "patientName"]

    def test_extra_keys_are_displayed(self):
        """Test keys outside the declared fields still get a row."""
        fields = build_display_fields({"bloodType": "O+"})
        assert fields[0].label == "Blood Type"
        assert fields[0].value == "O+"

    def test_internal_keys_are_hidden(self):
        """Test bookkeeping keys are never displayed."""
        fields = build_display_fields({"fileB64": "abc", "mimeType": "image/png", "sex": None})
        assert [f.key for f in fields] == ["sex"]
        assert fields[0].value == NOT_PROVIDED
        assert fields[0].empty is True

    def test_nothing_extracted(self):
        """Test an empty result yields no rows."""
        assert build_display_fields(ExtractedMedicalData()) == []
