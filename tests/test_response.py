"""Tests for provider response normalization."""

from types import SimpleNamespace

import pytest

from app.backend.services.ai import (
    extract_response_text,
    find_json_payload,
    normalize_response,
    unwrap_payload,
)
from app.backend.services.ai.exceptions import (
    BlockedResponseError,
    EmptyResponseError,
    ResponseParseError,
)


class _BlockedResponse:
    """Response whose text accessor raises, like a blocked candidate."""

    candidates = []
    prompt_feedback = SimpleNamespace(block_reason="SAFETY")

    @property
    def text(self):
        raise ValueError("The response was blocked")


class TestExtractResponseText:
    """Tests for locating generated text in different response shapes."""

    def test_plain_string_and_bytes(self):
        """Test strings and bytes are returned as text."""
        assert extract_response_text('{"a": 1}') == '{"a": 1}'
        assert extract_response_text(b'{"a": 1}') == '{"a": 1}'
        assert extract_response_text("   ") is None
        assert extract_response_text(None) is None

    def test_text_accessor(self):
        """Test the SDK convenience accessor."""
        assert extract_response_text(SimpleNamespace(text="hello")) == "hello"
        assert extract_response_text(SimpleNamespace(output_text="hi")) == "hi"

    def test_candidate_parts_object(self):
        """Test Gemini candidates as objects, parts joined."""
        parts = [SimpleNamespace(text='{"a":'), SimpleNamespace(text=" 1}")]
        response = SimpleNamespace(
            text=None,
            candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))],
        )
        assert extract_response_text(response) == '{"a": 1}'

    def test_candidate_parts_dict(self):
        """Test Gemini REST-style dictionaries."""
        response = {"candidates": [{"content": {"parts": [{"text": "x"}, {"inline": 1}]}}]}
        assert extract_response_text(response) == "x"

    def test_openai_choices(self):
        """Test OpenAI string content and content parts."""
        message = SimpleNamespace(content="answer")
        assert extract_response_text(SimpleNamespace(choices=[SimpleNamespace(message=message)])) == "answer"

        response = {"choices": [{"message": {"content": [{"type": "text", "text": "part"}]}}]}
        assert extract_response_text(response) == "part"

    def test_failing_text_accessor(self):
        """Test a raising accessor is treated as no text."""
        assert extract_response_text(_BlockedResponse()) is None

    def test_unknown_shape(self):
        """Test an unrecognised object yields None."""
        assert extract_response_text(SimpleNamespace(foo="bar")) is None
        assert extract_response_text({"choices": []}) is None


class TestFindJsonPayload:
    """Tests for locating the JSON object in response text."""

    def test_bare_json(self):
        """Test text that is already JSON."""
        assert find_json_payload('{"outer": {"inner": 1}}') == {"outer": {"inner": 1}}

    def test_fenced_json(self):
        """Test JSON inside a markdown code fence."""
        text = 'Here you go:\n```json\n{"age": "34 years"}\n```\nAnything else?'
        assert find_json_payload(text) == {"age": "34 years"}

    def test_json_in_prose(self):
        """Test JSON embedded in prose, after a stray brace."""
        text = 'The result {see below} is {"sex": "Male"} as requested.'
        assert find_json_payload(text) == {"sex": "Male"}

    def test_array_yields_first_object(self):
        """Test a top-level array yields its first object."""
        assert find_json_payload('[{"a": 1}, {"b": 2}]') == {"a": 1}

    def test_array_without_objects(self):
        """Test an array of scalars is not a payload."""
        with pytest.raises(ResponseParseError):
            find_json_payload("[1, 2, 3]")

    def test_no_json(self):
        """Test text without any JSON."""
        with pytest.raises(ResponseParseError):
            find_json_payload("I could not read the document.")

    def test_empty_text(self):
        """Test empty text is an empty response, not a parse error."""
        with pytest.raises(EmptyResponseError):
            find_json_payload("")
        with pytest.raises(EmptyResponseError):
            find_json_payload(None)


class TestUnwrapPayload:
    """Tests for envelope stripping."""

    def test_unwraps_single_key_envelope(self):
        """Test a known single-key envelope is removed."""
        assert unwrap_payload({"data": {"age": "3"}}) == {"age": "3"}
        assert unwrap_payload({"extractedData": {"sex": "F"}}) == {"sex": "F"}

    def test_keeps_other_payloads(self):
        """Test payloads that are not envelopes are untouched."""
        assert unwrap_payload({"data": "x"}) == {"data": "x"}
        assert unwrap_payload({"data": {}, "age": "3"}) == {"data": {}, "age": "3"}
        assert unwrap_payload({"diagnosis": {"name": "Flu"}}) == {"diagnosis": {"name": "Flu"}}


class TestNormalizeResponse:
    """Tests for end-to-end response normalization."""

    def test_prefers_parsed(self):
        """Test an SDK-parsed object is used before the text."""
        response = SimpleNamespace(parsed={"age": "1"}, text="not json")
        assert normalize_response(response) == {"age": "1"}

    def test_falls_back_to_text(self):
        """Test text is parsed when nothing was pre-parsed."""
        response = SimpleNamespace(parsed=None, text='{"result": {"diagnosis": "Flu"}}')
        assert normalize_response(response) == {"diagnosis": "Flu"}

    def test_raw_string(self):
        """Test a raw string response."""
        assert normalize_response('{"sex": "F"}') == {"sex": "F"}

    def test_blocked(self):
        """Test a blocked prompt raises BlockedResponseError."""
        with pytest.raises(BlockedResponseError) as exc_info:
            normalize_response(_BlockedResponse())
        assert exc_info.value.status_code == 422

    def test_empty(self):
        """Test a response without text raises EmptyResponseError."""
        with pytest.raises(EmptyResponseError):
            normalize_response(SimpleNamespace(text=None, candidates=[]))
