"""
Tests for form field extraction.
"""

import io
from types import SimpleNamespace

import fitz
import pytest
from PIL import Image
from formsaathi.form_parser import (
    DEFAULT_FIELDS,
    PDF_FIELDS,
    FormParser,
    enhance_explanation,
    extract_fields_from_text,
    extract_pdf_labels,
    extract_pdf_text,
    parse_vision_response,
)


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAI:
    def __init__(self, content=None, error=None):
        self.completions = FakeCompletions(content, error)
        self.chat = SimpleNamespace(completions=self.completions)


def png_bytes(width=200, height=100):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, format="PNG")
    return buffer.getvalue()


def pdf_bytes(*lines):
    doc = fitz.open()
    page = doc.new_page()
    for index, line in enumerate(lines):
        page.insert_text((72, 72 + 20 * index), line)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def failing_client():
    return FakeOpenAI(error=RuntimeError("vision unavailable"))


class TestTextExtraction:
    """Test cases for parsing model replies and PDF text."""

    def test_json_array_in_code_fence(self):
        content = (
            "```json\n"
            '[{"label": "Name", "explanation": "Full name"}, {"label": "PAN", "explanation": "Tax id"}]\n'
            "```"
        )
        fields = parse_vision_response(content)
        assert [(f.label, f.explanation) for f in fields] == [("Name", "Full name"), ("PAN", "Tax id")]

    def test_individual_json_objects(self):
        content = (
            'First {"label": "Name", "explanation": "x"} and then '
            '{"label": "Email", "explanation": "y"}'
        )
        assert [f.label for f in parse_vision_response(content)] == ["Name", "Email"]

    def test_falls_back_to_text_lines(self):
        content = "Here are the fields:\n1. Name: Your full name\n- Address: Where you live\nThanks"
        fields = parse_vision_response(content)
        labels = [f.label for f in fields]
        assert "Name" in labels
        assert "Address" in labels

    def test_numbered_and_bulleted_lines(self):
        fields = extract_fields_from_text("1. Name: Your full name\n- Address: Where you live\nrandom line")
        assert [(f.label, f.explanation) for f in fields] == [
            ("Name", "Your full name"),
            ("Address", "Where you live"),
        ]

    def test_no_matching_lines(self):
        assert extract_fields_from_text("nothing to see here") == []

    def test_pdf_labels_are_deduplicated(self):
        fields = extract_pdf_labels("Name: ____\nAddress:\nname: again\nPhone *")
        assert [f.label for f in fields] == ["Name", "Address", "Phone"]

    def test_extract_pdf_text(self):
        text = extract_pdf_text(pdf_bytes("Name:", "Address:"))
        assert "Name:" in text
        assert "Address:" in text


class TestEnhanceExplanation:
    """Test cases for explanation enrichment."""

    def test_short_name_explanation_gets_context(self):
        result = enhance_explanation("Legal Name", "Your name.")
        assert result == "Your name. This should be your official name as it appears in legal documents."

    def test_long_explanation_unchanged(self):
        long_text = "x" * 101
        assert enhance_explanation("Legal Name", long_text) == long_text

    def test_unrelated_label_unchanged(self):
        assert enhance_explanation("Gender", "Male or female.") == "Male or female."


class TestFormParser:
    """Test cases for the extraction strategy chain."""

    def test_vision_fields(self):
        """Vision results are used first, with enriched explanations."""
        client = FakeOpenAI(content='[{"label": "Registration Date", "explanation": "When registered."}]')
        parser = FormParser(client=client, model="vision-model")

        fields = parser.parse_form(png_bytes(), "image/png", "form.png")

        assert [f.label for f in fields] == ["Registration Date"]
        assert fields[0].explanation == "When registered. Use the format DD/MM/YYYY."

        call = client.completions.calls[0]
        assert call["model"] == "vision-model"
        assert call["max_tokens"] == 1000
        image_part = call["messages"][1]["content"][1]
        assert image_part["image_url"]["url"].startswith("data:image/png;base64,")

    def test_vision_receives_rendered_pdf_page(self):
        client = FakeOpenAI(content='[{"label": "Name", "explanation": "Your name."}]')
        FormParser(client=client).parse_form(pdf_bytes("Name:"), "application/pdf", "form.pdf")

        image_part = client.completions.calls[0]["messages"][1]["content"][1]
        assert image_part["image_url"]["url"].startswith("data:image/png;base64,")

    def test_pdf_text_when_vision_fails(self, failing_client):
        fields = FormParser(client=failing_client).parse_form(
            pdf_bytes("Name:", "Address:"), "application/pdf", "form.pdf")
        assert [f.label for f in fields] == ["Name", "Address"]

    def test_pdf_without_labels_uses_canned_list(self, failing_client):
        fields = FormParser(client=failing_client).parse_form(pdf_bytes(), "application/pdf", "blank.pdf")
        assert [f.label for f in fields] == [label for label, _ in PDF_FIELDS]

    def test_small_image_uses_default_fields(self, failing_client):
        fields = FormParser(client=failing_client).parse_form(png_bytes(200, 100), "image/png")
        assert [f.label for f in fields] == [label for label, _ in DEFAULT_FIELDS]

    def test_large_image_adds_identity_fields(self, failing_client):
        fields = FormParser(client=failing_client).parse_form(png_bytes(1200, 900), "image/png")
        labels = [f.label for f in fields]
        assert len(labels) == len(DEFAULT_FIELDS) + 2
        assert labels[-2:] == ["Passport Number", "PAN Card Number"]

    def test_unreadable_image_uses_defaults(self, failing_client):
        """Every strategy failing still produces the default fields."""
        fields = FormParser(client=failing_client).parse_form(b"not an image", "image/png")
        assert [f.label for f in fields] == [label for label, _ in DEFAULT_FIELDS]

    def test_other_file_types(self, failing_client):
        fields = FormParser(client=failing_client).parse_form(b"hello", "text/plain", "notes.txt")
        assert len(fields) == len(DEFAULT_FIELDS)
        assert failing_client.completions.calls == []
