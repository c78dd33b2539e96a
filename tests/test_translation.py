"""
Tests for field explanations and translation.
"""

import asyncio
import json

import httpx
import pytest
from formsaathi.api_client import SarvamClient
from formsaathi.errors import TranslationError
from formsaathi.languages import Language
from formsaathi.models import FormField
from formsaathi.translation import (
    COMMON_EXPLANATIONS,
    Translator,
    build_form_fields,
    generate_field_explanations,
    localized_label,
)


def make_translator(handler, batch_size=5):
    client = SarvamClient(api_key="k", base_url="https://sarvam.test", max_retries=0,
                          retry_delay_ms=0, transport=httpx.MockTransport(handler))
    return Translator(client=client, batch_size=batch_size)


def echo_handler(requests):
    def handler(request):
        payload = json.loads(request.content)
        requests.append(payload)
        if "FAIL" in payload["input"]:
            return httpx.Response(500, json={"error": "down"})
        return httpx.Response(200, json={
            "translated_text": f"<{payload['target_language_code']}> {payload['input']}",
            "source_language_code": payload["source_language_code"],
        })
    return handler


class TestExplanations:
    """Test cases for the canned English explanations."""

    def test_exact_label(self):
        explanations = generate_field_explanations(["Mobile Number"])
        assert explanations["Mobile Number"] == COMMON_EXPLANATIONS["Mobile Number"]

    def test_label_containing_known_key(self):
        """A label containing a table key reuses that explanation."""
        explanations = generate_field_explanations(["Residential Address"])
        assert explanations["Residential Address"] == COMMON_EXPLANATIONS["Address"]

    def test_unknown_label_gets_generic_text(self):
        explanations = generate_field_explanations(["Favourite Colour"])
        assert explanations["Favourite Colour"] == \
            "This field is for your favourite colour. Please fill it accurately."

    def test_build_form_fields_replaces_explanations(self):
        """Extracted explanations are replaced by the canned ones, order kept."""
        fields = build_form_fields([FormField("Email", "from vision"), FormField("Name", "")])
        assert [f.label for f in fields] == ["Email", "Name"]
        assert fields[0].explanation == COMMON_EXPLANATIONS["Email"]
        assert fields[1].explanation == COMMON_EXPLANATIONS["Name"]

    def test_localized_label(self):
        """Hindi labels come from the lookup table; other languages keep the label."""
        assert localized_label("Legal Name", Language.HINDI) == "कानूनी नाम"
        assert localized_label("Applicant Name", Language.HINDI) == "नाम"
        assert localized_label("Signature", Language.HINDI) == "Signature"
        assert localized_label("Address", Language.TAMIL) == "Address"
        assert localized_label("Address", None) == "Address"


class TestTranslator:
    """Test cases for the Translator."""

    def test_translate_text(self):
        requests = []
        translated, source = asyncio.run(
            make_translator(echo_handler(requests)).translate_text("hello", "en-IN", "ta-IN")
        )

        assert translated == "<ta-IN> hello"
        assert source == "en-IN"
        assert requests[0]["mode"] == "formal"
        assert requests[0]["enable_preprocessing"] is True

    def test_translate_text_defaults_to_detection(self):
        requests = []
        asyncio.run(make_translator(echo_handler(requests)).translate_text("नमस्ते"))
        assert requests[0]["source_language_code"] == "auto"
        assert requests[0]["target_language_code"] == "en-IN"

    def test_translate_text_failure(self):
        with pytest.raises(TranslationError):
            asyncio.run(make_translator(echo_handler([])).translate_text("FAIL", "en-IN", "hi-IN"))

    def test_empty_translation_is_an_error(self):
        def handler(request):
            return httpx.Response(200, json={"translated_text": ""})

        with pytest.raises(TranslationError):
            asyncio.run(make_translator(handler).translate_text("hello", "en-IN", "hi-IN"))

    def test_failed_item_keeps_english(self):
        """One failed explanation does not fail the batch."""
        requests = []
        explanations = {"Name": "Your name", "Address": "FAIL here", "Email": "Your email"}

        result = asyncio.run(
            make_translator(echo_handler(requests)).translate_field_explanations(explanations, "hi-IN")
        )

        assert result == {
            "Name": "<hi-IN> Your name",
            "Address": "FAIL here",
            "Email": "<hi-IN> Your email",
        }

    def test_every_item_failing_raises(self):
        """A service that rejects every request is reported as a failure."""
        def handler(request):
            return httpx.Response(403, json={"error": "invalid api key"})

        explanations = {"Name": "Your name", "Address": "Your address"}
        with pytest.raises(TranslationError):
            asyncio.run(make_translator(handler).translate_field_explanations(explanations, "hi-IN"))

    def test_translate_fields_outage(self):
        def handler(request):
            return httpx.Response(403, json={"error": "invalid api key"})

        with pytest.raises(TranslationError):
            asyncio.run(make_translator(handler).translate_fields([FormField("Name", "Your name")], Language.HINDI))

    def test_all_items_translated_across_batches(self):
        requests = []
        explanations = {f"Field {i}": f"Explanation {i}" for i in range(7)}

        result = asyncio.run(
            make_translator(echo_handler(requests), batch_size=3).translate_field_explanations(
                explanations, "bn-IN")
        )

        assert len(requests) == 7
        assert result["Field 6"] == "<bn-IN> Explanation 6"

    def test_translate_fields(self):
        """Translations are attached without touching the English text."""
        fields = [FormField("Name", "Your name", audio_base64="old")]

        result = asyncio.run(make_translator(echo_handler([])).translate_fields(fields, Language.KANNADA))

        assert result[0].explanation == "Your name"
        assert result[0].translated_explanation == "<kn-IN> Your name"
        assert result[0].audio_base64 is None

    def test_translate_fields_requires_fields(self):
        with pytest.raises(TranslationError):
            asyncio.run(make_translator(echo_handler([])).translate_fields([], Language.HINDI))
