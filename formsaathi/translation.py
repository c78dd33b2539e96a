"""
Field explanations and their translation.

English explanations come from a canned lookup table keyed by common field
labels. Translation into the user's language goes through the Sarvam AI
translate endpoint, batched to bound the number of parallel requests.
"""

import asyncio
from typing import Dict, Iterable, List, Optional, Tuple
from loguru import logger

from .api_client import SarvamClient
from .config import config
from .errors import TranslationError
from .languages import Language
from .models import FormField

COMMON_EXPLANATIONS: Dict[str, str] = {
    "Name": "This is where you should write your full name as it appears on your official documents.",
    "Full Name": "This is where you should write your complete name as it appears on your official documents.",
    "Address": "This is where you should write your current residential address including house number, street, city, and PIN code.",
    "Mobile": "This is where you should enter your 10-digit mobile phone number.",
    "Mobile Number": "This is where you should enter your 10-digit mobile phone number.",
    "Phone": "This is where you should enter your phone number with area code if applicable.",
    "Email": "This is where you should enter your email address if you have one.",
    "Date of Birth": "This is where you should enter your birth date in DD/MM/YYYY format.",
    "DOB": "This is where you should enter your birth date in DD/MM/YYYY format.",
    "Age": "This is where you should write your current age in years.",
    "Gender": "This is where you should select your gender (Male/Female/Other).",
    "Occupation": "This is where you should write your current job or profession.",
    "Income": "This is where you should write your monthly or annual income amount.",
    "Aadhaar": "This is where you should enter your 12-digit Aadhaar card number.",
    "Aadhaar Number": "This is where you should enter your 12-digit Aadhaar card number.",
    "PAN": "This is where you should enter your 10-character PAN (Permanent Account Number).",
    "PAN Number": "This is where you should enter your 10-character PAN (Permanent Account Number).",
    "Signature": "This is where you should sign the form with your signature.",
    "Photo": "This is where you should attach or paste your recent passport-sized photograph.",
}

HINDI_LABELS: Dict[str, str] = {
    "Name": "नाम",
    "Legal Name": "कानूनी नाम",
    "Address": "पता",
    "Registered At": "पंजीकृत स्थान",
    "Date": "तारीख",
    "Registration Date": "पंजीकरण तिथि",
    "Mobile": "मोबाइल",
    "Phone": "फोन",
    "Email": "ईमेल",
    "ID": "पहचान संख्या",
    "Business Type": "व्यापार प्रकार",
    "Entity Type": "संस्था प्रकार",
    "Jurisdiction": "क्षेत्राधिकार",
    "Status": "स्थिति",
}


def _lookup(label: str, table: Dict[str, str]) -> Optional[str]:
    if label in table:
        return table[label]
    lower_label = label.lower()
    for key, value in table.items():
        if key.lower() in lower_label:
            return value
    return None


def default_explanation(label: str) -> str:
    return f"This field is for your {label.lower()}. Please fill it accurately."


def generate_field_explanations(field_labels: Iterable[str]) -> Dict[str, str]:
    """
    Map field labels to English explanations.

    Exact matches win, then the first table key contained in the label,
    then a generic explanation.

    Args:
        field_labels (Iterable[str]): Labels extracted from the form

    Returns:
        Dict[str, str]: Label to explanation
    """
    explanations: Dict[str, str] = {}
    for label in field_labels:
        explanations[label] = _lookup(label, COMMON_EXPLANATIONS) or default_explanation(label)
    return explanations


def build_form_fields(extracted: Iterable[FormField]) -> List[FormField]:
    """Replace extracted explanations with the canned English ones."""
    extracted = list(extracted)
    explanations = generate_field_explanations(field.label for field in extracted)
    return [
        FormField(
            label=field.label,
            explanation=explanations.get(field.label) or f"This is the {field.label} field.",
        )
        for field in extracted
    ]


def localized_label(label: str, language: Optional[Language]) -> str:
    """Return the label in the session language where a table exists."""
    if language is Language.HINDI:
        return _lookup(label, HINDI_LABELS) or label
    return label


class Translator:
    """
    Translation through the Sarvam AI ``/translate`` endpoint.
    """

    def __init__(self, client: Optional[SarvamClient] = None, batch_size: Optional[int] = None):
        self.client = client or SarvamClient()
        self.batch_size = batch_size or config.translation_batch_size

    async def translate_text(self, text: str, source_language_code: str = "auto",
                             target_language_code: str = Language.ENGLISH.code) -> Tuple[str, Optional[str]]:
        """
        Translate text from one language to another.

        Args:
            text (str): Text to translate
            source_language_code (str): Source code, or ``auto`` for detection
            target_language_code (str): Target code

        Returns:
            Tuple[str, Optional[str]]: Translated text and detected source language

        Raises:
            TranslationError: If the API call fails
        """
        try:
            response = await self.client.post_json("/translate", {
                "input": text,
                "source_language_code": source_language_code,
                "target_language_code": target_language_code,
                "mode": "formal",
                "enable_preprocessing": True,
            })
        except Exception as e:
            logger.error(f"Translation failed: {e}")
            raise TranslationError(str(e)) from e

        translated = response.get("translated_text")
        if not translated:
            raise TranslationError("Translation response had no translated_text")
        return translated, response.get("source_language_code")

    async def translate_field_explanations(self, explanations: Dict[str, str],
                                           target_language_code: str) -> Dict[str, str]:
        """
        Translate a label-to-explanation map in fixed-size batches.

        A failed item keeps its original English text.

        Args:
            explanations (Dict[str, str]): English explanations by label
            target_language_code (str): Target language code

        Returns:
            Dict[str, str]: Translated explanations by label

        Raises:
            TranslationError: If every item failed to translate
        """
        translated: Dict[str, str] = {}
        failed: List[str] = []
        entries = list(explanations.items())

        async def translate_one(label: str, explanation: str) -> Tuple[str, str]:
            try:
                text, _ = await self.translate_text(explanation, Language.ENGLISH.code, target_language_code)
                return label, text
            except TranslationError:
                logger.warning(f"Failed to translate explanation for {label}, keeping English")
                failed.append(label)
                return label, explanation

        for start in range(0, len(entries), self.batch_size):
            batch = entries[start:start + self.batch_size]
            results = await asyncio.gather(*(translate_one(label, text) for label, text in batch))
            translated.update(results)

        if entries and len(failed) == len(entries):
            raise TranslationError(f"All {len(entries)} explanations failed to translate to {target_language_code}")

        logger.info(f"Translated {len(entries) - len(failed)} of {len(entries)} explanations to {target_language_code}")
        return translated

    async def translate_fields(self, fields: List[FormField], language: Language) -> List[FormField]:
        """
        Attach translated explanations to fields.

        Raises:
            TranslationError: If there are no fields to translate
        """
        if not fields:
            raise TranslationError("No form fields to translate")

        explanations = {field.label: field.explanation for field in fields}
        translated = await self.translate_field_explanations(explanations, language.code)
        return [field.with_translation(translated.get(field.label, field.explanation)) for field in fields]
