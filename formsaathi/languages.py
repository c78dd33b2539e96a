"""
Supported languages and their BCP-47 codes.

Every lookup goes through the ``Language`` enum so an unknown name or code is
rejected explicitly instead of silently falling through to a default.
"""

from enum import Enum
from typing import List

from .errors import UnsupportedLanguageError


class Language(str, Enum):
    """Languages offered for explanations, speech and translation."""

    ENGLISH = "en-IN"
    HINDI = "hi-IN"
    BENGALI = "bn-IN"
    GUJARATI = "gu-IN"
    KANNADA = "kn-IN"
    MALAYALAM = "ml-IN"
    MARATHI = "mr-IN"
    ODIA = "od-IN"
    PUNJABI = "pa-IN"
    TAMIL = "ta-IN"
    TELUGU = "te-IN"

    @property
    def code(self) -> str:
        return self.value


# Buttons shown on the language selection step, in display order
SELECTABLE_LANGUAGES: List[Language] = [
    Language.HINDI,
    Language.TAMIL,
    Language.BENGALI,
    Language.KANNADA,
    Language.TELUGU,
    Language.ENGLISH,
]

# Short codes accepted by the speech endpoints
_SHORT_CODES = {
    "hi": Language.HINDI,
    "en": Language.ENGLISH,
}


def language_from_name(name: str) -> Language:
    """
    Resolve a display name such as ``"HINDI"`` to a Language.

    Raises:
        UnsupportedLanguageError: If the name is not a supported language
    """
    key = (name or "").strip().upper()
    try:
        return Language[key]
    except KeyError:
        raise UnsupportedLanguageError(f"Unsupported language: {name}") from None


def language_from_code(code: str) -> Language:
    """
    Resolve a BCP-47 code (``"hi-IN"``) or short code (``"hi"``) to a Language.

    Raises:
        UnsupportedLanguageError: If the code is not supported
    """
    normalized = (code or "").strip()
    if normalized.lower() in _SHORT_CODES:
        return _SHORT_CODES[normalized.lower()]
    for language in Language:
        if language.code.lower() == normalized.lower():
            return language
    raise UnsupportedLanguageError(f"Unsupported language code: {code}")


def display_name(code: str) -> str:
    """Return the display name for a code, or ``UNKNOWN``."""
    try:
        return language_from_code(code).name
    except UnsupportedLanguageError:
        return "UNKNOWN"
