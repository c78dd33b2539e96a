"""
Exception types shared by the Form Saathi services.
"""

from typing import Optional


class FormSaathiError(Exception):
    """Base class for all application errors."""


class ApiError(FormSaathiError):
    """Raised when an external API answers with a non-success status."""

    def __init__(self, status_code: int, details: str = "", endpoint: Optional[str] = None):
        self.status_code = status_code
        self.details = details
        self.endpoint = endpoint
        super().__init__(f"API error: {status_code}")


class MicrophonePermissionError(FormSaathiError):
    """Raised when the microphone cannot be opened."""


class UnsupportedLanguageError(FormSaathiError, KeyError):
    """Raised for a language name or code outside the supported set."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class TranslationError(FormSaathiError):
    """Raised when explanations cannot be translated."""


class SpeechSynthesisError(FormSaathiError):
    """Raised when text-to-speech returns no usable audio."""
