"""
Speech-to-Text module using the Sarvam AI API.

This module uploads recorded audio to Sarvam's speech-to-text endpoint and
returns the transcript together with the detected language.
"""

from typing import Optional, Dict, Any
from loguru import logger

from .api_client import SarvamClient
from .errors import UnsupportedLanguageError
from .languages import Language, language_from_code

FALLBACK_TRANSCRIPTS = {
    Language.HINDI: "फॉर्म के बारे में बताओ",
    Language.ENGLISH: "Tell me about this form",
}


def to_sarvam_code(language_code: Optional[str]) -> str:
    """
    Map a language code to the form the speech endpoint expects.

    ``unknown`` (or nothing) lets the API detect the language.
    """
    if not language_code or language_code == "unknown":
        return "unknown"
    try:
        return language_from_code(language_code).code
    except UnsupportedLanguageError:
        logger.warning(f"Unsupported language hint '{language_code}', using auto-detection")
        return "unknown"


def fallback_transcript(language_code: Optional[str]) -> str:
    """Canned query used when the audio cannot be transcribed."""
    try:
        language = language_from_code(language_code or "")
    except UnsupportedLanguageError:
        language = Language.ENGLISH
    return FALLBACK_TRANSCRIPTS.get(language, FALLBACK_TRANSCRIPTS[Language.ENGLISH])


class SpeechToTextProcessor:
    """
    Speech-to-Text processor backed by the Sarvam ``saarika`` model.

    Transcription never raises: on any failure the processor returns a
    best-effort canned query so the conversation can continue.
    """

    def __init__(self, client: Optional[SarvamClient] = None, model: str = "saarika:v2"):
        """
        Initialize Speech-to-Text processor.

        Args:
            client (Optional[SarvamClient]): API client. A default one is built if None
            model (str): Sarvam speech-to-text model name
        """
        self.client = client or SarvamClient()
        self.model = model
        logger.info(f"Speech-to-text processor ready (model '{model}')")

    async def transcribe_audio(self, audio_data: bytes,
                               language_code: Optional[str] = "unknown") -> Dict[str, Any]:
        """
        Transcribe WAV audio to text.

        Args:
            audio_data (bytes): WAV-encoded audio
            language_code (Optional[str]): Language hint, ``unknown`` for auto-detection

        Returns:
            Dict[str, Any]: ``text`` and ``language``, plus ``error`` on fallback
        """
        try:
            if not audio_data:
                raise ValueError("No audio data available")

            sarvam_code = to_sarvam_code(language_code)
            logger.info(f"Processing audio: size={len(audio_data)} bytes, language={sarvam_code}")

            response = await self.client.upload_file(
                "/speech-to-text",
                files={"file": ("recording.wav", audio_data, "audio/wav")},
                data={"model": self.model, "language_code": sarvam_code},
            )

            transcript = (response or {}).get("transcript")
            if not transcript:
                raise ValueError(f"Speech-to-text API returned invalid response: {response}")

            logger.info(f"Transcription completed: '{transcript[:100]}'")
            return {
                "text": transcript,
                "language": response.get("language_code") or language_code,
            }

        except Exception as e:
            logger.error(f"Speech-to-text conversion failed: {e}")
            return {
                "text": fallback_transcript(language_code),
                "language": language_code,
                "error": str(e),
            }
