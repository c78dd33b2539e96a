"""
Text-to-Speech module using the Sarvam AI API.
"""

import asyncio
import base64
import binascii
from typing import List, Optional
from loguru import logger

from .api_client import SarvamClient
from .config import config
from .errors import SpeechSynthesisError, UnsupportedLanguageError
from .languages import Language, language_from_code
from .models import FormField


class SpeechSynthesizer:
    """
    Speech synthesizer backed by the Sarvam ``bulbul`` model.

    Returns base64-encoded WAV audio ready for playback in the browser.
    """

    def __init__(self, client: Optional[SarvamClient] = None, speaker: Optional[str] = None,
                 batch_size: Optional[int] = None, model: str = "bulbul:v1"):
        self.client = client or SarvamClient()
        self.speaker = speaker or config.tts_speaker
        self.batch_size = batch_size or config.tts_batch_size
        self.model = model

    async def synthesize(self, text: str, language_code: str, speaker: Optional[str] = None) -> str:
        """
        Convert text to speech.

        Args:
            text (str): Text to speak
            language_code (str): Language of the text
            speaker (Optional[str]): Voice name, defaults to the configured speaker

        Returns:
            str: Base64-encoded audio

        Raises:
            SpeechSynthesisError: If the API fails or returns no audio
        """
        speaker = speaker or self.speaker
        try:
            target = language_from_code(language_code).code
        except UnsupportedLanguageError:
            target = Language.ENGLISH.code

        logger.info(f"Converting text to speech: language={target}, speaker={speaker}")

        try:
            response = await self.client.post_json("/text-to-speech", {
                "inputs": [text],
                "target_language_code": target,
                "speaker": speaker,
                "pitch": 0,
                "pace": 1.2,
                "loudness": 1.2,
                "speech_sample_rate": 16000,
                "enable_preprocessing": True,
                "model": self.model,
            })
        except Exception as e:
            logger.error(f"Text-to-speech conversion failed: {e}")
            raise SpeechSynthesisError(str(e)) from e

        audios = (response or {}).get("audios") or []
        if not audios:
            logger.error(f"Sarvam AI TTS returned no audio data: {response}")
            raise SpeechSynthesisError("No audio data returned from Sarvam AI")

        logger.info("Successfully generated speech audio")
        return audios[0]

    async def generate_field_audio(self, fields: List[FormField], language_code: str) -> List[FormField]:
        """
        Pre-generate audio for every field in fixed-size batches.

        A field whose synthesis fails is returned without audio.
        """
        updated: List[FormField] = []

        async def speak_one(field: FormField) -> FormField:
            try:
                field.audio_base64 = await self.synthesize(field.display_explanation, language_code)
            except SpeechSynthesisError:
                logger.warning(f"Failed to generate audio for {field.label}")
            return field

        for start in range(0, len(fields), self.batch_size):
            batch = fields[start:start + self.batch_size]
            updated.extend(await asyncio.gather(*(speak_one(field) for field in batch)))

        return updated


def decode_audio(base64_audio: str) -> bytes:
    """
    Decode base64 audio for playback.

    Raises:
        SpeechSynthesisError: If the payload is empty or not valid base64
    """
    if not base64_audio:
        raise SpeechSynthesisError("Invalid audio data")
    try:
        return base64.b64decode(base64_audio, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SpeechSynthesisError(f"Invalid audio data: {e}") from e
