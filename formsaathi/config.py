"""
Configuration management for Form Saathi application.
"""

import os
from typing import Optional
from dotenv import load_dotenv
from loguru import logger

# Load environment variables
load_dotenv()


class Config:
    """
    Configuration class for Form Saathi application.

    Centralizes API credentials, retry policy, batch sizes and the
    conversation timers, and provides validation.
    """

    def __init__(self):
        """Initialize configuration with environment variables."""
        self.sarvam_api_key: Optional[str] = os.getenv("SARVAM_API_KEY")
        self.sarvam_base_url: str = os.getenv("SARVAM_BASE_URL", "https://api.sarvam.ai").rstrip("/")
        self.openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY")
        self.openai_vision_model: str = os.getenv("OPENAI_VISION_MODEL", "gpt-4-turbo")

        self.api_max_retries: int = int(os.getenv("API_MAX_RETRIES", "2"))
        self.api_retry_delay_ms: int = int(os.getenv("API_RETRY_DELAY_MS", "1000"))
        self.api_timeout_s: float = float(os.getenv("API_TIMEOUT_S", "30"))

        self.sample_rate: int = int(os.getenv("SAMPLE_RATE", "16000"))
        self.translation_batch_size: int = int(os.getenv("TRANSLATION_BATCH_SIZE", "5"))
        self.tts_batch_size: int = int(os.getenv("TTS_BATCH_SIZE", "3"))
        self.tts_speaker: str = os.getenv("TTS_SPEAKER", "meera")

        self.language_capture_seconds: float = float(os.getenv("LANGUAGE_CAPTURE_SECONDS", "3"))
        self.field_restore_seconds: float = float(os.getenv("FIELD_RESTORE_SECONDS", "10"))
        self.default_spoken_language: str = os.getenv("DEFAULT_SPOKEN_LANGUAGE", "HINDI").upper()

        self._validate_config()

    def _validate_config(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: If configuration values are invalid.
        """
        if self.api_max_retries < 0:
            raise ValueError(
                f"API_MAX_RETRIES must be non-negative, got: {self.api_max_retries}"
            )

        if not 3 <= self.translation_batch_size <= 5:
            raise ValueError(
                f"Translation batch size must be between 3-5, got: {self.translation_batch_size}"
            )

        if not 3 <= self.tts_batch_size <= 5:
            raise ValueError(
                f"Speech batch size must be between 3-5, got: {self.tts_batch_size}"
            )

        if self.language_capture_seconds <= 0 or self.field_restore_seconds <= 0:
            raise ValueError("Conversation timers must be positive durations")

        if self.sample_rate not in [8000, 16000, 22050, 44100, 48000]:
            logger.warning(
                f"Sample rate {self.sample_rate} may not be optimal. "
                "Recommended: 16000 Hz"
            )

        if not self.sarvam_api_key:
            logger.warning("SARVAM_API_KEY is not set - speech and translation will use fallbacks")
        if not self.openai_api_key:
            logger.warning("OPENAI_API_KEY is not set - form parsing will use local field lists")

        logger.info(f"Configuration loaded successfully:")
        logger.info(f"  - Sarvam endpoint: {self.sarvam_base_url}")
        logger.info(f"  - Vision model: {self.openai_vision_model}")
        logger.info(f"  - Retries: {self.api_max_retries} x {self.api_retry_delay_ms}ms")
        logger.info(f"  - Sample rate: {self.sample_rate} Hz")


# Global configuration instance
config = Config()
