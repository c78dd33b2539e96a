"""
Conversation flow for the Form Saathi assistant.

The flow has five linear steps::

    UPLOAD -> LANGUAGE_SELECT -> FIELD_LIST -> VOICE_QUERY -> RESPONSE
                                     ^                            |
                                     +------- ask another --------+

``reset`` returns to UPLOAD from anywhere. External-service failures never
stop the flow: they degrade to fallback data or a user-facing message and the
user always has a way forward.

All mutable session data lives in one ``FormSession`` owned by the
``ConversationController``. The two delayed operations (the spoken-language
capture window and the field-list restore after a targeted answer) are
``threading.Timer`` tasks tracked by the controller and cancelled on reset.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Coroutine, Dict, List, Optional
from loguru import logger

from .config import config
from .errors import (
    MicrophonePermissionError,
    SpeechSynthesisError,
    TranslationError,
)
from .form_parser import FormParser
from .languages import Language, language_from_name
from .matcher import match_query
from .models import FormField, MatchResult
from .speech_to_text import SpeechToTextProcessor
from .text_to_speech import SpeechSynthesizer
from .translation import Translator, build_form_fields

NO_FILE_MESSAGE = "Please upload a form first"
NO_FIELDS_MESSAGE = "No form fields detected. Please try a different form."
FORM_FAILED_MESSAGE = "Failed to process form. Please try again."
TRANSLATION_ALERT = "Failed to translate explanations. Continuing with English."
AUDIO_ALERT = "Failed to play audio. Please try again."
MIC_ERROR_MESSAGE = "Could not access microphone. Please check permissions."


class ConversationStep(IntEnum):
    UPLOAD = 1
    LANGUAGE_SELECT = 2
    FIELD_LIST = 3
    VOICE_QUERY = 4
    RESPONSE = 5


@dataclass
class FormSession:
    """
    State of one interactive session, from upload through reset.

    ``fields`` holds every extracted field; ``visible_fields`` is what the
    field list currently shows (narrowed to one field after a targeted
    answer until the restore timer fires).
    """

    step: ConversationStep = ConversationStep.UPLOAD
    filename: Optional[str] = None
    fields: List[FormField] = field(default_factory=list)
    visible_fields: List[FormField] = field(default_factory=list)
    language: Optional[Language] = None
    query: str = ""
    detected_language: Optional[str] = None
    match: Optional[MatchResult] = None
    form_error: Optional[str] = None
    mic_error: Optional[str] = None
    alert: Optional[str] = None
    is_recording: bool = False
    listening_for_language: bool = False
    generation: int = 0

    @property
    def language_code(self) -> Optional[str]:
        return self.language.code if self.language else None


def run_async(coro: Coroutine) -> Any:
    """Run a coroutine to completion from synchronous UI code."""
    return asyncio.run(coro)


class ConversationController:
    """
    Drives a FormSession through the conversation steps.

    Each public method is one user action. Actions invoked from the wrong
    step are ignored and logged.
    """

    def __init__(self, session: Optional[FormSession] = None,
                 parser: Optional[FormParser] = None,
                 translator: Optional[Translator] = None,
                 transcriber: Optional[SpeechToTextProcessor] = None,
                 synthesizer: Optional[SpeechSynthesizer] = None,
                 recorder: Any = None,
                 timer_factory: Callable[..., threading.Timer] = threading.Timer,
                 restore_seconds: Optional[float] = None,
                 capture_seconds: Optional[float] = None,
                 spoken_language: Optional[str] = None):
        """
        Initialize the controller.

        Args:
            session (Optional[FormSession]): Session to drive; a new one if None
            parser (Optional[FormParser]): Field extractor
            translator (Optional[Translator]): Explanation translator
            transcriber (Optional[SpeechToTextProcessor]): Speech-to-text client
            synthesizer (Optional[SpeechSynthesizer]): Text-to-speech client
            recorder: Object with ``start_recording()``, ``stop_recording() -> bytes`` and ``cleanup()``
            timer_factory: Builds delayed tasks, ``threading.Timer`` signature
            restore_seconds (Optional[float]): Delay before the full field list returns
            capture_seconds (Optional[float]): Spoken-language capture window
            spoken_language (Optional[str]): Language chosen by the spoken sub-flow
        """
        self.session = session or FormSession()
        self.parser = parser or FormParser()
        self.translator = translator or Translator()
        self.transcriber = transcriber or SpeechToTextProcessor()
        self.synthesizer = synthesizer or SpeechSynthesizer()
        self.recorder = recorder
        self.timer_factory = timer_factory
        self.restore_seconds = restore_seconds or config.field_restore_seconds
        self.capture_seconds = capture_seconds or config.language_capture_seconds
        self.spoken_language = language_from_name(spoken_language or config.default_spoken_language)

        self._lock = threading.RLock()
        self._timers: Dict[str, threading.Timer] = {}

    # ------------------------------------------------------------------ helpers

    def _expect(self, *steps: ConversationStep) -> bool:
        if self.session.step in steps:
            return True
        logger.warning(
            f"Action ignored in step {self.session.step.name}; "
            f"expected {', '.join(step.name for step in steps)}"
        )
        return False

    def _advance(self, step: ConversationStep) -> None:
        logger.info(f"Conversation step {self.session.step.name} -> {step.name}")
        self.session.step = step

    def _schedule(self, name: str, delay: float, callback: Callable[[], None]) -> threading.Timer:
        self._cancel(name)
        timer = self.timer_factory(delay, callback)
        timer.daemon = True
        self._timers[name] = timer
        timer.start()
        return timer

    def _cancel(self, name: str) -> None:
        timer = self._timers.pop(name, None)
        if timer is not None:
            timer.cancel()

    @property
    def pending_timers(self) -> List[str]:
        return sorted(self._timers)

    def dismiss_alert(self) -> None:
        self.session.alert = None

    # ------------------------------------------------------------------ step 1

    def confirm_upload(self, file_bytes: Optional[bytes], filename: str = "",
                       mime_type: str = "") -> bool:
        """
        Extract fields from the uploaded file and move to language selection.

        Returns:
            bool: True if the flow advanced
        """
        if not self._expect(ConversationStep.UPLOAD):
            return False

        session = self.session
        session.form_error = None

        if not file_bytes:
            session.form_error = NO_FILE_MESSAGE
            return False

        try:
            extracted = self.parser.parse_form(file_bytes, mime_type, filename)
        except Exception as e:
            logger.error(f"Form processing failed: {e}")
            session.form_error = FORM_FAILED_MESSAGE
            return False

        if not extracted:
            session.form_error = NO_FIELDS_MESSAGE
            return False

        fields = build_form_fields(extracted)
        with self._lock:
            session.filename = filename
            session.fields = fields
            session.visible_fields = list(fields)
            self._advance(ConversationStep.LANGUAGE_SELECT)
        return True

    # ------------------------------------------------------------------ step 2

    def select_language(self, name: str) -> bool:
        """
        Resolve the chosen language and translate explanations into it.

        Translation failures show an alert and continue in English.

        Raises:
            UnsupportedLanguageError: If the name is not a supported language
        """
        if not self._expect(ConversationStep.LANGUAGE_SELECT):
            return False

        language = language_from_name(name)
        with self._lock:
            session = self.session
            generation = session.generation
            session.language = language
            session.mic_error = None

        translated = None
        alert = None
        if language is not Language.ENGLISH:
            try:
                translated = run_async(self.translator.translate_fields(session.fields, language))
            except TranslationError as e:
                logger.error(f"Translation failed: {e}")
                alert = TRANSLATION_ALERT

        with self._lock:
            # a reset while translating replaces the session
            if self.session is not session or session.generation != generation:
                logger.debug("Stale language selection ignored")
                return False
            if translated is not None:
                session.fields = translated
                session.visible_fields = list(translated)
            if alert:
                session.alert = alert
            self._advance(ConversationStep.FIELD_LIST)
        return True

    def select_language_by_voice(self) -> bool:
        """
        Spoken language sub-flow.

        Records for the capture window, then selects the configured spoken
        language whatever was said: detection on such short clips is not
        reliable. A denied microphone leaves the manual buttons in place.

        Returns:
            bool: True if listening started
        """
        if not self._expect(ConversationStep.LANGUAGE_SELECT):
            return False

        try:
            self._start_recorder()
        except MicrophonePermissionError as e:
            logger.error(f"Microphone error: {e}")
            self.session.mic_error = MIC_ERROR_MESSAGE
            return False

        self.session.listening_for_language = True
        generation = self.session.generation
        logger.info("Recording for language detection...")
        self._schedule("language_capture", self.capture_seconds,
                       lambda: self._finish_language_capture(generation))
        return True

    def _finish_language_capture(self, generation: int) -> None:
        with self._lock:
            self._timers.pop("language_capture", None)
            if generation != self.session.generation:
                logger.debug("Stale language capture ignored")
                return
            try:
                self._stop_recorder()
            except Exception as e:
                logger.error(f"Error processing audio for language detection: {e}")
            self.session.listening_for_language = False
            if self.session.step is not ConversationStep.LANGUAGE_SELECT:
                return
            logger.info(f"Setting language to {self.spoken_language.name} (default)")

        self.select_language(self.spoken_language.name)

    def wait_for_language_capture(self, timeout: Optional[float] = None) -> None:
        """Block until the spoken-language window has closed."""
        timer = self._timers.get("language_capture")
        if timer is not None:
            timer.join(timeout)

    # ------------------------------------------------------------------ steps 3-5

    def request_voice_query(self) -> bool:
        if not self._expect(ConversationStep.FIELD_LIST):
            return False
        self._advance(ConversationStep.VOICE_QUERY)
        return True

    def start_query_recording(self) -> bool:
        if not self._expect(ConversationStep.VOICE_QUERY):
            return False
        try:
            self._start_recorder()
        except MicrophonePermissionError as e:
            logger.error(f"Microphone error: {e}")
            self.session.mic_error = MIC_ERROR_MESSAGE
            return False
        self.session.mic_error = None
        return True

    def stop_query_recording(self) -> Optional[MatchResult]:
        if not self._expect(ConversationStep.VOICE_QUERY):
            return None
        audio = self._stop_recorder()
        return self.submit_audio(audio)

    def submit_audio(self, audio: bytes) -> Optional[MatchResult]:
        """Transcribe recorded audio and answer it."""
        if not self._expect(ConversationStep.VOICE_QUERY):
            return None
        result = run_async(self.transcriber.transcribe_audio(audio, self.session.language_code or "unknown"))
        logger.info(f"Speech to text result: {result}")
        self.session.detected_language = result.get("language")
        return self.submit_query(result.get("text", ""))

    def submit_query(self, transcript: str) -> Optional[MatchResult]:
        """
        Match a transcribed query and show the response.

        A targeted match narrows the visible fields to the matched one and
        schedules the full list to come back after the restore delay.
        """
        if not self._expect(ConversationStep.VOICE_QUERY):
            return None

        with self._lock:
            session = self.session
            session.generation += 1
            generation = session.generation

            result = match_query(transcript, session.fields)
            session.query = transcript
            session.match = result
            session.visible_fields = [result.field] if result.field else list(session.fields)
            self._advance(ConversationStep.RESPONSE)

        if result.field is not None:
            self._schedule("field_restore", self.restore_seconds,
                           lambda: self._restore_fields(generation))
        return result

    def _restore_fields(self, generation: int) -> None:
        with self._lock:
            self._timers.pop("field_restore", None)
            if generation != self.session.generation:
                logger.debug("Stale field restore ignored")
                return
            self.session.visible_fields = list(self.session.fields)
            logger.info("Restored full field list")

    def ask_another(self) -> bool:
        if not self._expect(ConversationStep.RESPONSE):
            return False
        self._advance(ConversationStep.FIELD_LIST)
        return True

    def reset(self) -> None:
        """Return to the upload step, discarding all session data and pending timers."""
        with self._lock:
            for name in list(self._timers):
                self._cancel(name)
            if self.recorder is not None:
                # stops any recording and releases the device until the next start
                try:
                    self.recorder.cleanup()
                except Exception as e:
                    logger.error(f"Error releasing recorder on reset: {e}")
            generation = self.session.generation + 1
            # generation keeps growing so timers from the old session stay stale
            self.session = FormSession(generation=generation)
            logger.info("Session reset")

    # ------------------------------------------------------------------ speech

    def speak_field(self, field: FormField) -> Optional[str]:
        """
        Synthesize a field's explanation in the session language.

        Returns:
            Optional[str]: Base64 audio, or None after setting an alert
        """
        if field.audio_base64:
            return field.audio_base64

        language_code = self.session.language_code or Language.ENGLISH.code
        try:
            audio = run_async(self.synthesizer.synthesize(field.display_explanation, language_code))
        except SpeechSynthesisError as e:
            logger.error(f"Failed to play audio: {e}")
            self.session.alert = AUDIO_ALERT
            return None

        field.audio_base64 = audio
        return audio

    def prepare_field_audio(self) -> int:
        """Pre-generate audio for every field; returns how many have audio."""
        if not self.session.fields:
            return 0
        language_code = self.session.language_code or Language.ENGLISH.code
        fields = run_async(self.synthesizer.generate_field_audio(self.session.fields, language_code))
        return sum(1 for f in fields if f.audio_base64)

    # ------------------------------------------------------------------ recorder

    def _start_recorder(self) -> None:
        if self.recorder is None:
            raise MicrophonePermissionError("No microphone available")
        self.recorder.start_recording()
        self.session.is_recording = True

    def _stop_recorder(self) -> bytes:
        self.session.is_recording = False
        if self.recorder is None:
            return b""
        return self.recorder.stop_recording()
