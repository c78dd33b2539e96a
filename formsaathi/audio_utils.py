"""
Audio utilities for recording and preparing voice queries.

This module provides microphone recording with a start/stop lifecycle and
the conversions needed to hand recorded or uploaded audio to the
speech-to-text API as 16 kHz mono WAV.
"""

import io
import threading
import wave
from typing import List, Optional

import numpy as np
import pyaudio
from loguru import logger
from pydub import AudioSegment

from .errors import MicrophonePermissionError


class AudioRecorder:
    """
    Audio recorder for capturing microphone input.

    Frames are read on a background thread between ``start_recording`` and
    ``stop_recording``; the result is returned as WAV bytes.
    """

    def __init__(self, sample_rate: int = 16000, channels: int = 1,
                 chunk_size: int = 1024, format_type: int = pyaudio.paInt16):
        """
        Initialize audio recorder.

        Args:
            sample_rate (int): Audio sample rate in Hz
            channels (int): Number of audio channels (1 for mono, 2 for stereo)
            chunk_size (int): Size of audio chunks to read at once
            format_type (int): PyAudio format type (paInt16 only is encoded to WAV)
        """
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_size = chunk_size
        self.format_type = format_type

        self.audio: Optional[pyaudio.PyAudio] = None
        self.stream = None
        self.is_recording = False
        self.recorded_frames: List[bytes] = []
        self._capture_thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

        logger.info(f"AudioRecorder initialized: {sample_rate}Hz, {channels} channels")

    def start_recording(self) -> None:
        """
        Start audio recording.

        Raises:
            RuntimeError: If recording is already in progress
            MicrophonePermissionError: If the microphone cannot be opened
        """
        if self.is_recording:
            raise RuntimeError("Recording is already in progress")

        try:
            if self.audio is None:
                self.audio = pyaudio.PyAudio()
            self.stream = self.audio.open(
                format=self.format_type,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size
            )
        except (OSError, IOError) as e:
            logger.error(f"Failed to start recording: {e}")
            raise MicrophonePermissionError(
                "Could not access microphone. Please check permissions."
            ) from e

        with self._lock:
            self.recorded_frames = []
        self.is_recording = True
        self._capture_thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._capture_thread.start()

        logger.info("Audio recording started")

    def _capture_loop(self) -> None:
        while self.is_recording:
            if self.record_chunk() is None:
                break

    def record_chunk(self) -> Optional[bytes]:
        """
        Record a single chunk of audio data.

        Returns:
            Optional[bytes]: Raw chunk, None if not recording or the read failed
        """
        if not self.is_recording or not self.stream:
            return None

        try:
            data = self.stream.read(self.chunk_size, exception_on_overflow=False)
        except (OSError, IOError) as e:
            logger.error(f"Error recording chunk: {e}")
            return None

        with self._lock:
            self.recorded_frames.append(data)
        return data

    def stop_recording(self) -> bytes:
        """
        Stop audio recording and return the captured audio.

        Stopping when nothing is recording is not an error; it yields empty
        audio so callers always get a result.

        Returns:
            bytes: WAV-encoded audio, empty if nothing was captured
        """
        if not self.is_recording:
            logger.warning("Attempted to stop recording when not recording - returning empty audio")
            return b""

        self.is_recording = False
        if self._capture_thread is not None:
            self._capture_thread.join(timeout=2)
            self._capture_thread = None

        if self.stream:
            try:
                self.stream.stop_stream()
                self.stream.close()
            except (OSError, IOError) as e:
                logger.error(f"Error stopping recording: {e}")
            self.stream = None

        with self._lock:
            raw = b"".join(self.recorded_frames)

        if not raw:
            logger.warning("No audio frames recorded - microphone may not be working")
            return b""

        samples = np.frombuffer(raw, dtype=np.int16)
        if self.channels == 2:
            samples = samples.reshape(-1, 2).mean(axis=1).astype(np.int16)

        logger.info(f"Recording stopped. Duration: {len(samples) / self.sample_rate:.2f}s, Samples: {len(samples)}")
        return AudioProcessor.samples_to_wav_bytes(samples, self.sample_rate)

    def cleanup(self) -> None:
        """Clean up audio resources."""
        if self.is_recording:
            self.stop_recording()

        if self.audio:
            self.audio.terminate()
            self.audio = None
            logger.info("Audio resources cleaned up")


class AudioProcessor:
    """
    Audio conversion helpers for the speech-to-text upload.
    """

    TARGET_SAMPLE_RATE = 16000

    @staticmethod
    def samples_to_wav_bytes(audio_data: np.ndarray, sample_rate: int = 16000) -> bytes:
        """
        Encode mono samples as 16-bit WAV.

        Args:
            audio_data (np.ndarray): int16 samples, or float samples in [-1, 1]
            sample_rate (int): Sample rate of audio data

        Returns:
            bytes: WAV file contents
        """
        if np.issubdtype(audio_data.dtype, np.floating):
            audio_int16 = (np.clip(audio_data, -1.0, 1.0) * 32767).astype(np.int16)
        else:
            audio_int16 = audio_data.astype(np.int16)

        buffer = io.BytesIO()
        with wave.open(buffer, 'wb') as wav_file:
            wav_file.setnchannels(1)  # Mono
            wav_file.setsampwidth(2)  # 16-bit
            wav_file.setframerate(sample_rate)
            wav_file.writeframes(audio_int16.tobytes())
        return buffer.getvalue()

    @staticmethod
    def to_wav_bytes(audio_bytes: bytes, sample_rate: int = TARGET_SAMPLE_RATE) -> bytes:
        """
        Convert audio in any format pydub can read to 16-bit mono WAV.

        Args:
            audio_bytes (bytes): Source audio (WAV, WebM, MP3, ...)
            sample_rate (int): Output sample rate

        Returns:
            bytes: WAV file contents, empty if the input is empty
        """
        if not audio_bytes:
            return b""

        segment = AudioSegment.from_file(io.BytesIO(audio_bytes))
        segment = segment.set_channels(1).set_frame_rate(sample_rate).set_sample_width(2)

        buffer = io.BytesIO()
        segment.export(buffer, format="wav")
        logger.info(f"Audio converted to WAV: {len(segment) / 1000:.2f}s at {sample_rate}Hz")
        return buffer.getvalue()

    @staticmethod
    def wav_duration(wav_bytes: bytes) -> float:
        """Duration of WAV audio in seconds, 0.0 for empty input."""
        if not wav_bytes:
            return 0.0
        with wave.open(io.BytesIO(wav_bytes), 'rb') as wav_file:
            return wav_file.getnframes() / float(wav_file.getframerate())
