"""Best-effort notification sound playback."""

import io
import logging
import math
import os
import struct
import time
import wave
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

# Set to any value to silence playback (CI, headless boxes).
DISABLE_SOUND_ENV = "AGENT_NOTIFIER_DISABLE_SOUND"
# Overlapping notifications ping together instead of queueing up.
SOUND_WORKERS = 4


def sound_disabled() -> bool:
    return DISABLE_SOUND_ENV in os.environ


def default_ping(
    frequency: float = 880.0, duration: float = 0.35, sample_rate: int = 44100
) -> bytes:
    """Render a short decaying sine ping as 16-bit mono WAV bytes."""
    frames = int(duration * sample_rate)
    samples = (
        int(
            32767
            * 0.5
            * math.exp(-6.0 * i / frames)
            * math.sin(2 * math.pi * frequency * i / sample_rate)
        )
        for i in range(frames)
    )
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(b"".join(struct.pack("<h", s) for s in samples))
    return buffer.getvalue()


class AudioBackend(Protocol):
    """Blocking audio output used from the sound worker thread."""

    def open_default_output(self) -> None: ...

    def decode(self, data: bytes) -> Any: ...

    def play_and_wait(self, sound: Any) -> None: ...

    def close(self) -> None: ...


class PygameAudioBackend:
    """Audio backend on top of pygame.mixer."""

    def __init__(self, poll_interval: float = 0.05) -> None:
        self.poll_interval = poll_interval

    @staticmethod
    def _mixer():
        os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")
        try:
            import pygame
        except ImportError as e:
            raise RuntimeError(
                "Sound playback requires pygame. Install with: uv sync --extra audio"
            ) from e
        return pygame.mixer

    def open_default_output(self) -> None:
        mixer = self._mixer()
        if not mixer.get_init():
            mixer.init()

    def decode(self, data: bytes) -> Any:
        return self._mixer().Sound(file=io.BytesIO(data))

    def play_and_wait(self, sound: Any) -> None:
        channel = sound.play()
        # Block this worker until playback finishes so the mixer stays alive.
        while channel is not None and channel.get_busy():
            time.sleep(self.poll_interval)

    def close(self) -> None:
        self._mixer().quit()


class SoundPlayer:
    """Fire-and-forget notification sound on a dedicated worker pool."""

    def __init__(
        self,
        backend: AudioBackend | None = None,
        sound_file: Path | None = None,
        executor: Executor | None = None,
    ) -> None:
        self.backend = backend or PygameAudioBackend()
        self.sound_file = sound_file
        self._executor = executor or ThreadPoolExecutor(
            max_workers=SOUND_WORKERS, thread_name_prefix="notification-sound"
        )
        self._data: bytes | None = None

    def _sound_data(self) -> bytes:
        if self._data is None:
            if self.sound_file is not None:
                self._data = self.sound_file.read_bytes()
            else:
                self._data = default_ping()
        return self._data

    def play(self) -> Future | None:
        """Schedule playback without waiting for it.

        Returns:
            The worker future, or None when sound is disabled or the
            player has been shut down.
        """
        if sound_disabled():
            return None
        try:
            return self._executor.submit(self._play_blocking)
        except RuntimeError as e:
            logger.warning(f"Notification sound not scheduled: {e}")
            return None

    def _play_blocking(self) -> None:
        try:
            self.backend.open_default_output()
        except Exception as e:
            logger.warning(f"Audio output init failed: {e}")
            return

        try:
            sound = self.backend.decode(self._sound_data())
            self.backend.play_and_wait(sound)
        except Exception as e:
            logger.warning(f"Failed to play notification sound: {e}")

    def shutdown(self) -> None:
        """Stop accepting playback; queued sounds are dropped."""
        self._executor.shutdown(wait=False, cancel_futures=True)
