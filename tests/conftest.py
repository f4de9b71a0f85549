"""Shared pytest fixtures for speech-essence tests."""

from pathlib import Path
from typing import List, Optional

import numpy as np
import pytest
import soundfile as sf

from speech_essence.config.settings import Settings
from speech_essence.recognition.engine import RecognitionResult


class FakeRecognizer:
    """Scripted stand-in for a Vosk recognizer.

    ``completions`` and ``partials`` are consumed one per accepted chunk;
    when they run out the recognizer reports an incomplete utterance whose
    partial text is the number of samples seen so far.
    """

    def __init__(
        self,
        sample_rate: float = 16000,
        completions: Optional[List[bool]] = None,
        partials: Optional[List[str]] = None,
        final_text: Optional[str] = None
    ):
        self.sample_rate = sample_rate
        self.completions = list(completions or [])
        self.partials = list(partials or [])
        self.final_text = final_text
        self.chunks: List[np.ndarray] = []
        self.result_calls = 0
        self.partial_calls = 0
        self.final_calls = 0

    @property
    def samples(self) -> np.ndarray:
        if not self.chunks:
            return np.empty(0)
        return np.concatenate(self.chunks)

    def accept_waveform(self, samples: np.ndarray) -> bool:
        self.chunks.append(np.array(samples))
        if self.completions:
            return self.completions.pop(0)
        return False

    def partial_result(self) -> RecognitionResult:
        self.partial_calls += 1
        if self.partials:
            return RecognitionResult(text=self.partials.pop(0), is_final=False)
        return RecognitionResult(text=str(len(self.samples)), is_final=False)

    def result(self) -> RecognitionResult:
        self.result_calls += 1
        return RecognitionResult(text=f"utterance {self.result_calls}", is_final=True)

    def final_result(self) -> RecognitionResult:
        self.final_calls += 1
        if self.final_text is not None:
            text = self.final_text
        else:
            text = f"samples {len(self.samples)} rate {int(self.sample_rate)}"
        return RecognitionResult(text=text, is_final=True)


class FakeEngine:
    """Engine handing out FakeRecognizers and remembering them."""

    def __init__(self):
        self.recognizers: List[FakeRecognizer] = []

    def create_recognizer(self, sample_rate: int) -> FakeRecognizer:
        recognizer = FakeRecognizer(sample_rate=sample_rate)
        self.recognizers.append(recognizer)
        return recognizer


def write_wav(path: Path, samples: np.ndarray, sample_rate: int = 16000) -> Path:
    """Write int16 samples (frames x channels, or 1-D mono) as 16-bit PCM."""
    sf.write(str(path), samples, sample_rate, subtype="PCM_16")
    return path


@pytest.fixture
def settings():
    """Return default settings."""
    return Settings()


@pytest.fixture
def fake_engine():
    """Return a recognition engine that needs no model."""
    return FakeEngine()


@pytest.fixture
def mono_samples():
    """Return a ramp of distinct int16 values."""
    return np.arange(-3000, 3000, 3, dtype=np.int16)


@pytest.fixture
def stereo_samples():
    """Return 1.5 seconds of stereo int16 audio with distinct channels."""
    t = np.arange(24000)
    left = (np.sin(2 * np.pi * 440 * t / 16000) * 8000).astype(np.int16)
    right = (t % 1000 - 500).astype(np.int16)
    return np.stack([left, right], axis=1)


@pytest.fixture
def mono_wav(tmp_path, mono_samples):
    """Return path to a mono 16-bit WAV file."""
    return write_wav(tmp_path / "mono.wav", mono_samples)


@pytest.fixture
def stereo_wav(tmp_path, stereo_samples):
    """Return path to a stereo 16-bit WAV file."""
    return write_wav(tmp_path / "stereo.wav", stereo_samples)


@pytest.fixture
def make_recognizer():
    """Return the FakeRecognizer class for scripted recognizers."""
    return FakeRecognizer


@pytest.fixture
def make_wav(tmp_path):
    """Return a helper writing 16-bit WAV files into tmp_path."""
    def _make(name: str, samples: np.ndarray, sample_rate: int = 16000) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        return write_wav(path, samples, sample_rate)
    return _make
