"""Vosk recognition engine binding."""

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

import numpy as np
from vosk import KaldiRecognizer, Model, SetLogLevel

from ..errors import ModelLoadFailure
from ..metrics import model_load_time
from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RecognitionResult:
    """Text reported by a recognizer."""
    text: str
    is_final: bool


class Recognizer(Protocol):
    """Capabilities the feeder needs from a streaming recognizer."""

    def accept_waveform(self, samples: np.ndarray) -> bool:
        """Feed samples; True when an utterance has been completed."""
        ...

    def partial_result(self) -> RecognitionResult:
        """Text recognized so far, subject to change."""
        ...

    def result(self) -> RecognitionResult:
        """Text of the utterance just completed."""
        ...

    def final_result(self) -> RecognitionResult:
        """Flush all buffered audio and return the remaining text."""
        ...


def to_pcm16(samples: np.ndarray) -> bytes:
    """Encode samples as little-endian 16-bit PCM bytes.

    Vosk accepts 16-bit PCM only. Float samples in [-1, 1] are scaled and
    clipped; int16 samples pass through unchanged.
    """
    samples = np.asarray(samples)
    if samples.dtype == np.int16:
        return samples.astype("<i2", copy=False).tobytes()
    if np.issubdtype(samples.dtype, np.floating):
        scaled = np.clip(samples, -1.0, 1.0) * 32767.0
        return np.round(scaled).astype("<i2").tobytes()
    raise TypeError(f"Unsupported sample dtype {samples.dtype}")


class VoskRecognizer:
    """Adapts ``vosk.KaldiRecognizer`` to the Recognizer protocol."""

    def __init__(self, model: Model, sample_rate: float):
        self.sample_rate = float(sample_rate)
        self._recognizer = KaldiRecognizer(model, self.sample_rate)

    def accept_waveform(self, samples: np.ndarray) -> bool:
        return bool(self._recognizer.AcceptWaveform(to_pcm16(samples)))

    def partial_result(self) -> RecognitionResult:
        payload = json.loads(self._recognizer.PartialResult())
        return RecognitionResult(text=payload.get("partial", ""), is_final=False)

    def result(self) -> RecognitionResult:
        payload = json.loads(self._recognizer.Result())
        return RecognitionResult(text=payload.get("text", ""), is_final=True)

    def final_result(self) -> RecognitionResult:
        payload = json.loads(self._recognizer.FinalResult())
        return RecognitionResult(text=payload.get("text", ""), is_final=True)


class RecognitionEngine:
    """Loads a recognition model once and hands out recognizers.

    The model is immutable once loaded and shared by every recognizer;
    each recognizer belongs to a single channel.
    """

    def __init__(self, model_path: Union[str, Path], log_level: int = 0):
        """Initialize engine.

        Args:
            model_path: Directory of an unpacked Vosk model
            log_level: Vosk/Kaldi log verbosity, -1 silences it
        """
        self.model_path = Path(model_path)
        self.log_level = log_level
        self._model: Optional[Model] = None
        self._load_time: Optional[float] = None

    @property
    def model(self) -> Model:
        """Get loaded model, loading if necessary."""
        if self._model is None:
            self.load_model()
        return self._model

    def load_model(self) -> None:
        """Load the recognition model.

        Raises:
            ModelLoadFailure: If the path is not a valid model directory
        """
        if not self.model_path.is_dir():
            raise ModelLoadFailure("No valid recognition model", self.model_path)

        SetLogLevel(self.log_level)
        logger.info(f"Loading recognition model: {self.model_path}")
        start_time = time.time()
        try:
            self._model = Model(str(self.model_path))
        except Exception as e:
            logger.error(f"Failed to load model: {e}")
            raise ModelLoadFailure("No valid recognition model", self.model_path) from e

        self._load_time = time.time() - start_time
        model_load_time.labels(model=self.model_path.name).set(self._load_time)
        logger.info(f"Model loaded successfully in {self._load_time:.2f}s")

    def create_recognizer(self, sample_rate: int) -> Recognizer:
        """Create a recognizer bound to ``sample_rate``."""
        return VoskRecognizer(self.model, sample_rate)
