"""Feeding channel buffers to recognizers."""

from typing import Callable, List, Optional

import numpy as np

from ..utils.logging import get_logger
from .engine import RecognitionResult, Recognizer

logger = get_logger(__name__)

PartialHandler = Callable[[int, str], None]

FEED_MODES = ("stream", "bulk")


class RecognitionSession:
    """One recognizer driven over one channel.

    Every accepted chunk either completes an utterance, whose text is
    kept, or yields a partial result. Partials are passed on only when
    their text changed since the last one. ``finish`` flushes the
    recognizer exactly once, also when no samples were fed.
    """

    def __init__(
        self,
        recognizer: Recognizer,
        channel: int = 0,
        on_partial: Optional[PartialHandler] = None
    ):
        self.recognizer = recognizer
        self.channel = channel
        self.on_partial = on_partial
        self.samples_fed = 0
        self.partial_events = 0
        self._utterances: List[str] = []
        self._last_partial: Optional[str] = None
        self._final: Optional[RecognitionResult] = None

    @property
    def finished(self) -> bool:
        return self._final is not None

    @property
    def text(self) -> str:
        """Completed utterances joined into one line."""
        return " ".join(self._utterances)

    def accept(self, samples: np.ndarray) -> bool:
        """Feed one chunk of samples.

        Returns:
            True if the recognizer completed an utterance
        """
        if self.finished:
            raise RuntimeError(f"Recognition session for channel {self.channel} already finalized")
        if len(samples) == 0:
            return False

        completed = self.recognizer.accept_waveform(samples)
        self.samples_fed += len(samples)
        if completed:
            self._keep(self.recognizer.result())
            self._last_partial = None
        else:
            self._report_partial(self.recognizer.partial_result())
        return completed

    def finish(self) -> str:
        """Force the final result and return the channel text."""
        if self.finished:
            raise RuntimeError(f"Recognition session for channel {self.channel} already finalized")
        self._final = self.recognizer.final_result()
        self._keep(self._final)
        logger.debug(
            "Channel finalized",
            extra={"channel": self.channel, "samples": self.samples_fed, "utterances": len(self._utterances)}
        )
        return self.text

    def _keep(self, result: RecognitionResult) -> None:
        text = result.text.strip()
        if text:
            self._utterances.append(text)

    def _report_partial(self, result: RecognitionResult) -> None:
        if result.text == self._last_partial:
            return
        self._last_partial = result.text
        self.partial_events += 1
        logger.debug(f"Channel {self.channel} partial: {result.text[:50]}")
        if self.on_partial is not None:
            self.on_partial(self.channel, result.text)


def transcribe_channel(
    recognizer: Recognizer,
    samples: np.ndarray,
    channel: int = 0,
    mode: str = "stream",
    chunk_samples: int = 4000,
    on_partial: Optional[PartialHandler] = None
) -> str:
    """Run one channel buffer through a recognizer.

    Args:
        recognizer: Recognizer bound to the file's sample rate
        samples: The channel's samples
        channel: Channel index, used for reporting
        mode: ``stream`` feeds ``chunk_samples`` at a time, ``bulk`` feeds
            the whole buffer in one call
        chunk_samples: Chunk size in stream mode
        on_partial: Called with ``(channel, text)`` when a partial changes

    Returns:
        The channel text, final flush included
    """
    if mode not in FEED_MODES:
        raise ValueError(f"Unknown feed mode {mode!r}")
    if chunk_samples < 1:
        raise ValueError(f"chunk_samples must be positive, got {chunk_samples}")

    session = RecognitionSession(recognizer, channel, on_partial)
    if mode == "bulk":
        session.accept(samples)
    else:
        for start in range(0, len(samples), chunk_samples):
            session.accept(samples[start:start + chunk_samples])
    return session.finish()
