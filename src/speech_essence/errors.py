"""Error taxonomy for the speech-essence pipeline."""

from pathlib import Path
from typing import Optional, Union


class SpeechEssenceError(Exception):
    """Base class for all pipeline errors.

    Every error identifies the file it concerns so that batch runs can
    report failures per input.
    """

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        self.message = message
        super().__init__(self._render())

    def _render(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.message}: {self.path}"


class UnreadableFile(SpeechEssenceError):
    """Raised when an input path is missing or cannot be opened."""


class MalformedContainer(SpeechEssenceError):
    """Raised when a header or first frame cannot be parsed."""


class CodecError(SpeechEssenceError):
    """Raised when decoding fails mid-stream."""


class ModelLoadFailure(SpeechEssenceError):
    """Raised when a recognition model directory is invalid."""


class SpeakerModelUnsupported(SpeechEssenceError):
    """Raised when a speaker model is requested.

    Speaker identification is not implemented; the option is rejected
    instead of loading a model that would never be used.
    """


class UnsupportedFormat(SpeechEssenceError):
    """Raised when no codec adapter handles a file extension."""


class IoFailure(SpeechEssenceError):
    """Raised when an output artifact cannot be created or written."""
