"""WAV codec adapter."""

from pathlib import Path
from typing import Union

from ..config.settings import DecoderConfig
from ..utils.logging import get_logger
from .formats import FrameSource, SampleFormat

logger = get_logger(__name__)


class WavSource(FrameSource):
    """RIFF/WAVE files delivered as 16-bit PCM.

    16-bit PCM needs no decoding beyond reinterpreting the sample bytes.
    Other PCM widths are converted to int16 by libsndfile.
    """

    format_name = "WAV"
    extensions = ("wav",)
    containers = ("WAV", "WAVEX", "RF64")
    sample_format = SampleFormat.INT16

    NATIVE_SUBTYPE = "PCM_16"

    def __init__(self, path: Union[str, Path], block_frames: int = 1024):
        super().__init__(path, block_frames)
        if self._file.subtype != self.NATIVE_SUBTYPE:
            logger.warning(
                f"WAV file is {self._file.subtype}, converting samples to 16-bit PCM",
                extra={"path": str(self.path)}
            )

    @classmethod
    def from_config(cls, path: Union[str, Path], config: DecoderConfig) -> "WavSource":
        return cls(path, block_frames=config.wav_read_frames)
