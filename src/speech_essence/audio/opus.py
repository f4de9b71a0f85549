"""Ogg/Opus codec adapter."""

from pathlib import Path
from typing import Union

from ..config.settings import DecoderConfig
from ..errors import MalformedContainer
from .formats import FrameSource, SampleFormat


class OpusSource(FrameSource):
    """Opus streams decoded to 32-bit float PCM.

    Each read fills a buffer of ``read_samples`` interleaved values: a mono
    stream reads that many frames, a stereo stream half as many sample
    pairs. Only mono and stereo streams are decoded.
    """

    format_name = "Opus"
    extensions = ("opus",)
    containers = ("OGG",)
    sample_format = SampleFormat.FLOAT32

    SUPPORTED_CHANNELS = (1, 2)

    def __init__(self, path: Union[str, Path], read_samples: int = 11520):
        self.read_samples = read_samples
        super().__init__(path, block_frames=read_samples)
        if self._file.subtype != "OPUS":
            found = self._file.subtype
            self.close()
            raise MalformedContainer(f"Ogg stream carries {found}, not Opus", self.path)

    @classmethod
    def from_config(cls, path: Union[str, Path], config: DecoderConfig) -> "OpusSource":
        return cls(path, read_samples=config.opus_read_samples)

    def check_layout(self, channels: int) -> None:
        if channels not in self.SUPPORTED_CHANNELS:
            raise MalformedContainer(f"Unsupported Opus channel count {channels}", self.path)

    @property
    def read_frames(self) -> int:
        return max(1, self.read_samples // self.descriptor.channel_count)
