"""MP3 codec adapter."""

from pathlib import Path
from typing import Union

from ..config.settings import DecoderConfig
from .formats import FrameSource, SampleFormat


# MPEG-2 and MPEG-2.5 run at 24kHz and below
LOW_RATE_MAX = 24000


class Mp3Source(FrameSource):
    """MPEG audio decoded one frame per read into 16-bit PCM.

    ``block_frames`` is the MPEG-1 frame size (1152 samples per channel).
    MPEG-2 and MPEG-2.5 Layer III streams, at 24kHz and below, carry 576
    samples per frame, so reads shrink to half the configured size there.

    The channel count comes from the first frame header and is assumed
    stable for the rest of the stream. libmpg123 resynchronises over
    damaged frames on its own; any error it does report is fatal.
    """

    format_name = "MP3"
    extensions = ("mp3",)
    containers = ("MP3",)
    sample_format = SampleFormat.INT16

    def __init__(self, path: Union[str, Path], block_frames: int = 1152):
        super().__init__(path, block_frames)

    @classmethod
    def from_config(cls, path: Union[str, Path], config: DecoderConfig) -> "Mp3Source":
        return cls(path, block_frames=config.mp3_frame_samples)

    @property
    def read_frames(self) -> int:
        if self.descriptor.sample_rate <= LOW_RATE_MAX:
            return max(1, self.block_frames // 2)
        return self.block_frames
