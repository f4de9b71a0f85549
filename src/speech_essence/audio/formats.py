"""Audio stream description and codec adapter plumbing."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, Tuple, Type, Union

import numpy as np
import soundfile as sf

from ..config.settings import DecoderConfig
from ..errors import CodecError, MalformedContainer, UnreadableFile, UnsupportedFormat
from ..utils.logging import get_logger

logger = get_logger(__name__)


class SampleFormat(str, Enum):
    """Canonical sample representations handed to the recognizer."""

    INT16 = "int16"
    FLOAT32 = "float32"

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self.value)


@dataclass(frozen=True)
class AudioStreamDescriptor:
    """Format metadata known before any sample is read."""
    sample_rate: int
    channel_count: int
    sample_format: SampleFormat

    @property
    def dtype(self) -> np.dtype:
        return self.sample_format.dtype


class FrameSource(ABC):
    """Lazy, single-pass producer of interleaved sample chunks.

    Subclasses describe one container/codec: the soundfile major formats
    they accept, the sample format they decode to and how many frames a
    single read returns. Iterating yields 1-D arrays laid out as
    ``[ch0, ch1, ch0, ch1, ...]``; a zero-length read ends the stream.
    """

    format_name: str = ""
    extensions: Tuple[str, ...] = ()
    containers: Tuple[str, ...] = ()
    sample_format: SampleFormat = SampleFormat.INT16

    def __init__(self, path: Union[str, Path], block_frames: int):
        self.path = Path(path)
        self.block_frames = block_frames
        self._consumed = False
        self._file = self._open()
        try:
            self.descriptor = self._describe()
        except Exception:
            self._file.close()
            raise
        logger.debug(
            f"Opened {self.format_name} stream",
            extra={
                "path": str(self.path),
                "sample_rate": self.descriptor.sample_rate,
                "channels": self.descriptor.channel_count,
                "subtype": self._file.subtype,
            }
        )

    @classmethod
    @abstractmethod
    def from_config(cls, path: Union[str, Path], config: DecoderConfig) -> "FrameSource":
        """Open ``path`` with the read size configured for this format."""

    def _open(self) -> sf.SoundFile:
        if not self.path.is_file():
            raise UnreadableFile("Audio file does not exist or is not a file", self.path)
        try:
            with open(self.path, "rb"):
                pass
        except OSError as e:
            raise UnreadableFile(f"Cannot open audio file ({e.strerror})", self.path) from e

        try:
            sound_file = sf.SoundFile(str(self.path))
        except (sf.LibsndfileError, RuntimeError) as e:
            raise MalformedContainer(
                f"Cannot parse {self.format_name} header ({e})", self.path
            ) from e

        if self.containers and sound_file.format not in self.containers:
            found = sound_file.format
            sound_file.close()
            raise MalformedContainer(
                f"Expected {self.format_name} data, found {found} container", self.path
            )
        return sound_file

    def _describe(self) -> AudioStreamDescriptor:
        sample_rate = int(self._file.samplerate)
        channels = int(self._file.channels)
        if sample_rate <= 0:
            raise MalformedContainer("Stream declares no sample rate", self.path)
        if channels <= 0:
            raise MalformedContainer("Stream declares no channels", self.path)
        self.check_layout(channels)
        return AudioStreamDescriptor(sample_rate, channels, self.sample_format)

    def check_layout(self, channels: int) -> None:
        """Reject channel layouts the codec cannot deliver."""

    @property
    def read_frames(self) -> int:
        """Frames (samples per channel) requested per read call."""
        return self.block_frames

    def __iter__(self) -> Iterator[np.ndarray]:
        if self._consumed:
            raise RuntimeError(f"{self.format_name} frame source for {self.path} already consumed")
        self._consumed = True
        return self._chunks()

    def _chunks(self) -> Iterator[np.ndarray]:
        while True:
            try:
                block = self._file.read(
                    self.read_frames,
                    dtype=self.sample_format.value,
                    always_2d=True,
                )
            except (sf.LibsndfileError, RuntimeError) as e:
                raise CodecError(f"{self.format_name} decode failed ({e})", self.path) from e
            if len(block) == 0:
                return
            yield block.reshape(-1)

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> "FrameSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class CodecRegistry:
    """Registry mapping file extensions to codec adapters."""

    def __init__(self, adapters: Iterable[Type[FrameSource]] = ()):
        self.adapters: Dict[str, Type[FrameSource]] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: Type[FrameSource]) -> None:
        for extension in adapter.extensions:
            self.adapters[extension] = adapter

    @staticmethod
    def extension_of(path: Union[str, Path]) -> Optional[str]:
        """Return the extension without the dot, or None when there is none."""
        suffix = Path(path).suffix
        return suffix[1:] if suffix else None

    def get_adapter(self, path: Union[str, Path]) -> Type[FrameSource]:
        """Get the adapter for a path; extensions match case-sensitively.

        Raises:
            UnsupportedFormat: If the path has no extension or no adapter
                handles it
        """
        extension = self.extension_of(path)
        if extension is None:
            raise UnsupportedFormat("File has no extension", path)
        adapter = self.adapters.get(extension)
        if adapter is None:
            raise UnsupportedFormat(f"Unsupported file extension '{extension}'", path)
        return adapter

    def open(self, path: Union[str, Path], config: DecoderConfig) -> FrameSource:
        adapter = self.get_adapter(path)
        logger.debug(f"Selected {adapter.format_name} adapter for {path}")
        return adapter.from_config(path, config)
