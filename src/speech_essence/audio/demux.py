"""Channel demultiplexing for interleaved sample chunks."""

from typing import Iterable, List

import numpy as np

from ..utils.logging import get_logger

logger = get_logger(__name__)


def deinterleave(samples: np.ndarray, channel_count: int) -> List[np.ndarray]:
    """Split interleaved samples into one array per channel.

    Channel ``c`` receives ``samples[c::channel_count]``. Samples of an
    incomplete trailing frame are dropped.

    Args:
        samples: 1-D interleaved samples
        channel_count: Number of interleaved channels

    Returns:
        List of ``channel_count`` contiguous arrays
    """
    if channel_count < 1:
        raise ValueError(f"channel_count must be positive, got {channel_count}")

    samples = np.asarray(samples).reshape(-1)
    usable = len(samples) - len(samples) % channel_count
    frames = samples[:usable].reshape(-1, channel_count)
    return [np.ascontiguousarray(frames[:, c]) for c in range(channel_count)]


class ChannelDemultiplexer:
    """Accumulate per-channel buffers from a stream of interleaved chunks.

    Chunks need not end on a frame boundary: leftover samples are carried
    into the next chunk, and only an incomplete frame at the very end of
    the stream is discarded.
    """

    def __init__(self, channel_count: int, dtype=np.int16):
        if channel_count < 1:
            raise ValueError(f"channel_count must be positive, got {channel_count}")
        self.channel_count = channel_count
        self.dtype = np.dtype(dtype)
        self._carry = np.empty(0, dtype=self.dtype)
        self._parts: List[List[np.ndarray]] = [[] for _ in range(channel_count)]
        self.dropped = 0

    def push(self, chunk: np.ndarray) -> List[np.ndarray]:
        """Demultiplex one chunk.

        Returns:
            The per-channel pieces this chunk completed; they are also
            retained for ``finish``
        """
        chunk = np.asarray(chunk, dtype=self.dtype).reshape(-1)
        if len(self._carry):
            chunk = np.concatenate([self._carry, chunk])

        remainder = len(chunk) % self.channel_count
        if remainder:
            self._carry = chunk[len(chunk) - remainder:].copy()
        else:
            self._carry = np.empty(0, dtype=self.dtype)

        pieces = deinterleave(chunk, self.channel_count)
        for channel, piece in enumerate(pieces):
            if len(piece):
                self._parts[channel].append(piece)
        return pieces

    def finish(self) -> List[np.ndarray]:
        """Close the stream and return one materialized buffer per channel."""
        self.dropped = len(self._carry)
        if self.dropped:
            logger.debug(
                f"Dropping {self.dropped} trailing samples of an incomplete frame",
                extra={"channels": self.channel_count}
            )
        self._carry = np.empty(0, dtype=self.dtype)

        buffers = []
        for parts in self._parts:
            if parts:
                buffers.append(np.concatenate(parts))
            else:
                buffers.append(np.empty(0, dtype=self.dtype))
        self._parts = [[] for _ in range(self.channel_count)]
        return buffers


def demultiplex(
    chunks: Iterable[np.ndarray],
    channel_count: int,
    dtype=np.int16
) -> List[np.ndarray]:
    """Materialize per-channel buffers from a sequence of interleaved chunks."""
    demux = ChannelDemultiplexer(channel_count, dtype)
    for chunk in chunks:
        demux.push(chunk)
    return demux.finish()
