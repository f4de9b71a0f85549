"""
Audio decoding for speech-essence.

This package turns WAV, MP3 and Opus files into interleaved sample chunks
and splits them into per-channel buffers for recognition.
"""

from .demux import ChannelDemultiplexer, deinterleave, demultiplex
from .formats import AudioStreamDescriptor, CodecRegistry, FrameSource, SampleFormat
from .mp3 import Mp3Source
from .opus import OpusSource
from .wav import WavSource

# Global codec registry
codec_registry = CodecRegistry([WavSource, Mp3Source, OpusSource])

__all__ = [
    "AudioStreamDescriptor",
    "ChannelDemultiplexer",
    "CodecRegistry",
    "FrameSource",
    "Mp3Source",
    "OpusSource",
    "SampleFormat",
    "WavSource",
    "codec_registry",
    "deinterleave",
    "demultiplex",
]
