"""Decode, demultiplex and recognize a single audio file."""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from .audio import ChannelDemultiplexer, CodecRegistry, codec_registry
from .config.settings import Settings
from .errors import CodecError, IoFailure
from .metrics import audio_duration, channels_transcribed, processing_duration
from .recognition.engine import RecognitionEngine
from .recognition.feeder import PartialHandler, transcribe_channel
from .utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class FileReport:
    """Outcome of one successfully processed file."""
    path: Path
    format: str
    sample_rate: int
    channel_outputs: List[Path] = field(default_factory=list)
    duration_seconds: float = 0.0


def channel_output_path(output_dir: Union[str, Path], stem: str, channel: int) -> Path:
    """Path of the transcript for one channel: ``<stem>_channel_<c>.txt``."""
    return Path(output_dir) / f"{stem}_channel_{channel}.txt"


def write_channel_text(path: Path, text: str) -> None:
    """Write a channel transcript as a single line, replacing any old one.

    Raises:
        IoFailure: If the file cannot be created or written
    """
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(f"{text}\n")
    except OSError as e:
        raise IoFailure(f"Cannot write transcript ({e.strerror})", path) from e


class Pipeline:
    """Generic decode -> demux -> feed pipeline over any codec adapter."""

    def __init__(
        self,
        engine: RecognitionEngine,
        settings: Settings,
        registry: Optional[CodecRegistry] = None,
        on_partial: Optional[PartialHandler] = None
    ):
        self.engine = engine
        self.settings = settings
        self.registry = registry or codec_registry
        self.on_partial = on_partial

    def process_file(
        self,
        path: Union[str, Path],
        output_dir: Union[str, Path],
        stem: Optional[str] = None
    ) -> FileReport:
        """Transcribe every channel of ``path`` into ``output_dir``.

        Args:
            path: Input audio file
            output_dir: Existing directory for the channel transcripts
            stem: Base name of the transcripts, defaults to the input stem

        Returns:
            Report listing the written transcripts

        Raises:
            UnsupportedFormat: If no adapter handles the extension
            UnreadableFile, MalformedContainer: If the file cannot be opened
            CodecError: If decoding fails mid-stream, after the audio decoded
                up to that point has been transcribed and written
            ModelLoadFailure: If the recognition model cannot be loaded
            IoFailure: If a transcript cannot be written
        """
        path = Path(path)
        stem = stem or path.stem
        start_time = time.time()
        recognition = self.settings.recognition

        decode_error: Optional[CodecError] = None
        with self.registry.open(path, self.settings.decoder) as source:
            descriptor = source.descriptor
            format_name = source.format_name
            demux = ChannelDemultiplexer(descriptor.channel_count, descriptor.dtype)
            try:
                for chunk in source:
                    demux.push(chunk)
            except CodecError as e:
                # Audio decoded before the fault is still transcribed
                decode_error = e
            buffers = demux.finish()

        if decode_error is not None:
            logger.error(
                f"Decoding stopped early, transcribing the audio read so far: {decode_error}",
                extra={"path": str(path), "samples": len(buffers[0])}
            )

        duration = len(buffers[0]) / descriptor.sample_rate
        audio_duration.labels(format=format_name).observe(duration)
        logger.info(
            f"Decoded {path.name}",
            extra={
                "format": format_name,
                "sample_rate": descriptor.sample_rate,
                "channels": descriptor.channel_count,
                "sample_format": descriptor.sample_format.value,
                "duration": round(duration, 3),
            }
        )

        report = FileReport(
            path=path,
            format=format_name,
            sample_rate=descriptor.sample_rate,
            duration_seconds=duration,
        )
        for channel, samples in enumerate(buffers):
            recognizer = self.engine.create_recognizer(descriptor.sample_rate)
            text = transcribe_channel(
                recognizer,
                samples,
                channel=channel,
                mode=recognition.feed_mode,
                chunk_samples=recognition.chunk_samples,
                on_partial=self.on_partial,
            )

            output_path = channel_output_path(output_dir, stem, channel)
            try:
                write_channel_text(output_path, text)
            except IoFailure:
                if report.channel_outputs:
                    logger.error(
                        f"Transcripts for {path} are incomplete",
                        extra={"written": [str(p) for p in report.channel_outputs]}
                    )
                raise
            report.channel_outputs.append(output_path)
            channels_transcribed.labels(format=format_name).inc()
            logger.info(f"Wrote {output_path}", extra={"channel": channel, "characters": len(text)})

        processing_duration.labels(format=format_name).observe(time.time() - start_time)
        if decode_error is not None:
            raise decode_error
        return report
