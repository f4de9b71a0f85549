"""Prometheus metrics for batch runs."""

from pathlib import Path
from typing import Union

from prometheus_client import (
    Counter, Histogram, Gauge,
    CollectorRegistry, write_to_textfile
)

from .utils.logging import get_logger

logger = get_logger(__name__)

# Create a custom registry to avoid conflicts
registry = CollectorRegistry()

files_processed = Counter(
    'speech_essence_files_total',
    'Total number of input files handled',
    ['format', 'status'],
    registry=registry
)

channels_transcribed = Counter(
    'speech_essence_channels_transcribed_total',
    'Total number of channel transcripts written',
    ['format'],
    registry=registry
)

audio_duration = Histogram(
    'speech_essence_audio_duration_seconds',
    'Duration of decoded audio in seconds',
    ['format'],
    buckets=(1, 5, 15, 30, 60, 300, 900, 1800, 3600, float("inf")),
    registry=registry
)

processing_duration = Histogram(
    'speech_essence_processing_duration_seconds',
    'Wall time spent decoding and recognizing one file',
    ['format'],
    registry=registry
)

model_load_time = Gauge(
    'speech_essence_model_load_time_seconds',
    'Time taken to load the recognition model',
    ['model'],
    registry=registry
)

error_count = Counter(
    'speech_essence_errors_total',
    'Total number of errors',
    ['error_type'],
    registry=registry
)


def write_metrics(path: Union[str, Path]) -> None:
    """Write the registry in text exposition format.

    The file is written atomically so a node-exporter textfile collector
    never reads a partial file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    write_to_textfile(str(path), registry)
    logger.info(f"Wrote metrics to {path}")
