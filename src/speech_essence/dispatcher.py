"""Input discovery and per-file dispatch."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .audio import CodecRegistry, codec_registry
from .config.loader import load_config
from .config.settings import Settings
from .errors import (
    IoFailure,
    ModelLoadFailure,
    SpeakerModelUnsupported,
    SpeechEssenceError,
    UnsupportedFormat,
)
from .metrics import error_count, files_processed, write_metrics
from .pipeline import FileReport, Pipeline
from .recognition.engine import RecognitionEngine
from .recognition.feeder import PartialHandler
from .utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RunReport:
    """Outcome of a batch run."""
    processed: List[FileReport] = field(default_factory=list)
    skipped: List[Tuple[Path, str]] = field(default_factory=list)
    failed: List[Tuple[Path, SpeechEssenceError]] = field(default_factory=list)
    discovery_errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.discovery_errors


def discover_files(input_path: Union[str, Path]) -> Tuple[List[Path], List[str]]:
    """List input files, sorted.

    A directory is scanned recursively; anything else is taken as a single
    file. Directories that cannot be read are reported instead of aborting
    the scan.

    Returns:
        Tuple of (files, discovery error messages)
    """
    input_path = Path(input_path)
    if not input_path.is_dir():
        return [input_path], []

    files: List[Path] = []
    errors: List[str] = []

    def on_error(error: OSError) -> None:
        message = f"Files discovering error {error}"
        logger.error(message)
        errors.append(message)

    for root, _dirs, names in os.walk(input_path, onerror=on_error):
        for name in names:
            files.append(Path(root) / name)

    return sorted(files), errors


def process(
    input_path: Union[str, Path],
    recognition_model: Union[str, Path],
    speaker_model: Optional[Union[str, Path]],
    output: Union[str, Path],
    settings: Optional[Settings] = None,
    engine: Optional[RecognitionEngine] = None,
    registry: Optional[CodecRegistry] = None,
    on_partial: Optional[PartialHandler] = None
) -> RunReport:
    """Transcribe every supported file under ``input_path``.

    Each channel of each file ends up in ``<output>/<stem>_channel_<c>.txt``.
    Unsupported files are skipped; a file that fails to decode or write is
    recorded and the batch moves on, unless ``settings.fail_fast`` is set.

    Raises:
        SpeakerModelUnsupported: If a speaker model is given
        ModelLoadFailure: If the recognition model cannot be loaded
        IoFailure: If the output directory cannot be created
    """
    settings = settings or load_config()
    registry = registry or codec_registry

    if speaker_model is not None:
        raise SpeakerModelUnsupported("Speaker identification is not implemented", speaker_model)

    output = Path(output)
    try:
        output.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IoFailure(f"Cannot create output directory ({e.strerror})", output) from e

    files, discovery_errors = discover_files(input_path)
    report = RunReport(discovery_errors=discovery_errors)
    logger.info(f"Processing {len(files)} files", extra={"files": [str(f) for f in files]})

    if engine is None:
        engine = RecognitionEngine(recognition_model, settings.recognition.engine_log_level)
    pipeline = Pipeline(engine, settings, registry, on_partial)

    try:
        for path in files:
            try:
                adapter = registry.get_adapter(path)
            except UnsupportedFormat as e:
                logger.warning(str(e))
                report.skipped.append((path, e.message))
                files_processed.labels(
                    format=registry.extension_of(path) or "none", status="skipped"
                ).inc()
                continue

            logger.info(f"processing file {path}")
            try:
                report.processed.append(pipeline.process_file(path, output))
            except ModelLoadFailure as e:
                error_count.labels(error_type=type(e).__name__).inc()
                logger.error(str(e))
                raise
            except SpeechEssenceError as e:
                error_count.labels(error_type=type(e).__name__).inc()
                files_processed.labels(format=adapter.format_name, status="failed").inc()
                logger.error(str(e), extra={"error_type": type(e).__name__})
                report.failed.append((path, e))
                if settings.fail_fast:
                    raise
            else:
                files_processed.labels(format=adapter.format_name, status="ok").inc()
    finally:
        if settings.metrics_file:
            write_metrics(settings.metrics_file)

    logger.info(
        "Run complete",
        extra={
            "processed": len(report.processed),
            "skipped": len(report.skipped),
            "failed": len(report.failed),
        }
    )
    return report
