"""Command line entry point for speech essence."""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, get_args

from .config.loader import load_config
from .config.settings import LogLevel
from .dispatcher import process
from .errors import SpeechEssenceError
from .utils.logging import setup_logging, get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="speech-essence",
        description=(
            "Offline speech recognition tool. Uses the VOSK library from "
            "https://github.com/alphacep"
        ),
    )
    parser.add_argument(
        "-f", "--file", dest="inputs", type=Path, required=True,
        help="Path to input audio file or folder with files. WAV, MP3 and OPUS are supported",
    )
    parser.add_argument(
        "-m", "--model", dest="recognition_model", type=Path, required=True,
        help="Path to the model. Get one from https://alphacephei.com/vosk/models and unpack.",
    )
    parser.add_argument(
        "-s", "--speaker_model", dest="speaker_model", type=Path, default=None,
        help="Path to the speaker identification model. Not implemented at the moment.",
    )
    parser.add_argument(
        "-o", "--output", dest="output_path", type=Path, required=True,
        help="Output directory.",
    )
    parser.add_argument("-c", "--config", type=Path, default=None, help="TOML configuration file")
    parser.add_argument(
        "--log-level", type=str.upper, choices=get_args(LogLevel), default=None,
        help="Override the configured log level",
    )
    parser.add_argument(
        "--feed-mode", choices=("stream", "bulk"), default=None,
        help="Feed recognizers chunk by chunk or in one call",
    )
    parser.add_argument(
        "--fail-fast", action="store_true", default=None,
        help="Stop at the first file that fails",
    )
    parser.add_argument("--metrics-file", type=Path, default=None, help="Write Prometheus metrics here")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for running the tool."""
    args = build_parser().parse_args(argv)

    settings = load_config(args.config)
    overrides = {}
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.fail_fast:
        overrides["fail_fast"] = True
    if args.metrics_file:
        overrides["metrics_file"] = args.metrics_file
    if args.feed_mode:
        overrides["recognition"] = settings.recognition.model_copy(update={"feed_mode": args.feed_mode})
    if overrides:
        settings = settings.model_copy(update=overrides)

    setup_logging(settings)

    try:
        report = process(
            args.inputs,
            args.recognition_model,
            args.speaker_model,
            args.output_path,
            settings=settings,
        )
    except SpeechEssenceError as e:
        logger.error(f"Aborting: {e}")
        return 1

    for path, error in report.failed:
        logger.error(f"Failed {path}: {error}")
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
