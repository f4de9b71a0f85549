"""Configuration settings for speech-essence."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DecoderConfig(BaseSettings):
    """Codec adapter read sizes."""

    # Samples per channel read from a WAV file per call
    wav_read_frames: int = Field(default=1024, gt=0)
    # One MPEG-1 Layer III frame carries 1152 samples per channel; MP3 reads
    # are halved for MPEG-2/2.5 streams (24kHz and below), whose frames hold 576
    mp3_frame_samples: int = Field(default=1152, gt=0)
    # Interleaved samples per Opus read, the maximum frame duration at 48kHz
    opus_read_samples: int = Field(default=11520, gt=0)

    model_config = SettingsConfigDict(env_prefix="SPEECH_ESSENCE_DECODER_")


class RecognitionConfig(BaseSettings):
    """Recognition feeder settings."""

    feed_mode: Literal["stream", "bulk"] = "stream"
    chunk_samples: int = Field(default=4000, gt=0)
    engine_log_level: int = 0

    model_config = SettingsConfigDict(env_prefix="SPEECH_ESSENCE_RECOGNITION_")


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Main application settings."""

    app_name: str = "speech essence"
    log_level: LogLevel = "INFO"
    log_format: Literal["text", "json"] = "text"
    fail_fast: bool = False
    metrics_file: Optional[Path] = None

    decoder: DecoderConfig = Field(default_factory=DecoderConfig)
    recognition: RecognitionConfig = Field(default_factory=RecognitionConfig)

    model_config = SettingsConfigDict(
        env_prefix="SPEECH_ESSENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v
