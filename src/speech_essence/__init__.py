"""Offline per-channel speech recognition for WAV, MP3 and Opus files."""

__version__ = "0.1.0"
