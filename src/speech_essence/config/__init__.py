"""Configuration loading for speech-essence."""
