"""Configuration loader with TOML support and environment variable overrides."""

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from .settings import DecoderConfig, RecognitionConfig, Settings


class ConfigLoader:
    """Load configuration from TOML files with environment variable overrides."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to TOML configuration file
        """
        self.config_path = Path(config_path) if config_path else self._get_default_config_path()

    def _get_default_config_path(self) -> Path:
        """Get default configuration file path."""
        config_env = os.getenv("SPEECH_ESSENCE_CONFIG_FILE")
        if config_env:
            return Path(config_env)

        config_locations = [
            Path("config.toml"),
            Path.home() / ".config" / "speech-essence" / "config.toml",
        ]

        for path in config_locations:
            if path.exists():
                return path

        return Path("config.toml")

    def load_toml(self) -> Dict[str, Any]:
        """Load configuration from TOML file."""
        if not self.config_path.exists():
            return {}

        with open(self.config_path, "rb") as f:
            return tomllib.load(f)

    def merge_env_vars(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Let environment variables win over TOML values.

        pydantic-settings gives init arguments priority over the environment,
        so TOML keys that also have an environment override are dropped
        before the settings are built.
        """
        merged = dict(config)
        for key in list(merged):
            if key in ("decoder", "recognition") and isinstance(merged[key], dict):
                prefix = f"SPEECH_ESSENCE_{key.upper()}_"
                merged[key] = {
                    k: v for k, v in merged[key].items()
                    if f"{prefix}{k.upper()}" not in os.environ
                }
            elif f"SPEECH_ESSENCE_{key.upper()}" in os.environ:
                del merged[key]
        return merged

    def load(self) -> Settings:
        """Load complete configuration with all overrides applied."""
        toml_config = self.load_toml()
        config = self.merge_env_vars(toml_config)

        # Nested sections are built through their own constructors so that
        # keys missing from the file still pick up environment values
        config["decoder"] = DecoderConfig(**config.get("decoder", {}))
        config["recognition"] = RecognitionConfig(**config.get("recognition", {}))
        return Settings(**config)


def load_config(config_path: Optional[Path] = None) -> Settings:
    """Load configuration from TOML file and environment variables.

    Args:
        config_path: Optional path to configuration file

    Returns:
        Loaded configuration settings
    """
    loader = ConfigLoader(config_path)
    return loader.load()
