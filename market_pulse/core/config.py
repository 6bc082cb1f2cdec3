"""Configuration module for loading service settings and environment variables."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

FMP_KEY_ENV = "FMP_API_KEY"
GEMINI_KEY_ENV = "GEMINI_API_KEY"

DEFAULT_PORT = 3001


def load_config(config_path: str | Path = "config.yaml") -> Dict[str, Any]:
    """
    Load configuration from the specified YAML file.

    Args:
        config_path (str | Path): Path to the configuration file. Defaults to "config.yaml".

    Returns:
        Dict[str, Any]: A dictionary containing the configuration settings.
    """
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found at {config_path}")

    with open(config_file, "r", encoding="utf-8") as file:
        config_data = yaml.safe_load(file)

    if not config_data or not isinstance(config_data, dict):
        raise ValueError(f"Configuration file {config_path} is empty or invalid.")

    return config_data


def get_api_key(env_name: str) -> Optional[str]:
    """Return a stripped credential from the environment, or None if unset/blank."""
    value = os.getenv(env_name, "").strip()
    return value or None


def section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Return a config sub-section as a dict (empty when absent or null)."""
    value = config.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{name}' must be a mapping, got {type(value).__name__}")
    return value


def server_port(config: Dict[str, Any]) -> int:
    """The listening port: ``PORT`` env var first, then ``server.port``, then 3001."""
    env_port = os.getenv("PORT")
    if env_port:
        return int(env_port)
    return int(section(config, "server").get("port", DEFAULT_PORT))
