"""Configuration utilities for infrastructure layer."""

import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from nutrithali.domain.meal.analysis.models import ModelTier

API_KEY_NAME = "GEMINI_API_KEY"

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_FAST_MODEL = "gemini-3-flash-preview"
DEFAULT_DETAILED_MODEL = "gemini-3-pro-preview"
DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_LOG_LEVEL = "INFO"


def load_environment(env_path: Optional[Union[str, Path]] = None) -> bool:
    """
    Load a .env file into the process environment.

    Values already set in the environment win over the file.

    Returns:
        True if a file was found and loaded
    """
    if env_path is None:
        return load_dotenv()
    return load_dotenv(Path(env_path))


def get_gemini_base_url() -> str:
    """
    Get Gemini API base URL.

    Returns:
        Base URL from GEMINI_BASE_URL, defaults to the public v1beta endpoint
    """
    return os.getenv("GEMINI_BASE_URL", DEFAULT_BASE_URL)


def get_gemini_model(tier: ModelTier) -> str:
    """
    Get model identifier for a tier.

    Returns:
        GEMINI_FAST_MODEL or GEMINI_DETAILED_MODEL, with defaults
    """
    if tier is ModelTier.DETAILED:
        return os.getenv("GEMINI_DETAILED_MODEL", DEFAULT_DETAILED_MODEL)
    return os.getenv("GEMINI_FAST_MODEL", DEFAULT_FAST_MODEL)


def get_gemini_timeout_seconds() -> float:
    """
    Get total request timeout.

    Returns:
        Seconds from GEMINI_TIMEOUT_SECONDS, defaults to 60.
        Unparseable or non-positive values fall back to the default.
    """
    raw = os.getenv("GEMINI_TIMEOUT_SECONDS")
    if not raw:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_TIMEOUT_SECONDS
    return value if value > 0 else DEFAULT_TIMEOUT_SECONDS


def get_log_level() -> str:
    """Log level name from NUTRITHALI_LOG_LEVEL, defaults to INFO."""
    return os.getenv("NUTRITHALI_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
