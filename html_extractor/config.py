"""
Runtime settings read from the environment.

Variables:
    HTML_EXTRACTOR_PARSER     tree builder: html5lib (default), lxml, html.parser
    HTML_EXTRACTOR_LOG_LEVEL  DEBUG, INFO (default), WARNING, ...
    HTML_EXTRACTOR_LOG_FILE   optional path for a file log handler

Command-line entry points call load_dotenv() first, so a .env file in the
working directory is honoured there.
"""

import logging
import os
from typing import Optional

from pydantic import BaseModel, field_validator

ENV_PREFIX = "HTML_EXTRACTOR_"


class Settings(BaseModel):
    """Engine settings."""
    parser_backend: str = "html5lib"
    log_level: int = logging.INFO
    log_file: Optional[str] = None

    @field_validator("log_level", mode="before")
    @classmethod
    def _level_name(cls, value):
        if isinstance(value, str) and not value.isdigit():
            level = logging.getLevelName(value.upper())
            if not isinstance(level, int):
                raise ValueError(f"unknown log level '{value}'")
            return level
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from HTML_EXTRACTOR_* variables, keeping defaults for unset ones."""
        values = {}
        for field, var in (("parser_backend", "PARSER"),
                           ("log_level", "LOG_LEVEL"),
                           ("log_file", "LOG_FILE")):
            raw = os.getenv(ENV_PREFIX + var)
            if raw:
                values[field] = raw
        return cls(**values)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the process-wide settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
