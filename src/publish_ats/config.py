import copy
import logging
import os
from pathlib import Path
from typing import Any

import yaml
from yaml.parser import ParserError

from publish_ats.ats_optimizer import (
    HIGHLIGHT_WINDOW,
    MIN_SKILL_LENGTH,
    MIN_TECHNOLOGY_LENGTH,
)
from publish_ats.html_to_docx import DEFAULT_BULLET_CHARACTER, DEFAULT_FALLBACK_TEXT

logger = logging.getLogger(__name__)

SCRIPT_DIR = Path(__file__).parent
DEFAULT_CONFIG_FILE = SCRIPT_DIR / "publish_ats_config.yaml"
LOG_FORMAT = (
    "%(asctime)s.%(msecs)d %(levelname)-8s [%(processName)s] [%(threadName)s] "
    "%(filename)s:%(funcName)s:%(lineno)d --- %(message)s"
)
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_CONFIG = {
    "ats": {
        "highlight_window": HIGHLIGHT_WINDOW,
        "min_technology_length": MIN_TECHNOLOGY_LENGTH,
        "min_skill_length": MIN_SKILL_LENGTH,
    },
    "html_to_docx": {
        "bullet_character": DEFAULT_BULLET_CHARACTER,
        "fallback_text": DEFAULT_FALLBACK_TEXT,
    },
    "markdown": {
        "extensions": ["tables"],
    },
    "pdf": {
        "page_format": "Letter",
        "print_background": True,
        "timeout_ms": 30000,
    },
    "logging": {
        "level": "INFO",
    },
}


class ConfigLoader:
    """Class for loading and accessing configuration from a YAML file"""

    def __init__(self, config_file: Path | str | None = DEFAULT_CONFIG_FILE):
        """Initialize by loading configuration from a YAML file

        Sections found in the file update the defaults; a missing or
        unreadable file leaves the defaults in place.

        Args:
            config_file (Path): Path to configuration file.
                             Defaults to 'publish_ats_config.yaml' in the package.
        """
        self._config = copy.deepcopy(DEFAULT_CONFIG)
        self._config_file = Path(config_file) if config_file else None

        if self._config_file and os.path.exists(self._config_file):
            try:
                with open(self._config_file, "r", encoding="utf-8") as f:
                    yaml_config = yaml.safe_load(f)

                if yaml_config and isinstance(yaml_config, dict):
                    self.update(yaml_config)
                    logger.debug(f"Config loaded from {self._config_file}")
            except (ParserError, yaml.YAMLError, OSError) as e:
                logger.warning(
                    f"Error loading config file: {str(e)}, using default configuration"
                )
        elif self._config_file:
            logger.warning(f"{self._config_file} not found, using defaults")

    def update(self, overrides: dict[str, Any]) -> None:
        """Merge configuration overrides section by section

        Args:
            overrides (dict): Sections to merge. Dictionary sections update
                the existing section, anything else replaces it.
        """
        for section, values in overrides.items():
            if isinstance(values, dict) and isinstance(
                self._config.get(section), dict
            ):
                self._config[section].update(values)
            else:
                self._config[section] = values

    @property
    def config_file(self) -> Path | None:
        return self._config_file

    @property
    def config(self) -> dict:
        """Get the entire configuration dictionary

        Returns:
            dict: Complete configuration dictionary
        """
        return self._config

    @property
    def ats(self) -> dict:
        """Get ATS optimization settings

        Returns:
            dict: highlight_window, min_technology_length, min_skill_length
        """
        return self._config.get("ats", {})

    @property
    def html_to_docx(self) -> dict:
        """Get HTML to Word conversion settings

        Returns:
            dict: bullet_character, fallback_text
        """
        return self._config.get("html_to_docx", {})

    @property
    def markdown_extensions(self) -> list[str]:
        return self._config.get("markdown", {}).get("extensions", [])

    @property
    def pdf(self) -> dict:
        """Get PDF rendering settings

        Returns:
            dict: page_format, print_background, timeout_ms
        """
        return self._config.get("pdf", {})

    @property
    def log_level(self) -> str:
        return str(self._config.get("logging", {}).get("level", "INFO")).upper()


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with the shared format

    Args:
        level (str): Logging level name, e.g. 'DEBUG'
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        datefmt=LOG_DATE_FORMAT,
        format=LOG_FORMAT,
    )


__all__ = [
    "ConfigLoader",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "configure_logging",
]
