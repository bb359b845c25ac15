"""Configuration loading from CLI args, env vars, and optional YAML file.

Precedence (lowest → highest): defaults, YAML, environment, CLI.
"""

import os
import logging
from dataclasses import dataclass

import yaml

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def normalize_extensions(value) -> tuple[str, ...]:
    """Accept 'log,jsonl' or ['.log', 'JSONL'] → ('.log', '.jsonl')."""
    if isinstance(value, str):
        value = value.split(",")
    result = []
    for ext in value:
        ext = str(ext).strip().lower()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = "." + ext
        if ext not in result:
            result.append(ext)
    return tuple(result)


@dataclass(frozen=True)
class Config:
    log_dir: str = "./logs"
    extensions: tuple[str, ...] = (".log", ".jsonl", ".json")
    poll_interval: float = 2.0
    export_dir: str = "./exports"
    log_level: str = "INFO"
    level_filter: str | None = None
    category_filter: str | None = None
    search: str | None = None
    output_format: str = "text"
    color: bool = False
    tail: bool = True

    def __post_init__(self):
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {self.poll_interval}")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")
        if not self.extensions:
            raise ValueError("at least one file extension is required")


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping, ignoring it", path)
        return {}
    logger.info("Loaded YAML config from %s", path)
    return data


_ENV_VARS = {
    "log_dir": "LOGTAIL_DIR",
    "extensions": "LOGTAIL_EXTENSIONS",
    "poll_interval": "LOGTAIL_POLL_INTERVAL",
    "export_dir": "LOGTAIL_EXPORT_DIR",
    "log_level": "LOGTAIL_LOG_LEVEL",
}

_CLI_KEYS = (
    "log_dir", "extensions", "poll_interval", "export_dir", "log_level",
    "level_filter", "category_filter", "search", "output_format", "color", "tail",
)


def load_config(cli_args=None, yaml_data: dict | None = None) -> Config:
    """Build Config from YAML data, env vars and parsed CLI args.

    CLI attributes that are None are treated as unset.
    """
    settings: dict = {}

    for key, value in (yaml_data or {}).items():
        if key in Config.__dataclass_fields__:
            settings[key] = value
        else:
            logger.warning("Unknown config key %r ignored", key)

    for key, env_var in _ENV_VARS.items():
        if env_var in os.environ:
            settings[key] = os.environ[env_var]

    if cli_args is not None:
        for key in _CLI_KEYS:
            value = getattr(cli_args, key, None)
            if value is not None:
                settings[key] = value

    if "extensions" in settings:
        settings["extensions"] = normalize_extensions(settings["extensions"])
    if "poll_interval" in settings:
        settings["poll_interval"] = float(settings["poll_interval"])
    if "log_level" in settings:
        settings["log_level"] = str(settings["log_level"]).upper()
    for key in ("color", "tail"):
        if key in settings:
            settings[key] = _parse_bool(settings[key])

    return Config(**settings)
