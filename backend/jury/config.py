"""
Configuration Management Module
===============================
Centralized configuration system for the clip jury backend.

This module provides:
- Type-safe configuration via dataclasses
- Environment variable overrides
- JSON save/load for reproducible judging sessions
- Default values with documentation

Usage:
    from jury.config import get_config
    config = get_config()

    step = config.scoring.default_step
    strategy = config.scoring.distribution_strategy
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional, Literal, Union, get_args, get_origin
import os
import json
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION DATACLASSES
# =============================================================================

@dataclass
class PathConfig:
    """Configuration for file system paths."""

    # Base directory (defaults to package directory)
    base_dir: Path = field(default_factory=lambda: Path(__file__).parent)

    logs_dir: str = "logs"

    @property
    def logs(self) -> Path:
        return self.base_dir / self.logs_dir

    def ensure_directories(self) -> None:
        """Create the log directory if it doesn't exist."""
        self.logs.mkdir(parents=True, exist_ok=True)


@dataclass
class ScoringConfig:
    """
    Configuration for the scoring engine.

    The quantization default mirrors the official rubric, where every
    criterion is scored in half points.

    Redistribution strategies:
    - round_robin: proportional split, step rounding, then one-step nudges
      walked in criterion order until the remainder is absorbed
    - largest_remainder: proportional split floored to whole steps, leftover
      steps handed out by largest fractional remainder
    """

    # Step used when no criterion of a group declares a positive one
    default_step: float = 0.5

    # Redistribution
    distribution_strategy: Literal["round_robin", "largest_remainder"] = "round_robin"
    max_iterations: int = 1200

    # Judge labels
    local_judge_name: str = "Juge courant"
    imported_judge_name: str = "Juge importe"


@dataclass
class ResultsConfig:
    """Configuration for the results table and leaderboards."""

    # "folder" keeps the entry order, "score" ranks by average total
    sort_mode: Literal["folder", "score"] = "folder"

    # When totals are hidden, score ordering falls back to folder order
    hide_totals: bool = False

    # Optional limit on leaderboard length
    top_k: Optional[int] = None


@dataclass
class FlaskConfig:
    """Configuration for Flask web server."""

    host: str = "127.0.0.1"
    port: int = 5000
    debug: bool = False

    secret_key: str = field(default_factory=lambda: os.getenv("FLASK_SECRET_KEY", "dev-secret-key"))

    cors_origins: list = field(default_factory=lambda: ["*"])


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Name used for log files
    session_name: str = "default"

    log_level: str = "INFO"
    log_scores: bool = True
    log_decisions: bool = True

    # The engine itself never writes files unless this is switched on
    log_to_file: bool = False


@dataclass
class AppConfig:
    """
    Master configuration class that aggregates all configuration sections.

    This is the main configuration object used throughout the application.
    """

    paths: PathConfig = field(default_factory=PathConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    results: ResultsConfig = field(default_factory=ResultsConfig)
    flask: FlaskConfig = field(default_factory=FlaskConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> dict:
        """Convert configuration to dictionary for serialization."""
        def convert(obj):
            if hasattr(obj, '__dataclass_fields__'):
                return {k: convert(v) for k, v in obj.__dict__.items()}
            elif isinstance(obj, Path):
                return str(obj)
            elif isinstance(obj, set):
                return list(obj)
            return obj
        return convert(self)

    def save(self, filepath: str) -> None:
        """Save configuration to JSON file."""
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        logger.info(f"Configuration saved to {filepath}")

    @classmethod
    def from_dict(cls, data: dict) -> "AppConfig":
        """Create configuration from dictionary."""
        paths_data = dict(data.get('paths', {}))
        if 'base_dir' in paths_data and isinstance(paths_data['base_dir'], str):
            paths_data['base_dir'] = Path(paths_data['base_dir'])

        return cls(
            paths=PathConfig(**paths_data),
            scoring=ScoringConfig(**data.get('scoring', {})),
            results=ResultsConfig(**data.get('results', {})),
            flask=FlaskConfig(**data.get('flask', {})),
            logging=LoggingConfig(**data.get('logging', {})),
        )

    @classmethod
    def load(cls, filepath: str) -> "AppConfig":
        """Load configuration from JSON file."""
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        logger.info(f"Configuration loaded from {filepath}")
        return cls.from_dict(data)


# =============================================================================
# GLOBAL CONFIGURATION SINGLETON
# =============================================================================

_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get the global application configuration.

    Creates a default configuration on first access.

    Returns:
        The global AppConfig instance
    """
    global _config
    if _config is None:
        _config = AppConfig()
        logger.info("Initialized default application configuration")
    return _config


def set_config(config: AppConfig) -> None:
    """
    Set the global application configuration.

    Args:
        config: The AppConfig instance to use globally
    """
    global _config
    _config = config
    logger.info(f"Set global configuration (session: {config.logging.session_name})")


def reset_config() -> None:
    """Reset the global configuration to None (forces reload on next get_config)."""
    global _config
    _config = None
    logger.info("Reset global configuration")


def load_session_config(filepath: str) -> AppConfig:
    """
    Load a configuration file and set it as global.

    Args:
        filepath: Path to the configuration JSON file

    Returns:
        The loaded AppConfig instance
    """
    config = AppConfig.load(filepath)
    set_config(config)
    return config


# =============================================================================
# ENVIRONMENT VARIABLE OVERRIDES
# =============================================================================

_SECTIONS = ('paths', 'scoring', 'results', 'flask', 'logging')


def _field_type(section_config, attr: str):
    """Declared type of a config field, with Optional[...] unwrapped."""
    declared = next((f.type for f in fields(section_config) if f.name == attr), None)
    if get_origin(declared) is Union:
        args = [arg for arg in get_args(declared) if arg is not type(None)]
        if len(args) == 1:
            return args[0], True
    return declared, False


def _coerce_env_value(value: str, declared, optional: bool):
    if optional and value.strip().lower() in ('', 'none', 'null'):
        return None
    if declared is bool:
        return value.lower() in ('true', '1', 'yes', 'on')
    if declared is int:
        return int(value)
    if declared is float:
        return float(value)
    if declared is Path:
        return Path(value)
    if declared is list or get_origin(declared) is list:
        return [item.strip() for item in value.split(',') if item.strip()]
    return value


def apply_environment_overrides(config: AppConfig) -> AppConfig:
    """
    Apply environment variable overrides to configuration.

    Environment variables follow the pattern:
    JURY_{SECTION}_{KEY}

    Examples:
        JURY_SCORING_DISTRIBUTION_STRATEGY=largest_remainder
        JURY_RESULTS_HIDE_TOTALS=true
        JURY_LOGGING_LOG_LEVEL=DEBUG

    Also supports:
        PORT=8080 (maps to flask.port)

    Args:
        config: Base configuration to override

    Returns:
        Configuration with environment overrides applied
    """
    if os.getenv("PORT"):
        try:
            config.flask.port = int(os.getenv("PORT"))
            logger.info(f"Environment override: flask.port = {config.flask.port}")
        except ValueError:
            logger.warning(f"Ignoring non-integer PORT value: {os.getenv('PORT')}")

    prefix = "JURY_"

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        parts = key[len(prefix):].lower().split('_', 1)
        if len(parts) != 2:
            continue

        section, attr = parts
        if section not in _SECTIONS:
            continue

        section_config = getattr(config, section, None)
        if section_config is None:
            continue

        # Coerce by the declared field type, not the current value
        declared, optional = _field_type(section_config, attr)
        if declared is None:
            continue

        try:
            typed_value = _coerce_env_value(value, declared, optional)
            setattr(section_config, attr, typed_value)
            logger.info(f"Environment override: {section}.{attr} = {typed_value}")

        except (ValueError, TypeError) as e:
            logger.warning(f"Failed to apply environment override {key}: {e}")

    return config


# =============================================================================
# PRESET CONFIGURATIONS
# =============================================================================

def get_development_config() -> AppConfig:
    """Get configuration optimized for development."""
    config = AppConfig()
    config.flask.debug = True
    config.logging.log_level = "DEBUG"
    return config


def get_production_config() -> AppConfig:
    """Get configuration optimized for production."""
    config = AppConfig()
    config.flask.debug = False
    config.logging.log_level = "INFO"
    config.logging.log_to_file = True
    return config
