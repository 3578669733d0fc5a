"""
Jury Logging System
===================
Structured logging for the scoring engine and its host layers.

This module provides:
- Structured JSON logging for machine-parseable outputs
- Named loggers for scores, distribution and ranking decisions
- Optional JSONL log files organised by logger name
- Human-readable console output

Usage:
    from jury.logging_config import get_jury_logger, log_distribution

    logger = get_jury_logger("scoring")
    logger.info("Recomputed totals", extra={"entry_id": "clip-1"})

    log_entry_score(entry_id, judge_key, total)
    log_distribution(category, target, values, residual, converged)
    log_ranking_decision(decision_type, details)
"""

import sys
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, Union

from .config import get_config


# Attributes every LogRecord carries; anything else came in through extra={}
_RESERVED_ATTRS = frozenset((
    'name', 'msg', 'args', 'created', 'filename',
    'funcName', 'levelname', 'levelno', 'lineno',
    'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'stack_info',
    'exc_info', 'exc_text', 'thread', 'threadName',
    'taskName', 'message', 'context',
))


# =============================================================================
# CUSTOM FORMATTERS
# =============================================================================

class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON objects with consistent structure:
    {
        "timestamp": "2026-03-14T10:30:00.123456",
        "level": "INFO",
        "logger": "jury.scoring",
        "message": "Distributed category score",
        "context": {...}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, 'context') and record.context:
            log_data['context'] = record.context

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable formatter for console output.

    Format: [LEVEL] logger: message (key=value, ...)
    """

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        if self.use_colors and level in self.COLORS:
            level = f"{self.COLORS[level]}{level}{self.RESET}"

        msg = f"[{level}] {record.name}: {record.getMessage()}"

        extras = []
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            if isinstance(value, (str, int, float, bool)):
                extras.append(f"{key}={value}")
            elif isinstance(value, dict) and len(value) < 3:
                extras.append(f"{key}={value}")

        if extras:
            msg += f" ({', '.join(extras)})"

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


# =============================================================================
# LOGGER FACTORY
# =============================================================================

_loggers: Dict[str, logging.Logger] = {}


def get_jury_logger(
    name: str,
    log_to_file: Optional[bool] = None,
    session_name: Optional[str] = None
) -> logging.Logger:
    """
    Get or create a jury logger.

    Args:
        name: Logger name (e.g., "scoring", "distribution", "ranking", "app")
        log_to_file: Whether to write JSONL logs; defaults to config.logging.log_to_file
        session_name: Optional session name for file organization

    Returns:
        Configured logger instance
    """
    full_name = f"jury.{name}"

    if full_name in _loggers:
        return _loggers[full_name]

    config = get_config()
    logger = logging.getLogger(full_name)
    logger.setLevel(getattr(logging, config.logging.log_level.upper(), logging.INFO))
    logger.propagate = False

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ConsoleFormatter())
    logger.addHandler(console_handler)

    if log_to_file is None:
        log_to_file = config.logging.log_to_file

    if log_to_file:
        name_for_file = session_name or config.logging.session_name
        log_dir = config.paths.logs / name
        log_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d")
        log_file = log_dir / f"{name_for_file}_{timestamp}.jsonl"

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    _loggers[full_name] = logger
    return logger


def get_score_logger() -> logging.Logger:
    """Get a logger for score computation."""
    return get_jury_logger("scores")


def get_decision_logger() -> logging.Logger:
    """Get a logger for ranking and redistribution decisions."""
    return get_jury_logger("decisions")


def reset_loggers() -> None:
    """Close handlers and forget cached loggers (used when the config changes)."""
    for logger in _loggers.values():
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
    _loggers.clear()


# =============================================================================
# CONVENIENCE LOGGING FUNCTIONS
# =============================================================================

def log_entry_score(
    entry_id: str,
    judge_key: str,
    total: float,
    category_scores: Dict[str, float] = None,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Log a recomputed entry total for one judge.

    Args:
        entry_id: Entry (clip) identifier
        judge_key: Judge source key ("current", "imported-0", ...)
        total: Recomputed entry total
        category_scores: Optional per-category breakdown
        logger: Optional logger override
    """
    config = get_config()
    if not config.logging.log_scores:
        return

    log = logger or get_score_logger()
    log.debug(
        f"Scored entry {entry_id} for {judge_key}: {total:.2f}",
        extra={
            'entry_id': entry_id,
            'judge_key': judge_key,
            'total': total,
            'category_scores': category_scores or {}
        }
    )


def log_distribution(
    category: str,
    target: float,
    values: Dict[str, float],
    residual: float,
    converged: bool,
    strategy: str = "round_robin",
    passes: int = 0,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Log the outcome of a category redistribution.

    Non-converged solves are always logged as warnings, even when
    decision logging is disabled.

    Args:
        category: Category label (or a description of the criteria set)
        target: Clamped target aggregate
        values: Resulting per-criterion values
        residual: Remaining gap between target and the sum of values
        converged: Whether the residual is below half a step
        strategy: Redistribution strategy name
        passes: Number of correction passes performed
        logger: Optional logger override
    """
    config = get_config()
    log = logger or get_decision_logger()
    extra = {
        'decision_type': 'distribution',
        'category': category,
        'target': target,
        'residual': residual,
        'strategy': strategy,
        'passes': passes,
        'values': values,
    }

    if not converged:
        log.warning(
            f"Redistribution of {category} did not reach target {target} (residual {residual})",
            extra=extra
        )
        return

    if config.logging.log_decisions:
        log.debug(f"Redistributed {category} to {target}", extra=extra)


def log_ranking_decision(
    decision_type: str,
    details: Dict[str, Any],
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Log a ranking or aggregation decision.

    Args:
        decision_type: Type of decision (e.g., "ranking_complete", "judge_imported")
        details: Decision details
        logger: Optional logger override
    """
    config = get_config()
    if not config.logging.log_decisions:
        return

    log = logger or get_decision_logger()
    log.info(
        f"Decision: {decision_type}",
        extra={
            'decision_type': decision_type,
            'details': details
        }
    )


# =============================================================================
# LOG FILE UTILITIES
# =============================================================================

def get_session_log_path(session_name: str, log_type: str = "decisions") -> Path:
    """Get the log file path for a session."""
    config = get_config()
    log_dir = config.paths.logs / log_type
    timestamp = datetime.now().strftime("%Y%m%d")
    return log_dir / f"{session_name}_{timestamp}.jsonl"


def read_log_file(log_path: Union[str, Path]) -> list:
    """
    Read a JSONL log file and return list of log entries.

    Args:
        log_path: Path to the log file

    Returns:
        List of parsed log entry dictionaries
    """
    entries = []
    with open(log_path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line:
                try:
                    entries.append(json.loads(line))
                except json.JSONDecodeError:
                    continue
    return entries
