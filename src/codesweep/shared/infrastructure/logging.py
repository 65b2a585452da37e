"""
Structured logging configuration using structlog.

Log events name files by absolute path. Before rendering, home directories in
those paths are collapsed to `~`. E-mail addresses and credentials that leak
into error messages (YAML errors, server replies) are masked.
"""

import logging
import re
import sys
from typing import Any, Callable, Dict, List, Tuple

import structlog

from codesweep.shared.infrastructure.config import Settings, settings as default_settings

Processor = Callable[[Any, str, Dict[str, Any]], Dict[str, Any]]

_SCRUB_RULES: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"(?:/Users|/home)/[^/\s'\"]+"), "~"),
    (re.compile(r"[A-Za-z]:\\Users\\[^\\\s'\"]+"), "~"),
    (re.compile(r"\b(api[_-]?key|token|password|secret)(['\"]?\s*[:=]\s*['\"]?)[^'\"\s,}]+", re.IGNORECASE), r"\1\2***"),
    (re.compile(r"Bearer\s+\S+"), "Bearer ***"),
    (re.compile(r"\b[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.[A-Za-z]{2,}\b"), "***@***"),
]


def redact_string(text: str) -> str:
    """Collapse home directories and mask credentials in `text`."""
    for pattern, replacement in _SCRUB_RULES:
        text = pattern.sub(replacement, text)
    return text


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        return {key: _scrub(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub(item) for item in value]
    return value


def make_privacy_redactor(enabled: bool = True) -> Processor:
    """Build the structlog processor that scrubs every event value."""

    def scrub_event(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        if not enabled:
            return event_dict
        return {key: _scrub(value) for key, value in event_dict.items()}

    return scrub_event


def _renderer(settings: Settings, stream: Any) -> List[Processor]:
    if settings.is_development:
        colors = bool(getattr(stream, "isatty", lambda: False)())
        return [structlog.dev.ConsoleRenderer(colors=colors)]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def configure_logging(stream: Any = sys.stderr, settings: Settings | None = None) -> None:
    """
    Route structlog through stdlib logging at the configured level.

    Development renders human-readable lines; any other environment emits
    one JSON object per event. Logs go to `stream` (stderr by default) so
    they never mix with the CLI's stdout output.
    """
    settings = settings or default_settings

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            make_privacy_redactor(settings.log_redaction_enabled),
            *_renderer(settings, stream),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=logging.getLevelName(settings.log_level),
        force=True,
    )


def get_logger(name: str) -> Any:
    """
    Get a structured logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("file_cleaned", file="src/app.ts", modified=True)
    """
    return structlog.get_logger(name)
