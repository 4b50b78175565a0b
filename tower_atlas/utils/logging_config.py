"""
Structured logging setup built on structlog.

Console output is human-readable for local work; JSON output is meant
for shipping logs from the map back end to an aggregator.
"""
import sys
import logging
import structlog
from pathlib import Path
from typing import Optional

# Handler attached by configure_logging(log_file=...); replaced on reconfigure
_file_handler: Optional[logging.Handler] = None


def configure_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    json_output: bool = False
):
    """
    Configure structlog and the stdlib root logger.

    Safe to call more than once: the root logger is reset each time and any
    file handler from a previous call is detached first.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file that receives a copy of every record
        json_output: Render events as JSON instead of the console format

    Example:
        >>> from tower_atlas.utils.logging_config import configure_logging, get_logger
        >>> configure_logging(log_level="DEBUG", json_output=True)
        >>> logger = get_logger(__name__)
        >>> logger.info("viewport_query_started", zoom=8.0, limit=500)
    """
    global _file_handler

    level = getattr(logging, log_level.upper())
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
        force=True,
    )

    processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    if _file_handler is not None:
        root.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _file_handler = logging.FileHandler(log_file)
        _file_handler.setLevel(level)
        _file_handler.setFormatter(logging.Formatter('%(message)s'))
        root.addHandler(_file_handler)


def get_logger(name: str):
    """
    Get a structured logger.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("towers_loaded", rows=48211)
    """
    return structlog.get_logger(name)
