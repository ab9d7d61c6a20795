from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import structlog
from structlog.contextvars import bound_contextvars

LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3

PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.format_exc_info,
    structlog.processors.JSONRenderer(ensure_ascii=False),
]


def setup_logging(level: int = logging.INFO) -> None:
    """
    JSON lines on the console, routed through the stdlib root logger so that
    handlers attached by add_file_logging() see the same events.
    """
    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger().setLevel(level)
    structlog.configure(
        processors=PROCESSORS,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _file_handler(target: str) -> RotatingFileHandler | None:
    for h in logging.getLogger().handlers:
        if isinstance(h, RotatingFileHandler) and h.baseFilename == target:
            return h
    return None


def add_file_logging(log_file: Path) -> RotatingFileHandler:
    """Mirror events into a rotating JSONL file; one handler per resolved path."""
    target = log_file.resolve().as_posix()
    existing = _file_handler(target)
    if existing is not None:
        return existing

    log_file.parent.mkdir(parents=True, exist_ok=True)
    fh = RotatingFileHandler(target, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    fh.setFormatter(logging.Formatter("%(message)s"))
    logging.getLogger().addHandler(fh)
    return fh


def score_context(path: Path):
    """Tag every event logged inside the block with the score file it concerns."""
    return bound_contextvars(score=path.as_posix())


log = structlog.get_logger()
