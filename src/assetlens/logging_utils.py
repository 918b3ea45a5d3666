"""Logging setup shared by the assetlens modules.

Modules obtain named loggers under ``assetlens.*`` and never configure
handlers themselves; ``setup_logging`` is called once by the entry point.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .config import AssetLensSettings

LOGGER_NAME = "assetlens"
SYSTEM_FMT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FMT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str) -> logging.Logger:
    """Return a child of the ``assetlens`` logger."""
    if name == LOGGER_NAME or name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def _safe_add_file_handler(logger: logging.Logger, path: Path, formatter: logging.Formatter) -> Optional[Path]:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
    except OSError as exc:
        # Console logging keeps working when the file cannot be opened
        logger.warning("[WARNING] Failed to attach file handler %s (%s)", str(path), exc)
        return None
    fh.setFormatter(formatter)
    logger.addHandler(fh)
    return path


def setup_logging(settings: Optional[AssetLensSettings] = None, level: Optional[str] = None) -> logging.Logger:
    """Configure the ``assetlens`` logger with a console and optional file handler.

    ``level`` overrides the configured level (used by the CLI ``--log-level``).
    Handlers are reset on every call so repeated initialisation does not
    duplicate output.
    """

    settings = settings or AssetLensSettings()
    log_cfg = settings.logging
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, (level or log_cfg.level).upper(), logging.INFO))
    logger.handlers = []

    formatter = logging.Formatter(SYSTEM_FMT, datefmt=DATE_FMT)
    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    if log_cfg.file_name:
        log_path = Path(log_cfg.logs_dir).expanduser().resolve() / log_cfg.file_name
        if _safe_add_file_handler(logger, log_path, formatter):
            logger.debug("Logging initialised. Logs will be written to %s", log_path)
    return logger


def log_system_event(logger: logging.Logger, message: str):
    logger.info("[SYSTEM] %s", message)


def log_warning(logger: logging.Logger, message: str):
    logger.warning("[WARNING] %s", message)


def log_error(logger: logging.Logger, message: str):
    logger.error("[ERROR] %s", message)
