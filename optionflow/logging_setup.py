"""
Logging Setup - Single place for logger creation

Single Responsibility: Create and configure loggers
"""

import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional


def create_logger(
    name: str = "optionflow",
    log_file: Optional[Path] = None,
    level: int = logging.INFO,
    console: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Create a configured logger with file and console handlers.

    Child loggers (``optionflow.merger.engine`` etc.) propagate into the
    logger returned here, so the CLI only needs to call this once.

    Args:
        name: Logger name
        log_file: Path to log file. If None, no file handler is attached.
        level: Logging level
        console: Whether to add console handler
        max_bytes: Max file size before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_file is not None:
        # Ensure log directory exists
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8'
            )
        except (OSError, PermissionError) as e:
            print(f"WARNING: Could not create log file {log_file}: {e}. Using console-only logging.")
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s | %(levelname)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            logger.addHandler(file_handler)

    # Console handler
    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter('%(levelname)s | %(message)s'))
        logger.addHandler(console_handler)

    return logger
