#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Logging Utilities for TreeLab
Sets up run logging: a rotating log file per run plus optional stderr output
"""

import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_DIR = 'logs'


def _resolve_level(log_level: Union[int, str]) -> int:
    if isinstance(log_level, str):
        level = logging.getLevelName(log_level.strip().upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {log_level}")
        return level
    return int(log_level)


def setup_logging(log_dir: Optional[Union[str, Path]] = None,
                  log_level: Union[int, str] = logging.INFO,
                  log_format: Optional[str] = None,
                  enable_console: bool = True,
                  max_log_size: int = 10485760,  # 10MB
                  backup_count: int = 5) -> Path:
    """
    Route TreeLab logging to a per-run file and, optionally, stderr

    Handlers already on the root logger are replaced, so calling this twice
    in one process starts a fresh log file rather than duplicating output.

    Args:
        log_dir: Directory for log files (default: ./logs)
        log_level: Logging level or level name
        log_format: Log message format (default: LOG_FORMAT)
        enable_console: Also log to stderr; stdout is left to the CLI's tables
        max_log_size: Maximum size for a log file before rotation (bytes)
        backup_count: Number of rotated files to keep

    Returns:
        Path of the log file for this run
    """
    level = _resolve_level(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(log_format or LOG_FORMAT)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    log_dir = Path(log_dir or DEFAULT_LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"treelab_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_file,
        maxBytes=max_log_size,
        backupCount=backup_count,
        encoding='utf-8'
    )
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    logging.getLogger(__name__).info(f"Logging to {log_file} at level {logging.getLevelName(level)}")
    return log_file


def configure_logging(config: Dict[str, Any], verbose: bool = False) -> Path:
    """
    Set up logging from the application and logging sections of a configuration

    Args:
        config: Merged TreeLab configuration
        verbose: Force DEBUG so per-node growth and pruning messages are kept

    Returns:
        Path of the log file for this run
    """
    logging_config = config.get('logging', {})
    level = 'DEBUG' if verbose else logging_config.get('level', 'INFO')
    return setup_logging(log_dir=config.get('application', {}).get('log_dir'),
                         log_level=level,
                         enable_console=logging_config.get('console', True))


def log_exception(e: Exception, logger: Optional[logging.Logger] = None,
                  context: str = "Error") -> None:
    """
    Log a handled exception with its traceback

    Args:
        e: Exception to log
        logger: Logger to use (defaults to the root logger)
        context: What was being done when the exception was raised
    """
    if logger is None:
        logger = logging.getLogger()

    logger.error(f"{context}: {type(e).__name__}: {e}", exc_info=(type(e), e, e.__traceback__))
