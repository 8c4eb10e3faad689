"""
Logging configuration for Webmarks.

This module sets up logging based on configuration settings.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


def setup_logging(config=None, log_file: Optional[str] = None, verbose: bool = False) -> Optional[Path]:
    """
    Set up logging configuration.

    Args:
        config: Configuration object providing the ``logging`` and
            ``storage`` sections (defaults are used when omitted)
        log_file: Optional log file name override
        verbose: Force DEBUG level regardless of configuration

    Returns:
        Path of the log file, or None when file logging is disabled
    """
    log_level = "INFO"
    console_output = False
    log_to_file = True
    state_dir = Path.cwd() / ".webmarks"

    if config is not None:
        log_level = config.logging.level
        console_output = config.logging.console_output
        log_to_file = config.logging.log_to_file
        state_dir = config.storage.state_dir

    if verbose:
        log_level = "DEBUG"
        console_output = True

    if log_file is None:
        log_file = "webmarks.log"

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    handlers = []
    log_path = None

    if log_to_file:
        log_dir = Path(state_dir) / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = log_dir / f"{Path(log_file).stem}_{timestamp}.log"

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(log_format, date_format))
        handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(log_format, date_format))
        handlers.append(console_handler)

    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=getattr(logging, log_level.upper()), handlers=handlers, force=True
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Webmarks starting - Log file: {log_path}")
    logger.info(f"Log level: {log_level}")

    # Reduce noise from HTTP libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return log_path
