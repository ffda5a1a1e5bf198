"""
Centralized logging configuration.
"""
import logging
import logging.handlers
from datetime import datetime
from pathlib import Path
from typing import Optional


DETAILED_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
SIMPLE_FORMAT = '%(levelname)s - %(message)s'


class LoggingConfig:
    """Centralized logging configuration manager."""

    @staticmethod
    def setup_logging(
        log_level: str = "INFO",
        log_dir: Optional[str] = None,
        app_name: str = "dcmatrix",
        max_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
    ) -> logging.Logger:
        """
        Set up application logging with console and optional file handlers.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for rotating log files. No file handler when None.
            app_name: Application name used for the log file name
            max_file_size: Maximum size of each log file in bytes
            backup_count: Number of backup files to keep

        Returns:
            Configured root logger
        """
        level = getattr(logging, log_level.upper(), logging.INFO)

        logger = logging.getLogger()
        logger.setLevel(level)
        logger.handlers.clear()

        detailed_formatter = logging.Formatter(DETAILED_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
        simple_formatter = logging.Formatter(SIMPLE_FORMAT)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(simple_formatter)
        logger.addHandler(console_handler)

        log_file = None
        if log_dir:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file = Path(log_dir) / f"{app_name}_{timestamp}.log"

            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(detailed_formatter)
            logger.addHandler(file_handler)

        logger.debug(f"Logging configured - Level: {log_level}, File: {log_file}")
        return logger

    @staticmethod
    def get_logger(name: str) -> logging.Logger:
        """
        Get a logger instance for a module.

        Args:
            name: Logger name (typically __name__)

        Returns:
            Logger instance
        """
        return logging.getLogger(name)


def get_logger(name: str) -> logging.Logger:
    """Module-level shortcut for ``LoggingConfig.get_logger``."""
    return LoggingConfig.get_logger(name)
