import logging
import logging.handlers
import os
from pathlib import Path
from typing import Optional

LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LoggingConfig:
    """Centralized logging configuration for the examinee management CLI."""

    def __init__(self, logs_dir: str = "logs"):
        self.logs_dir = Path(logs_dir)
        self._configured = False
        self._handlers: list[logging.Handler] = []

    def setup_logging(
        self,
        log_level: str = "INFO",
        console_level: Optional[str] = None,
        file_level: Optional[str] = None,
        max_file_size: int = 10 * 1024 * 1024,  # 10 MB
        backup_count: int = 5,
        log_format: Optional[str] = None,
    ) -> None:
        """
        Set up console and rotating file logging on the root logger.

        Args:
            log_level: Default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            console_level: Log level for console output (if different from log_level)
            file_level: Log level for file output (if different from log_level)
            max_file_size: Maximum size of log files before rotation (in bytes)
            backup_count: Number of backup files to keep
            log_format: Custom log format string
        """
        if self._configured:
            return

        root_level = LEVEL_MAP.get(log_level.upper(), logging.INFO)
        console_log_level = LEVEL_MAP.get(
            (console_level or log_level).upper(), root_level
        )
        file_log_level = LEVEL_MAP.get((file_level or log_level).upper(), root_level)

        log_format = log_format or DEFAULT_FORMAT

        root_logger = logging.getLogger()
        root_logger.setLevel(min(console_log_level, file_log_level))

        console_handler = logging.StreamHandler()
        console_handler.setLevel(console_log_level)
        console_handler.setFormatter(logging.Formatter(log_format))
        root_logger.addHandler(console_handler)

        self.logs_dir.mkdir(exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            self.logs_dir / "sems.log",
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(file_log_level)
        file_handler.setFormatter(logging.Formatter(log_format))
        root_logger.addHandler(file_handler)

        self._handlers = [console_handler, file_handler]
        self._configured = True

        logger = logging.getLogger(__name__)
        logger.info(
            f"Logging configured - Console: {console_level or log_level}, File: {file_level or log_level}"
        )
        logger.info(f"Log files will be stored in: {self.logs_dir.absolute()}")

    def reset(self) -> None:
        """Detach the handlers added by setup_logging."""
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []
        self._configured = False


# Global instance
_logging_config = LoggingConfig(os.getenv("SEMS_LOG_DIR", "logs"))


def setup_logging(**kwargs) -> None:
    """Convenience function to set up logging."""
    _logging_config.setup_logging(**kwargs)


def reset_logging() -> None:
    _logging_config.reset()


def configure_from_env() -> None:
    """Configure logging from environment variables."""
    log_level = os.getenv("LOG_LEVEL", "INFO")
    console_level = os.getenv("CONSOLE_LOG_LEVEL", "WARNING")
    file_level = os.getenv("FILE_LOG_LEVEL")

    setup_logging(
        log_level=log_level, console_level=console_level, file_level=file_level
    )
