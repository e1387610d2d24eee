import logging
import sys
from typing import Any, Optional, Union

DEFAULT_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] - %(message)s"


class Logger:
    """Logger used by restbase services and the GitHub bulk editor.

    Wraps a standard library logger and lets callers attach keyword context
    to a message, rendered as ``message - key=value key=value``.
    """

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    def __init__(
        self,
        name: str = "restbase",
        level: Union[int, str] = logging.INFO,
        format_string: Optional[str] = None,
        log_to_console: bool = True,
        log_file: Optional[str] = None,
    ):
        """Initialize the logger.

        Args:
            name: Logger name
            level: Minimum logging level, as a number or a level name
            format_string: Custom format string for log messages
            log_to_console: Whether to log to stdout
            log_file: Optional file path to log to
        """
        self.logger = logging.getLogger(name)
        self.set_level(level)

        # Re-creating a logger with the same name must not duplicate output
        if self.logger.handlers:
            self.logger.handlers.clear()

        formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

        if log_to_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

    def set_level(self, level: Union[int, str]) -> None:
        """Change the minimum level, e.g. ``set_level("DEBUG")``."""
        if isinstance(level, str):
            resolved = logging.getLevelName(level.upper())
            if not isinstance(resolved, int):
                raise ValueError(f"Unknown log level: {level}")
            level = resolved
        self.logger.setLevel(level)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(self.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(self.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(self.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(self.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        self._log(self.CRITICAL, message, **kwargs)

    def _log(self, level: int, message: str, **kwargs: Any) -> None:
        """Append keyword context to ``message`` and emit it at ``level``."""
        if kwargs:
            context_str = " ".join(f"{k}={v}" for k, v in kwargs.items())
            message = f"{message} - {context_str}"
        self.logger.log(level, message)


class DefaultLogger(Logger):
    """Stdout logger named ``restbase`` with the standard format."""

    def __init__(
        self,
        name: str = "restbase",
        level: Union[int, str] = logging.INFO,
        log_file: Optional[str] = None,
    ):
        super().__init__(
            name=name,
            level=level,
            format_string=DEFAULT_FORMAT,
            log_to_console=True,
            log_file=log_file,
        )
