from abc import ABC, abstractmethod
from importlib.metadata import version
from typing import Any


class RestServiceBase(ABC):
    """Abstract base class defining the hooks a concrete REST service supplies."""

    VALID_METHODS = {"GET", "POST", "PATCH", "DELETE"}
    DEFAULT_TIMEOUT = 60

    @staticmethod
    def get_version() -> str:
        try:
            return version("restbase")
        except Exception:
            return "unknown"

    DEFAULT_USER_AGENT = f"restbase/{get_version.__func__()}"

    DEFAULT_HEADERS = {
        "Accept": "*/*",
        "User-Agent": DEFAULT_USER_AGENT,
    }

    def _validate_http_method(self, method: str) -> None:
        if method.upper() not in self.VALID_METHODS:
            raise ValueError(f"Invalid HTTP method: {method}")

    @staticmethod
    def _validate_timeout(timeout: Any) -> None:
        """Validate timeout is a positive number."""
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError("Timeout must be a positive number")

    @abstractmethod
    def check_error(self, document: Any) -> None:
        """Raise a domain error found in ``document``; return if there is none."""
        raise NotImplementedError("check_error must be implemented by subclass")

    @abstractmethod
    def parse_response(self, document: Any) -> Any:
        """Extract the result of a successful call from ``document``."""
        raise NotImplementedError("parse_response must be implemented by subclass")
