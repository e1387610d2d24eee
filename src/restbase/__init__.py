from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("restbase")
except PackageNotFoundError:
    __version__ = "unknown"

from .rest_service import (  # noqa: E402
    CommunicationError,
    RedirectError,
    RestService,
    RestServiceError,
)

__all__ = [
    "CommunicationError",
    "RedirectError",
    "RestService",
    "RestServiceError",
    "__version__",
]
