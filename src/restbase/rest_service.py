import random
from asyncio import TimeoutError
from contextlib import AsyncExitStack
from typing import Any, AsyncContextManager, ClassVar, Dict, Optional, Tuple, Union
from urllib.parse import urljoin
from xml.etree import ElementTree

from aiohttp import BasicAuth, ClientError, ClientSession, ClientTimeout
from pydantic import BaseModel, ConfigDict
from yarl import URL

from .encoding import ParamMap, encode_query
from .encoding import make_multipart as build_multipart
from .logging import DefaultLogger, Logger
from .rest_service_base import RestServiceBase


class RestServiceError(Exception):
    """Base exception for REST service errors.

    Concrete services derive their domain error from this class and raise it
    from :meth:`RestService.check_error`.
    """

    pass


class CommunicationError(RestServiceError):
    """The server could not be reached or its answer could not be understood.

    ``cause`` is the exception that triggered the failure, or ``None`` when
    the server answered with an error status the service did not recognise.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class RedirectError(CommunicationError):
    """A 3xx response reached the service instead of being followed."""

    def __init__(self, message: str, status: int, location: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.location = location


class RestService(BaseModel, RestServiceBase, AsyncContextManager["RestService"]):
    """Async base for REST API clients.

    Subclasses give ``url`` a default (the service endpoint), implement
    :meth:`check_error` and :meth:`parse_response`, and expose the API as
    coroutines built on :meth:`get`, :meth:`post` and :meth:`post_multipart`.
    Responses are XML by default; override :meth:`load_body` for other
    formats. To add fixed parameters such as an application id, override
    :meth:`make_url` and :meth:`make_multipart` and call ``super()``::

        class FakeService(RestService):
            url: str = "http://example.com/api/"
            appid: str

            class Error(RestServiceError):
                pass

            def check_error(self, document):
                error = document.find("error")
                if error is not None:
                    raise self.Error(error.text)

            def make_url(self, method, params=None):
                params = dict(params or {}, appid=self.appid)
                return super().make_url(method, params)

            def parse_response(self, document):
                return document

            async def test(self, query):
                return await self.get("test", {"q": query})
    """

    url: Optional[str] = None
    timeout: Optional[float] = 60
    headers: Optional[Dict[str, str]] = None
    auth: Optional[BasicAuth] = None
    session: Optional[ClientSession] = None
    timeout_obj: Optional[ClientTimeout] = None
    logger: Optional[Logger] = None
    _exit_stack: Optional[AsyncExitStack] = None
    _owns_session: bool = False

    FORM_CONTENT_TYPE: ClassVar[str] = "application/x-www-form-urlencoded"
    MULTIPART_CONTENT_TYPE: ClassVar[str] = "multipart/form-data"

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __init__(self, **data):
        if "timeout" in data:
            self._validate_timeout(data["timeout"])

        super().__init__(**data)

        if self.url is None:
            raise NotImplementedError(
                f"{type(self).__name__} must set url to the service endpoint"
            )

        headers = self.DEFAULT_HEADERS.copy()
        headers.update(self.headers or {})
        self.headers = headers

        self.timeout_obj = ClientTimeout(total=self.timeout)

        if self.logger is None:
            self.logger = DefaultLogger(name="restbase")

    async def __aenter__(self) -> "RestService":
        """Open a session unless one was provided."""
        self._exit_stack = AsyncExitStack()
        if self.session is None:
            self.session = await self._exit_stack.enter_async_context(
                ClientSession(timeout=self.timeout_obj)
            )
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Close the session if this service opened it."""
        try:
            if self._exit_stack:
                await self._exit_stack.aclose()
        finally:
            self._exit_stack = None
            if self._owns_session:
                self.session = None
                self._owns_session = False

    def load_body(self, body: str) -> Any:
        """Turn response text into the document handed to the hooks.

        Raises ``ValueError`` or ``SyntaxError`` (XML parse errors are the
        latter) when the body is malformed.
        """
        return ElementTree.fromstring(body)

    def make_url(self, method: Any, params: ParamMap = None) -> str:
        """
        Create the URL for ``method`` with query ``params``.

        The base ``url`` is resolved against ``./<method>``, so with a base of
        ``http://example.com/api/``::

            make_url(None, {"a": "1 2", "b": [4, 3]})
            # http://example.com/api/?a=1%202&b=3&b=4

            make_url("method", {"a": "1"})
            # http://example.com/api/method?a=1

        Args:
            method: Path segment relative to the base URL, or None
            params: Query parameters; iterable values repeat the key

        Returns:
            The absolute URL
        """
        segment = "./" if method is None else f"./{method}"
        url = urljoin(self.url, segment)
        query = encode_query(params)
        return f"{url}?{query}" if query else url

    def make_multipart(
        self, params: ParamMap, rng: Optional[random.Random] = None
    ) -> Tuple[str, bytes]:
        """Build a multipart body for ``params``; returns ``(boundary, body)``."""
        return build_multipart(params, rng)

    async def get(self, method: Any, params: ParamMap = None) -> Any:
        """GET ``method`` with ``params`` and return the parsed response."""
        return await self._send("GET", self.make_url(method, params))

    async def post(self, method: Any, params: ParamMap = None) -> Any:
        """POST ``params`` form-encoded to ``method`` and return the parsed response."""
        url, _, query = self.make_url(method, params).partition("?")
        return await self._send(
            "POST", url, data=query.encode("ascii"), content_type=self.FORM_CONTENT_TYPE
        )

    async def post_multipart(self, method: Any, params: ParamMap = None) -> Any:
        """POST ``params`` as multipart/form-data to ``method``."""
        url = self.make_url(method, {}).partition("?")[0]
        boundary, body = self.make_multipart(params)
        return await self._send(
            "POST",
            url,
            data=body,
            content_type=f"{self.MULTIPART_CONTENT_TYPE}; boundary={boundary}",
        )

    async def _send(
        self,
        http_method: str,
        url: str,
        data: Optional[Union[bytes, str]] = None,
        content_type: Optional[str] = None,
    ) -> Any:
        """Perform one request and classify its response.

        Args:
            http_method: HTTP method to use
            url: Absolute, already encoded URL
            data: Request body
            content_type: Content-Type of ``data``

        Returns:
            Result of :meth:`parse_response` for a 2xx response

        Raises:
            RestServiceError: the domain error raised by :meth:`check_error`,
                or a CommunicationError for every other failure
        """
        http_method = http_method.upper()
        self._validate_http_method(http_method)

        if self.session is None:
            raise RestServiceError("Session not initialized. Use async with context.")

        headers = self.headers.copy()
        if content_type:
            headers["Content-Type"] = content_type

        self.logger.debug(f"Making {http_method} request to {url}")

        try:
            response = await self.session.request(
                http_method,
                URL(url, encoded=True),
                data=data,
                headers=headers,
                auth=self.auth,
                timeout=self.timeout_obj,
            )
            try:
                body = await response.text()
            finally:
                response.release()
        except (ClientError, TimeoutError, UnicodeDecodeError) as e:
            raise CommunicationError(f"Communication error: {e!r}", cause=e) from e

        self.logger.debug(f"Received response: status={response.status}")

        return self._handle_response(response.status, response.reason, response.headers, body)

    def _handle_response(self, status: int, reason: str, headers: Any, body: str) -> Any:
        if 200 <= status < 300:
            document = self._load(body)
            self.check_error(document)
            return self.parse_response(document)

        if 300 <= status < 400:
            location = headers.get("Location") if headers else None
            raise RedirectError(
                f"Communication error: {status} {reason}\n\nunfollowed redirect to {location}",
                status=status,
                location=location,
            )

        message = f"Communication error: {status} {reason}\n\nunhandled error:\n{body}"
        try:
            document = self.load_body(body)
        except (ValueError, SyntaxError) as e:
            raise CommunicationError(message, cause=e) from e
        self.check_error(document)
        raise CommunicationError(message)

    def _load(self, body: str) -> Any:
        try:
            return self.load_body(body)
        except (ValueError, SyntaxError) as e:
            raise CommunicationError(f"Communication error: malformed body: {e}", cause=e) from e

    def update_headers(self, headers: Dict[str, str]) -> None:
        """Add or replace headers sent with every request."""
        self.headers.update(headers)
        self.logger.debug(f"Updated headers: {list(headers)}")

    def update_timeout(self, timeout: float) -> None:
        """Update the timeout for this service.

        Args:
            timeout: New timeout value in seconds
        """
        self._validate_timeout(timeout)

        self.timeout = timeout
        self.timeout_obj = ClientTimeout(total=timeout)

        self.logger.debug(f"Updated timeout to {timeout}s")
