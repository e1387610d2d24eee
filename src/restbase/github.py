"""
GitHub REST client for labels and repository settings, built on RestService.

Every resource gets explicitly declared coroutines following the REST
convention ``collection`` / ``collection/:id``:

    GET    /repos/:user/:repo/labels         labels
    GET    /repos/:user/:repo/labels/:name   label
    POST   /repos/:user/:repo/labels         label_new
    PATCH  /repos/:user/:repo/labels/:name   label_update
    DELETE /repos/:user/:repo/labels/:name   label_delete

    GET    /orgs/:org/repos                  org_repos
    GET    /repos/:user/:repo                repo
    PATCH  /repos/:user/:repo                repo_update
    DELETE /repos/:user/:repo                repo_delete

They all delegate to the generic helpers ``_list``, ``_fetch``, ``_create``,
``_update`` and ``_delete``, which take the resource model to validate
responses into.
"""

import json
import os
import subprocess
from typing import Any, ClassVar, Dict, List, Optional, Type, TypeVar
from urllib.parse import quote

from aiohttp import BasicAuth
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from .rest_service import CommunicationError, RestService, RestServiceError

T = TypeVar("T", bound=BaseModel)


class GitHubError(RestServiceError):
    """Error message returned by the GitHub API."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class Label(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    color: str
    description: Optional[str] = None
    id: Optional[int] = None
    url: Optional[str] = None


class Repository(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    full_name: Optional[str] = None
    private: bool = False
    has_issues: bool = True
    id: Optional[int] = None


def git_config(key: str) -> str:
    """Return ``git config <key>``, or an empty string when it is unset."""
    try:
        process = subprocess.run(
            ["git", "config", key],
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except FileNotFoundError:
        return ""
    return process.stdout.strip()


def resolve_credential(value: Optional[str], env_var: str, git_key: str) -> str:
    """Pick a credential from ``value``, then ``env_var``, then ``git config``."""
    if value:
        return value
    return os.environ.get(env_var) or git_config(git_key)


class GitHub(RestService):
    """GitHub API client authenticating with basic auth.

    Credentials not passed in are read from ``GITHUB_USER`` and
    ``GITHUB_PASSWORD``, then from ``git config github.user`` and
    ``git config github.password``.
    """

    url: str = "https://api.github.com/"
    username: Optional[str] = None
    password: Optional[str] = None
    per_page: int = 100

    ACCEPT: ClassVar[str] = "application/vnd.github+json"
    JSON_CONTENT_TYPE: ClassVar[str] = "application/json"

    def __init__(self, **data):
        super().__init__(**data)

        self.username = resolve_credential(self.username, "GITHUB_USER", "github.user")
        self.password = resolve_credential(
            self.password, "GITHUB_PASSWORD", "github.password"
        )
        if not self.username:
            raise ValueError(
                "GitHub username not configured: set GITHUB_USER or git config github.user"
            )

        self.auth = BasicAuth(self.username, self.password)
        self.update_headers({"Accept": self.ACCEPT})

    def load_body(self, body: str) -> Any:
        # DELETE answers 204 with no content
        if not body.strip():
            return None
        return json.loads(body)

    def check_error(self, document: Any) -> None:
        if not isinstance(document, dict) or "message" not in document:
            return
        if "documentation_url" in document or "errors" in document:
            raise GitHubError(document["message"], document.get("errors"))

    def parse_response(self, document: Any) -> Any:
        return document

    @staticmethod
    def _path(*segments: Any) -> str:
        return "/".join(quote(str(segment), safe="") for segment in segments)

    async def _request_json(
        self,
        http_method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = self.make_url(path, params)
        if payload is None:
            return await self._send(http_method, url)
        return await self._send(
            http_method, url, data=json.dumps(payload), content_type=self.JSON_CONTENT_TYPE
        )

    def _validate(self, model_type: Any, document: Any) -> Any:
        """Validate a decoded body into ``model_type``.

        A body of the wrong shape is a malformed response, reported as a
        CommunicationError like any other unreadable body.
        """
        try:
            return TypeAdapter(model_type).validate_python(document)
        except ValidationError as e:
            raise CommunicationError(
                f"Communication error: unexpected response shape: {e}", cause=e
            ) from e

    async def _list(
        self, model: Type[T], path: str, max_pages: Optional[int] = None
    ) -> List[T]:
        """Fetch every page of a collection.

        Pages are requested one after the other until one comes back with
        fewer than ``per_page`` items.

        Args:
            model: Resource model each item is validated into
            path: Collection path relative to the API root
            max_pages: Maximum number of pages to fetch (None for all)

        Returns:
            List of all items from all pages
        """
        items: List[T] = []
        page = 1

        while True:
            batch = await self._request_json(
                "GET", path, params={"per_page": self.per_page, "page": page}
            )
            batch = self._validate(List[model], batch)
            items.extend(batch)

            self.logger.debug(f"Fetched page {page} of {path} with {len(batch)} items")

            if len(batch) < self.per_page:
                break
            if max_pages is not None and page >= max_pages:
                self.logger.info(f"Reached maximum page count: {max_pages}")
                break
            page += 1

        return items

    async def _fetch(self, model: Type[T], path: str) -> T:
        return self._validate(model, await self._request_json("GET", path))

    async def _create(self, model: Type[T], path: str, data: Dict[str, Any]) -> T:
        return self._validate(model, await self._request_json("POST", path, data))

    async def _update(self, model: Type[T], path: str, data: Dict[str, Any]) -> T:
        return self._validate(model, await self._request_json("PATCH", path, data))

    async def _delete(self, path: str) -> None:
        await self._request_json("DELETE", path)

    # Labels
    async def labels(self, user: str, repo: str) -> List[Label]:
        return await self._list(Label, self._path("repos", user, repo, "labels"))

    async def label(self, user: str, repo: str, name: str) -> Label:
        return await self._fetch(Label, self._path("repos", user, repo, "labels", name))

    async def label_new(
        self,
        user: str,
        repo: str,
        name: str,
        color: str,
        description: Optional[str] = None,
    ) -> Label:
        data = {"name": name, "color": color}
        if description is not None:
            data["description"] = description
        return await self._create(Label, self._path("repos", user, repo, "labels"), data)

    async def label_update(
        self, user: str, repo: str, name: str, data: Dict[str, Any]
    ) -> Label:
        return await self._update(
            Label, self._path("repos", user, repo, "labels", name), data
        )

    async def label_delete(self, user: str, repo: str, name: str) -> None:
        await self._delete(self._path("repos", user, repo, "labels", name))

    # Repositories
    async def org_repos(self, org: str, max_pages: Optional[int] = None) -> List[Repository]:
        return await self._list(Repository, self._path("orgs", org, "repos"), max_pages)

    async def repo(self, user: str, repo: str) -> Repository:
        return await self._fetch(Repository, self._path("repos", user, repo))

    async def repo_update(self, user: str, repo: str, data: Dict[str, Any]) -> Repository:
        return await self._update(Repository, self._path("repos", user, repo), data)

    async def repo_delete(self, user: str, repo: str) -> None:
        await self._delete(self._path("repos", user, repo))
