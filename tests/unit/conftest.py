from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import ClientSession

from restbase.github import GitHub
from restbase.rest_service import RestService, RestServiceError


class FakeService(RestService):
    """XML service used throughout the tests."""

    url: str = "http://example.com/test"

    class Error(RestServiceError):
        pass

    def check_error(self, document):
        error = document if document.tag == "error" else document.find(".//error")
        if error is not None:
            raise self.Error(error.text)

    def parse_response(self, document):
        return document


@pytest.fixture
def base_url():
    return "http://example.com/test"


@pytest.fixture
def mock_response_factory():
    """
    Factory fixture to create mock aiohttp responses.
    """

    def _create_response(status=200, text="", reason="OK", headers=None, text_error=None):
        mock_response = MagicMock()
        mock_response.status = status
        mock_response.reason = reason
        mock_response.headers = headers or {}
        if text_error is not None:
            mock_response.text = AsyncMock(side_effect=text_error)
        else:
            mock_response.text = AsyncMock(return_value=text)
        mock_response.release = MagicMock()
        return mock_response

    return _create_response


@pytest.fixture
def mock_client_session():
    def _create_session(response=None, side_effect=None):
        mock_session = MagicMock(spec=ClientSession)
        mock_session.closed = False

        if side_effect is not None:
            mock_session.request = AsyncMock(side_effect=side_effect)
        else:
            mock_session.request = AsyncMock(return_value=response)

        return mock_session

    return _create_session


@pytest.fixture
def fake_service():
    return FakeService()


@pytest.fixture
def service_factory(mock_client_session, mock_response_factory):
    """
    Factory fixture returning a FakeService whose session answers with the
    given responses, in order.
    """

    def _create_service(*responses, side_effect=None, **kwargs):
        service = FakeService(**kwargs)
        if side_effect is None and len(responses) > 1:
            side_effect = list(responses)
        service.session = mock_client_session(
            response=responses[0] if responses else None, side_effect=side_effect
        )
        return service

    return _create_service


@pytest.fixture
def github_env(monkeypatch):
    monkeypatch.setenv("GITHUB_USER", "octocat")
    monkeypatch.setenv("GITHUB_PASSWORD", "secret")


@pytest.fixture
def github_factory(github_env, mock_client_session, mock_response_factory):
    """
    Factory fixture returning a GitHub client answering with the given
    (status, body) pairs, in order.
    """

    def _create_github(*answers, **kwargs):
        responses = [
            mock_response_factory(status=status, text=body, reason=reason)
            for status, body, reason in (
                answer if len(answer) == 3 else (*answer, "OK") for answer in answers
            )
        ]
        github = GitHub(**kwargs)
        github.session = mock_client_session(side_effect=responses)
        return github

    return _create_github
