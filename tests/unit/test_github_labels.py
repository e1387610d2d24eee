from unittest.mock import AsyncMock, call, patch

import pytest

from restbase.github import GitHub, GitHubError, Label, Repository
from restbase.github_labels import STANDARD_LABELS, main, parse_args, sync_labels


@pytest.fixture
def github(github_env):
    return GitHub()


@pytest.fixture
def mock_api():
    repos = [
        Repository(name="zentest", has_issues=False),
        Repository(name="minitest", has_issues=True),
    ]
    labels = {
        "minitest": [Label(name="type - bug", color="e10c02")],
        "zentest": [],
    }

    async def fake_labels(user, repo):
        return labels[repo]

    with patch.object(GitHub, "org_repos", AsyncMock(return_value=repos)), patch.object(
        GitHub, "labels", AsyncMock(side_effect=fake_labels)
    ), patch.object(GitHub, "label_new", AsyncMock()) as label_new, patch.object(
        GitHub, "repo_update", AsyncMock()
    ) as repo_update:
        yield label_new, repo_update


class TestSyncLabels:
    async def test_creates_missing_labels(self, github, mock_api):
        label_new, repo_update = mock_api

        created = await sync_labels(github, "seattlerb")

        all_names = [label.name for label in STANDARD_LABELS]
        assert list(created) == ["minitest", "zentest"]
        assert created["minitest"] == [name for name in all_names if name != "type - bug"]
        assert created["zentest"] == all_names

        assert label_new.await_count == 9
        label_new.assert_any_await("seattlerb", "zentest", "type - feature", "02e10c")
        assert call("seattlerb", "minitest", "type - bug", "e10c02") not in label_new.await_args_list

    async def test_enables_issues(self, github, mock_api):
        _, repo_update = mock_api

        await sync_labels(github, "seattlerb")

        repo_update.assert_awaited_once_with("seattlerb", "zentest", {"has_issues": True})

    async def test_dry_run_changes_nothing(self, github, mock_api):
        label_new, repo_update = mock_api

        created = await sync_labels(github, "seattlerb", dry_run=True)

        assert len(created["zentest"]) == len(STANDARD_LABELS)
        label_new.assert_not_awaited()
        repo_update.assert_not_awaited()

    async def test_custom_labels(self, github, mock_api):
        label_new, _ = mock_api

        await sync_labels(github, "seattlerb", labels=[Label(name="docs", color="ffffff")])

        assert label_new.await_args_list == [
            call("seattlerb", "minitest", "docs", "ffffff"),
            call("seattlerb", "zentest", "docs", "ffffff"),
        ]


class TestMain:
    def test_parse_args(self):
        args = parse_args(["seattlerb", "-n", "-v", "--user", "me"])
        assert args.org == "seattlerb"
        assert args.dry_run is True
        assert args.verbose is True
        assert args.user == "me"
        assert args.password is None

    def test_main_runs_sync(self, github_env):
        with patch("restbase.github_labels.sync_labels", AsyncMock(return_value={})) as sync:
            assert main(["seattlerb", "--dry-run"]) == 0

        sync.assert_awaited_once()
        github, org = sync.await_args.args
        assert isinstance(github, GitHub)
        assert org == "seattlerb"
        assert sync.await_args.kwargs == {"dry_run": True}

    def test_main_reports_api_errors(self, github_env):
        error = GitHubError("Bad credentials")
        with patch("restbase.github_labels.sync_labels", AsyncMock(side_effect=error)):
            assert main(["seattlerb"]) == 1

    def test_main_without_credentials(self, monkeypatch, capsys):
        monkeypatch.delenv("GITHUB_USER", raising=False)
        monkeypatch.setattr("restbase.github.git_config", lambda key: "")

        assert main(["seattlerb"]) == 2
        assert "GITHUB_USER" in capsys.readouterr().err
