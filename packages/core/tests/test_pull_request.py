"""Tests for the GitHub code-host adapter."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from github import GithubException

from rulegate_core.errors import ExternalApiError
from rulegate_core.gh.pull_request import GitHubHost
from rulegate_core.models import FileStatus, InlineComment, PullRequestEvent, Severity, ViolationType


def _gh_file(filename, status="modified", patch="@@ -1 +1 @@\n+x"):
    return SimpleNamespace(filename=filename, status=status, patch=patch, additions=1, deletions=0)


def _host():
    client = MagicMock()
    pr = client.get_repo.return_value.get_pull.return_value
    return GitHubHost(token="t", client=client), client, pr


class TestGitHubHost:
    def test_pull_is_fetched_once_per_pr(self):
        host, client, pr = _host()
        pr.get_files.return_value = []
        pr.get_review_comments.return_value = []

        host.list_changed_files("o/r", 1)
        host.list_existing_review_comments("o/r", 1)

        client.get_repo.assert_called_once_with("o/r")
        client.get_repo.return_value.get_pull.assert_called_once_with(1)

    def test_changed_files_are_sorted_and_typed(self):
        host, _, pr = _host()
        pr.get_files.return_value = [
            _gh_file("z.py"),
            _gh_file("a.png", status="added", patch=None),
            _gh_file("m.py", status="copied"),
        ]

        files = host.list_changed_files("o/r", 1)

        assert [f.path for f in files] == ["a.png", "m.py", "z.py"]
        assert files[0].status is FileStatus.ADDED
        assert files[0].patch is None
        assert files[1].status is FileStatus.MODIFIED

    def test_existing_comment_falls_back_to_original_line(self):
        host, _, pr = _host()
        pr.get_review_comments.return_value = [
            SimpleNamespace(path="a.py", line=None, original_line=7, body="**[security]** x"),
            SimpleNamespace(path="b.py", line=3, original_line=2, body=None),
        ]

        comments = host.list_existing_review_comments("o/r", 1)

        assert [(c.path, c.line, c.body) for c in comments] == [("a.py", 7, "**[security]** x"), ("b.py", 3, "")]

    def test_submit_review_sends_positions(self):
        host, _, pr = _host()
        pr.create_review.return_value = SimpleNamespace(id=99)
        comment = InlineComment("a.py", 4, "**[security]** x", 2, ViolationType.SECURITY, Severity.ERROR)

        review_id = host.submit_review("o/r", 1, "REQUEST_CHANGES", "body", [comment])

        assert review_id == 99
        pr.create_review.assert_called_once_with(
            body="body",
            event="REQUEST_CHANGES",
            comments=[{"path": "a.py", "position": 4, "body": "**[security]** x"}],
        )

    def test_submit_review_without_comments_omits_the_key(self):
        host, _, pr = _host()
        pr.create_review.return_value = SimpleNamespace(id=1)
        host.submit_review("o/r", 1, "APPROVE", "ok", [])
        pr.create_review.assert_called_once_with(body="ok", event="APPROVE")

    def test_request_reviewers(self):
        host, _, pr = _host()
        host.request_reviewers("o/r", 1, ["alice"])
        pr.create_review_request.assert_called_once_with(reviewers=["alice"])

    def test_request_reviewers_noop_when_empty(self):
        host, _, pr = _host()
        host.request_reviewers("o/r", 1, [])
        pr.create_review_request.assert_not_called()

    def test_acting_login(self):
        host, client, _ = _host()
        client.get_user.return_value.login = "rulegate-bot"
        assert host.get_acting_login() == "rulegate-bot"

    def test_github_errors_become_external_api_errors(self):
        host, _, pr = _host()
        pr.create_review.side_effect = GithubException(422, {"message": "Unprocessable"}, None)
        with pytest.raises(ExternalApiError, match="Could not submit APPROVE review"):
            host.submit_review("o/r", 1, "APPROVE", "ok", [])

    def test_missing_pull_request(self):
        host, client, _ = _host()
        client.get_repo.return_value.get_pull.side_effect = GithubException(404, {"message": "Not Found"}, None)
        with pytest.raises(ExternalApiError, match="not found"):
            host.get_pull_request_event("o/r", 5)


class TestPullRequestEvent:
    PAYLOAD = {
        "action": "opened",
        "repository": {"full_name": "acme/api"},
        "pull_request": {
            "number": 12,
            "title": "Add login",
            "body": None,
            "user": {"login": "dev1"},
            "head": {"ref": "feature/login", "sha": "abc"},
            "base": {"ref": "main"},
            "state": "open",
            "draft": True,
            "changed_files": 3,
            "additions": 40,
            "deletions": 2,
        },
    }

    def test_from_webhook(self):
        event = PullRequestEvent.from_webhook(self.PAYLOAD)
        assert (event.repo, event.number, event.author) == ("acme/api", 12, "dev1")
        assert (event.head_ref, event.base_ref, event.head_sha) == ("feature/login", "main", "abc")
        assert event.body == ""
        assert event.draft is True
        assert event.changed_files == 3

    def test_from_pull(self):
        pr = MagicMock()
        pr.number = 7
        pr.title = "Fix"
        pr.body = "desc"
        pr.user.login = "dev2"
        pr.head.ref, pr.head.sha, pr.base.ref = "fix", "def", "main"
        pr.state = "open"
        pr.draft = False
        pr.changed_files, pr.additions, pr.deletions = 1, 2, 3

        event = PullRequestEvent.from_pull("acme/api", pr)

        assert (event.number, event.author, event.draft) == (7, "dev2", False)
        assert (event.additions, event.deletions) == (2, 3)
