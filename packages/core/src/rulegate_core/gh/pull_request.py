from __future__ import annotations

import logging

from github import Auth, Github, GithubException

from rulegate_core.errors import ExternalApiError
from rulegate_core.models import ExistingComment, FileChange, InlineComment, PullRequestEvent

logger = logging.getLogger(__name__)


def get_repo(repo_name: str, token: str, timeout: float = 60.0):
    return Github(auth=Auth.Token(token), timeout=int(timeout)).get_repo(repo_name)


def get_pull_requests(repo, state: str = "open"):
    return repo.get_pulls(state=state)


class GitHubHost:
    """Code-host adapter over PyGithub.

    Every method raises ExternalApiError on a GitHub failure so callers deal
    with one error type regardless of the HTTP client underneath.
    """

    def __init__(self, token: str, timeout: float = 60.0, client: Github | None = None):
        self._gh = client or Github(auth=Auth.Token(token), timeout=int(timeout))
        self._pulls: dict[tuple[str, int], object] = {}

    def _pull(self, repo: str, pr_number: int):
        key = (repo, pr_number)
        if key not in self._pulls:
            self._pulls[key] = self._gh.get_repo(repo).get_pull(pr_number)
        return self._pulls[key]

    def get_pull_request_event(self, repo: str, pr_number: int) -> PullRequestEvent:
        try:
            return PullRequestEvent.from_pull(repo, self._pull(repo, pr_number))
        except GithubException as e:
            raise ExternalApiError(f"PR #{pr_number} not found in {repo}: {e}") from e

    def list_changed_files(self, repo: str, pr_number: int) -> list[FileChange]:
        try:
            files = self._pull(repo, pr_number).get_files()
            return sorted((FileChange.from_github(f) for f in files), key=lambda f: f.path)
        except GithubException as e:
            raise ExternalApiError(f"Could not list files of {repo}#{pr_number}: {e}") from e

    def list_existing_review_comments(self, repo: str, pr_number: int) -> list[ExistingComment]:
        try:
            return [ExistingComment.from_github(c) for c in self._pull(repo, pr_number).get_review_comments()]
        except GithubException as e:
            raise ExternalApiError(f"Could not list review comments of {repo}#{pr_number}: {e}") from e

    def submit_review(
        self,
        repo: str,
        pr_number: int,
        event: str,
        body: str,
        comments: list[InlineComment],
    ) -> int:
        """Create one review and return its id."""
        kwargs = {"body": body, "event": event}
        if comments:
            kwargs["comments"] = [c.to_api() for c in comments]
        try:
            review = self._pull(repo, pr_number).create_review(**kwargs)
        except GithubException as e:
            raise ExternalApiError(f"Could not submit {event} review on {repo}#{pr_number}: {e}") from e
        return review.id

    def request_reviewers(self, repo: str, pr_number: int, usernames: list[str]) -> None:
        if not usernames:
            return
        try:
            self._pull(repo, pr_number).create_review_request(reviewers=usernames)
        except GithubException as e:
            raise ExternalApiError(f"Could not request reviewers on {repo}#{pr_number}: {e}") from e

    def get_acting_login(self) -> str:
        """Login of the identity the token belongs to."""
        try:
            return self._gh.get_user().login
        except GithubException as e:
            raise ExternalApiError(f"Could not resolve the authenticated user: {e}") from e
