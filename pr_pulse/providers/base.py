"""Capability contract every code-hosting provider satisfies."""

from typing import List, Protocol, Sequence

from ..models import CheckStatus, PullRequest, PullRequestDetail, ReviewStatus, User


class ProviderAdapter(Protocol):
    """Uniform access to one code-hosting backend.

    Each call is an independent network round trip; adapters keep no state
    between calls besides their credential and HTTP session.
    """

    name: str
    display_name: str
    base_url: str

    def authenticate(self) -> User:
        """Validate the credential and return the identity it belongs to.

        Raises:
            AuthError: The credential is invalid or expired
        """
        ...

    def get_user(self) -> User:
        ...

    def list_own_open_pull_requests(self) -> List[PullRequest]:
        """Open PRs authored by the current identity, newest updated first."""
        ...

    def list_review_requested_pull_requests(self) -> List[PullRequest]:
        """Open PRs awaiting a review from the current identity, newest updated first."""
        ...

    def get_pull_request_detail(self, repo: str, number: int) -> PullRequestDetail:
        ...

    def get_check_status(self, repo: str, number: int, head_sha: str = '') -> CheckStatus:
        """Reduced CI status of the head commit (looked up when head_sha is empty)."""
        ...

    def get_review_status(self, repo: str, number: int,
                          requested_reviewer_logins: Sequence[str] = ()) -> ReviewStatus:
        ...

    def close(self) -> None:
        """Release pooled connections."""
        ...
