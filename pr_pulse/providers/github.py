"""GitHub provider backed by the GitHub REST API."""

import logging
import re
from typing import Dict, List, Sequence

from ..aggregation import reduce_check_runs, reduce_reviews
from ..api_client import DEFAULT_TIMEOUT_SECONDS, APIClient
from ..errors import AuthError, ProviderAPIError, TransientFetchError
from ..models import (
    STATE_MERGED, STATE_OPEN,
    ChangeStats, CheckRun, CheckStatus, PullRequest, PullRequestDetail, Reviewer, ReviewStatus, User,
)
from .enrichment import enrich_pull_requests


DEFAULT_BASE_URL = 'https://api.github.com'

OWN_PRS_QUERY = 'author:@me type:pr state:open'
REVIEW_REQUESTED_QUERY = 'review-requested:@me type:pr state:open'

_REPO_FROM_URL = re.compile(r'repos/(.+)$')


class GitHubProvider:
    """Provider adapter for github.com and GitHub Enterprise."""

    name = 'github'
    display_name = 'GitHub'

    def __init__(self, token: str, base_url: str = None, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        """Initialize the GitHub provider.

        Args:
            token: Personal access token, sent as a bearer token
            base_url: API root (defaults to https://api.github.com)
            timeout: Per-request timeout in seconds
        """
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip('/')
        self.api_client = APIClient(self.base_url, token, timeout=timeout)

    def authenticate(self) -> User:
        return self.get_user()

    def get_user(self) -> User:
        try:
            data = self.api_client.get_json('/user')
        except TransientFetchError:
            # Rate-limited 403s say nothing about the token
            raise
        except ProviderAPIError as e:
            # A token without access to /user cannot poll anything
            if e.status_code == 403:
                raise AuthError(f"Token was refused by {self.base_url}: {e}") from e
            raise

        login = data.get('login', '')
        return User(
            login=login,
            display_name=data.get('name') or login,
            avatar_url=data.get('avatar_url', ''),
        )

    def list_own_open_pull_requests(self) -> List[PullRequest]:
        return self._search_and_enrich(OWN_PRS_QUERY)

    def list_review_requested_pull_requests(self) -> List[PullRequest]:
        return self._search_and_enrich(REVIEW_REQUESTED_QUERY)

    def get_pull_request_detail(self, repo: str, number: int) -> PullRequestDetail:
        data = self.api_client.get_json(f'/repos/{repo}/pulls/{number}')
        head = data.get('head') or {}

        return PullRequestDetail(
            branch_name=head.get('ref', ''),
            head_sha=head.get('sha', ''),
            changes=ChangeStats(
                additions=data.get('additions') or 0,
                deletions=data.get('deletions') or 0,
                files_changed=data.get('changed_files') or 0,
            ),
            # Who has been (re-)requested for review
            requested_reviewer_logins=tuple(r['login'] for r in data.get('requested_reviewers') or []),
        )

    def get_check_status(self, repo: str, number: int, head_sha: str = '') -> CheckStatus:
        # Check-runs hang off the head commit; resolve it when the caller has not
        sha = head_sha
        if not sha:
            pr = self.api_client.get_json(f'/repos/{repo}/pulls/{number}')
            sha = (pr.get('head') or {}).get('sha')

        if not sha:
            return CheckStatus.unknown()

        data = self.api_client.get_json(f'/repos/{repo}/commits/{sha}/check-runs', {'per_page': 100})

        runs = [
            CheckRun(name=run.get('name', ''), status=run.get('status'), conclusion=run.get('conclusion'))
            for run in data.get('check_runs') or []
        ]
        return reduce_check_runs(runs)

    def get_review_status(self, repo: str, number: int,
                          requested_reviewer_logins: Sequence[str] = ()) -> ReviewStatus:
        # The reviews endpoint lists reviews in chronological order
        data = self.api_client.get_paginated(f'/repos/{repo}/pulls/{number}/reviews')

        reviews = [
            Reviewer(
                login=(review.get('user') or {}).get('login', ''),
                avatar_url=(review.get('user') or {}).get('avatar_url', ''),
                state=review.get('state', ''),
            )
            for review in data
        ]
        return reduce_reviews(reviews, requested_reviewer_logins)

    def close(self):
        self.api_client.close()

    def _search(self, query: str) -> List[Dict]:
        data = self.api_client.get_json('/search/issues', {
            'q': query,
            'sort': 'updated',
            'order': 'desc',
            'per_page': 100,
        })
        items = data.get('items') or []
        logging.debug(f"Search '{query}' returned {len(items)} PRs")
        return items

    def _search_and_enrich(self, query: str) -> List[PullRequest]:
        pull_requests = [self._transform_pull_request(issue) for issue in self._search(query)]
        outcomes = enrich_pull_requests(self, pull_requests)
        return [outcome.pull_request for outcome in outcomes]

    def _transform_pull_request(self, issue: Dict) -> PullRequest:
        """Build an unenriched PullRequest from a search/issues hit."""
        match = _REPO_FROM_URL.search(issue.get('repository_url') or '')
        repo_full_name = match.group(1) if match else ''

        user = issue.get('user') or {}
        login = user.get('login', '')

        state = issue.get('state', STATE_OPEN)
        if (issue.get('pull_request') or {}).get('merged_at'):
            state = STATE_MERGED

        return PullRequest(
            id=f"{self.name}-{issue['id']}",
            provider=self.name,
            number=issue['number'],
            title=issue.get('title', ''),
            url=issue.get('html_url', ''),
            repo_full_name=repo_full_name,
            author=User(login=login, display_name=login, avatar_url=user.get('avatar_url', '')),
            state=state,
            created_at=issue.get('created_at', ''),
            updated_at=issue.get('updated_at', ''),
        )
