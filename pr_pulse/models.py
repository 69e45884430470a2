"""Provider-agnostic data models for pull request polling."""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple


# Overall check states
CHECK_SUCCESS = 'success'
CHECK_FAILURE = 'failure'
CHECK_PENDING = 'pending'
CHECK_UNKNOWN = 'unknown'  # No check-runs reported at all

# Overall review states
REVIEW_APPROVED = 'approved'
REVIEW_CHANGES_REQUESTED = 'changes_requested'
REVIEW_PENDING = 'pending'

# Pull request lifecycle states
STATE_OPEN = 'open'
STATE_MERGED = 'merged'
STATE_CLOSED = 'closed'

# Names of the per-PR sub-fetches, used to report degraded items
SUBFETCH_DETAIL = 'detail'
SUBFETCH_CHECKS = 'checks'
SUBFETCH_REVIEWS = 'reviews'

# Lists a user can pin for the badge
TAB_MY_PRS = 'my_prs'
TAB_REVIEW_REQUESTS = 'review_requests'
PINNED_TABS = (TAB_MY_PRS, TAB_REVIEW_REQUESTS)

DEFAULT_POLLING_INTERVAL_MS = 600000
DEFAULT_VISIBLE_COLUMNS = ('title', 'author', 'checks', 'review_status', 'repo', 'changes', 'jira')


@dataclass(frozen=True)
class User:
    """An account on the code-hosting provider."""
    login: str
    display_name: str = ''
    avatar_url: str = ''

    def to_dict(self) -> Dict:
        return {'login': self.login, 'display_name': self.display_name, 'avatar_url': self.avatar_url}

    @classmethod
    def from_dict(cls, data: Dict) -> 'User':
        login = data.get('login', '')
        return cls(
            login=login,
            display_name=data.get('display_name') or login,
            avatar_url=data.get('avatar_url', ''),
        )


@dataclass(frozen=True)
class ChangeStats:
    """Size of a pull request."""
    additions: int = 0
    deletions: int = 0
    files_changed: int = 0

    def to_dict(self) -> Dict:
        return {'additions': self.additions, 'deletions': self.deletions, 'files_changed': self.files_changed}

    @classmethod
    def from_dict(cls, data: Dict) -> 'ChangeStats':
        return cls(
            additions=data.get('additions', 0),
            deletions=data.get('deletions', 0),
            files_changed=data.get('files_changed', 0),
        )


@dataclass(frozen=True)
class CheckRun:
    """One CI job as reported by the provider, unreduced."""
    name: str
    status: Optional[str] = None
    conclusion: Optional[str] = None

    def to_dict(self) -> Dict:
        return {'name': self.name, 'status': self.status, 'conclusion': self.conclusion}

    @classmethod
    def from_dict(cls, data: Dict) -> 'CheckRun':
        return cls(name=data.get('name', ''), status=data.get('status'), conclusion=data.get('conclusion'))


@dataclass(frozen=True)
class CheckStatus:
    """Reduced CI status of a pull request."""
    overall: str = CHECK_UNKNOWN
    runs: Tuple[CheckRun, ...] = ()

    @classmethod
    def unknown(cls) -> 'CheckStatus':
        """Safe default used when checks could not be fetched."""
        return cls(overall=CHECK_UNKNOWN, runs=())

    def to_dict(self) -> Dict:
        return {'overall': self.overall, 'runs': [run.to_dict() for run in self.runs]}

    @classmethod
    def from_dict(cls, data: Dict) -> 'CheckStatus':
        return cls(
            overall=data.get('overall', CHECK_UNKNOWN),
            runs=tuple(CheckRun.from_dict(run) for run in data.get('runs', [])),
        )


@dataclass(frozen=True)
class Reviewer:
    """A reviewer's latest binding verdict."""
    login: str
    avatar_url: str = ''
    state: str = ''

    def to_dict(self) -> Dict:
        return {'login': self.login, 'avatar_url': self.avatar_url, 'state': self.state}

    @classmethod
    def from_dict(cls, data: Dict) -> 'Reviewer':
        return cls(login=data.get('login', ''), avatar_url=data.get('avatar_url', ''), state=data.get('state', ''))


@dataclass(frozen=True)
class ReviewStatus:
    """Reduced review status of a pull request.

    A login listed in ``pending_reviewers`` never appears in ``reviewers``:
    a re-request supersedes the earlier verdict.
    """
    overall: str = REVIEW_PENDING
    reviewers: Tuple[Reviewer, ...] = ()
    pending_reviewers: Tuple[str, ...] = ()

    @classmethod
    def pending(cls, requested_reviewer_logins=()) -> 'ReviewStatus':
        """Safe default used when reviews could not be fetched."""
        return cls(overall=REVIEW_PENDING, reviewers=(), pending_reviewers=tuple(requested_reviewer_logins))

    def to_dict(self) -> Dict:
        return {
            'overall': self.overall,
            'reviewers': [reviewer.to_dict() for reviewer in self.reviewers],
            'pending_reviewers': list(self.pending_reviewers),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'ReviewStatus':
        return cls(
            overall=data.get('overall', REVIEW_PENDING),
            reviewers=tuple(Reviewer.from_dict(r) for r in data.get('reviewers', [])),
            pending_reviewers=tuple(data.get('pending_reviewers', [])),
        )


@dataclass(frozen=True)
class PullRequestDetail:
    """Mutable metrics of a single PR, fetched separately from search."""
    branch_name: str = ''
    head_sha: str = ''
    changes: ChangeStats = field(default_factory=ChangeStats)
    requested_reviewer_logins: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PullRequest:
    """A pull request normalized across providers.

    Created fresh every polling cycle and never mutated. ``id`` is
    provider-prefixed and stable across cycles for the same PR.
    """
    id: str
    provider: str
    number: int
    title: str
    url: str
    repo_full_name: str
    author: User
    state: str = STATE_OPEN
    branch_name: str = ''
    changes: ChangeStats = field(default_factory=ChangeStats)
    checks: CheckStatus = field(default_factory=CheckStatus.unknown)
    reviews: ReviewStatus = field(default_factory=ReviewStatus)
    created_at: str = ''
    updated_at: str = ''
    enrichment_failures: Tuple[str, ...] = ()

    @property
    def degraded(self) -> bool:
        """True when at least one sub-fetch failed for this PR."""
        return bool(self.enrichment_failures)

    def with_enrichment(self, detail: Optional[PullRequestDetail] = None, checks: Optional[CheckStatus] = None,
                        reviews: Optional[ReviewStatus] = None, failures: Tuple[str, ...] = ()) -> 'PullRequest':
        """Return a copy carrying the given sub-fetch results."""
        changes = {}
        if detail is not None:
            changes['branch_name'] = detail.branch_name
            changes['changes'] = detail.changes
        if checks is not None:
            changes['checks'] = checks
        if reviews is not None:
            changes['reviews'] = reviews
        return replace(self, enrichment_failures=tuple(failures), **changes)

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'provider': self.provider,
            'number': self.number,
            'title': self.title,
            'url': self.url,
            'repo_full_name': self.repo_full_name,
            'author': self.author.to_dict(),
            'state': self.state,
            'branch_name': self.branch_name,
            'changes': self.changes.to_dict(),
            'checks': self.checks.to_dict(),
            'reviews': self.reviews.to_dict(),
            'created_at': self.created_at,
            'updated_at': self.updated_at,
            'enrichment_failures': list(self.enrichment_failures),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'PullRequest':
        return cls(
            id=data['id'],
            provider=data.get('provider', ''),
            number=data.get('number', 0),
            title=data.get('title', ''),
            url=data.get('url', ''),
            repo_full_name=data.get('repo_full_name', ''),
            author=User.from_dict(data.get('author', {})),
            state=data.get('state', STATE_OPEN),
            branch_name=data.get('branch_name', ''),
            changes=ChangeStats.from_dict(data.get('changes', {})),
            checks=CheckStatus.from_dict(data.get('checks', {})),
            reviews=ReviewStatus.from_dict(data.get('reviews', {})),
            created_at=data.get('created_at', ''),
            updated_at=data.get('updated_at', ''),
            enrichment_failures=tuple(data.get('enrichment_failures', [])),
        )


@dataclass(frozen=True)
class ItemOutcome:
    """Result of enriching one search hit: either fully enriched or degraded."""
    pull_request: PullRequest
    failures: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = ()

    @property
    def enriched(self) -> bool:
        return not self.failures

    @property
    def degraded(self) -> bool:
        return bool(self.failures)


@dataclass(frozen=True)
class PollingSnapshot:
    """Complete result of one polling cycle, replaced wholesale."""
    my_prs: Tuple[PullRequest, ...] = ()
    review_requested_prs: Tuple[PullRequest, ...] = ()
    fetched_at: Optional[int] = None  # epoch milliseconds

    @classmethod
    def empty(cls) -> 'PollingSnapshot':
        return cls()

    def count_for(self, tab: str) -> int:
        """Number of PRs in the given list (unknown tabs count as my PRs)."""
        if tab == TAB_REVIEW_REQUESTS:
            return len(self.review_requested_prs)
        return len(self.my_prs)

    def to_dict(self) -> Dict:
        return {
            'my_prs': [pr.to_dict() for pr in self.my_prs],
            'review_requested_prs': [pr.to_dict() for pr in self.review_requested_prs],
            'fetched_at': self.fetched_at,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'PollingSnapshot':
        if not data:
            return cls.empty()
        return cls(
            my_prs=tuple(PullRequest.from_dict(pr) for pr in data.get('my_prs', [])),
            review_requested_prs=tuple(PullRequest.from_dict(pr) for pr in data.get('review_requested_prs', [])),
            fetched_at=data.get('fetched_at'),
        )


@dataclass(frozen=True)
class ProviderConfig:
    """Credential and endpoint for the active provider."""
    type: str
    token: str
    base_url: str = ''
    user: Optional[User] = None

    def __repr__(self) -> str:
        # Never leak the token into logs
        login = self.user.login if self.user else None
        return f"ProviderConfig(type={self.type!r}, token='***', base_url={self.base_url!r}, user={login!r})"

    def to_dict(self) -> Dict:
        return {
            'type': self.type,
            'token': self.token,
            'base_url': self.base_url,
            'user': self.user.to_dict() if self.user else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'ProviderConfig':
        user = data.get('user')
        return cls(
            type=data.get('type', ''),
            token=data.get('token', ''),
            base_url=data.get('base_url', ''),
            user=User.from_dict(user) if user else None,
        )


@dataclass(frozen=True)
class Settings:
    """User display and polling preferences."""
    pinned_tab: str = TAB_MY_PRS
    polling_interval_ms: int = DEFAULT_POLLING_INTERVAL_MS
    jira_base_url: str = ''
    visible_columns: Tuple[str, ...] = DEFAULT_VISIBLE_COLUMNS

    def to_dict(self) -> Dict:
        return {
            'pinned_tab': self.pinned_tab,
            'polling_interval_ms': self.polling_interval_ms,
            'jira_base_url': self.jira_base_url,
            'visible_columns': list(self.visible_columns),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'Settings':
        data = data or {}
        defaults = cls()
        return cls(
            pinned_tab=data.get('pinned_tab', defaults.pinned_tab),
            polling_interval_ms=data.get('polling_interval_ms', defaults.polling_interval_ms),
            jira_base_url=data.get('jira_base_url', defaults.jira_base_url),
            visible_columns=tuple(data.get('visible_columns', defaults.visible_columns)),
        )

    def updated(self, **changes) -> 'Settings':
        """Return a copy with known keys changed; unknown keys are ignored."""
        known = {key: value for key, value in changes.items() if key in self.__dataclass_fields__}
        if 'visible_columns' in known:
            known['visible_columns'] = tuple(known['visible_columns'])
        return replace(self, **known)

