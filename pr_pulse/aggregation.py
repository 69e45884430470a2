"""Reduction of raw check-runs and reviews into display-ready statuses.

Everything in this module is a pure function: the same input always gives
the same output and nothing is mutated.
"""

from typing import Dict, Iterable, List, Sequence

from .models import (
    CHECK_FAILURE, CHECK_PENDING, CHECK_SUCCESS, CHECK_UNKNOWN,
    REVIEW_APPROVED, REVIEW_CHANGES_REQUESTED, REVIEW_PENDING,
    CheckRun, CheckStatus, PullRequest, Reviewer, ReviewStatus,
)


# A known failure wins over runs that are still in progress
FAILURE_CONCLUSIONS = frozenset({'failure', 'timed_out', 'cancelled', 'startup_failure', 'action_required'})
SUCCESS_CONCLUSIONS = frozenset({'success', 'skipped', 'neutral'})

# Review states that carry no verdict
NON_BINDING_REVIEW_STATES = frozenset({'PENDING', 'COMMENTED'})

APPROVED = 'APPROVED'
CHANGES_REQUESTED = 'CHANGES_REQUESTED'

# Combined health buckets
HEALTH_HEALTHY = 'healthy'
HEALTH_ATTENTION = 'attention'
HEALTH_BLOCKED = 'blocked'


def reduce_check_runs(runs: Sequence[CheckRun]) -> CheckStatus:
    """Reduce check-runs to a single CI status.

    Args:
        runs: Check-runs in the order the provider reported them

    Returns:
        CheckStatus with the overall state and the runs unchanged
    """
    runs = tuple(runs)

    if not runs:
        return CheckStatus(overall=CHECK_UNKNOWN, runs=())

    if any(run.conclusion in FAILURE_CONCLUSIONS for run in runs):
        return CheckStatus(overall=CHECK_FAILURE, runs=runs)

    if all(run.status == 'completed' for run in runs):
        # Terminal states like "stale" are not a success
        if all(run.conclusion in SUCCESS_CONCLUSIONS for run in runs):
            return CheckStatus(overall=CHECK_SUCCESS, runs=runs)
        return CheckStatus(overall=CHECK_PENDING, runs=runs)

    return CheckStatus(overall=CHECK_PENDING, runs=runs)


def latest_verdicts(reviews: Iterable[Reviewer]) -> List[Reviewer]:
    """Collapse submitted reviews to the latest binding verdict per login.

    Reviews must be in chronological order. A reviewer keeps the position of
    their first binding review.

    Args:
        reviews: Submitted reviews, oldest first

    Returns:
        One Reviewer per login
    """
    latest: Dict[str, Reviewer] = {}
    for review in reviews:
        if review.state in NON_BINDING_REVIEW_STATES:
            continue
        latest[review.login] = review
    return list(latest.values())


def reduce_reviews(reviews: Sequence[Reviewer], requested_reviewer_logins: Sequence[str] = ()) -> ReviewStatus:
    """Reduce submitted reviews to a single review status.

    A reviewer who has been re-requested loses their previous verdict, and
    the PR cannot read as approved while any request is outstanding.

    Args:
        reviews: Submitted reviews, oldest first
        requested_reviewer_logins: Logins currently awaiting a fresh review

    Returns:
        ReviewStatus with the remaining reviewers and the pending logins
    """
    pending = tuple(dict.fromkeys(requested_reviewer_logins))
    re_requested = set(pending)

    reviewers = tuple(r for r in latest_verdicts(reviews) if r.login not in re_requested)
    has_changes_requested = any(r.state == CHANGES_REQUESTED for r in reviewers)

    if pending:
        overall = REVIEW_CHANGES_REQUESTED if has_changes_requested else REVIEW_PENDING
    elif reviewers:
        if has_changes_requested:
            overall = REVIEW_CHANGES_REQUESTED
        elif all(r.state == APPROVED for r in reviewers):
            overall = REVIEW_APPROVED
        else:
            overall = REVIEW_PENDING
    else:
        overall = REVIEW_PENDING

    return ReviewStatus(overall=overall, reviewers=reviewers, pending_reviewers=pending)


def combined_health(pull_request: PullRequest) -> str:
    """Traffic-light bucket for a PR, derived from checks and reviews.

    Returns:
        'healthy' when checks pass (or none exist) and the PR is approved,
        'blocked' when checks fail and the PR is not approved,
        'attention' otherwise
    """
    checks_ok = pull_request.checks.overall in (CHECK_SUCCESS, CHECK_UNKNOWN)
    approved = pull_request.reviews.overall == REVIEW_APPROVED

    if checks_ok and approved:
        return HEALTH_HEALTHY
    if pull_request.checks.overall == CHECK_FAILURE and not approved:
        return HEALTH_BLOCKED
    return HEALTH_ATTENTION
