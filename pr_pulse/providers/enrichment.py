"""Per-PR enrichment pipeline shared by all providers.

Search results only carry the basic fields of a PR. For every hit we fetch
the detail first (it yields the logins re-requested for review), then the
check status and the review status concurrently. Each sub-fetch has its own
error boundary so a single failing call degrades one PR and never the batch.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, List, Sequence, Tuple

from ..errors import AuthError
from ..models import (
    SUBFETCH_CHECKS, SUBFETCH_DETAIL, SUBFETCH_REVIEWS,
    CheckStatus, ItemOutcome, PullRequest, ReviewStatus,
)
from .base import ProviderAdapter


MAX_ITEM_WORKERS = 10


def enrich_pull_requests(adapter: ProviderAdapter, pull_requests: Sequence[PullRequest]) -> List[ItemOutcome]:
    """Enrich search hits in parallel, one error boundary per PR.

    Args:
        adapter: Provider used for the detail, check and review calls
        pull_requests: Unenriched PRs built from search results

    Returns:
        One ItemOutcome per input PR, in input order

    Raises:
        AuthError: The credential was rejected during any sub-fetch
    """
    if not pull_requests:
        return []

    outcomes: List[ItemOutcome] = [None] * len(pull_requests)
    max_workers = min(MAX_ITEM_WORKERS, len(pull_requests))

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {
            executor.submit(enrich_pull_request, adapter, pr): index
            for index, pr in enumerate(pull_requests)
        }

        for future in as_completed(future_to_index):
            # Each result lands in its own slot, so no locking is needed
            outcomes[future_to_index[future]] = future.result()

    degraded = sum(1 for outcome in outcomes if outcome.degraded)
    if degraded:
        logging.warning(f"{degraded}/{len(outcomes)} PRs from {adapter.display_name} were only partially enriched")

    return outcomes


def enrich_pull_request(adapter: ProviderAdapter, pr: PullRequest) -> ItemOutcome:
    """Run detail, then checks and reviews concurrently, for a single PR."""
    repo, number = pr.repo_full_name, pr.number

    try:
        detail = adapter.get_pull_request_detail(repo, number)
    except AuthError:
        raise
    except Exception as e:
        logging.warning(f"Failed to get details for PR #{number} in {repo}: {e}")
        return ItemOutcome(
            pull_request=pr.with_enrichment(failures=(SUBFETCH_DETAIL,)),
            failures=(SUBFETCH_DETAIL,),
            errors=(str(e),),
        )

    requested = detail.requested_reviewer_logins

    with ThreadPoolExecutor(max_workers=2) as executor:
        future_checks = executor.submit(adapter.get_check_status, repo, number, detail.head_sha)
        future_reviews = executor.submit(adapter.get_review_status, repo, number, requested)

        checks, checks_error = _settle(future_checks, CheckStatus.unknown, f"checks for PR #{number} in {repo}")
        reviews, reviews_error = _settle(
            future_reviews, lambda: ReviewStatus.pending(requested), f"reviews for PR #{number} in {repo}"
        )

    failures: Tuple[str, ...] = ()
    errors: Tuple[str, ...] = ()
    if checks_error is not None:
        failures += (SUBFETCH_CHECKS,)
        errors += (checks_error,)
    if reviews_error is not None:
        failures += (SUBFETCH_REVIEWS,)
        errors += (reviews_error,)

    return ItemOutcome(
        pull_request=pr.with_enrichment(detail=detail, checks=checks, reviews=reviews, failures=failures),
        failures=failures,
        errors=errors,
    )


def _settle(future: Future, default: Callable, what: str):
    """Return (result, None) or (default(), error message) for a sub-fetch."""
    try:
        return future.result(), None
    except AuthError:
        raise
    except Exception as e:
        logging.warning(f"Error fetching {what}: {e}")
        return default(), str(e)
