"""Console output of polling snapshots."""

from datetime import datetime, timezone
from typing import Optional, Sequence

from .aggregation import HEALTH_BLOCKED, HEALTH_HEALTHY, combined_health
from .display import (
    extract_jira_ticket, format_lines_changed, format_relative_time,
    get_check_status_display, get_jira_url, get_review_status_display, truncate,
)
from .models import DEFAULT_VISIBLE_COLUMNS, TAB_MY_PRS, TAB_REVIEW_REQUESTS, PollingSnapshot, PullRequest


# ANSI color codes
GREEN = '\033[92m'
YELLOW = '\033[93m'
RED = '\033[91m'
CYAN = '\033[96m'
BOLD = '\033[1m'
RESET = '\033[0m'

HEALTH_COLORS = {
    HEALTH_HEALTHY: GREEN,
    HEALTH_BLOCKED: RED,
}


class OutputFormatter:
    """Formats and prints PR snapshots."""

    def __init__(self, username: str = '', pinned_tab: str = TAB_MY_PRS, jira_base_url: str = '',
                 visible_columns: Sequence[str] = DEFAULT_VISIBLE_COLUMNS, use_color: bool = True):
        """Initialize the output formatter.

        Args:
            username: Login of the authenticated user, shown in the header
            pinned_tab: List whose size drives the badge, marked in the output
            jira_base_url: Jira site for ticket links ('' to hide them)
            visible_columns: Columns to show; the title is always shown
            use_color: Whether to emit ANSI color codes
        """
        self.username = username
        self.pinned_tab = pinned_tab
        self.jira_base_url = jira_base_url
        self.visible_columns = frozenset(visible_columns)
        self.use_color = use_color

    def _color(self, color: str) -> str:
        return color if self.use_color else ''

    def print_summary(self, snapshot: PollingSnapshot, badge_count: Optional[int] = None):
        """Print both PR lists of a snapshot.

        Args:
            snapshot: Snapshot to print
            badge_count: Current badge count, shown in the header if given
        """
        print("\n" + "="*80)
        title = f"PULL REQUESTS FOR {self.username}" if self.username else "PULL REQUESTS"
        if badge_count is not None:
            title += f" [{badge_count}]"
        print(title)
        if snapshot.fetched_at:
            print(f"Last updated: {format_relative_time(_from_millis(snapshot.fetched_at))}")
        print("="*80)

        self._print_section("MY PULL REQUESTS", snapshot.my_prs, self.pinned_tab == TAB_MY_PRS)
        self._print_section("REVIEW REQUESTS", snapshot.review_requested_prs,
                            self.pinned_tab == TAB_REVIEW_REQUESTS)

    def _print_section(self, heading: str, prs: Sequence[PullRequest], pinned: bool):
        marker = " (pinned)" if pinned else ""
        print(f"\n{self._color(BOLD)}{heading}{marker}: {len(prs)}{self._color(RESET)}")
        print("-"*80)

        if not prs:
            print("  Nothing here.")
            return

        for pr in prs:
            print(self.format_pull_request(pr))

    def format_pull_request(self, pr: PullRequest) -> str:
        """Render one PR as a few indented lines."""
        health = combined_health(pr)
        color = self._color(HEALTH_COLORS.get(health, YELLOW))
        reset = self._color(RESET)

        checks = get_check_status_display(pr.checks.overall)
        reviews = get_review_status_display(pr.reviews.overall)

        reference = f"{pr.repo_full_name}#{pr.number}" if 'repo' in self.visible_columns else f"#{pr.number}"
        lines = [f"{color}●{reset} {truncate(pr.title, 60)} ({reference})"]

        details = []
        if 'checks' in self.visible_columns:
            details.append(f"{checks['icon']} {checks['label']}")
        if 'review_status' in self.visible_columns:
            details.append(f"{reviews['icon']} {reviews['label']}")
        if 'changes' in self.visible_columns:
            details.append(format_lines_changed(pr.changes.additions, pr.changes.deletions))
        if 'author' in self.visible_columns:
            details.append(f"by {pr.author.login}")
        if details:
            lines.append("    " + "  ".join(details))

        if pr.reviews.pending_reviewers and 'review_status' in self.visible_columns:
            lines.append(f"    Waiting on: {', '.join(pr.reviews.pending_reviewers)}")

        ticket = extract_jira_ticket(pr.branch_name) if 'jira' in self.visible_columns else None
        jira_url = get_jira_url(ticket, self.jira_base_url) if ticket else ''
        if jira_url:
            lines.append(f"    Jira: {jira_url}")

        lines.append(f"    {self._color(CYAN)}{pr.url}{reset}")

        if pr.degraded:
            lines.append(f"    {self._color(YELLOW)}Partial data: could not load {', '.join(pr.enrichment_failures)}{reset}")

        return "\n".join(lines)


def _from_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
