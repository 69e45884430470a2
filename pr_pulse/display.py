"""Formatting helpers shared by the presentation layers."""

import re
from datetime import datetime, timezone
from typing import Dict, Optional, Union
from urllib.parse import urlparse

from .models import (
    CHECK_FAILURE, CHECK_PENDING, CHECK_SUCCESS,
    REVIEW_APPROVED, REVIEW_CHANGES_REQUESTED,
)


_JIRA_TICKET = re.compile(r'([A-Z]+-\d+)', re.IGNORECASE)
_ORIGIN = re.compile(r'^(https?://[^/]+)', re.IGNORECASE)


def extract_jira_ticket(branch_name: str) -> Optional[str]:
    """Extract a Jira ticket ID from a branch name.

    Supports patterns like feat/JIRA-1234/description, PROJ-123-fix-something
    and bugfix/abc-99/details.

    Args:
        branch_name: Git branch name

    Returns:
        Upper-cased ticket ID, or None
    """
    if not branch_name:
        return None
    match = _JIRA_TICKET.search(branch_name)
    return match.group(1).upper() if match else None


def sanitize_jira_url(url: str) -> str:
    """Reduce a user-provided Jira URL to its origin.

    https://company.atlassian.net/browse/PROJ-123 and company.atlassian.net
    both become https://company.atlassian.net.
    """
    if not url:
        return ''

    clean_url = url.strip()
    if not clean_url.startswith('http://') and not clean_url.startswith('https://'):
        clean_url = 'https://' + clean_url

    parsed = urlparse(clean_url)
    if parsed.scheme and parsed.netloc:
        return f"{parsed.scheme}://{parsed.netloc}"

    match = _ORIGIN.match(clean_url)
    return match.group(1) if match else clean_url


def get_jira_url(ticket_id: str, base_url: str) -> str:
    """Build the browse URL of a Jira ticket ('' when either part is missing)."""
    if not ticket_id or not base_url:
        return ''
    return f"{sanitize_jira_url(base_url)}/browse/{ticket_id}"


def format_lines_changed(additions: int, deletions: int) -> str:
    """Format lines changed as '+additions -deletions'."""
    return f"+{additions} -{deletions}"


def get_review_status_display(status: str) -> Dict[str, str]:
    """Label, icon and CSS-style class name for a review status."""
    if status == REVIEW_APPROVED:
        return {'label': 'Approved', 'icon': '✓', 'class_name': 'status-approved'}
    if status == REVIEW_CHANGES_REQUESTED:
        return {'label': 'Changes Requested', 'icon': '✗', 'class_name': 'status-changes'}
    return {'label': 'Pending Review', 'icon': '⏳', 'class_name': 'status-pending'}


def get_check_status_display(status: str) -> Dict[str, str]:
    """Label, icon and CSS-style class name for a check status."""
    if status == CHECK_SUCCESS:
        return {'label': 'Checks Passing', 'icon': '✓', 'class_name': 'checks-success'}
    if status == CHECK_FAILURE:
        return {'label': 'Checks Failing', 'icon': '✗', 'class_name': 'checks-failure'}
    if status == CHECK_PENDING:
        return {'label': 'Checks Running', 'icon': '⏳', 'class_name': 'checks-pending'}
    return {'label': 'No Checks', 'icon': '○', 'class_name': 'checks-unknown'}


def truncate(text: str, max_length: int = 50) -> str:
    if not text or len(text) <= max_length:
        return text
    return text[:max_length - 3] + '...'


def _parse_datetime(value: Union[str, datetime]) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        # GitHub timestamps end in Z, which fromisoformat rejects before 3.11
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_relative_time(value: Union[str, datetime], now: Optional[datetime] = None) -> str:
    """Format a timestamp relative to now, e.g. '2h ago'.

    Args:
        value: ISO 8601 string or datetime (naive values are taken as UTC)
        now: Reference time, defaults to the current UTC time

    Returns:
        'just now', 'Nm ago', 'Nh ago', 'Nd ago', or the date for a week or more
    """
    then = _parse_datetime(value)
    now = _parse_datetime(now) if now is not None else datetime.now(timezone.utc)

    diff_mins = int((now - then).total_seconds() // 60)
    diff_hours = diff_mins // 60
    diff_days = diff_hours // 24

    if diff_mins < 1:
        return 'just now'
    if diff_mins < 60:
        return f"{diff_mins}m ago"
    if diff_hours < 24:
        return f"{diff_hours}h ago"
    if diff_days < 7:
        return f"{diff_days}d ago"
    return then.strftime('%Y-%m-%d')
