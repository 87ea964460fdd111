"""Change detection on the upstream version token."""

from typing import Optional


def has_changed(version_token: int, last_seen_token: Optional[int]) -> bool:
    """
    Return True when a snapshot needs persisting.

    Exact equality only: a token lower than the last one seen (upstream
    rollback) still counts as a change.
    """
    return last_seen_token is None or version_token != last_seen_token
