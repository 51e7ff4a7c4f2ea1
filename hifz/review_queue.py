"""
Due-review filtering and ordering.

Works on anything with a ``next_review_at`` attribute, so the same functions
serve plain srs.ReviewState values and ReviewSchedule model instances.
"""

import math
from datetime import datetime

from .srs import utcnow


def due_now(states, now: datetime | None = None):
    """
    Return every state whose next_review_at is at or before now.

    Input order is preserved and the input is left untouched.
    """
    if now is None:
        now = utcnow()
    return [state for state in states if state.next_review_at <= now]


def prioritize(states):
    """
    Order states most overdue first (oldest next_review_at first).

    sorted() is stable, so states due at the same moment keep their original
    relative order. There is no secondary key.
    """
    return sorted(states, key=lambda s: s.next_review_at)


def due_reviews(states, now: datetime | None = None, limit: int | None = None):
    """Due states, most overdue first, optionally capped (0 or None = unlimited)."""
    reviews = prioritize(due_now(states, now))
    if limit and limit > 0:
        reviews = reviews[:limit]
    return reviews


def is_overdue(state, now: datetime | None = None) -> bool:
    if now is None:
        now = utcnow()
    return state.next_review_at < now


def days_until_review(state, now: datetime | None = None) -> int:
    """Whole days until the state is due; 0 once it is due."""
    if now is None:
        now = utcnow()
    remaining = (state.next_review_at - now).total_seconds() / 86400
    return max(0, math.floor(remaining))
