"""Views package for the hifz app."""

from .attempt import record_attempt
from .review import due_reviews, review_schedule
from .difficulty import suggested_difficulty
from .health import health_check

__all__ = [
    # Attempts
    'record_attempt',
    # Reviews
    'due_reviews',
    'review_schedule',
    # Difficulty
    'suggested_difficulty',
    # Health
    'health_check',
]
