"""
Spaced Repetition System (SRS) scheduling for memorization chunks.

This module implements an SM-2 derived update rule. After every attempt the
child makes on a chunk, the caller passes the chunk's current review state and
a normalized score (0.0-1.0) and gets back the new interval, ease factor,
repetition count and the timestamp when the chunk is due again.

Everything here is a pure function over explicit state. Nothing is stored and
nothing is shared between calls, so the functions are safe to call from any
request or worker. Persisting the result (and serialising concurrent updates
for the same child/chunk pair) is the job of the ReviewSchedule model.

Malformed input is never rejected: scores are clamped into range and negative
counters are treated as a fresh, never-reviewed chunk. A scheduler that
refuses to schedule is worse than one that schedules slightly wrong.
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Tuple


# Quality rating constants
QUALITY_BLACKOUT = 0       # Nothing recalled
QUALITY_WRONG_EASY = 1     # Wrong, but answer seemed easy once seen
QUALITY_WRONG_HARD = 2     # Wrong, but remembered upon seeing answer
QUALITY_HARD = 3           # Correct, but with significant difficulty
QUALITY_GOOD = 4           # Correct, with some hesitation
QUALITY_EASY = 5           # Perfect recall

PASSING_QUALITY = QUALITY_HARD
MAX_QUALITY = QUALITY_EASY

# Algorithm constants
MIN_EASE_FACTOR = 1.3      # Floor so intervals never stop growing
DEFAULT_EASE_FACTOR = 2.5  # Starting ease factor for new chunks
FIRST_INTERVAL = 1         # First successful review: 1 day
SECOND_INTERVAL = 6        # Second successful review: 6 days
FAILED_INTERVAL = 1        # Failed review: retry tomorrow


@dataclass(frozen=True)
class ReviewState:
    """Review state of one chunk for one learner."""
    learner_id: object
    unit_id: object
    next_review_at: datetime
    interval_days: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    repetitions: int = 0


@dataclass(frozen=True)
class ReviewResult:
    """Immutable result of a review calculation."""
    interval: int  # days
    ease_factor: float
    repetitions: int
    next_review_at: datetime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp_score(score: float) -> float:
    """Clamp a score into [0, 1]; a missing or NaN score counts as 0."""
    if score is None or math.isnan(score):
        return 0.0
    return min(1.0, max(0.0, float(score)))


def quality_from_score(score: float) -> int:
    """
    Map a normalized score (0.0-1.0) onto the 0-5 SM-2 quality scale.

    q = floor(score * 5), clamped to [0, 5]. Fractional information is
    discarded on purpose: 0.79 and 0.6 are both quality 3.
    """
    score = clamp_score(score)
    return min(MAX_QUALITY, max(QUALITY_BLACKOUT, math.floor(score * 5)))


def calculate_ease_factor(current_ease: float, quality: int) -> float:
    """
    Calculate new ease factor based on review quality.

    EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), never below 1.3.
    """
    adjustment = 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)
    new_ease = current_ease + adjustment
    return max(MIN_EASE_FACTOR, new_ease)


def calculate_interval(
    current_interval: int,
    repetitions: int,
    ease_factor: float,
    quality: int
) -> Tuple[int, int]:
    """
    Calculate the next interval and updated repetition count.

    Returns tuple of (new_interval, new_repetitions).

    For successful reviews (quality >= 3):
    - First review: interval = 1 day
    - Second review: interval = 6 days
    - Subsequent: interval = previous_interval * ease_factor, truncated

    For failed reviews (quality < 3):
    - Back to a 1-day interval with the repetition streak reset

    Truncation (not rounding) keeps intervals identical to the ones already
    stored by the mobile app.
    """
    if quality < PASSING_QUALITY:
        return (FAILED_INTERVAL, 0)

    new_repetitions = repetitions + 1

    if repetitions == 0:
        new_interval = FIRST_INTERVAL
    elif repetitions == 1:
        new_interval = SECOND_INTERVAL
    else:
        new_interval = int(current_interval * ease_factor)

    return (new_interval, new_repetitions)


def advance(
    interval: int,
    ease: float,
    repetitions: int,
    score: float,
    now: datetime | None = None
) -> ReviewResult:
    """
    Calculate the complete review result after an attempt.

    This is the main entry point of the scheduler. Out-of-range values are
    sanitised rather than rejected:
    - score is clamped to [0, 1]
    - negative interval or repetitions count as 0
    - an ease factor under the floor is raised to the floor

    Args:
        interval: Current interval in days
        ease: Current ease factor
        repetitions: Number of successful reviews in a row
        score: Normalized attempt score (0.0-1.0)
        now: Time of the attempt (defaults to current UTC time)

    Returns:
        ReviewResult with the new scheduling parameters
    """
    if now is None:
        now = utcnow()

    interval = max(0, int(interval or 0))
    repetitions = max(0, int(repetitions or 0))
    ease = max(MIN_EASE_FACTOR, ease if ease is not None else DEFAULT_EASE_FACTOR)

    quality = quality_from_score(score)
    new_interval, new_repetitions = calculate_interval(
        interval, repetitions, ease, quality
    )

    if quality >= PASSING_QUALITY:
        new_ease = calculate_ease_factor(ease, quality)
    else:
        new_ease = ease

    return ReviewResult(
        interval=new_interval,
        ease_factor=new_ease,
        repetitions=new_repetitions,
        next_review_at=now + timedelta(days=new_interval)
    )


def initial_state(learner_id, unit_id, now: datetime | None = None) -> ReviewState:
    """State for a chunk attempted for the first time: due immediately."""
    if now is None:
        now = utcnow()
    return ReviewState(
        learner_id=learner_id,
        unit_id=unit_id,
        next_review_at=now,
        interval_days=0,
        ease_factor=DEFAULT_EASE_FACTOR,
        repetitions=0,
    )


def apply_attempt(state: ReviewState, score: float, now: datetime | None = None) -> ReviewState:
    """Fold one attempt score into a ReviewState, keeping its identifiers."""
    result = advance(
        state.interval_days, state.ease_factor, state.repetitions, score, now=now
    )
    return replace(
        state,
        next_review_at=result.next_review_at,
        interval_days=result.interval,
        ease_factor=result.ease_factor,
        repetitions=result.repetitions,
    )
