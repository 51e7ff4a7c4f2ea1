"""Suggest a difficulty tier from a child's recent attempt scores."""

from enum import Enum


RECENT_WINDOW = 5

ADVANCED_RECENT = 0.9
ADVANCED_OVERALL = 0.8
INTERMEDIATE_RECENT = 0.7
INTERMEDIATE_OVERALL = 0.6


class DifficultyLevel(str, Enum):
    BEGINNER = 'beginner'
    INTERMEDIATE = 'intermediate'
    ADVANCED = 'advanced'

    @property
    def display_name_ar(self):
        return {
            DifficultyLevel.BEGINNER: 'مبتدئ',
            DifficultyLevel.INTERMEDIATE: 'متوسط',
            DifficultyLevel.ADVANCED: 'متقدم',
        }[self]

    @property
    def display_name_en(self):
        return self.value.capitalize()


def _mean(values):
    return sum(values) / len(values)


def suggest(scores) -> DifficultyLevel:
    """
    Classify proficiency from attempt scores ordered most recent first.

    - advanced: recent average >= 0.9 and overall average >= 0.8
    - intermediate: recent average >= 0.7 and overall average >= 0.6
    - beginner: anything else, including no history at all

    "Recent" is the first RECENT_WINDOW scores. Only used to pre-select a UI
    tier; it never feeds into review scheduling.
    """
    scores = list(scores)
    if not scores:
        return DifficultyLevel.BEGINNER

    overall = _mean(scores)
    recent = _mean(scores[:RECENT_WINDOW])

    if recent >= ADVANCED_RECENT and overall >= ADVANCED_OVERALL:
        return DifficultyLevel.ADVANCED
    if recent >= INTERMEDIATE_RECENT and overall >= INTERMEDIATE_OVERALL:
        return DifficultyLevel.INTERMEDIATE
    return DifficultyLevel.BEGINNER
