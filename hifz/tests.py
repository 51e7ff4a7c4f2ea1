"""
Unit tests for the hifz review app.

Test organization:
- SRS*Tests: Pure function tests for the scheduling rule
- ReviewQueue*Tests: Pure function tests for due filtering and ordering
- DifficultyTests: Pure function tests for the level suggestion
- *ModelTests: Django model tests for Child and ReviewSchedule
- *ViewTests: JSON API tests
- ChildAdminTests: admin changelist tests
- RefreshLevelsCommandTests: management command tests
"""

import json
from datetime import datetime, timedelta, timezone as dt_timezone
from io import StringIO
from unittest.mock import patch

from django.contrib import admin
from django.contrib.auth.models import User
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, Client, RequestFactory, override_settings
from django.urls import reverse
from django.utils import timezone

from . import srs
from . import review_queue
from .difficulty import DifficultyLevel, suggest
from .models import Child, Surah, AyahChunk, Attempt, ReviewSchedule
from .admin import ChildAdmin


T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=dt_timezone.utc)


# =============================================================================
# SRS Algorithm Tests
# =============================================================================

class SRSQualityTests(TestCase):
    """Tests for mapping scores onto the 0-5 quality scale."""

    def test_score_buckets(self):
        """Quality is floor(score * 5)."""
        self.assertEqual(srs.quality_from_score(0.0), 0)
        self.assertEqual(srs.quality_from_score(0.2), 1)
        self.assertEqual(srs.quality_from_score(0.59), 2)
        self.assertEqual(srs.quality_from_score(0.6), 3)
        self.assertEqual(srs.quality_from_score(0.8), 4)
        self.assertEqual(srs.quality_from_score(0.99), 4)
        self.assertEqual(srs.quality_from_score(1.0), 5)

    def test_out_of_range_scores_are_clamped(self):
        """Scores outside 0-1 are clamped, not rejected."""
        self.assertEqual(srs.quality_from_score(1.7), 5)
        self.assertEqual(srs.quality_from_score(-0.5), 0)

    def test_nan_score_counts_as_zero(self):
        self.assertEqual(srs.quality_from_score(float('nan')), 0)

    def test_clamp_score(self):
        self.assertEqual(srs.clamp_score(7), 1.0)
        self.assertEqual(srs.clamp_score(-2.5), 0.0)
        self.assertEqual(srs.clamp_score(0.42), 0.42)
        self.assertEqual(srs.clamp_score(None), 0.0)
        self.assertEqual(srs.clamp_score(float('nan')), 0.0)


class SRSEaseFactorTests(TestCase):
    """Tests for ease factor calculation."""

    def test_perfect_response_increases_ease(self):
        new_ease = srs.calculate_ease_factor(2.5, quality=5)
        self.assertAlmostEqual(new_ease, 2.6, places=6)

    def test_good_response_maintains_ease(self):
        """Quality 4 is neutral."""
        new_ease = srs.calculate_ease_factor(2.5, quality=4)
        self.assertAlmostEqual(new_ease, 2.5, places=6)

    def test_hard_response_decreases_ease(self):
        # 0.1 - 2 * (0.08 + 2 * 0.02) = -0.14
        new_ease = srs.calculate_ease_factor(2.5, quality=3)
        self.assertAlmostEqual(new_ease, 2.36, places=6)

    def test_ease_never_below_minimum(self):
        ease = srs.MIN_EASE_FACTOR
        for _ in range(10):
            ease = srs.calculate_ease_factor(ease, quality=3)
        self.assertEqual(ease, srs.MIN_EASE_FACTOR)


class SRSIntervalTests(TestCase):
    """Tests for interval calculation."""

    def test_first_successful_review(self):
        interval, reps = srs.calculate_interval(
            current_interval=0, repetitions=0, ease_factor=2.5, quality=4
        )
        self.assertEqual(interval, srs.FIRST_INTERVAL)
        self.assertEqual(reps, 1)

    def test_second_successful_review(self):
        interval, reps = srs.calculate_interval(
            current_interval=1, repetitions=1, ease_factor=2.5, quality=4
        )
        self.assertEqual(interval, srs.SECOND_INTERVAL)
        self.assertEqual(reps, 2)

    def test_subsequent_review_uses_ease_factor(self):
        interval, reps = srs.calculate_interval(
            current_interval=6, repetitions=2, ease_factor=2.5, quality=4
        )
        self.assertEqual(interval, 15)
        self.assertEqual(reps, 3)

    def test_ease_driven_interval_truncates(self):
        """6 * 2.6 = 15.6 is truncated to 15, not rounded to 16."""
        interval, _ = srs.calculate_interval(
            current_interval=6, repetitions=2, ease_factor=2.6, quality=5
        )
        self.assertEqual(interval, 15)

    def test_failed_review_resets_progress(self):
        for quality in [0, 1, 2]:
            interval, reps = srs.calculate_interval(
                current_interval=30, repetitions=5, ease_factor=2.5, quality=quality
            )
            self.assertEqual(interval, 1, f"Quality {quality} should reset interval")
            self.assertEqual(reps, 0, f"Quality {quality} should reset repetitions")

    def test_boundary_quality_3_is_success(self):
        interval, reps = srs.calculate_interval(
            current_interval=0, repetitions=0, ease_factor=2.5, quality=3
        )
        self.assertEqual(reps, 1)


class SRSAdvanceTests(TestCase):
    """Tests for the advance entry point."""

    def test_returns_review_result(self):
        result = srs.advance(0, 2.5, 0, 0.8, now=T0)
        self.assertIsInstance(result, srs.ReviewResult)
        self.assertIsInstance(result.interval, int)
        self.assertIsInstance(result.ease_factor, float)
        self.assertIsInstance(result.repetitions, int)
        self.assertIsInstance(result.next_review_at, datetime)

    def test_first_success(self):
        result = srs.advance(interval=0, ease=2.5, repetitions=0, score=1.0, now=T0)
        self.assertEqual(result.interval, 1)
        self.assertEqual(result.repetitions, 1)
        self.assertEqual(result.next_review_at, T0 + timedelta(days=1))

    def test_second_success(self):
        result = srs.advance(interval=1, ease=2.5, repetitions=1, score=1.0, now=T0)
        self.assertEqual(result.interval, 6)
        self.assertEqual(result.repetitions, 2)
        self.assertEqual(result.next_review_at, T0 + timedelta(days=6))

    def test_failure_resets_and_keeps_ease(self):
        result = srs.advance(interval=10, ease=2.5, repetitions=5, score=0.0, now=T0)
        self.assertEqual(result.repetitions, 0)
        self.assertEqual(result.interval, 1)
        self.assertEqual(result.ease_factor, 2.5)
        self.assertEqual(result.next_review_at, T0 + timedelta(days=1))

    def test_ease_floor_holds_for_all_inputs(self):
        for ease in [1.3, 1.35, 1.5, 2.5, 3.0]:
            for repetitions in [0, 1, 2, 7]:
                for score in [0.0, 0.3, 0.59, 0.6, 0.75, 0.8, 1.0]:
                    result = srs.advance(4, ease, repetitions, score, now=T0)
                    self.assertGreaterEqual(result.ease_factor, srs.MIN_EASE_FACTOR)

    def test_deterministic(self):
        first = srs.advance(6, 2.36, 2, 0.7, now=T0)
        second = srs.advance(6, 2.36, 2, 0.7, now=T0)
        self.assertEqual(first, second)

    def test_negative_counters_treated_as_fresh(self):
        result = srs.advance(interval=-3, ease=2.5, repetitions=-2, score=1.0, now=T0)
        self.assertEqual(result.interval, 1)
        self.assertEqual(result.repetitions, 1)

    def test_corrupt_ease_is_raised_to_floor(self):
        result = srs.advance(interval=10, ease=0.5, repetitions=5, score=0.0, now=T0)
        self.assertEqual(result.ease_factor, srs.MIN_EASE_FACTOR)

    def test_out_of_range_score_is_clamped(self):
        high = srs.advance(0, 2.5, 0, 3.0, now=T0)
        self.assertEqual(high, srs.advance(0, 2.5, 0, 1.0, now=T0))
        low = srs.advance(6, 2.5, 2, -1.0, now=T0)
        self.assertEqual(low.repetitions, 0)

    def test_defaults_now_to_current_utc_time(self):
        before = datetime.now(dt_timezone.utc)
        result = srs.advance(0, 2.5, 0, 1.0)
        self.assertGreaterEqual(result.next_review_at, before + timedelta(days=1))


class SRSStateTests(TestCase):
    """Tests for initial_state and apply_attempt."""

    def test_initial_state_is_due_immediately(self):
        state = srs.initial_state('child-1', 'chunk-1', now=T0)
        self.assertEqual(state.next_review_at, T0)
        self.assertEqual(state.interval_days, 0)
        self.assertEqual(state.ease_factor, 2.5)
        self.assertEqual(state.repetitions, 0)
        self.assertEqual(review_queue.due_now([state], T0), [state])

    def test_complete_learning_progression(self):
        """New chunk -> two successes -> a failure."""
        state = srs.initial_state('child-1', 'chunk-1', now=T0)

        # First attempt, score 0.8 (quality 4)
        state = srs.apply_attempt(state, 0.8, now=T0)
        self.assertEqual(state.interval_days, 1)
        self.assertEqual(state.repetitions, 1)
        self.assertEqual(state.next_review_at, T0 + timedelta(days=1))

        # Next day, score 1.0 (quality 5)
        day_two = T0 + timedelta(days=1)
        state = srs.apply_attempt(state, 1.0, now=day_two)
        self.assertEqual(state.interval_days, 6)
        self.assertEqual(state.repetitions, 2)
        ease_after_success = state.ease_factor

        # Score 0.2 (quality 1) is a failure
        state = srs.apply_attempt(state, 0.2, now=day_two + timedelta(days=6))
        self.assertEqual(state.interval_days, 1)
        self.assertEqual(state.repetitions, 0)
        self.assertEqual(state.ease_factor, ease_after_success)

        self.assertEqual(state.learner_id, 'child-1')
        self.assertEqual(state.unit_id, 'chunk-1')


# =============================================================================
# Review Queue Tests
# =============================================================================

def make_state(unit_id, next_review_at):
    return srs.ReviewState(learner_id='child-1', unit_id=unit_id, next_review_at=next_review_at)


class ReviewQueueDueTests(TestCase):
    """Tests for due_now."""

    def test_only_due_states_returned(self):
        states = [
            make_state('past', T0 - timedelta(days=2)),
            make_state('now', T0),
            make_state('future', T0 + timedelta(seconds=1)),
        ]
        due = review_queue.due_now(states, T0)
        self.assertEqual([s.unit_id for s in due], ['past', 'now'])
        for state in due:
            self.assertLessEqual(state.next_review_at, T0)

    def test_does_not_mutate_input(self):
        states = [make_state('b', T0), make_state('a', T0 - timedelta(days=1))]
        original = list(states)
        review_queue.due_now(states, T0)
        review_queue.prioritize(states)
        self.assertEqual(states, original)

    def test_empty_input(self):
        self.assertEqual(review_queue.due_now([], T0), [])


class ReviewQueuePrioritizeTests(TestCase):
    """Tests for prioritize and due_reviews."""

    def test_most_overdue_first(self):
        states = [
            make_state('yesterday', T0 - timedelta(days=1)),
            make_state('last_week', T0 - timedelta(days=7)),
            make_state('today', T0),
        ]
        ordered = review_queue.prioritize(states)
        self.assertEqual([s.unit_id for s in ordered], ['last_week', 'yesterday', 'today'])

    def test_ties_keep_input_order(self):
        states = [
            make_state('first', T0),
            make_state('older', T0 - timedelta(days=1)),
            make_state('second', T0),
            make_state('third', T0),
        ]
        ordered = review_queue.prioritize(states)
        self.assertEqual([s.unit_id for s in ordered], ['older', 'first', 'second', 'third'])
        self.assertCountEqual(ordered, states)

    def test_due_reviews_filters_orders_and_limits(self):
        states = [
            make_state('future', T0 + timedelta(days=1)),
            make_state('recent', T0 - timedelta(hours=1)),
            make_state('oldest', T0 - timedelta(days=3)),
            make_state('middle', T0 - timedelta(days=1)),
        ]
        reviews = review_queue.due_reviews(states, T0)
        self.assertEqual([s.unit_id for s in reviews], ['oldest', 'middle', 'recent'])

        limited = review_queue.due_reviews(states, T0, limit=2)
        self.assertEqual([s.unit_id for s in limited], ['oldest', 'middle'])

        unlimited = review_queue.due_reviews(states, T0, limit=0)
        self.assertEqual(len(unlimited), 3)


class ReviewQueueTimingTests(TestCase):
    """Tests for is_overdue and days_until_review."""

    def test_is_overdue(self):
        self.assertTrue(review_queue.is_overdue(make_state('a', T0 - timedelta(minutes=1)), T0))
        self.assertFalse(review_queue.is_overdue(make_state('a', T0), T0))

    def test_days_until_review(self):
        self.assertEqual(
            review_queue.days_until_review(make_state('a', T0 + timedelta(days=2, hours=12)), T0), 2
        )
        self.assertEqual(
            review_queue.days_until_review(make_state('a', T0 - timedelta(days=3)), T0), 0
        )


# =============================================================================
# Difficulty Suggestion Tests
# =============================================================================

class DifficultyTests(TestCase):
    """Tests for suggest."""

    def test_no_history_is_beginner(self):
        self.assertEqual(suggest([]), DifficultyLevel.BEGINNER)

    def test_consistent_perfect_scores_are_advanced(self):
        self.assertEqual(suggest([1.0] * 6), DifficultyLevel.ADVANCED)

    def test_low_overall_is_beginner(self):
        self.assertEqual(suggest([0.5, 0.5, 0.5]), DifficultyLevel.BEGINNER)

    def test_intermediate(self):
        self.assertEqual(suggest([0.75] * 4), DifficultyLevel.INTERMEDIATE)

    def test_strong_recent_but_weak_overall(self):
        """Recent perfect scores cannot lift a weak history to advanced."""
        scores = [1.0] * 5 + [0.5] * 5  # overall 0.75
        self.assertEqual(suggest(scores), DifficultyLevel.INTERMEDIATE)

    def test_order_is_most_recent_first(self):
        """Only the first five scores count as recent."""
        scores = [0.5] * 5 + [1.0] * 5
        self.assertEqual(suggest(scores), DifficultyLevel.BEGINNER)

    def test_accepts_generators(self):
        self.assertEqual(suggest(s for s in [1.0] * 3), DifficultyLevel.ADVANCED)

    def test_display_names(self):
        self.assertEqual(DifficultyLevel.ADVANCED.display_name_en, 'Advanced')
        self.assertEqual(DifficultyLevel.BEGINNER.display_name_ar, 'مبتدئ')
        self.assertEqual(DifficultyLevel('intermediate'), DifficultyLevel.INTERMEDIATE)


# =============================================================================
# Model Tests
# =============================================================================

class HifzFixtureMixin:
    """Creates a parent, a child and two chunks of Al-Fatiha."""

    def setUp(self):
        self.user = User.objects.create_user(
            username='parent', password='testpass123'
        )
        self.child = Child.objects.create(parent=self.user, name='Maryam', age=7)
        self.surah = Surah.objects.create(id=1, name_ar='الفاتحة', name_en='Al-Fatiha', total_ayahs=7)
        self.chunk = AyahChunk.objects.create(
            surah=self.surah, chunk_index=0, ayah_start=1, ayah_end=2,
            display_text='بِسْمِ اللَّهِ الرَّحْمَٰنِ الرَّحِيمِ'
        )
        self.other_chunk = AyahChunk.objects.create(
            surah=self.surah, chunk_index=1, ayah_start=3, ayah_end=4,
            display_text='الرَّحْمَٰنِ الرَّحِيمِ'
        )


class ReviewScheduleModelTests(HifzFixtureMixin, TestCase):
    """Tests for the ReviewSchedule model."""

    def test_first_attempt_creates_schedule_due_now(self):
        now = timezone.now()
        schedule, created = ReviewSchedule.record_attempt(self.child, self.chunk, 1.0, now=now)

        self.assertTrue(created)
        self.assertEqual(schedule.interval_days, 0)
        self.assertEqual(schedule.ease_factor, 2.5)
        self.assertEqual(schedule.repetitions, 0)
        self.assertEqual(schedule.next_review_at, now)
        self.assertTrue(schedule.is_due(now))

    def test_later_attempts_advance_schedule(self):
        ReviewSchedule.record_attempt(self.child, self.chunk, 1.0, now=T0)

        schedule, created = ReviewSchedule.record_attempt(self.child, self.chunk, 0.8, now=T0)
        self.assertFalse(created)
        schedule.refresh_from_db()
        self.assertEqual(schedule.interval_days, 1)
        self.assertEqual(schedule.repetitions, 1)
        self.assertEqual(schedule.next_review_at, T0 + timedelta(days=1))

        day_two = T0 + timedelta(days=1)
        ReviewSchedule.record_attempt(self.child, self.chunk, 1.0, now=day_two)
        schedule.refresh_from_db()
        self.assertEqual(schedule.interval_days, 6)
        self.assertEqual(schedule.repetitions, 2)

        ReviewSchedule.record_attempt(self.child, self.chunk, 0.2, now=day_two)
        schedule.refresh_from_db()
        self.assertEqual(schedule.interval_days, 1)
        self.assertEqual(schedule.repetitions, 0)
        self.assertAlmostEqual(schedule.ease_factor, 2.6, places=6)

    def test_one_schedule_per_child_and_chunk(self):
        for score in [1.0, 0.9, 0.3]:
            ReviewSchedule.record_attempt(self.child, self.chunk, score)
        self.assertEqual(ReviewSchedule.objects.filter(child=self.child).count(), 1)

    def test_to_state_round_trip_fields(self):
        schedule, _ = ReviewSchedule.record_attempt(self.child, self.chunk, 1.0, now=T0)
        state = schedule.to_state()
        self.assertEqual(state.learner_id, self.child.pk)
        self.assertEqual(state.unit_id, self.chunk.pk)
        self.assertEqual(state.next_review_at, T0)

    def test_to_dict(self):
        schedule, _ = ReviewSchedule.record_attempt(self.child, self.chunk, 1.0, now=T0)
        data = schedule.to_dict()
        self.assertEqual(data['child_id'], self.child.pk)
        self.assertEqual(data['chunk_id'], self.chunk.pk)
        self.assertEqual(data['next_review_at'], T0.isoformat())
        self.assertEqual(data['interval_days'], 0)
        self.assertEqual(data['ease_factor'], 2.5)
        self.assertEqual(data['repetitions'], 0)

    def test_deleting_child_removes_schedules(self):
        ReviewSchedule.record_attempt(self.child, self.chunk, 1.0)
        self.child.delete()
        self.assertEqual(ReviewSchedule.objects.count(), 0)


class ChildModelTests(HifzFixtureMixin, TestCase):
    """Tests for the Child model."""

    def add_attempt(self, score, minutes_ago):
        return Attempt.objects.create(
            child=self.child,
            chunk=self.chunk,
            activity_type=Attempt.ActivityType.RECITE,
            score=score,
            created_at=timezone.now() - timedelta(minutes=minutes_ago),
        )

    def test_default_level(self):
        self.assertEqual(self.child.level, Child.Level.BEGINNER)

    def test_recent_scores_most_recent_first(self):
        self.add_attempt(0.2, minutes_ago=30)
        self.add_attempt(0.9, minutes_ago=5)
        self.add_attempt(0.5, minutes_ago=10)
        self.assertEqual(self.child.recent_scores(), [0.9, 0.5, 0.2])
        self.assertEqual(self.child.recent_scores(limit=2), [0.9, 0.5])

    def test_suggested_difficulty(self):
        for minutes in range(6):
            self.add_attempt(1.0, minutes_ago=minutes)
        self.assertEqual(self.child.suggested_difficulty(), DifficultyLevel.ADVANCED)

    def test_refresh_level(self):
        for minutes in range(4):
            self.add_attempt(0.75, minutes_ago=minutes)
        self.assertTrue(self.child.refresh_level())
        self.child.refresh_from_db()
        self.assertEqual(self.child.level, Child.Level.INTERMEDIATE)
        self.assertFalse(self.child.refresh_level())

    def test_due_reviews(self):
        now = timezone.now()
        ReviewSchedule.objects.create(
            child=self.child, chunk=self.chunk, next_review_at=now - timedelta(hours=1)
        )
        ReviewSchedule.objects.create(
            child=self.child, chunk=self.other_chunk, next_review_at=now - timedelta(days=2)
        )
        due = self.child.due_reviews(now=now)
        self.assertEqual([s.chunk for s in due], [self.other_chunk, self.chunk])
        self.assertEqual(len(self.child.due_reviews(now=now, limit=1)), 1)

    def test_future_schedules_not_due(self):
        ReviewSchedule.objects.create(
            child=self.child, chunk=self.chunk, next_review_at=timezone.now() + timedelta(days=1)
        )
        self.assertEqual(self.child.due_reviews(), [])


# =============================================================================
# View Tests
# =============================================================================

class AttemptViewTests(HifzFixtureMixin, TestCase):
    """Tests for the attempt recording API."""

    def setUp(self):
        super().setUp()
        self.client = Client()
        self.client.login(username='parent', password='testpass123')
        self.url = reverse('record_attempt', kwargs={'child_pk': self.child.pk})

    def post(self, payload):
        return self.client.post(
            self.url,
            data=json.dumps(payload) if not isinstance(payload, str) else payload,
            content_type='application/json'
        )

    def test_first_attempt_creates_schedule(self):
        response = self.post({'chunk_id': self.chunk.pk, 'activity_type': 'order_game', 'score': 1.0})
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.content)
        self.assertTrue(data['success'])
        self.assertTrue(data['created'])
        self.assertEqual(data['schedule']['interval_days'], 0)
        self.assertEqual(Attempt.objects.filter(child=self.child).count(), 1)

    def test_second_attempt_advances_schedule(self):
        self.post({'chunk_id': self.chunk.pk, 'activity_type': 'recite', 'score': 1.0})
        response = self.post({
            'chunk_id': self.chunk.pk,
            'activity_type': 'missing_segment',
            'score': 1.0,
            'time_spent_seconds': 42,
        })
        data = json.loads(response.content)
        self.assertFalse(data['created'])
        self.assertEqual(data['schedule']['interval_days'], 1)
        self.assertEqual(data['schedule']['repetitions'], 1)
        self.assertTrue(Attempt.objects.filter(time_spent_seconds=42).exists())

    def test_out_of_range_score_is_accepted(self):
        self.post({'chunk_id': self.chunk.pk, 'activity_type': 'recite', 'score': 1.0})
        response = self.post({'chunk_id': self.chunk.pk, 'activity_type': 'recite', 'score': 7})
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.content)
        self.assertEqual(data['schedule']['repetitions'], 1)

    def test_out_of_range_score_is_stored_clamped(self):
        """A stray 7 is stored as 1.0 and cannot lift the suggested level."""
        response = self.post({'chunk_id': self.chunk.pk, 'activity_type': 'recite', 'score': 7})
        self.assertEqual(response.status_code, 200)
        for _ in range(4):
            self.post({'chunk_id': self.chunk.pk, 'activity_type': 'recite', 'score': 0.0})

        self.assertEqual(sorted(self.child.recent_scores()), [0.0, 0.0, 0.0, 0.0, 1.0])
        self.assertEqual(self.child.suggested_difficulty(), DifficultyLevel.BEGINNER)

    def test_negative_score_is_stored_as_zero(self):
        self.post({'chunk_id': self.chunk.pk, 'activity_type': 'recite', 'score': -3})
        self.assertEqual(self.child.recent_scores(), [0.0])

    def test_infinite_score_rejected(self):
        for literal in ['Infinity', '-Infinity', 'NaN']:
            body = '{"chunk_id": %d, "activity_type": "recite", "score": %s}' % (self.chunk.pk, literal)
            response = self.post(body)
            self.assertEqual(response.status_code, 400, f"{literal} should be rejected")
        self.assertEqual(Attempt.objects.count(), 0)
        self.assertEqual(ReviewSchedule.objects.count(), 0)

    def test_attempt_rolled_back_when_schedule_update_fails(self):
        """The attempt and its schedule update are saved together or not at all."""
        with patch.object(ReviewSchedule, 'record_attempt', side_effect=RuntimeError('boom')):
            with self.assertRaises(RuntimeError):
                self.post({'chunk_id': self.chunk.pk, 'activity_type': 'recite', 'score': 1.0})
        self.assertEqual(Attempt.objects.count(), 0)

    def test_invalid_json(self):
        response = self.post('not json')
        self.assertEqual(response.status_code, 400)

    def test_missing_fields(self):
        response = self.post({'chunk_id': self.chunk.pk})
        self.assertEqual(response.status_code, 400)

    def test_non_numeric_score(self):
        response = self.post({'chunk_id': self.chunk.pk, 'activity_type': 'recite', 'score': 'great'})
        self.assertEqual(response.status_code, 400)

    def test_unknown_activity_type(self):
        response = self.post({'chunk_id': self.chunk.pk, 'activity_type': 'karaoke', 'score': 0.5})
        self.assertEqual(response.status_code, 400)

    def test_unknown_chunk(self):
        response = self.post({'chunk_id': 9999, 'activity_type': 'recite', 'score': 0.5})
        self.assertEqual(response.status_code, 404)

    def test_get_not_allowed(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 405)

    def test_cannot_record_for_other_parents_child(self):
        other = User.objects.create_user(username='other', password='testpass123')
        other_child = Child.objects.create(parent=other, name='Yusuf', age=6)
        response = self.client.post(
            reverse('record_attempt', kwargs={'child_pk': other_child.pk}),
            data=json.dumps({'chunk_id': self.chunk.pk, 'activity_type': 'recite', 'score': 1.0}),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 404)

    def test_requires_login(self):
        self.client.logout()
        response = self.post({'chunk_id': self.chunk.pk, 'activity_type': 'recite', 'score': 1.0})
        self.assertEqual(response.status_code, 302)


class ReviewViewTests(HifzFixtureMixin, TestCase):
    """Tests for the review schedule views."""

    def setUp(self):
        super().setUp()
        self.client = Client()
        self.client.login(username='parent', password='testpass123')
        now = timezone.now()
        self.recent = ReviewSchedule.objects.create(
            child=self.child, chunk=self.chunk, next_review_at=now - timedelta(hours=2)
        )
        self.overdue = ReviewSchedule.objects.create(
            child=self.child, chunk=self.other_chunk, next_review_at=now - timedelta(days=3)
        )

    def test_due_reviews_most_overdue_first(self):
        response = self.client.get(reverse('due_reviews', kwargs={'child_pk': self.child.pk}))
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.content)
        self.assertEqual(data['count'], 2)
        self.assertEqual(
            [r['chunk_id'] for r in data['reviews']],
            [self.other_chunk.pk, self.chunk.pk]
        )
        first = data['reviews'][0]
        self.assertTrue(first['is_overdue'])
        self.assertEqual(first['days_until_review'], 0)
        self.assertEqual(first['surah_name'], 'الفاتحة')
        self.assertEqual(first['chunk_text'], self.other_chunk.display_text)

    def test_due_reviews_excludes_future(self):
        self.recent.next_review_at = timezone.now() + timedelta(days=1)
        self.recent.save()
        response = self.client.get(reverse('due_reviews', kwargs={'child_pk': self.child.pk}))
        data = json.loads(response.content)
        self.assertEqual([r['chunk_id'] for r in data['reviews']], [self.other_chunk.pk])

    @override_settings(HIFZ_MAX_DUE_REVIEWS=1)
    def test_due_reviews_limit(self):
        response = self.client.get(reverse('due_reviews', kwargs={'child_pk': self.child.pk}))
        data = json.loads(response.content)
        self.assertEqual(data['count'], 1)
        self.assertEqual(data['reviews'][0]['chunk_id'], self.other_chunk.pk)

    def test_review_schedule_lists_everything(self):
        self.recent.next_review_at = timezone.now() + timedelta(days=4)
        self.recent.save()
        response = self.client.get(reverse('review_schedule', kwargs={'child_pk': self.child.pk}))
        data = json.loads(response.content)
        self.assertEqual(len(data['schedules']), 2)

    def test_other_parents_child_is_hidden(self):
        other = User.objects.create_user(username='other', password='testpass123')
        other_child = Child.objects.create(parent=other, name='Yusuf', age=6)
        response = self.client.get(reverse('due_reviews', kwargs={'child_pk': other_child.pk}))
        self.assertEqual(response.status_code, 404)


class DifficultyViewTests(HifzFixtureMixin, TestCase):
    """Tests for the difficulty suggestion view."""

    def test_suggested_difficulty(self):
        self.client.login(username='parent', password='testpass123')
        for _ in range(3):
            Attempt.objects.create(
                child=self.child, chunk=self.chunk,
                activity_type=Attempt.ActivityType.ORDER_GAME, score=1.0
            )
        response = self.client.get(reverse('suggested_difficulty', kwargs={'child_pk': self.child.pk}))
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.content)
        self.assertEqual(data['level'], 'advanced')
        self.assertEqual(data['display_name_en'], 'Advanced')
        self.assertEqual(data['current_level'], 'beginner')


class ChildAdminTests(HifzFixtureMixin, TestCase):
    """Tests for the Child changelist due count."""

    def test_due_count_is_annotated(self):
        now = timezone.now()
        ReviewSchedule.objects.create(
            child=self.child, chunk=self.chunk, next_review_at=now - timedelta(days=2)
        )
        ReviewSchedule.objects.create(
            child=self.child, chunk=self.other_chunk, next_review_at=now + timedelta(days=2)
        )
        idle = Child.objects.create(parent=self.user, name='Yusuf', age=6)

        request = RequestFactory().get('/admin/hifz/child/')
        request.user = User.objects.create_superuser(username='admin', password='adminpass123')
        model_admin = ChildAdmin(Child, admin.site)
        children = {child.pk: child for child in model_admin.get_queryset(request)}

        self.assertEqual(model_admin.due_count(children[self.child.pk]), 1)
        self.assertEqual(model_admin.due_count(children[idle.pk]), 0)


class HealthViewTests(TestCase):

    def test_health_check(self):
        response = self.client.get(reverse('health_check'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.content)['status'], 'healthy')


# =============================================================================
# Management Command Tests
# =============================================================================

class RefreshLevelsCommandTests(HifzFixtureMixin, TestCase):
    """Tests for the refresh_levels command."""

    def setUp(self):
        super().setUp()
        for _ in range(6):
            Attempt.objects.create(
                child=self.child, chunk=self.chunk,
                activity_type=Attempt.ActivityType.RECITE, score=1.0
            )

    def test_updates_levels(self):
        out = StringIO()
        call_command('refresh_levels', stdout=out)
        self.child.refresh_from_db()
        self.assertEqual(self.child.level, Child.Level.ADVANCED)
        self.assertIn('1 level change', out.getvalue())

    def test_dry_run_does_not_save(self):
        out = StringIO()
        call_command('refresh_levels', '--dry-run', stdout=out)
        self.child.refresh_from_db()
        self.assertEqual(self.child.level, Child.Level.BEGINNER)
        self.assertIn('[DRY RUN]', out.getvalue())

    def test_single_child(self):
        other = Child.objects.create(parent=self.user, name='Yusuf', age=6, level=Child.Level.ADVANCED)
        call_command('refresh_levels', f'--child={self.child.pk}', stdout=StringIO())
        other.refresh_from_db()
        self.assertEqual(other.level, Child.Level.ADVANCED)

    def test_unknown_child(self):
        with self.assertRaises(CommandError):
            call_command('refresh_levels', '--child=9999', stdout=StringIO())
