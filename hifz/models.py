import logging

from django.db import models, transaction
from django.contrib.auth.models import User
from django.utils import timezone

from . import srs
from . import difficulty
from . import review_queue

logger = logging.getLogger(__name__)


class Child(models.Model):
    """A learner, managed by a parent account."""

    class Level(models.TextChoices):
        BEGINNER = difficulty.DifficultyLevel.BEGINNER.value, 'Beginner'
        INTERMEDIATE = difficulty.DifficultyLevel.INTERMEDIATE.value, 'Intermediate'
        ADVANCED = difficulty.DifficultyLevel.ADVANCED.value, 'Advanced'

    parent = models.ForeignKey(User, on_delete=models.CASCADE, related_name='children')
    name = models.CharField(max_length=100)
    age = models.PositiveSmallIntegerField()
    level = models.CharField(
        max_length=20,
        choices=Level.choices,
        default=Level.BEGINNER
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']
        verbose_name_plural = 'Children'

    def __str__(self):
        return self.name

    def recent_scores(self, limit=None):
        """Attempt scores, most recent first."""
        scores = self.attempts.order_by('-created_at', '-pk').values_list('score', flat=True)
        if limit:
            scores = scores[:limit]
        return list(scores)

    def suggested_difficulty(self):
        return difficulty.suggest(self.recent_scores())

    def refresh_level(self):
        """Store the suggested difficulty. Returns True if the level changed."""
        suggested = self.suggested_difficulty().value
        if suggested == self.level:
            return False
        logger.info(
            f"Child {self.pk} level {self.level} -> {suggested}"
        )
        self.level = suggested
        self.save(update_fields=['level'])
        return True

    def due_reviews(self, now=None, limit=None):
        """Review schedules due now, most overdue first."""
        if now is None:
            now = timezone.now()
        schedules = self.review_schedules.filter(
            next_review_at__lte=now
        ).select_related('chunk', 'chunk__surah')
        return review_queue.due_reviews(schedules, now=now, limit=limit)


class Surah(models.Model):
    """A surah of the Quran. Primary key is the surah number."""
    id = models.PositiveSmallIntegerField(primary_key=True)
    name_ar = models.CharField(max_length=100)
    name_en = models.CharField(max_length=100)
    total_ayahs = models.PositiveSmallIntegerField(null=True, blank=True)
    revelation_type = models.CharField(max_length=20, blank=True)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.id}. {self.name_en}"


class AyahChunk(models.Model):
    """A short run of ayahs memorized and reviewed as one unit."""
    surah = models.ForeignKey(Surah, on_delete=models.CASCADE, related_name='chunks')
    chunk_index = models.PositiveIntegerField()
    ayah_start = models.PositiveSmallIntegerField()
    ayah_end = models.PositiveSmallIntegerField()
    display_text = models.TextField()
    visual_key = models.CharField(max_length=50, blank=True)
    audio_url = models.URLField(blank=True)

    class Meta:
        ordering = ['surah', 'chunk_index']
        unique_together = ['surah', 'chunk_index']

    def __str__(self):
        return f"{self.surah_id}:{self.ayah_start}-{self.ayah_end}"


class Attempt(models.Model):
    """A scored attempt on a chunk from one of the practice activities."""

    class ActivityType(models.TextChoices):
        ORDER_GAME = 'order_game', 'Order the chunks'
        MISSING_SEGMENT = 'missing_segment', 'Fill the gap'
        RECITE = 'recite', 'Recitation'

    child = models.ForeignKey(Child, on_delete=models.CASCADE, related_name='attempts')
    chunk = models.ForeignKey(AyahChunk, on_delete=models.CASCADE, related_name='attempts')
    activity_type = models.CharField(max_length=20, choices=ActivityType.choices)
    score = models.FloatField()  # 0.0 - 1.0
    time_spent_seconds = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.child} {self.activity_type} {self.score:.2f}"


class ReviewSchedule(models.Model):
    """
    SRS state of one chunk for one child.

    One row per (child, chunk). Created on the first attempt and updated in
    place afterwards; removed only when the child or chunk is deleted.
    """
    child = models.ForeignKey(Child, on_delete=models.CASCADE, related_name='review_schedules')
    chunk = models.ForeignKey(AyahChunk, on_delete=models.CASCADE, related_name='review_schedules')

    next_review_at = models.DateTimeField(default=timezone.now)
    interval_days = models.PositiveIntegerField(default=0)
    ease_factor = models.FloatField(default=srs.DEFAULT_EASE_FACTOR)
    repetitions = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['next_review_at']
        constraints = [
            models.UniqueConstraint(fields=['child', 'chunk'], name='unique_review_per_child_chunk'),
        ]
        indexes = [
            models.Index(fields=['child', 'next_review_at'], name='hifz_review_child_due_idx'),
        ]

    def __str__(self):
        return f"{self.child} / {self.chunk} due {self.next_review_at:%Y-%m-%d}"

    def is_due(self, now=None):
        if now is None:
            now = timezone.now()
        return self.next_review_at <= now

    def to_state(self):
        return srs.ReviewState(
            learner_id=self.child_id,
            unit_id=self.chunk_id,
            next_review_at=self.next_review_at,
            interval_days=self.interval_days,
            ease_factor=self.ease_factor,
            repetitions=self.repetitions,
        )

    def to_dict(self):
        return {
            'child_id': self.child_id,
            'chunk_id': self.chunk_id,
            'next_review_at': self.next_review_at.isoformat(),
            'interval_days': self.interval_days,
            'ease_factor': round(self.ease_factor, 2),
            'repetitions': self.repetitions,
        }

    @classmethod
    def record_attempt(cls, child, chunk, score, now=None):
        """
        Fold an attempt score into the child's schedule for a chunk.

        The first attempt only creates the schedule, due immediately, so the
        chunk shows up for review right away. Later attempts advance it with
        the SM-2 rule. The row is locked for the read-modify-write so two
        attempts on the same chunk (e.g. from two devices) are applied one
        after the other instead of overwriting each other.

        Returns (schedule, created).
        """
        if now is None:
            now = timezone.now()

        with transaction.atomic():
            initial = srs.initial_state(child.pk, chunk.pk, now=now)
            schedule, created = cls.objects.select_for_update().get_or_create(
                child=child,
                chunk=chunk,
                defaults={
                    'next_review_at': initial.next_review_at,
                    'interval_days': initial.interval_days,
                    'ease_factor': initial.ease_factor,
                    'repetitions': initial.repetitions,
                }
            )
            if created:
                logger.info(f"Created review schedule for child {child.pk} chunk {chunk.pk}")
                return schedule, True

            interval_before = schedule.interval_days
            result = srs.advance(
                schedule.interval_days,
                schedule.ease_factor,
                schedule.repetitions,
                score,
                now=now
            )

            schedule.interval_days = result.interval
            schedule.ease_factor = result.ease_factor
            schedule.repetitions = result.repetitions
            schedule.next_review_at = result.next_review_at
            schedule.save()

        logger.info(
            f"Advanced review schedule for child {child.pk} chunk {chunk.pk}: "
            f"interval {interval_before} -> {result.interval}, "
            f"repetitions {result.repetitions}, ease {result.ease_factor:.2f}"
        )
        return schedule, False
