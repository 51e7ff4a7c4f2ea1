"""Review schedule views."""

from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET

from .. import review_queue
from .helpers import get_child_for_user


def serialize_due_review(schedule, now):
    data = schedule.to_dict()
    data.update({
        'chunk_text': schedule.chunk.display_text,
        'surah_id': schedule.chunk.surah_id,
        'surah_name': schedule.chunk.surah.name_ar,
        'is_overdue': review_queue.is_overdue(schedule, now),
        'days_until_review': review_queue.days_until_review(schedule, now),
    })
    return data


@login_required
@require_GET
def due_reviews(request, child_pk):
    """Chunks due for review now, most overdue first."""
    child = get_child_for_user(request.user, child_pk)
    now = timezone.now()

    schedules = child.due_reviews(now=now, limit=settings.HIFZ_MAX_DUE_REVIEWS)
    reviews = [serialize_due_review(schedule, now) for schedule in schedules]

    return JsonResponse({
        'reviews': reviews,
        'count': len(reviews),
    })


@login_required
@require_GET
def review_schedule(request, child_pk):
    """Every review schedule of the child, soonest first."""
    child = get_child_for_user(request.user, child_pk)
    schedules = child.review_schedules.all()
    return JsonResponse({
        'schedules': [schedule.to_dict() for schedule in schedules],
    })
