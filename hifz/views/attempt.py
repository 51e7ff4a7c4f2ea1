"""Attempt recording API."""

import math

from django.contrib.auth.decorators import login_required
from django.db import transaction
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_POST

from .. import srs
from ..models import Attempt, AyahChunk, ReviewSchedule
from .helpers import get_child_for_user, parse_json_body


@login_required
@require_POST
def record_attempt(request, child_pk):
    """
    Store an attempt on a chunk and update the chunk's review schedule.

    Finite scores outside 0-1 are clamped before they are stored, so the
    attempt history only ever holds normalized scores. NaN and infinity
    are rejected.
    """
    child = get_child_for_user(request.user, child_pk)

    try:
        data = parse_json_body(request)
        chunk_pk = int(data['chunk_id'])
        activity_type = data['activity_type']
        score = float(data['score'])
        if not math.isfinite(score):
            raise ValueError('score is not a finite number')
        time_spent = data.get('time_spent_seconds')
        if time_spent is not None:
            time_spent = max(0, int(time_spent))
    except (ValueError, KeyError, TypeError):
        return JsonResponse({'error': 'Invalid request'}, status=400)

    if activity_type not in Attempt.ActivityType.values:
        return JsonResponse({'error': f'Unknown activity type: {activity_type}'}, status=400)

    chunk = get_object_or_404(AyahChunk, pk=chunk_pk)
    score = srs.clamp_score(score)

    with transaction.atomic():
        Attempt.objects.create(
            child=child,
            chunk=chunk,
            activity_type=activity_type,
            score=score,
            time_spent_seconds=time_spent,
        )
        schedule, created = ReviewSchedule.record_attempt(child, chunk, score)

    return JsonResponse({
        'success': True,
        'created': created,
        'schedule': schedule.to_dict(),
    })
