"""Difficulty suggestion view."""

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET

from .helpers import get_child_for_user


@login_required
@require_GET
def suggested_difficulty(request, child_pk):
    child = get_child_for_user(request.user, child_pk)
    level = child.suggested_difficulty()
    return JsonResponse({
        'level': level.value,
        'display_name_ar': level.display_name_ar,
        'display_name_en': level.display_name_en,
        'current_level': child.level,
    })
