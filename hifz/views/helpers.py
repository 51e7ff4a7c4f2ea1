"""Shared helper functions for views."""

import json

from django.shortcuts import get_object_or_404

from ..models import Child


def get_child_for_user(user, child_pk):
    """Fetch a child owned by the logged-in parent, or 404."""
    return get_object_or_404(Child, pk=child_pk, parent=user)


def parse_json_body(request):
    """
    Decode a JSON object body.

    Raises ValueError for anything that is not a JSON object, so views can
    answer with a single 400 branch.
    """
    data = json.loads(request.body)
    if not isinstance(data, dict):
        raise ValueError('Expected a JSON object')
    return data
