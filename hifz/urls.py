from django.urls import path
from . import views

urlpatterns = [
    # Attempts
    path('api/children/<int:child_pk>/attempts/', views.record_attempt, name='record_attempt'),

    # Review schedule
    path('api/children/<int:child_pk>/reviews/', views.review_schedule, name='review_schedule'),
    path('api/children/<int:child_pk>/reviews/due/', views.due_reviews, name='due_reviews'),

    # Difficulty
    path('api/children/<int:child_pk>/difficulty/', views.suggested_difficulty, name='suggested_difficulty'),

    # Health check
    path('health/', views.health_check, name='health_check'),
]
