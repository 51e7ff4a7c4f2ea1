from django.contrib import admin
from django.db.models import Count, Q
from django.db.models.functions import Now

from .models import Child, Surah, AyahChunk, Attempt, ReviewSchedule


class AyahChunkInline(admin.TabularInline):
    model = AyahChunk
    extra = 1
    fields = ['chunk_index', 'ayah_start', 'ayah_end', 'display_text']


@admin.register(Child)
class ChildAdmin(admin.ModelAdmin):
    list_display = ['name', 'parent', 'age', 'level', 'due_count', 'created_at']
    list_filter = ['level']
    search_fields = ['name', 'parent__username']

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(
            due_total=Count(
                'review_schedules',
                filter=Q(review_schedules__next_review_at__lte=Now())
            )
        )

    def due_count(self, obj):
        return obj.due_total
    due_count.short_description = 'Due'
    due_count.admin_order_field = 'due_total'


@admin.register(Surah)
class SurahAdmin(admin.ModelAdmin):
    list_display = ['id', 'name_en', 'name_ar', 'total_ayahs', 'revelation_type']
    search_fields = ['name_en', 'name_ar']
    inlines = [AyahChunkInline]


@admin.register(Attempt)
class AttemptAdmin(admin.ModelAdmin):
    list_display = ['child', 'chunk', 'activity_type', 'score', 'created_at']
    list_filter = ['activity_type', 'created_at']
    readonly_fields = ['child', 'chunk', 'activity_type', 'score', 'time_spent_seconds', 'created_at']


@admin.register(ReviewSchedule)
class ReviewScheduleAdmin(admin.ModelAdmin):
    list_display = ['child', 'chunk', 'next_review_at', 'interval_days', 'ease_factor', 'repetitions']
    list_filter = ['child', 'next_review_at']
    readonly_fields = ['interval_days', 'ease_factor', 'repetitions', 'next_review_at', 'updated_at']
