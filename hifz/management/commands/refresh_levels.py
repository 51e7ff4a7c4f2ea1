"""
Management command to refresh each child's difficulty level.

The suggested level is computed from the child's attempt history and stored
on the child so the app can pre-select the matching practice tier.

Run periodically, or after importing attempts:
    python manage.py refresh_levels
"""

import logging

from django.core.management.base import BaseCommand, CommandError

from hifz.models import Child

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Recompute children's difficulty levels from their attempt history"

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Print the suggested levels without saving them',
        )
        parser.add_argument(
            '--child',
            type=int,
            help='Only refresh the child with this id',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        children = Child.objects.all()

        if options['child'] is not None:
            children = children.filter(pk=options['child'])
            if not children.exists():
                raise CommandError(f"Child {options['child']} does not exist")

        logger.info("Starting refresh_levels command", extra={'dry_run': dry_run})

        processed = 0
        changed = 0
        for child in children:
            processed += 1
            suggested = child.suggested_difficulty()

            if suggested.value == child.level:
                logger.info(f"Child {child.pk}: level unchanged ({child.level})")
                continue

            if dry_run:
                self.stdout.write(
                    f"[DRY RUN] {child.name}: {child.level} -> {suggested.value}"
                )
                changed += 1
                continue

            previous = child.level
            if child.refresh_level():
                changed += 1
                self.stdout.write(f"{child.name}: {previous} -> {child.level}")

        summary = f"Processed {processed} children, {changed} level change(s)"
        if dry_run:
            summary += " (dry run)"
        logger.info(summary)
        self.stdout.write(self.style.SUCCESS(summary))
