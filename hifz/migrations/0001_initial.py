import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Surah',
            fields=[
                ('id', models.PositiveSmallIntegerField(primary_key=True, serialize=False)),
                ('name_ar', models.CharField(max_length=100)),
                ('name_en', models.CharField(max_length=100)),
                ('total_ayahs', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('revelation_type', models.CharField(blank=True, max_length=20)),
            ],
            options={
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='Child',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('age', models.PositiveSmallIntegerField()),
                ('level', models.CharField(choices=[('beginner', 'Beginner'), ('intermediate', 'Intermediate'), ('advanced', 'Advanced')], default='beginner', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('parent', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='children', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'Children',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='AyahChunk',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('chunk_index', models.PositiveIntegerField()),
                ('ayah_start', models.PositiveSmallIntegerField()),
                ('ayah_end', models.PositiveSmallIntegerField()),
                ('display_text', models.TextField()),
                ('visual_key', models.CharField(blank=True, max_length=50)),
                ('audio_url', models.URLField(blank=True)),
                ('surah', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='chunks', to='hifz.surah')),
            ],
            options={
                'ordering': ['surah', 'chunk_index'],
                'unique_together': {('surah', 'chunk_index')},
            },
        ),
        migrations.CreateModel(
            name='Attempt',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('activity_type', models.CharField(choices=[('order_game', 'Order the chunks'), ('missing_segment', 'Fill the gap'), ('recite', 'Recitation')], max_length=20)),
                ('score', models.FloatField()),
                ('time_spent_seconds', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('child', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attempts', to='hifz.child')),
                ('chunk', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attempts', to='hifz.ayahchunk')),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='ReviewSchedule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('next_review_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('interval_days', models.PositiveIntegerField(default=0)),
                ('ease_factor', models.FloatField(default=2.5)),
                ('repetitions', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('child', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='review_schedules', to='hifz.child')),
                ('chunk', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='review_schedules', to='hifz.ayahchunk')),
            ],
            options={
                'ordering': ['next_review_at'],
                'indexes': [models.Index(fields=['child', 'next_review_at'], name='hifz_review_child_due_idx')],
                'constraints': [models.UniqueConstraint(fields=('child', 'chunk'), name='unique_review_per_child_chunk')],
            },
        ),
    ]
