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
            name="Flashcard",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("front_text", models.CharField(max_length=500)),
                ("back_text", models.CharField(max_length=500)),
                ("difficulty", models.PositiveSmallIntegerField(default=1)),
                ("review_count", models.PositiveIntegerField(default=0)),
                ("last_reviewed", models.DateTimeField(blank=True, null=True)),
                ("version", models.PositiveIntegerField(default=1)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="flashcards", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["owner", "last_reviewed"], name="flashcard_owner_due_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("difficulty__gte", 1), ("difficulty__lte", 5)),
                        name="flashcard_difficulty_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReviewEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quality_rating", models.PositiveSmallIntegerField()),
                ("response_time_ms", models.PositiveIntegerField(blank=True, null=True)),
                ("previous_difficulty", models.PositiveSmallIntegerField()),
                ("new_difficulty", models.PositiveSmallIntegerField()),
                ("idempotency_key", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("flashcard", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="review_events", to="study.flashcard")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="review_events", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["user", "created_at"], name="review_event_user_time_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("idempotency_key__isnull", False)),
                        fields=("user", "flashcard", "idempotency_key"),
                        name="uniq_review_idempotency_key",
                    ),
                ],
            },
        ),
    ]
