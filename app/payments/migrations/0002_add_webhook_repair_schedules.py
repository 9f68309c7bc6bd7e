"""
Add celery-beat schedules for webhook repair.

- retry_failed_webhooks every 5 minutes re-drives FAILED events
- reset_stuck_webhooks every 15 minutes fails events stuck in PROCESSING
"""

from django.db import migrations


SCHEDULES = [
    {
        "name": "Retry Failed Stripe Webhooks",
        "task": "payments.tasks.retry_failed_webhooks",
        "every": 5,
        "description": (
            "Re-queues FAILED webhook events with retries left, so a "
            "fulfillment that failed after payment is attempted again."
        ),
    },
    {
        "name": "Reset Stuck Stripe Webhooks",
        "task": "payments.tasks.reset_stuck_webhooks",
        "every": 15,
        "description": (
            "Marks webhook events stuck in PROCESSING as FAILED so the "
            "retry sweep picks them up."
        ),
    },
]


def create_periodic_tasks(apps, schema_editor):
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for entry in SCHEDULES:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=entry["every"],
            period="minutes",
        )
        PeriodicTask.objects.get_or_create(
            name=entry["name"],
            defaults={
                "task": entry["task"],
                "interval": schedule,
                "enabled": True,
                "description": entry["description"],
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[entry["name"] for entry in SCHEDULES],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
