"""
Celery configuration for the notification service.

Workers run the background side of notification delivery:
- Re-driving scheduled notifications once they come due
- Purging old read notifications

No beat schedule ships with the project. Whatever scheduler the deployment
uses (cron, Kubernetes CronJob, celery beat) enqueues
``notifications.tasks.redeliver_due_notifications`` at its own cadence.

Usage:
    from notifications.tasks import redeliver_notification

    redeliver_notification.delay(str(notification.id))

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Looks for a tasks.py module in each installed app
app.autodiscover_tasks()
