"""
Celery configuration for the ledger project.

Celery runs ledger work outside the caller's request:
- Posting ledger entries for completed payments (finance.tasks)

This configuration uses Redis as both the message broker and result backend.
Tasks are auto-discovered from all installed Django apps.

Usage:
    from finance.tasks import process_payment_completed

    process_payment_completed.delay({"paymentId": "P1", "amountInUSD": "49.99"})

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("ledger")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
