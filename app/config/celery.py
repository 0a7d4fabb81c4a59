"""
Celery configuration for the settlement service.

Background work handled here:
- Processing verified Stripe webhook deliveries off the request path
- Periodic retry of failed webhook events
- Purging old webhook delivery records

Redis is both the message broker and result backend. Tasks are auto-discovered
from the tasks.py module of every installed app.

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
