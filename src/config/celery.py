"""
Celery application for the wholesale back-office.

``DJANGO_SETTINGS_MODULE`` is set before the app is created so Celery reads
the Django settings (``CELERY_`` prefix).
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("backoffice")

app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up tasks.py in every installed app
app.autodiscover_tasks()
