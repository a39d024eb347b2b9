# backend/vpnprobe/services/celery_app.py
from __future__ import annotations

"""
Celery application configuration for scheduled check cycles.

This module defines a single Celery instance:

    celery_app = Celery(...)

It is used by:
- vpnprobe.services.tasks (for task definitions)
- the worker + beat entrypoint via
  `celery -A vpnprobe.services.celery_app.celery_app worker -B -Q probes --concurrency 1`

The worker must run with concurrency 1: a cycle drives real VPN clients
and two cycles must never run side by side.
"""

from celery import Celery

from vpnprobe.config import get_settings

settings = get_settings()

celery_app = Celery(
    "probe_tasks",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["vpnprobe.services.tasks"],
)

# Route probe tasks to a dedicated queue
celery_app.conf.task_routes = {
    "vpnprobe.services.tasks.*": {"queue": "probes"},
}

celery_app.conf.worker_concurrency = 1
celery_app.conf.worker_prefetch_multiplier = 1

celery_app.conf.beat_schedule = {
    "run-check-cycle": {
        "task": "vpnprobe.services.tasks.run_check_cycle_task",
        "schedule": settings.check_interval,
        "options": {"queue": "probes", "expires": settings.check_interval},
    },
}
