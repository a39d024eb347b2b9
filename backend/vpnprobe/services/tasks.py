# backend/vpnprobe/services/tasks.py
from __future__ import annotations

"""
Celery tasks for the VPN probe.

Currently provides:
- run_check_cycle_task: run one check cycle over all discovered profiles.
"""

from celery import Task

from vpnprobe.services.celery_app import celery_app
from vpnprobe.services.probe import execute_cycle


@celery_app.task(bind=True, name="vpnprobe.services.tasks.run_check_cycle_task")
def run_check_cycle_task(self: Task) -> None:
    """
    Celery task: run one check cycle.

    This calls vpnprobe.services.probe.execute_cycle, which will:
    - discover the .ovpn profiles
    - try each one serially with the OpenVPN client
    - classify the failures
    - send a Telegram report if anything failed
    """
    execute_cycle()
