"""
Management command: run_lifecycle_jobs
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Runs the periodic lifecycle jobs: auto-finalization timer, escalation
scan and delay reminders (see ``applications.scheduler``).

Usage::

    python manage.py run_lifecycle_jobs --once
    python manage.py run_lifecycle_jobs --interval 15

Without ``--once`` the command loops forever, one tick every
``--interval`` minutes (default ``CASEWORK["SCHEDULER_INTERVAL_MINUTES"]``).
Only one instance should run against a database at a time.
"""

import logging
import time

from django.core.management.base import BaseCommand, CommandError

from applications.conf import lifecycle_settings
from applications.scheduler import run_lifecycle_tick

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Runs the auto-approval timer, the SLA escalation scan and the "
        "delay reminders, once or on a fixed interval."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--once",
            action="store_true",
            help="Run a single tick and exit.",
        )
        parser.add_argument(
            "--interval",
            type=float,
            default=None,
            help="Minutes between ticks (defaults to the configured interval).",
        )

    def handle(self, *args, **options):
        interval_minutes = options["interval"]
        if interval_minutes is None:
            interval_minutes = lifecycle_settings().scheduler_interval_minutes
        if interval_minutes <= 0:
            raise CommandError("--interval must be a positive number of minutes.")

        if options["once"]:
            self._tick()
            return

        self.stdout.write(self.style.MIGRATE_HEADING(
            f"Lifecycle scheduler started (every {interval_minutes:g} min). Ctrl-C to stop."
        ))
        try:
            while True:
                started = time.monotonic()
                try:
                    self._tick()
                except Exception:
                    # keep the loop alive; the next tick retries
                    logger.exception("Lifecycle tick failed")
                elapsed = time.monotonic() - started
                time.sleep(max(0.0, interval_minutes * 60 - elapsed))
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING("Lifecycle scheduler stopped."))

    def _tick(self) -> dict:
        summary = run_lifecycle_tick()
        self.stdout.write(self.style.SUCCESS(
            "  ✔  Tick: "
            + ", ".join(f"{key}={value}" for key, value in summary.items())
        ))
        return summary
