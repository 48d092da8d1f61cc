from __future__ import annotations

import time
import traceback

from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import close_old_connections

from market.retention import purge_expired_listings


class Command(BaseCommand):
    help = "Purge soft-deleted listings past their grace period, once at start and then on an interval."

    def add_arguments(self, parser):
        parser.add_argument("--once", action="store_true", help="Sweep once, then exit")
        parser.add_argument(
            "--interval",
            type=float,
            default=None,
            help="Seconds between sweeps (default: RETENTION_SWEEP_INTERVAL_SECONDS)",
        )

    def handle(self, *args, **options):
        once = bool(options.get("once"))
        interval = float(options.get("interval") or settings.RETENTION_SWEEP_INTERVAL_SECONDS)

        self.stdout.write(self.style.SUCCESS("Retention sweeper started"))

        while True:
            close_old_connections()
            try:
                purged = purge_expired_listings()
                self.stdout.write(f"Purged {purged} expired listing(s)")
            except Exception:
                # A failed sweep is retried on the next tick.
                self.stderr.write(traceback.format_exc())

            if once:
                return
            time.sleep(interval)
