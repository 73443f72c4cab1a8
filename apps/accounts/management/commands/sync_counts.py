"""
Management command to recompute every cached counter from source rows.

Repairs batch, billing entity and customer counters after manual database
edits or imports that bypassed the service layer.
"""

from typing import Any

from django.core.management.base import BaseCommand

from apps.accounts.count_sync_service import CountSyncService


class Command(BaseCommand):
    """Full recount of cached account counters and customer spend totals."""

    help = "Recompute cached account counts for all batches, billing entities and customers"

    def handle(self, *args: Any, **options: Any) -> None:
        self.stdout.write("🔄 Syncing cached counters...")
        summary = CountSyncService.sync_all()
        self.stdout.write(
            self.style.SUCCESS(
                f"✅ Synced {summary['batches']} batches, {summary['billing_entities']} billing entities, "
                f"{summary['customers']} customers"
            )
        )
