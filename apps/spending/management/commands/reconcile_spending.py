"""
Management command to rebuild spend records from snapshots.

Reconciles a single account, or every account with snapshots on the date.
"""

from datetime import date
from typing import Any

from django.core.management.base import BaseCommand, CommandError, CommandParser
from django.utils import timezone

from apps.common.types import BusinessError
from apps.spending.reconciliation_service import SpendReconciliationService


class Command(BaseCommand):
    """Reconcile spend snapshots into spend records."""

    help = "Reconcile spend snapshots into spend records for a date"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--date",
            type=date.fromisoformat,
            help="Observation date (YYYY-MM-DD), defaults to today",
        )
        parser.add_argument(
            "--account",
            type=int,
            help="Reconcile only this account id",
        )

    def handle(self, *args: Any, **options: Any) -> None:
        observation_date = options.get("date") or timezone.localdate()
        account_id = options.get("account")

        try:
            if account_id is not None:
                result = SpendReconciliationService.reconcile(account_id, observation_date)
                self.stdout.write(
                    self.style.SUCCESS(
                        f"✅ Account {account_id} on {observation_date}: "
                        f"{result['records_written']} records, total {result['total_for_account']}"
                    )
                )
                return

            summary = SpendReconciliationService.reconcile_day(observation_date)
        except BusinessError as e:
            raise CommandError(f"🚫 {e.code}: {e.message}") from e

        if not summary['accounts']:
            self.stdout.write(self.style.WARNING(f"No snapshots found for {observation_date}"))
            return

        self.stdout.write(
            self.style.SUCCESS(
                f"✅ Reconciled {summary['accounts']} accounts on {observation_date}: "
                f"{summary['records_written']} records"
            )
        )
