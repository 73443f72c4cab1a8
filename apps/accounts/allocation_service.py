"""
Allocation planner for AdLedger.

Greedy matching of demand requirements (timezone, currency, year, count)
against unassigned accounts, batch by batch in readiness order, and the
atomic commit of a chosen plan to a billing entity.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypedDict

from django.db import transaction

from apps.audit.services import AuditContext, AuditEventData, AuditService
from apps.billing.models import BillingEntity
from apps.billing.services import BillingEntityService
from apps.common.constants import ALLOCATION_HEADROOM_FACTOR
from apps.common.types import AccountId, BadRequestError, BatchId, BillingEntityId, NotFoundError

from .ledger_service import billing_ledger
from .models import Account, Batch

if TYPE_CHECKING:
    from django.contrib.auth.models import User
    from django.db.models import QuerySet

logger = logging.getLogger(__name__)


# ===============================================================================
# PARAMETER OBJECTS
# ===============================================================================

@dataclass(frozen=True)
class Requirement:
    """Demand for `count` accounts with matching supply attributes"""
    timezone: str
    currency_class: str
    year: int
    count: int


@dataclass(frozen=True)
class NewBillingEntity:
    """Creation parameters for a billing entity made during execute()"""
    name: str
    external_id: str
    partner_id: int | None = None
    notes: str = ''


# ===============================================================================
# RESULT PAYLOADS
# ===============================================================================

class ProposedAccount(TypedDict):
    id: AccountId
    name: str
    external_id: str


class AlternativeBatch(TypedDict):
    batch_id: BatchId
    name: str
    readiness: int
    available_count: int


class ProposedLink(TypedDict):
    batch_id: BatchId
    batch_name: str
    readiness: int
    account_ids: list[AccountId]
    accounts: list[ProposedAccount]
    alternatives: list[AlternativeBatch]


class AllocationProposal(TypedDict):
    requirement: Requirement
    links: list[ProposedLink]
    is_fulfilled: bool
    missing_count: int


class LinkSelection(TypedDict):
    account_ids: list[AccountId]


class ExecutionResult(TypedDict):
    billing_entity_id: BillingEntityId
    account_count: int


def unassigned_accounts() -> QuerySet[Account]:
    """Accounts eligible for allocation: active, with no billing entity and no customer"""
    return Account.objects.filter(status='active', billing_entity__isnull=True, customer__isnull=True)


class AllocationService:
    """Suggest and commit account allocations"""

    @staticmethod
    def candidate_batches(requirement: Requirement) -> list[Batch]:
        """Active batches matching timezone and year, best readiness first, ties by id"""
        return list(
            Batch.objects.filter(
                timezone=requirement.timezone,
                year=requirement.year,
                status='active',
            ).order_by('-readiness', 'id')
        )

    @staticmethod
    def suggest(requirements: Iterable[Requirement]) -> list[AllocationProposal]:
        """
        Propose accounts for each requirement, in order.

        Accounts proposed for an earlier requirement are never proposed again
        within the same call. Each batch contributes at most
        ALLOCATION_HEADROOM_FACTOR * count candidates; alternatives list the
        other matching batches that still have spare candidates.
        """
        requirements = list(requirements)
        for requirement in requirements:
            if requirement.count < 0:
                raise BadRequestError(f"Requirement count must be non-negative, got {requirement.count}")

        consumed: set[AccountId] = set()
        proposals: list[AllocationProposal] = []

        for requirement in requirements:
            needed = requirement.count
            links: list[ProposedLink] = []

            if needed == 0:
                proposals.append({'requirement': requirement, 'links': [], 'is_fulfilled': True, 'missing_count': 0})
                continue

            batches = AllocationService.candidate_batches(requirement)
            cap = requirement.count * ALLOCATION_HEADROOM_FACTOR
            candidates: dict[BatchId, list[Account]] = {
                batch.pk: list(
                    unassigned_accounts()
                    .filter(batch=batch, currency=requirement.currency_class)
                    .exclude(pk__in=consumed)
                    .order_by('id')[:cap]
                )
                for batch in batches
            }

            taken: dict[BatchId, list[Account]] = {}
            for batch in batches:
                if needed <= 0:
                    break
                picked = candidates[batch.pk][:needed]
                if picked:
                    taken[batch.pk] = picked
                    needed -= len(picked)
                    consumed.update(account.pk for account in picked)

            for batch in batches:
                picked = taken.get(batch.pk)
                if not picked:
                    continue
                alternatives: list[AlternativeBatch] = [
                    {
                        'batch_id': other.pk,
                        'name': other.name,
                        'readiness': other.readiness,
                        'available_count': len(candidates[other.pk]) - len(taken.get(other.pk, [])),
                    }
                    for other in batches
                    if other.pk != batch.pk and len(candidates[other.pk]) > len(taken.get(other.pk, []))
                ]
                links.append({
                    'batch_id': batch.pk,
                    'batch_name': batch.name,
                    'readiness': batch.readiness,
                    'account_ids': [account.pk for account in picked],
                    'accounts': [
                        {'id': account.pk, 'name': account.name, 'external_id': account.external_id}
                        for account in picked
                    ],
                    'alternatives': alternatives,
                })

            missing = max(needed, 0)
            proposals.append({
                'requirement': requirement,
                'links': links,
                'is_fulfilled': missing == 0,
                'missing_count': missing,
            })
            logger.debug(
                f"🧮 [Allocation] {requirement.timezone}/{requirement.currency_class}/{requirement.year}: "
                f"{requirement.count - missing}/{requirement.count} from {len(links)} batches"
            )

        return proposals

    @staticmethod
    def execute(
        links: Iterable[LinkSelection],
        billing_entity_id: BillingEntityId | None = None,
        new_billing_entity: NewBillingEntity | None = None,
        user: User | None = None,
    ) -> ExecutionResult:
        """
        Commit a plan: optionally create the billing entity, link every listed
        account to it through the billing ledger and resync counters, all in
        one transaction. Any failure rolls back everything, including the
        newly created billing entity.
        """
        if (billing_entity_id is None) == (new_billing_entity is None):
            raise BadRequestError("Provide exactly one of billing_entity_id or new_billing_entity")

        account_ids = sorted({account_id for link in links for account_id in link['account_ids']})
        if not account_ids:
            raise BadRequestError("No accounts selected")

        with transaction.atomic():
            if new_billing_entity is not None:
                entity = BillingEntityService.create_billing_entity(
                    name=new_billing_entity.name,
                    external_id=new_billing_entity.external_id,
                    user=user,
                    partner_id=new_billing_entity.partner_id,
                    notes=new_billing_entity.notes,
                    status='active',
                ).unwrap()
                target_id = entity.pk
            else:
                if not BillingEntity.objects.filter(pk=billing_entity_id).exists():
                    raise NotFoundError(f"Billing entity {billing_entity_id} not found")
                target_id = billing_entity_id

            changes = billing_ledger.bulk_reassign(account_ids, target_id, user=user)

            AuditService.emit_after_commit(
                AuditEventData(
                    action='allocate',
                    entity_type='billing_entity',
                    entity_id=target_id,
                    new_values={'account_count': len(changes), 'account_ids': account_ids},
                    description=f"Allocated {len(changes)} accounts to billing entity {target_id}",
                ),
                AuditContext(user=user),
            )

        logger.info(f"✅ [Allocation] Linked {len(changes)} accounts to billing entity {target_id}")
        return {'billing_entity_id': target_id, 'account_count': len(changes)}
