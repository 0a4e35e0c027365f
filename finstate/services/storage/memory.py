"""
In-Memory Storage Implementation

DESIGN DECISION: A complete, authoritative store that lives in a dict.
It is used by the test suite and for local runs, and it behaves the way a
real backend is expected to:
1. It assigns integer ids
2. It applies two-sided mutations (loan payment, bill payment) atomically
3. It re-checks what it must never accept (over-payment, deleting a
   default category) instead of trusting the client

TRADEOFFS:
- Nothing is persisted; a new instance starts empty
- One asyncio loop only (no thread safety)

Failures can be injected with `reject_next` (the store refuses) and
`fail_next` (the transport fails) so the engine's discard paths can be
exercised deterministically.
"""

import asyncio
import copy
import itertools
from datetime import date
from typing import Any, Optional
from uuid import UUID

from finstate.models.audit import AuditEvent
from finstate.models.entities import EntityKind, Frequency
from finstate.models.mutations import MutationRequest, MutationType, StoreResponse
from finstate.primitives import advance_by_frequency, parse_calendar_date, to_money
from finstate.services.storage.interface import (
    AuditStorageInterface,
    EntityStoreInterface,
    NotFoundError,
    StorageError,
    StoreConnectionError,
    StoreRejectedError,
)


# Legacy field names the store may still hold next to the canonical one
_ALIASES: dict[str, tuple[str, ...]] = {
    "balance": ("current_balance",),
    "next_due_date": ("due_date",),
}


def _get(record: dict[str, Any], name: str) -> Any:
    if record.get(name) is not None:
        return record[name]
    for alias in _ALIASES.get(name, ()):
        if record.get(alias) is not None:
            return record[alias]
    return None


def _set(record: dict[str, Any], name: str, value: Any) -> None:
    for alias in _ALIASES.get(name, ()):
        record.pop(alias, None)
    record[name] = value


class InMemoryEntityStore(EntityStoreInterface):
    """
    Authoritative entity store held in memory.

    Records are JSON-like dicts; amounts are kept as strings the way a
    JSON API would return them.
    """

    def __init__(self):
        self._records: dict[EntityKind, dict[int, dict[str, Any]]] = {
            kind: {} for kind in EntityKind
        }
        self._ids = {kind: itertools.count(1) for kind in EntityKind}
        self._pending_rejections: list[str] = []
        self._pending_failures = 0
        self.requests: list[MutationRequest] = []

    # -------------------------------------------------------------------------
    # Test and setup helpers
    # -------------------------------------------------------------------------

    def seed(self, kind: EntityKind, records: list[dict[str, Any]]) -> list[int]:
        """
        Load records directly, bypassing the mutation path.

        Records without an id get one assigned. Returns the ids in order.
        """
        kind = EntityKind(kind)
        ids = []
        for record in records:
            stored = copy.deepcopy(record)
            record_id = stored.get("id")
            if record_id is None:
                record_id = self._new_id(kind)
            stored["id"] = record_id
            self._records[kind][record_id] = stored
            ids.append(record_id)
        return ids

    def get(self, kind: EntityKind, record_id: int) -> Optional[dict[str, Any]]:
        """Copy of one stored record, or None."""
        record = self._records[EntityKind(kind)].get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def reject_next(self, reason: str) -> None:
        """Make the next submit fail with StoreRejectedError(reason)."""
        self._pending_rejections.append(reason)

    def fail_next(self, times: int = 1) -> None:
        """Make the next `times` calls (fetch or submit) fail in transport."""
        self._pending_failures += times

    def _new_id(self, kind: EntityKind) -> int:
        counter = self._ids[kind]
        while True:
            candidate = next(counter)
            if candidate not in self._records[kind]:
                return candidate

    def _maybe_fail(self) -> None:
        if self._pending_failures > 0:
            self._pending_failures -= 1
            raise StoreConnectionError("Store unreachable")

    def _require(self, kind: EntityKind, record_id: Any) -> dict[str, Any]:
        record = self._records[kind].get(record_id)
        if record is None:
            raise NotFoundError(f"{kind.value} not found: {record_id}")
        return record

    # -------------------------------------------------------------------------
    # EntityStoreInterface
    # -------------------------------------------------------------------------

    async def fetch(self, kind: EntityKind) -> list[dict[str, Any]]:
        await asyncio.sleep(0)
        self._maybe_fail()
        kind = EntityKind(kind)
        records = [copy.deepcopy(r) for r in self._records[kind].values()]
        if kind == EntityKind.CATEGORY:
            for record in records:
                record["subcategories"] = [
                    copy.deepcopy(sub)
                    for sub in self._records[EntityKind.SUBCATEGORY].values()
                    if sub.get("category_id") == record["id"]
                ]
        return records

    async def submit(self, request: MutationRequest) -> StoreResponse:
        await asyncio.sleep(0)
        self._maybe_fail()
        self.requests.append(request)
        if self._pending_rejections:
            raise StoreRejectedError(self._pending_rejections.pop(0))

        handlers = {
            MutationType.CREATE: self._create,
            MutationType.UPDATE: self._update,
            MutationType.DELETE: self._delete,
            MutationType.LOAN_PAYMENT: self._loan_payment,
            MutationType.GOAL_CONTRIBUTION: self._goal_contribution,
            MutationType.BILL_PAYMENT: self._bill_payment,
        }
        handler = handlers.get(request.operation)
        if handler is None:
            raise StorageError(f"Unsupported operation: {request.operation}")

        # Work on copies so a refused request leaves nothing half-applied
        staged = copy.deepcopy(self._records)
        records, deleted = handler(staged, request)
        self._records = staged
        return StoreResponse(
            request_id=request.request_id,
            records={kind: [copy.deepcopy(r) for r in rows] for kind, rows in records.items()},
            deleted=deleted,
        )

    # -------------------------------------------------------------------------
    # Mutation handlers
    # -------------------------------------------------------------------------

    def _create(self, tables, request):
        kind = request.kind
        record = copy.deepcopy(request.payload)
        record.pop("subcategories", None)
        if kind == EntityKind.SUBCATEGORY and record.get("category_id") not in tables[EntityKind.CATEGORY]:
            raise StoreRejectedError("Parent category does not exist")
        record["id"] = self._new_id(kind)
        tables[kind][record["id"]] = record
        return {kind: [record]}, {}

    def _update(self, tables, request):
        kind = request.kind
        record = tables[kind].get(request.entity_id)
        if record is None:
            raise NotFoundError(f"{kind.value} not found: {request.entity_id}")
        record.update(copy.deepcopy(request.payload))
        record["id"] = request.entity_id
        return {kind: [record]}, {}

    def _delete(self, tables, request):
        kind = request.kind
        record = tables[kind].get(request.entity_id)
        if record is None:
            raise NotFoundError(f"{kind.value} not found: {request.entity_id}")
        if kind in (EntityKind.CATEGORY, EntityKind.SUBCATEGORY) and record.get("is_default"):
            raise StoreRejectedError("Default categories cannot be deleted")
        del tables[kind][request.entity_id]
        deleted = {kind: [request.entity_id]}
        if kind == EntityKind.CATEGORY:
            orphans = [
                sub_id for sub_id, sub in tables[EntityKind.SUBCATEGORY].items()
                if sub.get("category_id") == request.entity_id
            ]
            for sub_id in orphans:
                del tables[EntityKind.SUBCATEGORY][sub_id]
            if orphans:
                deleted[EntityKind.SUBCATEGORY] = orphans
        return {}, deleted

    def _debit(self, tables, account_id: Any, amount) -> dict[str, Any]:
        account = tables[EntityKind.ACCOUNT].get(account_id)
        if account is None:
            raise NotFoundError(f"account not found: {account_id}")
        balance = to_money(_get(account, "balance") or 0)
        _set(account, "balance", str(balance - amount))
        return account

    def _loan_payment(self, tables, request):
        loan = tables[EntityKind.LOAN].get(request.entity_id)
        if loan is None:
            raise NotFoundError(f"loan not found: {request.entity_id}")
        amount = to_money(request.payload.get("amount", 0))
        remaining = _get(loan, "remaining_balance")
        if remaining is None:
            remaining = _get(loan, "original_amount")
        remaining = to_money(remaining or 0)
        if amount <= 0:
            raise StoreRejectedError("Please enter a valid payment amount")
        if amount > remaining:
            raise StoreRejectedError("Payment amount exceeds remaining balance")

        account = self._debit(tables, request.payload.get("account_id"), amount)
        loan["remaining_balance"] = str(remaining - amount)
        return {EntityKind.LOAN: [loan], EntityKind.ACCOUNT: [account]}, {}

    def _goal_contribution(self, tables, request):
        goal = tables[EntityKind.GOAL].get(request.entity_id)
        if goal is None:
            raise NotFoundError(f"goal not found: {request.entity_id}")
        amount = to_money(request.payload.get("amount", 0))
        if amount <= 0:
            raise StoreRejectedError("Contribution must be greater than zero")
        current = to_money(_get(goal, "current_amount") or 0)
        goal["current_amount"] = str(current + amount)
        return {EntityKind.GOAL: [goal]}, {}

    def _bill_payment(self, tables, request):
        bill = tables[EntityKind.BILL].get(request.entity_id)
        if bill is None:
            raise NotFoundError(f"bill not found: {request.entity_id}")
        if bill.get("is_paid") or str(bill.get("status", "")).lower() == "paid":
            raise StoreRejectedError("Bill is already paid")

        amount = to_money(_get(bill, "amount") or 0)
        account = self._debit(tables, request.payload.get("account_id"), amount)

        paid_on = parse_calendar_date(request.payload.get("payment_date")) or date.today()
        frequency = Frequency(bill.get("frequency") or Frequency.MONTHLY)
        due = parse_calendar_date(_get(bill, "next_due_date")) or paid_on
        following = advance_by_frequency(due, frequency)
        if following is None:
            bill["is_paid"] = True
        else:
            _set(bill, "next_due_date", following.isoformat())
        bill["last_paid_date"] = paid_on.isoformat()
        return {EntityKind.BILL: [bill], EntityKind.ACCOUNT: [account]}, {}


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
