"""
Mutation Engine

This module owns every state-changing operation. Each one is a single
logical transaction from the caller's point of view:

    lock -> read committed -> validate -> build provisional
         -> invariant check -> stage -> submit -> parse authoritative
         -> invariant check -> commit

DESIGN DECISION: The store is the ordering authority. Local state never
advances on its own; it advances when the store's answer is committed.
If the store refuses (or cannot be reached), the staged change is discarded
and the pre-mutation state is exactly what it was.

GUARANTEES:
- Operations on the same entity are serialized (per-entity locks)
- A loan payment and its account debit are ONE request, applied together
- Validation failures, invariant violations and store failures each raise
  their own exception type and are each audited with their own event type
"""

import asyncio
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finstate.audit import AuditLogger, create_correlation_id
from finstate.classification import DEFAULT_RULES, ClassificationRules
from finstate.config import StoreSettings, get_settings
from finstate.engine.locks import EntityLocks
from finstate.engine.snapshot import EntitySnapshot, SnapshotView
from finstate.invariants import InvariantChecker, InvariantViolationError
from finstate.models.entities import (
    Account,
    Budget,
    CategoryPair,
    EntityKind,
    EntityModel,
    Frequency,
    Goal,
    Loan,
    RecurringObligation,
    canonical_fields,
    parse_entity,
)
from finstate.models.mutations import (
    BillPaymentResult,
    LoanPaymentResult,
    MutationRequest,
    MutationType,
    StoreResponse,
)
from finstate.models.validation import ValidationResult
from finstate.primitives import advance_by_frequency, parse_calendar_date, to_money
from finstate.services.storage import (
    EntityStoreInterface,
    StorageError,
    StoreConnectionError,
    StoreRejectedError,
)
from finstate.validation import MutationValidationError, MutationValidator


class MutationEngine:
    """
    Validates and applies state-changing operations against a store.

    Usage:
        engine = MutationEngine(store, audit_logger=AuditLogger())
        await engine.refresh()
        result = await engine.apply_loan_payment(loan_id=1, amount="200", account_id=3)
    """

    def __init__(
        self,
        store: EntityStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        rules: Optional[ClassificationRules] = None,
        checker: Optional[InvariantChecker] = None,
        validator: Optional[MutationValidator] = None,
        clock: Optional[Callable[[], date]] = None,
        store_settings: Optional[StoreSettings] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._rules = rules or DEFAULT_RULES
        self._checker = checker or InvariantChecker()
        self._validator = validator or MutationValidator()
        self._clock = clock or date.today
        self._store_settings = store_settings or get_settings().store
        self._logger = structlog.get_logger("finstate.engine")

        self.snapshot = EntitySnapshot()
        self.locks = EntityLocks()
        self._refresh_lock = asyncio.Lock()

    @property
    def rules(self) -> ClassificationRules:
        return self._rules

    def today(self) -> date:
        return self._clock()

    def view(self, include_provisional: bool = False) -> SnapshotView:
        return self.snapshot.view(include_provisional=include_provisional)

    # =========================================================================
    # READS
    # =========================================================================

    def _parse_records(self, kind: EntityKind, records: Iterable[dict]) -> list[EntityModel]:
        """Parse inbound records, skipping (and logging) any that are unusable."""
        entities = []
        for record in records:
            try:
                entities.append(parse_entity(kind, record))
            except ValidationError as e:
                self._logger.warning(
                    "record_skipped",
                    kind=kind.value,
                    record_id=record.get("id") if isinstance(record, dict) else None,
                    error_count=e.error_count(),
                )
        return entities

    async def _fetch_all(self) -> dict[EntityKind, list[dict]]:
        records = {}
        for kind in EntityKind:
            records[kind] = await self._store.fetch(kind)
        return records

    async def refresh(self) -> SnapshotView:
        """
        Reload committed state from the store.

        Reads are idempotent, so transport failures are retried with
        exponential back-off. Staged mutations are not affected.

        Mutations may commit while the load is in flight; whatever they
        committed is kept over the loaded records. Reloads run one at a time.
        """
        settings = self._store_settings
        retrying = AsyncRetrying(
            stop=stop_after_attempt(settings.read_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=settings.retry_wait_min,
                max=settings.retry_wait_max,
            ),
            retry=retry_if_exception_type(StoreConnectionError),
            reraise=True,
        )
        async with self._refresh_lock:
            loaded_since = self.snapshot.version
            try:
                async for attempt in retrying:
                    with attempt:
                        records = await self._fetch_all()
            except StorageError as e:
                if self._audit_logger:
                    await self._audit_logger.log_store_error("refresh", str(e))
                raise

            tables = {kind: self._parse_records(kind, rows) for kind, rows in records.items()}
            self.snapshot.replace_all(tables, loaded_since=loaded_since)
        view = self.snapshot.view()
        if self._audit_logger:
            await self._audit_logger.log_snapshot_refreshed(view.counts())
        return view

    # =========================================================================
    # SHARED MUTATION STEPS
    # =========================================================================

    async def _reject(
        self,
        error: MutationValidationError,
        kind: EntityKind,
        entity_id: Optional[int],
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_validation_rejected(
                operation=error.operation,
                entity_type=kind.value,
                entity_id=entity_id,
                reason=error.reason,
                issues=[issue.model_dump() for issue in error.issues],
                correlation_id=correlation_id,
            )

    async def _ensure_valid(
        self,
        result: ValidationResult,
        kind: EntityKind,
        entity_id: Optional[int],
        correlation_id: UUID,
    ) -> None:
        try:
            self._validator.raise_for(result)
        except MutationValidationError as e:
            await self._reject(e, kind, entity_id, correlation_id)
            raise

    async def _build(
        self,
        kind: EntityKind,
        fields: Mapping[str, Any],
        operation: str,
        correlation_id: UUID,
        entity_id: Optional[int] = None,
    ) -> EntityModel:
        try:
            return self._validator.build_entity(kind, fields, operation)
        except MutationValidationError as e:
            await self._reject(e, kind, entity_id, correlation_id)
            raise

    async def _check_invariants(
        self,
        entities: Iterable[EntityModel],
        operation: str,
        correlation_id: UUID,
    ) -> None:
        try:
            for entity in entities:
                self._checker.check(entity)
        except InvariantViolationError as e:
            self._logger.critical(
                "invariant_violated",
                operation=operation,
                kind=e.kind.value,
                entity_id=e.entity_id,
                violation=e.violation,
            )
            if self._audit_logger:
                await self._audit_logger.log_invariant_violated(
                    operation=operation,
                    entity_type=e.kind.value,
                    entity_id=e.entity_id,
                    violation=e.violation,
                    correlation_id=correlation_id,
                )
            raise

    def _parse_response(
        self,
        response: StoreResponse,
        expected: Iterable[EntityKind],
    ) -> dict[EntityKind, list[EntityModel]]:
        """Parse the store's records strictly: a malformed answer is a store error."""
        confirmed: dict[EntityKind, list[EntityModel]] = {}
        for kind, rows in response.records.items():
            try:
                confirmed[kind] = [parse_entity(kind, row) for row in rows]
            except ValidationError as e:
                raise StorageError(f"Store returned a malformed {kind.value} record: {e}")
        for kind in expected:
            if not confirmed.get(kind):
                raise StorageError(f"Store response is missing the {kind.value} record")
        return confirmed

    async def _execute(
        self,
        *,
        operation: str,
        mutation: MutationType,
        kind: EntityKind,
        entity_id: Optional[int],
        payload: dict[str, Any],
        correlation_id: UUID,
        provisional: Iterable[EntityModel] = (),
        removals: Iterable[tuple[EntityKind, int]] = (),
        expected: Iterable[EntityKind] = (),
    ) -> tuple[dict[EntityKind, list[EntityModel]], StoreResponse]:
        """
        Stage, submit and commit one mutation.

        The staged change is discarded on every path that does not end
        in a commit.
        """
        provisional = list(provisional)
        await self._check_invariants(provisional, operation, correlation_id)

        self.snapshot.stage(correlation_id, provisional, removals)
        request = MutationRequest(
            correlation_id=correlation_id,
            operation=mutation,
            kind=kind,
            entity_id=entity_id,
            payload=payload,
        )
        committed = False
        try:
            try:
                response = await self._store.submit(request)
                confirmed = self._parse_response(response, expected)
            except StoreRejectedError as e:
                if self._audit_logger:
                    await self._audit_logger.log_store_rejected(
                        operation=operation,
                        entity_type=kind.value,
                        entity_id=entity_id,
                        reason=e.reason,
                        correlation_id=correlation_id,
                    )
                raise
            except StorageError as e:
                self._logger.error("store_error", operation=operation, error=str(e))
                if self._audit_logger:
                    await self._audit_logger.log_store_error(
                        operation=operation,
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
                raise

            await self._check_invariants(
                [entity for entities in confirmed.values() for entity in entities],
                operation,
                correlation_id,
            )
            self.snapshot.commit(correlation_id, confirmed, response.deleted)
            committed = True
        finally:
            if not committed:
                self.snapshot.discard(correlation_id)

        return confirmed, response

    # =========================================================================
    # ACCOUNTS AND CATEGORIES
    # =========================================================================

    async def _create_simple(
        self,
        kind: EntityKind,
        operation: str,
        fields: dict[str, Any],
        result: ValidationResult,
        correlation_id: UUID,
    ) -> EntityModel:
        await self._ensure_valid(result, kind, None, correlation_id)
        entity = await self._build(kind, fields, operation, correlation_id)
        confirmed, _ = await self._execute(
            operation=operation,
            mutation=MutationType.CREATE,
            kind=kind,
            entity_id=None,
            payload=entity.to_store_payload(),
            correlation_id=correlation_id,
            provisional=[entity],
            expected=[kind],
        )
        created = confirmed[kind][0]
        if self._audit_logger:
            await self._audit_logger.log_entity_created(kind.value, created.id, correlation_id)
        return created

    async def create_account(self, fields: Mapping[str, Any]) -> Account:
        correlation_id = create_correlation_id()
        fields = canonical_fields(EntityKind.ACCOUNT, fields)
        result = self._validator.validate_create_account(fields)
        return await self._create_simple(
            EntityKind.ACCOUNT, "create_account", fields, result, correlation_id,
        )

    async def create_category(self, fields: Mapping[str, Any]):
        correlation_id = create_correlation_id()
        fields = dict(fields)
        # Only the system seeds default categories
        fields["is_default"] = False
        fields.pop("subcategories", None)
        result = self._validator.validate_create_category(fields)
        return await self._create_simple(
            EntityKind.CATEGORY, "create_category", fields, result, correlation_id,
        )

    async def create_subcategory(self, fields: Mapping[str, Any]):
        correlation_id = create_correlation_id()
        fields = dict(fields)
        fields["is_default"] = False
        category_id = fields.get("category_id")
        async with self.locks.hold((EntityKind.CATEGORY, category_id)):
            parent = self.view().get(EntityKind.CATEGORY, category_id)
            result = self._validator.validate_create_subcategory(fields, parent)
            return await self._create_simple(
                EntityKind.SUBCATEGORY, "create_subcategory", fields, result, correlation_id,
            )

    # =========================================================================
    # LOANS
    # =========================================================================

    async def create_loan(self, fields: Mapping[str, Any]) -> Loan:
        """
        Create a loan. remaining_balance always starts at original_amount,
        whatever the caller passed.
        """
        correlation_id = create_correlation_id()
        fields = canonical_fields(EntityKind.LOAN, fields)
        account_id = fields.get("account_id")
        category_id = fields.get("category_id")

        async with self.locks.hold(
            (EntityKind.ACCOUNT, account_id),
            (EntityKind.CATEGORY, category_id),
        ):
            view = self.view()
            result = self._validator.validate_create_loan(
                fields,
                category=view.get(EntityKind.CATEGORY, category_id),
                account=view.get(EntityKind.ACCOUNT, account_id),
            )
            fields["remaining_balance"] = fields.get("original_amount")
            return await self._create_simple(
                EntityKind.LOAN, "create_loan", fields, result, correlation_id,
            )

    async def apply_loan_payment(
        self,
        loan_id: int,
        amount: Any,
        account_id: int,
        payment_date: Optional[date] = None,
    ) -> LoanPaymentResult:
        """
        Pay down a loan from an account.

        The loan balance and the account debit are one request; either both
        are confirmed by the store or neither changes.
        """
        correlation_id = create_correlation_id()
        paid_on = parse_calendar_date(payment_date) or self.today()

        async with self.locks.hold(
            (EntityKind.LOAN, loan_id),
            (EntityKind.ACCOUNT, account_id),
        ):
            view = self.view()
            loan = view.get(EntityKind.LOAN, loan_id)
            account = view.get(EntityKind.ACCOUNT, account_id)
            result = self._validator.validate_loan_payment(
                loan, amount, account_id, account, loan_id=loan_id,
            )
            await self._ensure_valid(result, EntityKind.LOAN, loan_id, correlation_id)

            payment = to_money(amount)
            confirmed, _ = await self._execute(
                operation="apply_loan_payment",
                mutation=MutationType.LOAN_PAYMENT,
                kind=EntityKind.LOAN,
                entity_id=loan_id,
                payload={
                    "amount": str(payment),
                    "account_id": account_id,
                    "payment_date": paid_on.isoformat(),
                },
                correlation_id=correlation_id,
                provisional=[
                    loan.model_copy(update={"remaining_balance": loan.remaining_balance - payment}),
                    account.model_copy(update={"balance": account.balance - payment}),
                ],
                expected=[EntityKind.LOAN, EntityKind.ACCOUNT],
            )

        updated_loan = confirmed[EntityKind.LOAN][0]
        updated_account = confirmed[EntityKind.ACCOUNT][0]
        if self._audit_logger:
            await self._audit_logger.log_loan_payment(
                loan_id=loan_id,
                account_id=account_id,
                amount=str(payment),
                remaining_balance=str(updated_loan.remaining_balance),
                correlation_id=correlation_id,
            )
        return LoanPaymentResult(
            loan=updated_loan,
            account=updated_account,
            amount_paid=payment,
            payment_date=paid_on,
        )

    # =========================================================================
    # BUDGETS
    # =========================================================================

    def _normalize_budget_fields(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        """
        Canonical budget fields: alternate names resolved, a single
        category_id lifted into the category set, pairs coerced.

        Only keys the caller supplied are produced, so the result can be
        laid over an existing budget.
        """
        fields = canonical_fields(EntityKind.BUDGET, fields)
        if fields.get("category_id") is not None and not fields.get("categories"):
            fields["categories"] = [(fields["category_id"], fields.get("subcategory_id"))]
        fields.pop("category_id", None)
        fields.pop("subcategory_id", None)
        if "categories" in fields:
            try:
                fields["categories"] = self._validator.coerce_category_pairs(fields["categories"])
            except (ValidationError, TypeError, ValueError):
                # Left as-is; the validator reports it
                pass
        return fields

    async def create_budget(self, fields: Mapping[str, Any]) -> Budget:
        correlation_id = create_correlation_id()
        fields = self._normalize_budget_fields(fields)
        result = self._validator.validate_budget(fields, "create_budget")
        return await self._create_simple(
            EntityKind.BUDGET, "create_budget", fields, result, correlation_id,
        )

    async def _submit_budget_update(
        self,
        operation: str,
        updated: Budget,
        correlation_id: UUID,
        changed_fields: list[str],
    ) -> Budget:
        confirmed, _ = await self._execute(
            operation=operation,
            mutation=MutationType.UPDATE,
            kind=EntityKind.BUDGET,
            entity_id=updated.id,
            payload=updated.to_store_payload(),
            correlation_id=correlation_id,
            provisional=[updated],
            expected=[EntityKind.BUDGET],
        )
        budget = confirmed[EntityKind.BUDGET][0]
        if self._audit_logger:
            await self._audit_logger.log_entity_updated(
                EntityKind.BUDGET.value, budget.id, correlation_id, changed_fields,
            )
        return budget

    async def update_budget(self, budget_id: int, fields: Mapping[str, Any]) -> Budget:
        """
        Update a budget. The merged result is validated exactly like a new
        budget, so the category set can never be emptied.
        """
        correlation_id = create_correlation_id()
        fields = self._normalize_budget_fields(fields)
        fields.pop("id", None)

        async with self.locks.hold((EntityKind.BUDGET, budget_id)):
            current = self.view().get(EntityKind.BUDGET, budget_id)
            await self._ensure_valid(
                self._validator.validate_exists(EntityKind.BUDGET, current, budget_id, "update_budget"),
                EntityKind.BUDGET, budget_id, correlation_id,
            )
            merged = self._normalize_budget_fields({**current.model_dump(exclude={"id"}), **fields})
            result = self._validator.validate_budget(merged, "update_budget")
            await self._ensure_valid(result, EntityKind.BUDGET, budget_id, correlation_id)

            merged["id"] = budget_id
            updated = await self._build(
                EntityKind.BUDGET, merged, "update_budget", correlation_id, entity_id=budget_id,
            )
            return await self._submit_budget_update(
                "update_budget", updated, correlation_id, sorted(fields),
            )

    async def attach_budget_category(
        self,
        budget_id: int,
        category_id: int,
        subcategory_id: Optional[int] = None,
    ) -> Budget:
        correlation_id = create_correlation_id()
        pair = CategoryPair(category_id=category_id, subcategory_id=subcategory_id)

        async with self.locks.hold((EntityKind.BUDGET, budget_id)):
            view = self.view()
            budget = view.get(EntityKind.BUDGET, budget_id)
            await self._ensure_valid(
                self._validator.validate_exists(EntityKind.BUDGET, budget, budget_id, "attach_budget_category"),
                EntityKind.BUDGET, budget_id, correlation_id,
            )
            result = self._validator.validate_attach_category(
                budget,
                pair,
                category=view.get(EntityKind.CATEGORY, category_id),
                subcategory=view.get(EntityKind.SUBCATEGORY, subcategory_id),
            )
            await self._ensure_valid(result, EntityKind.BUDGET, budget_id, correlation_id)

            updated = budget.model_copy(update={"categories": [*budget.categories, pair]})
            return await self._submit_budget_update(
                "attach_budget_category", updated, correlation_id, ["categories"],
            )

    async def detach_budget_category(
        self,
        budget_id: int,
        category_id: int,
        subcategory_id: Optional[int] = None,
    ) -> Budget:
        correlation_id = create_correlation_id()
        pair = CategoryPair(category_id=category_id, subcategory_id=subcategory_id)

        async with self.locks.hold((EntityKind.BUDGET, budget_id)):
            budget = self.view().get(EntityKind.BUDGET, budget_id)
            await self._ensure_valid(
                self._validator.validate_exists(EntityKind.BUDGET, budget, budget_id, "detach_budget_category"),
                EntityKind.BUDGET, budget_id, correlation_id,
            )
            result = self._validator.validate_detach_category(budget, pair)
            await self._ensure_valid(result, EntityKind.BUDGET, budget_id, correlation_id)

            remaining = [existing for existing in budget.categories if existing != pair]
            updated = budget.model_copy(update={"categories": remaining})
            return await self._submit_budget_update(
                "detach_budget_category", updated, correlation_id, ["categories"],
            )

    # =========================================================================
    # GOALS
    # =========================================================================

    async def create_goal(self, fields: Mapping[str, Any]) -> Goal:
        correlation_id = create_correlation_id()
        fields = canonical_fields(EntityKind.GOAL, fields)
        if fields.get("current_amount") in (None, ""):
            fields["current_amount"] = Decimal("0")
        result = self._validator.validate_create_goal(fields)
        return await self._create_simple(
            EntityKind.GOAL, "create_goal", fields, result, correlation_id,
        )

    async def contribute_to_goal(self, goal_id: int, amount: Any) -> Goal:
        """Add to a goal's saved amount. Over-funding is allowed."""
        correlation_id = create_correlation_id()

        async with self.locks.hold((EntityKind.GOAL, goal_id)):
            goal = self.view().get(EntityKind.GOAL, goal_id)
            result = self._validator.validate_contribution(goal, amount, goal_id=goal_id)
            await self._ensure_valid(result, EntityKind.GOAL, goal_id, correlation_id)

            contribution = to_money(amount)
            confirmed, _ = await self._execute(
                operation="contribute_to_goal",
                mutation=MutationType.GOAL_CONTRIBUTION,
                kind=EntityKind.GOAL,
                entity_id=goal_id,
                payload={"amount": str(contribution)},
                correlation_id=correlation_id,
                provisional=[
                    goal.model_copy(update={"current_amount": goal.current_amount + contribution}),
                ],
                expected=[EntityKind.GOAL],
            )

        updated = confirmed[EntityKind.GOAL][0]
        if self._audit_logger:
            await self._audit_logger.log_goal_contribution(
                goal_id=goal_id,
                amount=str(contribution),
                current_amount=str(updated.current_amount),
                correlation_id=correlation_id,
            )
        return updated

    # =========================================================================
    # BILLS
    # =========================================================================

    async def create_recurring_obligation(self, fields: Mapping[str, Any]) -> RecurringObligation:
        """Create a bill. With no due date given, it falls due today."""
        correlation_id = create_correlation_id()
        fields = canonical_fields(EntityKind.BILL, fields)
        if not fields.get("next_due_date"):
            fields["next_due_date"] = self.today()
        fields["is_paid"] = False
        result = self._validator.validate_create_bill(fields)
        return await self._create_simple(
            EntityKind.BILL, "create_recurring_obligation", fields, result, correlation_id,
        )

    async def pay_bill(
        self,
        bill_id: int,
        account_id: int,
        payment_date: Optional[date] = None,
    ) -> BillPaymentResult:
        """
        Pay a bill from an account.

        Recurring bills move on to their next due date and stay unpaid;
        one-time bills become paid.
        """
        correlation_id = create_correlation_id()
        paid_on = parse_calendar_date(payment_date) or self.today()

        async with self.locks.hold(
            (EntityKind.BILL, bill_id),
            (EntityKind.ACCOUNT, account_id),
        ):
            view = self.view()
            bill = view.get(EntityKind.BILL, bill_id)
            account = view.get(EntityKind.ACCOUNT, account_id)
            result = self._validator.validate_bill_payment(bill, account_id, account, bill_id=bill_id)
            await self._ensure_valid(result, EntityKind.BILL, bill_id, correlation_id)

            following = None
            if bill.frequency != Frequency.ONE_TIME:
                following = advance_by_frequency(bill.next_due_date or paid_on, bill.frequency)
            provisional_bill = bill.model_copy(update=(
                {"next_due_date": following} if following is not None else {"is_paid": True}
            ))

            confirmed, _ = await self._execute(
                operation="pay_bill",
                mutation=MutationType.BILL_PAYMENT,
                kind=EntityKind.BILL,
                entity_id=bill_id,
                payload={
                    "account_id": account_id,
                    "payment_date": paid_on.isoformat(),
                },
                correlation_id=correlation_id,
                provisional=[
                    provisional_bill,
                    account.model_copy(update={"balance": account.balance - bill.amount}),
                ],
                expected=[EntityKind.BILL, EntityKind.ACCOUNT],
            )

        updated_bill = confirmed[EntityKind.BILL][0]
        if self._audit_logger:
            next_due = updated_bill.next_due_date
            await self._audit_logger.log_bill_paid(
                bill_id=bill_id,
                account_id=account_id,
                amount=str(bill.amount),
                next_due_date=next_due.isoformat() if next_due and not updated_bill.is_paid else None,
                correlation_id=correlation_id,
            )
        return BillPaymentResult(
            bill=updated_bill,
            account=confirmed[EntityKind.ACCOUNT][0],
            amount_paid=bill.amount,
            payment_date=paid_on,
        )

    # =========================================================================
    # DELETION
    # =========================================================================

    async def delete_entity(self, kind: EntityKind, entity_id: int) -> None:
        """
        Delete one entity.

        Default categories and subcategories are refused with
        DefaultCategoryDeletionError; everything else is unconditional.
        """
        kind = EntityKind(kind)
        correlation_id = create_correlation_id()

        async with self.locks.hold((kind, entity_id)):
            entity = self.view().get(kind, entity_id)
            result = self._validator.validate_delete(kind, entity, entity_id=entity_id)
            await self._ensure_valid(result, kind, entity_id, correlation_id)

            await self._execute(
                operation="delete_entity",
                mutation=MutationType.DELETE,
                kind=kind,
                entity_id=entity_id,
                payload={},
                correlation_id=correlation_id,
                removals=[(kind, entity_id)],
            )

        if self._audit_logger:
            await self._audit_logger.log_entity_deleted(kind.value, entity_id, correlation_id)
