"""
Entity Snapshot

DESIGN DECISION: Readers never see a half-applied mutation.

The snapshot keeps two layers:
1. COMMITTED - entities exactly as the store last confirmed them
2. PROVISIONAL - changes staged by in-flight mutations, keyed by the
   mutation's correlation id

A staged change is either committed (replaced by the store's authoritative
records) or discarded (the store refused it). It is never merged into
committed state on its own.

Derivation and aggregation read from a SnapshotView: an immutable copy that
can be shared across any number of concurrent readers.
"""

import itertools
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Optional
from uuid import UUID

from finstate.models.entities import (
    Account,
    Budget,
    Category,
    EntityKind,
    EntityModel,
    Goal,
    Loan,
    RecurringObligation,
    Subcategory,
    kind_of,
)


class SnapshotView:
    """
    Read-only view of entities, by kind and id.

    Entities staged for creation have no store id yet; they are listed
    under negative placeholder keys and keep `id=None`.
    """

    def __init__(self, tables: Mapping[EntityKind, Mapping[int, EntityModel]]):
        self._tables = MappingProxyType({
            kind: MappingProxyType(dict(tables.get(kind, {})))
            for kind in EntityKind
        })

    def get(self, kind: EntityKind, entity_id) -> Optional[EntityModel]:
        if entity_id is None:
            return None
        return self._tables[EntityKind(kind)].get(entity_id)

    def all(self, kind: EntityKind) -> list[EntityModel]:
        """Entities of one kind, in id order (placeholders last)."""
        table = self._tables[EntityKind(kind)]
        ordered = sorted(table.items(), key=lambda item: (item[0] < 0, abs(item[0])))
        return [entity for _, entity in ordered]

    def counts(self) -> dict[str, int]:
        return {kind.value: len(table) for kind, table in self._tables.items()}

    @property
    def accounts(self) -> list[Account]:
        return self.all(EntityKind.ACCOUNT)

    @property
    def loans(self) -> list[Loan]:
        return self.all(EntityKind.LOAN)

    @property
    def budgets(self) -> list[Budget]:
        return self.all(EntityKind.BUDGET)

    @property
    def goals(self) -> list[Goal]:
        return self.all(EntityKind.GOAL)

    @property
    def bills(self) -> list[RecurringObligation]:
        return self.all(EntityKind.BILL)

    @property
    def categories(self) -> list[Category]:
        return self.all(EntityKind.CATEGORY)

    @property
    def subcategories(self) -> list[Subcategory]:
        return self.all(EntityKind.SUBCATEGORY)


@dataclass
class _StagedChange:
    upserts: list[EntityModel] = field(default_factory=list)
    removals: list[tuple[EntityKind, int]] = field(default_factory=list)


class EntitySnapshot:
    """Committed entity state plus provisional changes of in-flight mutations."""

    def __init__(self):
        self._committed: dict[EntityKind, dict[int, EntityModel]] = {
            kind: {} for kind in EntityKind
        }
        self._staged: dict[UUID, _StagedChange] = {}
        # Commit sequence, and the sequence at which each entity last changed
        self._version = 0
        self._changed_at: dict[tuple[EntityKind, int], int] = {}

    # -------------------------------------------------------------------------
    # Committed state
    # -------------------------------------------------------------------------

    @property
    def version(self) -> int:
        """Number of commits so far. Take it before a reload starts."""
        return self._version

    def replace_all(
        self,
        tables: Mapping[EntityKind, Iterable[EntityModel]],
        loaded_since: Optional[int] = None,
    ) -> None:
        """
        Swap in a freshly loaded state. Staged changes are left alone.

        With `loaded_since` (the `version` taken before the load began),
        entities committed or deleted after that point keep their committed
        state: the load may have read them before the store applied the
        change.
        """
        committed: dict[EntityKind, dict[int, EntityModel]] = {kind: {} for kind in EntityKind}
        for kind, entities in tables.items():
            for entity in entities:
                if entity.id is not None:
                    committed[EntityKind(kind)][entity.id] = entity
        touched_categories: set[int] = set()
        if loaded_since is not None:
            for (kind, entity_id), changed in self._changed_at.items():
                if changed <= loaded_since:
                    continue
                current = self._committed[kind].get(entity_id)
                stale = committed[kind].pop(entity_id, None)
                if current is not None:
                    committed[kind][entity_id] = current
                if kind == EntityKind.SUBCATEGORY:
                    for sub in (current, stale):
                        if sub is not None and sub.category_id is not None:
                            touched_categories.add(sub.category_id)
            self._changed_at = {
                key: changed for key, changed in self._changed_at.items()
                if changed > loaded_since
            }
        else:
            self._changed_at = {}
        self._committed = committed
        self._sync_subcategories(touched_categories)

    def commit(
        self,
        correlation_id: UUID,
        confirmed: Mapping[EntityKind, Iterable[EntityModel]],
        deleted: Optional[Mapping[EntityKind, Iterable[int]]] = None,
    ) -> None:
        """
        Apply the store's authoritative result and drop the staged change.

        Only what the store confirmed is written; the staged entities
        themselves are thrown away.
        """
        self._version += 1
        touched_categories: set[int] = set()
        for kind, entities in confirmed.items():
            kind = EntityKind(kind)
            for entity in entities:
                if entity.id is None:
                    continue
                if kind == EntityKind.SUBCATEGORY:
                    previous = self._committed[kind].get(entity.id)
                    if previous is not None and previous.category_id is not None:
                        touched_categories.add(previous.category_id)
                    if entity.category_id is not None:
                        touched_categories.add(entity.category_id)
                self._committed[kind][entity.id] = entity
                self._changed_at[(kind, entity.id)] = self._version

        for kind, ids in (deleted or {}).items():
            kind = EntityKind(kind)
            for entity_id in ids:
                removed = self._committed[kind].pop(entity_id, None)
                self._changed_at[(kind, entity_id)] = self._version
                if kind == EntityKind.SUBCATEGORY and removed is not None and removed.category_id is not None:
                    touched_categories.add(removed.category_id)

        self._sync_subcategories(touched_categories)
        self._staged.pop(correlation_id, None)

    def _sync_subcategories(self, category_ids: Iterable[int]) -> None:
        """Keep each category's nested subcategory list in step with the table."""
        categories = self._committed[EntityKind.CATEGORY]
        subcategories = self._committed[EntityKind.SUBCATEGORY].values()
        for category_id in category_ids:
            category = categories.get(category_id)
            if category is None:
                continue
            children = sorted(
                (sub for sub in subcategories if sub.category_id == category_id),
                key=lambda sub: sub.id,
            )
            categories[category_id] = category.model_copy(update={"subcategories": children})

    # -------------------------------------------------------------------------
    # Provisional state
    # -------------------------------------------------------------------------

    def stage(
        self,
        correlation_id: UUID,
        upserts: Iterable[EntityModel] = (),
        removals: Iterable[tuple[EntityKind, int]] = (),
    ) -> None:
        if correlation_id in self._staged:
            raise ValueError(f"Mutation {correlation_id} is already staged")
        self._staged[correlation_id] = _StagedChange(
            upserts=list(upserts),
            removals=[(EntityKind(kind), entity_id) for kind, entity_id in removals],
        )

    def discard(self, correlation_id: UUID) -> None:
        """Forget a staged change. Committed state is untouched."""
        self._staged.pop(correlation_id, None)

    def is_staged(self, correlation_id: UUID) -> bool:
        return correlation_id in self._staged

    @property
    def pending_count(self) -> int:
        return len(self._staged)

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def view(self, include_provisional: bool = False) -> SnapshotView:
        """
        Immutable view of the state.

        By default only committed state is visible. With
        `include_provisional=True`, staged changes are overlaid in staging
        order; use that only for optimistic display.
        """
        if not include_provisional:
            return SnapshotView(self._committed)

        tables = {kind: dict(table) for kind, table in self._committed.items()}
        placeholder = itertools.count(1)
        for change in self._staged.values():
            for kind, entity_id in change.removals:
                tables[kind].pop(entity_id, None)
            for entity in change.upserts:
                key = entity.id if entity.id is not None else -next(placeholder)
                tables[kind_of(entity)][key] = entity
        return SnapshotView(tables)
