"""
Tests for the entity snapshot and per-entity locks.
"""

import asyncio
import pytest
from decimal import Decimal
from uuid import uuid4

from finstate.engine import EntityLocks, EntitySnapshot
from finstate.models import Account, Category, EntityKind, Goal, Subcategory


@pytest.fixture
def snapshot():
    snapshot = EntitySnapshot()
    snapshot.replace_all({
        EntityKind.ACCOUNT: [Account(id=1, name="Checking", balance="100")],
        EntityKind.GOAL: [Goal(id=1, name="Car", target_amount="500")],
        EntityKind.CATEGORY: [Category(id=3, name="Food", type="expense")],
        EntityKind.SUBCATEGORY: [Subcategory(id=7, name="Groceries", category_id=3)],
    })
    return snapshot


class TestEntitySnapshot:
    """Tests for committed and provisional layers."""

    def test_staged_changes_hidden_by_default(self, snapshot):
        """Test committed readers never see in-flight changes."""
        cid = uuid4()
        account = snapshot.view().get(EntityKind.ACCOUNT, 1)
        snapshot.stage(cid, [account.model_copy(update={"balance": Decimal("40")})])

        assert snapshot.view().get(EntityKind.ACCOUNT, 1).balance == Decimal("100.00")
        assert snapshot.view(include_provisional=True).get(EntityKind.ACCOUNT, 1).balance == Decimal("40")
        assert snapshot.is_staged(cid)

    def test_discard_restores_exactly(self, snapshot):
        """Test discarding leaves committed state as it was."""
        before = snapshot.view().get(EntityKind.GOAL, 1)
        cid = uuid4()
        snapshot.stage(cid, removals=[(EntityKind.GOAL, 1)])
        assert snapshot.view(include_provisional=True).get(EntityKind.GOAL, 1) is None

        snapshot.discard(cid)
        assert snapshot.pending_count == 0
        assert snapshot.view(include_provisional=True).get(EntityKind.GOAL, 1) == before

    def test_commit_writes_only_confirmed_records(self, snapshot):
        """Test the store's record wins over the staged guess."""
        cid = uuid4()
        goal = snapshot.view().get(EntityKind.GOAL, 1)
        snapshot.stage(cid, [goal.model_copy(update={"current_amount": Decimal("999")})])
        snapshot.commit(cid, {EntityKind.GOAL: [goal.model_copy(update={"current_amount": Decimal("50")})]})

        assert not snapshot.is_staged(cid)
        assert snapshot.view(include_provisional=True).get(EntityKind.GOAL, 1).current_amount == Decimal("50")

    def test_stage_twice_rejected(self, snapshot):
        """Test one correlation id stages at most one change."""
        cid = uuid4()
        snapshot.stage(cid)
        with pytest.raises(ValueError):
            snapshot.stage(cid)

    def test_new_entities_get_placeholders(self, snapshot):
        """Test staged creations are listed after committed entities."""
        snapshot.stage(uuid4(), [Goal(name="Bike", target_amount="300")])
        goals = snapshot.view(include_provisional=True).goals
        assert [goal.name for goal in goals] == ["Car", "Bike"]
        assert goals[-1].id is None

    def test_views_are_isolated(self, snapshot):
        """Test a view taken earlier does not change after a commit."""
        view = snapshot.view()
        cid = uuid4()
        snapshot.stage(cid)
        snapshot.commit(cid, {EntityKind.ACCOUNT: [Account(id=2, name="Savings")]})

        assert view.get(EntityKind.ACCOUNT, 2) is None
        assert snapshot.view().get(EntityKind.ACCOUNT, 2) is not None
        assert view.counts()["account"] == 1

    def test_commit_syncs_category_children(self, snapshot):
        """Test created and deleted subcategories update their parent."""
        cid = uuid4()
        snapshot.stage(cid)
        snapshot.commit(cid, {EntityKind.SUBCATEGORY: [Subcategory(id=8, name="Dining", category_id=3)]})
        children = snapshot.view().get(EntityKind.CATEGORY, 3).subcategories
        assert [child.id for child in children] == [7, 8]

        cid = uuid4()
        snapshot.stage(cid)
        snapshot.commit(cid, {}, deleted={EntityKind.SUBCATEGORY: [7]})
        children = snapshot.view().get(EntityKind.CATEGORY, 3).subcategories
        assert [child.id for child in children] == [8]

    def test_replace_all_keeps_staged(self, snapshot):
        """Test refresh does not drop in-flight changes."""
        cid = uuid4()
        snapshot.stage(cid)
        snapshot.replace_all({})
        assert snapshot.is_staged(cid)
        assert snapshot.view().accounts == []

    def test_replace_all_keeps_later_commits(self, snapshot):
        """Test records loaded before a commit never overwrite it."""
        loaded_since = snapshot.version
        cid = uuid4()
        snapshot.stage(cid)
        snapshot.commit(cid, {EntityKind.ACCOUNT: [Account(id=1, name="Checking", balance="60")]})
        assert snapshot.version == loaded_since + 1

        snapshot.replace_all({
            EntityKind.ACCOUNT: [Account(id=1, name="Checking", balance="100")],
            EntityKind.GOAL: [Goal(id=1, name="Car", target_amount="800")],
        }, loaded_since=loaded_since)

        view = snapshot.view()
        assert view.get(EntityKind.ACCOUNT, 1).balance == Decimal("60.00")
        assert view.get(EntityKind.GOAL, 1).target_amount == Decimal("800.00")

    def test_replace_all_does_not_resurrect_deletes(self, snapshot):
        """Test an entity deleted during a load stays deleted."""
        loaded_since = snapshot.version
        cid = uuid4()
        snapshot.stage(cid)
        snapshot.commit(cid, {}, deleted={EntityKind.SUBCATEGORY: [7]})

        snapshot.replace_all({
            EntityKind.CATEGORY: [Category(id=3, name="Food", type="expense")],
            EntityKind.SUBCATEGORY: [Subcategory(id=7, name="Groceries", category_id=3)],
        }, loaded_since=loaded_since)

        view = snapshot.view()
        assert view.get(EntityKind.SUBCATEGORY, 7) is None
        assert view.get(EntityKind.CATEGORY, 3).subcategories == []

    def test_full_replace_after_load_finishes(self, snapshot):
        """Test a load started after the commit takes the store's records."""
        cid = uuid4()
        snapshot.stage(cid)
        snapshot.commit(cid, {EntityKind.ACCOUNT: [Account(id=1, name="Checking", balance="60")]})

        snapshot.replace_all({
            EntityKind.ACCOUNT: [Account(id=1, name="Checking", balance="75")],
        }, loaded_since=snapshot.version)
        assert snapshot.view().get(EntityKind.ACCOUNT, 1).balance == Decimal("75.00")


class TestEntityLocks:
    """Tests for per-entity locking."""

    @pytest.mark.asyncio
    async def test_hold_and_release(self):
        """Test locks are held inside the block and released after."""
        locks = EntityLocks()
        async with locks.hold((EntityKind.LOAN, 1), (EntityKind.ACCOUNT, None)):
            assert locks.is_locked((EntityKind.LOAN, 1))
            assert not locks.is_locked((EntityKind.ACCOUNT, None))
        assert not locks.is_locked((EntityKind.LOAN, 1))

    @pytest.mark.asyncio
    async def test_duplicate_keys_taken_once(self):
        """Test the same entity twice does not deadlock."""
        locks = EntityLocks()
        async with locks.hold((EntityKind.LOAN, 1), ("loan", 1)):
            assert locks.is_locked((EntityKind.LOAN, 1))

    @pytest.mark.asyncio
    async def test_released_on_error(self):
        """Test an exception inside the block releases every lock."""
        locks = EntityLocks()
        with pytest.raises(RuntimeError):
            async with locks.hold((EntityKind.LOAN, 1), (EntityKind.ACCOUNT, 2)):
                raise RuntimeError("boom")
        assert not locks.is_locked((EntityKind.LOAN, 1))
        assert not locks.is_locked((EntityKind.ACCOUNT, 2))

    @pytest.mark.asyncio
    async def test_opposite_order_does_not_deadlock(self):
        """Test keys given in either order are acquired canonically."""
        locks = EntityLocks()
        order = []

        async def worker(name, *keys):
            async with locks.hold(*keys):
                order.append(name)
                await asyncio.sleep(0)

        await asyncio.wait_for(
            asyncio.gather(
                worker("a", (EntityKind.LOAN, 1), (EntityKind.ACCOUNT, 2)),
                worker("b", (EntityKind.ACCOUNT, 2), (EntityKind.LOAN, 1)),
            ),
            timeout=1,
        )
        assert sorted(order) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_same_entity_serialized(self):
        """Test two holders of one key never overlap."""
        locks = EntityLocks()
        active = []
        overlaps = []

        async def worker():
            async with locks.hold((EntityKind.GOAL, 5)):
                active.append(1)
                overlaps.append(len(active))
                await asyncio.sleep(0)
                active.pop()

        await asyncio.gather(worker(), worker(), worker())
        assert overlaps == [1, 1, 1]

    @pytest.mark.asyncio
    async def test_unused_locks_dropped(self):
        """Test the registry is empty once every holder and waiter is done."""
        locks = EntityLocks()
        seen = []

        async def worker(entity_id):
            async with locks.hold((EntityKind.LOAN, 1), (EntityKind.ACCOUNT, entity_id)):
                seen.append(locks.active_count)
                await asyncio.sleep(0)

        await asyncio.gather(*(worker(entity_id) for entity_id in range(5)))
        assert max(seen) >= 2
        assert locks.active_count == 0

        with pytest.raises(RuntimeError):
            async with locks.hold((EntityKind.GOAL, 9)):
                raise RuntimeError("boom")
        assert locks.active_count == 0
