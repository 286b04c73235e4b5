"""Integration tests for versioned commits against in-memory SQLite."""

import pytest

from plan_mcp.exceptions import EntityValidationError
from plan_mcp.exceptions import PersistenceError
from plan_mcp.exceptions import SnapshotNotFoundError
from plan_mcp.exceptions import VersionConflictError
from plan_mcp.persistence import SqlEntityStore
from plan_mcp.persistence import VersionedPersistenceCoordinator
from plan_mcp.persistence.sql import SqlStoreTransaction
from tests.conftest import PLAN_ID


@pytest.fixture
def coordinator(sql_store):
    return VersionedPersistenceCoordinator(sql_store)


class TestCommit:
    @pytest.mark.asyncio
    async def test_snapshot_holds_prior_state(self, seeded_plan_store):
        plan = await seeded_plan_store.resolve_entity(PLAN_ID)
        prior = plan.to_state()
        plan.name = "Hypertrophy Block"

        new_version = await seeded_plan_store.coordinator.commit(
            PLAN_ID, plan.to_state(), prior, actor_id="coach_1", expected_version=1
        )

        assert new_version == 2
        snapshot = await seeded_plan_store.get_version(PLAN_ID, 1)
        assert snapshot.state["name"] == "Strength Block"
        assert snapshot.actor_id == "coach_1"

        live = await seeded_plan_store.resolve_entity(PLAN_ID)
        assert live.name == "Hypertrophy Block"
        assert live.version == 2

    @pytest.mark.asyncio
    async def test_snapshot_defaults_to_live_state(self, seeded_plan_store):
        plan = await seeded_plan_store.resolve_entity(PLAN_ID)
        plan.description = "Changed"

        await seeded_plan_store.coordinator.commit(PLAN_ID, plan.to_state())

        snapshot = await seeded_plan_store.get_version(PLAN_ID, 1)
        assert snapshot.state["description"] is None

    @pytest.mark.asyncio
    async def test_versions_increase_by_one(self, seeded_plan_store):
        plan = await seeded_plan_store.resolve_entity(PLAN_ID)
        for expected in (2, 3, 4):
            assert await seeded_plan_store.save_entity(PLAN_ID, plan) == expected

    @pytest.mark.asyncio
    async def test_stale_version_is_rejected(self, seeded_plan_store):
        plan = await seeded_plan_store.resolve_entity(PLAN_ID)
        await seeded_plan_store.save_entity(PLAN_ID, plan, expected_version=1)

        with pytest.raises(VersionConflictError) as exc_info:
            await seeded_plan_store.save_entity(PLAN_ID, plan, expected_version=1)

        assert exc_info.value.error_code == "VERSION_CONFLICT"
        assert exc_info.value.actual_version == 2
        assert len(await seeded_plan_store.list_versions(PLAN_ID)) == 1

    @pytest.mark.asyncio
    async def test_missing_entity(self, coordinator, sql_store):
        with pytest.raises(PersistenceError) as exc_info:
            await coordinator.commit("ghost", {"name": "x"})
        assert exc_info.value.error_code == "ENTITY_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_failed_update_rolls_back_the_snapshot(self, seeded_plan_store, monkeypatch):
        def broken_update(self, entity_id, state, expected_version):
            raise RuntimeError("disk full")

        monkeypatch.setattr(SqlStoreTransaction, "update_live", broken_update)
        plan = await seeded_plan_store.resolve_entity(PLAN_ID)

        with pytest.raises(PersistenceError, match="Save failed: disk full"):
            await seeded_plan_store.save_entity(PLAN_ID, plan)

        monkeypatch.undo()
        assert await seeded_plan_store.list_versions(PLAN_ID) == []
        assert (await seeded_plan_store.resolve_entity(PLAN_ID)).version == 1

    @pytest.mark.asyncio
    async def test_guarded_update_miss_is_a_conflict(self, seeded_plan_store, monkeypatch):
        monkeypatch.setattr(SqlStoreTransaction, "update_live", lambda self, *args: False)
        plan = await seeded_plan_store.resolve_entity(PLAN_ID)

        with pytest.raises(VersionConflictError):
            await seeded_plan_store.save_entity(PLAN_ID, plan)

        monkeypatch.undo()
        assert await seeded_plan_store.list_versions(PLAN_ID) == []


class TestHistory:
    @pytest.mark.asyncio
    async def test_list_is_newest_first_and_limited(self, seeded_plan_store):
        plan = await seeded_plan_store.resolve_entity(PLAN_ID)
        for _ in range(3):
            await seeded_plan_store.save_entity(PLAN_ID, plan)

        versions = await seeded_plan_store.list_versions(PLAN_ID)
        assert [v.version for v in versions] == [3, 2, 1]
        assert [v.version for v in await seeded_plan_store.list_versions(PLAN_ID, limit=2)] == [3, 2]

    @pytest.mark.asyncio
    async def test_unknown_version(self, seeded_plan_store):
        with pytest.raises(SnapshotNotFoundError):
            await seeded_plan_store.get_version(PLAN_ID, 7)

    @pytest.mark.asyncio
    async def test_restore_appends_a_new_version(self, seeded_plan_store):
        plan = await seeded_plan_store.resolve_entity(PLAN_ID)
        plan.name = "Renamed"
        await seeded_plan_store.save_entity(PLAN_ID, plan)

        restored_version = await seeded_plan_store.restore_version(PLAN_ID, 1, actor_id="user_1")

        assert restored_version == 3
        live = await seeded_plan_store.resolve_entity(PLAN_ID)
        assert live.name == "Strength Block"
        assert live.version == 3
        assert (await seeded_plan_store.get_version(PLAN_ID, 2)).state["name"] == "Renamed"


class TestDomainIsolation:
    @pytest.mark.asyncio
    async def test_other_domain_does_not_resolve(self, sql_store, seeded_plan_store):
        meals = SqlEntityStore(sql_store, "meal", from_state=dict, to_state=dict)

        assert await meals.resolve_entity(PLAN_ID) is None
        assert await seeded_plan_store.get_owner(PLAN_ID) == "user_1"


class TestOwnership:
    @pytest.mark.asyncio
    async def test_row_owner_is_copied_into_the_plan(self, plan_store, sample_plan):
        sample_plan.owner_id = "someone_else"
        await plan_store.create_entity(PLAN_ID, sample_plan, owner_id="user_1")

        plan = await plan_store.resolve_entity(PLAN_ID)
        assert plan.owner_id == "user_1"
        assert await plan_store.get_owner(PLAN_ID) == "user_1"

        plan.owner_id = "someone_else"
        await plan_store.save_entity(PLAN_ID, plan)
        assert (await plan_store.resolve_entity(PLAN_ID)).owner_id == "user_1"

    @pytest.mark.asyncio
    async def test_owner_defaults_to_the_plan_field(self, plan_store, sample_plan):
        sample_plan.owner_id = "coach_7"
        await plan_store.create_entity(PLAN_ID, sample_plan)

        assert await plan_store.get_owner(PLAN_ID) == "coach_7"


class TestSaveValidation:
    @pytest.mark.asyncio
    async def test_state_that_cannot_be_loaded_is_refused(self, seeded_plan_store):
        plan = await seeded_plan_store.resolve_entity(PLAN_ID)
        plan.weeks[0].days[0].items[0].name = None

        with pytest.raises(EntityValidationError) as exc_info:
            await seeded_plan_store.save_entity(PLAN_ID, plan)

        assert exc_info.value.error_code == "ENTITY_VALIDATION_FAILED"
        assert await seeded_plan_store.list_versions(PLAN_ID) == []
        assert (await seeded_plan_store.resolve_entity(PLAN_ID)).version == 1


class TestStoreFactory:
    def test_singleton_and_reset(self):
        from plan_mcp.persistence import get_store
        from plan_mcp.persistence import reset_store

        reset_store()
        store = get_store()
        assert get_store() is store
        assert str(store.engine.url) == "sqlite:///:memory:"

        reset_store()
        assert get_store() is not store
        reset_store()
