"""
Tests for the plan aggregator, plan data status and the status tracker.
"""

import asyncio
import uuid

import pytest

from finalwishes.config.plan_fields import PLAN_NOTE_FIELDS
from finalwishes.models import Pet, PersonalProfile
from finalwishes.models.plan_records import PLAN_COLLECTIONS
from finalwishes.services.plan_aggregator import (
    PlanAggregator,
    PlanDataView,
    PlanStatusTracker,
    compute_plan_data_status,
)
from finalwishes.services.plan_resolver import resolve_active_plan


async def _plan_for(db, user):
    active = await resolve_active_plan(db, user.id, create_if_missing=True)
    assert active.found
    return active


async def test_empty_plan_view(db, test_user, aggregator):
    active = await _plan_for(db, test_user)

    view = await aggregator.fetch_plan_data(active.plan_id)

    assert view.plan["id"] == active.plan_id
    assert view.personal_profile is None
    assert set(view.collections) == set(PLAN_COLLECTIONS)
    assert all(rows == [] for rows in view.collections.values())
    assert not view.degraded

    status = compute_plan_data_status(view)
    assert status.has_any_data is False


async def test_view_collects_records(db, test_user, aggregator):
    active = await _plan_for(db, test_user)
    db.add(PersonalProfile(plan_id=active.plan_id, full_name="Jane Doe"))
    db.add(Pet(plan_id=active.plan_id, name="Rex"))
    db.add(Pet(plan_id=active.plan_id, name="Tom"))
    active.plan.funeral_wishes_notes = "Small gathering"
    await db.commit()

    view = await aggregator.fetch_plan_data(active.plan_id)
    status = compute_plan_data_status(view)

    assert [p["name"] for p in view.collections["pets"]] == ["Rex", "Tom"]
    assert status.counts["profile"] == 1
    assert status.counts["pets"] == 2
    assert status.counts["planNotes"] == 1
    assert status.has_any_data is True


def _view(plan=None, **collections):
    view = PlanDataView(plan_id=uuid.uuid4(), plan=plan)
    view.collections.update(collections)
    return view


@pytest.mark.parametrize("plan", [
    {name: "" for name in PLAN_NOTE_FIELDS},
    {name: "   \n\t" for name in PLAN_NOTE_FIELDS},
    {name: None for name in PLAN_NOTE_FIELDS},
])
def test_blank_notes_are_not_data(plan):
    status = compute_plan_data_status(_view(plan))
    assert status.counts["planNotes"] == 0
    assert status.has_any_data is False


@pytest.mark.parametrize("note_field", PLAN_NOTE_FIELDS)
def test_single_note_is_data(note_field):
    plan = {name: "" for name in PLAN_NOTE_FIELDS}
    plan[note_field] = "Call my sister first"

    status = compute_plan_data_status(_view(plan))

    assert status.counts["planNotes"] == 1
    assert status.has_any_data is True


@pytest.mark.parametrize("collection", sorted(PLAN_COLLECTIONS))
def test_single_record_is_data(collection):
    plan = {name: "  " for name in PLAN_NOTE_FIELDS}

    status = compute_plan_data_status(_view(plan, **{collection: [{"id": "r1"}]}))

    assert status.counts[collection] == 1
    assert status.counts["planNotes"] == 0
    assert status.has_any_data is True


async def test_single_stored_record_flips_status(db, test_user, aggregator):
    active = await _plan_for(db, test_user)
    active.plan.instructions_notes = "   "
    db.add(Pet(plan_id=active.plan_id, name="Rex"))
    await db.commit()

    status = compute_plan_data_status(await aggregator.fetch_plan_data(active.plan_id))

    assert status.counts["pets"] == 1
    assert status.counts["planNotes"] == 0
    assert status.has_any_data is True


async def test_failed_fetch_degrades_only_its_part(db, test_user, session_factory):
    active = await _plan_for(db, test_user)
    db.add(Pet(plan_id=active.plan_id, name="Rex"))
    await db.commit()

    class FlakyAggregator(PlanAggregator):
        async def _fetch_collection(self, name, plan_id):
            if name == "debts":
                raise RuntimeError("debts table unavailable")
            return await super()._fetch_collection(name, plan_id)

    view = await FlakyAggregator(session_factory).fetch_plan_data(active.plan_id)

    assert view.degraded
    assert list(view.errors) == ["debts"]
    assert view.collections["debts"] == []
    assert len(view.collections["pets"]) == 1
    assert view.plan is not None


async def test_status_without_plan_does_not_create_one(db, test_user, aggregator):
    result = await aggregator.plan_data_status(db, test_user.id)

    assert result["planId"] is None
    assert result["hasAnyData"] is False
    assert all(count == 0 for count in result["counts"].values())
    assert not (await resolve_active_plan(db, test_user.id)).found


async def test_table_counts(db, test_user, aggregator):
    active = await _plan_for(db, test_user)
    db.add(Pet(plan_id=active.plan_id, name="Rex"))
    await db.commit()

    counts = await aggregator.table_counts(active.plan_id)
    assert counts["pets"] == 1
    assert counts["personal_profiles"] == 0
    assert counts["debts"] == 0


# =============================================================================
# Status tracker
# =============================================================================

class GatedAggregator:
    """Fetches block until released, so refreshes can finish out of order"""

    def __init__(self):
        self.gates = {}

    async def fetch_plan_data(self, plan_id):
        gate = self.gates.setdefault(plan_id, asyncio.Event())
        await gate.wait()
        return PlanDataView(plan_id=plan_id, plan={"pets_notes": "feed twice"})


async def test_stale_refresh_is_discarded():
    aggregator = GatedAggregator()
    tracker = PlanStatusTracker(aggregator)
    old_plan, new_plan = uuid.uuid4(), uuid.uuid4()

    old = asyncio.create_task(tracker.refresh(old_plan))
    await asyncio.sleep(0)
    new = asyncio.create_task(tracker.refresh(new_plan))
    await asyncio.sleep(0)

    aggregator.gates[new_plan].set()
    assert await new is True
    aggregator.gates[old_plan].set()
    assert await old is False

    assert tracker.plan_id == new_plan
    assert tracker.status.counts["planNotes"] == 1


async def test_closed_tracker_ignores_results():
    aggregator = GatedAggregator()
    tracker = PlanStatusTracker(aggregator)
    plan_id = uuid.uuid4()

    pending = asyncio.create_task(tracker.refresh(plan_id))
    await asyncio.sleep(0)
    tracker.close()
    aggregator.gates[plan_id].set()

    assert await pending is False
    assert tracker.status is None
    assert await tracker.refresh(plan_id) is False


async def test_refresh_without_plan_reports_empty():
    tracker = PlanStatusTracker(GatedAggregator())
    assert await tracker.refresh(None) is True
    assert tracker.status.has_any_data is False
