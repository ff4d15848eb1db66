"""
Plan Aggregator
Loads a plan and all of its record collections concurrently into one view
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from finalwishes.config.plan_fields import PLAN_NOTE_FIELDS
from finalwishes.models.plan import Plan
from finalwishes.models.plan_records import PLAN_COLLECTIONS, PersonalProfile
from finalwishes.services.plan_resolver import resolve_active_plan
from finalwishes.utils.database import get_async_session, model_to_dict

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]


@dataclass
class PlanDataView:
    """Everything stored for one plan; unreadable parts fall back to empty"""
    plan_id: uuid.UUID
    plan: Optional[Dict[str, Any]] = None
    personal_profile: Optional[Dict[str, Any]] = None
    collections: Dict[str, List[Dict[str, Any]]] = field(
        default_factory=lambda: {name: [] for name in PLAN_COLLECTIONS}
    )
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def degraded(self) -> bool:
        return bool(self.errors)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan,
            "personal_profile": self.personal_profile,
            **self.collections,
        }


@dataclass(frozen=True)
class PlanDataStatus:
    counts: Dict[str, int]
    has_any_data: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"counts": dict(self.counts), "hasAnyData": self.has_any_data}


def count_filled_notes(plan: Optional[Dict[str, Any]]) -> int:
    if not plan:
        return 0
    return sum(
        1 for name in PLAN_NOTE_FIELDS
        if isinstance(plan.get(name), str) and plan[name].strip()
    )


def compute_plan_data_status(view: Optional[PlanDataView]) -> PlanDataStatus:
    """Per-category counts plus whether the plan holds anything at all"""
    counts: Dict[str, int] = {"profile": 0, "planNotes": 0}
    counts.update({name: 0 for name in PLAN_COLLECTIONS})

    if view is not None:
        profile = view.personal_profile or {}
        counts["profile"] = 1 if (profile.get("full_name") or "").strip() else 0
        counts["planNotes"] = count_filled_notes(view.plan)
        for name, rows in view.collections.items():
            counts[name] = len(rows or [])

    return PlanDataStatus(counts=counts, has_any_data=any(counts.values()))


class PlanAggregator:
    """Fans out one read per table; a failing read degrades instead of failing the view"""

    def __init__(self, session_factory: SessionFactory = get_async_session):
        self.session_factory = session_factory

    async def _fetch_plan(self, plan_id: uuid.UUID) -> Optional[Dict[str, Any]]:
        async with self.session_factory() as db:
            result = await db.execute(select(Plan).where(Plan.id == plan_id))
            plan = result.scalar_one_or_none()
            return model_to_dict(plan) if plan else None

    async def _fetch_profile(self, plan_id: uuid.UUID) -> Optional[Dict[str, Any]]:
        async with self.session_factory() as db:
            result = await db.execute(select(PersonalProfile).where(PersonalProfile.plan_id == plan_id))
            profile = result.scalar_one_or_none()
            return model_to_dict(profile) if profile else None

    async def _fetch_collection(self, name: str, plan_id: uuid.UUID) -> List[Dict[str, Any]]:
        model = PLAN_COLLECTIONS[name]
        async with self.session_factory() as db:
            result = await db.execute(
                select(model).where(model.plan_id == plan_id).order_by(model.created_at)
            )
            return [model_to_dict(row) for row in result.scalars().all()]

    async def _guarded(self, name: str, fetch: Awaitable[Any], default: Any, view: PlanDataView) -> Any:
        try:
            return await fetch
        except Exception as e:
            logger.warning(f"Fetching {name} for plan {view.plan_id} failed: {e}")
            view.errors[name] = str(e)
            return default

    async def fetch_plan_data(self, plan_id: uuid.UUID) -> PlanDataView:
        """Load the plan root, profile and every collection concurrently"""
        view = PlanDataView(plan_id=plan_id)
        names = list(PLAN_COLLECTIONS)

        results = await asyncio.gather(
            self._guarded("plan", self._fetch_plan(plan_id), None, view),
            self._guarded("personal_profile", self._fetch_profile(plan_id), None, view),
            *[
                self._guarded(name, self._fetch_collection(name, plan_id), [], view)
                for name in names
            ],
        )

        view.plan, view.personal_profile = results[0], results[1]
        view.collections = dict(zip(names, results[2:]))
        return view

    async def plan_data_status(self, db: AsyncSession, user_id: Any) -> Dict[str, Any]:
        """Counts and has-any-data flag for the user's plan (never creates one)"""
        active = await resolve_active_plan(db, user_id, create_if_missing=False)
        if not active.found:
            status = compute_plan_data_status(None)
        else:
            status = compute_plan_data_status(await self.fetch_plan_data(active.plan_id))
        return {**active.to_dict(), **status.to_dict()}

    async def table_counts(self, plan_id: uuid.UUID) -> Dict[str, int]:
        """Row counts per plan table, for admin diagnostics"""
        tables = {"personal_profiles": PersonalProfile}
        tables.update({model.__tablename__: model for model in PLAN_COLLECTIONS.values()})

        async def count(model) -> int:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(func.count()).select_from(model).where(model.plan_id == plan_id)
                )
                return int(result.scalar_one())

        names = list(tables)
        totals = await asyncio.gather(*[count(tables[name]) for name in names], return_exceptions=True)

        counts = {}
        for name, total in zip(names, totals):
            if isinstance(total, Exception):
                logger.warning(f"Counting {name} for plan {plan_id} failed: {total}")
                counts[name] = 0
            else:
                counts[name] = total
        return counts


class PlanStatusTracker:
    """
    Keeps the latest plan status for one consumer.

    Each refresh takes a generation number; a result is applied only if no
    newer refresh started and the tracker is still open, so late answers
    from abandoned lookups never overwrite current state.
    """

    def __init__(self, aggregator: PlanAggregator):
        self.aggregator = aggregator
        self.plan_id: Optional[uuid.UUID] = None
        self.status: Optional[PlanDataStatus] = None
        self._generation = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def refresh(self, plan_id: Optional[uuid.UUID]) -> bool:
        """Recompute status for plan_id; returns False when the result was discarded"""
        if self._closed:
            return False
        self._generation += 1
        generation = self._generation

        if plan_id is None:
            status = compute_plan_data_status(None)
        else:
            status = compute_plan_data_status(await self.aggregator.fetch_plan_data(plan_id))

        if self._closed or generation != self._generation:
            logger.debug(f"Discarding stale plan status for {plan_id}")
            return False

        self.plan_id = plan_id
        self.status = status
        return True

    def close(self) -> None:
        self._closed = True


plan_aggregator = PlanAggregator()


def get_plan_aggregator() -> PlanAggregator:
    """FastAPI dependency"""
    return plan_aggregator
