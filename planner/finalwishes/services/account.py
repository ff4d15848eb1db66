"""
Account Service
Full export of a user's stored data and permanent account deletion
"""

import logging
from typing import Any, Dict, List
import uuid

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from finalwishes.models.billing import Purchase, Subscription
from finalwishes.models.organization import MemberRole, Org, OrgMember
from finalwishes.models.plan import Plan
from finalwishes.models.plan_records import PLAN_COLLECTIONS, PersonalProfile
from finalwishes.models.support import Appointment
from finalwishes.models.user import User, UserRole
from finalwishes.services.plan_aggregator import PlanAggregator
from finalwishes.utils.database import model_to_dict, utcnow

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "DELETE"

# Never leaves the server, not even in the user's own export
PRIVATE_USER_FIELDS = frozenset({"password_hash"})


async def _rows(db: AsyncSession, model, *criteria) -> List[Dict[str, Any]]:
    result = await db.execute(select(model).where(*criteria))
    return [model_to_dict(row) for row in result.scalars().all()]


async def _owned_org_ids(db: AsyncSession, user_id: uuid.UUID) -> List[uuid.UUID]:
    result = await db.execute(
        select(OrgMember.org_id).where(
            OrgMember.user_id == user_id,
            OrgMember.role == MemberRole.OWNER.value,
        )
    )
    return list(result.scalars().all())


async def _plan_ids(db: AsyncSession, user_id: uuid.UUID, org_ids: List[uuid.UUID]) -> List[uuid.UUID]:
    condition = Plan.owner_user_id == user_id
    if org_ids:
        condition = or_(condition, Plan.org_id.in_(org_ids))
    result = await db.execute(select(Plan.id).where(condition))
    return list(result.scalars().all())


async def export_user_data(db: AsyncSession, user: User, aggregator: PlanAggregator) -> Dict[str, Any]:
    """
    Everything stored for `user` as one JSON-ready document.

    Plan contents come from the aggregator, so a table that cannot be read
    is reported under `warnings` instead of failing the whole export.
    """
    user_record = {k: v for k, v in model_to_dict(user).items() if k not in PRIVATE_USER_FIELDS}

    plan_ids = await _plan_ids(db, user.id, await _owned_org_ids(db, user.id))
    plans: List[Dict[str, Any]] = []
    profiles: List[Dict[str, Any]] = []
    collections: Dict[str, List[Dict[str, Any]]] = {name: [] for name in PLAN_COLLECTIONS}
    warnings: List[str] = []

    for plan_id in plan_ids:
        view = await aggregator.fetch_plan_data(plan_id)
        if view.plan:
            plans.append(view.plan)
        if view.personal_profile:
            profiles.append(view.personal_profile)
        for name, rows in view.collections.items():
            collections[name].extend(rows or [])
        warnings.extend(f"{name}: {error}" for name, error in view.errors.items())

    export: Dict[str, Any] = {
        "exported_at": utcnow().isoformat(),
        "user_id": str(user.id),
        "data": {
            "user": user_record,
            "user_roles": await _rows(db, UserRole, UserRole.user_id == user.id),
            "org_memberships": await _rows(db, OrgMember, OrgMember.user_id == user.id),
            "plans": plans,
            "personal_profiles": profiles,
            **collections,
            "subscriptions": await _rows(db, Subscription, Subscription.user_id == user.id),
            "purchases": await _rows(db, Purchase, Purchase.user_id == user.id),
            "appointments": await _rows(db, Appointment, Appointment.user_id == user.id),
        },
    }
    if warnings:
        logger.warning(f"Export for user {user.id} is incomplete: {warnings}")
        export["warnings"] = warnings

    logger.info(f"Exported data for user {user.id}: {len(export['data'])} tables")
    return export


async def delete_account(db: AsyncSession, user: User) -> Dict[str, int]:
    """
    Remove the user, the orgs they own, every plan in them and all plan
    records, billing rows and appointments. Runs as one transaction.
    """
    user_id = user.id
    org_ids = await _owned_org_ids(db, user_id)
    plan_ids = await _plan_ids(db, user_id, org_ids)
    deleted: Dict[str, int] = {}

    async def remove(name: str, statement) -> None:
        result = await db.execute(statement)
        deleted[name] = result.rowcount or 0

    try:
        if plan_ids:
            for name, model in PLAN_COLLECTIONS.items():
                await remove(name, delete(model).where(model.plan_id.in_(plan_ids)))
            await remove("personal_profiles", delete(PersonalProfile).where(PersonalProfile.plan_id.in_(plan_ids)))
            await remove("plans", delete(Plan).where(Plan.id.in_(plan_ids)))

        membership = OrgMember.user_id == user_id
        if org_ids:
            membership = or_(membership, OrgMember.org_id.in_(org_ids))
        await remove("org_members", delete(OrgMember).where(membership))
        if org_ids:
            await remove("orgs", delete(Org).where(Org.id.in_(org_ids)))

        await remove("subscriptions", delete(Subscription).where(Subscription.user_id == user_id))
        await remove("purchases", delete(Purchase).where(Purchase.user_id == user_id))
        await remove("appointments", delete(Appointment).where(Appointment.user_id == user_id))
        await remove("user_roles", delete(UserRole).where(UserRole.user_id == user_id))
        await remove("users", delete(User).where(User.id == user_id))

        await db.commit()
    except Exception:
        await db.rollback()
        logger.error(f"Account deletion failed for user {user_id}", exc_info=True)
        raise

    logger.info(f"Deleted account {user_id}: {deleted}")
    return deleted
