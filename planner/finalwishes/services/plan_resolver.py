"""
Plan Identity Resolver
Finds (and optionally creates) the org + plan a user owns
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from finalwishes.models.organization import Org, OrgMember, MemberRole
from finalwishes.models.plan import Plan, DEFAULT_PLAN_TITLE
from finalwishes.models.user import User

logger = logging.getLogger(__name__)

REASON_NOT_AUTHENTICATED = "not_authenticated"
REASON_NOT_FOUND = "not_found"
REASON_INTEGRITY_ERROR = "integrity_error"
REASON_ERROR = "error"


class PlanIntegrityError(Exception):
    """Stored identity data breaks the one-owner-org rule"""


@dataclass
class ActivePlanResult:
    plan_id: Optional[uuid.UUID] = None
    org_id: Optional[uuid.UUID] = None
    plan: Optional[Plan] = None
    reason: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.plan_id is not None

    @classmethod
    def missing(cls, reason: str, org_id: Optional[uuid.UUID] = None) -> "ActivePlanResult":
        return cls(plan_id=None, org_id=org_id, plan=None, reason=reason)

    def to_dict(self) -> dict:
        return {
            "planId": str(self.plan_id) if self.plan_id else None,
            "orgId": str(self.org_id) if self.org_id else None,
            "reason": self.reason,
        }


def _coerce_user_id(user_id: Any) -> Optional[uuid.UUID]:
    if not user_id:
        return None
    if isinstance(user_id, uuid.UUID):
        return user_id
    try:
        return uuid.UUID(str(user_id))
    except ValueError:
        return None


async def _find_owner_org_id(db: AsyncSession, user_id: uuid.UUID) -> Optional[uuid.UUID]:
    result = await db.execute(
        select(OrgMember.org_id).where(
            OrgMember.user_id == user_id,
            OrgMember.role == MemberRole.OWNER.value,
        )
    )
    org_ids = result.scalars().all()
    if len(org_ids) > 1:
        raise PlanIntegrityError(f"user {user_id} owns {len(org_ids)} orgs")
    return org_ids[0] if org_ids else None


async def _find_plan(db: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Plan]:
    result = await db.execute(
        select(Plan).where(Plan.org_id == org_id, Plan.owner_user_id == user_id)
    )
    return result.scalar_one_or_none()


async def _get_full_name(db: AsyncSession, user_id: uuid.UUID) -> Optional[str]:
    result = await db.execute(select(User.full_name).where(User.id == user_id))
    full_name = result.scalar_one_or_none()
    return full_name.strip() if full_name and full_name.strip() else None


async def _create_org_and_plan(db: AsyncSession, user_id: uuid.UUID) -> None:
    full_name = await _get_full_name(db, user_id)

    org = Org(name=f"{full_name}'s Organization" if full_name else "Personal")
    db.add(org)
    await db.flush()

    db.add(OrgMember(org_id=org.id, user_id=user_id, role=MemberRole.OWNER.value))
    db.add(Plan(
        org_id=org.id,
        owner_user_id=user_id,
        title=DEFAULT_PLAN_TITLE,
        prepared_for=full_name,
        plan_payload={},
        revisions=[],
    ))
    await db.commit()
    logger.info(f"Created org {org.id} and plan for user {user_id}")


async def _create_plan(db: AsyncSession, org_id: uuid.UUID, user_id: uuid.UUID) -> None:
    full_name = await _get_full_name(db, user_id)
    db.add(Plan(
        org_id=org_id,
        owner_user_id=user_id,
        title=DEFAULT_PLAN_TITLE,
        prepared_for=full_name,
        plan_payload={},
        revisions=[],
    ))
    await db.commit()
    logger.info(f"Created plan in org {org_id} for user {user_id}")


async def _resolve(db: AsyncSession, user_id: uuid.UUID, create_if_missing: bool) -> ActivePlanResult:
    org_id = await _find_owner_org_id(db, user_id)

    if org_id is None:
        if not create_if_missing:
            return ActivePlanResult.missing(REASON_NOT_FOUND)
        try:
            await _create_org_and_plan(db, user_id)
        except IntegrityError:
            # Another request created the owner org first; use theirs
            await db.rollback()
            logger.info(f"Concurrent plan creation for user {user_id}, re-reading")
        org_id = await _find_owner_org_id(db, user_id)
        if org_id is None:
            return ActivePlanResult.missing(REASON_NOT_FOUND)

    plan = await _find_plan(db, org_id, user_id)

    if plan is None and create_if_missing:
        try:
            await _create_plan(db, org_id, user_id)
        except IntegrityError:
            await db.rollback()
            logger.info(f"Concurrent plan creation in org {org_id}, re-reading")
        plan = await _find_plan(db, org_id, user_id)

    if plan is None:
        return ActivePlanResult.missing(REASON_NOT_FOUND, org_id=org_id)

    return ActivePlanResult(plan_id=plan.id, org_id=org_id, plan=plan)


async def resolve_active_plan(
    db: AsyncSession,
    user_id: Any,
    create_if_missing: bool = False,
) -> ActivePlanResult:
    """
    Resolve the plan owned by `user_id`.

    Never raises. A missing user gives reason `not_authenticated`, a user
    with no plan gives `not_found` (unless `create_if_missing`), and any
    storage failure is logged and reported as `error`. Repeated calls with
    creation enabled return the same identifiers.
    """
    uid = _coerce_user_id(user_id)
    if uid is None:
        return ActivePlanResult.missing(REASON_NOT_AUTHENTICATED)

    try:
        return await _resolve(db, uid, create_if_missing)
    except PlanIntegrityError as e:
        logger.error(f"Plan resolution rejected: {e}")
        return ActivePlanResult.missing(REASON_INTEGRITY_ERROR)
    except Exception as e:
        logger.error(f"Plan resolution failed for user {uid}: {e}", exc_info=True)
        await db.rollback()
        return ActivePlanResult.missing(REASON_ERROR)
