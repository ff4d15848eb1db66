"""
Plan Writer
Partial plan updates and plan record CRUD
"""

import logging
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from finalwishes.config.plan_fields import PLAN_TABLE_COLUMNS, SECTION_DATA_KEYS
from finalwishes.models.plan import Plan
from finalwishes.models.plan_records import PLAN_COLLECTIONS, PersonalProfile
from finalwishes.utils.data_checks import RECORD_METADATA_FIELDS
from finalwishes.utils.database import model_to_dict, utcnow

logger = logging.getLogger(__name__)

# Columns callers never set directly on a record
PROTECTED_RECORD_FIELDS = RECORD_METADATA_FIELDS


class UnknownPlanFieldError(ValueError):
    def __init__(self, fields: List[str]):
        self.fields = sorted(fields)
        super().__init__(f"Unknown plan fields: {', '.join(self.fields)}")


class MissingRecordFieldError(ValueError):
    def __init__(self, fields: List[str]):
        self.fields = sorted(fields)
        super().__init__(f"Missing required fields: {', '.join(self.fields)}")


def split_plan_update(updates: Dict[str, Any]):
    """Split an update into (column values, payload sections); unknown keys raise"""
    unknown = [key for key in updates if key not in PLAN_TABLE_COLUMNS and key not in SECTION_DATA_KEYS]
    if unknown:
        raise UnknownPlanFieldError(unknown)

    columns = {key: value for key, value in updates.items() if key in PLAN_TABLE_COLUMNS}
    sections = {key: value for key, value in updates.items() if key in SECTION_DATA_KEYS}
    return columns, sections


async def apply_plan_update(db: AsyncSession, plan: Plan, updates: Dict[str, Any]) -> Plan:
    """Write each field to its column or into plan_payload; last write wins"""
    columns, sections = split_plan_update(updates)

    for key, value in columns.items():
        if key == "percent_complete":
            value = max(0, min(100, int(value or 0)))
        setattr(plan, key, value)

    if sections:
        # Reassign so the JSON column is flagged dirty
        plan.plan_payload = {**(plan.plan_payload or {}), **sections}

    plan.updated_at = utcnow()
    await db.commit()
    logger.info(f"Updated plan {plan.id}: columns={sorted(columns)} sections={sorted(sections)}")
    return plan


def _record_model(collection: str):
    model = PLAN_COLLECTIONS.get(collection)
    if model is None:
        raise KeyError(collection)
    return model


def _clean_record_fields(model, data: Dict[str, Any]) -> Dict[str, Any]:
    allowed = {column.key for column in model.__table__.columns} - PROTECTED_RECORD_FIELDS
    unknown = set(data) - allowed
    if unknown:
        raise UnknownPlanFieldError(list(unknown))
    return data


def _check_required_fields(model, data: Dict[str, Any]) -> None:
    required = [
        column.key
        for column in model.__table__.columns
        if not column.nullable
        and column.default is None
        and column.server_default is None
        and column.key not in PROTECTED_RECORD_FIELDS
    ]
    missing = [key for key in required if data.get(key) is None]
    if missing:
        raise MissingRecordFieldError(missing)


async def list_records(db: AsyncSession, plan_id: uuid.UUID, collection: str) -> List[Dict[str, Any]]:
    model = _record_model(collection)
    result = await db.execute(select(model).where(model.plan_id == plan_id).order_by(model.created_at))
    return [model_to_dict(row) for row in result.scalars().all()]


async def add_record(db: AsyncSession, plan_id: uuid.UUID, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
    model = _record_model(collection)
    fields = _clean_record_fields(model, data)
    _check_required_fields(model, fields)
    record = model(plan_id=plan_id, **fields)
    db.add(record)
    await db.commit()
    return model_to_dict(record)


async def delete_record(db: AsyncSession, plan_id: uuid.UUID, collection: str, record_id: uuid.UUID) -> bool:
    model = _record_model(collection)
    result = await db.execute(delete(model).where(model.id == record_id, model.plan_id == plan_id))
    await db.commit()
    return result.rowcount > 0


async def upsert_personal_profile(db: AsyncSession, plan_id: uuid.UUID, data: Dict[str, Any]) -> Dict[str, Any]:
    fields = _clean_record_fields(PersonalProfile, data)
    result = await db.execute(select(PersonalProfile).where(PersonalProfile.plan_id == plan_id))
    profile: Optional[PersonalProfile] = result.scalar_one_or_none()

    if profile is None:
        profile = PersonalProfile(plan_id=plan_id, **fields)
        db.add(profile)
    else:
        for key, value in fields.items():
            setattr(profile, key, value)
        profile.updated_at = utcnow()

    await db.commit()
    return model_to_dict(profile)
