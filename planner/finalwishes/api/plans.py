"""
Plan API endpoints
Active plan identity, aggregated plan data, completion, PDF and record CRUD
"""

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List
import logging
import uuid

from finalwishes.utils.database import get_db, model_to_dict
from finalwishes.models.user import User
from finalwishes.middleware.auth import require_auth
from finalwishes.config.sections import get_completable_sections, get_section_completion
from finalwishes.services.account import export_user_data
from finalwishes.services.entitlements import entitlement_resolver
from finalwishes.services.plan_aggregator import PlanAggregator, get_plan_aggregator
from finalwishes.services.plan_pdf import plan_pdf_generator
from finalwishes.services.plan_resolver import (
    ActivePlanResult,
    REASON_ERROR,
    REASON_INTEGRITY_ERROR,
    resolve_active_plan,
)
from finalwishes.services.plan_writer import (
    MissingRecordFieldError,
    UnknownPlanFieldError,
    add_record,
    apply_plan_update,
    delete_record,
    list_records,
    upsert_personal_profile,
)
from finalwishes.services.unified_plan import build_unified_from_view, unified_completion

logger = logging.getLogger(__name__)

router = APIRouter()


async def _require_plan(db: AsyncSession, user: User, create_if_missing: bool = False) -> ActivePlanResult:
    """Resolve the caller's plan or raise the matching HTTP error"""
    active = await resolve_active_plan(db, user.id, create_if_missing=create_if_missing)
    if active.found:
        return active

    if active.reason == REASON_INTEGRITY_ERROR:
        raise HTTPException(status_code=409, detail="Plan ownership is inconsistent; contact support")
    if active.reason == REASON_ERROR:
        raise HTTPException(status_code=500, detail="Failed to load plan")
    raise HTTPException(status_code=404, detail="No plan found")


@router.get("/active")
async def get_active_plan(
    create_if_missing: bool = Query(False, alias="createIfMissing"),
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """Plan identifiers for the caller; a missing plan is not an error here"""
    active = await resolve_active_plan(db, user.id, create_if_missing=create_if_missing)
    return active.to_dict()


@router.patch("/active")
async def update_active_plan(
    updates: Dict[str, Any] = Body(...),
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """Partial update; table columns are written directly, sections go into plan_payload"""
    active = await _require_plan(db, user, create_if_missing=True)

    try:
        plan = await apply_plan_update(db, active.plan, updates)
    except UnknownPlanFieldError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Invalid plan update: {e}")

    return {"planId": str(plan.id), "plan": model_to_dict(plan)}


@router.get("/data")
async def get_plan_data(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    aggregator: PlanAggregator = Depends(get_plan_aggregator)
) -> Dict[str, Any]:
    active = await _require_plan(db, user)
    view = await aggregator.fetch_plan_data(active.plan_id)
    return {
        "planId": str(active.plan_id),
        "data": view.as_dict(),
        "degraded": view.degraded,
        "errors": view.errors,
    }


@router.get("/status")
async def get_plan_status(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    aggregator: PlanAggregator = Depends(get_plan_aggregator)
) -> Dict[str, Any]:
    """Per-category counts and hasAnyData; never creates a plan"""
    return await aggregator.plan_data_status(db, user.id)


@router.get("/completion")
async def get_plan_completion(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    aggregator: PlanAggregator = Depends(get_plan_aggregator)
) -> Dict[str, Any]:
    active = await _require_plan(db, user)
    view = await aggregator.fetch_plan_data(active.plan_id)

    completion = get_section_completion(view.as_dict())
    total = len(get_completable_sections())
    done = sum(1 for complete in completion.values() if complete)

    return {
        "planId": str(active.plan_id),
        "sections": completion,
        "completed": done,
        "total": total,
        "percent": round(done * 100 / total) if total else 0,
        "degraded": view.degraded,
    }


@router.get("/unified")
async def get_unified_plan(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    aggregator: PlanAggregator = Depends(get_plan_aggregator)
) -> Dict[str, Any]:
    active = await _require_plan(db, user)
    view = await aggregator.fetch_plan_data(active.plan_id)
    unified = build_unified_from_view(view)
    return {
        "planId": str(active.plan_id),
        "unified": unified,
        "completion": unified_completion(unified),
        "degraded": view.degraded,
    }


@router.get("/pdf")
async def download_plan_pdf(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    aggregator: PlanAggregator = Depends(get_plan_aggregator)
):
    """Printable plan; requires the printable entitlement"""
    entitlement = await entitlement_resolver.resolve(db, user.id)
    if not entitlement.has_printable_access:
        raise HTTPException(status_code=403, detail="Printable access required")

    active = await _require_plan(db, user)
    view = await aggregator.fetch_plan_data(active.plan_id)
    unified = build_unified_from_view(view)
    prepared_for = (view.plan or {}).get("prepared_for") or user.full_name

    pdf = plan_pdf_generator.generate(unified, prepared_for=prepared_for)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="My-Final-Wishes-Plan.pdf"'},
    )


@router.get("/export")
async def export_my_data(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    aggregator: PlanAggregator = Depends(get_plan_aggregator)
) -> Dict[str, Any]:
    """All of the caller's stored data as JSON"""
    return await export_user_data(db, user, aggregator)


@router.put("/profile")
async def save_personal_profile(
    data: Dict[str, Any] = Body(...),
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    active = await _require_plan(db, user, create_if_missing=True)
    try:
        return await upsert_personal_profile(db, active.plan_id, data)
    except UnknownPlanFieldError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/records/{collection}")
async def get_records(
    collection: str,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
) -> List[Dict[str, Any]]:
    active = await _require_plan(db, user)
    try:
        return await list_records(db, active.plan_id, collection)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown collection: {collection}")


@router.post("/records/{collection}", status_code=201)
async def create_record(
    collection: str,
    data: Dict[str, Any] = Body(...),
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    active = await _require_plan(db, user, create_if_missing=True)
    try:
        return await add_record(db, active.plan_id, collection, data)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown collection: {collection}")
    except (UnknownPlanFieldError, MissingRecordFieldError) as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.delete("/records/{collection}/{record_id}")
async def remove_record(
    collection: str,
    record_id: uuid.UUID,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    active = await _require_plan(db, user)
    try:
        deleted = await delete_record(db, active.plan_id, collection, record_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown collection: {collection}")

    if not deleted:
        raise HTTPException(status_code=404, detail="Record not found")
    return {"deleted": True, "id": str(record_id)}
