"""
Support API endpoints
Appointment booking and knowledge base search
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, Optional

from finalwishes.utils.database import get_db
from finalwishes.models.user import User
from finalwishes.middleware.auth import require_auth
from finalwishes.services.appointments import create_appointment, parse_timestamp
from finalwishes.services.kb_search import search_knowledge_base

router = APIRouter()


class AppointmentRequest(BaseModel):
    starts_at: str = Field(alias="startsAt")
    ends_at: str = Field(alias="endsAt")
    notes: Optional[str] = None

    @field_validator("starts_at", "ends_at")
    @classmethod
    def check_iso_timestamp(cls, value: str) -> str:
        parse_timestamp(value)
        return value


class KBSearchRequest(BaseModel):
    query: str


@router.post("/appointments", status_code=201)
async def book_appointment(
    request: AppointmentRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """Store the appointment and return it with an iCalendar invite"""
    if parse_timestamp(request.ends_at) <= parse_timestamp(request.starts_at):
        raise HTTPException(status_code=400, detail="endsAt must be after startsAt")

    return await create_appointment(
        db,
        user_id=user.id,
        starts_at=request.starts_at,
        ends_at=request.ends_at,
        notes=request.notes,
    )


@router.post("/kb/search")
async def kb_search(
    request: KBSearchRequest,
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    query = request.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Missing query")
    return await search_knowledge_base(db, query)
