"""
Appointment booking with an iCalendar invite
"""

from datetime import datetime, timezone
import logging
from typing import Any, Dict, Optional, Union
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from finalwishes.models.support import Appointment
from finalwishes.utils.database import model_to_dict

logger = logging.getLogger(__name__)

APPOINTMENT_SUMMARY = "Everlasting Appointment"
ICS_PRODID = "-//Everlasting//Appointment//EN"


def parse_timestamp(value: str) -> datetime:
    """ISO-8601 with optional Z suffix; naive values are taken as UTC"""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError("must be an ISO-8601 timestamp")
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def format_ics_datetime(value: Union[str, datetime]) -> str:
    """2025-03-01T17:00:00+02:00 -> 20250301T150000Z"""
    if isinstance(value, str):
        value = parse_timestamp(value)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def make_ics(summary: str, starts_at: str, ends_at: str, uid: Optional[str] = None) -> str:
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{ICS_PRODID}",
        "BEGIN:VEVENT",
    ]
    if uid:
        lines.append(f"UID:{uid}")
    lines.extend([
        f"SUMMARY:{summary}",
        f"DTSTART:{format_ics_datetime(starts_at)}",
        f"DTEND:{format_ics_datetime(ends_at)}",
        "STATUS:CONFIRMED",
        "END:VEVENT",
        "END:VCALENDAR",
    ])
    return "\r\n".join(lines)


async def create_appointment(
    db: AsyncSession,
    user_id: uuid.UUID,
    starts_at: str,
    ends_at: str,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """Store a pending appointment and return it with its calendar invite"""
    appointment = Appointment(
        user_id=user_id,
        starts_at=starts_at,
        ends_at=ends_at,
        notes=notes or None,
        channel="native",
        status="pending",
    )
    db.add(appointment)
    await db.commit()

    logger.info(f"Appointment {appointment.id} booked for user {user_id} at {starts_at}")

    return {
        "ok": True,
        "appointment": model_to_dict(appointment),
        "ics": make_ics(APPOINTMENT_SUMMARY, starts_at, ends_at, uid=f"{appointment.id}@finalwishes"),
    }
