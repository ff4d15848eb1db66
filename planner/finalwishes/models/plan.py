"""
Plan model - the root record of a user's end-of-life plan
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.sql import func
from finalwishes.utils.database import Base, JSONType, utcnow
import uuid

DEFAULT_PLAN_TITLE = "My Final Wishes Plan"


class Plan(Base):
    __tablename__ = "plans"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(255), nullable=False, default=DEFAULT_PLAN_TITLE)
    prepared_for = Column(String(255))
    preparer_name = Column(String(255))
    percent_complete = Column(Integer, nullable=False, default=0)

    # Free-text notes, one per section
    instructions_notes = Column(Text)
    about_me_notes = Column(Text)
    checklist_notes = Column(Text)
    funeral_wishes_notes = Column(Text)
    financial_notes = Column(Text)
    insurance_notes = Column(Text)
    property_notes = Column(Text)
    pets_notes = Column(Text)
    digital_notes = Column(Text)
    legal_notes = Column(Text)
    messages_notes = Column(Text)
    to_loved_ones_message = Column(Text)

    # Structured section data keyed by section payload key
    plan_payload = Column(JSONType, nullable=False, default=dict)
    revisions = Column(JSONType, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("org_id", "owner_user_id", name="uq_plans_org_owner"),
    )

    def __repr__(self):
        return f"<Plan(id={self.id}, org_id={self.org_id}, owner={self.owner_user_id})>"
