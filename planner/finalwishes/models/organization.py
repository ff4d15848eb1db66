"""
Organization models - every plan lives inside an org the user owns
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, UniqueConstraint, Uuid, text
from sqlalchemy.sql import func
from finalwishes.utils.database import Base, utcnow
import uuid
import enum


class MemberRole(str, enum.Enum):
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"


class Org(Base):
    __tablename__ = "orgs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Org(id={self.id}, name={self.name})>"


class OrgMember(Base):
    __tablename__ = "org_members"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default=MemberRole.OWNER.value)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("org_id", "user_id", name="uq_org_members_org_user"),
        # A user owns at most one org
        Index(
            "uq_org_members_single_owner",
            "user_id",
            unique=True,
            postgresql_where=text("role = 'owner'"),
            sqlite_where=text("role = 'owner'"),
        ),
    )

    def __repr__(self):
        return f"<OrgMember(org_id={self.org_id}, user_id={self.user_id}, role={self.role})>"
