"""
User model - account holders and their explicit application roles
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.sql import func
from finalwishes.utils.database import Base, utcnow
import uuid
import enum


class AppRole(str, enum.Enum):
    """Roles granted directly (not derived from a Stripe product)"""
    ADMIN = "admin"
    SUPPORT = "support"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255))
    password_hash = Column(String(255))  # bcrypt hash
    last_login_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


class UserRole(Base):
    __tablename__ = "user_roles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
    )

    def __repr__(self):
        return f"<UserRole(user_id={self.user_id}, role={self.role})>"
