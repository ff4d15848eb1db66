"""
Support models - appointments, knowledge base articles and FAQs
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.sql import func
from finalwishes.utils.database import Base, JSONType, utcnow
import uuid


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    starts_at = Column(String(40), nullable=False)  # ISO-8601 as submitted
    ends_at = Column(String(40), nullable=False)
    notes = Column(Text)
    channel = Column(String(50), default="native")
    status = Column(String(50), default="pending")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now())


class KBArticle(Base):
    __tablename__ = "kb_articles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    tags = Column(JSONType, default=list)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now())


class FAQ(Base):
    __tablename__ = "faqs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    category = Column(String(100))
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    keywords = Column(JSONType, default=list)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now())
