"""
DailyTask model - scheduled, subject-scoped generation context
"""
from sqlalchemy import Column, String, Boolean, Text, Date, TIMESTAMP, Index, Uuid, func, text
from neetquiz.database import Base, JSONType
import uuid


class DailyTask(Base):
    """
    Daily tasks table - at most one active task per (date, subject).

    The partial unique index only covers active rows, so a retired task
    does not block a replacement for the same slot.
    """
    __tablename__ = "daily_tasks"
    __table_args__ = (
        Index(
            "uq_daily_tasks_active_slot",
            "date",
            "subject",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    date = Column(Date, nullable=False, index=True)
    subject = Column(String(20), nullable=False)
    context_text = Column(Text, nullable=False)
    context_embedding = Column(JSONType)
    is_active = Column(Boolean, nullable=False, default=True)
    is_ai_generated = Column(Boolean, nullable=False, default=False)
    created_by = Column(Uuid, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<DailyTask(id={self.id}, date={self.date}, subject={self.subject}, active={self.is_active})>"
