"""
Memory store models: memory entries, conversations and medical term usage.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, Integer, String, Text, UniqueConstraint

from mila_assistant.models.base import Base


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class MemoryEntryRecord(Base):
    """
    A keyed piece of remembered state (preference, context snapshot, learning
    pattern, form pattern, ...). Repeated writes to the same
    (user, session, type, key) update the row in place.
    """
    __tablename__ = "memory_entries"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=True, index=True)
    session_id = Column(String(255), nullable=True, index=True)
    type = Column(String(32), nullable=False, index=True)
    key = Column(String(255), nullable=False, index=True)
    value = Column(JSON, nullable=True)
    entry_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(String, nullable=False, default=_utc_now_iso)
    updated_at = Column(String, nullable=False, default=_utc_now_iso)

    def __repr__(self):
        return f"<MemoryEntryRecord(id={self.id}, user_id={self.user_id}, type='{self.type}', key='{self.key}')>"


class ConversationRecord(Base):
    """One processed turn pair with the context it was asked in."""
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False, index=True)
    session_id = Column(String(255), nullable=False, index=True)
    messages = Column(JSON, nullable=False)
    context = Column(JSON, nullable=True)
    summary = Column(Text, nullable=True)
    created_at = Column(String, nullable=False, default=_utc_now_iso)
    updated_at = Column(String, nullable=False, default=_utc_now_iso)

    def __repr__(self):
        return f"<ConversationRecord(id={self.id}, user_id={self.user_id}, session_id='{self.session_id}')>"


class MedicalTermUsageRecord(Base):
    """How often a user has asked about a medical term."""
    __tablename__ = "medical_term_usage"
    __table_args__ = (UniqueConstraint("term", "user_id", name="uq_term_user"),)

    id = Column(String(36), primary_key=True)
    term = Column(String(255), nullable=False, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    usage_count = Column(Integer, nullable=False, default=1)
    last_used = Column(String, nullable=False, default=_utc_now_iso)
    context = Column(JSON, nullable=False, default=list)
    related_terms = Column(JSON, nullable=False, default=list)
    user_notes = Column(Text, nullable=True)
    created_at = Column(String, nullable=False, default=_utc_now_iso)
    updated_at = Column(String, nullable=False, default=_utc_now_iso)

    def __repr__(self):
        return f"<MedicalTermUsageRecord(term='{self.term}', user_id={self.user_id}, usage_count={self.usage_count})>"
