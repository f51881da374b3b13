"""
Database models.
"""

# Import all models to ensure they are registered with SQLAlchemy
from .base import Base
from .memory import ConversationRecord, MedicalTermUsageRecord, MemoryEntryRecord

__all__ = ["Base", "MemoryEntryRecord", "ConversationRecord", "MedicalTermUsageRecord"]
