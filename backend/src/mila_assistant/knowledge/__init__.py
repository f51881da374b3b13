"""
Static billing knowledge: terminology, code sets, specialties, providers and
form guidance.
"""

from .base import (
    CODE_SYSTEMS,
    CodeEntry,
    KnowledgeBase,
    Provider,
    SpecialtyProfile,
    build_default_knowledge_base,
    is_valid_npi,
)

__all__ = [
    "CODE_SYSTEMS",
    "CodeEntry",
    "KnowledgeBase",
    "Provider",
    "SpecialtyProfile",
    "build_default_knowledge_base",
    "is_valid_npi",
]
