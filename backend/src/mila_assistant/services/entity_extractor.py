"""
Entity and code-pattern extraction for billing queries.

Only substrings already present in the text are reported: curated condition
and procedure vocabularies matched case-insensitively, plus tokens shaped
like ICD-10, CPT, HCPCS, place-of-service or modifier codes.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from mila_assistant.knowledge import KnowledgeBase

logger = logging.getLogger(__name__)


class EntityCategory(Enum):
    """Kinds of entities the extractor reports."""
    CODE = "code"
    CONDITION = "condition"
    PROCEDURE = "procedure"


@dataclass(frozen=True)
class SemanticEntity:
    """A recognized medical entity."""
    text: str
    category: EntityCategory
    normalized: str
    system: Optional[str] = None


# (system, pattern); group 1 is the code itself
CODE_PATTERNS: Tuple[Tuple[str, "re.Pattern"], ...] = (
    ("ICD-10", re.compile(r"\b([A-TV-Z]\d{2}(?:\.[0-9A-Z]{1,4})?)\b", re.IGNORECASE)),
    ("CPT", re.compile(r"\b(\d{5}|\d{4}[FT])\b")),
    ("HCPCS", re.compile(r"\b([A-V]\d{4})\b", re.IGNORECASE)),
    ("POS", re.compile(r"\b(?:pos|place of service)\s*(?:code\s*)?(\d{2})\b", re.IGNORECASE)),
    ("MODIFIER", re.compile(r"\bmodifier\s*-?\s*([0-9A-Z]{2})\b", re.IGNORECASE)),
    ("MODIFIER", re.compile(r"\b\d{5}-([0-9A-Z]{2})\b", re.IGNORECASE)),
)

# A whole query that is nothing but a code
WHOLE_CODE_PATTERNS = (
    re.compile(r"^[A-TV-Z]\d{2}(?:\.[0-9A-Z]{1,4})?$", re.IGNORECASE),
    re.compile(r"^\d{5}$"),
    re.compile(r"^\d{4}[FT]$"),
    re.compile(r"^[A-Z]{1,3}\d{3,4}$", re.IGNORECASE),
)

NPI_PATTERN = re.compile(r"\b(\d{10})\b")


@dataclass(frozen=True)
class CodeToken:
    code: str
    system: str
    start: int


class EntityExtractor:
    """Pulls codes, conditions and procedures out of raw text."""

    def __init__(self, knowledge: KnowledgeBase):
        self.knowledge = knowledge

    def find_code_tokens(self, text: str) -> List[CodeToken]:
        """Code-shaped substrings in order of appearance, one per code."""
        tokens: List[CodeToken] = []
        seen = set()
        for system, pattern in CODE_PATTERNS:
            for match in pattern.finditer(text):
                code = match.group(1).upper()
                if (system, code) in seen:
                    continue
                seen.add((system, code))
                tokens.append(CodeToken(code=code, system=system, start=match.start(1)))
        tokens.sort(key=lambda token: token.start)
        return tokens

    def is_code_shaped(self, text: str) -> bool:
        """True when the whole input is a single code."""
        stripped = text.strip().rstrip("?.!").strip()
        return any(pattern.match(stripped) for pattern in WHOLE_CODE_PATTERNS)

    def find_npis(self, text: str) -> List[str]:
        return NPI_PATTERN.findall(text)

    def extract(self, text: str) -> List[SemanticEntity]:
        """
        Return every recognized entity in order of first appearance.

        Args:
            text: Raw user input

        Returns:
            List of SemanticEntity; empty when nothing is recognized
        """
        if not text:
            return []

        found: List[Tuple[int, SemanticEntity]] = []
        for token in self.find_code_tokens(text):
            surface = text[token.start:token.start + len(token.code)]
            found.append((token.start, SemanticEntity(
                text=surface,
                category=EntityCategory.CODE,
                normalized=token.code,
                system=token.system,
            )))

        lowered = text.lower()
        for vocabulary, category in (
            (self.knowledge.conditions, EntityCategory.CONDITION),
            (self.knowledge.procedures, EntityCategory.PROCEDURE),
        ):
            for term in vocabulary:
                position = lowered.find(term)
                if position < 0:
                    continue
                found.append((position, SemanticEntity(
                    text=text[position:position + len(term)],
                    category=category,
                    normalized=term,
                )))

        found.sort(key=lambda item: item[0])
        entities = [entity for _, entity in found]
        logger.debug(f"Extracted {len(entities)} entities")
        return entities
