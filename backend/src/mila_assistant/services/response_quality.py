"""
Generic-response detection.

A handler answer is "generic" when it leans on a filler opener and carries
nothing concrete (no emphasized term, no code). The strategy chain moves on
past generic answers, and the interaction log counts them as failures.
"""

import re
from typing import Iterable, Optional

from mila_assistant.core.constants import GENERIC_PHRASES

CONCRETE_CONTENT_PATTERN = re.compile(
    r"\*\*[^*\n]+\*\*"                      # emphasized term or code
    r"|\b[A-TV-Z]\d{2}(?:\.[0-9A-Z]{1,4})?\b"  # ICD-10
    r"|\b\d{5}\b"                           # CPT
    r"|\b[A-V]\d{4}\b"                      # HCPCS
)


def contains_filler(text: str, phrases: Iterable[str] = GENERIC_PHRASES) -> bool:
    lowered = text.lower().replace("’", "'")
    return any(phrase in lowered for phrase in phrases)


def has_concrete_content(text: str) -> bool:
    return CONCRETE_CONTENT_PATTERN.search(text) is not None


def is_generic_response(text: Optional[str], phrases: Iterable[str] = GENERIC_PHRASES) -> bool:
    """True for empty answers and filler-only answers."""
    if text is None or not text.strip():
        return True
    return contains_filler(text, phrases) and not has_concrete_content(text)


def is_successful_response(text: Optional[str]) -> bool:
    return not is_generic_response(text)
