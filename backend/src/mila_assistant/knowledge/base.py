"""
Read-only billing knowledge base.

The pipeline never reaches for module-level tables directly; a
``KnowledgeBase`` instance is passed to the handlers so tests can swap in a
smaller one.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from mila_assistant.knowledge import tables

CODE_SYSTEMS = ("ICD-10", "CPT", "HCPCS", "POS", "MODIFIER")


@dataclass(frozen=True)
class CodeEntry:
    """One row of a code set."""
    code: str
    system: str
    description: str
    specialties: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SpecialtyProfile:
    key: str
    name: str
    description: str
    common_codes: Tuple[str, ...]
    terminology: Mapping[str, str]
    procedures: Tuple[str, ...]
    conditions: Tuple[str, ...]


@dataclass(frozen=True)
class Provider:
    npi: str
    name: str
    specialty: str
    address: str
    phone: str


@dataclass(frozen=True)
class KnowledgeBase:
    """Immutable lookup tables consulted by the local handlers."""
    terminology: Mapping[str, str]
    codes: Mapping[str, Mapping[str, CodeEntry]]
    specialties: Mapping[str, SpecialtyProfile]
    providers: Mapping[str, Provider]
    form_guidance: Mapping[str, Mapping[str, str]]
    form_steps: Mapping[str, Tuple[str, ...]]
    quick_suggestions: Mapping[str, Tuple[str, ...]]
    voice_commands: Mapping[str, str]
    gestures: Mapping[str, str]
    conditions: Tuple[str, ...]
    procedures: Tuple[str, ...]
    condition_definitions: Mapping[str, str] = field(default_factory=dict)
    _term_patterns: Tuple[Tuple[str, "re.Pattern"], ...] = field(default=(), repr=False, compare=False)

    def __post_init__(self):
        # Longest terms first so "ICD-10" wins over "ICD"
        ordered = sorted(self.terminology, key=len, reverse=True)
        patterns = tuple(
            (term, re.compile(r"(?<![\w-])" + re.escape(term) + r"(?![\w-])", re.IGNORECASE))
            for term in ordered
        )
        object.__setattr__(self, "_term_patterns", patterns)

    # Codes

    def lookup_code(self, code: str, system: Optional[str] = None) -> Optional[CodeEntry]:
        """Exact lookup; searches every system in declaration order when none is given."""
        normalized = code.strip().upper()
        systems = (system,) if system else CODE_SYSTEMS
        for name in systems:
            entry = self.codes.get(name, {}).get(normalized)
            if entry is not None:
                return entry
        return None

    def codes_for(self, system: Optional[str] = None, specialty: Optional[str] = None) -> List[CodeEntry]:
        """All codes of a system and/or specialty, in table order."""
        systems = (system,) if system else CODE_SYSTEMS
        results = []
        for name in systems:
            for entry in self.codes.get(name, {}).values():
                if specialty and specialty not in entry.specialties:
                    continue
                results.append(entry)
        return results

    def search_codes(self, word: str, system: Optional[str] = None, limit: int = 10) -> List[CodeEntry]:
        """Codes whose description mentions ``word`` (case-insensitive)."""
        needle = word.lower()
        # "diabetic" should find "diabetes" rows and "hypertension" the "hypertensive" ones
        stem = needle[:6] if len(needle) > 6 else needle
        matches = [
            entry for entry in self.codes_for(system)
            if needle in entry.description.lower() or stem in entry.description.lower()
        ]
        return matches[:limit]

    def suggest_codes(self, code: str, system: Optional[str] = None, limit: int = 3) -> List[CodeEntry]:
        """Nearby codes for a code that is not in the table."""
        normalized = code.strip().upper()
        candidates = self.codes_for(system)
        for prefix_length in (3, 2, 1):
            prefix = normalized[:prefix_length]
            matches = [entry for entry in candidates if entry.code.startswith(prefix)]
            if matches:
                return matches[:limit]
        return candidates[:limit]

    # Terminology

    def find_terms(self, text: str) -> List[str]:
        """Terminology keys that appear as whole words in ``text``, longest first."""
        found = []
        for term, pattern in self._term_patterns:
            if pattern.search(text) and not any(other.lower().startswith(term.lower()) for other in found):
                found.append(term)
        return found

    def define(self, term: str) -> Optional[str]:
        for key, definition in self.terminology.items():
            if key.lower() == term.lower():
                return definition
        return None

    def describe_condition(self, text: str) -> Optional[Tuple[str, str]]:
        """First condition with a plain-language definition mentioned in ``text``."""
        lowered = text.lower()
        for condition, definition in self.condition_definitions.items():
            if re.search(r"\b" + re.escape(condition) + r"\b", lowered):
                return condition, definition
        return None

    # Specialties and providers

    def specialty_in(self, text: str) -> Optional[SpecialtyProfile]:
        lowered = text.lower()
        for key, profile in self.specialties.items():
            if key in lowered or profile.name.lower() in lowered:
                return profile
        return None

    def providers_by_specialty(self, specialty: str) -> List[Provider]:
        return [p for p in self.providers.values() if p.specialty.lower() == specialty.lower()]

    # Forms

    def field_help(self, form_type: Optional[str], field_name: Optional[str]) -> Optional[str]:
        if not form_type or not field_name:
            return None
        return self.form_guidance.get(form_type, {}).get(field_name)

    def suggestions_for(self, form_type: Optional[str]) -> Tuple[str, ...]:
        if form_type and form_type in self.quick_suggestions:
            return self.quick_suggestions[form_type]
        return tables.DEFAULT_QUICK_SUGGESTIONS


NPI_PREFIX = "80840"


def is_valid_npi(npi: str) -> bool:
    """
    Check a 10-digit NPI against its Luhn check digit.

    The check digit is computed over the number prefixed with 80840, the
    health industry issuer identifier.
    """
    if not re.fullmatch(r"\d{10}", npi or ""):
        return False
    total = 0
    for position, char in enumerate(reversed(NPI_PREFIX + npi)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def _freeze(mapping: Dict) -> Mapping:
    return MappingProxyType(dict(mapping))


def build_default_knowledge_base() -> KnowledgeBase:
    """Assemble the bundled tables into a read-only knowledge base."""
    specialties: Dict[str, SpecialtyProfile] = {}
    code_specialties: Dict[str, List[str]] = {}
    terminology = dict(tables.GENERAL_TERMINOLOGY)

    for key, data in tables.SPECIALTIES.items():
        specialties[key] = SpecialtyProfile(
            key=key,
            name=data["name"],
            description=data["description"],
            common_codes=tuple(data["common_codes"]),
            terminology=_freeze(data["terminology"]),
            procedures=tuple(data["procedures"]),
            conditions=tuple(data["conditions"]),
        )
        for code in data["common_codes"]:
            code_specialties.setdefault(code, []).append(key)
        for term, definition in data["terminology"].items():
            terminology.setdefault(term, definition)

    codes: Dict[str, Dict[str, CodeEntry]] = {system: {} for system in CODE_SYSTEMS}
    for code, system, description in tables.CODE_TABLE:
        # Specialty profiles only list ICD-10, CPT and HCPCS codes
        specialties_for_code = tuple(code_specialties.get(code, ())) if system in ("ICD-10", "CPT", "HCPCS") else ()
        codes[system][code] = CodeEntry(code=code, system=system, description=description,
                                        specialties=specialties_for_code)

    providers = {p["npi"]: Provider(**p) for p in tables.PROVIDERS}

    return KnowledgeBase(
        terminology=_freeze(terminology),
        codes=_freeze({system: _freeze(entries) for system, entries in codes.items()}),
        specialties=_freeze(specialties),
        providers=_freeze(providers),
        form_guidance=_freeze({form: _freeze(fields) for form, fields in tables.FORM_GUIDANCE.items()}),
        form_steps=_freeze(tables.FORM_STEPS),
        quick_suggestions=_freeze(tables.QUICK_SUGGESTIONS),
        voice_commands=_freeze(tables.VOICE_COMMANDS),
        gestures=_freeze(tables.GESTURES),
        conditions=tuple(tables.CONDITION_VOCABULARY),
        procedures=tuple(tables.PROCEDURE_VOCABULARY),
        condition_definitions=_freeze(tables.CONDITION_DEFINITIONS),
    )
