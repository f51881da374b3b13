"""
Query Classifier Module for the M.I.L.A. billing assistant.

Scores a query against a fixed list of intents by keyword overlap. A small
set of override rules runs first for requests the keyword scorer cannot
express, such as "show me all CPT codes for ophthalmology".
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from mila_assistant.knowledge import KnowledgeBase

logger = logging.getLogger(__name__)

OVERRIDE_CONFIDENCE = 10


class Intent(Enum):
    """Named categories of user requests."""
    CODE_LOOKUP = "code_lookup"
    BULK_CODE_LISTING = "bulk_code_listing"
    TERMINOLOGY = "terminology"
    PROVIDER_LOOKUP = "provider_lookup"
    SPECIALTY = "specialty"
    ELIGIBILITY = "eligibility"
    CLAIMS = "claims"
    WORKFLOW = "workflow"
    MOBILE = "mobile"
    GENERAL = "general"


@dataclass
class IntentDefinition:
    """Keywords that vote for an intent."""
    intent: Intent
    keywords: Tuple[str, ...]
    description: str
    _patterns: List[Tuple[str, "re.Pattern"]] = field(default_factory=list, repr=False)

    def __post_init__(self):
        self._patterns = [
            (keyword, re.compile(r"(?<![\w-])" + re.escape(keyword) + r"(?![\w-])"))
            for keyword in self.keywords
        ]

    def score(self, lowered: str) -> Tuple[int, List[str]]:
        total = 0
        matched = []
        for keyword, pattern in self._patterns:
            if keyword not in lowered:
                continue
            matched.append(keyword)
            total += 2 if pattern.search(lowered) else 1
        return total, matched


@dataclass
class OverrideRule:
    """Structural pattern that short-circuits keyword scoring."""
    intent: Intent
    description: str
    matcher: Callable[[str], Optional[List[str]]]
    confidence: int = OVERRIDE_CONFIDENCE


@dataclass(frozen=True)
class IntentCandidate:
    """Classification result for one query."""
    intent: Intent
    score: int
    matched_keywords: Tuple[str, ...] = ()
    override: bool = False

    @property
    def name(self) -> str:
        return self.intent.value

    @property
    def confidence(self) -> int:
        return self.score


@dataclass(frozen=True)
class BulkRequest:
    """A parsed "show every code of category X" request."""
    system: Optional[str]
    specialty: Optional[str]
    matched_keywords: Tuple[str, ...]


LISTING_VERBS = ("show", "list")
QUANTIFIERS = ("all", "every")

# keyword -> code system
SYSTEM_KEYWORDS: Dict[str, str] = {
    "icd-10": "ICD-10",
    "icd10": "ICD-10",
    "icd": "ICD-10",
    "diagnosis": "ICD-10",
    "cpt": "CPT",
    "procedure": "CPT",
    "hcpcs": "HCPCS",
    "modifier": "MODIFIER",
    "modifiers": "MODIFIER",
    "pos": "POS",
    "place of service": "POS",
}

WORD_PATTERN = re.compile(r"[a-z0-9][a-z0-9.\-']*")


def _words(lowered: str) -> List[str]:
    return WORD_PATTERN.findall(lowered)


def parse_bulk_request(text: str, knowledge: KnowledgeBase) -> Optional[BulkRequest]:
    """
    Recognize "show/list ... all/every ... <category>" requests.

    The category is a code system keyword, a specialty, or both.
    """
    lowered = text.lower()
    words = _words(lowered)
    verbs = [w for w in LISTING_VERBS if w in words]
    quantifiers = [w for w in QUANTIFIERS if w in words]
    if not verbs or not quantifiers:
        return None

    system = None
    matched = verbs[:1] + quantifiers[:1]
    for keyword, system_name in SYSTEM_KEYWORDS.items():
        if re.search(r"(?<![\w-])" + re.escape(keyword) + r"(?![\w-])", lowered):
            system = system_name
            matched.append(keyword)
            break

    specialty = knowledge.specialty_in(lowered)
    if specialty is not None:
        matched.append(specialty.key)

    if system is None and specialty is None:
        return None
    return BulkRequest(
        system=system,
        specialty=specialty.key if specialty else None,
        matched_keywords=tuple(matched),
    )


class IntentClassifier:
    """Classifies queries into billing intents."""

    def __init__(self, knowledge: KnowledgeBase):
        """Initialize the classifier."""
        self.knowledge = knowledge
        self.definitions: List[IntentDefinition] = []
        self.overrides: List[OverrideRule] = []
        self._load_definitions()

    def _load_definitions(self) -> None:
        """Load intent keywords and override rules."""
        specialty_keywords = tuple(self.knowledge.specialties)

        # Declaration order breaks ties
        self.definitions = [
            IntentDefinition(
                intent=Intent.CODE_LOOKUP,
                keywords=("code", "codes", "icd", "icd-10", "cpt", "hcpcs", "diagnosis code",
                          "procedure code", "modifier", "place of service", "pos", "lookup", "look up"),
                description="Code lookup",
            ),
            IntentDefinition(
                intent=Intent.TERMINOLOGY,
                keywords=("what is", "what's", "what does", "meaning", "mean", "define", "definition",
                          "stand for", "stands for", "abbreviation", "term"),
                description="Terminology question",
            ),
            IntentDefinition(
                intent=Intent.PROVIDER_LOOKUP,
                keywords=("provider", "doctor", "physician", "npi", "credential", "credentialing"),
                description="Provider or NPI lookup",
            ),
            IntentDefinition(
                intent=Intent.SPECIALTY,
                keywords=("specialty", "specialties", "specialist") + specialty_keywords,
                description="Medical specialty question",
            ),
            IntentDefinition(
                intent=Intent.ELIGIBILITY,
                keywords=("eligibility", "eligible", "coverage", "covered", "benefits", "member id",
                          "subscriber", "copay", "deductible", "insurance"),
                description="Eligibility verification",
            ),
            IntentDefinition(
                intent=Intent.CLAIMS,
                keywords=("claim", "claims", "submit", "submission", "denial", "denied", "reimbursement",
                          "remittance", "resubmit", "billing"),
                description="Claims guidance",
            ),
            IntentDefinition(
                intent=Intent.WORKFLOW,
                keywords=("workflow", "next step", "step", "process", "how do i", "how to", "form",
                          "field", "fill", "enter"),
                description="Form workflow guidance",
            ),
            IntentDefinition(
                intent=Intent.MOBILE,
                keywords=("mobile", "phone", "tablet", "voice", "gesture", "gestures", "swipe",
                          "offline", "touch", "shortcut", "shortcuts"),
                description="Mobile feature guidance",
            ),
            IntentDefinition(
                intent=Intent.GENERAL,
                keywords=("hello", "hi", "hey", "good morning", "thanks", "thank you"),
                description="Greeting or thanks",
            ),
        ]

        self.overrides = [
            OverrideRule(
                intent=Intent.BULK_CODE_LISTING,
                description="Bulk code listing",
                matcher=self._match_bulk_listing,
            ),
        ]

        logger.info(f"Loaded {len(self.definitions)} intents and {len(self.overrides)} override rules")

    def _match_bulk_listing(self, text: str) -> Optional[List[str]]:
        request = parse_bulk_request(text, self.knowledge)
        return list(request.matched_keywords) if request else None

    def score_all(self, text: str) -> List[IntentCandidate]:
        """Keyword score for every intent, in declaration order."""
        lowered = text.lower().replace("’", "'")
        candidates = []
        for definition in self.definitions:
            total, matched = definition.score(lowered)
            candidates.append(IntentCandidate(
                intent=definition.intent,
                score=total,
                matched_keywords=tuple(matched),
            ))
        return candidates

    def classify(self, text: str) -> IntentCandidate:
        """Classify a query; a score of 0 means no intent was recognized."""
        if not text or not text.strip():
            return IntentCandidate(intent=Intent.GENERAL, score=0)

        for rule in self.overrides:
            matched = rule.matcher(text)
            if matched:
                logger.info(f"Override rule '{rule.description}' matched")
                return IntentCandidate(
                    intent=rule.intent,
                    score=rule.confidence,
                    matched_keywords=tuple(matched),
                    override=True,
                )

        best: Optional[IntentCandidate] = None
        for candidate in self.score_all(text):
            # Strictly greater keeps the first-declared intent on ties
            if best is None or candidate.score > best.score:
                best = candidate

        if best.score == 0:
            best = IntentCandidate(intent=Intent.GENERAL, score=0)

        logger.info(f"Classified query as {best.name} with confidence {best.score}")
        return best

    def add_override_rule(self, rule: OverrideRule) -> None:
        """Add a new override rule."""
        self.overrides.append(rule)
        logger.info(f"Added override rule: {rule.description}")
