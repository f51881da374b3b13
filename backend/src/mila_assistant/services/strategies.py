"""
Local response strategies.

Each strategy answers one family of billing questions from the knowledge
base, or returns None to let the next strategy try.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from mila_assistant.knowledge import CodeEntry, KnowledgeBase, is_valid_npi
from mila_assistant.schemas import AssistantContext
from mila_assistant.services.entity_extractor import CodeToken, EntityCategory, SemanticEntity
from mila_assistant.services.query_classifier import IntentCandidate, SYSTEM_KEYWORDS, parse_bulk_request

logger = logging.getLogger(__name__)

MAX_LISTED_CODES = 25


@dataclass
class StrategyInput:
    """Everything a strategy may consult for one query."""
    text: str
    context: AssistantContext
    classification: IntentCandidate
    entities: List[SemanticEntity] = field(default_factory=list)
    code_tokens: List[CodeToken] = field(default_factory=list)
    npis: List[str] = field(default_factory=list)

    @property
    def lowered(self) -> str:
        return self.text.lower()

    def mentions(self, *words: str) -> bool:
        lowered = self.lowered
        return any(re.search(r"(?<![\w-])" + re.escape(word) + r"(?![\w-])", lowered) for word in words)


def _code_line(entry: CodeEntry) -> str:
    return f"• **{entry.code}**: {entry.description}"


class ResponseStrategy:
    """Base class for local handlers."""

    name = "base"

    def __init__(self, knowledge: KnowledgeBase):
        self.knowledge = knowledge

    def handle(self, query: StrategyInput) -> Optional[str]:
        raise NotImplementedError


class CodeLookupStrategy(ResponseStrategy):
    """Exact code lookups, bulk listings and description search."""

    name = "code_lookup"

    def handle(self, query: StrategyInput) -> Optional[str]:
        bulk = parse_bulk_request(query.text, self.knowledge)
        if bulk is not None:
            return self._list_codes(bulk.system, bulk.specialty)

        if query.code_tokens:
            return "\n\n".join(self._describe_token(token) for token in query.code_tokens)

        if self._asks_for_codes(query):
            return self._search_by_entity(query)
        return None

    def _list_codes(self, system: Optional[str], specialty: Optional[str]) -> str:
        entries = self.knowledge.codes_for(system=system, specialty=specialty)
        specialty_name = self.knowledge.specialties[specialty].name if specialty else None
        label = " ".join(part for part in (specialty_name, system) if part)

        if not entries:
            return f"I don't have any **{label}** codes in the reference tables."

        lines = [f"**{label} codes** ({len(entries)}):"]
        lines.extend(_code_line(entry) for entry in entries[:MAX_LISTED_CODES])
        if len(entries) > MAX_LISTED_CODES:
            lines.append(f"...and {len(entries) - MAX_LISTED_CODES} more.")
        return "\n".join(lines)

    def _describe_token(self, token: CodeToken) -> str:
        entry = self.knowledge.lookup_code(token.code, token.system)
        if entry is not None:
            text = f"**{entry.code}** ({entry.system}): {entry.description}"
            if entry.specialties:
                names = ", ".join(self.knowledge.specialties[key].name for key in entry.specialties)
                text += f"\nCommonly used in: {names}"
            return text

        text = f"I couldn't find **{token.code}** in the {token.system} reference table."
        suggestions = self.knowledge.suggest_codes(token.code, token.system)
        if suggestions:
            similar = ", ".join(f"**{s.code}** ({s.description})" for s in suggestions)
            text += f"\nSimilar codes: {similar}"
        return text

    def _asks_for_codes(self, query: StrategyInput) -> bool:
        return query.mentions("code", "codes", *SYSTEM_KEYWORDS)

    def _search_by_entity(self, query: StrategyInput) -> Optional[str]:
        system = None
        for keyword, system_name in SYSTEM_KEYWORDS.items():
            if query.mentions(keyword):
                system = system_name
                break

        for entity in query.entities:
            if entity.category == EntityCategory.CODE:
                continue
            matches = self.knowledge.search_codes(entity.normalized, system=system)
            if matches:
                lines = [f"Codes related to **{entity.normalized}**:"]
                lines.extend(_code_line(entry) for entry in matches)
                return "\n".join(lines)
        return None


class TerminologyStrategy(ResponseStrategy):
    """Abbreviation and condition definitions."""

    name = "terminology"
    MAX_TERMS = 3

    def handle(self, query: StrategyInput) -> Optional[str]:
        terms = self.knowledge.find_terms(query.text)[:self.MAX_TERMS]
        if len(terms) == 1:
            term = terms[0]
            return (f'**{term}** stands for "{self.knowledge.define(term)}". '
                    "This is commonly used in medical billing and documentation.")
        if terms:
            lines = ["Here is what those terms mean:"]
            lines.extend(f"• **{term}**: {self.knowledge.define(term)}" for term in terms)
            return "\n".join(lines)

        described = self.knowledge.describe_condition(query.text)
        if described is not None:
            condition, definition = described
            return f"**{condition.capitalize()}**: {definition}"
        return None


class ProviderStrategy(ResponseStrategy):
    """NPI validation and provider directory lookups."""

    name = "provider_lookup"

    def handle(self, query: StrategyInput) -> Optional[str]:
        if query.npis:
            return "\n\n".join(self._describe_npi(npi) for npi in query.npis)

        if query.mentions("provider", "providers", "doctor", "doctors", "physician", "physicians"):
            profile = self.knowledge.specialty_in(query.text)
            if profile is not None:
                providers = self.knowledge.providers_by_specialty(profile.name)
                if not providers:
                    return f"There are no **{profile.name}** providers in the directory yet."
                lines = [f"**{profile.name}** providers:"]
                lines.extend(f"• {p.name} (NPI **{p.npi}**), {p.phone}" for p in providers)
                return "\n".join(lines)

        if query.mentions("npi"):
            return ("An **NPI** (National Provider Identifier) is a 10-digit number whose last digit "
                    "is a Luhn check digit. Type 1 NPIs identify individual providers and Type 2 "
                    "identify organizations. Send me the number and I will check it.")
        return None

    def _describe_npi(self, npi: str) -> str:
        if not is_valid_npi(npi):
            return (f"**{npi}** is not a valid NPI: its check digit does not match. "
                    "Please re-check the number on the provider's records.")
        provider = self.knowledge.providers.get(npi)
        if provider is None:
            return (f"**{npi}** is a well-formed NPI, but it is not in the local provider directory. "
                    "Verify it in the NPPES registry.")
        return (f"**{provider.name}** (NPI {provider.npi})\n"
                f"Specialty: {provider.specialty}\n"
                f"Address: {provider.address}\n"
                f"Phone: {provider.phone}")


class SpecialtyStrategy(ResponseStrategy):
    """Specialty summaries with their common codes and terms."""

    name = "specialty"

    def handle(self, query: StrategyInput) -> Optional[str]:
        profile = self.knowledge.specialty_in(query.text)
        if profile is not None:
            terms = ", ".join(f"{term} ({meaning})" for term, meaning in list(profile.terminology.items())[:4])
            codes = ", ".join(f"**{code}**" for code in profile.common_codes[:6])
            return (f"**{profile.name}**: {profile.description}\n"
                    f"Common codes: {codes}\n"
                    f"Key terms: {terms}\n"
                    f"Typical procedures: {', '.join(profile.procedures[:4])}")

        if query.mentions("specialty", "specialties"):
            names = ", ".join(f"**{p.name}**" for p in self.knowledge.specialties.values())
            return f"I have billing references for these specialties: {names}."
        return None


class EligibilityStrategy(ResponseStrategy):
    """Eligibility verification walkthrough."""

    name = "eligibility"
    TRIGGERS = ("eligibility", "eligible", "coverage", "covered", "benefits", "member id",
                "subscriber", "copay", "deductible", "insurance")

    def handle(self, query: StrategyInput) -> Optional[str]:
        if not query.mentions(*self.TRIGGERS):
            return None

        lines = [
            "**Eligibility check**",
            "1. Enter the provider **NPI** in the provider field.",
            "2. Enter the subscriber ID exactly as printed on the member card.",
            "3. Set the dependent sequence: 00 subscriber, 01 spouse, 02 and up for children.",
            "4. Confirm the patient's name and date of birth match the card, then run the check.",
        ]
        if query.mentions("copay", "deductible", "benefits"):
            lines.append("Copay, deductible and coinsurance details appear in the eligibility response once the check completes.")

        guidance = self.knowledge.field_help("PatientEligibilityForm", query.context.current_field)
        if guidance:
            lines.append(f"\n**{query.context.current_field}**: {guidance}")
        return "\n".join(lines)


class ClaimsStrategy(ResponseStrategy):
    """Claim submission checklist and denial reasons."""

    name = "claims"
    TRIGGERS = ("claim", "claims", "submit", "submission", "denial", "denied", "reimbursement",
                "remittance", "resubmit", "billing")

    def handle(self, query: StrategyInput) -> Optional[str]:
        if not query.mentions(*self.TRIGGERS):
            return None

        if query.mentions("denial", "denied", "rejected", "resubmit"):
            lines = [
                "**Common claim denial reasons**",
                "• Missing or invalid provider **NPI**",
                "• Diagnosis code not specific enough, for example **E11** instead of **E11.9**",
                "• Missing modifier such as **25** or **59** on same-day services",
                "• Coverage not active on the date of service",
                "• Duplicate claim for the same service",
                "Correct the item named on the remittance advice, then resubmit.",
            ]
        else:
            lines = [
                "**Claim submission checklist**",
                "1. Service dates (from and to)",
                "2. Place of service, for example **11** for an office visit",
                "3. Primary diagnosis code first, then secondary codes",
                "4. Procedure codes with any required modifiers",
                "5. Review everything, then submit. Processing usually takes 7-10 business days.",
            ]

        guidance = self.knowledge.field_help("ClaimsSubmissionForm", query.context.current_field)
        if guidance:
            lines.append(f"\n**{query.context.current_field}**: {guidance}")
        return "\n".join(lines)


class WorkflowStrategy(ResponseStrategy):
    """Field guidance and form step navigation for the active form."""

    name = "workflow"
    FIELD_TRIGGERS = ("field", "this", "enter", "fill", "help", "what goes", "format")
    STEP_TRIGGERS = ("step", "steps", "next", "workflow", "process", "where am i")

    def handle(self, query: StrategyInput) -> Optional[str]:
        context = query.context
        guidance = self.knowledge.field_help(context.form_type, context.current_field)
        if guidance and query.mentions(*self.FIELD_TRIGGERS):
            return f"**{context.current_field}**: {guidance}"

        steps = self.knowledge.form_steps.get(context.form_type or "")
        if steps and query.mentions(*self.STEP_TRIGGERS):
            lines = [f"**{context.form_type} workflow**"]
            for number, step in enumerate(steps, start=1):
                marker = "  <- you are here" if context.current_step == number else ""
                lines.append(f"{number}. {step}{marker}")
            if context.current_step and context.current_step < len(steps):
                lines.append(f"Next: {steps[context.current_step]}")
            return "\n".join(lines)

        if query.mentions("form help", "field guidance") and context.form_type in self.knowledge.form_guidance:
            fields = ", ".join(f"**{name}**" for name in self.knowledge.form_guidance[context.form_type])
            return f"I have guidance for these {context.form_type} fields: {fields}."
        return None


class MobileStrategy(ResponseStrategy):
    """Voice commands, gestures and offline use."""

    name = "mobile"

    def handle(self, query: StrategyInput) -> Optional[str]:
        wants_voice = query.mentions("voice", "voice command", "voice commands", "speak", "say")
        wants_gestures = query.mentions("gesture", "gestures", "swipe", "touch", "tap")
        on_mobile = query.mentions("mobile", "phone", "tablet", "offline", "shortcut", "shortcuts")

        if not (wants_voice or wants_gestures or on_mobile):
            return None

        sections = []
        if wants_voice or on_mobile:
            lines = ["**Voice commands**"]
            lines.extend(f'• "{phrase}": {action}' for phrase, action in self.knowledge.voice_commands.items())
            sections.append("\n".join(lines))
        if wants_gestures or on_mobile:
            lines = ["**Gestures**"]
            lines.extend(f"• {gesture}: {action}" for gesture, action in self.knowledge.gestures.items())
            sections.append("\n".join(lines))
        if query.mentions("offline"):
            sections.append("Offline, answers come from the built-in billing references; enhanced answers resume once you reconnect.")
        return "\n\n".join(sections)


class GeneralStrategy(ResponseStrategy):
    """Greetings and thanks."""

    name = "general"

    def handle(self, query: StrategyInput) -> Optional[str]:
        if query.mentions("thanks", "thank you"):
            return "You're welcome! Send me the next code, term or field whenever it comes up."
        if query.mentions("hello", "hi", "hey", "good morning", "good afternoon"):
            return ("Hello! Ask me about a code such as **E11.9**, a term such as **OD**, "
                    "or the form field you are working on.")
        return None


def default_strategies(knowledge: KnowledgeBase) -> Sequence[ResponseStrategy]:
    """Strategies in chain order."""
    return (
        CodeLookupStrategy(knowledge),
        TerminologyStrategy(knowledge),
        ProviderStrategy(knowledge),
        SpecialtyStrategy(knowledge),
        EligibilityStrategy(knowledge),
        ClaimsStrategy(knowledge),
        WorkflowStrategy(knowledge),
        MobileStrategy(knowledge),
        GeneralStrategy(knowledge),
    )
