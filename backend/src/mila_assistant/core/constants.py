"""
Application constants for the M.I.L.A. billing assistant.
"""

# Remote routing indicators
COMPLEX_REASONING_INDICATORS = (
    # Comparison language
    "difference between", "compare", "comparison", "relationship between",
    "versus", " vs ", "how are they different",
    # Multi-step / process language
    "step by step", "walk me through", "process for", "what happens when",
    "how does", "explain why",
    # Ambiguity admission
    "help me understand", "confused about", "not sure", "clarify",
    "in this case", "for this situation", "given that", "complicated case",
    # Detailed explanation requests
    "explain the difference", "what is the difference", "tell me more about",
    "can you elaborate", "provide more details", "what does this mean",
    "explain in detail", "comprehensive explanation", "detailed definition",
    "full explanation", "best way to", "should i",
)

LOCAL_KNOWLEDGE_PHRASES = (
    "help with field", "field guidance", "form help",
    "show me all", "list all", "show all", "list me all",
)

# Response quality
GENERIC_PHRASES = (
    "i'd be happy to help",
    "i would be happy to help",
    "i'm here to help",
    "how can i help",
    "let me know what you need",
    "feel free to ask",
    "i can help you with that",
)

CAPABILITY_MENU = (
    "Code lookups (ICD-10, CPT, HCPCS, place of service, modifiers)",
    "Terminology and abbreviations (OD, OS, NPI, HEDIS, ...)",
    "Provider and NPI checks",
    "Eligibility verification steps",
    "Claims submission and denial guidance",
    "Form field and workflow help",
    "Mobile shortcuts (voice commands and gestures)",
)

# Degraded-mode notices prefixed to local answers when the remote path fails
DEGRADED_NOTICES = {
    "configuration": "Note: the enhanced AI service is not configured, so this answer comes from built-in billing knowledge.",
    "rate_limit": "Note: the enhanced AI service is busy right now, so this answer comes from built-in billing knowledge.",
    "empty": "Note: the enhanced AI service returned no answer, so this answer comes from built-in billing knowledge.",
    "transport": "Note: the enhanced AI service is temporarily unavailable, so this answer comes from built-in billing knowledge.",
}

SAFE_FALLBACK_RESPONSE = (
    "I ran into a problem answering that. You can still ask me about a specific code "
    "(for example E11.9 or 92250), a term such as OD or NPI, or the form field you are working on."
)

# Memory
DETAILED_STYLE_VALUES = ("detailed",)
RESPONSE_STYLE_KEYS = ("response_style", "preferredLanguage")

MILA_PROMPT = """You are M.I.L.A. (Medical Intelligence & Learning Assistant), a specialized assistant for medical billing professionals.

CORE EXPERTISE:
- Medical billing and coding (ICD-10, CPT, HCPCS, place of service, modifiers)
- Healthcare terminology and procedures
- Insurance eligibility and claims processing
- HEDIS quality measures
- Provider credentialing and NPI validation

CURRENT CONTEXT:
- Form: {form_type}
- Field: {current_field}
- Step: {current_step}
- Device: {device_type}

RESPONSE GUIDELINES:
1. Be accurate, professional and concise
2. Include relevant codes when applicable
3. If unsure, say so rather than guess
4. For definitions give the term, its billing context and related terms

SAFETY RULES:
- Never process or store PHI (Protected Health Information)
- Do not provide medical diagnoses or treatment advice
- Recommend official sources for critical decisions

USER QUERY: {query}
"""
