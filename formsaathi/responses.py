"""
Canned assistant replies for the response step, in English and Hindi.
"""

from typing import Optional

from .languages import Language
from .models import MatchResult

GREETING = "Hi! I'm Form Saathi. How can I help you understand this form?"
DEFAULT_QUERY = "यह फॉर्म क्या है?"

_GENERAL_FORM = {
    Language.HINDI: (
        "यह एक व्यावसायिक पंजीकरण फॉर्म है। इसमें आपकी कंपनी या संस्था के पंजीकरण के लिए "
        "आवश्यक जानकारी भरनी होती है। आप किसी विशिष्ट फील्ड के बारे में पूछ सकते हैं।"
    ),
    Language.ENGLISH: (
        "This is a business registration form. You need to fill in the necessary information "
        "to register your company or organization. You can ask about any specific field."
    ),
}

_NOT_UNDERSTOOD = {
    Language.HINDI: (
        "मुझे आपका प्रश्न समझ नहीं आया। कृपया किसी विशिष्ट फील्ड के बारे में पूछें, "
        "जैसे \"लीगल नेम क्या है?\" या \"रजिस्टर्ड एट कहां भरना है?\""
    ),
    Language.ENGLISH: (
        "I didn't understand your question. Please ask about a specific field, "
        "like \"What is Legal Name?\" or \"Where do I fill Registered At?\""
    ),
}

_ASK_SPECIFIC = {
    Language.HINDI: "कृपया किसी विशिष्ट फील्ड के बारे में पूछें, जैसे \"लीगल नेम क्या है?\" या \"रजिस्टर्ड एट कहां भरना है?\"",
    Language.ENGLISH: "Please ask about a specific field, like \"What is Legal Name?\" or \"Where do I fill Registered At?\"",
}

_LABELS = {
    "fields_heading": {Language.HINDI: "फॉर्म फील्ड्स", Language.ENGLISH: "FORM FIELDS"},
    "ask_with_voice": {Language.HINDI: "वॉइस से पूछें", Language.ENGLISH: "ASK WITH VOICE"},
}


def _pick(table, language: Optional[Language]) -> str:
    return table[Language.HINDI] if language is Language.HINDI else table[Language.ENGLISH]


def ui_text(key: str, language: Optional[Language]) -> str:
    """Localized UI label; only Hindi has translations."""
    return _pick(_LABELS[key], language)


def compose_response(result: MatchResult, language: Optional[Language]) -> str:
    """
    Build the assistant's reply to a matched or unmatched query.

    Args:
        result (MatchResult): Matcher output for the last query
        language (Optional[Language]): Session language

    Returns:
        str: Reply text
    """
    if result.field is not None:
        field = result.field
        if language is Language.HINDI:
            return f"आपने {field.label} के बारे में पूछा है। {field.display_explanation}"
        return f"You asked about {field.label}. {field.explanation}"

    if result.is_general_question:
        return _pick(_GENERAL_FORM, language)
    return _pick(_NOT_UNDERSTOOD, language)


def ask_specific_hint(language: Optional[Language]) -> str:
    return _pick(_ASK_SPECIFIC, language)
