"""
Query-to-field relevance matching.

Scores each extracted form field against a transcribed voice query with a
fixed-weight keyword, substring and synonym heuristic, and classifies
unmatched queries as general questions about the form or unrecognized ones.
"""

import re
from typing import Dict, List, Optional, Sequence
from loguru import logger

from .models import FormField, MatchResult, ScoredField

LABEL_IN_QUERY_SCORE = 100
LABEL_WORD_SCORE = 50
QUERY_WORD_SCORE = 25
SYNONYM_SCORE = 75
MIN_WORD_LENGTH = 3

SYNONYMS: Dict[str, List[str]] = {
    "name": ["naam", "नाम", "identity", "person"],
    "address": ["पता", "location", "place", "residence", "home"],
    "mobile": ["phone", "फोन", "cell", "contact", "number"],
    "email": ["ईमेल", "mail", "e-mail", "electronic"],
    "date": ["दिनांक", "day", "birth", "dob", "birthday"],
    "gender": ["लिंग", "sex", "male", "female"],
    "occupation": ["job", "work", "profession", "employment", "career"],
}

GENERAL_QUESTION_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"what is this form",
        r"what form is this",
        r"form (ka|ki|ke) (bare|baare|vishay)",
        r"form (ke liye|ke liy|ke lie)",
        r"yeh form (kya|kaisa) hai",
        r"इस फॉर्म",
        r"फॉर्म के बारे में",
        r"यह फॉर्म क्या है",
        r"फॉर्म की जानकारी",
        r"फॉर्म समझाओ",
    )
]


def score_field(query: str, field: FormField) -> int:
    """
    Compute the relevance score of a single field for a query.

    Args:
        query (str): Transcribed user query
        field (FormField): Candidate field

    Returns:
        int: Non-negative relevance score
    """
    lower_query = query.lower()
    label = field.label.lower()
    score = 0

    # an empty label would be a substring of every query
    if label and label in lower_query:
        score += LABEL_IN_QUERY_SCORE

    for word in label.split():
        if len(word) >= MIN_WORD_LENGTH and word in lower_query:
            score += LABEL_WORD_SCORE

    for word in lower_query.split():
        if len(word) >= MIN_WORD_LENGTH and word in label:
            score += QUERY_WORD_SCORE

    for key, synonyms in SYNONYMS.items():
        if key in label and any(synonym.lower() in lower_query for synonym in synonyms):
            score += SYNONYM_SCORE

    return score


def rank_fields(query: str, fields: Sequence[FormField]) -> List[ScoredField]:
    """Score every field and sort by score, highest first, keeping input order on ties."""
    scored = [ScoredField(field=field, score=score_field(query, field)) for field in fields]
    # sorted() is stable, so equal scores keep their original order
    return sorted(scored, key=lambda item: item.score, reverse=True)


def find_relevant_field(query: str, fields: Sequence[FormField]) -> Optional[FormField]:
    """Return the best matching field, or None when nothing scores above zero."""
    if not fields:
        return None

    ranked = rank_fields(query, fields)
    logger.debug("Scored fields: " + ", ".join(f"{s.field.label}: {s.score}" for s in ranked))

    if ranked[0].score > 0:
        return ranked[0].field
    return None


def is_general_question(query: str) -> bool:
    """Check whether a query asks about the form as a whole."""
    return any(pattern.search(query or "") for pattern in GENERAL_QUESTION_PATTERNS)


def match_query(query: str, fields: Sequence[FormField]) -> MatchResult:
    """
    Match a transcribed query to one field or classify it.

    Args:
        query (str): Transcribed user query
        fields (Sequence[FormField]): Fields in display order

    Returns:
        MatchResult: The matched field, or None with the general-question flag set
    """
    logger.info(f"Finding relevant field for query: '{query}'")
    ranked = rank_fields(query, fields) if fields else []

    if ranked and ranked[0].score > 0:
        logger.info(f"Relevant field found: {ranked[0].field.label} ({ranked[0].score})")
        return MatchResult(field=ranked[0].field, is_general_question=False, scores=ranked)

    general = is_general_question(query)
    if general:
        logger.info("General question about the form detected")
    else:
        logger.info("No relevant field found for specific question")
    return MatchResult(field=None, is_general_question=general, scores=ranked)
