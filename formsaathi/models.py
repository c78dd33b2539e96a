"""
Data model for extracted form fields and matcher results.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


@dataclass
class FormField:
    """
    A named input slot on a form paired with a human-readable explanation.

    Labels are free text and not unique keys; lookups compare them
    case-insensitively.
    """

    label: str
    explanation: str = ""
    translated_explanation: Optional[str] = None
    audio_base64: Optional[str] = None

    @property
    def display_explanation(self) -> str:
        return self.translated_explanation or self.explanation

    def with_translation(self, translated: Optional[str]) -> "FormField":
        return replace(self, translated_explanation=translated, audio_base64=None)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormField":
        return cls(
            label=str(data.get("label", "")).strip(),
            explanation=str(data.get("explanation", "") or "").strip(),
        )


@dataclass(frozen=True)
class ScoredField:
    field: FormField
    score: int


@dataclass
class MatchResult:
    """Outcome of matching one transcribed query against the field list."""

    field: Optional[FormField]
    is_general_question: bool = False
    scores: List[ScoredField] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.field is not None
