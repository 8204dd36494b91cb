"""Branch resolution for the survey graph.

`resolve_next` is the single source of truth for "which question comes
next". It is pure and deterministic, and is called both when answers are
submitted and when a respondent's position is recomputed on resume or in
the admin status overview; no next-question code is ever persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

SINGLE = "SINGLE"
MULTI = "MULTI"

NOT_STARTED = "NOT_STARTED"
IN_PROGRESS = "IN_PROGRESS"
COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class OptionEdge:
    value: str
    jump_to_code: Optional[str] = None
    order: int = 0


@dataclass(frozen=True)
class QuestionNode:
    code: str
    type: str
    default_next_code: Optional[str] = None
    options: Tuple[OptionEdge, ...] = ()
    question_id: Optional[str] = None


@dataclass(frozen=True)
class AnswerSelection:
    option_value: Optional[str] = None
    option_values: Tuple[str, ...] = field(default_factory=tuple)
    other_text: Optional[str] = None


def clean_values(raw_values: Iterable[object] | None) -> List[str]:
    """Stringify multi-select values, dropping empties, keeping submission order."""
    values: List[str] = []
    for raw in raw_values or []:
        if raw is None:
            continue
        text = str(raw)
        if text:
            values.append(text)
    return values


def selected_values(question: QuestionNode, answer: AnswerSelection) -> List[str]:
    qtype = (question.type or "").upper()
    if qtype == SINGLE:
        return [answer.option_value] if answer.option_value else []
    if qtype == MULTI:
        return clean_values(answer.option_values)
    return []


def _first_option(options: Sequence[OptionEdge], value: str) -> Optional[OptionEdge]:
    # Duplicate values resolve to the first by configured order.
    for option in sorted(options, key=lambda o: o.order):
        if option.value == value:
            return option
    return None


def resolve_next(question: QuestionNode, answer: AnswerSelection) -> Optional[str]:
    """Return the next question code, or None when the survey is complete.

    Selected values are scanned in submission order; the first whose option
    carries a jump target wins. Otherwise the question's default-next applies.
    """
    for value in selected_values(question, answer):
        option = _first_option(question.options, value)
        if option is not None and option.jump_to_code:
            return option.jump_to_code
    return question.default_next_code or None


def derive_status(has_answers: bool, next_code: Optional[str]) -> str:
    if not has_answers:
        return NOT_STARTED
    return IN_PROGRESS if next_code else COMPLETED


__all__ = [
    "SINGLE",
    "MULTI",
    "NOT_STARTED",
    "IN_PROGRESS",
    "COMPLETED",
    "OptionEdge",
    "QuestionNode",
    "AnswerSelection",
    "clean_values",
    "selected_values",
    "resolve_next",
    "derive_status",
]
