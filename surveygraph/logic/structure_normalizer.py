"""Canonicalization of survey structure input.

Converts heterogeneous question/option records (spreadsheet rows keyed by
snake_case headers, or UI payload objects keyed by camelCase fields) into the
canonical `NormalizedQuestion` / `NormalizedOption` graph consumed by the
validator and the replacer.

Rules:
- `code` / `value` are trimmed and required. A question without a code fails
  the whole batch; an option without a question code or value is dropped.
- `type` defaults to SINGLE and is upper-cased.
- A next/jump literal equal to the END sentinel (case-insensitive) means
  "no next question" and normalizes to None, as does a blank cell.
- Option `order` defaults to the record's input position when absent or
  not numeric.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from surveygraph.logic.errors import ValidationError

logger = logging.getLogger(__name__)

END_SENTINEL = "END"
DEFAULT_QUESTION_TYPE = "SINGLE"

_TRUE_TOKENS = {"1", "true", "TRUE", "yes", "YES", "y", "Y"}


@dataclass(frozen=True)
class NormalizedQuestion:
    code: str
    type: str
    text: str
    default_next_code: Optional[str]


@dataclass(frozen=True)
class NormalizedOption:
    question_code: str
    value: str
    label: str
    order: int
    is_other: bool
    jump_to_code: Optional[str]


def _pick(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return None


def cell_text(value: Any) -> Optional[str]:
    """Render a raw cell/field as text; integral floats lose their `.0`."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def _trimmed(value: Any) -> str:
    return (cell_text(value) or "").strip()


def _pointer(value: Any, sentinel: str) -> Optional[str]:
    raw = _trimmed(value)
    if not raw or raw.upper() == sentinel.upper():
        return None
    return raw


def _order(value: Any, fallback: int) -> int:
    if value is None or isinstance(value, bool):
        return fallback
    try:
        number = float(str(value).strip())
    except ValueError:
        return fallback
    if not math.isfinite(number):
        return fallback
    return int(number)


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip() in _TRUE_TOKENS
    return False


def _question_from_record(record: Mapping[str, Any], index: int, sentinel: str, origin: str) -> NormalizedQuestion:
    code = _trimmed(_pick(record, "question_code", "code"))
    if not code:
        raise ValidationError(
            f"{origin}[{index}] has an empty question code",
            context={"index": index},
        )
    qtype = _trimmed(_pick(record, "type")).upper() or DEFAULT_QUESTION_TYPE
    text = cell_text(_pick(record, "text")) or ""
    return NormalizedQuestion(
        code=code,
        type=qtype,
        text=text,
        default_next_code=_pointer(_pick(record, "next_question_code", "nextQuestionCode"), sentinel),
    )


def _option_from_record(
    record: Mapping[str, Any],
    index: int,
    question_code: Optional[str],
    sentinel: str,
) -> Optional[NormalizedOption]:
    qcode = question_code if question_code is not None else _trimmed(
        _pick(record, "question_code", "questionCode")
    )
    value = _trimmed(_pick(record, "value"))
    if not qcode or not value:
        logger.debug("option_row_dropped index=%s question_code=%r value=%r", index, qcode, value)
        return None
    return NormalizedOption(
        question_code=qcode,
        value=value,
        label=cell_text(_pick(record, "label")) or "",
        order=_order(_pick(record, "order"), index),
        is_other=coerce_bool(_pick(record, "is_other", "isOther")),
        jump_to_code=_pointer(_pick(record, "jump_to_question_code", "jumpToQuestionCode"), sentinel),
    )


def normalize_question_rows(
    rows: Sequence[Mapping[str, Any]],
    *,
    sentinel: str = END_SENTINEL,
) -> List[NormalizedQuestion]:
    if not rows:
        raise ValidationError("questions data is empty")
    return [_question_from_record(row, i, sentinel, "questions") for i, row in enumerate(rows)]


def normalize_option_rows(
    rows: Iterable[Mapping[str, Any]],
    *,
    sentinel: str = END_SENTINEL,
) -> List[NormalizedOption]:
    normalized: List[NormalizedOption] = []
    for index, row in enumerate(rows):
        option = _option_from_record(row, index, None, sentinel)
        if option is not None:
            normalized.append(option)
    return normalized


def normalize_structure_payload(
    payload: Mapping[str, Any] | None,
    *,
    sentinel: str = END_SENTINEL,
) -> Tuple[List[NormalizedQuestion], List[NormalizedOption]]:
    """Normalize a UI payload `{"questions": [{..., "options": [...]}]}`.

    Each option inherits its parent's code; its default order is its index
    within the parent's option list.
    """
    questions_in = list((payload or {}).get("questions") or [])
    if not questions_in:
        raise ValidationError("questions list is empty")

    questions: List[NormalizedQuestion] = []
    options: List[NormalizedOption] = []
    for q_index, record in enumerate(questions_in):
        question = _question_from_record(record, q_index, sentinel, "questions")
        questions.append(question)
        for o_index, opt_record in enumerate(record.get("options") or []):
            option = _option_from_record(opt_record, o_index, question.code, sentinel)
            if option is not None:
                options.append(option)
    return questions, options


__all__ = [
    "END_SENTINEL",
    "DEFAULT_QUESTION_TYPE",
    "NormalizedQuestion",
    "NormalizedOption",
    "cell_text",
    "coerce_bool",
    "normalize_question_rows",
    "normalize_option_rows",
    "normalize_structure_payload",
]
