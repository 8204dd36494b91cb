"""Referential and uniqueness checks on a normalized survey graph.

Validation is pure and fails fast on the first violation:
1. question codes are unique;
2. every option belongs to a listed question;
3. every default-next and jump target names a listed question.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Sequence, Tuple

from surveygraph.logic.errors import DanglingReferenceError, DuplicateCodeError
from surveygraph.logic.structure_normalizer import (
    END_SENTINEL,
    NormalizedOption,
    NormalizedQuestion,
    normalize_option_rows,
    normalize_question_rows,
)


def ensure_unique_codes(questions: Sequence[NormalizedQuestion]) -> set[str]:
    seen: set[str] = set()
    for question in questions:
        if question.code in seen:
            raise DuplicateCodeError(question.code)
        seen.add(question.code)
    return seen


def validate_structure(
    questions: Sequence[NormalizedQuestion],
    options: Sequence[NormalizedOption],
) -> None:
    codes = ensure_unique_codes(questions)

    for index, option in enumerate(options):
        if option.question_code not in codes:
            raise DanglingReferenceError(
                f'options[{index}] question_code "{option.question_code}" is not in the question list',
                source=f"options[{index}]",
                missing_code=option.question_code,
                field="question_code",
            )

    for question in questions:
        if question.default_next_code is not None and question.default_next_code not in codes:
            raise DanglingReferenceError(
                f'"{question.code}" next_question_code "{question.default_next_code}" was not found',
                source=question.code,
                missing_code=question.default_next_code,
                field="next_question_code",
            )

    for option in options:
        if option.jump_to_code is not None and option.jump_to_code not in codes:
            raise DanglingReferenceError(
                f'"{option.question_code}" option "{option.value}" '
                f'jump_to_question_code "{option.jump_to_code}" was not found',
                source=f"{option.question_code}:{option.value}",
                missing_code=option.jump_to_code,
                field="jump_to_question_code",
            )


def normalize_and_validate(
    question_rows: Sequence[Mapping[str, Any]],
    option_rows: Sequence[Mapping[str, Any]],
    *,
    sentinel: str = END_SENTINEL,
) -> Tuple[List[NormalizedQuestion], List[NormalizedOption]]:
    """Normalize raw rows from any origin and validate the resulting graph."""
    questions = normalize_question_rows(question_rows, sentinel=sentinel)
    options = normalize_option_rows(option_rows, sentinel=sentinel)
    validate_structure(questions, options)
    return questions, options


__all__ = ["ensure_unique_codes", "validate_structure", "normalize_and_validate"]
