"""Spreadsheet adapter for survey structure uploads.

Reads the questions sheet and the optional options sheet of an .xlsx
workbook into header-keyed row dicts that the structure normalizer accepts.
Cell values are passed through untouched; text rendering and trimming are
the normalizer's job.
"""

from __future__ import annotations

import io
import logging
import zipfile
from typing import Any, Dict, List, Optional, Tuple

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from surveygraph.logic.errors import WorkbookError

logger = logging.getLogger(__name__)

QUESTIONS_SHEET = "Questions"
OPTIONS_SHEET = "QuestionOptions"

Row = Dict[str, Any]


def _find_sheet(sheetnames: List[str], exact: str, fragment: str) -> Optional[str]:
    if exact in sheetnames:
        return exact
    for name in sheetnames:
        if fragment in name.lower():
            return name
    return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _sheet_rows(sheet: Any) -> List[Row]:
    rows_iter = sheet.iter_rows(values_only=True)
    header_cells = next(rows_iter, None)
    if header_cells is None:
        return []
    headers = [str(h).strip() if h is not None else "" for h in header_cells]

    rows: List[Row] = []
    for values in rows_iter:
        if all(_is_blank(v) for v in values):
            continue
        row: Row = {}
        for index, header in enumerate(headers):
            if not header:
                continue
            value = values[index] if index < len(values) else None
            row[header] = None if _is_blank(value) else value
        rows.append(row)
    return rows


def read_workbook_rows(content: bytes, *, max_bytes: Optional[int] = None) -> Tuple[List[Row], List[Row]]:
    """Return (question_rows, option_rows) read from xlsx bytes.

    Raises WorkbookError when the upload is empty, oversize, unreadable, or
    has no questions sheet. A missing options sheet yields no option rows.
    """
    if not content:
        raise WorkbookError("uploaded file is empty")
    if max_bytes is not None and len(content) > max_bytes:
        raise WorkbookError(
            "uploaded file is too large",
            context={"size": len(content), "max_bytes": max_bytes},
        )

    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
        logger.info("workbook_unreadable size=%s error=%s", len(content), exc)
        raise WorkbookError("failed to read the uploaded workbook") from exc

    try:
        questions_name = _find_sheet(workbook.sheetnames, QUESTIONS_SHEET, "question")
        if questions_name is None:
            raise WorkbookError(
                "workbook has no Questions sheet",
                context={"sheets": list(workbook.sheetnames)},
            )
        # Substring lookup for options must not pick the questions sheet again
        option_candidates = [n for n in workbook.sheetnames if n != questions_name]
        options_name = _find_sheet(option_candidates, OPTIONS_SHEET, "option")

        question_rows = _sheet_rows(workbook[questions_name])
        option_rows = _sheet_rows(workbook[options_name]) if options_name else []
    finally:
        workbook.close()

    logger.info(
        "workbook_read questions_sheet=%s options_sheet=%s question_rows=%s option_rows=%s",
        questions_name,
        options_name,
        len(question_rows),
        len(option_rows),
    )
    return question_rows, option_rows


__all__ = ["QUESTIONS_SHEET", "OPTIONS_SHEET", "read_workbook_rows"]
