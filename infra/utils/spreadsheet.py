"""Excel template generation and parsing for bulk problem upload.

Sheet layout (first sheet, one problem per row):
title, description, difficulty, category, tags (comma-separated), starter_code,
solution_code, test_case_{n}_input, test_case_{n}_output, test_case_{n}_is_sample
(n = 1, 2, ...), time_limit_ms, memory_limit_mb, points.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

SHEET_NAME = "Problems"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

DEFAULT_TIME_LIMIT_MS = 1000
DEFAULT_MEMORY_LIMIT_MB = 128
DEFAULT_POINTS = 100

BASE_COLUMNS = [
    "title",
    "description",
    "difficulty",
    "category",
    "tags",
    "starter_code",
    "solution_code",
]
TAIL_COLUMNS = ["time_limit_ms", "memory_limit_mb", "points"]


class SpreadsheetError(Exception):
    """The uploaded file could not be read as a problem workbook."""


@dataclass
class TestCaseTemplate:
    input: str
    expected_output: str
    is_sample: bool = False


@dataclass
class ProblemTemplate:
    title: str
    description: str
    difficulty: str
    category: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    starter_code: Optional[str] = None
    solution_code: Optional[str] = None
    test_cases: List[TestCaseTemplate] = field(default_factory=list)
    time_limit_ms: int = DEFAULT_TIME_LIMIT_MS
    memory_limit_mb: int = DEFAULT_MEMORY_LIMIT_MB
    points: int = DEFAULT_POINTS


SAMPLE_ROWS: List[Dict[str, str]] = [
    {
        "title": "Two Sum",
        "description": "Given an array of integers nums and an integer target, return indices of the two numbers such that they add up to target.",
        "difficulty": "easy",
        "category": "Arrays",
        "tags": "arrays,hash-table",
        "starter_code": "function twoSum(nums, target) {\n  // Your code here\n}",
        "solution_code": (
            "function twoSum(nums, target) {\n"
            "  const map = {};\n"
            "  for (let i = 0; i < nums.length; i++) {\n"
            "    const complement = target - nums[i];\n"
            "    if (map[complement] !== undefined) {\n"
            "      return [map[complement], i];\n"
            "    }\n"
            "    map[nums[i]] = i;\n"
            "  }\n"
            "  return [];\n"
            "}"
        ),
        "test_case_1_input": "[2,7,11,15], 9",
        "test_case_1_output": "[0,1]",
        "test_case_1_is_sample": "true",
        "test_case_2_input": "[3,2,4], 6",
        "test_case_2_output": "[1,2]",
        "test_case_2_is_sample": "true",
        "time_limit_ms": "1000",
        "memory_limit_mb": "128",
        "points": "100",
    },
    {
        "title": "Reverse String",
        "description": "Write a function that reverses a string. The input string is given as an array of characters s.",
        "difficulty": "easy",
        "category": "Strings",
        "tags": "strings,two-pointers",
        "starter_code": "function reverseString(s) {\n  // Your code here\n}",
        "solution_code": (
            "function reverseString(s) {\n"
            "  let left = 0;\n"
            "  let right = s.length - 1;\n"
            "  while (left < right) {\n"
            "    [s[left], s[right]] = [s[right], s[left]];\n"
            "    left++;\n"
            "    right--;\n"
            "  }\n"
            "  return s;\n"
            "}"
        ),
        "test_case_1_input": '["h","e","l","l","o"]',
        "test_case_1_output": '["o","l","l","e","h"]',
        "test_case_1_is_sample": "true",
        "time_limit_ms": "1000",
        "memory_limit_mb": "128",
        "points": "100",
    },
]


def _template_columns(rows: List[Dict[str, str]]) -> List[str]:
    max_cases = 0
    for row in rows:
        n = 1
        while f"test_case_{n}_input" in row:
            n += 1
        max_cases = max(max_cases, n - 1)

    case_columns: List[str] = []
    for n in range(1, max_cases + 1):
        case_columns += [f"test_case_{n}_input", f"test_case_{n}_output", f"test_case_{n}_is_sample"]
    return BASE_COLUMNS + case_columns + TAIL_COLUMNS


def generate_excel_template() -> bytes:
    """Build the downloadable `.xlsx` template with two sample problems."""
    frame = pd.DataFrame(SAMPLE_ROWS, columns=_template_columns(SAMPLE_ROWS))
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=SHEET_NAME, index=False)
    return buffer.getvalue()


def _cell(row: Dict[str, Any], key: str) -> Optional[str]:
    """Cell as text; blank cells (NaN/None/'') come back as None."""
    value = row.get(key)
    if value is None:
        return None
    if not isinstance(value, str) and pd.isna(value):
        return None
    text = str(value)
    return text if text.strip() else None


def _int_cell(row: Dict[str, Any], key: str, default: int) -> int:
    raw = _cell(row, key)
    if raw is None:
        return default
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        return default


def _row_to_problem(row: Dict[str, Any]) -> ProblemTemplate:
    test_cases: List[TestCaseTemplate] = []
    n = 1
    while _cell(row, f"test_case_{n}_input") is not None:
        test_cases.append(TestCaseTemplate(
            input=_cell(row, f"test_case_{n}_input") or "",
            expected_output=_cell(row, f"test_case_{n}_output") or "",
            is_sample=(_cell(row, f"test_case_{n}_is_sample") or "").strip().lower() == "true",
        ))
        n += 1

    tags_raw = _cell(row, "tags")
    tags = [t.strip() for t in tags_raw.split(",") if t.strip()] if tags_raw else []

    return ProblemTemplate(
        title=(_cell(row, "title") or "").strip(),
        description=_cell(row, "description") or "",
        difficulty=(_cell(row, "difficulty") or "easy").strip().lower(),
        category=_cell(row, "category"),
        tags=tags,
        starter_code=_cell(row, "starter_code"),
        solution_code=_cell(row, "solution_code"),
        test_cases=test_cases,
        time_limit_ms=_int_cell(row, "time_limit_ms", DEFAULT_TIME_LIMIT_MS),
        memory_limit_mb=_int_cell(row, "memory_limit_mb", DEFAULT_MEMORY_LIMIT_MB),
        points=_int_cell(row, "points", DEFAULT_POINTS),
    )


def parse_excel_file(data: bytes) -> List[ProblemTemplate]:
    """Read problems from the first sheet of an uploaded workbook.

    Rows without a title are skipped.
    """
    try:
        # dtype=str giữ nguyên text như "true" hay "[0,1]" thay vì để pandas tự đoán kiểu.
        frame = pd.read_excel(io.BytesIO(data), sheet_name=0, dtype=str, engine="openpyxl")
    except Exception as e:
        logger.warning(f"Unreadable workbook: {e}")
        raise SpreadsheetError("Failed to read the spreadsheet. Please upload a valid .xlsx file.") from e

    problems: List[ProblemTemplate] = []
    for row in frame.to_dict(orient="records"):
        problem = _row_to_problem(row)
        if not problem.title:
            continue
        problems.append(problem)
    return problems


__all__ = [
    "SpreadsheetError",
    "ProblemTemplate",
    "TestCaseTemplate",
    "generate_excel_template",
    "parse_excel_file",
    "XLSX_MEDIA_TYPE",
]
