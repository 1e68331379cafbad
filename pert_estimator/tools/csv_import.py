# pert_estimator/tools/csv_import.py

"""
Work-item CSV import.

Turns an arbitrary tracker export (Azure DevOps / Jira style CSV) into a
list of ImportedTaskCandidate records. Only a whole-file failure is an
error; rows missing an ID or Title are silently dropped.
"""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pert_estimator.tools.csv_export import (
    COL_MOST_LIKELY,
    COL_OPTIMISTIC,
    COL_PESSIMISTIC,
    COL_TASK_ID,
    COL_TASK_NAME,
)

logger = logging.getLogger(__name__)

UNASSIGNED = "Unassigned"
UNKNOWN_STATE = "Unknown"
TAG_DELIMITER = ";"

CsvInput = Union[bytes, bytearray, str]


# ===== Column Mapping =====

CANDIDATE_COLUMNS: Dict[str, List[str]] = {
    "external_id": ["id"],
    "work_item_type": ["work item type"],
    "title": ["title"],
    "assigned_to": ["assigned to"],
    "state": ["state"],
    "tags": ["tags"],
}

ESTIMATE_COLUMNS: Dict[str, List[str]] = {
    "task_id": [COL_TASK_ID.lower()],
    "name": [COL_TASK_NAME.lower()],
    "optimistic": [COL_OPTIMISTIC.lower()],
    "most_likely": [COL_MOST_LIKELY.lower()],
    "pessimistic": [COL_PESSIMISTIC.lower()],
}


class TaskImportError(ValueError):
    """The uploaded file could not be read as a table at all."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ===== Normalizers =====


def normalize_assignee(raw: Any) -> str:
    """'Jane Doe <jane@x.com>' -> 'Jane Doe'; blank -> 'Unassigned'."""
    text = _cell_text(raw)
    if "<" in text:
        text = text.split("<", 1)[0]
    text = text.strip()
    return text or UNASSIGNED


def normalize_state(raw: Any) -> str:
    text = _cell_text(raw)
    return text if text.strip() else UNKNOWN_STATE


def split_tags(tags: str) -> List[str]:
    return [t.strip() for t in (tags or "").split(TAG_DELIMITER) if t.strip()]


# ===== Pydantic Models =====


class ImportedTaskCandidate(BaseModel):
    """A work item from an uploaded CSV, not yet turned into a task."""

    model_config = ConfigDict(frozen=True)

    external_id: str = Field(..., min_length=1, description="Work item ID in the source system")
    work_item_type: str = Field("", description="User Story, Bug, Task, ...")
    title: str = Field(..., min_length=1, description="Work item title")
    assigned_to: str = Field(UNASSIGNED, description="Display name without e-mail")
    state: str = Field(UNKNOWN_STATE, description="Free-form state label")
    tags: str = Field("", description="Raw ';'-separated tag list")

    @field_validator("external_id", "title", "work_item_type", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> str:
        return _cell_text(value).strip()

    @field_validator("assigned_to", mode="before")
    @classmethod
    def _normalize_assignee(cls, value: Any) -> str:
        return normalize_assignee(value)

    @field_validator("state", mode="before")
    @classmethod
    def _normalize_state(cls, value: Any) -> str:
        return normalize_state(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _raw_tags(cls, value: Any) -> str:
        return _cell_text(value)

    @property
    def tag_list(self) -> List[str]:
        return split_tags(self.tags)


class EstimateRow(BaseModel):
    """One row of a previously exported estimation file."""

    model_config = ConfigDict(frozen=True)

    task_id: str = Field(..., min_length=1)
    name: str = ""
    optimistic: str = ""
    most_likely: str = ""
    pessimistic: str = ""

    @field_validator("task_id", mode="before")
    @classmethod
    def _strip_id(cls, value: Any) -> str:
        return _cell_text(value).strip()

    @field_validator("name", "optimistic", "most_likely", "pessimistic", mode="before")
    @classmethod
    def _verbatim(cls, value: Any) -> str:
        return _cell_text(value)


# ===== Table reading =====


def _cell_text(value: Any) -> str:
    """Cells missing from short rows come back from pandas as NaN."""
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value)


def _normalize_header(name: Any) -> str:
    return " ".join(str(name).split()).lower()


def _decode(data: CsvInput) -> str:
    if isinstance(data, (bytes, bytearray)):
        try:
            return bytes(data).decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise TaskImportError(
                "File is not valid UTF-8 text",
                details={"position": e.start},
            ) from e
    return data.lstrip("\ufeff")


def _read_table(data: CsvInput) -> pd.DataFrame:
    text = _decode(data)
    if not text.strip():
        raise TaskImportError("File is empty")

    # The C parser silently cuts a cell off at a NUL byte.
    if "\x00" in text:
        raise TaskImportError(
            "File contains NUL bytes and is not a text CSV",
            details={"position": text.index("\x00")},
        )

    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError as e:
        raise TaskImportError("File has no header row") from e
    except pd.errors.ParserError as e:
        raise TaskImportError(
            "File could not be parsed as CSV",
            details={"reason": str(e)},
        ) from e

    # pandas silently promotes the first column to an index when the first
    # data row has one more field than the header.
    if len(df) and not isinstance(df.index, pd.RangeIndex):
        raise TaskImportError("Data rows have more fields than the header row")

    return df


def _resolve_columns(
    columns: Sequence[Any],
    mappings: Mapping[str, List[str]],
) -> Dict[str, Any]:
    """Map model field -> actual DataFrame column (first match wins)."""
    normalized = {}
    for col in columns:
        normalized.setdefault(_normalize_header(col), col)

    resolved: Dict[str, Any] = {}
    for field, aliases in mappings.items():
        for alias in aliases:
            if alias in normalized:
                resolved[field] = normalized[alias]
                break
    return resolved


def _row_fields(row: Mapping[Any, Any], resolved: Mapping[str, Any]) -> Dict[str, Any]:
    return {field: row.get(column) for field, column in resolved.items()}


# ===== Public entrypoints =====


def parse_candidates(data: CsvInput) -> List[ImportedTaskCandidate]:
    """
    Parse a work-item CSV export into task candidates.

    Raises:
        TaskImportError: if the content is not a readable table.
    """
    df = _read_table(data)
    resolved = _resolve_columns(df.columns, CANDIDATE_COLUMNS)

    missing = [f for f in ("external_id", "title") if f not in resolved]
    if missing:
        logger.warning(
            f"CSV import: required column(s) {missing} not found in header "
            f"{list(df.columns)}; no rows can be imported"
        )

    candidates: List[ImportedTaskCandidate] = []
    dropped = 0
    for row in df.to_dict(orient="records"):
        try:
            candidates.append(ImportedTaskCandidate.model_validate(_row_fields(row, resolved)))
        except ValidationError:
            dropped += 1

    logger.info(
        f"CSV import: {len(candidates)} candidate(s) from {len(df)} row(s), "
        f"{dropped} dropped for missing ID or Title"
    )
    return candidates


async def parse_candidates_async(data: CsvInput) -> List[ImportedTaskCandidate]:
    """Same as parse_candidates(), run in a worker thread."""
    return await asyncio.to_thread(parse_candidates, data)


def filter_candidates(
    candidates: Sequence[ImportedTaskCandidate],
    query: str,
) -> List[ImportedTaskCandidate]:
    needle = (query or "").strip().lower()
    if not needle:
        return list(candidates)

    def haystack(c: ImportedTaskCandidate) -> str:
        return " ".join(
            [c.external_id, c.title, c.work_item_type, c.assigned_to, c.state, c.tags]
        ).lower()

    return [c for c in candidates if needle in haystack(c)]


def parse_estimate_rows(data: CsvInput) -> List[EstimateRow]:
    """
    Read a file written by csv_export.export_csv() back in.

    The computed Expected Duration / Standard Deviation columns are ignored;
    the raw O/M/P text is kept exactly as written.
    """
    df = _read_table(data)
    resolved = _resolve_columns(df.columns, ESTIMATE_COLUMNS)
    if "task_id" not in resolved:
        raise TaskImportError(
            f"Not an estimation export: missing '{COL_TASK_ID}' column",
            details={"columns": [str(c) for c in df.columns]},
        )

    rows: List[EstimateRow] = []
    for raw in df.to_dict(orient="records"):
        try:
            rows.append(EstimateRow.model_validate(_row_fields(raw, resolved)))
        except ValidationError:
            continue

    logger.info(f"Estimate import: {len(rows)} row(s) restored")
    return rows
