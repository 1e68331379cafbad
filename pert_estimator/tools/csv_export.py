# pert_estimator/tools/csv_export.py

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

import pandas as pd

from pert_estimator.tools.pert_calculator import calculate, format_hours

if TYPE_CHECKING:
    from pert_estimator.task_store import Task

logger = logging.getLogger(__name__)

COL_TASK_ID = "Task ID"
COL_TASK_NAME = "Task Name"
COL_OPTIMISTIC = "Optimistic"
COL_MOST_LIKELY = "Most Likely"
COL_PESSIMISTIC = "Pessimistic"
COL_EXPECTED = "Expected Duration"
COL_STD_DEV = "Standard Deviation"

EXPORT_COLUMNS: List[str] = [
    COL_TASK_ID,
    COL_TASK_NAME,
    COL_OPTIMISTIC,
    COL_MOST_LIKELY,
    COL_PESSIMISTIC,
    COL_EXPECTED,
    COL_STD_DEV,
]

DEFAULT_EXPORT_PREFIX = "pert_estimation"


def export_task_id(task: "Task") -> str:
    """Imported tasks keep their source work-item id; others use the store id."""
    if task.original_id:
        return task.original_id
    return str(task.id)


def export_rows(tasks: Iterable["Task"], decimals: int = 2) -> List[Dict[str, str]]:
    rows: List[Dict[str, str]] = []
    for task in tasks:
        result = calculate(task.optimistic, task.most_likely, task.pessimistic)
        rows.append(
            {
                COL_TASK_ID: export_task_id(task),
                COL_TASK_NAME: task.name,
                COL_OPTIMISTIC: task.optimistic,
                COL_MOST_LIKELY: task.most_likely,
                COL_PESSIMISTIC: task.pessimistic,
                COL_EXPECTED: format_hours(result.expected, decimals),
                COL_STD_DEV: format_hours(result.std_dev, decimals),
            }
        )
    return rows


def export_csv(tasks: Iterable["Task"], decimals: int = 2) -> str:
    """
    Serialize tasks and their computed estimates as CSV text.

    An empty task list still produces the header row.
    """
    rows = export_rows(tasks, decimals=decimals)
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS, dtype=object)
    logger.info(f"Exporting {len(rows)} task(s) to CSV")
    return df.to_csv(index=False, lineterminator="\n")


def export_filename(
    today: Optional[date] = None,
    prefix: str = DEFAULT_EXPORT_PREFIX,
) -> str:
    """pert_estimation_YYYY-MM-DD.csv"""
    day = today or date.today()
    return f"{prefix}_{day.isoformat()}.csv"
