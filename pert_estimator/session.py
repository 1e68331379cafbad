# pert_estimator/session.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, List, Optional, Sequence

from pert_estimator.config import Settings, get_settings
from pert_estimator.task_store import Task, TaskStore
from pert_estimator.tools.aggregator import ProjectSummary, summarize
from pert_estimator.tools.csv_export import export_csv, export_filename
from pert_estimator.tools.csv_import import (
    CsvInput,
    ImportedTaskCandidate,
    TaskImportError,
    filter_candidates,
    parse_candidates,
    parse_candidates_async,
    parse_estimate_rows,
)
from pert_estimator.tools.pert_calculator import validate_new_estimate

logger = logging.getLogger(__name__)


def _log_import_failure(error: TaskImportError) -> None:
    logger.warning(f"CSV import failed: {error.message} {error.details}")


@dataclass
class PendingTaskForm:
    """The 'add story' form fields, as typed."""
    name: str = ""
    optimistic: str = ""
    most_likely: str = ""
    pessimistic: str = ""

    def problems(self) -> List[str]:
        return validate_new_estimate(
            self.name, self.optimistic, self.most_likely, self.pessimistic
        )

    def clear(self) -> None:
        self.name = ""
        self.optimistic = ""
        self.most_likely = ""
        self.pessimistic = ""


class EstimatorSession:
    """
    Everything one browser session works on: the task store, the pending
    entry form and the most recent list of imported work items.

    The UI mutates state only through the methods below.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self.store = TaskStore()
        self.form = PendingTaskForm()
        self.candidates: List[ImportedTaskCandidate] = []

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    @property
    def tasks(self) -> Sequence[Task]:
        return self.store.tasks()

    def submit_form(self) -> List[str]:
        """
        Add the pending form as a new task.

        Returns the validation problems; an empty list means the task was
        added and the form cleared.
        """
        problems = self.form.problems()
        if problems:
            return problems

        self.store.add(
            name=self.form.name.strip(),
            optimistic=self.form.optimistic.strip(),
            most_likely=self.form.most_likely.strip(),
            pessimistic=self.form.pessimistic.strip(),
        )
        self.form.clear()
        return []

    def add_task(self, **fields: Any) -> Task:
        return self.store.add(**fields)

    def update_task(self, task_id: int, **fields: Any) -> Task:
        return self.store.update(task_id, **fields)

    def delete_task(self, task_id: int) -> Task:
        return self.store.delete(task_id)

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def import_csv(self, data: CsvInput) -> List[ImportedTaskCandidate]:
        """
        Replace the candidate list with the work items in `data`.

        On TaskImportError the previous candidates are kept.
        """
        try:
            candidates = parse_candidates(data)
        except TaskImportError as e:
            _log_import_failure(e)
            raise
        return self._replace_candidates(candidates)

    async def import_csv_async(self, data: CsvInput) -> List[ImportedTaskCandidate]:
        """import_csv() with the parse done in a worker thread."""
        try:
            candidates = await parse_candidates_async(data)
        except TaskImportError as e:
            _log_import_failure(e)
            raise
        return self._replace_candidates(candidates)

    def _replace_candidates(
        self, candidates: List[ImportedTaskCandidate]
    ) -> List[ImportedTaskCandidate]:
        self.candidates = candidates
        return candidates

    def search_candidates(self, query: str) -> List[ImportedTaskCandidate]:
        return filter_candidates(self.candidates, query)

    def apply_selected(self, indices: Iterable[int]) -> List[Task]:
        """Turn the chosen candidates (by position) into new, blank-estimate tasks."""
        chosen: List[ImportedTaskCandidate] = []
        for idx in indices:
            if not 0 <= idx < len(self.candidates):
                raise IndexError(f"No imported work item at position {idx}")
            chosen.append(self.candidates[idx])
        return self.store.add_candidates(chosen)

    def load_estimates(self, data: CsvInput) -> List[Task]:
        """Append the tasks from a previously downloaded estimation CSV."""
        rows = parse_estimate_rows(data)
        return self.store.add_estimate_rows(rows)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def summary(self) -> ProjectSummary:
        return summarize(self.store, self.settings.confidence_levels)

    def can_export(self) -> bool:
        return self.store.has_named_task()

    def export_csv(self) -> str:
        return export_csv(self.store)

    def export_filename(self, today: Optional[date] = None) -> str:
        return export_filename(today, prefix=self.settings.export_prefix)

    def reset(self) -> None:
        self.store.clear()
        self.form.clear()
        self.candidates = []
