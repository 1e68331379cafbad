# pert_estimator/task_store.py

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable, Iterator, List, Optional, Tuple, Union

from pert_estimator.tools.csv_import import EstimateRow, ImportedTaskCandidate
from pert_estimator.tools.pert_calculator import (
    EstimateResult,
    ThreePointEstimate,
    calculate,
    parse_estimate,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"name", "optimistic", "most_likely", "pessimistic"})

FieldValue = Union[str, int, float, None]


class TaskNotFoundError(KeyError):
    pass


@dataclass(frozen=True)
class Task:
    """
    One estimable user story.

    The three estimate fields hold the text as typed in the form; they
    may be blank or non-numeric while the user is still editing.
    """
    id: int
    name: str = ""
    optimistic: str = ""
    most_likely: str = ""
    pessimistic: str = ""
    original_id: Optional[str] = None

    def numbers(self) -> Optional[ThreePointEstimate]:
        return parse_estimate(self.optimistic, self.most_likely, self.pessimistic)

    def estimate(self) -> EstimateResult:
        return calculate(self.optimistic, self.most_likely, self.pessimistic)


def _as_text(value: FieldValue) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


class TaskStore:
    """
    Ordered in-memory collection of tasks for one session.

    Insertion order is display and export order. Ids come from a counter
    owned by the store and are never handed out twice.
    """

    def __init__(self) -> None:
        self._tasks: List[Task] = []
        self._ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(tuple(self._tasks))

    def tasks(self) -> Tuple[Task, ...]:
        return tuple(self._tasks)

    def get(self, task_id: int) -> Task:
        return self._tasks[self._index_of(task_id)]

    def has_named_task(self) -> bool:
        return any(t.name.strip() for t in self._tasks)

    def _index_of(self, task_id: int) -> int:
        for idx, task in enumerate(self._tasks):
            if task.id == task_id:
                return idx
        raise TaskNotFoundError(task_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _new_task(
        self,
        name: FieldValue = "",
        optimistic: FieldValue = "",
        most_likely: FieldValue = "",
        pessimistic: FieldValue = "",
        original_id: Optional[str] = None,
    ) -> Task:
        return Task(
            id=next(self._ids),
            name=_as_text(name),
            optimistic=_as_text(optimistic),
            most_likely=_as_text(most_likely),
            pessimistic=_as_text(pessimistic),
            original_id=original_id or None,
        )

    def add(
        self,
        name: FieldValue = "",
        optimistic: FieldValue = "",
        most_likely: FieldValue = "",
        pessimistic: FieldValue = "",
        original_id: Optional[str] = None,
    ) -> Task:
        task = self._new_task(name, optimistic, most_likely, pessimistic, original_id)
        self._tasks.append(task)
        logger.debug(f"Added task {task.id} ({task.name!r})")
        return task

    def update(self, task_id: int, **fields: Any) -> Task:
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update field(s): {sorted(unknown)}")

        idx = self._index_of(task_id)
        updated = replace(
            self._tasks[idx],
            **{k: _as_text(v) for k, v in fields.items()},
        )
        self._tasks[idx] = updated
        logger.debug(f"Updated task {task_id}: {sorted(fields)}")
        return updated

    def delete(self, task_id: int) -> Task:
        removed = self._tasks.pop(self._index_of(task_id))
        logger.debug(f"Deleted task {task_id}")
        return removed

    def add_candidates(self, candidates: Iterable[ImportedTaskCandidate]) -> List[Task]:
        """Append one blank-estimate task per candidate, all at once."""
        new_tasks = [
            self._new_task(name=c.title, original_id=c.external_id)
            for c in candidates
        ]
        self._tasks.extend(new_tasks)
        logger.info(f"Added {len(new_tasks)} task(s) from imported work items")
        return new_tasks

    def add_estimate_rows(self, rows: Iterable[EstimateRow]) -> List[Task]:
        """Append tasks restored from an exported estimation file."""
        new_tasks = [
            self._new_task(
                name=r.name,
                optimistic=r.optimistic,
                most_likely=r.most_likely,
                pessimistic=r.pessimistic,
                original_id=r.task_id,
            )
            for r in rows
        ]
        self._tasks.extend(new_tasks)
        logger.info(f"Restored {len(new_tasks)} task(s) from estimation export")
        return new_tasks

    def clear(self) -> None:
        self._tasks.clear()
