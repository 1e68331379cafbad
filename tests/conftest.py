# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from pert_estimator.config import Settings
from pert_estimator.session import EstimatorSession
from pert_estimator.task_store import TaskStore
from pert_estimator.tools.aggregator import DEFAULT_CONFIDENCE_LEVELS


WORK_ITEMS_CSV = """ID,Work Item Type,Title,Assigned To,State,Tags
101,User Story,Login page,Jane Doe <jane@x.com>,Active,frontend; auth
102,Bug,Fix logout,,,
103,User Story,"Reports, monthly",Bob Smith,New,reporting
104,Task,Write docs,Ann Lee <ann@x.com>,Closed,docs;  ;misc
"""


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Explicit settings, so tests never depend on the developer's .env.
    """
    return Settings(
        confidence_levels=DEFAULT_CONFIDENCE_LEVELS,
        display_decimals=2,
        export_prefix="pert_estimation",
        log_level="INFO",
        log_dir=tmp_path / "logs",
        log_to_file=False,
    )


@pytest.fixture()
def store() -> TaskStore:
    return TaskStore()


@pytest.fixture()
def example_store(store: TaskStore) -> TaskStore:
    """The three-story backlog used throughout the docs: (1,2,3), (2,4,6), (0,1,2)."""
    store.add(name="Story A", optimistic="1", most_likely="2", pessimistic="3")
    store.add(name="Story B", optimistic="2", most_likely="4", pessimistic="6")
    store.add(name="Story C", optimistic="0", most_likely="1", pessimistic="2")
    return store


@pytest.fixture()
def session(settings: Settings) -> EstimatorSession:
    return EstimatorSession(settings)


@pytest.fixture()
def work_items_csv() -> bytes:
    return WORK_ITEMS_CSV.encode("utf-8")
