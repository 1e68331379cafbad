# tests/test_session.py

from __future__ import annotations

import logging
from datetime import date

import pytest

from pert_estimator.config import Settings
from pert_estimator.session import EstimatorSession
from pert_estimator.tools.aggregator import ConfidenceLevel
from pert_estimator.tools.csv_import import TaskImportError


def test_submit_form_adds_and_clears(session: EstimatorSession) -> None:
    session.form.name = " Login page "
    session.form.optimistic = "1"
    session.form.most_likely = "2"
    session.form.pessimistic = "3"

    assert session.submit_form() == []
    [task] = session.tasks
    assert task.name == "Login page"
    assert session.form.name == ""
    assert session.form.optimistic == ""


def test_submit_form_rejects_bad_input(session: EstimatorSession) -> None:
    session.form.name = "Login"
    session.form.optimistic = "-1"
    session.form.most_likely = "2"
    session.form.pessimistic = "3"

    problems = session.submit_form()
    assert problems
    assert len(session.tasks) == 0
    assert session.form.optimistic == "-1"


def test_import_and_apply_selected(session: EstimatorSession, work_items_csv: bytes) -> None:
    candidates = session.import_csv(work_items_csv)
    assert len(candidates) == 4

    added = session.apply_selected([0, 2, 0])
    assert [t.original_id for t in added] == ["101", "103", "101"]
    assert len({t.id for t in added}) == 3
    assert all(t.optimistic == "" for t in added)
    assert len(session.candidates) == 4


def test_apply_selected_out_of_range_adds_nothing(
    session: EstimatorSession, work_items_csv: bytes
) -> None:
    session.import_csv(work_items_csv)
    with pytest.raises(IndexError):
        session.apply_selected([0, 99])
    assert len(session.tasks) == 0


def test_failed_import_keeps_previous_state(
    session: EstimatorSession, work_items_csv: bytes
) -> None:
    session.import_csv(work_items_csv)
    session.apply_selected([1])
    before_candidates = list(session.candidates)
    before_tasks = session.tasks

    with pytest.raises(TaskImportError):
        session.import_csv(b"")

    assert session.candidates == before_candidates
    assert session.tasks == before_tasks


def test_new_import_replaces_candidates(session: EstimatorSession, work_items_csv: bytes) -> None:
    session.import_csv(work_items_csv)
    session.import_csv("ID,Title\n900,Other\n")
    assert [c.external_id for c in session.candidates] == ["900"]


def test_search_candidates(session: EstimatorSession, work_items_csv: bytes) -> None:
    session.import_csv(work_items_csv)
    assert [c.external_id for c in session.search_candidates("reports")] == ["103"]


@pytest.mark.asyncio
async def test_import_csv_async(session: EstimatorSession, work_items_csv: bytes) -> None:
    candidates = await session.import_csv_async(work_items_csv)
    assert len(candidates) == 4
    assert session.candidates == candidates


@pytest.mark.asyncio
async def test_failed_import_logs_the_same_way_sync_and_async(
    session: EstimatorSession, work_items_csv: bytes, caplog: pytest.LogCaptureFixture
) -> None:
    session.import_csv(work_items_csv)
    before = list(session.candidates)
    bad = "ID,Title\n1,a\x00b\n"

    with caplog.at_level(logging.WARNING, logger="pert_estimator.session"):
        with pytest.raises(TaskImportError):
            session.import_csv(bad)
        with pytest.raises(TaskImportError):
            await session.import_csv_async(bad)

    messages = [r.getMessage() for r in caplog.records if r.name == "pert_estimator.session"]
    assert len(messages) == 2
    assert messages[0] == messages[1]
    assert "'position': 12" in messages[0]
    assert session.candidates == before


def test_end_to_end_summary(session: EstimatorSession) -> None:
    session.add_task(name="A", optimistic="1", most_likely="2", pessimistic="3")
    session.add_task(name="B", optimistic="2", most_likely="4", pessimistic="6")
    session.add_task(name="C", optimistic="0", most_likely="1", pessimistic="2")

    summary = session.summary()
    assert summary.total_expected == pytest.approx(7.0)
    assert round(summary.ci68.low, 2) == 6.18
    assert round(summary.ci68.high, 2) == 7.82


def test_configured_confidence_levels(settings: Settings) -> None:
    custom = Settings(
        confidence_levels=(ConfidenceLevel("80%", 1.28),),
        display_decimals=settings.display_decimals,
        export_prefix="sprint",
        log_level=settings.log_level,
        log_dir=settings.log_dir,
        log_to_file=False,
    )
    session = EstimatorSession(custom)
    session.add_task(name="A", optimistic="1", most_likely="2", pessimistic="3")

    summary = session.summary()
    assert [ci.label for ci in summary.intervals] == ["80%"]
    assert session.export_filename(date(2025, 1, 2)) == "sprint_2025-01-02.csv"


def test_export_roundtrip(session: EstimatorSession, work_items_csv: bytes) -> None:
    session.add_task(name="Local story", optimistic="1.5", most_likely="2", pessimistic="4.25")
    session.import_csv(work_items_csv)
    [imported] = session.apply_selected([0])
    session.update_task(imported.id, optimistic="3", most_likely="5", pessimistic="13")
    session.add_task(name="Unsized")

    exported = session.export_csv()

    restored = EstimatorSession(session.settings)
    restored.load_estimates(exported)

    def raw(tasks):
        return [(t.name, t.optimistic, t.most_likely, t.pessimistic) for t in tasks]

    assert raw(restored.tasks) == raw(session.tasks)
    assert restored.tasks[1].original_id == "101"
    assert restored.export_csv() == exported


def test_can_export(session: EstimatorSession) -> None:
    assert not session.can_export()
    session.add_task()
    assert not session.can_export()
    session.add_task(name="Named")
    assert session.can_export()


def test_reset(session: EstimatorSession, work_items_csv: bytes) -> None:
    session.import_csv(work_items_csv)
    old = session.add_task(name="x")
    session.form.name = "pending"

    session.reset()

    assert len(session.tasks) == 0
    assert session.candidates == []
    assert session.form.name == ""
    assert session.add_task(name="y").id > old.id
