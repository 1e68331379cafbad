# run_local.py

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List

from pert_estimator.config import get_settings
from pert_estimator.logging_setup import setup_logging
from pert_estimator.session import EstimatorSession
from pert_estimator.tools.csv_import import TaskImportError
from pert_estimator.tools.pert_calculator import format_hours


def example_estimation_tasks() -> List[Dict[str, Any]]:
    """
    Example backlog used when no CSV is given.
    Hours, not weeks.
    """
    return [
        {
            "name": "Project Tracking Dashboard",
            "optimistic": "1",
            "most_likely": "2",
            "pessimistic": "3",
        },
        {
            "name": "Role-Based Access Control",
            "optimistic": "2",
            "most_likely": "4",
            "pessimistic": "6",
        },
        {
            "name": "Email Notifications",
            "optimistic": "0",
            "most_likely": "1",
            "pessimistic": "2",
        },
    ]


def _prompt_hours(label: str) -> str:
    try:
        return input(f"  {label}: ").strip()
    except EOFError:
        return ""


async def main() -> None:
    settings = get_settings()
    setup_logging(
        level=settings.log_level,
        log_dir=settings.log_dir if settings.log_to_file else None,
    )
    session = EstimatorSession(settings)

    print("=== PERT Estimator (Local Run) ===")

    if len(sys.argv) > 1:
        csv_path = Path(sys.argv[1])
        try:
            candidates = await session.import_csv_async(csv_path.read_bytes())
        except TaskImportError as e:
            print(f"Import failed: {e.message}")
            return

        session.apply_selected(range(len(candidates)))
        print(f"Imported {len(candidates)} work item(s) from {csv_path.name}.")
        print("Enter O / M / P hours for each (blank to skip).\n")

        for task in session.tasks:
            print(f"[{task.original_id}] {task.name}")
            session.update_task(
                task.id,
                optimistic=_prompt_hours("Optimistic"),
                most_likely=_prompt_hours("Most likely"),
                pessimistic=_prompt_hours("Pessimistic"),
            )
    else:
        for t in example_estimation_tasks():
            session.add_task(**t)

    decimals = settings.display_decimals

    print("\n=== ESTIMATES ===")
    for task in session.tasks:
        result = task.estimate()
        print(
            f"{task.name:<40} E={format_hours(result.expected, decimals):>8}  "
            f"σ={format_hours(result.std_dev, decimals):>8}"
        )

    summary = session.summary()
    print("\n=== PROJECT ===")
    print(f"Total expected: {format_hours(summary.total_expected, decimals)} hrs")
    print(f"σ(project):     {format_hours(summary.total_std_dev, decimals)} hrs")
    for ci in summary.intervals:
        print(
            f"{ci.label} CI: {format_hours(ci.low, decimals)} - "
            f"{format_hours(ci.high, decimals)} hrs"
        )

    if session.can_export():
        out = Path(session.export_filename())
        out.write_text(session.export_csv(), encoding="utf-8")
        print(f"\nWrote {out}")


if __name__ == "__main__":
    asyncio.run(main())
