# web_app.py

from typing import Any, Dict, List, Sequence

import streamlit as st
import plotly.graph_objects as go

from pert_estimator.config import get_settings
from pert_estimator.logging_setup import setup_logging
from pert_estimator.session import EstimatorSession
from pert_estimator.task_store import Task
from pert_estimator.tools.aggregator import ProjectSummary
from pert_estimator.tools.csv_import import ImportedTaskCandidate, TaskImportError
from pert_estimator.tools.pert_calculator import format_hours


settings = get_settings()
setup_logging(
    level=settings.log_level,
    log_dir=settings.log_dir if settings.log_to_file else None,
)


# -------------------------------------------------------------------
# Small helpers
# -------------------------------------------------------------------

def _get_session() -> EstimatorSession:
    if "pert_session" not in st.session_state:
        st.session_state["pert_session"] = EstimatorSession(settings)
        st.session_state["editor_version"] = 0
    return st.session_state["pert_session"]


def _bump_editor() -> None:
    """New editor key -> fresh widget state after the task list changed."""
    st.session_state["editor_version"] = st.session_state.get("editor_version", 0) + 1


def _task_rows(tasks: Sequence[Task], decimals: int) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for t in tasks:
        result = t.estimate()
        rows.append(
            {
                "id": t.id,
                "source_id": t.original_id or "",
                "name": t.name,
                "optimistic": t.optimistic,
                "most_likely": t.most_likely,
                "pessimistic": t.pessimistic,
                "expected": format_hours(result.expected, decimals),
                "std_dev": format_hours(result.std_dev, decimals),
                "delete": False,
            }
        )
    return rows


def _apply_task_edits(session: EstimatorSession, edited_rows: List[Dict[str, Any]]) -> bool:
    """Push data_editor edits back into the store. Returns True if anything changed."""
    changed = False
    for row in edited_rows:
        task_id = int(row["id"])
        if row.get("delete"):
            session.delete_task(task_id)
            changed = True
            continue

        task = session.store.get(task_id)
        updates = {}
        for field in ("name", "optimistic", "most_likely", "pessimistic"):
            value = row.get(field)
            value = "" if value is None else str(value)
            if value != getattr(task, field):
                updates[field] = value
        if updates:
            session.update_task(task_id, **updates)
            changed = True
    return changed


def _candidate_rows(
    candidates: Sequence[ImportedTaskCandidate],
    positions: Sequence[int],
) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for pos in positions:
        c = candidates[pos]
        rows.append(
            {
                "select": False,
                "position": pos,
                "external_id": c.external_id,
                "work_item_type": c.work_item_type,
                "title": c.title,
                "assigned_to": c.assigned_to,
                "state": c.state,
                "tags": ", ".join(c.tag_list),
            }
        )
    return rows


def _estimate_chart(tasks: Sequence[Task]) -> go.Figure:
    names: List[str] = []
    expected: List[float] = []
    sigmas: List[float] = []
    for t in tasks:
        result = t.estimate()
        if not result.is_defined:
            continue
        names.append(t.name or f"Task {t.id}")
        expected.append(result.expected)
        sigmas.append(abs(result.std_dev))

    fig = go.Figure(
        go.Bar(
            x=names,
            y=expected,
            error_y=dict(type="data", array=sigmas, visible=True),
            marker_color="#4f46e5",
        )
    )
    fig.update_layout(
        title="Expected hours per story (±σ)",
        yaxis_title="Hours",
        margin=dict(l=10, r=10, t=50, b=10),
    )
    return fig


def _summary_lines(summary: ProjectSummary, decimals: int) -> List[str]:
    lines = []
    for ci in summary.intervals:
        lines.append(
            f"{ci.label} CI: {format_hours(ci.low, decimals)} – "
            f"{format_hours(ci.high, decimals)} hrs"
        )
    return lines


def _submit_story() -> None:
    """Form callback: runs before the rerun, so it may reset widget values."""
    session = _get_session()
    session.form.name = st.session_state.get("form_name", "")
    session.form.optimistic = st.session_state.get("form_optimistic", "")
    session.form.most_likely = st.session_state.get("form_most_likely", "")
    session.form.pessimistic = st.session_state.get("form_pessimistic", "")

    problems = session.submit_form()
    st.session_state["form_problems"] = problems
    if not problems:
        for key in ("form_name", "form_optimistic", "form_most_likely", "form_pessimistic"):
            st.session_state[key] = ""
        _bump_editor()


# -------------------------------------------------------------------
# Streamlit UI
# -------------------------------------------------------------------
st.set_page_config(page_title="PERT Estimator", layout="wide")

st.markdown(
    """
    <style>
    [data-testid="stAppViewContainer"] .block-container {
        max-width: 90% !important;
        padding-top: 1.5rem !important;
    }

    h2, h3 {
        font-weight: 800 !important;
        color: #4338ca;
        border-bottom: 2px solid #e0e7ff;
        padding-bottom: 0.4rem;
    }

    div[data-testid="stMetric"] {
        border-radius: 0.5rem;
        padding: 0.5rem;
        background-color: #eef2ff;
    }

    div[data-testid="stMetricValue"] {
        font-weight: 900 !important;
        color: #4f46e5 !important;
    }
    </style>
    """,
    unsafe_allow_html=True,
)

st.title("PERT Estimator")
st.caption(
    "Enter optimistic (O), most-likely (M) and pessimistic (P) hours per story. "
    "E = (O + 4M + P) / 6, σ = (P − O) / 6; project σ assumes independent stories."
)

session = _get_session()
decimals = settings.display_decimals

# Sidebar
with st.sidebar:
    st.header("📎 Import")

    work_items = st.file_uploader("Work item export (CSV)", type=["csv"], key="work_items_csv")
    if work_items is not None:
        upload_key = (work_items.name, work_items.size)
        if st.session_state.get("last_work_items") != upload_key:
            try:
                imported = session.import_csv(work_items.getvalue())
            except TaskImportError as e:
                st.error(f"Could not import {work_items.name}: {e.message}")
            else:
                st.success(f"Loaded {len(imported)} work item(s) from {work_items.name}")
            st.session_state["last_work_items"] = upload_key

    st.markdown("---")
    saved = st.file_uploader("Restore a downloaded estimation (CSV)", type=["csv"], key="estimate_csv")
    if saved is not None:
        saved_key = (saved.name, saved.size)
        if st.session_state.get("last_estimate_file") != saved_key:
            try:
                restored = session.load_estimates(saved.getvalue())
            except TaskImportError as e:
                st.error(f"Could not restore {saved.name}: {e.message}")
            else:
                st.success(f"Restored {len(restored)} stor(ies)")
                _bump_editor()
            st.session_state["last_estimate_file"] = saved_key

    st.markdown("---")
    st.caption(
        "Confidence levels: "
        + ", ".join(f"{lvl.label} (±{lvl.multiplier:g}σ)" for lvl in settings.confidence_levels)
    )
    if st.button("🧹 Clear session"):
        session.reset()
        _bump_editor()
        st.rerun()

# 1. Add story
st.markdown("### 1. Add a user story")

with st.form("add_story"):
    st.text_input("User-story title", key="form_name")
    c_o, c_m, c_p = st.columns(3)
    c_o.text_input("Optimistic (O)", key="form_optimistic")
    c_m.text_input("Most Likely (M)", key="form_most_likely")
    c_p.text_input("Pessimistic (P)", key="form_pessimistic")
    st.form_submit_button("➕ Add story", type="primary", on_click=_submit_story)

for problem in st.session_state.get("form_problems") or []:
    st.warning(problem)

# 2. Imported work items
if session.candidates:
    st.markdown("### 2. Imported work items")
    query = st.text_input("Search work items", key="candidate_query")
    matches = {id(c) for c in session.search_candidates(query)}
    positions = [i for i, c in enumerate(session.candidates) if id(c) in matches]

    picked = st.data_editor(
        _candidate_rows(session.candidates, positions),
        use_container_width=True,
        hide_index=True,
        key=f"candidate_editor_{len(session.candidates)}_{query}",
        disabled=["position", "external_id", "work_item_type", "title", "assigned_to", "state", "tags"],
        column_config={
            "select": st.column_config.CheckboxColumn("Add"),
            "position": None,
            "external_id": st.column_config.TextColumn("ID"),
            "work_item_type": st.column_config.TextColumn("Type"),
            "title": st.column_config.TextColumn("Title"),
            "assigned_to": st.column_config.TextColumn("Assigned To"),
            "state": st.column_config.TextColumn("State"),
            "tags": st.column_config.TextColumn("Tags"),
        },
    )

    selected = [int(r["position"]) for r in picked if r.get("select")]
    if st.button(f"Add {len(selected)} selected as stories", disabled=not selected):
        added = session.apply_selected(selected)
        st.success(f"Added {len(added)} stor(ies). Fill in O / M / P below.")
        _bump_editor()
        st.rerun()

# 3. Estimates
st.markdown("### 3. Estimates")

if not len(session.store):
    st.info("No stories yet. Add one above or import a work item CSV.")
else:
    edited = st.data_editor(
        _task_rows(session.tasks, decimals),
        use_container_width=True,
        hide_index=True,
        key=f"task_editor_{st.session_state.get('editor_version', 0)}",
        disabled=["id", "source_id", "expected", "std_dev"],
        column_config={
            "id": None,
            "source_id": st.column_config.TextColumn("Source ID"),
            "name": st.column_config.TextColumn("Story"),
            "optimistic": st.column_config.TextColumn("O"),
            "most_likely": st.column_config.TextColumn("M"),
            "pessimistic": st.column_config.TextColumn("P"),
            "expected": st.column_config.TextColumn("E [hrs]"),
            "std_dev": st.column_config.TextColumn("σ"),
            "delete": st.column_config.CheckboxColumn("🗑️"),
        },
    )
    if _apply_task_edits(session, edited):
        _bump_editor()
        st.rerun()

    summary = session.summary()

    m1, m2, m3 = st.columns(3)
    m1.metric("Total Expected", f"{format_hours(summary.total_expected, decimals)} hrs")
    m2.metric("σ (project)", f"{format_hours(summary.total_std_dev, decimals)} hrs")
    m3.metric("Estimated stories", f"{summary.estimated_tasks} / {summary.total_tasks}")

    for line in _summary_lines(summary, decimals):
        st.markdown(f"- {line}")

    if summary.estimated_tasks:
        st.plotly_chart(_estimate_chart(session.tasks), use_container_width=True)

    st.markdown("---")
    st.download_button(
        "📥 Download CSV",
        session.export_csv(),
        file_name=session.export_filename(),
        mime="text/csv",
        disabled=not session.can_export(),
    )
