"""
frontend/components.py

Streamlit renderers for the dashboard. Each renderer draws one panel and
returns whatever the caller needs to act on (filter values, a page to go
to, an uploaded file); data access stays in the caller.
"""

from __future__ import annotations

from typing import Any

import pandas as pd
import streamlit as st

from app.domain.datasets import DatasetSpec
from app.services.export_service import export_filename, rows_to_csv
from app.services.filters import SENTINEL_ALL
from app.services.pivot_service import PivotTable
from frontend.state import AuthGate, ImportProgress, SearchDebouncer, TableController

_YEAR_BOUND_KINDS = {"gte", "lte"}


def _format_number(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:,.2f}"
    if isinstance(value, int):
        return f"{value:,}"
    return str(value)


# ── Auth ───────────────────────────────────────────────────────────────────
def render_auth_gate(gate: AuthGate) -> None:
    """Login / register form shown while no user is signed in."""
    st.title("Dashboard Ekonomi Kreatif Jawa Barat")
    if gate.notice:
        st.success(gate.notice)
    if gate.error:
        st.error(gate.error)

    is_login = gate.mode == "login"
    with st.form(key=f"auth_form_{gate.mode}"):
        st.subheader("Sign in" if is_login else "Create an account")
        name = None if is_login else st.text_input("Name")
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in" if is_login else "Register", type="primary")

    if submitted:
        if not email.strip() or not password:
            gate.error = "Email and password are required."
        elif is_login:
            gate.sign_in(email, password)
        else:
            gate.sign_up(email, password, name=name)
        st.rerun()

    toggle_label = "Need an account? Register" if is_login else "Already registered? Sign in"
    if st.button(toggle_label):
        gate.toggle_mode()
        st.rerun()


def render_profile(gate: AuthGate) -> None:
    if gate.user is None:
        return
    st.caption(f"Signed in as {gate.user.name or gate.user.email}")
    if st.button("Sign out", use_container_width=True):
        gate.sign_out()
        st.rerun()


# ── Filters ────────────────────────────────────────────────────────────────
def render_search(spec: DatasetSpec, debouncer: SearchDebouncer) -> str | None:
    """
    Free-text search box. Returns the term once typing has paused, or None
    while a change is still settling.
    """

    if not spec.search_columns:
        return None
    value = st.text_input("Search", key=f"search_{spec.name}", placeholder="Search...")
    if value != (debouncer.pending if debouncer.pending is not None else debouncer.last_fired):
        debouncer.submit(value)
    return debouncer.poll()


def _option_label(choice: Any) -> str:
    # Keeps the "no filter" entry apart from a stored "All" category.
    return "(any)" if choice == SENTINEL_ALL else str(choice)


def render_filters(
    spec: DatasetSpec,
    options: dict[str, list[Any]],
    years: list[int],
) -> dict[str, Any]:
    """Selectboxes for every option-backed filter; "all" clears a filter."""
    selected: dict[str, Any] = {}
    fields = [item for item in spec.filters if item.has_options or item.kind in _YEAR_BOUND_KINDS]
    if not fields:
        return selected

    columns = st.columns(min(len(fields), 4))
    for index, item in enumerate(fields):
        choices = years if item.kind in _YEAR_BOUND_KINDS else options.get(item.name, [])
        with columns[index % len(columns)]:
            value = st.selectbox(
                item.display_label,
                options=[SENTINEL_ALL, *choices],
                format_func=_option_label,
                key=f"filter_{spec.name}_{item.name}",
            )
        if value != SENTINEL_ALL:
            selected[item.name] = value
    return selected


# ── Summary & table ────────────────────────────────────────────────────────
def render_summary(metrics: dict[str, int | float]) -> None:
    if not metrics:
        return
    columns = st.columns(min(len(metrics), 4))
    for index, (name, value) in enumerate(metrics.items()):
        columns[index % len(columns)].metric(name.replace("_", " ").title(), _format_number(value))


def render_table(
    spec: DatasetSpec,
    controller: TableController,
    grand_totals: dict[str, int | float],
) -> int | None:
    """
    Draw the current page with a grand-total row and pagination controls.

    Returns the page the user asked for, or None.
    """

    if controller.state == "errored":
        st.error(controller.error or "Failed to load data.")
        if st.button("Retry", key=f"retry_{spec.name}"):
            return controller.page
        return None

    if controller.result is None or controller.result.is_empty:
        st.info("No data matches the current filters.")
        return None

    labels = {column.key: column.label for column in spec.columns}
    frame = pd.DataFrame(controller.rows, columns=list(labels)).rename(columns=labels)
    if grand_totals:
        total_row = {labels[key]: grand_totals.get(key) for key in labels if key in grand_totals}
        total_row[labels[spec.columns[0].key]] = "Grand Total"
        frame = pd.concat([frame, pd.DataFrame([total_row])], ignore_index=True)
    st.dataframe(frame, use_container_width=True, hide_index=True)

    first = (controller.page - 1) * controller.page_size + 1
    last = first + len(controller.rows) - 1
    st.caption(
        f"Showing {first}-{last} of {controller.total_count:,} rows "
        f"(page {controller.page} of {controller.total_pages})"
    )

    previous_col, next_col, _ = st.columns([1, 1, 6])
    target: int | None = None
    if previous_col.button("Previous", key=f"prev_{spec.name}", disabled=not controller.has_previous):
        target = controller.page - 1
    if next_col.button("Next", key=f"next_{spec.name}", disabled=not controller.has_next):
        target = controller.page + 1
    return target


def render_export_button(spec: DatasetSpec, controller: TableController) -> None:
    """CSV download of the rows already on screen; no extra query."""
    if not controller.rows:
        return
    st.download_button(
        "Export CSV",
        data=rows_to_csv(controller.rows, spec.columns).encode("utf-8"),
        file_name=export_filename(spec, controller.filters),
        mime="text/csv",
        key=f"export_{spec.name}",
    )


# ── Analytics ──────────────────────────────────────────────────────────────
def render_pivot(table: PivotTable) -> None:
    if not table.groups:
        st.info("No pivot data available.")
        return
    frame = pd.DataFrame(table.to_records())
    st.dataframe(frame, use_container_width=True, hide_index=True)


def render_ranking(rows: list[dict[str, Any]], *, percentage_total: float) -> None:
    if not rows:
        st.info("No ranking data for this year.")
        return
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
    st.caption(f"Percentage total across the full ranking: {percentage_total:.2f}%")


def render_series(points: list[dict[str, Any]], *, x: str, y: list[str], kind: str = "bar") -> None:
    if not points:
        st.info("No chart data available.")
        return
    frame = pd.DataFrame(points).set_index(x)[y]
    if kind == "line":
        st.line_chart(frame)
    else:
        st.bar_chart(frame)


# ── Import ─────────────────────────────────────────────────────────────────
def render_import_panel(
    spec: DatasetSpec,
    progress: ImportProgress,
    *,
    template_csv: str,
) -> tuple[str, bytes] | None:
    """
    Upload widget, template download and the last run's progress / summary.

    Returns (filename, content) when the user starts an import.
    """

    st.download_button(
        "Download template",
        data=template_csv.encode("utf-8"),
        file_name=f"template_{spec.export_prefix or spec.name}.csv",
        mime="text/csv",
        key=f"template_{spec.name}",
    )

    uploaded = st.file_uploader("CSV or Excel file", type=["csv", "xlsx"], key=f"upload_{spec.name}")
    start = st.button(
        "Import",
        type="primary",
        disabled=uploaded is None or progress.phase in {"uploading", "processing"},
        key=f"import_{spec.name}",
    )

    if progress.phase != "idle":
        st.progress(progress.percent / 100, text=f"{progress.phase.title()} ({progress.percent}%)")
    if progress.phase == "success":
        st.success(progress.message or "Import complete.")
    elif progress.phase == "error":
        st.error(progress.message or "Import failed.")

    summary = progress.summary
    if summary is not None:
        cols = st.columns(4)
        cols[0].metric("Rows read", f"{summary.rows_total:,}")
        cols[1].metric("Inserted", f"{summary.rows_inserted:,}")
        cols[2].metric("Skipped", f"{summary.rows_skipped:,}")
        cols[3].metric("Batches", summary.batches_committed)
        if summary.skipped_rows:
            with st.expander("Skipped rows"):
                st.dataframe(
                    pd.DataFrame(
                        [
                            {"row": issue.row_number, "column": issue.column, "message": issue.message}
                            for issue in summary.skipped_rows
                        ]
                    ),
                    use_container_width=True,
                    hide_index=True,
                )

    if progress.finished and st.button("Import another file", key=f"reset_{spec.name}"):
        progress.reset()
        st.rerun()

    if start and uploaded is not None:
        return uploaded.name, uploaded.getvalue()
    return None
