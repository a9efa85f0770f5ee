"""Streamlit dashboard for the West Java creative-economy data."""

from __future__ import annotations

import logging
import time
from typing import Any

import streamlit as st

from app.config import get_backend_settings, get_dashboard_settings
from app.domain.dataset_registry import get_dataset, list_datasets
from app.domain.datasets import DatasetSpec
from app.logging_utils import configure_logging
from frontend import components
from frontend.state import AuthGate, ImportProgress, SearchDebouncer, TableController

st.set_page_config(page_title="Ekraf Jabar", page_icon="EJ", layout="wide")
configure_logging()
logger = logging.getLogger(__name__)


@st.cache_resource(show_spinner=False)
def _load_backend_handles() -> dict[str, Any]:
    """Load backend services lazily to keep startup lightweight."""
    from app.services.chart_service import get_chart_service  # noqa: PLC0415
    from app.services.import_service import get_import_service  # noqa: PLC0415
    from app.services.pivot_service import get_pivot_service  # noqa: PLC0415
    from app.services.query_service import get_dataset_query_service  # noqa: PLC0415
    from app.services.ranking_service import get_ranking_service  # noqa: PLC0415
    from db.session import session_scope  # noqa: PLC0415

    return {
        "query": get_dataset_query_service(),
        "pivot": get_pivot_service(),
        "ranking": get_ranking_service(),
        "charts": get_chart_service(),
        "import": get_import_service(),
        "session_scope": session_scope,
    }


@st.cache_resource(show_spinner=False)
def _load_auth_service():
    from app.services.auth_service import get_auth_service  # noqa: PLC0415

    return get_auth_service()


if "controllers" not in st.session_state:
    st.session_state.controllers = {}
if "debouncers" not in st.session_state:
    st.session_state.debouncers = {}
if "import_progress" not in st.session_state:
    st.session_state.import_progress = {}
if "auth_gate" not in st.session_state:
    st.session_state.auth_gate = None


def _controller(spec: DatasetSpec) -> TableController:
    controllers: dict[str, TableController] = st.session_state.controllers
    if spec.name not in controllers:
        controllers[spec.name] = TableController(page_size=spec.page_size)
    return controllers[spec.name]


def _debouncer(spec: DatasetSpec) -> SearchDebouncer:
    debouncers: dict[str, SearchDebouncer] = st.session_state.debouncers
    if spec.name not in debouncers:
        debouncers[spec.name] = SearchDebouncer(delay=get_dashboard_settings().search_debounce_seconds)
    return debouncers[spec.name]


def _progress(spec: DatasetSpec) -> ImportProgress:
    progress: dict[str, ImportProgress] = st.session_state.import_progress
    if spec.name not in progress:
        progress[spec.name] = ImportProgress()
    return progress[spec.name]


def _load_page(spec: DatasetSpec, controller: TableController, token: int) -> None:
    """Fetch the page the controller last requested and hand it back under `token`."""
    from app.services.query_service import DatasetQueryError  # noqa: PLC0415

    handles = _load_backend_handles()
    with handles["session_scope"]() as db:
        try:
            result = handles["query"].list_page(
                db, spec, controller.filters, page=controller.page, page_size=controller.page_size
            )
        except DatasetQueryError as exc:
            controller.fail(token, str(exc))
            return
    controller.resolve(token, result)


# ── Auth gate ──────────────────────────────────────────────────────────────
backend_settings = get_backend_settings()
gate: AuthGate | None = None
if not backend_settings.auth_disabled:
    if st.session_state.auth_gate is None:
        st.session_state.auth_gate = AuthGate(_load_auth_service())
    gate = st.session_state.auth_gate
    if gate.status == "checking-session":
        with st.spinner("Checking session..."):
            gate.check_session(gate.session)
    if not gate.is_authenticated:
        components.render_auth_gate(gate)
        st.stop()


# ── Sidebar ────────────────────────────────────────────────────────────────
with st.sidebar:
    st.title("Ekraf Jabar")
    st.caption("Ekonomi kreatif Jawa Barat")
    if gate is not None:
        components.render_profile(gate)
    st.divider()
    section = st.radio("Section", options=["Tables", "Pivot", "Rankings", "Charts", "Import"])


# ── Tables ─────────────────────────────────────────────────────────────────
def _render_tables() -> None:
    specs = list_datasets()
    titles = {spec.title: spec.name for spec in specs}
    spec = get_dataset(titles[st.selectbox("Dataset", options=list(titles))])
    st.header(spec.title)

    handles = _load_backend_handles()
    controller = _controller(spec)
    debouncer = _debouncer(spec)

    with handles["session_scope"]() as db:
        options = handles["query"].filter_options(db, spec)
        years = handles["query"].available_years(db, spec)

    filters = components.render_filters(spec, options, years)
    term = components.render_search(spec, debouncer)
    if term is None and debouncer.pending is not None:
        time.sleep(debouncer.remaining())
        term = debouncer.poll()
    search = term if term is not None else debouncer.last_fired
    if search:
        filters["search"] = search

    if controller.state == "idle" or filters != controller.filters:
        _load_page(spec, controller, controller.set_filters(filters))

    if controller.state == "loaded":
        with handles["session_scope"]() as db:
            metrics = handles["query"].summary_metrics(db, spec, controller.filters)
            if spec.grand_total_scope == "filtered":
                grand_totals = handles["query"].grand_total(db, spec, controller.filters)
            else:
                grand_totals = controller.page_grand_total(spec.numeric_columns)
        components.render_summary(metrics)
    else:
        grand_totals = {}

    target = components.render_table(spec, controller, grand_totals)
    if target is not None:
        token = controller.retry() if controller.state == "errored" else controller.go_to(target)
        if token is not None:
            _load_page(spec, controller, token)
            st.rerun()
    components.render_export_button(spec, controller)


# ── Pivot ──────────────────────────────────────────────────────────────────
def _render_pivot() -> None:
    from app.services.pivot_service import PIVOT_METRICS, PIVOT_PROCEDURES  # noqa: PLC0415

    st.header("Pivot per kabupaten/kota")
    handles = _load_backend_handles()
    source = st.radio("Source", options=["regional", "records"], horizontal=True)
    metrics = PIVOT_METRICS if source == "regional" else PIVOT_PROCEDURES
    metric = st.selectbox("Metric", options=list(metrics))
    with handles["session_scope"]() as db:
        if source == "records":
            table = handles["pivot"].record_pivot(db, metric)
        else:
            table = handles["pivot"].regional_pivot(db, metric)
    components.render_pivot(table)


# ── Rankings ───────────────────────────────────────────────────────────────
def _render_rankings() -> None:
    from app.services.ranking_service import RANKING_PROCEDURES, percentage_total  # noqa: PLC0415

    st.header("Peringkat")
    handles = _load_backend_handles()
    kind = st.selectbox("Ranking", options=list(RANKING_PROCEDURES))
    with handles["session_scope"]() as db:
        years = handles["query"].available_years(db, get_dataset("ekraf_analysis"))
    if not years:
        st.info("No years available yet.")
        return
    year = st.selectbox("Year", options=years)
    with handles["session_scope"]() as db:
        rows = handles["ranking"].full_ranking(db, kind, year=int(year))
    components.render_ranking(rows, percentage_total=percentage_total(rows))


# ── Charts ─────────────────────────────────────────────────────────────────
def _render_charts() -> None:
    st.header("Grafik")
    handles = _load_backend_handles()
    charts = handles["charts"]
    with handles["session_scope"]() as db:
        trend = charts.investment_trend(db)
        quarterly = charts.quarterly_breakdown(db, "investment_analysis")
        subsectors = charts.subsector_chart(db)
        comparison = charts.comparison(db)

    st.subheader("PMA vs PMDN (triliun rupiah)")
    components.render_series(trend, x="period", y=["pma", "pmdn"], kind="line")
    st.subheader("Investasi per triwulan")
    components.render_series(quarterly, x="year", y=["TW-I", "TW-II", "TW-III", "TW-IV"])
    st.subheader("Subsektor teratas")
    components.render_series(subsectors, x="name", y=["projects"])
    st.subheader("Perbandingan kabupaten/kota")
    if comparison:
        st.dataframe(comparison, use_container_width=True, hide_index=True)
    else:
        st.info("No comparison data available.")


# ── Import ─────────────────────────────────────────────────────────────────
def _render_import() -> None:
    from app.services.import_service import ImportFileError  # noqa: PLC0415

    importable = {spec.title: spec for spec in list_datasets() if spec.importable}
    spec = importable[st.selectbox("Dataset", options=list(importable))]
    st.header(f"Import: {spec.title}")
    handles = _load_backend_handles()
    service = handles["import"]
    progress = _progress(spec)

    upload = components.render_import_panel(spec, progress, template_csv=service.template_csv(spec))
    if upload is None:
        return

    filename, content = upload
    progress.reset()
    progress.start_upload(filename)
    with st.spinner("Importing..."):
        try:
            with handles["session_scope"]() as db:
                summary = service.import_file(
                    db,
                    spec,
                    filename=filename,
                    content=content,
                    progress=progress.advance,
                )
        except ImportFileError as exc:
            progress.fail(str(exc))
        else:
            progress.finish(summary)
            if summary.rows_inserted:
                _controller(spec).state = "idle"
    st.rerun()


_SECTIONS = {
    "Tables": _render_tables,
    "Pivot": _render_pivot,
    "Rankings": _render_rankings,
    "Charts": _render_charts,
    "Import": _render_import,
}

try:
    _SECTIONS[section]()
except Exception as exc:  # noqa: BLE001
    logger.exception("Dashboard section failed section=%s", section)
    st.error(f"Could not load {section.lower()}: {exc}")
