"""
app/domain/dataset_registry.py

Every dataset the dashboard can list, filter, summarise, export or import.

Adding a table to the dashboard means adding one DatasetSpec here; the
query, export and import services are shared.
"""

from __future__ import annotations

from app.domain.datasets import (
    ColumnSpec,
    DatasetSpec,
    FilterField,
    MetricSpec,
    OrderKey,
    UnknownDatasetError,
)
from db.models import (
    PATENT_YEARS,
    RANKING_TYPE_REGION,
    RANKING_TYPE_SUBSECTOR,
    CreativeEconomyCompany,
    EkrafInvestmentRecord,
    InvestmentAnalysis,
    InvestmentAttachmentRanking,
    InvestmentRealizationRanking,
    LaborRanking,
    PatentRegistration,
    RankingAnalysis,
    RegionalAnalysis,
    TrademarkFiling,
    WorkforceAnalysis,
)

_YEAR_RANGE_FILTERS = (
    FilterField("start_year", "year", "gte", label="From year"),
    FilterField("end_year", "year", "lte", label="To year"),
    FilterField("quarters", "quarter", "in", label="Quarters"),
)

_EKRAF_TEMPLATE_HEADERS: tuple[str, ...] = (
    "tahap",
    "tahun",
    "sektor_utama",
    "sektor_24",
    "nama_perusahaan",
    "kabkota",
    "bidang_usaha",
    "kode_kbli",
    "judul_kbli",
    "is_ekraf",
    "subsektor",
    "is_pariwisata",
    "subsektor_pariwisata",
    "negara",
    "no_izin",
    "tambahan_investasi_usd",
    "tambahan_investasi_rp",
    "proyek",
    "tki",
    "tka",
    "tk",
    "status",
    "periode",
    "semester",
    "sektor_23",
    "sektor_17",
)

_EKRAF_TEMPLATE_EXAMPLE: tuple[str, ...] = (
    "Tahap 1",
    "2025",
    "Ekonomi Kreatif",
    "Musik dan Film",
    "PT Contoh Nusantara",
    "Bandung",
    "Produksi Konten",
    "90001",
    "Produksi Film dan Video",
    "true",
    "Film",
    "false",
    "",
    "Indonesia",
    "IZN-12345",
    "50000",
    "750000000",
    "3",
    "25",
    "2",
    "27",
    "PMDN",
    "2025-Q1",
    "1",
    "Industri Kreatif",
    "Pariwisata",
)


def _attachment_ranking(name: str, title: str, ranking_type: int) -> DatasetSpec:
    return DatasetSpec(
        name=name,
        title=title,
        model=InvestmentAttachmentRanking,
        columns=(
            ColumnSpec("rank", "Peringkat"),
            ColumnSpec("name", "Nama"),
            ColumnSpec("project_count", "Jumlah Proyek", numeric=True),
            ColumnSpec("investment_usd", "Investasi (USD)", numeric=True),
            ColumnSpec("investment_idr", "Investasi (Rp)", numeric=True),
            ColumnSpec("percentage", "Persentase (%)", numeric=True),
        ),
        filters=(
            FilterField("year", "year", "int", label="Tahun"),
            FilterField("years", "year", "in", options=False),
            FilterField("names", "name", "in", options=False),
        ),
        search_columns=("name",),
        order_by=(OrderKey("year", descending=True), OrderKey("rank")),
        page_size=10,
        year_column="year",
        fixed_filters=(("type", ranking_type),),
        grand_total_scope="filtered",
        export_prefix="lampiran_investasi",
    )


def _labor_ranking(name: str, title: str, ranking_type: int) -> DatasetSpec:
    return DatasetSpec(
        name=name,
        title=title,
        model=LaborRanking,
        columns=(
            ColumnSpec("rank", "Peringkat"),
            ColumnSpec("name", "Nama"),
            ColumnSpec("project_count", "Jumlah Proyek", numeric=True),
            ColumnSpec("labor_count", "Tenaga Kerja", numeric=True),
            ColumnSpec("percentage", "Persentase (%)", numeric=True),
        ),
        filters=(
            FilterField("year", "year", "int", label="Tahun"),
            FilterField("years", "year", "in", options=False),
            FilterField("names", "name", "in", options=False),
        ),
        search_columns=("name",),
        order_by=(OrderKey("year", descending=True), OrderKey("rank")),
        page_size=10,
        year_column="year",
        fixed_filters=(("type", ranking_type),),
        grand_total_scope="filtered",
        export_prefix="lampiran_tenaga_kerja",
    )


_DATASETS: tuple[DatasetSpec, ...] = (
    DatasetSpec(
        name="creative_economy",
        title="Creative economy companies",
        model=CreativeEconomyCompany,
        columns=(
            ColumnSpec("company_name", "Company"),
            ColumnSpec("nib", "NIB"),
            ColumnSpec("kbli_code", "KBLI"),
            ColumnSpec("subsector", "Subsector"),
            ColumnSpec("city", "City"),
            ColumnSpec("investment_amount", "Investment", numeric=True),
            ColumnSpec("workers_count", "Workers", numeric=True),
            ColumnSpec("status", "Status"),
            ColumnSpec("year", "Year"),
            ColumnSpec("period", "Period"),
        ),
        filters=(
            FilterField("subsector", "subsector"),
            FilterField("city", "city"),
            FilterField("status", "status"),
            FilterField("year", "year", "int"),
        ),
        search_columns=("company_name", "nib", "kbli_code"),
        order_by=(OrderKey("created_at", descending=True),),
        page_size=10,
        year_column="year",
        metrics=(
            MetricSpec("total_companies", "count"),
            MetricSpec("total_investment", "sum", column="investment_amount"),
            MetricSpec("total_workers", "sum", column="workers_count"),
            MetricSpec("pma_count", "count_where", where_column="status", equals="PMA"),
            MetricSpec("pmdn_count", "count_where", where_column="status", equals="PMDN"),
            MetricSpec("growth_rate", "growth", column="investment_amount"),
        ),
        importable=True,
        editable=True,
        required_import_field="company_name",
        import_aliases=(("nama_perusahaan", "company_name"), ("kota", "city"), ("tahun", "year")),
        refresh_procedure="refresh_summary_views",
    ),
    DatasetSpec(
        name="ekraf_analysis",
        title="Creative-economy investment realisation",
        model=EkrafInvestmentRecord,
        columns=(
            ColumnSpec("tahun", "Tahun"),
            ColumnSpec("nama_perusahaan", "Nama Perusahaan"),
            ColumnSpec("kabupaten_kota", "Kabupaten/Kota"),
            ColumnSpec("kbli_code", "KBLI"),
            ColumnSpec("subsektor", "Subsektor"),
            ColumnSpec("status_modal", "Status"),
            ColumnSpec("no_izin", "No. Izin"),
            ColumnSpec("tambahan_investasi_usd", "Investasi (USD)", numeric=True),
            ColumnSpec("tambahan_investasi_rp", "Investasi (Rp)", numeric=True),
            ColumnSpec("proyek", "Proyek", numeric=True),
            ColumnSpec("tki", "TKI", numeric=True),
            ColumnSpec("tka", "TKA", numeric=True),
            ColumnSpec("tk", "TK", numeric=True),
            ColumnSpec("periode", "Periode"),
        ),
        filters=(
            FilterField("tahun", "tahun", "int", label="Tahun"),
            FilterField("status_modal", "status_modal", label="Status"),
            FilterField("kabupaten_kota", "kabupaten_kota", label="Kabupaten/Kota"),
            FilterField("subsektor", "subsektor", label="Subsektor"),
            FilterField("sektor", "sektor", label="Sektor"),
            FilterField("periode", "periode", label="Periode"),
            FilterField("is_ekraf", "is_ekraf", "bool", label="Ekraf"),
            FilterField("is_pariwisata", "is_pariwisata", "bool", label="Pariwisata"),
        ),
        search_columns=("nama_perusahaan", "no_izin", "kbli_code"),
        order_by=(OrderKey("tahun", descending=True),),
        page_size=10,
        year_column="tahun",
        metrics=(
            MetricSpec("total_companies", "count"),
            MetricSpec("total_ekraf_companies", "count_where", where_column="is_ekraf", equals=True),
            MetricSpec("total_investment_usd", "sum", column="tambahan_investasi_usd"),
            MetricSpec("total_investment_rp", "sum", column="tambahan_investasi_rp"),
            MetricSpec("total_projects", "sum", column="proyek"),
            MetricSpec("total_tki", "sum", column="tki"),
            MetricSpec("total_tka", "sum", column="tka"),
            MetricSpec("total_tk", "sum", column="tk"),
            MetricSpec("pma_count", "count_where", where_column="status_modal", equals="PMA"),
            MetricSpec("pmdn_count", "count_where", where_column="status_modal", equals="PMDN"),
            MetricSpec(
                "ekraf_percentage",
                "ratio",
                numerator="total_ekraf_companies",
                denominator="total_companies",
            ),
        ),
        grand_total_scope="filtered",
        importable=True,
        editable=True,
        required_import_field="nama_perusahaan",
        import_aliases=(
            ("sektor_utama", "sektor"),
            ("kabkota", "kabupaten_kota"),
            ("kode_kbli", "kbli_code"),
            ("judul_kbli", "kbli_title"),
            ("status", "status_modal"),
        ),
        template_headers=_EKRAF_TEMPLATE_HEADERS,
        template_example=_EKRAF_TEMPLATE_EXAMPLE,
        export_prefix="analisis_ekraf",
    ),
    DatasetSpec(
        name="investment_analysis",
        title="Quarterly investment",
        model=InvestmentAnalysis,
        columns=(
            ColumnSpec("year", "Year"),
            ColumnSpec("quarter", "Quarter"),
            ColumnSpec("region", "Region"),
            ColumnSpec("sector", "Sector"),
            ColumnSpec("investment_amount", "Investment", numeric=True),
            ColumnSpec("investment_currency", "Currency"),
        ),
        filters=(
            *_YEAR_RANGE_FILTERS,
            FilterField("region", "region", "contains"),
            FilterField("sector", "sector"),
        ),
        search_columns=("region", "sector"),
        order_by=(OrderKey("year", descending=True), OrderKey("quarter")),
        page_size=10,
        year_column="year",
        metrics=(
            MetricSpec("total_investment", "sum", column="investment_amount"),
            MetricSpec("record_count", "count"),
            MetricSpec("region_count", "count_distinct", column="region"),
        ),
        importable=True,
        required_import_field="year",
    ),
    DatasetSpec(
        name="workforce_analysis",
        title="Quarterly workforce",
        model=WorkforceAnalysis,
        columns=(
            ColumnSpec("year", "Year"),
            ColumnSpec("quarter", "Quarter"),
            ColumnSpec("region", "Region"),
            ColumnSpec("region_type", "Region type"),
            ColumnSpec("worker_count", "Workers", numeric=True),
        ),
        filters=(
            *_YEAR_RANGE_FILTERS,
            FilterField("regions", "region", "in", label="Regions"),
            FilterField("region_type", "region_type"),
        ),
        search_columns=("region",),
        order_by=(OrderKey("year", descending=True), OrderKey("quarter")),
        page_size=10,
        year_column="year",
        metrics=(
            MetricSpec("total_workers", "sum", column="worker_count"),
            MetricSpec("record_count", "count"),
            MetricSpec("region_count", "count_distinct", column="region"),
        ),
        importable=True,
        required_import_field="year",
    ),
    DatasetSpec(
        name="regional_analysis",
        title="Regional projects and workforce",
        model=RegionalAnalysis,
        columns=(
            ColumnSpec("year", "Year"),
            ColumnSpec("region", "Region"),
            ColumnSpec("status", "Status"),
            ColumnSpec("project_count", "Projects", numeric=True),
            ColumnSpec("worker_count", "Workers", numeric=True),
            ColumnSpec("investment_amount", "Investment", numeric=True),
        ),
        filters=(
            FilterField("year", "year", "int"),
            FilterField("region", "region", "contains", options=True),
            FilterField("status", "status"),
            FilterField("data_type", "data_type"),
        ),
        search_columns=("region",),
        order_by=(OrderKey("year", descending=True), OrderKey("region"), OrderKey("status")),
        page_size=20,
        year_column="year",
        metrics=(
            MetricSpec("total_projects", "sum_where", column="project_count", where_column="status", equals="Total"),
            MetricSpec("pma_projects", "sum_where", column="project_count", where_column="status", equals="PMA"),
            MetricSpec("pmdn_projects", "sum_where", column="project_count", where_column="status", equals="PMDN"),
            MetricSpec("total_workers", "sum_where", column="worker_count", where_column="status", equals="Total"),
            MetricSpec("pma_workers", "sum_where", column="worker_count", where_column="status", equals="PMA"),
            MetricSpec("pmdn_workers", "sum_where", column="worker_count", where_column="status", equals="PMDN"),
            MetricSpec("region_count", "count_distinct", column="region"),
        ),
        importable=True,
        required_import_field="region",
    ),
    DatasetSpec(
        name="ranking_analysis",
        title="Regional ranking",
        model=RankingAnalysis,
        columns=(
            ColumnSpec("rank", "Rank"),
            ColumnSpec("region", "Region"),
            ColumnSpec("status", "Category"),
            ColumnSpec("project_count", "Projects", numeric=True),
            ColumnSpec("investment_usd", "Investment (USD)", numeric=True),
            ColumnSpec("investment_idr", "Investment (IDR)", numeric=True),
            ColumnSpec("worker_count", "Workers", numeric=True),
        ),
        filters=(
            FilterField("year", "year", "int"),
            FilterField("status", "status"),
            FilterField("region", "region", "contains", options=False),
        ),
        search_columns=("region",),
        order_by=(OrderKey("year", descending=True), OrderKey("rank")),
        page_size=20,
        year_column="year",
        export_prefix="analisis_peringkat",
    ),
    _attachment_ranking("attachment_region", "Investment by region", RANKING_TYPE_REGION),
    _attachment_ranking("attachment_subsector", "Investment by subsector", RANKING_TYPE_SUBSECTOR),
    _labor_ranking("labor_region", "Workforce by region", RANKING_TYPE_REGION),
    _labor_ranking("labor_subsector", "Workforce by subsector", RANKING_TYPE_SUBSECTOR),
    DatasetSpec(
        name="investment_realization",
        title="Investment realisation ranking",
        model=InvestmentRealizationRanking,
        columns=(
            ColumnSpec("rank", "Rank"),
            ColumnSpec("regency_city", "Regency/City"),
            ColumnSpec("investment_amount", "Investment", numeric=True),
            ColumnSpec("investment_currency", "Currency"),
            ColumnSpec("percentage", "Share (%)", numeric=True),
        ),
        filters=(
            FilterField("year", "year", "int"),
            FilterField("type", "type", "int", label="Dimension"),
            FilterField("category", "category"),
        ),
        search_columns=("regency_city",),
        order_by=(OrderKey("year", descending=True), OrderKey("rank")),
        page_size=15,
        year_column="year",
        grand_total_scope="filtered",
    ),
    DatasetSpec(
        name="patent_registration",
        title="Patent registrations",
        model=PatentRegistration,
        columns=(
            ColumnSpec("region", "Region"),
            *(ColumnSpec(f"patents_{year}", str(year), numeric=True) for year in PATENT_YEARS),
            ColumnSpec("total_patents", "Total", numeric=True),
        ),
        search_columns=("region",),
        order_by=(OrderKey("total_patents", descending=True), OrderKey("region")),
        page_size=10,
        fixed_years=tuple(sorted(PATENT_YEARS, reverse=True)),
        metrics=(
            *(MetricSpec(f"total_{year}", "sum", column=f"patents_{year}") for year in PATENT_YEARS),
            MetricSpec("grand_total", "sum", column="total_patents"),
            MetricSpec("total_regions", "count"),
        ),
        grand_total_scope="filtered",
        importable=True,
        editable=True,
        required_import_field="region",
    ),
    DatasetSpec(
        name="pdki_trademarks",
        title="Trademark filings (PDKI)",
        model=TrademarkFiling,
        columns=(
            ColumnSpec("nomor_permohonan", "Nomor Permohonan"),
            ColumnSpec("tanggal_permohonan", "Tanggal Permohonan"),
            ColumnSpec("nama_merek", "Nama Merek"),
            ColumnSpec("nama_pemilik_tm", "Pemilik"),
            ColumnSpec("kabupaten_kota", "Kabupaten/Kota"),
            ColumnSpec("status_permohonan", "Status"),
            ColumnSpec("extract_tahun_pengumuman", "Tahun Pengumuman"),
        ),
        filters=(
            FilterField("tahun", "extract_tahun_pengumuman", "int", label="Tahun"),
            FilterField("kabupaten_kota", "kabupaten_kota", label="Kabupaten/Kota"),
            FilterField("status_permohonan", "status_permohonan", label="Status"),
        ),
        search_columns=("nomor_permohonan", "nama_merek", "nama_pemilik_tm", "alamat_pemilik_tm"),
        order_by=(OrderKey("tanggal_permohonan", descending=True),),
        page_size=10,
        year_column="extract_tahun_pengumuman",
        metrics=(
            MetricSpec("total_filings", "count"),
            MetricSpec("total_owners", "count_distinct", column="nama_pemilik_tm"),
            MetricSpec("total_regions", "count_distinct", column="kabupaten_kota"),
        ),
        importable=True,
        required_import_field="nama_merek",
        export_prefix="pdki_jabar",
    ),
)

DATASETS: dict[str, DatasetSpec] = {spec.name: spec for spec in _DATASETS}


def get_dataset(name: str) -> DatasetSpec:
    """Look up a dataset by name; raises UnknownDatasetError if unregistered."""
    try:
        return DATASETS[name]
    except KeyError as exc:
        raise UnknownDatasetError(
            f"Unknown dataset {name!r}. Must be one of: {sorted(DATASETS)}."
        ) from exc


def list_datasets() -> list[DatasetSpec]:
    return list(_DATASETS)
