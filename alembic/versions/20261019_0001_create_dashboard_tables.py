"""create dashboard tables, summary views and ranking / pivot functions

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

PIVOT_YEARS = (2020, 2021, 2022, 2023, 2024, 2025)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _id() -> sa.Column:
    return sa.Column("id", sa.Integer(), autoincrement=True, nullable=False)


def _create_tables() -> None:
    op.create_table(
        "creative_economy_data",
        _id(),
        sa.Column("company_name", sa.String(length=255), nullable=False),
        sa.Column("nib", sa.String(length=64), nullable=True),
        sa.Column("kbli_code", sa.String(length=16), nullable=True),
        sa.Column("kbli_title", sa.Text(), nullable=True),
        sa.Column("subsector", sa.String(length=120), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("regency", sa.String(length=120), nullable=True),
        sa.Column("investment_amount", sa.Float(), nullable=False),
        sa.Column("investment_currency", sa.String(length=8), nullable=False),
        sa.Column("workers_count", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=8), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("period", sa.String(length=32), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status IN ('PMA', 'PMDN')", name="ck_creative_economy_status"),
        sa.CheckConstraint("year > 0", name="ck_creative_economy_year_positive"),
        sa.CheckConstraint("investment_amount >= 0", name="ck_creative_economy_investment"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_creative_economy_year_status", "creative_economy_data", ["year", "status"])

    op.create_table(
        "ekraf_analysis_data",
        _id(),
        sa.Column("tahap", sa.String(length=64), nullable=True),
        sa.Column("tahun", sa.Integer(), nullable=False),
        sa.Column("sektor", sa.String(length=120), nullable=True),
        sa.Column("sektor_24", sa.String(length=255), nullable=True),
        sa.Column("nama_perusahaan", sa.String(length=255), nullable=False),
        sa.Column("kabupaten_kota", sa.String(length=120), nullable=True),
        sa.Column("bidang_usaha", sa.Text(), nullable=True),
        sa.Column("kbli_code", sa.String(length=16), nullable=True),
        sa.Column("kbli_title", sa.Text(), nullable=True),
        sa.Column("is_ekraf", sa.Boolean(), nullable=False),
        sa.Column("subsektor", sa.String(length=120), nullable=True),
        sa.Column("is_pariwisata", sa.Boolean(), nullable=False),
        sa.Column("subsektor_pariwisata", sa.String(length=120), nullable=True),
        sa.Column("negara", sa.String(length=120), nullable=True),
        sa.Column("no_izin", sa.String(length=64), nullable=True),
        sa.Column("tambahan_investasi_usd", sa.Float(), nullable=False),
        sa.Column("tambahan_investasi_rp", sa.Float(), nullable=False),
        sa.Column("proyek", sa.Integer(), nullable=False),
        sa.Column("tki", sa.Integer(), nullable=False),
        sa.Column("tka", sa.Integer(), nullable=False),
        sa.Column("tk", sa.Integer(), nullable=False),
        sa.Column("status_modal", sa.String(length=8), nullable=False),
        sa.Column("periode", sa.String(length=32), nullable=True),
        sa.Column("semester", sa.String(length=32), nullable=True),
        sa.Column("sektor_23", sa.String(length=255), nullable=True),
        sa.Column("sektor_17", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status_modal IN ('PMA', 'PMDN')", name="ck_ekraf_status_modal"),
        sa.CheckConstraint("tahun > 0", name="ck_ekraf_tahun_positive"),
        sa.CheckConstraint("tambahan_investasi_usd >= 0", name="ck_ekraf_investasi_usd"),
        sa.CheckConstraint("tambahan_investasi_rp >= 0", name="ck_ekraf_investasi_rp"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ekraf_tahun_status", "ekraf_analysis_data", ["tahun", "status_modal"])
    op.create_index("ix_ekraf_kabupaten_kota", "ekraf_analysis_data", ["kabupaten_kota"])

    op.create_table(
        "investment_analysis_data",
        _id(),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("quarter", sa.String(length=8), nullable=False),
        sa.Column("investment_amount", sa.Float(), nullable=False),
        sa.Column("investment_currency", sa.String(length=8), nullable=False),
        sa.Column("region", sa.String(length=120), nullable=True),
        sa.Column("sector", sa.String(length=120), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("year > 0", name="ck_investment_analysis_year"),
        sa.CheckConstraint("investment_amount >= 0", name="ck_investment_analysis_amount"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_investment_analysis_year_quarter", "investment_analysis_data", ["year", "quarter"])

    op.create_table(
        "workforce_analysis_data",
        _id(),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("quarter", sa.String(length=8), nullable=False),
        sa.Column("region", sa.String(length=120), nullable=True),
        sa.Column("worker_count", sa.Integer(), nullable=False),
        sa.Column("region_type", sa.String(length=32), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("year > 0", name="ck_workforce_analysis_year"),
        sa.CheckConstraint("worker_count >= 0", name="ck_workforce_analysis_workers"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workforce_analysis_year_quarter", "workforce_analysis_data", ["year", "quarter"])

    op.create_table(
        "regional_analysis_data",
        _id(),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("region", sa.String(length=120), nullable=False),
        sa.Column("status", sa.String(length=8), nullable=False),
        sa.Column("project_count", sa.Integer(), nullable=False),
        sa.Column("worker_count", sa.Integer(), nullable=False),
        sa.Column("investment_amount", sa.Float(), nullable=False),
        sa.Column("data_type", sa.String(length=32), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status IN ('PMA', 'PMDN', 'Total')", name="ck_regional_analysis_status"),
        sa.CheckConstraint("year > 0", name="ck_regional_analysis_year"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_regional_analysis_region_year", "regional_analysis_data", ["region", "year"])

    op.create_table(
        "ranking_analysis_data",
        _id(),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("region", sa.String(length=120), nullable=False),
        sa.Column("project_count", sa.Integer(), nullable=False),
        sa.Column("investment_usd", sa.Float(), nullable=False),
        sa.Column("investment_idr", sa.Float(), nullable=False),
        sa.Column("worker_count", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('All', 'Workforce', 'Projects', 'PMA', 'PMDN')",
            name="ck_ranking_analysis_status",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ranking_analysis_year_rank", "ranking_analysis_data", ["year", "rank"])

    op.create_table(
        "investment_attachment_ranking",
        _id(),
        sa.Column("type", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("project_count", sa.Integer(), nullable=False),
        sa.Column("investment_usd", sa.Float(), nullable=False),
        sa.Column("investment_idr", sa.Float(), nullable=False),
        sa.Column("percentage", sa.Float(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("type IN (1, 2)", name="ck_investment_attachment_type"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_investment_attachment_type_year", "investment_attachment_ranking", ["type", "year"])

    op.create_table(
        "labor_ranking",
        _id(),
        sa.Column("type", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("project_count", sa.Integer(), nullable=False),
        sa.Column("labor_count", sa.Integer(), nullable=False),
        sa.Column("percentage", sa.Float(), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("type IN (1, 2)", name="ck_labor_ranking_type"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_labor_ranking_type_year", "labor_ranking", ["type", "year"])

    op.create_table(
        "investment_realization_ranking",
        _id(),
        sa.Column("type", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("regency_city", sa.String(length=120), nullable=False),
        sa.Column("investment_amount", sa.Float(), nullable=False),
        sa.Column("investment_currency", sa.String(length=8), nullable=False),
        sa.Column("percentage", sa.Float(), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("investment_amount >= 0", name="ck_investment_realization_amount"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_investment_realization_type_year",
        "investment_realization_ranking",
        ["type", "year"],
    )

    op.create_table(
        "patent_registration_data",
        _id(),
        sa.Column("region", sa.String(length=120), nullable=False),
        *[sa.Column(f"patents_{year}", sa.Integer(), nullable=False) for year in PIVOT_YEARS],
        sa.Column("total_patents", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("region", name="uq_patent_registration_region"),
    )

    op.create_table(
        "pdki_jabar_data",
        _id(),
        sa.Column("id_permohonan", sa.String(length=64), nullable=True),
        sa.Column("nomor_permohonan", sa.String(length=64), nullable=True),
        sa.Column("tanggal_permohonan", sa.String(length=32), nullable=True),
        sa.Column("nomor_pengumuman", sa.String(length=64), nullable=True),
        sa.Column("tanggal_pengumuman", sa.String(length=32), nullable=True),
        sa.Column("extract_tahun_pengumuman", sa.Integer(), nullable=True),
        sa.Column("tanggal_dimulai_perlindungan", sa.String(length=32), nullable=True),
        sa.Column("tanggal_berakhir_perlindungan", sa.String(length=32), nullable=True),
        sa.Column("nomor_pendaftaran", sa.String(length=64), nullable=True),
        sa.Column("tanggal_pendaftaran", sa.String(length=32), nullable=True),
        sa.Column("translasi", sa.Text(), nullable=True),
        sa.Column("nama_merek", sa.String(length=255), nullable=False),
        sa.Column("status_permohonan", sa.String(length=120), nullable=True),
        sa.Column("nama_pemilik_tm", sa.String(length=255), nullable=True),
        sa.Column("alamat_pemilik_tm", sa.Text(), nullable=True),
        sa.Column("kabupaten_kota", sa.String(length=120), nullable=True),
        sa.Column("negara_asal", sa.String(length=120), nullable=True),
        sa.Column("kode_negara", sa.String(length=8), nullable=True),
        sa.Column("nama_konsultan", sa.String(length=255), nullable=True),
        sa.Column("alamat_konsultan", sa.Text(), nullable=True),
        sa.Column("provinsi", sa.String(length=120), nullable=True),
        sa.Column("deskripsi_kelas", sa.Text(), nullable=True),
        sa.Column("detail_url", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_pdki_tahun_pengumuman", "pdki_jabar_data", ["extract_tahun_pengumuman"])
    op.create_index("ix_pdki_kabupaten_kota", "pdki_jabar_data", ["kabupaten_kota"])


def _create_views() -> None:
    op.execute(
        """
        CREATE MATERIALIZED VIEW mv_ekraf_summary AS
        SELECT tahun,
               status_modal,
               kabupaten_kota,
               COUNT(*)                    AS record_count,
               SUM(proyek)                 AS project_count,
               SUM(tk)                     AS worker_count,
               SUM(tambahan_investasi_usd) AS investment_usd,
               SUM(tambahan_investasi_rp)  AS investment_idr
        FROM ekraf_analysis_data
        GROUP BY tahun, status_modal, kabupaten_kota
        """
    )
    op.execute(
        """
        CREATE MATERIALIZED VIEW mv_creative_economy_summary AS
        SELECT year,
               status,
               subsector,
               COUNT(*)               AS company_count,
               SUM(investment_amount) AS investment_amount,
               SUM(workers_count)     AS workers_count
        FROM creative_economy_data
        GROUP BY year, status, subsector
        """
    )


def _create_functions() -> None:
    op.execute(
        """
        CREATE OR REPLACE FUNCTION calculate_investment_ranking(target_year integer)
        RETURNS TABLE (
            rank integer,
            kabupaten_kota text,
            project_count bigint,
            investment_usd double precision,
            investment_idr double precision,
            worker_count bigint,
            percentage double precision
        )
        LANGUAGE sql STABLE AS $$
            WITH totals AS (
                SELECT e.kabupaten_kota::text          AS kabupaten_kota,
                       SUM(e.proyek)::bigint           AS project_count,
                       SUM(e.tambahan_investasi_usd)   AS investment_usd,
                       SUM(e.tambahan_investasi_rp)    AS investment_idr,
                       SUM(e.tk)::bigint               AS worker_count
                FROM ekraf_analysis_data e
                WHERE e.tahun = target_year AND e.kabupaten_kota IS NOT NULL
                GROUP BY e.kabupaten_kota
            )
            SELECT RANK() OVER (ORDER BY t.investment_idr DESC)::integer,
                   t.kabupaten_kota,
                   t.project_count,
                   t.investment_usd,
                   t.investment_idr,
                   t.worker_count,
                   COALESCE(t.investment_idr * 100.0 / NULLIF(SUM(t.investment_idr) OVER (), 0), 0)
            FROM totals t
            ORDER BY 1
        $$
        """
    )
    op.execute(
        """
        CREATE OR REPLACE FUNCTION calculate_workforce_ranking(target_year integer)
        RETURNS TABLE (
            rank integer,
            kabupaten_kota text,
            project_count bigint,
            investment_usd double precision,
            investment_idr double precision,
            worker_count bigint,
            percentage double precision
        )
        LANGUAGE sql STABLE AS $$
            WITH totals AS (
                SELECT e.kabupaten_kota::text          AS kabupaten_kota,
                       SUM(e.proyek)::bigint           AS project_count,
                       SUM(e.tambahan_investasi_usd)   AS investment_usd,
                       SUM(e.tambahan_investasi_rp)    AS investment_idr,
                       SUM(e.tk)::bigint               AS worker_count
                FROM ekraf_analysis_data e
                WHERE e.tahun = target_year AND e.kabupaten_kota IS NOT NULL
                GROUP BY e.kabupaten_kota
            )
            SELECT RANK() OVER (ORDER BY t.worker_count DESC)::integer,
                   t.kabupaten_kota,
                   t.project_count,
                   t.investment_usd,
                   t.investment_idr,
                   t.worker_count,
                   COALESCE(t.worker_count * 100.0 / NULLIF(SUM(t.worker_count) OVER (), 0), 0)
            FROM totals t
            ORDER BY 1
        $$
        """
    )
    op.execute(
        """
        CREATE OR REPLACE FUNCTION calculate_subsector_ranking(target_year integer, ranking_type text)
        RETURNS TABLE (
            rank integer,
            subsektor text,
            project_count bigint,
            investment_usd double precision,
            investment_idr double precision,
            worker_count bigint,
            percentage double precision
        )
        LANGUAGE sql STABLE AS $$
            WITH totals AS (
                SELECT e.subsektor::text               AS subsektor,
                       SUM(e.proyek)::bigint           AS project_count,
                       SUM(e.tambahan_investasi_usd)   AS investment_usd,
                       SUM(e.tambahan_investasi_rp)    AS investment_idr,
                       SUM(e.tk)::bigint               AS worker_count
                FROM ekraf_analysis_data e
                WHERE e.tahun = target_year AND e.subsektor IS NOT NULL
                GROUP BY e.subsektor
            ),
            scored AS (
                SELECT t.*,
                       CASE WHEN ranking_type = 'workforce'
                            THEN t.worker_count::double precision
                            ELSE t.investment_idr END AS score
                FROM totals t
            )
            SELECT RANK() OVER (ORDER BY s.score DESC)::integer,
                   s.subsektor,
                   s.project_count,
                   s.investment_usd,
                   s.investment_idr,
                   s.worker_count,
                   COALESCE(s.score * 100.0 / NULLIF(SUM(s.score) OVER (), 0), 0)
            FROM scored s
            ORDER BY 1
        $$
        """
    )

    for name, column in (("get_regional_project_pivot", "proyek"), ("get_regional_workforce_pivot", "tk")):
        year_columns = ",\n            ".join(f"year_{year} bigint" for year in PIVOT_YEARS)
        year_sums = ",\n                   ".join(
            f"COALESCE(SUM({column}) FILTER (WHERE tahun = {year}), 0)::bigint" for year in PIVOT_YEARS
        )
        op.execute(
            f"""
            CREATE OR REPLACE FUNCTION {name}()
            RETURNS TABLE (
                kabupaten_kota text,
                status_modal text,
                {year_columns},
                grand_total bigint
            )
            LANGUAGE sql STABLE AS $$
                SELECT e.kabupaten_kota::text,
                       e.status_modal::text,
                       {year_sums},
                       COALESCE(SUM({column}), 0)::bigint
                FROM ekraf_analysis_data e
                WHERE e.kabupaten_kota IS NOT NULL
                GROUP BY e.kabupaten_kota, e.status_modal
                ORDER BY e.kabupaten_kota, e.status_modal
            $$
            """
        )

    op.execute(
        """
        CREATE OR REPLACE FUNCTION refresh_summary_views()
        RETURNS void
        LANGUAGE plpgsql AS $$
        BEGIN
            REFRESH MATERIALIZED VIEW mv_creative_economy_summary;
        END
        $$
        """
    )
    op.execute(
        """
        CREATE OR REPLACE FUNCTION refresh_all_views()
        RETURNS void
        LANGUAGE plpgsql AS $$
        BEGIN
            REFRESH MATERIALIZED VIEW mv_ekraf_summary;
            REFRESH MATERIALIZED VIEW mv_creative_economy_summary;
        END
        $$
        """
    )


def upgrade() -> None:
    _create_tables()
    _create_views()
    _create_functions()


def downgrade() -> None:
    for name in (
        "refresh_all_views()",
        "refresh_summary_views()",
        "get_regional_workforce_pivot()",
        "get_regional_project_pivot()",
        "calculate_subsector_ranking(integer, text)",
        "calculate_workforce_ranking(integer)",
        "calculate_investment_ranking(integer)",
    ):
        op.execute(f"DROP FUNCTION IF EXISTS {name}")
    op.execute("DROP MATERIALIZED VIEW IF EXISTS mv_creative_economy_summary")
    op.execute("DROP MATERIALIZED VIEW IF EXISTS mv_ekraf_summary")

    for table in (
        "pdki_jabar_data",
        "patent_registration_data",
        "investment_realization_ranking",
        "labor_ranking",
        "investment_attachment_ranking",
        "ranking_analysis_data",
        "regional_analysis_data",
        "workforce_analysis_data",
        "investment_analysis_data",
        "ekraf_analysis_data",
        "creative_economy_data",
    ):
        op.drop_table(table)
