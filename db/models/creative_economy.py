"""
db/models/creative_economy.py

Company-level creative-economy records and the main investment record table
used by the import panel.
"""

from sqlalchemy import Boolean, CheckConstraint, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, IdMixin, TimestampMixin

CAPITAL_STATUSES: tuple[str, ...] = ("PMA", "PMDN")


class CreativeEconomyCompany(Base, IdMixin, TimestampMixin):
    """
    One registered creative-economy company with its investment and workforce.
    """

    __tablename__ = "creative_economy_data"
    __table_args__ = (
        CheckConstraint("status IN ('PMA', 'PMDN')", name="ck_creative_economy_status"),
        CheckConstraint("year > 0", name="ck_creative_economy_year_positive"),
        CheckConstraint("investment_amount >= 0", name="ck_creative_economy_investment"),
        Index("ix_creative_economy_year_status", "year", "status"),
    )

    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    nib: Mapped[str | None] = mapped_column(String(64), nullable=True, comment="Business registration number")
    kbli_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    kbli_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    subsector: Mapped[str | None] = mapped_column(String(120), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    regency: Mapped[str | None] = mapped_column(String(120), nullable=True)
    investment_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    investment_currency: Mapped[str] = mapped_column(String(8), nullable=False, default="IDR")
    workers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(8), nullable=False, comment="PMA | PMDN")
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    period: Mapped[str | None] = mapped_column(String(32), nullable=True, comment="Quarter or semester label")


class EkrafInvestmentRecord(Base, IdMixin, TimestampMixin):
    """
    One project-level investment realisation row (the bulk-import target).

    Worker counts: tki = domestic, tka = foreign, tk = total.
    """

    __tablename__ = "ekraf_analysis_data"
    __table_args__ = (
        CheckConstraint("status_modal IN ('PMA', 'PMDN')", name="ck_ekraf_status_modal"),
        CheckConstraint("tahun > 0", name="ck_ekraf_tahun_positive"),
        CheckConstraint("tambahan_investasi_usd >= 0", name="ck_ekraf_investasi_usd"),
        CheckConstraint("tambahan_investasi_rp >= 0", name="ck_ekraf_investasi_rp"),
        Index("ix_ekraf_tahun_status", "tahun", "status_modal"),
        Index("ix_ekraf_kabupaten_kota", "kabupaten_kota"),
    )

    tahap: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tahun: Mapped[int] = mapped_column(Integer, nullable=False)
    sektor: Mapped[str | None] = mapped_column(String(120), nullable=True)
    sektor_24: Mapped[str | None] = mapped_column(String(255), nullable=True)
    nama_perusahaan: Mapped[str] = mapped_column(String(255), nullable=False)
    kabupaten_kota: Mapped[str | None] = mapped_column(String(120), nullable=True)
    bidang_usaha: Mapped[str | None] = mapped_column(Text, nullable=True)
    kbli_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    kbli_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_ekraf: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    subsektor: Mapped[str | None] = mapped_column(String(120), nullable=True)
    is_pariwisata: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    subsektor_pariwisata: Mapped[str | None] = mapped_column(String(120), nullable=True)
    negara: Mapped[str | None] = mapped_column(String(120), nullable=True)
    no_izin: Mapped[str | None] = mapped_column(String(64), nullable=True, comment="Permit number")
    tambahan_investasi_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    tambahan_investasi_rp: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    proyek: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tki: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tka: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tk: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status_modal: Mapped[str] = mapped_column(String(8), nullable=False, comment="PMA | PMDN")
    periode: Mapped[str | None] = mapped_column(String(32), nullable=True)
    semester: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sektor_23: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sektor_17: Mapped[str | None] = mapped_column(String(255), nullable=True)
