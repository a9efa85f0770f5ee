"""
db/models/intellectual_property.py

Patent registration counts per region and PDKI trademark filings.
"""

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, IdMixin, TimestampMixin

PATENT_YEARS: tuple[int, ...] = (2020, 2021, 2022, 2023, 2024, 2025)


class PatentRegistration(Base, IdMixin, TimestampMixin):
    """Wide-form patent counts, one column per registration year."""

    __tablename__ = "patent_registration_data"

    region: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    patents_2020: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    patents_2021: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    patents_2022: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    patents_2023: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    patents_2024: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    patents_2025: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_patents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class TrademarkFiling(Base, IdMixin, TimestampMixin):
    """
    One trademark application mirrored from the PDKI register.

    Dates are kept as the register prints them (free-form text); only the
    announcement year is extracted into an integer column for filtering.
    """

    __tablename__ = "pdki_jabar_data"
    __table_args__ = (
        Index("ix_pdki_tahun_pengumuman", "extract_tahun_pengumuman"),
        Index("ix_pdki_kabupaten_kota", "kabupaten_kota"),
    )

    id_permohonan: Mapped[str | None] = mapped_column(String(64), nullable=True)
    nomor_permohonan: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tanggal_permohonan: Mapped[str | None] = mapped_column(String(32), nullable=True)
    nomor_pengumuman: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tanggal_pengumuman: Mapped[str | None] = mapped_column(String(32), nullable=True)
    extract_tahun_pengumuman: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tanggal_dimulai_perlindungan: Mapped[str | None] = mapped_column(String(32), nullable=True)
    tanggal_berakhir_perlindungan: Mapped[str | None] = mapped_column(String(32), nullable=True)
    nomor_pendaftaran: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tanggal_pendaftaran: Mapped[str | None] = mapped_column(String(32), nullable=True)
    translasi: Mapped[str | None] = mapped_column(Text, nullable=True)
    nama_merek: Mapped[str] = mapped_column(String(255), nullable=False)
    status_permohonan: Mapped[str | None] = mapped_column(String(120), nullable=True)
    nama_pemilik_tm: Mapped[str | None] = mapped_column(String(255), nullable=True)
    alamat_pemilik_tm: Mapped[str | None] = mapped_column(Text, nullable=True)
    kabupaten_kota: Mapped[str | None] = mapped_column(String(120), nullable=True)
    negara_asal: Mapped[str | None] = mapped_column(String(120), nullable=True)
    kode_negara: Mapped[str | None] = mapped_column(String(8), nullable=True)
    nama_konsultan: Mapped[str | None] = mapped_column(String(255), nullable=True)
    alamat_konsultan: Mapped[str | None] = mapped_column(Text, nullable=True)
    provinsi: Mapped[str | None] = mapped_column(String(120), nullable=True)
    deskripsi_kelas: Mapped[str | None] = mapped_column(Text, nullable=True)
    detail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
