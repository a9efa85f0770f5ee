"""
tests/test_import_service.py

Pytest unit tests for app/services/import_service.py.

Coverage
--------
- CSV with quoted fields, embedded commas and a UTF-8 BOM
- header normalisation and dataset aliases
- missing required column rejects the file
- skip policy: N valid + M invalid rows -> N inserted, M reported by row number
- strict policy: any invalid row rejects the file, nothing written
- batch k rejected: batches 1..k-1 stay, summary carries the error
- progress callback sequence
- .xlsx upload read through pandas/openpyxl
- unsupported extensions and template generation
"""

from __future__ import annotations

import io

import pandas as pd
import pytest

from app.domain.dataset_registry import get_dataset
from app.services.import_service import (
    ImportFileError,
    ImportService,
    ImportValidationError,
    normalize_header,
    resolve_headers,
)
from app.services.query_service import DatasetQueryService
from db.repositories.errors import BulkInsertError

HEADER = "tahun,nama_perusahaan,kabkota,status,tambahan_investasi_rp,proyek\n"


def _csv(*lines: str) -> bytes:
    return (HEADER + "".join(f"{line}\n" for line in lines)).encode("utf-8")


class _RecordingQueryService:
    """Accepts batches until `fail_on_batch`, which is rejected."""

    def __init__(self, fail_on_batch: int | None = None) -> None:
        self.fail_on_batch = fail_on_batch
        self.batches: list[list[dict]] = []
        self.refreshed = 0

    def bulk_insert(self, db, spec, records, *, refresh=True, batch_number=None):
        if self.fail_on_batch is not None and len(self.batches) + 1 == self.fail_on_batch:
            raise BulkInsertError(
                "duplicate key value violates unique constraint", batch_number=batch_number
            )
        self.batches.append(list(records))
        return list(records)

    def refresh_aggregates(self, db, spec):
        self.refreshed += 1
        return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def spec():
    return get_dataset("ekraf_analysis")


@pytest.fixture()
def query_service() -> DatasetQueryService:
    return DatasetQueryService(refresh_views=False)


@pytest.fixture()
def service(query_service) -> ImportService:
    return ImportService(query_service=query_service, batch_size=2, policy="skip")


# ---------------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------------


class TestHeaders:
    def test_normalize_header(self):
        assert normalize_header(" Nama Perusahaan ") == "namaperusahaan"
        assert normalize_header("Kab/Kota") == "kabkota"

    def test_aliases_map_to_columns(self, spec):
        mapping = resolve_headers(spec, ["Tahun", "Nama_Perusahaan", "kabkota", "Status", "catatan"])
        assert mapping == {
            "Tahun": "tahun",
            "Nama_Perusahaan": "nama_perusahaan",
            "kabkota": "kabupaten_kota",
            "Status": "status_modal",
        }

    def test_duplicate_header_first_wins(self, spec):
        mapping = resolve_headers(spec, ["nama_perusahaan", "Nama Perusahaan"])
        assert mapping == {"nama_perusahaan": "nama_perusahaan"}

    def test_missing_required_column(self, spec):
        with pytest.raises(ImportFileError, match="nama_perusahaan"):
            resolve_headers(spec, ["tahun", "status"])


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


class TestReadRows:
    def test_quoted_fields(self, service):
        content = (
            '\ufeffnama_perusahaan,bidang_usaha\n'
            '"PT Satu, Tbk","Film ""indie""\nanimasi"\n'
        ).encode("utf-8")
        headers, rows = service.read_rows(filename="data.csv", content=content)
        assert headers == ["nama_perusahaan", "bidang_usaha"]
        assert rows == [{"nama_perusahaan": "PT Satu, Tbk", "bidang_usaha": 'Film "indie"\nanimasi'}]

    def test_xlsx(self, service):
        frame = pd.DataFrame([{"nama_perusahaan": "PT Excel", "tahun": "2024"}])
        buf = io.BytesIO()
        frame.to_excel(buf, index=False, engine="openpyxl")
        headers, rows = service.read_rows(filename="DATA.XLSX", content=buf.getvalue())
        assert headers == ["nama_perusahaan", "tahun"]
        assert rows == [{"nama_perusahaan": "PT Excel", "tahun": "2024"}]

    def test_corrupt_xlsx(self, service):
        with pytest.raises(ImportFileError, match="Excel"):
            service.read_rows(filename="data.xlsx", content=b"not a workbook")

    def test_unsupported_extension(self, service):
        with pytest.raises(ImportFileError, match="Unsupported"):
            service.read_rows(filename="data.xls", content=b"")

    def test_non_utf8_csv(self, service):
        with pytest.raises(ImportFileError, match="UTF-8"):
            service.read_rows(filename="data.csv", content="nama\n\xe9\n".encode("latin-1"))


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestPrepareRecords:
    def test_row_numbers_count_header(self, service, spec):
        headers = ["tahun", "nama_perusahaan", "status"]
        rows = [
            {"tahun": "2024", "nama_perusahaan": "PT A", "status": "PMA"},
            {"tahun": "2024", "nama_perusahaan": "", "status": "PMA"},
            {"tahun": "dua ribu", "nama_perusahaan": "PT C", "status": "PMA"},
            {"tahun": "", "nama_perusahaan": "", "status": ""},
            {"tahun": "2024", "nama_perusahaan": "PT E", "status": ""},
        ]
        records, issues = service.prepare_records(spec, headers, rows)
        assert records == [{"tahun": 2024, "nama_perusahaan": "PT A", "status_modal": "PMA"}]
        assert [(issue.row_number, issue.column) for issue in issues] == [
            (3, "nama_perusahaan"),
            (4, "tahun"),
            (5, None),
            (6, "status_modal"),
        ]


# ---------------------------------------------------------------------------
# Import runs
# ---------------------------------------------------------------------------


class TestImportFile:
    def test_skip_policy_inserts_valid_rows(self, service, spec, query_service, db):
        content = _csv(
            "2024,PT A,Bandung,PMA,1000,1",
            "2024,,Bandung,PMA,1000,1",
            "2024,PT C,Bogor,PMDN,abc,1",
            "2023,PT D,Bekasi,PMDN,2500,2",
            '2023,"PT E, Tbk",Depok,PMA,10,1',
        )
        summary = service.import_file(db, spec, filename="data.csv", content=content)

        assert summary.status == "success"
        assert summary.rows_total == 5
        assert summary.rows_valid == 3
        assert summary.rows_inserted == 3
        assert summary.rows_skipped == 2
        assert summary.batches_committed == 2
        assert [issue.row_number for issue in summary.skipped_rows] == [3, 4]

        stored = query_service.fetch_rows(db, spec)
        assert sorted(row["nama_perusahaan"] for row in stored) == ["PT A", "PT D", "PT E, Tbk"]
        assert {row["kabupaten_kota"] for row in stored} == {"Bandung", "Bekasi", "Depok"}

    def test_strict_policy_rejects_file(self, spec, query_service, db):
        service = ImportService(query_service=query_service, batch_size=2, policy="strict")
        content = _csv("2024,PT A,Bandung,PMA,1000,1", "2024,,Bandung,PMA,1000,1")
        with pytest.raises(ImportValidationError) as excinfo:
            service.import_file(db, spec, filename="data.csv", content=content)
        assert [issue.row_number for issue in excinfo.value.issues] == [3]
        assert query_service.fetch_rows(db, spec) == []

    def test_failed_batch_keeps_earlier_batches(self, spec, db):
        fake = _RecordingQueryService(fail_on_batch=3)
        service = ImportService(query_service=fake, batch_size=2)
        content = _csv(*(f"2024,PT {index},Bandung,PMA,100,1" for index in range(7)))

        summary = service.import_file(db, spec, filename="data.csv", content=content)

        assert summary.status == "error"
        assert summary.rows_inserted == 4
        assert summary.batches_committed == 2
        assert "duplicate key" in summary.error_message
        assert summary.failed_batch == 3
        assert [len(batch) for batch in fake.batches] == [2, 2]
        assert fake.refreshed == 1

    def test_rule_violations_are_skipped_not_batch_failures(self, spec, query_service, db):
        service = ImportService(query_service=query_service, batch_size=100, policy="skip")
        valid = [f"2024,PT {index:02d},Bandung,PMDN,1,1" for index in range(50)]
        content = _csv(
            *valid,
            "2024,PT Kecil,Bandung,pma,1,1",
            "2024,PT Asing,Bandung,ASING,1,1",
            "2024,PT Minus,Bandung,PMA,-5,1",
            "0,PT Nol,Bandung,PMA,1,1",
        )

        summary = service.import_file(db, spec, filename="data.csv", content=content)

        assert summary.status == "success"
        assert summary.rows_inserted == 51
        assert summary.rows_skipped == 3
        assert [(issue.row_number, issue.column) for issue in summary.skipped_rows] == [
            (53, "status_modal"),
            (54, "tambahan_investasi_rp"),
            (55, "tahun"),
        ]
        stored = {row["nama_perusahaan"]: row for row in query_service.fetch_rows(db, spec)}
        assert stored["PT Kecil"]["status_modal"] == "PMA"

    def test_progress_callback(self, spec, db):
        fake = _RecordingQueryService()
        service = ImportService(query_service=fake, batch_size=2)
        calls: list[tuple[int, int]] = []
        content = _csv(*(f"2024,PT {index},Bandung,PMA,100,1" for index in range(5)))
        service.import_file(db, spec, filename="data.csv", content=content, progress=lambda *args: calls.append(args))
        assert calls == [(0, 5), (2, 5), (4, 5), (5, 5)]

    def test_nothing_inserted_skips_refresh(self, spec, db):
        fake = _RecordingQueryService()
        service = ImportService(query_service=fake)
        summary = service.import_file(db, spec, filename="data.csv", content=_csv())
        assert summary.rows_total == 0
        assert summary.succeeded
        assert fake.refreshed == 0

    def test_dataset_not_importable(self, service, db):
        with pytest.raises(ValueError, match="does not accept imports"):
            service.import_file(db, get_dataset("ranking_analysis"), filename="a.csv", content=b"rank\n1\n")

    def test_header_only_file_without_required_column(self, service, spec, db):
        with pytest.raises(ImportFileError):
            service.import_file(db, spec, filename="a.csv", content=b"tahun,status\n2024,PMA\n")


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TestTemplates:
    def test_csv_template_has_example_row(self, service, spec):
        lines = service.template_csv(spec).splitlines()
        assert lines[0].startswith("tahap,tahun,sektor_utama")
        assert "PT Contoh Nusantara" in lines[1]

    def test_template_headers_resolve(self, service, spec):
        mapping = resolve_headers(spec, service.template_headers(spec))
        assert mapping["kabkota"] == "kabupaten_kota"
        assert mapping["status"] == "status_modal"

    def test_xlsx_template_round_trips(self, service, spec):
        frame = pd.read_excel(io.BytesIO(service.template_xlsx(spec)), engine="openpyxl", dtype=str)
        assert list(frame.columns) == service.template_headers(spec)

    def test_default_template_uses_model_columns(self, service):
        spec = get_dataset("patent_registration")
        assert service.template_headers(spec) == list(spec.model_columns())
