"""
tests/test_api.py

HTTP-level tests for the dataset, export, import and analytics routers,
mounted on a bare FastAPI app with the database and services overridden.

Coverage
--------
- dataset catalogue and unknown dataset 404
- /rows pagination contract and query-string filters
- summary, grand total (page and filtered scope), years
- inline edit, read-only dataset and missing record
- CSV export headers and file name; JSON export body; invalid scope/format
- import summary, per-row status rules, strict-policy 400 with row details
- non-importable dataset; OpenAPI schema generation
- ranking pagination and backend failure -> 502
"""

from __future__ import annotations

import csv
import io

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routers import analytics_router, datasets_router, export_router, imports_router
from app.services.chart_service import ChartService, get_chart_service
from app.services.export_service import ExportService, get_export_service
from app.services.import_service import ImportService, get_import_service
from app.services.pivot_service import PivotService, get_pivot_service
from app.services.query_service import DatasetQueryService, get_dataset_query_service
from app.services.ranking_service import RankingService, get_ranking_service
from db.models import EkrafInvestmentRecord, LaborRanking
from db.session import get_db


def _ranking_caller(session, name, **params):
    return [
        {"rank": rank, "region": f"Wilayah {rank}", "percentage": 100 / 27}
        for rank in range(1, 28)
    ]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def query_service() -> DatasetQueryService:
    return DatasetQueryService(refresh_views=False)


@pytest.fixture()
def app(db, query_service) -> FastAPI:
    application = FastAPI()
    for router in (datasets_router, export_router, imports_router, analytics_router):
        application.include_router(router)

    def _db():
        yield db

    application.dependency_overrides[get_db] = _db
    application.dependency_overrides[get_dataset_query_service] = lambda: query_service
    application.dependency_overrides[get_export_service] = lambda: ExportService(
        query_service=query_service, max_rows=1000
    )
    application.dependency_overrides[get_import_service] = lambda: ImportService(
        query_service=query_service, batch_size=2, policy="skip"
    )
    application.dependency_overrides[get_ranking_service] = lambda: RankingService(
        page_size=15, procedure_caller=_ranking_caller
    )
    application.dependency_overrides[get_pivot_service] = lambda: PivotService(query_service=query_service)
    application.dependency_overrides[get_chart_service] = lambda: ChartService(query_service=query_service)
    return application


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def seeded(db):
    db.add_all(
        [
            EkrafInvestmentRecord(
                tahun=2023 + index % 2,
                nama_perusahaan=f"PT Kreatif {index:02d}",
                kabupaten_kota="Bandung" if index % 2 else "Bogor",
                status_modal="PMA" if index % 3 == 0 else "PMDN",
                tambahan_investasi_rp=1000.0,
                proyek=1,
            )
            for index in range(25)
        ]
    )
    db.add_all(
        [
            LaborRanking(type=1, year=2024, rank=rank, name=f"Kab {rank:02d}", project_count=2, labor_count=3)
            for rank in range(1, 13)
        ]
    )
    db.commit()
    return db


# ---------------------------------------------------------------------------
# Datasets
# ---------------------------------------------------------------------------


class TestDatasetEndpoints:
    def test_catalogue(self, client):
        response = client.get("/datasets")
        assert response.status_code == 200
        names = {item["name"] for item in response.json()}
        assert {"ekraf_analysis", "labor_region", "pdki_trademarks"} <= names

    def test_unknown_dataset(self, client):
        assert client.get("/datasets/nope/rows").status_code == 404

    def test_rows_pagination(self, client, seeded):
        body = client.get("/datasets/ekraf_analysis/rows", params={"page": 3}).json()
        assert body["total_count"] == 25
        assert body["total_pages"] == 3
        assert body["current_page"] == 3
        assert len(body["rows"]) == 5

    def test_rows_filters_from_query(self, client, seeded):
        body = client.get(
            "/datasets/ekraf_analysis/rows",
            params={"tahun": "2024", "kabupaten_kota": "all", "page_size": 50},
        ).json()
        assert body["total_count"] == 12
        assert all(row["tahun"] == 2024 for row in body["rows"])

    def test_invalid_page(self, client, seeded):
        assert client.get("/datasets/ekraf_analysis/rows", params={"page": 0}).status_code == 422

    def test_summary(self, client, seeded):
        body = client.get("/datasets/ekraf_analysis/summary", params={"status_modal": "PMA"}).json()
        assert body["metrics"]["total_companies"] == 9
        assert body["metrics"]["pmdn_count"] == 0

    def test_grand_total_filtered_scope(self, client, seeded):
        body = client.get("/datasets/ekraf_analysis/grand-total").json()
        assert body["scope"] == "filtered"
        assert body["totals"]["tambahan_investasi_rp"] == 25_000.0

    def test_grand_total_page_scope(self, client):
        body = client.get("/datasets/ranking_analysis/grand-total").json()
        assert body["scope"] == "page"
        assert body["totals"]["project_count"] == 0

    def test_years(self, client, seeded):
        assert client.get("/datasets/ekraf_analysis/years").json()["years"] == [2024, 2023]

    def test_filter_options(self, client, seeded):
        options = client.get("/datasets/ekraf_analysis/filter-options").json()["options"]
        assert options["kabupaten_kota"] == ["Bandung", "Bogor"]

    def test_update_row(self, client, seeded):
        row = client.get("/datasets/ekraf_analysis/rows").json()["rows"][0]
        response = client.patch(
            f"/datasets/ekraf_analysis/rows/{row['id']}",
            json={"changes": {"kabupaten_kota": "Cimahi"}},
        )
        assert response.status_code == 200
        assert response.json()["record"]["kabupaten_kota"] == "Cimahi"

    def test_update_missing_row(self, client, seeded):
        response = client.patch("/datasets/ekraf_analysis/rows/9999", json={"changes": {"proyek": 2}})
        assert response.status_code == 404

    def test_update_read_only(self, client, seeded):
        response = client.patch("/datasets/labor_region/rows/1", json={"changes": {"rank": 2}})
        assert response.status_code == 400


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


class TestExportEndpoint:
    def test_csv_export(self, client, seeded):
        response = client.get("/datasets/labor_region/export", params={"year": 2024, "scope": "all"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="lampiran_tenaga_kerja_2024.csv"' in response.headers["content-disposition"]
        assert response.headers["x-row-count"] == "12"
        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0] == ["Peringkat", "Nama", "Jumlah Proyek", "Tenaga Kerja", "Persentase (%)"]
        assert len(rows) == 13

    def test_json_export_page(self, client, seeded):
        body = client.get(
            "/datasets/labor_region/export", params={"format": "json", "page": 2}
        ).json()
        assert body["rows"] == 2
        assert body["fields"] == ["rank", "name", "project_count", "labor_count", "percentage"]
        assert [row["rank"] for row in body["data"]] == [11, 12]

    def test_invalid_format(self, client):
        assert client.get("/datasets/labor_region/export", params={"format": "pdf"}).status_code == 400

    def test_invalid_scope(self, client):
        assert client.get("/datasets/labor_region/export", params={"scope": "everything"}).status_code == 400

    def test_unknown_dataset(self, client):
        assert client.get("/datasets/nope/export").status_code == 404

    def test_filtered_csv_export(self, client, seeded):
        response = client.get(
            "/datasets/ekraf_analysis/export",
            params={"format": "csv", "scope": "all", "tahun": 2024, "kabupaten_kota": "Bandung"},
        )
        assert response.status_code == 200
        assert response.headers["content-disposition"].endswith('.csv"')
        assert "2024" in response.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(response.text)))
        assert int(response.headers["x-row-count"]) == len(rows) - 1 == 12

    def test_json_export_all(self, client, seeded):
        response = client.get(
            "/datasets/ekraf_analysis/export",
            params={"format": "json", "scope": "all", "status_modal": "PMA"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["rows"] == len(body["data"]) == 9
        assert {row["status_modal"] for row in body["data"]} == {"PMA"}

    def test_openapi_schema_builds(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        assert "/datasets/{name}/export" in paths


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


class TestImportEndpoint:
    def test_import_summary(self, client):
        content = (
            "tahun,nama_perusahaan,status\n"
            "2024,PT A,PMA\n"
            "2024,,PMA\n"
            "2024,PT C,PMDN\n"
        ).encode("utf-8")
        response = client.post(
            "/datasets/ekraf_analysis/import",
            files={"file": ("data.csv", content, "text/csv")},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["rows_inserted"] == 2
        assert body["rows_skipped"] == 1
        assert body["failed_batch"] is None

    def test_invalid_status_reported_per_row(self, client):
        content = b"tahun,nama_perusahaan,status\n2024,PT A,pma\n2024,PT B,ASING\n"
        body = client.post(
            "/datasets/ekraf_analysis/import",
            files={"file": ("data.csv", content, "text/csv")},
        ).json()
        assert body["status"] == "success"
        assert body["rows_inserted"] == 1
        assert body["skipped_rows"][0]["row_number"] == 3
        assert body["skipped_rows"][0]["column"] == "status_modal"

    def test_strict_policy(self, app, client, query_service):
        app.dependency_overrides[get_import_service] = lambda: ImportService(
            query_service=query_service, policy="strict"
        )
        content = b"tahun,nama_perusahaan,status\n2024,,PMA\n"
        response = client.post(
            "/datasets/ekraf_analysis/import",
            files={"file": ("data.csv", content, "text/csv")},
        )
        assert response.status_code == 400
        assert response.json()["detail"]["rows"][0]["row_number"] == 2

    def test_not_importable(self, client):
        response = client.post(
            "/datasets/labor_region/import",
            files={"file": ("data.csv", b"rank\n1\n", "text/csv")},
        )
        assert response.status_code == 400

    def test_wrong_file_type(self, client):
        response = client.post(
            "/datasets/ekraf_analysis/import",
            files={"file": ("data.pdf", b"%PDF", "application/pdf")},
        )
        assert response.status_code == 400

    def test_template(self, client):
        response = client.get("/datasets/ekraf_analysis/import-template")
        assert response.status_code == 200
        assert response.text.startswith("tahap,tahun")


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class TestAnalyticsEndpoints:
    def test_ranking_page(self, client):
        body = client.get("/analytics/ranking/investment", params={"year": 2024, "page": 2}).json()
        assert body["total_count"] == 27
        assert body["total_pages"] == 2
        assert len(body["rows"]) == 12

    def test_unknown_ranking(self, client):
        assert client.get("/analytics/ranking/profit", params={"year": 2024}).status_code == 400

    def test_pivot_empty(self, client):
        body = client.get("/analytics/pivot/projects").json()
        assert body["years"] == []
        assert body["rows"][-1]["group"] == "Grand Total"

    def test_refresh_backend_failure(self, client):
        assert client.post("/analytics/refresh").status_code == 502
