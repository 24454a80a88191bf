"""Tests for the FastAPI web application."""

from typing import Callable, Iterator
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient
from pytest_httpx import HTTPXMock

from cbioportal_dashboard.config import Config
from cbioportal_dashboard.web.app import app

API = "https://www.cbioportal.org/api"


@pytest.fixture
def client(config: Config) -> Iterator[TestClient]:
    """Create a test client with the app lifespan running."""
    with patch("cbioportal_dashboard.web.app.get_config", return_value=config):
        with TestClient(app) as test_client:
            yield test_client


def new_session(client: TestClient) -> str:
    response = client.post("/api/session/new")
    assert response.status_code == 200
    return response.json()["session_id"]


class TestSessions:
    def test_create_and_delete(self, client: TestClient) -> None:
        session_id = new_session(client)

        response = client.delete(f"/api/session/{session_id}")

        assert response.status_code == 200
        assert response.json() == {"deleted": session_id}

    def test_health(self, client: TestClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{API}/info", json={"portalVersion": "6.0.0"})

        data = client.get("/api/health").json()

        assert data["status"] == "healthy"
        assert data["upstream_reachable"] is True
        assert data["portal_version"] == "6.0.0"

    def test_health_upstream_down(self, client: TestClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"), url=f"{API}/info")

        data = client.get("/api/health").json()

        assert data["status"] == "healthy"
        assert data["upstream_reachable"] is False


class TestStudies:
    def test_list_studies(self, client: TestClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{API}/studies?pageSize=10000",
            json=[
                {"studyId": "brca_tcga", "name": "Breast", "publicStudy": True, "allSampleCount": 5},
                {"studyId": "luad_tcga_pan_can_atlas_2018", "name": "Lung", "publicStudy": True},
                {"studyId": "private", "name": "Private", "publicStudy": False},
            ],
        )
        session_id = new_session(client)

        data = client.get(f"/api/session/{session_id}/studies", params={"keyword": "tcga"}).json()

        assert data["total_count"] == 2
        assert [s["studyId"] for s in data["studies"]] == ["luad_tcga_pan_can_atlas_2018", "brca_tcga"]

    def test_list_studies_failure(self, client: TestClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{API}/studies?pageSize=10000", status_code=500)
        session_id = new_session(client)

        response = client.get(f"/api/session/{session_id}/studies")

        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to load studies"

    def test_chart_without_study(self, client: TestClient) -> None:
        session_id = new_session(client)

        response = client.get(f"/api/session/{session_id}/charts/age-histogram")

        assert response.status_code == 409

    def test_load_study_and_charts(self, client: TestClient, mock_study: Callable[..., None]) -> None:
        mock_study()
        session_id = new_session(client)

        overview = client.post(f"/api/session/{session_id}/study/brca_tcga").json()
        assert overview["study"]["studyId"] == "brca_tcga"
        assert overview["patientCount"] == 4
        assert overview["sampleCount"] == 200
        assert overview["hasSurvivalData"] is True

        sex = client.get(f"/api/session/{session_id}/charts/distribution/SEX").json()
        assert sex == {"labels": ["Female", "Male"], "values": [3, 1]}

        ages = client.get(f"/api/session/{session_id}/charts/age-histogram").json()
        assert ages["labels"][0] == "<30"
        assert sum(ages["values"]) == 3

        survival = client.get(f"/api/session/{session_id}/charts/survival").json()
        assert survival["labels"] == ["0", "10", "30"]
        assert survival["medianSurvival"] == 30

        export = client.get(f"/api/session/{session_id}/export")
        assert export.status_code == 200
        assert export.headers["content-type"].startswith("text/csv")
        assert "brca_tcga_patients.csv" in export.headers["content-disposition"]
        assert export.text.splitlines()[0].startswith("patientId,studyId,AGE")

    def test_load_study_failure(self, client: TestClient, mock_study: Callable[..., None]) -> None:
        mock_study(fail="sample-lists")
        session_id = new_session(client)

        response = client.post(f"/api/session/{session_id}/study/brca_tcga")

        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to load study data"

    def test_cached_studies_after_failed_study_load(
        self, client: TestClient, mock_study: Callable[..., None], httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=f"{API}/studies?pageSize=10000",
            json=[{"studyId": "brca_tcga", "name": "Breast", "publicStudy": True}],
        )
        mock_study(fail="sample-lists")
        session_id = new_session(client)

        assert client.get(f"/api/session/{session_id}/studies").status_code == 200
        assert client.post(f"/api/session/{session_id}/study/brca_tcga").status_code == 502

        response = client.get(f"/api/session/{session_id}/studies")

        assert response.status_code == 200
        assert response.json()["total_count"] == 1

    def test_mutations_not_found(
        self, client: TestClient, mock_study: Callable[..., None], httpx_mock: HTTPXMock
    ) -> None:
        mock_study()
        httpx_mock.add_response(
            url=f"{API}/genes/fetch?geneIdType=HUGO_GENE_SYMBOL", method="POST", json=[]
        )
        session_id = new_session(client)
        client.post(f"/api/session/{session_id}/study/brca_tcga")

        response = client.get(f"/api/session/{session_id}/mutations/NOTAGENE")

        assert response.status_code == 404
        assert response.json()["detail"] == "Gene not found: NOTAGENE"


class TestProxy:
    def test_passthrough(self, client: TestClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{API}/cancer-types?pageSize=2",
            json=[{"cancerTypeId": "brca"}, {"cancerTypeId": "luad"}],
        )

        response = client.get("/api/cbioportal/cancer-types", params={"pageSize": "2"})

        assert response.status_code == 200
        assert response.json() == [{"cancerTypeId": "brca"}, {"cancerTypeId": "luad"}]

    def test_post_body(self, client: TestClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{API}/genes/fetch?geneIdType=HUGO_GENE_SYMBOL",
            method="POST",
            json=[{"entrezGeneId": 7157, "hugoGeneSymbol": "TP53"}],
        )

        response = client.post(
            "/api/cbioportal/genes/fetch",
            params={"geneIdType": "HUGO_GENE_SYMBOL"},
            json=["TP53"],
        )

        assert response.status_code == 200
        assert response.json()[0]["entrezGeneId"] == 7157

    def test_upstream_error(self, client: TestClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{API}/studies/missing", status_code=404)

        response = client.get("/api/cbioportal/studies/missing")

        assert response.status_code == 404
        assert "404" in response.json()["detail"]

    def test_invalid_json_body(self, client: TestClient) -> None:
        response = client.post(
            "/api/cbioportal/genes/fetch",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Request body is not valid JSON"
