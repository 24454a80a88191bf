"""Shared fixtures: a small brca_tcga study served through pytest-httpx."""

import asyncio
from typing import Any, Awaitable, Callable

import httpx
import pytest
from pytest_httpx import HTTPXMock

from cbioportal_dashboard.config import Config

API = "https://www.cbioportal.org/api"


def clinical(patient_id: str, attribute_id: str, value: str, study_id: str = "brca_tcga") -> dict[str, Any]:
    return {
        "uniquePatientKey": f"{patient_id}-key",
        "patientId": patient_id,
        "studyId": study_id,
        "clinicalAttributeId": attribute_id,
        "value": value,
    }


def study_payload(study_id: str = "brca_tcga") -> dict[str, Any]:
    """Upstream JSON for each of the six per-study resources."""
    return {
        "study": {
            "studyId": study_id,
            "name": "Breast Invasive Carcinoma (TCGA)",
            "description": "TCGA breast cancer study",
            "publicStudy": True,
            "citation": "TCGA, Nature 2012",
            "allSampleCount": 210,
            "cancerTypeId": "brca",
            "referenceGenome": "hg19",
        },
        "clinical-attributes": [
            {
                "clinicalAttributeId": "AGE",
                "displayName": "Diagnosis Age",
                "datatype": "NUMBER",
                "patientAttribute": True,
                "studyId": study_id,
            },
            {
                "clinicalAttributeId": "SEX",
                "displayName": "Sex",
                "datatype": "STRING",
                "patientAttribute": True,
                "studyId": study_id,
            },
            {
                "clinicalAttributeId": "SAMPLE_TYPE",
                "displayName": "Sample Type",
                "datatype": "STRING",
                "patientAttribute": False,
                "studyId": study_id,
            },
        ],
        "PATIENT": [
            clinical("P1", "AGE", "45", study_id),
            clinical("P2", "AGE", "62", study_id),
            clinical("P1", "SEX", "Female", study_id),
            clinical("P1", "OS_MONTHS", "10", study_id),
            clinical("P1", "OS_STATUS", "1:DECEASED", study_id),
            clinical("P1", "CANCER_TYPE", "Breast Cancer", study_id),
            clinical("P2", "SEX", "Female", study_id),
            clinical("P2", "OS_MONTHS", "20", study_id),
            clinical("P2", "OS_STATUS", "0:LIVING", study_id),
            clinical("P3", "AGE", "71", study_id),
            clinical("P3", "SEX", "Male", study_id),
            clinical("P3", "OS_MONTHS", "30", study_id),
            clinical("P3", "OS_STATUS", "1:DECEASED", study_id),
            clinical("P4", "SEX", "Female", study_id),
        ],
        "SAMPLE": [
            {**clinical("P1", "SAMPLE_TYPE", "Primary", study_id), "sampleId": "P1-01"},
        ],
        "molecular-profiles": [
            {
                "molecularProfileId": f"{study_id}_mutations",
                "studyId": study_id,
                "molecularAlterationType": "MUTATION_EXTENDED",
                "datatype": "MAF",
                "name": "Mutations",
            },
            {
                "molecularProfileId": f"{study_id}_gistic",
                "studyId": study_id,
                "molecularAlterationType": "COPY_NUMBER_ALTERATION",
                "datatype": "DISCRETE",
                "name": "Putative copy-number alterations",
            },
        ],
        "sample-lists": [
            {
                "sampleListId": f"{study_id}_all",
                "studyId": study_id,
                "name": "All samples",
                "category": "all_cases_in_study",
                "sampleCount": 200,
            },
        ],
    }


def study_urls(study_id: str = "brca_tcga") -> dict[str, str]:
    return {
        "study": f"{API}/studies/{study_id}",
        "clinical-attributes": f"{API}/studies/{study_id}/clinical-attributes",
        "PATIENT": f"{API}/studies/{study_id}/clinical-data?clinicalDataType=PATIENT&pageSize=100000",
        "SAMPLE": f"{API}/studies/{study_id}/clinical-data?clinicalDataType=SAMPLE&pageSize=100000",
        "molecular-profiles": f"{API}/studies/{study_id}/molecular-profiles",
        "sample-lists": f"{API}/studies/{study_id}/sample-lists",
    }


def held_response(
    release: asyncio.Event, payload: Any
) -> Callable[[httpx.Request], Awaitable[httpx.Response]]:
    """Callback answering with ``payload`` once ``release`` is set."""

    async def respond(request: httpx.Request) -> httpx.Response:
        await release.wait()
        return httpx.Response(200, json=payload)

    return respond


@pytest.fixture
def config() -> Config:
    """Create test config."""
    return Config()


@pytest.fixture
def mock_study(httpx_mock: HTTPXMock) -> Callable[..., None]:
    """Register upstream responses for the six per-study requests.

    ``fail`` names one resource to answer with a 500 instead. With ``hold``,
    the study itself is not answered until that event is set.
    """

    def register(
        study_id: str = "brca_tcga", fail: str | None = None, hold: asyncio.Event | None = None
    ) -> None:
        payload = study_payload(study_id)
        for resource, url in study_urls(study_id).items():
            if resource == fail:
                httpx_mock.add_response(url=url, status_code=500, text="Internal Server Error")
            elif resource == "study" and hold is not None:
                httpx_mock.add_callback(held_response(hold, payload[resource]), url=url)
            else:
                httpx_mock.add_response(url=url, json=payload[resource])

    return register
