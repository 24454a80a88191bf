"""REST client for the cBioPortal public API."""

import asyncio
import logging
from typing import Any, Awaitable, Optional, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from cbioportal_dashboard.analysis.patients import transform_to_patients
from cbioportal_dashboard.client.errors import CBioPortalError, ResponseShapeError, UpstreamError
from cbioportal_dashboard.config import Config
from cbioportal_dashboard.models import (
    ApiInfo,
    ClinicalAttribute,
    ClinicalDataItem,
    Gene,
    MolecularProfile,
    Mutation,
    SampleList,
    Study,
    StudyData,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Everything a tolerant fetcher turns into an empty result
FETCH_ERRORS = (httpx.HTTPError, CBioPortalError)

MUTATION_PROFILE_TYPE = "MUTATION_EXTENDED"

_API_INFO = TypeAdapter(ApiInfo)
_STUDY = TypeAdapter(Study)
_STUDIES = TypeAdapter(list[Study])
_CLINICAL_ATTRIBUTES = TypeAdapter(list[ClinicalAttribute])
_CLINICAL_DATA = TypeAdapter(list[ClinicalDataItem])
_MOLECULAR_PROFILES = TypeAdapter(list[MolecularProfile])
_SAMPLE_LISTS = TypeAdapter(list[SampleList])
_GENES = TypeAdapter(list[Gene])
_MUTATIONS = TypeAdapter(list[Mutation])


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise ResponseShapeError(f"Invalid JSON from {response.request.url}") from e


def _parse(adapter: TypeAdapter[T], data: Any, what: str) -> T:
    try:
        return adapter.validate_python(data)
    except ValidationError as e:
        raise ResponseShapeError(
            f"Unexpected {what} response ({e.error_count()} validation errors)"
        ) from e


class CBioPortalClient:
    """Client for the cBioPortal public REST API.

    ``get_*`` methods raise ``httpx.HTTPError`` or ``ResponseShapeError``.
    ``fetch_*`` methods log the failure and return an empty collection or
    ``None`` instead, so callers can treat "no data" and "fetch failed" alike.
    """

    def __init__(self, config: Config) -> None:
        self.config = config
        self.base_url = config.api_base_url.rstrip("/")
        self._client: httpx.AsyncClient | None = None

    @property
    def description(self) -> str:
        return f"cBioPortal REST API at {self.base_url}"

    async def initialize(self) -> None:
        """Initialize the HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.config.request_timeout,
            headers={"Accept": "application/json"},
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "CBioPortalClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def http(self) -> httpx.AsyncClient:
        if self._client is None:
            raise CBioPortalError("Client not initialized")
        return self._client

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self.http.get(path, params=params)
        response.raise_for_status()
        return _decode(response)

    async def _quietly(self, what: str, awaitable: Awaitable[T], default: T) -> T:
        try:
            return await awaitable
        except FETCH_ERRORS as e:
            logger.error("Failed to fetch %s: %s", what, e)
            return default

    # Strict getters

    async def get_api_info(self) -> ApiInfo:
        return _parse(_API_INFO, await self._get_json("/info"), "info")

    async def get_studies(self) -> list[Study]:
        data = await self._get_json("/studies", {"pageSize": self.config.studies_page_size})
        return _parse(_STUDIES, data, "studies")

    async def get_study(self, study_id: str) -> Study:
        return _parse(_STUDY, await self._get_json(f"/studies/{study_id}"), "study")

    async def get_clinical_attributes(self, study_id: str) -> list[ClinicalAttribute]:
        data = await self._get_json(f"/studies/{study_id}/clinical-attributes")
        return _parse(_CLINICAL_ATTRIBUTES, data, "clinical attributes")

    async def get_clinical_data(
        self, study_id: str, clinical_data_type: str
    ) -> list[ClinicalDataItem]:
        """Get PATIENT or SAMPLE clinical data for every attribute in a study."""
        data = await self._get_json(
            f"/studies/{study_id}/clinical-data",
            {
                "clinicalDataType": clinical_data_type,
                "pageSize": self.config.clinical_data_page_size,
            },
        )
        return _parse(_CLINICAL_DATA, data, "clinical data")

    async def get_molecular_profiles(self, study_id: str) -> list[MolecularProfile]:
        data = await self._get_json(f"/studies/{study_id}/molecular-profiles")
        return _parse(_MOLECULAR_PROFILES, data, "molecular profiles")

    async def get_sample_lists(self, study_id: str) -> list[SampleList]:
        data = await self._get_json(f"/studies/{study_id}/sample-lists")
        return _parse(_SAMPLE_LISTS, data, "sample lists")

    async def get_genes(self, gene_symbols: list[str]) -> list[Gene]:
        """Look up genes by Hugo symbol."""
        response = await self.http.post(
            "/genes/fetch",
            params={"geneIdType": "HUGO_GENE_SYMBOL"},
            json=gene_symbols,
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()
        return _parse(_GENES, _decode(response), "genes")

    async def get_mutations(
        self, molecular_profile_id: str, entrez_gene_id: int, sample_list_id: str
    ) -> list[Mutation]:
        data = await self._get_json(
            f"/molecular-profiles/{molecular_profile_id}/mutations",
            {"entrezGeneId": entrez_gene_id, "sampleListId": sample_list_id},
        )
        return _parse(_MUTATIONS, data, "mutations")

    # Tolerant fetchers

    async def check_api_health(self) -> Optional[ApiInfo]:
        return await self._quietly("API info", self.get_api_info(), None)

    async def fetch_studies(self) -> list[Study]:
        return await self._quietly("studies", self.get_studies(), [])

    async def fetch_study(self, study_id: str) -> Optional[Study]:
        return await self._quietly(f"study {study_id}", self.get_study(study_id), None)

    async def fetch_clinical_attributes(self, study_id: str) -> list[ClinicalAttribute]:
        return await self._quietly(
            f"clinical attributes for {study_id}", self.get_clinical_attributes(study_id), []
        )

    async def fetch_patient_clinical_data(self, study_id: str) -> list[ClinicalDataItem]:
        return await self._quietly(
            f"patient clinical data for {study_id}",
            self.get_clinical_data(study_id, "PATIENT"),
            [],
        )

    async def fetch_sample_clinical_data(self, study_id: str) -> list[ClinicalDataItem]:
        return await self._quietly(
            f"sample clinical data for {study_id}",
            self.get_clinical_data(study_id, "SAMPLE"),
            [],
        )

    async def fetch_molecular_profiles(self, study_id: str) -> list[MolecularProfile]:
        return await self._quietly(
            f"molecular profiles for {study_id}", self.get_molecular_profiles(study_id), []
        )

    async def fetch_sample_lists(self, study_id: str) -> list[SampleList]:
        return await self._quietly(
            f"sample lists for {study_id}", self.get_sample_lists(study_id), []
        )

    async def fetch_study_data(self, study_id: str) -> Optional[StudyData]:
        """Fetch the six per-study resources concurrently.

        All six requests are awaited before anything is assembled. If any of
        them failed the whole load fails and ``None`` is returned.
        """
        results = await asyncio.gather(
            self.get_study(study_id),
            self.get_clinical_attributes(study_id),
            self.get_clinical_data(study_id, "PATIENT"),
            self.get_clinical_data(study_id, "SAMPLE"),
            self.get_molecular_profiles(study_id),
            self.get_sample_lists(study_id),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        for failure in failures:
            if not isinstance(failure, FETCH_ERRORS):
                raise failure
            logger.error("Failed to fetch study data for %s: %s", study_id, failure)
        if failures:
            return None

        study, clinical_attributes, patient_data, sample_data, profiles, sample_lists = results
        return StudyData(
            study=study,
            clinical_attributes=clinical_attributes,
            patients=transform_to_patients(patient_data),
            sample_data=sample_data,
            molecular_profiles=profiles,
            sample_lists=sample_lists,
        )

    # Passthrough

    async def proxy(
        self,
        method: str,
        path: str,
        params: Any = None,
        body: Any = None,
    ) -> Any:
        """Forward a request to an arbitrary API sub-path.

        Raises:
            UpstreamError: carrying the upstream status code, or 500 when the
                request never got a response.
        """
        method = method.upper()
        try:
            response = await self.http.request(
                method,
                f"/{path.lstrip('/')}",
                params=params,
                json=body if method in ("POST", "PUT") else None,
                headers={"Accept": "application/json", "Content-Type": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning("Upstream %s %s failed: %s", method, path, e.response.status_code)
            raise UpstreamError(
                e.response.status_code,
                f"{e.response.status_code} {e.response.reason_phrase} from {e.request.url}",
            ) from e
        except httpx.HTTPError as e:
            logger.warning("Upstream %s %s failed: %s", method, path, e)
            raise UpstreamError(500, str(e) or "Failed to fetch from cBioPortal") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(500, "Invalid JSON from cBioPortal") from e
