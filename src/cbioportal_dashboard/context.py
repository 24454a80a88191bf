"""Per-session state for the studies list and the currently selected study."""

import logging
from typing import Optional

import httpx

from cbioportal_dashboard.analysis import (
    calculate_age_histogram,
    calculate_distribution,
    extract_survival_data,
    filter_and_sort_studies,
    kaplan_meier,
    summarize_mutations,
)
from cbioportal_dashboard.client import CBioPortalClient, ResponseShapeError
from cbioportal_dashboard.client.rest_api import MUTATION_PROFILE_TYPE
from cbioportal_dashboard.config import Config
from cbioportal_dashboard.models import (
    ChartData,
    ClinicalAttribute,
    ClinicalDataItem,
    KaplanMeierCurve,
    LoadResult,
    MolecularProfile,
    MutationSummary,
    Patient,
    SampleList,
    Study,
    StudyOverview,
)

logger = logging.getLogger(__name__)


class StudyContext:
    """Cache of one session's studies list and current study.

    Selecting a different study clears everything derived from the previous
    one before the new data is fetched.
    """

    def __init__(self, client: CBioPortalClient, config: Config) -> None:
        self.client = client
        self.config = config

        # Studies list (cached)
        self.studies: list[Study] = []
        self.studies_loaded = False

        # Current study data
        self.current_study: Optional[Study] = None
        self.current_study_id: Optional[str] = None
        self.clinical_attributes: list[ClinicalAttribute] = []
        self.patients: list[Patient] = []
        self.sample_data: list[ClinicalDataItem] = []
        self.molecular_profiles: list[MolecularProfile] = []
        self.sample_lists: list[SampleList] = []
        self.mutation_summaries: dict[str, MutationSummary] = {}

        # Loading states
        self.is_loading_studies = False
        self.is_loading_study_data = False
        self.error: Optional[str] = None

    # Getters

    @property
    def tcga_pan_can_studies(self) -> list[Study]:
        return [s for s in self.studies if "pan_can_atlas" in s.study_id]

    @property
    def tcga_studies(self) -> list[Study]:
        return [s for s in self.studies if "tcga" in s.study_id]

    @property
    def other_studies(self) -> list[Study]:
        return [s for s in self.studies if "tcga" not in s.study_id and s.public_study]

    @property
    def patient_count(self) -> int:
        return len(self.patients)

    @property
    def sample_count(self) -> int:
        """Sample count from the all-samples list, falling back to the study's own count."""
        all_samples = next(
            (
                sl
                for sl in self.sample_lists
                if sl.category == "all_cases_in_study" or sl.sample_list_id.endswith("_all")
            ),
            None,
        )
        if all_samples and all_samples.sample_count > 0:
            return all_samples.sample_count
        return self.current_study.all_sample_count if self.current_study else 0

    @property
    def patient_attributes(self) -> list[ClinicalAttribute]:
        return [a for a in self.clinical_attributes if a.patient_attribute]

    @property
    def sample_attributes(self) -> list[ClinicalAttribute]:
        return [a for a in self.clinical_attributes if not a.patient_attribute]

    @property
    def has_survival_data(self) -> bool:
        return any(
            p.get("OS_MONTHS") is not None and p.get("OS_STATUS") is not None
            for p in self.patients
        )

    @property
    def cancer_types(self) -> list[str]:
        types: dict[str, None] = {}
        for p in self.patients:
            for attribute_id in ("CANCER_TYPE", "CANCER_TYPE_DETAILED"):
                value = p.get(attribute_id)
                if value:
                    types[str(value)] = None
        return list(types)

    def overview(self) -> Optional[StudyOverview]:
        if self.current_study is None:
            return None
        return StudyOverview(
            study=self.current_study,
            patient_count=self.patient_count,
            sample_count=self.sample_count,
            molecular_profiles=self.molecular_profiles,
            clinical_attributes=self.clinical_attributes,
        )

    # Actions

    async def load_studies(self, force: bool = False) -> None:
        self.error = None
        if self.studies_loaded and not force:
            return

        self.is_loading_studies = True
        try:
            studies = await self.client.get_studies()
        except (httpx.HTTPError, ResponseShapeError) as e:
            logger.error("Failed to load studies: %s", e)
            self.error = "Failed to load studies"
        else:
            self.studies = filter_and_sort_studies(studies)
            self.studies_loaded = True
        finally:
            self.is_loading_studies = False

    async def load_study_data(self, study_id: str, force: bool = False) -> None:
        """Load a study, replacing whatever study was loaded before.

        ``force`` re-issues the requests for the current study (manual retry).
        """
        self.error = None
        if self.current_study_id == study_id and self.current_study and not force:
            return

        self.clear()
        self.is_loading_study_data = True
        self.current_study_id = study_id

        try:
            data = await self.client.fetch_study_data(study_id)
        finally:
            self.is_loading_study_data = False

        if self.current_study_id != study_id:
            logger.debug("Discarding stale response for study %s", study_id)
            return

        if data is None:
            self.error = "Failed to load study data"
            return

        self.current_study = data.study
        self.clinical_attributes = data.clinical_attributes
        self.patients = data.patients
        self.sample_data = data.sample_data
        self.molecular_profiles = data.molecular_profiles
        self.sample_lists = data.sample_lists
        logger.info(
            "Loaded study %s: %d patients, %d clinical attributes",
            study_id,
            len(self.patients),
            len(self.clinical_attributes),
        )

    def clear(self) -> None:
        """Drop all state belonging to the current study."""
        self.current_study = None
        self.current_study_id = None
        self.clinical_attributes = []
        self.patients = []
        self.sample_data = []
        self.molecular_profiles = []
        self.sample_lists = []
        self.mutation_summaries = {}

    # Charts

    def distribution(self, attribute_id: str) -> ChartData:
        return calculate_distribution(self.patients, attribute_id)

    def age_histogram(self) -> ChartData:
        return calculate_age_histogram(self.patients)

    def survival_curve(self) -> KaplanMeierCurve:
        return kaplan_meier(extract_survival_data(self.patients))

    # Mutations

    async def search_mutations(self, gene_symbol: str) -> LoadResult[MutationSummary]:
        """Summarize a gene's mutations in the current study."""
        study_id = self.current_study_id
        if study_id is None or self.current_study is None:
            return LoadResult(success=False, error="No study loaded")

        gene_symbol = gene_symbol.strip().upper()
        cached = self.mutation_summaries.get(gene_symbol)
        if cached is not None:
            return LoadResult(success=True, data=cached)

        mutation_profile = next(
            (
                p
                for p in self.molecular_profiles
                if p.molecular_alteration_type == MUTATION_PROFILE_TYPE
            ),
            None,
        )
        if mutation_profile is None:
            return LoadResult(success=False, error=f"No mutation profile found in study {study_id}")

        try:
            genes = await self.client.get_genes([gene_symbol])
        except (httpx.HTTPError, ResponseShapeError) as e:
            logger.error("Gene lookup for %s failed: %s", gene_symbol, e)
            return LoadResult(
                success=False, error=f"Failed to look up gene {gene_symbol}", retryable=True
            )
        if not genes:
            return LoadResult(success=False, error=f"Gene not found: {gene_symbol}")
        gene = genes[0]

        no_mutations = f"No mutations found for {gene_symbol} in this study"
        try:
            mutations = await self.client.get_mutations(
                mutation_profile.molecular_profile_id, gene.entrez_gene_id, f"{study_id}_all"
            )
        except ResponseShapeError as e:
            logger.warning("Malformed mutation list for %s: %s", gene_symbol, e)
            return LoadResult(success=False, error=no_mutations)
        except httpx.HTTPError as e:
            logger.error("Mutation fetch for %s failed: %s", gene_symbol, e)
            return LoadResult(
                success=False, error=f"Failed to fetch mutations for {gene_symbol}", retryable=True
            )

        if self.current_study_id != study_id:
            return LoadResult(success=False, error="Study changed during mutation search")
        if not mutations:
            return LoadResult(success=False, error=no_mutations)

        summary = summarize_mutations(
            mutations, gene, self.sample_count, top_n=self.config.top_protein_changes
        )
        self.mutation_summaries[gene_symbol] = summary
        return LoadResult(success=True, data=summary)
