"""Typed entities for cBioPortal responses and the aggregates derived from them.

Upstream entities are pydantic models validated at the client boundary. They
keep the API's camelCase names as aliases so ``model_dump(by_alias=True)``
round-trips to what the presentation layer already knows. Derived entities
are plain dataclasses.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

AttributeValue = str | float | None

T = TypeVar("T")


class ApiModel(BaseModel):
    """Base for entities parsed from the upstream API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class Study(ApiModel):
    study_id: str
    name: str = ""
    description: str = ""
    public_study: bool = False
    pmid: Optional[str] = None
    citation: Optional[str] = None
    groups: Optional[str] = None
    status: Optional[int] = None
    import_date: Optional[str] = None
    all_sample_count: int = 0
    read_permission: bool = True
    cancer_type_id: Optional[str] = None
    reference_genome: Optional[str] = None


class ClinicalAttribute(ApiModel):
    clinical_attribute_id: str
    display_name: str = ""
    description: str = ""
    datatype: str = "STRING"
    patient_attribute: bool = False
    priority: Optional[str] = None
    study_id: Optional[str] = None


class ClinicalDataItem(ApiModel):
    """A single (patient or sample, attribute, value) triple."""

    unique_patient_key: Optional[str] = None
    unique_sample_key: Optional[str] = None
    patient_id: str
    sample_id: Optional[str] = None
    study_id: str
    clinical_attribute_id: str
    value: str


class MolecularProfile(ApiModel):
    molecular_profile_id: str
    study_id: Optional[str] = None
    molecular_alteration_type: str = ""
    datatype: str = ""
    name: str = ""
    description: str = ""
    show_profile_in_analysis_tab: bool = False


class SampleList(ApiModel):
    sample_list_id: str
    study_id: Optional[str] = None
    name: str = ""
    description: str = ""
    category: str = ""
    sample_count: int = 0


class Gene(ApiModel):
    entrez_gene_id: int
    hugo_gene_symbol: str
    type: Optional[str] = None


class Mutation(ApiModel):
    sample_id: str
    patient_id: Optional[str] = None
    study_id: Optional[str] = None
    molecular_profile_id: Optional[str] = None
    entrez_gene_id: Optional[int] = None
    protein_change: Optional[str] = None
    mutation_type: Optional[str] = None
    variant_type: Optional[str] = None
    chr: Optional[str] = None
    start_position: Optional[int] = None
    end_position: Optional[int] = None


class ApiInfo(ApiModel):
    portal_version: Optional[str] = None
    db_version: Optional[str] = None
    git_branch: Optional[str] = None
    git_commit_id: Optional[str] = None


@dataclass
class Patient:
    """One patient's clinical attributes, keyed by attribute id."""

    patient_id: str
    study_id: str
    attributes: dict[str, AttributeValue] = field(default_factory=dict)

    def get(self, attribute_id: str) -> AttributeValue:
        return self.attributes.get(attribute_id)

    def to_dict(self) -> dict[str, Any]:
        return {"patientId": self.patient_id, "studyId": self.study_id, **self.attributes}


@dataclass
class ChartData:
    """Index-aligned chart labels and values."""

    labels: list[str] = field(default_factory=list)
    values: list[float] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"labels": list(self.labels), "values": list(self.values)}


@dataclass
class SurvivalData:
    patient_id: str
    months: float
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {"patientId": self.patient_id, "months": self.months, "status": self.status}


@dataclass
class KaplanMeierCurve:
    """Step survival curve. ``times`` and ``survival`` are the unformatted points."""

    chart: ChartData
    times: list[float]
    survival: list[float]
    median: float | str

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.chart.to_dict(),
            "times": list(self.times),
            "survival": list(self.survival),
            "medianSurvival": self.median,
        }


@dataclass
class ProteinChangeCount:
    protein_change: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"proteinChange": self.protein_change, "count": self.count}


@dataclass
class MutationSummary:
    gene: Gene
    total_mutations: int
    unique_samples: int
    mutation_rate: float
    mutation_types: ChartData
    top_protein_changes: list[ProteinChangeCount]

    def to_dict(self) -> dict[str, Any]:
        return {
            "gene": self.gene.to_dict(),
            "totalMutations": self.total_mutations,
            "uniqueSamples": self.unique_samples,
            "mutationRate": self.mutation_rate,
            "mutationTypes": self.mutation_types.to_dict(),
            "topProteinChanges": [p.to_dict() for p in self.top_protein_changes],
        }


@dataclass
class StudyData:
    """Everything the study loader fetches for one study."""

    study: Study
    clinical_attributes: list[ClinicalAttribute]
    patients: list[Patient]
    sample_data: list[ClinicalDataItem]
    molecular_profiles: list[MolecularProfile]
    sample_lists: list[SampleList]


@dataclass
class StudyOverview:
    study: Study
    patient_count: int
    sample_count: int
    molecular_profiles: list[MolecularProfile]
    clinical_attributes: list[ClinicalAttribute]

    def to_dict(self) -> dict[str, Any]:
        return {
            "study": self.study.to_dict(),
            "patientCount": self.patient_count,
            "sampleCount": self.sample_count,
            "molecularProfiles": [p.to_dict() for p in self.molecular_profiles],
            "clinicalAttributes": [a.to_dict() for a in self.clinical_attributes],
        }


@dataclass
class LoadResult(Generic[T]):
    """Outcome of a whole-operation load, carrying a user-facing error."""

    success: bool
    data: Optional[T] = None
    error: str | None = None
    retryable: bool = False
