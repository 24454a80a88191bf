"""Frequency distributions, age histograms and survival extraction."""

import math
from collections import Counter
from typing import Any, Iterable, NamedTuple, Optional

from cbioportal_dashboard.models import ChartData, Patient, Study, SurvivalData

AGE_ATTRIBUTE = "AGE"
OS_MONTHS_ATTRIBUTE = "OS_MONTHS"
OS_STATUS_ATTRIBUTE = "OS_STATUS"


class AgeBin(NamedTuple):
    label: str
    min: float
    max: float


# Half-open [min, max); 200 is only a ceiling for the last bin.
AGE_BINS: tuple[AgeBin, ...] = (
    AgeBin("<30", 0, 30),
    AgeBin("30-39", 30, 40),
    AgeBin("40-49", 40, 50),
    AgeBin("50-59", 50, 60),
    AgeBin("60-69", 60, 70),
    AgeBin("70-79", 70, 80),
    AgeBin("80+", 80, 200),
)


def to_number(value: Any) -> Optional[float]:
    """Coerce a clinical value to a float, or None if it is missing or not numeric."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        number = float(value)
    except (ValueError, TypeError):
        return None
    if math.isnan(number):
        return None
    return number


def frequency_distribution(values: Iterable[Any]) -> ChartData:
    """Count distinct values, most frequent first.

    None and empty strings are skipped. Ties keep the order in which the
    values were first encountered.
    """
    counts: Counter[str] = Counter()
    for value in values:
        if value is None or value == "":
            continue
        counts[str(value)] += 1

    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return ChartData(
        labels=[label for label, _ in ranked],
        values=[count for _, count in ranked],
    )


def calculate_distribution(patients: Iterable[Patient], attribute_id: str) -> ChartData:
    """Frequency distribution of one categorical attribute across patients."""
    return frequency_distribution(p.get(attribute_id) for p in patients)


def calculate_age_histogram(
    patients: Iterable[Patient], attribute_id: str = AGE_ATTRIBUTE
) -> ChartData:
    """Bucket patient ages into the fixed AGE_BINS, in bin order."""
    counts = [0] * len(AGE_BINS)

    for patient in patients:
        age = to_number(patient.get(attribute_id))
        if age is None:
            continue
        for i, age_bin in enumerate(AGE_BINS):
            if age_bin.min <= age < age_bin.max:
                counts[i] += 1
                break

    return ChartData(labels=[b.label for b in AGE_BINS], values=counts)


def extract_survival_data(patients: Iterable[Patient]) -> list[SurvivalData]:
    """Overall-survival (months, status) per patient, ascending by months."""
    survival = []
    for patient in patients:
        months_value = patient.get(OS_MONTHS_ATTRIBUTE)
        status = patient.get(OS_STATUS_ATTRIBUTE)
        if months_value is None or status is None:
            continue
        months = to_number(months_value)
        if months is None:
            continue
        survival.append(
            SurvivalData(patient_id=patient.patient_id, months=months, status=str(status))
        )

    survival.sort(key=lambda s: s.months)
    return survival


def filter_and_sort_studies(studies: Iterable[Study]) -> list[Study]:
    """Public studies only: PanCancer Atlas first, then TCGA, then by sample count."""

    def priority(study: Study) -> tuple[bool, bool, int]:
        return (
            "pan_can_atlas" not in study.study_id,
            "tcga" not in study.study_id,
            -study.all_sample_count,
        )

    return sorted((s for s in studies if s.public_study), key=priority)
