"""Pure aggregations over fetched cBioPortal data."""

from cbioportal_dashboard.analysis.aggregation import (
    AGE_BINS,
    calculate_age_histogram,
    calculate_distribution,
    extract_survival_data,
    filter_and_sort_studies,
    frequency_distribution,
)
from cbioportal_dashboard.analysis.mutations import summarize_mutations
from cbioportal_dashboard.analysis.patients import transform_to_patients
from cbioportal_dashboard.analysis.survival import NOT_REACHED, is_deceased, kaplan_meier, median_survival

__all__ = [
    "AGE_BINS",
    "NOT_REACHED",
    "calculate_age_histogram",
    "calculate_distribution",
    "extract_survival_data",
    "filter_and_sort_studies",
    "frequency_distribution",
    "is_deceased",
    "kaplan_meier",
    "median_survival",
    "summarize_mutations",
    "transform_to_patients",
]
