"""Fold clinical data triples into per-patient records."""

from typing import Iterable

from cbioportal_dashboard.models import ClinicalDataItem, Patient


def transform_to_patients(clinical_data: Iterable[ClinicalDataItem]) -> list[Patient]:
    """Group clinical data items by patient id.

    Patients come out in the order they were first seen. A repeated
    (patient, attribute) pair keeps the last value. Values are not checked
    against the attribute's declared datatype.
    """
    patients: dict[str, Patient] = {}

    for item in clinical_data:
        patient = patients.get(item.patient_id)
        if patient is None:
            patient = Patient(patient_id=item.patient_id, study_id=item.study_id)
            patients[item.patient_id] = patient
        patient.attributes[item.clinical_attribute_id] = item.value

    return list(patients.values())
