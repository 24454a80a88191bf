"""CSV export of assembled patient records."""

import csv
import io
from typing import Iterable, Sequence

from cbioportal_dashboard.models import Patient


def attribute_columns(patients: Iterable[Patient]) -> list[str]:
    """Union of attribute ids across patients, in first-seen order."""
    columns: dict[str, None] = {}
    for patient in patients:
        for key in patient.attributes:
            columns[key] = None
    return list(columns)


def patients_to_csv(patients: Sequence[Patient]) -> str:
    """Flatten patients into CSV with a patientId, studyId, attributes... header.

    Fields containing a comma, quote or newline are quoted, with embedded
    quotes doubled. Missing attributes are written as empty fields.
    """
    columns = attribute_columns(patients)
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")

    writer.writerow(["patientId", "studyId", *columns])
    for patient in patients:
        row = [patient.patient_id, patient.study_id]
        for column in columns:
            value = patient.get(column)
            row.append("" if value is None else value)
        writer.writerow(row)

    return buffer.getvalue()
