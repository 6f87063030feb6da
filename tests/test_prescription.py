"""
Prescription entity tests.
"""

import pytest

from clinicdesk.domain.entities.prescription import (
    Prescription,
    PrescriptionLine,
    PrescriptionTemplate,
    compute_total_quantity,
    copy_lines,
)
from clinicdesk.domain.enums import PrescriptionStatus


@pytest.mark.parametrize(
    "dosage, frequency, days, expected",
    [
        (3, "QD", 7, 21),
        (3, "BID", 7, 42),
        (3, "TID", 7, 63),
        (3, "QID", 7, 84),
        (3, "PRN", 7, 21),
        (3, "WEEKLY", 7, 21),
        (1.5, "TID", 2, 9),
        (0, "TID", 7, 0),
        (3, "TID", 0, 0),
    ],
)
def test_compute_total_quantity(dosage, frequency, days, expected):
    assert compute_total_quantity(dosage, frequency, days) == expected


def test_line_recalculate():
    line = PrescriptionLine(product_id=1, product_name="Ginseng", dosage=2, frequency="BID", days=5)
    line.recalculate()
    assert line.total_quantity == 20


def test_prescription_json_uses_camel_case_and_omits_assignment_id():
    prescription = Prescription(
        assignment_id=77,
        patient_id=5,
        patient_name="Wang Xiao",
        diagnosis="Cold",
        lines=[PrescriptionLine(1, "Ginseng", 3, "g", "TID", 7, 63)],
    )
    data = prescription.to_json()

    assert "assignmentId" not in data
    assert data["patientName"] == "Wang Xiao"
    assert data["lines"][0]["totalQuantity"] == 63
    assert data["status"] == "DRAFT"

    restored = Prescription.from_json(77, data)
    assert restored.lines[0].product_name == "Ginseng"
    assert restored.status == PrescriptionStatus.DRAFT


def test_from_json_tolerates_missing_and_unknown_fields():
    restored = Prescription.from_json(3, {"status": "ARCHIVED", "lines": [{"productId": "9"}]})
    assert restored.status == PrescriptionStatus.DRAFT
    assert restored.lines[0].product_id == 9
    assert restored.lines[0].dosage == 3
    assert restored.lines[0].unit == "g"
    assert restored.total_days == 7


def test_template_name_falls_back_to_ledger_name():
    template = PrescriptionTemplate.from_json("CLINIC_TEMPLATE_Cold", {"lines": []}, "CLINIC_TEMPLATE_")
    assert template.name == "Cold"
    assert template.id == "CLINIC_TEMPLATE_Cold"


def test_copy_lines_rebases_days_without_sharing_objects():
    original = [PrescriptionLine(1, "Ginseng", 3, "g", "TID", 7, 63)]
    copies = copy_lines(original, total_days=3)

    assert copies[0] is not original[0]
    assert copies[0].days == 3
    assert copies[0].total_quantity == 27
    assert original[0].days == 7
