"""
Consultation use case tests.
"""

import json

import pytest

from clinicdesk.core.exceptions import RecordStoreError, ValidationError
from clinicdesk.domain.entities.prescription import Medicine
from clinicdesk.domain.entities.registration import Doctor, Patient
from clinicdesk.domain.enums import PrescriptionStatus, RegistrationStatus
from clinicdesk.domain.errors import InvalidPrescriptionError, MissingScopeError

from conftest import DOCTOR_ID, PATIENT_ID, PRODUCT_ID, SECOND_PRODUCT_ID

LEDGER = "AD_SysConfig"
GINSENG = Medicine(id=PRODUCT_ID, name="Ginseng Powder")
LICORICE = Medicine(id=SECOND_PRODUCT_ID, name="Licorice Root")


async def open_visit(workflow, consultation):
    reg = await workflow.register(Patient(id=PATIENT_ID, name="Wang Xiao"), Doctor(id=DOCTOR_ID, name="Dr. Lin"))
    await workflow.call(reg.id)
    await workflow.start_consultation(reg.id)
    await consultation.start(reg.id, "Wang Xiao", "A123456789", "Dr. Lin")
    return reg


def saved_prescription(store, assignment_id):
    rows = [r for r in store.rows(LEDGER) if r["Name"] == f"CLINIC_PRESCRIPTION_{assignment_id}"]
    return json.loads(rows[0]["Value"]) if rows else None


@pytest.mark.asyncio
async def test_search_medicines(logged_in, consultation):
    assert [m.id for m in await consultation.search_medicines("ginseng")] == [PRODUCT_ID]
    assert await consultation.search_medicines("  ") == []
    assert len(await consultation.list_medicines()) == 2


@pytest.mark.asyncio
async def test_editing_lines_recomputes_quantities(logged_in, workflow, consultation):
    await open_visit(workflow, consultation)

    line = consultation.add_medicine(GINSENG)
    assert (line.dosage, line.frequency, line.days, line.total_quantity) == (3, "TID", 7, 63)

    consultation.update_line(0, {"dosage": 1.5, "frequency": "BID"})
    assert consultation.lines[0].total_quantity == 21

    consultation.add_medicine(LICORICE, dosage=2, frequency="QD")
    consultation.set_total_days(3)
    assert [l.total_quantity for l in consultation.lines] == [9, 6]

    removed = consultation.remove_line(1)
    assert removed.product_id == SECOND_PRODUCT_ID


@pytest.mark.asyncio
async def test_invalid_edits_rejected(logged_in, workflow, consultation):
    await open_visit(workflow, consultation)
    consultation.add_medicine(GINSENG)

    with pytest.raises(InvalidPrescriptionError):
        consultation.update_line(0, {"product_id": 99})
    with pytest.raises(InvalidPrescriptionError):
        consultation.update_line(5, {"dosage": 1})
    with pytest.raises(InvalidPrescriptionError):
        consultation.update_line(0, {"days": -1})
    with pytest.raises(InvalidPrescriptionError):
        consultation.add_medicine(GINSENG, dosage=-1)


def test_editing_without_active_consultation(consultation):
    with pytest.raises(ValidationError):
        consultation.add_medicine(GINSENG)


@pytest.mark.asyncio
async def test_save_persists_camel_case_json(logged_in, workflow, consultation, store):
    reg = await open_visit(workflow, consultation)
    consultation.set_diagnosis("Common cold")
    consultation.add_medicine(GINSENG)

    await consultation.save()

    data = saved_prescription(store, reg.id)
    assert data["diagnosis"] == "Common cold"
    assert data["patientName"] == "Wang Xiao"
    assert data["patientId"] == PATIENT_ID
    assert data["status"] == "DRAFT"
    assert data["lines"][0]["productId"] == PRODUCT_ID


@pytest.mark.asyncio
async def test_save_requires_org_scope(workflow, consultation, store):
    await consultation.start(1, "Wang Xiao")
    with pytest.raises(MissingScopeError):
        await consultation.save()
    assert store.calls_to("create", LEDGER) == []


@pytest.mark.asyncio
async def test_start_resumes_saved_prescription(logged_in, workflow, consultation):
    reg = await open_visit(workflow, consultation)
    consultation.add_medicine(GINSENG)
    await consultation.save()
    consultation.clear()

    current = await consultation.start(reg.id, "Wang Xiao")

    assert [l.product_id for l in current.prescription.lines] == [PRODUCT_ID]


@pytest.mark.asyncio
async def test_complete_marks_prescription_and_registration(logged_in, workflow, consultation, store):
    reg = await open_visit(workflow, consultation)
    consultation.add_medicine(GINSENG)

    prescription = await consultation.complete()

    assert prescription.status == PrescriptionStatus.COMPLETED
    assert saved_prescription(store, reg.id)["status"] == "COMPLETED"
    assert workflow.find_local(reg.id).status == RegistrationStatus.COMPLETED
    assert consultation.current is None


@pytest.mark.asyncio
async def test_complete_reverts_status_when_save_fails(logged_in, workflow, consultation, store):
    reg = await open_visit(workflow, consultation)
    consultation.add_medicine(GINSENG)
    store.fail_on(
        "create",
        LEDGER,
        RecordStoreError("down", status=503, detail="Service unavailable"),
        when=lambda args: args[0]["Name"].startswith("CLINIC_PRESCRIPTION_"),
    )

    with pytest.raises(RecordStoreError):
        await consultation.complete()

    assert consultation.current.prescription.status == PrescriptionStatus.DRAFT
    assert workflow.find_local(reg.id).status == RegistrationStatus.CONSULTING
    assert consultation.error


@pytest.mark.asyncio
async def test_templates(logged_in, workflow, consultation, store):
    await open_visit(workflow, consultation)
    with pytest.raises(ValidationError):
        await consultation.save_template("Cold")

    consultation.add_medicine(GINSENG)
    consultation.set_total_days(5)
    template = await consultation.save_template("Cold")
    assert template.id == "CLINIC_TEMPLATE_Cold"
    assert [t.name for t in consultation.templates] == ["Cold"]

    consultation.remove_line(0)
    consultation.apply_template(template)
    assert consultation.lines[0].total_quantity == 45
    assert consultation.current.prescription.total_days == 5

    assert await consultation.delete_template(template.id) is True
    assert await consultation.list_templates() == []
    with pytest.raises(ValidationError):
        await consultation.delete_template("CLINIC_PRESCRIPTION_1")


@pytest.mark.asyncio
async def test_apply_history_rebases_onto_current_days(logged_in, workflow, consultation):
    await open_visit(workflow, consultation)
    consultation.add_medicine(GINSENG)
    await consultation.complete()

    await open_visit(workflow, consultation)
    consultation.set_total_days(2)
    history = await consultation.list_history()
    assert len(history) == 1

    past = history[0]
    consultation.apply_history(past)

    assert consultation.lines[0].days == 2
    assert consultation.lines[0].total_quantity == 18
