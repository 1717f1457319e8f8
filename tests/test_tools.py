"""
Unit tests for the department tools.

Each tool returns JSON text and reports problems as payloads, never raises.
"""

import json
from pathlib import Path

from conftest import FakeSearcher
from context import selectors
from orchestrator.errors import ModelTransportError
from tools.appointments import appointment_scheduler
from tools.billing import billing_support
from tools.patients import patient_information_handler
from tools.records import medical_records_assistant
from tools.search import external_search


class TestPatientInformationHandler:

    def test_get_fuzzy_match(self, hospital):
        out = json.loads(patient_information_handler(hospital, "get", {"name": "john"}))

        assert out["status"] == "found"
        assert out["data"]["id"] == "P-1024"

    def test_get_not_found(self, hospital):
        out = json.loads(patient_information_handler(hospital, "get", {"name": "Zed Quixote"}))

        assert out == {"status": "not_found", "message": "Patient not found in registry."}

    def test_register_assigns_next_id(self, hospital):
        out = json.loads(patient_information_handler(hospital, "register", {"name": "Ann Lee", "dob": "1990-01-01"}))

        assert out["status"] == "success"
        assert out["patientId"] == "P-9922"
        assert selectors.get_patient_by_id(hospital, "P-9922")["name"] == "Ann Lee"

    def test_register_requires_name(self, hospital):
        out = json.loads(patient_information_handler(hospital, "register", None))

        assert out["status"] == "error"

    def test_update_changes_address(self, hospital):
        out = json.loads(patient_information_handler(hospital, "update", {"name": "Jane Smith", "address": "9 Elm St"}))

        assert out["status"] == "success"
        assert out["changes"] == {"address": "9 Elm St"}
        assert selectors.get_patient_by_id(hospital, "P-9921")["address"] == "9 Elm St"

    def test_get_does_not_confuse_shared_surname(self, hospital):
        out = json.loads(patient_information_handler(hospital, "get", {"name": "Jane Doe"}))

        assert out["status"] == "not_found"

    def test_update_of_unknown_patient_leaves_others_untouched(self, hospital):
        out = json.loads(patient_information_handler(hospital, "update", {"name": "Jane Doe", "address": "1 Nowhere"}))

        assert out["status"] == "not_found"
        assert selectors.get_patient_by_id(hospital, "P-1024")["address"] == "123 Maple Ave"

    def test_string_details_treated_as_name(self, hospital):
        out = json.loads(patient_information_handler(hospital, "get", "Jane Smith"))

        assert out["status"] == "found"

    def test_unknown_action(self, hospital):
        out = json.loads(patient_information_handler(hospital, "delete", {}))

        assert out == {"status": "error", "message": "Unknown PIH action."}


class TestAppointmentScheduler:

    def test_schedule_resolves_doctor_and_confirms(self, hospital):
        out = json.loads(appointment_scheduler(hospital, "schedule", {"doctor": "Dr. Chen", "date": "next Monday"}))

        assert out["status"] == "confirmed"
        assert out["appointmentId"] == "APT-56"
        assert out["details"] == {"doctor": "Dr. Emily Chen", "date": "next Monday"}
        assert out["note"] == "Confirmation email sent."
        assert selectors.get_appointment_by_id(hospital, "APT-56")["status"] == "confirmed"

    def test_schedule_needs_a_date_or_time(self, hospital):
        out = json.loads(appointment_scheduler(hospital, "schedule", {"doctor": "Dr. Chen"}))

        assert out["status"] == "error"

    def test_unknown_doctor_kept_as_typed(self, hospital):
        out = json.loads(appointment_scheduler(hospital, "schedule", {"doctor": "Dr. Nobody", "time": "10:00 AM"}))

        assert out["details"]["doctor"] == "Dr. Nobody"
        assert selectors.get_appointment_by_id(hospital, out["appointmentId"])["doctor"] == "Dr. Nobody"

    def test_check_availability_hides_booked_slots(self, hospital):
        appointment_scheduler(hospital, "schedule", {"date": "Mon", "time": "10:00 AM", "doctor": "Dr. Emily Chen"})

        out = json.loads(appointment_scheduler(hospital, "check_availability", {"doctor": "Dr. Chen"}))

        assert out["status"] == "available"
        assert out["doctor"] == "Dr. Emily Chen"
        assert "Mon 10:00 AM" not in out["slots"]
        assert "Mon 2:00 PM" in out["slots"]

    def test_reschedule_existing(self, hospital):
        out = json.loads(appointment_scheduler(hospital, "reschedule", {"appointmentId": "APT-55", "date": "2023-11-20"}))

        assert out["status"] == "rescheduled"
        assert out["oldAppointment"] == "2023-11-15 10:00 AM"
        assert selectors.get_appointment_by_id(hospital, "APT-55")["date"] == "2023-11-20"

    def test_reschedule_missing_id(self, hospital):
        out = json.loads(appointment_scheduler(hospital, "reschedule", {"appointmentId": "APT-999"}))

        assert out["status"] == "not_found"

    def test_cancel(self, hospital):
        out = json.loads(appointment_scheduler(hospital, "cancel", {"appointmentId": "APT-55"}))

        assert out == {"status": "cancelled", "appointmentId": "APT-55"}
        assert selectors.get_appointment_by_id(hospital, "APT-55")["status"] == "cancelled"

    def test_cancel_without_details(self, hospital):
        out = json.loads(appointment_scheduler(hospital, "cancel", None))

        assert out == {"status": "cancelled", "appointmentId": "Unknown"}

    def test_unknown_action(self, hospital):
        out = json.loads(appointment_scheduler(hospital, "teleport", {}))

        assert out == {"status": "error", "message": "Unknown AS action."}


class TestMedicalRecordsAssistant:

    def test_summary(self, hospital, tmp_path):
        out = json.loads(medical_records_assistant(hospital, "get_summary", "John Doe", export_dir=tmp_path))

        assert out["patient"] == "John Doe"
        assert out["allergies"] == "Penicillin"
        assert out["recentVisits"][0].startswith("2023-10-01")

    def test_generate_document_writes_pdf(self, hospital, tmp_path):
        out = json.loads(medical_records_assistant(hospital, "generate_document", "jane smith", export_dir=tmp_path))

        assert out["status"] == "generated"
        assert out["content_preview"].startswith("MEDICAL REPORT FOR JANE SMITH")
        path = Path(out["path"])
        assert path.parent == tmp_path
        assert path.read_bytes().startswith(b"%PDF")

    def test_summary_is_not_another_patients_record(self, hospital, tmp_path):
        out = json.loads(medical_records_assistant(hospital, "get_summary", "Jane Doe", export_dir=tmp_path))

        assert out["status"] == "not_found"
        assert "allergies" not in out

    def test_missing_patient_name(self, hospital, tmp_path):
        out = json.loads(medical_records_assistant(hospital, "get_summary", None, export_dir=tmp_path))

        assert out["status"] == "error"

    def test_registered_patient_without_record(self, hospital, tmp_path):
        patient_information_handler(hospital, "register", {"name": "Ann Lee"})

        out = json.loads(medical_records_assistant(hospital, "get_summary", "Ann Lee", export_dir=tmp_path))

        assert out["status"] == "not_found"

    def test_unknown_action(self, hospital, tmp_path):
        out = json.loads(medical_records_assistant(hospital, "shred", "John Doe", export_dir=tmp_path))

        assert out == {"status": "error", "message": "Unknown MRA action."}


class TestBillingSupport:

    def test_check_bill_by_patient(self, hospital):
        out = json.loads(billing_support(hospital, "check_bill", "John Doe"))

        assert out["status"] == "outstanding"
        assert out["amount"] == "$150.00"
        assert out["items"] == ["Consultation - $100.00", "Lab Fee - $50.00"]

    def test_check_bill_by_invoice(self, hospital):
        out = json.loads(billing_support(hospital, "check_bill", "invoice inv-3310 please"))

        assert out["invoiceId"] == "INV-3310"

    def test_check_bill_unknown_invoice(self, hospital):
        out = json.loads(billing_support(hospital, "check_bill", "INV-0001"))

        assert out["status"] == "not_found"

    def test_check_bill_without_details(self, hospital):
        out = json.loads(billing_support(hospital, "check_bill", None))

        assert out["status"] == "error"

    def test_insurance_by_provider(self, hospital):
        out = json.loads(billing_support(hospital, "insurance", "BlueCross"))

        assert out == {"status": "active", "provider": "BlueCross", "copay": "$20.00", "coverage": "80% on specialist visits."}

    def test_insurance_by_patient(self, hospital):
        out = json.loads(billing_support(hospital, "insurance", "John Doe"))

        assert out["provider"] == "BlueCross"

    def test_anything_else_is_general_info(self, hospital):
        out = json.loads(billing_support(hospital, "general_info", None))

        assert out["status"] == "info"
        assert "Mon-Fri" in out["message"]


class TestExternalSearch:

    def test_answer_with_citations(self):
        searcher = FakeSearcher(urls=["https://a.example", "https://b.example"])

        out = json.loads(external_search(searcher, " flu stats "))

        assert out["status"] == "success"
        assert out["answer"] == searcher.answer
        assert out["citations"] == ["https://a.example", "https://b.example"]
        assert searcher.queries == ["flu stats"]

    def test_empty_query(self):
        out = json.loads(external_search(FakeSearcher(), ""))

        assert out["status"] == "error"

    def test_transport_failure_is_an_error_payload(self):
        class Down:
            def search(self, query):
                raise ModelTransportError("unreachable")

        out = json.loads(external_search(Down(), "anything"))

        assert out["status"] == "error"
        assert "unreachable" in out["message"]
