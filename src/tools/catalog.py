"""
src/tools/catalog.py — the hospital capability catalogue

Declares what the coordinator model may call (name, description, argument
schema, department identity) and binds each declaration to the department
function that fulfils it. build_registry() is the only place the two meet.

Keep descriptions short and specific: they are what the model routes on.
"""


from __future__ import annotations

import json
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import structlog

from config import EXPORT_DIR, AgentType
from context.loader import Hospital
from orchestrator.models import CapabilityDeclaration, ParameterSpec
from orchestrator.registry import CapabilityExecutor, CapabilityRegistry
from tools.appointments import appointment_scheduler
from tools.billing import billing_support
from tools.patients import patient_information_handler
from tools.records import medical_records_assistant
from tools.search import external_search


logger = structlog.get_logger(__name__)


# -------- Declarations ---------------------------------------------------------
PATIENT_INFORMATION = CapabilityDeclaration(
    name="patientInformationHandler",
    description="Handles patient demographics: registration, updates, and retrieval.",
    identity=AgentType.PIH,
    parameters={
        "action": ParameterSpec(type="string", required=True, description="One of: 'register', 'update', 'get'"),
        "details": ParameterSpec(
            type="object",
            description="Patient details (name, dob, address) for registration/updates, or search criteria for retrieval.",
            properties={
                "name": ParameterSpec(type="string"),
                "dob": ParameterSpec(type="string"),
                "address": ParameterSpec(type="string"),
            },
        ),
    },
)

APPOINTMENT_SCHEDULER = CapabilityDeclaration(
    name="appointmentScheduler",
    description="Manages appointments: scheduling, rescheduling, cancelling, and availability.",
    identity=AgentType.AS,
    parameters={
        "action": ParameterSpec(
            type="string", required=True,
            description="One of: 'schedule', 'reschedule', 'cancel', 'check_availability'",
        ),
        "details": ParameterSpec(
            type="object",
            description="Appointment details (date, time, doctor, specialty, patient, appointmentId).",
            properties={
                "date": ParameterSpec(type="string"),
                "time": ParameterSpec(type="string"),
                "doctor": ParameterSpec(type="string"),
                "specialty": ParameterSpec(type="string"),
                "patient": ParameterSpec(type="string"),
                "appointmentId": ParameterSpec(type="string"),
            },
        ),
    },
)

MEDICAL_RECORDS = CapabilityDeclaration(
    name="medicalRecordsAssistant",
    description="Accesses medical records, summaries, and generates formal reports.",
    identity=AgentType.MRA,
    parameters={
        "action": ParameterSpec(type="string", required=True, description="One of: 'get_summary', 'generate_document'"),
        "patientName": ParameterSpec(type="string", required=True, description="Name of the patient."),
    },
)

BILLING_SUPPORT = CapabilityDeclaration(
    name="billingAndInsuranceSupport",
    description="Handles billing inquiries, insurance coverage, and payment options.",
    identity=AgentType.BIS,
    parameters={
        "queryType": ParameterSpec(type="string", required=True, description="One of: 'check_bill', 'insurance', 'general_info'"),
        "details": ParameterSpec(type="string", description="Additional context like invoice ID, patient name or insurance provider name."),
    },
)

EXTERNAL_SEARCH = CapabilityDeclaration(
    name="externalSearch",
    description="Searches the web for general health or public information not held by any hospital department.",
    identity=AgentType.SEARCH,
    parameters={
        "query": ParameterSpec(type="string", required=True, description="The question to search for."),
    },
)

DECLARATIONS: List[CapabilityDeclaration] = [
    PATIENT_INFORMATION,
    APPOINTMENT_SCHEDULER,
    MEDICAL_RECORDS,
    BILLING_SUPPORT,
    EXTERNAL_SEARCH,
]


# -------- Executors ------------------------------------------------------------
class DepartmentExecutor(CapabilityExecutor):
    """
    Calls a department function as handler(args[action_key], args[payload_key]).

    Missing keys arrive as None and the department answers with an error
    payload. Anything that still escapes the function is caught here.
    """

    def __init__(self, name: str, handler: Callable[[Any, Any], str], action_key: str, payload_key: str) -> None:

        self.name = name
        self.handler = handler
        self.action_key = action_key
        self.payload_key = payload_key

    def execute(self, args: Optional[Dict[str, Any]]) -> str:

        args = args if isinstance(args, dict) else {}

        try:
            return self.handler(args.get(self.action_key), args.get(self.payload_key))
        except Exception as e:
            logger.exception("department_failed", capability=self.name)
            return json.dumps({"status": "error", "message": f"{self.name} failed: {e}"})


class SearchExecutor(CapabilityExecutor):

    def __init__(self, searcher: Any) -> None:

        self.searcher = searcher

    def execute(self, args: Optional[Dict[str, Any]]) -> str:

        args = args if isinstance(args, dict) else {}

        try:
            return external_search(self.searcher, args.get("query"))
        except Exception as e:
            logger.exception("department_failed", capability=EXTERNAL_SEARCH.name)
            return json.dumps({"status": "error", "message": f"{EXTERNAL_SEARCH.name} failed: {e}"})


# -------- Registry -------------------------------------------------------------
def build_registry(hospital: Hospital, searcher: Any, *, export_dir: Path = EXPORT_DIR) -> CapabilityRegistry:
    """
    The hospital registry, in the order the model sees it.

    Args:
        hospital: Session store the departments read and write.
        searcher: Backend for externalSearch (an OpenAIChatModel in the app).
        export_dir: Where the records department writes generated PDFs.
    """

    registry = CapabilityRegistry()

    registry.register(PATIENT_INFORMATION, DepartmentExecutor(
        PATIENT_INFORMATION.name, partial(patient_information_handler, hospital), "action", "details"))
    registry.register(APPOINTMENT_SCHEDULER, DepartmentExecutor(
        APPOINTMENT_SCHEDULER.name, partial(appointment_scheduler, hospital), "action", "details"))
    registry.register(MEDICAL_RECORDS, DepartmentExecutor(
        MEDICAL_RECORDS.name, partial(medical_records_assistant, hospital, export_dir=export_dir), "action", "patientName"))
    registry.register(BILLING_SUPPORT, DepartmentExecutor(
        BILLING_SUPPORT.name, partial(billing_support, hospital), "queryType", "details"))
    registry.register(EXTERNAL_SEARCH, SearchExecutor(searcher))

    return registry
