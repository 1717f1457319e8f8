"""
src/tools/records.py — Medical Records Assistant (MRA)

This module provides:
- medical_records_assistant(h, action, patient_name, export_dir): get_summary | generate_document

get_summary returns the patient's history, recent visits and allergies.
generate_document renders the same record to a PDF (see tools.exports) and
returns where it was written plus a short preview for the chat.
"""


from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import structlog

from config import EXPORT_DIR
from context import selectors
from context.loader import Hospital
from tools.exports import export_medical_report_pdf


logger = structlog.get_logger(__name__)


def _lookup(h: Hospital, patient_name: Optional[str]) -> Tuple[Optional[Dict], Optional[Dict], Optional[Dict[str, Any]]]:
    """Internal: (patient, record, error_payload). Exactly one of record/error is set."""

    if not isinstance(patient_name, str) or not patient_name.strip():
        return None, None, {"status": "error", "message": "A patient name is required."}

    patient = selectors.get_patient_by_name(h, patient_name)
    if not patient:
        return None, None, {"status": "not_found", "message": f"No patient named '{patient_name}' in the registry."}

    record = selectors.get_record_for_patient(h, patient["id"])
    if not record:
        return patient, None, {"status": "not_found", "message": f"No medical record on file for {patient['name']}."}

    return patient, record, None

def _slug(s: str) -> str:

    return re.sub(r"[^a-z0-9]+", "-", s.lower()).strip("-")


# --- Public API ----------------------------------------------------------------
def medical_records_assistant(
        h: Hospital,
        action: Optional[str],
        patient_name: Optional[str] = None,
        *,
        export_dir: Path = EXPORT_DIR,
) -> str:
    """
    Access medical records and generate formal reports.

    Args:
        h: The session's Hospital store.
        action: "get_summary" | "generate_document".
        patient_name: Name of the patient (fuzzy matched).
        export_dir: Where generated PDFs go.

    Returns:
        JSON text:
          get_summary       -> {"patient", "history", "recentVisits", "allergies"}
          generate_document -> {"status": "generated", "docType", "path", "content_preview"}
          unknown patient   -> {"status": "not_found", "message": ...}
          other action      -> {"status": "error", "message": "Unknown MRA action."}
    """

    logger.debug("mra_call", action=action)

    if action not in ("get_summary", "generate_document"):
        return json.dumps({"status": "error", "message": "Unknown MRA action."})

    patient, record, error = _lookup(h, patient_name)
    if error:
        return json.dumps(error, ensure_ascii=False)

    if action == "get_summary":
        out = {
            "patient": patient["name"],
            "history": record.get("history"),
            "recentVisits": record.get("recent_visits", []),
            "allergies": record.get("allergies"),
        }
    else:
        path = Path(export_dir) / f"report-{patient['id'].lower()}-{_slug(patient['name'])}.pdf"
        written = export_medical_report_pdf(patient, record, path)
        out = {
            "status": "generated",
            "docType": "Medical Report PDF",
            "path": written,
            "content_preview": f"MEDICAL REPORT FOR {patient['name'].upper()}... [Confidential]",
        }

    return json.dumps(out, ensure_ascii=False)
