"""
src/tools/patients.py — Patient Information Handler (PIH)

This module provides:
- patient_information_handler(h, action, details): register | update | get patient demographics

Every call returns a JSON string and never raises on bad input: missing or
malformed details come back as {"status": "error", "message": ...}, and a
lookup miss is {"status": "not_found"} so the model can offer to register
the patient instead.

Name matching is fuzzy (see context.selectors.get_patient_by_name), so
"john" finds "John Doe".
"""


from __future__ import annotations

import json
from typing import Any, Dict, Optional

import structlog

from context import selectors
from context.loader import Hospital


logger = structlog.get_logger(__name__)

_DEMOGRAPHIC_FIELDS = ("name", "dob", "address")


def _as_details(details: Any) -> Dict[str, Any]:
    """Internal: the model sometimes sends a bare string; treat it as a name."""

    if isinstance(details, dict):
        return details
    if isinstance(details, str) and details.strip():
        return {"name": details.strip()}

    return {}

def _register(h: Hospital, details: Dict[str, Any]) -> Dict[str, Any]:

    name = str(details.get("name") or "").strip()

    if not name:
        return {"status": "error", "message": "A patient name is required to register."}

    with h.lock:
        patient = {
            "id": selectors.next_id([p["id"] for p in h.patients], "P-", start=1000),
            "name": name,
            "dob": details.get("dob"),
            "address": details.get("address"),
        }
        h.patients.append(patient)

    return {
        "status": "success",
        "message": "Patient registered successfully.",
        "patientId": patient["id"],
        "details": patient,
    }

def _get(h: Hospital, details: Dict[str, Any]) -> Dict[str, Any]:

    name = details.get("name")

    if not name:
        return {"status": "error", "message": "Provide a patient name to search for."}

    patient = selectors.get_patient_by_name(h, str(name))

    if patient:
        return {"status": "found", "data": patient}

    return {"status": "not_found", "message": "Patient not found in registry."}

def _update(h: Hospital, details: Dict[str, Any]) -> Dict[str, Any]:

    patient = selectors.get_patient_by_name(h, str(details.get("name") or ""))

    if not patient:
        return {"status": "not_found", "message": "Patient not found in registry."}

    changes = {k: details[k] for k in _DEMOGRAPHIC_FIELDS if k != "name" and details.get(k)}

    if not changes:
        return {"status": "error", "message": "No changes supplied (expected dob and/or address)."}

    with h.lock:
        patient.update(changes)

    return {"status": "success", "message": "Patient details updated.", "patientId": patient["id"], "changes": changes}


# --- Public API ----------------------------------------------------------------
def patient_information_handler(h: Hospital, action: Optional[str], details: Any = None) -> str:
    """
    Handle patient demographics.

    Args:
        h: The session's Hospital store.
        action: "register" | "update" | "get".
        details: {"name", "dob", "address"}; for "get" only the name is used.

    Returns:
        JSON text. Shapes:
          register -> {"status": "success", "patientId": "P-....", "details": {...}}
          get      -> {"status": "found", "data": {...}} | {"status": "not_found", ...}
          update   -> {"status": "success", "changes": {...}} | {"status": "not_found", ...}
          other    -> {"status": "error", "message": "Unknown PIH action."}
    """

    logger.debug("pih_call", action=action)
    data = _as_details(details)

    if action == "register":
        out = _register(h, data)
    elif action == "get":
        out = _get(h, data)
    elif action == "update":
        out = _update(h, data)
    else:
        out = {"status": "error", "message": "Unknown PIH action."}

    return json.dumps(out, ensure_ascii=False)
