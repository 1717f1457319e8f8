"""
src/tools/appointments.py — Appointment Scheduler (AS)

This module provides:
- appointment_scheduler(h, action, details): schedule | reschedule | cancel | check_availability

Appointments live in the in-memory Hospital store for the session. Doctor
names are resolved fuzzily ("Dr. Chen" -> "Dr. Emily Chen"); an unknown
doctor is kept as typed rather than rejected.

New ids continue the store's numeric sequence (APT-55 -> APT-56), so the same
conversation replayed against the same seed data produces the same ids.
"""


from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import structlog

from context import selectors
from context.loader import Hospital


logger = structlog.get_logger(__name__)


def _booked_slots(h: Hospital, doctor: Optional[str]) -> set:

    return {
        f"{a.get('date')} {a.get('time')}"
        for a in h.appointments
        if a.get("status") != "cancelled" and (doctor is None or a.get("doctor") == doctor)
    }

def _doctor_name(h: Hospital, details: Dict[str, Any]) -> Optional[str]:

    raw = details.get("doctor")
    doctor = selectors.resolve_doctor(h, raw)

    return doctor["name"] if doctor else raw

def _check_availability(h: Hospital, details: Dict[str, Any]) -> Dict[str, Any]:

    doctor = _doctor_name(h, details)
    booked = _booked_slots(h, doctor)
    slots: List[str] = [s for s in h.slots if s not in booked]
    out: Dict[str, Any] = {"status": "available" if slots else "unavailable", "slots": slots}

    if doctor:
        out["doctor"] = doctor

    return out

def _schedule(h: Hospital, details: Dict[str, Any]) -> Dict[str, Any]:

    if not (details.get("date") or details.get("time")):
        return {"status": "error", "message": "A date or time is required to schedule an appointment."}

    booked = dict(details)
    doctor = _doctor_name(h, details)
    if doctor:
        booked["doctor"] = doctor

    with h.lock:
        appointment = {
            "id": selectors.next_id([a["id"] for a in h.appointments], "APT-", start=1),
            "patient": details.get("patient"),
            "date": details.get("date"),
            "time": details.get("time"),
            "doctor": booked.get("doctor"),
            "specialty": details.get("specialty"),
            "status": "confirmed",
        }
        h.appointments.append(appointment)

    return {
        "status": "confirmed",
        "appointmentId": appointment["id"],
        "details": booked,
        "note": "Confirmation email sent.",
    }

def _reschedule(h: Hospital, details: Dict[str, Any]) -> Dict[str, Any]:

    appointment_id = details.get("appointmentId")
    appointment = selectors.get_appointment_by_id(h, appointment_id)

    if appointment_id and not appointment:
        return {"status": "not_found", "message": f"Appointment {appointment_id} not found."}

    new_slot = {k: v for k, v in details.items() if k != "appointmentId" and v}
    old_slot = "Previous Slot"

    if appointment:
        old_slot = f"{appointment.get('date')} {appointment.get('time')}"
        with h.lock:
            for key in ("date", "time", "doctor"):
                if new_slot.get(key):
                    appointment[key] = new_slot[key]

    return {
        "status": "rescheduled",
        "oldAppointment": old_slot,
        "newAppointment": new_slot,
        "message": "Appointment moved successfully.",
    }

def _cancel(h: Hospital, details: Dict[str, Any]) -> Dict[str, Any]:

    appointment_id = details.get("appointmentId")
    appointment = selectors.get_appointment_by_id(h, appointment_id)

    if appointment:
        with h.lock:
            appointment["status"] = "cancelled"

    return {"status": "cancelled", "appointmentId": appointment_id or "Unknown"}


# --- Public API ----------------------------------------------------------------
def appointment_scheduler(h: Hospital, action: Optional[str], details: Any = None) -> str:
    """
    Manage appointments.

    Args:
        h: The session's Hospital store.
        action: "schedule" | "reschedule" | "cancel" | "check_availability".
        details: {"date", "time", "doctor", "specialty", "patient", "appointmentId"} (all optional).

    Returns:
        JSON text, e.g. {"status": "confirmed", "appointmentId": "APT-56", ...}
        or {"status": "error", "message": "Unknown AS action."}.
    """

    logger.debug("as_call", action=action)
    data = details if isinstance(details, dict) else {}

    if action == "check_availability":
        out = _check_availability(h, data)
    elif action == "schedule":
        out = _schedule(h, data)
    elif action == "reschedule":
        out = _reschedule(h, data)
    elif action == "cancel":
        out = _cancel(h, data)
    else:
        out = {"status": "error", "message": "Unknown AS action."}

    return json.dumps(out, ensure_ascii=False)
