"""
src/context/selectors.py

Read helpers over the in-memory Hospital store. Name lookups are fuzzy
(RapidFuzz) so "john" finds "John Doe" and "dr chen" finds "Dr. Emily Chen",
while "Jane Doe" finds nobody: every word of the query has to agree with a
word of the stored name, and honorifics ("Dr.", "Mrs.") are ignored.
"""


from typing import Dict, List, Optional, Tuple

from rapidfuzz import fuzz, process

from .loader import Hospital


# Below this token_set_ratio score a name is treated as "no match"
MATCH_THRESHOLD = 85

_HONORIFICS = {"dr", "doctor", "mr", "mrs", "ms", "miss", "prof"}


def _normalise(s: str) -> str:

    words = s.replace(".", " ").replace(",", " ").lower().split()

    return " ".join(w for w in words if w not in _HONORIFICS)

def find_patient_candidates(h: Hospital, query: str, limit: int = 5) -> List[Tuple[Dict, int]]:
    """Return [(patient, score), ...] at or above MATCH_THRESHOLD, best first."""

    needle = _normalise(query or "")

    if not needle or not h.patients:
        return []

    names = [_normalise(p["name"]) for p in h.patients]
    matches = process.extract(needle, names, scorer=fuzz.token_set_ratio, limit=limit, score_cutoff=MATCH_THRESHOLD)

    # matches: [(name, score, index)]
    return [(h.patients[idx], int(score)) for _name, score, idx in matches]

def get_patient_by_name(h: Hospital, name: Optional[str]) -> Optional[Dict]:

    candidates = find_patient_candidates(h, name or "", limit=1)

    return candidates[0][0] if candidates else None

def get_patient_by_id(h: Hospital, patient_id: str) -> Optional[Dict]:

    return next((p for p in h.patients if p["id"] == patient_id), None)

def resolve_doctor(h: Hospital, query: Optional[str]) -> Optional[Dict]:
    """Best fuzzy match among doctors, or None."""

    needle = _normalise(query or "")

    if not needle or not h.doctors:
        return None

    names = [_normalise(d["name"]) for d in h.doctors]
    match = process.extractOne(needle, names, scorer=fuzz.token_set_ratio, score_cutoff=MATCH_THRESHOLD)

    return h.doctors[match[2]] if match else None

def get_appointment_by_id(h: Hospital, appointment_id: Optional[str]) -> Optional[Dict]:

    if not appointment_id:
        return None

    return next((a for a in h.appointments if a["id"].lower() == str(appointment_id).lower()), None)

def get_record_for_patient(h: Hospital, patient_id: str) -> Optional[Dict]:

    return next((r for r in h.records if r["patient_id"] == patient_id), None)

def get_bills_for_patient(h: Hospital, patient_id: str) -> List[Dict]:

    return [b for b in h.bills if b["patient_id"] == patient_id]

def get_bill_by_invoice(h: Hospital, invoice_id: Optional[str]) -> Optional[Dict]:

    if not invoice_id:
        return None

    return next((b for b in h.bills if b["invoice_id"].lower() == str(invoice_id).lower()), None)

def get_insurance_for_patient(h: Hospital, patient_id: str) -> Optional[Dict]:

    return next((i for i in h.insurance if i["patient_id"] == patient_id), None)

def find_insurance_by_provider(h: Hospital, provider: Optional[str]) -> Optional[Dict]:

    if not provider:
        return None

    needle = provider.strip().lower()

    return next((i for i in h.insurance if needle in i["provider"].lower()), None)

def next_id(existing: List[str], prefix: str, start: int = 1) -> str:
    """
    Next id with `prefix` from the largest numeric tail among `existing`,
    e.g. ['P-1024', 'P-9921'] -> 'P-9922'.
    """

    best = 0

    for value in existing:
        tail = "".join(ch for ch in str(value) if ch.isdigit())
        if tail:
            best = max(best, int(tail))

    return f"{prefix}{best + 1 if best else start}"
