"""
src/tools/billing.py — Billing & Insurance Support (BIS)

This module provides:
- billing_support(h, query_type, details): check_bill | insurance | anything else -> general info

`details` is free text from the model (an invoice id, a patient name or an
insurer), so we pick out what we can:
  "INV-3310"          -> that invoice
  "John Doe"          -> the patient's most recent bill / their insurance
  "BlueCross"         -> the matching insurance policy
Amounts are formatted with config.format_money.
"""


from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

import structlog

from config import Currency, format_money
from context import selectors
from context.loader import Hospital


logger = structlog.get_logger(__name__)

_INVOICE_RE = re.compile(r"\bINV-\d+\b", re.IGNORECASE)


def _text(details: Any) -> str:

    if isinstance(details, str):
        return details.strip()
    if isinstance(details, dict):
        return " ".join(str(v) for v in details.values() if v)

    return ""

def _patient_from(h: Hospital, text: str) -> Optional[Dict]:

    return selectors.get_patient_by_name(h, text) if text else None

def _check_bill(h: Hospital, text: str) -> Dict[str, Any]:

    m = _INVOICE_RE.search(text)
    bill = selectors.get_bill_by_invoice(h, m.group(0)) if m else None

    if bill is None and not m:
        patient = _patient_from(h, text)
        bills = selectors.get_bills_for_patient(h, patient["id"]) if patient else []
        bill = bills[-1] if bills else None

    if bill is None:
        if not text:
            return {"status": "error", "message": "Provide an invoice ID or patient name to look up a bill."}
        return {"status": "not_found", "message": f"No bill found for '{text}'."}

    currency = Currency(bill.get("currency", "USD"))
    total = sum(float(i.get("amount", 0.0)) for i in bill.get("items", []))

    return {
        "status": bill.get("status", "outstanding"),
        "invoiceId": bill["invoice_id"],
        "amount": format_money(total, currency),
        "dueDate": bill.get("due_date"),
        "items": [f"{i['description']} - {format_money(float(i['amount']), currency)}" for i in bill.get("items", [])],
    }

def _insurance(h: Hospital, text: str) -> Dict[str, Any]:

    policy = selectors.find_insurance_by_provider(h, text)

    if policy is None:
        patient = _patient_from(h, text)
        policy = selectors.get_insurance_for_patient(h, patient["id"]) if patient else None

    if policy is None:
        if not text:
            return {"status": "error", "message": "Provide a patient name or insurance provider."}
        return {"status": "not_found", "message": f"No insurance policy found for '{text}'."}

    return {
        "status": policy.get("status", "active"),
        "provider": policy["provider"],
        "copay": format_money(float(policy.get("copay", 0.0))),
        "coverage": policy.get("coverage"),
    }


# --- Public API ----------------------------------------------------------------
def billing_support(h: Hospital, query_type: Optional[str], details: Any = None) -> str:
    """
    Handle billing inquiries, insurance coverage and payment options.

    Args:
        h: The session's Hospital store.
        query_type: "check_bill" | "insurance" | "general_info" (anything else is treated as general info).
        details: Free text such as an invoice id, patient name or insurer.

    Returns:
        JSON text, e.g. {"status": "outstanding", "amount": "$150.00", "dueDate": ..., "items": [...]}.
    """

    logger.debug("bis_call", query_type=query_type)
    text = _text(details)

    if query_type == "check_bill":
        out = _check_bill(h, text)
    elif query_type == "insurance":
        out = _insurance(h, text)
    else:
        out = {"status": "info", "message": h.billing_info}

    return json.dumps(out, ensure_ascii=False)
