"""
src/tools/exports.py — export session data in JSON, CSV, and PDF formats.

Provides:
- export_json(obj, path): write JSON to file (transcript download)
- export_csv(records, path): write list-of-dicts to CSV (activity log download)
- export_medical_report_pdf(patient, record, path): render a medical report to PDF (ReportLab)

Notes:
- JSON/CSV exports are straightforward: full fidelity of dicts.
- The PDF is a minimal demo layout: header, demographics table, history, visits.
"""


import csv
import json
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Union

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle


PathLike = Union[str, Path]


def _prepare(path: PathLike) -> Path:

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    return p


# --- JSON ----------------------------------------------------------------------
def export_json(obj: Any, path: PathLike) -> str:
    """
    Export any serialisable object as JSON.

    Args:
        obj: Python dict/list/primitive (datetimes are written with str())
        path: file path for saving

    Returns: path
    """

    p = _prepare(path)
    with p.open("w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False, default=str)

    return str(p)


# --- CSV -----------------------------------------------------------------------
def export_csv(records: List[Dict[str, Any]], path: PathLike) -> str:
    """
    Export list of dicts to CSV. Uses the first record's keys as headers.

    Args:
        records: e.g. the activity log as dicts
        path: file path for saving

    Returns: path
    """

    if not records:
        raise ValueError("No records to export.")

    p = _prepare(path)
    headers = list(records[0].keys())
    with p.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=headers, extrasaction="ignore")
        writer.writeheader()
        for r in records:
            writer.writerow(r)

    return str(p)


# --- PDF -----------------------------------------------------------------------
def export_medical_report_pdf(patient: Dict[str, Any], record: Dict[str, Any], path: PathLike) -> str:
    """
    Export a single patient's medical report to PDF (minimal demo layout).

    Args:
        patient: patient dict (id, name, dob, address)
        record: medical record dict (history, recent_visits, allergies)
        path: file path for saving

    Returns: path
    """

    p = _prepare(path)
    doc = SimpleDocTemplate(str(p), pagesize=A4)
    styles = getSampleStyleSheet()
    elements = []

    elements.append(Paragraph(f"<b>Medical Report: {patient['name']}</b>", styles["Title"]))
    elements.append(Paragraph(f"Generated: {date.today().isoformat()}. Confidential.", styles["Normal"]))
    elements.append(Spacer(1, 12))

    # Demographics table
    data = [
        ["Patient ID", patient.get("id") or "-"],
        ["Date of birth", patient.get("dob") or "-"],
        ["Address", patient.get("address") or "-"],
        ["Allergies", record.get("allergies") or "-"],
    ]
    table = Table(data, colWidths=[120, 330])
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (0, -1), colors.lightgrey),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
    ]))
    elements.append(table)
    elements.append(Spacer(1, 12))

    elements.append(Paragraph("<b>History</b>", styles["Heading2"]))
    elements.append(Paragraph(record.get("history") or "No history on file.", styles["Normal"]))
    elements.append(Spacer(1, 12))

    elements.append(Paragraph("<b>Recent visits</b>", styles["Heading2"]))
    for visit in record.get("recent_visits") or ["None recorded."]:
        elements.append(Paragraph(visit, styles["Normal"]))

    doc.build(elements)

    return str(p)
