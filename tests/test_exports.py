"""
Unit tests for JSON/CSV/PDF exports.
"""

import csv
import json

import pytest

from tools.exports import export_csv, export_json, export_medical_report_pdf


def test_export_json_creates_parent_dirs(tmp_path):
    path = export_json({"a": [1, 2]}, tmp_path / "nested" / "out.json")

    assert json.loads(open(path, encoding="utf-8").read()) == {"a": [1, 2]}


def test_export_csv(tmp_path):
    rows = [{"capability": "Appointment Scheduler", "action": "schedule"}, {"capability": "External Search", "action": "processing"}]

    path = export_csv(rows, tmp_path / "activity.csv")

    with open(path, newline="", encoding="utf-8") as f:
        assert list(csv.DictReader(f)) == rows


def test_export_csv_rejects_empty(tmp_path):
    with pytest.raises(ValueError):
        export_csv([], tmp_path / "empty.csv")


def test_export_medical_report_pdf(tmp_path):
    patient = {"id": "P-1", "name": "Test Patient", "dob": None, "address": "1 Road"}
    record = {"history": "None.", "recent_visits": [], "allergies": None}

    path = export_medical_report_pdf(patient, record, tmp_path / "report.pdf")

    assert open(path, "rb").read(4) == b"%PDF"
