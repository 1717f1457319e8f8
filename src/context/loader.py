"""
src/context/loader.py

Loads the seed hospital data (data/hospital.json) into an in-memory session store.
Department tools read and append to it; nothing is written back to disk.
"""


import copy
import json
import threading
from pathlib import Path
from typing import Any, Dict, List

from config import DATA_PATH


class Hospital:

    def __init__(self, data: Dict[str, Any]):

        data = copy.deepcopy(data)
        self.patients: List[Dict[str, Any]] = data.get("patients", [])
        self.doctors: List[Dict[str, Any]] = data.get("doctors", [])
        self.slots: List[str] = data.get("slots", [])
        self.appointments: List[Dict[str, Any]] = data.get("appointments", [])
        self.records: List[Dict[str, Any]] = data.get("records", [])
        self.bills: List[Dict[str, Any]] = data.get("bills", [])
        self.insurance: List[Dict[str, Any]] = data.get("insurance", [])
        self.billing_info: str = data.get("billing_info", "")

        # calls in one round may run on different threads
        self.lock = threading.RLock()


def load_hospital(path: Path = DATA_PATH) -> Hospital:

    if not path.exists():
        raise FileNotFoundError(f"Hospital data file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    # Sanity checks
    required = ["patients", "appointments", "records", "bills"]

    for key in required:
        if key not in data:
            raise ValueError(f"hospital.json missing '{key}'")

    return Hospital(data)
