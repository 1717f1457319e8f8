"""
src/config.py

Identities, limits and environment-driven settings for the Hospital System Coordinator.
"""


import os
from enum import Enum
from pathlib import Path
from typing import Dict

from orchestrator.errors import ConfigurationError


class AgentType(str, Enum):
    """Logical department identities shown in the UI and credited with answers."""

    HSC = "Hospital System Coordinator"
    PIH = "Patient Information Handler"
    AS = "Appointment Scheduler"
    MRA = "Medical Records Assistant"
    BIS = "Billing & Insurance Support"
    SEARCH = "External Search"

class Currency(str, Enum):

    USD = "USD"
    GBP = "GBP"
    EUR = "EUR"


# Defaults
DEFAULT_AGENT: AgentType = AgentType.HSC
DEFAULT_CURRENCY: Currency = Currency.USD
API_KEY_ENV = "OPENAI_API_KEY"

DEFAULT_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
SEARCH_MODEL: str = os.getenv("HSC_SEARCH_MODEL", "gpt-4o-mini-search-preview")
MODEL_TEMPERATURE: float = 0.2

MAX_TOOL_ROUNDS: int = int(os.getenv("HSC_MAX_TOOL_ROUNDS", "8"))
MAX_WORKERS: int = int(os.getenv("HSC_MAX_WORKERS", "4"))
EXECUTOR_TIMEOUT_S: float = float(os.getenv("HSC_EXECUTOR_TIMEOUT_S", "10"))

LOG_LEVEL: str = os.getenv("HSC_LOG_LEVEL", "INFO")
LOG_FORMAT: str = os.getenv("HSC_LOG_FORMAT", "console")      # "console" | "json"

ROOT_DIR = Path(__file__).resolve().parents[1]
DATA_PATH = Path(os.getenv("HSC_DATA_PATH", str(ROOT_DIR / "data" / "hospital.json")))
EXPORT_DIR = Path(os.getenv("HSC_EXPORT_DIR", str(ROOT_DIR / "exports")))

CURRENCY_SYMBOLS: Dict[str, str] = {
    "USD": "$",
    "GBP": "£",
    "EUR": "€"
}


def get_api_key() -> str:
    """
    Return the model-provider API key from the environment.

    Raises:
        ConfigurationError if the key is missing or blank. The message is meant
        to be shown to the user as-is.
    """

    key = (os.getenv(API_KEY_ENV) or "").strip()

    if not key:
        raise ConfigurationError(
            f"API key is missing. Set {API_KEY_ENV} in the environment and restart the app."
        )

    return key

def format_money(amount: float, currency: Currency = DEFAULT_CURRENCY) -> str:
    """Very simple currency formatter"""

    sym = CURRENCY_SYMBOLS[Currency(currency).value]

    return f"{sym}{amount:,.2f}"
# EOF
