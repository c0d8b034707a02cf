"""Configuration loaded from .env"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# History store
HISTORY_PATH = Path(os.getenv("METRIX_HISTORY_PATH", "metrix_history.json"))
SEED_DAYS = int(os.getenv("METRIX_SEED_DAYS", "270"))
SEED = int(os.getenv("METRIX_SEED", "42"))

# Advisory LLM
LLM_MODEL = os.getenv("METRIX_LLM_MODEL", "gemini/gemini-2.5-flash")
LLM_TEMPERATURE = float(os.getenv("METRIX_LLM_TEMPERATURE", "0.3"))


def google_api_key() -> str:
    """Read at call time so tests and late .env edits are honoured."""
    return os.getenv("GOOGLE_API_KEY", "").strip()
