from __future__ import annotations

from pathlib import Path
from typing import Dict
import json


BASE_DIR = Path(__file__).resolve().parents[1]
PACKAGE_DIR = Path(__file__).resolve().parent
OUT_DIR = BASE_DIR / "out"
DB_PATH = OUT_DIR / "billdocs.db"
TEMPLATE_DIR = PACKAGE_DIR / "templates"
COMPANY_PROFILE_PATH = BASE_DIR / "assets" / "company.json"

# Page capacities are empirical: each template shape has a fixed amount of
# vertical space for item rows.
SINGLE_PAGE_MAX = 8
SHORT_FIRST_PAGE_MAX = 13
LONG_FIRST_PAGE_MAX = 16
CONTINUATION_PAGE_MAX = 18

LEDGER_SINGLE_PAGE_MAX = 18
LEDGER_FIRST_PAGE_MAX = 20
LEDGER_CONTINUATION_PAGE_MAX = 22

NOT_AVAILABLE = "N/A"
EMPTY_NOTES_TEXT = "No additional notes"
OPEN_PERIOD_TEXT = "Forever"
SUPPLIER_ENTITY_TYPE = "Supplier"

HOUSE_CASH_ID = "myself_special_id"
HOUSE_BANK_ID = "myself_bank_special_id"
# History tabs that list house-account movements only.
HOUSE_TABS = ("Cash", "Bank")

DEFAULT_COMPANY: Dict[str, str] = {
    "address": "123 Business Avenue, Suite 100, City, State 12345",
    "email": "info@aromex.com",
    "phone": "(123) 456-7890",
}


def load_company_profile(path: Path | None = None) -> Dict[str, str]:
    profile_path = path or COMPANY_PROFILE_PATH
    profile = dict(DEFAULT_COMPANY)
    if not profile_path.exists():
        if path is not None:
            raise FileNotFoundError(f"Company profile not found: {profile_path}")
        return profile
    with profile_path.open("r", encoding="utf-8") as handle:
        loaded = json.load(handle)
    if not isinstance(loaded, dict):
        raise ValueError(f"Company profile must be a JSON object: {profile_path}")
    for key in DEFAULT_COMPANY:
        value = loaded.get(key)
        if isinstance(value, str) and value.strip():
            profile[key] = value.strip()
    return profile


def set_out_dir(path: Path) -> None:
    global OUT_DIR, DB_PATH
    OUT_DIR = path
    DB_PATH = OUT_DIR / "billdocs.db"
