from __future__ import annotations

import json
from pathlib import Path

import pytest

from billdocs import config


def test_profile_overrides_only_non_empty_strings(tmp_path: Path) -> None:
    path = tmp_path / "company.json"
    path.write_text(json.dumps({"email": " sales@example.com ", "phone": "", "address": 12}), encoding="utf-8")
    profile = config.load_company_profile(path)
    assert profile == dict(config.DEFAULT_COMPANY, email="sales@example.com")


def test_missing_explicit_profile(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        config.load_company_profile(tmp_path / "absent.json")


def test_profile_must_be_an_object(tmp_path: Path) -> None:
    path = tmp_path / "company.json"
    path.write_text(json.dumps(["123 Main St"]), encoding="utf-8")
    with pytest.raises(ValueError, match="JSON object"):
        config.load_company_profile(path)
