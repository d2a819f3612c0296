from __future__ import annotations

from pathlib import Path

import pytest

from sbs_pipeline.config import Settings, get_settings


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("SBS_DATA_DIR", "SBS_OUTPUT_DIR", "SBS_LAG_MODE", "SBS_NPARTITIONS",
                 "SBS_STRICT_STRUCTURE", "SBS_STRICT_QUALITY", "SBS_PRODUCTIVITY_MAX"):
        monkeypatch.delenv(name, raising=False)
    s = get_settings()
    assert s == Settings()
    assert s.tables_dir == Path("output/tables")
    assert s.raw_dir == Path("data/raw")


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SBS_LAG_MODE", "calendar")
    monkeypatch.setenv("SBS_STRICT_STRUCTURE", "true")
    monkeypatch.setenv("SBS_NPARTITIONS", "2")
    s = get_settings()
    assert s.lag_mode == "calendar"
    assert s.strict_structure is True
    assert s.npartitions == 2


@pytest.mark.parametrize(
    "name,value",
    [("SBS_LAG_MODE", "weekly"), ("SBS_STRICT_QUALITY", "maybe"), ("SBS_NPARTITIONS", "0")],
)
def test_invalid_settings_raise(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(RuntimeError):
        get_settings()
