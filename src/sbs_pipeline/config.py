"""Configuration helpers and Settings container.

This module provides a small `Settings` dataclass and `get_settings` which
reads the pipeline's environment variables (directories, strict/lenient
failure switches and indicator options).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

LAG_MODES = ("rows", "calendar")


@dataclass(frozen=True)
class Settings:
    """Container for pipeline configuration read from the environment.

    Attributes:
        data_dir: Root of the raw/clean/processed data layers.
        output_dir: Root of the published output tables.
        strict_structure: Raise instead of warn on duplicate or orphan keys.
        strict_quality: Raise instead of warn on data-quality findings.
        lag_mode: "rows" (N rows back per firm) or "calendar" (N months back).
        npartitions: Number of Dask partitions for per-firm transforms.
        productivity_max: Upper plausibility bound for monthly productivity.
        current_year: Upper bound for foundation years (None = today).
    """
    data_dir: Path = Path("data")
    output_dir: Path = Path("output")
    strict_structure: bool = False
    strict_quality: bool = False
    lag_mode: str = "rows"
    npartitions: int = 4
    productivity_max: float = 1e7
    current_year: int | None = None

    @property
    def raw_dir(self) -> Path:
        return self.data_dir / "raw"

    @property
    def clean_dir(self) -> Path:
        return self.data_dir / "clean"

    @property
    def processed_dir(self) -> Path:
        return self.data_dir / "processed"

    @property
    def tables_dir(self) -> Path:
        return self.output_dir / "tables"


def _env_flag(name: str) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if raw in ("", "0", "false", "no", "off"):
        return False
    if raw in ("1", "true", "yes", "on"):
        return True
    raise RuntimeError(f"{name} must be a boolean flag (true/false), got {raw!r}.")


def get_settings() -> Settings:
    """Read environment variables and return a frozen `Settings` object.

    Raises:
        RuntimeError: if `SBS_LAG_MODE`, `SBS_NPARTITIONS`,
            `SBS_PRODUCTIVITY_MAX` or a strict flag holds an invalid value.
    """
    data_dir = Path(os.getenv("SBS_DATA_DIR", "data"))
    output_dir = Path(os.getenv("SBS_OUTPUT_DIR", "output"))
    lag_mode = os.getenv("SBS_LAG_MODE", "rows").strip().lower()

    if lag_mode not in LAG_MODES:
        raise RuntimeError(
            f"SBS_LAG_MODE must be one of {', '.join(LAG_MODES)}; got {lag_mode!r}."
        )

    try:
        npartitions = int(os.getenv("SBS_NPARTITIONS", "4"))
        productivity_max = float(os.getenv("SBS_PRODUCTIVITY_MAX", "1e7"))
    except ValueError as exc:
        raise RuntimeError(f"Invalid numeric pipeline setting: {exc}") from exc

    if npartitions < 1:
        raise RuntimeError("SBS_NPARTITIONS must be at least 1.")

    return Settings(
        data_dir=data_dir,
        output_dir=output_dir,
        strict_structure=_env_flag("SBS_STRICT_STRUCTURE"),
        strict_quality=_env_flag("SBS_STRICT_QUALITY"),
        lag_mode=lag_mode,
        npartitions=npartitions,
        productivity_max=productivity_max,
    )
