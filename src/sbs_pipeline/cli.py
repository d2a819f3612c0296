"""Command-line interface for orchestrating the pipeline.

Provides subcommands: `generate`, `clean`, `integrate`, `gold`, and `all`.
Each command is implemented as a `cmd_*` function that accepts an argparse
namespace and reads/writes the CSV layers under the configured directories:

    data/raw/{firms,employment,turnover}.csv
    data/clean/{firms,employment,turnover}_clean.csv
    data/processed/panel_data.csv
    output/tables/indicators_{year,sector,region,sector_region}.csv
"""
from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from sbs_pipeline.config import Settings, get_settings
from sbs_pipeline.logging_config import configure_logging
from sbs_pipeline.storage import read_table, write_table

# RAW
from sbs_pipeline.ingest.harmonize import harmonize_registry
from sbs_pipeline.ingest.load_raw import RAW_FILES, SourceTables, load_raw_sources
from sbs_pipeline.ingest.synthetic import generate_synthetic_sources

# CLEAN / PANEL / GOLD
from sbs_pipeline.pipeline import clean_stage, gold_stage, integrate_stage
from sbs_pipeline.aggregate.load_gold import load_gold

log = logging.getLogger(__name__)

CLEAN_FILES = {name: f"{name}_clean.csv" for name in RAW_FILES}
PANEL_FILE = "panel_data.csv"


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _require(path: Path, hint: str) -> None:
    """Raise RuntimeError when an input layer file is missing."""
    if not path.exists():
        raise RuntimeError(f"{path} not found. {hint}")


def _settings(args: argparse.Namespace) -> Settings:
    """Environment settings, with the lag mode overridable from the command line."""
    s = get_settings()
    lag_mode = getattr(args, "lag_mode", None)
    if lag_mode and lag_mode != s.lag_mode:
        s = replace(s, lag_mode=lag_mode)
    return s


def _read_clean(s: Settings) -> SourceTables:
    paths = {name: s.clean_dir / fname for name, fname in CLEAN_FILES.items()}
    for p in paths.values():
        _require(p, "Run clean first.")
    return SourceTables(
        firms=harmonize_registry(read_table(paths["firms"])),
        employment=read_table(paths["employment"]),
        turnover=read_table(paths["turnover"]),
    )


# --------------------------------------------------
# GENERATE
# --------------------------------------------------
def cmd_generate(args: argparse.Namespace) -> None:
    """Write synthetic raw source tables to `data/raw`.

    Args:
        args: argparse namespace with `n_firms`, `months`, `start`, `seed`.
    """
    s = _settings(args)
    firms, employment, turnover = generate_synthetic_sources(
        n_firms=args.n_firms, start=args.start, n_months=args.months, seed=args.seed
    )
    write_table(firms, s.raw_dir / RAW_FILES["firms"])
    write_table(employment, s.raw_dir / RAW_FILES["employment"])
    write_table(turnover, s.raw_dir / RAW_FILES["turnover"])
    log.info("Synthetic raw sources written to %s", s.raw_dir)


# --------------------------------------------------
# CLEAN
# --------------------------------------------------
def cmd_clean(args: argparse.Namespace) -> None:
    """Validate and clean the raw sources and write the Clean layer."""
    s = _settings(args)
    for fname in RAW_FILES.values():
        _require(s.raw_dir / fname, "Run generate (or place raw tables) first.")

    sources = load_raw_sources(s.raw_dir, strict=s.strict_quality)
    clean, _, _ = clean_stage(sources, s)

    write_table(clean.firms, s.clean_dir / CLEAN_FILES["firms"])
    write_table(clean.employment, s.clean_dir / CLEAN_FILES["employment"])
    write_table(clean.turnover, s.clean_dir / CLEAN_FILES["turnover"])
    log.info("Clean layer written to %s", s.clean_dir)


# --------------------------------------------------
# INTEGRATE
# --------------------------------------------------
def cmd_integrate(args: argparse.Namespace) -> None:
    """Build the panel with indicators from the Clean layer."""
    s = _settings(args)
    clean = _read_clean(s)
    panel, _ = integrate_stage(clean, s)
    write_table(panel, s.processed_dir / PANEL_FILE)


# --------------------------------------------------
# GOLD
# --------------------------------------------------
def cmd_gold(args: argparse.Namespace) -> None:
    """Aggregate the panel into the Gold indicator tables."""
    s = _settings(args)
    panel_path = s.processed_dir / PANEL_FILE
    _require(panel_path, "Run integrate first.")

    panel = read_table(panel_path)
    if panel.empty:
        raise RuntimeError(f"{panel_path} is empty. Run integrate first.")

    tables, _ = gold_stage(panel, s)
    load_gold(tables, s.tables_dir)
    log.info("Gold layer successfully generated.")


# --------------------------------------------------
# ALL
# --------------------------------------------------
def cmd_all(args: argparse.Namespace) -> None:
    """Convenience: run clean → integrate → gold (and generate with --generate)."""
    if args.generate:
        cmd_generate(args)
    cmd_clean(args)
    cmd_integrate(args)
    cmd_gold(args)


# --------------------------------------------------
# CLI
# --------------------------------------------------
def _add_generate_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--n-firms", type=int, default=1500)
    p.add_argument("--months", type=int, default=24)
    p.add_argument("--start", default="2023-01-01")
    p.add_argument("--seed", type=int, default=2025)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    The returned parser has subcommands `generate`, `clean`, `integrate`,
    `gold`, and `all`.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    p = argparse.ArgumentParser(prog="sbs_pipeline")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_generate = sub.add_parser("generate")
    _add_generate_options(p_generate)

    sub.add_parser("clean")

    p_integrate = sub.add_parser("integrate")
    p_integrate.add_argument("--lag-mode", choices=["rows", "calendar"], default=None)

    sub.add_parser("gold")

    p_all = sub.add_parser("all")
    p_all.add_argument("--generate", action="store_true")
    p_all.add_argument("--lag-mode", choices=["rows", "calendar"], default=None)
    _add_generate_options(p_all)

    return p


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    load_dotenv()
    configure_logging(Path("logs/pipeline.log"))

    args = build_parser().parse_args(argv)

    if args.cmd == "generate":
        cmd_generate(args)
    elif args.cmd == "clean":
        cmd_clean(args)
    elif args.cmd == "integrate":
        cmd_integrate(args)
    elif args.cmd == "gold":
        cmd_gold(args)
    elif args.cmd == "all":
        cmd_all(args)
    else:
        raise SystemExit(2)


if __name__ == "__main__":
    main()
