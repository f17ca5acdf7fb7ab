#!/usr/bin/env python3
"""
PointAllocator - Optimizer Command-Line Driver

- Single command loads a run configuration and searches every card subset,
  spend allocation and toggle combination.
- Reports are written atomically, so a failed or interrupted run never
  leaves a half-written report behind.
- Progress and outcome are logged (console + optional log file).

Exit codes: 0 success, 1 no valid scenarios or cancelled,
2 no cards available or configuration error.
"""

from __future__ import annotations
import argparse
import datetime as dt
import json
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

# Make "src/" importable when running as: python3 scripts/run_optimizer.py
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(REPO_ROOT / "src"))

from point_allocator.catalog.config import CARDS  # noqa: E402
from point_allocator.config_loader import ConfigError, load_run_config  # noqa: E402
from point_allocator.engine.evaluator import ScenarioData  # noqa: E402
from point_allocator.engine.optimizer import (  # noqa: E402
    NoCardsAvailableError,
    OptimizationOutcome,
    ScenarioOptimizer,
)
from point_allocator.generators.boost_generator import BoostEventGenerator  # noqa: E402
from point_allocator.reporting.tables import (  # noqa: E402
    history_frame,
    scenario_summary_frame,
)
from point_allocator.scenarios.book import ScenarioBook  # noqa: E402

REPORT_NAME = "optimization_report.json"

# -----------------------------
# Utilities
# -----------------------------


def utc_now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds")


def atomic_write_bytes(dest: Path, data: bytes) -> None:
    """
    Atomic file write: write to temp file in same directory then os.replace.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(dir=str(dest.parent), delete=False) as tf:
        tmp_path = Path(tf.name)
        tf.write(data)
        tf.flush()
        os.fsync(tf.fileno())
    os.replace(str(tmp_path), str(dest))


def atomic_write_json(dest: Path, obj: Any) -> None:
    atomic_write_bytes(
        dest, (json.dumps(obj, indent=2, ensure_ascii=False) + "\n").encode("utf-8")
    )


def setup_logging(log_level: str, log_file: Optional[Path]) -> logging.Logger:
    """Attach console (and optional file) handlers to the package loggers."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: List[logging.Handler] = []
    ch = logging.StreamHandler(sys.stdout)
    ch.setFormatter(fmt)
    ch.setLevel(level)
    handlers.append(ch)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(fmt)
        fh.setLevel(level)
        handlers.append(fh)

    for name in ("run_optimizer", "point_allocator"):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.handlers.clear()
        for handler in handlers:
            lg.addHandler(handler)

    return logging.getLogger("run_optimizer")


# -----------------------------
# Report building
# -----------------------------


def scenario_record(data: ScenarioData, history_file: str) -> Dict[str, Any]:
    scenario = data.scenario
    return {
        "id": scenario.id,
        "name": scenario.name,
        "active_card_ids": [card.id for card in data.active_cards],
        "allocations": dict(scenario.allocations),
        "toggles": scenario.toggles._asdict(),
        "annual_total_points": data.annual_total_points,
        "point_values": data.point_values,
        "annual_total_cash": data.annual_total_cash,
        "annual_fees": data.annual_fees,
        "annual_credits": data.annual_credits,
        "net_value": round(data.net_value, 2),
        "final_cash": data.simulation.final_cash,
        "accelerator_activations": data.simulation.accelerator_activations,
        "history_file": history_file,
    }


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="PointAllocator scenario optimizer")
    p.add_argument(
        "--config",
        default="",
        help="YAML run configuration (default: $POINT_ALLOCATOR_CONFIG, else catalog defaults).",
    )
    p.add_argument(
        "--out-dir",
        default="results",
        help="Directory for the report and per-scenario history CSVs.",
    )
    p.add_argument(
        "--cards",
        default="",
        help="Comma-separated card ids to optimize over (overrides the config). Empty = config.",
    )
    p.add_argument(
        "--random-boosts",
        action="store_true",
        help="Draw random boost months instead of using the configured ones.",
    )
    p.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for boost generation.",
    )
    p.add_argument(
        "--time-budget-ms",
        type=float,
        default=12.0,
        help="Milliseconds of work per optimizer batch before reporting progress.",
    )
    p.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    p.add_argument(
        "--log-file",
        default="",
        help="Optional log file path (e.g., logs/run_optimizer.log).",
    )
    return p.parse_args()


def main() -> int:
    args = parse_args()

    log_file = Path(args.log_file) if args.log_file.strip() else None
    logger = setup_logging(args.log_level, log_file)

    repo_root = Path(__file__).resolve().parents[1]  # scripts/.. = repo root
    out_dir = (repo_root / args.out_dir).resolve()
    run_id = dt.datetime.now().strftime("%Y%m%d_%H%M%S")
    started_at = utc_now_iso()

    logger.info("Run ID: %s", run_id)
    logger.info("Output dir: %s", out_dir)

    try:
        config = load_run_config(args.config.strip() or None)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 2

    settings = config.settings
    cards_arg = [x.strip() for x in args.cards.split(",") if x.strip()]
    if cards_arg:
        settings = settings.model_copy(update={"available_card_ids": cards_arg})

    if args.random_boosts or config.random_boosts:
        seed = args.seed if args.seed is not None else config.seed
        boost_months = BoostEventGenerator(seed).generate()
        settings = settings.model_copy(update={"boost_months": boost_months})

    enabled = set(settings.available_card_ids)
    pool = [card for card in CARDS if card.id in enabled]
    logger.info("Card pool: %s", [card.id for card in pool])

    optimizer = ScenarioOptimizer(
        pool, settings, time_budget=max(0.0, args.time_budget_ms) / 1000.0
    )
    try:
        progress_iter = optimizer.run()
    except NoCardsAvailableError as e:
        logger.error("%s", e)
        return 2

    last_percent = -1
    for progress in progress_iter:
        if progress.percent != last_percent:
            last_percent = progress.percent
            logger.info(
                "Progress: %d%% (%d candidates)",
                progress.percent,
                progress.candidates_evaluated,
            )

    result = optimizer.result
    if result is None:
        logger.error("Optimizer stopped without a result")
        return 2
    finished_at = utc_now_iso()

    report: Dict[str, Any] = {
        "run_id": run_id,
        "started_at": started_at,
        "finished_at": finished_at,
        "outcome": result.outcome.value,
        "candidates_evaluated": result.candidates_evaluated,
        "settings": settings.model_dump(),
        "scenarios": [],
    }

    if result.outcome is not OptimizationOutcome.COMPLETED:
        logger.error("Optimization finished without results: %s", result.outcome.value)
        atomic_write_json(out_dir / REPORT_NAME, report)
        return 1

    book = ScenarioBook(result.scenarios)
    evaluated = book.evaluate_all(settings)

    for data in evaluated:
        history_name = f"scenario_{data.scenario.id}_history.csv"
        csv_text = history_frame(data.simulation).to_csv(index=False)
        atomic_write_bytes(out_dir / history_name, csv_text.encode("utf-8"))
        report["scenarios"].append(scenario_record(data, history_name))

    summary = scenario_summary_frame(evaluated)
    if not summary.empty:
        best = summary.iloc[0]
        logger.info("Best scenario: %s (net value $%.2f)", best["name"], best["net_value"])

    atomic_write_json(out_dir / REPORT_NAME, report)
    logger.info("Wrote report: %s", out_dir / REPORT_NAME)
    logger.info("Done. %d scenarios written.", len(evaluated))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
