"""
main.py — Nurse Burnout Charts — CLI Entry Point.

Runs any combination of pipeline stages. The summary is computed from the
records CSV written by the generation stage.

Usage:
    python main.py --full-run                   # generate + all charts
    python main.py --generate-data              # refresh the synthetic cohort
    python main.py --charts --dashboard         # rebuild outputs only
    python main.py --map                        # hospital site map only
    python main.py --full-run --config custom.yaml --log-level DEBUG

Outputs (data/output/):
    burnout_trend.png           — Average burnout line plot
    burnout_heatmap.png         — Burnout heatmap (location × month)
    vaccine_fear_heatmap.png    — Vaccine fear heatmap (location × month)
    burnout_dashboard.html      — Interactive Plotly dashboard
    hospital_sites_map.html     — Interactive site map
"""

import argparse
import logging
import logging.handlers
import os
import sys
from datetime import datetime
from pathlib import Path

import yaml


def _configure_logging(log_dir: str = "logs", level: str = "INFO") -> None:
    """Configure rotating file handler + stream handler.

    Args:
        log_dir: Directory for log files.
        level: Log level string.
    """
    effective_level = os.environ.get("LOG_LEVEL", level).upper()
    numeric = getattr(logging, effective_level, logging.INFO)

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_file = Path(log_dir) / f"pipeline_{datetime.today().strftime('%Y%m%d')}.log"

    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)-25s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    fh = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=10 * 1024 * 1024, backupCount=7, encoding="utf-8"
    )
    fh.setFormatter(fmt)
    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(numeric)
    root.addHandler(fh)
    root.addHandler(sh)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="nurse-burnout-charts",
        description="Synthetic nurse burnout cohort — line plot, heatmaps and site map.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --full-run
  python main.py --generate-data
  python main.py --charts --dashboard
  python main.py --full-run --config custom.yaml --log-level DEBUG
        """,
    )
    parser.add_argument("--config", default="config.yaml",
                        help="Path to config.yaml (default: config.yaml)")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    stages = parser.add_argument_group("Pipeline Stages")
    stages.add_argument("--generate-data", action="store_true",
                        help="Generate the synthetic nurse cohort")
    stages.add_argument("--charts", action="store_true",
                        help="Render the line plot and heatmaps as PNG")
    stages.add_argument("--dashboard", action="store_true",
                        help="Generate interactive HTML dashboard")
    stages.add_argument("--map", action="store_true",
                        help="Generate interactive hospital site map")
    stages.add_argument("--full-run", action="store_true",
                        help="Run all stages: generate -> charts -> dashboard -> map")
    return parser.parse_args(argv)


def run_pipeline(args: argparse.Namespace, logger: logging.Logger) -> int:
    """Execute the requested pipeline stages.

    Args:
        args: Parsed CLI arguments.
        logger: Configured logger.

    Returns:
        0 on success, 1 on error.
    """
    from src.cohort_simulator import CohortConfigError, generate_cohort_from_config
    from src.summary import compute_summary
    from src.charts import generate_charts
    from src.dashboard import generate_dashboard
    from src.site_map import generate_site_map

    config_path = args.config
    do_all = args.full_run
    pkg = None

    # -------------------------------------------------------------------------
    # Stage 1: Cohort generation
    # -------------------------------------------------------------------------
    if do_all or args.generate_data:
        logger.info("=" * 65)
        logger.info("STAGE 1: Cohort Generation")
        logger.info("=" * 65)
        try:
            records = generate_cohort_from_config(config_path)
            logger.info("Cohort generation complete -- %d records", len(records))
        except CohortConfigError as exc:
            logger.error("Invalid cohort configuration: %s", exc)
            return 1
        except Exception as exc:
            logger.error("Cohort generation failed: %s", exc, exc_info=True)
            return 1

    # -------------------------------------------------------------------------
    # Stage 2: Summary (needed by charts and dashboard)
    # -------------------------------------------------------------------------
    if do_all or args.charts or args.dashboard:
        logger.info("=" * 65)
        logger.info("STAGE 2: Location x Month Summary")
        logger.info("=" * 65)
        try:
            pkg = compute_summary(config_path)
        except FileNotFoundError as exc:
            logger.error("Cohort missing. Run --generate-data first.\n%s", exc)
            return 1
        except Exception as exc:
            logger.error("Summary computation failed: %s", exc, exc_info=True)
            return 1

    # -------------------------------------------------------------------------
    # Stage 3: Static charts
    # -------------------------------------------------------------------------
    if pkg and (do_all or args.charts):
        logger.info("=" * 65)
        logger.info("STAGE 3: Static Charts")
        logger.info("=" * 65)
        try:
            paths = generate_charts(pkg, config_path)
            logger.info("Static charts generated: %s", ", ".join(str(p) for p in paths))
        except Exception as exc:
            logger.error("Chart generation failed: %s", exc, exc_info=True)
            return 1

    # -------------------------------------------------------------------------
    # Stage 4: Interactive dashboard
    # -------------------------------------------------------------------------
    if pkg and (do_all or args.dashboard):
        logger.info("=" * 65)
        logger.info("STAGE 4: Interactive Dashboard")
        logger.info("=" * 65)
        try:
            dash_path = generate_dashboard(pkg, config_path)
            logger.info("Dashboard generated: %s", dash_path)
        except Exception as exc:
            logger.error("Dashboard generation failed: %s", exc, exc_info=True)
            return 1

    # -------------------------------------------------------------------------
    # Stage 5: Site map
    # -------------------------------------------------------------------------
    if do_all or args.map:
        logger.info("=" * 65)
        logger.info("STAGE 5: Hospital Site Map")
        logger.info("=" * 65)
        try:
            map_path = generate_site_map(config_path)
            logger.info("Site map generated: %s", map_path)
        except CohortConfigError as exc:
            logger.error("Invalid site configuration: %s", exc)
            return 1
        except Exception as exc:
            logger.error("Site map generation failed: %s", exc, exc_info=True)
            return 1

    logger.info("=" * 65)
    logger.info("PIPELINE COMPLETE")
    if pkg:
        logger.info("  Avg burnout:      %.1f", pkg.overall_burnout)
        logger.info("  Avg vaccine fear: %.2f", pkg.overall_vaccine_fear)
        logger.info("  Intent to leave:  %.1f%%", pkg.overall_intent_to_leave * 100)
    logger.info("=" * 65)
    return 0


def main(argv=None) -> None:
    """Parse args, configure logging, and run pipeline."""
    args = _parse_args(argv)

    try:
        with open(args.config, "r") as fh:
            cfg = yaml.safe_load(fh)
        log_dir = cfg.get("paths", {}).get("log_dir", "logs")
    except (OSError, yaml.YAMLError, AttributeError):
        log_dir = "logs"

    _configure_logging(log_dir=log_dir, level=args.log_level)
    logger = logging.getLogger(__name__)

    no_stage = not any([
        args.full_run, args.generate_data, args.charts, args.dashboard, args.map,
    ])
    if no_stage:
        _parse_args(["--help"])

    logger.info(
        "Nurse Burnout Charts | %s",
        datetime.today().strftime("%Y-%m-%d %H:%M:%S"),
    )
    sys.exit(run_pipeline(args, logger))


if __name__ == "__main__":
    main()
