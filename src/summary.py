"""
summary.py — Location × Month Aggregation Engine.

Reads the nurse-month records and reduces them to one row per
(location, period):

    avg_burnout, avg_vaccine_fear, proportion_intent_to_leave, nurse_count

Returns a `SummaryPackage` dataclass that every downstream module (static
charts, interactive dashboard) uses as the single source of truth.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import pandas as pd
import yaml

from src.cohort_simulator import RECORD_COLUMNS, CohortConfigError, CohortRules

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = [
    "location",
    "period",
    "avg_burnout",
    "avg_vaccine_fear",
    "proportion_intent_to_leave",
    "nurse_count",
]


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LocationMonthSummary:
    """Aggregated survey results for one location in one month."""
    location: str
    period: str
    avg_burnout: float
    avg_vaccine_fear: float
    proportion_intent_to_leave: float
    nurse_count: int


@dataclass
class SummaryPackage:
    """Everything the chart builders need for one cohort run."""
    title: str
    summary: pd.DataFrame
    periods: list = field(default_factory=list)
    locations: list = field(default_factory=list)
    burnout_pivot: Optional[pd.DataFrame] = None
    vaccine_fear_pivot: Optional[pd.DataFrame] = None
    intent_pivot: Optional[pd.DataFrame] = None
    surge_windows: tuple = ()
    mandate_windows: tuple = ()

    @property
    def overall_burnout(self) -> float:
        return _weighted_mean(self.summary, "avg_burnout")

    @property
    def overall_vaccine_fear(self) -> float:
        return _weighted_mean(self.summary, "avg_vaccine_fear")

    @property
    def overall_intent_to_leave(self) -> float:
        return _weighted_mean(self.summary, "proportion_intent_to_leave")


def _weighted_mean(summary: pd.DataFrame, column: str) -> float:
    weights = summary["nurse_count"]
    total = weights.sum()
    return float((summary[column] * weights).sum() / total) if total else 0.0


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def summarise_cohort(records: pd.DataFrame) -> pd.DataFrame:
    """Group records by (location, period) and average each measure.

    Args:
        records: Cohort DataFrame as produced by `generate_cohort`.

    Returns:
        DataFrame with SUMMARY_COLUMNS, sorted by location then period.

    Raises:
        CohortConfigError: If the frame is empty or missing a column.
    """
    missing = [c for c in RECORD_COLUMNS if c not in records.columns]
    if missing:
        raise CohortConfigError(f"records are missing columns: {missing}")
    if records.empty:
        raise CohortConfigError("cannot summarise an empty cohort")

    frame = records.assign(intent_to_leave=records["intent_to_leave"].astype(bool))
    summary = (
        frame.groupby(["location", "period"], sort=True)
        .agg(
            avg_burnout=("burnout_score", "mean"),
            avg_vaccine_fear=("vaccine_fear", "mean"),
            proportion_intent_to_leave=("intent_to_leave", "mean"),
            nurse_count=("nurse_id", "nunique"),
        )
        .reset_index()
    )
    logger.debug("Summarised %d records into %d groups", len(records), len(summary))
    return summary[SUMMARY_COLUMNS]


def to_summaries(summary: pd.DataFrame) -> list[LocationMonthSummary]:
    """Convert a summary DataFrame into immutable summary objects."""
    return [
        LocationMonthSummary(
            location=str(row.location),
            period=str(row.period),
            avg_burnout=float(row.avg_burnout),
            avg_vaccine_fear=float(row.avg_vaccine_fear),
            proportion_intent_to_leave=float(row.proportion_intent_to_leave),
            nurse_count=int(row.nurse_count),
        )
        for row in summary.itertuples(index=False)
    ]


def _pivot(summary: pd.DataFrame, column: str, locations: list, periods: list) -> pd.DataFrame:
    """Location × period matrix for heatmaps, rows in cohort order."""
    return (
        summary.pivot(index="location", columns="period", values=column)
        .reindex(index=locations, columns=periods)
    )


def build_summary_package(
    records: pd.DataFrame,
    title: str,
    rules: Optional[CohortRules] = None,
) -> SummaryPackage:
    """Aggregate records and assemble the pivots used by the chart builders.

    Args:
        records: Cohort DataFrame.
        title: Display title for charts.
        rules: Optional rule tables; their windows are shaded on trend charts.

    Returns:
        SummaryPackage.
    """
    summary = summarise_cohort(records)
    locations = list(dict.fromkeys(records["location"].astype(str)))
    periods = sorted(summary["period"].unique())

    return SummaryPackage(
        title=title,
        summary=summary,
        periods=periods,
        locations=locations,
        burnout_pivot=_pivot(summary, "avg_burnout", locations, periods),
        vaccine_fear_pivot=_pivot(summary, "avg_vaccine_fear", locations, periods),
        intent_pivot=_pivot(summary, "proportion_intent_to_leave", locations, periods),
        surge_windows=rules.surge_windows if rules else (),
        mandate_windows=rules.mandate_windows if rules else (),
    )


def _load_records(cfg: dict[str, Any]) -> pd.DataFrame:
    """Load the records CSV written by the generator.

    Raises:
        FileNotFoundError: If the cohort has not been generated yet.
    """
    path = Path(cfg["paths"]["records_file"])
    if not path.exists():
        raise FileNotFoundError(
            f"Cohort records not found at {path}. Run --generate-data first."
        )
    df = pd.read_csv(path, dtype={"location": str, "period": str})
    logger.debug("Loaded records: %d rows", len(df))
    return df


def compute_summary(config_path: str = "config.yaml") -> SummaryPackage:
    """Load the generated cohort, aggregate it, and write the summary CSV.

    This is the single public entry point for the summary module.

    Args:
        config_path: Path to configuration YAML.

    Returns:
        SummaryPackage for the whole generated date range.
    """
    with open(config_path, "r") as fh:
        cfg = yaml.safe_load(fh)

    records = _load_records(cfg)
    pkg = build_summary_package(
        records,
        title=cfg["project"]["name"],
        rules=CohortRules.from_config(cfg),
    )

    out = Path(cfg["paths"]["summary_file"])
    out.parent.mkdir(parents=True, exist_ok=True)
    pkg.summary.to_csv(out, index=False)

    logger.info(
        "Summary computed — %d groups | Burnout: %.1f | Vaccine fear: %.2f | "
        "Intent to leave: %.1f%%",
        len(pkg.summary),
        pkg.overall_burnout,
        pkg.overall_vaccine_fear,
        pkg.overall_intent_to_leave * 100,
    )
    return pkg
