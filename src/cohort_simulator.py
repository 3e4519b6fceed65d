"""
cohort_simulator.py — Synthetic Nurse Cohort Generator.

Builds a per-nurse, per-month survey dataset that mimics what a hospital
workforce team would collect from a monthly wellbeing pulse survey:

    nurse_month_records.csv — one row per nurse per calendar month with
                              burnout score, vaccine fear and intent to leave

Every distribution parameter lives in config.yaml:
    - Surge windows      raise the burnout mean/std (onset, Delta, Omicron)
    - Mandate windows    shift vaccine fear upward (rollout, employer mandate)
    - Location weights   give one site a higher-fear baseline
    - Leave thresholds   switch intent-to-leave between high and low odds

The generator is a pure function of (seed, months, nurse_count, locations,
rules): the same inputs always produce the same DataFrame.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
import yaml

logger = logging.getLogger(__name__)

FEAR_SCORES = np.arange(1, 6)
BURNOUT_MIN, BURNOUT_MAX = 0.0, 100.0
FEAR_MIN, FEAR_MAX = 1, 5

RECORD_COLUMNS = [
    "nurse_id",
    "location",
    "period",
    "burnout_score",
    "vaccine_fear",
    "intent_to_leave",
]

_PERIOD_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class CohortConfigError(ValueError):
    """Raised when a cohort parameter or rule table is invalid."""


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NurseMonthRecord:
    """One survey response: a single nurse in a single calendar month."""
    nurse_id: int
    location: str
    period: str            # 'YYYY-MM'
    burnout_score: float   # 0-100
    vaccine_fear: int      # 1-5
    intent_to_leave: bool


@dataclass(frozen=True)
class SurgeWindow:
    """Months during which burnout is drawn from elevated parameters."""
    name: str
    start: str
    end: str
    mean: float
    std: float

    def contains(self, period: str) -> bool:
        return self.start <= period <= self.end


@dataclass(frozen=True)
class MandateWindow:
    """Months during which vaccine fear is shifted upward."""
    name: str
    start: str
    end: str
    shift: int

    def contains(self, period: str) -> bool:
        return self.start <= period <= self.end


@dataclass(frozen=True)
class CohortRules:
    """Date- and location-conditioned rule tables for the generator."""
    baseline_mean: float
    baseline_std: float
    baseline_weights: tuple
    burnout_threshold: float
    vaccine_fear_threshold: int
    high_leave_probability: float
    low_leave_probability: float
    surge_windows: tuple = ()
    mandate_windows: tuple = ()
    location_weights: dict = field(default_factory=dict)

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> "CohortRules":
        """Build rule tables from the parsed config.yaml.

        Raises:
            CohortConfigError: If a required section or key is missing.
        """
        try:
            burnout = cfg["burnout"]
            fear = cfg["vaccine_fear"]
            leave = cfg["intent_to_leave"]
            return cls(
                baseline_mean=float(burnout["baseline"]["mean"]),
                baseline_std=float(burnout["baseline"]["std"]),
                baseline_weights=tuple(float(w) for w in fear["baseline_weights"]),
                burnout_threshold=float(leave["burnout_threshold"]),
                vaccine_fear_threshold=int(leave["vaccine_fear_threshold"]),
                high_leave_probability=float(leave["high_probability"]),
                low_leave_probability=float(leave["low_probability"]),
                surge_windows=tuple(
                    SurgeWindow(
                        name=w["name"],
                        start=str(w["start"]),
                        end=str(w["end"]),
                        mean=float(w["mean"]),
                        std=float(w["std"]),
                    )
                    for w in burnout.get("surge_windows") or []
                ),
                mandate_windows=tuple(
                    MandateWindow(
                        name=w["name"],
                        start=str(w["start"]),
                        end=str(w["end"]),
                        shift=int(w["shift"]),
                    )
                    for w in fear.get("mandate_windows") or []
                ),
                location_weights={
                    loc: tuple(float(x) for x in weights)
                    for loc, weights in (fear.get("location_weights") or {}).items()
                },
            )
        except KeyError as exc:
            raise CohortConfigError(f"Missing config key: {exc}") from exc

    def burnout_params(self, period: str) -> tuple[float, float]:
        """Return (mean, std) for the first surge window covering `period`."""
        for window in self.surge_windows:
            if window.contains(period):
                return window.mean, window.std
        return self.baseline_mean, self.baseline_std

    def fear_weights(self, location: str) -> tuple:
        return self.location_weights.get(location, self.baseline_weights)

    def fear_shift(self, period: str) -> int:
        shifts = [w.shift for w in self.mandate_windows if w.contains(period)]
        return max(shifts) if shifts else 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_config(config_path: str = "config.yaml") -> dict[str, Any]:
    with open(config_path, "r") as fh:
        return yaml.safe_load(fh)


def build_month_range(start: str, end: str) -> list[str]:
    """Return every calendar month from `start` to `end` inclusive as 'YYYY-MM'.

    Raises:
        CohortConfigError: If either bound is not a 'YYYY-MM' string.
    """
    for label, value in (("start_month", start), ("end_month", end)):
        if not _PERIOD_RE.match(str(value)):
            raise CohortConfigError(f"{label} must be 'YYYY-MM', got {value!r}")
    return [str(p) for p in pd.period_range(start=start, end=end, freq="M")]


def _check_weights(label: str, weights) -> None:
    if len(weights) != len(FEAR_SCORES):
        raise CohortConfigError(
            f"{label} must have {len(FEAR_SCORES)} entries, got {len(weights)}"
        )
    if any(w < 0 for w in weights):
        raise CohortConfigError(f"{label} contains a negative weight: {list(weights)}")
    # Generator.choice rejects sums further than ~1e-8 from 1
    if not np.isclose(sum(weights), 1.0, rtol=0, atol=1e-8):
        raise CohortConfigError(f"{label} must sum to 1, got {sum(weights):.8f}")


def _check_window_bounds(kind: str, window) -> None:
    for label, value in (("start", window.start), ("end", window.end)):
        if not _PERIOD_RE.match(str(value)):
            raise CohortConfigError(
                f"{kind} window '{window.name}' {label} must be 'YYYY-MM', got {value!r}"
            )


def _check_probability(label: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise CohortConfigError(f"{label} must be within [0, 1], got {value}")


def validate_cohort_params(
    seed: int,
    months: list[str],
    nurse_count: int,
    locations: list[str],
    rules: CohortRules,
) -> None:
    """Fail fast on any parameter that would make generation meaningless.

    Raises:
        CohortConfigError: Naming the first invalid parameter found.
    """
    if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)) or seed < 0:
        raise CohortConfigError(f"seed must be a non-negative integer, got {seed!r}")

    if not months:
        raise CohortConfigError("months must contain at least one calendar month")
    bad = [m for m in months if not _PERIOD_RE.match(str(m))]
    if bad:
        raise CohortConfigError(f"months must be 'YYYY-MM' strings, got {bad[:3]}")
    if len(set(months)) != len(months):
        raise CohortConfigError("months contains duplicate entries")

    if isinstance(nurse_count, bool) or not isinstance(nurse_count, (int, np.integer)):
        raise CohortConfigError(f"nurse_count must be an integer, got {nurse_count!r}")
    if nurse_count < 1:
        raise CohortConfigError(f"nurse_count must be at least 1, got {nurse_count}")

    if not locations:
        raise CohortConfigError("locations must name at least one site")
    if any(not isinstance(loc, str) or not loc.strip() for loc in locations):
        raise CohortConfigError(f"locations must be non-empty names, got {locations}")
    if len(set(locations)) != len(locations):
        raise CohortConfigError(f"locations contains duplicates: {locations}")
    if nurse_count < len(locations):
        raise CohortConfigError(
            f"nurse_count ({nurse_count}) is smaller than the number of "
            f"locations ({len(locations)}); every location needs a nurse"
        )
    unknown = sorted(set(rules.location_weights) - set(locations))
    if unknown:
        raise CohortConfigError(
            f"vaccine_fear.location_weights names unknown locations: {unknown}"
        )

    if rules.baseline_std < 0:
        raise CohortConfigError("burnout.baseline.std must be non-negative")
    for window in rules.surge_windows:
        _check_window_bounds("surge", window)
        if window.start > window.end:
            raise CohortConfigError(f"surge window '{window.name}' ends before it starts")
        if window.std < 0:
            raise CohortConfigError(f"surge window '{window.name}' has a negative std")
    for window in rules.mandate_windows:
        _check_window_bounds("mandate", window)
        if window.start > window.end:
            raise CohortConfigError(f"mandate window '{window.name}' ends before it starts")
        if window.shift < 0:
            raise CohortConfigError(f"mandate window '{window.name}' has a negative shift")

    _check_weights("vaccine_fear.baseline_weights", rules.baseline_weights)
    for loc, weights in rules.location_weights.items():
        _check_weights(f"vaccine_fear.location_weights[{loc!r}]", weights)

    _check_probability("intent_to_leave.high_probability", rules.high_leave_probability)
    _check_probability("intent_to_leave.low_probability", rules.low_leave_probability)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def generate_cohort(
    seed: int,
    months: list[str],
    nurse_count: int,
    locations: list[str],
    rules: CohortRules,
) -> pd.DataFrame:
    """Generate one survey record per nurse per month.

    Nurses are assigned to a home location round-robin by id. Within each
    month the draws happen in a fixed order (burnout for all nurses, vaccine
    fear per location, then intent to leave) from a single seeded generator.

    Args:
        seed: Seed for numpy's default_rng.
        months: Ordered 'YYYY-MM' periods.
        nurse_count: Number of nurses in the cohort.
        locations: Site names; nurses are spread across them evenly.
        rules: Surge, mandate and leave rule tables.

    Returns:
        DataFrame with columns:
            nurse_id, location, period, burnout_score, vaccine_fear,
            intent_to_leave

    Raises:
        CohortConfigError: If any input is invalid. No records are produced.
    """
    validate_cohort_params(seed, months, nurse_count, locations, rules)

    rng = np.random.default_rng(seed)
    nurse_ids = np.arange(nurse_count)
    home = np.array([locations[i % len(locations)] for i in nurse_ids], dtype=object)
    masks = {loc: home == loc for loc in locations}
    fear_probs = {loc: np.asarray(rules.fear_weights(loc)) for loc in locations}

    frames = []
    for period in months:
        mean, std = rules.burnout_params(period)
        burnout = np.round(
            np.clip(rng.normal(mean, std, size=nurse_count), BURNOUT_MIN, BURNOUT_MAX),
            2,
        )

        fear = np.empty(nurse_count, dtype=np.int64)
        for loc in locations:
            mask = masks[loc]
            fear[mask] = rng.choice(FEAR_SCORES, size=int(mask.sum()), p=fear_probs[loc])
        fear = np.clip(fear + rules.fear_shift(period), FEAR_MIN, FEAR_MAX)

        high_risk = (burnout > rules.burnout_threshold) | (fear > rules.vaccine_fear_threshold)
        p_leave = np.where(
            high_risk, rules.high_leave_probability, rules.low_leave_probability
        )
        leave = rng.random(nurse_count) < p_leave

        frames.append(pd.DataFrame({
            "nurse_id": nurse_ids,
            "location": home,
            "period": period,
            "burnout_score": burnout,
            "vaccine_fear": fear,
            "intent_to_leave": leave,
        }))

    df = pd.concat(frames, ignore_index=True)[RECORD_COLUMNS]
    df["location"] = df["location"].astype(str)

    logger.info(
        "Generated cohort: %d records (%d nurses x %d months, %d locations)",
        len(df), nurse_count, len(months), len(locations),
    )
    return df


def to_records(df: pd.DataFrame) -> list[NurseMonthRecord]:
    """Convert a cohort DataFrame into immutable record objects."""
    return [
        NurseMonthRecord(
            nurse_id=int(row.nurse_id),
            location=str(row.location),
            period=str(row.period),
            burnout_score=float(row.burnout_score),
            vaccine_fear=int(row.vaccine_fear),
            intent_to_leave=bool(row.intent_to_leave),
        )
        for row in df.itertuples(index=False)
    ]


def generate_cohort_from_config(config_path: str = "config.yaml") -> pd.DataFrame:
    """Generate the cohort described in config.yaml and write it to disk.

    Args:
        config_path: Path to configuration YAML.

    Returns:
        The generated cohort DataFrame.
    """
    cfg = _load_config(config_path)
    cohort = cfg["cohort"]
    rules = CohortRules.from_config(cfg)
    months = build_month_range(cohort["start_month"], cohort["end_month"])

    logger.info(
        "Starting cohort generation (seed=%s, %s to %s)",
        cohort["seed"], cohort["start_month"], cohort["end_month"],
    )
    df = generate_cohort(
        seed=cohort["seed"],
        months=months,
        nurse_count=cohort["nurse_count"],
        locations=list(cohort["locations"]),
        rules=rules,
    )

    path = Path(cfg["paths"]["records_file"])
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    logger.info("Written records: %d rows -> %s", len(df), path)
    return df
