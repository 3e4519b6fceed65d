"""
test_cohort_simulator.py — Unit tests for the synthetic cohort generator.

Tests cover:
    - Month range construction
    - Rule table lookups (surge windows, mandate shifts, location weights)
    - Determinism and record-level invariants
    - The 200-nurse / 36-month reference scenario
    - Fail-fast validation of bad parameters
"""

import sys
from dataclasses import replace
from pathlib import Path

import numpy as np
import pandas as pd
import pytest
import yaml

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.cohort_simulator import (
    CohortConfigError,
    CohortRules,
    MandateWindow,
    NurseMonthRecord,
    SurgeWindow,
    build_month_range,
    generate_cohort,
    generate_cohort_from_config,
    to_records,
    validate_cohort_params,
)

LOCATIONS = ["Paris, TX", "Presby Plano"]


@pytest.fixture
def rules(base_config) -> CohortRules:
    return CohortRules.from_config(base_config)


@pytest.fixture
def months() -> list[str]:
    return build_month_range("2020-01", "2022-12")


@pytest.fixture
def flat_rules() -> CohortRules:
    """Minimal rules with no windows and no location overrides."""
    return CohortRules(
        baseline_mean=50.0,
        baseline_std=10.0,
        baseline_weights=(0.2, 0.2, 0.2, 0.2, 0.2),
        burnout_threshold=70.0,
        vaccine_fear_threshold=3,
        high_leave_probability=0.4,
        low_leave_probability=0.05,
    )


# ---------------------------------------------------------------------------
# Month range
# ---------------------------------------------------------------------------

class TestBuildMonthRange:
    """Tests for build_month_range."""

    def test_three_years_is_36_months(self, months):
        assert len(months) == 36
        assert months[0] == "2020-01"
        assert months[-1] == "2022-12"

    def test_single_month(self):
        assert build_month_range("2021-05", "2021-05") == ["2021-05"]

    def test_crosses_year_boundary(self):
        assert build_month_range("2021-11", "2022-02") == [
            "2021-11", "2021-12", "2022-01", "2022-02",
        ]

    def test_inverted_range_is_empty(self):
        assert build_month_range("2022-01", "2021-01") == []

    def test_invalid_month_raises(self):
        with pytest.raises(CohortConfigError, match="start_month"):
            build_month_range("2020-13", "2021-01")


# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

class TestCohortRules:
    """Tests for the date/location-conditioned lookups."""

    def test_config_has_three_surge_windows(self, rules):
        assert len(rules.surge_windows) == 3

    def test_config_has_two_mandate_windows(self, rules):
        assert len(rules.mandate_windows) == 2

    def test_baseline_outside_surge(self, rules):
        assert rules.burnout_params("2020-01") == (rules.baseline_mean, rules.baseline_std)

    def test_surge_params_inside_window(self, rules):
        onset = rules.surge_windows[0]
        assert rules.burnout_params(onset.start) == (onset.mean, onset.std)
        assert rules.burnout_params(onset.end) == (onset.mean, onset.std)

    def test_fear_shift_inside_and_outside_mandate(self, rules):
        rollout = rules.mandate_windows[0]
        assert rules.fear_shift(rollout.start) == rollout.shift
        assert rules.fear_shift("2020-01") == 0

    def test_overlapping_mandates_use_largest_shift(self, flat_rules):
        r = replace(flat_rules, mandate_windows=(
            MandateWindow("a", "2021-01", "2021-06", 1),
            MandateWindow("b", "2021-03", "2021-04", 2),
        ))
        assert r.fear_shift("2021-03") == 2
        assert r.fear_shift("2021-02") == 1

    def test_location_weights_fall_back_to_baseline(self, rules):
        assert rules.fear_weights("Presby Plano") == rules.baseline_weights
        assert rules.fear_weights("Paris, TX") != rules.baseline_weights

    def test_missing_section_raises(self, base_config):
        del base_config["intent_to_leave"]
        with pytest.raises(CohortConfigError, match="intent_to_leave"):
            CohortRules.from_config(base_config)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

class TestGenerateCohort:
    """Tests for generate_cohort output shape and invariants."""

    @pytest.fixture
    def cohort(self, rules, months) -> pd.DataFrame:
        return generate_cohort(123, months, 200, LOCATIONS, rules)

    def test_reference_scenario_row_count(self, cohort):
        assert len(cohort) == 7200

    def test_columns(self, cohort):
        assert list(cohort.columns) == [
            "nurse_id", "location", "period",
            "burnout_score", "vaccine_fear", "intent_to_leave",
        ]

    def test_same_seed_is_byte_identical(self, rules, months, cohort):
        again = generate_cohort(123, months, 200, LOCATIONS, rules)
        assert cohort.to_csv(index=False) == again.to_csv(index=False)

    def test_different_seed_differs(self, rules, months, cohort):
        other = generate_cohort(124, months, 200, LOCATIONS, rules)
        assert not cohort.equals(other)

    def test_burnout_within_bounds(self, cohort):
        assert cohort["burnout_score"].between(0, 100).all()

    def test_vaccine_fear_is_integer_one_to_five(self, cohort):
        assert np.issubdtype(cohort["vaccine_fear"].dtype, np.integer)
        assert set(cohort["vaccine_fear"].unique()) <= {1, 2, 3, 4, 5}

    def test_intent_to_leave_is_boolean(self, cohort):
        assert cohort["intent_to_leave"].dtype == bool

    def test_one_record_per_nurse_per_month(self, cohort, months):
        counts = cohort.groupby(["nurse_id", "period"]).size()
        assert len(counts) == 200 * len(months)
        assert (counts == 1).all()

    def test_each_nurse_has_one_location(self, cohort):
        assert (cohort.groupby("nurse_id")["location"].nunique() == 1).all()

    def test_nurses_split_evenly_across_locations(self, cohort):
        per_location = cohort.groupby("location")["nurse_id"].nunique()
        assert per_location.to_dict() == {"Paris, TX": 100, "Presby Plano": 100}

    def test_surge_month_has_higher_burnout(self, cohort, rules):
        surge = rules.surge_windows[2].start
        surge_mean = cohort[cohort["period"] == surge]["burnout_score"].mean()
        baseline_mean = cohort[cohort["period"] == "2020-01"]["burnout_score"].mean()
        assert surge_mean > baseline_mean + 10

    def test_high_fear_location_has_higher_fear(self, cohort):
        baseline_month = cohort[cohort["period"].isin(["2020-01", "2020-02", "2020-07"])]
        by_loc = baseline_month.groupby("location")["vaccine_fear"].mean()
        assert by_loc["Paris, TX"] > by_loc["Presby Plano"]

    def test_burnout_clamped_at_upper_bound(self, flat_rules):
        r = replace(flat_rules, baseline_mean=150.0, baseline_std=30.0)
        df = generate_cohort(1, ["2020-01"], 50, ["A"], r)
        assert df["burnout_score"].max() <= 100
        assert (df["burnout_score"] == 100).any()

    def test_burnout_clamped_at_lower_bound(self, flat_rules):
        r = replace(flat_rules, baseline_mean=-50.0, baseline_std=30.0)
        df = generate_cohort(1, ["2020-01"], 50, ["A"], r)
        assert df["burnout_score"].min() >= 0
        assert (df["burnout_score"] == 0).any()

    def test_mandate_shift_clipped_at_five(self, flat_rules):
        r = replace(
            flat_rules,
            baseline_weights=(0.0, 0.0, 0.0, 0.0, 1.0),
            mandate_windows=(MandateWindow("m", "2021-01", "2021-01", 2),),
        )
        df = generate_cohort(7, ["2021-01"], 30, ["A"], r)
        assert (df["vaccine_fear"] == 5).all()

    def test_mandate_shifts_fear_upward(self, flat_rules):
        r = replace(
            flat_rules,
            baseline_weights=(1.0, 0.0, 0.0, 0.0, 0.0),
            mandate_windows=(MandateWindow("m", "2021-02", "2021-02", 1),),
        )
        df = generate_cohort(7, ["2021-01", "2021-02"], 10, ["A"], r)
        assert (df[df["period"] == "2021-01"]["vaccine_fear"] == 1).all()
        assert (df[df["period"] == "2021-02"]["vaccine_fear"] == 2).all()

    def test_intent_follows_threshold_rule(self, flat_rules):
        r = replace(flat_rules, high_leave_probability=1.0, low_leave_probability=0.0)
        df = generate_cohort(5, build_month_range("2020-01", "2020-06"), 100, ["A", "B"], r)
        at_risk = (df["burnout_score"] > r.burnout_threshold) | (
            df["vaccine_fear"] > r.vaccine_fear_threshold
        )
        assert (df["intent_to_leave"] == at_risk).all()

    def test_to_records(self, flat_rules):
        df = generate_cohort(3, ["2020-01", "2020-02"], 4, ["A", "B"], flat_rules)
        records = to_records(df)
        assert len(records) == 8
        assert all(isinstance(r, NurseMonthRecord) for r in records)
        assert records[0].nurse_id == 0 and records[0].location == "A"
        assert isinstance(records[0].intent_to_leave, bool)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class TestValidation:
    """Invalid parameters must fail before any record is produced."""

    def test_zero_nurses_raises(self, rules, months):
        with pytest.raises(CohortConfigError, match="nurse_count"):
            generate_cohort(123, months, 0, LOCATIONS, rules)

    def test_empty_months_raises(self, rules):
        with pytest.raises(CohortConfigError, match="months"):
            generate_cohort(123, [], 200, LOCATIONS, rules)

    def test_malformed_month_raises(self, rules):
        with pytest.raises(CohortConfigError, match="YYYY-MM"):
            generate_cohort(123, ["2020/01"], 200, LOCATIONS, rules)

    def test_duplicate_months_raise(self, rules):
        with pytest.raises(CohortConfigError, match="duplicate"):
            generate_cohort(123, ["2020-01", "2020-01"], 200, LOCATIONS, rules)

    def test_empty_locations_raise(self, flat_rules, months):
        with pytest.raises(CohortConfigError, match="locations"):
            generate_cohort(123, months, 200, [], flat_rules)

    def test_duplicate_locations_raise(self, flat_rules, months):
        with pytest.raises(CohortConfigError, match="duplicates"):
            generate_cohort(123, months, 200, ["A", "A"], flat_rules)

    def test_unknown_location_weights_raise(self, rules, months):
        with pytest.raises(CohortConfigError, match="unknown locations"):
            generate_cohort(123, months, 200, ["Presby Plano", "Dallas"], rules)

    def test_fewer_nurses_than_locations_raises(self, flat_rules, months):
        with pytest.raises(CohortConfigError, match="nurse_count"):
            generate_cohort(123, months, 1, ["A", "B"], flat_rules)

    @pytest.mark.parametrize("seed", [-1, 1.5, "123", True, None])
    def test_bad_seed_raises(self, flat_rules, months, seed):
        with pytest.raises(CohortConfigError, match="seed"):
            generate_cohort(seed, months, 10, ["A"], flat_rules)

    def test_weights_not_summing_to_one_raise(self, flat_rules):
        r = replace(flat_rules, baseline_weights=(0.5, 0.5, 0.5, 0.0, 0.0))
        with pytest.raises(CohortConfigError, match="sum to 1"):
            validate_cohort_params(1, ["2020-01"], 10, ["A"], r)

    def test_wrong_weight_count_raises(self, flat_rules):
        r = replace(flat_rules, baseline_weights=(0.5, 0.5))
        with pytest.raises(CohortConfigError, match="5 entries"):
            validate_cohort_params(1, ["2020-01"], 10, ["A"], r)

    def test_probability_out_of_range_raises(self, flat_rules):
        r = replace(flat_rules, high_leave_probability=1.2)
        with pytest.raises(CohortConfigError, match="high_probability"):
            validate_cohort_params(1, ["2020-01"], 10, ["A"], r)

    def test_inverted_surge_window_raises(self, flat_rules):
        r = replace(flat_rules, surge_windows=(SurgeWindow("x", "2021-06", "2021-01", 70, 10),))
        with pytest.raises(CohortConfigError, match="surge window"):
            validate_cohort_params(1, ["2020-01"], 10, ["A"], r)

    def test_negative_mandate_shift_raises(self, flat_rules):
        r = replace(flat_rules, mandate_windows=(MandateWindow("x", "2021-01", "2021-02", -1),))
        with pytest.raises(CohortConfigError, match="negative shift"):
            validate_cohort_params(1, ["2020-01"], 10, ["A"], r)

    def test_weights_slightly_off_one_fail_before_generation(self, flat_rules):
        # Within np.isclose's default tolerance but rejected by Generator.choice
        r = replace(flat_rules, baseline_weights=(0.200005, 0.2, 0.2, 0.2, 0.2))
        with pytest.raises(CohortConfigError, match="sum to 1"):
            generate_cohort(1, ["2020-01"], 10, ["A"], r)

    @pytest.mark.parametrize("start, end", [
        ("2020-3", "2020-6"),
        ("2020-03", "2020/06"),
        ("March 2020", "2020-06"),
    ])
    def test_malformed_surge_window_bounds_raise(self, flat_rules, start, end):
        r = replace(flat_rules, surge_windows=(SurgeWindow("onset", start, end, 90, 1),))
        with pytest.raises(CohortConfigError, match="surge window 'onset'"):
            validate_cohort_params(1, ["2020-04"], 10, ["A"], r)

    def test_malformed_mandate_window_bounds_raise(self, flat_rules):
        r = replace(flat_rules, mandate_windows=(MandateWindow("rollout", "2020-12", "2021-3", 1),))
        with pytest.raises(CohortConfigError, match="mandate window 'rollout' end"):
            validate_cohort_params(1, ["2021-01"], 10, ["A"], r)

    @pytest.mark.parametrize("changes, message", [
        ({"baseline_weights": (-0.1, 0.3, 0.3, 0.3, 0.2)}, "negative weight"),
        ({"baseline_std": -1.0}, "baseline.std"),
        ({"surge_windows": (SurgeWindow("x", "2021-01", "2021-02", 70, -5),)}, "negative std"),
        ({"mandate_windows": (MandateWindow("x", "2021-06", "2021-01", 1),)}, "ends before it starts"),
        ({"location_weights": {"A": (0.5, 0.5, 0.0, 0.0, 0.1)}}, "location_weights"),
    ])
    def test_invalid_rule_tables_raise(self, flat_rules, changes, message):
        r = replace(flat_rules, **changes)
        with pytest.raises(CohortConfigError, match=message):
            validate_cohort_params(1, ["2020-01"], 10, ["A"], r)

    @pytest.mark.parametrize("nurse_count", [10.0, "10", True, None])
    def test_non_integer_nurse_count_raises(self, flat_rules, nurse_count):
        with pytest.raises(CohortConfigError, match="nurse_count must be an integer"):
            validate_cohort_params(1, ["2020-01"], nurse_count, ["A"], flat_rules)


# ---------------------------------------------------------------------------
# Config-driven entry point
# ---------------------------------------------------------------------------

class TestGenerateFromConfig:
    """generate_cohort_from_config reads config.yaml and writes the CSV."""

    def test_writes_records_csv(self, tmp_config, base_config, tmp_path):
        df = generate_cohort_from_config(str(tmp_config))
        out = tmp_path / base_config["paths"]["records_file"]
        assert out.exists()
        assert len(pd.read_csv(out)) == len(df) == 7200

    def test_zero_nurse_config_writes_nothing(self, tmp_config, tmp_path, base_config):
        cfg = yaml.safe_load(tmp_config.read_text())
        cfg["cohort"]["nurse_count"] = 0
        tmp_config.write_text(yaml.safe_dump(cfg, sort_keys=False))

        with pytest.raises(CohortConfigError, match="nurse_count"):
            generate_cohort_from_config(str(tmp_config))
        assert not (tmp_path / base_config["paths"]["records_file"]).exists()
