"""
sites.py — Hospital site reference data.

The map shows a fixed list of hospitals with their headline survey
percentages. These values are static reference data kept in config.yaml;
they are not derived from the synthetic cohort.
"""

import logging
from dataclasses import dataclass
from typing import Any

from src.cohort_simulator import CohortConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HospitalSite:
    """A hospital plotted on the site map."""
    name: str
    latitude: float
    longitude: float
    burnout_pct: float
    vaccine_fear_pct: float
    location: str = ""


def _parse_site(raw: dict[str, Any], idx: int) -> HospitalSite:
    try:
        site = HospitalSite(
            name=str(raw["name"]),
            latitude=float(raw["latitude"]),
            longitude=float(raw["longitude"]),
            burnout_pct=float(raw["burnout_pct"]),
            vaccine_fear_pct=float(raw["vaccine_fear_pct"]),
            location=str(raw.get("location", "")),
        )
    except KeyError as exc:
        raise CohortConfigError(f"sites[{idx}] is missing {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise CohortConfigError(f"sites[{idx}] has a non-numeric value: {exc}") from exc

    if not -90 <= site.latitude <= 90:
        raise CohortConfigError(f"sites[{idx}] latitude out of range: {site.latitude}")
    if not -180 <= site.longitude <= 180:
        raise CohortConfigError(f"sites[{idx}] longitude out of range: {site.longitude}")
    for label in ("burnout_pct", "vaccine_fear_pct"):
        value = getattr(site, label)
        if not 0 <= value <= 100:
            raise CohortConfigError(f"sites[{idx}] {label} must be 0-100, got {value}")
    return site


def load_sites(cfg: dict[str, Any]) -> list[HospitalSite]:
    """Parse the `sites` section of the config.

    Args:
        cfg: Configuration dict.

    Returns:
        List of HospitalSite in config order.

    Raises:
        CohortConfigError: If the list is empty or any entry is invalid.
    """
    raw_sites = cfg.get("sites") or []
    if not raw_sites:
        raise CohortConfigError("config has no sites to plot")
    sites = [_parse_site(raw, idx) for idx, raw in enumerate(raw_sites)]
    logger.debug("Loaded %d hospital sites", len(sites))
    return sites
