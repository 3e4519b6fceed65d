"""
charts.py — Static PNG chart export.

Renders the summary package with matplotlib:

    burnout_trend.png         — Average burnout per location by month,
                                surge windows shaded
    burnout_heatmap.png       — Location × month average burnout
    vaccine_fear_heatmap.png  — Location × month average vaccine fear

Colours come from the brand palette in config.yaml.
"""

import logging
from pathlib import Path
from typing import Optional

import matplotlib
matplotlib.use("Agg")  # non-interactive backend — no display needed
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import yaml

from src.summary import SummaryPackage

logger = logging.getLogger(__name__)


def _mpl_hex(h: str) -> str:
    """Return hex with # for matplotlib."""
    return f"#{h.lstrip('#')}"


def _save(fig, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, format="png", dpi=150, bbox_inches="tight",
                facecolor=fig.get_facecolor())
    plt.close(fig)
    logger.info("Chart saved to %s", path)
    return path


def plot_burnout_trend(
    pkg: SummaryPackage,
    brand: dict,
    location_colours: dict,
    path: Path,
) -> Path:
    """Line chart: average burnout by month, one line per location."""
    periods = pkg.periods
    x = np.arange(len(periods))

    fig, ax = plt.subplots(figsize=(11, 4.5))
    fig.patch.set_facecolor("white")
    ax.set_facecolor("white")

    for window in pkg.surge_windows:
        inside = [i for i, p in enumerate(periods) if window.contains(p)]
        if inside:
            ax.axvspan(inside[0] - 0.5, inside[-1] + 0.5,
                       color=_mpl_hex(brand["amber"]), alpha=0.15, zorder=0)
            ax.text((inside[0] + inside[-1]) / 2, 98, window.name,
                    ha="center", va="top", fontsize=7, color="#555555")

    fallback = [brand["primary"], brand["secondary"], brand["accent"]]
    for i, loc in enumerate(pkg.locations):
        colour = location_colours.get(loc, fallback[i % len(fallback)])
        ax.plot(x, pkg.burnout_pivot.loc[loc].values,
                color=_mpl_hex(colour), marker="o", markersize=3.5,
                linewidth=1.8, label=loc, zorder=3)

    ax.set_xticks(x)
    ax.set_xticklabels(periods, rotation=60, ha="right", fontsize=7)
    ax.set_ylim(0, 100)
    ax.set_ylabel("Average burnout score", fontsize=8)
    ax.legend(fontsize=8, loc="lower right", framealpha=0.5)
    ax.set_title(f"{pkg.title} — Average Burnout by Month", fontsize=10,
                 color=_mpl_hex(brand["primary"]), fontweight="bold", pad=8)
    ax.spines[["top", "right"]].set_visible(False)
    ax.grid(axis="y", linestyle="--", alpha=0.4, zorder=0)
    fig.tight_layout()

    return _save(fig, path)


def plot_heatmap(
    pivot: pd.DataFrame,
    title: str,
    cbar_label: str,
    path: Path,
    cmap: str = "Reds",
    vmin: Optional[float] = None,
    vmax: Optional[float] = None,
) -> Path:
    """Heatmap of a location × period pivot table."""
    fig, ax = plt.subplots(figsize=(12, 1.2 + 0.9 * len(pivot.index)))
    fig.patch.set_facecolor("white")

    im = ax.imshow(pivot.values.astype(float), aspect="auto", cmap=cmap,
                   vmin=vmin, vmax=vmax)
    ax.set_xticks(np.arange(len(pivot.columns)))
    ax.set_xticklabels(pivot.columns, rotation=60, ha="right", fontsize=7)
    ax.set_yticks(np.arange(len(pivot.index)))
    ax.set_yticklabels(pivot.index, fontsize=8)
    ax.set_title(title, fontsize=10, fontweight="bold", pad=8)

    cbar = fig.colorbar(im, ax=ax, pad=0.01)
    cbar.set_label(cbar_label, fontsize=8)
    cbar.ax.tick_params(labelsize=7)
    fig.tight_layout()

    return _save(fig, path)


def generate_charts(
    pkg: SummaryPackage,
    config_path: str = "config.yaml",
) -> list[Path]:
    """Render the trend line chart and both heatmaps to PNG.

    Args:
        pkg: Computed SummaryPackage.
        config_path: Path to configuration YAML.

    Returns:
        Paths of the written images.
    """
    with open(config_path, "r") as fh:
        cfg = yaml.safe_load(fh)

    brand = cfg["charts"]["brand"]
    colours = cfg["charts"].get("location_colours", {})
    paths = cfg["paths"]
    output_dir = Path(paths["output_dir"])

    logger.info("Rendering static charts for %d months", len(pkg.periods))

    return [
        plot_burnout_trend(pkg, brand, colours,
                           output_dir / paths["trend_chart_filename"]),
        plot_heatmap(pkg.burnout_pivot, "Average Burnout Score by Location and Month",
                     "Burnout (0-100)", output_dir / paths["burnout_heatmap_filename"],
                     cmap="Reds", vmin=0, vmax=100),
        plot_heatmap(pkg.vaccine_fear_pivot, "Average Vaccine Fear by Location and Month",
                     "Vaccine fear (1-5)", output_dir / paths["vaccine_fear_heatmap_filename"],
                     cmap="Purples", vmin=1, vmax=5),
    ]
