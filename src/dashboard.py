"""
dashboard.py — Interactive Plotly HTML Dashboard.

Generates a self-contained HTML dashboard that mirrors the static PNG
charts in interactive form. Open it directly in a browser; no server
required.

Sections:
    Header KPI bar  — cohort-wide burnout, vaccine fear, intent to leave
    Row 1:          — Average burnout trend by location (line, full width)
    Row 2:          — Intent to leave by location (line) | Vaccine fear heatmap
    Row 3:          — Burnout heatmap (full width)
"""

import logging
from datetime import datetime
from pathlib import Path

import pandas as pd
import plotly.graph_objects as go
import yaml

from src.summary import SummaryPackage

logger = logging.getLogger(__name__)

TEMPLATE = "plotly_white"


def _mpl(h: str) -> str:
    """Ensure hex colour has # prefix."""
    return f"#{h.lstrip('#')}"


def _location_colour(loc: str, idx: int, colours: dict, brand: dict) -> str:
    fallback = [brand["primary"], brand["secondary"], brand["accent"]]
    return _mpl(colours.get(loc, fallback[idx % len(fallback)]))


def _chart_burnout_trend(pkg: SummaryPackage, brand: dict, colours: dict) -> go.Figure:
    """Line chart: average burnout per location with surge windows shaded."""
    fig = go.Figure()
    for i, loc in enumerate(pkg.locations):
        fig.add_trace(go.Scatter(
            x=pkg.periods, y=pkg.burnout_pivot.loc[loc].values,
            name=loc, mode="lines+markers",
            line=dict(color=_location_colour(loc, i, colours, brand), width=2),
            marker=dict(size=5),
            hovertemplate=f"{loc}<br>Month: %{{x}}<br>Burnout: %{{y:.1f}}<extra></extra>",
        ))
    for window in pkg.surge_windows:
        inside = [p for p in pkg.periods if window.contains(p)]
        if inside:
            fig.add_vrect(
                x0=inside[0], x1=inside[-1],
                fillcolor=_mpl(brand["amber"]), opacity=0.15, line_width=0,
                annotation_text=window.name, annotation_position="top left",
            )
    fig.update_layout(
        title=dict(text="Average Burnout Score by Month", font=dict(size=14, color=_mpl(brand["primary"]))),
        yaxis=dict(title="Burnout (0-100)", range=[0, 100]),
        template=TEMPLATE,
        legend=dict(orientation="h", yanchor="bottom", y=1.02, x=0),
        height=380,
        margin=dict(l=50, r=30, t=80, b=40),
    )
    return fig


def _chart_intent_to_leave(pkg: SummaryPackage, brand: dict, colours: dict) -> go.Figure:
    """Line chart: share of nurses reporting intent to leave."""
    fig = go.Figure()
    for i, loc in enumerate(pkg.locations):
        fig.add_trace(go.Scatter(
            x=pkg.periods, y=pkg.intent_pivot.loc[loc].values * 100,
            name=loc, mode="lines",
            line=dict(color=_location_colour(loc, i, colours, brand), width=2, dash="dot"),
            hovertemplate=f"{loc}<br>Month: %{{x}}<br>Intent to leave: %{{y:.1f}}%<extra></extra>",
        ))
    fig.update_layout(
        title=dict(text="Intent to Leave (%)", font=dict(size=14, color=_mpl(brand["primary"]))),
        yaxis=dict(title="%", ticksuffix="%", rangemode="tozero"),
        template=TEMPLATE,
        legend=dict(orientation="h", y=1.08),
        height=360,
        margin=dict(l=50, r=30, t=80, b=40),
    )
    return fig


def _chart_heatmap(
    pivot: pd.DataFrame,
    title: str,
    colorscale: str,
    zmin: float,
    zmax: float,
    brand: dict,
) -> go.Figure:
    """Heatmap: location × month matrix."""
    fig = go.Figure(go.Heatmap(
        z=pivot.values, x=list(pivot.columns), y=list(pivot.index),
        colorscale=colorscale, zmin=zmin, zmax=zmax,
        hovertemplate="%{y}<br>Month: %{x}<br>Value: %{z:.2f}<extra></extra>",
    ))
    fig.update_layout(
        title=dict(text=title, font=dict(size=14, color=_mpl(brand["primary"]))),
        template=TEMPLATE,
        height=300,
        margin=dict(l=110, r=30, t=70, b=60),
    )
    return fig


def _build_kpi_header(pkg: SummaryPackage, brand: dict) -> str:
    """Generate the HTML KPI banner."""
    nurses = int(pkg.summary.groupby("location")["nurse_count"].max().sum())
    tiles = [
        ("Avg Burnout", f"{pkg.overall_burnout:.1f}"),
        ("Avg Vaccine Fear", f"{pkg.overall_vaccine_fear:.2f}"),
        ("Intent to Leave", f"{pkg.overall_intent_to_leave * 100:.1f}%"),
        ("Nurses", str(nurses)),
        ("Months", str(len(pkg.periods))),
        ("Locations", str(len(pkg.locations))),
    ]

    tile_html = ""
    for label, value in tiles:
        tile_html += f"""
        <div style="background:#{brand['secondary']};color:#fff;border-radius:8px;padding:10px 16px;
                    min-width:110px;text-align:center;box-shadow:2px 2px 6px rgba(0,0,0,.2);">
            <div style="font-size:10px;font-weight:600;letter-spacing:.8px;opacity:.85;">{label.upper()}</div>
            <div style="font-size:22px;font-weight:700;margin-top:2px;">{value}</div>
        </div>"""

    first, last = (pkg.periods[0], pkg.periods[-1]) if pkg.periods else ("", "")
    return f"""
    <div style="font-family:'Segoe UI',Arial,sans-serif;background:#{brand['primary']};padding:20px 28px;">
        <h1 style="color:#fff;margin:0 0 3px;font-size:20px;">{pkg.title}</h1>
        <p style="color:rgba(255,255,255,.7);margin:0 0 14px;font-size:12px;">
            {first} to {last} &nbsp;|&nbsp;
            Generated: {datetime.today().strftime('%Y-%m-%d %H:%M')}
        </p>
        <div style="display:flex;gap:10px;flex-wrap:wrap;">{tile_html}</div>
    </div>"""


def generate_dashboard(
    pkg: SummaryPackage,
    config_path: str = "config.yaml",
) -> Path:
    """Assemble the interactive HTML dashboard and write to disk.

    Args:
        pkg: Computed SummaryPackage.
        config_path: Path to configuration YAML.

    Returns:
        Path to the generated .html file.
    """
    with open(config_path, "r") as fh:
        cfg = yaml.safe_load(fh)

    brand = cfg["charts"]["brand"]
    colours = cfg["charts"].get("location_colours", {})
    output_dir = Path(cfg["paths"]["output_dir"])
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / cfg["paths"]["dashboard_filename"]

    logger.info("Building dashboard for %d locations", len(pkg.locations))

    charts = {
        "trend": _chart_burnout_trend(pkg, brand, colours),
        "leave": _chart_intent_to_leave(pkg, brand, colours),
        "fear_heatmap": _chart_heatmap(pkg.vaccine_fear_pivot, "Average Vaccine Fear (1-5)",
                                       "Purples", 1, 5, brand),
        "burnout_heatmap": _chart_heatmap(pkg.burnout_pivot, "Average Burnout (0-100)",
                                          "Reds", 0, 100, brand),
    }

    chart_args = {"include_plotlyjs": False, "full_html": False}
    divs = {k: v.to_html(**chart_args) for k, v in charts.items()}

    kpi_header = _build_kpi_header(pkg, brand)

    html = f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width,initial-scale=1.0">
    <title>{pkg.title}</title>
    <script src="https://cdn.plot.ly/plotly-latest.min.js"></script>
    <style>
        *{{box-sizing:border-box;margin:0;padding:0;}}
        body{{font-family:'Segoe UI',Arial,sans-serif;background:#F4F7FA;}}
        .grid{{display:grid;grid-template-columns:1fr 1fr;gap:14px;padding:18px;}}
        .card{{background:#fff;border-radius:8px;padding:6px;
               box-shadow:0 2px 8px rgba(0,0,0,.07);}}
        .full{{grid-column:1/-1;}}
        .footer{{text-align:center;padding:14px;color:#888;font-size:11px;}}
        @media(max-width:880px){{.grid{{grid-template-columns:1fr;}}.full{{grid-column:1;}}}}
    </style>
</head>
<body>
    {kpi_header}
    <div class="grid">
        <div class="card full">{divs['trend']}</div>
        <div class="card">{divs['leave']}</div>
        <div class="card">{divs['fear_heatmap']}</div>
        <div class="card full">{divs['burnout_heatmap']}</div>
    </div>
    <div class="footer">
        {cfg['project'].get('organisation', '')} &nbsp;|&nbsp; Synthetic data only &nbsp;|&nbsp;
        {datetime.today().strftime('%Y-%m-%d %H:%M')}
    </div>
</body>
</html>"""

    output_path.write_text(html, encoding="utf-8")
    logger.info("Dashboard saved to %s", output_path)
    return output_path
