"""
site_map.py — Interactive hospital site map.

One circle marker per hospital, coloured by burnout level, with a popup
showing the site's headline burnout and vaccine fear percentages.
Saved as a standalone Leaflet HTML page via folium.
"""

import logging
from pathlib import Path
from typing import Any, Optional

import folium
import yaml

from src.sites import HospitalSite, load_sites

logger = logging.getLogger(__name__)

# Burnout bands for marker colour (lower bound, colour)
BURNOUT_BANDS = [
    (65.0, "#C00000"),
    (50.0, "#FFC000"),
    (0.0, "#70AD47"),
]


def burnout_colour(burnout_pct: float) -> str:
    for lower, colour in BURNOUT_BANDS:
        if burnout_pct >= lower:
            return colour
    return BURNOUT_BANDS[-1][1]


def build_popup(site: HospitalSite) -> folium.Popup:
    """Build HTML popup for a site marker."""
    html = f"""
    <div style="font-family: -apple-system, sans-serif; max-width: 280px;">
        <h4 style="margin: 0 0 6px 0; color: #1F3864;">{site.name}</h4>
        <table style="font-size: 13px; border-collapse: collapse; width: 100%;">
            <tr><td style="padding: 3px 8px 3px 0; font-weight: bold; color: #555;">Burnout</td>
                <td style="padding: 3px 0;">{site.burnout_pct:.0f}%</td></tr>
            <tr><td style="padding: 3px 8px 3px 0; font-weight: bold; color: #555;">Vaccine fear</td>
                <td style="padding: 3px 0;">{site.vaccine_fear_pct:.0f}%</td></tr>
            <tr><td style="padding: 3px 8px 3px 0; font-weight: bold; color: #555;">Coordinates</td>
                <td style="padding: 3px 0;">{site.latitude:.4f}, {site.longitude:.4f}</td></tr>
        </table>
    </div>
    """
    return folium.Popup(html, max_width=300)


def build_site_map(
    sites: list[HospitalSite],
    map_cfg: Optional[dict[str, Any]] = None,
) -> folium.Map:
    """Build the folium map centred on the mean site position."""
    map_cfg = map_cfg or {}
    centre = [
        sum(s.latitude for s in sites) / len(sites),
        sum(s.longitude for s in sites) / len(sites),
    ]
    m = folium.Map(
        location=centre,
        zoom_start=map_cfg.get("zoom_start", 8),
        tiles=map_cfg.get("tiles", "CartoDB positron"),
        control_scale=True,
    )

    for site in sites:
        colour = burnout_colour(site.burnout_pct)
        folium.CircleMarker(
            location=[site.latitude, site.longitude],
            radius=8 + site.burnout_pct / 10,
            popup=build_popup(site),
            tooltip=f"{site.name}: burnout {site.burnout_pct:.0f}%",
            color=colour,
            fill=True,
            fill_color=colour,
            fill_opacity=0.7,
            weight=1,
        ).add_to(m)

    if len(sites) > 1:
        m.fit_bounds(
            [[min(s.latitude for s in sites), min(s.longitude for s in sites)],
             [max(s.latitude for s in sites), max(s.longitude for s in sites)]],
            padding=(40, 40),
        )

    legend_rows = "".join(
        f'<div><span style="color:{colour};font-weight:bold;">●</span> '
        f'{"≥ " + format(lower, ".0f") + "%" if lower else "below 50%"}</div>'
        for lower, colour in BURNOUT_BANDS
    )
    legend_html = f"""
    <div style="position: fixed; bottom: 30px; left: 10px; z-index: 1000;
                background: white; padding: 10px 14px; border-radius: 8px;
                box-shadow: 0 2px 6px rgba(0,0,0,0.2); font-family: -apple-system, sans-serif;
                font-size: 11px;">
        <h4 style="margin: 0 0 6px;">Burnout ({len(sites)} sites)</h4>
        {legend_rows}
    </div>
    """
    m.get_root().html.add_child(folium.Element(legend_html))
    return m


def generate_site_map(config_path: str = "config.yaml") -> Path:
    """Build the site map from config.yaml and save it as HTML.

    Args:
        config_path: Path to configuration YAML.

    Returns:
        Path to the generated .html file.
    """
    with open(config_path, "r") as fh:
        cfg = yaml.safe_load(fh)

    sites = load_sites(cfg)
    m = build_site_map(sites, cfg.get("charts", {}).get("map"))

    output_dir = Path(cfg["paths"]["output_dir"])
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / cfg["paths"]["map_filename"]
    m.save(str(output_path))
    logger.info("Site map saved to %s (%d sites)", output_path, len(sites))
    return output_path
