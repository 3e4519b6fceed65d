"""
nurse-burnout-charts — Source package.

Modules:
    cohort_simulator — Seeded per-nurse, per-month synthetic survey cohort
    summary          — Location × month aggregation and heatmap pivots
    sites            — Static hospital site reference data
    charts           — matplotlib PNG line plot + heatmaps
    dashboard        — Interactive Plotly HTML dashboard
    site_map         — Interactive folium hospital map
"""
