import pandas as pd
import plotly.graph_objects as go


# ============================================================
# Configuration / constants
# ============================================================

HOVER_TEMPLATE_RATE = (
    "Country: %{customdata[0]}<br>"
    "Year: %{x}<br>"
    "Rate: %{y:.1f} per 100,000<extra></extra>"
)

HOVER_TEMPLATE_MAP = (
    "%{customdata[0]}<br>"
    "Average incidence: %{z:.1f} per 100,000<extra></extra>"
)


# ============================================================
# Line chart
# ============================================================


def create_rate_plot(
    series: pd.DataFrame,
    metric_label: str,
    *,
    y_axis_label: str = "Rate per 100,000",
) -> go.Figure:
    """
    Line chart of yearly rates, one trace per country.

    Parameters
    ----------
    series : pd.DataFrame
        Output of ``aggregate_series`` or ``aggregate_combined_series``
        with columns 'country', 'year' and 'rate'.
    metric_label : str
        Human-readable metric name for the title.
    y_axis_label : str, default "Rate per 100,000"
        Y-axis title.

    Returns
    -------
    go.Figure
        An empty figure when ``series`` has no rows.
    """
    if series.empty:
        return go.Figure()

    fig = go.Figure()
    for country, sub in series.groupby("country", sort=True):
        fig.add_trace(
            go.Scatter(
                x=sub["year"],
                y=sub["rate"],
                mode="lines+markers",
                line=dict(width=3),
                marker=dict(size=8),
                name=str(country),
                hovertemplate=HOVER_TEMPLATE_RATE,
                customdata=[[country]] * len(sub),
            )
        )

    fig.update_xaxes(title_text="Year", tickmode="linear", dtick=1)
    fig.update_yaxes(title_text=y_axis_label, rangemode="tozero")
    fig.update_layout(
        title=f"<b>{metric_label} per 100,000 population</b>",
        legend=dict(orientation="h", x=0.5, y=-0.2, xanchor="center"),
        margin=dict(t=80, l=50, r=40, b=40),
        plot_bgcolor="#f5f7fb",
    )
    return fig


# ============================================================
# Choropleth
# ============================================================


def create_rate_map(
    map_df: pd.DataFrame,
    geojson: dict,
    id_field: str,
    *,
    title: str = "Average TB incidence per 100,000",
) -> go.Figure:
    """
    Choropleth of average incidence keyed by polygon identifier.

    ``map_df`` is the output of ``geo.map_frame``; polygons missing from it
    are simply left blank.
    """
    data = map_df.dropna(subset=["avg_incidence_rate"])
    if data.empty:
        return go.Figure()

    fig = go.Figure(
        go.Choropleth(
            geojson=geojson,
            featureidkey=f"properties.{id_field}",
            locations=data["polygon_identifier"],
            z=data["avg_incidence_rate"],
            customdata=data[["country"]].to_numpy(),
            hovertemplate=HOVER_TEMPLATE_MAP,
            colorbar=dict(title="per 100k"),
        )
    )
    fig.update_geos(showframe=False, projection_type="equirectangular")
    fig.update_layout(title=f"<b>{title}</b>", margin=dict(t=60, l=0, r=0, b=0))
    return fig
