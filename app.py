import logging

import pandas as pd
from shiny import reactive, render
from shiny.express import input, ui
from shinywidgets import render_plotly

from tbrates.aggregate import (
    aggregate_combined_series,
    aggregate_series,
    country_rates,
    value_box_summary,
)
from tbrates.config import (
    ALL_COUNTRIES_CHOICE,
    ALL_COUNTRIES_LABEL,
    DEFAULT_METRIC,
    GEOMETRY_ID_FIELD,
    METRIC_OPTIONS,
)
from tbrates.data_manager import TableStore, load_raw
from tbrates.geo import NameResolver, build_map_summary, geometry_pairs, load_geojson, map_frame
from tbrates.plotting import create_rate_map, create_rate_plot
from tbrates.selection import WILDCARD_ALL, Selection, filter_table

logging.basicConfig(level=logging.INFO)

METRIC_MAPPING = {value: label for label, value in METRIC_OPTIONS}
TOP_N = 20

# ======================================================
#  DATA (loaded once on startup)
# ======================================================
store = TableStore()
store.refresh(load_raw())
GEOJSON = load_geojson()
RESOLVER = NameResolver.from_pairs(geometry_pairs(GEOJSON))

YEARS = store.table.years()
LATEST_YEAR = YEARS[-1]
COUNTRY_CHOICES = {ALL_COUNTRIES_CHOICE: ALL_COUNTRIES_LABEL}
COUNTRY_CHOICES.update({c: c for c in store.table.countries()})


@reactive.calc
def selection():
    return Selection.from_ui(input.countries(), input.year())


@reactive.calc
def summary():
    return value_box_summary(store.table, selection())


@reactive.calc
def series():
    sel = selection()
    year_range = (YEARS[0], sel.year)
    if sel.is_wildcard:
        return aggregate_combined_series(store.table, sel.countries, year_range, input.metric())
    return aggregate_series(store.table, sel.countries, year_range, input.metric())


def _metric_box(metric: str) -> str:
    values = summary()["metrics"][metric]
    return f"{values['rate']:.1f} per 100k ({values['total']:,.0f})"


# ======================================================
#  UI LAYOUT
# ======================================================
ui.page_opts(title="TB burden explorer", fillable=False, full_width=True)

with ui.sidebar(open="always", position="left"):
    ui.input_selectize(
        "countries",
        "Countries",
        COUNTRY_CHOICES,
        selected=ALL_COUNTRIES_CHOICE,
        multiple=True,
    )
    ui.input_slider(
        "year", "Year", min=YEARS[0], max=LATEST_YEAR, value=LATEST_YEAR, step=1, sep=""
    )
    ui.input_select("metric", "Trend metric", METRIC_MAPPING, selected=DEFAULT_METRIC)

with ui.layout_columns():
    with ui.value_box():
        "TB incidence"

        @render.text
        def tb_incidence_box():
            return _metric_box("tb_incidence")

    with ui.value_box():
        "TB mortality (HIV-negative)"

        @render.text
        def tb_mortality_box():
            return _metric_box("tb_mortality")

    with ui.value_box():
        "TB/HIV incidence"

        @render.text
        def tbhiv_incidence_box():
            return _metric_box("tbhiv_incidence")

    with ui.value_box():
        "TB/HIV mortality"

        @render.text
        def tbhiv_mortality_box():
            return _metric_box("tbhiv_mortality")

with ui.navset_tab(id="main_tabs"):
    with ui.nav_panel("Trends"):

        @render_plotly
        def rate_plot():
            df = series()
            if df.empty:
                return None
            return create_rate_plot(df, METRIC_MAPPING[input.metric()])

    with ui.nav_panel("Map"):

        @render_plotly
        def rate_map():
            result = build_map_summary(store.table, input.year(), RESOLVER)
            df = map_frame(result)
            if df.empty:
                return None
            return create_rate_map(df, GEOJSON, GEOMETRY_ID_FIELD)

    with ui.nav_panel("Data"):

        @render.data_frame
        def selection_table():
            df = series()
            if df.empty:
                return render.DataGrid(pd.DataFrame(), height=600)
            return render.DataGrid(df.round({"rate": 2}), height=600, filters=True)

    with ui.nav_panel("Highest rates"):

        @render.data_frame
        def top_countries():
            sel = selection()
            view = filter_table(store.table, Selection.of(WILDCARD_ALL, sel.year))
            ranked = country_rates(view, input.metric()).head(TOP_N)
            return render.DataGrid(ranked.round({"rate": 2}), height=600)
