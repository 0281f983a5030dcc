from __future__ import annotations

import logging
from math import log2
from typing import List, Optional, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from cluster_distance import cluster_color, format_distance, map_bounds
from cluster_filters import FilterState, FilterView, apply_filter_state, county_options, visible_label
from cluster_ingest import TrainingMapConfig, TrainingMapData, load_training_map
from cluster_models import ClusterCenter, School, TrainingMapError, schools_to_frame
from cluster_statistics import (
    EXPORT_FILENAME,
    compute_cluster_summary,
    compute_county_distribution,
    compute_dataset_overview,
    compute_distance_histogram,
    compute_summary_stats,
    export_schools_csv,
)


# -----------------------------
# Constants and simple helpers
# -----------------------------

DEFAULT_CENTER = (0.1473, 35.7962)
DEFAULT_ZOOM = 7
FOCUS_ZOOM = 12
MODE_SCHOOLS = "Schools"
MODE_CENTERS = "Training centers only"
TOP_CLUSTERS = 10
PIE_COLORS: Sequence[str] = (
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#FFA07A", "#98D8C8",
    "#F7DC6F", "#BB8FCE", "#85C1E9", "#F8B88B", "#AED6F1",
)


def _zoom_for_span(span_deg: float) -> float:
    if span_deg <= 0:
        return FOCUS_ZOOM
    return max(3.0, min(FOCUS_ZOOM, log2(360.0 / span_deg) - 0.5))


def _viewport(view: FilterView, state: FilterState):
    if view.focus is not None:
        return (view.focus.latitude, view.focus.longitude), FOCUS_ZOOM
    if state.show_centers_only:
        points = [(c.center_lat, c.center_lng) for c in view.centers]
    else:
        points = [(s.latitude, s.longitude) for s in view.schools]
    bounds = map_bounds(points)
    if bounds is None:
        return DEFAULT_CENTER, DEFAULT_ZOOM
    span = max(bounds.north - bounds.south, bounds.east - bounds.west)
    return bounds.center, _zoom_for_span(span)


# -----------------------------
# Caching wrappers
# -----------------------------

@st.cache_data(show_spinner="Loading schools data...")
def cached_training_map(config: TrainingMapConfig) -> TrainingMapData:
    return load_training_map(config)


# -----------------------------
# UI helpers
# -----------------------------

def render_load_failure(message: str) -> None:
    st.error(f"**Error loading data**\n\n{message}")
    if st.button("Retry", type="primary"):
        cached_training_map.clear()
        st.rerun()


def _select_all_counties(counties: List[str]) -> None:
    st.session_state["county_select"] = counties


def _clear_filters() -> None:
    st.session_state["county_select"] = []
    st.session_state["search_query"] = ""


def render_controls(data: TrainingMapData) -> FilterState:
    options = county_options(data.schools)
    names = [option.county for option in options]
    counts = {option.county: option.school_count for option in options}

    with st.sidebar:
        st.header("Filters")
        mode = st.radio("Show", (MODE_SCHOOLS, MODE_CENTERS), horizontal=True, key="display_mode")
        search = st.text_input("Search schools", placeholder="Type school name...", key="search_query")
        selected = st.multiselect(
            "Filter by county",
            names,
            format_func=lambda name: f"{name} ({counts[name]})",
            key="county_select",
        )
        col_all, col_clear = st.columns(2)
        col_all.button("All", on_click=_select_all_counties, args=(names,), use_container_width=True)
        col_clear.button("Clear", on_click=_clear_filters, use_container_width=True)

    state = FilterState(
        counties=frozenset(selected),
        search=search.strip(),
        show_centers_only=mode == MODE_CENTERS,
    )
    with st.sidebar:
        st.caption(visible_label(data.schools, data.centers, state))
        if state.active_count:
            st.caption(f"Filters: {state.active_count}")
    return state


def render_header(data: TrainingMapData) -> None:
    overview = compute_dataset_overview(data.schools, data.centers)
    st.title("Kenya Schools Training Centers")
    st.caption(
        f"{overview['total_schools']} schools across {overview['counties']} counties • "
        f"{overview['training_centers']} regional training centers"
    )


def build_map_figure(view: FilterView, state: FilterState, map_style: str) -> go.Figure:
    fig = go.Figure()

    if not state.show_centers_only and view.schools:
        schools = schools_to_frame(view.schools)
        custom = schools[["county", "sub_county", "cluster_id", "distance_to_host_venue", "location_type"]].copy()
        custom["cluster_id"] = custom["cluster_id"] + 1
        custom["distance_to_host_venue"] = custom["distance_to_host_venue"].map(format_distance)
        fig.add_trace(
            go.Scattermap(
                lat=schools["latitude"],
                lon=schools["longitude"],
                mode="markers",
                marker=dict(size=10, color=[cluster_color(c) for c in schools["cluster_id"]], opacity=0.9),
                text=schools["name"],
                customdata=custom.to_numpy(),
                name="Schools",
                hovertemplate=(
                    "<b>%{text}</b><br>County %{customdata[0]}"
                    "<br>Sub-County %{customdata[1]}"
                    "<br>Cluster #%{customdata[2]}"
                    "<br>Distance to Training Venue %{customdata[3]}"
                    "<br>Location Type %{customdata[4]}<extra></extra>"
                ),
            )
        )

    if view.centers:
        lats = [c.center_lat for c in view.centers]
        lons = [c.center_lng for c in view.centers]
        labels = [f"Regional Training Center #{c.cluster_id + 1}" for c in view.centers]
        hover = [
            f"Serves {c.num_schools} schools<br>Avg {format_distance(c.avg_distance)}"
            f" • Max {format_distance(c.max_distance)}"
            for c in view.centers
        ]
        fig.add_trace(
            go.Scattermap(
                lat=lats,
                lon=lons,
                mode="markers",
                marker=dict(size=20, color="gold", opacity=1),
                text=labels,
                customdata=hover,
                name="Regional Training Centers",
                hovertemplate="<b>%{text}</b><br>%{customdata}<extra></extra>",
            )
        )
        # dark core on top of the gold marker
        fig.add_trace(
            go.Scattermap(
                lat=lats,
                lon=lons,
                mode="markers",
                marker=dict(size=8, color="#FF6B00", opacity=1),
                hoverinfo="skip",
                showlegend=False,
            )
        )

    (center_lat, center_lon), zoom = _viewport(view, state)
    fig.update_layout(
        map=dict(style=map_style, center=dict(lat=center_lat, lon=center_lon), zoom=zoom),
        margin={"r": 0, "t": 0, "l": 0, "b": 0},
        legend=dict(orientation="h", yanchor="bottom", y=0.01, xanchor="left", x=0.0),
        height=650,
    )
    return fig


def render_focus(school: Optional[School]) -> None:
    if school is None:
        return
    role = "Host training venue" if school.is_host_venue else f"{format_distance(school.distance_to_host_venue)} to training venue"
    st.info(
        f"**{school.name}** · {school.county}, {school.sub_county} · "
        f"Cluster #{school.cluster_id + 1} · {role} · {school.location_type}"
    )


def render_center_details(centers: Sequence[ClusterCenter]) -> None:
    if not centers:
        return
    by_label = {f"Training Center #{c.cluster_id + 1}": c for c in centers}
    with st.expander("Training center details", expanded=False):
        label = st.selectbox("Training center", list(by_label))
        center = by_label[label]
        cols = st.columns(3)
        cols[0].metric("Serves", f"{center.num_schools} schools")
        cols[1].metric("Avg Distance", format_distance(center.avg_distance))
        cols[2].metric("Max Distance", format_distance(center.max_distance))
        st.markdown("\n".join(f"- {name}" for name in center.schools))


def render_statistics(view: FilterView) -> None:
    st.subheader("Statistics")
    stats = compute_summary_stats(view.schools)
    cols = st.columns(4)
    cols[0].metric("Total Schools", stats.total_schools)
    cols[1].metric("Training Venues", stats.total_venues)
    cols[2].metric("Avg Distance", f"{stats.avg_distance:.1f}km")
    cols[3].metric("Max Distance", f"{stats.max_distance:.1f}km")

    if not view.schools:
        st.info("No schools match the current filters.")
        return

    col_county, col_distance = st.columns(2)
    with col_county:
        county_df = compute_county_distribution(view.schools)
        fig_county = px.pie(
            county_df, names="name", values="count", title="Schools by County",
            color_discrete_sequence=list(PIE_COLORS),
        )
        st.plotly_chart(fig_county, use_container_width=True, key="county_chart")
    with col_distance:
        distance_df = compute_distance_histogram(view.schools)
        fig_distance = px.bar(
            distance_df, x="range_label", y="count", title="Distance Distribution",
            labels={"range_label": "Distance to venue", "count": "Schools"},
        )
        st.plotly_chart(fig_distance, use_container_width=True, key="distance_chart")

    st.markdown("**Cluster Sizes**")
    summary = compute_cluster_summary(view.schools, view.centers).head(TOP_CLUSTERS)
    display_df = pd.DataFrame(
        {
            "Cluster": [f"Cluster {cid + 1}" for cid in summary["cluster_id"]],
            "Schools": summary["num_schools"],
            "Avg distance (km)": summary["avg_distance"].astype(float).round(0).astype(int),
        }
    )
    st.dataframe(display_df, use_container_width=True, hide_index=True)


def render_data_table(view: FilterView) -> None:
    frame = schools_to_frame(view.schools)
    display_df = frame[
        ["name", "county", "sub_county", "cluster_id", "is_host_venue", "distance_to_host_venue", "location_type"]
    ].rename(
        columns={
            "name": "School",
            "county": "County",
            "sub_county": "Sub-County",
            "cluster_id": "Cluster",
            "is_host_venue": "Training venue",
            "distance_to_host_venue": "Distance to venue (km)",
            "location_type": "Location type",
        }
    )
    display_df["Cluster"] = display_df["Cluster"] + 1
    st.dataframe(display_df, use_container_width=True, hide_index=True)


def render_download_button(view: FilterView) -> None:
    st.download_button(
        label="Export CSV",
        data=export_schools_csv(view.schools).encode("utf-8"),
        file_name=EXPORT_FILENAME,
        mime="text/csv",
        disabled=not view.schools,
    )


# -----------------------------
# App
# -----------------------------

def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    st.set_page_config(page_title="Kenya Schools Training Centers", layout="wide")

    try:
        config = TrainingMapConfig.from_env()
    except ValueError as exc:
        st.error(f"Invalid configuration: {exc}")
        st.stop()

    try:
        data = cached_training_map(config)
    except TrainingMapError as exc:
        render_load_failure(str(exc))
        st.stop()

    render_header(data)
    state = render_controls(data)
    view = apply_filter_state(data.schools, data.centers, state)

    render_focus(view.focus)
    if not view.schools:
        st.warning("No schools match the current filters.")
    st.plotly_chart(build_map_figure(view, state, config.map_style), use_container_width=True, key="training_map")
    render_center_details(view.centers)

    render_statistics(view)

    tab_data, tab_legend = st.tabs(["Data", "Legend"])
    with tab_data:
        render_data_table(view)
        render_download_button(view)
    with tab_legend:
        st.markdown(
            """
            - **Coloured circles**: individual schools, one colour per cluster
            - **Gold markers**: regional training centers (host venues)
            - Distances are great-circle kilometres from each school to its cluster's host venue;
              host venues are excluded from averages and the distance histogram.
            """
        )


if __name__ == "__main__":
    main()
