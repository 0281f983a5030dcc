"""
cluster_statistics.py

Summary numbers for the statistics panel, computed fresh from whatever
subset of schools is currently visible:
1) Schools per county,
2) Cluster sizes and average travel distance,
3) Distance-to-venue histogram (host venues excluded),
4) Headline totals, and the CSV export of the visible schools.

Distances follow the host-venue model: every school records its distance to
the school hosting its cluster's training, and the host itself (distance 0)
is left out of averages and the histogram.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from cluster_models import ClusterCenter, School, centers_to_frame, schools_to_frame

DEFAULT_BUCKETS: Sequence[float] = (0, 20, 40, 60)
EXPORT_FILENAME = "schools_export.csv"
EXPORT_COLUMNS: Sequence[str] = (
    "School Name",
    "County",
    "Sub-County",
    "Latitude",
    "Longitude",
    "Cluster ID",
    "Is Training Venue",
    "Distance to Venue (km)",
    "Location Type",
)


@dataclass(frozen=True)
class SummaryStats:
    total_schools: int
    total_venues: int
    avg_distance: float
    max_distance: float


def _display_county(name: str) -> str:
    return name.removesuffix(" County")


# -----------------------------
# Distributions
# -----------------------------

def compute_county_distribution(schools: Sequence[School]) -> pd.DataFrame:
    """Schools per county, largest first; ties keep first-seen order.

    Counties are grouped by display name, so "Kitui" and "Kitui County" share a slice.
    """
    frame = schools_to_frame(schools)
    names = frame["county"].map(_display_county)
    counts = frame.groupby(names, sort=False).size()
    counts = counts.sort_values(ascending=False, kind="stable")
    return pd.DataFrame(
        {
            "name": list(counts.index),
            "count": counts.to_numpy(dtype=int),
        }
    )


def compute_cluster_summary(schools: Sequence[School], centers: Sequence[ClusterCenter]) -> pd.DataFrame:
    visible_ids = {school.cluster_id for school in schools}
    visible = [center for center in centers if center.cluster_id in visible_ids]
    frame = centers_to_frame(visible)[["cluster_id", "num_schools", "avg_distance"]]
    return frame.sort_values("num_schools", ascending=False, kind="stable").reset_index(drop=True)


def _bucket_labels(boundaries: Sequence[float]) -> List[str]:
    labels = [f"{lo:g}-{hi:g}km" for lo, hi in zip(boundaries[:-1], boundaries[1:])]
    labels.append(f"{boundaries[-1]:g}+km")
    return labels


def compute_distance_histogram(
    schools: Sequence[School],
    bucket_boundaries: Sequence[float] = DEFAULT_BUCKETS,
) -> pd.DataFrame:
    """
    Count non-venue schools per half-open distance bucket.

    ``bucket_boundaries`` are the lower edges; the last bucket has no upper
    bound. Host venues are excluded so they do not inflate the first bucket.
    """
    boundaries = [float(b) for b in bucket_boundaries]
    if not boundaries:
        raise ValueError("At least one bucket boundary is required.")
    if any(lo >= hi for lo, hi in zip(boundaries[:-1], boundaries[1:])):
        raise ValueError("Bucket boundaries must be strictly increasing.")

    labels = _bucket_labels(boundaries)
    frame = schools_to_frame(schools)
    non_venue = frame.loc[~frame["is_host_venue"].astype(bool), "distance_to_host_venue"].astype(float)
    buckets = pd.cut(non_venue, bins=[*boundaries, np.inf], right=False, labels=labels)
    counts = buckets.value_counts(sort=False)
    return pd.DataFrame({"range_label": labels, "count": [int(counts.get(label, 0)) for label in labels]})


# -----------------------------
# Totals
# -----------------------------

def compute_summary_stats(schools: Sequence[School]) -> SummaryStats:
    frame = schools_to_frame(schools)
    if frame.empty:
        return SummaryStats(total_schools=0, total_venues=0, avg_distance=0.0, max_distance=0.0)

    venue = frame["is_host_venue"].astype(bool)
    distances = frame["distance_to_host_venue"].astype(float)
    non_venue = distances[~venue]
    return SummaryStats(
        total_schools=len(frame),
        total_venues=int(venue.sum()),
        avg_distance=float(non_venue.mean()) if not non_venue.empty else 0.0,
        max_distance=float(distances.max()),
    )


def compute_dataset_overview(schools: Sequence[School], centers: Sequence[ClusterCenter]) -> Dict[str, int]:
    return {
        "total_schools": len(schools),
        "counties": len({school.county for school in schools}),
        "training_centers": len(centers),
    }


# -----------------------------
# Export
# -----------------------------

def build_export_frame(schools: Sequence[School]) -> pd.DataFrame:
    frame = schools_to_frame(schools)
    export = pd.DataFrame(
        {
            "School Name": frame["name"],
            "County": frame["county"],
            "Sub-County": frame["sub_county"],
            "Latitude": frame["latitude"],
            "Longitude": frame["longitude"],
            # stored ids are zero-based
            "Cluster ID": frame["cluster_id"].astype(int) + 1,
            "Is Training Venue": frame["is_host_venue"].map(lambda v: "Yes" if v else "No"),
            "Distance to Venue (km)": frame["distance_to_host_venue"].map(lambda d: f"{d:.2f}"),
            "Location Type": frame["location_type"],
        }
    )
    return export[list(EXPORT_COLUMNS)]


def export_schools_csv(schools: Sequence[School]) -> str:
    return build_export_frame(schools).to_csv(index=False, lineterminator="\n")
