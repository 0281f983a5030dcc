from typing import Sequence

import numpy as np
import pandas as pd

from cluster_distance import haversine_km_vectorized
from cluster_models import ClusterCenter, School, centers_to_frame, schools_to_frame


def compute_cluster_consistency(
    schools: Sequence[School],
    centers: Sequence[ClusterCenter],
    tolerance_km: float = 0.01,
) -> pd.DataFrame:
    """Check each training center's summary fields against its member schools.

    Columns added per center:
    - member_count, venue_count: schools referencing the cluster, and how many are host venues
    - recomputed_avg: mean distance of non-venue members (0 if there are none)
    - recomputed_max: largest member distance (0 if there are no members)
    - count_ok: num_schools equals member_count
    - avg_ok / max_ok: stored values within tolerance_km of the recomputed ones
    - order_ok: max_distance >= avg_distance >= 0
    - venue_ok: exactly one member is the host venue
    - id_ok: no other center shares the cluster_id
    - is_consistent: all of the above
    """
    df = centers_to_frame(centers).drop(columns=["schools"])
    members = schools_to_frame(schools)
    members["is_host_venue"] = members["is_host_venue"].astype(bool)
    members["distance_to_host_venue"] = members["distance_to_host_venue"].astype(float)

    grouped = members.groupby("cluster_id")
    member_count = grouped.size()
    venue_count = grouped["is_host_venue"].sum()
    recomputed_max = grouped["distance_to_host_venue"].max()
    recomputed_avg = members[~members["is_host_venue"]].groupby("cluster_id")["distance_to_host_venue"].mean()

    df["member_count"] = df["cluster_id"].map(member_count).fillna(0).astype(int)
    df["venue_count"] = df["cluster_id"].map(venue_count).fillna(0).astype(int)
    df["recomputed_avg"] = df["cluster_id"].map(recomputed_avg).fillna(0.0).astype(float)
    df["recomputed_max"] = df["cluster_id"].map(recomputed_max).fillna(0.0).astype(float)

    avg = df["avg_distance"].astype(float)
    mx = df["max_distance"].astype(float)
    df["count_ok"] = df["num_schools"] == df["member_count"]
    df["avg_ok"] = (avg - df["recomputed_avg"]).abs() <= tolerance_km
    df["max_ok"] = (mx - df["recomputed_max"]).abs() <= tolerance_km
    df["order_ok"] = (mx >= avg) & (avg >= 0)
    df["venue_ok"] = df["venue_count"] == 1
    df["id_ok"] = ~df["cluster_id"].duplicated(keep=False)
    df["is_consistent"] = df[["count_ok", "avg_ok", "max_ok", "order_ok", "venue_ok", "id_ok"]].all(axis=1)
    return df


def compute_distance_check(
    schools: Sequence[School],
    centers: Sequence[ClusterCenter],
    tolerance_km: float = 0.5,
) -> pd.DataFrame:
    """Compare each school's stored distance with the haversine distance to its center point.

    Only meaningful when center coordinates are the host venue's location.
    Schools whose cluster is unknown get NaN and distance_ok False. When a
    cluster_id repeats, the first center carrying it is used.
    """
    df = schools_to_frame(schools)
    lookup = centers_to_frame(centers).drop_duplicates("cluster_id").set_index("cluster_id")
    df["center_lat"] = df["cluster_id"].map(lookup["center_lat"])
    df["center_lng"] = df["cluster_id"].map(lookup["center_lng"])
    df["recomputed_km"] = haversine_km_vectorized(
        df["latitude"].astype(float),
        df["longitude"].astype(float),
        df["center_lat"].astype(float),
        df["center_lng"].astype(float),
    )
    diff = np.abs(df["recomputed_km"] - df["distance_to_host_venue"].astype(float))
    df["distance_ok"] = diff <= tolerance_km
    return df
