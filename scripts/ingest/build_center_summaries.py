"""Build cluster_centers.geojson from an already-clustered schools.geojson.

Each cluster's center is placed at its host venue school. Clusters without a
venue fall back to the mean position of their members. Summary fields follow
the dashboard's host-venue model: avg_distance is the mean over non-venue
members, max_distance is over all members.

Usage: python scripts/ingest/build_center_summaries.py --help

CLI flags:
    --schools <path>   : Input schools GeoJSON (default data/schools.geojson)
    --output <path>    : Output centers GeoJSON (default data/cluster_centers.geojson)
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Sequence

from shapely.geometry import Point, mapping

ROOT = Path(__file__).resolve().parent.parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cluster_models import School, TrainingMapError, parse_schools, schools_to_frame  # noqa: E402

DATA_DIR = ROOT / "data"
DEFAULT_SCHOOLS = DATA_DIR / "schools.geojson"
DEFAULT_OUTPUT = DATA_DIR / "cluster_centers.geojson"


def build_center_collection(schools: Sequence[School]) -> Dict[str, Any]:
    df = schools_to_frame(schools)
    features: List[Dict[str, Any]] = []
    if df.empty:
        return {"type": "FeatureCollection", "features": features}

    df["is_host_venue"] = df["is_host_venue"].astype(bool)
    for cluster_id, members in df.groupby("cluster_id", sort=True):
        venues = members[members["is_host_venue"]]
        if not venues.empty:
            lat = float(venues["latitude"].iloc[0])
            lng = float(venues["longitude"].iloc[0])
        else:
            lat = float(members["latitude"].mean())
            lng = float(members["longitude"].mean())

        distances = members["distance_to_host_venue"].astype(float)
        non_venue = distances[~members["is_host_venue"]]
        props = {
            "cluster_id": int(cluster_id),
            "num_schools": int(len(members)),
            "avg_distance": round(float(non_venue.mean()), 2) if not non_venue.empty else 0.0,
            "max_distance": round(float(distances.max()), 2),
            "schools": members["name"].tolist(),
        }
        features.append({"type": "Feature", "geometry": mapping(Point(lng, lat)), "properties": props})

    return {"type": "FeatureCollection", "features": features}


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Derive training-center summaries from clustered schools")
    parser.add_argument("--schools", type=Path, default=DEFAULT_SCHOOLS)
    parser.add_argument("--output", type=Path, default=DEFAULT_OUTPUT)
    args = parser.parse_args(argv)

    if not args.schools.exists():
        print(f"[build_center_summaries] Error: schools file not found at {args.schools}")
        return 1

    try:
        schools = parse_schools(json.loads(args.schools.read_text(encoding="utf-8")))
    except (ValueError, TrainingMapError) as exc:
        print(f"[build_center_summaries] Error: {exc}")
        return 1

    collection = build_center_collection(schools)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(json.dumps(collection, ensure_ascii=False, indent=2), encoding="utf-8")
    n_venues = sum(1 for school in schools if school.is_host_venue)
    print(
        f"[build_center_summaries] Wrote {len(collection['features'])} centers "
        f"({n_venues} host venues) to {args.output}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
