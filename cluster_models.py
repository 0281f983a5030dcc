"""Record types for schools and regional training centers.

Both collections arrive as GeoJSON FeatureCollections of Point features. The
parsers here turn each feature into a frozen dataclass and refuse anything
that does not match the expected shape, so downstream filtering and
statistics never deal with missing or mistyped values.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd
from shapely.geometry import shape

SCHOOL_KIND = "school"
CENTER_KIND = "cluster center"

SCHOOL_COLUMNS: Tuple[str, ...] = (
    "id",
    "name",
    "county",
    "sub_county",
    "latitude",
    "longitude",
    "cluster_id",
    "is_host_venue",
    "distance_to_host_venue",
    "location_type",
)
CENTER_COLUMNS: Tuple[str, ...] = (
    "cluster_id",
    "center_lat",
    "center_lng",
    "num_schools",
    "avg_distance",
    "max_distance",
    "schools",
)


# -----------------------------
# Errors
# -----------------------------

class TrainingMapError(Exception):
    """Base class for every failure that aborts loading the map data."""


class DataFetchError(TrainingMapError):
    pass


class MalformedRecordError(TrainingMapError):
    def __init__(self, kind: str, index: Optional[int], field: str, problem: str):
        self.kind = kind
        self.index = index
        self.field = field
        self.problem = problem
        where = f"{kind} #{index}" if index is not None else kind
        super().__init__(f"Malformed {where}: '{field}' {problem}")


class DanglingReferenceError(TrainingMapError):
    def __init__(self, school_id: int, cluster_id: int):
        self.school_id = school_id
        self.cluster_id = cluster_id
        super().__init__(f"School {school_id} references unknown cluster {cluster_id}")


# -----------------------------
# Records
# -----------------------------

@dataclass(frozen=True)
class School:
    id: int
    name: str
    county: str
    sub_county: str
    latitude: float
    longitude: float
    cluster_id: int
    is_host_venue: bool
    distance_to_host_venue: float
    location_type: str


@dataclass(frozen=True)
class ClusterCenter:
    cluster_id: int
    center_lat: float
    center_lng: float
    num_schools: int
    avg_distance: float
    max_distance: float
    schools: Tuple[str, ...]


# -----------------------------
# Field checks
# -----------------------------

_MISSING = object()


def _get(props: Mapping[str, Any], kind: str, index: Optional[int], field: str) -> Any:
    value = props.get(field, _MISSING)
    if value is _MISSING or value is None:
        raise MalformedRecordError(kind, index, field, "is missing")
    return value


def _as_int(value: Any, kind: str, index: Optional[int], field: str) -> int:
    # bool is an int subclass; JSON true/false is never a valid id
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedRecordError(kind, index, field, "must be an integer")
    return value


def _as_number(value: Any, kind: str, index: Optional[int], field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedRecordError(kind, index, field, "must be a number")
    try:
        number = float(value)
    except OverflowError:
        number = math.inf
    if not math.isfinite(number):
        raise MalformedRecordError(kind, index, field, "must be finite")
    return number


def _as_distance(value: Any, kind: str, index: Optional[int], field: str) -> float:
    distance = _as_number(value, kind, index, field)
    if distance < 0:
        raise MalformedRecordError(kind, index, field, "must not be negative")
    return distance


def _as_str(value: Any, kind: str, index: Optional[int], field: str) -> str:
    if not isinstance(value, str):
        raise MalformedRecordError(kind, index, field, "must be a string")
    return value


def _point(feature: Any, kind: str, index: Optional[int]) -> Tuple[float, float]:
    """Return ``(latitude, longitude)`` of a GeoJSON Point feature."""
    if not isinstance(feature, Mapping):
        raise MalformedRecordError(kind, index, "feature", "must be an object")
    geometry = feature.get("geometry")
    if not isinstance(geometry, Mapping) or geometry.get("type") != "Point":
        raise MalformedRecordError(kind, index, "geometry", "must be a Point")
    coords = geometry.get("coordinates")
    if not isinstance(coords, (list, tuple)) or len(coords) not in (2, 3):
        raise MalformedRecordError(kind, index, "geometry", "must hold [longitude, latitude]")
    for value in coords:
        _as_number(value, kind, index, "geometry")
    point = shape(geometry)
    return float(point.y), float(point.x)


def _properties(feature: Mapping[str, Any], kind: str, index: Optional[int]) -> Mapping[str, Any]:
    props = feature.get("properties")
    if not isinstance(props, Mapping):
        raise MalformedRecordError(kind, index, "properties", "must be an object")
    return props


# -----------------------------
# Feature parsing
# -----------------------------

def parse_school_feature(feature: Any, index: Optional[int] = None) -> School:
    kind = SCHOOL_KIND
    latitude, longitude = _point(feature, kind, index)
    props = _properties(feature, kind, index)

    is_host_venue = props.get("is_host_venue")
    if is_host_venue is None:
        is_host_venue = False
    elif not isinstance(is_host_venue, bool):
        raise MalformedRecordError(kind, index, "is_host_venue", "must be a boolean")

    distance = props.get("distance_to_host_venue")
    distance = 0.0 if distance is None else _as_distance(distance, kind, index, "distance_to_host_venue")

    return School(
        id=_as_int(_get(props, kind, index, "id"), kind, index, "id"),
        name=_as_str(_get(props, kind, index, "name"), kind, index, "name"),
        county=_as_str(_get(props, kind, index, "county"), kind, index, "county"),
        sub_county=_as_str(_get(props, kind, index, "sub_county"), kind, index, "sub_county"),
        latitude=latitude,
        longitude=longitude,
        cluster_id=_as_int(_get(props, kind, index, "cluster_id"), kind, index, "cluster_id"),
        is_host_venue=is_host_venue,
        distance_to_host_venue=distance,
        location_type=_as_str(_get(props, kind, index, "location_type"), kind, index, "location_type"),
    )


def parse_center_feature(feature: Any, index: Optional[int] = None) -> ClusterCenter:
    kind = CENTER_KIND
    center_lat, center_lng = _point(feature, kind, index)
    props = _properties(feature, kind, index)

    roster = _get(props, kind, index, "schools")
    if not isinstance(roster, (list, tuple)) or not all(isinstance(name, str) for name in roster):
        raise MalformedRecordError(kind, index, "schools", "must be a list of names")

    return ClusterCenter(
        cluster_id=_as_int(_get(props, kind, index, "cluster_id"), kind, index, "cluster_id"),
        center_lat=center_lat,
        center_lng=center_lng,
        num_schools=_as_int(_get(props, kind, index, "num_schools"), kind, index, "num_schools"),
        avg_distance=_as_distance(_get(props, kind, index, "avg_distance"), kind, index, "avg_distance"),
        max_distance=_as_distance(_get(props, kind, index, "max_distance"), kind, index, "max_distance"),
        schools=tuple(roster),
    )


def _features(collection: Any, kind: str) -> List[Any]:
    if not isinstance(collection, Mapping):
        raise MalformedRecordError(kind, None, "collection", "must be a FeatureCollection object")
    features = collection.get("features")
    if not isinstance(features, list):
        raise MalformedRecordError(kind, None, "features", "must be a list")
    return features


def _reject_duplicates(records: Sequence[Any], kind: str, field: str) -> None:
    seen = set()
    for i, record in enumerate(records):
        key = getattr(record, field)
        if key in seen:
            raise MalformedRecordError(kind, i, field, f"duplicates {key}")
        seen.add(key)


def parse_schools(collection: Any) -> Tuple[School, ...]:
    features = _features(collection, SCHOOL_KIND)
    schools = tuple(parse_school_feature(feature, i) for i, feature in enumerate(features))
    _reject_duplicates(schools, SCHOOL_KIND, "id")
    return schools


def parse_centers(collection: Any) -> Tuple[ClusterCenter, ...]:
    features = _features(collection, CENTER_KIND)
    centers = tuple(parse_center_feature(feature, i) for i, feature in enumerate(features))
    _reject_duplicates(centers, CENTER_KIND, "cluster_id")
    return centers


def validate_references(schools: Iterable[School], centers: Iterable[ClusterCenter]) -> None:
    """Raise DanglingReferenceError for the first school whose cluster does not exist."""
    known = {center.cluster_id for center in centers}
    for school in schools:
        if school.cluster_id not in known:
            raise DanglingReferenceError(school.id, school.cluster_id)


# -----------------------------
# DataFrame views
# -----------------------------

def schools_to_frame(schools: Sequence[School]) -> pd.DataFrame:
    records: List[Dict[str, Any]] = [asdict(school) for school in schools]
    return pd.DataFrame(records, columns=list(SCHOOL_COLUMNS))


def centers_to_frame(centers: Sequence[ClusterCenter]) -> pd.DataFrame:
    records: List[Dict[str, Any]] = [asdict(center) for center in centers]
    return pd.DataFrame(records, columns=list(CENTER_COLUMNS))
