"""Load the school and training-center GeoJSON collections.

Both collections are fetched concurrently, either over HTTP or from local
files, and are only parsed once both have arrived. A failure anywhere
(either fetch, a malformed feature, a school pointing at a missing cluster)
fails the whole load: callers never see a half-loaded dataset.
"""
from __future__ import annotations

import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence, Tuple

import requests

from cluster_models import (
    ClusterCenter,
    DataFetchError,
    School,
    TrainingMapError,
    parse_centers,
    parse_schools,
    validate_references,
)

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_SCHOOLS_SOURCE = str(DATA_DIR / "schools.geojson")
DEFAULT_CENTERS_SOURCE = str(DATA_DIR / "cluster_centers.geojson")
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAP_STYLE = "open-street-map"


def _load_env() -> None:
    from dotenv import load_dotenv

    load_dotenv()
    keys_env = Path(os.getcwd()) / "MyKeys" / ".env"
    if keys_env.exists():
        load_dotenv(dotenv_path=keys_env, override=False)


@dataclass(frozen=True)
class TrainingMapConfig:
    schools_source: str = DEFAULT_SCHOOLS_SOURCE
    centers_source: str = DEFAULT_CENTERS_SOURCE
    timeout: float = DEFAULT_TIMEOUT
    map_style: str = DEFAULT_MAP_STYLE

    @classmethod
    def from_env(cls) -> "TrainingMapConfig":
        _load_env()
        raw_timeout = os.getenv("TRAINING_MAP_TIMEOUT")
        timeout = DEFAULT_TIMEOUT
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                raise ValueError(f"TRAINING_MAP_TIMEOUT must be a number, got {raw_timeout!r}") from None
            if timeout <= 0:
                raise ValueError("TRAINING_MAP_TIMEOUT must be positive")
        return cls(
            schools_source=os.getenv("TRAINING_MAP_SCHOOLS_SOURCE") or DEFAULT_SCHOOLS_SOURCE,
            centers_source=os.getenv("TRAINING_MAP_CENTERS_SOURCE") or DEFAULT_CENTERS_SOURCE,
            timeout=timeout,
            map_style=os.getenv("TRAINING_MAP_STYLE") or DEFAULT_MAP_STYLE,
        )


@dataclass(frozen=True)
class TrainingMapData:
    schools: Tuple[School, ...]
    centers: Tuple[ClusterCenter, ...]


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def fetch_feature_collection(source: str, timeout: float = DEFAULT_TIMEOUT) -> Any:
    """Return the decoded JSON document at ``source`` (URL or file path)."""
    if _is_url(source):
        try:
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise DataFetchError(f"Failed to load {source}: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise DataFetchError(f"Failed to load {source}: response is not valid JSON") from exc

    path = Path(source)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise DataFetchError(f"Failed to load {source}: {exc}") from exc
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise DataFetchError(f"Failed to load {source}: file is not valid UTF-8 JSON") from exc


def load_training_map(config: TrainingMapConfig | None = None) -> TrainingMapData:
    """Fetch, parse and cross-check both collections as a single unit."""
    config = config or TrainingMapConfig()
    logger.info("Loading schools from %s and centers from %s", config.schools_source, config.centers_source)

    with ThreadPoolExecutor(max_workers=2) as pool:
        schools_job = pool.submit(fetch_feature_collection, config.schools_source, config.timeout)
        centers_job = pool.submit(fetch_feature_collection, config.centers_source, config.timeout)
        try:
            schools_doc = schools_job.result()
            centers_doc = centers_job.result()
        except DataFetchError:
            logger.error("Training map data could not be fetched", exc_info=True)
            raise

    try:
        schools = parse_schools(schools_doc)
        centers = parse_centers(centers_doc)
        validate_references(schools, centers)
    except TrainingMapError:
        logger.error("Training map data failed validation", exc_info=True)
        raise

    logger.info("Loaded %d schools in %d clusters", len(schools), len(centers))
    return TrainingMapData(schools=schools, centers=centers)


def main(argv: Sequence[str] | None = None) -> int:
    import argparse

    parser = argparse.ArgumentParser(description="Load and validate the training-center GeoJSON datasets")
    parser.add_argument("--schools", type=str, default=None, help="URL or path of schools.geojson")
    parser.add_argument("--centers", type=str, default=None, help="URL or path of cluster_centers.geojson")
    parser.add_argument("--timeout", type=float, default=None)

    args = parser.parse_args(argv)
    if args.timeout is not None and args.timeout <= 0:
        parser.error("--timeout must be positive")

    base = TrainingMapConfig.from_env()
    config = TrainingMapConfig(
        schools_source=args.schools or base.schools_source,
        centers_source=args.centers or base.centers_source,
        timeout=base.timeout if args.timeout is None else args.timeout,
        map_style=base.map_style,
    )

    try:
        data = load_training_map(config)
    except TrainingMapError as exc:
        print(f"[cluster_ingest] Error: {exc}")
        return 1

    counties = {school.county for school in data.schools}
    venues = sum(1 for school in data.schools if school.is_host_venue)
    print(
        f"[cluster_ingest] Loaded {len(data.schools):,} schools across {len(counties)} counties, "
        f"{len(data.centers)} training centers, {venues} host venues"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
