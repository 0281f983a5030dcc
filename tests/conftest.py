"""
Pytest configuration and fixtures for the training-center map tests

Provides GeoJSON feature builders, ready-made School/ClusterCenter records and
the bundled sample dataset paths.
"""

from pathlib import Path

import pytest

from cluster_models import ClusterCenter, School

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


# =============================================================================
# TEST CONFIGURATION
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (fast, no network)"
    )


# =============================================================================
# GEOJSON BUILDERS
# =============================================================================

@pytest.fixture
def school_feature():
    """Build a valid school Feature; keyword overrides replace properties."""
    def build(lon=38.0106, lat=-1.3667, **overrides):
        props = {
            'id': 1,
            'name': 'Kitui School',
            'county': 'Kitui',
            'sub_county': 'Kitui Central',
            'cluster_id': 0,
            'is_host_venue': False,
            'distance_to_host_venue': 5.0,
            'location_type': 'Rural',
        }
        props.update(overrides)
        return {
            'type': 'Feature',
            'geometry': {'type': 'Point', 'coordinates': [lon, lat]},
            'properties': props,
        }
    return build


@pytest.fixture
def center_feature():
    """Build a valid cluster-center Feature; keyword overrides replace properties."""
    def build(lon=38.0106, lat=-1.3667, **overrides):
        props = {
            'cluster_id': 0,
            'num_schools': 3,
            'avg_distance': 35.0,
            'max_distance': 65.0,
            'schools': ['Kitui School', 'Mulango Girls', 'Mutomo Boys'],
        }
        props.update(overrides)
        return {
            'type': 'Feature',
            'geometry': {'type': 'Point', 'coordinates': [lon, lat]},
            'properties': props,
        }
    return build


@pytest.fixture
def collection():
    def build(*features):
        return {'type': 'FeatureCollection', 'features': list(features)}
    return build


# =============================================================================
# RECORD FIXTURES
# =============================================================================

@pytest.fixture
def make_school():
    """School factory with sensible defaults."""
    def build(**overrides):
        values = dict(
            id=1,
            name='Kitui School',
            county='Kitui',
            sub_county='Kitui Central',
            latitude=-1.3667,
            longitude=38.0106,
            cluster_id=0,
            is_host_venue=False,
            distance_to_host_venue=0.0,
            location_type='Rural',
        )
        values.update(overrides)
        return School(**values)
    return build


@pytest.fixture
def make_center():
    def build(**overrides):
        values = dict(
            cluster_id=0,
            center_lat=-1.3667,
            center_lng=38.0106,
            num_schools=1,
            avg_distance=0.0,
            max_distance=0.0,
            schools=('Kitui School',),
        )
        values.update(overrides)
        return ClusterCenter(**values)
    return build


@pytest.fixture
def kitui_schools(make_school):
    """Three Kitui schools at 0, 5 and 65 km; the 0 km one hosts the training."""
    return [
        make_school(id=1, name='Kitui School', is_host_venue=True, distance_to_host_venue=0.0),
        make_school(id=2, name='Mulango Girls', latitude=-1.3217, distance_to_host_venue=5.0),
        make_school(id=3, name='Mutomo Boys', sub_county='Mutomo', latitude=-1.9513,
                    distance_to_host_venue=65.0),
    ]


@pytest.fixture
def kitui_center(make_center):
    return make_center(
        num_schools=3,
        avg_distance=35.0,
        max_distance=65.0,
        schools=('Kitui School', 'Mulango Girls', 'Mutomo Boys'),
    )


@pytest.fixture
def mixed_schools(make_school):
    """Schools spread over three counties and three clusters."""
    return [
        make_school(id=1, name='Kitui School', county='Kitui', sub_county='Kitui Central',
                    cluster_id=0, is_host_venue=True),
        make_school(id=2, name='Lodwar Mixed', county='Turkana', sub_county='Turkana Central',
                    cluster_id=1, is_host_venue=True),
        make_school(id=3, name='Kanamkemer Day', county='Turkana', sub_county='Turkana Central',
                    cluster_id=1, distance_to_host_venue=11.12),
        make_school(id=4, name='Kapenguria Boys', county='West Pokot County', sub_county='Kapenguria',
                    cluster_id=2, is_host_venue=True),
        make_school(id=5, name='Mutomo Boys', county='Kitui', sub_county='Mutomo',
                    cluster_id=0, distance_to_host_venue=65.0),
        make_school(id=6, name='Kalokol Secondary', county='Turkana', sub_county='Turkana Central',
                    cluster_id=1, distance_to_host_venue=27.8),
    ]


@pytest.fixture
def mixed_centers(make_center):
    return [
        make_center(cluster_id=0, num_schools=2, avg_distance=65.0, max_distance=65.0,
                    schools=('Kitui School', 'Mutomo Boys')),
        make_center(cluster_id=1, num_schools=3, avg_distance=19.46, max_distance=27.8,
                    schools=('Lodwar Mixed', 'Kanamkemer Day', 'Kalokol Secondary')),
        make_center(cluster_id=2, num_schools=1, avg_distance=0.0, max_distance=0.0,
                    schools=('Kapenguria Boys',)),
        make_center(cluster_id=3, num_schools=1, avg_distance=0.0, max_distance=0.0,
                    schools=('Orphan School',)),
    ]


# =============================================================================
# SAMPLE DATASET
# =============================================================================

@pytest.fixture
def sample_schools_path():
    return DATA_DIR / 'schools.geojson'


@pytest.fixture
def sample_centers_path():
    return DATA_DIR / 'cluster_centers.geojson'
