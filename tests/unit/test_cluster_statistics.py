"""
Unit tests for cluster_statistics aggregations and CSV export.
"""

import io
import math

import pandas as pd
import pytest

from cluster_statistics import (
    EXPORT_COLUMNS,
    EXPORT_FILENAME,
    SummaryStats,
    build_export_frame,
    compute_cluster_summary,
    compute_county_distribution,
    compute_dataset_overview,
    compute_distance_histogram,
    compute_summary_stats,
    export_schools_csv,
)

pytestmark = pytest.mark.unit


class TestCountyDistribution:
    """Test schools-per-county counts."""

    def test_sorted_descending(self, mixed_schools):
        df = compute_county_distribution(mixed_schools)
        assert df.to_dict('records') == [
            {'name': 'Turkana', 'count': 3},
            {'name': 'Kitui', 'count': 2},
            {'name': 'West Pokot', 'count': 1},
        ]

    def test_ties_keep_first_occurrence(self, make_school):
        schools = [
            make_school(id=1, county='Bomet'),
            make_school(id=2, county='Baringo'),
            make_school(id=3, county='Baringo'),
            make_school(id=4, county='Bomet'),
            make_school(id=5, county='Nandi'),
        ]
        assert compute_county_distribution(schools)['name'].tolist() == ['Bomet', 'Baringo', 'Nandi']

    def test_only_trailing_suffix_stripped(self, make_school):
        df = compute_county_distribution([make_school(county='County Line County')])
        assert df['name'].tolist() == ['County Line']

    def test_suffixed_and_bare_names_share_a_row(self, make_school):
        schools = [
            make_school(id=1, county='Kitui County'),
            make_school(id=2, county='Turkana'),
            make_school(id=3, county='Kitui'),
        ]

        df = compute_county_distribution(schools)

        assert df.to_dict('records') == [{'name': 'Kitui', 'count': 2}, {'name': 'Turkana', 'count': 1}]

    def test_empty(self):
        df = compute_county_distribution([])
        assert df.empty
        assert list(df.columns) == ['name', 'count']


class TestClusterSummary:
    """Test per-cluster summary rows."""

    def test_visible_clusters_sorted_by_size(self, mixed_schools, mixed_centers):
        df = compute_cluster_summary(mixed_schools, mixed_centers)

        assert df['cluster_id'].tolist() == [1, 0, 2]
        assert df['num_schools'].tolist() == [3, 2, 1]
        assert list(df.columns) == ['cluster_id', 'num_schools', 'avg_distance']

    def test_restricted_to_visible_members(self, mixed_schools, mixed_centers):
        kitui_only = [s for s in mixed_schools if s.county == 'Kitui']
        df = compute_cluster_summary(kitui_only, mixed_centers)

        assert df.to_dict('records') == [{'cluster_id': 0, 'num_schools': 2, 'avg_distance': 65.0}]

    def test_no_visible_schools(self, mixed_centers):
        assert compute_cluster_summary([], mixed_centers).empty


class TestDistanceHistogram:
    """Test distance buckets."""

    def test_kitui_scenario(self, kitui_schools):
        df = compute_distance_histogram(kitui_schools)

        assert df.to_dict('records') == [
            {'range_label': '0-20km', 'count': 1},
            {'range_label': '20-40km', 'count': 0},
            {'range_label': '40-60km', 'count': 0},
            {'range_label': '60+km', 'count': 1},
        ]

    def test_buckets_are_half_open(self, make_school):
        schools = [make_school(id=i, distance_to_host_venue=d) for i, d in enumerate([0.0, 19.99, 20.0, 40.0, 60.0, 500.0])]

        df = compute_distance_histogram(schools)

        assert df['count'].tolist() == [2, 1, 1, 2]

    def test_counts_sum_to_non_venue_schools(self, mixed_schools):
        df = compute_distance_histogram(mixed_schools)
        non_venue = sum(1 for s in mixed_schools if not s.is_host_venue)
        assert df['count'].sum() == non_venue

    def test_venues_excluded(self, make_school):
        df = compute_distance_histogram([make_school(is_host_venue=True, distance_to_host_venue=0.0)])
        assert df['count'].sum() == 0

    def test_custom_boundaries(self, kitui_schools):
        df = compute_distance_histogram(kitui_schools, [0, 10, 50])
        assert df['range_label'].tolist() == ['0-10km', '10-50km', '50+km']
        assert df['count'].tolist() == [1, 0, 1]

    @pytest.mark.parametrize('boundaries', [[], [0, 20, 20], [40, 20]])
    def test_invalid_boundaries(self, boundaries):
        with pytest.raises(ValueError):
            compute_distance_histogram([], boundaries)

    def test_empty_input(self):
        df = compute_distance_histogram([])
        assert df['count'].tolist() == [0, 0, 0, 0]


class TestSummaryStats:
    """Test headline totals."""

    def test_empty_is_all_zero(self):
        stats = compute_summary_stats([])

        assert stats == SummaryStats(total_schools=0, total_venues=0, avg_distance=0.0, max_distance=0.0)
        assert not math.isnan(stats.avg_distance)

    def test_kitui_scenario_averages_non_venues_only(self, kitui_schools):
        stats = compute_summary_stats(kitui_schools)

        assert stats.total_schools == 3
        assert stats.total_venues == 1
        assert stats.avg_distance == pytest.approx(35.0)
        assert stats.max_distance == pytest.approx(65.0)

    def test_only_venues(self, make_school):
        stats = compute_summary_stats([make_school(id=1, is_host_venue=True), make_school(id=2, is_host_venue=True)])

        assert stats.total_venues == 2
        assert stats.avg_distance == 0.0
        assert stats.max_distance == 0.0

    def test_dataset_overview(self, mixed_schools, mixed_centers):
        assert compute_dataset_overview(mixed_schools, mixed_centers) == {
            'total_schools': 6,
            'counties': 3,
            'training_centers': 4,
        }


class TestExport:
    """Test the CSV export of visible schools."""

    def test_header(self, kitui_schools):
        header = export_schools_csv(kitui_schools).splitlines()[0]
        assert header == ','.join(EXPORT_COLUMNS)
        assert EXPORT_FILENAME == 'schools_export.csv'

    def test_row_formatting(self, kitui_schools):
        row = build_export_frame(kitui_schools).iloc[2]

        assert row['Cluster ID'] == 1
        assert row['Is Training Venue'] == 'No'
        assert row['Distance to Venue (km)'] == '65.00'

    def test_quotes_fields_with_commas_and_quotes(self, make_school):
        school = make_school(name='St. Mary\'s, "Chepareria"', sub_county='Pokot South')

        line = export_schools_csv([school]).splitlines()[1]

        assert line.startswith('"St. Mary\'s, ""Chepareria""",Kitui,Pokot South,')

    def test_round_trip(self, mixed_schools, make_school):
        schools = mixed_schools + [make_school(id=99, name='Chepareria, St. Mary\'s', cluster_id=2,
                                               distance_to_host_venue=22.236)]

        parsed = pd.read_csv(io.StringIO(export_schools_csv(schools)), dtype={'Distance to Venue (km)': str})

        assert len(parsed) == len(schools)
        assert parsed['School Name'].tolist() == [s.name for s in schools]
        assert parsed['Cluster ID'].tolist() == [s.cluster_id + 1 for s in schools]
        assert parsed['Latitude'].tolist() == pytest.approx([s.latitude for s in schools])
        assert parsed['Distance to Venue (km)'].tolist() == [f'{s.distance_to_host_venue:.2f}' for s in schools]
        assert parsed['Is Training Venue'].tolist() == ['Yes' if s.is_host_venue else 'No' for s in schools]

    def test_empty_export_is_header_only(self):
        assert export_schools_csv([]).strip() == ','.join(EXPORT_COLUMNS)
