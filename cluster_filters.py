"""County/search filtering of schools and the training centers that serve them."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import FrozenSet, Iterable, List, Optional, Sequence

from cluster_models import ClusterCenter, School


@dataclass(frozen=True)
class FilterState:
    counties: FrozenSet[str] = field(default_factory=frozenset)
    search: str = ""
    show_centers_only: bool = False

    def with_county_toggled(self, county: str) -> "FilterState":
        return replace(self, counties=self.counties ^ {county})

    def with_counties(self, counties: Iterable[str]) -> "FilterState":
        return replace(self, counties=frozenset(counties))

    def with_search(self, search: str) -> "FilterState":
        return replace(self, search=search)

    def with_centers_only(self, show_centers_only: bool) -> "FilterState":
        return replace(self, show_centers_only=show_centers_only)

    def cleared(self) -> "FilterState":
        """Drop county and search filters; the display mode is kept."""
        return replace(self, counties=frozenset(), search="")

    @property
    def active_count(self) -> int:
        return len(self.counties) + (1 if self.search else 0)


@dataclass(frozen=True)
class FilterView:
    schools: List[School]
    centers: List[ClusterCenter]
    focus: Optional[School]


@dataclass(frozen=True)
class CountyOption:
    county: str
    school_count: int


def _matches_search(school: School, query: str) -> bool:
    return (
        query in school.name.lower()
        or query in school.county.lower()
        or query in school.sub_county.lower()
    )


def filter_schools(schools: Sequence[School], counties: Iterable[str], search_query: str) -> List[School]:
    counties = frozenset(counties)
    query = search_query.lower()
    return [
        school
        for school in schools
        if (not counties or school.county in counties)
        and (not query or _matches_search(school, query))
    ]


def filter_centers(centers: Sequence[ClusterCenter], visible_schools: Iterable[School]) -> List[ClusterCenter]:
    visible_ids = {school.cluster_id for school in visible_schools}
    return [center for center in centers if center.cluster_id in visible_ids]


def select_single_result(filtered_schools: Sequence[School], search_query: Optional[str] = None) -> Optional[School]:
    """The school to focus on when the filters leave exactly one.

    When ``search_query`` is given, focus is only signalled while a search is
    active, so a county filter alone never zooms the map.
    """
    if search_query is not None and not search_query:
        return None
    if len(filtered_schools) == 1:
        return filtered_schools[0]
    return None


def apply_filter_state(
    schools: Sequence[School],
    centers: Sequence[ClusterCenter],
    state: FilterState,
) -> FilterView:
    visible = filter_schools(schools, state.counties, state.search)
    return FilterView(
        schools=visible,
        centers=filter_centers(centers, visible),
        focus=select_single_result(visible, state.search),
    )


def county_options(schools: Sequence[School]) -> List[CountyOption]:
    counts = {}
    for school in schools:
        counts[school.county] = counts.get(school.county, 0) + 1
    return [CountyOption(county, counts[county]) for county in sorted(counts)]


def visible_label(schools: Sequence[School], centers: Sequence[ClusterCenter], state: FilterState) -> str:
    if state.show_centers_only:
        return f"{len(centers)} Regional Training Centers"
    visible = filter_schools(schools, state.counties, "")
    return f"{len(visible)} Schools Visible"
