"""
Tests for the predicate adapters (spatial filters and join selection).
"""
import pytest

from worldclim_query.common.modes import PredicateKind, ResultMode, SortOrder
from worldclim_query.compiler.predicates import (
    ContainsAdapter,
    DistanceAdapter,
    DistanceBounds,
    IntersectsAdapter,
)
from worldclim_query.errors import InvalidRangeError, ValidationError

NEEDS_JOIN = [ResultMode.data, ResultMode.min, ResultMode.avg, ResultMode.max, ResultMode.std, ResultMode.var]
NO_JOIN = [ResultMode.key, ResultMode.shape]


@pytest.mark.parametrize("mode", NEEDS_JOIN)
def test_map_layer_adapters_join_for_climate_data(ref_point, ref_polygon, mode):
    dist = DistanceAdapter("wc", "wc_map").build_filter(ref_point, mode, DistanceBounds(min=0, max=1000))
    contains = ContainsAdapter("wc", "wc_map").build_filter(ref_polygon, mode)
    for flt in (dist, contains):
        assert flt.joined is True
        assert 'JOIN "wc" AS d ON d.geometry_hash = m.geometry_hash' in flt.source
        assert flt.columns.properties == "d.properties"


@pytest.mark.parametrize("mode", NO_JOIN)
def test_map_layer_adapters_skip_join_for_selections(ref_point, ref_polygon, mode):
    dist = DistanceAdapter("wc", "wc_map").build_filter(ref_point, mode, DistanceBounds(min=0, max=1000))
    contains = ContainsAdapter("wc", "wc_map").build_filter(ref_polygon, mode)
    for flt in (dist, contains):
        assert flt.joined is False
        assert '"wc" AS d' not in flt.source
        assert flt.columns.properties is None


@pytest.mark.parametrize("mode", NO_JOIN + NEEDS_JOIN)
def test_intersects_never_joins(ref_polygon, mode):
    flt = IntersectsAdapter("wc", "wc_map").build_filter(ref_polygon, mode)
    assert flt.predicate is PredicateKind.intersects
    assert flt.joined is False
    assert "JOIN \"wc\"" not in flt.source
    assert "wc_map" not in flt.source
    assert flt.conditions == ("ST_Intersects(d.geometry_bounds, ref.geom)",)
    assert flt.columns.properties == "d.properties"


def test_reference_geometry_is_bound_once(ref_point):
    flt = DistanceAdapter("wc", "wc_map").build_filter(ref_point, ResultMode.key, DistanceBounds(min=0, max=10))
    assert flt.ctes == (
        'ref AS (SELECT ST_GeomFromGeoJSON(\'{"coordinates":[10.0,45.0],"type":"Point"}\') AS geom)',
    )


def test_distance_bounds_are_inclusive(ref_point):
    flt = DistanceAdapter("wc", "wc_map").build_filter(
        ref_point, ResultMode.key, DistanceBounds(min=250.5, max=1000)
    )
    assert flt.conditions[0].endswith("BETWEEN 250.5 AND 1000")
    assert "ST_Distance_Sphere(" in flt.conditions[0]


def test_equal_bounds_is_exact_distance(ref_point):
    """min == max is a valid exact-distance filter, not an error."""
    flt = DistanceAdapter("wc", "wc_map").build_filter(
        ref_point, ResultMode.key, DistanceBounds(min=1000, max=1000)
    )
    assert flt.conditions[0].endswith("BETWEEN 1000 AND 1000")


def test_inverted_bounds_raise(ref_point):
    with pytest.raises(InvalidRangeError) as exc:
        DistanceAdapter("wc", "wc_map").build_filter(
            ref_point, ResultMode.key, DistanceBounds(min=5000, max=1000)
        )
    assert isinstance(exc.value, ValidationError)
    assert exc.value.field == "distance_bounds"


@pytest.mark.parametrize(
    "sort, first",
    [
        (SortOrder.asc, " ASC"),
        (SortOrder.desc, " DESC"),
    ],
)
def test_distance_sort(ref_point, sort, first):
    flt = DistanceAdapter("wc", "wc_map").build_filter(
        ref_point, ResultMode.shape, DistanceBounds(min=0, max=10), sort
    )
    assert flt.order_by[0].startswith("ST_Distance_Sphere(")
    assert flt.order_by[0].endswith(first)
    assert flt.order_by[1] == "m.geometry_hash"


def test_no_sort_orders_by_key(ref_point):
    flt = DistanceAdapter("wc", "wc_map").build_filter(
        ref_point, ResultMode.key, DistanceBounds(min=0, max=10), SortOrder.no
    )
    assert flt.order_by == ("m.geometry_hash",)


@pytest.mark.parametrize("sort", list(SortOrder))
def test_aggregates_ignore_sort(ref_point, sort):
    flt = DistanceAdapter("wc", "wc_map").build_filter(
        ref_point, ResultMode.avg, DistanceBounds(min=0, max=10), sort
    )
    assert flt.order_by == ()


def test_contains_exposes_centroid_distance(ref_polygon):
    flt = ContainsAdapter("wc", "wc_map").build_filter(ref_polygon, ResultMode.avg)
    assert flt.conditions == ("ST_Contains(ref.geom, m.geometry)",)
    assert flt.columns.distance.startswith("ST_Distance_Sphere(")
    assert flt.order_by == ()
