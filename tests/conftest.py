"""Shared fixtures: a small registry and reference geometries."""

import copy

import pytest

from worldclim_query.catalog.registry import VariableRegistry
from worldclim_query.common.geo import Geometry

SMALL_SOURCE = {
    "name": "small",
    "lists": {
        "months": ["01", "02"],
        "scenarios": ["ssp126", "ssp585"],
    },
    "definitions": {
        "month": {
            "children": {
                "tmin": {"kind": "numeric"},
                "prec": {"kind": "numeric"},
            }
        },
    },
    "tree": {
        "children": {
            "1970-2000": {
                "children": {
                    "elev": {"kind": "elevation"},
                    "bio01": {"kind": "numeric"},
                    "cell": {"kind": "identifier"},
                },
                "each": "months",
                "node": {"$ref": "month"},
            },
        },
        "each": ["2041-2060"],
        "node": {
            "children": {
                "MPI-ESM1-2-HR": {
                    "each": "scenarios",
                    "node": {"children": {"bio01": {"kind": "numeric"}}},
                }
            }
        },
    },
}

SMALL_FLAT_KEYS = [
    "1970-2000/elev",
    "1970-2000/bio01",
    "1970-2000/cell",
    "1970-2000/01/tmin",
    "1970-2000/01/prec",
    "1970-2000/02/tmin",
    "1970-2000/02/prec",
    "2041-2060/MPI-ESM1-2-HR/ssp126/bio01",
    "2041-2060/MPI-ESM1-2-HR/ssp585/bio01",
]


@pytest.fixture
def small_source():
    return copy.deepcopy(SMALL_SOURCE)


@pytest.fixture
def small_registry(small_source):
    return VariableRegistry.from_source(small_source)


@pytest.fixture
def ref_point():
    return Geometry(type="Point", coordinates=[10.0, 45.0])


@pytest.fixture
def ref_polygon():
    return Geometry(
        type="Polygon",
        coordinates=[[[9.995, 44.99], [10.015, 44.99], [10.015, 45.01], [9.995, 45.01], [9.995, 44.99]]],
    )
