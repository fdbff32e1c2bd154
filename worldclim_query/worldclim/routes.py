from typing import Any, List

from fastapi import APIRouter, HTTPException, Path

from worldclim_query.common.modes import ResultMode, SortOrder
from worldclim_query.errors import ValidationError
from worldclim_query.worldclim.models import ContainsBody, ShapeBody
from worldclim_query.worldclim.queries import (
    query_click,
    query_contains,
    query_distance,
    query_intersects,
)

router = APIRouter(prefix="/worldclim", tags=["WorldClim"])

WHAT_DESCRIPTION = (
    "KEY, SHAPE or DATA for a selection of records; "
    "MIN, AVG, MAX, STD or VAR for the selection's aggregate."
)


def _bad_request(e: ValidationError) -> HTTPException:
    return HTTPException(status_code=400, detail=e.to_dict())


@router.get("/click/{lat}/{lon}", summary="Return record that contains the provided point")
def click(
    lat: float = Path(..., ge=-90, le=90, description="Coordinate decimal latitude."),
    lon: float = Path(..., ge=-180, le=180, description="Coordinate decimal longitude."),
) -> List[Any]:
    try:
        return query_click(lat, lon)
    except ValidationError as e:
        raise _bad_request(e)


@router.post(
    "/dist/{what}/{min_distance}/{max_distance}/{sort}",
    summary="Return selection or aggregation of records within a distance range",
)
def distance(
    body: ShapeBody,
    what: ResultMode = Path(..., description=WHAT_DESCRIPTION),
    min_distance: float = Path(..., description="Minimum distance inclusive in meters."),
    max_distance: float = Path(..., description="Maximum distance inclusive in meters."),
    sort: SortOrder = Path(..., description="NO, ASC or DESC; ignored when aggregating."),
) -> List[Any]:
    try:
        return query_distance(what, min_distance, max_distance, sort, body)
    except ValidationError as e:
        raise _bad_request(e)


@router.post(
    "/contain/{what}",
    summary="Return selection or aggregation of records contained by the provided reference geometry",
)
def contain(
    body: ContainsBody,
    what: ResultMode = Path(..., description=WHAT_DESCRIPTION),
) -> List[Any]:
    try:
        return query_contains(what, body)
    except ValidationError as e:
        raise _bad_request(e)


@router.post(
    "/intersect/{what}",
    summary="Return selection or aggregation of records that intersect the provided reference geometry",
)
def intersect(
    body: ShapeBody,
    what: ResultMode = Path(..., description=WHAT_DESCRIPTION),
) -> List[Any]:
    try:
        return query_intersects(what, body)
    except ValidationError as e:
        raise _bad_request(e)
