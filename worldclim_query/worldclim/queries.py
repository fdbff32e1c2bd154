from typing import Any, List, Union

from worldclim_query.common.geo import point
from worldclim_query.common.modes import ResultMode, SortOrder
from worldclim_query.compiler.assembler import (
    CompiledQuery,
    compile_contains_query,
    compile_distance_query,
    compile_intersects_query,
)
from worldclim_query.db.duckdb import execute
from worldclim_query.settings import S
from worldclim_query.worldclim.models import ContainsBody, ShapeBody


def _as_list(result: Union[List[Any], dict]) -> List[Any]:
    # Aggregates come back as one record; the service always answers with a list.
    return result if isinstance(result, list) else [result]


def run(compiled: CompiledQuery) -> List[Any]:
    return _as_list(execute(compiled))


def query_click(lat: float, lon: float) -> List[Any]:
    compiled = compile_intersects_query(
        S.worldclim_table,
        S.worldclim_map_table,
        point(lon, lat),
        ResultMode.data,
        page_start=0,
        page_limit=S.max_page_limit,
    )
    return run(compiled)


def query_distance(
    what: ResultMode, min_distance: float, max_distance: float, sort: SortOrder, body: ShapeBody
) -> List[Any]:
    compiled = compile_distance_query(
        S.worldclim_table,
        S.worldclim_map_table,
        body.geometry,
        what,
        (min_distance, max_distance),
        sort=sort,
        page_start=body.start,
        page_limit=body.limit,
    )
    return run(compiled)


def query_contains(what: ResultMode, body: ContainsBody) -> List[Any]:
    compiled = compile_contains_query(
        S.worldclim_table,
        S.worldclim_map_table,
        body.geometry,
        what,
        page_start=body.start,
        page_limit=body.limit,
    )
    return run(compiled)


def query_intersects(what: ResultMode, body: ShapeBody) -> List[Any]:
    compiled = compile_intersects_query(
        S.worldclim_table,
        S.worldclim_map_table,
        body.geometry,
        what,
        page_start=body.start,
        page_limit=body.limit,
    )
    return run(compiled)
