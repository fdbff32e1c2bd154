"""Query Assembler: the public entry points of the compiler.

Validates a request, then composes a predicate adapter's filter with the
result-mode projection and, for selection modes, pagination.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from worldclim_query.catalog.registry import VariableRegistry, load_registry
from worldclim_query.common.geo import Geometry
from worldclim_query.common.modes import PredicateKind, ResultMode, ResultShape, SortOrder
from worldclim_query.compiler.predicates import (
    ContainsAdapter,
    DistanceAdapter,
    DistanceBounds,
    FilterFragment,
    IntersectsAdapter,
)
from worldclim_query.compiler.projection import (
    BOUNDS_COLUMN,
    KEY_COLUMN,
    POINT_COLUMN,
    ProjectionFragment,
    ResultModeCompiler,
)
from worldclim_query.errors import InvalidRangeError, ValidationError
from worldclim_query.settings import S
from worldclim_query.sql.clauses import limit_offset, order_by, where_all, with_ctes

logger = logging.getLogger(__name__)

GeometryInput = Union[Geometry, Mapping[str, Any]]
BoundsInput = Union[DistanceBounds, Mapping[str, Any], Sequence[float]]


class SpatialPredicateRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    collection: str = Field(..., description="Properties table.")
    map_collection: str = Field(..., description="Map layer table.")
    geometry: Geometry
    predicate: PredicateKind
    result_mode: ResultMode
    distance_bounds: Optional[DistanceBounds] = None
    sort: Optional[SortOrder] = None
    page_start: int = 0
    page_limit: int = Field(default_factory=lambda: S.default_page_limit)


@dataclass(frozen=True)
class CompiledQuery:
    sql: str
    predicate: PredicateKind
    result_mode: ResultMode
    shape: ResultShape
    columns: Tuple[str, ...]
    joined: bool
    projection: ProjectionFragment = field(repr=False)
    compiler: ResultModeCompiler = field(repr=False, compare=False)

    def parse(self, rows: List[Dict[str, Any]]) -> Union[List[Any], Dict[str, Any]]:
        """Shape executed rows: keys, decoded records, or one nested aggregate."""
        if self.shape is ResultShape.aggregate:
            row = rows[0] if rows else {}
            return self.compiler.rebuild(self.projection, row)
        if self.shape is ResultShape.keys:
            return [r[KEY_COLUMN] for r in rows]
        out = []
        for r in rows:
            rec = dict(r)
            for col in (POINT_COLUMN, BOUNDS_COLUMN):
                if isinstance(rec.get(col), str):
                    rec[col] = json.loads(rec[col])
            out.append(rec)
        return out


def _shape_for(mode: ResultMode) -> ResultShape:
    if mode.is_aggregate:
        return ResultShape.aggregate
    if mode is ResultMode.key:
        return ResultShape.keys
    return ResultShape.records


class QueryAssembler:
    def __init__(self, registry: Optional[VariableRegistry] = None):
        self.registry = registry if registry is not None else load_registry()
        self.projections = ResultModeCompiler(self.registry)

    def validate(self, req: SpatialPredicateRequest) -> None:
        if not str(req.collection or "").strip():
            raise ValidationError("collection", "must name the properties table.")
        if not str(req.map_collection or "").strip():
            raise ValidationError("map_collection", "must name the map layer table.")
        if req.geometry is None or not req.geometry.coordinates:
            raise ValidationError("geometry", "must be a non-empty GeoJSON geometry.")
        if not isinstance(req.result_mode, ResultMode):
            raise ValidationError("result_mode", f"unrecognized result mode {req.result_mode!r}.")

        if req.predicate is PredicateKind.distance:
            if req.distance_bounds is None:
                raise ValidationError("distance_bounds", "required for distance queries.")
            if req.distance_bounds.min > req.distance_bounds.max:
                raise InvalidRangeError(req.distance_bounds.min, req.distance_bounds.max)
        else:
            if req.distance_bounds is not None:
                raise ValidationError(
                    "distance_bounds", f"not accepted by {req.predicate.value} queries."
                )
            if req.sort not in (None, SortOrder.no):
                raise ValidationError("sort", f"not accepted by {req.predicate.value} queries.")

        if req.page_start < 0:
            raise ValidationError("page_start", "must be >= 0.")
        if req.page_limit < 0:
            raise ValidationError("page_limit", "must be >= 0.")
        # Aggregates render no LIMIT; the cap applies to selections only.
        if not req.result_mode.is_aggregate:
            if req.page_limit > int(S.max_page_limit):
                raise ValidationError(
                    "page_limit", f"exceeds maximum allowed ({S.max_page_limit})."
                )

    def _filter(self, req: SpatialPredicateRequest) -> FilterFragment:
        if req.predicate is PredicateKind.distance:
            return DistanceAdapter(req.collection, req.map_collection).build_filter(
                req.geometry, req.result_mode, req.distance_bounds, req.sort or SortOrder.no
            )
        if req.predicate is PredicateKind.contains:
            return ContainsAdapter(req.collection, req.map_collection).build_filter(
                req.geometry, req.result_mode
            )
        return IntersectsAdapter(req.collection, req.map_collection).build_filter(
            req.geometry, req.result_mode
        )

    def compile(self, req: SpatialPredicateRequest) -> CompiledQuery:
        self.validate(req)
        flt = self._filter(req)
        projection = self.projections.compile(req.result_mode, flt.columns)

        parts = [
            with_ctes(flt.ctes),
            projection.select_clause(),
            f"FROM {flt.source}",
            f"WHERE {where_all(flt.conditions)}",
        ]
        if not projection.is_aggregate:
            parts.append(order_by(flt.order_by))
            parts.append(limit_offset(req.page_limit, req.page_start))
        sql = "\n".join(p for p in parts if p)

        logger.debug(
            "Compiled %s/%s query (joined=%s):\n%s",
            flt.predicate.value,
            req.result_mode.value,
            flt.joined,
            sql,
        )
        return CompiledQuery(
            sql=sql,
            predicate=flt.predicate,
            result_mode=req.result_mode,
            shape=_shape_for(req.result_mode),
            columns=projection.columns,
            joined=flt.joined,
            projection=projection,
            compiler=self.projections,
        )


def _bounds(value: Optional[BoundsInput]) -> Optional[Any]:
    if value is None or isinstance(value, (DistanceBounds, Mapping)):
        return value
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence) or len(value) != 2:
        raise ValidationError("distance_bounds", "must be a (min, max) pair.")
    lo, hi = value
    return {"min": lo, "max": hi}


def build_request(**kwargs: Any) -> SpatialPredicateRequest:
    """Construct a request, reporting pydantic failures as ValidationError."""
    if "distance_bounds" in kwargs:
        kwargs["distance_bounds"] = _bounds(kwargs["distance_bounds"])
    try:
        return SpatialPredicateRequest(**kwargs)
    except PydanticValidationError as e:
        err = e.errors()[0]
        loc = err.get("loc") or ("request",)
        raise ValidationError(str(loc[0]), err.get("msg", "invalid value")) from None


def compile_distance_query(
    collection: str,
    map_collection: str,
    geometry: GeometryInput,
    result_mode: Union[ResultMode, str],
    distance_bounds: BoundsInput,
    sort: Union[SortOrder, str] = SortOrder.no,
    page_start: int = 0,
    page_limit: Optional[int] = None,
    registry: Optional[VariableRegistry] = None,
) -> CompiledQuery:
    req = build_request(
        collection=collection,
        map_collection=map_collection,
        geometry=geometry,
        predicate=PredicateKind.distance,
        result_mode=result_mode,
        distance_bounds=distance_bounds,
        sort=sort,
        page_start=page_start,
        page_limit=S.default_page_limit if page_limit is None else page_limit,
    )
    return QueryAssembler(registry).compile(req)


def compile_contains_query(
    collection: str,
    map_collection: str,
    geometry: GeometryInput,
    result_mode: Union[ResultMode, str],
    page_start: int = 0,
    page_limit: Optional[int] = None,
    registry: Optional[VariableRegistry] = None,
) -> CompiledQuery:
    req = build_request(
        collection=collection,
        map_collection=map_collection,
        geometry=geometry,
        predicate=PredicateKind.contains,
        result_mode=result_mode,
        page_start=page_start,
        page_limit=S.default_page_limit if page_limit is None else page_limit,
    )
    return QueryAssembler(registry).compile(req)


def compile_intersects_query(
    collection: str,
    map_collection: str,
    geometry: GeometryInput,
    result_mode: Union[ResultMode, str],
    page_start: int = 0,
    page_limit: Optional[int] = None,
    registry: Optional[VariableRegistry] = None,
) -> CompiledQuery:
    req = build_request(
        collection=collection,
        map_collection=map_collection,
        geometry=geometry,
        predicate=PredicateKind.intersects,
        result_mode=result_mode,
        page_start=page_start,
        page_limit=S.default_page_limit if page_limit is None else page_limit,
    )
    return QueryAssembler(registry).compile(req)
