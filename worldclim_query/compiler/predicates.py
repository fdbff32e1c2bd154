"""Predicate adapters: the spatial test and row source of a query."""

from dataclasses import dataclass
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from worldclim_query.common.geo import Geometry
from worldclim_query.common.modes import PredicateKind, ResultMode, SortOrder
from worldclim_query.compiler.projection import SourceColumns
from worldclim_query.errors import InvalidRangeError
from worldclim_query.sql.clauses import between
from worldclim_query.sql.escape import geojson_literal, quote_ident

MAP_ALIAS = "m"
DATA_ALIAS = "d"
REF_ALIAS = "ref"


class DistanceBounds(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    min: float = Field(..., ge=0, description="Minimum distance in meters, inclusive.")
    max: float = Field(..., ge=0, description="Maximum distance in meters, inclusive.")


@dataclass(frozen=True)
class FilterFragment:
    predicate: PredicateKind
    ctes: Tuple[str, ...]
    source: str
    conditions: Tuple[str, ...]
    columns: SourceColumns
    order_by: Tuple[str, ...]
    joined: bool


def reference_cte(geometry: Geometry) -> str:
    return f"{REF_ALIAS} AS (SELECT {geojson_literal(geometry.to_geojson())} AS geom)"


def centroid_distance(point: str) -> str:
    """Great-circle meters between the reference centroid and a point column.

    ST_Distance_Sphere reads [lat, lon] axis order, GeoJSON stores [lon, lat].
    """
    return (
        f"ST_Distance_Sphere("
        f"ST_FlipCoordinates(ST_Centroid({REF_ALIAS}.geom)), "
        f"ST_FlipCoordinates({point}))"
    )


class _MapLayerAdapter:
    """Shared plumbing for predicates tested against the map layer points."""

    kind: PredicateKind

    def __init__(self, collection: str, map_collection: str):
        self.collection = collection
        self.map_collection = map_collection

    def _source(self, join: bool) -> str:
        source = f"{quote_ident(self.map_collection)} AS {MAP_ALIAS} CROSS JOIN {REF_ALIAS}"
        if join:
            source += (
                f"\n  JOIN {quote_ident(self.collection)} AS {DATA_ALIAS}"
                f" ON {DATA_ALIAS}.geometry_hash = {MAP_ALIAS}.geometry_hash"
            )
        return source

    def _columns(self, join: bool) -> SourceColumns:
        return SourceColumns(
            key=f"{MAP_ALIAS}.geometry_hash",
            point=f"{MAP_ALIAS}.geometry",
            bounds=f"{MAP_ALIAS}.geometry_bounds",
            properties=f"{DATA_ALIAS}.properties" if join else None,
            distance=centroid_distance(f"{MAP_ALIAS}.geometry"),
        )


class DistanceAdapter(_MapLayerAdapter):
    kind = PredicateKind.distance

    def build_filter(
        self,
        geometry: Geometry,
        mode: ResultMode,
        bounds: DistanceBounds,
        sort: SortOrder = SortOrder.no,
    ) -> FilterFragment:
        if bounds.min > bounds.max:
            raise InvalidRangeError(bounds.min, bounds.max)

        join = mode.needs_properties
        columns = self._columns(join)

        order: Tuple[str, ...] = ()
        if not mode.is_aggregate:
            if sort is SortOrder.asc:
                order = (f"{columns.distance} ASC", columns.key)
            elif sort is SortOrder.desc:
                order = (f"{columns.distance} DESC", columns.key)
            else:
                order = (columns.key,)

        return FilterFragment(
            predicate=self.kind,
            ctes=(reference_cte(geometry),),
            source=self._source(join),
            conditions=(between(columns.distance, bounds.min, bounds.max),),
            columns=columns,
            order_by=order,
            joined=join,
        )


class ContainsAdapter(_MapLayerAdapter):
    kind = PredicateKind.contains

    def build_filter(self, geometry: Geometry, mode: ResultMode) -> FilterFragment:
        join = mode.needs_properties
        columns = self._columns(join)
        return FilterFragment(
            predicate=self.kind,
            ctes=(reference_cte(geometry),),
            source=self._source(join),
            conditions=(f"ST_Contains({REF_ALIAS}.geom, {columns.point})",),
            columns=columns,
            order_by=() if mode.is_aggregate else (columns.key,),
            joined=join,
        )


class IntersectsAdapter:
    """Tests the bounds stored on the properties rows; never joins."""

    kind = PredicateKind.intersects

    def __init__(self, collection: str, map_collection: Optional[str] = None):
        self.collection = collection
        self.map_collection = map_collection

    def build_filter(self, geometry: Geometry, mode: ResultMode) -> FilterFragment:
        columns = SourceColumns(
            key=f"{DATA_ALIAS}.geometry_hash",
            point=f"{DATA_ALIAS}.geometry_point",
            bounds=f"{DATA_ALIAS}.geometry_bounds",
            properties=f"{DATA_ALIAS}.properties",
        )
        return FilterFragment(
            predicate=self.kind,
            ctes=(reference_cte(geometry),),
            source=f"{quote_ident(self.collection)} AS {DATA_ALIAS} CROSS JOIN {REF_ALIAS}",
            conditions=(f"ST_Intersects({columns.bounds}, {REF_ALIAS}.geom)",),
            columns=columns,
            order_by=() if mode.is_aggregate else (columns.key,),
            joined=False,
        )
