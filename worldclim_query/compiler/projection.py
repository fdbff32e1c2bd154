"""Result-Mode Compiler.

Turns a result mode into the SELECT list of the final query. Selection modes
are plain projections; aggregate modes emit one reduction per aggregable
registry leaf and know how to fold the flat result row back into the nested
``properties`` shape.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from worldclim_query.catalog.registry import VariableRegistry
from worldclim_query.common.modes import AGGREGATE_FUNCTIONS, ResultMode
from worldclim_query.sql.escape import quote_ident, struct_path

COUNT_COLUMN = "count"
DISTANCE_COLUMN = "distance"
KEY_COLUMN = "geometry_hash"
POINT_COLUMN = "geometry_point"
BOUNDS_COLUMN = "geometry_bounds"
PROPERTIES_COLUMN = "properties"


@dataclass(frozen=True)
class SourceColumns:
    """Column expressions a predicate adapter makes available to the projection."""

    key: str
    point: str
    bounds: str
    properties: Optional[str] = None
    distance: Optional[str] = None


@dataclass(frozen=True)
class ProjectionFragment:
    mode: ResultMode
    select: Tuple[str, ...]
    columns: Tuple[str, ...]
    # Flat registry keys, in SELECT order, for aggregate modes.
    leaf_keys: Tuple[str, ...] = ()

    @property
    def is_aggregate(self) -> bool:
        return self.mode.is_aggregate

    def select_clause(self) -> str:
        return "SELECT " + ",\n       ".join(self.select)


class ResultModeCompiler:
    def __init__(self, registry: VariableRegistry):
        self.registry = registry

    def compile(self, mode: ResultMode, columns: SourceColumns) -> ProjectionFragment:
        mode = ResultMode(mode)
        if mode.is_aggregate:
            return self._aggregate(mode, columns)
        return self._selection(mode, columns)

    def _selection(self, mode: ResultMode, columns: SourceColumns) -> ProjectionFragment:
        items = [(columns.key, KEY_COLUMN)]
        if mode is not ResultMode.key:
            if columns.distance is not None:
                items.append((columns.distance, DISTANCE_COLUMN))
            items.append((f"ST_AsGeoJSON({columns.point})", POINT_COLUMN))
            items.append((f"ST_AsGeoJSON({columns.bounds})", BOUNDS_COLUMN))
        if mode is ResultMode.data:
            if columns.properties is None:
                raise ValueError("DATA mode needs a properties column; the adapter did not join.")
            items.append((columns.properties, PROPERTIES_COLUMN))

        return ProjectionFragment(
            mode=mode,
            select=tuple(f"{expr} AS {quote_ident(alias)}" for expr, alias in items),
            columns=tuple(alias for _, alias in items),
        )

    def _aggregate(self, mode: ResultMode, columns: SourceColumns) -> ProjectionFragment:
        if columns.properties is None:
            raise ValueError(f"{mode.value} mode needs a properties column; the adapter did not join.")
        fn = AGGREGATE_FUNCTIONS[mode]

        select = [f"count(*) AS {quote_ident(COUNT_COLUMN)}"]
        names = [COUNT_COLUMN]
        if columns.distance is not None:
            select.append(f"{fn}({columns.distance}) AS {quote_ident(DISTANCE_COLUMN)}")
            names.append(DISTANCE_COLUMN)

        leaf_keys = []
        for flat_key, leaf in self.registry.walk(aggregable_only=True):
            expr = struct_path(columns.properties, leaf.path)
            select.append(f"{fn}({expr}) AS {quote_ident(flat_key)}")
            names.append(flat_key)
            leaf_keys.append(flat_key)

        return ProjectionFragment(
            mode=mode,
            select=tuple(select),
            columns=tuple(names),
            leaf_keys=tuple(leaf_keys),
        )

    def rebuild(self, fragment: ProjectionFragment, row: Mapping[str, Any]) -> Dict[str, Any]:
        """Fold one flat aggregate row into ``{count, [distance], properties}``.

        NULL aggregates (empty selections) stay None.
        """
        if not fragment.is_aggregate:
            raise ValueError("Only aggregate projections can be rebuilt.")
        out: Dict[str, Any] = {COUNT_COLUMN: row.get(COUNT_COLUMN)}
        if DISTANCE_COLUMN in fragment.columns:
            out[DISTANCE_COLUMN] = row.get(DISTANCE_COLUMN)
        flat = {k: row.get(k) for k in fragment.leaf_keys}
        out[PROPERTIES_COLUMN] = self.registry.unflatten(flat, aggregable_only=True)
        return out
