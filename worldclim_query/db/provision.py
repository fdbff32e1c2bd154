"""Create and drop the WorldClim tables.

The properties STRUCT type is derived from the variable registry, so the
stored records have exactly the shape the compiler walks.
"""

import logging
from typing import Union

import duckdb

from worldclim_query.catalog.registry import ClimateVariable, VariableGroup, VariableKind, VariableRegistry
from worldclim_query.sql.escape import quote_ident

logger = logging.getLogger(__name__)

_COLUMN_TYPES = {
    VariableKind.numeric: "DOUBLE",
    VariableKind.elevation: "DOUBLE",
    VariableKind.identifier: "VARCHAR",
}


def struct_type(node: Union[VariableGroup, ClimateVariable]) -> str:
    if isinstance(node, ClimateVariable):
        return _COLUMN_TYPES[node.kind]
    fields = []
    for child in node.children:
        label = child.name if isinstance(child, ClimateVariable) else child.label
        fields.append(f"{quote_ident(label)} {struct_type(child)}")
    return "STRUCT(" + ", ".join(fields) + ")"


def _table_exists(con: duckdb.DuckDBPyConnection, name: str) -> bool:
    row = con.execute(
        "SELECT count(*) FROM information_schema.tables WHERE table_name = ?", [name]
    ).fetchone()
    return bool(row and row[0])


def setup_collections(
    con: duckdb.DuckDBPyConnection,
    registry: VariableRegistry,
    collection: str,
    map_collection: str,
) -> None:
    """Create both tables and their spatial indexes; existing tables are left untouched."""
    if _table_exists(con, map_collection):
        logger.debug("table %s already exists. Leaving it untouched.", map_collection)
    else:
        con.execute(
            f"""
            CREATE TABLE {quote_ident(map_collection)} (
              geometry_hash VARCHAR PRIMARY KEY,
              geometry GEOMETRY,
              geometry_bounds GEOMETRY
            )
            """
        )
        con.execute(
            f"CREATE INDEX {quote_ident(map_collection + '_geometry')} "
            f"ON {quote_ident(map_collection)} USING RTREE (geometry)"
        )

    if _table_exists(con, collection):
        logger.debug("table %s already exists. Leaving it untouched.", collection)
    else:
        con.execute(
            f"""
            CREATE TABLE {quote_ident(collection)} (
              geometry_hash VARCHAR PRIMARY KEY,
              geometry_point GEOMETRY,
              geometry_bounds GEOMETRY,
              properties {struct_type(registry.root)}
            )
            """
        )
        con.execute(
            f"CREATE INDEX {quote_ident(collection + '_bounds')} "
            f"ON {quote_ident(collection)} USING RTREE (geometry_bounds)"
        )


def teardown_collections(con: duckdb.DuckDBPyConnection, collection: str, map_collection: str) -> None:
    for name in (collection, map_collection):
        con.execute(f"DROP TABLE IF EXISTS {quote_ident(name)}")
