import logging
import os
from typing import Any, Dict, List, Optional, Union

import duckdb

from worldclim_query.compiler.assembler import CompiledQuery
from worldclim_query.settings import S

logger = logging.getLogger(__name__)


def load_spatial(con: duckdb.DuckDBPyConnection) -> None:
    try:
        con.execute("LOAD spatial")
    except duckdb.Error:
        if not S.duckdb_spatial_install:
            raise
        con.execute("INSTALL spatial")
        con.execute("LOAD spatial")


def duckdb_connect(path: Optional[str] = None, read_only: bool = False) -> duckdb.DuckDBPyConnection:
    db_path = path or S.duckdb_path
    if db_path != ":memory:":
        os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    con = duckdb.connect(db_path, read_only=read_only)
    con.execute(f"PRAGMA threads={S.duckdb_threads}")
    con.execute("PRAGMA enable_object_cache=true")
    load_spatial(con)
    return con


def rows(con: duckdb.DuckDBPyConnection, query: str) -> List[Dict[str, Any]]:
    rel = con.execute(query)
    cols = [d[0] for d in rel.description]
    out: List[Dict[str, Any]] = []
    for r in rel.fetchall():
        out.append({cols[i]: r[i] for i in range(len(cols))})
    return out


def execute(
    compiled: CompiledQuery, con: Optional[duckdb.DuckDBPyConnection] = None
) -> Union[List[Any], Dict[str, Any]]:
    """Run a compiled query and return its parsed result.

    Opens (and closes) a read-only connection when none is given.
    """
    own = con is None
    if own:
        con = duckdb_connect(read_only=True)
    try:
        data = rows(con, compiled.sql)
    finally:
        if own:
            con.close()
    logger.debug("%s/%s returned %d rows", compiled.predicate.value, compiled.result_mode.value, len(data))
    return compiled.parse(data)
