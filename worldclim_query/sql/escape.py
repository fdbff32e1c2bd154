"""SQL literal/identifier escaping helpers."""

import json
from typing import Any, Iterable


def quote_literal(s: Any) -> str:
    """Return a SQL string literal with single quotes escaped."""
    return "'" + str(s).replace("'", "''") + "'"


def quote_ident(name: str) -> str:
    """Return a SQL identifier wrapped in double quotes."""
    return '"' + str(name).replace('"', '""') + '"'


def quote_number(value: Any) -> str:
    """Render a finite number as a SQL numeric literal."""
    f = float(value)
    if f != f or f in (float("inf"), float("-inf")):
        raise ValueError(f"Not a finite number: {value!r}")
    if f.is_integer():
        return str(int(f))
    return repr(f)


def struct_path(column: str, path: Iterable[str]) -> str:
    """Return a nested STRUCT field access, e.g. d.properties['1970-2000']['bio01']."""
    return column + "".join(f"[{quote_literal(p)}]" for p in path)


def geojson_literal(geometry: Any) -> str:
    """Return a GEOMETRY expression built from a GeoJSON mapping."""
    text = json.dumps(geometry, sort_keys=True, separators=(",", ":"))
    return f"ST_GeomFromGeoJSON({quote_literal(text)})"
