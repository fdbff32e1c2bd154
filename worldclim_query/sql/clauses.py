"""SQL clause helpers."""

from typing import List, Optional, Sequence

from worldclim_query.sql.escape import quote_number


def where_all(conditions: Sequence[str]) -> str:
    """Join conditions with AND; an empty list matches every row."""
    clean = [c.strip() for c in conditions or [] if c and c.strip()]
    if not clean:
        return "TRUE"
    return " AND ".join(f"({c})" if len(clean) > 1 else c for c in clean)


def between(expr: str, low: float, high: float) -> str:
    """Inclusive range test on a numeric expression."""
    return f"{expr} BETWEEN {quote_number(low)} AND {quote_number(high)}"


def order_by(terms: Sequence[str]) -> str:
    clean = [t for t in terms or [] if t]
    if not clean:
        return ""
    return "ORDER BY " + ", ".join(clean)


def limit_offset(limit: Optional[int], offset: Optional[int]) -> str:
    """Zero-based pagination clause; empty when no limit is given."""
    if limit is None:
        return ""
    return f"LIMIT {int(limit)} OFFSET {int(offset or 0)}"


def with_ctes(ctes: Sequence[str]) -> str:
    clean: List[str] = [c for c in ctes or [] if c]
    if not clean:
        return ""
    return "WITH " + ",\n     ".join(clean)
