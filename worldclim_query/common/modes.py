from enum import Enum


class ResultMode(str, Enum):
    key = "KEY"
    shape = "SHAPE"
    data = "DATA"
    min = "MIN"
    avg = "AVG"
    max = "MAX"
    std = "STD"
    var = "VAR"

    @property
    def is_aggregate(self) -> bool:
        return self not in (ResultMode.key, ResultMode.shape, ResultMode.data)

    @property
    def needs_properties(self) -> bool:
        """DATA and every aggregate mode read the climate properties."""
        return self is ResultMode.data or self.is_aggregate


class SortOrder(str, Enum):
    no = "NO"
    asc = "ASC"
    desc = "DESC"


class PredicateKind(str, Enum):
    distance = "distance"
    contains = "contains"
    intersects = "intersects"


class ResultShape(str, Enum):
    keys = "keys"
    records = "records"
    aggregate = "aggregate"


# Backing-engine reductions; population statistics for STD and VAR.
AGGREGATE_FUNCTIONS = {
    ResultMode.min: "min",
    ResultMode.avg: "avg",
    ResultMode.max: "max",
    ResultMode.std: "stddev_pop",
    ResultMode.var: "var_pop",
}
