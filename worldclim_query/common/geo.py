from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, model_validator


class GeometryTypeEnum(str, Enum):
    point = "Point"
    multi_point = "MultiPoint"
    line_string = "LineString"
    multi_line_string = "MultiLineString"
    polygon = "Polygon"
    multi_polygon = "MultiPolygon"


# Nesting depth of a position inside ``coordinates`` for each geometry kind.
_POSITION_DEPTH = {
    GeometryTypeEnum.point: 0,
    GeometryTypeEnum.multi_point: 1,
    GeometryTypeEnum.line_string: 1,
    GeometryTypeEnum.multi_line_string: 2,
    GeometryTypeEnum.polygon: 2,
    GeometryTypeEnum.multi_polygon: 3,
}

POLYGONAL = (GeometryTypeEnum.polygon, GeometryTypeEnum.multi_polygon)


def _check_position(pos: Any) -> None:
    if not isinstance(pos, (list, tuple)) or len(pos) not in (2, 3):
        raise ValueError("a position must be [lon, lat] or [lon, lat, elevation].")
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in pos):
        raise ValueError("position values must be numbers.")
    lon, lat = pos[0], pos[1]
    if not -180 <= lon <= 180:
        raise ValueError(f"longitude {lon} is outside [-180, 180].")
    if not -90 <= lat <= 90:
        raise ValueError(f"latitude {lat} is outside [-90, 90].")


def _check_nested(coords: Any, depth: int) -> None:
    if depth == 0:
        _check_position(coords)
        return
    if not isinstance(coords, (list, tuple)) or not coords:
        raise ValueError("coordinates must be a non-empty array at every level.")
    for c in coords:
        _check_nested(c, depth - 1)


def _check_line(line: List[Any]) -> None:
    if len(line) < 2:
        raise ValueError("a line string needs at least two positions.")


def _check_ring(ring: List[Any]) -> None:
    if len(ring) < 4:
        raise ValueError("a polygon ring needs at least four positions.")
    if list(ring[0]) != list(ring[-1]):
        raise ValueError("a polygon ring must be closed.")


class Geometry(BaseModel):
    """GeoJSON geometry accepted as a reference shape.

    Unknown members (``bbox``, ``crs``, storage fields) are dropped on input.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: GeometryTypeEnum
    coordinates: List[Any]

    @model_validator(mode="after")
    def _validate_coordinates(self) -> "Geometry":
        coords = self.coordinates
        if not coords:
            raise ValueError("coordinates must not be empty.")
        _check_nested(coords, _POSITION_DEPTH[self.type])

        if self.type is GeometryTypeEnum.line_string:
            _check_line(coords)
        elif self.type is GeometryTypeEnum.multi_line_string:
            for line in coords:
                _check_line(line)
        elif self.type is GeometryTypeEnum.polygon:
            for ring in coords:
                _check_ring(ring)
        elif self.type is GeometryTypeEnum.multi_polygon:
            for polygon in coords:
                for ring in polygon:
                    _check_ring(ring)
        return self

    def to_geojson(self) -> Dict[str, Any]:
        return {"type": self.type.value, "coordinates": self.coordinates}


def point(lon: float, lat: float) -> Geometry:
    return Geometry(type=GeometryTypeEnum.point, coordinates=[lon, lat])
