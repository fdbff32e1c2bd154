
from pydantic import BaseModel, Field, field_validator

from worldclim_query.common.geo import POLYGONAL, Geometry
from worldclim_query.settings import S


class ShapeBody(BaseModel):
    geometry: Geometry = Field(..., description="Reference GeoJSON geometry.")
    start: int = Field(
        default=0,
        description="Zero-based start index of the returned selection. Ignored for aggregates.",
    )
    limit: int = Field(
        default_factory=lambda: S.default_page_limit,
        description="Number of records to return. Ignored for aggregates.",
    )


class ContainsBody(ShapeBody):
    @field_validator("geometry")
    @classmethod
    def _validate_polygonal(cls, v: Geometry) -> Geometry:
        if v.type not in POLYGONAL:
            raise ValueError("containment requires a Polygon or MultiPolygon geometry.")
        return v
