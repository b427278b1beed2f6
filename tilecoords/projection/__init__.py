"""Projection of EPSG/WKT coordinates to geographic WGS84 through pyproj."""

from tilecoords.projection.handle import (
    DEFAULT_TARGET_CRS,
    ProjectionHandle,
    ProjectionUnavailableWarning,
    crs_from_coordinate_system,
)

__all__ = [
    "DEFAULT_TARGET_CRS",
    "ProjectionHandle",
    "ProjectionUnavailableWarning",
    "crs_from_coordinate_system",
]
