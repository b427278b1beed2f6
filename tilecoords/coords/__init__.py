"""Coordinate systems and transformations for tileset conversion.

This module provides the types and functions used to place source data
on the Earth:
- CoordinateSystem: tagged description of a dataset's native convention
- Geodetic (longitude, latitude, height) <-> ECEF conversions
- ENU (East-North-Up) frame matrices anchored at a geodetic point
- Y-up / Z-up axis remapping
- CoordinateTransformer: per-dataset conversion engine
"""

from tilecoords.coords.coordinate_system import (
    CoordinateSystem,
    ENUParams,
    EPSGParams,
    LocalCartesianParams,
    WKTParams,
)
from tilecoords.coords.frames import (
    CoordinateType,
    GeoReference,
    Handedness,
    UpAxis,
    VerticalDatum,
)
from tilecoords.coords.transformer import (
    CoordinateTransformer,
    GeoidUnavailableWarning,
    MissingGeoReferenceWarning,
    TransformMode,
)
from tilecoords.coords.transforms import (
    axis_transform_matrix,
    cartographic_to_ecef,
    ecef_to_cartographic,
    ecef_to_enu_matrix,
    enu_to_ecef_matrix,
)

__all__ = [
    # Descriptor
    "CoordinateSystem",
    "CoordinateType",
    "ENUParams",
    "EPSGParams",
    "LocalCartesianParams",
    "WKTParams",
    "GeoReference",
    "Handedness",
    "UpAxis",
    "VerticalDatum",
    # Transforms
    "cartographic_to_ecef",
    "ecef_to_cartographic",
    "enu_to_ecef_matrix",
    "ecef_to_enu_matrix",
    "axis_transform_matrix",
    # Transformer
    "CoordinateTransformer",
    "TransformMode",
    "MissingGeoReferenceWarning",
    "GeoidUnavailableWarning",
]
