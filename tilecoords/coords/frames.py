"""Coordinate convention definitions for tileset conversion.

This module defines the enumerations shared by the coordinate system
descriptor and the transformer:
- CoordinateType: which source convention a dataset uses
- UpAxis: whether Y or Z points up in a local Cartesian frame
- Handedness: right- or left-handed local axes
- VerticalDatum: what a height value is measured against

and the GeoReference geodetic anchor record.
"""

from enum import Enum
from typing import NamedTuple


class CoordinateType(Enum):
    """Enumeration of source coordinate conventions.

    Attributes:
        UNKNOWN: Uninitialised descriptor.
        LOCAL_CARTESIAN: Axis-only local frame (FBX, single OSGB files).
        ENU: Local tangent plane anchored at a known geodetic point.
        EPSG: Reference system identified by an EPSG code.
        WKT: Reference system described by WKT text.
    """

    UNKNOWN = "unknown"
    LOCAL_CARTESIAN = "local_cartesian"
    ENU = "enu"
    EPSG = "epsg"
    WKT = "wkt"


class UpAxis(Enum):
    """Up-axis convention of a local Cartesian frame.

    Attributes:
        Y_UP: Y axis points up (glTF, FBX, 3D Tiles content).
        Z_UP: Z axis points up (OSGB, ENU, most survey data).
    """

    Y_UP = "Y_UP"
    Z_UP = "Z_UP"


class Handedness(Enum):
    """Handedness of a local Cartesian frame."""

    RIGHT = "Right"
    LEFT = "Left"


class VerticalDatum(Enum):
    """Reference surface of a height value.

    Attributes:
        ELLIPSOIDAL: Height above the WGS84 ellipsoid, no correction needed.
        ORTHOMETRIC: Height above the geoid, needs geoid correction.
        UNKNOWN: Not stated by the source; treated like ORTHOMETRIC.
    """

    ELLIPSOIDAL = "Ellipsoidal"
    ORTHOMETRIC = "Orthometric"
    UNKNOWN = "Unknown"


class GeoReference(NamedTuple):
    """Geodetic anchor point mapping a local origin onto the Earth.

    Attributes:
        lon: Longitude in degrees (positive east).
        lat: Latitude in degrees (positive north).
        height: Height in meters.
        datum: Vertical datum of ``height``.
    """

    lon: float
    lat: float
    height: float
    datum: VerticalDatum = VerticalDatum.ELLIPSOIDAL

    @classmethod
    def from_degrees(
        cls,
        lon: float,
        lat: float,
        height: float,
        datum: VerticalDatum = VerticalDatum.ELLIPSOIDAL,
    ) -> "GeoReference":
        """Build a reference from longitude/latitude in degrees and height in meters."""
        return cls(float(lon), float(lat), float(height), datum)

    def is_trivial(self) -> bool:
        """Return True when longitude and latitude are both zero (no anchor supplied)."""
        return self.lon == 0.0 and self.lat == 0.0

    def __repr__(self) -> str:
        """Return string representation of the reference."""
        return (
            f"GeoReference(lon={self.lon:.10f}, lat={self.lat:.10f}, "
            f"height={self.height:.3f}, datum={self.datum.value})"
        )
