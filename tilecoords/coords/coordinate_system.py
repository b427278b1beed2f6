"""Coordinate system descriptor for source datasets.

A CoordinateSystem tags the native convention of a dataset and carries the
parameters that convention needs. Exactly one of four variants is active:

- LocalCartesian: axis orientation only, no geodetic meaning
- ENU: tangent plane already anchored at a geodetic point, plus an offset
- EPSG: reference system identified by an EPSG code, with a source origin
- WKT: reference system described by WKT text, with a source origin

The descriptor is a value type. Factories accept any numeric value, code or
text; validation happens later, when the transformer builds a projection.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple, Union

from tilecoords.coords.frames import (
    CoordinateType,
    GeoReference,
    Handedness,
    UpAxis,
    VerticalDatum,
)


@dataclass(frozen=True)
class LocalCartesianParams:
    """Axis orientation of a local Cartesian frame (FBX, single OSGB files)."""

    up_axis: UpAxis = UpAxis.Y_UP
    handedness: Handedness = Handedness.RIGHT

    @classmethod
    def y_up(cls) -> "LocalCartesianParams":
        return cls(UpAxis.Y_UP, Handedness.RIGHT)

    @classmethod
    def z_up(cls) -> "LocalCartesianParams":
        return cls(UpAxis.Z_UP, Handedness.RIGHT)


@dataclass(frozen=True)
class ENUParams:
    """ENU tangent frame parameters, e.g. from an oblique photography metadata.xml.

    Attributes:
        origin_lon: ENU origin longitude in degrees.
        origin_lat: ENU origin latitude in degrees.
        origin_height: ENU origin ellipsoidal height in meters.
        offset_x: Scene origin offset along East in meters.
        offset_y: Scene origin offset along North in meters.
        offset_z: Scene origin offset along Up in meters.
    """

    origin_lon: float
    origin_lat: float
    origin_height: float
    offset_x: float = 0.0
    offset_y: float = 0.0
    offset_z: float = 0.0

    def geo_reference(self) -> GeoReference:
        """Return the ENU origin as a geodetic reference (ellipsoidal height)."""
        return GeoReference(
            self.origin_lon, self.origin_lat, self.origin_height, VerticalDatum.ELLIPSOIDAL
        )


@dataclass(frozen=True)
class EPSGParams:
    """EPSG reference system with the dataset origin in native units.

    The code may name a geographic system (e.g. 4326, origin in degrees) or a
    projected one (e.g. 4545, origin in meters).
    """

    code: int
    origin_x: float
    origin_y: float
    origin_z: float
    vertical_datum: VerticalDatum = VerticalDatum.UNKNOWN


@dataclass(frozen=True)
class WKTParams:
    """WKT-described reference system with the dataset origin in native units."""

    wkt: str
    origin_x: float
    origin_y: float
    origin_z: float
    vertical_datum: VerticalDatum = VerticalDatum.UNKNOWN


Params = Union[None, LocalCartesianParams, ENUParams, EPSGParams, WKTParams]


class CoordinateSystem:
    """Tagged description of a dataset's native coordinate convention.

    Build instances with the factory classmethods; the bare constructor yields
    an UNKNOWN descriptor that reports ``is_valid() == False``.

    Example:
        >>> cs = CoordinateSystem.epsg(4326, 117.0, 35.0, 0.0)
        >>> cs.needs_external_projection()
        True
        >>> cs.source_origin()
        (117.0, 35.0, 0.0)
    """

    __slots__ = ("_type", "_params")

    def __init__(self) -> None:
        self._type = CoordinateType.UNKNOWN
        self._params: Params = None

    @classmethod
    def _make(cls, coord_type: CoordinateType, params: Params) -> "CoordinateSystem":
        cs = cls()
        cs._type = coord_type
        cs._params = params
        return cs

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def local_cartesian(
        cls,
        up_axis: Union[UpAxis, LocalCartesianParams] = UpAxis.Y_UP,
        handedness: Handedness = Handedness.RIGHT,
    ) -> "CoordinateSystem":
        """Create an axis-only local frame.

        Args:
            up_axis: Up-axis convention, or a complete LocalCartesianParams.
            handedness: Axis handedness (ignored when params are passed).
        """
        if isinstance(up_axis, LocalCartesianParams):
            params = up_axis
        else:
            params = LocalCartesianParams(up_axis, handedness)
        return cls._make(CoordinateType.LOCAL_CARTESIAN, params)

    @classmethod
    def enu(
        cls,
        lon: float,
        lat: float,
        height: float,
        offset_x: float = 0.0,
        offset_y: float = 0.0,
        offset_z: float = 0.0,
    ) -> "CoordinateSystem":
        """Create an ENU frame anchored at (lon, lat, height) with a scene offset."""
        params = ENUParams(
            float(lon), float(lat), float(height),
            float(offset_x), float(offset_y), float(offset_z),
        )
        return cls._make(CoordinateType.ENU, params)

    @classmethod
    def epsg(
        cls,
        code: int,
        origin_x: float,
        origin_y: float,
        origin_z: float,
        vertical_datum: VerticalDatum = VerticalDatum.UNKNOWN,
    ) -> "CoordinateSystem":
        """Create an EPSG-coded system with the dataset origin in native units."""
        params = EPSGParams(
            int(code), float(origin_x), float(origin_y), float(origin_z), vertical_datum
        )
        return cls._make(CoordinateType.EPSG, params)

    @classmethod
    def wkt(
        cls,
        wkt: str,
        origin_x: float,
        origin_y: float,
        origin_z: float,
        vertical_datum: VerticalDatum = VerticalDatum.UNKNOWN,
    ) -> "CoordinateSystem":
        """Create a WKT-described system with the dataset origin in native units."""
        params = WKTParams(
            str(wkt), float(origin_x), float(origin_y), float(origin_z), vertical_datum
        )
        return cls._make(CoordinateType.WKT, params)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def type(self) -> CoordinateType:
        return self._type

    def is_valid(self) -> bool:
        return self._type is not CoordinateType.UNKNOWN

    def needs_external_projection(self) -> bool:
        """True for EPSG and WKT, which must go through a projection to reach WGS84."""
        return self._type in (CoordinateType.EPSG, CoordinateType.WKT)

    def has_builtin_geo_reference(self) -> bool:
        """True for ENU, the only variant that carries its own geodetic anchor."""
        return self._type is CoordinateType.ENU

    def builtin_geo_reference(self) -> Optional[GeoReference]:
        if isinstance(self._params, ENUParams):
            return self._params.geo_reference()
        return None

    def source_origin(self) -> Tuple[float, float, float]:
        """Return the source origin triple.

        ENU yields its scene offset, EPSG/WKT the native-unit origin (projected
        coordinates or degrees). LocalCartesian has no origin concept and
        yields zeros.
        """
        p = self._params
        if isinstance(p, ENUParams):
            return (p.offset_x, p.offset_y, p.offset_z)
        if isinstance(p, (EPSGParams, WKTParams)):
            return (p.origin_x, p.origin_y, p.origin_z)
        return (0.0, 0.0, 0.0)

    def enu_params(self) -> Optional[ENUParams]:
        return self._params if isinstance(self._params, ENUParams) else None

    def local_cartesian_params(self) -> Optional[LocalCartesianParams]:
        return self._params if isinstance(self._params, LocalCartesianParams) else None

    def epsg_code(self) -> Optional[int]:
        return self._params.code if isinstance(self._params, EPSGParams) else None

    def wkt_string(self) -> Optional[str]:
        return self._params.wkt if isinstance(self._params, WKTParams) else None

    @property
    def vertical_datum(self) -> VerticalDatum:
        """Vertical datum of source heights.

        ENU and LocalCartesian heights are ellipsoidal by convention.
        """
        p = self._params
        if isinstance(p, (EPSGParams, WKTParams)):
            return p.vertical_datum
        if isinstance(p, (ENUParams, LocalCartesianParams)):
            return VerticalDatum.ELLIPSOIDAL
        return VerticalDatum.UNKNOWN

    @vertical_datum.setter
    def vertical_datum(self, datum: VerticalDatum) -> None:
        # Only EPSG/WKT carry a settable datum; other variants ignore it.
        if isinstance(self._params, (EPSGParams, WKTParams)):
            self._params = replace(self._params, vertical_datum=datum)

    def set_vertical_datum(self, datum: VerticalDatum) -> None:
        self.vertical_datum = datum

    @property
    def up_axis(self) -> UpAxis:
        """Up axis of the source frame; Y_UP for every non-LocalCartesian variant."""
        if isinstance(self._params, LocalCartesianParams):
            return self._params.up_axis
        return UpAxis.Y_UP

    @property
    def handedness(self) -> Handedness:
        if isinstance(self._params, LocalCartesianParams):
            return self._params.handedness
        return Handedness.RIGHT

    # ------------------------------------------------------------------
    # Value semantics
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CoordinateSystem):
            return NotImplemented
        return self._type is other._type and self._params == other._params

    def __copy__(self) -> "CoordinateSystem":
        return CoordinateSystem._make(self._type, self._params)

    def __deepcopy__(self, memo) -> "CoordinateSystem":
        return self.__copy__()

    def __repr__(self) -> str:
        return str(self)

    def __str__(self) -> str:
        p = self._params
        if isinstance(p, LocalCartesianParams):
            return (
                f"CoordinateSystem(LocalCartesian, up_axis={p.up_axis.value}, "
                f"handedness={p.handedness.value})"
            )
        if isinstance(p, ENUParams):
            return (
                f"CoordinateSystem(ENU, origin=({p.origin_lon}, {p.origin_lat}, "
                f"{p.origin_height}), offset=({p.offset_x}, {p.offset_y}, {p.offset_z}))"
            )
        if isinstance(p, EPSGParams):
            return (
                f"CoordinateSystem(EPSG:{p.code}, origin=({p.origin_x}, {p.origin_y}, "
                f"{p.origin_z}), datum={p.vertical_datum.value})"
            )
        if isinstance(p, WKTParams):
            return (
                f"CoordinateSystem(WKT, origin=({p.origin_x}, {p.origin_y}, "
                f"{p.origin_z}), datum={p.vertical_datum.value})"
            )
        return "CoordinateSystem(Unknown)"
