"""Exclusive handle over a pyproj transformation to geographic WGS84.

EPSG and WKT coordinate systems reach the geodetic frame through PROJ. A
ProjectionHandle owns one ``pyproj.Transformer`` built from the source system
to EPSG:4326 with ``always_xy=True``, so points are always ordered
(easting/longitude, northing/latitude, height) regardless of the axis order
the EPSG registry declares.

Creation failures (unknown code, malformed WKT, no operation between the two
systems) do not raise: ``from_coordinate_system`` returns None and warns.
"""

import logging
import warnings
from typing import TYPE_CHECKING, Optional, Sequence, Union

import numpy as np
from numpy.typing import NDArray
from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError, ProjError

if TYPE_CHECKING:
    from tilecoords.coords.coordinate_system import CoordinateSystem

log = logging.getLogger(__name__)

# Geographic system of the canonical geodetic frame
DEFAULT_TARGET_CRS = "EPSG:4326"


class ProjectionUnavailableWarning(RuntimeWarning):
    """An EPSG/WKT system could not be turned into a usable projection."""


def crs_from_coordinate_system(cs: "CoordinateSystem") -> Optional[CRS]:
    """Return the pyproj CRS named by an EPSG or WKT coordinate system.

    Returns None for variants without an external reference system.

    Raises:
        pyproj.exceptions.CRSError: If the code or text is not understood.
    """
    code = cs.epsg_code()
    if code is not None:
        return CRS.from_epsg(code)
    wkt = cs.wkt_string()
    if wkt is not None:
        return CRS.from_wkt(wkt)
    return None


class ProjectionHandle:
    """Single-owner wrapper around a source -> geographic pyproj Transformer.

    The handle is released by ``close()`` or by leaving a ``with`` block;
    after release every transform returns None.
    """

    def __init__(self, transformer: Transformer, description: str = ""):
        self._transformer: Optional[Transformer] = transformer
        self.description = description or transformer.description

    @classmethod
    def from_crs(
        cls,
        source: Union[CRS, str, int],
        target: Union[CRS, str, int] = DEFAULT_TARGET_CRS,
    ) -> "ProjectionHandle":
        """Build a handle between two pyproj CRS inputs.

        Raises:
            pyproj.exceptions.CRSError: If either system is not understood.
            pyproj.exceptions.ProjError: If PROJ finds no operation.
        """
        transformer = Transformer.from_crs(source, target, always_xy=True)
        return cls(transformer)

    @classmethod
    def from_coordinate_system(
        cls,
        cs: "CoordinateSystem",
        target: Union[CRS, str, int] = DEFAULT_TARGET_CRS,
    ) -> Optional["ProjectionHandle"]:
        """Build a handle for an EPSG/WKT coordinate system.

        Returns None, with a ProjectionUnavailableWarning, when the reference
        system cannot be resolved; None without warning for variants that do
        not need a projection.
        """
        if not cs.needs_external_projection():
            return None

        try:
            source = crs_from_coordinate_system(cs)
            handle = cls.from_crs(source, target)
        except (CRSError, ProjError) as exc:
            warnings.warn(
                f"Failed to create projection for {cs}: {exc}",
                ProjectionUnavailableWarning,
                stacklevel=2,
            )
            return None

        log.info("Projection created: %s -> %s (%s)", source.name, target, handle.description)
        return handle

    @property
    def closed(self) -> bool:
        return self._transformer is None

    def transform(self, point: Sequence[float]) -> Optional[NDArray[np.float64]]:
        """Transform one (x, y, z) point into (lon, lat, height).

        Heights pass through unchanged for 2D source systems.

        Returns:
            The transformed point, or None if the handle is closed, PROJ
            reports an error, or the result is not finite.
        """
        if self._transformer is None:
            return None
        p = np.asarray(point, dtype=np.float64).reshape(3)
        try:
            x, y, z = self._transformer.transform(p[0], p[1], p[2], errcheck=True)
        except ProjError as exc:
            log.debug("Projection failed for %s: %s", p, exc)
            return None
        result = np.array([x, y, z], dtype=np.float64)
        if not np.all(np.isfinite(result)):
            return None
        return result

    def close(self) -> None:
        """Release the underlying transformer. Safe to call more than once."""
        self._transformer = None

    def __enter__(self) -> "ProjectionHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __copy__(self):
        raise TypeError("ProjectionHandle has a single owner and cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("ProjectionHandle has a single owner and cannot be copied")

    def __repr__(self) -> str:
        state = "closed" if self.closed else self.description
        return f"ProjectionHandle({state})"
