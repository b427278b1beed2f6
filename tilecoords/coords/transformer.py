"""Coordinate transformer from dataset-native frames to a canonical local ENU frame.

A CoordinateTransformer is built once per dataset. Construction resolves the
geodetic anchor (lon, lat, height) and caches three 4x4 matrices:

- ``enu_to_ecef``: local ENU frame at the anchor -> ECEF
- ``ecef_to_enu``: its inverse
- ``axis_transform``: source up-axis -> Y-up

Every per-point conversion afterwards only reads this state, so one
transformer can serve all vertices of a dataset, from many threads.

Anchor resolution by source variant:
- ENU: the variant's own origin; a supplied GeoReference is ignored
- EPSG/WKT: the supplied GeoReference when non-trivial, otherwise the source
  origin sent through the projection; the height is geoid-corrected when
  eligible
- LocalCartesian: the supplied GeoReference verbatim

Conversions never raise for a missing geo reference or projection. They warn
(MissingGeoReferenceWarning, ProjectionUnavailableWarning) and return the input
point unchanged, so a per-vertex loop is never aborted.
"""

import copy
import logging
import warnings
from enum import Enum
from typing import MutableSequence, Optional, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from tilecoords.coords.coordinate_system import CoordinateSystem
from tilecoords.coords.frames import CoordinateType, GeoReference, UpAxis, VerticalDatum
from tilecoords.coords.transforms import (
    PointLike,
    apply_affine,
    as_point,
    axis_transform_matrix,
    cartographic_to_ecef,
    ecef_to_cartographic,
    enu_to_ecef_matrix,
)
from tilecoords.geoid.models import GeoidCorrectionPolicy
from tilecoords.geoid.service import GeoidHeightService, get_default_geoid_service
from tilecoords.projection.handle import ProjectionHandle, ProjectionUnavailableWarning

log = logging.getLogger(__name__)

# Up axis of the pipeline's canonical (glTF / 3D Tiles) frame
CANONICAL_UP_AXIS = UpAxis.Y_UP

Points = Union[MutableSequence, NDArray[np.float64]]


class TransformMode(Enum):
    """Transformer operating mode.

    Attributes:
        NONE: No geo reference; only axis remapping (e.g. OSGB -> glTF).
        WITH_GEO_REFERENCE: Anchored; geodetic conversions available (3D Tiles).
    """

    NONE = "none"
    WITH_GEO_REFERENCE = "with_geo_reference"


class MissingGeoReferenceWarning(RuntimeWarning):
    """A geodetic conversion was requested from a transformer without anchor."""


class GeoidUnavailableWarning(RuntimeWarning):
    """Geoid correction is enabled but the geoid service is not ready."""


class CoordinateTransformer:
    """Converts dataset points into ECEF, WGS84 and the anchored local ENU frame.

    Args:
        cs: Source coordinate system (copied).
        geo_ref: Geodetic anchor, a GeoReference or (lon, lat, height). None
            builds a transformer in TransformMode.NONE.
        geoid_policy: Geoid correction policy; disabled when omitted.
        geoid_service: Geoid height service; the process default when omitted.

    Example:
        >>> cs = CoordinateSystem.epsg(4326, 117.0, 35.0, 0.0)
        >>> with CoordinateTransformer(cs, GeoReference(0.0, 0.0, 0.0)) as t:
        ...     enu = t.to_local_enu([0.0, 0.0, 0.0])   # the anchor itself
    """

    def __init__(
        self,
        cs: CoordinateSystem,
        geo_ref: Optional[Union[GeoReference, Tuple[float, float, float]]] = None,
        geoid_policy: Optional[GeoidCorrectionPolicy] = None,
        geoid_service: Optional[GeoidHeightService] = None,
    ):
        self._source = copy.copy(cs)
        self._geoid_policy = (
            copy.copy(geoid_policy) if geoid_policy is not None else GeoidCorrectionPolicy.disabled()
        )
        self._geoid_service = geoid_service if geoid_service is not None else get_default_geoid_service()
        self._projection: Optional[ProjectionHandle] = None

        self._geo_origin_lon = 0.0
        self._geo_origin_lat = 0.0
        self._geo_origin_height = 0.0

        self._enu_to_ecef = _frozen(np.eye(4))
        self._ecef_to_enu = _frozen(np.eye(4))
        self._axis_transform = _frozen(
            axis_transform_matrix(self._source.up_axis, CANONICAL_UP_AXIS)
        )
        # Canonical Y-up local point -> (east, north, up)
        self._canonical_to_enu = _frozen(axis_transform_matrix(CANONICAL_UP_AXIS, UpAxis.Z_UP))

        if geo_ref is None:
            self._mode = TransformMode.NONE
            return

        self._mode = TransformMode.WITH_GEO_REFERENCE
        self._warn_if_geoid_unavailable()
        self._initialize_with_geo_reference(_as_geo_reference(geo_ref))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _initialize_with_geo_reference(self, geo_ref: GeoReference) -> None:
        cs = self._source

        if cs.type is CoordinateType.ENU:
            params = cs.enu_params()
            self._set_origin(params.origin_lon, params.origin_lat, params.origin_height)

        elif cs.needs_external_projection():
            self._projection = ProjectionHandle.from_coordinate_system(cs)

            if not geo_ref.is_trivial():
                # Caller already resolved the anchor
                height = self._apply_geoid_correction(geo_ref.lat, geo_ref.lon, geo_ref.height)
                self._set_origin(geo_ref.lon, geo_ref.lat, height)
            else:
                origin = self._project(np.zeros(3))
                if origin is None:
                    warnings.warn(
                        f"Cannot resolve geodetic anchor for {cs}; using (0, 0, 0)",
                        ProjectionUnavailableWarning,
                        stacklevel=3,
                    )
                else:
                    height = self._apply_geoid_correction(origin[1], origin[0], origin[2])
                    self._set_origin(origin[0], origin[1], height)

            log.info(
                "Projected anchor: lon=%.10f lat=%.10f h=%.3f",
                self._geo_origin_lon, self._geo_origin_lat, self._geo_origin_height,
            )

        else:
            self._set_origin(geo_ref.lon, geo_ref.lat, geo_ref.height)

        enu_to_ecef = enu_to_ecef_matrix(
            self._geo_origin_lon, self._geo_origin_lat, self._geo_origin_height
        )
        self._enu_to_ecef = _frozen(enu_to_ecef)
        self._ecef_to_enu = _frozen(np.linalg.inv(enu_to_ecef))

        log.info(
            "CoordinateTransformer initialized for %s: geo_origin=(%.10f, %.10f, %.3f)",
            cs, self._geo_origin_lon, self._geo_origin_lat, self._geo_origin_height,
        )

    def _set_origin(self, lon: float, lat: float, height: float) -> None:
        self._geo_origin_lon = float(lon)
        self._geo_origin_lat = float(lat)
        self._geo_origin_height = float(height)

    # ------------------------------------------------------------------
    # Geoid correction
    # ------------------------------------------------------------------

    def should_apply_geoid_correction(self) -> bool:
        """Return True if source heights must be corrected from orthometric.

        Requires an enabled policy, a ready geoid service, and an EPSG/WKT
        source whose vertical datum is orthometric or unknown. ENU and
        LocalCartesian heights are ellipsoidal by convention.
        """
        if not self._geoid_policy.enabled:
            return False
        if not self._geoid_service.is_ready():
            return False
        if not self._source.needs_external_projection():
            return False
        return self._source.vertical_datum in (VerticalDatum.ORTHOMETRIC, VerticalDatum.UNKNOWN)

    def _apply_geoid_correction(self, lat: float, lon: float, height: float) -> float:
        if not self.should_apply_geoid_correction():
            return height
        corrected = self._geoid_service.orthometric_to_ellipsoidal(lat, lon, height)
        log.debug("Geoid correction: orthometric=%.3f -> ellipsoidal=%.3f", height, corrected)
        return corrected

    def _warn_if_geoid_unavailable(self) -> None:
        # ENU and LocalCartesian heights are never corrected
        if not self._source.needs_external_projection():
            return
        if self._geoid_policy.enabled and not self._geoid_service.is_ready():
            warnings.warn(
                f"Geoid correction enabled ({self._geoid_policy.model.to_string()}) but the "
                "geoid service is not ready; heights are left uncorrected",
                GeoidUnavailableWarning,
                stacklevel=3,
            )

    def enable_geoid_correction(self, enabled: bool) -> None:
        """Toggle geoid correction for subsequent EPSG/WKT conversions.

        Cached matrices and the anchor are not recomputed.
        """
        self._geoid_policy.enabled = bool(enabled)
        if self._mode is TransformMode.WITH_GEO_REFERENCE:
            self._warn_if_geoid_unavailable()

    def is_geoid_correction_enabled(self) -> bool:
        return self._geoid_policy.enabled

    @property
    def geoid_policy(self) -> GeoidCorrectionPolicy:
        return self._geoid_policy

    # ------------------------------------------------------------------
    # Point conversions
    # ------------------------------------------------------------------

    def _project(self, point: NDArray[np.float64]) -> Optional[NDArray[np.float64]]:
        """Add the native source origin and project to (lon, lat, height)."""
        if self._projection is None:
            return None
        return self._projection.transform(point + np.asarray(self._source.source_origin()))

    def _enu_offset(self) -> NDArray[np.float64]:
        return np.asarray(self._source.source_origin(), dtype=np.float64)

    def _check_geo_reference(self, operation: str) -> bool:
        if self._mode is TransformMode.WITH_GEO_REFERENCE:
            return True
        warnings.warn(
            f"{operation} called without geo reference; returning input unchanged",
            MissingGeoReferenceWarning,
            stacklevel=3,
        )
        return False

    def _warn_no_projection(self, operation: str) -> None:
        warnings.warn(
            f"{operation}: no projection available for {self._source}; returning input unchanged",
            ProjectionUnavailableWarning,
            stacklevel=3,
        )

    def _geodetic(self, point: NDArray[np.float64]) -> Optional[NDArray[np.float64]]:
        """Geodetic (lon, lat, height) of a raw source point, None if unprojectable."""
        p = apply_affine(self._axis_transform, point)
        cs_type = self._source.type

        if cs_type is CoordinateType.ENU:
            ecef = apply_affine(self._enu_to_ecef, p + self._enu_offset())
            return ecef_to_cartographic(*ecef)

        if self._source.needs_external_projection():
            geo = self._project(p)
            if geo is None:
                return None
            geo[2] = self._apply_geoid_correction(geo[1], geo[0], geo[2])
            return geo

        enu = apply_affine(self._canonical_to_enu, p)
        ecef = apply_affine(self._enu_to_ecef, enu)
        return ecef_to_cartographic(*ecef)

    def to_wgs84(self, point: PointLike) -> NDArray[np.float64]:
        """Convert a source point to WGS84 geodetic coordinates.

        Args:
            point: Point in the dataset's native frame and units.

        Returns:
            Array [lon_deg, lat_deg, height] (ellipsoidal height), or the input
            unchanged when there is no geo reference or projection.
        """
        p = as_point(point)
        if not self._check_geo_reference("to_wgs84"):
            return p
        geo = self._geodetic(p)
        if geo is None:
            self._warn_no_projection("to_wgs84")
            return p
        return geo

    def to_ecef(self, point: PointLike) -> NDArray[np.float64]:
        """Convert a source point to ECEF coordinates in meters."""
        p = as_point(point)
        if not self._check_geo_reference("to_ecef"):
            return p

        if self._source.type is CoordinateType.ENU:
            local = apply_affine(self._axis_transform, p) + self._enu_offset()
            return apply_affine(self._enu_to_ecef, local)

        geo = self._geodetic(p)
        if geo is None:
            self._warn_no_projection("to_ecef")
            return p
        return cartographic_to_ecef(*geo)

    def to_local_enu(self, point: PointLike) -> NDArray[np.float64]:
        """Convert a source point into the anchor's local ENU frame.

        ENU points are shifted by the scene offset and re-expressed in the
        anchor frame (ENU -> ECEF -> ENU). EPSG/WKT points are projected,
        geoid-corrected and rotated in through ECEF. LocalCartesian points
        have no geodetic meaning and are returned unchanged.
        """
        p = as_point(point)
        if not self._check_geo_reference("to_local_enu"):
            return p

        cs_type = self._source.type
        if cs_type is CoordinateType.ENU:
            ecef = apply_affine(self._enu_to_ecef, p + self._enu_offset())
            return apply_affine(self._ecef_to_enu, ecef)

        if self._source.needs_external_projection():
            geo = self._project(p)
            if geo is None:
                self._warn_no_projection("to_local_enu")
                return p
            height = self._apply_geoid_correction(geo[1], geo[0], geo[2])
            ecef = cartographic_to_ecef(geo[0], geo[1], height)
            return apply_affine(self._ecef_to_enu, ecef)

        return p

    def transform_to_wgs84(self, points: Points) -> Points:
        """Convert every point to WGS84 in place; returns ``points``."""
        _check_writable_batch(points)
        for i in range(len(points)):
            points[i] = self.to_wgs84(points[i])
        return points

    def transform_to_ecef(self, points: Points) -> Points:
        """Convert every point to ECEF in place; returns ``points``."""
        _check_writable_batch(points)
        for i in range(len(points)):
            points[i] = self.to_ecef(points[i])
        return points

    def transform_to_local_enu(self, points: Points) -> Points:
        """Convert every point to local ENU in place; returns ``points``."""
        _check_writable_batch(points)
        for i in range(len(points)):
            points[i] = self.to_local_enu(points[i])
        return points

    def convert_up_axis(self, point: PointLike, target_axis: UpAxis = CANONICAL_UP_AXIS) -> NDArray[np.float64]:
        """Remap a point from the source up-axis to ``target_axis``. Works in any mode."""
        matrix = axis_transform_matrix(self._source.up_axis, target_axis)
        return apply_affine(matrix, point)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def source(self) -> CoordinateSystem:
        return copy.copy(self._source)

    @property
    def mode(self) -> TransformMode:
        return self._mode

    def has_geo_reference(self) -> bool:
        return self._mode is TransformMode.WITH_GEO_REFERENCE

    @property
    def enu_to_ecef(self) -> NDArray[np.float64]:
        return self._enu_to_ecef

    @property
    def ecef_to_enu(self) -> NDArray[np.float64]:
        return self._ecef_to_enu

    @property
    def axis_transform(self) -> NDArray[np.float64]:
        return self._axis_transform

    @property
    def geo_origin_lon(self) -> float:
        return self._geo_origin_lon

    @property
    def geo_origin_lat(self) -> float:
        return self._geo_origin_lat

    @property
    def geo_origin_height(self) -> float:
        return self._geo_origin_height

    @property
    def geo_origin(self) -> GeoReference:
        return GeoReference(self._geo_origin_lon, self._geo_origin_lat, self._geo_origin_height)

    @property
    def projection(self) -> Optional[ProjectionHandle]:
        return self._projection

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the projection handle. Safe to call more than once."""
        if self._projection is not None:
            self._projection.close()
            self._projection = None

    def __enter__(self) -> "CoordinateTransformer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __copy__(self):
        raise TypeError("CoordinateTransformer owns its projection handle and cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("CoordinateTransformer owns its projection handle and cannot be copied")

    def __repr__(self) -> str:
        return (
            f"CoordinateTransformer({self._source}, mode={self._mode.value}, "
            f"geo_origin=({self._geo_origin_lon:.10f}, {self._geo_origin_lat:.10f}, "
            f"{self._geo_origin_height:.3f}))"
        )


def _check_writable_batch(points: Points) -> None:
    # Results are written back in place and must not be truncated
    if isinstance(points, np.ndarray) and not np.issubdtype(points.dtype, np.floating):
        raise TypeError(
            f"Batch conversion needs a floating-point array, got dtype {points.dtype}"
        )


def _frozen(matrix: NDArray[np.float64]) -> NDArray[np.float64]:
    m = np.array(matrix, dtype=np.float64)
    m.flags.writeable = False
    return m


def _as_geo_reference(geo_ref: Union[GeoReference, Tuple[float, float, float]]) -> GeoReference:
    if isinstance(geo_ref, GeoReference):
        return geo_ref
    lon, lat, height = geo_ref
    return GeoReference.from_degrees(lon, lat, height)
