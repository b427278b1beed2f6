"""Geodetic, ECEF and local-frame transformations on the WGS84 ellipsoid.

This module implements the frame math used by the coordinate transformer:
geodetic (longitude, latitude, height) to Earth-Centered Earth-Fixed (ECEF)
and back, the 4x4 affine East-North-Up frame anchored at a geodetic point, and
the axis remap between Y-up and Z-up local frames.

Angles are in degrees at this module's boundary; heights and Cartesian
coordinates are in meters. Matrices act on column vectors
``[x, y, z, 1]`` (``M @ p``), so the translation lives in ``M[:3, 3]``.

WGS84 ellipsoid parameters:
- Semi-major axis (a): 6378137.0 m
- Flattening (f): 1/298.257223563
- First eccentricity squared (e²): f(2 - f)
"""

from typing import Sequence, Union

import numpy as np
from numpy.typing import NDArray

from tilecoords.coords.frames import UpAxis

# WGS84 ellipsoid parameters
WGS84_A = 6378137.0  # Semi-major axis (m)
WGS84_F = 1.0 / 298.257223563  # Flattening
WGS84_B = WGS84_A * (1.0 - WGS84_F)  # Semi-minor axis (m)
WGS84_E2 = WGS84_F * (2.0 - WGS84_F)  # First eccentricity squared

PointLike = Union[Sequence[float], NDArray[np.float64]]


def as_point(point: PointLike) -> NDArray[np.float64]:
    """Return ``point`` as a fresh float64 array of shape (3,).

    Raises:
        ValueError: If the input does not hold exactly three values.
    """
    arr = np.array(point, dtype=np.float64).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"Point must have 3 components, got shape {np.shape(point)}")
    return arr


def apply_affine(matrix: NDArray[np.float64], point: PointLike) -> NDArray[np.float64]:
    """Apply a 4x4 affine matrix to a 3D point."""
    p = as_point(point)
    return matrix[:3, :3] @ p + matrix[:3, 3]


def _prime_vertical_radius(sin_lat: float) -> float:
    # Radius of curvature in the prime vertical
    return WGS84_A / np.sqrt(1.0 - WGS84_E2 * sin_lat**2)


def cartographic_to_ecef(
    lon_deg: float,
    lat_deg: float,
    height: float,
) -> NDArray[np.float64]:
    """Convert geodetic coordinates to ECEF Cartesian coordinates.

    Args:
        lon_deg: Longitude in degrees (positive east).
        lat_deg: Latitude in degrees (positive north).
        height: Height above the WGS84 ellipsoid in meters.

    Returns:
        ECEF coordinates as numpy array [x, y, z] in meters.

    Example:
        >>> xyz = cartographic_to_ecef(0.0, 0.0, 0.0)
        >>> print(f"ECEF: {xyz}")  # equator / prime meridian, x = a
    """
    lon = np.deg2rad(lon_deg)
    lat = np.deg2rad(lat_deg)
    sin_lat = np.sin(lat)
    cos_lat = np.cos(lat)
    N = _prime_vertical_radius(sin_lat)

    x = (N + height) * cos_lat * np.cos(lon)
    y = (N + height) * cos_lat * np.sin(lon)
    z = (N * (1.0 - WGS84_E2) + height) * sin_lat

    return np.array([x, y, z], dtype=np.float64)


def ecef_to_cartographic(
    x: float,
    y: float,
    z: float,
    tol: float = 1e-12,
    max_iter: int = 10,
) -> NDArray[np.float64]:
    """Convert ECEF coordinates to geodetic longitude, latitude and height.

    Uses the fixed-point latitude iteration; ``tol`` is the latitude
    convergence threshold in radians.

    Args:
        x: ECEF x-coordinate in meters.
        y: ECEF y-coordinate in meters.
        z: ECEF z-coordinate in meters.
        tol: Convergence tolerance on latitude (radians).
        max_iter: Maximum number of iterations.

    Returns:
        Array [lon_deg, lat_deg, height] with height in meters above the
        WGS84 ellipsoid.
    """
    lon = np.arctan2(y, x)
    p = np.hypot(x, y)

    # On the polar axis latitude is ±90° and longitude is arbitrary
    if p < 1e-10:
        lat = np.copysign(np.pi / 2.0, z)
        height = abs(z) - WGS84_B
        return np.array([np.rad2deg(lon), np.rad2deg(lat), height], dtype=np.float64)

    lat = np.arctan2(z, p * (1.0 - WGS84_E2))
    for _ in range(max_iter):
        N = _prime_vertical_radius(np.sin(lat))
        height = p / np.cos(lat) - N
        lat_new = np.arctan2(z, p * (1.0 - WGS84_E2 * N / (N + height)))
        converged = abs(lat_new - lat) < tol
        lat = lat_new
        if converged:
            break

    N = _prime_vertical_radius(np.sin(lat))
    height = p / np.cos(lat) - N

    return np.array([np.rad2deg(lon), np.rad2deg(lat), height], dtype=np.float64)


def enu_to_ecef_matrix(
    lon_deg: float,
    lat_deg: float,
    height: float,
) -> NDArray[np.float64]:
    """Build the 4x4 ENU -> ECEF affine frame anchored at a geodetic point.

    Columns 0-2 hold the East, North and Up unit vectors expressed in ECEF;
    column 3 holds the ECEF position of the anchor:

        East  = (-sinλ,       cosλ,       0)
        North = (-sinφ cosλ, -sinφ sinλ,  cosφ)
        Up    = ( cosφ cosλ,  cosφ sinλ,  sinφ)

    Args:
        lon_deg: Anchor longitude λ in degrees.
        lat_deg: Anchor latitude φ in degrees.
        height: Anchor ellipsoidal height in meters.

    Returns:
        4x4 matrix T with ``ecef = T @ [e, n, u, 1]``.
    """
    lon = np.deg2rad(lon_deg)
    lat = np.deg2rad(lat_deg)
    sin_lat = np.sin(lat)
    cos_lat = np.cos(lat)
    sin_lon = np.sin(lon)
    cos_lon = np.cos(lon)

    T = np.eye(4, dtype=np.float64)
    T[:3, 0] = [-sin_lon, cos_lon, 0.0]
    T[:3, 1] = [-sin_lat * cos_lon, -sin_lat * sin_lon, cos_lat]
    T[:3, 2] = [cos_lat * cos_lon, cos_lat * sin_lon, sin_lat]
    T[:3, 3] = cartographic_to_ecef(lon_deg, lat_deg, height)

    return T


def ecef_to_enu_matrix(
    lon_deg: float,
    lat_deg: float,
    height: float,
) -> NDArray[np.float64]:
    """Inverse of :func:`enu_to_ecef_matrix` (ECEF -> local ENU)."""
    return np.linalg.inv(enu_to_ecef_matrix(lon_deg, lat_deg, height))


# Z-Up -> Y-Up: (x, y, z) -> (x, z, -y)
_Z_UP_TO_Y_UP = np.array(
    [
        [1.0, 0.0, 0.0, 0.0],
        [0.0, 0.0, 1.0, 0.0],
        [0.0, -1.0, 0.0, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ],
    dtype=np.float64,
)

# Y-Up -> Z-Up: (x, y, z) -> (x, -z, y)
_Y_UP_TO_Z_UP = np.array(
    [
        [1.0, 0.0, 0.0, 0.0],
        [0.0, 0.0, -1.0, 0.0],
        [0.0, 1.0, 0.0, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ],
    dtype=np.float64,
)


def axis_transform_matrix(from_axis: UpAxis, to_axis: UpAxis) -> NDArray[np.float64]:
    """Return the 4x4 matrix remapping points between up-axis conventions.

    Args:
        from_axis: Up axis of the input points.
        to_axis: Up axis of the output points.

    Returns:
        Identity when the conventions match, otherwise the Z-up/Y-up remap.

    Raises:
        ValueError: If either argument is not an UpAxis.
    """
    for axis in (from_axis, to_axis):
        if not isinstance(axis, UpAxis):
            raise ValueError(f"Unsupported up-axis convention: {axis!r}")

    if from_axis is to_axis:
        return np.eye(4, dtype=np.float64)
    if from_axis is UpAxis.Z_UP:
        return _Z_UP_TO_Y_UP.copy()
    return _Y_UP_TO_Z_UP.copy()
