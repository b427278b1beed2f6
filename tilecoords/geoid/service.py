"""Geoid undulation lookups backed by PROJ geoid grids.

GeoidHeightService answers "how far is the geoid above the ellipsoid here"
for one Earth Gravitational Model. It has an explicit lifecycle:

    service = GeoidHeightService()
    service.initialize(GeoidModel.EGM96)   # False if the grid is unavailable
    service.is_ready()
    service.geoid_height(lat, lon)
    service.close()

The lookup runs a 3D WGS84 -> WGS84 + <model height> pyproj transformation
with ``only_best=True``: when the model's grid cannot be found PROJ refuses
the operation instead of silently falling back to a ballpark (zero) geoid.

A process-wide default instance is available for callers that do not inject
their own service into the transformer.
"""

import logging
import math
import os
import threading
from typing import Optional

from pyproj import Transformer, datadir
from pyproj.exceptions import CRSError, DataDirError, ProjError

from tilecoords.geoid.models import GeoidModel, default_geoid_data_path

log = logging.getLogger(__name__)

# Geographic 3D system of the ellipsoidal heights
ELLIPSOIDAL_CRS = "EPSG:4979"


def _on_proj_search_path(path: str) -> bool:
    try:
        entries = datadir.get_data_dir().split(os.pathsep)
    except DataDirError:
        return False
    return os.path.normpath(path) in {os.path.normpath(p) for p in entries if p}


class GeoidHeightService:
    """Geoid undulation lookups for a single geoid model."""

    def __init__(self) -> None:
        self._model = GeoidModel.NONE
        self._transformer: Optional[Transformer] = None
        self._lock = threading.Lock()

    @property
    def model(self) -> GeoidModel:
        return self._model

    def is_ready(self) -> bool:
        return self._transformer is not None

    def initialize(self, model: GeoidModel, data_path: str = "") -> bool:
        """Load ``model``, replacing any model loaded before.

        Args:
            model: Geoid model to use. NONE clears the service.
            data_path: Directory holding the PROJ grid files; empty means
                ``default_geoid_data_path()``.

        Returns:
            True if the service is in the requested state, False if the model
            could not be loaded (the service is then not ready).
        """
        with self._lock:
            if model is GeoidModel.NONE:
                self._model = GeoidModel.NONE
                self._transformer = None
                log.info("Geoid model set to none, no height conversion will be applied")
                return True

            path = data_path or default_geoid_data_path()
            if path and os.path.isdir(path) and not _on_proj_search_path(path):
                datadir.append_data_dir(path)

            log.info("Initializing geoid model %s with path %s", model.to_string(), path)
            try:
                transformer = Transformer.from_crs(
                    ELLIPSOIDAL_CRS,
                    f"EPSG:4326+{model.value}",
                    always_xy=True,
                    only_best=True,
                )
                # Probe once so a missing grid fails here, not on first use
                probe = transformer.transform(0.0, 0.0, 0.0, errcheck=True)
                if not math.isfinite(probe[2]):
                    raise ProjError("non-finite geoid height")
            except (CRSError, ProjError) as exc:
                log.error("Failed to initialize geoid model %s: %s", model.to_string(), exc)
                self._model = GeoidModel.NONE
                self._transformer = None
                return False

            self._model = model
            self._transformer = transformer
            log.info("Geoid model %s initialized (%s)", model.to_string(), transformer.description)
            return True

    def geoid_height(self, lat: float, lon: float) -> Optional[float]:
        """Return the geoid undulation N at (lat, lon) in meters, or None.

        Args:
            lat: Latitude in degrees.
            lon: Longitude in degrees.
        """
        transformer = self._transformer
        if transformer is None:
            return None
        try:
            _, _, orthometric = transformer.transform(lon, lat, 0.0, errcheck=True)
        except ProjError as exc:
            log.warning("Failed to get geoid height at (%f, %f): %s", lat, lon, exc)
            return None
        if not math.isfinite(orthometric):
            return None
        # An ellipsoidal height of 0 sits N meters below the geoid
        return -orthometric

    def orthometric_to_ellipsoidal(self, lat: float, lon: float, height: float) -> float:
        """h = H + N; returns ``height`` unchanged when N is unavailable."""
        n = self.geoid_height(lat, lon)
        if n is None:
            return height
        return height + n

    def ellipsoidal_to_orthometric(self, lat: float, lon: float, height: float) -> float:
        """H = h - N; returns ``height`` unchanged when N is unavailable."""
        n = self.geoid_height(lat, lon)
        if n is None:
            return height
        return height - n

    def close(self) -> None:
        with self._lock:
            self._model = GeoidModel.NONE
            self._transformer = None

    def __repr__(self) -> str:
        state = "ready" if self.is_ready() else "not ready"
        return f"GeoidHeightService({self._model.to_string()}, {state})"


_default_service = GeoidHeightService()


def get_default_geoid_service() -> GeoidHeightService:
    """Return the process-wide geoid service used when none is injected."""
    return _default_service


def initialize_default_geoid_service(model: GeoidModel, data_path: str = "") -> bool:
    """Initialise the process-wide geoid service (idempotent)."""
    return _default_service.initialize(model, data_path)
