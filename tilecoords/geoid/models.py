"""Geoid model identifiers and the height-correction policy.

Orthometric heights (above the geoid, "sea level") differ from ellipsoidal
heights by the geoid undulation N:

    h_ellipsoidal = H_orthometric + N(lat, lon)

The undulation grids are the PROJ grid files for the Earth Gravitational
Models; each model is selected through its vertical CRS in the EPSG registry.
"""

import os
from dataclasses import dataclass
from enum import Enum

from pyproj import datadir

# Environment variable naming a directory with PROJ geoid grids
GEOID_PATH_ENV = "TILECOORDS_GEOID_PATH"


class GeoidModel(Enum):
    """Supported Earth Gravitational Models.

    The value of each member is the EPSG code of the matching vertical CRS
    (0 for NONE).
    """

    NONE = 0
    EGM84 = 5798
    EGM96 = 5773
    EGM2008 = 3855

    @property
    def vertical_crs(self) -> str:
        """EPSG identifier of the model's orthometric height system."""
        if self is GeoidModel.NONE:
            raise ValueError("GeoidModel.NONE has no vertical CRS")
        return f"EPSG:{self.value}"

    def to_string(self) -> str:
        return self.name.lower()

    @classmethod
    def from_string(cls, name: str) -> "GeoidModel":
        """Parse a model name such as ``"egm96"`` or ``"EGM2008"``.

        Unrecognised names map to NONE.
        """
        try:
            return cls[name.strip().upper()]
        except KeyError:
            return cls.NONE


def default_geoid_data_path() -> str:
    """Return the directory searched for geoid grids.

    Order: ``$TILECOORDS_GEOID_PATH``, ``$PROJ_DATA``, then pyproj's user
    data directory (where PROJ caches downloaded grids).
    """
    for env in (GEOID_PATH_ENV, "PROJ_DATA"):
        path = os.environ.get(env, "")
        if path:
            return path
    return datadir.get_user_data_dir()


@dataclass
class GeoidCorrectionPolicy:
    """Whether and with which model transformer heights are geoid-corrected.

    Attributes:
        enabled: Attempt orthometric -> ellipsoidal correction.
        model: Geoid model the caller initialises the geoid service with.
        data_path: Grid directory; empty means ``default_geoid_data_path()``.

    Example:
        >>> policy = GeoidCorrectionPolicy.egm96()
        >>> policy.enabled
        True
    """

    enabled: bool = False
    model: GeoidModel = GeoidModel.EGM96
    data_path: str = ""

    @classmethod
    def disabled(cls) -> "GeoidCorrectionPolicy":
        return cls(enabled=False)

    @classmethod
    def egm84(cls, data_path: str = "") -> "GeoidCorrectionPolicy":
        return cls(True, GeoidModel.EGM84, data_path)

    @classmethod
    def egm96(cls, data_path: str = "") -> "GeoidCorrectionPolicy":
        return cls(True, GeoidModel.EGM96, data_path)

    @classmethod
    def egm2008(cls, data_path: str = "") -> "GeoidCorrectionPolicy":
        return cls(True, GeoidModel.EGM2008, data_path)

    def resolved_data_path(self) -> str:
        return self.data_path or default_geoid_data_path()
