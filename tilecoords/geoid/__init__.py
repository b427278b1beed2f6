"""Geoid models, correction policy and undulation lookups."""

from tilecoords.geoid.models import (
    GeoidCorrectionPolicy,
    GeoidModel,
    default_geoid_data_path,
)
from tilecoords.geoid.service import (
    GeoidHeightService,
    get_default_geoid_service,
    initialize_default_geoid_service,
)

__all__ = [
    "GeoidCorrectionPolicy",
    "GeoidModel",
    "default_geoid_data_path",
    "GeoidHeightService",
    "get_default_geoid_service",
    "initialize_default_geoid_service",
]
