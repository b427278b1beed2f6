"""Coordinate conversion for 3D geospatial tileset pipelines.

This package converts points authored in local, ENU, EPSG or WKT coordinate
systems into a canonical East-North-Up frame anchored on the WGS84 ellipsoid:
- coords: coordinate system descriptor, frame math and the transformer
- projection: pyproj-backed projection to geographic WGS84
- geoid: geoid models, correction policy and undulation lookups
"""

__version__ = "0.1.0"
