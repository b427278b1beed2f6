"""Example: Placing tileset content from different source conventions.

This example walks through the conversions a tileset pipeline performs:
1. Describe a dataset's native coordinate system
2. Build a transformer and resolve its geodetic anchor
3. Convert vertices into the anchored local ENU frame
4. Inspect WGS84 / ECEF positions and the cached frame matrices

Sources covered: an oblique photography ENU scene, a projected (UTM) survey,
a WKT-described geographic dataset and a Z-up local model.
"""

import argparse
import warnings

import numpy as np
import matplotlib.pyplot as plt

from tilecoords.coords import (
    CoordinateSystem,
    CoordinateTransformer,
    GeoReference,
    UpAxis,
    VerticalDatum,
)
from tilecoords.geoid import GeoidCorrectionPolicy, GeoidHeightService

WGS84_WKT = (
    'GEOGCS["WGS 84",DATUM["WGS_1984",SPHEROID["WGS 84",6378137,298.257223563]],'
    'PRIMEM["Greenwich",0],UNIT["degree",0.0174532925199433]]'
)

# Corners of a 200 m x 200 m footprint, 30 m tall, in source-local meters
FOOTPRINT = np.array(
    [
        [-100.0, -100.0, 0.0],
        [100.0, -100.0, 0.0],
        [100.0, 100.0, 0.0],
        [-100.0, 100.0, 0.0],
        [0.0, 0.0, 30.0],
    ]
)


def example_enu_scene() -> np.ndarray:
    """ENU scene with an SRS origin offset (oblique photography metadata.xml)."""
    print("\n1. ENU Scene with Origin Offset")
    print("-" * 70)

    cs = CoordinateSystem.enu(117.0, 35.0, 0.0, -958.0, -993.0, 69.0)
    print(f"Source: {cs}")

    with CoordinateTransformer(cs, GeoReference(0.0, 0.0, 0.0)) as transformer:
        print(f"Anchor: {transformer.geo_origin}")
        enu = transformer.transform_to_local_enu(FOOTPRINT.copy())
        for src, dst in zip(FOOTPRINT, enu):
            print(f"  local {src} -> ENU [{dst[0]:9.2f}, {dst[1]:9.2f}, {dst[2]:7.2f}] m")

        lon, lat, h = transformer.to_wgs84(FOOTPRINT[0])
        print(f"  first corner WGS84: [{lon:.7f}°, {lat:.7f}°, {h:.2f} m]")

    return enu


def example_projected_survey() -> np.ndarray:
    """UTM zone 50N survey with orthometric heights."""
    print("\n2. Projected Survey (EPSG:32650, orthometric heights)")
    print("-" * 70)

    cs = CoordinateSystem.epsg(
        32650, 500000.0, 3873043.0, 50.0, vertical_datum=VerticalDatum.ORTHOMETRIC
    )
    print(f"Source: {cs}")

    # A private service: correction stays off unless the EGM96 grid is installed
    geoid = GeoidHeightService()
    ready = geoid.initialize(GeoidCorrectionPolicy.egm96().model)
    print(f"EGM96 geoid grid available: {ready}")

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        transformer = CoordinateTransformer(
            cs, GeoReference(0.0, 0.0, 0.0), GeoidCorrectionPolicy.egm96(), geoid
        )

    with transformer:
        print(f"Anchor: {transformer.geo_origin}")
        print(f"Geoid correction applied: {transformer.should_apply_geoid_correction()}")
        enu = transformer.transform_to_local_enu(FOOTPRINT.copy())
        for src, dst in zip(FOOTPRINT, enu):
            print(f"  grid {src} -> ENU [{dst[0]:9.3f}, {dst[1]:9.3f}, {dst[2]:7.3f}] m")

    geoid.close()
    return enu


def example_wkt_dataset() -> None:
    """Geographic dataset described by WKT; the anchor maps to the ENU origin."""
    print("\n3. WKT Geographic Dataset")
    print("-" * 70)

    cs = CoordinateSystem.wkt(WGS84_WKT, 121.4737, 31.2304, 12.0)
    with CoordinateTransformer(cs, GeoReference(0.0, 0.0, 0.0)) as transformer:
        print(f"Anchor: {transformer.geo_origin}")
        print(f"  origin -> ENU {transformer.to_local_enu([0.0, 0.0, 0.0])}")
        print(f"  origin -> ECEF {transformer.to_ecef([0.0, 0.0, 0.0])}")


def example_local_model() -> None:
    """Z-up local model placed with an externally supplied anchor."""
    print("\n4. Z-up Local Model")
    print("-" * 70)

    cs = CoordinateSystem.local_cartesian(UpAxis.Z_UP)
    plain = CoordinateTransformer(cs)
    print(f"Mode without anchor: {plain.mode.value}")
    print(f"  (1, 2, 3) Z-up -> Y-up {plain.convert_up_axis([1.0, 2.0, 3.0])}")

    anchored = CoordinateTransformer(cs, GeoReference.from_degrees(2.2945, 48.8584, 35.0))
    lon, lat, h = anchored.to_wgs84([0.0, 0.0, 300.0])
    print(f"  300 m above the anchor: [{lon:.7f}°, {lat:.7f}°, {h:.2f} m]")
    print(f"  ENU -> ECEF frame:\n{anchored.enu_to_ecef}")


def plot_footprints(enu_scene: np.ndarray, enu_survey: np.ndarray, output_file: str) -> None:
    """Plot both converted footprints in their local ENU frames."""
    fig, axes = plt.subplots(1, 2, figsize=(12, 6))
    for ax, pts, title in (
        (axes[0], enu_scene, "ENU scene (offset applied)"),
        (axes[1], enu_survey, "UTM survey in local ENU"),
    ):
        ring = np.vstack([pts[:4], pts[:1]])
        ax.plot(ring[:, 0], ring[:, 1], "o-", label="footprint")
        ax.plot(pts[4, 0], pts[4, 1], "r^", label="roof point")
        ax.plot(0.0, 0.0, "k+", markersize=12, label="anchor")
        ax.set_xlabel("East (m)")
        ax.set_ylabel("North (m)")
        ax.set_title(title)
        ax.axis("equal")
        ax.grid(True, alpha=0.3)
        ax.legend()

    plt.tight_layout()
    plt.savefig(output_file, dpi=150, bbox_inches="tight")
    print(f"\nSaved figure to {output_file}")
    plt.close(fig)


def main():
    """Run the coordinate transformation examples."""
    parser = argparse.ArgumentParser(
        description="Place tileset content from local, ENU, EPSG and WKT sources"
    )
    parser.add_argument(
        "--plot", metavar="PNG", default=None,
        help="Save a plot of the converted footprints to this file"
    )
    args = parser.parse_args()

    print("=" * 70)
    print("Tileset Coordinate Transformation Examples")
    print("=" * 70)

    enu_scene = example_enu_scene()
    enu_survey = example_projected_survey()
    example_wkt_dataset()
    example_local_model()

    if args.plot:
        plot_footprints(enu_scene, enu_survey, args.plot)

    print("\n" + "=" * 70)
    print("Examples completed successfully!")
    print("=" * 70)


if __name__ == "__main__":
    main()
