"""Unit tests for geoid models, the correction policy and the geoid service.

Test cases include:
- GeoidModel string conversion and vertical CRS codes
- GeoidCorrectionPolicy factories and data path resolution
- Grid directory lookup from the environment
- Service lifecycle when no grid is loaded
- Undulation sign and height conversions with a loaded model
- Grid directory registration on repeated initialisation
"""

import os
import tempfile
import unittest
from unittest.mock import patch

from pyproj.exceptions import ProjError

from tilecoords.geoid.models import (
    GEOID_PATH_ENV,
    GeoidCorrectionPolicy,
    GeoidModel,
    default_geoid_data_path,
)
from tilecoords.geoid.service import (
    ELLIPSOIDAL_CRS,
    GeoidHeightService,
    get_default_geoid_service,
)


class TestGeoidModel(unittest.TestCase):
    """Test cases for GeoidModel."""

    def test_to_string(self) -> None:
        self.assertEqual(GeoidModel.NONE.to_string(), "none")
        self.assertEqual(GeoidModel.EGM84.to_string(), "egm84")
        self.assertEqual(GeoidModel.EGM96.to_string(), "egm96")
        self.assertEqual(GeoidModel.EGM2008.to_string(), "egm2008")

    def test_from_string(self) -> None:
        self.assertIs(GeoidModel.from_string("egm96"), GeoidModel.EGM96)
        self.assertIs(GeoidModel.from_string("EGM2008"), GeoidModel.EGM2008)
        self.assertIs(GeoidModel.from_string(" Egm84 "), GeoidModel.EGM84)
        self.assertIs(GeoidModel.from_string("none"), GeoidModel.NONE)
        self.assertIs(GeoidModel.from_string("geoid18"), GeoidModel.NONE)

    def test_round_trip(self) -> None:
        for model in GeoidModel:
            with self.subTest(model=model):
                self.assertIs(GeoidModel.from_string(model.to_string()), model)

    def test_vertical_crs(self) -> None:
        self.assertEqual(GeoidModel.EGM84.vertical_crs, "EPSG:5798")
        self.assertEqual(GeoidModel.EGM96.vertical_crs, "EPSG:5773")
        self.assertEqual(GeoidModel.EGM2008.vertical_crs, "EPSG:3855")
        with self.assertRaises(ValueError):
            GeoidModel.NONE.vertical_crs


class TestGeoidCorrectionPolicy(unittest.TestCase):
    """Test cases for GeoidCorrectionPolicy."""

    def test_default_disabled(self) -> None:
        policy = GeoidCorrectionPolicy()
        self.assertFalse(policy.enabled)
        self.assertIs(policy.model, GeoidModel.EGM96)
        self.assertEqual(policy.data_path, "")
        self.assertFalse(GeoidCorrectionPolicy.disabled().enabled)

    def test_factories(self) -> None:
        cases = [
            (GeoidCorrectionPolicy.egm84, GeoidModel.EGM84),
            (GeoidCorrectionPolicy.egm96, GeoidModel.EGM96),
            (GeoidCorrectionPolicy.egm2008, GeoidModel.EGM2008),
        ]
        for factory, model in cases:
            with self.subTest(model=model):
                policy = factory("/data/geoids")
                self.assertTrue(policy.enabled)
                self.assertIs(policy.model, model)
                self.assertEqual(policy.data_path, "/data/geoids")

    def test_resolved_data_path(self) -> None:
        self.assertEqual(GeoidCorrectionPolicy.egm96("/grids").resolved_data_path(), "/grids")

        with patch.dict(os.environ, {GEOID_PATH_ENV: "/env/grids"}):
            self.assertEqual(GeoidCorrectionPolicy.egm96().resolved_data_path(), "/env/grids")


class TestDefaultGeoidDataPath(unittest.TestCase):
    """Test cases for the grid directory lookup order."""

    def test_package_variable_first(self) -> None:
        with patch.dict(os.environ, {GEOID_PATH_ENV: "/a", "PROJ_DATA": "/b"}):
            self.assertEqual(default_geoid_data_path(), "/a")

    def test_proj_data_second(self) -> None:
        with patch.dict(os.environ, {GEOID_PATH_ENV: "", "PROJ_DATA": "/b"}):
            self.assertEqual(default_geoid_data_path(), "/b")

    def test_user_data_dir_fallback(self) -> None:
        with patch.dict(os.environ, {GEOID_PATH_ENV: "", "PROJ_DATA": ""}):
            with patch("tilecoords.geoid.models.datadir.get_user_data_dir", return_value="/user/proj"):
                self.assertEqual(default_geoid_data_path(), "/user/proj")


class TestGeoidHeightService(unittest.TestCase):
    """Test cases for the service without a loaded grid."""

    def test_initial_state(self) -> None:
        service = GeoidHeightService()

        self.assertFalse(service.is_ready())
        self.assertIs(service.model, GeoidModel.NONE)
        self.assertIn("not ready", repr(service))

    def test_initialize_none(self) -> None:
        service = GeoidHeightService()

        self.assertTrue(service.initialize(GeoidModel.NONE))
        self.assertFalse(service.is_ready())
        self.assertIs(service.model, GeoidModel.NONE)

    def test_not_ready_leaves_heights(self) -> None:
        service = GeoidHeightService()

        self.assertIsNone(service.geoid_height(35.0, 117.0))
        self.assertEqual(service.orthometric_to_ellipsoidal(35.0, 117.0, 100.0), 100.0)
        self.assertEqual(service.ellipsoidal_to_orthometric(35.0, 117.0, 100.0), 100.0)

    def test_close(self) -> None:
        service = GeoidHeightService()
        service.close()
        service.close()

        self.assertFalse(service.is_ready())

    def test_default_service_is_shared(self) -> None:
        self.assertIs(get_default_geoid_service(), get_default_geoid_service())
        self.assertIsInstance(get_default_geoid_service(), GeoidHeightService)


class ConstantGeoidTransformer:
    """Stands in for the EPSG:4979 -> EPSG:4326+<model> transformation."""

    description = "constant geoid"

    def __init__(self, orthometric: float = -30.0, fail: bool = False) -> None:
        self.orthometric = orthometric
        self.fail = fail
        self.calls = []

    def transform(self, x, y, z, errcheck=False):
        self.calls.append((x, y, z))
        if self.fail:
            raise ProjError("grid not found")
        return x, y, z + self.orthometric


class TestGeoidHeightServiceLoaded(unittest.TestCase):
    """Test cases for the service with a model loaded."""

    def setUp(self) -> None:
        self.transformer = ConstantGeoidTransformer(orthometric=-30.0)
        patcher = patch(
            "tilecoords.geoid.service.Transformer.from_crs", return_value=self.transformer
        )
        self.from_crs = patcher.start()
        self.addCleanup(patcher.stop)

    def test_initialize(self) -> None:
        service = GeoidHeightService()

        self.assertTrue(service.initialize(GeoidModel.EGM96))

        self.assertTrue(service.is_ready())
        self.assertIs(service.model, GeoidModel.EGM96)
        args, kwargs = self.from_crs.call_args
        self.assertEqual(args, (ELLIPSOIDAL_CRS, "EPSG:4326+5773"))
        self.assertTrue(kwargs["always_xy"])
        self.assertTrue(kwargs["only_best"])
        # Initialisation checks the grid once
        self.assertEqual(self.transformer.calls, [(0.0, 0.0, 0.0)])

    def test_model_compound_target(self) -> None:
        for model, target in (
            (GeoidModel.EGM84, "EPSG:4326+5798"),
            (GeoidModel.EGM2008, "EPSG:4326+3855"),
        ):
            with self.subTest(model=model):
                service = GeoidHeightService()
                self.assertTrue(service.initialize(model))
                self.assertEqual(self.from_crs.call_args[0][1], target)
                self.assertIs(service.model, model)

    def test_geoid_height_sign(self) -> None:
        service = GeoidHeightService()
        service.initialize(GeoidModel.EGM96)

        # h = 0 lies 30 m below the geoid, so the geoid is 30 m above the ellipsoid
        self.assertAlmostEqual(service.geoid_height(35.0, 117.0), 30.0)
        self.assertEqual(self.transformer.calls[-1], (117.0, 35.0, 0.0))

    def test_height_conversions(self) -> None:
        service = GeoidHeightService()
        service.initialize(GeoidModel.EGM96)

        self.assertAlmostEqual(service.orthometric_to_ellipsoidal(35.0, 117.0, 100.0), 130.0)
        self.assertAlmostEqual(service.ellipsoidal_to_orthometric(35.0, 117.0, 130.0), 100.0)

    def test_failed_lookup_leaves_height(self) -> None:
        service = GeoidHeightService()
        service.initialize(GeoidModel.EGM96)
        self.transformer.fail = True

        self.assertIsNone(service.geoid_height(35.0, 117.0))
        self.assertEqual(service.orthometric_to_ellipsoidal(35.0, 117.0, 100.0), 100.0)

    def test_failed_probe(self) -> None:
        self.transformer.fail = True
        service = GeoidHeightService()

        self.assertFalse(service.initialize(GeoidModel.EGM2008))

        self.assertFalse(service.is_ready())
        self.assertIs(service.model, GeoidModel.NONE)
        self.assertIsNone(service.geoid_height(35.0, 117.0))

    def test_failed_reinitialize_clears_previous_model(self) -> None:
        service = GeoidHeightService()
        self.assertTrue(service.initialize(GeoidModel.EGM96))

        self.transformer.fail = True
        self.assertFalse(service.initialize(GeoidModel.EGM2008))

        self.assertFalse(service.is_ready())

    def test_reset_to_none(self) -> None:
        service = GeoidHeightService()
        service.initialize(GeoidModel.EGM96)

        self.assertTrue(service.initialize(GeoidModel.NONE))
        self.assertFalse(service.is_ready())
        self.assertIn("none", repr(service))


class TestGeoidDataDirectory(unittest.TestCase):
    """Test cases for registering the grid directory with PROJ."""

    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.grid_dir = tmp.name

        patcher = patch(
            "tilecoords.geoid.service.Transformer.from_crs",
            return_value=ConstantGeoidTransformer(),
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_directory_appended_once(self) -> None:
        search_path = ["/usr/share/proj"]

        def append(path):
            search_path.append(path)

        with patch("tilecoords.geoid.service.datadir") as datadir:
            datadir.get_data_dir.side_effect = lambda: os.pathsep.join(search_path)
            datadir.append_data_dir.side_effect = append

            service = GeoidHeightService()
            for _ in range(3):
                self.assertTrue(service.initialize(GeoidModel.EGM96, self.grid_dir))

        datadir.append_data_dir.assert_called_once_with(self.grid_dir)
        self.assertEqual(search_path.count(self.grid_dir), 1)

    def test_missing_directory_not_appended(self) -> None:
        missing = os.path.join(self.grid_dir, "absent")

        with patch("tilecoords.geoid.service.datadir") as datadir:
            datadir.get_data_dir.return_value = "/usr/share/proj"
            self.assertTrue(GeoidHeightService().initialize(GeoidModel.EGM96, missing))

        datadir.append_data_dir.assert_not_called()



if __name__ == "__main__":
    unittest.main()
