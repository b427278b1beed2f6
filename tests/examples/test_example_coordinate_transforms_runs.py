"""Smoke tests for the coordinate transformation example script.

Verifies that the example runs end to end and writes its figure.
Uses Agg backend to avoid display requirements.
"""

import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path


class TestExampleCoordinateTransformsRuns(unittest.TestCase):
    """Smoke tests: the example script should run without errors."""

    def setUp(self):
        """Set up test environment."""
        self.python_exe = sys.executable
        self.workspace_root = Path(__file__).parent.parent.parent
        self.script_path = self.workspace_root / "examples" / "example_coordinate_transforms.py"

        self.assertTrue(self.script_path.exists(),
                        f"Script not found: {self.script_path}")

        self.env = os.environ.copy()
        self.env.update({
            "MPLBACKEND": "Agg",
            "PYTHONPATH": str(self.workspace_root),
            "PYTHONIOENCODING": "utf-8",
        })

    def _run(self, *args):
        return subprocess.run(
            [self.python_exe, str(self.script_path), *args],
            cwd=self.workspace_root,
            capture_output=True,
            encoding="utf-8",
            timeout=60,
            env=self.env,
        )

    def test_runs_without_error(self):
        """All four sources are converted and reported."""
        result = self._run()

        self.assertEqual(result.returncode, 0,
                         f"Script failed with stderr:\n{result.stderr}")
        self.assertIn("ENU Scene with Origin Offset", result.stdout)
        self.assertIn("EPSG:32650", result.stdout)
        self.assertIn("WKT Geographic Dataset", result.stdout)
        self.assertIn("Z-up Local Model", result.stdout)
        self.assertIn("Examples completed successfully!", result.stdout)

    def test_plot_file_created(self):
        """The --plot option writes a PNG."""
        with tempfile.TemporaryDirectory() as tmp:
            output_file = Path(tmp) / "footprints.png"
            result = self._run("--plot", str(output_file))

            self.assertEqual(result.returncode, 0,
                             f"Script failed with stderr:\n{result.stderr}")
            self.assertTrue(output_file.exists(),
                            f"Visualization file not created: {output_file}")
            self.assertIn("Saved figure", result.stdout)


if __name__ == "__main__":
    unittest.main()
