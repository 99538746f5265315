import io
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

from PIL import Image

from tests._test_path import SRC  # noqa: F401
from tests._images import solid

from headshotcrop import cli
from headshotcrop.config import Settings
from headshotcrop.core.errors import NoFaceFound
from headshotcrop.core.models import Rectangle


class FixedDetector:
    def __init__(self, box=None):
        self.box = box
        self.closed = False

    def close(self):
        self.closed = True

    def detect(self, image):
        if self.box is None:
            raise NoFaceFound("No face detected. Try a clearer, front-facing photo with good lighting.")
        return self.box


class TestCli(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.input = Path(self.tmp.name) / "in.png"
        solid(800, 600).save(self.input)

    def _run(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = cli.main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def test_saves_square_jpeg(self):
        output = Path(self.tmp.name) / "out.jpg"
        with patch.object(cli, "build_detector", return_value=FixedDetector(Rectangle(300, 200, 60, 80))):
            code, out, _ = self._run("-i", str(self.input), "-o", str(output), "--preset", "square", "--check")

        self.assertEqual(code, 0)
        self.assertIn("Saved:", out)
        self.assertIn("Headshot Check Report", out)
        img = Image.open(output)
        self.assertEqual(img.format, "JPEG")
        self.assertEqual(img.size, (512, 512))

    def test_custom_size_transparent_png(self):
        output = Path(self.tmp.name) / "out.png"
        with patch.object(cli, "build_detector", return_value=FixedDetector(Rectangle(300, 200, 60, 80))):
            code, _, _ = self._run(
                "-i", str(self.input), "-o", str(output), "--width", "120", "--height", "180", "--background", "none"
            )
        self.assertEqual(code, 0)
        self.assertEqual(Image.open(output).size, (120, 180))

    def test_no_face_exit_code(self):
        output = Path(self.tmp.name) / "out.png"
        with patch.object(cli, "build_detector", return_value=FixedDetector()):
            code, _, err = self._run("-i", str(self.input), "-o", str(output))
        self.assertEqual(code, 2)
        self.assertIn("ERROR: No face detected", err)
        self.assertFalse(output.exists())

    def test_detector_closed_after_run(self):
        output = Path(self.tmp.name) / "out.png"
        ok = FixedDetector(Rectangle(300, 200, 60, 80))
        with patch.object(cli, "build_detector", return_value=ok):
            code, _, _ = self._run("-i", str(self.input), "-o", str(output))
        self.assertEqual(code, 0)
        self.assertTrue(ok.closed)

        failing = FixedDetector()
        with patch.object(cli, "build_detector", return_value=failing):
            code, _, _ = self._run("-i", str(self.input), "-o", str(output))
        self.assertEqual(code, 2)
        self.assertTrue(failing.closed)

    def test_jpeg_without_background_rejected(self):
        output = Path(self.tmp.name) / "out.jpg"
        code, _, err = self._run("-i", str(self.input), "-o", str(output), "--background", "none")
        self.assertEqual(code, 2)
        self.assertIn("JPEG", err)

    def test_mediapipe_needs_model(self):
        with self.assertRaises(ValueError):
            cli.build_detector("mediapipe", Settings())

    def test_build_remover(self):
        self.assertIsNone(cli.build_remover("none", Settings()))
        remover = cli.build_remover("gemini", Settings(api_key="k", image_model="m"))
        self.assertEqual(remover.model, "m")
        with self.assertRaises(ValueError):
            cli.build_remover("magic", Settings())

    def test_build_gemini_detector(self):
        det = cli.build_detector("gemini", Settings(api_key="k", detection_model="d"))
        self.assertEqual(det.model, "d")
        self.assertEqual(det.client.api_key, "k")
