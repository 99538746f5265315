import sys
import unittest
from types import SimpleNamespace
from unittest import skipIf
from unittest.mock import patch

from PIL import Image

from tests._test_path import SRC  # noqa: F401
from tests._images import solid

from headshotcrop.background.rembg_remover import RembgBackgroundRemover
from headshotcrop.core.errors import BackgroundRemovalFailed, NoFaceFound


def _can_import_mediapipe() -> bool:
    try:
        import mediapipe  # noqa: F401
        from mediapipe.tasks.python.vision import FaceDetector  # noqa: F401
        return True
    except Exception:
        return False


class TestOpenCVFaceDetector(unittest.TestCase):
    def test_blank_image_has_no_face(self):
        from headshotcrop.detection.opencv_detector import OpenCVFaceDetector

        with self.assertRaises(NoFaceFound):
            OpenCVFaceDetector().detect(solid(200, 200))

    def test_bad_cascade_path(self):
        from headshotcrop.detection.opencv_detector import OpenCVFaceDetector

        with self.assertRaises(ValueError):
            OpenCVFaceDetector(cascade_path="/nonexistent/cascade.xml")

    def test_largest_face_wins(self):
        from headshotcrop.detection import opencv_detector as od

        det = od.OpenCVFaceDetector()
        faces = [(10, 10, 20, 20), (50, 60, 40, 45), (5, 5, 30, 30)]
        det.cascade = SimpleNamespace(detectMultiScale=lambda *a, **k: faces)
        box = det.detect(solid(200, 200))
        self.assertEqual((box.x, box.y, box.width, box.height), (50, 60, 40, 45))


@skipIf(not _can_import_mediapipe(), "mediapipe not available")
class TestMediaPipeFaceDetector(unittest.TestCase):
    def test_best_score_wins(self):
        from headshotcrop.detection import mediapipe_detector as md

        def det(x, score):
            return SimpleNamespace(
                bounding_box=SimpleNamespace(origin_x=x, origin_y=5, width=30, height=40),
                categories=[SimpleNamespace(score=score)],
            )

        fake = SimpleNamespace(detect=lambda _img: SimpleNamespace(detections=[det(1, 0.6), det(2, 0.9)]))
        detector = object.__new__(md.MediaPipeFaceDetector)
        detector._detector = fake
        box = detector.detect(solid(100, 100))
        self.assertEqual(box.x, 2)

    def test_no_detections(self):
        from headshotcrop.detection import mediapipe_detector as md

        detector = object.__new__(md.MediaPipeFaceDetector)
        detector._detector = SimpleNamespace(detect=lambda _img: SimpleNamespace(detections=[]))
        with self.assertRaises(NoFaceFound):
            detector.detect(solid(100, 100))


class TestRembgBackgroundRemover(unittest.TestCase):
    def _fake_rembg(self, remove):
        return SimpleNamespace(remove=remove, new_session=lambda name: ("session", name))

    def test_returns_rgba(self):
        fake = self._fake_rembg(lambda img, session=None: img.convert("RGBA"))
        with patch.dict(sys.modules, {"rembg": fake}):
            out = RembgBackgroundRemover().remove_background(solid(10, 10), "image/png")
        self.assertEqual(out.mode, "RGBA")

    def test_failure_is_background_removal_failed(self):
        def boom(img, session=None):
            raise RuntimeError("model crashed")

        with patch.dict(sys.modules, {"rembg": self._fake_rembg(boom)}):
            with self.assertRaises(BackgroundRemovalFailed):
                RembgBackgroundRemover().remove_background(solid(10, 10), "image/png")

    def test_missing_package(self):
        with patch.dict(sys.modules, {"rembg": None}):
            with self.assertRaises(BackgroundRemovalFailed):
                RembgBackgroundRemover().remove_background(solid(10, 10), "image/png")

    def test_bytes_result_decoded(self):
        import io

        def as_bytes(img, session=None):
            buf = io.BytesIO()
            img.save(buf, format="PNG")
            return buf.getvalue()

        with patch.dict(sys.modules, {"rembg": self._fake_rembg(as_bytes)}):
            out = RembgBackgroundRemover().remove_background(solid(10, 10), "image/png")
        self.assertIsInstance(out, Image.Image)
        self.assertEqual(out.size, (10, 10))
