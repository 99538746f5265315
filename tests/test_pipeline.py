import io
import unittest
from dataclasses import replace

import numpy as np
from PIL import Image

from tests._test_path import SRC  # noqa: F401
from tests._images import gradient, png_bytes, solid

from headshotcrop.core.errors import BackgroundRemovalFailed, ImageLoadError, NoFaceFound
from headshotcrop.core.models import CompositionConfig, ImageDimensions, ProcessingParams, Rectangle
from headshotcrop.pipeline import compute_headshot_crop, run_pipeline


class StubDetector:
    """Returns a fixed box and remembers the image it was given."""

    def __init__(self, box):
        self.box = box
        self.seen = []

    def detect(self, image):
        self.seen.append(image.size)
        if self.box is None:
            raise NoFaceFound("No face detected.")
        return self.box


class StubRemover:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def remove_background(self, image, mime_type):
        self.calls.append((image.size, mime_type))
        if self.fail:
            raise BackgroundRemovalFailed("The AI did not return an image.")
        out = image.convert("RGBA")
        alpha = Image.new("L", out.size, 255)
        alpha.paste(0, (0, 0, out.width // 4, out.height))
        out.putalpha(alpha)
        return out


class TestRunPipeline(unittest.TestCase):
    def test_worked_example_end_to_end(self):
        detector = StubDetector(Rectangle(100, 80, 60, 80))
        params = ProcessingParams(output_width=200, output_height=300)
        result = run_pipeline(gradient(800, 600), detector, params=params)

        self.assertEqual(detector.seen, [(800, 600)])
        self.assertEqual(result.crop_box, Rectangle(0, 58, 300, 450))
        self.assertEqual(result.image.size, (200, 300))
        self.assertEqual(result.mime_type, "image/png")
        self.assertEqual(Image.open(io.BytesIO(result.data)).size, (200, 300))

    def test_face_box_rescaled_from_analysis_image(self):
        # 2000x1500 source, capped to 1000x750 for detection.
        detector = StubDetector(Rectangle(50, 40, 30, 40))
        params = ProcessingParams(composition=replace(CompositionConfig(), max_analysis_dimension=1000))
        result = run_pipeline(solid(2000, 1500), detector, params=params)

        self.assertEqual(detector.seen, [(1000, 750)])
        self.assertEqual(result.analysis_dims, ImageDimensions(1000, 750))
        self.assertEqual(result.source_dims, ImageDimensions(2000, 1500))
        self.assertAlmostEqual(result.face_box.x, 100)
        self.assertAlmostEqual(result.face_box.height, 80)

    def test_crop_taken_from_full_resolution(self):
        src = gradient(256, 256)
        # Box measured on the 64x64 analysis image; 4x in source space.
        detector = StubDetector(Rectangle(20, 20, 10, 15))
        cfg = CompositionConfig(min_crop_width=0, max_analysis_dimension=64)
        params = ProcessingParams(composition=cfg, output_width=57, output_height=86, background_color=None)
        result = run_pipeline(src, detector, params=params)

        self.assertEqual(detector.seen, [(64, 64)])
        self.assertEqual(result.crop_box, Rectangle(71, 76, 57, 86))
        expected = np.asarray(src)[76:162, 71:128]
        self.assertTrue(np.array_equal(np.asarray(result.image), expected))

    def test_compute_headshot_crop_returns_bytes(self):
        data = compute_headshot_crop(
            png_bytes(solid(640, 480)),
            StubDetector(Rectangle(300, 200, 60, 80)),
            params=ProcessingParams.for_preset("square", output_format="JPEG"),
        )
        img = Image.open(io.BytesIO(data))
        self.assertEqual(img.format, "JPEG")
        self.assertEqual(img.size, (512, 512))

    def test_background_removal_then_flatten(self):
        remover = StubRemover()
        params = ProcessingParams(output_width=100, output_height=150, remove_background=True)
        result = run_pipeline(solid(800, 600, color=(0, 0, 200)), StubDetector(Rectangle(300, 200, 60, 80)), params, remover)

        self.assertEqual(remover.calls, [((300, 450), "image/png")])
        self.assertEqual(result.image.mode, "RGB")
        arr = np.asarray(result.image)
        self.assertTrue(np.allclose(arr[75, 5], [255, 255, 255], atol=1))
        self.assertTrue(np.allclose(arr[75, 90], [0, 0, 200], atol=1))

    def test_background_removal_keeps_transparency_without_backfill(self):
        params = ProcessingParams(remove_background=True, background_color=None)
        result = run_pipeline(solid(800, 600), StubDetector(Rectangle(300, 200, 60, 80)), params, StubRemover())
        self.assertEqual(result.image.mode, "RGBA")

    def test_no_face_propagates(self):
        with self.assertRaises(NoFaceFound) as ctx:
            run_pipeline(solid(100, 100), StubDetector(None))
        self.assertEqual(ctx.exception.stage, "detect")

    def test_remover_failure_propagates(self):
        params = ProcessingParams(remove_background=True)
        with self.assertRaises(BackgroundRemovalFailed):
            run_pipeline(solid(800, 600), StubDetector(Rectangle(300, 200, 60, 80)), params, StubRemover(fail=True))

    def test_undecodable_input(self):
        detector = StubDetector(Rectangle(0, 0, 10, 10))
        with self.assertRaises(ImageLoadError):
            run_pipeline(b"garbage", detector)
        self.assertEqual(detector.seen, [])

    def test_remove_background_requires_remover(self):
        with self.assertRaises(ValueError):
            run_pipeline(solid(10, 10), StubDetector(Rectangle(0, 0, 5, 5)), ProcessingParams(remove_background=True))
