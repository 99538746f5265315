from __future__ import annotations

import logging

import numpy as np
from PIL import Image

# MediaPipe Tasks face detector (BlazeFace model file supplied by the caller)
import mediapipe as mp
from mediapipe.tasks.python import BaseOptions
from mediapipe.tasks.python.vision import FaceDetector as _MPFaceDetector
from mediapipe.tasks.python.vision import FaceDetectorOptions

from headshotcrop.core.errors import NoFaceFound
from headshotcrop.core.models import Rectangle

logger = logging.getLogger(__name__)


class MediaPipeFaceDetector:
    """
    Local detector on top of MediaPipe Tasks.

    model_path points at a face detector `.tflite` model such as
    blaze_face_short_range.tflite. The highest-scoring detection wins.
    """

    def __init__(self, model_path: str, min_detection_confidence: float = 0.5):
        options = FaceDetectorOptions(
            base_options=BaseOptions(model_asset_path=model_path),
            min_detection_confidence=min_detection_confidence,
        )
        self._detector = _MPFaceDetector.create_from_options(options)

    def close(self) -> None:
        self._detector.close()

    def detect(self, image: Image.Image) -> Rectangle:
        rgb = np.array(image.convert("RGB"))
        result = self._detector.detect(mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb))

        if not result.detections:
            raise NoFaceFound("No face detected. Try a clearer, front-facing photo with good lighting.")

        def score(d) -> float:
            return d.categories[0].score if d.categories else 0.0

        best = max(result.detections, key=score)
        bbox = best.bounding_box
        logger.debug("MediaPipe found %d face(s); best score %.2f", len(result.detections), score(best))
        if bbox.width <= 0 or bbox.height <= 0:
            raise NoFaceFound("Face detection returned an empty box.")
        return Rectangle(
            x=float(bbox.origin_x),
            y=float(bbox.origin_y),
            width=float(bbox.width),
            height=float(bbox.height),
        )
