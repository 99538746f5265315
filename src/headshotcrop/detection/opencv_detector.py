from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np
from PIL import Image

from headshotcrop.core.errors import NoFaceFound
from headshotcrop.core.models import Rectangle

logger = logging.getLogger(__name__)

DEFAULT_CASCADE = "haarcascade_frontalface_default.xml"


class OpenCVFaceDetector:
    """Haar cascade detector bundled with OpenCV. The largest face wins."""

    def __init__(
        self,
        cascade_path: Optional[str] = None,
        scale_factor: float = 1.1,
        min_neighbors: int = 5,
        min_size: int = 30,
    ):
        path = cascade_path or (cv2.data.haarcascades + DEFAULT_CASCADE)
        try:
            self.cascade = cv2.CascadeClassifier(path)
        except cv2.error as e:
            raise ValueError(f"Could not load Haar cascade from {path}: {e}") from e
        if self.cascade.empty():
            raise ValueError(f"Could not load Haar cascade from {path}")
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = min_size

    def detect(self, image: Image.Image) -> Rectangle:
        gray = cv2.cvtColor(np.array(image.convert("RGB")), cv2.COLOR_RGB2GRAY)
        faces = self.cascade.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=(self.min_size, self.min_size),
        )
        if len(faces) == 0:
            raise NoFaceFound("No face detected. Try a clearer, front-facing photo with good lighting.")

        x, y, w, h = max(faces, key=lambda f: int(f[2]) * int(f[3]))
        logger.debug("OpenCV found %d face(s); using %dx%d at (%d, %d)", len(faces), w, h, x, y)
        return Rectangle(x=float(x), y=float(y), width=float(w), height=float(h))
