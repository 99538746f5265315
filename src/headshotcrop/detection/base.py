from __future__ import annotations

import numbers
from typing import Any, Mapping, Protocol

from PIL import Image

from headshotcrop.core.errors import InvalidDetectionResult, NoFaceFound
from headshotcrop.core.models import Rectangle

FACE_BOX_FIELDS = ("x", "y", "width", "height")


class FaceDetector(Protocol):
    """Finds the single most prominent face in an image."""

    def detect(self, image: Image.Image) -> Rectangle:
        """Return the face box in `image` coordinates, or raise NoFaceFound."""
        ...


def parse_face_box(payload: Any) -> Rectangle:
    """
    Validate a detector payload of the form {x, y, width, height}.

    Missing or non-numeric fields mean the detector broke its contract
    (InvalidDetectionResult). A box with no area means no usable face.
    """
    if not isinstance(payload, Mapping):
        raise InvalidDetectionResult(f"Invalid bounding box data received: expected an object, got {type(payload).__name__}.")

    values = {}
    for key in FACE_BOX_FIELDS:
        v = payload.get(key)
        if isinstance(v, bool) or not isinstance(v, numbers.Real):
            raise InvalidDetectionResult(f"Invalid bounding box data received: field {key!r} is {v!r}.")
        values[key] = float(v)

    if values["width"] <= 0 or values["height"] <= 0:
        raise NoFaceFound("No face detected. Try a clearer, front-facing photo with good lighting.")

    return Rectangle.unchecked(**values)
