from __future__ import annotations

import json
import logging

from PIL import Image

from headshotcrop.core.errors import InvalidDetectionResult, NoFaceFound
from headshotcrop.core.models import Rectangle
from headshotcrop.detection.base import parse_face_box
from headshotcrop.imaging.transforms import encode_image
from headshotcrop.services.gemini import GeminiClient, response_text, inline_image_part, text_part

logger = logging.getLogger(__name__)

DETECTION_PROMPT = (
    "Analyze the uploaded image. Your task is to identify the primary human face and provide "
    "its bounding box coordinates. Respond ONLY in JSON format. The coordinates must be integers "
    "and represent the top-left corner (x, y) and the dimensions (width, height) of the bounding "
    "box relative to the original image size."
)

FACE_BOX_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "x": {"type": "INTEGER"},
        "y": {"type": "INTEGER"},
        "width": {"type": "INTEGER"},
        "height": {"type": "INTEGER"},
    },
    "required": ["x", "y", "width", "height"],
}


class GeminiFaceDetector:
    """Asks a Gemini model for the primary face box as structured JSON."""

    def __init__(self, client: GeminiClient, model: str):
        self.client = client
        self.model = model

    def detect(self, image: Image.Image) -> Rectangle:
        data = encode_image(image, "PNG")
        response = self.client.generate_content(
            self.model,
            parts=[inline_image_part(data, "image/png"), text_part(DETECTION_PROMPT)],
            generation_config={"responseMimeType": "application/json", "responseSchema": FACE_BOX_SCHEMA},
        )

        text = response_text(response)
        if not text:
            raise NoFaceFound("The face detector returned no answer for this image.")
        try:
            payload = json.loads(text)
        except ValueError as e:
            logger.error("Face detector returned non-JSON text: %.200s", text)
            raise InvalidDetectionResult(f"Invalid bounding box data received from API: {e}") from e

        box = parse_face_box(payload)
        logger.debug("Gemini face box: %s", box)
        return box
