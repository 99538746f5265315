from __future__ import annotations

import logging

from PIL import Image

from headshotcrop.core.errors import BackgroundRemovalFailed, ImageLoadError, ServiceError
from headshotcrop.imaging.transforms import encode_image, load_image
from headshotcrop.services.gemini import GeminiClient, first_inline_image, response_text, inline_image_part, text_part

logger = logging.getLogger(__name__)

REMOVAL_PROMPT = """Act as a precision digital editing tool.
1. Isolate the main person from the background. The background MUST be pure white.
2. Do not add any color, shadows, or gradients to the background.
3. Present the person in a front view, upper body from the chest up.
4. The output must be a PNG image containing only the person on a white background.
Do NOT change the skin color, race, or any facial features of the person."""


class GeminiBackgroundRemover:
    """Background removal through a Gemini image-editing model."""

    def __init__(self, client: GeminiClient, model: str, prompt: str = REMOVAL_PROMPT):
        self.client = client
        self.model = model
        self.prompt = prompt

    def remove_background(self, image: Image.Image, mime_type: str = "image/png") -> Image.Image:
        fmt = "JPEG" if mime_type == "image/jpeg" else "PNG"
        response = self.client.generate_content(
            self.model,
            parts=[inline_image_part(encode_image(image, fmt), mime_type), text_part(self.prompt)],
            generation_config={"responseModalities": ["IMAGE", "TEXT"]},
        )

        try:
            data = first_inline_image(response)
        except ServiceError as e:
            raise BackgroundRemovalFailed(f"Failed to remove background: {e}") from e
        if data is None:
            text = response_text(response) or ""
            logger.error("Background removal returned no image; text=%.200s", text)
            raise BackgroundRemovalFailed(
                "The AI did not return an image. It may have returned text instead: " + text
            )

        try:
            return load_image(data)
        except ImageLoadError as e:
            raise BackgroundRemovalFailed(f"Failed to remove background: {e}") from e
