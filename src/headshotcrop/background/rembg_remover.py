from __future__ import annotations

import io
import logging

from PIL import Image

from headshotcrop.core.errors import BackgroundRemovalFailed

logger = logging.getLogger(__name__)


class RembgBackgroundRemover:
    """Local background removal with rembg. Returns RGBA with a transparent background."""

    def __init__(self, model_name: str = "u2net"):
        self.model_name = model_name
        self._session = None

    def _remove(self):
        try:
            from rembg import new_session, remove  # type: ignore
        except ImportError as e:
            raise BackgroundRemovalFailed("rembg is not installed; install the 'rembg' extra.") from e
        if self._session is None:
            self._session = new_session(self.model_name)
        return remove

    def remove_background(self, image: Image.Image, mime_type: str = "image/png") -> Image.Image:
        remove = self._remove()
        try:
            cut = remove(image, session=self._session)
        except Exception as e:
            logger.error("rembg failed: %s", e)
            raise BackgroundRemovalFailed(f"Failed to remove background: {e}") from e

        if isinstance(cut, bytes):
            cut = Image.open(io.BytesIO(cut))
        if not isinstance(cut, Image.Image):
            raise BackgroundRemovalFailed("rembg did not return an image.")
        return cut.convert("RGBA")
