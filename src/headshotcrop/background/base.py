from __future__ import annotations

from typing import Protocol

from PIL import Image


class BackgroundRemover(Protocol):
    """Makes the background of an image transparent (or replaces it)."""

    def remove_background(self, image: Image.Image, mime_type: str) -> Image.Image:
        """Return the edited image, or raise BackgroundRemovalFailed."""
        ...
