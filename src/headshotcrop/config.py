from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from PIL import ImageColor

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_DETECTION_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_TIMEOUT = 60.0


@dataclass(frozen=True)
class Settings:
    """
    Settings for the remote AI collaborators, read from the environment.

    GEMINI_API_KEY (or API_KEY):
        Key sent as X-goog-api-key.
    HEADSHOT_DETECTION_MODEL / HEADSHOT_IMAGE_MODEL:
        Model ids for face detection and background removal.
    HEADSHOT_GEMINI_BASE_URL:
        REST base URL, overridable for proxies.
    HEADSHOT_REQUEST_TIMEOUT:
        Seconds per request.
    """
    api_key: str = ""
    detection_model: str = DEFAULT_DETECTION_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    base_url: str = DEFAULT_GEMINI_BASE_URL
    timeout: float = DEFAULT_TIMEOUT

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        try:
            timeout = float(env.get("HEADSHOT_REQUEST_TIMEOUT", DEFAULT_TIMEOUT))
        except ValueError:
            raise ValueError("HEADSHOT_REQUEST_TIMEOUT must be a number of seconds") from None
        return Settings(
            api_key=env.get("GEMINI_API_KEY") or env.get("API_KEY", ""),
            detection_model=env.get("HEADSHOT_DETECTION_MODEL", DEFAULT_DETECTION_MODEL),
            image_model=env.get("HEADSHOT_IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
            base_url=env.get("HEADSHOT_GEMINI_BASE_URL", DEFAULT_GEMINI_BASE_URL).rstrip("/"),
            timeout=timeout,
        )


def parse_color(value: Optional[str]) -> Optional[Tuple[int, int, int]]:
    """'#ffffff', 'white', 'rgb(…)' -> (r, g, b). 'none' or empty -> None."""
    if value is None:
        return None
    value = value.strip()
    if not value or value.lower() in ("none", "transparent"):
        return None
    rgb = ImageColor.getrgb(value)
    return rgb[0], rgb[1], rgb[2]
