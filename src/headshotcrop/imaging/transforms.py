from __future__ import annotations

import io
import logging
import math
import os
from typing import Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from headshotcrop.core.errors import ImageLoadError, RenderTargetError
from headshotcrop.core.models import ImageDimensions, Rectangle

logger = logging.getLogger(__name__)

ImageSource = Union[Image.Image, bytes, bytearray, str, os.PathLike]
Color = Tuple[int, int, int]

_JPEG_EXTS = (".jpg", ".jpeg")


def load_image(source: ImageSource) -> Image.Image:
    """
    Decode an image from bytes or a path, apply EXIF orientation, and return
    an RGB or RGBA PIL image. PIL images are copied.
    """
    if isinstance(source, Image.Image):
        return _normalize_mode(source.copy())

    try:
        if isinstance(source, (bytes, bytearray)):
            img = Image.open(io.BytesIO(bytes(source)))
        else:
            img = Image.open(os.fspath(source))
        img.load()
        img = ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageLoadError(f"Could not decode image: {e}") from e

    return _normalize_mode(img)


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or "transparency" in img.info


def _normalize_mode(img: Image.Image) -> Image.Image:
    target = "RGBA" if _has_alpha(img) else "RGB"
    if img.mode != target:
        img = img.convert(target)
    return img


def _pil_to_np(img: Image.Image) -> np.ndarray:
    """PIL RGB/RGBA -> numpy array in the same channel order."""
    return np.array(img)


def _np_to_pil(arr: np.ndarray) -> Image.Image:
    return Image.fromarray(np.ascontiguousarray(arr))


def _resize(img: Image.Image, width: int, height: int, interpolation: int) -> Image.Image:
    """Resize with OpenCV. Allocation problems surface as RenderTargetError."""
    if width <= 0 or height <= 0:
        raise RenderTargetError(f"Cannot create a {width}x{height} drawing surface.")
    if img.size == (width, height):
        return img.copy()
    try:
        out = cv2.resize(_pil_to_np(img), (int(width), int(height)), interpolation=interpolation)
    except (cv2.error, MemoryError) as e:
        raise RenderTargetError(f"Could not resize image to {width}x{height}: {e}") from e
    return _np_to_pil(out)


def downscale_for_analysis(
    image: ImageSource, max_dimension: int
) -> Tuple[Image.Image, ImageDimensions]:
    """
    Shrink an image so its longer side is at most `max_dimension`.

    Images that already fit come back unchanged (as a copy) with their true
    dimensions. Otherwise the aspect ratio is preserved and the shorter side
    is rounded.
    """
    if max_dimension <= 0:
        raise ValueError("max_dimension must be > 0")

    img = load_image(image)
    dims = ImageDimensions.of(img)
    if dims.longer_side <= max_dimension:
        return img, dims

    scale = max_dimension / float(dims.longer_side)
    if dims.width >= dims.height:
        new_w = max_dimension
        new_h = max(1, int(math.floor(dims.height * scale + 0.5)))
    else:
        new_h = max_dimension
        new_w = max(1, int(math.floor(dims.width * scale + 0.5)))

    logger.debug("Downscaling %dx%d -> %dx%d for analysis", dims.width, dims.height, new_w, new_h)
    small = _resize(img, new_w, new_h, interpolation=cv2.INTER_AREA)
    return small, ImageDimensions(width=new_w, height=new_h)


def crop_region(image: ImageSource, rect: Rectangle) -> Image.Image:
    """Copy exactly the pixels inside `rect` into a new image of the same size."""
    img = load_image(image)
    dims = ImageDimensions.of(img)
    if not rect.is_integral():
        raise ValueError(f"Crop rectangle must have integer fields, got {rect}")
    if not rect.fits_within(dims):
        raise ValueError(f"Crop rectangle {rect} does not fit inside {dims.width}x{dims.height}")
    try:
        return img.crop(rect.as_box())
    except MemoryError as e:
        raise RenderTargetError(f"Could not allocate a {rect.width}x{rect.height} crop: {e}") from e


def resize_and_compose(
    image: ImageSource,
    width: int,
    height: int,
    background: Optional[Color] = None,
) -> Image.Image:
    """
    Resize to exactly `width` x `height`.

    With a background colour, the resized image is composited over an opaque
    fill and returned as RGB (transparent areas show the fill). Without one,
    any alpha channel is kept.
    """
    img = load_image(image)
    resized = _resize(img, width, height, interpolation=cv2.INTER_LANCZOS4)
    if background is None:
        return resized

    try:
        canvas = Image.new("RGBA", (width, height), tuple(background) + (255,))
    except (ValueError, MemoryError) as e:
        raise RenderTargetError(f"Could not create a {width}x{height} background: {e}") from e

    if resized.mode == "RGBA":
        canvas = Image.alpha_composite(canvas, resized)
    else:
        canvas.paste(resized, (0, 0))
    return canvas.convert("RGB")


def encode_image(img: Image.Image, fmt: str = "PNG") -> bytes:
    """Encode to PNG or JPEG bytes (JPEG at quality 95, like the saved output)."""
    fmt = fmt.upper()
    out = io.BytesIO()
    if fmt in ("JPG", "JPEG"):
        if img.mode != "RGB":
            img = img.convert("RGB")
        img.save(out, format="JPEG", quality=95, optimize=True)
    else:
        img.save(out, format=fmt)
    return out.getvalue()


def format_for_path(path: str) -> str:
    return "JPEG" if path.lower().endswith(_JPEG_EXTS) else "PNG"
