"""
Headshot geometry: face box -> crop box.

Pure functions over value objects; no image data is touched here.
"""

from __future__ import annotations

import logging
import math

from headshotcrop.core.models import CompositionConfig, ImageDimensions, Rectangle

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(value, hi))


def rescale_face_box(
    face_box: Rectangle,
    analysis_dims: ImageDimensions,
    original_dims: ImageDimensions,
) -> Rectangle:
    """
    Map a face box measured on the analysis image back to the original image.

    Each axis is scaled independently and nothing is rounded, so the geometry
    step still sees fractional precision.
    """
    if analysis_dims.width <= 0 or analysis_dims.height <= 0:
        raise ValueError("analysis dimensions must be positive")

    if analysis_dims == original_dims:
        return face_box

    sx = original_dims.width / float(analysis_dims.width)
    sy = original_dims.height / float(analysis_dims.height)
    return Rectangle.unchecked(
        x=face_box.x * sx,
        y=face_box.y * sy,
        width=face_box.width * sx,
        height=face_box.height * sy,
    )


def compute_headshot_box(
    face_box: Rectangle,
    image_dims: ImageDimensions,
    config: CompositionConfig,
) -> Rectangle:
    """
    Compute the headshot crop box for a face in an image.

    The box keeps `config.target_aspect_ratio` unless the image itself is too
    small, never leaves the image, and is returned with integer fields.
    """
    img_w = float(image_dims.width)
    img_h = float(image_dims.height)
    aspect = config.target_aspect_ratio

    basis = face_box.width if config.size_basis == "width" else face_box.height
    height = basis / config.head_dominance_ratio
    width = height * aspect

    if width < config.min_crop_width:
        width = float(config.min_crop_width)
        height = width / aspect

    # Width bound first, then height bound.
    if width > img_w:
        width = img_w
        height = width / aspect
    if height > img_h:
        height = img_h
        width = height * aspect

    x = face_box.x + face_box.width / 2.0 - width / 2.0

    anchor = face_box.y
    if config.vertical_anchor == "center":
        anchor = face_box.y + face_box.height / 2.0
    y = anchor - height * config.headroom_ratio - face_box.height * config.face_offset_ratio

    x = _clamp(x, 0.0, img_w - width)
    y = _clamp(y, 0.0, img_h - height)

    logger.debug(
        "Headshot box (unrounded): x=%.2f y=%.2f w=%.2f h=%.2f for face %s in %dx%d",
        x, y, width, height, face_box, image_dims.width, image_dims.height,
    )

    # Rounding can push the far edge one pixel out; re-clamp on integers.
    w_i = min(max(1, _round_half_up(width)), image_dims.width)
    h_i = min(max(1, _round_half_up(height)), image_dims.height)
    x_i = min(max(0, _round_half_up(x)), image_dims.width - w_i)
    y_i = min(max(0, _round_half_up(y)), image_dims.height - h_i)

    return Rectangle(x=x_i, y=y_i, width=w_i, height=h_i)


def headshot_box_for_analysis(
    face_box: Rectangle,
    analysis_dims: ImageDimensions,
    original_dims: ImageDimensions,
    config: CompositionConfig,
) -> Rectangle:
    """Rescale an analysis-space face box and compute the crop in original space."""
    full_face = rescale_face_box(face_box, analysis_dims, original_dims)
    return compute_headshot_box(full_face, original_dims, config)
