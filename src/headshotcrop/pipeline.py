"""
Headshot pipeline:

  load -> downscale for analysis -> detect face -> rescale face box
       -> headshot box -> crop original -> (background removal) -> resize/compose

Every stage runs in order for a single request. Stage errors propagate
unchanged; there is no retry and no fallback crop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image

from headshotcrop.background.base import BackgroundRemover
from headshotcrop.core.geometry import compute_headshot_box, rescale_face_box
from headshotcrop.core.models import ImageDimensions, ProcessingParams, Rectangle
from headshotcrop.detection.base import FaceDetector
from headshotcrop.imaging.transforms import (
    ImageSource,
    crop_region,
    downscale_for_analysis,
    encode_image,
    load_image,
    resize_and_compose,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeadshotResult:
    """Output of one crop request, with the geometry that produced it."""
    image: Image.Image
    data: bytes
    mime_type: str
    face_box: Rectangle
    crop_box: Rectangle
    source_dims: ImageDimensions
    analysis_dims: ImageDimensions


def run_pipeline(
    image: ImageSource,
    detector: FaceDetector,
    params: Optional[ProcessingParams] = None,
    remover: Optional[BackgroundRemover] = None,
) -> HeadshotResult:
    params = params or ProcessingParams()
    config = params.composition
    if params.remove_background and remover is None:
        raise ValueError("remove_background is set but no background remover was given.")

    original = load_image(image)
    source_dims = ImageDimensions.of(original)
    logger.info("Loaded image %dx%d", source_dims.width, source_dims.height)

    analysis, analysis_dims = downscale_for_analysis(original, config.max_analysis_dimension)

    logger.info("Detecting face on %dx%d analysis image", analysis_dims.width, analysis_dims.height)
    analysis_face = detector.detect(analysis)
    face_box = rescale_face_box(analysis_face, analysis_dims, source_dims)

    crop_box = compute_headshot_box(face_box, source_dims, config)
    logger.info("Face %s -> crop %s", face_box, crop_box)

    cropped = crop_region(original, crop_box)

    if params.remove_background:
        logger.info("Removing background")
        cropped = remover.remove_background(cropped, "image/png")

    final = resize_and_compose(
        cropped,
        params.output_width,
        params.output_height,
        background=params.background_color,
    )
    data = encode_image(final, params.output_format)
    logger.info("Rendered %dx%d %s (%d bytes)", final.width, final.height, params.output_format, len(data))

    return HeadshotResult(
        image=final,
        data=data,
        mime_type=params.mime_type,
        face_box=face_box,
        crop_box=crop_box,
        source_dims=source_dims,
        analysis_dims=analysis_dims,
    )


def compute_headshot_crop(
    image: ImageSource,
    detector: FaceDetector,
    params: Optional[ProcessingParams] = None,
    remover: Optional[BackgroundRemover] = None,
) -> bytes:
    """Crop `image` to a headshot and return the encoded output bytes."""
    return run_pipeline(image, detector, params=params, remover=remover).data
