#!/usr/bin/env python3
"""
headshot-crop

Crop a headshot out of a photo:
- Detects the primary face (OpenCV Haar cascade, MediaPipe, or Gemini)
- Builds a crop box from a composition preset (portrait 2:3 or square 1:1)
- Crops and resizes to the output size
- Optionally removes the background (rembg or Gemini) and flattens onto a colour

Usage:
  headshot-crop --input in.jpg --output out.png
  headshot-crop -i in.jpg -o out.jpg --preset square --width 512 --height 512
  headshot-crop -i in.jpg -o out.png --detector gemini --remove-bg gemini --background none
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from typing import Optional

from headshotcrop.config import Settings, parse_color
from headshotcrop.core.errors import HeadshotError
from headshotcrop.core.models import PRESETS, ProcessingParams
from headshotcrop.imaging.transforms import format_for_path
from headshotcrop.pipeline import run_pipeline
from headshotcrop.validation.validator import format_report_text, validate_headshot

logger = logging.getLogger(__name__)

DETECTORS = ("opencv", "mediapipe", "gemini")
REMOVERS = ("none", "rembg", "gemini")


def build_detector(name: str, settings: Settings, mediapipe_model: Optional[str] = None):
    if name == "opencv":
        from headshotcrop.detection.opencv_detector import OpenCVFaceDetector
        return OpenCVFaceDetector()
    if name == "mediapipe":
        if not mediapipe_model:
            raise ValueError("--mediapipe-model is required with --detector mediapipe")
        from headshotcrop.detection.mediapipe_detector import MediaPipeFaceDetector
        return MediaPipeFaceDetector(mediapipe_model)
    if name == "gemini":
        from headshotcrop.detection.gemini_detector import GeminiFaceDetector
        from headshotcrop.services.gemini import GeminiClient
        return GeminiFaceDetector(GeminiClient.from_settings(settings), settings.detection_model)
    raise ValueError(f"Unknown detector {name!r}")


def build_remover(name: str, settings: Settings):
    if name == "none":
        return None
    if name == "rembg":
        from headshotcrop.background.rembg_remover import RembgBackgroundRemover
        return RembgBackgroundRemover()
    if name == "gemini":
        from headshotcrop.background.gemini_remover import GeminiBackgroundRemover
        from headshotcrop.services.gemini import GeminiClient
        return GeminiBackgroundRemover(GeminiClient.from_settings(settings), settings.image_model)
    raise ValueError(f"Unknown background remover {name!r}")


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Crop a headshot around the primary face in a photo.")
    p.add_argument("--input", "-i", required=True, help="Path to input image (jpg/png/webp, etc.)")
    p.add_argument("--output", "-o", required=True, help="Path to output image (.png keeps transparency, .jpg is flattened)")
    p.add_argument("--preset", choices=sorted(PRESETS), default="portrait", help="Composition preset (default: portrait)")
    p.add_argument("--width", type=int, default=None, help="Output width in pixels (default: preset size)")
    p.add_argument("--height", type=int, default=None, help="Output height in pixels (default: preset size)")
    p.add_argument("--detector", choices=DETECTORS, default="opencv", help="Face detector (default: opencv)")
    p.add_argument("--mediapipe-model", default=None, help="Path to a MediaPipe face detector .tflite model")
    p.add_argument("--remove-bg", choices=REMOVERS, default="none", help="Background remover (default: none)")
    p.add_argument("--background", default="#ffffff", help="Backfill colour, or 'none' to keep transparency")
    p.add_argument("--check", action="store_true", help="Print a headshot check report after saving")
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return p


def params_from_args(args: argparse.Namespace) -> ProcessingParams:
    params = ProcessingParams.for_preset(
        args.preset,
        remove_background=args.remove_bg != "none",
        background_color=parse_color(args.background),
        output_format=format_for_path(args.output),
    )
    if args.width is not None:
        params = replace(params, output_width=args.width)
    if args.height is not None:
        params = replace(params, output_height=args.height)
    return params


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    detector = None
    try:
        params = params_from_args(args)
        settings = Settings.from_env()
        detector = build_detector(args.detector, settings, args.mediapipe_model)
        remover = build_remover(args.remove_bg, settings)
        result = run_pipeline(args.input, detector, params=params, remover=remover)
        with open(args.output, "wb") as fh:
            fh.write(result.data)
    except (HeadshotError, ValueError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    finally:
        close = getattr(detector, "close", None)
        if close is not None:
            close()

    print(f"Saved: {args.output}")
    if args.check:
        print(format_report_text(validate_headshot(result, params)))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
