from __future__ import annotations

from typing import List

import numpy as np

from headshotcrop.core.models import ProcessingParams
from headshotcrop.pipeline import HeadshotResult
from headshotcrop.validation.report import CheckResult, HeadshotReport

CENTERING_TOLERANCE = 0.08
COVERAGE_TOLERANCE = 0.10


def _check_size(result: HeadshotResult, params: ProcessingParams) -> CheckResult:
    w, h = result.image.size
    ok = (w, h) == params.output_size
    return CheckResult(
        check_id="Size",
        passed=ok,
        message=f"{w}x{h} pixels (expected {params.output_width}x{params.output_height}).",
        metrics={"width": w, "height": h, "expected": list(params.output_size)},
    )


def _check_containment(result: HeadshotResult) -> CheckResult:
    box, dims = result.crop_box, result.source_dims
    ok = box.fits_within(dims) and box.width > 0 and box.height > 0
    return CheckResult(
        check_id="Containment",
        passed=ok,
        message=f"Crop {box.width:.0f}x{box.height:.0f} at ({box.x:.0f}, {box.y:.0f}) in {dims.width}x{dims.height} source.",
        metrics={"crop_box": [box.x, box.y, box.width, box.height], "source": [dims.width, dims.height]},
    )


def _check_face_coverage(result: HeadshotResult, params: ProcessingParams) -> CheckResult:
    """Face share of the crop, measured along the configured basis."""
    cfg = params.composition
    face, box = result.face_box, result.crop_box
    if cfg.size_basis == "width":
        ratio = face.width / float(box.height)
    else:
        ratio = face.height / float(box.height)
    target = cfg.head_dominance_ratio
    ok = abs(ratio - target) <= COVERAGE_TOLERANCE
    msg = f"Face covers {ratio:.2f} of crop height (target {target:.2f})."
    if not ok:
        msg += " The crop was widened by the minimum width or clipped by the image edges."
    return CheckResult(
        check_id="Face coverage",
        passed=ok,
        message=msg,
        metrics={"ratio": ratio, "target": target, "tolerance": COVERAGE_TOLERANCE},
    )


def _check_centering(result: HeadshotResult) -> CheckResult:
    face, box = result.face_box, result.crop_box
    dx = face.center_x - box.center_x
    tol = CENTERING_TOLERANCE * box.width
    ok = abs(dx) <= tol
    msg = f"Face centre offset {dx:+.0f}px (tolerance ±{tol:.0f}px)."
    if not ok:
        msg += " The face is close to an image edge."
    return CheckResult(
        check_id="Centering",
        passed=ok,
        message=msg,
        metrics={"dx_px": dx, "tolerance_px": tol},
    )


def _check_opacity(result: HeadshotResult, params: ProcessingParams) -> CheckResult:
    img = result.image
    if img.mode == "RGBA":
        alpha = np.asarray(img)[:, :, 3]
        transparent = float((alpha < 255).mean())
    else:
        transparent = 0.0

    if params.background_color is None:
        return CheckResult(
            check_id="Opacity",
            passed=True,
            message=f"Transparency kept ({transparent*100:.1f}% non-opaque pixels).",
            metrics={"transparent_ratio": transparent},
        )

    ok = img.mode == "RGB" or transparent == 0.0
    return CheckResult(
        check_id="Opacity",
        passed=ok,
        message=f"Flattened onto {params.background_color}; {transparent*100:.1f}% non-opaque pixels.",
        metrics={"transparent_ratio": transparent, "mode": img.mode},
    )


def validate_headshot(result: HeadshotResult, params: ProcessingParams) -> HeadshotReport:
    """
    Check a rendered headshot against the parameters that produced it.

    These are sanity checks on the crop geometry and output, intended for
    user guidance rather than acceptance of a photo by any authority.
    """
    results: List[CheckResult] = [
        _check_size(result, params),
        _check_containment(result),
        _check_face_coverage(result, params),
        _check_centering(result),
        _check_opacity(result, params),
    ]
    return HeadshotReport(passed=all(r.passed for r in results), results=results)


def format_report_text(report: HeadshotReport) -> str:
    lines: List[str] = []
    lines.append("Headshot Check Report")
    lines.append("-" * 32)
    lines.append(f"Overall: {'PASS' if report.passed else 'FAIL'}")
    lines.append("")
    for r in report.results:
        mark = "✅" if r.passed else "❌"
        lines.append(f"{mark} {r.check_id}: {r.message}")
    return "\n".join(lines)
