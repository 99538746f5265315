from __future__ import annotations


class HeadshotError(Exception):
    """
    Base class for every failure of a crop request.

    `stage` names the pipeline step that failed so callers can surface a single
    descriptive message without inspecting the exception type.
    """
    stage = "pipeline"

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage


class ImageLoadError(HeadshotError):
    stage = "load"


class NoFaceFound(HeadshotError):
    stage = "detect"


class InvalidDetectionResult(HeadshotError):
    stage = "detect"


class RenderTargetError(HeadshotError):
    stage = "render"


class BackgroundRemovalFailed(HeadshotError):
    stage = "background"


class ServiceError(HeadshotError):
    stage = "service"
