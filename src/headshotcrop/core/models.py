from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

SIZE_BASES = ("height", "width")
VERTICAL_ANCHORS = ("top", "center")
OUTPUT_FORMATS = ("PNG", "JPEG")


@dataclass(frozen=True)
class ImageDimensions:
    """Pixel size of a raster image. Both sides are positive integers."""
    width: int
    height: int

    def __post_init__(self) -> None:
        if int(self.width) != self.width or int(self.height) != self.height:
            raise ValueError(f"Image dimensions must be integers, got {self.width}x{self.height}")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {self.width}x{self.height}")

    @staticmethod
    def of(image: Any) -> "ImageDimensions":
        """Dimensions of a PIL image (anything with a `.size` of (w, h))."""
        w, h = image.size
        return ImageDimensions(width=int(w), height=int(h))

    @property
    def longer_side(self) -> int:
        return max(self.width, self.height)


@dataclass(frozen=True)
class Rectangle:
    """
    Axis-aligned box in pixel units of one specific image.

    Coordinates may be fractional (e.g. a face box rescaled from an analysis
    image); `compute_headshot_box` returns integral rectangles.
    """
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Rectangle must have positive size, got {self.width}x{self.height}")

    @classmethod
    def unchecked(cls, x: float, y: float, width: float, height: float) -> "Rectangle":
        """Build a rectangle without the size check (degenerate detector boxes)."""
        rect = object.__new__(cls)
        object.__setattr__(rect, "x", x)
        object.__setattr__(rect, "y", y)
        object.__setattr__(rect, "width", width)
        object.__setattr__(rect, "height", height)
        return rect

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2.0

    def as_box(self) -> Tuple[int, int, int, int]:
        """(left, top, right, bottom) as expected by PIL `Image.crop`."""
        return int(self.x), int(self.y), int(self.right), int(self.bottom)

    def fits_within(self, dims: ImageDimensions) -> bool:
        return (
            self.x >= 0
            and self.y >= 0
            and self.right <= dims.width
            and self.bottom <= dims.height
        )

    def is_integral(self) -> bool:
        return all(float(v).is_integer() for v in (self.x, self.y, self.width, self.height))


@dataclass(frozen=True)
class CompositionConfig:
    """
    Ratios that turn a detected face box into a headshot crop box.

    head_dominance_ratio:
        Fraction of the crop height taken by the face (measured along
        `size_basis`). 0.7 means the crop is face_height / 0.7 tall.
    headroom_ratio:
        Fraction of the crop height placed above the vertical anchor.
    target_aspect_ratio:
        Output width / height (2/3 for portrait, 1.0 for square).
    min_crop_width:
        Floor on the crop width in source pixels, so tiny faces are not
        upsampled into mush.
    max_analysis_dimension:
        Cap on the longer side of the image sent to face detection.
    size_basis:
        "height" (crop driven by face height) or "width" (face width).
    vertical_anchor:
        "top" places headroom above the top edge of the face; "center"
        measures it from the face centre.
    face_offset_ratio:
        Additional upward shift expressed as a fraction of the face height.
    """
    head_dominance_ratio: float = 0.7
    headroom_ratio: float = 0.05
    target_aspect_ratio: float = 200.0 / 300.0
    min_crop_width: float = 300.0
    max_analysis_dimension: int = 1024
    size_basis: str = "height"
    vertical_anchor: str = "top"
    face_offset_ratio: float = 0.0

    def __post_init__(self) -> None:
        if self.head_dominance_ratio <= 0:
            raise ValueError("head_dominance_ratio must be > 0")
        if self.target_aspect_ratio <= 0:
            raise ValueError("target_aspect_ratio must be > 0")
        if self.min_crop_width < 0:
            raise ValueError("min_crop_width must be >= 0")
        if self.max_analysis_dimension <= 0:
            raise ValueError("max_analysis_dimension must be > 0")
        if self.size_basis not in SIZE_BASES:
            raise ValueError(f"size_basis must be one of {SIZE_BASES}, got {self.size_basis!r}")
        if self.vertical_anchor not in VERTICAL_ANCHORS:
            raise ValueError(f"vertical_anchor must be one of {VERTICAL_ANCHORS}, got {self.vertical_anchor!r}")

    @classmethod
    def from_multiplier(cls, multiplier: float, **kwargs: Any) -> "CompositionConfig":
        """Fixed-multiplier form: crop height = face height * multiplier."""
        if multiplier <= 0:
            raise ValueError("multiplier must be > 0")
        return cls(head_dominance_ratio=1.0 / multiplier, **kwargs)


PRESETS: Dict[str, CompositionConfig] = {
    # 2:3 portrait, face fills 70% of the crop height, 5% headroom.
    "portrait": CompositionConfig(),
    # 2:3 portrait, crop height fixed at 2.5x the face height.
    "portrait-multiplier": CompositionConfig.from_multiplier(2.5),
    # 1:1 square, side = 2x face width, centred on the face and lifted by 15% of its height.
    "square": CompositionConfig(
        head_dominance_ratio=0.5,
        headroom_ratio=0.5,
        target_aspect_ratio=1.0,
        min_crop_width=0.0,
        size_basis="width",
        vertical_anchor="center",
        face_offset_ratio=0.15,
    ),
}

# Output sizes that go with each preset when the caller does not give one.
PRESET_OUTPUT_SIZES: Dict[str, Tuple[int, int]] = {
    "portrait": (400, 600),
    "portrait-multiplier": (400, 600),
    "square": (512, 512),
}


def get_preset(name: str) -> CompositionConfig:
    try:
        return PRESETS[name]
    except KeyError:
        raise ValueError(f"Unknown preset {name!r}; expected one of {sorted(PRESETS)}") from None


@dataclass(frozen=True)
class ProcessingParams:
    """
    Parameters for one crop request.

    composition:
        Geometry ratios (see CompositionConfig).
    output_width / output_height:
        Final image size in pixels.
    remove_background:
        If True, the cropped region is sent to a background remover.
    background_color:
        Opaque RGB fill drawn under the final image. None keeps transparency.
    output_format:
        "PNG" or "JPEG". JPEG has no alpha, so it needs a background_color.
    """
    composition: CompositionConfig = field(default_factory=CompositionConfig)
    output_width: int = 400
    output_height: int = 600
    remove_background: bool = False
    background_color: Optional[Tuple[int, int, int]] = (255, 255, 255)
    output_format: str = "PNG"

    def __post_init__(self) -> None:
        if self.output_width <= 0 or self.output_height <= 0:
            raise ValueError(f"Output size must be positive, got {self.output_width}x{self.output_height}")
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(f"output_format must be one of {OUTPUT_FORMATS}, got {self.output_format!r}")
        if self.output_format == "JPEG" and self.background_color is None:
            raise ValueError("JPEG output cannot carry transparency; set a background_color.")

    @property
    def output_size(self) -> Tuple[int, int]:
        return self.output_width, self.output_height

    @property
    def mime_type(self) -> str:
        return "image/jpeg" if self.output_format == "JPEG" else "image/png"

    @staticmethod
    def for_preset(name: str, **kwargs: Any) -> "ProcessingParams":
        w, h = PRESET_OUTPUT_SIZES.get(name, (400, 600))
        kwargs.setdefault("output_width", w)
        kwargs.setdefault("output_height", h)
        return ProcessingParams(composition=get_preset(name), **kwargs)
