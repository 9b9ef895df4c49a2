"""
Shared data types for the PDF annotator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple


class Tool(Enum):
    """Interaction modes the host can select."""

    NONE = "none"
    TEXT = "text"
    HIGHLIGHT = "highlight"
    UNDERLINE = "underline"
    DRAW = "draw"


class AnnotationKind(Enum):
    """Kinds of annotation the engine stores and burns into pages."""

    TEXT = "text"
    HIGHLIGHT = "highlight"
    UNDERLINE = "underline"
    STROKE = "stroke"


@dataclass(frozen=True)
class Annotation:
    """A single annotation. All geometry is in page space."""

    page_index: int
    kind: AnnotationKind
    x: float
    y: float
    w: float
    h: float
    text: Optional[str] = None
    color: int = 0xFF000000  # packed ARGB
    points: Optional[Tuple[Point, ...]] = None  # strokes only

    @property
    def rect(self) -> Rect:
        return (self.x, self.y, self.x + self.w, self.y + self.h)


@dataclass(frozen=True)
class GlyphPosition:
    """One extracted character. `y` is the baseline; the box grows upward."""

    char: str
    x: float
    y: float
    width: float
    height: float

    @property
    def box(self) -> Rect:
        return (self.x, self.y - self.height, self.x + self.width, self.y)


@dataclass
class PageBitmap:
    """A rasterized page owned by the render cache, held as encoded PNG."""

    page_index: int
    width: int
    height: int
    scale: float
    png: bytes = b""

    @property
    def byte_size(self) -> int:
        return len(self.png)


@dataclass
class ViewportState:
    """Zoom and pan of one open document view."""

    scale: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0


@dataclass
class PageInfo:
    """Size of a PDF page in points."""

    index: int
    width: float
    height: float
    rotation: int = 0


# Configuration


@dataclass
class ZoomConfig:
    """Zoom limits for the viewport."""

    initial: float = 1.0
    min_scale: float = 1.0
    max_scale: float = 5.0
    step: float = 0.5  # zoom_in / zoom_out increment


@dataclass
class LocatorConfig:
    """Hit-test slop and fallback box sizes, in page units."""

    hit_slop_x: float = 20.0
    hit_slop_y: float = 15.0
    # Tap with no word under it
    tap_box_width: float = 200.0
    tap_highlight_height: float = 30.0
    tap_underline_height: float = 6.0
    # Drag with no line under it
    min_drag_width: float = 50.0
    min_drag_height: float = 20.0
    drag_underline_height: float = 6.0
    # Underline bar placed on a located box
    underline_height: float = 4.0
    underline_inset: float = 2.0
    # Text annotation box
    text_box_width: float = 200.0
    text_box_height: float = 50.0


@dataclass
class RenderConfig:
    """Rasterization scale and cache budget."""

    scale: float = 1.5
    fallback_scale: float = 1.0
    memory_budget: int = 512 * 1024 * 1024
    cache_fraction: int = 8  # capacity = memory_budget // cache_fraction
    workers: int = 2

    @property
    def capacity(self) -> int:
        return self.memory_budget // self.cache_fraction


@dataclass
class SaveConfig:
    """Styling used when annotations are burned into page content."""

    highlight_opacity: float = 0.5
    underline_width: float = 1.5
    stroke_width: float = 2.0
    font_size: float = 14.0
    bundled_font: Optional[str] = None
    system_fonts: List[str] = field(
        default_factory=lambda: [
            "/system/fonts/Arial.ttf",
            "/system/fonts/NotoSansArabic-Regular.ttf",
            "/system/fonts/NotoNaskhArabic-Regular.ttf",
            "/system/fonts/DroidSansArabic.ttf",
            "/usr/share/fonts/truetype/noto/NotoSansArabic-Regular.ttf",
            "/usr/share/fonts/truetype/noto/NotoNaskhArabic-Regular.ttf",
            "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
            "/Library/Fonts/Arial Unicode.ttf",
            "C:/Windows/Fonts/arial.ttf",
        ]
    )


@dataclass
class Colors:
    """Per-tool annotation colors (packed ARGB)."""

    draw: int = 0xFF000000
    highlight: int = 0xFFFFFF00
    underline: int = 0xFF0000FF


def argb_to_rgb(color: int) -> Color:
    """Unpack ARGB into an RGB tuple in the 0-1 range."""
    r = (color >> 16) & 0xFF
    g = (color >> 8) & 0xFF
    b = color & 0xFF
    return (r / 255.0, g / 255.0, b / 255.0)


def argb_to_hex(color: int) -> str:
    """Format ARGB as a #rrggbb string."""
    return f"#{(color >> 16) & 0xFF:02x}{(color >> 8) & 0xFF:02x}{color & 0xFF:02x}"


def union_rect(rects: Sequence[Rect]) -> Rect:
    """Bounding box of a non-empty sequence of rects."""
    return (
        min(r[0] for r in rects),
        min(r[1] for r in rects),
        max(r[2] for r in rects),
        max(r[3] for r in rects),
    )


# Type aliases for clarity
Color = Tuple[float, float, float]
Rect = Tuple[float, float, float, float]  # x0, y0, x1, y1
Point = Tuple[float, float]
Path = List[Point]
