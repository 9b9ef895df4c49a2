"""
Viewport transform - maps device pixels to page space under zoom and pan.
"""

from __future__ import annotations

from typing import Optional

from .types import Point, ViewportState, ZoomConfig


class ViewportTransform:
    """
    Pixel <-> page-space mapping for one document view.

    Device coordinates are what the gesture layer reports. The view is scaled
    about its top-left corner by `scale` and shifted by `translate`, so a
    device point maps to view space as `(d - translate) / scale`. View space
    maps to page space by `page_width / view_width` (how many page units one
    unscaled view pixel covers).

    Args:
        content_width: Width of the scrollable content in device pixels
        content_height: Height of the scrollable content in device pixels
        zoom: Scale limits
        state: Initial viewport state
    """

    def __init__(
        self,
        content_width: float = 0.0,
        content_height: float = 0.0,
        zoom: Optional[ZoomConfig] = None,
        state: Optional[ViewportState] = None,
    ):
        self._zoom = zoom or ZoomConfig()
        self._state = state or ViewportState(scale=self._zoom.initial)
        self._content_width = content_width
        self._content_height = content_height
        self._page_scale = 1.0  # page units per view pixel
        self._clamp()

    # Properties

    @property
    def state(self) -> ViewportState:
        """Current viewport state."""
        return self._state

    @property
    def scale(self) -> float:
        return self._state.scale

    @property
    def translate(self) -> Point:
        return (self._state.translate_x, self._state.translate_y)

    @property
    def min_scale(self) -> float:
        return self._zoom.min_scale

    @property
    def max_scale(self) -> float:
        return self._zoom.max_scale

    @property
    def page_scale(self) -> float:
        """Page units covered by one unscaled view pixel."""
        return self._page_scale

    def set_content_size(self, width: float, height: float) -> None:
        """Update the content size used to bound panning."""
        self._content_width = width
        self._content_height = height
        self._clamp()

    def set_page_geometry(self, page_width: float, view_width: float) -> None:
        """Set the page-to-view ratio for a page laid out `view_width` wide."""
        if view_width > 0:
            self._page_scale = page_width / view_width

    # Mapping

    def to_page_space(self, device_x: float, device_y: float) -> Point:
        """Convert a device point to page space."""
        s = self._state
        view_x = (device_x - s.translate_x) / s.scale
        view_y = (device_y - s.translate_y) / s.scale
        return (view_x * self._page_scale, view_y * self._page_scale)

    def to_device_space(self, page_x: float, page_y: float) -> Point:
        """Convert a page point to device pixels."""
        s = self._state
        view_x = page_x / self._page_scale
        view_y = page_y / self._page_scale
        return (view_x * s.scale + s.translate_x, view_y * s.scale + s.translate_y)

    # Zoom and pan

    def pinch(self, focal_x: float, focal_y: float, scale_delta: float) -> None:
        """Zoom by `scale_delta` keeping the focal point fixed on the content."""
        s = self._state
        prev_scale = s.scale
        new_scale = self._clamp_scale(prev_scale * scale_delta)
        s.scale = new_scale
        # Equals `t -= (f / prev - f / new) * new` when t is 0, and keeps the
        # focal point fixed for any existing translation.
        ratio = new_scale / prev_scale
        s.translate_x = focal_x - (focal_x - s.translate_x) * ratio
        s.translate_y = focal_y - (focal_y - s.translate_y) * ratio
        self._clamp()

    def pan(self, dx: float, dy: float) -> bool:
        """Shift the view by a device delta. Only applies when zoomed in."""
        if self._state.scale <= 1.0:
            return False
        self._state.translate_x += dx
        self._state.translate_y += dy
        self._clamp()
        return True

    def set_zoom(self, scale: float) -> None:
        self._state.scale = self._clamp_scale(scale)
        self._clamp()

    def zoom_in(self) -> None:
        self.set_zoom(self._state.scale + self._zoom.step)

    def zoom_out(self) -> None:
        self.set_zoom(self._state.scale - self._zoom.step)

    def reset(self) -> None:
        """Back to scale 1.0 with no translation."""
        self.set_zoom(1.0)

    # Internals

    def _clamp_scale(self, scale: float) -> float:
        return max(self._zoom.min_scale, min(scale, self._zoom.max_scale))

    def _clamp(self) -> None:
        s = self._state
        s.scale = self._clamp_scale(s.scale)
        if s.scale == 1.0:
            s.translate_x = 0.0
            s.translate_y = 0.0
            return

        min_tx = -(self._content_width * s.scale - self._content_width)
        min_ty = -(self._content_height * s.scale - self._content_height)
        s.translate_x = max(min(min_tx, 0.0), min(s.translate_x, 0.0))
        s.translate_y = max(min(min_ty, 0.0), min(s.translate_y, 0.0))
