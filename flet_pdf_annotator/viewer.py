"""
PDF Annotator - Flet view over an annotation session.

Composes the render cache, overlay renderer and interaction handlers into a
single component.
"""

from __future__ import annotations

import base64
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import flet as ft
import flet.canvas as cv

from .interactions.drawing import DrawingHandler
from .interactions.selection import SelectionHandler
from .rendering.renderer import OverlayRenderer
from .session import AnnotationSession
from .types import PageBitmap, Tool
from .workers import deliver

logger = logging.getLogger(__name__)


@dataclass
class _PageView:
    """Controls making up one page."""

    index: int
    image: ft.Image
    canvas: cv.Canvas
    stage: ft.Container
    box: ft.Container
    loaded: bool = False  # image shows a cached bitmap


class PdfAnnotator:
    """
    PDF annotator component.

    Pages are stacked in a scrollable column. Each page sits in a fixed
    viewport box; zoom and pan move the page inside its box. Gestures on a
    page are routed by the session's current tool.

    Usage:
        from flet_pdf_annotator import AnnotatorDocument, PdfAnnotator, Tool

        document = AnnotatorDocument("/path/to/file.pdf")
        annotator = PdfAnnotator(document.session)
        page.add(annotator.control)
        annotator.set_tool(Tool.HIGHLIGHT)
    """

    def __init__(
        self,
        session: AnnotationSession,
        view_width: float = 600,
        page_gap: int = 16,
        bgcolor: str = "#ffffff",
        show_page_numbers: bool = False,
        min_stroke_distance: float = 5.0,
        on_tapped: Optional[Callable[[float, float, int], None]] = None,
        on_change: Optional[Callable[[], None]] = None,
        on_page_change: Optional[Callable[[int], None]] = None,
    ):
        self._session = session
        self._view_width = view_width
        self._page_gap = page_gap
        self._bgcolor = bgcolor
        self._show_page_numbers = show_page_numbers
        self._on_tapped = on_tapped
        self._on_change = on_change
        self._on_page_change = on_page_change

        # Event handlers and background completions take turns on this lock
        self._ui_lock = threading.RLock()

        self._drawing = DrawingHandler(min_stroke_distance)
        self._selection = SelectionHandler()
        self._last_focal: Optional[tuple] = None
        self._last_scale = 1.0

        self._pages: Dict[int, _PageView] = {}
        self._column: Optional[ft.Column] = None
        self._wrapper: Optional[ft.Container] = None
        self._scroll_offset = 0.0
        self._viewport_extent = 0.0  # unknown until the first scroll event

        session.set_view_width(view_width)
        session.post = self._post
        session.on_change = self._on_store_change
        session.on_tapped = self._on_session_tapped

        self._build()

    # Properties

    @property
    def control(self) -> ft.Control:
        """The Flet control to add to a page."""
        return self._wrapper

    @property
    def session(self) -> AnnotationSession:
        return self._session

    @property
    def tool(self) -> Tool:
        return self._session.tool

    @property
    def current_page(self) -> int:
        """Current page index (0-based)."""
        return self._session.current_page

    @property
    def page_count(self) -> int:
        return self._session.page_count

    # Public commands

    def set_tool(self, tool: Tool) -> None:
        with self._ui_lock:
            self._drawing.cancel()
            self._selection.clear()
            self._session.set_tool(tool)
            self._apply_scroll_lock()

    def set_scroll_locked(self, locked: bool) -> None:
        with self._ui_lock:
            self._session.set_scroll_locked(locked)
            self._apply_scroll_lock()

    def set_colors(
        self,
        draw: Optional[int] = None,
        highlight: Optional[int] = None,
        underline: Optional[int] = None,
    ) -> None:
        self._session.set_colors(draw, highlight, underline)

    def jump_to_page(self, index: int) -> bool:
        with self._ui_lock:
            if not self._session.jump_to_page(index):
                return False
            if self._column is not None and self._column.page:
                self._column.scroll_to(key=self._page_key(index), duration=300)
            self._request_pages([index])
            if self._on_page_change:
                self._on_page_change(index)
            return True

    def next_page(self) -> bool:
        return self.jump_to_page(self.current_page + 1)

    def previous_page(self) -> bool:
        return self.jump_to_page(self.current_page - 1)

    def set_zoom(self, scale: float) -> None:
        with self._ui_lock:
            self._session.set_zoom(scale)
            self._update_viewport()

    def zoom_in(self) -> None:
        with self._ui_lock:
            self._session.zoom_in()
            self._update_viewport()

    def zoom_out(self) -> None:
        with self._ui_lock:
            self._session.zoom_out()
            self._update_viewport()

    def undo(self) -> None:
        with self._ui_lock:
            self._session.undo()

    def redo(self) -> None:
        with self._ui_lock:
            self._session.redo()

    def clear(self) -> None:
        with self._ui_lock:
            self._session.clear()

    def add_text_annotation(
        self, page_index: int, x: float, y: float, text: str, color: Optional[int] = None
    ) -> None:
        with self._ui_lock:
            self._session.add_text_annotation(page_index, x, y, text, color)

    def reload(self) -> None:
        """Re-render every page from fresh handles."""
        self._session.reload()
        with self._ui_lock:
            for view in self._pages.values():
                self._blank(view)
            self._request_pages()

    # Building

    def _build(self):
        """Build the annotator UI."""
        self._pages = {}
        controls: List[ft.Control] = []
        count = self._session.page_count

        for index in range(count):
            view = self._create_page_view(index)
            self._pages[index] = view
            controls.append(view.box)
            if self._show_page_numbers:
                controls.append(
                    ft.Text(
                        f"{index + 1} / {count}",
                        size=12,
                        color="#808080",
                        text_align=ft.TextAlign.CENTER,
                    )
                )

        self._column = ft.Column(
            controls=controls,
            spacing=self._page_gap,
            horizontal_alignment=ft.CrossAxisAlignment.CENTER,
            scroll=ft.ScrollMode.AUTO,
            on_scroll=self._on_scroll,
            expand=True,
        )
        self._wrapper = ft.Container(content=self._column, expand=True)
        self._request_pages()

    def _create_page_view(self, index: int) -> _PageView:
        """Create the controls for one page."""
        width, height = self._session.view_size(index)
        scale = self._session.transform.scale
        tx, ty = self._session.transform.translate

        image = ft.Image(
            src_base64=_TRANSPARENT_PIXEL,
            width=width * scale,
            height=height * scale,
            fit=ft.ImageFit.FILL,
        )
        canvas = cv.Canvas(shapes=[], width=width * scale, height=height * scale)
        stage = ft.Container(
            content=ft.Stack(controls=[image, canvas]),
            left=tx,
            top=ty,
            width=width * scale,
            height=height * scale,
            bgcolor=self._bgcolor,
        )

        gesture_detector = ft.GestureDetector(
            content=ft.Stack(controls=[stage], width=width, height=height),
            on_tap_up=lambda e, i=index: self._on_tap(i, e),
            on_scale_start=lambda e, i=index: self._on_scale_start(i, e),
            on_scale_update=lambda e, i=index: self._on_scale_update(i, e),
            on_scale_end=lambda e, i=index: self._on_scale_end(i, e),
            drag_interval=10,
        )

        box = ft.Container(
            content=gesture_detector,
            key=self._page_key(index),
            width=width,
            height=height,
            clip_behavior=ft.ClipBehavior.HARD_EDGE,
            border_radius=2,
            shadow=ft.BoxShadow(
                spread_radius=0,
                blur_radius=20,
                color=ft.Colors.with_opacity(0.3, "#000000"),
            ),
        )
        view = _PageView(index=index, image=image, canvas=canvas, stage=stage, box=box)
        self._refresh_overlay(view)
        return view

    @staticmethod
    def _page_key(index: int) -> str:
        return f"page-{index}"

    # Rendering

    def _page_spans(self) -> List[Tuple[float, float]]:
        """Top and bottom of every page box in column coordinates."""
        spans = []
        top = 0.0
        for index in self._pages:
            height = self._session.view_size(index)[1]
            spans.append((top, top + height))
            top += height + self._page_gap
            if self._show_page_numbers:
                top += _LABEL_HEIGHT + self._page_gap
        return spans

    def _request_pages(self, indices: Optional[List[int]] = None) -> None:
        """Render the given pages, or the ones near the scroll position."""
        if indices is None:
            extent = self._viewport_extent or self._view_width * 2
            indices = visible_pages(self._page_spans(), self._scroll_offset, extent)
        for index in indices:
            view = self._pages.get(index)
            if view is None or view.loaded:
                continue
            future = self._session.cache.render_async(index)
            deliver(
                future,
                self._post,
                on_result=lambda bitmap, i=index: self._show_bitmap(i, bitmap),
            )

    def _show_bitmap(self, index: int, bitmap: Optional[PageBitmap]) -> None:
        view = self._pages.get(index)
        if view is None:
            return
        if bitmap is None or not bitmap.png:
            logger.debug("Page %d left blank", index)
            return
        if index not in self._session.cache:
            # Evicted while the result was on its way
            return
        view.loaded = True
        view.image.src_base64 = base64.b64encode(bitmap.png).decode("ascii")
        self._safe_update(view.image)
        self._release_evicted()

    def _release_evicted(self) -> None:
        """Blank every page image whose bitmap the cache has dropped."""
        for view in self._pages.values():
            if view.loaded and view.index not in self._session.cache:
                self._blank(view)

    def _blank(self, view: _PageView) -> None:
        view.loaded = False
        view.image.src_base64 = _TRANSPARENT_PIXEL
        self._safe_update(view.image)

    def _refresh_overlay(self, view: _PageView) -> None:
        renderer = OverlayRenderer(self._session.display_scale(view.index))
        active_stroke = None
        rubber_band = None

        if self._drawing.active and self._drawing.page_index == view.index:
            active_stroke = [self._to_stage(x, y) for x, y in self._drawing.current_path]
        if self._selection.is_selecting and self._selection.page_index == view.index:
            rect = self._selection.rect
            if rect is not None:
                x0, y0 = self._to_stage(rect[0], rect[1])
                x1, y1 = self._to_stage(rect[2], rect[3])
                rubber_band = (x0, y0, x1, y1)

        view.canvas.shapes = renderer.render(
            self._session.store.for_page(view.index),
            active_stroke=active_stroke,
            rubber_band=rubber_band,
            stroke_color=self._session.colors.draw,
        )
        self._safe_update(view.canvas)

    def _update_viewport(self) -> None:
        """Resize and move every page stage after a zoom or pan."""
        scale = self._session.transform.scale
        tx, ty = self._session.transform.translate
        for view in self._pages.values():
            width, height = self._session.view_size(view.index)
            view.stage.left = tx
            view.stage.top = ty
            view.stage.width = width * scale
            view.stage.height = height * scale
            view.image.width = width * scale
            view.image.height = height * scale
            view.canvas.width = width * scale
            view.canvas.height = height * scale
            self._refresh_overlay(view)
            self._safe_update(view.stage)

    def _apply_scroll_lock(self) -> None:
        if self._column is None:
            return
        locked = self._session.scroll_locked or self._session.tool is not Tool.NONE
        self._column.scroll = None if locked else ft.ScrollMode.AUTO
        self._safe_update(self._column)

    def _to_stage(self, x: float, y: float) -> tuple:
        """Page-box pixels to stage pixels (undo the pan offset)."""
        tx, ty = self._session.transform.translate
        return (x - tx, y - ty)

    def _safe_update(self, control: ft.Control) -> None:
        if self._wrapper is not None and self._wrapper.page and control.page:
            control.update()

    # Session hooks

    def _post(self, fn: Callable[[], None]) -> None:
        with self._ui_lock:
            fn()

    def _on_store_change(self) -> None:
        for view in self._pages.values():
            self._refresh_overlay(view)
        if self._on_change:
            self._on_change()

    def _on_session_tapped(self, x: float, y: float, page_index: int) -> None:
        if self._on_tapped:
            self._on_tapped(x, y, page_index)

    # Event handlers

    def _on_scroll(self, e: ft.OnScrollEvent):
        with self._ui_lock:
            self._scroll_offset = e.pixels
            self._viewport_extent = e.viewport_dimension
            self._request_pages()

    def _on_tap(self, index: int, e: ft.TapEvent):
        with self._ui_lock:
            self._session.tap(index, e.local_x, e.local_y)

    def _on_scale_start(self, index: int, e: ft.ScaleStartEvent):
        with self._ui_lock:
            x, y = e.local_focal_point_x, e.local_focal_point_y
            self._last_focal = (x, y)
            self._last_scale = 1.0

            if e.pointer_count > 1:
                return
            tool = self._session.tool
            if tool is Tool.DRAW:
                self._drawing.start_stroke(index, x, y)
            elif tool in (Tool.HIGHLIGHT, Tool.UNDERLINE):
                self._selection.start_selection(index, x, y)
            self._refresh_overlay(self._pages[index])

    def _on_scale_update(self, index: int, e: ft.ScaleUpdateEvent):
        with self._ui_lock:
            x, y = e.local_focal_point_x, e.local_focal_point_y
            last = self._last_focal or (x, y)
            self._last_focal = (x, y)

            if e.pointer_count > 1:
                # Pinch cancels any single-finger gesture in progress
                self._drawing.cancel()
                self._selection.clear()
                delta = e.scale / self._last_scale if self._last_scale else 1.0
                self._last_scale = e.scale
                self._session.pinch(x, y, delta)
                self._update_viewport()
                return

            tool = self._session.tool
            if tool is Tool.DRAW and self._drawing.active:
                if self._drawing.add_point(x, y):
                    self._refresh_overlay(self._pages[index])
            elif self._selection.is_selecting:
                self._selection.update_selection(x, y)
                self._refresh_overlay(self._pages[index])
            elif self._session.pan(x - last[0], y - last[1]):
                self._update_viewport()

    def _on_scale_end(self, index: int, e: ft.ScaleEndEvent):
        with self._ui_lock:
            self._last_focal = None
            self._last_scale = 1.0

            if self._drawing.active:
                page_index = self._drawing.page_index
                path = self._drawing.end_stroke()
                self._session.stroke(page_index, path)
                self._refresh_overlay(self._pages[page_index])
                return

            if self._selection.is_selecting:
                is_tap = self._selection.is_tap
                state = self._selection.end_selection()
                if is_tap:
                    self._session.tap(state.page_index, *state.start)
                else:
                    self._session.drag(state.page_index, state.start, state.end)
                self._refresh_overlay(self._pages[state.page_index])


# 1x1 transparent PNG shown until a page bitmap arrives
_TRANSPARENT_PIXEL = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)

# Height reserved for a page number label
_LABEL_HEIGHT = 16.0


def visible_pages(
    spans: Sequence[Tuple[float, float]], offset: float, extent: float
) -> List[int]:
    """
    Pages overlapping the scrolled viewport, with one screen of lookahead.

    Args:
        spans: (top, bottom) of each page in column coordinates
        offset: Scroll offset of the viewport top
        extent: Viewport height

    Returns:
        Page indices in order
    """
    top = offset - extent
    bottom = offset + 2 * extent
    return [i for i, (y0, y1) in enumerate(spans) if y1 >= top and y0 <= bottom]
