"""
Annotation session - tool state, gestures and save for one open document.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Callable, List, Optional, Sequence, Tuple

from .annotations.store import AnnotationStore
from .backends.base import DocumentBackend
from .errors import SaveError
from .rendering.cache import PageRenderCache
from .save import SavePipeline
from .text.layout import TextLayout
from .text.locators import PointLocator, RangeLocator
from .transform import ViewportTransform
from .types import (
    Annotation,
    AnnotationKind,
    Colors,
    LocatorConfig,
    Point,
    Rect,
    RenderConfig,
    SaveConfig,
    Tool,
    ZoomConfig,
)
from .workers import HandleWorker, Post, deliver, post_inline

logger = logging.getLogger(__name__)

_MARKUP_TOOLS = (Tool.HIGHLIGHT, Tool.UNDERLINE)


class AnnotationSession:
    """
    Everything needed to annotate one open document.

    Gestures arrive in device pixels relative to a page's viewport box and are
    converted to page space straight away. Text lookups and saves run on a
    single interaction worker; their results are handed back through `post`,
    which the host points at its UI thread.

    Args:
        backend: Document backend to open handles from
        zoom: Viewport scale limits
        locator: Hit slop and fallback box sizes
        render: Rasterization scale and cache budget
        save: Burn-in styling
        colors: Initial tool colors
        max_history: Undo history cap (None for unbounded)
        view_width: Width pages are laid out at on screen, in device pixels
        post: Schedules a callback on the UI context
        on_tapped: Called as (page_x, page_y, page_index) for taps in TEXT mode
        on_change: Called after every annotation store mutation
    """

    def __init__(
        self,
        backend: DocumentBackend,
        zoom: Optional[ZoomConfig] = None,
        locator: Optional[LocatorConfig] = None,
        render: Optional[RenderConfig] = None,
        save: Optional[SaveConfig] = None,
        colors: Optional[Colors] = None,
        max_history: Optional[int] = None,
        view_width: Optional[float] = None,
        post: Post = post_inline,
        on_tapped: Optional[Callable[[float, float, int], None]] = None,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self._backend = backend
        self._locator_config = locator or LocatorConfig()
        self._colors = colors or Colors()
        self.post = post
        self.on_tapped = on_tapped
        self.on_change = on_change

        self._tool = Tool.NONE
        self._scroll_locked = False
        self._current_page = 0
        self._view_width = view_width

        self._transform = ViewportTransform(zoom=zoom)
        self._store = AnnotationStore(max_history)
        self._layout = TextLayout(backend.open_text_extractor())
        self._point_locator = PointLocator(self._layout, self._locator_config)
        self._range_locator = RangeLocator(self._layout)
        self._cache = PageRenderCache(backend.open_rasterizer(), render)
        self._pipeline = SavePipeline(backend.open_writer, save)
        self._worker = HandleWorker("interaction")

        if backend.page_count:
            self._fit_page(0)

    # Properties

    @property
    def backend(self) -> DocumentBackend:
        return self._backend

    @property
    def store(self) -> AnnotationStore:
        return self._store

    @property
    def cache(self) -> PageRenderCache:
        return self._cache

    @property
    def transform(self) -> ViewportTransform:
        return self._transform

    @property
    def tool(self) -> Tool:
        return self._tool

    @property
    def colors(self) -> Colors:
        return self._colors

    @property
    def scroll_locked(self) -> bool:
        return self._scroll_locked

    @property
    def page_count(self) -> int:
        return self._backend.page_count

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def annotations(self) -> Tuple[Annotation, ...]:
        return self._store.snapshot()

    # Host commands

    def set_tool(self, tool: Tool) -> None:
        self._tool = Tool(tool)

    def set_colors(
        self,
        draw: Optional[int] = None,
        highlight: Optional[int] = None,
        underline: Optional[int] = None,
    ) -> None:
        """Change tool colors; None keeps the current one."""
        if draw is not None:
            self._colors.draw = draw
        if highlight is not None:
            self._colors.highlight = highlight
        if underline is not None:
            self._colors.underline = underline

    def set_scroll_locked(self, locked: bool) -> None:
        self._scroll_locked = bool(locked)

    def jump_to_page(self, index: int) -> bool:
        """Make `index` the current page. Returns False if it is out of range."""
        if index < 0 or index >= self.page_count:
            return False
        self._current_page = index
        self._fit_page(index)
        return True

    def set_view_width(self, width: float) -> None:
        """Width pages are laid out at before zooming, in device pixels."""
        if width > 0:
            self._view_width = width
            self._fit_page(self._current_page)

    def view_size(self, page_index: int) -> Tuple[float, float]:
        """On-screen size of a page at scale 1.0."""
        info = self._backend.page_info(page_index)
        width = self._view_width or info.width
        return (width, width * info.height / info.width)

    def display_scale(self, page_index: int) -> float:
        """Device pixels per page unit at the current zoom."""
        info = self._backend.page_info(page_index)
        width = self._view_width or info.width
        return self._transform.scale * width / info.width

    # Viewport

    def set_zoom(self, scale: float) -> None:
        self._transform.set_zoom(scale)

    def zoom_in(self) -> None:
        self._transform.zoom_in()

    def zoom_out(self) -> None:
        self._transform.zoom_out()

    def pinch(self, focal_x: float, focal_y: float, scale_delta: float) -> None:
        self._transform.pinch(focal_x, focal_y, scale_delta)

    def pan(self, dx: float, dy: float) -> bool:
        return self._transform.pan(dx, dy)

    def to_page_space(self, page_index: int, device_x: float, device_y: float) -> Point:
        self._use_page(page_index)
        return self._transform.to_page_space(device_x, device_y)

    def to_device_space(self, page_index: int, page_x: float, page_y: float) -> Point:
        self._use_page(page_index)
        return self._transform.to_device_space(page_x, page_y)

    # Store commands

    def undo(self) -> Optional[Annotation]:
        annotation = self._store.undo()
        if annotation is not None:
            self._changed()
        return annotation

    def redo(self) -> Optional[Annotation]:
        annotation = self._store.redo()
        if annotation is not None:
            self._changed()
        return annotation

    def clear(self) -> None:
        self._store.clear()
        self._changed()

    def add_text_annotation(
        self,
        page_index: int,
        x: float,
        y: float,
        text: str,
        color: Optional[int] = None,
    ) -> Optional[Annotation]:
        """Place a text annotation at a page-space point."""
        if not text or not text.strip():
            return None
        annotation = Annotation(
            page_index=page_index,
            kind=AnnotationKind.TEXT,
            x=x,
            y=y,
            w=self._locator_config.text_box_width,
            h=self._locator_config.text_box_height,
            text=text,
            color=self._colors.draw if color is None else color,
        )
        self._push(annotation)
        return annotation

    # Gestures

    def tap(
        self, page_index: int, device_x: float, device_y: float
    ) -> Optional["Future[List[Annotation]]"]:
        """
        Handle a tap on a page.

        In TEXT mode the page-space point is reported through `on_tapped`. In
        HIGHLIGHT or UNDERLINE mode the nearest word is annotated.

        Returns:
            A future of the annotations pushed, or None when the tap only
            reported a point or was ignored
        """
        x, y = self.to_page_space(page_index, device_x, device_y)
        tool = self._tool

        if tool is Tool.TEXT:
            if self.on_tapped is not None:
                callback = self.on_tapped
                self.post(lambda: callback(x, y, page_index))
            return None

        if tool not in _MARKUP_TOOLS:
            return None

        def locate() -> List[Annotation]:
            box = self._point_locator.locate(page_index, x, y)
            if box is not None:
                return [self._on_text(page_index, tool, box)]
            return [self._tap_fallback(page_index, tool, x, y)]

        return self._locate_then_push(locate)

    def drag(
        self, page_index: int, start: Point, end: Point
    ) -> Optional["Future[List[Annotation]]"]:
        """Annotate every text line under a drag (device coordinates)."""
        tool = self._tool
        if tool not in _MARKUP_TOOLS:
            return None

        x1, y1 = self.to_page_space(page_index, *start)
        x2, y2 = self.to_page_space(page_index, *end)

        def locate() -> List[Annotation]:
            boxes = self._range_locator.locate(page_index, x1, y1, x2, y2)
            if boxes:
                return [self._on_text(page_index, tool, box) for box in boxes]
            return [self._drag_fallback(page_index, tool, x1, y1, x2, y2)]

        return self._locate_then_push(locate)

    def stroke(
        self, page_index: int, device_points: Sequence[Point]
    ) -> Optional[Annotation]:
        """Store a freehand stroke captured in device coordinates."""
        if not device_points:
            return None

        points = tuple(self.to_page_space(page_index, x, y) for x, y in device_points)
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        annotation = Annotation(
            page_index=page_index,
            kind=AnnotationKind.STROKE,
            x=min(xs),
            y=min(ys),
            w=max(xs) - min(xs),
            h=max(ys) - min(ys),
            color=self._colors.draw,
            points=points,
        )
        self._push(annotation)
        return annotation

    # Save

    def save_async(self) -> "Future[bytes]":
        """Queue a save on the interaction worker."""
        return self._worker.submit(self._save)

    def save(self) -> bytes:
        """
        Burn the applied annotations into a copy of the document.

        Returns:
            The annotated document bytes

        Raises:
            SaveError: If the document could not be written
        """
        return self.save_async().result()

    # Lifecycle

    def reload(self) -> None:
        """Reopen every handle and drop cached pages and text."""
        self._worker.call(self._reopen_text)
        old = self._cache.detach()
        if old is not None:
            old.close()
        self._cache.attach(self._backend.open_rasterizer())

    def rebind(self, backend: DocumentBackend) -> None:
        """Switch to a re-read copy of the document, keeping annotations."""
        self._backend = backend
        self._pipeline = SavePipeline(backend.open_writer, self._pipeline.config)
        self.reload()
        if self._current_page >= backend.page_count:
            self._current_page = 0
        if backend.page_count:
            self._fit_page(self._current_page)

    def close(self) -> None:
        """Stop the workers and release every handle."""
        self._worker.shutdown()
        self._cache.close()
        extractor = self._layout.detach()
        if extractor is not None:
            extractor.close()

    # Placement geometry

    def _color_for(self, tool: Tool) -> int:
        return self._colors.highlight if tool is Tool.HIGHLIGHT else self._colors.underline

    def _kind_for(self, tool: Tool) -> AnnotationKind:
        return AnnotationKind.HIGHLIGHT if tool is Tool.HIGHLIGHT else AnnotationKind.UNDERLINE

    def _markup(
        self, page_index: int, tool: Tool, x: float, y: float, w: float, h: float
    ) -> Annotation:
        return Annotation(
            page_index=page_index,
            kind=self._kind_for(tool),
            x=x,
            y=y,
            w=w,
            h=h,
            color=self._color_for(tool),
        )

    def _on_text(self, page_index: int, tool: Tool, box: Rect) -> Annotation:
        x0, y0, x1, y1 = box
        width = x1 - x0
        height = y1 - y0
        if tool is Tool.HIGHLIGHT:
            return self._markup(page_index, tool, x0, y0, width, height)

        cfg = self._locator_config
        return self._markup(
            page_index,
            tool,
            x0,
            y0 + height - cfg.underline_inset,
            width,
            cfg.underline_height,
        )

    def _tap_fallback(self, page_index: int, tool: Tool, x: float, y: float) -> Annotation:
        cfg = self._locator_config
        h = cfg.tap_highlight_height if tool is Tool.HIGHLIGHT else cfg.tap_underline_height
        return self._markup(
            page_index,
            tool,
            x - cfg.tap_box_width / 2,
            y - h / 4,
            cfg.tap_box_width,
            h / 2,
        )

    def _drag_fallback(
        self, page_index: int, tool: Tool, x1: float, y1: float, x2: float, y2: float
    ) -> Annotation:
        cfg = self._locator_config
        left, top = min(x1, x2), min(y1, y2)
        right, bottom = max(x1, x2), max(y1, y2)
        width = max(right - left, cfg.min_drag_width)
        if tool is Tool.HIGHLIGHT:
            height = max(bottom - top, cfg.min_drag_height)
        else:
            height = cfg.drag_underline_height
        return self._markup(page_index, tool, left, top, width, height)

    # Internals

    def _fit_page(self, page_index: int) -> None:
        width, height = self.view_size(page_index)
        self._transform.set_content_size(width, height)
        self._use_page(page_index)

    def _use_page(self, page_index: int) -> None:
        info = self._backend.page_info(page_index)
        self._transform.set_page_geometry(info.width, self._view_width or info.width)

    def _push(self, annotation: Annotation) -> None:
        self._store.push(annotation)
        self._changed()

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def _locate_then_push(
        self, locate: Callable[[], List[Annotation]]
    ) -> "Future[List[Annotation]]":
        """Run a text lookup on the worker, then push its results on the UI context."""
        outcome: Future = Future()

        def apply(annotations: List[Annotation]) -> None:
            for annotation in annotations:
                self._push(annotation)
            outcome.set_result(annotations)

        def fail(error: BaseException) -> None:
            logger.error("Text lookup failed", exc_info=error)
            outcome.set_exception(error)

        deliver(self._worker.submit(locate), self.post, apply, fail)
        return outcome

    def _reopen_text(self) -> None:
        old = self._layout.detach()
        if old is not None:
            old.close()
        self._layout.attach(self._backend.open_text_extractor())

    def _save(self) -> bytes:
        annotations = self._store.snapshot()
        if not annotations:
            return self._backend.data

        heights = [
            self._backend.page_info(i).height for i in range(self._backend.page_count)
        ]

        # Release the interactive text handle and cached pages
        extractor = self._layout.detach()
        if extractor is not None:
            extractor.close()
        self._cache.evict_all()

        try:
            return self._pipeline.save(self._backend.data, heights, annotations)
        except SaveError:
            logger.exception("Save failed")
            raise
        except Exception as e:
            logger.exception("Save failed")
            raise SaveError(str(e)) from e
        finally:
            try:
                self._layout.attach(self._backend.open_text_extractor())
            except Exception:
                logger.exception("Could not reopen the document after saving")
