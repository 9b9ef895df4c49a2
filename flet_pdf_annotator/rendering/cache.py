"""
Page render cache - bounded LRU of page bitmaps over a rasterizer.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, Optional, Set

from ..backends.base import Rasterizer
from ..errors import RenderError
from ..types import PageBitmap, RenderConfig

logger = logging.getLogger(__name__)


class PageRenderCache:
    """
    Renders pages on a small pool and keeps the results in an LRU cache.

    Pages are rasterized at `config.scale`; an allocation failure retries once
    at `config.fallback_scale`, and if that fails too the page is marked
    unavailable until the next `evict_all`. Callers get `None` for such pages
    and never see the error.

    Concurrent requests for the same page share one pending future. The
    rasterizer is used under a single lock since its handle is not thread
    safe.

    Args:
        rasterizer: Page rasterization capability
        config: Scale and memory budget
        executor: Pool to render on (created and owned here if omitted)
    """

    def __init__(
        self,
        rasterizer: Optional[Rasterizer] = None,
        config: Optional[RenderConfig] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self._config = config or RenderConfig()
        self._rasterizer = rasterizer
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self._config.workers, thread_name_prefix="render"
        )

        self._entries: "OrderedDict[int, PageBitmap]" = OrderedDict()
        self._size = 0
        self._pending: Dict[int, Future] = {}
        self._unavailable: Set[int] = set()
        self._generation = 0

        self._lock = threading.Lock()
        self._raster_lock = threading.Lock()

    # Properties

    @property
    def capacity(self) -> int:
        """Maximum total bitmap bytes kept."""
        return self._config.capacity

    @property
    def size(self) -> int:
        """Bytes currently held."""
        return self._size

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, page_index: int) -> bool:
        return page_index in self._entries

    def is_unavailable(self, page_index: int) -> bool:
        """Whether a page failed at every scale since the last eviction."""
        return page_index in self._unavailable

    # Lookup and rendering

    def get(self, page_index: int) -> Optional[PageBitmap]:
        """Cached bitmap for a page, or None. Marks the page recently used."""
        with self._lock:
            bitmap = self._entries.get(page_index)
            if bitmap is not None:
                self._entries.move_to_end(page_index)
            return bitmap

    def render_async(
        self, page_index: int, target_scale: Optional[float] = None
    ) -> "Future[Optional[PageBitmap]]":
        """
        Request a page bitmap.

        Returns:
            A future resolving to the bitmap, or None if the page is unavailable
        """
        scale = target_scale or self._config.scale
        with self._lock:
            cached = self._entries.get(page_index)
            if cached is not None or page_index in self._unavailable:
                if cached is not None:
                    self._entries.move_to_end(page_index)
                done: Future = Future()
                done.set_result(cached)
                return done

            pending = self._pending.get(page_index)
            if pending is not None:
                return pending

            future: Future = Future()
            self._pending[page_index] = future
            generation = self._generation

        self._executor.submit(self._run, page_index, scale, generation, future)
        return future

    def render(
        self, page_index: int, target_scale: Optional[float] = None
    ) -> Optional[PageBitmap]:
        """Blocking form of `render_async`."""
        return self.render_async(page_index, target_scale).result()

    def evict_all(self) -> None:
        """Drop every bitmap and forget failures. In-flight renders are discarded."""
        with self._lock:
            self._entries.clear()
            self._size = 0
            self._unavailable.clear()
            self._pending.clear()
            self._generation += 1
        logger.debug("Render cache evicted")

    # Handle lifecycle

    def attach(self, rasterizer: Rasterizer) -> None:
        """Render from a new rasterizer handle, dropping everything cached."""
        with self._raster_lock:
            self._rasterizer = rasterizer
        self.evict_all()

    def detach(self) -> Optional[Rasterizer]:
        """Stop using the current rasterizer and return it for closing."""
        self.evict_all()
        with self._raster_lock:
            rasterizer = self._rasterizer
            self._rasterizer = None
        return rasterizer

    def close(self) -> None:
        rasterizer = self.detach()
        if self._owns_executor:
            self._executor.shutdown(wait=True)
        if rasterizer is not None:
            rasterizer.close()

    # Internals

    def _run(
        self, page_index: int, scale: float, generation: int, future: Future
    ) -> None:
        bitmap: Optional[PageBitmap] = None
        try:
            bitmap = self._render_with_fallback(page_index, scale)
        except Exception:
            logger.exception("Rendering page %d failed", page_index)

        with self._lock:
            if self._pending.get(page_index) is future:
                del self._pending[page_index]
            if generation == self._generation:
                if bitmap is None:
                    self._unavailable.add(page_index)
                else:
                    self._store(page_index, bitmap)

        future.set_result(bitmap)

    def _render_with_fallback(
        self, page_index: int, scale: float
    ) -> Optional[PageBitmap]:
        try:
            return self._rasterize(page_index, scale)
        except RenderError as e:
            fallback = self._config.fallback_scale
            if fallback >= scale:
                logger.warning("Page %d unavailable: %s", page_index, e)
                return None
            logger.warning(
                "Page %d failed at %.2fx, retrying at %.2fx: %s",
                page_index,
                scale,
                fallback,
                e,
            )

        try:
            return self._rasterize(page_index, fallback)
        except RenderError as e:
            logger.warning("Page %d unavailable: %s", page_index, e)
            return None

    def _rasterize(self, page_index: int, scale: float) -> Optional[PageBitmap]:
        with self._raster_lock:
            if self._rasterizer is None:
                return None
            try:
                return self._rasterizer.rasterize(page_index, scale)
            except MemoryError as e:
                raise RenderError(f"out of memory at {scale}x") from e

    def _store(self, page_index: int, bitmap: PageBitmap) -> None:
        # Caller holds self._lock
        old = self._entries.pop(page_index, None)
        if old is not None:
            self._size -= old.byte_size
        self._entries[page_index] = bitmap
        self._size += bitmap.byte_size

        while self._size > self.capacity and self._entries:
            evicted_index, evicted = self._entries.popitem(last=False)
            self._size -= evicted.byte_size
            logger.debug("Evicted page %d (%d bytes)", evicted_index, evicted.byte_size)
