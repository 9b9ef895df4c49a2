"""
Annotation store - applied annotations plus undo/redo history.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterator, Optional, Tuple

from ..types import Annotation


class AnnotationStore:
    """
    Two LIFO stacks of annotations.

    `undo` holds what is currently applied (base to top); `redo` holds what
    was undone. Pushing always clears `redo`. With `max_history` set, the
    oldest applied annotation drops off once the cap is reached.
    """

    def __init__(self, max_history: Optional[int] = None):
        self._undo: Deque[Annotation] = deque(maxlen=max_history)
        self._redo: Deque[Annotation] = deque(maxlen=max_history)

    @property
    def max_history(self) -> Optional[int]:
        return self._undo.maxlen

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def push(self, annotation: Annotation) -> None:
        self._undo.append(annotation)
        self._redo.clear()

    def undo(self) -> Optional[Annotation]:
        """Move the top applied annotation onto the redo stack."""
        if not self._undo:
            return None
        annotation = self._undo.pop()
        self._redo.append(annotation)
        return annotation

    def redo(self) -> Optional[Annotation]:
        """Re-apply the most recently undone annotation."""
        if not self._redo:
            return None
        annotation = self._redo.pop()
        self._undo.append(annotation)
        return annotation

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()

    def snapshot(self) -> Tuple[Annotation, ...]:
        """Applied annotations, oldest first."""
        return tuple(self._undo)

    def for_page(self, page_index: int) -> Tuple[Annotation, ...]:
        return tuple(a for a in self._undo if a.page_index == page_index)

    def __len__(self) -> int:
        return len(self._undo)

    def __iter__(self) -> Iterator[Annotation]:
        return iter(self.snapshot())
