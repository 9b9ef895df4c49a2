"""
Gesture capture - freehand strokes and markup drags before they become annotations.
"""

from .drawing import DrawingHandler, DrawingState
from .selection import SelectionHandler, SelectionState

__all__ = ["DrawingHandler", "DrawingState", "SelectionHandler", "SelectionState"]
