"""
Text handling - glyph layout, locators and Arabic shaping.
"""

from .layout import TextLayout
from .locators import PointLocator, RangeLocator
from .shaping import is_arabic, shape, split_script_runs

__all__ = [
    "TextLayout",
    "PointLocator",
    "RangeLocator",
    "is_arabic",
    "shape",
    "split_script_runs",
]
