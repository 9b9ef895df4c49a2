"""
Annotation storage.
"""

from .store import AnnotationStore

__all__ = ["AnnotationStore"]
