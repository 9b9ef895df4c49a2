"""
Exceptions raised by the annotation engine.
"""


class AnnotatorError(Exception):
    """Base class for all annotator errors."""


class LoadError(AnnotatorError):
    """The document source is unreadable, empty, or not a PDF."""


class RenderError(AnnotatorError):
    """A page could not be rasterized. Never escapes the render cache."""


class SaveError(AnnotatorError):
    """Annotations could not be written into the document."""


class FontError(AnnotatorError):
    """The selected font cannot render a text run."""

    def __init__(self, message: str, missing: str = ""):
        super().__init__(message)
        self.missing = missing
