"""
PDF backends - capability interfaces and the PyMuPDF implementation.
"""

from .base import DocumentBackend, DocumentWriter, FontRole, Rasterizer, TextExtractor
from .pymupdf import PyMuPDFBackend, PyMuPDFRasterizer, PyMuPDFTextExtractor, PyMuPDFWriter

__all__ = [
    "DocumentBackend",
    "DocumentWriter",
    "FontRole",
    "Rasterizer",
    "TextExtractor",
    "PyMuPDFBackend",
    "PyMuPDFRasterizer",
    "PyMuPDFTextExtractor",
    "PyMuPDFWriter",
]
