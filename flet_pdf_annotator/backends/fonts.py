"""
Font resolution for burned-in text annotations.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

import pymupdf

logger = logging.getLogger(__name__)

# Built-in Base-14 font used when nothing else loads (Helvetica-Bold)
BUILTIN_FONT = "hebo"

# Bundled with the package, looked up first
BUNDLED_FONT = Path(__file__).resolve().parent.parent / "assets" / "fonts" / "Arial.ttf"


def load_font_file(path: str | Path) -> Optional[pymupdf.Font]:
    """Load a font file, returning None if it is missing or unreadable."""
    path = Path(path)
    if not path.is_file():
        return None
    try:
        return pymupdf.Font(fontfile=str(path))
    except Exception as e:
        logger.warning("Could not load font %s: %s", path, e)
        return None


def resolve_font(
    bundled: Optional[str | Path] = None,
    system_paths: Iterable[str | Path] = (),
) -> pymupdf.Font:
    """
    Resolve the right-to-left capable font.

    Tries the bundled font, then each system path in order, then the built-in
    font. The first one that loads wins.

    Args:
        bundled: Bundled font file (defaults to the package asset)
        system_paths: Candidate system font files

    Returns:
        A loaded PyMuPDF font
    """
    candidates = [bundled or BUNDLED_FONT, *system_paths]
    for candidate in candidates:
        font = load_font_file(candidate)
        if font is not None:
            logger.debug("Using font %s", candidate)
            return font

    logger.warning("No font file found, falling back to built-in %s", BUILTIN_FONT)
    return pymupdf.Font(BUILTIN_FONT)


def default_font() -> pymupdf.Font:
    """The font used for non-Arabic runs."""
    return pymupdf.Font(BUILTIN_FONT)


def missing_glyphs(font: pymupdf.Font, text: str) -> str:
    """Return the characters of `text` that `font` has no glyph for."""
    return "".join(
        c for c in text if not c.isspace() and font.has_glyph(ord(c)) == 0
    )
