"""
Arabic shaping - contextual letter forms plus bidi run reordering.

Text burned into a page content stream is drawn glyph by glyph in visual
order, so Arabic has to be converted to presentation forms and reordered
before it is handed to the writer. Only the fixed letter table below is
shaped; ligatures and marks pass through untouched.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Tuple
from unicodedata import bidirectional

from bidi.algorithm import (
    explicit_embed_and_overrides,
    get_base_level,
    get_embedding_levels,
    get_empty_storage,
    resolve_implicit_levels,
    resolve_neutral_types,
    resolve_weak_types,
)

# base letter -> (isolated, initial, medial, final)
FORMS: Dict[str, Tuple[str, str, str, str]] = {
    "\u0627": ("\uFE8D", "\u0627", "\u0627", "\uFE8E"),  # alef
    "\u0628": ("\uFE8F", "\uFE91", "\uFE92", "\uFE90"),  # beh
    "\u062A": ("\uFE95", "\uFE97", "\uFE98", "\uFE96"),  # teh
    "\u062B": ("\uFE99", "\uFE9B", "\uFE9C", "\uFE9A"),  # theh
    "\u062C": ("\uFE9D", "\uFE9F", "\uFEA0", "\uFE9E"),  # jeem
    "\u062D": ("\uFEA1", "\uFEA3", "\uFEA4", "\uFEA2"),  # hah
    "\u062E": ("\uFEA5", "\uFEA7", "\uFEA8", "\uFEA6"),  # khah
    "\u062F": ("\uFEA9", "\u062F", "\u062F", "\uFEAA"),  # dal
    "\u0630": ("\uFEAB", "\u0630", "\u0630", "\uFEAC"),  # thal
    "\u0631": ("\uFEAD", "\u0631", "\u0631", "\uFEAE"),  # reh
    "\u0632": ("\uFEAF", "\u0632", "\u0632", "\uFEB0"),  # zain
    "\u0633": ("\uFEB1", "\uFEB3", "\uFEB4", "\uFEB2"),  # seen
    "\u0634": ("\uFEB5", "\uFEB7", "\uFEB8", "\uFEB6"),  # sheen
    "\u0635": ("\uFEB9", "\uFEBB", "\uFEBC", "\uFEBA"),  # sad
    "\u0636": ("\uFEBD", "\uFEBF", "\uFEC0", "\uFEBE"),  # dad
    "\u0637": ("\uFEC1", "\uFEC3", "\uFEC4", "\uFEC2"),  # tah
    "\u0638": ("\uFEC5", "\uFEC7", "\uFEC8", "\uFEC6"),  # zah
    "\u0639": ("\uFEC9", "\uFECB", "\uFECC", "\uFECA"),  # ain
    "\u063A": ("\uFECD", "\uFECF", "\uFED0", "\uFECE"),  # ghain
    "\u0641": ("\uFED1", "\uFED3", "\uFED4", "\uFED2"),  # feh
    "\u0642": ("\uFED5", "\uFED7", "\uFED8", "\uFED6"),  # qaf
    "\u0643": ("\uFED9", "\uFEDB", "\uFEDC", "\uFEDA"),  # kaf
    "\u0644": ("\uFEDD", "\uFEDF", "\uFEE0", "\uFEDE"),  # lam
    "\u0645": ("\uFEE1", "\uFEE3", "\uFEE4", "\uFEE2"),  # meem
    "\u0646": ("\uFEE5", "\uFEE7", "\uFEE8", "\uFEE6"),  # noon
    "\u0647": ("\uFEE9", "\uFEEB", "\uFEEC", "\uFEEA"),  # heh
    "\u0648": ("\uFEED", "\u0648", "\u0648", "\uFEEE"),  # waw
    "\u064A": ("\uFEF1", "\uFEF3", "\uFEF4", "\uFEF2"),  # yeh
    "\u0626": ("\uFE89", "\uFE8B", "\uFE8C", "\uFE8A"),  # yeh with hamza above
    "\u0622": ("\uFE81", "\u0622", "\u0622", "\uFE82"),  # alef with madda above
    "\u0623": ("\uFE83", "\u0623", "\u0623", "\uFE84"),  # alef with hamza above
    "\u0625": ("\uFE87", "\u0625", "\u0625", "\uFE88"),  # alef with hamza below
    "\u0624": ("\uFE85", "\u0624", "\u0624", "\uFE86"),  # waw with hamza above
    "\u0649": ("\uFEEF", "\u0649", "\u0649", "\uFEF0"),  # alef maksura
    "\u0629": ("\uFE93", "\u0629", "\u0629", "\uFE94"),  # teh marbuta
}

ISOLATED, INITIAL, MEDIAL, FINAL = range(4)

_ARABIC_RANGES = (
    (0x0600, 0x06FF),  # Arabic
    (0x0750, 0x077F),  # Arabic Supplement
    (0x08A0, 0x08FF),  # Arabic Extended-A
    (0xFB50, 0xFDFF),  # Presentation Forms-A
    (0xFE70, 0xFEFF),  # Presentation Forms-B
)

_RTL_TYPES = ("R", "AL", "AN")


def is_arabic(ch: str) -> bool:
    """Whether `ch` falls in one of the Arabic Unicode blocks."""
    code = ord(ch)
    return any(lo <= code <= hi for lo, hi in _ARABIC_RANGES)


def joins_following(ch: str) -> bool:
    """Whether `ch` connects to the letter after it."""
    forms = FORMS.get(ch)
    if forms is None:
        return False
    return forms[INITIAL] != ch or forms[MEDIAL] != ch


def shape_forms(text: str) -> str:
    """Replace tabulated letters with their positional presentation form."""
    out = []
    last = len(text) - 1
    for i, ch in enumerate(text):
        forms = FORMS.get(ch)
        if forms is None:
            out.append(ch)
            continue

        link_prev = i > 0 and joins_following(text[i - 1])
        link_next = i < last and text[i + 1] in FORMS

        if link_prev and link_next:
            out.append(forms[MEDIAL])
        elif link_prev:
            out.append(forms[FINAL])
        elif link_next:
            out.append(forms[INITIAL])
        else:
            out.append(forms[ISOLATED])
    return "".join(out)


def resolve_levels(text: str) -> Tuple[int, List[Tuple[str, int]]]:
    """
    Resolve bidi embedding levels for `text`.

    Explicit embedding controls are dropped by the algorithm, so characters
    come back paired with their level.

    Returns:
        (paragraph level, list of (char, level))
    """
    storage = get_empty_storage()
    base_level = get_base_level(text)
    storage["base_level"] = base_level
    storage["base_dir"] = ("L", "R")[base_level]

    get_embedding_levels(text, storage, False, False)
    explicit_embed_and_overrides(storage, False)
    resolve_weak_types(storage, False)
    resolve_neutral_types(storage, False)
    resolve_implicit_levels(storage, False)

    return base_level, [(c["ch"], c["level"]) for c in storage["chars"]]


def level_runs(chars: List[Tuple[str, int]]) -> List[Tuple[int, str]]:
    """Group resolved characters into maximal runs of equal level."""
    runs: List[Tuple[int, str]] = []
    for ch, level in chars:
        if runs and runs[-1][0] == level:
            runs[-1] = (level, runs[-1][1] + ch)
        else:
            runs.append((level, ch))
    return runs


def reorder(text: str) -> str:
    """Reorder logical text into visual order, one level run at a time."""
    if not any(bidirectional(ch) in _RTL_TYPES for ch in text):
        return text

    base_level, chars = resolve_levels(text)
    pieces = [run[::-1] if level % 2 else run for level, run in level_runs(chars)]
    if base_level % 2:
        pieces.reverse()
    return "".join(pieces)


def shape(text: str) -> str:
    """Shape Arabic letters and put the result in visual order."""
    if not text:
        return text
    return reorder(shape_forms(text))


def split_script_runs(text: str) -> Iterator[Tuple[bool, str]]:
    """Yield maximal `(is_arabic, run)` segments of `text`."""
    if not text:
        return
    start = 0
    current = is_arabic(text[0])
    for i in range(1, len(text)):
        arabic = is_arabic(text[i])
        if arabic != current:
            yield current, text[start:i]
            start = i
            current = arabic
    yield current, text[start:]
