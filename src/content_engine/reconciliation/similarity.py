"""String normalisation and character-overlap similarity for entity names."""

from __future__ import annotations

import re
import unicodedata
from difflib import SequenceMatcher

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    """NFKC-normalise, casefold and collapse whitespace."""
    if not text:
        return ""
    text = unicodedata.normalize("NFKC", text)
    return _WHITESPACE.sub(" ", text.casefold()).strip()


def same_identity(a: str | None, b: str | None) -> bool:
    """True when both values are present and equal after normalisation."""
    na, nb = normalize_text(a), normalize_text(b)
    return bool(na) and na == nb


def similarity(a: str | None, b: str | None) -> float:
    """Character-overlap ratio in [0, 1] between two normalised strings."""
    na, nb = normalize_text(a), normalize_text(b)
    if not na or not nb:
        return 0.0
    if na == nb:
        return 1.0
    return SequenceMatcher(None, na, nb).ratio()
