"""Text standardization for Vietnamese address matching."""

from __future__ import annotations

import re
import unicodedata

# Filler tokens are matched on accent-stripped, uppercased text.
_FILLER_PATTERN = re.compile(r"(?<![A-Z0-9])(?:THANH PHO|TP\.?)(?![A-Z0-9])")
_WHITESPACE = re.compile(r"\s+")


def strip_diacritics(text: str) -> str:
    """Remove Vietnamese tone and vowel marks, mapping đ/Đ to d/D."""
    text = text.replace("đ", "d").replace("Đ", "D")
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def standardize_address_text(text: str) -> str:
    """Accent-strip, uppercase, drop filler tokens and collapse whitespace.

    Applying it twice yields the same string.
    """
    text = strip_diacritics(text or "").upper().strip()
    text = _FILLER_PATTERN.sub(" ", text)
    text = _WHITESPACE.sub(" ", text)
    # A leading "TP." leaves a dangling separator behind
    return text.strip(" ,;-.")


def find_token(haystack: str, needle: str) -> int:
    """Return the index of the last whole-token occurrence of needle, or -1.

    Token boundaries are anything other than A-Z and 0-9 so that ``QUAN 1``
    never matches inside ``QUAN 12``.
    """
    if not needle:
        return -1
    pattern = re.compile(r"(?<![A-Z0-9])" + re.escape(needle) + r"(?![A-Z0-9])")
    last = -1
    for match in pattern.finditer(haystack):
        last = match.start()
    return last
