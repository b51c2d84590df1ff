"""Normalization helpers for names and places.

Used for duplicate blocking and scoring, and for matching kinship phrases:

- Unicode NFKC normalize, then casefold()
- Cyrillic ё folded to е
- punctuation stripped except in-name hyphens and apostrophes
- internal whitespace collapsed
"""
from __future__ import annotations

import re
import unicodedata

_PUNCT_RE = re.compile(r"[^\w\s\-']", re.UNICODE)
_WS_RE = re.compile(r"\s+")
_LATIN_RE = re.compile(r"^[a-z][a-z\-' ]*$")

# Common name prefixes to strip
NAME_PREFIXES = {
    "mr", "mrs", "ms", "miss", "dr", "prof", "rev",
    "sir", "lady", "capt", "col", "gen", "lt", "sgt",
}

# Common name suffixes to strip
NAME_SUFFIXES = {"jr", "sr", "ii", "iii", "iv", "esq", "phd", "md"}


def normalize_text(s: str | None) -> str:
    if not s:
        return ""
    s = unicodedata.normalize("NFKC", s).casefold()
    s = s.replace("ё", "е")
    s = _PUNCT_RE.sub(" ", s)
    return _WS_RE.sub(" ", s).strip()


def normalize_name(name: str | None) -> str:
    """Normalize a personal name, dropping honorific prefixes and suffixes."""
    parts = normalize_text(name).split()
    while parts and parts[0] in NAME_PREFIXES:
        parts.pop(0)
    while parts and parts[-1] in NAME_SUFFIXES:
        parts.pop()
    return " ".join(parts)


def normalize_place(place: str | None) -> str:
    """Most specific component of a place (``"Kazan, Russia"`` -> ``"kazan"``)."""
    if not place:
        return ""
    return normalize_text(place.split(",")[0])


def is_latin(token: str) -> bool:
    return bool(token) and bool(_LATIN_RE.match(token))


def soundex(name: str) -> str:
    """American Soundex code (letter + 3 digits) for a Latin-script name.

    Examples:
        soundex("Robert") -> "R163"
        soundex("Rupert") -> "R163"
        soundex("Madden") -> "M350"

    Non-Latin input yields ``""``.
    """
    if not name:
        return ""

    name = re.sub(r"[^A-Za-z]", "", name.upper())
    if not name:
        return ""

    soundex_map = {
        "B": "1", "F": "1", "P": "1", "V": "1",
        "C": "2", "G": "2", "J": "2", "K": "2", "Q": "2", "S": "2", "X": "2", "Z": "2",
        "D": "3", "T": "3",
        "L": "4",
        "M": "5", "N": "5",
        "R": "6",
    }

    code = name[0]
    prev_digit = soundex_map.get(name[0], "0")
    for char in name[1:]:
        digit = soundex_map.get(char, "0")
        if digit != "0" and digit != prev_digit:
            code += digit
        # H and W do not separate letters with the same code
        if char not in "HW":
            prev_digit = digit

    return (code + "000")[:4]
