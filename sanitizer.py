"""Map bibliographic strings to names that are safe as vault paths."""

from __future__ import annotations

import re
import unicodedata

# Look-alike substitutes. None of them has a canonical decomposition, so the
# NFC step in normalize_path cannot turn one back into its forbidden original.
FORBIDDEN_CHAR_REPLACEMENT: dict[str, str] = {
    "/": "⁄",
    "\\": "＼",
    ":": "﹕",
    ";": "；",
    "^": "＾",
    "|": "┃",
    "#": "＃",
    "?": "﹖",
    "~": "～",
    "$": "＄",
    "!": "！",
    "&": "＆",
    "@": "＠",
    "%": "％",
    '"': "＂",
    "'": "＇",
    "<": "＜",
    ">": "＞",
    "{": "｛",
    "}": "｝",
    "[": "［",
    "]": "］",
    "*": "＊",
}

_TRANSLATION = str.maketrans(FORBIDDEN_CHAR_REPLACEMENT)
_SEPARATOR_RUN = re.compile(r"[\\/]+")


def normalize_path(path: str) -> str:
    """Collapse separator runs, trim outer slashes and normalize spaces and Unicode form."""
    value = _SEPARATOR_RUN.sub("/", path)
    value = value.replace("\u00a0", " ").replace("\u202f", " ")
    value = value.strip("/")
    return unicodedata.normalize("NFC", value)


def sanitize(text: str) -> str:
    """Return ``text`` with every forbidden character replaced. Idempotent."""
    return normalize_path(unicodedata.normalize("NFC", text).translate(_TRANSLATION))
