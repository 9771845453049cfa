"""Read and add fields in a note's ``---`` metadata block.

Everything here is a pure transform over a list of lines; callers do the
reading and writing against the vault.
"""

from __future__ import annotations

from errors import MalformedNoteError

METADATA_SENTINEL = "---"


def split_lines(text: str) -> list[str]:
    return text.split("\n")


def join_lines(lines: list[str]) -> str:
    return "\n".join(lines)


def has_metadata_block(lines: list[str]) -> bool:
    """True iff the first line opens a metadata block."""
    return bool(lines) and lines[0] == METADATA_SENTINEL


def _block_end(lines: list[str]) -> int:
    """Index of the closing sentinel. Raises MalformedNoteError if the block never closes."""
    for index in range(1, len(lines)):
        if lines[index] == METADATA_SENTINEL:
            return index
    raise MalformedNoteError("metadata block has no closing sentinel")


def _block_lines(lines: list[str]) -> list[str]:
    if not has_metadata_block(lines):
        return []
    return lines[1 : _block_end(lines)]


def field_exists(field: str, lines: list[str]) -> bool:
    prefix = f"{field}:"
    return any(line.startswith(prefix) for line in _block_lines(lines))


def read_field(field: str, lines: list[str]) -> str | None:
    """Return the stripped value of ``field`` in the metadata block, or None when absent."""
    prefix = f"{field}:"
    for line in _block_lines(lines):
        if line.startswith(prefix):
            return line[len(prefix) :].strip()
    return None


def read_aliases(lines: list[str]) -> list[str]:
    """Bulleted items (``- alias``) inside the metadata block, in order."""
    aliases: list[str] = []
    for line in _block_lines(lines):
        stripped = line.strip()
        if stripped.startswith("-"):
            alias = stripped[1:].strip()
            if alias:
                aliases.append(alias)
    return aliases


def upsert_field(field: str, value: str, lines: list[str]) -> list[str]:
    """Add ``field: value`` to the metadata block unless the field is already there.

    An existing field keeps its value. A note without a block gets one wrapped
    around the new field, ahead of the original content.
    """
    entry = f"{field}: {value}"
    if not has_metadata_block(lines):
        return [METADATA_SENTINEL, entry, METADATA_SENTINEL, *lines]
    if field_exists(field, lines):
        return list(lines)
    return [lines[0], entry, *lines[1:]]
