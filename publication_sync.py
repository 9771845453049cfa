"""Create one note per DBLP publication, safely across repeated runs."""

from __future__ import annotations

import logging
import re
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Protocol

from errors import FetchError, MalformedNoteError, WriteCollisionError
from models import PublicationKind, PublicationRecord
from note_fields import METADATA_SENTINEL, read_field, split_lines
from sanitizer import sanitize
from vault import Vault, VaultLayout, note_path

KEY_FIELD = "key"
AUTHOR_TAG = "author::"

LOGGER = logging.getLogger(__name__)


class CitationSource(Protocol):
    def fetch_citation(self, key: str) -> str: ...


class PublicationOutcome(str, Enum):
    CREATED = "created"
    CREATED_ALTERNATE = "created_alternate"
    ALREADY_SYNCED = "already_synced"
    FAILED = "failed"


def venue_acronym(venue: str) -> str:
    """Uppercase letters of a booktitle: "Int'l Conf. on Foo" -> "ICF"."""
    return re.sub(r"[^A-Z]", "", venue)


def folder_segments(record: PublicationRecord, layout: VaultLayout) -> list[str]:
    """Folder path for ``record`` as a list of segments, root first."""
    if record.kind is PublicationKind.CONFERENCE:
        return [layout.conference, venue_acronym(record.venue) or sanitize(record.venue), record.year]
    if record.kind is PublicationKind.JOURNAL:
        return [layout.journal, sanitize(record.venue), record.year]
    return [layout.informal, record.year]


def folder_for(record: PublicationRecord, layout: VaultLayout) -> str:
    return "/".join(segment for segment in folder_segments(record, layout) if segment)


def compose_publication_note(record: PublicationRecord, citation: str) -> str:
    authors = "\n".join(f"{AUTHOR_TAG} [[{author}]]" for author in record.authors)
    if not citation.endswith("\n"):
        citation += "\n"
    return (
        f"{METADATA_SENTINEL}\n{KEY_FIELD}: {record.key}\n{METADATA_SENTINEL}\n"
        f"```bibtex\n{citation}```\n{authors}"
    )


def recorded_key(vault: Vault, path: str) -> str:
    """The ``key`` stored in the note at ``path``. Raises MalformedNoteError if it has none."""
    key = read_field(KEY_FIELD, split_lines(vault.read_text(path)))
    if not key:
        raise MalformedNoteError(f"no {KEY_FIELD} field in {path}")
    return key


def _create_or_probe(vault: Vault, path: str, content: str, key: str) -> bool:
    """Create the note, or confirm an existing one already holds ``key``.

    Returns True if the note was written, False if it was already synced.
    Raises WriteCollisionError if the path holds a different record.
    """
    if vault.create_if_absent(path, content):
        return True
    existing = recorded_key(vault, path)
    if existing == key:
        return False
    raise WriteCollisionError(f"{path} holds key={existing}, not key={key}")


def _holds_key(vault: Vault, path: str, key: str) -> bool:
    if not vault.exists(path):
        return False
    try:
        return recorded_key(vault, path) == key
    except MalformedNoteError as exc:
        LOGGER.debug("Cannot read key from %s: %s", path, exc)
        return False


def ensure_folders(vault: Vault, segments: list[str]) -> str:
    path = ""
    for segment in segments:
        if not segment:
            continue
        path = f"{path}/{segment}" if path else segment
        vault.ensure_folder(path)
    return path


def sync_publication(
    record: PublicationRecord, vault: Vault, client: CitationSource, layout: VaultLayout
) -> PublicationOutcome:
    folder = ensure_folders(vault, folder_segments(record, layout))
    title = sanitize(record.title)
    path = note_path(folder, title)
    alternate = note_path(folder, sanitize(f"{title}({record.key})"))

    if _holds_key(vault, path, record.key) or _holds_key(vault, alternate, record.key):
        LOGGER.debug("Publication already synced key=%s", record.key)
        return PublicationOutcome.ALREADY_SYNCED

    try:
        citation = client.fetch_citation(record.key)
    except FetchError as exc:
        LOGGER.warning("Citation fetch failed, skipping title=%r key=%s: %s", title, record.key, exc)
        return PublicationOutcome.FAILED

    content = compose_publication_note(record, citation)
    try:
        if _create_or_probe(vault, path, content, record.key):
            LOGGER.info("Created publication note path=%s key=%s", path, record.key)
            return PublicationOutcome.CREATED
        LOGGER.debug("Publication already synced path=%s key=%s", path, record.key)
        return PublicationOutcome.ALREADY_SYNCED
    except MalformedNoteError as exc:
        LOGGER.warning("Existing note is not a publication note, skipping key=%s: %s", record.key, exc)
        return PublicationOutcome.FAILED
    except WriteCollisionError as exc:
        LOGGER.info("Title collision, retrying with key suffix: %s", exc)

    try:
        if _create_or_probe(vault, alternate, content, record.key):
            LOGGER.info("Created publication note path=%s key=%s", alternate, record.key)
            return PublicationOutcome.CREATED_ALTERNATE
        return PublicationOutcome.ALREADY_SYNCED
    except (WriteCollisionError, MalformedNoteError) as exc:
        LOGGER.warning(
            "Failed to create %s and %s, leaving key=%s unsynced: %s", path, alternate, record.key, exc
        )
        return PublicationOutcome.FAILED


def sync_publications(
    records: list[PublicationRecord] | tuple[PublicationRecord, ...],
    vault: Vault,
    client: CitationSource,
    layout: VaultLayout,
    max_workers: int = 4,
) -> Counter[str]:
    """Sync every record in a bounded thread pool; returns outcome counts.

    Records whose titles land on the same note path share one worker and run
    in input order, so the collision probe never reads a half-written note.
    """
    tally: Counter[str] = Counter()
    groups: dict[str, list[PublicationRecord]] = {}
    for record in records:
        groups.setdefault(note_path(folder_for(record, layout), sanitize(record.title)), []).append(record)

    def run_group(group: list[PublicationRecord]) -> list[PublicationOutcome]:
        outcomes: list[PublicationOutcome] = []
        for record in group:
            try:
                outcomes.append(sync_publication(record, vault, client, layout))
            except Exception as exc:  # keep sibling records going
                LOGGER.exception("Publication sync failed key=%s: %s", record.key, exc)
                outcomes.append(PublicationOutcome.FAILED)
        return outcomes

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        for outcomes in pool.map(run_group, groups.values()):
            for outcome in outcomes:
                tally[outcome.value] += 1

    LOGGER.info(
        "Publication sync complete. created=%s alternate=%s already_synced=%s failed=%s",
        tally[PublicationOutcome.CREATED.value],
        tally[PublicationOutcome.CREATED_ALTERNATE.value],
        tally[PublicationOutcome.ALREADY_SYNCED.value],
        tally[PublicationOutcome.FAILED.value],
    )
    return tally
