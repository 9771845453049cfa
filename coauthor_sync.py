"""Create or link one person note per DBLP coauthor."""

from __future__ import annotations

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from enum import Enum

from dblp_client import profile_url
from errors import MalformedNoteError
from models import CoauthorRecord
from note_fields import METADATA_SENTINEL, join_lines, split_lines, upsert_field
from sanitizer import sanitize
from vault import Vault, VaultLayout, note_path

IDENTITY_FIELD = "dblp-identity"

LOGGER = logging.getLogger(__name__)


class CoauthorOutcome(str, Enum):
    CREATED = "created"
    LINKED = "linked"
    UNCHANGED = "unchanged"
    FAILED = "failed"


def person_note_name(record: CoauthorRecord) -> str:
    return sanitize(record.name)


def identity_note(pid: str) -> str:
    return f"{METADATA_SENTINEL}\n{IDENTITY_FIELD}: {profile_url(pid)}\n{METADATA_SENTINEL}\n"


def link_identity(text: str, pid: str) -> str:
    """Add the identity field to an existing note's text. An existing value always wins."""
    return join_lines(upsert_field(IDENTITY_FIELD, profile_url(pid), split_lines(text)))


def sync_coauthor(
    record: CoauthorRecord, vault: Vault, existing_names: set[str], layout: VaultLayout
) -> CoauthorOutcome:
    name = person_note_name(record)
    path = note_path(layout.people, name)

    if name not in existing_names:
        if vault.create_if_absent(path, identity_note(record.pid)):
            LOGGER.info("Created person note path=%s pid=%s", path, record.pid)
            return CoauthorOutcome.CREATED
        LOGGER.debug("Person note appeared since the folder snapshot, linking instead: %s", path)

    current = vault.read_text(path)
    try:
        updated = link_identity(current, record.pid)
    except MalformedNoteError as exc:
        LOGGER.warning("Skipping person note path=%s pid=%s: %s", path, record.pid, exc)
        return CoauthorOutcome.FAILED
    if updated == current:
        return CoauthorOutcome.UNCHANGED
    vault.write_text(path, updated)
    LOGGER.info("Linked DBLP identity into person note path=%s pid=%s", path, record.pid)
    return CoauthorOutcome.LINKED


def sync_coauthors(
    records: list[CoauthorRecord] | tuple[CoauthorRecord, ...],
    vault: Vault,
    layout: VaultLayout,
    max_workers: int = 4,
) -> Counter[str]:
    """Upsert a person note for every coauthor; returns outcome counts.

    The people folder is listed once up front. Two coauthors mapping to the
    same note are handled once, for the first of them.
    """
    tally: Counter[str] = Counter()
    existing_names = set(vault.list_notes(layout.people))

    unique: dict[str, CoauthorRecord] = {}
    for record in records:
        name = person_note_name(record)
        if name in unique:
            LOGGER.warning(
                "Coauthor note name collision, keeping pid=%s and skipping pid=%s for %s",
                unique[name].pid,
                record.pid,
                name,
            )
            continue
        unique[name] = record

    def run_one(record: CoauthorRecord) -> CoauthorOutcome:
        try:
            return sync_coauthor(record, vault, existing_names, layout)
        except Exception as exc:  # keep sibling records going
            LOGGER.exception("Coauthor sync failed pid=%s: %s", record.pid, exc)
            return CoauthorOutcome.FAILED

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        for outcome in pool.map(run_one, unique.values()):
            tally[outcome.value] += 1

    LOGGER.info(
        "Coauthor sync complete. created=%s linked=%s unchanged=%s failed=%s",
        tally[CoauthorOutcome.CREATED.value],
        tally[CoauthorOutcome.LINKED.value],
        tally[CoauthorOutcome.UNCHANGED.value],
        tally[CoauthorOutcome.FAILED.value],
    )
    return tally
