"""Shared typed models for the DBLP profile sync."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PublicationKind(str, Enum):
    CONFERENCE = "conference"
    JOURNAL = "journal"
    INFORMAL = "informal"


def classify_publication(
    tag: str, booktitle: str | None, journal: str | None, publtype: str | None
) -> PublicationKind | None:
    """Return the venue kind for one DBLP record, or None if it is not a publication we sync.

    The three kinds are mutually exclusive: a publtype marks an article as
    informal (CoRR preprints and the like), and proceedings entries carrying a
    publtype are left out entirely.
    """
    if tag == "inproceedings" and booktitle and not publtype:
        return PublicationKind.CONFERENCE
    if tag == "article" and journal:
        return PublicationKind.INFORMAL if publtype else PublicationKind.JOURNAL
    return None


@dataclass(frozen=True, slots=True)
class PublicationRecord:
    """One publication from a profile. ``venue`` is the booktitle or journal name."""

    kind: PublicationKind
    title: str
    year: str
    key: str
    authors: tuple[str, ...]
    venue: str


@dataclass(frozen=True, slots=True)
class CoauthorRecord:
    name: str
    pid: str


@dataclass(frozen=True, slots=True)
class AffiliationNote:
    """A free-text ``<note>`` of a DBLP person, with its type and optional label."""

    text: str
    note_type: str | None = None
    label: str | None = None


@dataclass(frozen=True, slots=True)
class RemoteProfile:
    """Normalized DBLP person record; every list field is a tuple, possibly empty."""

    name: str
    publication_count: int
    publications: tuple[PublicationRecord, ...] = ()
    coauthors: tuple[CoauthorRecord, ...] = ()
    notes: tuple[AffiliationNote, ...] = ()
    urls: tuple[str, ...] = ()
