"""Top-level DBLP profile sync for one person note."""

from __future__ import annotations

import logging
import os
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import PurePosixPath
from typing import Callable, Protocol

from coauthor_sync import sync_coauthors
from dblp_client import DblpClient, extract_pid, parse_profile
from errors import FetchError, ParseError, ProfileFetchError
from models import RemoteProfile
from note_fields import METADATA_SENTINEL, has_metadata_block, join_lines, split_lines
from org_matcher import OrganizationCatalog, OrganizationMatcher, slice_at_first_comma
from publication_sync import sync_publications
from vault import Vault, VaultLayout

MAX_WORKERS = int(os.getenv("SYNC_MAX_WORKERS", "4"))

AFFILIATION_NOTE_TYPE = "affiliation"
AFFILIATION_TAG = "affiliation::"
LAST_SYNC_PREFIX = "last sync:"

# Recognized identity domains, in the order their lines are written.
IDENTITY_DOMAINS: tuple[tuple[str, str], ...] = (
    ("orcid", "orcid.org"),
    ("wikipedia", "wikipedia.org"),
    ("mgp", "mathgenealogy.org"),
)

_BLANK_LINE_RUN = re.compile(r"\n{2,}")

LOGGER = logging.getLogger(__name__)

Notify = Callable[[str], None]


class ProfileSource(Protocol):
    def fetch_profile_xml(self, pid: str) -> str: ...

    def fetch_citation(self, key: str) -> str: ...


@dataclass(slots=True)
class SyncReport:
    name: str
    publications: Counter[str] = field(default_factory=Counter)
    coauthors: Counter[str] = field(default_factory=Counter)
    affiliations: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)


def _log_notice(message: str) -> None:
    LOGGER.info("%s", message)


def extract_affiliations(profile: RemoteProfile) -> list[str]:
    """Unlabeled affiliation notes, each cut down to its organization part."""
    return [
        slice_at_first_comma(note.text)
        for note in profile.notes
        if note.note_type == AFFILIATION_NOTE_TYPE and not note.label
    ]


def extract_links(profile: RemoteProfile) -> list[str]:
    """``name: url`` lines for recognized identity URLs; the last URL per domain wins."""
    found: dict[str, str] = {}
    for url in profile.urls:
        for name, domain in IDENTITY_DOMAINS:
            if domain in url:
                found[name] = url
                break
    return [f"{name}: {found[name]}" for name, _ in IDENTITY_DOMAINS if name in found]


def merge_subject_note(text: str, links: list[str], affiliations: list[str], synced_at: str) -> str:
    """Fold fresh links, affiliations and the sync stamp into a subject note's text.

    Links already present anywhere in the note are not repeated. Affiliation and
    last-sync lines are replaced wholesale; every other line keeps its place.
    """
    fresh_links = [link for link in links if link not in text]
    lines = split_lines(text)
    if fresh_links:
        if has_metadata_block(lines):
            lines = [lines[0], *fresh_links, *lines[1:]]
        else:
            lines = [METADATA_SENTINEL, *fresh_links, METADATA_SENTINEL, *lines]

    lines = [
        line
        for line in lines
        if not line.startswith(LAST_SYNC_PREFIX) and not line.startswith(AFFILIATION_TAG)
    ]
    while lines and not lines[-1].strip():
        lines.pop()
    if affiliations:
        lines.append("")
        lines.extend(f"{AFFILIATION_TAG} [[{organization}]]" for organization in affiliations)

    merged = f"{join_lines(lines)}\n\n{LAST_SYNC_PREFIX} {synced_at}"
    return _BLANK_LINE_RUN.sub("\n\n", merged)


def resolve_affiliations(profile: RemoteProfile, vault: Vault, layout: VaultLayout) -> list[str]:
    affiliations = extract_affiliations(profile)
    if not affiliations:
        return []
    matcher = OrganizationMatcher(OrganizationCatalog.from_vault(vault, layout), vault, layout)
    return matcher.resolve_all(affiliations)


def sync_profile(
    profile_ref: str,
    subject_path: str,
    vault: Vault,
    client: ProfileSource | None = None,
    notify: Notify | None = None,
    layout: VaultLayout | None = None,
    now: Callable[[], datetime] | None = None,
    max_workers: int = MAX_WORKERS,
) -> SyncReport:
    """Sync the DBLP profile ``profile_ref`` (pid or URL) into the vault and the subject note.

    A subject note that cannot be read is reported through ``notify``; the
    publication and co-author notes are still synced.

    Raises:
        ProfileFetchError: the profile could not be fetched or parsed. Nothing
            in the vault has been touched when this is raised.
    """
    client = client or DblpClient()
    notify = notify or _log_notice
    layout = layout or VaultLayout()
    now = now or (lambda: datetime.now(UTC))
    subject = PurePosixPath(subject_path).stem

    pid = extract_pid(profile_ref)
    notify(f"Fetching DBLP profile data for {subject}.")
    try:
        profile = parse_profile(client.fetch_profile_xml(pid))
    except (FetchError, ParseError) as exc:
        notify(f"Unable to fetch data for {subject}.")
        raise ProfileFetchError(f"No usable DBLP data for pid={pid}: {exc}") from exc

    report = SyncReport(name=profile.name or subject)
    skipped = profile.publication_count - len(profile.publications)
    if skipped > 0:
        LOGGER.info(
            "Skipping %s of %s DBLP records that are not conference, journal or informal publications",
            skipped,
            profile.publication_count,
        )

    try:
        subject_text: str | None = vault.read_text(subject_path)
    except OSError as exc:
        LOGGER.error("Cannot read subject note %s, leaving it out of the sync: %s", subject_path, exc)
        notify(f"Unable to read the note for {subject}; its links and affiliations were not updated.")
        subject_text = None

    report.affiliations = resolve_affiliations(profile, vault, layout)
    report.links = extract_links(profile)

    notify(f"Creating publication notes for {report.name}...")
    report.publications = sync_publications(profile.publications, vault, client, layout, max_workers)
    notify(f"Done creating publication notes for {report.name}.")

    notify(f"Creating co-author notes for {report.name}...")
    report.coauthors = sync_coauthors(profile.coauthors, vault, layout, max_workers)
    notify(f"Done creating co-author notes for {report.name}.")

    if subject_text is not None:
        synced_at = now().isoformat(timespec="seconds")
        merged = merge_subject_note(subject_text, report.links, report.affiliations, synced_at)
        vault.write_text(subject_path, merged)

    LOGGER.info(
        "Profile sync complete. pid=%s subject=%s affiliations=%s links=%s",
        pid,
        subject_path,
        len(report.affiliations),
        len(report.links),
    )
    notify(f"Done fetching DBLP data for {report.name} from pid {pid}.")
    return report
