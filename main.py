"""CLI entrypoint: sync a DBLP profile into a Markdown note vault."""

from __future__ import annotations

import argparse
import logging
import os
import sys

from dotenv import load_dotenv

from coauthor_sync import IDENTITY_FIELD
from errors import MalformedNoteError, ProfileFetchError
from note_fields import read_field, split_lines
from profile_sync import MAX_WORKERS, sync_profile
from vault import Vault


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Sync a DBLP profile into a Markdown note vault")
    parser.add_argument("subject", help="Vault-relative path of the person note to sync, e.g. 'People/Jane Doe.md'")
    parser.add_argument(
        "--vault",
        default=os.getenv("VAULT_ROOT", "."),
        help="Vault root directory (default: VAULT_ROOT or the current directory)",
    )
    parser.add_argument(
        "--profile",
        default=None,
        help=f"DBLP pid or profile URL. Defaults to the note's '{IDENTITY_FIELD}' field.",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        default=MAX_WORKERS,
        help="Concurrent publication/coauthor workers (default: SYNC_MAX_WORKERS or 4)",
    )
    return parser.parse_args(argv)


def profile_ref_from_note(vault: Vault, subject: str) -> str | None:
    """The identity link stored in the subject note's metadata block, if any."""
    try:
        return read_field(IDENTITY_FIELD, split_lines(vault.read_text(subject)))
    except MalformedNoteError as exc:
        logging.warning("Cannot read %s from %s: %s", IDENTITY_FIELD, subject, exc)
        return None


def run(subject: str, vault_root: str, profile: str | None, max_workers: int) -> int:
    """Run one sync; returns the process exit code."""
    vault = Vault(vault_root)
    if not vault.exists(subject):
        logging.error("Subject note not found: %s", subject)
        return 1

    profile_ref = profile or profile_ref_from_note(vault, subject)
    if not profile_ref:
        logging.error("No DBLP profile given and no '%s' field in %s", IDENTITY_FIELD, subject)
        return 1

    try:
        report = sync_profile(profile_ref, subject, vault, max_workers=max_workers)
    except ProfileFetchError as exc:
        logging.error("Sync aborted: %s", exc)
        return 1

    logging.info(
        "Run complete. name=%s publications=%s coauthors=%s affiliations=%s",
        report.name,
        dict(report.publications),
        dict(report.coauthors),
        report.affiliations,
    )
    return 0


def main() -> None:
    """Initialize config and execute the sync."""
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = parse_args()
    sys.exit(run(args.subject, args.vault, args.profile, args.max_workers))


if __name__ == "__main__":
    main()
