"""Filesystem-backed note vault used as the sync target."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from sanitizer import normalize_path

NOTE_SUFFIX = ".md"

LOGGER = logging.getLogger(__name__)


def _env(name: str, default: str) -> str:
    return os.getenv(name) or default


@dataclass(frozen=True, slots=True)
class VaultLayout:
    """Vault-relative folders that hold each kind of note."""

    people: str = field(default_factory=lambda: _env("VAULT_PEOPLE_DIR", "People"))
    organizations: str = field(default_factory=lambda: _env("VAULT_ORG_DIR", "Organizations"))
    conference: str = field(default_factory=lambda: _env("VAULT_CONFERENCE_DIR", "Conference"))
    journal: str = field(default_factory=lambda: _env("VAULT_JOURNAL_DIR", "Journal"))
    informal: str = field(default_factory=lambda: _env("VAULT_INFORMAL_DIR", "Informal"))


def note_path(folder: str, name: str) -> str:
    """Vault-relative path of the note called ``name`` inside ``folder``."""
    return normalize_path(f"{folder}/{name}{NOTE_SUFFIX}")


class Vault:
    """A directory of Markdown notes addressed by ``/``-separated relative paths."""

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        return self.root.joinpath(*normalize_path(path).split("/"))

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def create_if_absent(self, path: str, content: str) -> bool:
        """Create a note with ``content``. Returns False, without writing, if it already exists."""
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            with target.open("x", encoding="utf-8", newline="") as fh:
                fh.write(content)
        except FileExistsError:
            return False
        LOGGER.debug("Created note path=%s", path)
        return True

    def read_text(self, path: str) -> str:
        return self._resolve(path).read_text(encoding="utf-8")

    def write_text(self, path: str, content: str) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8", newline="") as fh:
            fh.write(content)
        LOGGER.debug("Wrote note path=%s", path)

    def list_children(self, folder: str) -> list[str]:
        """Names of the entries directly inside ``folder``; empty if it does not exist."""
        directory = self._resolve(folder)
        if not directory.is_dir():
            return []
        return sorted(child.name for child in directory.iterdir())

    def list_notes(self, folder: str) -> list[str]:
        """Basenames (without ``.md``) of the notes directly inside ``folder``."""
        directory = self._resolve(folder)
        if not directory.is_dir():
            return []
        return sorted(
            child.name[: -len(NOTE_SUFFIX)]
            for child in directory.iterdir()
            if child.is_file() and child.name.endswith(NOTE_SUFFIX)
        )

    def ensure_folder(self, path: str) -> None:
        """Create ``path`` and every missing parent folder. No-op if it exists."""
        self._resolve(path).mkdir(parents=True, exist_ok=True)
