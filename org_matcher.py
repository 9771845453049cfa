"""Resolve DBLP affiliation strings to organization notes.

An affiliation is matched against every known organization name and alias
with two independent rapidfuzz scorers, an Indel character similarity and a
Levenshtein edit distance. It resolves to an existing organization only when
both scorers pick the same alias and both clear their threshold; otherwise a
new, empty organization note is registered and its note name is used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import NamedTuple, Protocol

from rapidfuzz import fuzz, process, utils
from rapidfuzz.distance import Levenshtein

from errors import MalformedNoteError
from note_fields import read_aliases, split_lines
from sanitizer import sanitize
from vault import Vault, VaultLayout, note_path

# Prefixes that contain a comma of their own; the cut happens at the next comma.
EXCEPTION_PREFIXES: tuple[str, ...] = ("University of California,",)

MIN_CHARACTER_SIMILARITY = 0.75
MAX_EDIT_DISTANCE = 0.33

LOGGER = logging.getLogger(__name__)


def slice_at_first_comma(text: str) -> str:
    """Cut an affiliation at its first comma, e.g. "MIT, CSAIL" -> "MIT"."""
    for prefix in EXCEPTION_PREFIXES:
        if text.startswith(prefix):
            index = text.find(",", len(prefix))
            return text[:index] if index >= 0 else text
    index = text.find(",")
    return text[:index] if index >= 0 else text


@dataclass(slots=True)
class OrganizationCatalog:
    """Alias → canonical organization name. Each canonical name is also its own alias."""

    aliases: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_vault(cls, vault: Vault, layout: VaultLayout) -> OrganizationCatalog:
        catalog = cls()
        names = vault.list_notes(layout.organizations)
        for name in names:
            catalog.aliases[name] = name
        for name in names:
            try:
                lines = split_lines(vault.read_text(note_path(layout.organizations, name)))
                aliases = read_aliases(lines)
            except MalformedNoteError:
                LOGGER.warning("Organization note has an unterminated metadata block, ignoring aliases: %s", name)
                continue
            for alias in aliases:
                catalog.aliases[alias] = name
        LOGGER.info("Organization catalog: organizations=%s aliases=%s", len(names), len(catalog.aliases))
        return catalog

    def canonical(self, alias: str) -> str:
        return self.aliases[alias]

    def __len__(self) -> int:
        return len(self.aliases)


class Candidate(NamedTuple):
    alias: str
    score: float


class SimilarityIndex(Protocol):
    def best(self, query: str) -> Candidate | None: ...


class CharacterSimilarityIndex:
    """Indel (character-level) similarity; ``score`` is a similarity in [0, 1], higher is better."""

    def __init__(self, choices: list[str]):
        self.choices = choices

    def best(self, query: str) -> Candidate | None:
        if not self.choices:
            return None
        result = process.extractOne(query, self.choices, scorer=fuzz.ratio, processor=utils.default_process)
        if result is None:
            return None
        alias, score, _ = result
        return Candidate(alias, score / 100.0)


class EditDistanceIndex:
    """Normalized Levenshtein distance; ``score`` is a distance in [0, 1], lower is better."""

    def __init__(self, choices: list[str]):
        self.choices = choices

    def best(self, query: str) -> Candidate | None:
        if not self.choices:
            return None
        result = process.extractOne(
            query, self.choices, scorer=Levenshtein.normalized_distance, processor=utils.default_process
        )
        if result is None:
            return None
        alias, distance, _ = result
        return Candidate(alias, distance)


def is_confident_match(similar: Candidate | None, ranked: Candidate | None) -> bool:
    """Both indices agree on the alias and both clear their threshold."""
    if similar is None or ranked is None:
        return False
    return (
        similar.alias == ranked.alias
        and similar.score >= MIN_CHARACTER_SIMILARITY
        and ranked.score <= MAX_EDIT_DISTANCE
    )


class OrganizationMatcher:
    """Resolves affiliations against one catalog snapshot, registering unknown organizations.

    The catalog is never updated during a run. A brand-new affiliation that
    occurs twice resolves to the same name both times and is registered once.
    """

    def __init__(
        self,
        catalog: OrganizationCatalog,
        vault: Vault,
        layout: VaultLayout,
        similar_index: SimilarityIndex | None = None,
        ranked_index: SimilarityIndex | None = None,
    ):
        self.catalog = catalog
        self.vault = vault
        self.layout = layout
        choices = list(catalog.aliases)
        self.similar_index = similar_index or CharacterSimilarityIndex(choices)
        self.ranked_index = ranked_index or EditDistanceIndex(choices)
        self.registered: set[str] = set()

    def resolve(self, affiliation: str) -> str:
        similar = self.similar_index.best(affiliation)
        ranked = self.ranked_index.best(affiliation)
        if is_confident_match(similar, ranked):
            canonical = self.catalog.canonical(similar.alias)
            LOGGER.info(
                "Affiliation matched: %r -> %r (alias=%r similarity=%.2f distance=%.2f)",
                affiliation,
                canonical,
                similar.alias,
                similar.score,
                ranked.score,
            )
            return canonical

        LOGGER.info("Affiliation unmatched, treating as new organization: %r (similarity=%s distance=%s)", affiliation, similar, ranked)
        return self.register(affiliation)

    def register(self, organization: str) -> str:
        """Create an empty note for ``organization`` unless this run already did or it exists.

        Returns the note name, which is what later runs find in the catalog.
        """
        name = sanitize(organization)
        if name in self.registered:
            LOGGER.debug("Organization already registered this run: %r", name)
            return name
        self.registered.add(name)
        path = note_path(self.layout.organizations, name)
        if self.vault.create_if_absent(path, ""):
            LOGGER.info("Registered new organization note path=%s", path)
        else:
            LOGGER.info("Organization note already present path=%s", path)
        return name

    def resolve_all(self, affiliations: list[str]) -> list[str]:
        """One resolved organization per input, in input order."""
        return [self.resolve(affiliation) for affiliation in affiliations]
