from pathlib import Path

import pytest

from errors import FetchError
from models import PublicationKind, PublicationRecord
from publication_sync import (
    PublicationOutcome,
    compose_publication_note,
    folder_for,
    sync_publication,
    sync_publications,
    venue_acronym,
)
from vault import Vault, VaultLayout

LAYOUT = VaultLayout(
    people="People",
    organizations="Organizations",
    conference="Conference",
    journal="Journal",
    informal="Informal",
)


class _FakeCitations:
    def __init__(self, failing: set[str] | None = None):
        self.failing = failing or set()
        self.calls: list[str] = []

    def fetch_citation(self, key: str) -> str:
        self.calls.append(key)
        if key in self.failing:
            raise FetchError(f"boom {key}")
        return f"@inproceedings{{DBLP:{key},\n}}\n"


def _record(
    title: str = "Learning Foo.",
    key: str = "conf/foo/X21",
    kind: PublicationKind = PublicationKind.CONFERENCE,
    venue: str = "Int'l Conf. on Foo",
    year: str = "2021",
    authors: tuple[str, ...] = ("Jane Doe", "John Roe"),
) -> PublicationRecord:
    return PublicationRecord(kind=kind, title=title, year=year, key=key, authors=authors, venue=venue)


@pytest.fixture
def vault(tmp_path: Path) -> Vault:
    return Vault(tmp_path)


def test_venue_acronym() -> None:
    assert venue_acronym("Int'l Conf. on Foo") == "ICF"
    assert venue_acronym("NeurIPS") == "NIPS"


@pytest.mark.parametrize(
    ("record", "expected"),
    [
        (_record(), "Conference/ICF/2021"),
        (_record(kind=PublicationKind.JOURNAL, venue="J. Mach. Learn. Res.", key="journals/jmlr/X21"), "Journal/J. Mach. Learn. Res./2021"),
        (_record(kind=PublicationKind.JOURNAL, venue="Inf. Comput./Sci.", key="journals/x/Y"), "Journal/Inf. Comput.⁄Sci./2021"),
        (_record(kind=PublicationKind.INFORMAL, venue="CoRR", key="journals/corr/abs-2101-00001"), "Informal/2021"),
        (_record(venue="workshop on foo"), "Conference/workshop on foo/2021"),
    ],
)
def test_folder_for(record: PublicationRecord, expected: str) -> None:
    assert folder_for(record, LAYOUT) == expected


def test_compose_publication_note() -> None:
    content = compose_publication_note(_record(), "@inproceedings{X}\n")
    assert content == (
        "---\nkey: conf/foo/X21\n---\n"
        "```bibtex\n@inproceedings{X}\n```\n"
        "author:: [[Jane Doe]]\nauthor:: [[John Roe]]"
    )


def test_compose_publication_note_closes_fence_on_its_own_line() -> None:
    content = compose_publication_note(_record(), "@inproceedings{X}")
    assert "```bibtex\n@inproceedings{X}\n```\n" in content


def test_sync_publication_creates_note(vault: Vault) -> None:
    outcome = sync_publication(_record(), vault, _FakeCitations(), LAYOUT)

    assert outcome is PublicationOutcome.CREATED
    text = vault.read_text("Conference/ICF/2021/Learning Foo..md")
    assert "key: conf/foo/X21" in text
    assert "```bibtex\n@inproceedings{DBLP:conf/foo/X21,\n}\n```" in text


def test_sync_publication_is_write_free_when_already_synced(vault: Vault) -> None:
    sync_publication(_record(), vault, _FakeCitations(), LAYOUT)
    path = "Conference/ICF/2021/Learning Foo..md"
    vault.write_text(path, vault.read_text(path) + "\n\nmy own notes")

    outcome = sync_publication(_record(), vault, _FakeCitations(), LAYOUT)

    assert outcome is PublicationOutcome.ALREADY_SYNCED
    assert vault.read_text(path).endswith("my own notes")


def test_citation_failure_writes_nothing(vault: Vault) -> None:
    outcome = sync_publication(_record(), vault, _FakeCitations(failing={"conf/foo/X21"}), LAYOUT)

    assert outcome is PublicationOutcome.FAILED
    assert vault.list_notes("Conference/ICF/2021") == []


def test_title_collision_is_disambiguated_by_key(vault: Vault) -> None:
    first = _record(title="On Foo.", key="conf/foo/A21")
    second = _record(title="On Foo.", key="conf/foo/B21")

    tally = sync_publications([first, second], vault, _FakeCitations(), LAYOUT)

    assert tally[PublicationOutcome.CREATED.value] == 1
    assert tally[PublicationOutcome.CREATED_ALTERNATE.value] == 1
    assert "key: conf/foo/A21" in vault.read_text("Conference/ICF/2021/On Foo..md")
    assert "key: conf/foo/B21" in vault.read_text("Conference/ICF/2021/On Foo.(conf⁄foo⁄B21).md")


def test_title_collision_rerun_is_write_free(vault: Vault) -> None:
    records = [_record(title="On Foo.", key="conf/foo/A21"), _record(title="On Foo.", key="conf/foo/B21")]
    sync_publications(records, vault, _FakeCitations(), LAYOUT)

    tally = sync_publications(records, vault, _FakeCitations(), LAYOUT)

    assert tally == {PublicationOutcome.ALREADY_SYNCED.value: 2}


def test_double_collision_leaves_record_unsynced(vault: Vault) -> None:
    vault.write_text("Conference/ICF/2021/On Foo..md", "---\nkey: other/1\n---\n")
    vault.write_text("Conference/ICF/2021/On Foo.(conf⁄foo⁄B21).md", "---\nkey: other/2\n---\n")

    outcome = sync_publication(_record(title="On Foo.", key="conf/foo/B21"), vault, _FakeCitations(), LAYOUT)

    assert outcome is PublicationOutcome.FAILED
    assert vault.read_text("Conference/ICF/2021/On Foo..md") == "---\nkey: other/1\n---\n"


def test_existing_note_without_key_is_skipped(vault: Vault) -> None:
    vault.write_text("Conference/ICF/2021/Learning Foo..md", "hand-written summary")

    outcome = sync_publication(_record(), vault, _FakeCitations(), LAYOUT)

    assert outcome is PublicationOutcome.FAILED
    assert vault.read_text("Conference/ICF/2021/Learning Foo..md") == "hand-written summary"
    assert vault.list_notes("Conference/ICF/2021") == ["Learning Foo."]


def test_one_failure_does_not_abort_siblings(vault: Vault) -> None:
    records = [
        _record(title="Good One.", key="conf/foo/G1"),
        _record(title="Bad One.", key="conf/foo/B1"),
        _record(title="Good Two.", key="conf/foo/G2", kind=PublicationKind.INFORMAL, venue="CoRR"),
    ]

    tally = sync_publications(records, vault, _FakeCitations(failing={"conf/foo/B1"}), LAYOUT, max_workers=2)

    assert tally[PublicationOutcome.CREATED.value] == 2
    assert tally[PublicationOutcome.FAILED.value] == 1
    assert vault.exists("Conference/ICF/2021/Good One..md")
    assert vault.exists("Informal/2021/Good Two..md")


def test_unexpected_error_is_isolated(vault: Vault) -> None:
    class _Exploding(_FakeCitations):
        def fetch_citation(self, key: str) -> str:
            if key == "conf/foo/B1":
                raise ValueError("unexpected")
            return super().fetch_citation(key)

    records = [_record(title="Bad One.", key="conf/foo/B1"), _record(title="Good One.", key="conf/foo/G1")]

    tally = sync_publications(records, vault, _Exploding(), LAYOUT)

    assert tally[PublicationOutcome.FAILED.value] == 1
    assert tally[PublicationOutcome.CREATED.value] == 1


def test_already_synced_record_skips_citation_fetch(vault: Vault) -> None:
    sync_publication(_record(), vault, _FakeCitations(), LAYOUT)
    citations = _FakeCitations()

    outcome = sync_publication(_record(), vault, citations, LAYOUT)

    assert outcome is PublicationOutcome.ALREADY_SYNCED
    assert citations.calls == []
