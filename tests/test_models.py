import pytest

from models import PublicationKind, classify_publication


@pytest.mark.parametrize(
    ("tag", "booktitle", "journal", "publtype", "expected"),
    [
        ("inproceedings", "ICML", None, None, PublicationKind.CONFERENCE),
        ("article", None, "J. Foo", None, PublicationKind.JOURNAL),
        ("article", None, "CoRR", "informal", PublicationKind.INFORMAL),
        ("inproceedings", "ICML", None, "withdrawn", None),
        ("inproceedings", "", None, None, None),
        ("article", None, "", "informal", None),
        ("proceedings", "ICML", None, None, None),
        ("phdthesis", None, None, None, None),
    ],
)
def test_classify_publication(tag, booktitle, journal, publtype, expected) -> None:
    assert classify_publication(tag, booktitle, journal, publtype) is expected
