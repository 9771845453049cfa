"""DBLP fetching and person-XML parsing."""

from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ElementTree

import requests

from errors import FetchError, ParseError
from models import (
    AffiliationNote,
    CoauthorRecord,
    PublicationRecord,
    RemoteProfile,
    classify_publication,
)

# Mirrors are tried in order; the first one that answers wins.
DBLP_BASE_URLS: list[str] = [
    url.strip().rstrip("/")
    for url in os.getenv(
        "DBLP_BASE_URLS",
        "https://dblp.org,https://dblp.uni-trier.de,https://dblp.dagstuhl.de",
    ).split(",")
    if url.strip()
]
DBLP_MAIN_URL = "https://dblp.org"
DBLP_PID_ROUTE = "pid"
DBLP_PUB_ROUTE = "rec"
REQUEST_TIMEOUT_SECONDS = int(os.getenv("DBLP_REQUEST_TIMEOUT_SECONDS", "30"))

LOGGER = logging.getLogger(__name__)


def extract_pid(profile_ref: str) -> str:
    """Return the DBLP pid from a bare pid or a profile URL such as ``https://dblp.org/pid/d/DoeJ.html``."""
    value = profile_ref.strip()
    marker = f"/{DBLP_PID_ROUTE}/"
    if marker in value:
        value = value.split(marker)[-1]
    for suffix in (".xml", ".html", ".bib"):
        if value.endswith(suffix):
            value = value[: -len(suffix)]
    return value.strip("/")


def profile_url(pid: str) -> str:
    return f"{DBLP_MAIN_URL}/{DBLP_PID_ROUTE}/{pid}"


class DblpClient:
    """Thin ``requests`` wrapper over the DBLP mirrors."""

    def __init__(self, base_urls: list[str] | None = None, timeout: int = REQUEST_TIMEOUT_SECONDS):
        self.base_urls = list(base_urls or DBLP_BASE_URLS)
        self.timeout = timeout

    def fetch_text(self, url: str) -> str:
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError(f"GET {url} failed: {exc}") from exc
        if not response.text:
            raise FetchError(f"GET {url} returned an empty body")
        return response.text

    def _fetch_from_mirrors(self, route: str) -> str:
        last_error: FetchError | None = None
        for base in self.base_urls:
            url = f"{base}/{route}"
            try:
                return self.fetch_text(url)
            except FetchError as exc:
                last_error = exc
                LOGGER.warning("DBLP fetch: mirror failed url=%s: %s", url, exc)
        raise FetchError(f"All DBLP mirrors failed for {route}: {last_error}")

    def fetch_profile_xml(self, pid: str) -> str:
        return self._fetch_from_mirrors(f"{DBLP_PID_ROUTE}/{pid}.xml")

    def fetch_citation(self, key: str) -> str:
        """BibTeX text for the record with DBLP key ``key``."""
        return self._fetch_from_mirrors(f"{DBLP_PUB_ROUTE}/{key}.bib")


def parse_profile(xml_text: str) -> RemoteProfile:
    """Parse a ``dblpperson`` XML document into a RemoteProfile.

    Single-item and repeated elements come out the same way: every list on the
    returned profile is a tuple in document order.

    Raises:
        ParseError: on malformed XML or a root element other than ``dblpperson``.
    """
    try:
        root = ElementTree.fromstring(xml_text)
    except ElementTree.ParseError as exc:
        raise ParseError(f"Malformed DBLP XML: {exc}") from exc
    if root.tag != "dblpperson":
        raise ParseError(f"Unexpected DBLP root element: {root.tag}")

    name = root.get("name", "").strip()
    try:
        count = int(root.get("n", "0"))
    except ValueError:
        count = 0

    person = root.find("person")
    notes: list[AffiliationNote] = []
    urls: list[str] = []
    if person is not None:
        for note in person.findall("note"):
            text = _text(note)
            if text:
                notes.append(AffiliationNote(text=text, note_type=note.get("type"), label=note.get("label")))
        urls = [text for text in (_text(url) for url in person.findall("url")) if text]

    publications = [pub for pub in (_parse_publication(r) for r in root.findall("r")) if pub]
    coauthors = _parse_coauthors(root.find("coauthors"))

    LOGGER.info(
        "Parsed DBLP profile name=%s n=%s publications=%s coauthors=%s notes=%s urls=%s",
        name,
        count,
        len(publications),
        len(coauthors),
        len(notes),
        len(urls),
    )
    return RemoteProfile(
        name=name,
        publication_count=count,
        publications=tuple(publications),
        coauthors=tuple(coauthors),
        notes=tuple(notes),
        urls=tuple(urls),
    )


def _parse_publication(wrapper: ElementTree.Element) -> PublicationRecord | None:
    element = next(iter(wrapper), None)
    if element is None:
        return None
    key = element.get("key", "").strip()
    booktitle = _text(element.find("booktitle"))
    journal = _text(element.find("journal"))
    kind = classify_publication(element.tag, booktitle, journal, element.get("publtype"))
    title = _text(element.find("title"))
    if kind is None or not key or not title:
        LOGGER.debug("Skipping DBLP record tag=%s key=%s", element.tag, key)
        return None
    authors = tuple(text for text in (_text(a) for a in element.findall("author")) if text)
    return PublicationRecord(
        kind=kind,
        title=title,
        year=_text(element.find("year")),
        key=key,
        authors=authors,
        venue=booktitle or journal,
    )


def _parse_coauthors(element: ElementTree.Element | None) -> list[CoauthorRecord]:
    if element is None:
        return []
    coauthors: list[CoauthorRecord] = []
    for co in element.findall("co"):
        # A coauthor known under several names lists them all; the first is canonical.
        na = co.find("na")
        if na is None:
            continue
        name = _text(na)
        pid = (na.get("pid") or "").strip()
        if name and pid:
            coauthors.append(CoauthorRecord(name=name, pid=pid))
    return coauthors


def _text(element: ElementTree.Element | None) -> str:
    """Full text of an element including nested markup (``<i>``, ``<sub>``), whitespace-collapsed."""
    if element is None:
        return ""
    return " ".join("".join(element.itertext()).split())
