"""
Summary lookup against the Open Library API, used to pre-fill the book form.
"""
import logging

import requests

logger = logging.getLogger(__name__)

BASE_URL = "https://openlibrary.org"
TIMEOUT = 8

# Reuse one HTTP session so every lookup sends the same headers.
SESSION = requests.Session()
SESSION.headers.update({
    "User-Agent": "LocalLibrary/1.0 (catalog summary lookup)",
    "Accept": "application/json",
})


def normalize_isbn(isbn: str) -> str:
    """
    Normalize ISBN input by removing hyphens and spaces.
    """
    return (isbn or "").replace("-", "").replace(" ", "").strip()


def extract_summary(data: dict) -> str | None:
    """
    Open Library returns "description" either as a plain string or as a
    {"type": ..., "value": ...} object. Returns the stripped text or None.
    """
    desc = data.get("description")

    if isinstance(desc, dict):
        desc = desc.get("value")
    if isinstance(desc, str):
        return desc.strip() or None
    return None


def _get_json(session: requests.Session, path: str) -> dict | None:
    try:
        response = session.get(f"{BASE_URL}{path}", timeout=TIMEOUT)
        if response.status_code != 200:
            return None
        data = response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Open Library request %s failed: %s", path, exc)
        return None
    return data if isinstance(data, dict) else None


def fetch_summary_by_isbn(isbn: str, session: requests.Session | None = None) -> str | None:
    """
    Fetch a book summary by ISBN.

    Tries the edition (/isbn/{isbn}.json) first, then the first linked work.
    Any failure results in None.
    """
    isbn = normalize_isbn(isbn)
    if not isbn:
        return None
    session = session or SESSION

    edition = _get_json(session, f"/isbn/{isbn}.json")
    if edition is None:
        return None

    summary = extract_summary(edition)
    if summary:
        return summary

    works = edition.get("works") or []
    if works and isinstance(works[0], dict) and "key" in works[0]:
        work = _get_json(session, f"{works[0]['key']}.json")
        if work is not None:
            return extract_summary(work)

    return None
