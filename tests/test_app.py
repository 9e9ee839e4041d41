"""App wiring: home page, redirects, error handling."""
from __future__ import annotations

from sqlalchemy.exc import OperationalError

from data_models import Genre


def test_root_redirects_to_catalog(client):
    resp = client.get("/")

    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/catalog/")


def test_index_shows_counts(client, seed):
    body = client.get("/catalog/").get_data(as_text=True)

    assert "<strong>Books:</strong> 2" in body
    assert "<strong>Copies:</strong> 1" in body
    assert "<strong>Copies available:</strong> 0" in body
    assert "<strong>Authors:</strong> 2" in body
    assert "<strong>Genres:</strong> 2" in body


def test_non_numeric_id_is_not_found(client):
    assert client.get("/catalog/book/abc").status_code == 404


def test_store_failure_renders_error_page(client, store, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(store, "find", broken)

    resp = client.get("/catalog/genres")

    assert resp.status_code == 500
    assert "Something went wrong." in resp.get_data(as_text=True)


def test_csrf_required_when_enabled(app, client, count):
    app.config["WTF_CSRF_ENABLED"] = True

    resp = client.post("/catalog/genre/create", data={"name": "Fantasy"})

    assert resp.status_code == 400
    assert count(Genre) == 0
