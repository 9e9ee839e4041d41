"""Author pages."""
from __future__ import annotations

from datetime import date

from data_models import Author, Book


def test_author_list_sorted_by_family_name(client, seed):
    body = client.get("/catalog/authors").get_data(as_text=True)

    assert body.index("Le Guin, Ursula") < body.index("Tolkien, John")
    assert "Jan 3, 1892" in body


def test_author_detail_lists_books(client, seed):
    resp = client.get(f"/catalog/author/{seed['tolkien']}")

    assert resp.status_code == 200
    assert "The Hobbit" in resp.get_data(as_text=True)
    assert client.get("/catalog/author/9999").status_code == 404


def test_create_author(client, count, fetch):
    resp = client.post("/catalog/author/create", data={
        "first_name": " Jane ", "family_name": "Austen",
        "date_of_birth": "1775-12-16", "date_of_death": "",
    })

    assert resp.status_code == 302
    author_id = int(resp.headers["Location"].rsplit("/", 1)[1])
    author = fetch(Author, author_id)
    assert author.name == "Austen, Jane"
    assert author.date_of_birth == date(1775, 12, 16)
    assert author.date_of_death is None
    assert count(Author) == 1


def test_create_author_invalid(client, count):
    resp = client.post("/catalog/author/create", data={
        "first_name": "", "family_name": "Austen", "date_of_birth": "16/12/1775",
    })

    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert "First name must be specified." in body
    assert "Invalid date of birth" in body
    assert 'value="Austen"' in body
    assert count(Author) == 0


def test_update_author(client, seed, count, fetch):
    form = client.get(f"/catalog/author/{seed['tolkien']}/update").get_data(as_text=True)
    assert 'value="1892-01-03"' in form

    resp = client.post(f"/catalog/author/{seed['tolkien']}/update", data={
        "first_name": "J. R. R.", "family_name": "Tolkien",
        "date_of_birth": "1892-01-03", "date_of_death": "1973-09-02",
    })

    assert resp.headers["Location"].endswith(f"/catalog/author/{seed['tolkien']}")
    author = fetch(Author, seed["tolkien"])
    assert author.first_name == "J. R. R."
    assert author.date_of_death == date(1973, 9, 2)
    assert count(Author) == 2


def test_update_missing_author(client):
    assert client.get("/catalog/author/9999/update").status_code == 404
    resp = client.post("/catalog/author/9999/update", data={"first_name": "A", "family_name": "B"})
    assert resp.status_code == 404


def test_delete_author_with_books_is_blocked(client, seed, count):
    resp = client.post(f"/catalog/author/{seed['le_guin']}/delete")

    assert resp.status_code == 200
    assert "Delete the following books" in resp.get_data(as_text=True)
    assert count(Author) == 2


def test_delete_author_without_books(client, seed, count):
    client.post(f"/catalog/book/{seed['earthsea']}/delete")
    assert count(Book) == 1

    page = client.get(f"/catalog/author/{seed['le_guin']}/delete")
    assert "Do you really want to delete this Author?" in page.get_data(as_text=True)

    resp = client.post(f"/catalog/author/{seed['le_guin']}/delete")
    assert resp.headers["Location"].endswith("/catalog/authors")
    assert count(Author) == 1

    again = client.post(f"/catalog/author/{seed['le_guin']}/delete")
    assert again.status_code == 302
