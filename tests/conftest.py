"""Shared fixtures: a catalog app on a throwaway SQLite file."""
from __future__ import annotations

from datetime import date

import pytest

from app import create_app
from data_models import Author, Book, BookInstance, Genre, db


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'library.sqlite'}",
        "WTF_CSRF_ENABLED": False,
        "SUMMARY_LOOKUP": False,
        "FETCH_WORKERS": 2,
    })
    yield app
    app.extensions["catalog_store"].shutdown()
    with app.app_context():
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions["catalog_store"]


@pytest.fixture
def count(app, store):
    def _count(model) -> int:
        with app.app_context():
            return store.count(model)
    return _count


@pytest.fixture
def fetch(app, store):
    """Load a record with the given relationships, detached from any session."""
    def _fetch(model, ident, populate=()):
        with app.app_context():
            return store.get(model, ident, populate=populate)
    return _fetch


@pytest.fixture
def seed(app):
    """A small catalog: two authors, two genres, two books, one copy of the first."""
    with app.app_context():
        tolkien = Author(first_name="John", family_name="Tolkien", date_of_birth=date(1892, 1, 3))
        le_guin = Author(first_name="Ursula", family_name="Le Guin")
        fantasy = Genre(name="Fantasy")
        poetry = Genre(name="Poetry")
        hobbit = Book(title="The Hobbit", summary="There and back again.", isbn="9780261102217",
                      author=tolkien, genres=[fantasy])
        earthsea = Book(title="A Wizard of Earthsea", summary="Ged learns.", isbn="9780547773742",
                        author=le_guin, genres=[fantasy])
        copy = BookInstance(book=hobbit, imprint="Allen & Unwin, 1937", status="Loaned",
                            due_back=date(2026, 11, 1))
        db.session.add_all([tolkien, le_guin, fantasy, poetry, hobbit, earthsea, copy])
        db.session.commit()
        return {
            "tolkien": tolkien.id,
            "le_guin": le_guin.id,
            "fantasy": fantasy.id,
            "poetry": poetry.id,
            "hobbit": hobbit.id,
            "earthsea": earthsea.id,
            "copy": copy.id,
        }
