"""Derived display properties on the catalog models."""
from __future__ import annotations

from datetime import date

from data_models import (
    BLANK_DATE,
    Author,
    Book,
    BookInstance,
    Genre,
    format_date_iso,
    format_date_med,
)


def test_author_name_is_family_then_first():
    author = Author(first_name="Ursula", family_name="Le Guin")

    assert author.name == "Le Guin, Ursula"
    assert str(author) == "Le Guin, Ursula"


def test_author_name_empty_when_a_part_is_missing():
    assert Author(first_name="Ursula").name == ""
    assert Author(family_name="Le Guin").name == ""


def test_urls_use_record_id():
    assert Author(id=3).url == "/catalog/author/3"
    assert Genre(id=4).url == "/catalog/genre/4"
    assert Book(id=5).url == "/catalog/book/5"
    assert BookInstance(id=42).url == "/catalog/bookinstance/42"


def test_date_formats():
    assert format_date_med(date(2026, 10, 9)) == "Oct 9, 2026"
    assert format_date_iso(date(2026, 10, 9)) == "2026-10-09"
    assert format_date_med(None) == BLANK_DATE
    assert format_date_iso(None) == BLANK_DATE


def test_author_formatted_dates_fall_back_to_blank():
    author = Author(first_name="A", family_name="B", date_of_birth=date(1892, 1, 3))

    assert author.formatted_date_of_birth == "Jan 3, 1892"
    assert author.iso_date_of_birth == "1892-01-03"
    assert author.formatted_date_of_death == " "
    assert author.iso_date_of_death == " "
    assert author.lifespan == "Jan 3, 1892 -  "


def test_bookinstance_due_back_and_availability():
    copy = BookInstance(status="Loaned", due_back=date(2026, 11, 1))

    assert copy.due_back_formatted == "Nov 1, 2026"
    assert copy.due_back_iso == "2026-11-01"
    assert not copy.is_available
    assert BookInstance(status="Available").is_available
