"""
Validation and sanitization for catalog form submissions.

Every field runs the same pipeline: trim, check its constraints, then
escape markup characters once validation is done. Optional dates treat
an empty value as absent. All messages are collected, in field order.
"""
import re
from datetime import datetime

from flask_wtf import FlaskForm
from markupsafe import escape
from wtforms import DateField, Field, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Length, Optional, ValidationError

from data_models import STATUS_MAINTENANCE, STATUSES

_ID_RE = re.compile(r"^\d+$")


def strip_filter(value):
    return value.strip() if isinstance(value, str) else value


def as_list(value) -> list:
    """
    Normalize a possibly multi-valued input: None -> [], scalar -> [scalar].
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def sanitize(value):
    """
    Escape markup-significant characters in strings (and lists of strings).
    """
    if isinstance(value, str):
        return str(escape(value))
    if isinstance(value, list):
        return [sanitize(item) for item in value]
    return value


def record_id(message: str):
    """
    Validator: the value must look like a record identifier.
    """
    def _check(form, field):
        if field.data and not _ID_RE.match(field.data):
            raise ValidationError(message)
    return _check


class MultiValueField(Field):
    """
    Collects every submitted value for its name, e.g. a group of checkboxes.
    """

    def process_data(self, value):
        self.data = [str(item) for item in as_list(value)]

    def process_formdata(self, valuelist):
        self.data = [item.strip() for item in as_list(valuelist) if item and item.strip()]


class OptionalDateField(DateField):
    """
    'YYYY-MM-DD' date where a blank submission means "no date".
    """

    def __init__(self, label=None, validators=None, invalid_message="Invalid date", **kwargs):
        super().__init__(label, validators or [Optional()], format="%Y-%m-%d", **kwargs)
        self.invalid_message = invalid_message

    def process_formdata(self, valuelist):
        raw = " ".join(valuelist).strip() if valuelist else ""
        if not raw:
            self.data = None
            return
        try:
            self.data = datetime.strptime(raw, "%Y-%m-%d").date()
        except ValueError:
            self.data = None
            raise ValueError(self.invalid_message)


class CatalogForm(FlaskForm):
    """
    Base form: adds the ordered error list and the escaped field values.
    """

    def field_items(self):
        return [(name, field) for name, field in self._fields.items() if name != "csrf_token"]

    def sanitized(self) -> dict:
        """
        Trimmed and escaped values, available whether or not validation passed.
        """
        return {name: sanitize(field.data) for name, field in self.field_items()}

    def error_list(self) -> list[dict]:
        errors = []
        for name, field in self._fields.items():
            for message in field.errors:
                errors.append({"param": name, "msg": message})
        return errors


class AuthorForm(CatalogForm):
    first_name = StringField("First name", filters=[strip_filter], validators=[
        DataRequired("First name must be specified."),
        Length(max=100, message="First name must not exceed 100 characters."),
    ])
    family_name = StringField("Family name", filters=[strip_filter], validators=[
        DataRequired("Family name must be specified."),
        Length(max=100, message="Family name must not exceed 100 characters."),
    ])
    date_of_birth = OptionalDateField("Date of birth", invalid_message="Invalid date of birth")
    date_of_death = OptionalDateField("Date of death", invalid_message="Invalid date of death")

    def validate_date_of_death(self, field):
        born = self.date_of_birth.data
        if born and field.data and field.data < born:
            raise ValidationError("Date of death must not be before date of birth.")


class GenreForm(CatalogForm):
    name = StringField("Name", filters=[strip_filter], validators=[
        Length(min=3, message="Genre must contain at least 3 characters"),
        Length(max=100, message="Genre must not exceed 100 characters"),
    ])


class BookForm(CatalogForm):
    title = StringField("Title", filters=[strip_filter], validators=[
        DataRequired("Title must not be empty."),
    ])
    author = StringField("Author", filters=[strip_filter], validators=[
        DataRequired("Author must not be empty."),
        record_id("Author selection is invalid."),
    ])
    summary = TextAreaField("Summary", filters=[strip_filter], validators=[
        DataRequired("Summary must not be empty."),
    ])
    isbn = StringField("ISBN", filters=[strip_filter], validators=[
        DataRequired("ISBN must not be empty."),
    ])
    genre = MultiValueField("Genre")

    def validate_genre(self, field):
        if any(not _ID_RE.match(value) for value in field.data):
            raise ValidationError("Genre selection is invalid.")

    @property
    def genre_ids(self) -> list[int]:
        return [int(value) for value in self.genre.data if _ID_RE.match(value)]


class BookInstanceForm(CatalogForm):
    book = StringField("Book", filters=[strip_filter], validators=[
        DataRequired("Book must be specified"),
        record_id("Book selection is invalid."),
    ])
    imprint = StringField("Imprint", filters=[strip_filter], validators=[
        DataRequired("Imprint must be specified"),
    ])
    status = StringField("Status", default=STATUS_MAINTENANCE, filters=[strip_filter], validators=[
        AnyOf(STATUSES, message="Status must be one of: " + ", ".join(STATUSES)),
    ])
    due_back = OptionalDateField("Date when book available", invalid_message="Invalid date")
