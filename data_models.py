from datetime import date

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Placeholder shown by templates when an optional date is missing.
BLANK_DATE = " "

STATUS_AVAILABLE = "Available"
STATUS_MAINTENANCE = "Maintenance"
STATUS_LOANED = "Loaned"
STATUS_RESERVED = "Reserved"
STATUSES = (STATUS_AVAILABLE, STATUS_MAINTENANCE, STATUS_LOANED, STATUS_RESERVED)


def format_date_med(value: date | None) -> str:
    """
    Medium locale-style date, e.g. 'Oct 9, 2026'.
    """
    if not value:
        return BLANK_DATE
    return f"{value:%b} {value.day}, {value.year}"


def format_date_iso(value: date | None) -> str:
    """
    ISO-8601 date ('YYYY-MM-DD'), suitable for <input type="date">.
    """
    if not value:
        return BLANK_DATE
    return value.isoformat()


book_genres = db.Table(
    "book_genres",
    db.Column("book_id", db.Integer, db.ForeignKey("books.id"), primary_key=True),
    db.Column("genre_id", db.Integer, db.ForeignKey("genres.id"), primary_key=True),
)


class Author(db.Model):
    """
    Author model storing names and optional life dates.
    """
    __tablename__ = 'authors'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    first_name = db.Column(db.String(100), nullable=False)
    family_name = db.Column(db.String(100), nullable=False)
    date_of_birth = db.Column(db.Date, nullable=True)
    date_of_death = db.Column(db.Date, nullable=True)

    books = db.relationship("Book", back_populates="author")

    @property
    def name(self) -> str:
        """
        Display name 'family_name, first_name'; empty when either part is missing.
        """
        if self.first_name and self.family_name:
            return f"{self.family_name}, {self.first_name}"
        return ""

    @property
    def url(self) -> str:
        return f"/catalog/author/{self.id}"

    @property
    def formatted_date_of_birth(self) -> str:
        return format_date_med(self.date_of_birth)

    @property
    def formatted_date_of_death(self) -> str:
        return format_date_med(self.date_of_death)

    @property
    def iso_date_of_birth(self) -> str:
        return format_date_iso(self.date_of_birth)

    @property
    def iso_date_of_death(self) -> str:
        return format_date_iso(self.date_of_death)

    @property
    def lifespan(self) -> str:
        return f"{self.formatted_date_of_birth} - {self.formatted_date_of_death}"

    def __repr__(self):
        return f"Author(id = {self.id}, name = {self.name})"

    def __str__(self):
        return self.name


class Genre(db.Model):
    """
    Genre model. Names are unique; handlers check before insert as well.
    """
    __tablename__ = 'genres'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(100), nullable=False, unique=True)

    books = db.relationship("Book", secondary=book_genres, back_populates="genres")

    @property
    def url(self) -> str:
        return f"/catalog/genre/{self.id}"

    def __repr__(self):
        return f"<Genre id={self.id} name='{self.name}'>"

    def __str__(self):
        return self.name


class Book(db.Model):
    """
    Book model storing title, summary, ISBN, one author and any number of genres.
    """
    __tablename__ = 'books'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    title = db.Column(db.String(200), nullable=False)
    summary = db.Column(db.Text, nullable=False)
    isbn = db.Column(db.String(40), nullable=False)

    author_id = db.Column(db.Integer, db.ForeignKey("authors.id"), nullable=False)

    author = db.relationship("Author", back_populates="books")
    genres = db.relationship(
        "Genre",
        secondary=book_genres,
        back_populates="books",
        order_by="Genre.name",
    )
    instances = db.relationship("BookInstance", back_populates="book")

    @property
    def url(self) -> str:
        return f"/catalog/book/{self.id}"

    @property
    def genre_ids(self) -> list[int]:
        return [genre.id for genre in self.genres]

    def __repr__(self):
        return f"<Book id={self.id} title='{self.title}'>"

    def __str__(self):
        return self.title


class BookInstance(db.Model):
    """
    A physical copy of a book, with its imprint and loan status.
    """
    __tablename__ = 'book_instances'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False)
    imprint = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=STATUS_MAINTENANCE)
    due_back = db.Column(db.Date, nullable=True)

    book = db.relationship("Book", back_populates="instances")

    @property
    def url(self) -> str:
        return f"/catalog/bookinstance/{self.id}"

    @property
    def due_back_formatted(self) -> str:
        return format_date_med(self.due_back)

    @property
    def due_back_iso(self) -> str:
        return format_date_iso(self.due_back)

    @property
    def is_available(self) -> bool:
        return self.status == STATUS_AVAILABLE

    def __repr__(self):
        return f"<BookInstance id={self.id} status='{self.status}'>"

    def __str__(self):
        return f"{self.imprint} ({self.status})"
