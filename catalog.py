"""
Catalog blueprint: list, detail, create, update and delete pages for
books, authors, genres and book instances.

Mutating handlers follow one shape: validate the form, build a candidate
record from the sanitized values, re-render the form with the candidate and
the error list if anything failed, otherwise persist and redirect to the
record's URL.
"""
from flask import Blueprint, abort, current_app, flash, redirect, render_template, request, url_for
from sqlalchemy.exc import IntegrityError

from data_models import STATUS_AVAILABLE, STATUSES, Author, Book, BookInstance, Genre
from forms import AuthorForm, BookForm, BookInstanceForm, GenreForm, sanitize
from open_library import fetch_summary_by_isbn

URL_PREFIX = "/catalog"


def mark_checked(genres, selected_ids) -> None:
    """
    Flag each genre option the user had selected, for the form's checkboxes.
    """
    selected = {int(ident) for ident in selected_ids}
    for genre in genres:
        genre.checked = genre.id in selected


def _int_or_none(value):
    return int(value) if value and str(value).isdigit() else None


def create_catalog_blueprint(store) -> Blueprint:
    """
    Build the catalog blueprint around a CatalogStore.
    """
    bp = Blueprint("catalog", __name__, url_prefix=URL_PREFIX)

    # --- Shared fetches ---

    def all_authors():
        return store.find(Author, order_by=(Author.family_name, Author.first_name))

    def all_genres():
        return store.find(Genre, order_by=Genre.name)

    def all_books():
        return store.find(Book, order_by=Book.title)

    def books_by_author(author_id):
        return lambda: store.find(Book, Book.author_id == author_id, order_by=Book.title)

    def books_in_genre(genre_id):
        return lambda: store.find(Book, Book.genres.any(Genre.id == genre_id), order_by=Book.title)

    def copies_of(book_id):
        return lambda: store.find(BookInstance, BookInstance.book_id == book_id, order_by=BookInstance.id)

    def render_book_form(title, book, selected_ids, errors=None, authors=None, genres=None, isbn_lookup=False):
        if authors is None or genres is None:
            authors, genres = store.gather(all_authors, all_genres)
        mark_checked(genres, selected_ids)
        return render_template(
            "book_form.html",
            title=title,
            book=book,
            authors=authors,
            genres=genres,
            errors=errors or [],
            isbn_lookup=isbn_lookup and current_app.config.get("SUMMARY_LOOKUP", False),
        )

    def render_bookinstance_form(title, bookinstance, errors=None, books=None):
        if books is None:
            books = all_books()
        return render_template(
            "bookinstance_form.html",
            title=title,
            bookinstance=bookinstance,
            book_list=books,
            statuses=STATUSES,
            errors=errors or [],
        )

    # --- Home ---

    @bp.route("/")
    def index():
        """
        Catalog home: record counts, fetched together.
        """
        counts = store.gather(
            lambda: store.count(Book),
            lambda: store.count(BookInstance),
            lambda: store.count(BookInstance, BookInstance.status == STATUS_AVAILABLE),
            lambda: store.count(Author),
            lambda: store.count(Genre),
        )
        keys = ("book_count", "book_instance_count", "book_instance_available_count",
                "author_count", "genre_count")
        return render_template("index.html", title="Local Library Home", **dict(zip(keys, counts)))

    # --- Books ---

    @bp.route("/books")
    def book_list():
        books = store.find(Book, order_by=Book.title, populate=("author",))
        return render_template("book_list.html", title="Book List", book_list=books)

    @bp.route("/book/create", methods=["GET"])
    def book_create_get():
        """
        Empty book form. ``?isbn=`` (submitted by the lookup form on this page)
        pre-fills the ISBN and, if enabled, a summary looked up on Open Library.
        """
        isbn = request.args.get("isbn", "").strip()
        lookup = current_app.config.get("SUMMARY_LOOKUP", False) and bool(isbn)

        fetches = [all_authors, all_genres]
        if lookup:
            fetches.append(lambda: fetch_summary_by_isbn(isbn))
        results = store.gather(*fetches)
        authors, genres = results[0], results[1]

        book = None
        if isbn:
            summary = results[2] if lookup else None
            book = Book(isbn=sanitize(isbn), summary=sanitize(summary or ""))
        return render_book_form("Create Book", book, [], authors=authors, genres=genres, isbn_lookup=True)

    @bp.route("/book/create", methods=["POST"])
    def book_create_post():
        form = BookForm()
        valid = form.validate()
        data = form.sanitized()
        book = Book(
            title=data["title"],
            author_id=_int_or_none(data["author"]),
            summary=data["summary"],
            isbn=data["isbn"],
        )

        if not valid:
            current_app.logger.debug("Book create rejected: %s", form.errors)
            return render_book_form("Create Book", book, form.genre_ids, form.error_list())

        genres = store.find(Genre, Genre.id.in_(form.genre_ids))
        store.insert(book, genres=genres)
        current_app.logger.info("Created book %s", book.id)
        return redirect(book.url)

    @bp.route("/book/<int:book_id>")
    def book_detail(book_id):
        book, instances = store.gather(
            lambda: store.get(Book, book_id, populate=("author", "genres")),
            copies_of(book_id),
        )
        if book is None:
            abort(404, description="Book not found")
        return render_template("book_detail.html", title=book.title, book=book, book_instances=instances)

    @bp.route("/book/<int:book_id>/update", methods=["GET"])
    def book_update_get(book_id):
        book, authors, genres = store.gather(
            lambda: store.get(Book, book_id, populate=("author", "genres")),
            all_authors,
            all_genres,
        )
        if book is None:
            abort(404, description="Book not found")
        return render_book_form("Update Book", book, book.genre_ids, authors=authors, genres=genres)

    @bp.route("/book/<int:book_id>/update", methods=["POST"])
    def book_update_post(book_id):
        form = BookForm()
        valid = form.validate()
        data = form.sanitized()
        # Carries the existing id so the store replaces instead of inserting.
        book = Book(
            id=book_id,
            title=data["title"],
            author_id=_int_or_none(data["author"]),
            summary=data["summary"],
            isbn=data["isbn"],
        )

        if not valid:
            current_app.logger.debug("Book %s update rejected: %s", book_id, form.errors)
            return render_book_form("Update Book", book, form.genre_ids, form.error_list())

        genres = store.find(Genre, Genre.id.in_(form.genre_ids))
        updated = store.replace(book, genres=genres)
        if updated is None:
            abort(404, description="Book not found")
        current_app.logger.info("Updated book %s", book_id)
        return redirect(updated.url)

    @bp.route("/book/<int:book_id>/delete", methods=["GET"])
    def book_delete_get(book_id):
        book, instances = store.gather(lambda: store.get(Book, book_id), copies_of(book_id))
        if book is None:
            return redirect(url_for("catalog.book_list"))
        return render_template("book_delete.html", title="Delete Book", book=book, book_instances=instances)

    @bp.route("/book/<int:book_id>/delete", methods=["POST"])
    def book_delete_post(book_id):
        book, instances = store.gather(lambda: store.get(Book, book_id), copies_of(book_id))
        if book is None:
            return redirect(url_for("catalog.book_list"))
        if instances:
            current_app.logger.info("Delete of book %s blocked by %d copies", book_id, len(instances))
            return render_template("book_delete.html", title="Delete Book", book=book, book_instances=instances)

        store.delete(Book, book_id)
        current_app.logger.info("Deleted book %s", book_id)
        flash(f"Book '{book.title}' was deleted.", "success")
        return redirect(url_for("catalog.book_list"))

    # --- Authors ---

    @bp.route("/authors")
    def author_list():
        authors = all_authors()
        return render_template("author_list.html", title="Author List", author_list=authors)

    @bp.route("/author/create", methods=["GET"])
    def author_create_get():
        return render_template("author_form.html", title="Create Author", author=None, errors=[])

    @bp.route("/author/create", methods=["POST"])
    def author_create_post():
        form = AuthorForm()
        valid = form.validate()
        author = Author(**form.sanitized())

        if not valid:
            current_app.logger.debug("Author create rejected: %s", form.errors)
            return render_template("author_form.html", title="Create Author", author=author,
                                   errors=form.error_list())

        store.insert(author)
        current_app.logger.info("Created author %s", author.id)
        return redirect(author.url)

    @bp.route("/author/<int:author_id>")
    def author_detail(author_id):
        author, books = store.gather(lambda: store.get(Author, author_id), books_by_author(author_id))
        if author is None:
            abort(404, description="Author not found")
        return render_template("author_detail.html", title="Author Detail", author=author, author_books=books)

    @bp.route("/author/<int:author_id>/update", methods=["GET"])
    def author_update_get(author_id):
        author = store.get(Author, author_id)
        if author is None:
            abort(404, description="Author not found")
        return render_template("author_form.html", title="Update Author", author=author, errors=[])

    @bp.route("/author/<int:author_id>/update", methods=["POST"])
    def author_update_post(author_id):
        form = AuthorForm()
        valid = form.validate()
        author = Author(id=author_id, **form.sanitized())

        if not valid:
            current_app.logger.debug("Author %s update rejected: %s", author_id, form.errors)
            return render_template("author_form.html", title="Update Author", author=author,
                                   errors=form.error_list())

        updated = store.replace(author)
        if updated is None:
            abort(404, description="Author not found")
        current_app.logger.info("Updated author %s", author_id)
        return redirect(updated.url)

    @bp.route("/author/<int:author_id>/delete", methods=["GET"])
    def author_delete_get(author_id):
        author, books = store.gather(lambda: store.get(Author, author_id), books_by_author(author_id))
        if author is None:
            return redirect(url_for("catalog.author_list"))
        return render_template("author_delete.html", title="Delete Author", author=author, author_books=books)

    @bp.route("/author/<int:author_id>/delete", methods=["POST"])
    def author_delete_post(author_id):
        author, books = store.gather(lambda: store.get(Author, author_id), books_by_author(author_id))
        if author is None:
            return redirect(url_for("catalog.author_list"))
        if books:
            current_app.logger.info("Delete of author %s blocked by %d books", author_id, len(books))
            return render_template("author_delete.html", title="Delete Author", author=author, author_books=books)

        store.delete(Author, author_id)
        current_app.logger.info("Deleted author %s", author_id)
        flash(f"Author '{author.name}' was deleted.", "success")
        return redirect(url_for("catalog.author_list"))

    # --- Genres ---

    @bp.route("/genres")
    def genre_list():
        genres = all_genres()
        return render_template("genre_list.html", title="Genre List", genre_list=genres)

    @bp.route("/genre/create", methods=["GET"])
    def genre_create_get():
        return render_template("genre_form.html", title="Create Genre", genre=None, errors=[])

    @bp.route("/genre/create", methods=["POST"])
    def genre_create_post():
        form = GenreForm()
        valid = form.validate()
        genre = Genre(name=form.sanitized()["name"])

        if not valid:
            current_app.logger.debug("Genre create rejected: %s", form.errors)
            return render_template("genre_form.html", title="Create Genre", genre=genre,
                                   errors=form.error_list())

        existing = store.find_one(Genre, Genre.name == genre.name)
        if existing is not None:
            current_app.logger.info("Genre '%s' already exists as %s", genre.name, existing.id)
            return redirect(existing.url)

        try:
            store.insert(genre)
        except IntegrityError:
            # Another request inserted the same name after our lookup.
            existing = store.find_one(Genre, Genre.name == genre.name)
            if existing is None:
                raise
            return redirect(existing.url)
        current_app.logger.info("Created genre %s", genre.id)
        return redirect(genre.url)

    @bp.route("/genre/<int:genre_id>")
    def genre_detail(genre_id):
        genre, books = store.gather(lambda: store.get(Genre, genre_id), books_in_genre(genre_id))
        if genre is None:
            abort(404, description="Genre not found")
        return render_template("genre_detail.html", title="Genre Detail", genre=genre, genre_books=books)

    @bp.route("/genre/<int:genre_id>/update", methods=["GET"])
    def genre_update_get(genre_id):
        genre = store.get(Genre, genre_id)
        if genre is None:
            abort(404, description="Genre not found")
        return render_template("genre_form.html", title="Update Genre", genre=genre, errors=[])

    @bp.route("/genre/<int:genre_id>/update", methods=["POST"])
    def genre_update_post(genre_id):
        form = GenreForm()
        valid = form.validate()
        genre = Genre(id=genre_id, name=form.sanitized()["name"])

        if not valid:
            current_app.logger.debug("Genre %s update rejected: %s", genre_id, form.errors)
            return render_template("genre_form.html", title="Update Genre", genre=genre,
                                   errors=form.error_list())

        current, existing = store.gather(
            lambda: store.get(Genre, genre_id),
            lambda: store.find_one(Genre, Genre.name == genre.name, Genre.id != genre_id),
        )
        if current is None:
            abort(404, description="Genre not found")
        if existing is not None:
            current_app.logger.info("Genre '%s' already exists as %s", genre.name, existing.id)
            return redirect(existing.url)

        try:
            updated = store.replace(genre)
        except IntegrityError:
            existing = store.find_one(Genre, Genre.name == genre.name, Genre.id != genre_id)
            if existing is None:
                raise
            return redirect(existing.url)
        if updated is None:
            abort(404, description="Genre not found")
        current_app.logger.info("Updated genre %s", genre_id)
        return redirect(updated.url)

    @bp.route("/genre/<int:genre_id>/delete", methods=["GET"])
    def genre_delete_get(genre_id):
        genre, books = store.gather(lambda: store.get(Genre, genre_id), books_in_genre(genre_id))
        if genre is None:
            return redirect(url_for("catalog.genre_list"))
        return render_template("genre_delete.html", title="Delete Genre", genre=genre, genre_books=books)

    @bp.route("/genre/<int:genre_id>/delete", methods=["POST"])
    def genre_delete_post(genre_id):
        genre, books = store.gather(lambda: store.get(Genre, genre_id), books_in_genre(genre_id))
        if genre is None:
            return redirect(url_for("catalog.genre_list"))
        if books:
            current_app.logger.info("Delete of genre %s blocked by %d books", genre_id, len(books))
            return render_template("genre_delete.html", title="Delete Genre", genre=genre, genre_books=books)

        store.delete(Genre, genre_id)
        current_app.logger.info("Deleted genre %s", genre_id)
        flash(f"Genre '{genre.name}' was deleted.", "success")
        return redirect(url_for("catalog.genre_list"))

    # --- Book instances ---

    @bp.route("/bookinstances")
    def bookinstance_list():
        instances = store.find(
            BookInstance,
            join=BookInstance.book,
            order_by=(Book.title, BookInstance.id),
            populate=("book",),
        )
        return render_template("bookinstance_list.html", title="Book Instance List",
                               bookinstance_list=instances)

    @bp.route("/bookinstance/create", methods=["GET"])
    def bookinstance_create_get():
        preselect = _int_or_none(request.args.get("book"))
        bookinstance = BookInstance(book_id=preselect) if preselect else None
        return render_bookinstance_form("Create Book Instance", bookinstance)

    @bp.route("/bookinstance/create", methods=["POST"])
    def bookinstance_create_post():
        form = BookInstanceForm()
        valid = form.validate()
        data = form.sanitized()
        bookinstance = BookInstance(
            book_id=_int_or_none(data["book"]),
            imprint=data["imprint"],
            status=data["status"],
            due_back=data["due_back"],
        )

        if not valid:
            current_app.logger.debug("Book instance create rejected: %s", form.errors)
            return render_bookinstance_form("Create Book Instance", bookinstance, form.error_list())

        store.insert(bookinstance)
        current_app.logger.info("Created book instance %s", bookinstance.id)
        return redirect(bookinstance.url)

    @bp.route("/bookinstance/<int:bookinstance_id>")
    def bookinstance_detail(bookinstance_id):
        bookinstance = store.get(BookInstance, bookinstance_id, populate=("book",))
        if bookinstance is None:
            abort(404, description="Book instance not found")
        return render_template("bookinstance_detail.html", title="Book:", bookinstance=bookinstance)

    @bp.route("/bookinstance/<int:bookinstance_id>/update", methods=["GET"])
    def bookinstance_update_get(bookinstance_id):
        bookinstance, books = store.gather(
            lambda: store.get(BookInstance, bookinstance_id, populate=("book",)),
            all_books,
        )
        if bookinstance is None:
            abort(404, description="Book instance not found")
        return render_bookinstance_form("Update Book Instance", bookinstance, books=books)

    @bp.route("/bookinstance/<int:bookinstance_id>/update", methods=["POST"])
    def bookinstance_update_post(bookinstance_id):
        form = BookInstanceForm()
        valid = form.validate()
        data = form.sanitized()
        bookinstance = BookInstance(
            id=bookinstance_id,
            book_id=_int_or_none(data["book"]),
            imprint=data["imprint"],
            status=data["status"],
            due_back=data["due_back"],
        )

        if not valid:
            current_app.logger.debug("Book instance %s update rejected: %s", bookinstance_id, form.errors)
            return render_bookinstance_form("Update Book Instance", bookinstance, form.error_list())

        updated = store.replace(bookinstance)
        if updated is None:
            abort(404, description="Book instance not found")
        current_app.logger.info("Updated book instance %s", bookinstance_id)
        return redirect(updated.url)

    @bp.route("/bookinstance/<int:bookinstance_id>/delete", methods=["GET"])
    def bookinstance_delete_get(bookinstance_id):
        bookinstance = store.get(BookInstance, bookinstance_id, populate=("book",))
        if bookinstance is None:
            return redirect(url_for("catalog.bookinstance_list"))
        return render_template("bookinstance_delete.html", title="Delete Book Instance",
                               bookinstance=bookinstance)

    @bp.route("/bookinstance/<int:bookinstance_id>/delete", methods=["POST"])
    def bookinstance_delete_post(bookinstance_id):
        if store.delete(BookInstance, bookinstance_id):
            current_app.logger.info("Deleted book instance %s", bookinstance_id)
            flash("Book instance was deleted.", "success")
        return redirect(url_for("catalog.bookinstance_list"))

    return bp
