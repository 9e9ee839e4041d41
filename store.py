"""
Data access for the catalog handlers.

Handlers never touch ``db.session`` directly; they receive a CatalogStore
and go through its find/get/count/insert/replace/delete calls. Independent
reads for one request are issued together with ``gather``.
"""
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Callable, Iterable

from flask import current_app
from sqlalchemy import func, inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload


class CatalogStore:
    """
    Thin wrapper around a Flask-SQLAlchemy handle.

    ``populate`` arguments name relationships to load eagerly, so records
    returned from ``gather`` stay usable after their worker session closes.
    """

    def __init__(self, db, workers: int = 4):
        self.db = db
        self.workers = max(1, workers)
        self._executor = ThreadPoolExecutor(
            max_workers=self.workers,
            thread_name_prefix="catalog-fetch",
        )

    @property
    def session(self):
        return self.db.session

    # --- Reads ---

    def find(self, model, *criteria, order_by=(), populate: Iterable[str] = (), join=None) -> list:
        """
        All records of ``model`` matching ``criteria``, sorted by ``order_by``.
        """
        stmt = select(model)
        if join is not None:
            stmt = stmt.join(join)
        if criteria:
            stmt = stmt.where(*criteria)
        if not isinstance(order_by, (list, tuple)):
            order_by = (order_by,)
        if order_by:
            stmt = stmt.order_by(*order_by)
        stmt = stmt.options(*self._loaders(model, populate))
        return list(self.session.scalars(stmt).unique())

    def find_one(self, model, *criteria):
        stmt = select(model).where(*criteria).limit(1)
        return self.session.scalars(stmt).first()

    def get(self, model, ident, populate: Iterable[str] = ()):
        """
        Record by primary key, or None when it does not exist.
        """
        return self.session.get(model, ident, options=self._loaders(model, populate))

    def count(self, model, *criteria) -> int:
        stmt = select(func.count()).select_from(model)
        if criteria:
            stmt = stmt.where(*criteria)
        return self.session.scalar(stmt)

    # --- Writes ---

    def insert(self, record, **relations):
        """
        Persist a new record; its identifier is assigned by the database.

        Raises IntegrityError (after rolling back) when a constraint fails.
        """
        for name, value in relations.items():
            setattr(record, name, value)
        self.session.add(record)
        self._commit()
        return record

    def replace(self, candidate, **relations):
        """
        Overwrite every column of the stored record that has ``candidate.id``.

        Returns the stored record, or None when the identifier does not resolve.
        """
        model = type(candidate)
        record = self.session.get(model, candidate.id)
        if record is None:
            return None

        for attr in inspect(model).column_attrs:
            if attr.key == "id":
                continue
            setattr(record, attr.key, getattr(candidate, attr.key))
        for name, value in relations.items():
            setattr(record, name, value)

        self._commit()
        return record

    def delete(self, model, ident) -> bool:
        """
        Remove a record by id. Returns False if it was already gone.
        """
        record = self.session.get(model, ident)
        if record is None:
            return False
        self.session.delete(record)
        self._commit()
        return True

    # --- Concurrency ---

    def gather(self, *fetches: Callable[[], Any]) -> list:
        """
        Run independent read callables concurrently and return their results in order.

        Each callable runs inside its own application context, so it gets its
        own session. If any callable raises, pending ones are cancelled and the
        first error is re-raised here.
        """
        app = current_app._get_current_object()

        def run(fetch):
            with app.app_context():
                return fetch()

        futures = [self._executor.submit(run, fetch) for fetch in fetches]
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        for future in pending:
            future.cancel()
        for future in futures:
            if future in done and future.exception() is not None:
                raise future.exception()
        return [future.result() for future in futures]

    def shutdown(self):
        self._executor.shutdown(wait=True)

    # --- Helpers ---

    @staticmethod
    def _loaders(model, populate):
        return [selectinload(getattr(model, name)) for name in populate]

    def _commit(self):
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise
