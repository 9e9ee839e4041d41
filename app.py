"""
LocalLibrary - a library catalog built with Flask and SQLAlchemy.

Features:
- Books, authors, genres and book copies with list/detail pages
- Create, update and delete forms (with validation and sanitization)
- Deletes blocked while dependent records exist
- Optional summary lookup on Open Library by ISBN
"""
import logging
import os

from flask import Flask, redirect, render_template, url_for
from flask.logging import default_handler
from flask_wtf import CSRFProtect
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from catalog import create_catalog_blueprint
from data_models import db
from store import CatalogStore

basedir = os.path.abspath(os.path.dirname(__file__))

_TRUE = {"1", "true", "yes", "on"}

DEFAULT_CONFIG = {
    "SECRET_KEY": "dev-secret-key",           # Sessions, flash and CSRF (dev only).
    "SQLALCHEMY_DATABASE_URI": f"sqlite:///{os.path.join(basedir, 'data/library.sqlite')}",
    "SQLALCHEMY_TRACK_MODIFICATIONS": False,
    "WTF_CSRF_ENABLED": True,
    "LOG_LEVEL": "INFO",
    "FETCH_WORKERS": 4,
    "SUMMARY_LOOKUP": True,
}

csrf = CSRFProtect()


def config_from_env() -> dict:
    """
    Read CATALOG_* environment overrides.
    """
    env = {}
    if os.getenv("CATALOG_DATABASE_URL"):
        env["SQLALCHEMY_DATABASE_URI"] = os.environ["CATALOG_DATABASE_URL"]
    if os.getenv("CATALOG_SECRET_KEY"):
        env["SECRET_KEY"] = os.environ["CATALOG_SECRET_KEY"]
    if os.getenv("CATALOG_LOG_LEVEL"):
        env["LOG_LEVEL"] = os.environ["CATALOG_LOG_LEVEL"].upper()
    if os.getenv("CATALOG_FETCH_WORKERS"):
        env["FETCH_WORKERS"] = int(os.environ["CATALOG_FETCH_WORKERS"])
    if os.getenv("CATALOG_SUMMARY_LOOKUP"):
        env["SUMMARY_LOOKUP"] = os.environ["CATALOG_SUMMARY_LOOKUP"].lower() in _TRUE
    return env


def configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO)
    app.logger.setLevel(level)
    default_handler.setFormatter(logging.Formatter("[catalog] %(asctime)s %(levelname)s %(name)s %(message)s"))


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(404)
    def not_found(error):
        return render_template("error.html", title="Not Found", error=error), 404

    @app.errorhandler(SQLAlchemyError)
    def store_failure(error):
        db.session.rollback()
        app.logger.error("Store failure: %s", error)
        return render_template("error.html", title="Error", error=error), 500

    @app.errorhandler(500)
    def server_error(error):
        app.logger.error("Unhandled error: %s", getattr(error, "original_exception", error))
        return render_template("error.html", title="Error", error=error), 500

    @app.context_processor
    def inject_status():
        def status_of(error):
            return error.code if isinstance(error, HTTPException) else 500
        return {"status_of": status_of}


def create_app(config: dict | None = None) -> Flask:
    """
    Application factory; ``config`` overrides defaults and environment.
    """
    app = Flask(__name__)
    app.config.update(DEFAULT_CONFIG)
    app.config.update(config_from_env())
    if config:
        app.config.update(config)

    configure_logging(app)

    uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if uri.startswith("sqlite:///") and uri != "sqlite:///:memory:":
        os.makedirs(os.path.dirname(uri[len("sqlite:///"):]) or ".", exist_ok=True)

    db.init_app(app)
    csrf.init_app(app)

    store = CatalogStore(db, workers=app.config["FETCH_WORKERS"])
    app.extensions["catalog_store"] = store
    app.register_blueprint(create_catalog_blueprint(store))
    register_error_handlers(app)

    @app.route("/")
    def home():
        return redirect(url_for("catalog.index"))

    with app.app_context():
        db.create_all()

    app.logger.debug("Catalog app ready (database %s)", uri)
    return app


if __name__ == "__main__":
    create_app().run(debug=True)
