"""公共 fixtures.

每个测试使用独立的 Flask 应用与内存 SQLite 数据库.
"""

import os
from types import SimpleNamespace

import pytest
from flask import Flask

os.environ.setdefault("FORMMODEL_LOG_LEVEL", "WARNING")

from fixtures.library_models import (  # noqa: E402
    Author,
    Book,
    BookGenre,
    Chapter,
    Edition,
    Genre,
    Publisher,
    Tag,
    db,
)
from formmodel.orm import Schema  # noqa: E402


@pytest.fixture
def app():
    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
    app.config["TESTING"] = True
    db.init_app(app)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def session(app):
    return db.session


@pytest.fixture
def schema(app):
    return Schema.from_flask(db)


@pytest.fixture
def library(session):
    """写入一组基础数据并提交."""
    alpha = Publisher(name="Alpha", is_active=True)
    beta = Publisher(name="Beta", is_active=False)
    gamma = Publisher(name="Gamma", is_active=True)
    ann = Author(name="Ann", email="ann@example.com", publisher=alpha)
    bob = Author(name="Bob", email="bob@example.com", publisher=beta)

    python = Tag(name="python", sort_order=2, is_active=True)
    sql = Tag(name="sql", sort_order=1, is_active=True)
    legacy = Tag(name="legacy", sort_order=3, is_active=False)

    fiction = Genre(name="Fiction", is_active=True)
    science = Genre(name="Science", is_active=True)
    archive = Genre(name="Archive", is_active=False)

    first = Book(title="First", isbn="111", author=ann, tags=[python])
    first.chapters = [Chapter(title="Intro", position=1), Chapter(title="Body", position=2)]
    first.book_genres = [BookGenre(genre=fiction)]
    second = Book(title="Second", isbn="111", author=bob)

    session.add_all([alpha, beta, gamma, ann, bob, python, sql, legacy, fiction, science, archive, first, second])
    session.flush()
    session.add_all(
        [
            Edition(book_id=first.id, number=1, label="Hardcover"),
            Edition(book_id=first.id, number=2, label="Paperback"),
        ],
    )
    session.commit()

    return SimpleNamespace(
        alpha=alpha,
        beta=beta,
        gamma=gamma,
        ann=ann,
        bob=bob,
        python=python,
        sql=sql,
        legacy=legacy,
        fiction=fiction,
        science=science,
        archive=archive,
        first=first,
        second=second,
    )
