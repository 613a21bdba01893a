"""Test configuration and fixtures."""

from pathlib import Path

import pytest

from quizweb.app import app
from quizweb.db_utils import connect
from quizweb.init_db import ensure_schema


CAPITAL_OF_FRANCE = "Capital of France?\n[x] Paris\n[ ] Lyon\n[ ] Nice\n"


def write_file(path: Path, content="", binary=False) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if binary:
        path.write_bytes(content or b"\x89PNG")
    else:
        path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "quiz.db"


@pytest.fixture
def conn(db_path):
    """Open connection on an initialized, empty database."""
    connection = connect(db_path)
    ensure_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def web_root(tmp_path):
    root = tmp_path / "web"
    root.mkdir()
    return root


@pytest.fixture
def quiz_root(web_root):
    """A quiz folder with two chapters, images and one broken file."""
    root = web_root / "Quiz"
    write_file(root / "Ch1" / "Question 1.txt", CAPITAL_OF_FRANCE)
    write_file(
        root / "Ch1" / "Question 18.txt",
        "Q: Which are primes?\ntime=60\n[x] 2\n[x] 3\n[ ] 4\n",
    )
    write_file(root / "Ch1" / "Question 2.txt", "Lonely question\n[x] only one\n")
    write_file(root / "Ch1" / "wrong.txt", "not a question\n")
    write_file(root / "Ch1" / "Images" / "question_18.jpg", binary=True)
    write_file(root / "Ch1" / "Images" / "question_180.jpg", binary=True)
    write_file(
        root / "Ch2" / "Frage 3.txt",
        "Legacy question\n2\nYes\ntrue\nNo\nfalse\n",
    )
    return root


@pytest.fixture
def client(monkeypatch, db_path, web_root, quiz_root):
    """Flask test client on an isolated database and quiz folder."""
    monkeypatch.setenv("QUIZ_DB", str(db_path))
    monkeypatch.setenv("QUIZ_WEB_ROOT", str(web_root))
    monkeypatch.delenv("QUIZ_IMPORT_MODE", raising=False)
    monkeypatch.delenv("QUIZ_ASSET_ROOT", raising=False)
    monkeypatch.setattr(app, "static_folder", str(web_root))

    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def logged_in_client(client):
    with client.session_transaction() as sess:
        sess["user_id"] = "user-1"
    return client
