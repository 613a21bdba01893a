import logging
import os
import sqlite3
import threading
from typing import Any, Dict, Optional, Set

from flask import Flask, g, jsonify, request, session
from dotenv import load_dotenv

from .config import ImportConfig, resolve_web_root
from .db_utils import connect, ensure_db_path
from .init_db import ensure_schema
from .scoring import PayloadError, parse_answers, score_submission
from .store import list_chapters, list_mistakes, load_quiz
from .txt_importer import run_import


# Load environment
load_dotenv()

# Images under the web root are served as-is, e.g. /Quiz/Ch1/Images/q1.png
app = Flask(
    __name__,
    static_folder=str(resolve_web_root(os.environ.get("QUIZ_WEB_ROOT"))),
    static_url_path="",
)
app.secret_key = os.environ.get("FLASK_SECRET", "dev-secret")
app.json.sort_keys = False

# Databases prepared (schema and startup import) in this process, and the
# error of any preparation that failed. Guarded by _prepare_lock.
_prepared_dbs: Set[str] = set()
_failed_dbs: Dict[str, BaseException] = {}
_prepare_lock = threading.Lock()


# --- Database helpers ---

def startup_import(conn: sqlite3.Connection, config: Optional[ImportConfig] = None) -> None:
    """Import the quiz folder into a freshly opened database."""
    config = config or ImportConfig.from_env()
    if not config.import_on_start:
        app.logger.info("Startup import disabled")
        return
    summary = run_import(conn, config)
    app.logger.info(
        "Startup import: %d created, %d updated, %d unchanged, %d skipped",
        summary.created,
        summary.updated,
        summary.unchanged,
        len(summary.skipped),
    )


class StartupError(RuntimeError):
    """Raised for every request once the database could not be prepared."""


def prepare_database(db_path=None) -> None:
    """Create or migrate the schema and run the startup import, once per database.

    Concurrent callers wait for the first one to finish. A failed preparation
    is not retried; later calls raise ``StartupError``.
    """
    db_path = ensure_db_path(str(db_path) if db_path else os.environ.get("QUIZ_DB"))
    key = str(db_path)
    with _prepare_lock:
        if key in _prepared_dbs:
            return
        if key in _failed_dbs:
            raise StartupError(f"database {key} failed to prepare") from _failed_dbs[key]
        conn = connect(db_path)
        try:
            ensure_schema(conn)
            startup_import(conn)
        except Exception as exc:
            _failed_dbs[key] = exc
            app.logger.error("Preparing database %s failed: %s", key, exc)
            raise
        finally:
            conn.close()
        _prepared_dbs.add(key)


def get_db() -> sqlite3.Connection:
    if "db" not in g:
        db_path = ensure_db_path(os.environ.get("QUIZ_DB"))
        prepare_database(db_path)
        g.db = connect(db_path)
    return g.db


@app.teardown_appcontext
def close_db(_: Any) -> None:
    db = g.pop("db", None)
    if db is not None:
        db.close()


def _current_user_id() -> Optional[str]:
    """Identity set in the session by the authentication layer, if any."""
    uid = session.get("user_id")
    if uid is None or uid == "":
        return None
    return str(uid)


# --- Routes ---

@app.route("/api/chapters")
def api_chapters():
    return jsonify(list_chapters(get_db()))


@app.route("/api/quiz")
def api_quiz():
    chapter = (request.args.get("chapter") or "").strip() or None
    return jsonify(load_quiz(get_db(), chapter))


@app.route("/api/submit", methods=["POST"])
def api_submit():
    data = request.get_json(silent=True)
    try:
        answers = parse_answers(data)
    except PayloadError as exc:
        return jsonify({"error": str(exc)}), 400

    uid = _current_user_id()
    result = score_submission(get_db(), answers, uid)
    app.logger.info("[SUBMIT] uid=%s total=%d correct=%d", uid, result.total, result.correct)
    return jsonify(result.to_dict())


@app.route("/api/mistakes")
def api_mistakes():
    uid = _current_user_id()
    if uid is None:
        return jsonify({"error": "login required"}), 401
    return jsonify(list_mistakes(get_db(), uid))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(name)s: %(message)s")
    prepare_database()  # a failed import stops the server here
    app.run(debug=True)  # for local development
