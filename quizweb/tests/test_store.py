import random

from quizweb.store import check_bank, list_chapters, list_mistakes, load_quiz, record_mistake
from quizweb.txt_importer import import_questions


def test_list_chapters_sorted(conn, quiz_root):
    import_questions(conn, quiz_root)
    assert list_chapters(conn) == ["Ch1", "Ch2"]


def test_load_quiz_shuffles_with_given_rng(conn, quiz_root):
    import_questions(conn, quiz_root)
    first = load_quiz(conn, "Ch1", rng=random.Random(7))
    assert len(first) == 2
    for q in first:
        assert q["chapter"] == "Ch1"
        assert all(set(c) == {"id", "text"} for c in q["choices"])


def test_load_quiz_unknown_chapter_is_empty(conn, quiz_root):
    import_questions(conn, quiz_root)
    assert load_quiz(conn, "Nope") == []


def test_imported_bank_passes_check(conn, quiz_root):
    import_questions(conn, quiz_root)
    assert check_bank(conn) == []


def test_check_bank_reports_broken_rows(conn):
    conn.execute(
        "INSERT INTO question (question_id, chapter, text, time_limit_s, source_file) VALUES ('q1','Ch1','Broken',30,'Q 1.txt')"
    )
    conn.execute("INSERT INTO choice (choice_id, question_id, text, is_correct, position) VALUES ('c1','q1','a',0,0)")
    conn.execute("INSERT INTO asset (asset_id, question_id, relative_path) VALUES ('a1','q1','Quiz/Ch2/Images/1.png')")
    conn.commit()

    problems = check_bank(conn)

    assert "Ch1/Q 1.txt: 1 choice(s)" in problems
    assert "Ch1/Q 1.txt: no correct choice" in problems
    assert "Ch1/Q 1.txt: asset outside chapter folder: Quiz/Ch2/Images/1.png" in problems


def test_mistakes_outlive_replaced_questions(conn, quiz_root):
    import_questions(conn, quiz_root)
    qid = conn.execute("SELECT question_id FROM question WHERE natural_key='ch2::frage 3'").fetchone()[0]
    record_mistake(conn, "user-1", qid, ["x"])
    conn.commit()

    import_questions(conn, quiz_root, mode="replace")

    (mistake,) = list_mistakes(conn, "user-1")
    assert mistake["question_id"] == qid
    assert mistake["question"] is None
    assert list_mistakes(conn, "someone-else") == []
