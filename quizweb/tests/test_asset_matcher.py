"""Test linking question files to images."""

import pytest

from quizweb.asset_matcher import (
    contains_number,
    digit_token,
    find_asset_dir,
    is_image,
    list_images,
    match_assets,
    number_token,
    public_asset_path,
)


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("Question 18.txt", 18),
        ("question18.txt", 18),
        ("Kapitel 2 Frage 7.txt", 2),
        ("007.txt", 7),
        ("Intro.txt", None),
        ("v2/Intro.txt", None),
    ],
)
def test_number_token(filename, expected):
    assert number_token(filename) == expected


def test_boundary_matching():
    assert contains_number("question_18.jpg", 18)
    assert contains_number("18.png", 18)
    assert contains_number("img-18-b.png", 18)
    assert not contains_number("img_018.png", 18)
    assert contains_number("img_018.png", "018")
    assert not contains_number("question_180.jpg", 18)
    assert not contains_number("img_118.png", 18)
    assert not contains_number("img_1.png", 18)


def test_match_assets_question_18():
    images = ["question_18.jpg", "img_180.png", "question_180.jpg", "18_detail.PNG", "18.txt"]
    assert match_assets("Question 18.txt", images, "Quiz", "Ch1", "Images") == [
        "Quiz/Ch1/Images/18_detail.PNG",
        "Quiz/Ch1/Images/question_18.jpg",
    ]


def test_match_assets_without_number_returns_nothing():
    assert match_assets("Intro.txt", ["1.png", "intro.png"], "Quiz", "Ch1", "Images") == []


def test_same_number_is_shared_between_questions():
    images = ["pic_5.png"]
    first = match_assets("Question 5.txt", images, "Quiz", "Ch1", "Images")
    second = match_assets("Frage 5 (alt).txt", images, "Quiz", "Ch1", "Images")
    assert first == second == ["Quiz/Ch1/Images/pic_5.png"]


@pytest.mark.parametrize(
    "name, expected",
    [
        ("a.png", True),
        ("a.JPG", True),
        ("a.jpeg", True),
        ("a.gif", True),
        ("a.webp", True),
        ("a.bmp", True),
        ("a.svg", False),
        ("a.txt", False),
        ("png", False),
    ],
)
def test_is_image(name, expected):
    assert is_image(name) is expected


def test_public_asset_path():
    assert public_asset_path("Quiz", "Ch 1", "Images", "q 1.png") == "Quiz/Ch 1/Images/q 1.png"
    assert public_asset_path("static/Quiz/", "Ch1", "img", "a.png") == "static/Quiz/Ch1/img/a.png"


@pytest.mark.parametrize("bad", ["..", "a/b.png", "a\\b.png", ""])
def test_public_asset_path_stays_inside_chapter(bad):
    with pytest.raises(ValueError):
        public_asset_path("Quiz", "Ch1", "Images", bad)


def test_find_asset_dir_is_case_insensitive(tmp_path):
    (tmp_path / "IMAGES").mkdir()
    found = find_asset_dir(tmp_path, ["Images", "Bilder"])
    assert found is not None and found.name == "IMAGES"


def test_find_asset_dir_uses_configured_order(tmp_path):
    (tmp_path / "Bilder").mkdir()
    (tmp_path / "img").mkdir()
    assert find_asset_dir(tmp_path, ["Images", "img", "Bilder"]).name == "img"
    assert find_asset_dir(tmp_path / "Bilder", ["Images"]) is None


def test_list_images(tmp_path):
    for name in ["b.png", "a.jpg", "notes.txt"]:
        (tmp_path / name).write_bytes(b"x")
    (tmp_path / "sub.png").mkdir()
    assert list_images(tmp_path) == ["a.jpg", "b.png"]
    assert list_images(None) == []


def test_digit_token_keeps_leading_zeros():
    assert digit_token("Question 05.txt") == "05"
    assert digit_token("Intro.txt") is None


def test_leading_zeros_must_match_as_written():
    images = ["img_5.png", "img_05.png", "img_005.png"]
    assert match_assets("Question 05.txt", images, "Quiz", "Ch1", "Images") == ["Quiz/Ch1/Images/img_05.png"]
    assert match_assets("Question 5.txt", images, "Quiz", "Ch1", "Images") == ["Quiz/Ch1/Images/img_5.png"]
