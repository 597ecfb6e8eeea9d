import pytest

from app.utils.text import has_control_chars, is_valid_name, is_valid_slug, slugify


@pytest.mark.parametrize(
    "title,expected",
    [
        ("About Us", "about-us"),
        ("  Hello   World  ", "hello-world"),
        ("Crème brûlée", "creme-brulee"),
        ("snake_case title", "snake-case-title"),
        ("Email me @ home", "email-me-at-home"),
        ("--Already-Sluggy--", "already-sluggy"),
        ("!!!", ""),
    ],
)
def test_slugify(title, expected):
    assert slugify(title) == expected


def test_slugify_output_is_a_valid_slug():
    assert is_valid_slug(slugify("Q3 Roadmap, Part 2 & Beyond"))


def test_is_valid_name():
    assert is_valid_name("Jane Q. Doe")
    assert is_valid_name("R&D, Ops_Team - 2")
    assert is_valid_name("Zoë Ångström")
    assert not is_valid_name("")
    assert not is_valid_name("<script>")
    assert not is_valid_name("semi;colon")


def test_has_control_chars():
    assert has_control_chars("a\x00b")
    assert has_control_chars("bell\x07")
    assert not has_control_chars("tabs\tand\nnewlines\r\n")


def test_is_valid_slug():
    assert is_valid_slug("a-b-c")
    assert not is_valid_slug("A-b")
    assert not is_valid_slug("a--b")
    assert not is_valid_slug("-a")
