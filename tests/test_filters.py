"""Tests for the built-in filters."""

import pytest
from django.utils.safestring import SafeData, mark_safe

import stencil
from stencil.defaultfilters import (
    add, capfirst, contains, default, divisibleby, first, join, last, length,
    pluralize, stringfilter, subtract, upper,
)


def render(source, context=None):
    return stencil.compile(source).render(context)


def test_case_filters():
    context = {"s": "hello wORLD"}
    assert render("{{ s|upper }}|{{ s|lower }}|{{ s|capfirst }}|{{ s|title }}", context) == (
        "HELLO WORLD|hello world|Hello wORLD|Hello World"
    )


def test_string_filters_accept_non_strings():
    assert upper(None) == ""
    assert upper(12) == "12"
    assert capfirst("") == ""
    assert render("{{ missing|upper }}") == ""


@pytest.mark.parametrize("value, arg, expected", [
    (1, 2, 3),
    ("1", "2", 3),
    ("a", "b", "ab"),
    ([1], [2], [1, 2]),
    ("a", 1, ""),
])
def test_add(value, arg, expected):
    assert add(value, arg) == expected


@pytest.mark.parametrize("value, arg, expected", [
    (10, 3, 7),
    ("10", "3", 7),
    (10, 2.5, 7.5),
    ("1.5", 1, 0.5),
    (None, 1, ""),
    ("a", 1, ""),
])
def test_subtract(value, arg, expected):
    assert subtract(value, arg) == expected


def test_divisibleby():
    assert divisibleby(9, 3) is True
    assert divisibleby("10", 3) is False
    assert render("{% if n|divisibleby:2 %}even{% endif %}", {"n": 4}) == "even"


def test_divisibleby_missing_or_non_numeric_is_false():
    assert divisibleby(None, 2) is False
    assert divisibleby("abc", 2) is False
    assert divisibleby(4, 0) is False
    assert render("[{{ nope|divisibleby:2 }}]") == "[False]"


def test_contains():
    assert contains(["a", "b"], "a") is True
    assert contains({"k": 1}, "k") is True
    assert contains("abc", "d") is False
    assert contains(None, "a") is False
    assert render('{% if tags|contains:"x" %}yes{% endif %}', {"tags": ["x"]}) == "yes"


def test_escape_filters():
    context = {"s": "<b>&", "js": "a'b"}
    assert render("{{ s|escape }}", context) == "&lt;b&gt;&amp;"
    assert render("{{ s|safe|escape }}", context) == "&lt;b&gt;&amp;"
    assert render("{{ js|escapejs }}", context) == "a\\u0027b"


def test_safe():
    assert render("{{ s|safe }}", {"s": "<i>"}) == "<i>"
    assert render("{{ missing|safe }}") == ""


def test_is_safe_filters_keep_safe_input_safe():
    context = {"s": "<i>"}
    assert render("{{ s|safe|capfirst }}", context) == "<i>"
    assert render("{{ s|safe|upper }}", context) == "&lt;I&gt;"


def test_sequence_filters():
    assert first([1, 2]) == 1
    assert first([]) == ""
    assert last("abc") == "c"
    assert last(None) == ""
    assert length([1, 2, 3]) == 3
    assert length(None) == 0
    assert join(["a", 1], "-") == "a-1"
    assert join(5, "-") == 5


def test_join_in_template():
    assert render('{{ items|join:", " }}', {"items": ["<a>", "b"]}) == "&lt;a&gt;, b"


def test_default():
    assert default(0, "x") == "x"
    assert default("v", "x") == "v"
    assert render('{{ ""|default:"none" }}') == "none"


@pytest.mark.parametrize("value, arg, expected", [
    (0, "s,", "s"),
    (1, "s,", ""),
    (2, "s,", "s"),
    ("1", "ies,y", "y"),
    (5, "ies,y", "ies"),
    ("many", "es,", "es"),
    (1, "es", ""),
])
def test_pluralize(value, arg, expected):
    assert pluralize(value, arg) == expected


def test_pluralize_default_argument():
    assert render("{{ n|pluralize }}", {"n": 2}) == "s"
    assert render("{{ n|pluralize }}", {"n": 1}) == ""


def test_stringfilter_keeps_decorated_function():
    @stringfilter
    def shout(value):
        return value + "!"

    assert shout._decorated_function.__name__ == "shout"
    shout._decorated_function.is_safe = True
    result = shout(mark_safe("<b>"))
    assert result == "<b>!"
    assert isinstance(result, SafeData)
