"""Tests for expression markers, values and filter pipelines."""

import pytest

import stencil
from stencil import FilterDoesNotExist, Variable


def render(source, context=None, **overrides):
    return stencil.compile(source, **overrides).render(context)


def test_literal_only_template_is_unchanged():
    """Text without markers renders as is, whatever the context."""
    source = "This\nisn't {\na }? 100% {x} #"
    assert render(source) == source
    assert render(source, {"a": 1, "x": "<b>"}) == source


def test_basic_substitution():
    assert render("This is a {{ test }}!", {"test": "tester"}) == "This is a tester!"


def test_dotted_access():
    source = "This is a {{ test.thing }}, cool. {{ test.thing }}"
    result = render(source, {"test": {"thing": "tester"}})
    assert result == "This is a tester, cool. tester"


def test_attribute_and_index_lookup():
    class Article:
        section = "News"

        def headline(self):
            return "Hello"

    context = {"article": Article(), "items": ["a", "b"]}
    assert render("{{ article.section }} {{ article.headline }} {{ items.1 }}", context) == "News Hello b"


def test_missing_variable_renders_empty():
    assert render("[{{ nope }}][{{ a.b.c }}]", {"a": {}}) == "[][]"


def test_missing_variable_flows_into_filters():
    assert render('{{ nope|default:"fallback" }}') == "fallback"


def test_string_literal():
    assert render('This is a {{ "testing"|upper }}', {"test": "tester"}) == "This is a TESTING"


def test_single_quoted_literal_with_escaped_quote():
    assert render(r"{{ 'it\'s' }}") == "it&#x27;s"


def test_integer_literal():
    assert render("{{ 3|add:4 }}") == "7"


def test_range_literal():
    assert render("{% for n in [0..9] %}{{ n }}{% endfor %}") == "0123456789"


def test_filter_argument_literal():
    assert render('This is a {{ test|add:"123" }}', {"test": "tester"}) == "This is a tester123"


def test_filter_argument_variable():
    assert render("{{ a|add:b }}", {"a": 2, "b": 40}) == "42"


def test_pluralize_arguments():
    source = (
        'You have {{ count1 }} cherr{{ count1|pluralize:"ies,y" }} '
        'and {{ count2 }} apple{{ count2|pluralize:"s," }}.'
    )
    assert render(source, {"count1": 3, "count2": 1}) == "You have 3 cherries and 1 apple."


def test_filters_apply_left_to_right():
    filters = {
        "a": lambda s: ["a", "b", "correct", "c"],
        "b": lambda s, a: s[a],
        "caps": lambda s: s.upper(),
    }
    assert render("This is a {{ test|a|b:2|caps }}", {"test": "tester"}, filters=filters) == "This is a CORRECT"


def test_separator_inside_quotes_is_not_a_filter():
    assert render('{{ "a|b"|upper }}') == "A|B"


def test_variable_names_are_sanitized():
    assert render("{{ te-st! }}", {"test": "ok"}) == "ok"


def test_html_escaping():
    context = {"test": "<script>&copy;</script>"}
    result = render("Testing {{ test }} testing {{ test|safe }}", context)
    assert result == "Testing &lt;script&gt;&amp;copy;&lt;/script&gt; testing <script>&copy;</script>"


def test_autoescape_off():
    context = stencil.Context({"test": "<b>"}, autoescape=False)
    assert stencil.compile("{{ test }}").render(context) == "<b>"


def test_unknown_filter_fails_at_render_time():
    template = stencil.compile("{{ test|nosuchfilter }}")
    with pytest.raises(FilterDoesNotExist):
        template.render({"test": "x"})


def test_referenced_variables():
    template = stencil.compile(
        "{{ a }}{{ b.c|add:d }}{% if e == 1 %}{{ a }}{% endif %}"
        "{% for x in items %}{{ x }}{% endfor %}{{ 'lit' }}{{ 3 }}"
    )
    assert template.referenced_variables == ["a", "b.c", "d", "e", "items", "x"]


def test_variable_resolve():
    c = {"article": {"section": "News"}}
    assert Variable("article.section").resolve(c) == "News"
    assert Variable('"News"').resolve(c) == "News"
    assert Variable("12").resolve(c) == 12
    assert Variable("[1..3]").resolve(c) == range(1, 4)
