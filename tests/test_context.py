import pytest

import stencil
from stencil import Context, ContextPopException
from stencil.context import make_context


def test_context_push_pop():
    c = Context({"a": 1})
    assert c["a"] == 1
    c.push()
    c["a"] = 2
    assert c["a"] == 2
    assert c.get("a") == 2
    assert c.pop() == {"a": 2}
    assert c["a"] == 1
    assert c.get("foo", 42) == 42


def test_push_with_values():
    c = Context({"a": 1})
    assert c.push(a=3) == {"a": 3}
    assert c["a"] == 3


def test_root_layer_cannot_be_popped():
    c = Context({"a": 1})
    with pytest.raises(ContextPopException):
        c.pop()


def test_missing_key():
    c = Context()
    with pytest.raises(KeyError):
        c["missing"]
    assert c.get("missing") is None
    assert c["True"] is True


def test_set_root_writes_callers_dict():
    data = {"a": 1}
    c = Context(data)
    c.push()
    c.push()
    c.set_root("counter", 5)
    c.pop()
    c.pop()
    assert data == {"a": 1, "counter": 5}


def test_unwind_keeps_root_layers():
    c = Context({"a": 1})
    c.push(b=2)
    c.push(c=3)
    c.unwind(3)
    assert c.dicts[1:] == [{"a": 1}, {"b": 2}]
    c.unwind(0)
    assert c.dicts[1:] == [{"a": 1}]


def test_make_context():
    c = Context()
    assert make_context(c) is c
    made = make_context({"a": 1}, autoescape=False)
    assert made["a"] == 1
    assert made.autoescape is False
    with pytest.raises(TypeError):
        make_context("abc")


def test_render_binds_template():
    seen = []

    def spy(value):
        seen.append(value)
        return ""

    context = Context({"a": 1})
    template = stencil.compile("{{ a|spy }}", filters={"spy": spy})
    template.render(context)
    assert seen == [1]
    assert context.template is None
    with context.bind_template(template):
        with pytest.raises(RuntimeError):
            with context.bind_template(template):
                pass


def test_caller_dict_receives_cycle_counters_only_at_root():
    data = {"items": [1, 2, 3]}
    stencil.compile("{% for n in items %}{% cycle 'x' 'y' %}{% endfor %}").render(data)
    assert data["cycle_counter0"] == 3
    assert "n" not in data


def test_failed_render_leaves_no_loop_scope_behind():
    def boom(value):
        raise ValueError(value)

    context = Context({"items": [1], "n": "root"})
    template = stencil.compile("{% for n in items %}{{ n|boom }}{% endfor %}", filters={"boom": boom})
    with pytest.raises(ValueError):
        template.render(context)
    assert len(context.dicts) == 2
    assert stencil.compile("{{ n }}").render(context) == "root"
