"""Default tags used by the template system, available to all templates."""
import itertools

from django.utils.text import smart_split

from .base import render_value_in_context, sanitize
from .codegen import (
    Block, Branch, ClearFlag, Else, EndBranch, EndSkip, FlagUnset, Inline,
    Instruction, LoopNext, LoopStart, PopScope, PushScope, SetFlag, Skip,
)
from .exceptions import TemplateSyntaxError
from .library import Library
from .smartif import parse_condition

register = Library()

# Process-wide id source for make_guid. Starts at 1000 when this module is
# first imported and only ever increases; it is never reset.
_guid_counter = itertools.count(1000)


def next_guid():
    return next(_guid_counter)


class Cycle(Instruction):
    def __init__(self, values, counter_name):
        self.values = values
        self.counter_name = counter_name

    def __repr__(self):
        return "<%s: %s>" % (self.__class__.__name__, ' '.join(str(v) for v in self.values))

    def execute(self, frame):
        context = frame.context
        count = context.get(self.counter_name, 0)
        # 计数器放在调用方的上下文里，每次渲染各自独立
        context.set_root(self.counter_name, count + 1)
        value = self.values[count % len(self.values)].resolve(context)
        frame.write(render_value_in_context(value, context))


class Assign(Instruction):
    def __init__(self, name, value):
        self.name = name
        self.value = value

    def __repr__(self):
        return "<%s: %s=%r>" % (self.__class__.__name__, self.name, self.value)

    def execute(self, frame):
        frame.context.set_root(self.name, self.value)


@register.tag('if')
def do_if(remainder, parser):
    """
    Evaluate a condition and render the block when it is true.

    ::

        {% if athlete_list|length > 1 %}
            Number of athletes: {{ athlete_list|length }}
        {% elif athlete_in_locker_room_list %}
            Athletes should be out of the locker room soon!
        {% else %}
            No athletes.
        {% endif %}

    Operators: ``==``, ``!=``, ``is``, ``is not``, ``in``, ``not in``,
    ``<``, ``>``, ``<=``, ``>=``, and a leading ``not``.
    """
    return Block(start=[Branch(parse_condition(remainder, parser))], end=[EndBranch()])


@register.tag('elif')
def do_elif(remainder, parser):
    return Inline([Else(), Branch(parse_condition(remainder, parser), chained=True)])


@register.tag('else')
def do_else(remainder, parser):
    return Inline([Else()])


@register.tag('for')
def do_for(remainder, parser):
    """
    Loop over each item in a sequence or mapping.

    ::

        {% for athlete in athlete_list %}{{ athlete.name }}{% endfor %}
        {% for key, value in data %}{{ key }}: {{ value }}{% endfor %}

    With two names, the first is bound to the mapping key (or the sequence
    index) and the second to the value. Loop names do not outlive the loop.
    """
    target, sep, sequence = remainder.partition(' in ')
    loopvars = [sanitize(var) for var in target.split(',')]
    if not sep or not sequence.strip() or len(loopvars) > 2 or not all(loopvars):
        raise TemplateSyntaxError(
            "'for' statements should use the format 'for x in y' or "
            "'for x, y in z': for %s" % remainder
        )
    loop = LoopStart(parser.compile_filter(sequence.strip()), loopvars)
    return Block(start=[PushScope(), loop], end=[LoopNext(), PopScope()])


@register.tag
def empty(remainder, parser):
    """
    Render the rest of a ``for`` block only when the loop ran zero times::

        {% for athlete in athlete_list %}
            {{ athlete.name }}
        {% empty %}
            Sorry, no athletes in this list.
        {% endfor %}
    """
    if not parser.stack or parser.stack[-1].close_name != 'endfor':
        raise TemplateSyntaxError("'empty' must appear directly inside a 'for' block.")
    # one flag per nesting depth, so nested loops don't share it
    flag = 'forloop_iterated%d' % len(parser.stack)
    loop = parser.stack.pop()
    return Block(
        start=[SetFlag(flag)] + loop.end + [Branch(FlagUnset(flag))],
        end=[EndBranch(), ClearFlag(flag)],
        close='endfor',
    )


@register.tag
def cycle(remainder, parser):
    """
    Cycle among the given values, one per execution of the tag::

        {% for o in some_list %}
            <tr class="{% cycle 'row1' 'row2' %}">...</tr>
        {% endfor %}

    Each ``cycle`` tag keeps its own counter in the render context, so a
    fresh context starts again from the first value.
    """
    bits = list(smart_split(remainder))
    if not bits:
        raise TemplateSyntaxError("'cycle' tag requires at least one value.")
    values = [parser.compile_filter(bit) for bit in bits]
    counter_name = 'cycle_counter%d' % parser.next_ordinal('cycle')
    return Inline([Cycle(values, counter_name)])


@register.tag
def comment(remainder, parser):
    """
    Ignore everything between ``{% comment %}`` and ``{% endcomment %}``.
    Tags inside must still be balanced.
    """
    return Block(start=[Skip()], end=[EndSkip()])


@register.tag
def make_guid(remainder, parser):
    """
    Bind a process-wide unique integer to a context name (``guid`` unless
    one is given)::

        {% make_guid field_id %}
        <label for="f{{ field_id }}">...</label><input id="f{{ field_id }}">

    The id is allocated when the template is compiled.
    """
    name = sanitize(remainder) or 'guid'
    return Inline([Assign(name, next_guid())])
