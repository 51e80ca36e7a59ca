"""
Conditions for the ``if`` and ``elif`` tags.

Supported forms::

    {% if a %}            truthiness
    {% if not a %}        negation of any condition
    {% if a <op> b %}     op in ==, !=, is, is not, in, not in, <, >, <=, >=

Each operand is a full filter expression, so ``{% if name|lower == "x" %}``
works. Operands are found with quote-aware splitting, which keeps operator
words inside string literals (``"is not"``) from being read as operators.
"""

from django.utils.text import smart_split

from .exceptions import TemplateSyntaxError


def _contains(x, y):
    try:
        return x in y
    except TypeError:
        return False


OPERATORS = {
    '==': lambda x, y: x == y,
    '!=': lambda x, y: x != y,
    'is': lambda x, y: x == y,
    'is not': lambda x, y: x != y,
    'in': _contains,
    'not in': lambda x, y: not _contains(x, y),
    '<': lambda x, y: x < y,
    '>': lambda x, y: x > y,
    '<=': lambda x, y: x <= y,
    '>=': lambda x, y: x >= y,
}

# two-word operators are matched before single words
TWO_WORD_OPERATORS = ('is not', 'not in')


class Comparison:
    def __init__(self, op, left, right):
        self.op = op
        self.left = left
        self.right = right
        self.func = OPERATORS[op]

    def __repr__(self):
        return '(%s %s %s)' % (self.left, self.op, self.right)

    def eval(self, frame):
        x = self.left.resolve(frame.context)
        y = self.right.resolve(frame.context)
        try:
            return self.func(x, y)
        except TypeError:
            # e.g. None < 3: a missing value never satisfies an ordering
            return False


class Negation:
    def __init__(self, condition):
        self.condition = condition

    def __repr__(self):
        return '(not %r)' % (self.condition,)

    def eval(self, frame):
        return not self.condition.eval(frame)


class Truth:
    def __init__(self, expression):
        self.expression = expression

    def __repr__(self):
        return '(%s)' % self.expression

    def eval(self, frame):
        return bool(self.expression.resolve(frame.context))


def find_operator(bits):
    """
    Return ``(index, op, width)`` of the first binary operator in ``bits``,
    or None. The left operand must be non-empty, so index starts at 1.
    """
    for i in range(1, len(bits)):
        pair = ' '.join(bits[i:i + 2])
        if pair in TWO_WORD_OPERATORS:
            return i, pair, 2
        if bits[i] in OPERATORS:
            return i, bits[i], 1
    return None


def parse_condition(text, parser):
    bits = list(smart_split(text))
    if not bits:
        raise TemplateSyntaxError("The condition is empty.")
    if bits[0] == 'not':
        if len(bits) == 1:
            raise TemplateSyntaxError("'not' needs an operand.")
        return Negation(parse_condition(' '.join(bits[1:]), parser))
    found = find_operator(bits)
    if found is None:
        return Truth(parser.compile_filter(' '.join(bits)))
    index, op, width = found
    right = bits[index + width:]
    if not right:
        raise TemplateSyntaxError("Missing right operand for %r in %r." % (op, text))
    return Comparison(
        op,
        parser.compile_filter(' '.join(bits[:index])),
        parser.compile_filter(' '.join(right)),
    )
