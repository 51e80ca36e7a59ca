"""
The grammar a template is compiled with: marker delimiters, the tag table and
the filter table.

Each compilation works on its own clone of the engine's grammar. Overrides
passed to ``clone()`` replace a whole category; a partial ``tags`` table
drops every built-in tag it does not list.
"""

import re

from django.core.exceptions import ImproperlyConfigured

STATEMENT = 'statement'
EXPRESSION = 'expression'
COMMENT = 'comment'

# Alternation order of the tokenizer regex.
MARKER_KINDS = (STATEMENT, EXPRESSION, COMMENT)

DEFAULT_DELIMITERS = {
    STATEMENT: ('{%', '%}'),
    EXPRESSION: ('{{', '}}'),
    COMMENT: ('{#', '#}'),
}


def validate_delimiters(delimiters):
    """
    Check that ``delimiters`` maps every marker kind to a pair of non-empty
    strings and that no opening delimiter is a prefix of another one.
    """
    if set(delimiters) != set(MARKER_KINDS):
        raise ImproperlyConfigured(
            "Delimiters must be given for exactly %s, got %s." % (
                ', '.join(MARKER_KINDS), ', '.join(sorted(delimiters)),
            )
        )
    for kind in MARKER_KINDS:
        pair = delimiters[kind]
        if (not isinstance(pair, (tuple, list)) or len(pair) != 2 or
                not all(isinstance(d, str) and d for d in pair)):
            raise ImproperlyConfigured(
                "The %s delimiters must be a pair of non-empty strings, got %r." % (kind, pair)
            )
    for kind in MARKER_KINDS:
        opener = delimiters[kind][0]
        for other in MARKER_KINDS:
            if other != kind and delimiters[other][0].startswith(opener):
                raise ImproperlyConfigured(
                    "The %s opening delimiter %r overlaps the %s opening delimiter %r." % (
                        kind, opener, other, delimiters[other][0],
                    )
                )


def build_tag_re(delimiters):
    # 找到各个块 {%%}|{{}}|{##}
    return re.compile('(%s)' % '|'.join(
        '%s.*?%s' % (re.escape(delimiters[kind][0]), re.escape(delimiters[kind][1]))
        for kind in MARKER_KINDS
    ))


class Grammar:
    def __init__(self, tags=None, filters=None, delimiters=None):
        self.tags = dict(tags or {})
        self.filters = dict(filters or {})
        if delimiters is None:
            delimiters = DEFAULT_DELIMITERS
        validate_delimiters(delimiters)
        self.delimiters = {kind: tuple(delimiters[kind]) for kind in MARKER_KINDS}
        self.tag_re = build_tag_re(self.delimiters)

    def __repr__(self):
        return '<%s: %d tags, %d filters, delimiters=%r>' % (
            self.__class__.__name__, len(self.tags), len(self.filters), self.delimiters,
        )

    def clone(self, tags=None, filters=None, delimiters=None):
        """
        Return a copy of this grammar, replacing each category given.
        """
        return Grammar(
            tags=self.tags if tags is None else tags,
            filters=self.filters if filters is None else filters,
            delimiters=self.delimiters if delimiters is None else delimiters,
        )

    def add_library(self, lib):
        """加入自定义的 tags 和 filters"""
        self.tags.update(lib.tags)
        self.filters.update(lib.filters)
