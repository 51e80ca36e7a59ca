"""
This module contains generic exceptions used by the template engine.
"""


class TemplateSyntaxError(Exception):
    """
    The exception used for syntax errors during parsing or rendering.

    The parser attaches the offending ``Token`` as ``token``; with a debug
    engine the template also attaches ``template_debug``.
    """
    pass


class FilterDoesNotExist(LookupError):
    """A filter name used in a template has no registered implementation."""
    pass
