"""
stencil: a single-pass template compiler.

Templates mix literal text, ``{{ expression|filter:arg }}`` output markers,
``{% tag %}`` statements and ``{# comments #}``. Compiling one produces a
``Template`` whose ``render(context)`` returns a string and whose
``referenced_variables`` lists the context names it reads.

Here's a breakdown of the modules:

- stencil.base: lexer, parser, filter expressions, Template
- stencil.codegen: instruction set, assembler and interpreter
- stencil.grammar: delimiters, tag and filter tables
- stencil.engine: configuration and the default grammar
- stencil.context: render context stack
- stencil.defaulttags, stencil.defaultfilters: built-in vocabulary
- stencil.library: registration of custom tags and filters
- stencil.smartif: conditions for if/elif
"""

from .engine import Engine

__all__ = ('Engine',)

# Public exceptions
from .base import VariableDoesNotExist                                  # NOQA isort:skip
from .context import ContextPopException                                # NOQA isort:skip
from .exceptions import FilterDoesNotExist, TemplateSyntaxError         # NOQA isort:skip

# Template parts
from .base import Template, Token, TokenType, Variable, compile         # NOQA isort:skip
from .codegen import Block, Inline, Instruction                         # NOQA isort:skip
from .context import Context                                            # NOQA isort:skip
from .grammar import Grammar                                            # NOQA isort:skip

# Library management
from .library import Library                                            # NOQA isort:skip


__all__ += (
    'Template', 'Context', 'Grammar', 'Library', 'Block', 'Inline',
    'Instruction', 'compile',
)
