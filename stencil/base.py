"""
This is the stencil template system.

How it works:

The Lexer.tokenize() method converts a template string into tokens, which
can be plain text (TokenType.TEXT), expressions (TokenType.EXPRESSION),
statement tags (TokenType.STATEMENT) or comments (TokenType.COMMENT).

The Parser() class walks the tokens once. Text and expressions become
instructions straight away; statement tags are looked up in the grammar's
tag table and return an Inline or Block result. A Block pushes a pending
close entry, and the statement whose first word matches the top entry's
close name pops it and emits the block's end instructions. All instructions
go to a CodeBuilder, which links them into a Program.

The Template class is a convenience wrapper that takes care of template
compilation and rendering.

Usage:

>>> import stencil
>>> t = stencil.compile('<html>{% if test %}<h1>{{ varvalue }}</h1>{% endif %}</html>')

(t is now a compiled template, and its render() method can be called multiple
times with multiple contexts)

>>> t.render({'test': True, 'varvalue': 'Hello'})
'<html><h1>Hello</h1></html>'
>>> t.render({'test': False, 'varvalue': 'Hello'})
'<html></html>'
>>> t.referenced_variables
['test', 'varvalue']
"""

import logging
import re
from collections import Counter, namedtuple
from enum import Enum
from inspect import getcallargs

from django.utils.html import conditional_escape, escape
from django.utils.safestring import SafeData, mark_safe
from django.utils.text import unescape_string_literal

from .codegen import Block, CodeBuilder, Inline, Instruction
from .context import BaseContext, make_context
from .exceptions import FilterDoesNotExist, TemplateSyntaxError
from .grammar import COMMENT, EXPRESSION, STATEMENT

# template syntax constants
FILTER_SEPARATOR = '|'
FILTER_ARGUMENT_SEPARATOR = ':'
VARIABLE_ATTRIBUTE_SEPARATOR = '.'

logger = logging.getLogger('stencil.template')


class TokenType(Enum):
    TEXT = 0
    EXPRESSION = 1
    STATEMENT = 2
    COMMENT = 3


MARKER_TOKEN_TYPES = {
    STATEMENT: TokenType.STATEMENT,
    EXPRESSION: TokenType.EXPRESSION,
    COMMENT: TokenType.COMMENT,
}


class VariableDoesNotExist(Exception):

    def __init__(self, msg, params=()):
        self.msg = msg
        self.params = params

    def __str__(self):
        return self.msg % self.params


class Template:
    def __init__(self, template_string, engine=None, name=None, **overrides):
        """
        Compile ``template_string``. ``overrides`` may replace the ``tags``,
        ``filters`` or ``delimiters`` of the engine's grammar for this
        template only.
        """
        if engine is None:
            from .engine import Engine
            engine = Engine.get_default()
        self.name = name
        self.engine = engine
        self.source = str(template_string)
        self.grammar = engine.grammar.clone(**overrides)
        self.program, self.referenced_variables = self.compile_program()

    def __iter__(self):
        return iter(self.program)

    def render(self, context=None):
        "Display stage -- can be called many times"
        context = make_context(context, autoescape=self.engine.autoescape)
        if context.template is None:
            with context.bind_template(self):
                context.template_name = self.name
                return self.program.run(context, self)
        return self.program.run(context, self)

    def compile_program(self):
        """
        解析和编译模板为指令序列
        Parse and assemble the template source into a Program. If debug is
        True and a syntax error occurs, the exception is annotated with
        contextual line information where it occurred in the template source.
        """
        tokens = Lexer(self.source, self.grammar).tokenize()
        parser = Parser(tokens, self.grammar)
        try:
            program = parser.parse().build()
        except TemplateSyntaxError as e:
            if self.engine.debug and getattr(e, 'token', None) is not None:
                e.template_debug = self.get_exception_info(e, e.token)
            raise
        variables = list(dict.fromkeys(parser.variables))
        logger.debug(
            "Compiled template '%s': %d instructions, %d variables.",
            self.name or 'unknown', len(program), len(variables),
        )
        return program, variables

    def get_exception_info(self, exception, token):
        """
        DEBUG 时返回错误行
        Return a dictionary containing contextual line information of where
        the exception occurred in the template: the message, the surrounding
        source lines, the failing line split into before/during/after the
        token, and the token's start and end offsets.
        """
        start, end = token.position
        context_lines = 10
        line = 0
        upto = 0
        source_lines = []
        before = during = after = ""
        for num, next in enumerate(linebreak_iter(self.source)):
            if start >= upto and end <= next:
                line = num
                before = escape(self.source[upto:start])
                during = escape(self.source[start:end])
                after = escape(self.source[end:next])
            source_lines.append((num, escape(self.source[upto:next])))
            upto = next
        total = len(source_lines)

        top = max(1, line - context_lines)
        bottom = min(total, line + 1 + context_lines)

        # In some rare cases exc_value.args can be empty or an invalid
        # string.
        try:
            message = str(exception.args[0])
        except (IndexError, UnicodeDecodeError):
            message = '(Could not get exception message)'

        return {
            'message': message,
            'source_lines': source_lines[top:bottom],
            'before': before,
            'during': during,
            'after': after,
            'top': top,
            'bottom': bottom,
            'total': total,
            'line': line,
            'name': self.name or '<unknown source>',
            'start': start,
            'end': end,
        }


def compile(source, engine=None, **overrides):
    """
    Compile ``source`` into a Template. ``overrides`` replaces whole grammar
    categories (``tags``, ``filters``, ``delimiters``) for this compilation.
    """
    return Template(source, engine=engine, **overrides)


def linebreak_iter(template_source):
    """行数生成器"""
    yield 0
    p = template_source.find('\n')
    while p >= 0:
        yield p + 1
        p = template_source.find('\n', p + 1)
    yield len(template_source) + 1


class Token:
    def __init__(self, token_type, contents, position=None, lineno=None):
        """
        A token representing a string from the template.

        token_type
            A TokenType, either .TEXT, .EXPRESSION, .STATEMENT, or .COMMENT.

        contents
            The token source string, without delimiters.

        position
            A tuple containing the start and end index of the token in the
            template source, delimiters included.

        lineno
            The line number the token appears on in the template source.
        """
        self.token_type, self.contents = token_type, contents
        self.lineno = lineno
        self.position = position

    def __str__(self):
        token_name = self.token_type.name.capitalize()
        return ('<%s token: "%s...">' %
                (token_name, self.contents[:20].replace('\n', '')))


class Lexer:
    def __init__(self, template_string, grammar):
        self.template_string = template_string
        self.delimiters = grammar.delimiters
        self.tag_re = grammar.tag_re

    def tokenize(self):
        """
        给定模板返回一列 token
        Split the template string into tokens, annotating each with its start
        and end position in the source.
        """
        lineno = 1
        result = []
        upto = 0
        for match in self.tag_re.finditer(self.template_string):
            start, end = match.span()
            if start > upto:
                token_string = self.template_string[upto:start]
                result.append(self.create_token(token_string, (upto, start), lineno, in_tag=False))
                lineno += token_string.count('\n')
                upto = start
            token_string = self.template_string[start:end]
            result.append(self.create_token(token_string, (start, end), lineno, in_tag=True))
            lineno += token_string.count('\n')
            upto = end
        last_bit = self.template_string[upto:]
        if last_bit:
            result.append(self.create_token(last_bit, (upto, upto + len(last_bit)), lineno, in_tag=False))
        return result

    def create_token(self, token_string, position, lineno, in_tag):
        """
        把 token 字符串转化成 Token 对象返回
        If in_tag is True, the string is a marker and its kind is the one
        whose opening delimiter it starts with; otherwise it is plain text.
        """
        if in_tag:
            for kind, (start, end) in self.delimiters.items():
                if token_string.startswith(start):
                    contents = token_string[len(start):len(token_string) - len(end)]
                    if kind != COMMENT:
                        contents = contents.strip()
                    return Token(MARKER_TOKEN_TYPES[kind], contents, position, lineno)
        return Token(TokenType.TEXT, token_string, position, lineno)


PendingClose = namedtuple('PendingClose', 'close_name end token')


class Parser:
    def __init__(self, tokens, grammar):
        self.tokens = tokens
        self.grammar = grammar
        self.tags = grammar.tags
        self.filters = grammar.filters
        # pending close entries of the blocks currently open, innermost last
        self.stack = []
        # raw names of every variable referenced, in source order
        self.variables = []
        self.code = CodeBuilder()
        self.ordinals = Counter()

    def parse(self):
        """
        迭代 tokens 编译每一个为指令
        Iterate through the tokens once, emitting instructions into the code
        builder, and return the builder. Raise TemplateSyntaxError for an
        unknown tag or a block left open at the end of the template.
        """
        for token in self.tokens:
            # Use the raw values here for TokenType.* for a tiny performance boost.
            if token.token_type.value == 0:  # TokenType.TEXT
                if token.contents:
                    self.code.add([EmitLiteral(token.contents)], token)
            elif token.token_type.value == 1:  # TokenType.EXPRESSION
                if not token.contents:
                    raise self.error(token, 'Empty variable tag on line %d' % token.lineno)
                try:
                    filter_expression = self.compile_filter(token.contents)
                except TemplateSyntaxError as e:
                    raise self.error(token, e)
                self.code.add([EmitExpression(filter_expression)], token)
            elif token.token_type.value == 2:  # TokenType.STATEMENT
                self.statement(token)
            # TokenType.COMMENT contributes nothing

        if self.stack:
            self.unclosed_block_tag()
        return self.code

    def statement(self, token):
        try:
            command = token.contents.split()[0]  # 第一个单词为命令
        except IndexError:
            raise self.error(token, 'Empty block tag on line %d' % token.lineno)
        remainder = token.contents[len(command):].strip()

        # 栈顶的结束标记，算法同有效括号匹配
        if self.stack and command == self.stack[-1].close_name:
            pending = self.stack.pop()
            self.code.add(pending.end, token)
            return

        try:
            compile_func = self.tags[command]
        except KeyError:
            self.invalid_block_tag(token, command)

        try:
            result = compile_func(remainder, self)
        except Exception as e:
            raise self.error(token, e)

        if isinstance(result, Block):
            self.code.add(result.start, token)
            if result.end is not None:
                self.stack.append(PendingClose(result.close or 'end%s' % command, result.end, token))
        elif isinstance(result, Inline):
            self.code.add(result.code, token)
        else:
            raise self.error(
                token,
                "Tag '%s' returned %r; expected an Inline or a Block." % (command, result),
            )

    def error(self, token, e):
        """
        Return an exception annotated with the originating token. If a token
        is already set, keep it: it points closer to the actual failure.
        """
        if not isinstance(e, Exception):
            e = TemplateSyntaxError(e)
        if not hasattr(e, 'token'):
            e.token = token
        return e

    def invalid_block_tag(self, token, command):
        if self.stack:
            raise self.error(
                token,
                "Invalid block tag on line %d (position %d): '%s', expected '%s'. "
                "Did you forget to register this tag?" % (
                    token.lineno, token.position[0], command, self.stack[-1].close_name,
                ),
            )
        raise self.error(
            token,
            "Invalid block tag on line %d (position %d): '%s'. Did you forget "
            "to register this tag?" % (token.lineno, token.position[0], command)
        )

    def unclosed_block_tag(self):
        pending = self.stack[-1]
        command = pending.token.contents.split()[0]
        msg = "Unclosed tag on line %d: '%s'. Looking for: %s." % (
            pending.token.lineno,
            command,
            pending.close_name,
        )
        raise self.error(pending.token, msg)

    def compile_filter(self, token):
        """
        包装了过滤器表达式 FilterExpression 是个表达式编译器
        """
        return FilterExpression(token, self)

    def compile_value(self, text):
        """
        Resolve a base value or filter argument, recording variable names.
        """
        var = Variable(text)
        if var.lookups is not None:
            self.variables.append(var.var)
        return var

    def next_ordinal(self, kind):
        """Return 0, 1, 2... for successive calls with the same ``kind``."""
        ordinal = self.ordinals[kind]
        self.ordinals[kind] += 1
        return ordinal


# Double- or single-quoted strings, with backslash escapes.
constant_string = r"""(?:"[^"\\]*(?:\\.[^"\\]*)*"|'[^'\\]*(?:\\.[^'\\]*)*')"""

# A separator followed only by complete quoted strings and unquoted text,
# i.e. one that is not inside a string literal.
filter_split_re = re.compile(r"""%s(?=(?:[^"']|%s)*$)""" % (
    re.escape(FILTER_SEPARATOR), constant_string,
))

string_literal_re = re.compile(r"""^(?:'.*'|".*")$""", re.DOTALL)
integer_literal_re = re.compile(r'^[0-9]+$')
range_literal_re = re.compile(r'^\[\s*(-?[0-9]+)\s*\.\.\s*(-?[0-9]+)\s*\]$')
invalid_name_chars_re = re.compile(r'[^a-zA-Z0-9$_.]')


def sanitize(name):
    """Strip everything but letters, digits, '$', '_' and '.' from ``name``."""
    return invalid_name_chars_re.sub('', name)


def split_pipeline(token):
    """Split ``token`` on the filter separator, ignoring separators in quotes."""
    return filter_split_re.split(token)


class FilterExpression:
    """
    解析变量 token 和过滤器
    Parse an expression token and its optional filters (all as a single
    string) into a base Variable and a list of ``(filter_name, arg)`` pairs.
    Sample::

        >>> fe = FilterExpression('variable|default:"Default value"|upper', parser)
        >>> fe.var
        <Variable: 'variable'>
        >>> fe.filters
        [('default', <Variable: '"Default value"'>), ('upper', None)]

    Filters are looked up by name when the expression is resolved, so an
    unknown filter only fails at render time.
    """
    def __init__(self, token, parser):
        self.token = token
        self.filter_table = parser.filters
        base, *specs = split_pipeline(token)
        if not base.strip():
            raise TemplateSyntaxError("Could not find variable at start of %s." % token)
        var_obj = parser.compile_value(base)
        filters = []
        for spec in specs:
            name, sep, arg = spec.partition(FILTER_ARGUMENT_SEPARATOR)
            name = sanitize(name)
            if not name:
                continue
            arg = parser.compile_value(arg) if arg.strip() else None
            filters.append((name, arg))
        self.filters = filters
        self.var = var_obj

    def resolve(self, context):
        obj = self.var.resolve_or_none(context)
        # 链式执行所有过滤器
        for name, arg in self.filters:
            try:
                func = self.filter_table[name]
            except KeyError:
                raise FilterDoesNotExist("Invalid filter: '%s'" % name) from None
            if arg is None:
                new_obj = func(obj)
            else:
                new_obj = func(obj, arg.resolve_or_none(context))
            # 有 is_safe=True 的过滤器保持安全输入的安全性
            if getattr(func, 'is_safe', False) and isinstance(obj, SafeData):
                obj = mark_safe(new_obj)
            else:
                obj = new_obj
        return obj

    def __str__(self):
        return self.token


class Variable:
    """
    A template value: a quoted string literal, an integer, an inclusive
    integer range ``[a..b]``, or a variable resolvable against a given
    context::

        >>> c = {'article': {'section':'News'}}
        >>> Variable('article.section').resolve(c)
        'News'
        >>> Variable('article').resolve(c)
        {'section': 'News'}
        >>> Variable('"News"').resolve(c)
        'News'

    Variable names are reduced to letters, digits, '$', '_' and '.'; each
    '.' separates a lookup step.
    """

    def __init__(self, var):
        if not isinstance(var, str):
            raise TypeError(
                "Variable must be a string, got %s" % type(var))
        self.var = var.strip()
        self.literal = None
        self.lookups = None

        var = self.var
        if string_literal_re.match(var):
            self.literal = unescape_string_literal(var)
        elif integer_literal_re.match(var):
            self.literal = int(var)
        else:
            match = range_literal_re.match(var)
            if match:
                first, last = int(match.group(1)), int(match.group(2))
                self.literal = range(first, last + 1)
                return
            name = sanitize(var)
            if not name:
                raise TemplateSyntaxError("Could not find variable in '%s'" % var)
            self.lookups = tuple(name.split(VARIABLE_ATTRIBUTE_SEPARATOR))

    def resolve(self, context):
        """Resolve this variable against a given context."""
        if self.lookups is not None:
            return self._resolve_lookup(context)
        # We're dealing with a literal, so it's already been "resolved"
        return self.literal

    def resolve_or_none(self, context):
        """Like resolve(), but a failed lookup yields None."""
        try:
            return self.resolve(context)
        except VariableDoesNotExist:
            return None

    def __repr__(self):
        return "<%s: %r>" % (self.__class__.__name__, self.var)

    def __str__(self):
        return self.var

    def _resolve_lookup(self, context):
        """
        根据 context 解析出真实的变量
        查询方式依次是
        字典：context[xxx]
        属性：context.xxx.xx
        下标：context.xxx.0
        可调用方法：context.xxx.f()

        Perform resolution of a real variable (i.e. not a literal) against the
        given context.
        """
        current = context
        try:  # catch-all for silent variable failures
            for bit in self.lookups:
                try:  # dictionary lookup
                    current = current[bit]
                except (TypeError, AttributeError, KeyError, ValueError, IndexError):
                    try:  # attribute lookup
                        # 如果是 context 类 不要返回类属性
                        if isinstance(current, BaseContext) and getattr(type(current), bit):
                            raise AttributeError
                        current = getattr(current, bit)
                    except (TypeError, AttributeError):
                        # Reraise if the exception was raised by a @property
                        if not isinstance(current, BaseContext) and bit in dir(current):
                            raise
                        try:  # list-index lookup
                            current = current[int(bit)]
                        except (IndexError,  # list index out of range
                                ValueError,  # invalid literal for int()
                                KeyError,    # current is a dict without `int(bit)` key
                                TypeError):  # unsubscriptable object
                            raise VariableDoesNotExist("Failed lookup for key "
                                                       "[%s] in %r",
                                                       (bit, current))  # missing attribute
                if callable(current):
                    if getattr(current, 'do_not_call_in_templates', False):
                        pass
                    else:
                        try:  # method call (assuming no args required)
                            current = current()
                        except TypeError:
                            try:
                                getcallargs(current)
                            except TypeError:  # arguments *were* required
                                raise VariableDoesNotExist(
                                    "Cannot call %r without arguments", (current,))
                            else:
                                raise
        except Exception:
            template_name = getattr(context, 'template_name', None) or 'unknown'
            logger.debug(
                "Exception while resolving variable '%s' in template '%s'.",
                self.var,
                template_name,
                exc_info=True,
            )
            raise

        return current


class EmitLiteral(Instruction):
    def __init__(self, s):
        self.s = s

    def __repr__(self):
        return "<%s: %r>" % (self.__class__.__name__, self.s[:25])

    def execute(self, frame):
        frame.write(self.s)


def render_value_in_context(value, context):
    """
    把值渲染成模板的一部分, 意味着转义
    Convert any value to a string to become part of a rendered template.
    None renders as the empty string; safe values are never escaped.
    """
    if value is None:
        value = ''
    if context.autoescape:
        return conditional_escape(value)
    return str(value)


class EmitExpression(Instruction):
    def __init__(self, filter_expression):
        self.filter_expression = filter_expression

    def __repr__(self):
        return "<%s: %s>" % (self.__class__.__name__, self.filter_expression)

    def execute(self, frame):
        output = self.filter_expression.resolve(frame.context)
        frame.write(render_value_in_context(output, frame.context))
