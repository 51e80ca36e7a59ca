"""
The code generator: a flat list of typed instructions, assembled once per
template and interpreted on every render.

Tags contribute instruction fragments through ``Inline`` and ``Block``
results. ``CodeBuilder`` collects them in source order; ``build()`` resolves
every jump target and checks that branches, loops and skipped regions nest
properly. The resulting ``Program`` runs against a fresh ``Frame`` per call,
so no render state is shared between calls.
"""

from collections import namedtuple

from django.utils.safestring import mark_safe

from .exceptions import TemplateSyntaxError


class Inline(namedtuple('Inline', 'code')):
    """Instructions emitted where the tag appears; the stack is untouched."""
    __slots__ = ()


class Block(namedtuple('Block', 'start end close')):
    """
    ``start`` is emitted where the tag appears. ``end`` is emitted when the
    matching close tag (``close``, or ``'end' + tag name``) is reached.
    """
    __slots__ = ()

    def __new__(cls, start, end=None, close=None):
        return super().__new__(cls, start, end, close)


class Frame:
    """
    Per-render state threaded through every instruction.
    """
    def __init__(self, context, template=None):
        self.context = context
        self.template = template
        self.bits = []
        # (iterator, LoopStart) for each loop currently running
        self.loops = []
        # did-it-iterate flags for ``empty``, keyed by name
        self.flags = {}

    def write(self, bit):
        self.bits.append(bit)


class Instruction:
    token = None

    def __repr__(self):
        return "<%s>" % self.__class__.__name__

    def execute(self, frame):
        """
        Run against ``frame``. Return the index of the next instruction, or
        None to continue with the following one.
        """
        return None

    def link(self, index, blocks):
        """Resolve jump targets, given this instruction's index."""
        pass


class OpenBlock:
    def __init__(self, kind, opener, index):
        self.kind = kind
        self.opener = opener
        self.index = index
        # branch whose false target is still unresolved
        self.pending = opener
        self.exits = []
        self.has_else = False


def expect_block(blocks, kind, instruction):
    if not blocks or blocks[-1].kind != kind:
        found = blocks[-1].kind if blocks else 'top level'
        e = TemplateSyntaxError(
            "%r must appear inside a %s block, found %s." % (instruction, kind, found)
        )
        e.token = instruction.token
        raise e
    return blocks[-1]


class PushScope(Instruction):
    def execute(self, frame):
        frame.context.push()


class PopScope(Instruction):
    def execute(self, frame):
        frame.context.pop()


class Branch(Instruction):
    """
    Jump past the guarded region when ``condition`` is false. A chained
    branch (``elif``) continues the enclosing conditional instead of opening
    a new one.
    """
    def __init__(self, condition, chained=False):
        self.condition = condition
        self.chained = chained
        self.target = None

    def __repr__(self):
        return "<%s: %r>" % (self.__class__.__name__, self.condition)

    def execute(self, frame):
        if not self.condition.eval(frame):
            return self.target

    def link(self, index, blocks):
        if self.chained:
            block = expect_block(blocks, 'if', self)
            block.pending = self
            block.has_else = False
        else:
            blocks.append(OpenBlock('if', self, index))


class Else(Instruction):
    """End of a taken branch: jump to the end of the conditional."""
    target = None

    def execute(self, frame):
        return self.target

    def link(self, index, blocks):
        block = expect_block(blocks, 'if', self)
        if block.has_else:
            e = TemplateSyntaxError("'else' cannot follow another 'else' in the same block.")
            e.token = self.token
            raise e
        block.pending.target = index + 1
        block.pending = None
        block.exits.append(self)
        block.has_else = True


class EndBranch(Instruction):
    def link(self, index, blocks):
        block = expect_block(blocks, 'if', self)
        blocks.pop()
        if block.pending is not None:
            block.pending.target = index + 1
        for exit in block.exits:
            exit.target = index + 1


class LoopStart(Instruction):
    """
    Evaluate the sequence and bind its first item, or skip the loop body
    entirely when there is nothing to iterate.
    """
    def __init__(self, sequence, loopvars):
        self.sequence = sequence
        self.loopvars = loopvars
        self.target = None

    def __repr__(self):
        return "<%s: for %s in %s>" % (
            self.__class__.__name__, ', '.join(self.loopvars), self.sequence,
        )

    def items(self, frame):
        values = self.sequence.resolve(frame.context)
        if hasattr(values, 'items'):
            return list(values.items())
        try:
            return list(enumerate(values))
        except TypeError:
            # None and other non-iterables loop zero times
            return []

    def bind(self, frame, item):
        key, value = item
        if len(self.loopvars) > 1:
            frame.context[self.loopvars[0]] = key
            frame.context[self.loopvars[1]] = value
        else:
            frame.context[self.loopvars[0]] = value

    def execute(self, frame):
        iterator = iter(self.items(frame))
        try:
            item = next(iterator)
        except StopIteration:
            return self.target
        frame.loops.append((iterator, self))
        self.bind(frame, item)

    def link(self, index, blocks):
        blocks.append(OpenBlock('loop', self, index))


class LoopNext(Instruction):
    target = None

    def execute(self, frame):
        iterator, start = frame.loops[-1]
        try:
            item = next(iterator)
        except StopIteration:
            frame.loops.pop()
            return None
        start.bind(frame, item)
        return self.target

    def link(self, index, blocks):
        block = expect_block(blocks, 'loop', self)
        blocks.pop()
        block.opener.target = index + 1
        self.target = block.index + 1


class FlagUnset:
    """Condition: the named did-it-iterate flag has not been set."""
    def __init__(self, name):
        self.name = name

    def __repr__(self):
        return "not %s" % self.name

    def eval(self, frame):
        return not frame.flags.get(self.name, False)


class SetFlag(Instruction):
    def __init__(self, name):
        self.name = name

    def execute(self, frame):
        frame.flags[self.name] = True


class ClearFlag(Instruction):
    def __init__(self, name):
        self.name = name

    def execute(self, frame):
        frame.flags[self.name] = False


class Skip(Instruction):
    """Unconditionally jump over the region up to the matching EndSkip."""
    target = None

    def execute(self, frame):
        return self.target

    def link(self, index, blocks):
        blocks.append(OpenBlock('skip', self, index))


class EndSkip(Instruction):
    def link(self, index, blocks):
        block = expect_block(blocks, 'skip', self)
        blocks.pop()
        block.opener.target = index + 1


class CodeBuilder:
    """Collect instructions in source order and assemble them."""

    def __init__(self):
        self.code = []

    def __len__(self):
        return len(self.code)

    def add(self, instructions, token=None):
        for instruction in instructions:
            if instruction.token is None:
                instruction.token = token
            self.code.append(instruction)

    def build(self):
        blocks = []
        for index, instruction in enumerate(self.code):
            instruction.link(index, blocks)
        if blocks:
            opener = blocks[-1].opener
            e = TemplateSyntaxError("Unclosed %s block opened by %r." % (blocks[-1].kind, opener))
            e.token = opener.token
            raise e
        return Program(self.code)


class Program:
    def __init__(self, instructions):
        self.instructions = instructions

    def __iter__(self):
        return iter(self.instructions)

    def __len__(self):
        return len(self.instructions)

    def run(self, context, template=None):
        frame = Frame(context, template)
        instructions = self.instructions
        pc, end = 0, len(instructions)
        depth = len(context.dicts)
        try:
            while pc < end:
                instruction = instructions[pc]
                try:
                    target = instruction.execute(frame)
                except Exception as e:
                    if (template is not None and template.engine.debug and
                            instruction.token is not None and
                            not hasattr(e, 'template_debug')):
                        e.template_debug = template.get_exception_info(e, instruction.token)
                    raise
                pc = pc + 1 if target is None else target
        finally:
            # loop scopes left open by an exception
            context.unwind(depth)
        return mark_safe(''.join(frame.bits))
