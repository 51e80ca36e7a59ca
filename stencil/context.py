""" 渲染上下文 """

from contextlib import contextmanager


class ContextPopException(Exception):
    "pop() has been called more times than push()"
    pass


class BaseContext:
    """
    A stack of dicts looked up from the innermost layer outwards.

    dicts[0] holds the constants True, False and None; dicts[1] is the root
    layer, the caller's own dict when one was given. Loops push a layer on
    top and pop it again at endfor.
    """
    def __init__(self, dict_=None):
        builtins = {'True': True, 'False': False, 'None': None}
        self.dicts = [builtins, {} if dict_ is None else dict_]

    def __repr__(self):
        return repr(self.dicts)

    def push(self, **kwargs):
        layer = dict(kwargs)
        self.dicts.append(layer)
        return layer

    def pop(self):
        # builtins and the root layer are never popped
        if len(self.dicts) <= 2:
            raise ContextPopException
        return self.dicts.pop()

    def unwind(self, depth):
        """Drop every layer pushed above ``depth``."""
        del self.dicts[max(depth, 2):]

    def __setitem__(self, key, value):
        "Set a variable in the innermost layer"
        self.dicts[-1][key] = value

    def set_root(self, key, value):
        """
        Set a variable in the root layer, so it outlives every layer pushed
        after it (loop scopes included).
        """
        self.dicts[1][key] = value

    def __getitem__(self, key):
        for d in reversed(self.dicts):
            if key in d:
                return d[key]
        raise KeyError(key)

    def get(self, key, otherwise=None):
        try:
            return self[key]
        except KeyError:
            return otherwise


class Context(BaseContext):
    "A stack container for variable context"
    def __init__(self, dict_=None, autoescape=True):
        self.autoescape = autoescape
        self.template_name = "unknown"
        # Set to the template being rendered, see bind_template.
        self.template = None
        super().__init__(dict_)

    @contextmanager
    def bind_template(self, template):
        if self.template is not None:
            raise RuntimeError("Context is already bound to a template")
        self.template = template
        try:
            yield
        finally:
            self.template = None


def make_context(context, **kwargs):
    """
    用 dict 创建上下文对象
    Wrap a plain dict (or None) in a Context. A Context is returned as is.
    """
    if isinstance(context, BaseContext):
        return context
    if context is not None and not isinstance(context, dict):
        raise TypeError('context must be a dict rather than %s.' % context.__class__.__name__)
    return Context(context, **kwargs)
