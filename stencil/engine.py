import functools

from django.core.exceptions import ImproperlyConfigured

from .base import Template
from .grammar import Grammar
from .library import Library, import_library


class Engine:
    default_builtins = [
        'stencil.defaulttags',
        'stencil.defaultfilters',
    ]

    def __init__(self, debug=False, autoescape=True, libraries=None,
                 builtins=None, delimiters=None):
        """
        debug
            Annotate template errors with ``template_debug``, the source
            lines around the failing token.

        autoescape
            HTML-escape ``{{ }}`` output when rendering a plain dict.

        libraries, builtins
            Extra libraries to merge into the grammar, after the default
            builtins. Each is a ``Library`` or the dotted path of a module
            defining ``register``. ``builtins`` replaces the defaults.

        delimiters
            Marker delimiters for every template of this engine.
        """
        if libraries is None:
            libraries = []
        if builtins is None:
            builtins = []

        self.debug = debug
        self.autoescape = autoescape
        self.libraries = libraries
        self.builtins = builtins or self.default_builtins
        self.template_libraries = self.get_template_libraries(self.builtins + list(libraries))

        self.grammar = Grammar(delimiters=delimiters)
        for lib in self.template_libraries:
            self.grammar.add_library(lib)

    def __repr__(self):
        return '<%s: debug=%s autoescape=%s builtins=%r libraries=%r>' % (
            self.__class__.__qualname__,
            self.debug,
            self.autoescape,
            self.builtins,
            self.libraries,
        )

    @staticmethod
    @functools.lru_cache()
    def get_default():
        """
        Return the process-wide default engine, built from the default
        builtins. Its grammar is the default grammar every template clones.
        """
        return Engine()

    def get_template_libraries(self, libraries):
        loaded = []
        for lib in libraries:
            if isinstance(lib, str):
                lib = import_library(lib)
            if not isinstance(lib, Library):
                raise ImproperlyConfigured(
                    "Template library %r is not a Library instance." % (lib,)
                )
            loaded.append(lib)
        return loaded

    def from_string(self, template_code, name=None, **overrides):
        """
        Return a compiled Template object for the given template code.
        ``overrides`` replaces grammar categories for this template only.
        """
        return Template(template_code, engine=self, name=name, **overrides)
