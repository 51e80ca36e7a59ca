"""Default variable filters."""
from functools import wraps

from django.utils.html import escape as html_escape, escapejs as html_escapejs
from django.utils.safestring import SafeData, mark_safe

from .library import Library

register = Library()


#######################
# STRING DECORATOR    #
#######################

def stringfilter(func):
    """
    Decorator for filters which should only receive strings. The object
    passed as the first positional argument will be converted to a string;
    None becomes the empty string.
    """
    @wraps(func)
    def _dec(*args, **kwargs):
        args = list(args)
        args[0] = '' if args[0] is None else str(args[0])
        if (isinstance(args[0], SafeData) and
                getattr(_dec._decorated_function, 'is_safe', False)):
            return mark_safe(func(*args, **kwargs))
        return func(*args, **kwargs)

    # Include a reference to the real function, to bear the 'is_safe'
    # attribute when multiple decorators are applied.
    _dec._decorated_function = getattr(func, '_decorated_function', func)

    return wraps(func)(_dec)


###################
# CASE            #
###################

@register.filter(is_safe=False)
@stringfilter
def upper(value):
    """Convert a string into all uppercase."""
    return value.upper()


@register.filter(is_safe=False)
@stringfilter
def lower(value):
    """Convert a string into all lowercase."""
    return value.lower()


@register.filter(is_safe=True)
@stringfilter
def capfirst(value):
    """Capitalize the first character of the value."""
    return value and value[0].upper() + value[1:]


@register.filter(is_safe=True)
@stringfilter
def title(value):
    """Convert a string into titlecase."""
    return value.title()


###################
# ARITHMETIC      #
###################

def _number(value):
    if isinstance(value, (int, float)):
        return value
    try:
        return int(value)
    except ValueError:
        return float(value)


@register.filter(is_safe=False)
def add(value, arg):
    """Add the arg to the value: numerically when both look like numbers."""
    try:
        return int(value) + int(arg)
    except (ValueError, TypeError):
        try:
            return value + arg
        except Exception:
            return ''


@register.filter(is_safe=False)
def subtract(value, arg):
    """Subtract the arg from the value."""
    try:
        return _number(value) - _number(arg)
    except (ValueError, TypeError):
        return ''


@register.filter(is_safe=False)
def divisibleby(value, arg):
    """Return True if the value is divisible by the argument."""
    try:
        return int(value) % int(arg) == 0
    except (ValueError, TypeError, ZeroDivisionError):
        return False


###################
# MEMBERSHIP      #
###################

@register.filter(is_safe=False)
def contains(value, arg):
    """Return True if arg is a key, item or substring of the value."""
    try:
        return arg in value
    except TypeError:
        return False


###################
# ESCAPING        #
###################

@register.filter(is_safe=True)
def safe(value):
    """Mark the value as a string that should not be auto-escaped."""
    return mark_safe('' if value is None else value)


@register.filter(name='escape', is_safe=True)
@stringfilter
def escape_filter(value):
    """Escape a string's HTML, even when it is already marked safe."""
    return html_escape(value)


@register.filter(is_safe=False)
@stringfilter
def escapejs(value):
    """Hex encode characters for use in JavaScript strings."""
    return html_escapejs(value)


###################
# SEQUENCES       #
###################

@register.filter(is_safe=False)
def first(value):
    """Return the first item in a list."""
    try:
        return value[0]
    except (IndexError, KeyError, TypeError):
        return ''


@register.filter(is_safe=False)
def last(value):
    """Return the last item in a list."""
    try:
        return value[-1]
    except (IndexError, KeyError, TypeError):
        return ''


@register.filter(is_safe=True)
def join(value, arg):
    """Join a list with a string, like Python's ``str.join(list)``."""
    try:
        return str(arg).join(str(v) for v in value)
    except TypeError:  # Fail silently if arg isn't iterable.
        return value


@register.filter(is_safe=False)
def length(value):
    """Return the length of the value - useful for lists."""
    try:
        return len(value)
    except (ValueError, TypeError):
        return 0


###################
# MISC            #
###################

@register.filter(is_safe=False)
def default(value, arg):
    """If value is unavailable, use given default."""
    return value or arg


@register.filter(is_safe=False)
def pluralize(value, arg='s,'):
    """
    Return the first form for every count but 1, and the second form for
    exactly 1. ``arg`` is ``"plural,singular"``::

        You have {{ count }} cherr{{ count|pluralize:"ies,y" }}.
        {{ count }} apple{{ count|pluralize }}
    """
    bits = str(arg).split(',')
    plural = bits[0]
    singular = bits[1] if len(bits) > 1 else ''
    try:
        return singular if float(value) == 1 else plural
    except (ValueError, TypeError):
        return plural
