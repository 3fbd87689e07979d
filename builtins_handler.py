"""
Host-supplied native functions.

Each built-in is a standalone function that receives evaluated arguments
and returns a script value. The dispatch table maps script names to
(handler, arity) and install_builtins() declares them as constants in an
Environment. Natives report misuse with the interpreter's own error kinds.
"""
import math
import time

from errors import IndexOutOfRange, TypeMismatch
from values import ValueType, format_value, type_name, type_of


def _require(value, expected: ValueType, fn_name: str):
    if type_of(value) != expected:
        raise TypeMismatch(
            f"{fn_name}() expects a {expected.name.lower()}, got {type_name(value)}",
            value=value,
        )


# ── Individual built-in implementations ──

def _builtin_len(value):
    if type_of(value) not in (ValueType.STRING, ValueType.ARRAY):
        raise TypeMismatch(f"len() expects a string or array, got {type_name(value)}", value=value)
    return len(value)

def _builtin_str(value):
    return format_value(value)

def _builtin_num(value):
    if type_of(value) == ValueType.NUMBER:
        return value
    _require(value, ValueType.STRING, "num")
    try:
        return float(value.strip())
    except ValueError:
        # Not a number: same convention as a failed lookup
        return None

def _builtin_push(array, value):
    _require(array, ValueType.ARRAY, "push")
    array.append(value)
    return len(array)

def _builtin_pop(array):
    _require(array, ValueType.ARRAY, "pop")
    if not array:
        raise IndexOutOfRange("pop() from empty array")
    return array.pop()

def _builtin_sqrt(n):
    _require(n, ValueType.NUMBER, "sqrt")
    if n < 0:
        raise TypeMismatch(f"sqrt() of negative number {format_value(n)}", value=n)
    return math.sqrt(n)

def _builtin_floor(n):
    _require(n, ValueType.NUMBER, "floor")
    if math.isinf(n) or math.isnan(n):
        return n
    return math.floor(n)

def _builtin_clock():
    return time.time()

def _builtin_type(value):
    return type_name(value)


# ── Dispatch table ──

BUILTIN_DISPATCH = {
    'len':   (_builtin_len, 1),
    'str':   (_builtin_str, 1),
    'num':   (_builtin_num, 1),
    'push':  (_builtin_push, 2),
    'pop':   (_builtin_pop, 1),
    'sqrt':  (_builtin_sqrt, 1),
    'floor': (_builtin_floor, 1),
    'clock': (_builtin_clock, 0),
    'type':  (_builtin_type, 1),
}

BUILTIN_NAMES = frozenset(BUILTIN_DISPATCH)


def install_builtins(environment, names=None):
    """
    Declare built-ins as constants in the environment's current frame.

    `names` restricts installation to a subset of BUILTIN_NAMES.
    Raises KeyError if a requested name is not a built-in.
    """
    for name in (names if names is not None else BUILTIN_DISPATCH):
        handler, arity = BUILTIN_DISPATCH[name]
        environment.define_native(name, handler, arity)
    return environment
