"""
Runtime value model.

Script values are plain Python objects drawn from a closed set:

    NUMBER   float
    STRING   str
    BOOLEAN  bool
    ARRAY    list  (shared by reference between every holder)
    NULL     None
    CALLABLE Callable subclass instance

type_of() is the single place that classifies a value; anything outside
the set is rejected there.
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum, auto
from typing import Any, Callable as PyCallable, List, Optional


class ValueType(Enum):
    NUMBER = auto()
    STRING = auto()
    BOOLEAN = auto()
    ARRAY = auto()
    NULL = auto()
    CALLABLE = auto()


class Callable(ABC):
    """Something a Call expression can invoke."""

    name: str = "<anonymous>"
    # None means the callable checks its own arguments
    arity: Optional[int] = None

    @abstractmethod
    def call(self, interpreter, arguments: List[Any]) -> Any:
        ...

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"


class NativeFunction(Callable):
    """A host-supplied function exposed to scripts."""

    def __init__(self, name: str, function: PyCallable[..., Any], arity: Optional[int] = None):
        self.name = name
        self.function = function
        self.arity = arity

    def call(self, interpreter, arguments: List[Any]) -> Any:
        return normalize(self.function(*arguments))


class UserFunction(Callable):
    """A function declared in script source, closing over its defining frame."""

    def __init__(self, declaration, frame):
        self.declaration = declaration
        # Holding the frame keeps it (and its parents) out of the free list
        self.anchor = frame
        self.name = declaration.name
        self.arity = len(declaration.params)

    @property
    def closure(self) -> int:
        """Handle of the defining frame."""
        return self.anchor.handle

    def call(self, interpreter, arguments: List[Any]) -> Any:
        return interpreter.call_user_function(self, arguments)


def type_of(value: Any) -> ValueType:
    # IMPORTANT: check bool before numbers because bool is a subclass of int in Python
    if value is None:
        return ValueType.NULL
    if isinstance(value, bool):
        return ValueType.BOOLEAN
    if isinstance(value, float):
        return ValueType.NUMBER
    if isinstance(value, str):
        return ValueType.STRING
    if isinstance(value, list):
        return ValueType.ARRAY
    if isinstance(value, Callable):
        return ValueType.CALLABLE
    raise TypeError(f"Not a script value: {value!r} ({type(value).__name__})")


def type_name(value: Any) -> str:
    return type_of(value).name.lower()


def normalize(value: Any, _seen=None) -> Any:
    """Convert host results into script values (int → float, tuple → list).

    Lists are normalised in place, nested ones included, so a native
    returning one of its arguments keeps the reference shared.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, tuple):
        return [normalize(v, _seen) for v in value]
    if isinstance(value, list):
        seen = _seen if _seen is not None else set()
        if id(value) in seen:
            return value
        seen.add(id(value))
        for i, item in enumerate(value):
            value[i] = normalize(item, seen)
        return value
    type_of(value)
    return value


def is_truthy(value: Any) -> bool:
    """null, false, 0, "" and [] are falsy; everything else is truthy."""
    vtype = type_of(value)
    if vtype == ValueType.NULL:
        return False
    if vtype == ValueType.BOOLEAN:
        return value
    if vtype == ValueType.NUMBER:
        return value != 0.0
    if vtype in (ValueType.STRING, ValueType.ARRAY):
        return len(value) > 0
    return True


def values_equal(left: Any, right: Any, _seen=None) -> bool:
    """Structural equality that never coerces between types."""
    ltype, rtype = type_of(left), type_of(right)
    if ltype != rtype:
        return False
    if ltype == ValueType.ARRAY:
        if left is right:
            return True
        if len(left) != len(right):
            return False
        seen = _seen if _seen is not None else set()
        key = (id(left), id(right))
        if key in seen:
            return True
        seen.add(key)
        return all(values_equal(a, b, seen) for a, b in zip(left, right))
    if ltype == ValueType.CALLABLE:
        return left is right
    return left == right


def format_number(value: float) -> str:
    """Render a number without a trailing '.0' and never in exponent form."""
    if value != value or value in (float('inf'), float('-inf')):
        return repr(value)
    if value.is_integer():
        return str(int(value))
    text = repr(value)
    if 'e' in text or 'E' in text:
        text = format(Decimal(text), 'f')
    return text


def format_value(value: Any, _seen=None) -> str:
    """Textual form used by print and by string concatenation."""
    vtype = type_of(value)
    if vtype == ValueType.NULL:
        return "null"
    if vtype == ValueType.BOOLEAN:
        return "true" if value else "false"
    if vtype == ValueType.NUMBER:
        return format_number(value)
    if vtype == ValueType.STRING:
        return value
    if vtype == ValueType.CALLABLE:
        return f"<function {value.name}>"

    seen = _seen if _seen is not None else set()
    if id(value) in seen:
        return "[...]"
    seen.add(id(value))
    parts = []
    for item in value:
        if isinstance(item, str):
            parts.append(f'"{item}"')
        else:
            parts.append(format_value(item, seen))
    seen.discard(id(value))
    return "[" + ", ".join(parts) + "]"
