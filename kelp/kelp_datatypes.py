"""
Defines the core data types for the KELP language runtime.

Strings, numbers and booleans are plain Python values. This module adds the
remaining members of the value domain (Symbol, List, Lambda) and the
immutable evaluation Context that the evaluator threads through every call.
"""

import collections.abc
import math
import re
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Tuple

# Token shapes shared by the printer and the reader grammar.
_DELIMS = " \t\r\n\f\v()\";'"
NUMBER_RE = re.compile(r"-?[0-9]+(?:[.][0-9]+)?(?:[eE][-+]?[0-9]+)?")
SYMBOL_RE = re.compile(r"[^#" + re.escape(_DELIMS) + r"][^" + re.escape(_DELIMS) + r"]*")


# =================================================================
# Values
# =================================================================

class Symbol:
    """An identifier, e.g. `slurp` or `x`. Compared by name."""
    __slots__ = ("name", "loc")

    def __init__(self, name: str):
        self.name = name
        self.loc = None

    def __repr__(self) -> str:
        return f"Symbol<{self.name!r}>"

    def __eq__(self, other):
        return isinstance(other, Symbol) and self.name == other.name

    def __hash__(self):
        return hash(("Symbol", self.name))


class List(collections.abc.Sequence):
    """An immutable ordered sequence of values, written `( ... )`."""

    def __init__(self, items: Iterable[Any] = ()):
        self.items: Tuple[Any, ...] = tuple(items)
        # Source location, attached by the transformer when read from text.
        self.loc: Optional[Dict[str, Any]] = None

    def __getitem__(self, index):
        if isinstance(index, slice):
            return List(self.items[index])
        return self.items[index]

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __eq__(self, other):
        if isinstance(other, (list, tuple)):
            other = List(other)
        if not isinstance(other, List):
            return NotImplemented
        return values_equal(self, other)

    def __hash__(self):
        return hash(self.items)

    def __repr__(self) -> str:
        return f"List({list(self.items)!r})"


class Lambda:
    """A user-defined function: parameters, body forms and the defining Context."""

    def __init__(self, params: Iterable[str], body: Iterable[Any], closure: 'Context', name: Optional[str] = None):
        self.params = tuple(params)
        self.body = tuple(body)
        self.closure = closure
        self.name = name

    def __repr__(self) -> str:
        label = self.name or "lambda"
        return f"<{label} ({' '.join(self.params)})>"


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_callable_value(value: Any) -> bool:
    return isinstance(value, Lambda) or callable(value)


def is_serializable(value: Any) -> bool:
    """True for values in the serializable subset (recursively for lists)."""
    match value:
        case bool() | str():
            return True
        case Symbol():
            return bool(SYMBOL_RE.fullmatch(value.name)) and not NUMBER_RE.fullmatch(value.name)
        case int():
            return True
        case float():
            return math.isfinite(value)
        case List():
            return all(is_serializable(v) for v in value)
        case _:
            return False


def values_equal(a: Any, b: Any) -> bool:
    """Structural, type-strict equality: `#t` never equals `1`."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if is_number(a) and is_number(b):
        return a == b
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    if isinstance(a, Symbol) and isinstance(b, Symbol):
        return a.name == b.name
    if isinstance(a, List) and isinstance(b, List):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    return a is b


# Integers are converted to and from text in chunks of this many digits, so
# numbers past the interpreter's str/int conversion limit still round-trip.
_DIGIT_CHUNK = 1000


def int_to_text(n: int) -> str:
    """Decimal text of `n`, for any size of integer."""
    n = int(n)
    base = 10 ** _DIGIT_CHUNK
    if -base < n < base:
        return str(n)
    sign = "-" if n < 0 else ""
    n = abs(n)
    chunks = []
    while n:
        n, rem = divmod(n, base)
        chunks.append(rem)
    head = str(chunks.pop())
    return sign + head + "".join(str(c).zfill(_DIGIT_CHUNK) for c in reversed(chunks))


def text_to_int(text: str) -> int:
    """Inverse of int_to_text. Raises ValueError for anything but `-?digits`."""
    sign = -1 if text.startswith("-") else 1
    digits = text[1:] if sign < 0 else text
    if not digits.isdigit() or not digits.isascii():
        raise ValueError(f"not an integer literal: {text[:40]!r}")
    if len(digits) <= _DIGIT_CHUNK:
        return sign * int(digits)
    first = len(digits) % _DIGIT_CHUNK or _DIGIT_CHUNK
    value = int(digits[:first])
    base = 10 ** _DIGIT_CHUNK
    for i in range(first, len(digits), _DIGIT_CHUNK):
        value = value * base + int(digits[i:i + _DIGIT_CHUNK])
    return sign * value


def type_name(value: Any) -> str:
    match value:
        case bool():
            return "bool"
        case int() | float():
            return "number"
        case str():
            return "string"
        case Symbol():
            return "symbol"
        case List():
            return "list"
        case _ if is_callable_value(value):
            return "callable"
        case _:
            return type(value).__name__


# =================================================================
# Evaluation Context
# =================================================================

class Context(collections.abc.Mapping):
    """An immutable binding environment with a parent chain.

    Lookups walk self → parent. A Context is never changed once handed out;
    `extend` and `bind_recursive` return a new child Context instead.
    """

    def __init__(self, bindings: Optional[Dict[str, Any]] = None, parent: Optional['Context'] = None):
        self._bindings = MappingProxyType(dict(bindings or {}))
        self._parent = parent

    def __getitem__(self, name: str) -> Any:
        ctx = self
        while ctx is not None:
            if name in ctx._bindings:
                return ctx._bindings[name]
            ctx = ctx._parent
        raise KeyError(name)

    def __iter__(self) -> Iterator[str]:
        seen = set()
        ctx = self
        while ctx is not None:
            for name in ctx._bindings:
                if name not in seen:
                    seen.add(name)
                    yield name
            ctx = ctx._parent

    def __len__(self) -> int:
        return sum(1 for _ in self)

    @property
    def parent(self) -> Optional['Context']:
        return self._parent

    @property
    def local_names(self) -> Tuple[str, ...]:
        return tuple(self._bindings)

    def extend(self, bindings: Dict[str, Any]) -> 'Context':
        """Returns a child Context holding `bindings`."""
        return Context(bindings, parent=self)

    def bind_recursive(self, name: str, build: Callable[['Context'], Any]) -> 'Context':
        """Returns a child Context binding `name` to `build(child)`.

        The value is built against the child itself so a lambda bound here can
        refer to its own name. The child is not reachable by anyone else until
        this method returns.
        """
        child = Context(parent=self)
        value = build(child)
        child._bindings = MappingProxyType({name: value})
        return child

    def __repr__(self) -> str:
        depth = 0
        ctx = self._parent
        while ctx is not None:
            depth += 1
            ctx = ctx._parent
        return f"<Context bindings=[{', '.join(self._bindings)}] depth={depth}>"
