"""
A printer for KELP values.

`pformat` is the write direction of the serialization codec: it renders
values using exactly the grammar the reader accepts, and refuses anything
outside the serializable subset. `describe` is for diagnostics and never
fails.
"""
import math

from kelp.kelp_datatypes import (
    Symbol, List, Lambda, NUMBER_RE, SYMBOL_RE,
    int_to_text, is_callable_value, is_number, is_serializable,
)

# Longer integers are summarized by describe
_DESCRIBE_MAX_DIGITS = 4300

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
}


class Printer:
    """Formats KELP values into valid KELP source strings."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj) -> str:
        """Public entry point to format a value."""
        handler = self._get_handler(obj)
        return handler(obj)

    def describe(self, obj) -> str:
        """Renders any object for an error message or the REPL."""
        try:
            return self._describe(obj)
        except (ValueError, RecursionError):
            return f"<{type(obj).__name__}>"

    def _describe(self, obj) -> str:
        if isinstance(obj, List):
            return "(" + " ".join(self._describe(item) for item in obj) + ")"
        if is_number(obj) and isinstance(obj, int):
            text = int_to_text(obj)
            digits = len(text.lstrip("-"))
            if digits > _DESCRIBE_MAX_DIGITS:
                return f"<number of {digits} digits>"
            return text
        if is_serializable(obj):
            return self.pformat(obj)
        if isinstance(obj, Lambda):
            return repr(obj)
        if is_callable_value(obj):
            name = getattr(obj, "__name__", None) or "callable"
            return f"<primitive {name.lstrip('_').replace('_', '-')}>"
        return repr(obj)

    def _get_handler(self, obj):
        """Dispatcher to find the correct formatting method."""
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        # Subclasses of the builtin scalars
        for base in (bool, int, float, str):
            if isinstance(obj, base):
                return self._handlers[base]
        return self._pformat_unserializable

    def _create_handlers(self):
        return {
            str: self._pformat_str,
            int: self._pformat_int,
            float: self._pformat_float,
            bool: self._pformat_bool,
            Symbol: self._pformat_symbol,
            List: self._pformat_list,
        }

    def _pformat_str(self, obj):
        return '"' + "".join(_ESCAPES.get(ch, ch) for ch in obj) + '"'

    def _pformat_int(self, obj):
        return int_to_text(obj)

    def _pformat_float(self, obj):
        if not math.isfinite(obj):
            from kelp.kelp_errors import TypeMismatch
            raise TypeMismatch("finite number", obj)
        return repr(float(obj))

    def _pformat_bool(self, obj):
        return '#t' if obj else '#f'

    def _pformat_symbol(self, obj):
        name = obj.name
        if not SYMBOL_RE.fullmatch(name) or NUMBER_RE.fullmatch(name):
            from kelp.kelp_errors import TypeMismatch
            raise TypeMismatch("symbol with a readable name", name)
        return name

    def _pformat_list(self, obj):
        return "(" + " ".join(self.pformat(item) for item in obj) + ")"

    def _pformat_unserializable(self, obj):
        # Lambdas and primitives have no textual form.
        from kelp.kelp_errors import TypeMismatch
        raise TypeMismatch("serializable value", obj)
