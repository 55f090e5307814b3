# kelp_runtime.py

import inspect
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Literal, Dict

from kelp.kelp_config import RuntimeConfig
from kelp.kelp_datatypes import Context, List as KelpList, is_number, values_equal
from kelp.kelp_effects import perform
from kelp.kelp_errors import Fault, TypeMismatch, EvalFailure, ParseFailure
from kelp.kelp_file import file_get, file_put, file_append, file_exists, file_delete
from kelp.kelp_http import http_get
from kelp.kelp_interpreter import Evaluator
from kelp.kelp_printer import Printer
from kelp.kelp_serialize import Reader, parse, show

# ===================================================================
# 1. The Standard Library
# ===================================================================


def _require_string(value, expected="string"):
    if not isinstance(value, str):
        raise TypeMismatch(expected, value)
    return value


def _require_number(value):
    if not is_number(value):
        raise TypeMismatch("number", value)
    return value


def _require_list(value):
    if not isinstance(value, KelpList):
        raise TypeMismatch("list", value)
    return value


class StdLib:
    """Contains Python implementations for all KELP primitives.

    Methods named `_name` are bound as `name` (underscores become dashes);
    a trailing `_q` becomes `?`. Multi-word names also get a camelCase alias,
    so `_file_exists` is reachable as `file-exists` and `fileExists`.
    """
    def __init__(self, evaluator: Evaluator, config: RuntimeConfig):
        self.evaluator = evaluator
        self.config = config
        self.printer = Printer()

    def bindings(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for name, member in inspect.getmembers(self):
            if not (name.startswith('_') and not name.startswith('__') and callable(member)):
                continue
            base = name[1:]
            if base.endswith('_q'):
                base = base[:-2] + '?'
            parts = base.split('_')
            out['-'.join(parts)] = member
            if len(parts) > 1:
                out[parts[0] + ''.join(p.capitalize() for p in parts[1:])] = member
        return out

    # --- Arithmetic and comparison ---
    def _add(self, *nums):
        return sum(_require_number(n) for n in nums)

    def _sub(self, first, *rest):
        _require_number(first)
        if not rest:
            return -first
        for n in rest:
            first = first - _require_number(n)
        return first

    def _mul(self, *nums):
        out = 1
        for n in nums:
            out = out * _require_number(n)
        return out

    def _div(self, a, b):
        _require_number(a); _require_number(b)
        if b == 0:
            raise EvalFailure("division by zero")
        if isinstance(a, int) and isinstance(b, int) and a % b == 0:
            return a // b
        return a / b

    def _eq(self, a, b): return values_equal(a, b)
    def _lt(self, a, b): return _require_number(a) < _require_number(b)
    def _gt(self, a, b): return _require_number(a) > _require_number(b)
    def _lte(self, a, b): return _require_number(a) <= _require_number(b)
    def _gte(self, a, b): return _require_number(a) >= _require_number(b)

    def _not(self, x):
        if not isinstance(x, bool):
            raise TypeMismatch("bool", x)
        return not x

    # --- Lists and strings ---
    def _list(self, *items): return KelpList(items)

    def _head(self, lst):
        if len(_require_list(lst)) == 0:
            raise TypeMismatch("non-empty list", lst)
        return lst[0]

    def _tail(self, lst):
        if len(_require_list(lst)) == 0:
            raise TypeMismatch("non-empty list", lst)
        return lst[1:]

    def _cons(self, item, lst): return KelpList((item,) + _require_list(lst).items)
    def _null_q(self, lst): return len(_require_list(lst)) == 0

    def _length(self, value):
        if isinstance(value, (str, KelpList)):
            return len(value)
        raise TypeMismatch("string or list", value)

    def _concat(self, *strings):
        return "".join(_require_string(s) for s in strings)

    # --- Output ---
    def _emit(self, topic, *message_parts):
        _require_string(topic, "string topic")
        message = " ".join(p if isinstance(p, str) else self.printer.describe(p) for p in message_parts)
        self.evaluator.side_effects.append({'topics': [topic], 'message': message})
        return message

    # --- Files ---
    def _slurp(self, path):
        _require_string(path)
        return perform("read", path, file_get, path, {"encoding": self.config.encoding})

    def _put(self, path, content):
        _require_string(path, "string path")
        _require_string(content, "string content (convert with show)")
        return perform("write", path, file_put, path, content, {"encoding": self.config.encoding})

    def _append_file(self, path, content):
        _require_string(path, "string path")
        _require_string(content, "string content (convert with show)")
        return perform("append", path, file_append, path, content, {"encoding": self.config.encoding})

    def _file_exists(self, path):
        _require_string(path)
        return perform("probe", path, file_exists, path)

    def _remove_file(self, path):
        _require_string(path)
        return perform("remove", path, file_delete, path)

    # --- Network ---
    def _wslurp(self, url):
        _require_string(url, "string url")
        return perform("fetch", url, http_get, url, self.config.http_config())

    # --- Codec and evaluation ---
    def _show(self, value): return show(value)

    def _parse(self, text):
        return parse(_require_string(text))

    def _eval(self, value, *, context: Context):
        return self.evaluator.eval(value, context)

    def _load(self, path, *, context: Context):
        """(load path) is (eval (parse (slurp path))) in the caller's context."""
        return self._eval(self._parse(self._slurp(path)), context=context)


# ===================================================================
# 2. Script Execution
# ===================================================================

Token = Dict[str, Any]

_MAX_TRACE_FRAMES = 12


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    error_token: Optional[Token] = None
    fault: Optional[Fault] = None
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        """The error message, prefixed with its source position when known."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        where = self.error_token or {}
        if where.get('line') is None:
            return msg
        pos = f"line {where['line']}"
        if where.get('col') is not None:
            pos += f", col {where['col']}"
        return f"Error on {pos}: {msg}"


class ScriptRunner:
    """Parses and executes KELP code; the one place faults are caught."""

    _core_forms: Optional[list] = None

    def __init__(self, config: Optional[RuntimeConfig] = None, load_core: bool = True):
        self.config = config or RuntimeConfig.from_env()
        self._initialized = False
        self._load_core = load_core
        self.reader = Reader()
        self.printer = Printer()

        self.evaluator = Evaluator()  # Each runner has its own evaluator/side_effects
        self.stdlib = StdLib(self.evaluator, self.config)
        self.root_context = Context(self.stdlib.bindings())

    def _initialize(self):
        """Loads root.kelp into the root context if not already loaded."""
        if self._initialized or not self._load_core:
            self._initialized = True
            return

        # Forms are parsed once and cached on the class
        if ScriptRunner._core_forms is None:
            core_path = Path(__file__).parent / "root.kelp"
            try:
                ScriptRunner._core_forms = self.reader.read_all(core_path.read_text(encoding="utf-8"))
            except ParseFailure as e:
                raise RuntimeError(f"Failed to parse root.kelp: {e}") from e

        context = self.root_context
        for form in ScriptRunner._core_forms:
            _, context = self.evaluator.eval_toplevel(form, context)
        self.root_context = context
        self._initialized = True

    # --- Error formatting ---

    def _source_context(self, source: str, line: int, col: Optional[int], radius: int = 2) -> str:
        """A few numbered source lines around `line`, with a caret under `col`."""
        lines = source.splitlines()
        if not line or not 1 <= line <= len(lines):
            return ""
        shown = range(max(1, line - radius), min(len(lines), line + radius) + 1)
        width = len(str(shown[-1]))
        out = []
        for n in shown:
            marker = ">" if n == line else " "
            out.append(f"{marker} {n:>{width}} | {lines[n - 1]}")
            if n == line and col is not None:
                out.append(f"  {'':>{width}} | {' ' * max(col - 1, 0)}^")
        return "\n".join(out)

    def _format_stacktrace(self) -> str:
        stack = self.evaluator.call_stack
        if not stack:
            return ""
        frames = []
        for frame in stack:
            args = " ".join(self.printer.describe(a) for a in frame.get('args') or [])
            frames.append(f"({frame.get('name') or '<call>'}{' ' + args if args else ''})")
        if len(frames) > _MAX_TRACE_FRAMES:
            # Runaway recursion: keep the outermost and innermost calls
            frames = frames[:3] + [f"... {len(frames) - _MAX_TRACE_FRAMES} more ..."] + frames[3 - _MAX_TRACE_FRAMES:]
        return "kelp stacktrace: " + " ".join(frames)

    def _format_runtime_error(self, e, source: Optional[str], reading: bool = False) -> tuple[str, Optional[Token]]:
        match e:
            case Fault():
                msg = e.describe()
            case RecursionError():
                msg = "EvalFailure: maximum recursion depth exceeded"
            case _:
                msg = f"InternalError: {e}"

        # A read error points into the source itself; anything else points
        # at the form being evaluated when the fault was raised.
        if reading:
            loc = {'line': e.line, 'col': e.col} if getattr(e, 'line', None) is not None else None
        else:
            loc = getattr(self.evaluator.current_node, 'loc', None)

        token = None
        if loc and source is not None:
            line = loc.get('line'); col = loc.get('col')
            token = {'line': line, 'col': col, 'tag': loc.get('tag'), 'text': loc.get('text')}
            context = self._source_context(source, line, col)
            if context:
                msg = f"{msg}\n{context}"

        if not reading:
            st = self._format_stacktrace()
            if st:
                msg += "\n" + st
        return msg, token

    # --- Entry points ---

    def handle_script(self, source_code: str) -> ExecutionResult:
        """The main entry point to execute a script."""
        return self._execute(source_code, lambda: self.reader.read_all(source_code))

    def handle_value(self, value: Any) -> ExecutionResult:
        """Evaluates an already-read value under the same guard as handle_script."""
        return self._execute(None, lambda: [value])

    def _error_result(self, e: Exception, source: Optional[str], reading: bool = False) -> ExecutionResult:
        try:
            err_msg, err_token = self._format_runtime_error(e, source, reading=reading)
        except Exception as report_error:
            # The diagnostic itself failed; fall back to the bare fault.
            head = e.describe() if isinstance(e, Fault) else f"InternalError: {type(e).__name__}"
            err_msg = f"{head}\n(error report unavailable: {type(report_error).__name__})"
            err_token = None
        # Emit consolidated stderr side-effect
        self.evaluator.side_effects.append({'topics': ['stderr'], 'message': err_msg})
        return ExecutionResult(
            status='error',
            error_message=err_msg,
            error_token=err_token,
            fault=e if isinstance(e, Fault) else None,
            side_effects=self.evaluator.side_effects,
        )

    def _execute(self, source: Optional[str], read_forms) -> ExecutionResult:
        # Clear per-run state
        self.evaluator.side_effects = []
        self.evaluator.call_stack.clear()
        self.evaluator.current_node = None
        try:
            self._initialize()
            # 1. Read
            try:
                forms = read_forms()
            except ParseFailure as e:
                return self._error_result(e, source, reading=True)

            # 2. Evaluate, one top-level form at a time
            result = KelpList()
            for form in forms:
                result, context = self.evaluator.eval_toplevel(form, self.root_context)
                # Commit bindings only once the form has completed
                self.root_context = context
            return ExecutionResult(
                status='success',
                value=result,
                side_effects=self.evaluator.side_effects,
            )
        except Exception as e:
            return self._error_result(e, source)

    def format_value(self, value: Any) -> str:
        """The displayable form of a result value."""
        return self.printer.describe(value)


__all__ = ["StdLib", "ExecutionResult", "ScriptRunner"]
