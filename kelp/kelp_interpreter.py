"""
The KELP evaluator: a small tree-walking reducer over kelp_datatypes values.

Every evaluation step receives the Context explicitly and returns a value;
nothing here touches files or the network. Effectful primitives are plain
callables bound in the root Context (see kelp_runtime.StdLib).
"""
import inspect
import os
import sys
from typing import Any, Dict, List as PyList, Optional, Tuple

from kelp.kelp_datatypes import Symbol, List, Lambda, Context
from kelp.kelp_errors import TypeMismatch, UnboundSymbol, ArityMismatch, EvalFailure

SPECIAL_FORMS = ("quote", "if", "define", "lambda", "let", "begin")


def _is_form(node: Any, name: str) -> bool:
    return isinstance(node, List) and len(node) > 0 and node[0] == Symbol(name)


def callable_name(func: Any) -> str:
    if isinstance(func, Lambda):
        return func.name or "lambda"
    name = getattr(func, "__name__", None)
    if isinstance(name, str) and name:
        return name.lstrip('_').replace('_', '-')
    return "<callable>"


class Evaluator:
    """The KELP execution engine."""

    def __init__(self):
        self.side_effects: PyList[Dict[str, Any]] = []
        self.call_stack: PyList[Dict[str, Any]] = []
        self.current_node = None
        # Per-function signature facts: (signature, accepts_context)
        self._signatures: Dict[Any, Tuple[Optional[inspect.Signature], bool]] = {}

    def _push_frame(self, name, func, args, call_site_node):
        self.call_stack.append({
            'name': name,
            'func': func,
            'args': args,
            'call_site': getattr(call_site_node, 'loc', None),
        })

    def _pop_frame(self):
        if self.call_stack:
            self.call_stack.pop()

    def _dbg(self, *parts):
        if os.environ.get("KELP_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    # -----------------------------------------------------------------
    # Reduction
    # -----------------------------------------------------------------

    def eval(self, node: Any, context: Context) -> Any:
        """Reduces one expression in `context`."""
        if getattr(node, 'loc', None) is not None:
            self.current_node = node
        match node:
            case Symbol(name=name):
                try:
                    return context[name]
                except KeyError:
                    raise UnboundSymbol(name) from None
            case List() if len(node) == 0:
                return node
            case List():
                return self._eval_combination(node, context)
            case _:
                # Strings, numbers, booleans and callables are self-evaluating
                return node

    def eval_toplevel(self, node: Any, context: Context) -> Tuple[Any, Context]:
        """Evaluates a form that may bind a name; returns (value, context after)."""
        if _is_form(node, "define"):
            return self._define(node, context)
        return self.eval(node, context), context

    def eval_body(self, forms, context: Context) -> Any:
        """Evaluates a sequence of forms, threading definitions; returns the last value."""
        result = List()
        for form in forms:
            result, context = self.eval_toplevel(form, context)
        return result

    def _eval_combination(self, node: List, context: Context) -> Any:
        head = node[0]
        if isinstance(head, Symbol) and head.name in SPECIAL_FORMS:
            return self._eval_special(head.name, node, context)
        func = self.eval(head, context)
        args = [self.eval(arg, context) for arg in node[1:]]
        return self.call(func, args, context, call_site=node)

    def _eval_special(self, form: str, node: List, context: Context) -> Any:
        self._dbg("SPECIAL", form)
        match form:
            case "quote":
                if len(node) != 2:
                    raise EvalFailure("quote expects exactly one datum")
                return node[1]
            case "if":
                if len(node) not in (3, 4):
                    raise EvalFailure("if expects a condition, a consequent and an optional alternative")
                cond = self.eval(node[1], context)
                if not isinstance(cond, bool):
                    raise TypeMismatch("bool condition", cond)
                if cond:
                    return self.eval(node[2], context)
                return self.eval(node[3], context) if len(node) == 4 else List()
            case "lambda":
                return self._make_lambda(node, context)
            case "let":
                if len(node) < 3 or not isinstance(node[1], List):
                    raise EvalFailure("let expects a binding list and a body")
                bindings = {}
                for pair in node[1]:
                    if not (isinstance(pair, List) and len(pair) == 2 and isinstance(pair[0], Symbol)):
                        raise EvalFailure("let bindings must be (name expr) pairs")
                    bindings[pair[0].name] = self.eval(pair[1], context)
                return self.eval_body(node[2:], context.extend(bindings))
            case "begin":
                return self.eval_body(node[1:], context)
            case "define":
                raise EvalFailure("define is only allowed at top level or inside a body")

    def _params(self, params, form: str) -> Tuple[str, ...]:
        if not all(isinstance(p, Symbol) for p in params):
            raise EvalFailure(f"{form} parameters must be symbols")
        names = tuple(p.name for p in params)
        if len(set(names)) != len(names):
            raise EvalFailure(f"{form} parameters must be distinct")
        return names

    def _make_lambda(self, node: List, context: Context, name: Optional[str] = None) -> Lambda:
        if len(node) < 3 or not isinstance(node[1], List):
            raise EvalFailure("lambda expects a parameter list and a body")
        return Lambda(self._params(node[1], "lambda"), node[2:], context, name=name)

    def _define(self, node: List, context: Context) -> Tuple[Symbol, Context]:
        if len(node) < 3:
            raise EvalFailure("define expects a name and a value")
        target = node[1]
        match target:
            case Symbol(name=name):
                if len(node) != 3:
                    raise EvalFailure("define expects exactly one value expression")
                expr = node[2]
                if _is_form(expr, "lambda"):
                    build = lambda ctx: self._make_lambda(expr, ctx, name=name)
                else:
                    build = lambda ctx: self.eval(expr, ctx)
            case List() if len(target) > 0 and isinstance(target[0], Symbol):
                # (define (name params...) body...)
                name = target[0].name
                params = self._params(target[1:], "define")
                body = node[2:]
                build = lambda ctx: Lambda(params, body, ctx, name=name)
            case _:
                raise EvalFailure("define expects a symbol or (name params...)")
        return Symbol(name), context.bind_recursive(name, build)

    # -----------------------------------------------------------------
    # Application
    # -----------------------------------------------------------------

    def _signature_facts(self, func) -> Tuple[Optional[inspect.Signature], bool]:
        key = getattr(func, "__func__", func)
        facts = self._signatures.get(key)
        if facts is None:
            try:
                sig = inspect.signature(func)
            except (TypeError, ValueError):
                sig = None
            accepts = sig is not None and 'context' in sig.parameters
            facts = (sig, accepts)
            self._signatures[key] = facts
        return facts

    def _expected_arity(self, sig: inspect.Signature) -> str:
        positional = [p for p in sig.parameters.values()
                      if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)]
        required = sum(1 for p in positional if p.default is p.empty)
        if any(p.kind == p.VAR_POSITIONAL for p in sig.parameters.values()):
            return f"at least {required}"
        if required != len(positional):
            return f"{required} to {len(positional)}"
        return str(required)

    def call(self, func: Any, args: PyList[Any], context: Context, call_site: Any = None) -> Any:
        """Applies a callable value to already-evaluated arguments."""
        name = callable_name(func)
        if call_site is not None:
            self.current_node = call_site
        self._push_frame(name, func, args, call_site)
        _ok = False
        try:
            result = self._apply(func, name, args, context)
            _ok = True
        finally:
            if _ok:
                self._pop_frame()
        return result

    def _apply(self, func: Any, name: str, args: PyList[Any], context: Context) -> Any:
        match func:
            case Lambda():
                if len(args) != len(func.params):
                    raise ArityMismatch(name, str(len(func.params)), len(args))
                call_context = func.closure.extend(dict(zip(func.params, args)))
                return self.eval_body(func.body, call_context)
            case _ if callable(func):
                sig, accepts_context = self._signature_facts(func)
                kwargs = {'context': context} if accepts_context else {}
                if sig is not None:
                    try:
                        sig.bind(*args, **kwargs)
                    except TypeError:
                        raise ArityMismatch(name, self._expected_arity(sig), len(args)) from None
                return func(*args, **kwargs)
            case _:
                raise TypeMismatch("callable", func)
