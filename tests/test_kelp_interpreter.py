import pytest

from kelp.kelp_datatypes import Symbol, List, Lambda, Context
from kelp.kelp_errors import TypeMismatch, UnboundSymbol, ArityMismatch, EvalFailure
from kelp.kelp_interpreter import Evaluator, callable_name
from kelp.kelp_serialize import parse, parse_program


@pytest.fixture
def evaluator():
    return Evaluator()


def _add(*nums):
    return sum(nums)


def _lt(a, b):
    return a < b


@pytest.fixture
def ctx():
    return Context({"add": _add, "lt": _lt})


def run(evaluator, ctx, text):
    result = List()
    for form in parse_program(text):
        result, ctx = evaluator.eval_toplevel(form, ctx)
    return result


class TestReduction:
    def test_atoms_are_self_evaluating(self, evaluator, ctx):
        assert evaluator.eval("s", ctx) == "s"
        assert evaluator.eval(3, ctx) == 3
        assert evaluator.eval(True, ctx) is True
        assert evaluator.eval(List(), ctx) == List()

    def test_symbol_lookup(self, evaluator, ctx):
        assert evaluator.eval(Symbol("add"), ctx) is _add
        with pytest.raises(UnboundSymbol) as exc:
            evaluator.eval(Symbol("nope"), ctx)
        assert exc.value.describe() == "UnboundSymbol: 'nope' is not bound"

    def test_primitive_call(self, evaluator, ctx):
        assert evaluator.eval(parse("(add 1 2 3)"), ctx) == 6

    def test_non_callable_head(self, evaluator, ctx):
        with pytest.raises(TypeMismatch) as exc:
            evaluator.eval(parse('("f" 1)'), ctx)
        assert "expected callable" in str(exc.value)

    def test_quote(self, evaluator, ctx):
        assert evaluator.eval(parse("'(add 1 2)"), ctx) == List([Symbol("add"), 1, 2])
        with pytest.raises(EvalFailure):
            evaluator.eval(parse("(quote)"), ctx)


class TestSpecialForms:
    def test_if_branches(self, evaluator, ctx):
        assert evaluator.eval(parse('(if (lt 1 2) "yes" "no")'), ctx) == "yes"
        assert evaluator.eval(parse('(if (lt 2 1) "yes" "no")'), ctx) == "no"
        assert evaluator.eval(parse('(if #f "yes")'), ctx) == List()

    def test_if_only_evaluates_the_taken_branch(self, evaluator, ctx):
        assert evaluator.eval(parse("(if #t 1 (unbound))"), ctx) == 1

    def test_if_requires_a_bool(self, evaluator, ctx):
        with pytest.raises(TypeMismatch):
            evaluator.eval(parse("(if 0 1 2)"), ctx)

    def test_let_binds_in_a_child_context(self, evaluator, ctx):
        assert evaluator.eval(parse("(let ((x 1) (y 2)) (add x y))"), ctx) == 3
        assert "x" not in ctx

    def test_let_rejects_malformed_bindings(self, evaluator, ctx):
        with pytest.raises(EvalFailure):
            evaluator.eval(parse("(let (x 1) x)"), ctx)

    def test_begin_returns_the_last_value(self, evaluator, ctx):
        assert evaluator.eval(parse("(begin 1 2 3)"), ctx) == 3
        assert evaluator.eval(parse("(begin)"), ctx) == List()

    def test_define_inside_a_body_is_local(self, evaluator, ctx):
        assert evaluator.eval(parse("(begin (define z 4) (add z z))"), ctx) == 8
        assert "z" not in ctx

    def test_define_in_expression_position_is_rejected(self, evaluator, ctx):
        with pytest.raises(EvalFailure):
            evaluator.eval(parse("(add (define q 1) 2)"), ctx)


class TestDefineAndLambda:
    def test_define_returns_the_symbol_and_a_new_context(self, evaluator, ctx):
        value, after = evaluator.eval_toplevel(parse("(define x 10)"), ctx)
        assert value == Symbol("x")
        assert after["x"] == 10
        assert "x" not in ctx

    def test_closures_capture_their_context(self, evaluator, ctx):
        assert run(evaluator, ctx, """
        (define (make-adder n) (lambda (x) (add x n)))
        (define add5 (make-adder 5))
        (add5 10)
        """) == 15

    def test_recursive_define(self, evaluator, ctx):
        ctx = ctx.extend({"sub": lambda a, b: a - b, "mul": lambda a, b: a * b})
        assert run(evaluator, ctx, """
        (define (fact n) (if (lt n 2) 1 (mul n (fact (sub n 1)))))
        (fact 10)
        """) == 3628800

    def test_define_names_lambdas(self, evaluator, ctx):
        value = run(evaluator, ctx, "(define inc (lambda (x) (add x 1))) inc")
        assert isinstance(value, Lambda)
        assert value.name == "inc"
        assert callable_name(value) == "inc"

    def test_lambda_arity_is_checked(self, evaluator, ctx):
        with pytest.raises(ArityMismatch) as exc:
            run(evaluator, ctx, "(define (two a b) a) (two 1)")
        assert exc.value.expected == "2"
        assert exc.value.got == 1

    def test_primitive_arity_is_checked(self, evaluator, ctx):
        with pytest.raises(ArityMismatch) as exc:
            evaluator.eval(parse("(lt 1)"), ctx)
        assert "(lt) expects 2 argument(s), got 1" in str(exc.value)

    @pytest.mark.parametrize("src", [
        "(lambda x x)",
        "(lambda (x x) x)",
        "(lambda (1) 1)",
        "(lambda (x))",
    ])
    def test_malformed_lambda(self, evaluator, ctx, src):
        with pytest.raises(EvalFailure):
            evaluator.eval(parse(src), ctx)


class TestContextPassing:
    def test_primitives_may_ask_for_the_context(self, evaluator, ctx):
        seen = {}

        def _here(*, context):
            seen["ctx"] = context
            return True

        ctx = ctx.extend({"here": _here})
        assert evaluator.eval(parse("(let ((v 1)) (here))"), ctx) is True
        assert seen["ctx"]["v"] == 1
        assert seen["ctx"].parent is ctx

    def test_context_is_never_mutated_by_evaluation(self, evaluator, ctx):
        before = dict(ctx)
        run(evaluator, ctx, "(define a 1) (let ((b 2)) b) (begin (define c 3) c)")
        assert dict(ctx) == before


class TestCallStack:
    def test_stack_is_empty_after_success(self, evaluator, ctx):
        run(evaluator, ctx, "(define (f x) (add x 1)) (f 1)")
        assert evaluator.call_stack == []

    def test_stack_keeps_the_failing_frames(self, evaluator, ctx):
        with pytest.raises(UnboundSymbol):
            run(evaluator, ctx, "(define (outer x) (inner x)) (define (inner y) (add y missing)) (outer 1)")
        names = [frame['name'] for frame in evaluator.call_stack]
        assert names == ["outer", "inner"]
