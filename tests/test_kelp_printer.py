import pytest

from kelp.kelp_datatypes import Symbol, List, Lambda, Context
from kelp.kelp_errors import TypeMismatch
from kelp.kelp_printer import Printer


@pytest.fixture
def printer():
    return Printer()


# Test cases: (id, object, expected_string)
FORMAT_TEST_CASES = [
    ("str", "hello", '"hello"'),
    ("str_escapes", 'a "q" \\ b\nc\td\r', '"a \\"q\\" \\\\ b\\nc\\td\\r"'),
    ("empty_str", "", '""'),
    ("int", 123, "123"),
    ("negative_int", -7, "-7"),
    ("float", -1.5, "-1.5"),
    ("bool_true", True, "#t"),
    ("bool_false", False, "#f"),
    ("symbol", Symbol("file-exists?"), "file-exists?"),
    ("empty_list", List(), "()"),
    ("nested_list", List([1, List(["a", Symbol("b")]), True]), '(1 ("a" b) #t)'),
]


@pytest.mark.parametrize("case_id, obj, expected", FORMAT_TEST_CASES, ids=[c[0] for c in FORMAT_TEST_CASES])
def test_pformat(printer, case_id, obj, expected):
    assert printer.pformat(obj) == expected


def test_pformat_rejects_callables(printer):
    lam = Lambda(("x",), (Symbol("x"),), Context(), name="ident")
    with pytest.raises(TypeMismatch) as exc:
        printer.pformat(lam)
    assert "serializable value" in str(exc.value)
    with pytest.raises(TypeMismatch):
        printer.pformat(len)


def test_pformat_rejects_callables_nested_in_lists(printer):
    with pytest.raises(TypeMismatch):
        printer.pformat(List([1, List([len])]))


@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
def test_pformat_rejects_non_finite_numbers(printer, value):
    with pytest.raises(TypeMismatch):
        printer.pformat(value)


@pytest.mark.parametrize("name", ["two words", "(paren", "#hash", "42", ""])
def test_pformat_rejects_unreadable_symbols(printer, name):
    with pytest.raises(TypeMismatch):
        printer.pformat(Symbol(name))


def test_describe_never_fails(printer):
    lam = Lambda(("x", "y"), (Symbol("x"),), Context(), name="pick")
    assert printer.describe(lam) == "<pick (x y)>"
    assert printer.describe(List([1, lam])) == "(1 <pick (x y)>)"
    assert printer.describe(float("inf")) == "inf"
    assert printer.describe(None) == "None"


def test_describe_names_primitives(printer):
    class Lib:
        def _file_exists(self, path):
            return False
    assert printer.describe(Lib()._file_exists) == "<primitive file-exists>"


def test_describe_summarizes_huge_integers(printer):
    assert printer.describe(10 ** 5000) == "<number of 5001 digits>"
    assert printer.describe(List([-(10 ** 5000)])) == "(<number of 5001 digits>)"
    assert printer.describe(12345) == "12345"


def test_describe_falls_back_when_rendering_fails(printer, monkeypatch):
    def broken(obj):
        raise ValueError("cannot render")
    monkeypatch.setattr(printer, "_describe", broken)
    assert printer.describe(42) == "<int>"
