import pytest

from kelp.kelp_datatypes import Symbol, List, Lambda, Context
from kelp.kelp_errors import ParseFailure, TypeMismatch
from kelp.kelp_serialize import Reader, parse, parse_program, show


ROUND_TRIP_VALUES = [
    "plain",
    "",
    'quote " and backslash \\',
    "line\nbreak\ttab\rcr",
    "unicode: café ✓",
    "; not a comment",
    0,
    42,
    -17,
    3.25,
    -0.5,
    1e-07,
    1e+22,
    True,
    False,
    Symbol("x"),
    Symbol("file-exists?"),
    Symbol("+"),
    Symbol("-"),
    Symbol("<="),
    List(),
    List([1, 2, 3]),
    List(["a", Symbol("b"), List([True, List([]), 2.5])]),
]


@pytest.mark.parametrize("value", ROUND_TRIP_VALUES, ids=repr)
def test_parse_show_round_trip(value):
    back = parse(show(value))
    assert back == value
    assert type(back) is type(value)


def test_show_renders_with_the_reader_grammar():
    assert show(List([1, "two", Symbol("three"), False])) == '(1 "two" three #f)'


def test_show_fails_for_callables():
    with pytest.raises(TypeMismatch):
        show(Lambda(("x",), (Symbol("x"),), Context()))
    with pytest.raises(TypeMismatch):
        show(List([print]))


def test_parse_program_reads_every_datum_in_order():
    values = parse_program("""
    ; a comment line
    (define x 1)   ; trailing comment
    "s" 2 #t
    """)
    assert len(values) == 4
    assert values[0] == List([Symbol("define"), Symbol("x"), 1])
    assert values[1:] == ["s", 2, True]


def test_parse_program_of_blank_text_is_empty():
    assert parse_program("") == []
    assert parse_program("  ; only a comment\n") == []


def test_quote_shorthand_reads_as_quote_form():
    assert parse("'(1 2)") == List([Symbol("quote"), List([1, 2])])
    assert parse("'x") == List([Symbol("quote"), Symbol("x")])


def test_numbers_and_symbols_are_told_apart():
    assert parse("-5") == -5
    assert isinstance(parse("1.0"), float)
    assert parse("-") == Symbol("-")
    assert parse("1+") == Symbol("1+")
    assert parse("-x") == Symbol("-x")


def test_locations_are_attached_to_lists_and_symbols():
    form = parse_program("1\n  (f x)")[1]
    assert form.loc is not None
    assert form.loc['line'] == 2
    assert form[0].loc is not None


@pytest.mark.parametrize("text", [
    "(1 2",
    "1 2)",
    ")",
    '"unterminated',
    '"bad \\q escape"',
    "#x",
])
def test_malformed_text_is_a_parse_failure(text):
    with pytest.raises(ParseFailure):
        parse_program(text)


def test_parse_failure_reports_where():
    with pytest.raises(ParseFailure) as exc:
        parse_program("(ok)\n(broken")
    assert exc.value.kind == "ParseFailure"
    assert exc.value.describe().startswith("ParseFailure: ")


@pytest.mark.parametrize("text, count", [("", 0), ("1 2", 2), ("; nothing", 0)])
def test_parse_requires_exactly_one_datum(text, count):
    with pytest.raises(ParseFailure) as exc:
        parse(text)
    assert f"found {count}" in str(exc.value)


def test_reader_rejects_non_string_input():
    with pytest.raises(TypeMismatch):
        Reader().read_all(42)


def test_reader_shares_one_compiled_grammar():
    assert Reader().parser is Reader().parser


def test_integers_past_the_conversion_limit_round_trip():
    big = 10 ** 5000 + 7
    text = show(big)
    assert text == "1" + "0" * 4999 + "7"
    assert parse(text) == big
    assert parse(show(-big)) == -big


def test_long_integer_literal_reads_as_a_number():
    assert parse("1" * 5000) == (10 ** 5000 - 1) // 9


def test_out_of_range_float_literal_is_a_parse_failure():
    with pytest.raises(ParseFailure) as exc:
        parse("1e400")
    assert "out of range" in str(exc.value)
    with pytest.raises(ParseFailure):
        parse_program("(list -1e999)")
