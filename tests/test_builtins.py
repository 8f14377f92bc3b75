import pytest
from mica.mica_runtime import ScriptRunner
from mica.mica_builtins import StdLib, StringMethods, string_property
from mica.mica_datatypes import (
    Integer, String, Array, Hash, BuiltinFunction, ErrorValue, ErrorKind,
    TRUE, FALSE, NULL, EMPTY,
)


def run_mica(src: str):
    return ScriptRunner().handle_script(src)

def assert_ok(res, expected=None):
    assert res.status == 'success', f"expected success, got {res.status}: {res.error_message}"
    assert not isinstance(res.value, ErrorValue), f"unexpected runtime error: {res.value}"
    if expected is not None:
        assert res.value == expected

def assert_error(res, message, kind=None):
    assert isinstance(res.value, ErrorValue), f"expected an error, got {res.value}"
    assert res.value.message == message
    if kind is not None:
        assert res.value.kind == kind

def strings(*items):
    return Array(tuple(String(s) for s in items))

def ints(*items):
    return Array(tuple(Integer(i) for i in items))


# --- Free functions ---

# Each entry is a tuple: (test_id, source_code, expected_value)
BUILTIN_CASES = [
    ("len_empty_string", 'len("")', Integer(0)),
    ("len_string", 'len("four")', Integer(4)),
    ("len_code_points", 'len("héllo")', Integer(5)),
    ("len_array", "len([1, 2, 3])", Integer(3)),
    ("len_hash", 'len({"a": 1, "b": 2})', Integer(2)),
    ("first", "first([1, 2, 3])", Integer(1)),
    ("first_empty", "first([])", NULL),
    ("last", "last([1, 2, 3])", Integer(3)),
    ("last_empty", "last([])", NULL),
    ("rest", "rest([1, 2, 3])", ints(2, 3)),
    ("rest_single", "rest([1])", Array(())),
    ("rest_empty", "rest([])", NULL),
    ("push", "push([1], 2)", ints(1, 2)),
    ("push_empty", "push([], [1])", Array((ints(1),))),
    ("type_int", "type(1)", String("INTEGER")),
    ("type_bool", "type(true)", String("BOOLEAN")),
    ("type_string", 'type("a")', String("STRING")),
    ("type_array", "type([])", String("ARRAY")),
    ("type_hash", "type({})", String("HASH")),
    ("type_fn", "type(fn() {})", String("FUNCTION")),
    ("type_builtin", "type(len)", String("BUILTIN")),
    ("type_null", "type(first([]))", String("NULL")),
    ("keys", 'keys({"b": 1, "a": 2})', strings("b", "a")),
    ("values", 'values({"b": 1, "a": 2})', ints(1, 2)),
]

@pytest.mark.parametrize(
    "test_id, source, expected",
    BUILTIN_CASES,
    ids=[t[0] for t in BUILTIN_CASES]
)
def test_builtin_functions(test_id, source, expected):
    assert_ok(run_mica(source), expected)


def test_push_does_not_modify_its_argument():
    assert_ok(run_mica("let a = [1]; let b = push(a, 2); [len(a), len(b)]"), ints(1, 2))


# Each entry is a tuple: (test_id, source_code, message)
BUILTIN_ERROR_CASES = [
    ("len_int", "len(1)", "Argument to `len` not supported, got INTEGER"),
    ("len_too_many", 'len("one", "two")', "Wrong number of arguments. Got 2, expected 1"),
    ("len_none", "len()", "Wrong number of arguments. Got 0, expected 1"),
    ("first_string", 'first("abc")', "Argument to `first` not supported, got STRING"),
    ("last_int", "last(1)", "Argument to `last` not supported, got INTEGER"),
    ("rest_hash", "rest({})", "Argument to `rest` not supported, got HASH"),
    ("push_int", "push(1, 2)", "Argument to `push` not supported, got INTEGER"),
    ("push_one_arg", "push([])", "Wrong number of arguments. Got 1, expected 2"),
    ("keys_array", "keys([])", "Argument to `keys` not supported, got ARRAY"),
    ("values_string", 'values("a")', "Argument to `values` not supported, got STRING"),
]

@pytest.mark.parametrize(
    "test_id, source, message",
    BUILTIN_ERROR_CASES,
    ids=[t[0] for t in BUILTIN_ERROR_CASES]
)
def test_builtin_errors(test_id, source, message):
    assert_error(run_mica(source), message)


# --- puts ---

def test_puts_emits_stdout_side_effect():
    res = run_mica('puts("hello", 1, true, ["a", 2])')
    assert_ok(res, EMPTY)
    assert res.side_effects == [{'topics': ['stdout'], 'message': 'hello 1 true ["a", 2]'}]


def test_puts_without_arguments_emits_empty_line():
    res = run_mica("puts()")
    assert res.stdout == [""]


def test_puts_effects_keep_order():
    res = run_mica('puts("a"); puts("b"); let x = 1; puts(x + 1)')
    assert res.stdout == ["a", "b", "2"]


# --- String dot table ---

# Each entry is a tuple: (test_id, source_code, expected_value)
STRING_CASES = [
    ("len", '"hello".len', Integer(5)),
    ("upper", '"Hello".upper', String("HELLO")),
    ("lower", '"AbC".lower', String("abc")),
    ("trim", '"  x  ".trim', String("x")),
    ("reverse", '"abc".reverse', String("cba")),
    ("chars", '"ab".chars', strings("a", "b")),
    ("chars_empty", '"".chars', Array(())),
    ("split", '"a-b-c".split("-")', strings("a", "b", "c")),
    ("split_empty_separator", '"abc".split("")', strings("a", "b", "c")),
    ("split_no_match", '"abc".split(",")', strings("abc")),
    ("contains", '"hello".contains("ell")', TRUE),
    ("contains_missing", '"hello".contains("xyz")', FALSE),
    ("starts_with", '"hello".starts_with("he")', TRUE),
    ("ends_with", '"hello".ends_with("he")', FALSE),
    ("replace", '"aXbX".replace("X", "-")', String("a-b-")),
    ("repeat", '"ab".repeat(3)', String("ababab")),
    ("repeat_negative", '"ab".repeat(-1)', String("")),
    ("method_on_binding", 'let s = "x,y"; s.split(",")[1]', String("y")),
    ("method_on_property", '"A,B".lower.split(",")', strings("a", "b")),
    ("len_of_split", 'len("a b c".split(" "))', Integer(3)),
]

@pytest.mark.parametrize(
    "test_id, source, expected",
    STRING_CASES,
    ids=[t[0] for t in STRING_CASES]
)
def test_string_dot_notation(test_id, source, expected):
    assert_ok(run_mica(source), expected)


# Each entry is a tuple: (test_id, source_code, message)
STRING_ERROR_CASES = [
    ("split_int", '"a".split(1)', "Argument to `split` not supported, got INTEGER"),
    ("split_no_args", '"a".split()', "Wrong number of arguments. Got 0, expected 1"),
    ("replace_too_few", '"a".replace("a")', "Wrong number of arguments. Got 1, expected 2"),
    ("replace_bad_new", '"a".replace("a", 1)', "Argument to `replace` not supported, got INTEGER"),
    ("repeat_string", '"a".repeat("2")', "Argument to `repeat` not supported, got STRING"),
    ("contains_bool", '"a".contains(true)', "Argument to `contains` not supported, got BOOLEAN"),
    ("private_name", '"a"._len', "Unknown string property: _len"),
]

@pytest.mark.parametrize(
    "test_id, source, message",
    STRING_ERROR_CASES,
    ids=[t[0] for t in STRING_ERROR_CASES]
)
def test_string_dot_errors(test_id, source, message):
    assert_error(run_mica(source), message)


def test_unapplied_string_method_is_a_builtin():
    res = run_mica('"a,b".split')
    assert isinstance(res.value, BuiltinFunction)
    assert res.value.name == "split"


# --- Registry ---

def test_registry_exposes_names_without_underscore():
    table = StdLib().registry()
    assert set(table) == {"len", "first", "last", "rest", "push", "puts", "type", "keys", "values"}
    assert all(isinstance(b, BuiltinFunction) and b.name == name for name, b in table.items())


def test_builtins_can_be_called_directly():
    table = StdLib().registry()
    assert table["len"].fn([String("abc")]) == Integer(3)
    err = table["len"].fn([])
    assert err == ErrorValue(ErrorKind.ARITY, "Wrong number of arguments. Got 0, expected 1")


def test_puts_without_evaluator_has_no_effects():
    assert StdLib().registry()["puts"].fn([String("x")]) is EMPTY


def test_string_methods_lookup():
    methods = StringMethods()
    assert methods.lookup("abc", "len") == Integer(3)
    assert methods.lookup("abc", "missing") is None
    bound = methods.lookup("a-b", "split")
    assert bound.fn([String("-")]) == strings("a", "b")


def test_string_property_marker():
    @string_property
    def shout(self, s):
        return String(s.upper())
    assert shout._is_property is True


def test_hash_lookup_returns_first_match():
    h = Hash(((String("a"), Integer(1)), (String("a"), Integer(2))))
    assert h.lookup("a") == Integer(1)
    assert h.lookup("b") is None


def test_unsupported_argument_kind():
    res = run_mica("len(1)")
    assert res.value.kind == ErrorKind.BUILTIN


def test_repeat_result_length_is_bounded():
    res = run_mica('"ab".repeat(4611686018427387904)')
    assert res.status == 'success'
    assert_error(
        res,
        "Result of `repeat` too long: 9223372036854775808 characters, limit 16777216",
        ErrorKind.BUILTIN,
    )
    assert res.stderr == [f"ERROR: {res.value.message}"]


def test_repeat_of_empty_string_ignores_count():
    assert_ok(run_mica('"".repeat(4611686018427387904)'), String(""))
