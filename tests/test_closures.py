from mica.mica_runtime import ScriptRunner
from mica.mica_datatypes import Integer, Array, Function, ErrorValue


def run_mica(src: str):
    return ScriptRunner().handle_script(src)

def assert_ok(res, expected=None):
    assert res.status == 'success', f"expected success, got {res.status}: {res.error_message}"
    assert not isinstance(res.value, ErrorValue), f"unexpected runtime error: {res.value}"
    if expected is not None:
        assert res.value == expected


def test_closure_captures_argument():
    src = """
    let newAdder = fn(x) { fn(y) { x + y } };
    let addTwo = newAdder(2);
    addTwo(3)
    """
    assert_ok(run_mica(src), Integer(5))


def test_each_call_gets_its_own_frame():
    src = """
    let newAdder = fn(x) { fn(y) { x + y } };
    let addOne = newAdder(1);
    let addTen = newAdder(10);
    [addOne(1), addTen(1)]
    """
    assert_ok(run_mica(src), Array((Integer(2), Integer(11))))


def test_counter_keeps_state_between_calls():
    src = """
    let make = fn() {
        let n = 0;
        fn() { n = n + 1; n }
    };
    let c = make();
    c(); c();
    c()
    """
    assert_ok(run_mica(src), Integer(3))


def test_closures_share_the_captured_environment():
    src = """
    let make = fn() {
        let n = 0;
        let inc = fn() { n = n + 1 };
        let get = fn() { n };
        [inc, get]
    };
    let pair = make();
    pair[0](); pair[0]();
    pair[1]()
    """
    assert_ok(run_mica(src), Integer(2))


def test_separate_counters_are_independent():
    src = """
    let make = fn() { let n = 0; fn() { n = n + 1; n } };
    let a = make();
    let b = make();
    a(); a();
    [a(), b()]
    """
    assert_ok(run_mica(src), Array((Integer(3), Integer(1))))


def test_reassignment_from_function_updates_global():
    assert_ok(run_mica("let x = 1; let f = fn() { x = 5 }; f(); x"), Integer(5))


def test_let_inside_function_shadows_outer_binding():
    assert_ok(run_mica("let x = 1; let f = fn() { let x = 2; x }; f() + x"), Integer(3))


def test_parameters_shadow_outer_binding():
    assert_ok(run_mica("let x = 1; let f = fn(x) { x = x + 10; x }; f(5) + x"), Integer(16))


def test_function_locals_do_not_leak():
    res = run_mica("let f = fn() { let y = 1; y }; f(); y")
    assert isinstance(res.value, ErrorValue)
    assert res.value.message == "Identifier not found: y"


def test_late_binding_through_shared_global_frame():
    assert_ok(run_mica("let f = fn() { g() }; let g = fn() { 7 }; f()"), Integer(7))


def test_higher_order_map():
    src = """
    let map = fn(arr, f) {
        let iter = fn(arr, acc) {
            if (len(arr) == 0) { acc } else { iter(rest(arr), push(acc, f(first(arr)))) }
        };
        iter(arr, [])
    };
    map([1, 2, 3], fn(x) { x * 2 })
    """
    assert_ok(run_mica(src), Array((Integer(2), Integer(4), Integer(6))))


def test_reduce_with_accumulator():
    src = """
    let reduce = fn(arr, initial, f) {
        let iter = fn(arr, result) {
            if (len(arr) == 0) { result } else { iter(rest(arr), f(result, first(arr))) }
        };
        iter(arr, initial)
    };
    reduce([1, 2, 3, 4, 5], 0, fn(acc, el) { acc + el })
    """
    assert_ok(run_mica(src), Integer(15))


def test_function_value_keeps_defining_environment():
    runner = ScriptRunner()
    runner.handle_script("let make = fn(n) { fn() { n } }; let f = make(4)")
    f = runner.root_scope.get("f")
    assert isinstance(f, Function)
    assert f.env.get("n") == Integer(4)
    assert f.env.parent is runner.root_scope


def test_functions_are_not_comparable():
    res = run_mica("let f = fn(x) { x }; f == f")
    assert res.value.message == "Use infix operators on matching integers, booleans or strings, got FUNCTION == FUNCTION"


def test_closure_sees_later_reassignment_in_defining_scope():
    assert_ok(run_mica("let x = 1; let f = fn() { x }; x = 2; f()"), Integer(2))


def test_closure_sees_reassignment_made_by_another_call():
    src = """
    let make = fn() {
        let n = 1;
        let read = fn() { n };
        let bump = fn() { n = n * 10 };
        bump();
        read
    };
    make()()
    """
    assert_ok(run_mica(src), Integer(10))
