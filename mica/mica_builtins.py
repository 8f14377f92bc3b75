"""
Native functions available to every Mica program.

`StdLib` provides the free functions looked up when an identifier is not bound
in the environment chain; `StringMethods` provides the properties and methods
reachable through dot notation on a String (`"abc".len`, `"a,b".split(",")`).

Each builtin is a method whose name starts with a single underscore; the Mica
name is the method name without it. Argument counts are checked against the
method signature before the call.
"""

import inspect
from typing import Callable, Dict, List

from mica.mica_datatypes import (
    Value, Integer, String, Array, Hash, BuiltinFunction,
    ErrorValue, ErrorKind, EMPTY, NULL, native_bool,
)

# Longest String `repeat` may build, in characters.
MAX_REPEAT_LENGTH = 2 ** 24


def string_property(func):
    """Marks a StringMethods member as a property (`s.len`) rather than a method (`s.split(",")`)."""
    func._is_property = True
    return func


def _arity(func: Callable):
    """Returns (min, max) positional arguments; max is None for varargs."""
    params = list(inspect.signature(func).parameters.values())
    required = 0
    maximum = 0
    for p in params:
        if p.kind == p.VAR_POSITIONAL:
            return required, None
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD):
            maximum += 1
            if p.default is p.empty:
                required += 1
    return required, maximum


def _check_arity(func: Callable, args: List[Value], skip: int = 0):
    lo, hi = _arity(func)
    lo -= skip
    hi = None if hi is None else hi - skip
    if len(args) < lo or (hi is not None and len(args) > hi):
        expected = lo if hi == lo else (f"at least {lo}" if hi is None else f"{lo} to {hi}")
        return ErrorValue(ErrorKind.ARITY, f"Wrong number of arguments. Got {len(args)}, expected {expected}")
    return None


def _unsupported(name: str, value: Value) -> ErrorValue:
    return ErrorValue(ErrorKind.BUILTIN, f"Argument to `{name}` not supported, got {value.type_name}")


class StdLib:
    """Contains Python implementations for all Mica free functions."""

    def __init__(self, evaluator=None):
        self.evaluator = evaluator

    def registry(self) -> Dict[str, BuiltinFunction]:
        """Builds the name → BuiltinFunction table."""
        table: Dict[str, BuiltinFunction] = {}
        for name, member in inspect.getmembers(self):
            if name.startswith('_') and not name.startswith('__') and callable(member):
                mica_name = name[1:]
                table[mica_name] = BuiltinFunction(mica_name, self.wrap(member))
        return table

    def wrap(self, member):
        def call(args: List[Value]) -> Value:
            err = _check_arity(member, args)
            if err is not None:
                return err
            return member(*args)
        return call

    # --- Collections ---
    def _len(self, value):
        match value:
            case String(text):
                return Integer(len(text))
            case Array(elements):
                return Integer(len(elements))
            case Hash(pairs):
                return Integer(len(pairs))
        return _unsupported("len", value)

    def _first(self, array):
        if not isinstance(array, Array):
            return _unsupported("first", array)
        return array.elements[0] if array.elements else NULL

    def _last(self, array):
        if not isinstance(array, Array):
            return _unsupported("last", array)
        return array.elements[-1] if array.elements else NULL

    def _rest(self, array):
        if not isinstance(array, Array):
            return _unsupported("rest", array)
        if not array.elements:
            return NULL
        return Array(array.elements[1:])

    def _push(self, array, value):
        if not isinstance(array, Array):
            return _unsupported("push", array)
        return Array(array.elements + (value,))

    def _keys(self, hash_value):
        if not isinstance(hash_value, Hash):
            return _unsupported("keys", hash_value)
        return Array(tuple(k for k, _ in hash_value.pairs))

    def _values(self, hash_value):
        if not isinstance(hash_value, Hash):
            return _unsupported("values", hash_value)
        return Array(tuple(v for _, v in hash_value.pairs))

    # --- Introspection ---
    def _type(self, value):
        return String(value.type_name)

    # --- Output ---
    def _puts(self, *values):
        """Generates a stdout side effect for the host application."""
        from mica.mica_printer import Printer
        printer = Printer()
        message = " ".join(v.value if isinstance(v, String) else printer.pformat(v) for v in values)
        if self.evaluator is not None:
            self.evaluator.side_effects.append({"topics": ["stdout"], "message": message})
        return EMPTY


class StringMethods:
    """The dot-notation table for String receivers."""

    def lookup(self, receiver: str, name: str):
        """Resolves `receiver.name` to a Value, or None if `name` is not in the table."""
        member = getattr(self, f"_{name}", None)
        if name.startswith('_') or member is None or not callable(member):
            return None
        if getattr(member, '_is_property', False):
            return member(receiver)

        def bound(args: List[Value]) -> Value:
            err = _check_arity(member, args, skip=1)
            if err is not None:
                return err
            return member(receiver, *args)
        return BuiltinFunction(name, bound)

    # --- Properties ---
    @string_property
    def _len(self, s: str): return Integer(len(s))
    @string_property
    def _upper(self, s: str): return String(s.upper())
    @string_property
    def _lower(self, s: str): return String(s.lower())
    @string_property
    def _trim(self, s: str): return String(s.strip())
    @string_property
    def _reverse(self, s: str): return String(s[::-1])
    @string_property
    def _chars(self, s: str): return Array(tuple(String(c) for c in s))

    # --- Methods ---
    def _split(self, s: str, sep):
        if not isinstance(sep, String):
            return _unsupported("split", sep)
        if sep.value == "":
            return Array(tuple(String(c) for c in s))
        return Array(tuple(String(part) for part in s.split(sep.value)))

    def _contains(self, s: str, sub):
        if not isinstance(sub, String):
            return _unsupported("contains", sub)
        return native_bool(sub.value in s)

    def _starts_with(self, s: str, prefix):
        if not isinstance(prefix, String):
            return _unsupported("starts_with", prefix)
        return native_bool(s.startswith(prefix.value))

    def _ends_with(self, s: str, suffix):
        if not isinstance(suffix, String):
            return _unsupported("ends_with", suffix)
        return native_bool(s.endswith(suffix.value))

    def _replace(self, s: str, old, new):
        if not isinstance(old, String):
            return _unsupported("replace", old)
        if not isinstance(new, String):
            return _unsupported("replace", new)
        return String(s.replace(old.value, new.value))

    def _repeat(self, s: str, count):
        if not isinstance(count, Integer):
            return _unsupported("repeat", count)
        times = max(count.value, 0)
        if len(s) * times > MAX_REPEAT_LENGTH:
            return ErrorValue(
                ErrorKind.BUILTIN,
                f"Result of `repeat` too long: {len(s) * times} characters, limit {MAX_REPEAT_LENGTH}",
            )
        return String(s * times)
