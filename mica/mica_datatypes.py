"""
Defines the runtime data types for the Mica interpreter.

Values are small dataclasses compared by content. `ReturnValue` and
`ErrorValue` travel through the evaluator like any other value but are never
the result of a computation: the first unwinds blocks up to the enclosing
call, the second short-circuits the enclosing expression.

`Environment` is the scope chain used for lexical lookup. Frames are shared by
reference: a `Function` keeps the frame it was defined in alive, and every
closure holding the same frame sees the same bindings.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from mica.mica_ast import BlockStatement, Identifier


class Value:
    """Abstract base class for all Mica runtime values."""

    type_name = "VALUE"

    def __str__(self) -> str:
        from mica.mica_printer import Printer
        return Printer().pformat(self)


# =================================================================
# Scalar and container values
# =================================================================

@dataclass(frozen=True)
class Integer(Value):
    value: int
    type_name = "INTEGER"


@dataclass(frozen=True)
class Boolean(Value):
    value: bool
    type_name = "BOOLEAN"


@dataclass(frozen=True)
class String(Value):
    value: str
    type_name = "STRING"


@dataclass(frozen=True)
class Array(Value):
    elements: Tuple[Value, ...] = ()
    type_name = "ARRAY"


@dataclass(frozen=True)
class Hash(Value):
    """Ordered key/value pairs. Keys are Strings; lookup is a linear scan."""
    pairs: Tuple[Tuple[Value, Value], ...] = ()
    type_name = "HASH"

    def lookup(self, key: str) -> Optional[Value]:
        for k, v in self.pairs:
            if isinstance(k, String) and k.value == key:
                return v
        return None


class Empty(Value):
    """The unit value produced by `let` and reassignment."""
    type_name = "EMPTY"

    def __repr__(self) -> str:
        return "EMPTY"


class Null(Value):
    """The language-level absence of a value."""
    type_name = "NULL"

    def __repr__(self) -> str:
        return "NULL"


EMPTY = Empty()
NULL = Null()

TRUE = Boolean(True)
FALSE = Boolean(False)


def native_bool(flag: bool) -> Boolean:
    return TRUE if flag else FALSE


# =================================================================
# Callables
# =================================================================

@dataclass(eq=False)
class Function(Value):
    """A closure: parameters and body bundled with the defining Environment."""
    parameters: Tuple['Identifier', ...]
    body: 'BlockStatement'
    env: 'Environment'
    type_name = "FUNCTION"

    def __eq__(self, other):
        if not isinstance(other, Function):
            return NotImplemented
        # NOTE: the captured environment is intentionally not compared.
        return self.parameters == other.parameters and self.body == other.body

    def __hash__(self):
        return hash((self.parameters, self.body))


@dataclass(frozen=True)
class BuiltinFunction(Value):
    """A native callable taking a list of Values and returning a Value."""
    name: str
    fn: Callable[[List[Value]], Value] = field(compare=False)
    type_name = "BUILTIN"


# =================================================================
# Control flow and errors
# =================================================================

@dataclass(frozen=True)
class ReturnValue(Value):
    value: Value
    type_name = "RETURN_VALUE"


class ErrorKind(enum.Enum):
    TYPE_MISMATCH = "type-mismatch"
    ARITY = "arity"
    UNRESOLVED = "unresolved"
    MALFORMED = "malformed"
    RECURSION = "recursion"
    ARITHMETIC = "arithmetic"
    BUILTIN = "builtin"


@dataclass
class ErrorValue(Value):
    """A runtime error. Equality looks only at the kind and message."""
    kind: ErrorKind
    message: str
    reported: bool = field(default=False, compare=False)
    type_name = "ERROR"

    def __hash__(self):
        return hash((self.kind, self.message))


def is_error(value: Any) -> bool:
    return isinstance(value, ErrorValue)


# =================================================================
# Environments
# =================================================================

class Environment:
    """A frame of name → Value bindings with an optional enclosing frame."""

    def __init__(self, parent: Optional['Environment'] = None):
        self.bindings: Dict[str, Value] = {}
        self.parent = parent

    @classmethod
    def extend(cls, parent: 'Environment') -> 'Environment':
        """Creates an empty child frame of `parent`."""
        return cls(parent)

    def find_owner(self, name: str) -> Optional['Environment']:
        """Finds the nearest frame in the chain that binds `name`."""
        env: Optional[Environment] = self
        while env is not None:
            if name in env.bindings:
                return env
            env = env.parent
        return None

    def get(self, name: str, default: Optional[Value] = None) -> Optional[Value]:
        owner = self.find_owner(name)
        if owner is None:
            return default
        return owner.bindings[name]

    def set(self, name: str, value: Value) -> Value:
        """Binds `name` in this frame, shadowing any outer binding."""
        self.bindings[name] = value
        return value

    def assign(self, name: str, value: Value) -> bool:
        """Rebinds `name` in the frame that owns it. Returns False if unbound."""
        owner = self.find_owner(name)
        if owner is None:
            return False
        owner.bindings[name] = value
        return True

    def __contains__(self, name: str) -> bool:
        return self.find_owner(name) is not None

    def __getitem__(self, name: str) -> Value:
        owner = self.find_owner(name)
        if owner is None:
            raise KeyError(f"'{name}'")
        return owner.bindings[name]

    def __setitem__(self, name: str, value: Value):
        self.set(name, value)

    def keys(self):
        """Names bound in this frame only."""
        return self.bindings.keys()

    def __repr__(self) -> str:
        keys = ', '.join(self.bindings.keys())
        parent_id = f", parent=#{id(self.parent)}" if self.parent else ""
        return f"<Environment bindings=[{keys}]{parent_id}>"
