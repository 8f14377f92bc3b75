"""
The core Mica interpreter: a tree-walking Evaluator over the AST.

The active Environment is passed explicitly to every evaluation method; a
function call evaluates its body in a fresh child of the closure's captured
environment and simply returns, so there is no shared "current environment"
slot to restore. Calls are tracked on an explicit `call_stack`, whose depth is
bounded by `RunnerConfig.max_call_depth`.

Evaluation methods return a Value, or None when a node cannot be evaluated at
all. Two values are abrupt: a `ReturnValue` unwinds statement lists up to the
enclosing call (or the program), and an `ErrorValue` becomes the value of
every enclosing expression until a statement list reports it.
"""
import os
import sys
from typing import Any, Iterable, List, Optional

from mica.mica_ast import (
    Node, Expression, Statement, Identifier,
    IntegerLiteral, BooleanLiteral, StringLiteral, ArrayLiteral, HashLiteral,
    PrefixExpression, InfixExpression, IfExpression, FunctionLiteral,
    CallExpression, IndexExpression, DotExpression,
    LetStatement, ReassignStatement, ReturnStatement, ExpressionStatement,
    BlockStatement, Program,
)
from mica.mica_datatypes import (
    Value, Integer, Boolean, String, Array, Hash, Function, BuiltinFunction,
    ReturnValue, ErrorValue, ErrorKind, Environment, EMPTY, NULL, native_bool,
)
from mica.mica_builtins import StdLib, StringMethods
from mica.mica_config import RunnerConfig

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


def is_abrupt(value: Any) -> bool:
    """True for values that must not be consumed as ordinary operands."""
    return value is None or isinstance(value, (ErrorValue, ReturnValue))


def unwrap_return(value):
    return value.value if isinstance(value, ReturnValue) else value


class Evaluator:
    """Walks a parsed Program and produces Values."""

    def __init__(self, config: Optional[RunnerConfig] = None):
        self.config = config or RunnerConfig()
        self.globals = Environment()
        self.side_effects: List[dict] = []
        self.call_stack: List[dict] = []
        self.current_node: Optional[Node] = None
        self.stdlib = StdLib(self)
        self.builtins = self.stdlib.registry()
        self.string_methods = StringMethods()

    def _dbg(self, *parts):
        if os.environ.get("MICA_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    def _push_frame(self, name, func, args, call_site_node):
        self.call_stack.append({
            'name': name,
            'func': func,
            'args': args,
            'call_site': call_site_node,
        })

    def _pop_frame(self):
        if self.call_stack:
            self.call_stack.pop()

    def _report(self, error: ErrorValue):
        """Records an error as a stderr side effect, once per error value."""
        if error.reported:
            return
        error.reported = True
        self._dbg("error", error.kind.value, error.message)
        if self.config.echo_errors:
            self.side_effects.append({'topics': ['stderr'], 'message': f"ERROR: {error.message}"})

    # -----------------------------------------------------------------
    # Statements
    # -----------------------------------------------------------------

    def evaluate(self, program: Program, env: Optional[Environment] = None) -> Optional[Value]:
        """Public entry point. Runs a Program and returns its final value."""
        env = self.globals if env is None else env
        result = self._eval_statements(program.statements, env)
        if isinstance(result, ReturnValue):
            result = result.value
            if isinstance(result, ErrorValue):
                self._report(result)
        return result

    def eval_block(self, block: BlockStatement, env: Environment) -> Optional[Value]:
        """Runs a block; a ReturnValue is passed up still wrapped."""
        return self._eval_statements(block.statements, env)

    def _eval_statements(self, statements: Iterable[Statement], env: Environment) -> Optional[Value]:
        result: Optional[Value] = None
        for stmt in statements:
            self.current_node = stmt
            value = self.eval_statement(stmt, env)
            match value:
                case None:
                    return ErrorValue(ErrorKind.MALFORMED, f"Could not evaluate statement: {stmt}")
                case ReturnValue():
                    return value
                case ErrorValue():
                    # Errors are reported and the next statement still runs.
                    self._report(value)
            result = value
        return result

    def eval_statement(self, stmt: Statement, env: Environment) -> Optional[Value]:
        match stmt:
            case ExpressionStatement(expression):
                return self.eval_expression(expression, env)
            case LetStatement(name, value_node):
                value = self.eval_expression(value_node, env)
                if is_abrupt(value):
                    return value
                env.set(name.name, value)
                return EMPTY
            case ReassignStatement(name, value_node):
                value = self.eval_expression(value_node, env)
                if is_abrupt(value):
                    return value
                if env.assign(name.name, value):
                    return EMPTY
                return ErrorValue(ErrorKind.UNRESOLVED, f"Identifier not found: {name.name}")
            case ReturnStatement(value_node):
                value = self.eval_expression(value_node, env)
                if value is None or isinstance(value, ReturnValue):
                    return value
                return ReturnValue(value)
            case _:
                return None

    # -----------------------------------------------------------------
    # Expressions
    # -----------------------------------------------------------------

    def eval_expression(self, node: Expression, env: Environment) -> Optional[Value]:
        match node:
            case IntegerLiteral(value):
                return Integer(value)
            case BooleanLiteral(value):
                return native_bool(value)
            case StringLiteral(value):
                return String(value)
            case ArrayLiteral(elements):
                return self._eval_array_literal(elements, env)
            case HashLiteral(pairs):
                return self._eval_hash_literal(pairs, env)
            case Identifier(name):
                return self._eval_identifier(name, env)
            case PrefixExpression(operator, right):
                return self._eval_prefix_expression(operator, right, env)
            case InfixExpression(left, operator, right):
                return self._eval_infix_expression(left, operator, right, env)
            case IfExpression(condition, consequence, alternative):
                return self._eval_if_expression(condition, consequence, alternative, env)
            case FunctionLiteral(parameters, body):
                return Function(parameters, body, env)
            case CallExpression(function, arguments):
                return self._eval_call_expression(node, function, arguments, env)
            case IndexExpression(left, index):
                return self._eval_index_expression(left, index, env)
            case DotExpression(left, right):
                return self._eval_dot_expression(left, right, env)
            case _:
                return None

    def _eval_array_literal(self, elements, env) -> Optional[Value]:
        values = []
        for element in elements:
            value = self.eval_expression(element, env)
            if is_abrupt(value):
                return value
            values.append(value)
        return Array(tuple(values))

    def _eval_hash_literal(self, pairs, env) -> Optional[Value]:
        out = []
        for key_node, value_node in pairs:
            key = self.eval_expression(key_node, env)
            if is_abrupt(key):
                return key
            if not isinstance(key, String):
                return ErrorValue(ErrorKind.TYPE_MISMATCH, "Hash keys must be strings")
            value = self.eval_expression(value_node, env)
            if is_abrupt(value):
                return value
            out.append((key, value))
        return Hash(tuple(out))

    def _eval_identifier(self, name: str, env: Environment) -> Value:
        value = env.get(name)
        if value is not None:
            return value
        builtin = self.builtins.get(name)
        if builtin is not None:
            return builtin
        return ErrorValue(ErrorKind.UNRESOLVED, f"Identifier not found: {name}")

    def _eval_prefix_expression(self, operator: str, right_node, env) -> Optional[Value]:
        right = self.eval_expression(right_node, env)
        if is_abrupt(right):
            return right
        match operator, right:
            case "!", Boolean(flag):
                return native_bool(not flag)
            case "!", _:
                return ErrorValue(ErrorKind.TYPE_MISMATCH, "Use ! prefix operator on booleans!")
            case "-", Integer(n):
                return self._integer(-n)
            case "-", _:
                return ErrorValue(ErrorKind.TYPE_MISMATCH, "Use - prefix operator on integers")
        return ErrorValue(ErrorKind.TYPE_MISMATCH, f"Invalid prefix operator: {operator}")

    def _eval_infix_expression(self, left_node, operator: str, right_node, env) -> Optional[Value]:
        left = self.eval_expression(left_node, env)
        if is_abrupt(left):
            return left
        right = self.eval_expression(right_node, env)
        if is_abrupt(right):
            return right
        match left, right:
            case Integer(l), Integer(r):
                return self._eval_integer_infix(l, operator, r)
            case Boolean(l), Boolean(r):
                return self._eval_equality_infix(l, operator, r)
            case String(l), String(r):
                if operator == "+":
                    return String(l + r)
                return self._eval_equality_infix(l, operator, r)
        return ErrorValue(
            ErrorKind.TYPE_MISMATCH,
            f"Use infix operators on matching integers, booleans or strings, got {left.type_name} {operator} {right.type_name}",
        )

    def _eval_equality_infix(self, left, operator: str, right) -> Value:
        match operator:
            case "==":
                return native_bool(left == right)
            case "!=":
                return native_bool(left != right)
        return ErrorValue(ErrorKind.TYPE_MISMATCH, f"Invalid operator: {operator}")

    def _eval_integer_infix(self, left: int, operator: str, right: int) -> Value:
        match operator:
            case "+":
                return self._integer(left + right)
            case "-":
                return self._integer(left - right)
            case "*":
                return self._integer(left * right)
            case "/":
                if right == 0:
                    return ErrorValue(ErrorKind.ARITHMETIC, "Division by zero")
                # Truncate toward zero, not toward negative infinity.
                quotient = abs(left) // abs(right)
                if (left < 0) != (right < 0):
                    quotient = -quotient
                return self._integer(quotient)
            case "<":
                return native_bool(left < right)
            case ">":
                return native_bool(left > right)
        return self._eval_equality_infix(left, operator, right)

    def _integer(self, n: int) -> Value:
        """Boxes a Python int as a signed 64-bit Integer, applying the overflow mode."""
        if INT64_MIN <= n <= INT64_MAX:
            return Integer(n)
        if self.config.integer_overflow == "error":
            return ErrorValue(ErrorKind.ARITHMETIC, "Integer overflow")
        return Integer((n - INT64_MIN) % (2 ** 64) + INT64_MIN)

    def _eval_if_expression(self, condition_node, consequence, alternative, env) -> Optional[Value]:
        condition = self.eval_expression(condition_node, env)
        if is_abrupt(condition):
            return condition
        if not isinstance(condition, Boolean):
            return ErrorValue(ErrorKind.TYPE_MISMATCH, "Use if conditionals on booleans")
        if condition.value:
            branch = consequence
        elif alternative is not None:
            branch = alternative
        else:
            return NULL
        result = self.eval_block(branch, env)
        return NULL if result is None else result

    # -----------------------------------------------------------------
    # Calls
    # -----------------------------------------------------------------

    def _eval_call_expression(self, node, function_node, argument_nodes, env) -> Optional[Value]:
        function = self.eval_expression(function_node, env)
        if is_abrupt(function):
            return function
        args = []
        for arg_node in argument_nodes:
            value = self.eval_expression(arg_node, env)
            if value is None:
                # An argument that cannot be evaluated at all is passed as null.
                value = NULL
            elif is_abrupt(value):
                return value
            args.append(value)
        name = function_node.name if isinstance(function_node, Identifier) else "<anonymous>"
        return self.call(function, args, name=name, call_site=node)

    def call(self, function: Value, args: List[Value], name: str = "<anonymous>", call_site=None) -> Value:
        """Applies a Function or BuiltinFunction to already-evaluated arguments."""
        match function:
            case Function(parameters, body, closure):
                if len(args) != len(parameters):
                    return ErrorValue(
                        ErrorKind.ARITY,
                        f"Wrong number of arguments. Expected {len(parameters)}, got {len(args)}",
                    )
                if len(self.call_stack) >= self.config.max_call_depth:
                    return ErrorValue(
                        ErrorKind.RECURSION,
                        f"Maximum call depth exceeded ({self.config.max_call_depth}) in {name}",
                    )
                call_env = Environment.extend(closure)
                for param, arg in zip(parameters, args):
                    call_env.set(param.name, arg)
                self._push_frame(name, function, args, call_site)
                try:
                    result = self.eval_block(body, call_env)
                finally:
                    self._pop_frame()
                if result is None:
                    return NULL
                return unwrap_return(result)
            case BuiltinFunction(builtin_name, fn):
                self._dbg("builtin", builtin_name, [type(a).__name__ for a in args])
                self._push_frame(builtin_name, function, args, call_site)
                try:
                    return fn(args)
                finally:
                    self._pop_frame()
        return ErrorValue(ErrorKind.TYPE_MISMATCH, f"Not a function: {function}")

    # -----------------------------------------------------------------
    # Index and dot access
    # -----------------------------------------------------------------

    def _eval_index_expression(self, left_node, index_node, env) -> Optional[Value]:
        left = self.eval_expression(left_node, env)
        if is_abrupt(left):
            return left
        index = self.eval_expression(index_node, env)
        if is_abrupt(index):
            return index
        match left, index:
            case Array(elements), Integer(i):
                return self._element_at(elements, i)
            case String(text), Integer(i):
                ch = self._element_at(text, i)
                return ch if ch is NULL else String(ch)
            case Hash(), String(key):
                value = left.lookup(key)
                return NULL if value is None else value
        return ErrorValue(
            ErrorKind.TYPE_MISMATCH,
            f"Use index expression on arrays, strings or hashes, got {left.type_name}[{index.type_name}]",
        )

    @staticmethod
    def _element_at(sequence, i: int):
        """Negative indices count from the end; anything out of range is NULL."""
        if -len(sequence) <= i < len(sequence):
            return sequence[i]
        return NULL

    def _eval_dot_expression(self, left_node, right_node, env) -> Optional[Value]:
        left = self.eval_expression(left_node, env)
        if is_abrupt(left):
            return left
        match left, right_node:
            case Hash(), Identifier(name):
                value = left.lookup(name)
                return NULL if value is None else value
            case Hash(), _:
                return ErrorValue(ErrorKind.TYPE_MISMATCH, "Use dot notation on hashes with a property name")
            case String(text), Identifier(name):
                value = self.string_methods.lookup(text, name)
                if value is None:
                    return ErrorValue(ErrorKind.UNRESOLVED, f"Unknown string property: {name}")
                return value
            case String(), _:
                return ErrorValue(ErrorKind.TYPE_MISMATCH, "Use dot notation on strings with a property name")
        return ErrorValue(ErrorKind.TYPE_MISMATCH, f"Use dot notation on strings or hashes, got {left.type_name}")
