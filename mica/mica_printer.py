"""
A pretty-printer for Mica AST nodes and runtime values.
"""

from mica.mica_ast import (
    Identifier, IntegerLiteral, BooleanLiteral, StringLiteral, ArrayLiteral, HashLiteral,
    PrefixExpression, InfixExpression, IfExpression, FunctionLiteral,
    CallExpression, IndexExpression, DotExpression,
    LetStatement, ReassignStatement, ReturnStatement, ExpressionStatement,
    BlockStatement, Program,
)
from mica.mica_datatypes import (
    Integer, Boolean, String, Array, Hash, Function, BuiltinFunction,
    ReturnValue, ErrorValue, Empty, Null,
)


def escape(text: str) -> str:
    MAPPING = {
        "\t": "\\t",
        "\n": "\\n",
        '"': '\\"',
        "\\": "\\\\",
    }
    return "".join([MAPPING.get(c, c) for c in text])


class Printer:
    """Formats AST nodes and Values into readable strings.

    AST nodes render in a fully parenthesised form, `(1 + (2 * 3))`, so that
    precedence is visible. Values render roughly as they would be written in
    source, with strings quoted.
    """

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj) -> str:
        """Public entry point to format an object."""
        handler = self._handlers.get(type(obj))
        if handler is None:
            return repr(obj)
        return handler(obj)

    def _create_handlers(self):
        return {
            # AST
            Identifier: self._pformat_identifier,
            IntegerLiteral: self._pformat_scalar_literal,
            BooleanLiteral: self._pformat_bool_literal,
            StringLiteral: self._pformat_scalar_literal,
            ArrayLiteral: self._pformat_array_literal,
            HashLiteral: self._pformat_hash_literal,
            PrefixExpression: self._pformat_prefix,
            InfixExpression: self._pformat_infix,
            IfExpression: self._pformat_if,
            FunctionLiteral: self._pformat_function_literal,
            CallExpression: self._pformat_call,
            IndexExpression: self._pformat_index,
            DotExpression: self._pformat_dot,
            LetStatement: self._pformat_let,
            ReassignStatement: self._pformat_reassign,
            ReturnStatement: self._pformat_return,
            ExpressionStatement: self._pformat_expression_statement,
            BlockStatement: self._pformat_statements,
            Program: self._pformat_statements,
            # Values
            Integer: self._pformat_integer,
            Boolean: self._pformat_boolean,
            String: self._pformat_string,
            Array: self._pformat_array,
            Hash: self._pformat_hash,
            Function: self._pformat_function,
            BuiltinFunction: self._pformat_builtin,
            ReturnValue: self._pformat_return_value,
            ErrorValue: self._pformat_error,
            Empty: lambda o: "",
            Null: lambda o: "null",
        }

    # --- AST ---

    def _pformat_identifier(self, node):
        return node.name

    def _pformat_scalar_literal(self, node):
        return str(node.value)

    def _pformat_bool_literal(self, node):
        return 'true' if node.value else 'false'

    def _pformat_array_literal(self, node):
        return "[" + ", ".join(self.pformat(e) for e in node.elements) + "]"

    def _pformat_hash_literal(self, node):
        pairs = (f"{self.pformat(k)}: {self.pformat(v)}" for k, v in node.pairs)
        return "{" + ", ".join(pairs) + "}"

    def _pformat_prefix(self, node):
        return f"({node.operator}{self.pformat(node.right)})"

    def _pformat_infix(self, node):
        return f"({self.pformat(node.left)} {node.operator} {self.pformat(node.right)})"

    def _pformat_if(self, node):
        out = f"({self.pformat(node.condition)} {{{self.pformat(node.consequence)}}}"
        if node.alternative is not None:
            out += f" else {{{self.pformat(node.alternative)}}}"
        return out + ")"

    def _pformat_function_literal(self, node):
        params = ", ".join(p.name for p in node.parameters)
        return f"fn({params}) {{{self.pformat(node.body)}}}"

    def _pformat_call(self, node):
        args = ", ".join(self.pformat(a) for a in node.arguments)
        return f"{self.pformat(node.function)}({args})"

    def _pformat_index(self, node):
        return f"({self.pformat(node.left)}[{self.pformat(node.index)}])"

    def _pformat_dot(self, node):
        return f"({self.pformat(node.left)}.{self.pformat(node.right)})"

    def _pformat_let(self, node):
        return f"let {node.name.name} = {self.pformat(node.value)}"

    def _pformat_reassign(self, node):
        return f"{node.name.name} = {self.pformat(node.value)}"

    def _pformat_return(self, node):
        return f"return {self.pformat(node.value)}"

    def _pformat_expression_statement(self, node):
        return self.pformat(node.expression)

    def _pformat_statements(self, node):
        return "; ".join(self.pformat(s) for s in node.statements)

    # --- Values ---

    def _pformat_integer(self, obj):
        return str(obj.value)

    def _pformat_boolean(self, obj):
        return 'true' if obj.value else 'false'

    def _pformat_string(self, obj):
        return f'"{escape(obj.value)}"'

    def _pformat_array(self, obj):
        return "[" + ", ".join(self.pformat(e) for e in obj.elements) + "]"

    def _pformat_hash(self, obj):
        pairs = (f"{self.pformat(k)}: {self.pformat(v)}" for k, v in obj.pairs)
        return "{" + ", ".join(pairs) + "}"

    def _pformat_function(self, obj):
        params = ", ".join(p.name for p in obj.parameters)
        return f"fn({params}) {{{self.pformat(obj.body)}}}"

    def _pformat_builtin(self, obj):
        return f"builtin {obj.name}"

    def _pformat_return_value(self, obj):
        return self.pformat(obj.value)

    def _pformat_error(self, obj):
        return f"ERROR: {obj.message}"
