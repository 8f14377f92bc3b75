"""
Defines the abstract syntax tree produced by the Mica parser.

Nodes are frozen dataclasses holding tuples, so a parsed Program cannot be
changed after construction. The evaluator dispatches on these classes with
`match` statements, and `str(node)` renders the node through the Printer.
"""

from abc import ABC
from dataclasses import dataclass
from typing import Optional, Tuple


class Node(ABC):
    """Abstract base class for every AST node."""

    def __str__(self) -> str:
        from mica.mica_printer import Printer
        return Printer().pformat(self)


class Expression(Node):
    """Abstract base class for nodes that produce a value."""
    pass


class Statement(Node):
    """Abstract base class for nodes that make up a Program or block."""
    pass


# =================================================================
# Expressions
# =================================================================

@dataclass(frozen=True, eq=True)
class Identifier(Expression):
    name: str


@dataclass(frozen=True, eq=True)
class IntegerLiteral(Expression):
    value: int


@dataclass(frozen=True, eq=True)
class BooleanLiteral(Expression):
    value: bool


@dataclass(frozen=True, eq=True)
class StringLiteral(Expression):
    value: str


@dataclass(frozen=True, eq=True)
class ArrayLiteral(Expression):
    elements: Tuple[Expression, ...]


@dataclass(frozen=True, eq=True)
class HashLiteral(Expression):
    """Ordered key/value pairs; the order fixes evaluation order only."""
    pairs: Tuple[Tuple[Expression, Expression], ...]


@dataclass(frozen=True, eq=True)
class PrefixExpression(Expression):
    operator: str
    right: Expression


@dataclass(frozen=True, eq=True)
class InfixExpression(Expression):
    left: Expression
    operator: str
    right: Expression


@dataclass(frozen=True, eq=True)
class IfExpression(Expression):
    condition: Expression
    consequence: 'BlockStatement'
    alternative: Optional['BlockStatement'] = None


@dataclass(frozen=True, eq=True)
class FunctionLiteral(Expression):
    parameters: Tuple[Identifier, ...]
    body: 'BlockStatement'


@dataclass(frozen=True, eq=True)
class CallExpression(Expression):
    function: Expression
    arguments: Tuple[Expression, ...]


@dataclass(frozen=True, eq=True)
class IndexExpression(Expression):
    left: Expression
    index: Expression


@dataclass(frozen=True, eq=True)
class DotExpression(Expression):
    """`left.right`, where `right` is usually an Identifier or a call."""
    left: Expression
    right: Expression


# =================================================================
# Statements
# =================================================================

@dataclass(frozen=True, eq=True)
class LetStatement(Statement):
    name: Identifier
    value: Expression


@dataclass(frozen=True, eq=True)
class ReassignStatement(Statement):
    name: Identifier
    value: Expression


@dataclass(frozen=True, eq=True)
class ReturnStatement(Statement):
    value: Expression


@dataclass(frozen=True, eq=True)
class ExpressionStatement(Statement):
    expression: Expression


@dataclass(frozen=True, eq=True)
class BlockStatement(Node):
    """The body of a function or an if/else branch."""
    statements: Tuple[Statement, ...]

    def __len__(self) -> int:
        return len(self.statements)

    def __iter__(self):
        return iter(self.statements)


@dataclass(frozen=True, eq=True)
class Program(Node):
    """A whole parsed source file: an ordered sequence of statements."""
    statements: Tuple[Statement, ...]

    def __len__(self) -> int:
        return len(self.statements)

    def __iter__(self):
        return iter(self.statements)

    def __getitem__(self, index):
        return self.statements[index]
