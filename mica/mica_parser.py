"""
A Pratt (precedence-climbing) parser for Mica.

The parser walks a token list with a two-token window (`current_token` and
`peek_token`). Every expression position starts with a prefix rule chosen by
the current token; the result is then extended by infix rules for as long as
the next token binds tighter than the caller's precedence.

Parsing never raises. A construct that cannot be recognised produces `None`,
the enclosing statement is dropped, and a message is appended to
`Parser.errors` so hosts can report what was skipped.
"""

import enum
from typing import Callable, Dict, List, Optional

from mica.mica_lexer import Token, TokenType, tokenize
from mica.mica_ast import (
    Expression, Statement, Identifier,
    IntegerLiteral, BooleanLiteral, StringLiteral, ArrayLiteral, HashLiteral,
    PrefixExpression, InfixExpression, IfExpression, FunctionLiteral,
    CallExpression, IndexExpression, DotExpression,
    LetStatement, ReassignStatement, ReturnStatement, ExpressionStatement,
    BlockStatement, Program,
)

INT64_MAX = 2 ** 63 - 1

# Deepest expression nesting accepted before parsing gives up on the input.
MAX_NESTING_DEPTH = 100


class Precedence(enum.IntEnum):
    LOWEST = 1
    EQUALS = 2       # ==
    LESSGREATER = 3  # > or <
    SUM = 4          # +
    PRODUCT = 5      # *
    PREFIX = 6       # -x or !x
    CALL = 7         # fn(x)
    INDEX = 8        # array[index]
    DOT = 9          # x.y


PRECEDENCES: Dict[TokenType, Precedence] = {
    TokenType.EQ: Precedence.EQUALS,
    TokenType.NOT_EQ: Precedence.EQUALS,
    TokenType.LT: Precedence.LESSGREATER,
    TokenType.GT: Precedence.LESSGREATER,
    TokenType.PLUS: Precedence.SUM,
    TokenType.MINUS: Precedence.SUM,
    TokenType.ASTERISK: Precedence.PRODUCT,
    TokenType.SLASH: Precedence.PRODUCT,
    TokenType.LPAREN: Precedence.CALL,
    TokenType.LBRACKET: Precedence.INDEX,
    TokenType.PERIOD: Precedence.DOT,
}


class Parser:
    """Parses a token list into a Program."""

    def __init__(self, tokens: List[Token]):
        if not tokens or tokens[-1].type != TokenType.EOF:
            # The scanner contract is a terminated sequence; tolerate hand-built lists.
            last = tokens[-1] if tokens else None
            tokens = list(tokens) + [Token(TokenType.EOF, "", getattr(last, 'line', 0), getattr(last, 'col', 0))]
        self.tokens = tokens
        self.index = 0
        self.current_token = tokens[0]
        self.peek_token = tokens[1] if len(tokens) > 1 else tokens[0]
        self.errors: List[str] = []
        self.depth = 0
        self.aborted = False

        self._prefix_fns: Dict[TokenType, Callable[[], Optional[Expression]]] = {
            TokenType.IDENT: self._parse_identifier,
            TokenType.INT: self._parse_integer_literal,
            TokenType.STRING: self._parse_string_literal,
            TokenType.TRUE: self._parse_boolean,
            TokenType.FALSE: self._parse_boolean,
            TokenType.BANG: self._parse_prefix_expression,
            TokenType.MINUS: self._parse_prefix_expression,
            TokenType.LBRACE: self._parse_hash_literal,
            TokenType.LPAREN: self._parse_grouped_expression,
            TokenType.LBRACKET: self._parse_array_literal,
            TokenType.IF: self._parse_if_expression,
            TokenType.FN: self._parse_function_literal,
        }
        self._infix_fns: Dict[TokenType, Callable[[Expression], Optional[Expression]]] = {
            TokenType.PLUS: self._parse_infix_expression,
            TokenType.MINUS: self._parse_infix_expression,
            TokenType.ASTERISK: self._parse_infix_expression,
            TokenType.SLASH: self._parse_infix_expression,
            TokenType.LT: self._parse_infix_expression,
            TokenType.GT: self._parse_infix_expression,
            TokenType.EQ: self._parse_infix_expression,
            TokenType.NOT_EQ: self._parse_infix_expression,
            TokenType.LPAREN: self._parse_call_expression,
            TokenType.LBRACKET: self._parse_index_expression,
            TokenType.PERIOD: self._parse_dot_expression,
        }

    # -----------------------------------------------------------------
    # Cursor
    # -----------------------------------------------------------------

    def _next_token(self):
        # Stay parked on EOF once it has been reached.
        if self.index + 1 < len(self.tokens):
            self.index += 1
        self.current_token = self.tokens[self.index]
        if self.index + 1 < len(self.tokens):
            self.peek_token = self.tokens[self.index + 1]
        else:
            self.peek_token = self.current_token

    def _current_is(self, ttype: TokenType) -> bool:
        return self.current_token.type == ttype

    def _peek_is(self, ttype: TokenType) -> bool:
        return self.peek_token.type == ttype

    def _expect_peek(self, ttype: TokenType) -> bool:
        if self._peek_is(ttype):
            self._next_token()
            return True
        self._peek_error(ttype)
        return False

    def _peek_error(self, ttype: TokenType):
        tok = self.peek_token
        self.errors.append(
            f"expected next token to be {ttype.value}, got {tok.type.value} instead (line {tok.line}, col {tok.col})"
        )

    def _peek_precedence(self) -> Precedence:
        return PRECEDENCES.get(self.peek_token.type, Precedence.LOWEST)

    def _current_precedence(self) -> Precedence:
        return PRECEDENCES.get(self.current_token.type, Precedence.LOWEST)

    def _abort(self):
        """Stops parsing: the cursor moves to EOF and the statement in progress is dropped."""
        self.aborted = True
        self.index = len(self.tokens) - 1
        self.current_token = self.peek_token = self.tokens[self.index]

    # -----------------------------------------------------------------
    # Statements
    # -----------------------------------------------------------------

    def parse_program(self) -> Program:
        statements: List[Statement] = []
        while not self._current_is(TokenType.EOF):
            stmt = self._parse_statement()
            if self.aborted:
                break
            if stmt is not None:
                statements.append(stmt)
            self._next_token()
        return Program(tuple(statements))

    def _parse_statement(self) -> Optional[Statement]:
        match self.current_token.type:
            case TokenType.LET:
                return self._parse_let_statement()
            case TokenType.RETURN:
                return self._parse_return_statement()
            case TokenType.IDENT if self._peek_is(TokenType.ASSIGN):
                return self._parse_reassign_statement()
            case TokenType.SEMICOLON:
                # An empty statement contributes nothing.
                return None
            case _:
                return self._parse_expression_statement()

    def _skip_optional_semicolon(self):
        if self._peek_is(TokenType.SEMICOLON):
            self._next_token()

    def _parse_let_statement(self) -> Optional[LetStatement]:
        if not self._expect_peek(TokenType.IDENT):
            return None
        name = Identifier(self.current_token.literal)
        if not self._expect_peek(TokenType.ASSIGN):
            return None
        self._next_token()
        value = self._parse_expression(Precedence.LOWEST)
        self._skip_optional_semicolon()
        if value is None:
            return None
        return LetStatement(name, value)

    def _parse_reassign_statement(self) -> Optional[ReassignStatement]:
        name = Identifier(self.current_token.literal)
        self._next_token()  # onto '='
        self._next_token()
        value = self._parse_expression(Precedence.LOWEST)
        self._skip_optional_semicolon()
        if value is None:
            return None
        return ReassignStatement(name, value)

    def _parse_return_statement(self) -> Optional[ReturnStatement]:
        self._next_token()
        value = self._parse_expression(Precedence.LOWEST)
        self._skip_optional_semicolon()
        if value is None:
            return None
        return ReturnStatement(value)

    def _parse_expression_statement(self) -> Optional[ExpressionStatement]:
        expr = self._parse_expression(Precedence.LOWEST)
        self._skip_optional_semicolon()
        if expr is None:
            return None
        return ExpressionStatement(expr)

    def _parse_block_statement(self) -> BlockStatement:
        """Parses statements up to the closing brace; the cursor starts on '{'."""
        self._next_token()
        statements: List[Statement] = []
        while not self._current_is(TokenType.RBRACE) and not self._current_is(TokenType.EOF):
            stmt = self._parse_statement()
            if stmt is not None:
                statements.append(stmt)
            self._next_token()
        if self._current_is(TokenType.EOF) and not self.aborted:
            self.errors.append("unterminated block: expected RBRACE before end of input")
        return BlockStatement(tuple(statements))

    # -----------------------------------------------------------------
    # Expressions
    # -----------------------------------------------------------------

    def _parse_expression(self, precedence: Precedence) -> Optional[Expression]:
        if self.depth >= MAX_NESTING_DEPTH:
            tok = self.current_token
            self.errors.append(f"expression nested too deeply (line {tok.line}, col {tok.col})")
            self._abort()
            return None
        self.depth += 1
        try:
            return self._parse_expression_at(precedence)
        finally:
            self.depth -= 1

    def _parse_expression_at(self, precedence: Precedence) -> Optional[Expression]:
        prefix = self._prefix_fns.get(self.current_token.type)
        if prefix is None:
            tok = self.current_token
            self.errors.append(
                f"no prefix parse function for {tok.type.value} found (line {tok.line}, col {tok.col})"
            )
            return None
        left = prefix()

        while (
            left is not None
            and not self._peek_is(TokenType.SEMICOLON)
            and precedence < self._peek_precedence()
        ):
            infix = self._infix_fns.get(self.peek_token.type)
            if infix is None:
                return left
            self._next_token()
            left = infix(left)

        return left

    def _parse_identifier(self) -> Expression:
        return Identifier(self.current_token.literal)

    def _parse_integer_literal(self) -> Optional[Expression]:
        literal = self.current_token.literal
        try:
            value = int(literal)
        except ValueError:
            value = None
        if value is None or value > INT64_MAX:
            self.errors.append(f"could not parse {literal} as integer")
            return None
        return IntegerLiteral(value)

    def _parse_string_literal(self) -> Expression:
        return StringLiteral(self.current_token.literal)

    def _parse_boolean(self) -> Expression:
        return BooleanLiteral(self._current_is(TokenType.TRUE))

    def _parse_prefix_expression(self) -> Optional[Expression]:
        operator = self.current_token.literal
        self._next_token()
        right = self._parse_expression(Precedence.PREFIX)
        if right is None:
            return None
        return PrefixExpression(operator, right)

    def _parse_infix_expression(self, left: Expression) -> Optional[Expression]:
        operator = self.current_token.literal
        precedence = self._current_precedence()
        self._next_token()
        right = self._parse_expression(precedence)
        if right is None:
            return None
        return InfixExpression(left, operator, right)

    def _parse_grouped_expression(self) -> Optional[Expression]:
        self._next_token()
        expr = self._parse_expression(Precedence.LOWEST)
        if expr is None:
            return None
        if not self._expect_peek(TokenType.RPAREN):
            return None
        return expr

    def _parse_expression_list(self, end: TokenType) -> Optional[List[Expression]]:
        """Comma-separated expressions up to `end`; a trailing comma is tolerated."""
        items: List[Expression] = []
        if self._peek_is(end):
            self._next_token()
            return items

        self._next_token()
        item = self._parse_expression(Precedence.LOWEST)
        if item is None:
            return None
        items.append(item)

        while self._peek_is(TokenType.COMMA):
            self._next_token()
            if self._peek_is(end):
                break
            self._next_token()
            item = self._parse_expression(Precedence.LOWEST)
            if item is None:
                return None
            items.append(item)

        if not self._expect_peek(end):
            return None
        return items

    def _parse_array_literal(self) -> Optional[Expression]:
        elements = self._parse_expression_list(TokenType.RBRACKET)
        if elements is None:
            return None
        return ArrayLiteral(tuple(elements))

    def _parse_hash_literal(self) -> Optional[Expression]:
        pairs = []
        while not self._peek_is(TokenType.RBRACE):
            self._next_token()
            key = self._parse_expression(Precedence.LOWEST)
            if key is None:
                return None
            if not self._expect_peek(TokenType.COLON):
                return None
            self._next_token()
            value = self._parse_expression(Precedence.LOWEST)
            if value is None:
                return None
            pairs.append((key, value))
            if not self._peek_is(TokenType.RBRACE) and not self._expect_peek(TokenType.COMMA):
                return None
        if not self._expect_peek(TokenType.RBRACE):
            return None
        return HashLiteral(tuple(pairs))

    def _parse_if_expression(self) -> Optional[Expression]:
        self._next_token()
        condition = self._parse_expression(Precedence.LOWEST)
        if condition is None:
            return None
        if not self._expect_peek(TokenType.LBRACE):
            return None
        consequence = self._parse_block_statement()

        alternative = None
        if self._peek_is(TokenType.ELSE):
            self._next_token()
            if not self._expect_peek(TokenType.LBRACE):
                return None
            alternative = self._parse_block_statement()

        return IfExpression(condition, consequence, alternative)

    def _parse_function_literal(self) -> Optional[Expression]:
        if not self._expect_peek(TokenType.LPAREN):
            return None
        parameters = self._parse_function_parameters()
        if parameters is None:
            return None
        if not self._expect_peek(TokenType.LBRACE):
            return None
        body = self._parse_block_statement()
        return FunctionLiteral(tuple(parameters), body)

    def _parse_function_parameters(self) -> Optional[List[Identifier]]:
        params: List[Identifier] = []
        if self._peek_is(TokenType.RPAREN):
            self._next_token()
            return params

        if not self._expect_peek(TokenType.IDENT):
            return None
        params.append(Identifier(self.current_token.literal))

        while self._peek_is(TokenType.COMMA):
            self._next_token()
            if not self._expect_peek(TokenType.IDENT):
                return None
            params.append(Identifier(self.current_token.literal))

        if not self._expect_peek(TokenType.RPAREN):
            return None
        return params

    def _parse_call_expression(self, function: Expression) -> Optional[Expression]:
        arguments = self._parse_expression_list(TokenType.RPAREN)
        if arguments is None:
            return None
        return CallExpression(function, tuple(arguments))

    def _parse_index_expression(self, left: Expression) -> Optional[Expression]:
        self._next_token()
        index = self._parse_expression(Precedence.LOWEST)
        if index is None:
            return None
        if not self._expect_peek(TokenType.RBRACKET):
            return None
        return IndexExpression(left, index)

    def _parse_dot_expression(self, left: Expression) -> Optional[Expression]:
        self._next_token()
        # Nothing binds tighter than DOT, so the member is a single prefix
        # expression and `a.b(1)` becomes a call of `(a.b)`.
        right = self._parse_expression(Precedence.DOT)
        if right is None:
            return None
        return DotExpression(left, right)


def parse(source_or_tokens) -> Program:
    """Parses a source string or token list, discarding diagnostics."""
    tokens = tokenize(source_or_tokens) if isinstance(source_or_tokens, str) else source_or_tokens
    return Parser(tokens).parse_program()
