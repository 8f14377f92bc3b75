"""
Turns Mica source text into a flat token sequence for the parser.

The scanner is deliberately forgiving: characters it does not recognise become
ILLEGAL tokens and are left for the parser to reject, and the sequence always
ends with a single EOF token.
"""
import enum
import re
from dataclasses import dataclass
from typing import List


class TokenType(enum.Enum):
    # Literals and names
    IDENT = "IDENT"
    INT = "INT"
    STRING = "STRING"

    # Keywords
    LET = "LET"
    FN = "FN"
    RETURN = "RETURN"
    IF = "IF"
    ELSE = "ELSE"
    TRUE = "TRUE"
    FALSE = "FALSE"

    # Operators
    ASSIGN = "ASSIGN"
    EQ = "EQ"
    NOT_EQ = "NOT_EQ"
    BANG = "BANG"
    PLUS = "PLUS"
    MINUS = "MINUS"
    ASTERISK = "ASTERISK"
    SLASH = "SLASH"
    LT = "LT"
    GT = "GT"

    # Delimiters
    COMMA = "COMMA"
    SEMICOLON = "SEMICOLON"
    COLON = "COLON"
    PERIOD = "PERIOD"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    LBRACE = "LBRACE"
    RBRACE = "RBRACE"
    LBRACKET = "LBRACKET"
    RBRACKET = "RBRACKET"

    ILLEGAL = "ILLEGAL"
    EOF = "EOF"


KEYWORDS = {
    "let": TokenType.LET,
    "fn": TokenType.FN,
    "return": TokenType.RETURN,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
}

OPERATORS = {
    "==": TokenType.EQ,
    "!=": TokenType.NOT_EQ,
    "=": TokenType.ASSIGN,
    "!": TokenType.BANG,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.ASTERISK,
    "/": TokenType.SLASH,
    "<": TokenType.LT,
    ">": TokenType.GT,
    ",": TokenType.COMMA,
    ";": TokenType.SEMICOLON,
    ":": TokenType.COLON,
    ".": TokenType.PERIOD,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
}

ESCAPES = {"n": "\n", "t": "\t", '"': '"', "\\": "\\"}

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>[ \t\r\n]+)
  | (?P<line_comment>//[^\n]*)
  | (?P<block_comment>/\*.*?(?:\*/|\Z))
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<int>[0-9]+)
  | (?P<string>"(?:\\.|[^"\\])*")
  | (?P<open_string>"(?:\\.|[^"\\])*)
  | (?P<op>==|!=|[=!+\-*/<>,;:.(){}\[\]])
    """,
    re.VERBOSE | re.DOTALL,
)


@dataclass(frozen=True)
class Token:
    """A single lexical token. `line` and `col` are 1-based."""
    type: TokenType
    literal: str
    line: int = 0
    col: int = 0


def _unescape(body: str) -> str:
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            out.append(ESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


class Lexer:
    """Scans a source string into a list of Tokens."""

    def __init__(self, source: str):
        self.source = source

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        src = self.source
        pos = 0
        line = 1
        line_start = 0
        while pos < len(src):
            m = _TOKEN_RE.match(src, pos)
            col = pos - line_start + 1
            if m is None:
                tokens.append(Token(TokenType.ILLEGAL, src[pos], line, col))
                pos += 1
                continue

            text = m.group(0)
            match m.lastgroup:
                case "ws" | "line_comment" | "block_comment":
                    pass
                case "ident":
                    tokens.append(Token(KEYWORDS.get(text, TokenType.IDENT), text, line, col))
                case "int":
                    tokens.append(Token(TokenType.INT, text, line, col))
                case "string":
                    tokens.append(Token(TokenType.STRING, _unescape(text[1:-1]), line, col))
                case "open_string":
                    # Unterminated string literal
                    tokens.append(Token(TokenType.ILLEGAL, text, line, col))
                case "op":
                    tokens.append(Token(OPERATORS[text], text, line, col))

            newlines = text.count("\n")
            if newlines:
                line += newlines
                line_start = pos + text.rfind("\n") + 1
            pos = m.end()

        col = pos - line_start + 1
        tokens.append(Token(TokenType.EOF, "", line, col))
        return tokens


def tokenize(source: str) -> List[Token]:
    """Convenience wrapper around `Lexer(source).tokenize()`."""
    return Lexer(source).tokenize()
