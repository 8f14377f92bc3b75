import pytest
from mica.mica_lexer import Lexer, Token, TokenType, tokenize


def kinds(src: str):
    return [t.type for t in tokenize(src)]


def test_empty_source_is_just_eof():
    tokens = tokenize("")
    assert len(tokens) == 1
    assert tokens[0].type == TokenType.EOF


def test_let_statement_tokens():
    tokens = tokenize("let five = 5;")
    assert [(t.type, t.literal) for t in tokens] == [
        (TokenType.LET, "let"),
        (TokenType.IDENT, "five"),
        (TokenType.ASSIGN, "="),
        (TokenType.INT, "5"),
        (TokenType.SEMICOLON, ";"),
        (TokenType.EOF, ""),
    ]


def test_keywords_and_identifiers():
    assert kinds("fn return if else true false lets") == [
        TokenType.FN, TokenType.RETURN, TokenType.IF, TokenType.ELSE,
        TokenType.TRUE, TokenType.FALSE, TokenType.IDENT, TokenType.EOF,
    ]


def test_two_character_operators():
    assert kinds("a == b != c = !d") == [
        TokenType.IDENT, TokenType.EQ, TokenType.IDENT, TokenType.NOT_EQ,
        TokenType.IDENT, TokenType.ASSIGN, TokenType.BANG, TokenType.IDENT, TokenType.EOF,
    ]


def test_delimiters():
    assert kinds('{"a": [1, 2]}.b(x);') == [
        TokenType.LBRACE, TokenType.STRING, TokenType.COLON, TokenType.LBRACKET,
        TokenType.INT, TokenType.COMMA, TokenType.INT, TokenType.RBRACKET,
        TokenType.RBRACE, TokenType.PERIOD, TokenType.IDENT, TokenType.LPAREN,
        TokenType.IDENT, TokenType.RPAREN, TokenType.SEMICOLON, TokenType.EOF,
    ]


def test_string_escapes_are_decoded():
    tokens = tokenize(r'"a\"b\n\tc\\"')
    assert tokens[0] == Token(TokenType.STRING, 'a"b\n\tc\\', 1, 1)


def test_unterminated_string_is_illegal():
    tokens = tokenize('"abc')
    assert tokens[0].type == TokenType.ILLEGAL
    assert tokens[-1].type == TokenType.EOF


def test_unknown_character_is_illegal():
    assert kinds("1 @ 2") == [TokenType.INT, TokenType.ILLEGAL, TokenType.INT, TokenType.EOF]


def test_comments_are_skipped():
    src = """
    // line comment
    let x = 1; /* block
    comment */ x
    """
    assert kinds(src) == [
        TokenType.LET, TokenType.IDENT, TokenType.ASSIGN, TokenType.INT,
        TokenType.SEMICOLON, TokenType.IDENT, TokenType.EOF,
    ]


def test_slash_is_still_division():
    assert kinds("6 / 2") == [TokenType.INT, TokenType.SLASH, TokenType.INT, TokenType.EOF]


def test_line_and_column_positions():
    tokens = Lexer("let a = 1;\n  a + 2").tokenize()
    a_ref = tokens[5]
    assert (a_ref.literal, a_ref.line, a_ref.col) == ("a", 2, 3)
    plus = tokens[6]
    assert (plus.type, plus.line, plus.col) == (TokenType.PLUS, 2, 5)
