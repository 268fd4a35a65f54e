import pytest

from jitcalc.tokenizer import Token, TokenType, tokenize, untokenize


@pytest.mark.parametrize(
    "code, expected_tokens",
    [
        pytest.param("32", [Token(TokenType.NUMBER, 32.0), Token(TokenType.EOF)]),
        pytest.param("32.5", [Token(TokenType.NUMBER, 32.5), Token(TokenType.EOF)]),
        pytest.param("32 2", [Token(TokenType.NUMBER, 32.0), Token(TokenType.NUMBER, 2.0), Token(TokenType.EOF)]),
        pytest.param(
            "-+/*",
            [
                Token(TokenType.MINUS),
                Token(TokenType.PLUS),
                Token(TokenType.SLASH),
                Token(TokenType.STAR),
                Token(TokenType.EOF),
            ],
        ),
        pytest.param(
            "a = 123",
            [
                Token(TokenType.IDENTIFIER, "a"),
                Token(TokenType.ASSIGN),
                Token(TokenType.NUMBER, 123.0),
                Token(TokenType.EOF),
            ],
        ),
        pytest.param(
            "a=5",
            [
                Token(TokenType.IDENTIFIER, "a"),
                Token(TokenType.ASSIGN),
                Token(TokenType.NUMBER, 5.0),
                Token(TokenType.EOF),
            ],
        ),
        pytest.param(
            "if 1 < 2 then 1 else 0",
            [
                Token(TokenType.IF),
                Token(TokenType.NUMBER, 1.0),
                Token(TokenType.LESS),
                Token(TokenType.NUMBER, 2.0),
                Token(TokenType.THEN),
                Token(TokenType.NUMBER, 1.0),
                Token(TokenType.ELSE),
                Token(TokenType.NUMBER, 0.0),
                Token(TokenType.EOF),
            ],
        ),
        pytest.param(
            "x == y > z",
            [
                Token(TokenType.IDENTIFIER, "x"),
                Token(TokenType.EQUAL),
                Token(TokenType.IDENTIFIER, "y"),
                Token(TokenType.GREATER),
                Token(TokenType.IDENTIFIER, "z"),
                Token(TokenType.EOF),
            ],
        ),
        pytest.param(
            "\t(ab1)\n",
            [
                Token(TokenType.LPAREN),
                Token(TokenType.IDENTIFIER, "ab"),
                Token(TokenType.NUMBER, 1.0),
                Token(TokenType.RPAREN),
                Token(TokenType.EOF),
            ],
        ),
        pytest.param(
            "iffy thenelse",
            [Token(TokenType.IDENTIFIER, "iffy"), Token(TokenType.IDENTIFIER, "thenelse"), Token(TokenType.EOF)],
        ),
        pytest.param("", [Token(TokenType.EOF)]),
        pytest.param("   ", [Token(TokenType.EOF)]),
    ],
)
def test_tokenize(code: str, expected_tokens: list[Token]) -> None:
    assert tokenize(code) == expected_tokens


@pytest.mark.parametrize(
    "code, expected_tokens",
    [
        pytest.param("$", [Token(TokenType.ILLEGAL)]),
        pytest.param("1 + $ 2 * 3", [Token(TokenType.NUMBER, 1.0), Token(TokenType.PLUS), Token(TokenType.ILLEGAL)]),
        pytest.param("1.2.3 + 4", [Token(TokenType.ILLEGAL)]),
        pytest.param("a ; b", [Token(TokenType.IDENTIFIER, "a"), Token(TokenType.ILLEGAL)]),
    ],
)
def test_illegal_input_stops_lexing(code: str, expected_tokens: list[Token]) -> None:
    assert tokenize(code) == expected_tokens


@pytest.mark.parametrize(
    "token, expected_lbp",
    [
        pytest.param(Token(TokenType.PLUS), 10),
        pytest.param(Token(TokenType.MINUS), 10),
        pytest.param(Token(TokenType.STAR), 20),
        pytest.param(Token(TokenType.SLASH), 20),
        pytest.param(Token(TokenType.LPAREN), 99),
        pytest.param(Token(TokenType.ASSIGN), 100),
        pytest.param(Token(TokenType.RPAREN), 0),
        pytest.param(Token(TokenType.NUMBER, 1.0), 0),
        pytest.param(Token(TokenType.LESS), 0),
        pytest.param(Token(TokenType.EOF), 0),
    ],
)
def test_binding_power(token: Token, expected_lbp: int) -> None:
    assert token.lbp == expected_lbp


def test_tokenize_is_pure() -> None:
    code = "if a < 2 then (b = 3) else -4"
    assert tokenize(code) == tokenize(code)


def test_untokenize() -> None:
    assert untokenize(tokenize("( 3+2 )*x")) == "(3 + 2) * x"
    assert str(Token(TokenType.NUMBER, 2.5)) == "<NUMBER>2.5"
