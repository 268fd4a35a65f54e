import enum
import re
from dataclasses import dataclass
from typing import Optional

from jitcalc.utils import PrintableEnum


class TokenType(PrintableEnum):
    LPAREN = enum.auto()
    RPAREN = enum.auto()
    PLUS = enum.auto()
    MINUS = enum.auto()
    STAR = enum.auto()
    SLASH = enum.auto()
    NUMBER = enum.auto()
    EOF = enum.auto()
    ILLEGAL = enum.auto()
    ASSIGN = enum.auto()
    IDENTIFIER = enum.auto()
    IF = enum.auto()
    THEN = enum.auto()
    ELSE = enum.auto()
    EQUAL = enum.auto()
    LESS = enum.auto()
    GREATER = enum.auto()


# left binding powers; anything missing never continues an expression
BINDING_POWERS = {
    TokenType.PLUS: 10,
    TokenType.MINUS: 10,
    TokenType.STAR: 20,
    TokenType.SLASH: 20,
    TokenType.LPAREN: 99,
    TokenType.ASSIGN: 100,
}

LEXEMES = {
    TokenType.LPAREN: "(",
    TokenType.RPAREN: ")",
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.EOF: "",
    TokenType.ILLEGAL: "?",
    TokenType.ASSIGN: "=",
    TokenType.IF: "if",
    TokenType.THEN: "then",
    TokenType.ELSE: "else",
    TokenType.EQUAL: "==",
    TokenType.LESS: "<",
    TokenType.GREATER: ">",
}


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: float | str | None = None

    @property
    def lbp(self) -> int:
        return BINDING_POWERS.get(self.type, 0)

    @property
    def lexeme(self) -> str:
        if self.type is TokenType.NUMBER:
            text = repr(self.value)
            return text[:-2] if text.endswith(".0") else text
        elif self.type is TokenType.IDENTIFIER:
            return str(self.value)
        else:
            return LEXEMES[self.type]

    def __str__(self) -> str:
        return f"<{self.type}>{self.lexeme}"


WHITESPACE = " \t\n"

SINGLE_CHAR_TOKENS = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "<": TokenType.LESS,
    ">": TokenType.GREATER,
}

KEYWORDS = {
    "if": TokenType.IF,
    "then": TokenType.THEN,
    "else": TokenType.ELSE,
}

SENTINELS = (TokenType.EOF, TokenType.ILLEGAL)


def _is_valid_in_number(s: str) -> bool:
    return s.isdigit() or s == "."


class Lexer:
    def __init__(self, code: str) -> None:
        self.code = code
        self.position = 0

    def peek(self) -> Optional[str]:
        if self.position < len(self.code):
            return self.code[self.position]
        return None

    def advance(self) -> str:
        char = self.code[self.position]
        self.position += 1
        return char

    def next_token(self) -> Token:
        while self.peek() is not None and self.peek() in WHITESPACE:
            self.advance()

        char = self.peek()
        if char is None:
            return Token(TokenType.EOF)
        elif char.isdigit():
            return self._read_number()
        elif char.isalpha():
            return self._read_identifier()

        self.advance()
        if char in SINGLE_CHAR_TOKENS:
            return Token(SINGLE_CHAR_TOKENS[char])
        elif char == "=":
            if self.peek() == "=":
                self.advance()
                return Token(TokenType.EQUAL)
            return Token(TokenType.ASSIGN)
        else:
            return Token(TokenType.ILLEGAL)

    def lex(self) -> list[Token]:
        tokens: list[Token] = []
        while True:
            token = self.next_token()
            tokens.append(token)
            if token.type in SENTINELS:
                return tokens

    def _read_number(self) -> Token:
        start = self.position
        while self.peek() is not None and _is_valid_in_number(self.peek()):
            self.advance()
        try:
            return Token(TokenType.NUMBER, float(self.code[start : self.position]))
        except ValueError:
            return Token(TokenType.ILLEGAL)

    def _read_identifier(self) -> Token:
        start = self.position
        while self.peek() is not None and self.peek().isalpha():
            self.advance()
        name = self.code[start : self.position]
        if name in KEYWORDS:
            return Token(KEYWORDS[name])
        return Token(TokenType.IDENTIFIER, name)


def tokenize(code: str) -> list[Token]:
    return Lexer(code).lex()


def untokenize(tokens: list[Token]) -> str:
    result = " ".join(t.lexeme for t in tokens if t.type is not TokenType.EOF)

    # ( 1 + 2 ) => (1 + 2)
    result = re.sub(r"\(\s+", "(", result)
    result = re.sub(r"\s+\)", ")", result)
    return result
