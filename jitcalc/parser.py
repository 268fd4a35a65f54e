from dataclasses import dataclass
from typing import Optional

from jitcalc.expression import (
    BinaryOperation,
    Conditional,
    Expression,
    Number,
    Parenthesized,
    UnaryOperation,
    Variable,
)
from jitcalc.tokenizer import Token, TokenType, untokenize


@dataclass
class ParserError(Exception):
    errmsg: str
    tokens: list[Token]
    error_token_idx: int

    def __str__(self) -> str:
        parsed_tokens = self.tokens[: self.error_token_idx]
        filler_whitespace = " " * len(untokenize(parsed_tokens)) + (" " if parsed_tokens else "")
        return "\n".join([f"Parser error: {self.errmsg}", untokenize(self.tokens), filler_whitespace + "^"])


ARITHMETIC_TOKENS = (TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.SLASH)
COMPARISON_TOKENS = (TokenType.LESS, TokenType.GREATER, TokenType.EQUAL)
SIGN_TOKENS = (TokenType.PLUS, TokenType.MINUS)


class Parser:
    """Pratt parser over ``tokens[start:end]``.

    Error positions always refer to the full token list, so a parser created
    for the inside of a parenthesized group reports positions in the whole line.
    """

    def __init__(self, tokens: list[Token], start: int = 0, end: Optional[int] = None) -> None:
        self.tokens = tokens
        self.i = start
        self.end = len(tokens) if end is None else end

    def parse(self) -> Expression:
        expression = self.expr(0)
        # the longest expression wins, whatever follows it is ignored unless it is a stray ")"
        leftover = self._peek()
        if leftover is not None and leftover.type is TokenType.RPAREN:
            raise self._error("Unmatched closing paren", self.i)
        return expression

    def expr(self, rbp: int) -> Expression:
        left = self._nud(self._advance())
        while True:
            peeked = self._peek()
            if peeked is None:
                break
            if peeked.type is TokenType.ILLEGAL:
                raise self._error("Input not supported", self.i)
            if rbp >= peeked.lbp:
                break
            operator = self._advance()
            left = self._led(left, operator)
        return left

    def _peek(self) -> Optional[Token]:
        if self.i < self.end:
            return self.tokens[self.i]
        return None

    def _advance(self) -> Token:
        if self.i >= self.end:
            raise self._error("Unexpected end of input", self.i)
        token = self.tokens[self.i]
        self.i += 1
        return token

    def _expect(self, token_type: TokenType) -> Token:
        token = self._advance()
        if token.type is not token_type:
            raise self._error(f"Expected {token_type}, found {token.type}", self.i - 1)
        return token

    def _error(self, errmsg: str, error_token_idx: int) -> ParserError:
        return ParserError(errmsg, tokens=self.tokens, error_token_idx=error_token_idx)

    def _nud(self, token: Token) -> Expression:
        if token.type is TokenType.ILLEGAL:
            raise self._error("Input not supported", self.i - 1)
        elif token.type is TokenType.EOF:
            raise self._error("Unexpected end of input", self.i - 1)
        elif token.type is TokenType.IDENTIFIER:
            return Variable(str(token.value))
        elif token.type is TokenType.NUMBER:
            return Number(float(token.value))  # type: ignore
        elif token.type in SIGN_TOKENS:
            operand = self._advance()
            if operand.type is not TokenType.NUMBER:
                raise self._error(f"Unary {token.lexeme} must be followed by a number", self.i - 1)
            return UnaryOperation(operator=token, operand=Number(float(operand.value)))  # type: ignore
        elif token.type is TokenType.LPAREN:
            return self._parenthesized()
        elif token.type is TokenType.RPAREN:
            raise self._error("Unmatched closing paren", self.i - 1)
        elif token.type is TokenType.IF:
            return self._conditional()
        else:
            raise self._error(f"Unexpected token {token.type}", self.i - 1)

    def _led(self, left: Expression, operator: Token) -> Expression:
        if operator.type in ARITHMETIC_TOKENS or operator.type is TokenType.ASSIGN:
            # "=" binds tightest, so "a = 1 + 2" assigns 1 and then adds 2
            right = self.expr(operator.lbp)
        else:
            raise self._error(f"Unexpected token {operator.type}", self.i - 1)
        return BinaryOperation(operator=operator, left=left, right=right)

    def _parenthesized(self) -> Parenthesized:
        open_idx = self.i - 1
        depth = 1
        j = self.i
        while j < self.end:
            token_type = self.tokens[j].type
            if token_type is TokenType.LPAREN:
                depth += 1
            elif token_type is TokenType.RPAREN:
                depth -= 1
                if depth == 0:
                    inner = Parser(self.tokens, start=self.i, end=j).parse()
                    self.i = j + 1
                    return Parenthesized(inner)
            elif token_type is TokenType.ILLEGAL:
                raise self._error("Input not supported", j)
            elif token_type is TokenType.EOF:
                break
            j += 1
        raise self._error("Unmatched opening paren", open_idx)

    def _conditional(self) -> Conditional:
        # if <primitive> <cmp> <primitive> then <primitive> else <primitive>
        left = self._nud(self._advance())
        comparison = self._advance()
        if comparison.type not in COMPARISON_TOKENS:
            raise self._error(f"Expected comparison operator, found {comparison.type}", self.i - 1)
        right = self._nud(self._advance())
        condition = BinaryOperation(operator=comparison, left=left, right=right)

        self._expect(TokenType.THEN)
        then_branch = self._nud(self._advance())
        self._expect(TokenType.ELSE)
        else_branch = self._nud(self._advance())
        return Conditional(condition=condition, then_branch=then_branch, else_branch=else_branch)


def parse(tokens: list[Token]) -> Expression:
    return Parser(tokens).parse()
