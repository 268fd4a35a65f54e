from dataclasses import dataclass

from jitcalc.tokenizer import Token


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class UnaryOperation:
    operator: Token
    operand: "Expression"


@dataclass(frozen=True)
class BinaryOperation:
    operator: Token
    left: "Expression"
    right: "Expression"


@dataclass(frozen=True)
class Parenthesized:
    inner: "Expression"


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class Conditional:
    condition: "Expression"
    then_branch: "Expression"
    else_branch: "Expression"


Expression = Number | UnaryOperation | BinaryOperation | Parenthesized | Variable | Conditional
