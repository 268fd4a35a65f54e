import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from jitcalc.backend import Arithmetic, Backend, CodeUnit, Comparison, Value
from jitcalc.expression import (
    BinaryOperation,
    Conditional,
    Expression,
    Number,
    Parenthesized,
    UnaryOperation,
    Variable,
)
from jitcalc.jit import JITBackend
from jitcalc.parser import parse
from jitcalc.tokenizer import TokenType, tokenize
from jitcalc.variables import Variables

logger = logging.getLogger(__name__)


@dataclass
class CalcRuntimeError(Exception):
    errmsg: str

    def __str__(self) -> str:
        return f"[Runtime error] {self.errmsg}"


ARITHMETIC_OPERATORS = {
    TokenType.PLUS: Arithmetic.ADD,
    TokenType.MINUS: Arithmetic.SUB,
    TokenType.STAR: Arithmetic.MUL,
    TokenType.SLASH: Arithmetic.DIV,
}

COMPARISON_OPERATORS = {
    TokenType.LESS: Comparison.LT,
    TokenType.GREATER: Comparison.GT,
    TokenType.EQUAL: Comparison.EQ,
}


class Evaluator:
    """Compiles one expression at a time into a fresh code unit and runs it.

    Only ``variables`` outlives a call to ``evaluate``; the unit holding the
    generated function is released as soon as it has returned.
    """

    def __init__(
        self,
        backend: Optional[Backend] = None,
        variables: Optional[Variables] = None,
        ir_file: Optional[Path] = None,
    ) -> None:
        self.backend = backend if backend is not None else JITBackend()
        self.variables = variables if variables is not None else Variables()
        self.ir_file = ir_file

    def run(self, code: str) -> float:
        return self.evaluate(parse(tokenize(code)))

    def evaluate(self, expression: Expression) -> float:
        declared: list[str] = []
        with self.backend.create_unit() as unit:
            # nothing has been stored until the unit runs, so new slots can still be dropped
            try:
                unit.ret(self._lower(expression, unit, declared))
                self._trace(unit)
                unit.compile()
            except Exception:
                for name in declared:
                    self.variables.forget(name)
                raise
            return unit.run()

    def _trace(self, unit: CodeUnit) -> None:
        if self.ir_file is None and not logger.isEnabledFor(logging.DEBUG):
            return
        listing = unit.dump()
        logger.debug("Generated IR:\n%s", listing)
        if self.ir_file is not None:
            self.ir_file.write_text(listing)

    def _lower(self, expression: Expression, unit: CodeUnit, declared: list[str]) -> Value:
        if isinstance(expression, Number):
            return unit.constant(expression.value)
        elif isinstance(expression, Variable):
            slot = self.variables.lookup(expression.name)
            if slot is None:
                raise CalcRuntimeError(f"Variable not declared: {expression.name}")
            return unit.load(slot, expression.name)
        elif isinstance(expression, UnaryOperation):
            if expression.operator.type is TokenType.PLUS:
                return self._lower(expression.operand, unit, declared)
            elif expression.operator.type is TokenType.MINUS:
                operand = self._lower(expression.operand, unit, declared)
                return unit.arithmetic(Arithmetic.MUL, operand, unit.constant(-1.0))
            else:
                raise CalcRuntimeError(f"Unary operator must be + or -, found {expression.operator.type}")
        elif isinstance(expression, BinaryOperation):
            return self._lower_binary(expression, unit, declared)
        elif isinstance(expression, Parenthesized):
            return self._lower(expression.inner, unit, declared)
        elif isinstance(expression, Conditional):
            return self._lower_conditional(expression, unit, declared)
        else:
            raise CalcRuntimeError(f"Unexpected expression type: {expression}")

    def _lower_binary(self, expression: BinaryOperation, unit: CodeUnit, declared: list[str]) -> Value:
        operator_type = expression.operator.type
        if operator_type in COMPARISON_OPERATORS:
            lhs = self._lower(expression.left, unit, declared)
            rhs = self._lower(expression.right, unit, declared)
            return unit.compare(COMPARISON_OPERATORS[operator_type], lhs, rhs)
        elif operator_type is TokenType.ASSIGN:
            if not isinstance(expression.left, Variable):
                raise CalcRuntimeError("Assignment must be a variable")
            name = expression.left.name
            value = self._lower(expression.right, unit, declared)
            if name not in self.variables:
                declared.append(name)
            slot = self.variables.declare(name)
            unit.store(slot, name, value)
            return unit.load(slot, name)
        elif operator_type in ARITHMETIC_OPERATORS:
            lhs = self._lower(expression.left, unit, declared)
            rhs = self._lower(expression.right, unit, declared)
            return unit.arithmetic(ARITHMETIC_OPERATORS[operator_type], lhs, rhs)
        else:
            raise CalcRuntimeError(f"Operator not supported: {operator_type}")

    def _lower_conditional(self, expression: Conditional, unit: CodeUnit, declared: list[str]) -> Value:
        #   if <condition>              <condition>
        #                               br selector, then, else
        #   then <then_branch>   ===>   then:  <then_branch>; br merge
        #   else <else_branch>          else:  <else_branch>; br merge
        #                               merge: phi [<then value>, then exit], [<else value>, else exit]
        selector = unit.truth(self._lower(expression.condition, unit, declared))
        then_block = unit.append_block("then")
        else_block = unit.append_block("else")
        merge_block = unit.append_block("merge")
        unit.branch(selector, then_block, else_block)

        unit.position_at_end(then_block)
        then_value = self._lower(expression.then_branch, unit, declared)
        unit.jump(merge_block)
        then_exit = unit.current_block

        unit.position_at_end(else_block)
        else_value = self._lower(expression.else_branch, unit, declared)
        unit.jump(merge_block)
        else_exit = unit.current_block

        unit.position_at_end(merge_block)
        return unit.phi([(then_value, then_exit), (else_value, else_exit)])
