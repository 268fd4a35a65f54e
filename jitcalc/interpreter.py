import ctypes
import enum
import itertools
import math
import operator
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from jitcalc.backend import Arithmetic, Backend, BackendError, CodeUnit, Comparison
from jitcalc.utils import PrintableEnum


class Opcode(PrintableEnum):
    CONST = enum.auto()  # %r = value
    LOAD = enum.auto()  # %r = slot
    STORE = enum.auto()  # slot = %a
    ADD = enum.auto()  # %r = %a + %b
    SUB = enum.auto()  # %r = %a - %b
    MUL = enum.auto()  # %r = %a * %b
    DIV = enum.auto()  # %r = %a / %b
    LT = enum.auto()  # %r = 1.0 if %a < %b else 0.0
    GT = enum.auto()  # %r = 1.0 if %a > %b else 0.0
    EQ = enum.auto()  # %r = 1.0 if %a == %b else 0.0
    TRUTH = enum.auto()  # %r = trunc(%a) != 0
    PHI = enum.auto()  # %r = value coming from the previous block
    BRANCH = enum.auto()  # goto then if %a else else
    JUMP = enum.auto()  # goto target
    RET = enum.auto()  # return %a


TERMINATORS = (Opcode.BRANCH, Opcode.JUMP, Opcode.RET)


def _ieee_divide(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


ARITHMETIC_IMPLS: dict[Opcode, Callable[[float, float], float]] = {
    Opcode.ADD: operator.add,
    Opcode.SUB: operator.sub,
    Opcode.MUL: operator.mul,
    Opcode.DIV: _ieee_divide,
}

COMPARISON_IMPLS: dict[Opcode, Callable[[float, float], bool]] = {
    Opcode.LT: operator.lt,
    Opcode.GT: operator.gt,
    Opcode.EQ: operator.eq,
}

ARITHMETIC_OPCODES = {
    Arithmetic.ADD: Opcode.ADD,
    Arithmetic.SUB: Opcode.SUB,
    Arithmetic.MUL: Opcode.MUL,
    Arithmetic.DIV: Opcode.DIV,
}

COMPARISON_OPCODES = {
    Comparison.LT: Opcode.LT,
    Comparison.GT: Opcode.GT,
    Comparison.EQ: Opcode.EQ,
}


@dataclass(eq=False)
class Block:
    name: str
    instructions: list["Instruction"] = field(default_factory=list)

    @property
    def terminated(self) -> bool:
        return bool(self.instructions) and self.instructions[-1].opcode in TERMINATORS

    def __str__(self) -> str:
        return self.name


@dataclass
class Instruction:
    opcode: Opcode
    operands: tuple[Any, ...] = ()
    result: Optional[int] = None

    def __str__(self) -> str:
        if self.opcode is Opcode.CONST:
            args = repr(self.operands[0])
        elif self.opcode is Opcode.LOAD:
            args = f"@{self.operands[1]}"
        elif self.opcode is Opcode.STORE:
            args = f"@{self.operands[1]}, %{self.operands[2]}"
        elif self.opcode is Opcode.PHI:
            args = ", ".join(f"[%{value}, {block}]" for value, block in self.operands[0])
        elif self.opcode in (Opcode.BRANCH, Opcode.JUMP):
            args = ", ".join(str(o) if isinstance(o, Block) else f"%{o}" for o in self.operands)
        else:
            args = ", ".join(f"%{o}" for o in self.operands)
        prefix = f"%{self.result} = " if self.result is not None else ""
        return f"{prefix}{self.opcode.mnemonic} {args}"


class InterpretedUnit(CodeUnit):
    def __init__(self, name: str) -> None:
        self.name = name
        self.blocks: list[Block] = [Block("entry")]
        self.block = self.blocks[0]
        self._registers = itertools.count()
        self._compiled = False

    def _emit(self, opcode: Opcode, *operands: Any, produces: bool = True) -> Optional[int]:
        if self.block.terminated:
            raise BackendError(f"Block {self.block.name} is already terminated")
        result = next(self._registers) if produces else None
        self.block.instructions.append(Instruction(opcode, operands, result))
        return result

    def constant(self, value: float) -> int:
        return self._emit(Opcode.CONST, float(value))  # type: ignore

    def load(self, slot: ctypes.c_double, name: str) -> int:
        return self._emit(Opcode.LOAD, slot, name)  # type: ignore

    def store(self, slot: ctypes.c_double, name: str, value: int) -> None:
        self._emit(Opcode.STORE, slot, name, value, produces=False)

    def arithmetic(self, op: Arithmetic, lhs: int, rhs: int) -> int:
        return self._emit(ARITHMETIC_OPCODES[op], lhs, rhs)  # type: ignore

    def compare(self, op: Comparison, lhs: int, rhs: int) -> int:
        return self._emit(COMPARISON_OPCODES[op], lhs, rhs)  # type: ignore

    def truth(self, value: int) -> int:
        return self._emit(Opcode.TRUTH, value)  # type: ignore

    def append_block(self, name: str) -> Block:
        block = Block(f"{name}{len(self.blocks)}")
        self.blocks.append(block)
        return block

    def position_at_end(self, block: Block) -> None:
        self.block = block

    @property
    def current_block(self) -> Block:
        return self.block

    def branch(self, condition: int, then_block: Block, else_block: Block) -> None:
        self._emit(Opcode.BRANCH, condition, then_block, else_block, produces=False)

    def jump(self, block: Block) -> None:
        self._emit(Opcode.JUMP, block, produces=False)

    def phi(self, incoming: list[tuple[int, Block]]) -> int:
        return self._emit(Opcode.PHI, tuple(incoming))  # type: ignore

    def ret(self, value: int) -> None:
        self._emit(Opcode.RET, value, produces=False)

    def compile(self) -> None:
        for block in self.blocks:
            if not block.terminated:
                raise BackendError(f"Block {block.name} has no terminator")
        self._compiled = True

    def run(self) -> float:
        if not self._compiled:
            self.compile()

        registers: dict[int, Any] = dict()
        block, previous = self.blocks[0], None
        while True:
            for instruction in block.instructions:
                opcode, operands = instruction.opcode, instruction.operands
                if opcode is Opcode.CONST:
                    value = operands[0]
                elif opcode is Opcode.LOAD:
                    value = operands[0].value
                elif opcode is Opcode.STORE:
                    operands[0].value = registers[operands[2]]
                    continue
                elif opcode in ARITHMETIC_IMPLS:
                    value = ARITHMETIC_IMPLS[opcode](registers[operands[0]], registers[operands[1]])
                elif opcode in COMPARISON_IMPLS:
                    value = 1.0 if COMPARISON_IMPLS[opcode](registers[operands[0]], registers[operands[1]]) else 0.0
                elif opcode is Opcode.TRUTH:
                    # trunc(x) != 0 exactly when |x| >= 1; NaN fails every ordered test
                    value = not abs(registers[operands[0]]) < 1.0
                elif opcode is Opcode.PHI:
                    value = self._select_incoming(operands[0], previous, registers)
                elif opcode is Opcode.BRANCH:
                    previous, block = block, operands[1] if registers[operands[0]] else operands[2]
                    break
                elif opcode is Opcode.JUMP:
                    previous, block = block, operands[0]
                    break
                elif opcode is Opcode.RET:
                    return float(registers[operands[0]])
                else:
                    raise BackendError(f"Unexpected opcode: {opcode}")
                registers[instruction.result] = value  # type: ignore

    @staticmethod
    def _select_incoming(incoming: tuple[tuple[int, Block], ...], previous: Optional[Block], registers: dict) -> Any:
        for register, block in incoming:
            if block is previous:
                return registers[register]
        raise BackendError(f"Phi has no incoming value for block {previous}")

    def dump(self) -> str:
        lines = [f"define double @{self.name}() {{"]
        for block in self.blocks:
            lines.append(f"{block.name}:")
            lines.extend(f"  {instruction}" for instruction in block.instructions)
        lines.append("}")
        return "\n".join(lines)

    def close(self) -> None:
        self.blocks.clear()
        self._compiled = False


class InterpreterBackend(Backend):
    def __init__(self) -> None:
        self._unit_ids = itertools.count()

    def create_unit(self) -> InterpretedUnit:
        return InterpretedUnit(f"calc_{next(self._unit_ids)}")
