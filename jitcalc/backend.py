import abc
import ctypes
import enum
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Optional, Type

from jitcalc.utils import PrintableEnum


@dataclass
class BackendError(Exception):
    errmsg: str

    def __str__(self) -> str:
        return f"[Backend error] {self.errmsg}"


class Arithmetic(PrintableEnum):
    ADD = enum.auto()
    SUB = enum.auto()
    MUL = enum.auto()
    DIV = enum.auto()


class Comparison(PrintableEnum):
    LT = enum.auto()
    GT = enum.auto()
    EQ = enum.auto()


# Values, conditions and blocks are opaque handles owned by the unit that created them.
Value = Any
Block = Any


class CodeUnit(abc.ABC):
    """One zero-argument function returning a double.

    Instructions are appended to the end of the current block, which starts
    out as the entry block. Every block has to end with ``branch``, ``jump``
    or ``ret`` before ``compile`` is called. ``compile`` validates and prepares
    the function without running any of it; ``run`` compiles first if that has
    not happened yet. A unit is run at most once and must be closed afterwards;
    using it as a context manager does that.
    """

    @abc.abstractmethod
    def constant(self, value: float) -> Value:
        ...

    @abc.abstractmethod
    def load(self, slot: ctypes.c_double, name: str) -> Value:
        ...

    @abc.abstractmethod
    def store(self, slot: ctypes.c_double, name: str, value: Value) -> None:
        ...

    @abc.abstractmethod
    def arithmetic(self, op: Arithmetic, lhs: Value, rhs: Value) -> Value:
        ...

    @abc.abstractmethod
    def compare(self, op: Comparison, lhs: Value, rhs: Value) -> Value:
        """Ordered comparison, producing 1.0 or 0.0"""

    @abc.abstractmethod
    def truth(self, value: Value) -> Value:
        """Branch condition: true when ``value`` truncated toward zero is not zero.

        NaN and infinities count as true.
        """

    @abc.abstractmethod
    def append_block(self, name: str) -> Block:
        ...

    @abc.abstractmethod
    def position_at_end(self, block: Block) -> None:
        ...

    @property
    @abc.abstractmethod
    def current_block(self) -> Block:
        ...

    @abc.abstractmethod
    def branch(self, condition: Value, then_block: Block, else_block: Block) -> None:
        ...

    @abc.abstractmethod
    def jump(self, block: Block) -> None:
        ...

    @abc.abstractmethod
    def phi(self, incoming: list[tuple[Value, Block]]) -> Value:
        """Value of whichever ``(value, block)`` pair names the block control came from"""

    @abc.abstractmethod
    def ret(self, value: Value) -> None:
        ...

    @abc.abstractmethod
    def compile(self) -> None:
        ...

    @abc.abstractmethod
    def run(self) -> float:
        ...

    @abc.abstractmethod
    def dump(self) -> str:
        ...

    @abc.abstractmethod
    def close(self) -> None:
        ...

    def __enter__(self) -> "CodeUnit":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()


class Backend(abc.ABC):
    @abc.abstractmethod
    def create_unit(self) -> CodeUnit:
        ...
