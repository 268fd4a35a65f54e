import ctypes
import itertools
import logging
from typing import Optional

import llvmlite.binding as llvm
import llvmlite.ir as ir

from jitcalc.backend import Arithmetic, Backend, BackendError, CodeUnit, Comparison

logger = logging.getLogger(__name__)

llvm.initialize_native_target()
llvm.initialize_native_asmprinter()

DOUBLE = ir.DoubleType()
DOUBLE_PTR = DOUBLE.as_pointer()
ADDRESS = ir.IntType(64)

ARITHMETIC_INSTRUCTIONS = {
    Arithmetic.ADD: "fadd",
    Arithmetic.SUB: "fsub",
    Arithmetic.MUL: "fmul",
    Arithmetic.DIV: "fdiv",
}

PREDICATES = {
    Comparison.LT: "<",
    Comparison.GT: ">",
    Comparison.EQ: "==",
}


class JITUnit(CodeUnit):
    def __init__(self, engine: "llvm.ExecutionEngine", name: str) -> None:
        self.engine = engine
        self.module = ir.Module(name=name)
        self.module.triple = llvm.get_process_triple()
        self.function = ir.Function(self.module, ir.FunctionType(DOUBLE, []), name=name)
        self.builder = ir.IRBuilder(self.function.append_basic_block("entry"))
        self._fabs: Optional[ir.Function] = None
        self._compiled: Optional["llvm.ModuleRef"] = None
        self._address = 0

    def _address_of(self, slot: ctypes.c_double, name: str) -> ir.Value:
        # slots live in Python memory, so their address is a compile-time constant
        return self.builder.inttoptr(ir.Constant(ADDRESS, ctypes.addressof(slot)), DOUBLE_PTR, name=f"{name}.addr")

    def constant(self, value: float) -> ir.Constant:
        return ir.Constant(DOUBLE, value)

    def load(self, slot: ctypes.c_double, name: str) -> ir.Value:
        return self.builder.load(self._address_of(slot, name), name=name)

    def store(self, slot: ctypes.c_double, name: str, value: ir.Value) -> None:
        self.builder.store(value, self._address_of(slot, name))

    def arithmetic(self, op: Arithmetic, lhs: ir.Value, rhs: ir.Value) -> ir.Value:
        build = getattr(self.builder, ARITHMETIC_INSTRUCTIONS[op])
        return build(lhs, rhs, name=op.mnemonic)

    def compare(self, op: Comparison, lhs: ir.Value, rhs: ir.Value) -> ir.Value:
        flag = self.builder.fcmp_ordered(PREDICATES[op], lhs, rhs, name="cmp")
        return self.builder.uitofp(flag, DOUBLE, name="bool")

    def truth(self, value: ir.Value) -> ir.Value:
        if self._fabs is None:
            self._fabs = self.module.declare_intrinsic("llvm.fabs", [DOUBLE], ir.FunctionType(DOUBLE, [DOUBLE]))
        magnitude = self.builder.call(self._fabs, [value], name="magnitude")
        # trunc(x) != 0 exactly when |x| >= 1; unordered so that NaN is true
        return self.builder.fcmp_unordered(">=", magnitude, ir.Constant(DOUBLE, 1.0), name="selector")

    def append_block(self, name: str) -> ir.Block:
        return self.function.append_basic_block(name)

    def position_at_end(self, block: ir.Block) -> None:
        self.builder.position_at_end(block)

    @property
    def current_block(self) -> ir.Block:
        return self.builder.block

    def branch(self, condition: ir.Value, then_block: ir.Block, else_block: ir.Block) -> None:
        self.builder.cbranch(condition, then_block, else_block)

    def jump(self, block: ir.Block) -> None:
        self.builder.branch(block)

    def phi(self, incoming: list[tuple[ir.Value, ir.Block]]) -> ir.Value:
        node = self.builder.phi(DOUBLE, name="merge")
        for value, block in incoming:
            node.add_incoming(value, block)
        return node

    def ret(self, value: ir.Value) -> None:
        self.builder.ret(value)

    def compile(self) -> None:
        try:
            compiled = llvm.parse_assembly(str(self.module))
        except RuntimeError as e:
            raise BackendError(f"Invalid IR for {self.function.name}: {e}") from e
        try:
            compiled.verify()
        except RuntimeError as e:
            compiled.close()
            raise BackendError(f"Invalid IR for {self.function.name}: {e}") from e

        self.engine.add_module(compiled)
        self._compiled = compiled
        self.engine.finalize_object()
        logger.debug("Compiled %s", self.function.name)

        self._address = self.engine.get_function_address(self.function.name)
        if not self._address:
            raise BackendError(f"Function {self.function.name} was not emitted")

    def run(self) -> float:
        if not self._address:
            self.compile()
        return ctypes.CFUNCTYPE(ctypes.c_double)(self._address)()

    def dump(self) -> str:
        return str(self.module)

    def close(self) -> None:
        if self._compiled is not None:
            self.engine.remove_module(self._compiled)
            self._compiled.close()
            self._compiled = None
            self._address = 0
            logger.debug("Released %s", self.function.name)


class JITBackend(Backend):
    def __init__(self) -> None:
        target = llvm.Target.from_default_triple()
        self.target_machine = target.create_target_machine()
        backing_mod = llvm.parse_assembly("")
        self.engine = llvm.create_mcjit_compiler(backing_mod, self.target_machine)
        self._unit_ids = itertools.count()

    def create_unit(self) -> JITUnit:
        return JITUnit(self.engine, f"calc_{next(self._unit_ids)}")
