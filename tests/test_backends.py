import ctypes

import pytest

from jitcalc.backend import Arithmetic, Backend, BackendError, Comparison
from jitcalc.interpreter import InterpreterBackend
from jitcalc.jit import JITBackend


def test_arithmetic_and_storage(backend: Backend) -> None:
    slot = ctypes.c_double(1.5)
    with backend.create_unit() as unit:
        loaded = unit.load(slot, "x")
        doubled = unit.arithmetic(Arithmetic.MUL, loaded, unit.constant(2.0))
        unit.store(slot, "x", doubled)
        unit.ret(unit.arithmetic(Arithmetic.SUB, unit.load(slot, "x"), unit.constant(0.5)))
        assert unit.run() == 2.5
    assert slot.value == 3.0


@pytest.mark.parametrize(
    "op, lhs, rhs, expected_ret_val",
    [
        pytest.param(Comparison.LT, 1.0, 2.0, 1.0),
        pytest.param(Comparison.LT, 2.0, 1.0, 0.0),
        pytest.param(Comparison.GT, 2.0, 1.0, 1.0),
        pytest.param(Comparison.EQ, 2.0, 2.0, 1.0),
        pytest.param(Comparison.EQ, float("nan"), float("nan"), 0.0),
        pytest.param(Comparison.LT, float("nan"), 1.0, 0.0),
    ],
)
def test_ordered_comparison(backend: Backend, op: Comparison, lhs: float, rhs: float, expected_ret_val: float) -> None:
    with backend.create_unit() as unit:
        unit.ret(unit.compare(op, unit.constant(lhs), unit.constant(rhs)))
        assert unit.run() == expected_ret_val


@pytest.mark.parametrize("selector, expected_ret_val", [pytest.param(1.0, 10.0), pytest.param(0.0, 20.0)])
def test_branch_and_merge(backend: Backend, selector: float, expected_ret_val: float) -> None:
    with backend.create_unit() as unit:
        then_block = unit.append_block("then")
        else_block = unit.append_block("else")
        merge_block = unit.append_block("merge")
        unit.branch(unit.truth(unit.constant(selector)), then_block, else_block)
        unit.position_at_end(then_block)
        then_value = unit.arithmetic(Arithmetic.ADD, unit.constant(4.0), unit.constant(6.0))
        unit.jump(merge_block)
        unit.position_at_end(else_block)
        else_value = unit.arithmetic(Arithmetic.DIV, unit.constant(40.0), unit.constant(2.0))
        unit.jump(merge_block)
        unit.position_at_end(merge_block)
        assert unit.current_block is merge_block
        unit.ret(unit.phi([(then_value, then_block), (else_value, else_block)]))
        assert unit.run() == expected_ret_val


def test_unterminated_block_is_rejected(backend: Backend) -> None:
    with backend.create_unit() as unit:
        unit.append_block("dangling")
        unit.ret(unit.constant(1.0))
        with pytest.raises(BackendError):
            unit.run()


def test_compile_rejects_unterminated_block(backend: Backend) -> None:
    with backend.create_unit() as unit:
        unit.append_block("dangling")
        unit.ret(unit.constant(1.0))
        with pytest.raises(BackendError):
            unit.compile()


def test_compile_does_not_run(backend: Backend) -> None:
    slot = ctypes.c_double(0.0)
    with backend.create_unit() as unit:
        unit.store(slot, "x", unit.constant(7.0))
        unit.ret(unit.load(slot, "x"))
        unit.compile()
        assert slot.value == 0.0
        assert unit.run() == 7.0
        assert slot.value == 7.0


def test_jit_rejects_ir_that_fails_verification() -> None:
    with JITBackend().create_unit() as unit:
        entry_block = unit.current_block
        merge_block = unit.append_block("merge")
        orphan_block = unit.append_block("orphan")
        unit.jump(merge_block)
        unit.position_at_end(orphan_block)
        unit.ret(unit.constant(2.0))
        unit.position_at_end(merge_block)
        # orphan never jumps to merge, so the phi lists a block that is not a predecessor
        unit.ret(unit.phi([(unit.constant(1.0), entry_block), (unit.constant(2.0), orphan_block)]))
        with pytest.raises(BackendError, match="Invalid IR for calc_0"):
            unit.compile()
        assert unit._compiled is None


def test_units_are_independent(backend: Backend) -> None:
    for i in range(3):
        with backend.create_unit() as unit:
            unit.ret(unit.constant(float(i)))
            assert unit.run() == float(i)


def test_interpreter_rejects_code_after_terminator() -> None:
    with InterpreterBackend().create_unit() as unit:
        unit.ret(unit.constant(1.0))
        with pytest.raises(BackendError, match="already terminated"):
            unit.constant(2.0)


def test_interpreter_dump() -> None:
    slot = ctypes.c_double(0.0)
    with InterpreterBackend().create_unit() as unit:
        value = unit.arithmetic(Arithmetic.ADD, unit.constant(1.0), unit.load(slot, "a"))
        unit.store(slot, "a", value)
        unit.ret(value)
        assert unit.dump().splitlines() == [
            "define double @calc_0() {",
            "entry:",
            "  %0 = const 1.0",
            "  %1 = load @a",
            "  %2 = add %0, %1",
            "  store @a, %2",
            "  ret %2",
            "}",
        ]
