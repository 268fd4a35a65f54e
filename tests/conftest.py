import pytest

from jitcalc.backend import Backend
from jitcalc.interpreter import InterpreterBackend
from jitcalc.jit import JITBackend
from jitcalc.runtime import Evaluator


@pytest.fixture(params=["jit", "interpreter"])
def backend(request: pytest.FixtureRequest) -> Backend:
    if request.param == "jit":
        return JITBackend()
    return InterpreterBackend()


@pytest.fixture
def evaluator(backend: Backend) -> Evaluator:
    return Evaluator(backend=backend)
