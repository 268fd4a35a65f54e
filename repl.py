import argparse
import logging
from pathlib import Path

from jitcalc.backend import BackendError
from jitcalc.interpreter import InterpreterBackend
from jitcalc.jit import JITBackend
from jitcalc.parser import ParserError
from jitcalc.runtime import CalcRuntimeError, Evaluator

BACKENDS = {
    "jit": JITBackend,
    "interpreter": InterpreterBackend,
}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interactive calculator compiling every line to native code")
    parser.add_argument("--backend", choices=sorted(BACKENDS), default="jit", help="code generation backend")
    parser.add_argument("--debug", action="store_true", help="log the generated IR to stderr")
    parser.add_argument("--ir-file", type=Path, default=None, help="write the IR of the last line to this file")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    evaluator = Evaluator(backend=BACKENDS[args.backend](), ir_file=args.ir_file)

    while True:
        try:
            code = input("> ")
        except EOFError:
            break

        if not code.strip():
            continue

        try:
            result = evaluator.run(code)
        except (ParserError, CalcRuntimeError, BackendError) as e:
            print(e)
            continue

        print(result)
