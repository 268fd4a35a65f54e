from jitcalc.interpreter import InterpreterBackend
from jitcalc.parser import ParserError, parse
from jitcalc.runtime import CalcRuntimeError, Evaluator
from jitcalc.tokenizer import tokenize

evaluator = Evaluator(backend=InterpreterBackend())

for code in [
    "5",
    "-1",
    "1 + 1",
    "-1 + 1",
    "1 + -1",
    "4 + 6 * 3",
    "(4 + 6)",
    "(4+6) * 3",
    "80225/+2",
    "7/6/2000",
    "a = 1",
    "b = (a + 2)",
    "a * b",
    "var = (1 + 14 * (54 * 2))",
    "10 / 5/ 2",
    "c = 1 + 2",
    "c",
    "c = d = 10",
    "3 4",
    "if a < b then a else b",
    "if (a + b) > 100 then 1 else -1",
    "1 / 0",
    "(3 + 2",
    "undefined + 1",
    "2 $ 3",
]:
    print("=" * 10)
    print(f"code: {code!r}")

    tokens = tokenize(code)
    print(f"tokens: {' '.join(str(t) for t in tokens)}")

    try:
        expression = parse(tokens)
    except ParserError as e:
        print(e)
        continue
    print(f"ast: {expression}")

    try:
        result = evaluator.evaluate(expression)
    except CalcRuntimeError as e:
        print(e)
        continue
    print(f"result: {result}")
    print(f"variables: {evaluator.variables.as_dict()}")
