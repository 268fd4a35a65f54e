import math
import random
import re
import string
import warnings

from jitcalc.runtime import Evaluator

warnings.filterwarnings("ignore")

evaluator = Evaluator()

VARIABLES = {"x": 3.0, "y": -2.0, "z": 0.5}
COMPARISONS = ["<", ">", "=="]
OPERATORS = ["+", "-", "*", "/"]


def eval_py(code: str) -> float | str:
    try:
        return eval(code, {}, dict(VARIABLES))
    except Exception as e:
        return str(e)


def eval_my(code: str) -> float | str:
    try:
        return evaluator.run(code)
    except Exception as e:
        return str(e)


def generate_chars(length: int) -> tuple[str, str]:
    code = "".join(random.choices(string.digits + ".()+-*/ ", k=length))
    return code, code


def generate_primitive(depth: int) -> tuple[str, str]:
    """One conditional slot, paired with the Python expression it should equal"""
    choice = random.randrange(4 if depth > 0 else 2)
    if choice == 0:
        number = str(random.randint(0, 99))
        return number, number
    elif choice == 1:
        name = random.choice(list(VARIABLES))
        return name, name
    elif choice == 2:
        code, py_code = generate_expression(depth - 1)
        return f"({code})", f"({py_code})"
    else:
        return generate_conditional(depth - 1)


def generate_conditional(depth: int) -> tuple[str, str]:
    left, right, then_branch, else_branch = (generate_primitive(depth) for _ in range(4))
    comparison = random.choice(COMPARISONS)
    return (
        f"if {left[0]} {comparison} {right[0]} then {then_branch[0]} else {else_branch[0]}",
        f"({then_branch[1]} if {left[1]} {comparison} {right[1]} else {else_branch[1]})",
    )


def generate_expression(depth: int) -> tuple[str, str]:
    code, py_code = generate_primitive(depth)
    for _ in range(random.randint(0, 3)):
        operator = random.choice(OPERATORS)
        term, py_term = generate_primitive(depth)
        code, py_code = f"{code} {operator} {term}", f"{py_code} {operator} {py_term}"
    return code, py_code


if __name__ == "__main__":
    for name, value in VARIABLES.items():
        evaluator.run(f"{name} = {value}")

    while True:
        code, py_code = generate_chars(10) if random.random() < 0.5 else generate_expression(2)

        if re.findall(r"\*\s*\*", code):
            continue  # avoid generating powers (10**4)

        if re.findall(r"/\s*/", code):
            continue  # avoid generating int devision (10 // 3)

        if re.findall(r"[\d.)]\s+[\d.]", code):
            continue  # anything after a complete expression is ignored (1 2)

        res_py = eval_py(py_code)
        res_my = eval_my(code)
        if isinstance(res_py, (int, float)) and isinstance(res_my, float) and math.isclose(res_my, float(res_py)):
            continue
        if isinstance(res_py, str) and isinstance(res_my, str):
            continue
        if isinstance(res_py, str) and res_py.startswith("leading zeros in decimal integer literals are not permitted"):
            continue
        if isinstance(res_py, str) and "division by zero" in res_py and isinstance(res_my, float):
            continue  # IEEE division gives inf / nan
        if isinstance(res_my, str) and "must be followed by a number" in res_my:
            continue  # signs only apply to literals
        print(f"{code!r}\npy: {res_py}\nmy: {res_my}\n\n")
