"""Two-operand arithmetic shortcut ("2 + 2", "10 / 4 =").

Only ``<number> <op> <number>`` is recognised; nothing is ever evaluated
as a general expression.
"""
import operator
import re
from decimal import Decimal, DivisionByZero, InvalidOperation, localcontext
from typing import Optional

MATH_PATTERN = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*([+\-*/x×÷])\s*(-?\d+(?:\.\d+)?)\s*=?\s*\??\s*$")

OPERATORS = {
    "+": ("+", operator.add),
    "-": ("-", operator.sub),
    "*": ("*", operator.mul),
    "x": ("*", operator.mul),
    "×": ("*", operator.mul),
    "/": ("/", operator.truediv),
    "÷": ("/", operator.truediv),
}


def is_math_query(message: str) -> bool:
    return bool(MATH_PATTERN.match(message))


def _format_number(value: Decimal) -> str:
    if value == value.to_integral_value():
        return format(value.to_integral_value(), "f")
    return format(value.normalize(), "f")


def handle_math_query(message: str) -> Optional[str]:
    """
    Compute a two-operand expression.

    Returns:
        "<a> <op> <b> = <result>", an explanation for division by zero,
        or None when the message is not a supported expression
    """
    m = MATH_PATTERN.match(message)
    if not m:
        return None

    left, op_char, right = m.groups()
    symbol, func = OPERATORS[op_char]
    a, b = Decimal(left), Decimal(right)
    expression = f"{left} {symbol} {right}"

    try:
        # Enough digits that sums and products of the operands stay exact
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, len(left) + len(right) + 2)
            result = func(a, b)
    except (DivisionByZero, InvalidOperation, ZeroDivisionError):
        return f"{expression} can't be calculated - division by zero isn't defined."

    return f"{expression} = {_format_number(result)}"
