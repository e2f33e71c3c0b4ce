"""LangChain tools for calculations, statistics and unit conversion.

Expressions are evaluated by walking the parsed AST and allowing only
numeric literals, arithmetic operators, ``pi``/``e`` and a fixed set of
math functions; nothing is passed to ``eval``.
"""

from __future__ import annotations

import ast
import math
import operator
import statistics as stats
from collections import Counter
from typing import Literal

from langchain_core.tools import BaseTool, tool

UnitCategory = Literal["length", "weight", "temperature", "area", "volume"]


class ExpressionError(ValueError):
    """Raised for expressions outside the supported arithmetic subset."""


MAX_EXPONENT = 10_000
MAX_RESULT_BITS = 4_096


def _checked_pow(base, exponent, modulus=None):
    """``pow`` with the exponent and result-size limits applied."""
    if abs(exponent) > MAX_EXPONENT:
        raise ExpressionError("Exponent too large")
    if modulus is None and isinstance(base, int) and abs(base) > 1 and exponent > 0:
        if exponent * math.log2(abs(base)) > MAX_RESULT_BITS:
            raise ExpressionError("Result too large")
    if modulus is None:
        return pow(base, exponent)
    return pow(base, exponent, modulus)


_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: _checked_pow,
    ast.FloorDiv: operator.floordiv,
}
_UNARY_OPS = {ast.UAdd: operator.pos, ast.USub: operator.neg}
_FUNCTIONS = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "sqrt": math.sqrt,
    "log": math.log,
    "abs": abs,
    "floor": math.floor,
    "ceil": math.ceil,
    "round": round,
    "pow": _checked_pow,
    "min": min,
    "max": max,
}
_CONSTANTS = {"pi": math.pi, "e": math.e}


def _eval_node(node: ast.AST) -> float:
    if isinstance(node, ast.Expression):
        return _eval_node(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
        return node.value
    if isinstance(node, ast.Name):
        name = node.id.lower()
        if name in _CONSTANTS:
            return _CONSTANTS[name]
        raise ExpressionError(f"Unknown name: {node.id}")
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left, right = _eval_node(node.left), _eval_node(node.right)
        return _BINARY_OPS[type(node.op)](left, right)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))
    if isinstance(node, ast.Call) and isinstance(node.func, ast.Name) and not node.keywords:
        func = _FUNCTIONS.get(node.func.id.lower())
        if func is None:
            raise ExpressionError(f"Unknown function: {node.func.id}")
        return func(*(_eval_node(arg) for arg in node.args))
    raise ExpressionError("Only basic mathematical operations are allowed")


def evaluate_expression(expression: str) -> float:
    """Evaluate an arithmetic expression; ``^`` means power."""
    source = expression.replace("Math.", "").replace("^", "**")
    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as exc:
        raise ExpressionError(f"Invalid expression: {exc.msg}") from exc
    return _eval_node(tree)


@tool
def calculator(expression: str) -> str:
    """Evaluate a mathematical expression, e.g. '2 + 3 * 4', 'sqrt(16)', 'sin(pi/2)', '2^10'.

    Args:
        expression: Mathematical expression to evaluate.
    """
    if not expression or not expression.strip():
        return "❌ Error: No mathematical expression provided"
    try:
        result = evaluate_expression(expression)
    except ExpressionError as exc:
        return f"❌ Error: {exc}"
    except (ArithmeticError, TypeError, ValueError) as exc:
        return f"❌ Error calculating expression: {exc}"

    if not isinstance(result, (int, float)):
        return "❌ Error: Result is not a number"
    try:
        finite = math.isfinite(float(result))
    except OverflowError:
        return "❌ Error: Result is too large to display"
    if not finite:
        return "❌ Error: Result is infinite or not a number"

    return (
        "🧮 Calculation Result:\n\n"
        f"📝 Expression: {expression}\n"
        f"📊 Result: {result}\n"
        f"🔢 Scientific notation: {result:e}\n"
        f"📐 Rounded (2 decimals): {result:.2f}"
    )


@tool
def statistics(numbers: list[float]) -> str:
    """Calculate count, sum, mean, median, mode, range, variance, standard
    deviation and quartiles for a list of numbers.

    Args:
        numbers: The numbers to analyze.
    """
    if not numbers:
        return "❌ Error: No numbers provided for statistical analysis"

    values = sorted(numbers)
    count = len(values)
    mean = stats.fmean(values)
    variance = stats.pvariance(values, mu=mean)
    frequency = Counter(values)
    top = max(frequency.values())
    modes = [v for v, c in frequency.items() if c == top]
    q1 = values[int(count * 0.25)]
    q3 = values[int(count * 0.75)]

    return (
        "📊 Statistical Analysis Results:\n\n"
        "📈 Basic Statistics:\n"
        f"  • Count: {count}\n"
        f"  • Sum: {sum(values):.2f}\n"
        f"  • Mean (Average): {mean:.2f}\n"
        f"  • Median: {stats.median(values):.2f}\n"
        f"  • Mode: {'Multiple modes' if len(modes) > 5 else ', '.join(f'{m:g}' for m in modes)}\n\n"
        "📏 Range & Spread:\n"
        f"  • Minimum: {values[0]:g}\n"
        f"  • Maximum: {values[-1]:g}\n"
        f"  • Range: {values[-1] - values[0]:.2f}\n"
        f"  • Variance: {variance:.2f}\n"
        f"  • Standard Deviation: {math.sqrt(variance):.2f}\n\n"
        "📋 Quartiles:\n"
        f"  • Q1 (25th percentile): {q1:g}\n"
        f"  • Q3 (75th percentile): {q3:g}\n"
        f"  • IQR (Interquartile Range): {q3 - q1:.2f}"
    )


# ── Unit conversion ─────────────────────────────────────────────────

# Factors to the base unit of each category (metre, gram, m², litre)
_LINEAR_UNITS: dict[str, dict[str, float]] = {
    "length": {
        "meter": 1, "m": 1, "metre": 1,
        "kilometer": 1000, "km": 1000,
        "centimeter": 0.01, "cm": 0.01,
        "millimeter": 0.001, "mm": 0.001,
        "inch": 0.0254, "in": 0.0254,
        "foot": 0.3048, "ft": 0.3048, "feet": 0.3048,
        "yard": 0.9144, "yd": 0.9144,
        "mile": 1609.34, "mi": 1609.34,
    },
    "weight": {
        "gram": 1, "g": 1,
        "kilogram": 1000, "kg": 1000,
        "pound": 453.592, "lb": 453.592, "lbs": 453.592,
        "ounce": 28.3495, "oz": 28.3495,
        "ton": 1_000_000, "tonne": 1_000_000,
    },
    "area": {
        "square_meter": 1, "sqm": 1, "m2": 1,
        "square_kilometer": 1_000_000, "sqkm": 1_000_000, "km2": 1_000_000,
        "square_centimeter": 0.0001, "sqcm": 0.0001, "cm2": 0.0001,
        "square_foot": 0.092903, "sqft": 0.092903, "ft2": 0.092903,
        "square_inch": 0.00064516, "sqin": 0.00064516, "in2": 0.00064516,
        "acre": 4046.86, "hectare": 10_000,
    },
    "volume": {
        "liter": 1, "l": 1, "litre": 1,
        "milliliter": 0.001, "ml": 0.001,
        "cubic_meter": 1000, "m3": 1000,
        "cubic_centimeter": 0.001, "cc": 0.001, "cm3": 0.001,
        "gallon": 3.78541, "gal": 3.78541,
        "quart": 0.946353, "qt": 0.946353,
        "pint": 0.473176, "pt": 0.473176,
        "cup": 0.236588,
        "fluid_ounce": 0.0295735, "floz": 0.0295735,
    },
}

_TO_CELSIUS = {
    "celsius": lambda v: v, "c": lambda v: v,
    "fahrenheit": lambda v: (v - 32) * 5 / 9, "f": lambda v: (v - 32) * 5 / 9,
    "kelvin": lambda v: v - 273.15, "k": lambda v: v - 273.15,
}
_FROM_CELSIUS = {
    "celsius": lambda c: c, "c": lambda c: c,
    "fahrenheit": lambda c: c * 9 / 5 + 32, "f": lambda c: c * 9 / 5 + 32,
    "kelvin": lambda c: c + 273.15, "k": lambda c: c + 273.15,
}


def convert_units(value: float, from_unit: str, to_unit: str, category: str) -> float | None:
    """Convert *value*; ``None`` when a unit is unknown for the category.

    Raises ``ValueError`` for an unknown category.
    """
    from_unit, to_unit, category = from_unit.lower(), to_unit.lower(), category.lower()

    if category == "temperature":
        if from_unit not in _TO_CELSIUS or to_unit not in _FROM_CELSIUS:
            return None
        return _FROM_CELSIUS[to_unit](_TO_CELSIUS[from_unit](value))

    if category not in _LINEAR_UNITS:
        raise ValueError(category)
    table = _LINEAR_UNITS[category]
    if from_unit not in table or to_unit not in table:
        return None
    return value * table[from_unit] / table[to_unit]


@tool
def unit_converter(value: float, from_unit: str, to_unit: str, category: UnitCategory) -> str:
    """Convert between units of length, weight, temperature, area or volume.

    Args:
        value: The numeric value to convert.
        from_unit: Unit to convert from (e.g. 'meter', 'feet', 'celsius').
        to_unit: Unit to convert to (e.g. 'feet', 'meter', 'fahrenheit').
        category: The category of measurement.
    """
    try:
        result = convert_units(value, from_unit, to_unit, category)
    except ValueError:
        return (
            f'❌ Error: Unknown category "{category}". '
            "Available categories: length, weight, temperature, area, volume"
        )
    if result is None:
        return (
            f'❌ Error: Conversion from "{from_unit}" to "{to_unit}" '
            f'in category "{category}" is not supported'
        )

    return (
        "🔄 Unit Conversion Result:\n\n"
        f"📏 Original: {value} {from_unit}\n"
        f"📐 Converted: {result:.6f} {to_unit}\n"
        f"📊 Scientific notation: {result:e}\n"
        f"🎯 Category: {category}"
    )


def build_math_tools() -> list[BaseTool]:
    return [calculator, statistics, unit_converter]
