"""Evaluators scoring target outputs against dataset references.

Every evaluator takes ``outputs`` and ``reference_outputs`` by name, the
argument names LangSmith's ``evaluate`` binds, and returns
``{"key", "score", "comment"}`` with a score in ``[0, 1]``.  The same
functions are called directly by the offline runner.
"""

from __future__ import annotations

import math
import re
from typing import Any

from funder_assistant.categories import ToolCategory

ERROR_MARKER = "❌"
RELATIVE_TOLERANCE = 1e-9
DEFAULT_MAX_RESPONSE_MS = 30_000

_RESULT_LINE = re.compile(r"📊 Result: (\S+)")


def _answer(outputs: dict[str, Any] | None) -> str:
    return str((outputs or {}).get("answer") or "")


def _result(key: str, score: float, comment: str) -> dict[str, Any]:
    return {"key": key, "score": max(0.0, min(1.0, float(score))), "comment": comment}


def _expects_error(outputs: dict[str, Any], reference_outputs: dict[str, Any]) -> tuple[bool, str] | None:
    """Score an example whose reference is an error, ``None`` otherwise."""
    if not reference_outputs.get("error"):
        return None
    failed = _answer(outputs).startswith(ERROR_MARKER)
    return failed, "Rejected as expected" if failed else "Expected an error"


def tool_routing(outputs: dict[str, Any], reference_outputs: dict[str, Any]) -> dict[str, Any]:
    """1 when the router picked the reference category."""
    expected = ToolCategory.parse(reference_outputs.get("category"))
    actual = ToolCategory.parse(outputs.get("category")) or ToolCategory.GENERAL
    if expected is None:
        return _result("tool_routing", 0, f"Unknown reference category {reference_outputs.get('category')!r}")
    return _result(
        "tool_routing",
        actual is expected,
        f"Expected {expected.label}, routed to {actual.label}",
    )


def calculator_correctness(outputs: dict[str, Any], reference_outputs: dict[str, Any]) -> dict[str, Any]:
    """Compare the calculator's ``📊 Result:`` line with the reference number."""
    expected_error = _expects_error(outputs, reference_outputs)
    if expected_error is not None:
        return _result("calculator_correctness", *expected_error)

    match = _RESULT_LINE.search(_answer(outputs))
    if match is None:
        return _result("calculator_correctness", 0, "No result in the calculator output")
    try:
        actual = float(match.group(1))
    except ValueError:
        return _result("calculator_correctness", 0, f"Unreadable result {match.group(1)!r}")

    expected = float(reference_outputs["result"])
    correct = math.isclose(actual, expected, rel_tol=RELATIVE_TOLERANCE, abs_tol=RELATIVE_TOLERANCE)
    return _result("calculator_correctness", correct, f"Expected {expected:g}, got {actual:g}")


def _contains_score(key: str, outputs: dict[str, Any], reference_outputs: dict[str, Any]) -> dict[str, Any]:
    answer = _answer(outputs).lower()
    phrases = reference_outputs.get("contains") or []
    if not phrases:
        return _result(key, 0, "Reference lists no expected phrases")
    missing = [p for p in phrases if p.lower() not in answer]
    found = len(phrases) - len(missing)
    comment = f"{found}/{len(phrases)} expected phrases found"
    if missing:
        comment += f"; missing: {', '.join(missing)}"
    return _result(key, found / len(phrases), comment)


def text_tool_output(outputs: dict[str, Any], reference_outputs: dict[str, Any]) -> dict[str, Any]:
    """Fraction of the expected phrases present in a text tool's output."""
    expected_error = _expects_error(outputs, reference_outputs)
    if expected_error is not None:
        return _result("text_tool_output", *expected_error)
    if _answer(outputs).startswith(ERROR_MARKER):
        return _result("text_tool_output", 0, f"Tool failed: {_answer(outputs)[:80]}")
    return _contains_score("text_tool_output", outputs, reference_outputs)


def answer_contains(outputs: dict[str, Any], reference_outputs: dict[str, Any]) -> dict[str, Any]:
    return _contains_score("answer_contains", outputs, reference_outputs)


def response_time(outputs: dict[str, Any], reference_outputs: dict[str, Any]) -> dict[str, Any]:
    """Linear score: 1 for an instant answer, 0 at the reference time limit."""
    elapsed = float(outputs.get("response_time_ms") or 0)
    limit = float(reference_outputs.get("max_response_ms") or DEFAULT_MAX_RESPONSE_MS)
    return _result(
        "response_time",
        1 - elapsed / limit,
        f"Response time: {elapsed:.0f}ms (max: {limit:.0f}ms)",
    )
