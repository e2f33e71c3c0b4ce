"""Default evaluation datasets.

Examples use LangSmith's shape, ``{"inputs": {...}, "outputs": {...}}``,
where ``outputs`` holds the reference the evaluators compare against.
Tool examples name the tool and its arguments; workflow examples carry a
question plus the phrases a good answer contains.
"""

from __future__ import annotations

from typing import Any

Example = dict[str, dict[str, Any]]


def workflow_examples() -> list[Example]:
    return [
        {
            "inputs": {"question": "Which country is Mount Kilimanjaro located in?"},
            "outputs": {"contains": ["Tanzania"], "max_response_ms": 30_000},
        },
        {
            "inputs": {"question": "What is Earth's lowest point on land?"},
            "outputs": {"contains": ["Dead Sea"], "max_response_ms": 30_000},
        },
        {
            "inputs": {"question": "What is 2 + 2?"},
            "outputs": {"contains": ["4"], "max_response_ms": 20_000},
        },
        {
            "inputs": {"question": "What is the capital of France?"},
            "outputs": {"contains": ["Paris"], "max_response_ms": 20_000},
        },
        {
            "inputs": {"question": "How do I authenticate with the system?"},
            "outputs": {"contains": ["email", "password"], "max_response_ms": 30_000},
        },
    ]


def routing_examples() -> list[Example]:
    """One question per category, labelled with the category the router should pick."""
    cases = [
        ("I need to login with email test@example.com and password 123456", "AUTH_TOOLS"),
        ("Check my current authentication status", "AUTH_TOOLS"),
        ("Show me the list of funders", "DATA_TOOLS"),
        ("Search funders on page 2 with 5 per page", "DATA_TOOLS"),
        ("What is the latest news about climate research grants?", "SEARCH_TOOLS"),
        ("List the files in the current directory", "FILE_TOOLS"),
        ("Convert this text to uppercase: grant proposal", "TEXT_TOOLS"),
        ("Calculate the average of 12, 18 and 30", "MATH_TOOLS"),
        ("Ping https://example.com and tell me if it is up", "HTTP_TOOLS"),
        ("Hello, how are you today?", "GENERAL"),
    ]
    return [{"inputs": {"question": q}, "outputs": {"category": c}} for q, c in cases]


def calculator_examples() -> list[Example]:
    cases = [
        ("2 + 3 * 4", {"result": 14}),
        ("sqrt(16)", {"result": 4}),
        ("2^10", {"result": 1024}),
        ("(100 - 20) / 4", {"result": 20}),
        ("sin(pi/2)", {"result": 1}),
        ("10 / 0", {"error": True}),
        ("10 ** 400", {"error": True}),
        ("__import__('os')", {"error": True}),
    ]
    return [
        {"inputs": {"tool": "calculator", "args": {"expression": expression}}, "outputs": reference}
        for expression, reference in cases
    ]


def text_examples() -> list[Example]:
    return [
        {
            "inputs": {"tool": "transform_text", "args": {"text": "grant proposal", "operation": "uppercase"}},
            "outputs": {"contains": ["GRANT PROPOSAL"]},
        },
        {
            "inputs": {"tool": "transform_text", "args": {"text": "seed seed fund fund", "operation": "remove_duplicates"}},
            "outputs": {"contains": ["seed fund"]},
        },
        {
            "inputs": {"tool": "analyze_text", "args": {"text": "One. Two three."}},
            "outputs": {"contains": ["🔤 Words: 3", "📄 Sentences: 2"]},
        },
        {
            "inputs": {
                "tool": "extract_info",
                "args": {"text": "Write to a@fund.org or b@grants.io", "info_type": "emails"},
            },
            "outputs": {"contains": ["Found 2 email(s)", "a@fund.org", "b@grants.io"]},
        },
        {
            "inputs": {
                "tool": "replace_text",
                "args": {"text": "Fund A and fund B", "search": "fund", "replace": "grant"},
            },
            "outputs": {"contains": ["📊 Replacements made: 2", "grant A and grant B"]},
        },
        {
            "inputs": {"tool": "transform_text", "args": {"text": "", "operation": "uppercase"}},
            "outputs": {"error": True},
        },
    ]


def custom_dataset(name: str, examples: list[Example], description: str = "") -> dict[str, Any]:
    """Bundle user-supplied examples the way the runner expects them."""
    if not name:
        raise ValueError("Dataset name is required")
    for example in examples:
        if "inputs" not in example:
            raise ValueError(f"Example without inputs in dataset {name!r}")
    return {
        "name": name,
        "description": description or f"Custom evaluation dataset {name}",
        "examples": [{"inputs": e["inputs"], "outputs": e.get("outputs") or {}} for e in examples],
    }
