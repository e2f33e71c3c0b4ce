"""Run evaluation suites offline or as LangSmith experiments.

Offline runs call the target and evaluators in-process and return an
:class:`EvaluationReport`.  LangSmith runs make sure the suite's dataset
exists (created on first use, reused afterwards) and hand the target and
evaluators to ``langsmith.evaluation.evaluate``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from statistics import fmean
from typing import Any, Callable

from langchain_core.messages import HumanMessage
from langchain_core.tools import BaseTool
from langsmith import Client
from langsmith.evaluation import evaluate

from funder_assistant.evaluation.datasets import (
    Example,
    calculator_examples,
    routing_examples,
    text_examples,
    workflow_examples,
)
from funder_assistant.evaluation.evaluators import (
    answer_contains,
    calculator_correctness,
    response_time,
    text_tool_output,
    tool_routing,
)
from funder_assistant.store.messages import content_text, is_ai
from funder_assistant.tools.calculator import build_math_tools
from funder_assistant.tools.text import build_text_tools

logger = logging.getLogger(__name__)

PASS_SCORE = 0.5
DEFAULT_MAX_CONCURRENCY = 2
DATASET_PREFIX = "funder-assistant"

Target = Callable[[dict[str, Any]], dict[str, Any]]


@dataclass(frozen=True)
class Suite:
    name: str
    description: str
    examples: Callable[[], list[Example]]
    evaluators: tuple[Callable[..., dict[str, Any]], ...]
    tools: Callable[[], list[BaseTool]] | None = None

    @property
    def needs_workflow(self) -> bool:
        return self.tools is None


SUITES: dict[str, Suite] = {
    suite.name: suite
    for suite in (
        Suite(
            "workflow",
            "End-to-end answers to general questions",
            workflow_examples,
            (answer_contains, response_time),
        ),
        Suite(
            "routing",
            "Router choice of tool category per question",
            routing_examples,
            (tool_routing,),
        ),
        Suite(
            "calculator",
            "Calculator results and rejected expressions",
            calculator_examples,
            (calculator_correctness,),
            tools=build_math_tools,
        ),
        Suite(
            "text",
            "Text analysis, transformation, replacement and extraction tools",
            text_examples,
            (text_tool_output,),
            tools=build_text_tools,
        ),
    )
}


def get_suite(name: str) -> Suite:
    try:
        return SUITES[name]
    except KeyError:
        raise ValueError(f"Unknown evaluation suite {name!r}; choose from {', '.join(SUITES)}") from None


# ── Targets ──────────────────────────────────────────────────────────


def _elapsed_ms(t0: float) -> float:
    return (time.perf_counter() - t0) * 1000


def workflow_target(workflow) -> Target:
    """Target asking *workflow* one question in a fresh, single-turn history."""

    def target(inputs: dict[str, Any]) -> dict[str, Any]:
        t0 = time.perf_counter()
        result = workflow.invoke(
            {
                "messages": [HumanMessage(content=inputs["question"])],
                "category": "",
                "feedback_requested": False,
            }
        )
        ai_texts = [content_text(m) for m in result.get("messages", []) if is_ai(m)]
        return {
            "answer": "\n\n".join(t for t in ai_texts if t) or "No response generated",
            "category": result.get("category") or "",
            "response_time_ms": _elapsed_ms(t0),
        }

    return target


def tool_target(tools: list[BaseTool]) -> Target:
    """Target invoking the tool named by ``inputs["tool"]`` with ``inputs["args"]``."""
    by_name = {t.name: t for t in tools}

    def target(inputs: dict[str, Any]) -> dict[str, Any]:
        selected = by_name.get(inputs.get("tool"))
        if selected is None:
            raise ValueError(f"Unknown tool {inputs.get('tool')!r}")
        t0 = time.perf_counter()
        answer = selected.invoke(inputs.get("args") or {})
        return {"answer": str(answer), "response_time_ms": _elapsed_ms(t0)}

    return target


def build_target(suite: Suite, workflow=None) -> Target:
    if suite.tools is not None:
        return tool_target(suite.tools())
    if workflow is None:
        raise ValueError(f"Suite {suite.name!r} needs a workflow to evaluate")
    return workflow_target(workflow)


# ── Offline runs ─────────────────────────────────────────────────────


@dataclass
class ExampleResult:
    inputs: dict[str, Any]
    outputs: dict[str, Any] = field(default_factory=dict)
    scores: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None

    @property
    def passed(self) -> bool:
        return self.error is None and all(s["score"] >= PASS_SCORE for s in self.scores)


@dataclass
class EvaluationReport:
    suite: str
    results: list[ExampleResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def success_rate(self) -> float:
        return sum(r.passed for r in self.results) / self.total if self.results else 0.0

    @property
    def average_response_ms(self) -> float:
        times = [r.outputs["response_time_ms"] for r in self.results if "response_time_ms" in r.outputs]
        return fmean(times) if times else 0.0

    def average_scores(self) -> dict[str, float]:
        by_key: dict[str, list[float]] = {}
        for result in self.results:
            for score in result.scores:
                by_key.setdefault(score["key"], []).append(score["score"])
        return {key: fmean(values) for key, values in by_key.items()}

    def summary_lines(self) -> list[str]:
        lines = [
            f"📊 Evaluation results ({self.suite}):",
            f"   Success rate: {self.success_rate * 100:.1f}%",
            f"   Average response time: {self.average_response_ms:.0f}ms",
            f"   Total examples: {self.total}",
        ]
        lines += [f"   {key}: {value:.2f}" for key, value in self.average_scores().items()]
        for result in self.results:
            if not result.passed:
                detail = result.error or "; ".join(s["comment"] for s in result.scores if s["score"] < PASS_SCORE)
                lines.append(f"   ❌ {result.inputs}: {detail}")
        return lines


def run_local(
    suite_name: str,
    *,
    workflow=None,
    examples: list[Example] | None = None,
) -> EvaluationReport:
    """Evaluate *suite_name* in-process; a failing example does not stop the run."""
    suite = get_suite(suite_name)
    target = build_target(suite, workflow)
    report = EvaluationReport(suite.name)

    for example in examples if examples is not None else suite.examples():
        inputs, reference = example["inputs"], example.get("outputs") or {}
        result = ExampleResult(inputs)
        try:
            result.outputs = target(inputs)
        except Exception as exc:
            logger.warning("Evaluation target failed for %s: %s", inputs, exc)
            result.error = f"Error: {exc}"
        else:
            result.scores = [
                evaluator(outputs=result.outputs, reference_outputs=reference)
                for evaluator in suite.evaluators
            ]
        report.results.append(result)

    logger.info(
        "Local evaluation %s: %d examples, %.1f%% passed",
        suite.name, report.total, report.success_rate * 100,
    )
    return report


# ── LangSmith runs ───────────────────────────────────────────────────


def ensure_dataset(client: Client, name: str, description: str, examples: list[Example]):
    """Return the dataset called *name*, creating it with *examples* if missing."""
    if client.has_dataset(dataset_name=name):
        logger.info("Using existing LangSmith dataset %s", name)
        return client.read_dataset(dataset_name=name)

    dataset = client.create_dataset(name, description=description)
    client.create_examples(
        inputs=[e["inputs"] for e in examples],
        outputs=[e.get("outputs") or {} for e in examples],
        dataset_id=dataset.id,
    )
    logger.info("Created LangSmith dataset %s with %d examples", name, len(examples))
    return dataset


def run_langsmith(
    suite_name: str,
    client: Client,
    *,
    workflow=None,
    examples: list[Example] | None = None,
    dataset_name: str | None = None,
    experiment_prefix: str | None = None,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
):
    """Run *suite_name* as a LangSmith experiment and return its results."""
    suite = get_suite(suite_name)
    target = build_target(suite, workflow)
    dataset_name = dataset_name or f"{DATASET_PREFIX}-{suite.name}"
    ensure_dataset(
        client,
        dataset_name,
        suite.description,
        examples if examples is not None else suite.examples(),
    )

    logger.info("Running LangSmith evaluation %s on dataset %s", suite.name, dataset_name)
    results = evaluate(
        target,
        data=dataset_name,
        evaluators=list(suite.evaluators),
        experiment_prefix=experiment_prefix or f"{suite.name}-eval",
        description=suite.description,
        max_concurrency=max_concurrency,
        client=client,
    )
    logger.info("LangSmith evaluation %s finished: %s", suite.name, results.experiment_name)
    return results
