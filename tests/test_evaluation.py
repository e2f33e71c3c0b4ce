"""Tests for the evaluation suites: evaluators, offline runs, LangSmith runs and the CLI flag."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from langchain_core.messages import AIMessage

from funder_assistant.evaluation.datasets import custom_dataset, routing_examples
from funder_assistant.evaluation.evaluators import (
    answer_contains,
    calculator_correctness,
    response_time,
    text_tool_output,
    tool_routing,
)
from funder_assistant.evaluation.runner import SUITES, ensure_dataset, run_langsmith, run_local
from funder_assistant.main import run_evaluation
from funder_assistant.tools.calculator import calculator


def _routing_workflow(category: str = "DATA_TOOLS", answer: str = "Here are 3 funders.") -> MagicMock:
    workflow = MagicMock()
    workflow.invoke.side_effect = lambda state: {
        "messages": state["messages"] + [AIMessage(content=answer)],
        "category": category,
        "feedback_requested": True,
    }
    return workflow


class TestEvaluators:
    def test_routing_match(self):
        result = tool_routing(outputs={"category": "MATH_TOOLS"}, reference_outputs={"category": "MATH_TOOLS"})
        assert result["key"] == "tool_routing"
        assert result["score"] == 1.0

    def test_routing_mismatch(self):
        result = tool_routing(outputs={"category": "TEXT_TOOLS"}, reference_outputs={"category": "MATH_TOOLS"})
        assert result["score"] == 0.0
        assert result["comment"] == "Expected MATH_TOOLS, routed to TEXT_TOOLS"

    def test_missing_route_counts_as_general(self):
        result = tool_routing(outputs={}, reference_outputs={"category": "GENERAL"})
        assert result["score"] == 1.0

    def test_calculator_result_matches(self):
        answer = calculator.invoke({"expression": "sqrt(16)"})
        result = calculator_correctness(outputs={"answer": answer}, reference_outputs={"result": 4})
        assert result["score"] == 1.0

    def test_calculator_wrong_result(self):
        answer = calculator.invoke({"expression": "2 + 2"})
        result = calculator_correctness(outputs={"answer": answer}, reference_outputs={"result": 5})
        assert result["score"] == 0.0
        assert "Expected 5, got 4" in result["comment"]

    def test_calculator_expected_error(self):
        answer = calculator.invoke({"expression": "1 / 0"})
        assert calculator_correctness(outputs={"answer": answer}, reference_outputs={"error": True})["score"] == 1.0
        ok = calculator.invoke({"expression": "1 / 2"})
        assert calculator_correctness(outputs={"answer": ok}, reference_outputs={"error": True})["score"] == 0.0

    def test_text_tool_partial_match(self):
        result = text_tool_output(
            outputs={"answer": "🔤 Words: 3\n📄 Sentences: 1"},
            reference_outputs={"contains": ["🔤 Words: 3", "📄 Sentences: 2"]},
        )
        assert result["score"] == 0.5
        assert "missing: 📄 Sentences: 2" in result["comment"]

    def test_text_tool_failure_scores_zero(self):
        result = text_tool_output(
            outputs={"answer": "❌ Error: No text provided for transformation"},
            reference_outputs={"contains": ["HELLO"]},
        )
        assert result["score"] == 0.0

    def test_answer_contains_is_case_insensitive(self):
        result = answer_contains(
            outputs={"answer": "The capital is PARIS."},
            reference_outputs={"contains": ["Paris"]},
        )
        assert result["score"] == 1.0

    @pytest.mark.parametrize("elapsed, expected", [(0, 1.0), (1000, 0.5), (5000, 0.0)])
    def test_response_time(self, elapsed, expected):
        result = response_time(
            outputs={"response_time_ms": elapsed},
            reference_outputs={"max_response_ms": 2000},
        )
        assert result["score"] == pytest.approx(expected)


class TestDatasets:
    def test_routing_covers_every_category(self):
        labels = {e["outputs"]["category"] for e in routing_examples()}
        assert labels == {
            "AUTH_TOOLS", "DATA_TOOLS", "SEARCH_TOOLS", "FILE_TOOLS",
            "TEXT_TOOLS", "MATH_TOOLS", "HTTP_TOOLS", "GENERAL",
        }

    def test_custom_dataset(self):
        dataset = custom_dataset("mine", [{"inputs": {"question": "hi"}}])
        assert dataset["description"] == "Custom evaluation dataset mine"
        assert dataset["examples"] == [{"inputs": {"question": "hi"}, "outputs": {}}]

    def test_custom_dataset_requires_inputs(self):
        with pytest.raises(ValueError):
            custom_dataset("mine", [{"outputs": {"answer": "x"}}])


class TestLocalRuns:
    def test_calculator_suite_passes(self):
        report = run_local("calculator")
        assert report.total == 8
        assert report.success_rate == 1.0
        assert report.average_scores() == {"calculator_correctness": 1.0}

    def test_text_suite_passes(self):
        report = run_local("text")
        assert report.success_rate == 1.0

    def test_routing_suite_scores_the_router(self):
        report = run_local("routing", workflow=_routing_workflow("DATA_TOOLS"))
        passed = [r.inputs["question"] for r in report.results if r.passed]
        assert passed == ["Show me the list of funders", "Search funders on page 2 with 5 per page"]
        assert report.average_scores()["tool_routing"] == pytest.approx(0.2)

    def test_workflow_suite_reads_ai_answer(self):
        examples = [{"inputs": {"question": "Capital of France?"}, "outputs": {"contains": ["Paris"]}}]
        report = run_local("workflow", workflow=_routing_workflow("GENERAL", "It is Paris."), examples=examples)
        assert report.results[0].outputs["answer"] == "It is Paris."
        assert report.results[0].passed

    def test_target_failure_is_recorded(self):
        workflow = MagicMock()
        workflow.invoke.side_effect = RuntimeError("model down")
        report = run_local("routing", workflow=workflow)
        assert report.success_rate == 0.0
        assert report.results[0].error == "Error: model down"
        assert any("model down" in line for line in report.summary_lines())

    def test_workflow_suite_needs_a_workflow(self):
        with pytest.raises(ValueError):
            run_local("routing")

    def test_unknown_suite(self):
        with pytest.raises(ValueError):
            run_local("nonexistent")


class TestLangSmithRuns:
    def test_dataset_created_when_missing(self):
        client = MagicMock()
        client.has_dataset.return_value = False
        client.create_dataset.return_value = MagicMock(id="ds-1")
        examples = [{"inputs": {"question": "hi"}, "outputs": {"category": "GENERAL"}}]

        ensure_dataset(client, "my-dataset", "desc", examples)

        client.create_dataset.assert_called_once_with("my-dataset", description="desc")
        client.create_examples.assert_called_once_with(
            inputs=[{"question": "hi"}], outputs=[{"category": "GENERAL"}], dataset_id="ds-1",
        )

    def test_existing_dataset_is_reused(self):
        client = MagicMock()
        client.has_dataset.return_value = True

        ensure_dataset(client, "my-dataset", "desc", [])

        client.create_dataset.assert_not_called()
        client.read_dataset.assert_called_once_with(dataset_name="my-dataset")

    @patch("funder_assistant.evaluation.runner.evaluate")
    def test_runs_experiment_on_default_dataset(self, mock_evaluate):
        client = MagicMock()
        client.has_dataset.return_value = True

        run_langsmith("calculator", client)

        mock_evaluate.assert_called_once()
        kwargs = mock_evaluate.call_args.kwargs
        assert kwargs["data"] == "funder-assistant-calculator"
        assert kwargs["evaluators"] == list(SUITES["calculator"].evaluators)
        assert kwargs["experiment_prefix"] == "calculator-eval"
        assert kwargs["client"] is client

        target = mock_evaluate.call_args.args[0]
        output = target({"tool": "calculator", "args": {"expression": "6*7"}})
        assert "📊 Result: 42" in output["answer"]

    @patch("funder_assistant.evaluation.runner.evaluate")
    def test_routing_target_reports_category(self, mock_evaluate):
        client = MagicMock()
        client.has_dataset.return_value = True

        run_langsmith("routing", client, workflow=_routing_workflow("AUTH_TOOLS"), dataset_name="custom")

        assert mock_evaluate.call_args.kwargs["data"] == "custom"
        target = mock_evaluate.call_args.args[0]
        assert target({"question": "log me in"})["category"] == "AUTH_TOOLS"


class TestEvaluationCommand:
    def test_local_run_prints_summary(self):
        output: list[str] = []
        assert run_evaluation("local", ["calculator"], output=output.append) == 0
        assert "🔍 Running local evaluation: calculator" in output
        assert "   Success rate: 100.0%" in output

    def test_langsmith_without_key_fails(self):
        output: list[str] = []
        code = run_evaluation("langsmith", ["calculator"], output=output.append, client_factory=lambda: None)
        assert code == 1
        assert output == ["❌ LANGSMITH_API_KEY is required for LangSmith evaluation"]

    @patch("funder_assistant.main.run_langsmith")
    def test_langsmith_run(self, mock_run):
        mock_run.return_value = MagicMock(experiment_name="text-eval-1234")
        client = MagicMock()
        output: list[str] = []

        code = run_evaluation("langsmith", ["text"], output=output.append, client_factory=lambda: client)

        assert code == 0
        mock_run.assert_called_once_with("text", client, workflow=None, examples=None, dataset_name=None)
        assert "✅ Experiment text-eval-1234 completed" in output

    def test_workflow_suites_build_and_shut_down_the_app(self):
        app = MagicMock()
        app.workflow = _routing_workflow("GENERAL", "Hello!")
        output: list[str] = []

        code = run_evaluation("local", ["routing"], output=output.append, app_factory=lambda: app)

        assert code == 0
        app.shutdown.assert_called_once()

    def test_custom_examples_file(self, tmp_path):
        path = tmp_path / "examples.json"
        path.write_text(json.dumps({"examples": [
            {"inputs": {"tool": "calculator", "args": {"expression": "1+1"}}, "outputs": {"result": 2}},
        ]}))
        output: list[str] = []

        assert run_evaluation("local", ["calculator"], examples_path=str(path), output=output.append) == 0
        assert "   Total examples: 1" in output

    def test_failure_returns_error_code(self):
        app = MagicMock()
        output: list[str] = []
        with patch("funder_assistant.main.run_local", side_effect=RuntimeError("boom")):
            code = run_evaluation("local", ["routing"], output=output.append, app_factory=lambda: app)
        assert code == 1
        assert "❌ Evaluation failed: boom" in output
        app.shutdown.assert_called_once()
