"""Tests for thread identity, run configuration and LangSmith history."""

from __future__ import annotations

import uuid
from datetime import datetime
from unittest.mock import MagicMock

from langchain_core.messages import AIMessage, HumanMessage

from funder_assistant.threads import (
    THREAD_METADATA_KEYS,
    ThreadManager,
    chat_entries_to_messages,
    new_thread_id,
    run_to_messages,
    thread_filter,
)


def _mock_workflow(reply: str = "Done.", feedback_requested: bool = True) -> MagicMock:
    workflow = MagicMock()

    def _invoke(state, config=None):
        return {
            "messages": state["messages"] + [AIMessage(content=reply)],
            "category": "DATA_TOOLS",
            "feedback_requested": feedback_requested,
        }

    workflow.invoke.side_effect = _invoke
    return workflow


def _run(start: int, inputs, outputs) -> MagicMock:
    return MagicMock(start_time=datetime(2025, 7, 17, 12, start), inputs=inputs, outputs=outputs)


class TestThreadIds:
    def test_new_thread_id_format(self):
        thread_id = new_thread_id()
        assert thread_id.startswith("thread-")
        assert thread_id[len("thread-"):].isdigit()

    def test_thread_filter(self):
        assert thread_filter("thread-1") == (
            'and(in(metadata_key, ["session_id","conversation_id","thread_id"]), '
            'eq(metadata_value, "thread-1"))'
        )

    def test_create_thread(self):
        manager = ThreadManager(_mock_workflow())
        manager.last_run_id = "old"
        assert manager.create_thread("thread-42") == "thread-42"
        assert manager.current_thread_id == "thread-42"
        assert manager.last_run_id is None
        assert manager.create_thread().startswith("thread-")


class TestRunTurn:
    def test_config_carries_thread_metadata(self):
        workflow = _mock_workflow()
        manager = ThreadManager(workflow)
        manager.create_thread("thread-7")

        result = manager.run_turn([HumanMessage(content="hi")])

        config = workflow.invoke.call_args[1]["config"]
        assert config["run_id"] == uuid.UUID(result.run_id)
        assert config["run_name"] == "Agent Workflow Execution"
        assert config["metadata"] == {key: "thread-7" for key in THREAD_METADATA_KEYS}
        assert "thread" in config["tags"]

    def test_result(self):
        manager = ThreadManager(_mock_workflow("Here are your funders."))
        result = manager.run_turn([HumanMessage(content="funders?")])

        assert result.response == "Here are your funders."
        assert result.feedback_requested
        assert result.thread_id == manager.current_thread_id
        assert manager.last_run_id == result.run_id

    def test_initial_state(self):
        workflow = _mock_workflow()
        ThreadManager(workflow).run_turn([HumanMessage(content="hi")])
        state = workflow.invoke.call_args[0][0]
        assert state["category"] == ""
        assert state["feedback_requested"] is False

    def test_no_ai_message(self):
        workflow = MagicMock()
        workflow.invoke.return_value = {"messages": [HumanMessage(content="hi")]}
        result = ThreadManager(workflow).run_turn([HumanMessage(content="hi")])
        assert result.response == "No response generated"
        assert not result.feedback_requested

    def test_metrics_recorded(self):
        metrics = MagicMock()
        ThreadManager(_mock_workflow(), metrics=metrics).run_turn([HumanMessage(content="hi")])
        assert metrics.record_success.call_args[0] == ("workflow", "invoke")


class TestRunToMessages:
    def test_openai_style_run(self):
        inputs = {"messages": [{"role": "user", "content": "hello"}]}
        outputs = {"choices": [{"message": {"role": "assistant", "content": "hi there"}}]}
        assert run_to_messages(inputs, outputs) == [
            {"role": "user", "content": "hello"},
            {"role": "assistant", "content": "hi there"},
        ]

    def test_langchain_serialised_run(self):
        inputs = {"messages": [[
            {"lc": 1, "type": "constructor",
             "id": ["langchain", "schema", "messages", "SystemMessage"],
             "kwargs": {"content": "You are helpful."}},
            {"lc": 1, "type": "constructor",
             "id": ["langchain", "schema", "messages", "HumanMessage"],
             "kwargs": {"content": "list funders"}},
        ]]}
        outputs = {"generations": [[{
            "text": "",
            "message": {"lc": 1, "type": "constructor",
                        "id": ["langchain", "schema", "messages", "AIMessage"],
                        "kwargs": {"content": [{"type": "text", "text": "Three funders."}]}},
        }]]}
        assert run_to_messages(inputs, outputs) == [
            {"role": "system", "content": "You are helpful."},
            {"role": "user", "content": "list funders"},
            {"role": "assistant", "content": "Three funders."},
        ]

    def test_generation_text_fallback(self):
        inputs = {"messages": [{"type": "human", "content": "q"}]}
        outputs = {"generations": [[{"text": "answer"}]]}
        assert run_to_messages(inputs, outputs)[-1] == {"role": "assistant", "content": "answer"}

    def test_incomplete_run(self):
        assert run_to_messages(None, {"choices": []}) == []
        assert run_to_messages({"messages": [{"role": "user", "content": "q"}]}, {}) == []

    def test_chat_entries_to_messages(self):
        messages = chat_entries_to_messages([
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "q"},
            {"role": "assistant", "content": ""},
            {"role": "assistant", "content": "a"},
        ])
        assert [(m.type, m.content) for m in messages] == [("human", "q"), ("ai", "a")]


class TestThreadHistory:
    def test_no_client(self):
        assert ThreadManager(_mock_workflow()).get_thread_history("thread-1") == []

    def test_latest_llm_run_is_used(self):
        client = MagicMock()
        client.list_runs.return_value = iter([
            _run(1, {"messages": [{"role": "user", "content": "old"}]},
                 {"choices": [{"message": {"role": "assistant", "content": "old answer"}}]}),
            _run(5, {"messages": [{"role": "user", "content": "new"}]},
                 {"choices": [{"message": {"role": "assistant", "content": "new answer"}}]}),
        ])
        manager = ThreadManager(_mock_workflow(), client, project_name="proj")

        history = manager.get_thread_history("thread-1")

        assert history[-1]["content"] == "new answer"
        kwargs = client.list_runs.call_args[1]
        assert kwargs["project_name"] == "proj"
        assert kwargs["run_type"] == "llm"
        assert kwargs["filter"] == thread_filter("thread-1")

    def test_no_runs(self):
        client = MagicMock()
        client.list_runs.return_value = iter([])
        assert ThreadManager(_mock_workflow(), client).get_thread_history("thread-1") == []

    def test_client_error(self):
        client = MagicMock()
        client.list_runs.side_effect = RuntimeError("401 Unauthorized")
        assert ThreadManager(_mock_workflow(), client).get_thread_history("thread-1") == []

    def test_fetch_remote_conversation(self):
        client = MagicMock()
        client.list_runs.return_value = iter([
            _run(1, {"messages": [{"role": "user", "content": "q"}]},
                 {"choices": [{"message": {"role": "assistant", "content": "a"}}]}),
        ])
        messages = ThreadManager(_mock_workflow(), client).fetch_remote_conversation("thread-1")
        assert [m.type for m in messages] == ["human", "ai"]
