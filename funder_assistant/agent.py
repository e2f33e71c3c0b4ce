"""LangGraph workflow for the funder assistant.

Architecture:
  A fixed-topology StateGraph with one tool node per category:

    1. **router**       — cheap Haiku call that names a tool category;
                          the answer is parsed into a :class:`ToolCategory`,
                          with a keyword fallback and finally ``GENERAL``
    2. **specialist**   — Sonnet LLM bound to the chosen category's tools
                          (no tools for ``GENERAL``)
    3. **<cat>_tools**  — ToolNode executing that category's tool calls
    4. **conclude**     — Haiku summary of the turn ending with a request
                          for a 1-5 star rating

  Routing:
    router → specialist → (has tool calls?) → <cat>_tools → specialist (loop)
                        → (no tool calls?)  → conclude → END

  History:
    The caller passes the full message history on every invocation, so the
    graph is compiled without a checkpointer.  Thread identity travels in
    the run config metadata instead (see :mod:`funder_assistant.threads`).
"""

from __future__ import annotations

import logging
import time
from typing import Annotated

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, AnyMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_core.tools import BaseTool
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from langgraph.prebuilt import ToolNode
from typing_extensions import TypedDict

from funder_assistant.categories import ToolCategory, classify_by_keywords
from funder_assistant.config import ANTHROPIC_API_KEY, FAST_MODEL_NAME, MODEL_NAME, ROUTER_MODEL_NAME
from funder_assistant.prompts import (
    fallback_conclusion,
    get_conclusion_prompt,
    get_router_prompt,
    get_specialist_prompt,
)
from funder_assistant.services.metrics import MetricsClient
from funder_assistant.store.messages import content_text, is_human

logger = logging.getLogger(__name__)

ROUTER_CONTEXT_MESSAGES = 5
CONTEXT_CHARS = 500


# ── State schema ─────────────────────────────────────────────────────


class AgentState(TypedDict):
    """The state that flows through the graph.

    ``category`` is the router's decision (a :class:`ToolCategory` value)
    and is read by the conditional edges.  ``feedback_requested`` is set
    once the conclusion, which asks for a rating, has been produced.
    """

    messages: Annotated[list[AnyMessage], add_messages]
    category: str
    feedback_requested: bool


# ── LLM builders ────────────────────────────────────────────────────


def _build_router_llm() -> ChatAnthropic:
    """Build a lightweight Haiku LLM for category classification (no tools)."""
    return ChatAnthropic(
        model=ROUTER_MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.0,
        max_tokens=20,
    )


def _build_fast_llm() -> ChatAnthropic:
    """Build a Haiku LLM for turn conclusions (no tools)."""
    return ChatAnthropic(
        model=FAST_MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.1,
        max_tokens=1024,
    )


def _build_llm() -> ChatAnthropic:
    """Build the primary Sonnet LLM; tools are bound per category by the caller."""
    return ChatAnthropic(
        model=MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.1,
        max_tokens=2048,
    )


# ── Helpers ──────────────────────────────────────────────────────────


def _record(metrics: MetricsClient | None, operation: str, t0: float, exc: Exception | None = None) -> float:
    elapsed = (time.perf_counter() - t0) * 1000
    if metrics is None:
        return elapsed
    if exc is None:
        metrics.record_success("anthropic", operation, latency_ms=elapsed)
    else:
        metrics.record_failure(
            "anthropic", operation,
            error_type=type(exc).__name__, latency_ms=elapsed,
        )
    return elapsed


def _last_human_index(messages: list[AnyMessage]) -> int:
    for index in range(len(messages) - 1, -1, -1):
        if is_human(messages[index]):
            return index
    return -1


def last_human_text(messages: list[AnyMessage]) -> str:
    index = _last_human_index(messages)
    return content_text(messages[index]) if index >= 0 else ""


def _build_router_context(messages: list[AnyMessage]) -> str:
    """Summarise the messages before the latest one for the router."""
    recent = messages[-(ROUTER_CONTEXT_MESSAGES + 1):-1]
    lines = []
    for msg in recent:
        tool_calls = getattr(msg, "tool_calls", None)
        if tool_calls:
            lines.append("Tool used: " + ", ".join(call["name"] for call in tool_calls))
        elif isinstance(msg, HumanMessage):
            lines.append(f"User: {content_text(msg)[:200]}")
        elif msg.content:
            lines.append(f"Assistant: {content_text(msg)[:200]}")
    return "\n".join(lines)


def _tool_index(toolsets: dict[ToolCategory, list[BaseTool]]) -> dict[str, ToolCategory]:
    return {t.name: category for category, tools in toolsets.items() for t in tools}


def _used_categories(messages: list[AnyMessage], tool_index: dict[str, ToolCategory]) -> set[ToolCategory]:
    used = set()
    for msg in messages:
        for call in getattr(msg, "tool_calls", None) or []:
            if call["name"] in tool_index:
                used.add(tool_index[call["name"]])
    return used


def resolve_category(raw: str | None, user_text: str) -> ToolCategory:
    """Router label → keyword classifier → ``GENERAL``."""
    category = ToolCategory.parse(raw)
    if category is not None:
        return category
    category = classify_by_keywords(user_text)
    if category is not None:
        logger.debug("Router label %r not recognised, keywords chose %s", raw, category.label)
        return category
    return ToolCategory.GENERAL


# ── Node: router ─────────────────────────────────────────────────────


def _make_router_node(toolsets: dict[ToolCategory, list[BaseTool]], metrics: MetricsClient | None):
    """Create the router node that picks a tool category for the latest message.

    Writes the decision to ``state["category"]`` without adding to the
    conversation ``messages``.
    """
    router_llm = _build_router_llm()
    tool_index = _tool_index(toolsets)

    def router_node(state: AgentState) -> dict:
        messages = state["messages"]
        user_text = last_human_text(messages)
        prompt = get_router_prompt(
            user_text,
            _build_router_context(messages),
            _used_categories(messages, tool_index),
        )
        t0 = time.perf_counter()
        try:
            response = router_llm.invoke([HumanMessage(content=prompt)])
        except Exception as exc:
            _record(metrics, "router_classify", t0, exc)
            category = classify_by_keywords(user_text) or ToolCategory.GENERAL
            logger.warning("Router failed, falling back to %s: %s", category.label, exc)
            return {"category": category.value}

        elapsed = _record(metrics, "router_classify", t0)
        raw = content_text(response)
        category = resolve_category(raw, user_text)
        logger.debug(
            "Router (%s) chose %s (raw: %r, %.0fms)",
            ROUTER_MODEL_NAME, category.label, raw, elapsed,
        )
        return {"category": category.value}

    return router_node


# ── Node: specialist ─────────────────────────────────────────────────


def _make_specialist_node(toolsets: dict[ToolCategory, list[BaseTool]], metrics: MetricsClient | None):
    """Create the specialist node.

    One base LLM is built and bound once per category so that repeated
    invocations (specialist -> tools -> specialist ...) share the clients.
    """
    llm = _build_llm()
    models = {
        category: llm.bind_tools(toolsets.get(category, [])) if toolsets.get(category) else llm
        for category in ToolCategory
    }

    def specialist_node(state: AgentState) -> dict:
        category = ToolCategory(state.get("category") or ToolCategory.GENERAL.value)
        logger.debug("specialist node invoked — %s (%s)", category.label, MODEL_NAME)
        system = SystemMessage(content=get_specialist_prompt(category))
        t0 = time.perf_counter()
        try:
            response = models[category].invoke([system] + state["messages"])
        except Exception as exc:
            _record(metrics, "llm_invoke", t0, exc)
            raise
        elapsed = _record(metrics, "llm_invoke", t0)
        logger.debug("specialist responded in %.0fms", elapsed)
        return {"messages": [response]}

    return specialist_node


# ── Node: conclude ───────────────────────────────────────────────────


def _turn_summary(messages: list[AnyMessage]) -> tuple[str, str, list[str]]:
    """Return (question, context, tool outputs) for the current turn."""
    start = _last_human_index(messages)
    question = content_text(messages[start]) if start >= 0 else "User request"
    turn = messages[start:] if start >= 0 else messages
    tool_outputs = [
        f"{msg.name or 'tool'}: {content_text(msg)}" for msg in turn if isinstance(msg, ToolMessage)
    ]
    context = "\n".join(
        f"{msg.type}: {content_text(msg)[:CONTEXT_CHARS]}" for msg in turn if content_text(msg)
    )
    return question, context, tool_outputs


def _make_conclude_node(metrics: MetricsClient | None):
    """Create the conclusion node that summarises the turn and asks for a rating."""
    fast_llm = _build_fast_llm()

    def conclude_node(state: AgentState) -> dict:
        question, context, tool_outputs = _turn_summary(state["messages"])
        prompt = get_conclusion_prompt(question, context, tool_outputs)
        t0 = time.perf_counter()
        try:
            response = fast_llm.invoke([HumanMessage(content=prompt)])
        except Exception as exc:
            _record(metrics, "conclude", t0, exc)
            logger.warning("Conclusion model failed, using fallback summary: %s", exc)
            return {
                "messages": [AIMessage(content=fallback_conclusion(question, tool_outputs))],
                "feedback_requested": True,
            }
        _record(metrics, "conclude", t0)
        return {"messages": [response], "feedback_requested": True}

    return conclude_node


# ── Conditional edges ────────────────────────────────────────────────


def make_tools_router(toolsets: dict[ToolCategory, list[BaseTool]]):
    """Return the edge function leaving the specialist."""

    def should_use_tools(state: AgentState) -> str:
        last_message = state["messages"][-1]
        category = ToolCategory(state.get("category") or ToolCategory.GENERAL.value)
        if getattr(last_message, "tool_calls", None) and toolsets.get(category):
            return category.node_name
        return "conclude"

    return should_use_tools


# ── Graph assembly ───────────────────────────────────────────────────


def create_workflow(
    toolsets: dict[ToolCategory, list[BaseTool]],
    metrics: MetricsClient | None = None,
):
    """Build and compile the funder assistant workflow.

    Returns a compiled graph that can be invoked with:
        graph.invoke(
            {"messages": history},
            config={"metadata": {"thread_id": "thread-123"}},
        )
    """
    graph = StateGraph(AgentState)

    graph.add_node("router", _make_router_node(toolsets, metrics))
    graph.add_node("specialist", _make_specialist_node(toolsets, metrics))
    graph.add_node("conclude", _make_conclude_node(metrics))

    tool_nodes = {}
    for category, tools in toolsets.items():
        if tools:
            graph.add_node(category.node_name, ToolNode(tools))
            graph.add_edge(category.node_name, "specialist")
            tool_nodes[category.node_name] = category.node_name

    graph.set_entry_point("router")
    graph.add_edge("router", "specialist")
    graph.add_conditional_edges(
        "specialist",
        make_tools_router(toolsets),
        {**tool_nodes, "conclude": "conclude"},
    )
    graph.add_edge("conclude", END)

    compiled = graph.compile()
    logger.debug(
        "Workflow compiled — router: %s, specialist: %s, conclude: %s, tool nodes: %d",
        ROUTER_MODEL_NAME, MODEL_NAME, FAST_MODEL_NAME, len(tool_nodes),
    )
    return compiled
