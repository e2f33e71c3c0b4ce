"""Prompts for the router, the category specialists and the conclusion step."""

from __future__ import annotations

from datetime import UTC, datetime

from funder_assistant.categories import ToolCategory

RATING_REQUEST = (
    "**Rate this response (1-5 stars):**\n"
    'Type "5" for excellent, "4" for good, "3" for average, etc.\n'
    'Example: "5 stars - very helpful!"'
)

ROUTER_PROMPT_TEMPLATE = """You are an intelligent router that determines which tool set to use based on user input and conversation context.

Available tool sets:
{categories}

Recent conversation context:
{context}

Current user input: "{message}"

System status:
{status}

Analyze the user's request and determine which tool set is most appropriate for the current step. Consider:
- The specific action requested
- Whether authentication is needed first
- Whether data retrieval is the primary goal
- The conversation flow and previous tool usage

If the request needs no tools at all, answer {general}.
Reply with exactly one tool set name (e.g. "{example}") and nothing else."""

SPECIALIST_PROMPT_TEMPLATE = """You are a helpful assistant for the funder management platform.

## Current Date & Time
Today is **{current_date}**. The current time is **{current_time} UTC**.

## Your Focus
{focus}

## Guidelines
- Use the available tools whenever they can answer the request; never invent tool results.
- When a tool reports an error, explain it plainly and suggest the next step
  (for example, logging in before requesting funder data).
- Keep answers concise and well structured.
"""

GENERAL_FOCUS = (
    "This request needs no tools. Answer directly from the conversation. "
    "If the user asks for something you cannot do, say which kinds of task you can help with: "
    "authentication, funder data, web search, files, text processing, calculations and HTTP requests."
)

CONCLUSION_PROMPT_TEMPLATE = """You are an intelligent assistant that analyzes conversation context and generates comprehensive summaries.

**Current User Question:** {question}

**Conversation Context:**
{context}

**Tool Outputs:**
{tool_outputs}

**Instructions:**
1. Identify the main task or request
2. Extract key information and results
3. Provide a summary that directly addresses the user's question
4. If there are search results, business information or data, present them clearly
5. Keep the summary concise but informative

**Format your response as:**
## Task Summary

**Current Request:** [Brief restatement of the user's question]

**Key Findings:** [Main results and information discovered]

**Details:** [Detailed information organized in a clear structure]

{rating_request}"""


def get_router_prompt(message: str, context: str, used: set[ToolCategory]) -> str:
    """Build the routing prompt for the latest user *message*."""
    routable = ToolCategory.routable()
    categories = "\n".join(
        f"{i}. {c.label}: {c.description}" for i, c in enumerate(routable, start=1)
    )
    status = "\n".join(
        f"- Recent {c.label.lower()} operations: {'Yes' if c in used else 'No'}" for c in routable
    )
    return ROUTER_PROMPT_TEMPLATE.format(
        categories=categories,
        context=context or "(none)",
        message=message,
        status=status,
        general=ToolCategory.GENERAL.label,
        example=routable[0].label,
    )


def get_specialist_prompt(category: ToolCategory) -> str:
    now = datetime.now(UTC)
    focus = GENERAL_FOCUS if category is ToolCategory.GENERAL else (
        f"You handle {category.label}: {category.description[0].lower()}{category.description[1:]}."
    )
    return SPECIALIST_PROMPT_TEMPLATE.format(
        current_date=now.strftime("%d %B %Y"),
        current_time=now.strftime("%H:%M"),
        focus=focus,
    )


def get_conclusion_prompt(question: str, context: str, tool_outputs: list[str]) -> str:
    outputs = "\n".join(f"- {o}" for o in tool_outputs) if tool_outputs else "No tool outputs available"
    return CONCLUSION_PROMPT_TEMPLATE.format(
        question=question,
        context=context or "No conversation context available",
        tool_outputs=outputs,
        rating_request=RATING_REQUEST,
    )


def fallback_conclusion(question: str, tool_outputs: list[str]) -> str:
    """Plain summary used when the conclusion model is unavailable."""
    lines = ["## Task Completed", ""]
    if question:
        lines += [f"**Current Request:** {question}", ""]
    if tool_outputs:
        lines.append("**Results:**")
        lines += [f"{i}. {o[:200]}..." for i, o in enumerate(tool_outputs, start=1)]
        lines.append("")
    lines.append(RATING_REQUEST)
    return "\n".join(lines)
