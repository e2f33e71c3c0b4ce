"""Funder Assistant — a conversational agent for the funder platform.

Architecture Overview
=====================

A **LangGraph** workflow answers each user turn:

1. **router** — a cheap Claude Haiku call names one tool category
   (auth, data, search, file, text, math, http).  The label is parsed
   into a ``ToolCategory``; keywords and finally ``GENERAL`` are the
   fallbacks, so a bad label never breaks a turn.

2. **specialist** — Claude Sonnet bound to that category's tools, looping
   through the category's tool node until it stops calling tools.

3. **conclude** — a Haiku summary of the turn that ends by asking the
   user for a 1-5 star rating.

Key Design Decisions
--------------------
- **Threads**: every run is tagged with the thread id
  (``session_id`` / ``thread_id`` / ``conversation_id`` metadata), so
  LangSmith groups a conversation's traces and thread history can be
  fetched back from it.
- **Feedback**: ratings go to LangSmith ``create_feedback`` against the
  turn's run id; if that is impossible they are kept in a local pending
  collection instead of being lost.
- **Rating flow**: an explicit state machine (``Idle`` /
  ``AwaitingRating`` / ``AwaitingComment``) in ``feedback/flow.py``.
- **Persistence**: conversations and login state are JSON files under
  ``DATA_DIR``; login state expires after 24 hours.
- **No singletons**: ``Application`` builds every collaborator and
  injects it.
- **Dual Interface**: interactive CLI (``main.py``) + FastAPI server
  (chat, feedback, pending feedback, threads and thread history).
- **Evaluation**: deterministic suites (routing, calculator, text tools,
  end-to-end answers) run offline or as LangSmith experiments via
  ``main.py --evaluate``.

Package Structure
-----------------
- ``funder_assistant/agent.py`` — LangGraph StateGraph definition
- ``funder_assistant/application.py`` — composition root, turn timeout
- ``funder_assistant/categories.py`` — ``ToolCategory`` and keyword fallback
- ``funder_assistant/config.py`` — configuration from environment / SSM
- ``funder_assistant/conversation.py`` — active conversation state
- ``funder_assistant/threads.py`` — thread ids, run config, LangSmith history
- ``funder_assistant/prompts.py`` — router, specialist and conclusion prompts
- ``funder_assistant/main.py`` — CLI chat interface
- ``funder_assistant/server.py`` — FastAPI application
- ``funder_assistant/feedback/`` — rating parser, flow and LangSmith submitter
- ``funder_assistant/store/`` — JSON persistence (conversations, auth)
- ``funder_assistant/services/`` — backend, Tavily and CloudWatch clients
- ``funder_assistant/tools/`` — LangChain tools per category
- ``funder_assistant/evaluation/`` — evaluation datasets, evaluators and runner
- ``funder_assistant/api/`` — FastAPI routes and Pydantic schemas
"""
