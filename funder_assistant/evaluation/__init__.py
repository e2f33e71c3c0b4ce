"""Evaluation suites for the assistant.

Each suite pairs a default dataset with a target (the workflow or a tool
set) and the evaluators that score it.  Suites run either offline
(:func:`~funder_assistant.evaluation.runner.run_local`) or as LangSmith
experiments (:func:`~funder_assistant.evaluation.runner.run_langsmith`).
"""
