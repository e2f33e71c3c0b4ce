"""User rating capture: parsing, the two-step prompt flow and submission."""

from funder_assistant.feedback.flow import (
    AwaitingComment,
    AwaitingRating,
    FeedbackFlow,
    FlowAction,
    Idle,
)
from funder_assistant.feedback.parser import ParsedFeedback, parse_feedback
from funder_assistant.feedback.service import (
    FeedbackRecord,
    FeedbackResult,
    FeedbackService,
)

__all__ = [
    "AwaitingComment",
    "AwaitingRating",
    "FeedbackFlow",
    "FeedbackRecord",
    "FeedbackResult",
    "FeedbackService",
    "FlowAction",
    "Idle",
    "ParsedFeedback",
    "parse_feedback",
]
