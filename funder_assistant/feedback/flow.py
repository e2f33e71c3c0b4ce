"""Two-step rating conversation as an explicit state machine.

States::

    Idle ──(answer asked for a rating)──▶ AwaitingRating
    AwaitingRating ──"4"──────────────────▶ AwaitingComment(4)
    AwaitingRating ──"4 - great"──────────▶ Idle   (submit 4, "great")
    AwaitingRating ──"banana"─────────────▶ AwaitingRating (re-prompt)
    AwaitingRating ──"skip"───────────────▶ Idle
    AwaitingComment(r) ──any text─────────▶ Idle   (submit r, text)

The pending rating lives on ``AwaitingComment`` only, so a comment can
never arrive without one.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from funder_assistant.feedback.parser import parse_feedback

SKIP_WORDS = frozenset({"skip", "no", "n"})

RATING_REPROMPT = (
    "Please provide a rating from 1-5 stars.\n"
    'Examples: "5", "4 stars", "3 - needs improvement" (or "skip")'
)
COMMENT_PROMPT = "💬 Please add any comments to help us improve (or press Enter to skip):"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class AwaitingRating:
    pass


@dataclass(frozen=True)
class AwaitingComment:
    rating: int


FlowState = Idle | AwaitingRating | AwaitingComment


class FlowAction(Enum):
    PASS_THROUGH = "pass_through"
    REPROMPT = "reprompt"
    AWAIT_COMMENT = "await_comment"
    SUBMIT = "submit"
    SKIP = "skip"


@dataclass(frozen=True)
class Transition:
    state: FlowState
    action: FlowAction
    rating: int | None = None
    comment: str = ""


class FeedbackFlow:
    """Drives one rating exchange at a time."""

    def __init__(self) -> None:
        self.state: FlowState = Idle()

    @property
    def is_idle(self) -> bool:
        return isinstance(self.state, Idle)

    def request_rating(self) -> None:
        self.state = AwaitingRating()

    def reset(self) -> None:
        self.state = Idle()

    def handle(self, text: str) -> Transition:
        transition = self._next(self.state, text)
        self.state = transition.state
        return transition

    @staticmethod
    def _next(state: FlowState, text: str) -> Transition:
        value = (text or "").strip()

        if isinstance(state, Idle):
            return Transition(state, FlowAction.PASS_THROUGH)

        if isinstance(state, AwaitingComment):
            return Transition(Idle(), FlowAction.SUBMIT, rating=state.rating, comment=value)

        if isinstance(state, AwaitingRating):
            if value.lower() in SKIP_WORDS:
                return Transition(Idle(), FlowAction.SKIP)
            parsed = parse_feedback(value)
            if parsed is None:
                return Transition(state, FlowAction.REPROMPT)
            if parsed.comment:
                return Transition(
                    Idle(), FlowAction.SUBMIT,
                    rating=parsed.rating, comment=parsed.comment,
                )
            return Transition(
                AwaitingComment(parsed.rating), FlowAction.AWAIT_COMMENT,
                rating=parsed.rating,
            )

        raise TypeError(f"Unknown feedback flow state: {state!r}")
