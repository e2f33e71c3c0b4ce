"""Tests for the free-text star rating parser."""

from __future__ import annotations

import pytest

from funder_assistant.feedback.parser import (
    ParsedFeedback,
    is_valid_rating,
    normalized_score,
    parse_feedback,
    star_display,
)


class TestAcceptedForms:
    @pytest.mark.parametrize("text,rating", [
        ("5", 5),
        ("1", 1),
        ("  3  ", 3),
        ("4 stars", 4),
        ("1 star", 1),
        ("4 STARS", 4),
        ("4/5", 4),
    ])
    def test_rating_without_comment(self, text, rating):
        assert parse_feedback(text) == ParsedFeedback(rating, "")

    def test_stars_with_dash_comment(self):
        assert parse_feedback("5 stars - very helpful!") == ParsedFeedback(5, "very helpful!")

    def test_en_dash_separator(self):
        assert parse_feedback("2 – too slow") == ParsedFeedback(2, "too slow")

    def test_digit_dash_comment(self):
        parsed = parse_feedback("4 - could be more detailed")
        assert parsed.rating == 4
        assert parsed.comment == "could be more detailed"
        assert parsed.score == 0.75

    def test_labelled_rating(self):
        assert parse_feedback("Rating: 5") == ParsedFeedback(5, "")
        assert parse_feedback("score: 2 - meh") == ParsedFeedback(2, "meh")

    def test_labelled_rating_inside_sentence(self):
        assert parse_feedback("My rating: 3") == ParsedFeedback(3, "")


class TestRejectedInput:
    @pytest.mark.parametrize("text", [
        "", "   ", "banana", "great job", "0", "6", "10", "9 stars", "Rating: 7", "five",
    ])
    def test_not_feedback(self, text):
        assert parse_feedback(text) is None


class TestHelpers:
    @pytest.mark.parametrize("rating,score", [(1, 0.0), (2, 0.25), (3, 0.5), (4, 0.75), (5, 1.0)])
    def test_normalized_score(self, rating, score):
        assert normalized_score(rating) == score

    @pytest.mark.parametrize("rating", [0, 6, -1, 2.5, True, "3"])
    def test_normalized_score_rejects_invalid(self, rating):
        with pytest.raises(ValueError):
            normalized_score(rating)

    def test_is_valid_rating(self):
        assert is_valid_rating(3)
        assert not is_valid_rating(0)
        assert not is_valid_rating(None)

    def test_star_display(self):
        assert star_display(3) == "⭐⭐⭐☆☆"
        assert star_display(5) == "⭐⭐⭐⭐⭐"
