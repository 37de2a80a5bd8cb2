"""
Scoring is a pure function over question rows and answer dicts, so these
tests use plain namespaces instead of database rows.
"""
from types import SimpleNamespace

import pytest

from lms_service.services.scoring import is_passing, score_answers


def _option(option_id, is_correct, is_deleted=False):
    return SimpleNamespace(id=option_id, is_correct=is_correct, is_deleted=is_deleted)


def _question(question_id, question_type="SINGLE_CHOICE", points=1.0, options=None):
    return SimpleNamespace(
        id=question_id,
        question_type=question_type,
        points=points,
        options=options or [],
    )


class TestScoreAnswers:
    """Tests for score_answers"""

    def test_correct_and_wrong_objective_answers(self):
        questions = [
            _question(1, points=2, options=[_option(10, True), _option(11, False)]),
            _question(2, points=3, options=[_option(20, False), _option(21, True)]),
        ]
        result = score_answers(questions, {
            1: {"selected_option_id": 10},
            2: {"selected_option_id": 20},
        })

        assert result.score == 2
        assert result.max_score == 5
        by_question = {a.question_id: a for a in result.answers}
        assert by_question[1].is_correct is True
        assert by_question[1].points_earned == 2
        assert by_question[2].is_correct is False
        assert by_question[2].points_earned == 0

    def test_unanswered_questions_still_count_towards_max(self):
        questions = [
            _question(1, points=1, options=[_option(10, True)]),
            _question(2, points=4, options=[_option(20, True)]),
        ]
        result = score_answers(questions, {1: {"selected_option_id": 10}})

        assert result.score == 1
        assert result.max_score == 5
        assert [a.question_id for a in result.answers] == [1]

    def test_option_from_another_question_is_not_correct(self):
        questions = [
            _question(1, options=[_option(10, False)]),
            _question(2, options=[_option(20, True)]),
        ]
        result = score_answers(questions, {1: {"selected_option_id": 20}})

        assert result.score == 0
        assert result.answers[0].is_correct is False

    def test_deleted_correct_option_does_not_score(self):
        questions = [_question(1, options=[_option(10, True, is_deleted=True)])]
        result = score_answers(questions, {1: {"selected_option_id": 10}})

        assert result.score == 0

    def test_essay_answers_wait_for_manual_grading(self):
        questions = [
            _question(1, points=1, options=[_option(10, True)]),
            _question(2, question_type="ESSAY", points=5),
        ]
        result = score_answers(questions, {
            1: {"selected_option_id": 10},
            2: {"answer_text": "An essay"},
        })

        essay = next(a for a in result.answers if a.question_id == 2)
        assert essay.is_graded is False
        assert essay.points_earned == 0
        assert essay.answer_text == "An essay"
        assert result.pending_manual_grading is True
        assert result.score == 1
        assert result.max_score == 6

    def test_answers_to_unknown_questions_are_ignored(self):
        questions = [_question(1, options=[_option(10, True)])]
        result = score_answers(questions, {99: {"selected_option_id": 10}})

        assert result.answers == []
        assert result.max_score == 1

    def test_missing_selection_is_wrong(self):
        questions = [_question(1, options=[_option(10, True)])]
        result = score_answers(questions, {1: {"selected_option_id": None}})

        assert result.answers[0].is_correct is False
        assert result.pending_manual_grading is False


class TestIsPassing:
    """Tests for the pass threshold"""

    @pytest.mark.parametrize("score,max_score,passing,expected", [
        (6, 10, 60, True),
        (5.9, 10, 60, False),
        (10, 10, 100, True),
        (0, 0, 0, False),
    ])
    def test_threshold(self, score, max_score, passing, expected):
        assert is_passing(score, max_score, passing) is expected
