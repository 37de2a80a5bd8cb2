"""
Pure scoring of quiz answers, shared by submission and the expiry sweep.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from lms_service.model.enums import QuestionType


@dataclass
class ScoredAnswer:
    question_id: int
    selected_option_id: Optional[int]
    answer_text: Optional[str]
    is_correct: bool
    points_earned: float
    is_graded: bool


@dataclass
class ScoreResult:
    score: float
    max_score: float
    answers: List[ScoredAnswer] = field(default_factory=list)

    @property
    def pending_manual_grading(self) -> bool:
        return any(not a.is_graded for a in self.answers)


def is_passing(score: float, max_score: float, passing_score: int) -> bool:
    if not max_score or max_score <= 0:
        return False
    return score / max_score * 100 >= passing_score


def score_answers(questions: Iterable, answers: Dict[int, dict]) -> ScoreResult:
    """
    Score answers against a quiz's questions.

    Args:
        questions: Question rows with type, points and options loaded
        answers: {question_id: {"selected_option_id": ..., "answer_text": ...}};
            answers to questions outside the quiz are ignored

    Returns:
        ScoreResult; max_score counts every question, answered or not
    """
    score = 0.0
    max_score = 0.0
    scored: List[ScoredAnswer] = []

    for question in questions:
        points = float(question.points or 0)
        max_score += points

        given = answers.get(question.id)
        if given is None:
            continue

        selected_option_id = given.get("selected_option_id")
        answer_text = given.get("answer_text")

        if QuestionType(question.question_type).requires_manual_grading():
            scored.append(ScoredAnswer(
                question_id=question.id,
                selected_option_id=None,
                answer_text=answer_text,
                is_correct=False,
                points_earned=0.0,
                is_graded=False,
            ))
            continue

        correct_ids = {
            option.id for option in question.options
            if option.is_correct and not option.is_deleted
        }
        is_correct = selected_option_id is not None and selected_option_id in correct_ids
        earned = points if is_correct else 0.0
        score += earned

        scored.append(ScoredAnswer(
            question_id=question.id,
            selected_option_id=selected_option_id,
            answer_text=answer_text,
            is_correct=is_correct,
            points_earned=earned,
            is_graded=True,
        ))

    return ScoreResult(score=score, max_score=max_score, answers=scored)
