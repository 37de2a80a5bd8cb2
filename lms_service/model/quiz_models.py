"""
Quiz-related models: quizzes, question bank, options, attempts and answers
"""

from sqlalchemy import (
    Column, Text, Float, Integer, Boolean, ForeignKey, String, DateTime, JSON, func
)
from sqlalchemy.orm import relationship

from lms_service.model.base import Base, BaseMixin, SoftDeleteMixin
from lms_service.model.enums import QuestionType


class Quiz(Base, BaseMixin, SoftDeleteMixin):
    """
    Quiz attached to a course section (and optionally to one of its lessons).
    """
    __tablename__ = 'quizzes'

    section_id = Column(
        Integer,
        ForeignKey('course_sections.id'),
        nullable=False,
        index=True
    )
    lesson_id = Column(Integer, ForeignKey('lessons.id'), nullable=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Quiz settings
    time_limit_minutes = Column(Integer, nullable=True)  # None means untimed
    max_attempts = Column(Integer, nullable=True)  # None means unlimited
    passing_score = Column(Integer, default=60, nullable=False)  # percent
    shuffle_questions = Column(Boolean, default=False, nullable=False)
    show_correct_answers = Column(Boolean, default=True, nullable=False)
    available_from = Column(DateTime, nullable=True)
    available_until = Column(DateTime, nullable=True)

    # Relationships
    quiz_questions = relationship(
        "QuizQuestion",
        back_populates="quiz",
        order_by="QuizQuestion.display_order",
    )

    def __repr__(self):
        return f"<Quiz(id={self.id}, title={self.title})>"


class Question(Base, BaseMixin, SoftDeleteMixin):
    """
    Question bank entry. course_id is null for general questions.
    """
    __tablename__ = 'question_bank'

    course_id = Column(Integer, ForeignKey('courses.id'), nullable=True)
    question_type = Column(
        String(30),
        default=QuestionType.SINGLE_CHOICE.value,
        nullable=False
    )
    question_text = Column(Text, nullable=False)
    explanation = Column(Text, nullable=True)
    points = Column(Float, default=1.0, nullable=False)

    # Relationships
    options = relationship(
        "QuestionOption",
        back_populates="question",
        order_by="QuestionOption.display_order",
        lazy="selectin"
    )

    @property
    def type(self) -> QuestionType:
        return QuestionType(self.question_type)

    def __repr__(self):
        return f"<Question(id={self.id}, type={self.question_type})>"


class QuestionOption(Base, BaseMixin, SoftDeleteMixin):
    __tablename__ = 'question_options'

    question_id = Column(
        Integer,
        ForeignKey('question_bank.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    option_text = Column(Text, nullable=False)
    is_correct = Column(Boolean, default=False, nullable=False)
    display_order = Column(Integer, default=0)

    # Relationships
    question = relationship("Question", back_populates="options")

    def __repr__(self):
        return f"<QuestionOption(id={self.id}, is_correct={self.is_correct})>"


class QuizQuestion(Base, BaseMixin, SoftDeleteMixin):
    """
    Many-to-many link between quizzes and the question bank.
    """
    __tablename__ = 'quiz_questions'

    quiz_id = Column(
        Integer, ForeignKey('quizzes.id'), nullable=False, index=True
    )
    question_id = Column(
        Integer, ForeignKey('question_bank.id'), nullable=False
    )
    display_order = Column(Integer, default=0)

    # Relationships
    quiz = relationship("Quiz", back_populates="quiz_questions")
    question = relationship("Question", lazy="selectin")

    def __repr__(self):
        return f"<QuizQuestion(quiz_id={self.quiz_id}, question_id={self.question_id})>"


class QuizAttempt(Base, BaseMixin, SoftDeleteMixin):
    """
    One run of a user through a quiz. completed_at stays null while the
    attempt is in progress.
    """
    __tablename__ = 'quiz_attempts'

    quiz_id = Column(Integer, ForeignKey('quizzes.id'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False)

    score = Column(Float, nullable=True)
    max_score = Column(Float, nullable=True)
    is_passed = Column(Boolean, default=False, nullable=False)

    started_at = Column(DateTime, default=func.now(), nullable=False)
    completed_at = Column(DateTime, nullable=True)

    # Server-side clock state
    paused_at = Column(DateTime, nullable=True)
    paused_seconds = Column(Integer, default=0, nullable=False)
    is_timed_out = Column(Boolean, default=False, nullable=False)

    flagged_question_ids = Column(JSON, default=list, nullable=False)

    # Instructor review
    feedback = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    reviewed_by = Column(Integer, ForeignKey('users.id'), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    # Relationships
    answers = relationship("QuizAnswer", back_populates="attempt")

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None

    def __repr__(self):
        return f"<QuizAttempt(id={self.id}, quiz_id={self.quiz_id}, number={self.attempt_number})>"


class QuizAnswer(Base, BaseMixin, SoftDeleteMixin):
    """
    Persisted answer for one question of a submitted attempt. Essay answers
    stay is_graded=False until an instructor reviews them.
    """
    __tablename__ = 'quiz_answers'

    attempt_id = Column(
        Integer, ForeignKey('quiz_attempts.id'), nullable=False, index=True
    )
    question_id = Column(
        Integer, ForeignKey('question_bank.id'), nullable=False
    )
    selected_option_id = Column(
        Integer, ForeignKey('question_options.id'), nullable=True
    )
    answer_text = Column(Text, nullable=True)
    is_correct = Column(Boolean, default=False, nullable=False)
    points_earned = Column(Float, default=0.0, nullable=False)
    is_graded = Column(Boolean, default=True, nullable=False)
    feedback = Column(Text, nullable=True)

    # Relationships
    attempt = relationship("QuizAttempt", back_populates="answers")

    def __repr__(self):
        return f"<QuizAnswer(id={self.id}, attempt_id={self.attempt_id}, is_correct={self.is_correct})>"
