"""
Pytest configuration for the LMS service tests.

Settings are read once (lru_cache), so the environment is prepared before
anything from lms_service is imported.
"""
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ATTEMPT_SWEEP_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("REDIS_URL", None)

from datetime import timedelta
from typing import List, Optional

import httpx
import jwt
import pytest
from httpx import ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from lms_service.clients.redis_client import RedisClient
from lms_service.config import get_settings
from lms_service.db.session import build_session_factory, create_engine_for
from lms_service.dependencies.db import get_database
from lms_service.dependencies.services import get_answer_buffer, get_redis_client
from lms_service.main import app
from lms_service.model import (
    Assignment,
    AssignmentSubmission,
    Base,
    Course,
    Enrollment,
    Lesson,
    Lookup,
    Question,
    QuestionOption,
    Quiz,
    QuizQuestion,
    Section,
    User,
)
from lms_service.model.enums import LookupType, QuestionType
from lms_service.services.answer_buffer import AnswerBuffer
from lms_service.utils.time_utils import utcnow


def make_token(user_id: int, roles: Optional[List[str]] = None, email: Optional[str] = None) -> str:
    payload = {
        "userId": user_id,
        "roles": roles if roles is not None else ["student"],
        "email": email or f"user{user_id}@example.com",
    }
    return jwt.encode(payload, "test-secret", algorithm="HS256")


def auth_headers(user_id: int, roles: Optional[List[str]] = None) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, roles)}"}


@pytest.fixture
async def engine():
    engine = create_engine_for("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def redis_client():
    # never connected: every Redis feature takes its fallback path
    return RedisClient(get_settings())


@pytest.fixture
def answer_buffer(redis_client):
    return AnswerBuffer(redis_client)


@pytest.fixture
async def client(session_factory, redis_client, answer_buffer):
    async def _get_database():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_database] = _get_database
    app.dependency_overrides[get_redis_client] = lambda: redis_client
    app.dependency_overrides[get_answer_buffer] = lambda: answer_buffer

    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


class Seeder:
    """Builds rows for tests; every helper commits."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._counter = 0

    async def _add(self, obj):
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def user(self, role: str = "student") -> User:
        n = self._next()
        return await self._add(User(username=f"user{n}", email=f"user{n}@example.com", role=role))

    async def course(self, instructor: User, **kwargs) -> Course:
        n = self._next()
        return await self._add(Course(
            title=kwargs.pop("title", f"Course {n}"),
            slug=f"course-{n}",
            instructor_id=instructor.id,
            **kwargs,
        ))

    async def section(self, course: Course, display_order: int = 0, **kwargs) -> Section:
        return await self._add(Section(
            course_id=course.id, title=f"Section {self._next()}", display_order=display_order, **kwargs
        ))

    async def lesson(self, section: Section, display_order: int = 0, is_preview: bool = False, **kwargs) -> Lesson:
        return await self._add(Lesson(
            section_id=section.id,
            title=kwargs.pop("title", f"Lesson {self._next()}"),
            content="Lesson body",
            display_order=display_order,
            is_preview=is_preview,
            **kwargs,
        ))

    async def enrollment_type(self, code: str = "premium", name_en: str = "Premium") -> Lookup:
        return await self._add(Lookup(
            lookup_type=LookupType.ENROLLMENT_TYPE.value, code=code, name_en=name_en
        ))

    async def enrollment(
            self,
            user: User,
            course: Course,
            expires_in: Optional[timedelta] = None,
            enrollment_type: Optional[Lookup] = None,
            **kwargs
    ) -> Enrollment:
        return await self._add(Enrollment(
            user_id=user.id,
            course_id=course.id,
            enrolled_at=utcnow(),
            expires_at=utcnow() + expires_in if expires_in is not None else None,
            enrollment_type_id=enrollment_type.id if enrollment_type else None,
            **kwargs,
        ))

    async def quiz(self, section: Section, **kwargs) -> Quiz:
        kwargs.setdefault("passing_score", 60)
        return await self._add(Quiz(section_id=section.id, title=f"Quiz {self._next()}", **kwargs))

    async def question(
            self,
            quiz: Quiz,
            question_type: QuestionType = QuestionType.SINGLE_CHOICE,
            points: float = 1.0,
            options: Optional[List[tuple]] = None,
            display_order: int = 0,
    ) -> Question:
        """options: list of (text, is_correct); defaults to one right and one wrong."""
        question = await self._add(Question(
            course_id=None,
            question_type=question_type.value,
            question_text=f"Question {self._next()}?",
            explanation="Because.",
            points=points,
        ))
        if question_type != QuestionType.ESSAY:
            for order, (text, is_correct) in enumerate(options or [("right", True), ("wrong", False)]):
                self.session.add(QuestionOption(
                    question_id=question.id, option_text=text, is_correct=is_correct, display_order=order
                ))
        self.session.add(QuizQuestion(quiz_id=quiz.id, question_id=question.id, display_order=display_order))
        await self.session.commit()
        await self.session.refresh(question, attribute_names=["options"])
        return question

    async def assignment(self, section: Section, max_points: int = 100) -> Assignment:
        return await self._add(Assignment(
            section_id=section.id, title=f"Assignment {self._next()}", max_points=max_points
        ))

    async def submission(self, assignment: Assignment, user: User, **kwargs) -> AssignmentSubmission:
        kwargs.setdefault("submitted_at", utcnow())
        return await self._add(AssignmentSubmission(
            assignment_id=assignment.id, user_id=user.id, submission_text="My work", **kwargs
        ))

    @staticmethod
    def correct_option(question: Question) -> int:
        return next(o.id for o in question.options if o.is_correct)

    @staticmethod
    def wrong_option(question: Question) -> int:
        return next(o.id for o in question.options if not o.is_correct)


@pytest.fixture
def seed(db_session):
    return Seeder(db_session)


@pytest.fixture
def auth():
    """auth(user_id, roles=None) -> Authorization header dict"""
    return auth_headers
