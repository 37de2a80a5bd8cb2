import pytest
from sqlalchemy import select

from lms_service.model import Notification
from lms_service.model.enums import QuestionType
from lms_service.utils.time_utils import utcnow


async def _notification_types(db_session, user_id):
    db_session.expire_all()
    rows = await db_session.execute(select(Notification).where(Notification.user_id == user_id))
    return [n.notification_type for n in rows.scalars().all()]


@pytest.fixture
async def course_setup(seed):
    instructor = await seed.user("instructor")
    other_instructor = await seed.user("instructor")
    student = await seed.user()
    course = await seed.course(instructor)
    section = await seed.section(course)
    await seed.enrollment(student, course)
    return {
        "instructor": instructor,
        "other_instructor": other_instructor,
        "student": student,
        "course": course,
        "section": section,
    }


class TestAssignmentGrading:
    """Tests for /lms/assignments endpoints"""

    async def test_pending_lists_only_ungraded_in_own_courses(self, client, auth, course_setup, seed):
        assignment = await seed.assignment(course_setup["section"])
        pending = await seed.submission(assignment, course_setup["student"])
        await seed.submission(assignment, course_setup["student"], score=50, max_points=100, graded_at=utcnow())

        other_course = await seed.course(course_setup["other_instructor"])
        other_section = await seed.section(other_course)
        await seed.submission(await seed.assignment(other_section), course_setup["student"])

        response = await client.get(
            "/api/v1/lms/assignments/submissions/pending",
            headers=auth(course_setup["instructor"].id, ["instructor"]),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert [s["id"] for s in data] == [pending.id]
        assert data[0]["user_name"] == course_setup["student"].username
        assert data[0]["course_name"] == course_setup["course"].title

    async def test_students_cannot_list(self, client, auth, course_setup):
        response = await client.get(
            "/api/v1/lms/assignments/submissions/pending",
            headers=auth(course_setup["student"].id),
        )

        assert response.status_code == 403

    async def test_grade_submission(self, client, auth, course_setup, seed, db_session):
        assignment = await seed.assignment(course_setup["section"])
        submission = await seed.submission(assignment, course_setup["student"])

        response = await client.post(
            f"/api/v1/lms/assignments/submissions/{submission.id}/grade",
            json={"score": 85, "max_points": 100, "feedback": "Good work"},
            headers=auth(course_setup["instructor"].id, ["instructor"]),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["score"] == 85
        assert data["feedback"] == "Good work"
        assert data["graded_by"] == course_setup["instructor"].id
        assert data["graded_at"] is not None
        assert data["assignment_max_points"] == 100
        assert await _notification_types(db_session, course_setup["student"].id) == ["submission_graded"]

    async def test_score_above_max_is_rejected(self, client, auth, course_setup, seed):
        submission = await seed.submission(await seed.assignment(course_setup["section"]), course_setup["student"])

        response = await client.post(
            f"/api/v1/lms/assignments/submissions/{submission.id}/grade",
            json={"score": 101, "max_points": 100},
            headers=auth(course_setup["instructor"].id, ["instructor"]),
        )

        assert response.status_code == 400

    async def test_negative_score_fails_validation(self, client, auth, course_setup, seed):
        submission = await seed.submission(await seed.assignment(course_setup["section"]), course_setup["student"])

        response = await client.post(
            f"/api/v1/lms/assignments/submissions/{submission.id}/grade",
            json={"score": -1, "max_points": 100},
            headers=auth(course_setup["instructor"].id, ["instructor"]),
        )

        assert response.status_code == 400
        assert response.json()["message"].startswith("Validation Error")

    async def test_other_instructor_is_forbidden(self, client, auth, course_setup, seed):
        submission = await seed.submission(await seed.assignment(course_setup["section"]), course_setup["student"])

        response = await client.post(
            f"/api/v1/lms/assignments/submissions/{submission.id}/grade",
            json={"score": 10, "max_points": 100},
            headers=auth(course_setup["other_instructor"].id, ["instructor"]),
        )

        assert response.status_code == 403

    async def test_unknown_submission(self, client, auth, course_setup):
        response = await client.get(
            "/api/v1/lms/assignments/submissions/4040",
            headers=auth(course_setup["instructor"].id, ["instructor"]),
        )

        assert response.status_code == 404


class TestQuizReview:
    """Tests for instructor review of quiz attempts"""

    @pytest.fixture
    async def submitted(self, client, auth, course_setup, seed):
        quiz = await seed.quiz(course_setup["section"], passing_score=50)
        mcq = await seed.question(quiz, points=2, display_order=0)
        essay = await seed.question(quiz, question_type=QuestionType.ESSAY, points=8, display_order=1)
        headers = auth(course_setup["student"].id)

        started = await client.post(f"/api/v1/lms/quizzes/{quiz.id}/start", headers=headers)
        attempt_id = started.json()["data"]["attempt_id"]
        submit = await client.post(
            f"/api/v1/lms/quizzes/attempts/{attempt_id}/submit",
            json={"answers": [
                {"question_id": mcq.id, "selected_option_id": seed.correct_option(mcq)},
                {"question_id": essay.id, "answer_text": "My essay"},
            ]},
            headers=headers,
        )
        assert submit.json()["data"]["score"] == 2
        return {"quiz": quiz, "mcq": mcq, "essay": essay, "attempt_id": attempt_id}

    async def _details(self, client, auth, instructor, attempt_id):
        response = await client.get(
            f"/api/v1/lms/quizzes/attempts/{attempt_id}", headers=auth(instructor.id, ["instructor"])
        )
        assert response.status_code == 200
        return response.json()["data"]

    async def test_attempt_details_list_answers(self, client, auth, course_setup, submitted):
        detail = await self._details(client, auth, course_setup["instructor"], submitted["attempt_id"])

        assert detail["status"] == "SUBMITTED"
        assert detail["user_email"] == course_setup["student"].email
        essay = next(a for a in detail["answers"] if a["question_id"] == submitted["essay"].id)
        assert essay["is_graded"] is False
        assert essay["max_points"] == 8
        assert essay["answer_text"] == "My essay"

    async def test_quiz_attempts_list(self, client, auth, course_setup, submitted):
        response = await client.get(
            f"/api/v1/lms/quizzes/{submitted['quiz'].id}/attempts",
            headers=auth(course_setup["instructor"].id, ["instructor"]),
        )

        attempts = response.json()["data"]
        assert [a["id"] for a in attempts] == [submitted["attempt_id"]]
        assert attempts[0]["user_name"] == course_setup["student"].username

    async def test_all_attempts_filtered_by_course(self, client, auth, course_setup, submitted):
        headers = auth(course_setup["instructor"].id, ["instructor"])

        mine = await client.get(f"/api/v1/lms/quizzes/attempts?course_id={course_setup['course'].id}", headers=headers)
        elsewhere = await client.get("/api/v1/lms/quizzes/attempts?course_id=9999", headers=headers)

        assert [a["id"] for a in mine.json()["data"]] == [submitted["attempt_id"]]
        assert elsewhere.json()["data"] == []

    async def test_review_recomputes_score(self, client, auth, course_setup, submitted, db_session):
        detail = await self._details(client, auth, course_setup["instructor"], submitted["attempt_id"])
        essay_answer = next(a for a in detail["answers"] if a["question_id"] == submitted["essay"].id)

        response = await client.post(
            f"/api/v1/lms/quizzes/attempts/{submitted['attempt_id']}/review",
            json={
                "feedback": "Solid essay",
                "notes": "Check citations next time",
                "grades": [{"answer_id": essay_answer["id"], "points_earned": 6, "feedback": "Nice"}],
            },
            headers=auth(course_setup["instructor"].id, ["instructor"]),
        )

        assert response.status_code == 200
        reviewed = response.json()["data"]
        assert reviewed["score"] == 8
        assert reviewed["max_score"] == 10
        assert reviewed["is_passed"] is True
        assert reviewed["feedback"] == "Solid essay"
        assert reviewed["reviewed_by"] == course_setup["instructor"].id
        assert reviewed["reviewed_at"] is not None
        essay = next(a for a in reviewed["answers"] if a["id"] == essay_answer["id"])
        assert essay["is_graded"] is True
        assert essay["is_correct"] is False
        assert essay["feedback"] == "Nice"
        assert await _notification_types(db_session, course_setup["student"].id) == ["quiz_reviewed"]

    async def test_points_above_question_max_are_rejected(self, client, auth, course_setup, submitted):
        detail = await self._details(client, auth, course_setup["instructor"], submitted["attempt_id"])
        essay_answer = next(a for a in detail["answers"] if a["question_id"] == submitted["essay"].id)

        response = await client.post(
            f"/api/v1/lms/quizzes/attempts/{submitted['attempt_id']}/review",
            json={"grades": [{"answer_id": essay_answer["id"], "points_earned": 9}]},
            headers=auth(course_setup["instructor"].id, ["instructor"]),
        )

        assert response.status_code == 400

    async def test_unknown_answer_is_rejected_without_partial_writes(self, client, auth, course_setup, submitted):
        detail = await self._details(client, auth, course_setup["instructor"], submitted["attempt_id"])
        essay_answer = next(a for a in detail["answers"] if a["question_id"] == submitted["essay"].id)

        response = await client.post(
            f"/api/v1/lms/quizzes/attempts/{submitted['attempt_id']}/review",
            json={"grades": [
                {"answer_id": essay_answer["id"], "points_earned": 4},
                {"answer_id": 99999, "points_earned": 1},
            ]},
            headers=auth(course_setup["instructor"].id, ["instructor"]),
        )

        assert response.status_code == 400
        after = await self._details(client, auth, course_setup["instructor"], submitted["attempt_id"])
        assert after["score"] == 2
        assert after["reviewed_at"] is None

    async def test_other_instructor_cannot_review(self, client, auth, course_setup, submitted):
        response = await client.post(
            f"/api/v1/lms/quizzes/attempts/{submitted['attempt_id']}/review",
            json={"grades": []},
            headers=auth(course_setup["other_instructor"].id, ["instructor"]),
        )

        assert response.status_code == 403

    async def test_student_cannot_review(self, client, auth, course_setup, submitted):
        response = await client.post(
            f"/api/v1/lms/quizzes/attempts/{submitted['attempt_id']}/review",
            json={"grades": []},
            headers=auth(course_setup["student"].id),
        )

        assert response.status_code == 403

    async def test_in_progress_attempt_cannot_be_reviewed(self, client, auth, course_setup, seed):
        quiz = await seed.quiz(course_setup["section"])
        await seed.question(quiz)
        started = await client.post(f"/api/v1/lms/quizzes/{quiz.id}/start", headers=auth(course_setup["student"].id))

        response = await client.post(
            f"/api/v1/lms/quizzes/attempts/{started.json()['data']['attempt_id']}/review",
            json={"grades": []},
            headers=auth(course_setup["instructor"].id, ["instructor"]),
        )

        assert response.status_code == 400
