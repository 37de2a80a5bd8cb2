from datetime import timedelta

import jwt
import pytest


@pytest.fixture
async def outline(seed):
    instructor = await seed.user("instructor")
    student = await seed.user()
    course = await seed.course(instructor)
    section = await seed.section(course)
    lesson = await seed.lesson(section)
    preview = await seed.lesson(section, display_order=1, is_preview=True)
    return {
        "instructor": instructor,
        "student": student,
        "course": course,
        "lesson": lesson,
        "preview": preview,
    }


class TestCourseLessonsEndpoint:
    """Tests for GET /api/v1/lms/lessons/course/{course_id}"""

    async def test_anonymous_request(self, client, outline):
        response = await client.get(f"/api/v1/lms/lessons/course/{outline['course'].id}")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "SUCCESS"
        lessons = {item["id"]: item for item in body["data"]["lessons"]}
        assert lessons[outline["preview"].id]["can_access"] is True
        assert lessons[outline["preview"].id]["access_reason"] == "preview"
        assert lessons[outline["lesson"].id]["can_access"] is False
        assert lessons[outline["lesson"].id]["access_reason"] == "denied"

    async def test_instructor_sees_all_lessons(self, client, outline, auth):
        response = await client.get(
            f"/api/v1/lms/lessons/course/{outline['course'].id}",
            headers=auth(outline["instructor"].id, ["instructor"]),
        )

        reasons = {item["access_reason"] for item in response.json()["data"]["lessons"]}
        assert reasons == {"instructor"}

    async def test_unknown_course(self, client):
        response = await client.get("/api/v1/lms/lessons/course/999")

        assert response.status_code == 404
        assert response.json()["code"] == 404


class TestLessonEndpoints:
    """Tests for lesson access checks and content"""

    async def test_requires_token(self, client, outline):
        response = await client.get(f"/api/v1/lms/lessons/{outline['lesson'].id}")

        assert response.status_code == 401
        assert response.json()["status"] == "ERROR"

    async def test_rejects_token_signed_with_other_secret(self, client, outline):
        token = jwt.encode({"userId": outline["student"].id, "roles": ["student"]}, "wrong", algorithm="HS256")
        response = await client.get(
            f"/api/v1/lms/lessons/{outline['lesson'].id}",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401

    async def test_access_check_reports_denied(self, client, outline, auth):
        response = await client.get(
            f"/api/v1/lms/lessons/{outline['lesson'].id}/access-check",
            headers=auth(outline["student"].id),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["can_access"] is False
        assert data["reason"] == "denied"

    async def test_not_enrolled_student_is_forbidden(self, client, outline, auth):
        response = await client.get(
            f"/api/v1/lms/lessons/{outline['lesson'].id}",
            headers=auth(outline["student"].id),
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Not enrolled in course"

    async def test_expired_enrollment_is_forbidden(self, client, outline, seed, auth):
        await seed.enrollment(outline["student"], outline["course"], expires_in=timedelta(days=-2))

        response = await client.get(
            f"/api/v1/lms/lessons/{outline['lesson'].id}",
            headers=auth(outline["student"].id),
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Enrollment has expired"

    async def test_enrolled_student_reads_lesson(self, client, outline, seed, auth):
        await seed.enrollment(outline["student"], outline["course"], expires_in=timedelta(days=30))

        response = await client.get(
            f"/api/v1/lms/lessons/{outline['lesson'].id}",
            headers=auth(outline["student"].id),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["content"] == "Lesson body"
        assert data["access"]["reason"] == "enrolled"
        assert data["access"]["enrollment"]["days_remaining"] == 30

    async def test_admin_reads_any_lesson(self, client, outline, auth):
        response = await client.get(
            f"/api/v1/lms/lessons/{outline['lesson'].id}",
            headers=auth(1000, ["admin"]),
        )

        assert response.status_code == 200
        assert response.json()["data"]["access"]["reason"] == "admin"

    async def test_deleted_lesson_is_not_found(self, client, outline, db_session, auth):
        outline["lesson"].is_deleted = True
        await db_session.commit()

        response = await client.get(
            f"/api/v1/lms/lessons/{outline['lesson'].id}/access-check",
            headers=auth(1000, ["admin"]),
        )

        assert response.status_code == 404
