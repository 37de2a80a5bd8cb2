from datetime import timedelta

import pytest

from lms_service.model.enums import AccessReason
from lms_service.repositories.course_repo import CourseRepository
from lms_service.repositories.enrollment_repo import EnrollmentRepository
from lms_service.repositories.lesson_repo import LessonRepository
from lms_service.services.access_service import AccessService
from lms_service.services.auth_service import CurrentUser
from lms_service.utils.exceptions import AccessDeniedException, ResourceNotFoundException


@pytest.fixture
def access_service(db_session):
    return AccessService(
        lesson_repository=LessonRepository(db_session),
        course_repository=CourseRepository(db_session),
        enrollment_repository=EnrollmentRepository(db_session),
    )


@pytest.fixture
async def course_setup(seed):
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
        "section": section,
        "lesson": lesson,
        "preview": preview,
    }


class TestCheckLessonAccess:
    """Tests for the lesson access evaluation order"""

    async def test_missing_lesson_raises_not_found(self, access_service):
        with pytest.raises(ResourceNotFoundException):
            await access_service.check_lesson_access(404, 1, "student")

    async def test_lesson_under_deleted_section_is_missing(self, access_service, course_setup, db_session):
        course_setup["section"].is_deleted = True
        await db_session.commit()

        with pytest.raises(ResourceNotFoundException):
            await access_service.check_lesson_access(course_setup["lesson"].id, 1, "student")

    @pytest.mark.parametrize("role", ["admin", "super_admin"])
    async def test_admin_bypasses_enrollment(self, access_service, course_setup, role):
        result = await access_service.check_lesson_access(course_setup["lesson"].id, 999, role)

        assert result.can_access is True
        assert result.reason == AccessReason.ADMIN

    async def test_owning_instructor(self, access_service, course_setup):
        result = await access_service.check_lesson_access(
            course_setup["lesson"].id, course_setup["instructor"].id, "instructor"
        )

        assert result.can_access is True
        assert result.reason == AccessReason.INSTRUCTOR

    async def test_preview_lesson_without_enrollment(self, access_service, course_setup):
        result = await access_service.check_lesson_access(
            course_setup["preview"].id, course_setup["student"].id, "student"
        )

        assert result.can_access is True
        assert result.reason == AccessReason.PREVIEW
        assert result.enrollment is None

    async def test_no_enrollment_is_denied(self, access_service, course_setup):
        result = await access_service.check_lesson_access(
            course_setup["lesson"].id, course_setup["student"].id, "student"
        )

        assert result.can_access is False
        assert result.reason == AccessReason.DENIED
        assert result.enrollment is None

    async def test_lifetime_enrollment_has_no_days_remaining(self, access_service, course_setup, seed):
        await seed.enrollment(course_setup["student"], course_setup["course"])

        result = await access_service.check_lesson_access(
            course_setup["lesson"].id, course_setup["student"].id, "student"
        )

        assert result.can_access is True
        assert result.reason == AccessReason.ENROLLED
        assert result.enrollment.days_remaining is None
        assert result.enrollment.is_expired is False
        assert result.enrollment.enrollment_type == "Standard"

    async def test_enrollment_expiring_in_five_days(self, access_service, course_setup, seed):
        premium = await seed.enrollment_type()
        await seed.enrollment(
            course_setup["student"], course_setup["course"],
            expires_in=timedelta(days=5), enrollment_type=premium,
        )

        result = await access_service.check_lesson_access(
            course_setup["lesson"].id, course_setup["student"].id, "student"
        )

        assert result.can_access is True
        assert result.enrollment.days_remaining == 5
        assert result.enrollment.enrollment_type == "Premium"

    async def test_expired_enrollment_is_denied_and_reported(self, access_service, course_setup, seed):
        await seed.enrollment(
            course_setup["student"], course_setup["course"], expires_in=timedelta(days=-1)
        )

        result = await access_service.check_lesson_access(
            course_setup["lesson"].id, course_setup["student"].id, "student"
        )

        assert result.can_access is False
        assert result.reason == AccessReason.DENIED
        assert result.enrollment.is_expired is True
        assert result.enrollment.days_remaining == 0

    async def test_soft_deleted_enrollment_is_ignored(self, access_service, course_setup, seed):
        await seed.enrollment(course_setup["student"], course_setup["course"], is_deleted=True)

        result = await access_service.check_lesson_access(
            course_setup["lesson"].id, course_setup["student"].id, "student"
        )

        assert result.reason == AccessReason.DENIED


class TestCourseLessons:
    """Tests for the annotated course outline"""

    async def test_anonymous_sees_only_previews_accessible(self, access_service, course_setup):
        result = await access_service.get_course_lessons(course_setup["course"].id)

        access = {item.id: item.can_access for item in result.lessons}
        assert access == {course_setup["lesson"].id: False, course_setup["preview"].id: True}

    async def test_enrolled_student_sees_everything(self, access_service, course_setup, seed):
        await seed.enrollment(course_setup["student"], course_setup["course"])

        result = await access_service.get_course_lessons(
            course_setup["course"].id, course_setup["student"].id, "student"
        )

        reasons = {item.id: item.access_reason for item in result.lessons}
        assert reasons[course_setup["lesson"].id] == AccessReason.ENROLLED
        assert reasons[course_setup["preview"].id] == AccessReason.PREVIEW

    async def test_lessons_follow_section_then_lesson_order(self, access_service, seed):
        instructor = await seed.user("instructor")
        course = await seed.course(instructor)
        second = await seed.section(course, display_order=2)
        first = await seed.section(course, display_order=1)
        b = await seed.lesson(second, display_order=0)
        a2 = await seed.lesson(first, display_order=5)
        a1 = await seed.lesson(first, display_order=1)
        await seed.lesson(first, display_order=3, is_deleted=True)

        result = await access_service.get_course_lessons(course.id)

        assert [item.id for item in result.lessons] == [a1.id, a2.id, b.id]

    async def test_missing_course_raises_not_found(self, access_service):
        with pytest.raises(ResourceNotFoundException):
            await access_service.get_course_lessons(12345)


class TestGetLesson:
    """Tests for fetching lesson content"""

    async def test_denied_user_gets_access_denied(self, access_service, course_setup):
        user = CurrentUser(user_id=course_setup["student"].id, roles=["student"])

        with pytest.raises(AccessDeniedException):
            await access_service.get_lesson(course_setup["lesson"].id, user)

    async def test_enrolled_user_gets_content(self, access_service, course_setup, seed):
        await seed.enrollment(course_setup["student"], course_setup["course"])
        user = CurrentUser(user_id=course_setup["student"].id, roles=["student"])

        lesson = await access_service.get_lesson(course_setup["lesson"].id, user)

        assert lesson.content == "Lesson body"
        assert lesson.course_id == course_setup["course"].id
        assert lesson.access.reason == AccessReason.ENROLLED
