from fastapi import APIRouter

from lms_service.api.v1.endpoints import (
    assignment_controller,
    enrollment_controller,
    lesson_controller,
    notification_controller,
    quiz_controller,
    quiz_student_controller,
)

api_router = APIRouter()

# Lesson access endpoints
api_router.include_router(lesson_controller.router)

# Quiz endpoints (grading, then taking)
api_router.include_router(quiz_controller.router)
api_router.include_router(quiz_student_controller.router)

# Grading endpoints
api_router.include_router(assignment_controller.router)

# Enrollment endpoints
api_router.include_router(enrollment_controller.router)

# Notification endpoints (REST + socket)
api_router.include_router(notification_controller.router)
