"""
Services module containing the application-layer commands and queries.
"""

from .course_service import CourseService
from .enrollment_service import EnrollmentService
from .student_service import StudentService

__all__ = [
    "StudentService",
    "CourseService",
    "EnrollmentService",
]
