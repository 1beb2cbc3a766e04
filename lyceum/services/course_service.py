"""
Course commands and queries.
"""

import logging
import threading
from typing import Callable, List, Optional

from ..core.entities import Course
from ..core.enums import ErrorCode
from ..core.exceptions import DuplicateEntityError, ResourceNotFoundError, StateError
from ..core.interfaces import UnitOfWorkPort
from ..core.value_objects import CourseCode, CourseId


logger = logging.getLogger(__name__)


def load_course(uow: UnitOfWorkPort, course_id) -> Course:
    """Load a course or raise ``ResourceNotFoundError``."""
    course = uow.courses.get_by_id(CourseId.from_string(str(course_id)))
    if course is None:
        raise ResourceNotFoundError(
            f"Course {course_id} not found",
            error_code=ErrorCode.NOT_FOUND,
            details={"course_id": str(course_id)},
        )
    return course


class CourseService:
    """Service for managing the course catalogue."""

    def __init__(self, uow_factory: Callable[[], UnitOfWorkPort]):
        self._uow_factory = uow_factory
        self._lock = threading.RLock()

    def create_course(self, code: str, name: str, description: Optional[str], credit_hours: int,
                      department: str, max_enrollment: int = Course.DEFAULT_MAX_ENROLLMENT) -> Course:
        """Create a course; course codes must be unique."""
        course_code = CourseCode(str(code))
        with self._lock, self._uow_factory() as uow:
            if not uow.courses.is_course_code_unique(course_code):
                logger.warning("Rejected course creation: code %s already exists", course_code)
                raise DuplicateEntityError(
                    f"A course with code {course_code} already exists",
                    error_code=ErrorCode.DUPLICATE_COURSE_CODE,
                    details={"code": course_code.value},
                )

            course = Course.create(course_code, name, description, credit_hours, department, max_enrollment)
            uow.courses.add(course)
            uow.save_changes()

        logger.info("Created course %s (%s)", course.id, course_code)
        return course

    def get_course(self, course_id) -> Course:
        """Get a course by ID."""
        with self._uow_factory() as uow:
            return load_course(uow, course_id)

    def get_course_by_code(self, code: str) -> Course:
        """Get a course by its code."""
        course_code = CourseCode(str(code))
        with self._uow_factory() as uow:
            course = uow.courses.get_by_code(course_code)
        if course is None:
            raise ResourceNotFoundError(
                f"Course {course_code} not found",
                error_code=ErrorCode.NOT_FOUND,
                details={"code": course_code.value},
            )
        return course

    def list_courses(self, department: Optional[str] = None, active_only: bool = False,
                     available_only: bool = False) -> List[Course]:
        """List courses filtered by department, activity or free seats."""
        with self._uow_factory() as uow:
            if department and department.strip():
                courses = uow.courses.get_by_department(department)
            else:
                courses = uow.courses.get_all()

        if active_only:
            courses = [c for c in courses if c.is_active]
        if available_only:
            courses = [c for c in courses if c.can_enroll()]
        return courses

    def update_course(self, course_id, name: str, description: Optional[str], credit_hours: int,
                      department: str) -> Course:
        """Update descriptive course information."""
        with self._lock, self._uow_factory() as uow:
            course = load_course(uow, course_id)
            course.update_course_info(name, description, credit_hours, department)
            uow.courses.update(course)
            uow.save_changes()

        logger.info("Updated course %s", course.id)
        return course

    def update_max_enrollment(self, course_id, max_enrollment: int) -> Course:
        """Change a course's capacity."""
        with self._lock, self._uow_factory() as uow:
            course = load_course(uow, course_id)
            course.update_max_enrollment(max_enrollment)
            uow.courses.update(course)
            uow.save_changes()

        logger.info("Set max enrollment of course %s to %d", course.id, max_enrollment)
        return course

    def add_prerequisite(self, course_id, prerequisite_course_id) -> Course:
        """Add an existing course as a prerequisite."""
        with self._lock, self._uow_factory() as uow:
            course = load_course(uow, course_id)
            prerequisite_id = CourseId.from_string(str(prerequisite_course_id))
            if prerequisite_id != course.id and not uow.courses.exists(prerequisite_id):
                raise ResourceNotFoundError(
                    f"Prerequisite course {prerequisite_id} not found",
                    error_code=ErrorCode.NOT_FOUND,
                    details={"course_id": str(prerequisite_id)},
                )

            course.add_prerequisite(prerequisite_id)
            uow.courses.update(course)
            uow.save_changes()

        logger.info("Added prerequisite %s to course %s", prerequisite_id, course.id)
        return course

    def remove_prerequisite(self, course_id, prerequisite_course_id) -> Course:
        """Remove a prerequisite; removing an absent one changes nothing."""
        with self._lock, self._uow_factory() as uow:
            course = load_course(uow, course_id)
            prerequisite_id = CourseId.from_string(str(prerequisite_course_id))
            version = course.version
            course.remove_prerequisite(prerequisite_id)
            if course.version != version:
                uow.courses.update(course)
                uow.save_changes()
                logger.info("Removed prerequisite %s from course %s", prerequisite_id, course.id)

        return course

    def deactivate_course(self, course_id) -> Course:
        """Stop a course from accepting enrollments."""
        with self._lock, self._uow_factory() as uow:
            course = load_course(uow, course_id)
            course.deactivate()
            uow.courses.update(course)
            uow.save_changes()

        logger.info("Deactivated course %s", course.id)
        return course

    def reactivate_course(self, course_id) -> Course:
        """Let a course accept enrollments again."""
        with self._lock, self._uow_factory() as uow:
            course = load_course(uow, course_id)
            course.reactivate()
            uow.courses.update(course)
            uow.save_changes()

        logger.info("Reactivated course %s", course.id)
        return course

    def delete_course(self, course_id) -> None:
        """Delete a course with no active enrollments, together with its history."""
        with self._lock, self._uow_factory() as uow:
            course = load_course(uow, course_id)
            if course.active_enrollments:
                logger.warning("Rejected deletion of course %s: active enrollments exist", course.id)
                raise StateError(
                    "Cannot delete a course with active enrollments",
                    error_code=ErrorCode.HAS_ACTIVE_ENROLLMENTS,
                    details={"active_enrollments": len(course.active_enrollments)},
                )

            for dependent in uow.courses.find(lambda c: course.id in c.prerequisites):
                dependent.remove_prerequisite(course.id)
                uow.courses.update(dependent)
            uow.courses.remove(course)
            uow.save_changes()

        logger.info("Deleted course %s", course.id)
