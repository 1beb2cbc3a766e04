"""
Enrollment lifecycle and grading commands.

The service enforces the rules a single aggregate cannot see: the student
must be active and must not already hold an active enrollment in the course,
as recorded in storage. Capacity is enforced by the course aggregate.
"""

import logging
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional, Union

from ..core.entities import Enrollment, Grade
from ..core.enums import EnrollmentStatus, ErrorCode, LetterGrade
from ..core.exceptions import (
    DuplicateEntityError, ResourceNotFoundError, StateError, ValidationError
)
from ..core.interfaces import UnitOfWorkPort
from ..core.value_objects import CourseId, Number, StudentId
from .course_service import load_course
from .student_service import load_student


logger = logging.getLogger(__name__)


def parse_enrollment_id(enrollment_id) -> uuid.UUID:
    if isinstance(enrollment_id, uuid.UUID):
        return enrollment_id
    try:
        return uuid.UUID(str(enrollment_id).strip())
    except ValueError:
        raise ValidationError(
            f"Invalid enrollment ID format: {enrollment_id!r}",
            error_code=ErrorCode.INVALID_IDENTIFIER,
        ) from None


def parse_status(status: Union[EnrollmentStatus, str]) -> EnrollmentStatus:
    if isinstance(status, EnrollmentStatus):
        return status
    try:
        return EnrollmentStatus(str(status).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Invalid enrollment status: {status!r}",
            error_code=ErrorCode.INVALID_STATUS,
        ) from None


def load_enrollment(uow: UnitOfWorkPort, enrollment_id) -> Enrollment:
    """Load an enrollment or raise ``ResourceNotFoundError``."""
    enrollment = uow.enrollments.get_by_id(parse_enrollment_id(enrollment_id))
    if enrollment is None:
        raise ResourceNotFoundError(
            f"Enrollment {enrollment_id} not found",
            error_code=ErrorCode.NOT_FOUND,
            details={"enrollment_id": str(enrollment_id)},
        )
    return enrollment


class EnrollmentService:
    """Service for managing student enrollments and grades."""

    def __init__(self, uow_factory: Callable[[], UnitOfWorkPort]):
        self._uow_factory = uow_factory
        self._lock = threading.RLock()

    def enroll_student(self, student_id, course_id, credit_hours: Optional[int] = None) -> Enrollment:
        """Enroll a student in a course.

        Credit hours default to the course's credit hours.
        """
        with self._lock, self._uow_factory() as uow:
            student = load_student(uow, student_id)
            course = load_course(uow, course_id)

            if not student.is_active:
                logger.warning("Rejected enrollment of inactive student %s in %s", student.id, course.code)
                raise StateError(
                    "Inactive students cannot enroll",
                    error_code=ErrorCode.STUDENT_INACTIVE,
                    details={"student_id": str(student.id)},
                )
            if uow.enrollments.is_student_enrolled(student.id, course.id):
                logger.warning("Rejected duplicate enrollment of student %s in %s", student.id, course.code)
                raise DuplicateEntityError(
                    "Student is already enrolled in this course",
                    error_code=ErrorCode.DUPLICATE_ACTIVE_ENROLLMENT,
                    details={"student_id": str(student.id), "course_id": str(course.id)},
                )

            hours = credit_hours if credit_hours is not None else course.credit_hours
            enrollment = Enrollment.create(student.id, course.id, hours)
            try:
                course.add_enrollment(enrollment)
                student.add_enrollment(enrollment)
            except StateError as e:
                logger.warning("Rejected enrollment of student %s in %s: %s", student.id, course.code, e.message)
                raise

            uow.enrollments.add(enrollment)
            uow.courses.update(course)
            uow.students.update(student)
            uow.save_changes()

        logger.info("Enrolled student %s in course %s (enrollment %s)", student.id, course.code, enrollment.id)
        return enrollment

    def get_enrollment(self, enrollment_id) -> Enrollment:
        """Get an enrollment by ID."""
        with self._uow_factory() as uow:
            return load_enrollment(uow, enrollment_id)

    def list_enrollments(self, student_id=None, course_id=None,
                         status: Optional[Union[EnrollmentStatus, str]] = None) -> List[Enrollment]:
        """List enrollments filtered by student, course or status."""
        wanted_status = parse_status(status) if status is not None else None
        with self._uow_factory() as uow:
            if student_id is not None:
                enrollments = uow.enrollments.get_by_student(StudentId.from_string(str(student_id)))
                if course_id is not None:
                    wanted_course = CourseId.from_string(str(course_id))
                    enrollments = [e for e in enrollments if e.course_id == wanted_course]
            elif course_id is not None:
                enrollments = uow.enrollments.get_by_course(CourseId.from_string(str(course_id)))
            else:
                enrollments = uow.enrollments.get_all()

        if wanted_status is not None:
            enrollments = [e for e in enrollments if e.status == wanted_status]
        return enrollments

    def assign_grade(self, enrollment_id, letter_grade: Union[LetterGrade, str], grade_points: Number,
                     graded_by: str, numeric_score: Optional[Number] = None,
                     comments: Optional[str] = None) -> Enrollment:
        """Assign an explicit letter grade to an active enrollment."""
        grade = Grade.create(letter_grade, grade_points, graded_by, numeric_score, comments)
        return self._apply_grade(enrollment_id, grade)

    def assign_numeric_grade(self, enrollment_id, numeric_score: Number, graded_by: str,
                             comments: Optional[str] = None) -> Enrollment:
        """Grade an active enrollment from a 0-100 score."""
        grade = Grade.create_from_numeric_score(numeric_score, graded_by, comments)
        return self._apply_grade(enrollment_id, grade)

    def _apply_grade(self, enrollment_id, grade: Grade) -> Enrollment:
        with self._lock, self._uow_factory() as uow:
            enrollment = load_enrollment(uow, enrollment_id)
            enrollment.assign_grade(grade)
            uow.enrollments.update(enrollment)
            uow.save_changes()

        logger.info("Graded enrollment %s: %s (%s points)",
                    enrollment.id, grade.letter_grade.value, grade.grade_points)
        return enrollment

    def update_grade_comments(self, enrollment_id, comments: Optional[str]) -> Enrollment:
        """Replace the comments on an enrollment's grade."""
        with self._lock, self._uow_factory() as uow:
            enrollment = load_enrollment(uow, enrollment_id)
            try:
                enrollment.update_grade_comments(comments)
            except StateError as e:
                logger.warning("Rejected comment update on enrollment %s: %s", enrollment.id, e.message)
                raise
            uow.enrollments.update(enrollment)
            uow.save_changes()

        logger.info("Updated grade comments on enrollment %s", enrollment.id)
        return enrollment

    def complete_enrollment(self, enrollment_id) -> Enrollment:
        """Complete a graded enrollment."""
        with self._lock, self._uow_factory() as uow:
            enrollment = load_enrollment(uow, enrollment_id)
            enrollment.complete()
            uow.enrollments.update(enrollment)
            uow.save_changes()

        logger.info("Completed enrollment %s", enrollment.id)
        return enrollment

    def withdraw_enrollment(self, enrollment_id) -> Enrollment:
        """Withdraw an enrollment that is not completed."""
        with self._lock, self._uow_factory() as uow:
            enrollment = load_enrollment(uow, enrollment_id)
            enrollment.withdraw()
            uow.enrollments.update(enrollment)
            uow.save_changes()

        logger.info("Withdrew enrollment %s", enrollment.id)
        return enrollment

    def reactivate_enrollment(self, enrollment_id) -> Enrollment:
        """Reactivate a withdrawn enrollment.

        The course must still be able to accept the student and the student
        must not have enrolled in the course again in the meantime.
        """
        with self._lock, self._uow_factory() as uow:
            enrollment = load_enrollment(uow, enrollment_id)
            if enrollment.is_withdrawn:
                course = load_course(uow, enrollment.course_id)
                if not course.can_enroll():
                    logger.warning("Rejected reactivation of enrollment %s: course %s is full or inactive",
                                   enrollment.id, course.code)
                    raise StateError(
                        "Course is full or inactive",
                        error_code=ErrorCode.COURSE_FULL,
                        details={"course_id": str(course.id)},
                    )
                if uow.enrollments.is_student_enrolled(enrollment.student_id, enrollment.course_id):
                    logger.warning("Rejected reactivation of enrollment %s: student already enrolled",
                                   enrollment.id)
                    raise DuplicateEntityError(
                        "Student is already enrolled in this course",
                        error_code=ErrorCode.DUPLICATE_ACTIVE_ENROLLMENT,
                        details={"student_id": str(enrollment.student_id), "course_id": str(course.id)},
                    )

            enrollment.reactivate()
            uow.enrollments.update(enrollment)
            uow.save_changes()

        logger.info("Reactivated enrollment %s", enrollment.id)
        return enrollment

    def get_statistics(self) -> Dict[str, Any]:
        """Get enrollment statistics."""
        with self._uow_factory() as uow:
            enrollments = uow.enrollments.get_all()

        by_status = {status.value: 0 for status in EnrollmentStatus}
        for enrollment in enrollments:
            by_status[enrollment.status.value] += 1

        graded = [e for e in enrollments if e.grade is not None]
        return {
            'total_enrollments': len(enrollments),
            'by_status': by_status,
            'graded': len(graded),
            'passing': sum(1 for e in graded if e.grade.is_passing),
        }
