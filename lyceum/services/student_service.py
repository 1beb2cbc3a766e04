"""
Student commands and queries.
"""

import logging
import threading
from datetime import date
from typing import Callable, List, Optional

from ..core.entities import Student
from ..core.enums import ErrorCode
from ..core.exceptions import DuplicateEntityError, ResourceNotFoundError, StateError
from ..core.interfaces import UnitOfWorkPort
from ..core.value_objects import GPA, Email, StudentId


logger = logging.getLogger(__name__)


def load_student(uow: UnitOfWorkPort, student_id) -> Student:
    """Load a student or raise ``ResourceNotFoundError``."""
    student = uow.students.get_by_id(StudentId.from_string(str(student_id)))
    if student is None:
        raise ResourceNotFoundError(
            f"Student {student_id} not found",
            error_code=ErrorCode.NOT_FOUND,
            details={"student_id": str(student_id)},
        )
    return student


class StudentService:
    """Service for managing student records."""

    def __init__(self, uow_factory: Callable[[], UnitOfWorkPort]):
        self._uow_factory = uow_factory
        self._lock = threading.RLock()

    def create_student(self, first_name: str, last_name: str, email: str, date_of_birth: date) -> Student:
        """Register a new student; e-mail addresses must be unique."""
        email_value = Email(str(email))
        with self._lock, self._uow_factory() as uow:
            if not uow.students.is_email_unique(email_value):
                logger.warning("Rejected student registration: email %s already in use", email_value)
                raise DuplicateEntityError(
                    f"A student with email {email_value} already exists",
                    error_code=ErrorCode.DUPLICATE_EMAIL,
                    details={"email": email_value.value},
                )

            student = Student.create(first_name, last_name, email_value, date_of_birth)
            uow.students.add(student)
            uow.save_changes()

        logger.info("Created student %s (%s)", student.id, email_value)
        return student

    def get_student(self, student_id) -> Student:
        """Get a student by ID."""
        with self._uow_factory() as uow:
            return load_student(uow, student_id)

    def list_students(self, active_only: bool = False, search: Optional[str] = None) -> List[Student]:
        """List students, optionally only active ones or those matching a name."""
        with self._uow_factory() as uow:
            if search and search.strip():
                students = uow.students.search_by_name(search)
            else:
                students = uow.students.get_all()

        if active_only:
            students = [s for s in students if s.is_active]
        return students

    def update_student(self, student_id, first_name: str, last_name: str, email: str) -> Student:
        """Update a student's name and e-mail address."""
        email_value = Email(str(email))
        with self._lock, self._uow_factory() as uow:
            student = load_student(uow, student_id)
            if not uow.students.is_email_unique(email_value, exclude_id=student.id):
                logger.warning("Rejected update of student %s: email %s already in use", student.id, email_value)
                raise DuplicateEntityError(
                    f"A student with email {email_value} already exists",
                    error_code=ErrorCode.DUPLICATE_EMAIL,
                    details={"email": email_value.value},
                )

            student.update_personal_info(first_name, last_name, email_value)
            uow.students.update(student)
            uow.save_changes()

        logger.info("Updated student %s", student.id)
        return student

    def deactivate_student(self, student_id) -> Student:
        """Deactivate a student."""
        with self._lock, self._uow_factory() as uow:
            student = load_student(uow, student_id)
            student.deactivate()
            uow.students.update(student)
            uow.save_changes()

        logger.info("Deactivated student %s", student.id)
        return student

    def reactivate_student(self, student_id) -> Student:
        """Reactivate a student."""
        with self._lock, self._uow_factory() as uow:
            student = load_student(uow, student_id)
            student.reactivate()
            uow.students.update(student)
            uow.save_changes()

        logger.info("Reactivated student %s", student.id)
        return student

    def delete_student(self, student_id) -> None:
        """Delete a student with no active enrollments, together with its history."""
        with self._lock, self._uow_factory() as uow:
            student = load_student(uow, student_id)
            if student.active_enrollments:
                logger.warning("Rejected deletion of student %s: active enrollments exist", student.id)
                raise StateError(
                    "Cannot delete a student with active enrollments",
                    error_code=ErrorCode.HAS_ACTIVE_ENROLLMENTS,
                    details={"active_enrollments": len(student.active_enrollments)},
                )

            uow.students.remove(student)
            uow.save_changes()

        logger.info("Deleted student %s", student.id)

    def calculate_gpa(self, student_id) -> GPA:
        """Compute a student's GPA from completed, graded enrollments."""
        return self.get_student(student_id).calculate_gpa()
