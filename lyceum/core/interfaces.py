"""
Persistence ports consumed by the application layer.

The domain cannot see other aggregates, so global lookups (e-mail and course
code uniqueness, the active enrollment for a student/course pair) are part of
these contracts and are answered by the storage adapter.
"""

from abc import ABC, abstractmethod
from typing import Callable, Generic, List, Optional, TypeVar

from .entities import Course, Enrollment, Student
from .value_objects import CourseCode, CourseId, Email, StudentId


T = TypeVar('T')
K = TypeVar('K')

Predicate = Callable[[T], bool]


class PersistencePort(ABC, Generic[T, K]):
    """Abstract base class for aggregate repositories.

    ``add``, ``update`` and ``remove`` only stage a mutation; nothing is
    durable until the owning unit of work saves its changes.
    """

    @abstractmethod
    def get_by_id(self, entity_id: K) -> Optional[T]:
        """Find entity by ID."""
        pass

    @abstractmethod
    def get_all(self) -> List[T]:
        """Get all entities."""
        pass

    @abstractmethod
    def find(self, predicate: Predicate) -> List[T]:
        """Find all entities matching a predicate."""
        pass

    @abstractmethod
    def first_or_none(self, predicate: Predicate) -> Optional[T]:
        """Find the first entity matching a predicate."""
        pass

    @abstractmethod
    def add(self, entity: T) -> None:
        """Stage a new entity."""
        pass

    @abstractmethod
    def update(self, entity: T) -> None:
        """Stage changes to an existing entity."""
        pass

    @abstractmethod
    def remove(self, entity: T) -> None:
        """Stage removal of an entity."""
        pass

    @abstractmethod
    def exists(self, entity_id: K) -> bool:
        """Check whether an entity with the ID is stored."""
        pass

    @abstractmethod
    def count(self, predicate: Optional[Predicate] = None) -> int:
        """Count entities, optionally matching a predicate."""
        pass


class StudentPort(PersistencePort[Student, StudentId]):
    """Student lookups."""

    @abstractmethod
    def get_by_email(self, email: Email) -> Optional[Student]:
        pass

    @abstractmethod
    def get_active_students(self) -> List[Student]:
        pass

    @abstractmethod
    def search_by_name(self, term: str) -> List[Student]:
        pass

    @abstractmethod
    def is_email_unique(self, email: Email, exclude_id: Optional[StudentId] = None) -> bool:
        pass


class CoursePort(PersistencePort[Course, CourseId]):
    """Course lookups."""

    @abstractmethod
    def get_by_code(self, code: CourseCode) -> Optional[Course]:
        pass

    @abstractmethod
    def get_active_courses(self) -> List[Course]:
        pass

    @abstractmethod
    def get_by_department(self, department: str) -> List[Course]:
        pass

    @abstractmethod
    def get_available_courses(self) -> List[Course]:
        """Active courses with at least one free seat."""
        pass

    @abstractmethod
    def is_course_code_unique(self, code: CourseCode, exclude_id: Optional[CourseId] = None) -> bool:
        pass


class EnrollmentPort(PersistencePort[Enrollment, object]):
    """Enrollment lookups."""

    @abstractmethod
    def get_by_student(self, student_id: StudentId) -> List[Enrollment]:
        pass

    @abstractmethod
    def get_by_course(self, course_id: CourseId) -> List[Enrollment]:
        pass

    @abstractmethod
    def get_active_enrollment(self, student_id: StudentId, course_id: CourseId) -> Optional[Enrollment]:
        pass

    @abstractmethod
    def get_completed_enrollments(self, student_id: StudentId) -> List[Enrollment]:
        pass

    @abstractmethod
    def is_student_enrolled(self, student_id: StudentId, course_id: CourseId) -> bool:
        pass


class UnitOfWorkPort(ABC):
    """Transaction coordination over the three repositories."""

    students: StudentPort
    courses: CoursePort
    enrollments: EnrollmentPort

    @abstractmethod
    def save_changes(self) -> int:
        """Durably commit staged mutations and return how many were applied."""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Discard staged mutations."""
        pass

    def __enter__(self) -> "UnitOfWorkPort":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.rollback()
