"""
Repository implementations of the persistence ports.

Aggregates are stored as JSON documents in the ``entities`` table. Reads go
straight to the database; writes are staged on the owning unit of work and
only applied when it saves its changes.
"""

import json
import uuid
from abc import abstractmethod
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, Generic, List, Optional, TypeVar

from ..core.entities import AbstractEntity, Course, Enrollment, Grade, Student
from ..core.enums import EnrollmentStatus
from ..core.exceptions import PersistenceError
from ..core.interfaces import CoursePort, EnrollmentPort, PersistencePort, Predicate, StudentPort
from ..core.value_objects import CourseCode, CourseId, Email, StudentId
from .database import DatabaseManager, Query

if TYPE_CHECKING:
    from .unit_of_work import UnitOfWork

T = TypeVar('T', bound=AbstractEntity)


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _restore_metadata(entity: AbstractEntity, data: Dict[str, Any]) -> None:
    """Restore the bookkeeping fields set by the entity base class."""
    entity._created_at = datetime.fromisoformat(data["created_at"])
    entity._updated_at = datetime.fromisoformat(data["updated_at"])
    entity._version = data["version"]


class BaseRepository(PersistencePort[T, Any], Generic[T]):
    """Base repository implementation with common functionality."""

    def __init__(self, database: DatabaseManager, entity_type: str, unit_of_work: "UnitOfWork"):
        self._database = database
        self._entity_type = entity_type
        self._unit_of_work = unit_of_work

    def get_by_id(self, entity_id: Any) -> Optional[T]:
        """Find entity by ID."""
        query = "SELECT data FROM entities WHERE id = ? AND type = ?"
        results = self._database.execute_query(query, (str(entity_id), self._entity_type))
        return self._load(results[0]) if results else None

    def get_all(self) -> List[T]:
        """Get all entities in creation order."""
        query = "SELECT data FROM entities WHERE type = ? ORDER BY created_at"
        return [self._load(row) for row in self._database.execute_query(query, (self._entity_type,))]

    def find(self, predicate: Predicate) -> List[T]:
        """Find all entities matching a predicate."""
        return [entity for entity in self.get_all() if predicate(entity)]

    def first_or_none(self, predicate: Predicate) -> Optional[T]:
        """Find the first entity matching a predicate."""
        for entity in self.get_all():
            if predicate(entity):
                return entity
        return None

    def add(self, entity: T) -> None:
        """Stage a new entity."""
        self._unit_of_work.register_new(self, entity)

    def update(self, entity: T) -> None:
        """Stage changes to an existing entity."""
        self._unit_of_work.register_dirty(self, entity)

    def remove(self, entity: T) -> None:
        """Stage removal of an entity."""
        self._unit_of_work.register_removed(self, entity)

    def exists(self, entity_id: Any) -> bool:
        """Check whether an entity with the ID is stored."""
        query = "SELECT 1 FROM entities WHERE id = ? AND type = ?"
        return bool(self._database.execute_query(query, (str(entity_id), self._entity_type)))

    def count(self, predicate: Optional[Predicate] = None) -> int:
        """Count entities, optionally matching a predicate."""
        if predicate is not None:
            return len(self.find(predicate))

        query = "SELECT COUNT(*) as count FROM entities WHERE type = ?"
        results = self._database.execute_query(query, (self._entity_type,))
        return results[0]["count"] if results else 0

    def _find_by_field(self, field: str, value: Any) -> List[T]:
        """Find entities whose JSON document has ``field`` equal to ``value``."""
        query = (
            "SELECT data FROM entities WHERE type = ? AND json_extract(data, ?) = ? "
            "ORDER BY created_at"
        )
        rows = self._database.execute_query(query, (self._entity_type, f"$.{field}", value))
        return [self._load(row) for row in rows]

    def _load(self, row: Dict[str, Any]) -> T:
        try:
            return self._entity_from_dict(json.loads(row["data"]))
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(
                f"Failed to load {self._entity_type}: {str(e)}",
                details={"entity_type": self._entity_type},
            ) from e

    def insert_query(self, entity: T) -> Query:
        query = """
            INSERT INTO entities (id, type, data, created_at, updated_at, version, status)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """
        params = (
            str(entity.id),
            self._entity_type,
            json.dumps(entity.to_dict()),
            entity.created_at.isoformat(),
            entity.updated_at.isoformat(),
            entity.version,
            self._status_of(entity),
        )
        return query, params

    def update_query(self, entity: T) -> Query:
        query = """
            UPDATE entities
            SET data = ?, updated_at = ?, version = ?, status = ?
            WHERE id = ? AND type = ?
        """
        params = (
            json.dumps(entity.to_dict()),
            entity.updated_at.isoformat(),
            entity.version,
            self._status_of(entity),
            str(entity.id),
            self._entity_type,
        )
        return query, params

    def delete_query(self, entity: T) -> Query:
        return "DELETE FROM entities WHERE id = ? AND type = ?", (str(entity.id), self._entity_type)

    @abstractmethod
    def _status_of(self, entity: T) -> str:
        """Value for the status column."""
        pass

    @abstractmethod
    def _entity_from_dict(self, data: Dict[str, Any]) -> T:
        """Convert dictionary to entity instance."""
        pass


class EnrollmentRepository(BaseRepository[Enrollment], EnrollmentPort):
    """Repository for Enrollment entities, with their grades embedded."""

    def __init__(self, database: DatabaseManager, unit_of_work: "UnitOfWork"):
        super().__init__(database, "enrollment", unit_of_work)

    def _status_of(self, entity: Enrollment) -> str:
        return entity.status.value

    def _entity_from_dict(self, data: Dict[str, Any]) -> Enrollment:
        """Convert dictionary to Enrollment instance."""
        enrollment = Enrollment(
            student_id=StudentId.from_string(data["student_id"]),
            course_id=CourseId.from_string(data["course_id"]),
            credit_hours=data["credit_hours"],
            entity_id=uuid.UUID(data["id"]),
            enrollment_date=datetime.fromisoformat(data["enrollment_date"]),
        )
        enrollment._status = EnrollmentStatus(data["status"])
        enrollment._completion_date = _parse_datetime(data.get("completion_date"))
        if data.get("grade"):
            enrollment._grade = self._grade_from_dict(data["grade"])
        _restore_metadata(enrollment, data)
        return enrollment

    @staticmethod
    def _grade_from_dict(data: Dict[str, Any]) -> Grade:
        grade = Grade(
            letter_grade=data["letter_grade"],
            grade_points=data["grade_points"],
            graded_by=data["graded_by"],
            numeric_score=data.get("numeric_score"),
            comments=data.get("comments"),
            entity_id=uuid.UUID(data["id"]),
            graded_date=datetime.fromisoformat(data["graded_date"]),
        )
        _restore_metadata(grade, data)
        return grade

    def get_by_student(self, student_id: StudentId) -> List[Enrollment]:
        return self._find_by_field("student_id", str(student_id))

    def get_by_course(self, course_id: CourseId) -> List[Enrollment]:
        return self._find_by_field("course_id", str(course_id))

    def get_active_enrollment(self, student_id: StudentId, course_id: CourseId) -> Optional[Enrollment]:
        for enrollment in self.get_by_student(student_id):
            if enrollment.course_id == course_id and enrollment.is_active:
                return enrollment
        return None

    def get_completed_enrollments(self, student_id: StudentId) -> List[Enrollment]:
        return [e for e in self.get_by_student(student_id) if e.is_completed]

    def is_student_enrolled(self, student_id: StudentId, course_id: CourseId) -> bool:
        return self.get_active_enrollment(student_id, course_id) is not None


class StudentRepository(BaseRepository[Student], StudentPort):
    """Repository for Student aggregates."""

    def __init__(self, database: DatabaseManager, unit_of_work: "UnitOfWork",
                 enrollments: EnrollmentRepository):
        super().__init__(database, "student", unit_of_work)
        self._enrollments = enrollments

    def _status_of(self, entity: Student) -> str:
        return "active" if entity.is_active else "inactive"

    def _entity_from_dict(self, data: Dict[str, Any]) -> Student:
        """Convert dictionary to Student instance."""
        student = Student(
            first_name=data["first_name"],
            last_name=data["last_name"],
            email=Email(data["email"]),
            date_of_birth=date.fromisoformat(data["date_of_birth"]),
            entity_id=StudentId.from_string(data["id"]),
            enrollment_date=datetime.fromisoformat(data["enrollment_date"]),
        )
        student._is_active = data["is_active"]
        student._enrollments = self._enrollments.get_by_student(student.id)
        _restore_metadata(student, data)
        return student

    def remove(self, entity: Student) -> None:
        """Stage removal of the student together with its enrollments."""
        for enrollment in self._enrollments.get_by_student(entity.id):
            self._enrollments.remove(enrollment)
        super().remove(entity)

    def get_by_email(self, email: Email) -> Optional[Student]:
        students = self._find_by_field("email", email.value)
        return students[0] if students else None

    def get_active_students(self) -> List[Student]:
        return self.find(lambda s: s.is_active)

    def search_by_name(self, term: str) -> List[Student]:
        needle = term.strip().lower()
        return self.find(lambda s: needle in s.full_name.lower())

    def is_email_unique(self, email: Email, exclude_id: Optional[StudentId] = None) -> bool:
        existing = self.get_by_email(email)
        return existing is None or existing.id == exclude_id


class CourseRepository(BaseRepository[Course], CoursePort):
    """Repository for Course aggregates."""

    def __init__(self, database: DatabaseManager, unit_of_work: "UnitOfWork",
                 enrollments: EnrollmentRepository):
        super().__init__(database, "course", unit_of_work)
        self._enrollments = enrollments

    def _status_of(self, entity: Course) -> str:
        return "active" if entity.is_active else "inactive"

    def _entity_from_dict(self, data: Dict[str, Any]) -> Course:
        """Convert dictionary to Course instance."""
        course = Course(
            code=CourseCode(data["code"]),
            name=data["name"],
            description=data.get("description", ""),
            credit_hours=data["credit_hours"],
            department=data["department"],
            max_enrollment=data["max_enrollment"],
            entity_id=CourseId.from_string(data["id"]),
        )
        course._is_active = data["is_active"]
        course._prerequisites = [CourseId.from_string(p) for p in data.get("prerequisites", [])]
        course._enrollments = self._enrollments.get_by_course(course.id)
        _restore_metadata(course, data)
        return course

    def remove(self, entity: Course) -> None:
        """Stage removal of the course together with its enrollments."""
        for enrollment in self._enrollments.get_by_course(entity.id):
            self._enrollments.remove(enrollment)
        super().remove(entity)

    def get_by_code(self, code: CourseCode) -> Optional[Course]:
        courses = self._find_by_field("code", code.value)
        return courses[0] if courses else None

    def get_active_courses(self) -> List[Course]:
        return self.find(lambda c: c.is_active)

    def get_by_department(self, department: str) -> List[Course]:
        wanted = department.strip().lower()
        return self.find(lambda c: c.department.lower() == wanted)

    def get_available_courses(self) -> List[Course]:
        return self.find(lambda c: c.can_enroll())

    def is_course_code_unique(self, code: CourseCode, exclude_id: Optional[CourseId] = None) -> bool:
        existing = self.get_by_code(code)
        return existing is None or existing.id == exclude_id
