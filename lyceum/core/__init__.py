"""
Core module containing the academic domain model.
"""

from .entities import AbstractEntity, Course, Enrollment, Grade, Student
from .enums import EnrollmentStatus, ErrorCode, LetterGrade
from .exceptions import (
    ConfigurationError,
    DuplicateEntityError,
    LyceumException,
    PersistenceError,
    ResourceNotFoundError,
    StateError,
    ValidationError,
)
from .interfaces import CoursePort, EnrollmentPort, PersistencePort, StudentPort, UnitOfWorkPort
from .value_objects import GPA, CourseCode, CourseId, Email, StudentId

__all__ = [
    # Entities
    "AbstractEntity",
    "Grade",
    "Enrollment",
    "Course",
    "Student",

    # Value objects
    "StudentId",
    "CourseId",
    "Email",
    "CourseCode",
    "GPA",

    # Interfaces
    "PersistencePort",
    "StudentPort",
    "CoursePort",
    "EnrollmentPort",
    "UnitOfWorkPort",

    # Enums
    "EnrollmentStatus",
    "LetterGrade",
    "ErrorCode",

    # Exceptions
    "LyceumException",
    "ValidationError",
    "StateError",
    "ResourceNotFoundError",
    "DuplicateEntityError",
    "PersistenceError",
    "ConfigurationError",
]
