"""
Persistence module for document storage of the academic aggregates.
"""

from .database import DatabaseFactory, DatabaseManager, SQLiteDatabase
from .repositories import BaseRepository, CourseRepository, EnrollmentRepository, StudentRepository
from .unit_of_work import UnitOfWork, unit_of_work_factory

__all__ = [
    "DatabaseManager",
    "SQLiteDatabase",
    "DatabaseFactory",
    "BaseRepository",
    "StudentRepository",
    "CourseRepository",
    "EnrollmentRepository",
    "UnitOfWork",
    "unit_of_work_factory",
]
