"""
Lyceum: Student, Course and Enrollment Administration

A platform for administering students, courses, enrollments and grades for an
academic institution, with a pure in-memory domain model, a SQLite-backed
persistence adapter, application services and a REST API.
"""

__version__ = "1.0.0"
__author__ = "Lyceum Development Team"
__description__ = "Student, Course and Enrollment Administration"
