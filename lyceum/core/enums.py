"""
Enumerations and constants for the Lyceum platform.
"""

from enum import Enum


class EnrollmentStatus(str, Enum):
    """Lifecycle state of an enrollment."""
    ACTIVE = "active"
    COMPLETED = "completed"
    WITHDRAWN = "withdrawn"


class LetterGrade(str, Enum):
    """Letter grades, including the Incomplete and Withdrawn markers."""
    A_PLUS = "A+"
    A = "A"
    A_MINUS = "A-"
    B_PLUS = "B+"
    B = "B"
    B_MINUS = "B-"
    C_PLUS = "C+"
    C = "C"
    C_MINUS = "C-"
    D_PLUS = "D+"
    D = "D"
    D_MINUS = "D-"
    F = "F"
    INCOMPLETE = "I"
    WITHDRAWN = "W"


class ErrorCode(str, Enum):
    """Machine-readable codes attached to raised exceptions."""
    # Validation
    INVALID_IDENTIFIER = "invalid_identifier"
    INVALID_EMAIL = "invalid_email"
    INVALID_COURSE_CODE = "invalid_course_code"
    INVALID_GPA = "invalid_gpa"
    INVALID_NAME = "invalid_name"
    INVALID_AGE = "invalid_age"
    INVALID_DEPARTMENT = "invalid_department"
    INVALID_MAX_ENROLLMENT = "invalid_max_enrollment"
    INVALID_CREDIT_HOURS = "invalid_credit_hours"
    INVALID_GRADE = "invalid_grade"
    INVALID_GRADE_POINTS = "invalid_grade_points"
    INVALID_NUMERIC_SCORE = "invalid_numeric_score"
    INVALID_GRADER = "invalid_grader"
    INVALID_COMMENTS = "invalid_comments"
    INVALID_DESCRIPTION = "invalid_description"
    INVALID_STATUS = "invalid_status"

    # State
    NOT_ACTIVE = "not_active"
    MISSING_GRADE = "missing_grade"
    ALREADY_COMPLETED = "already_completed"
    SELF_PREREQUISITE = "self_prerequisite"
    DUPLICATE_PREREQUISITE = "duplicate_prerequisite"
    MISMATCHED_COURSE = "mismatched_course"
    MISMATCHED_STUDENT = "mismatched_student"
    COURSE_FULL = "course_full"
    DUPLICATE_ACTIVE_ENROLLMENT = "duplicate_active_enrollment"

    # Application
    NOT_FOUND = "not_found"
    DUPLICATE_EMAIL = "duplicate_email"
    DUPLICATE_COURSE_CODE = "duplicate_course_code"
    HAS_ACTIVE_ENROLLMENTS = "has_active_enrollments"
    STUDENT_INACTIVE = "student_inactive"
