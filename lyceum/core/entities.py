"""
Core entities for the Lyceum academic domain.

Student and Course are the aggregate roots. Enrollment links exactly one
student to exactly one course and owns an optional Grade. Every entity
validates its input on construction, so an invalid entity can never exist;
derived values (enrollment counts, names, ages, GPA) are recomputed on every
read and never stored.
"""

import uuid
from abc import ABC
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Union

from .enums import EnrollmentStatus, ErrorCode, LetterGrade
from .exceptions import StateError, ValidationError
from .value_objects import (
    GPA, CourseCode, CourseId, Email, Number, StudentId, round_two_places, to_decimal
)


MIN_CREDIT_HOURS = 1
MAX_CREDIT_HOURS = 10

# Lower bound of each numeric tier, highest first.
NUMERIC_GRADE_SCALE: Tuple[Tuple[Decimal, LetterGrade, Decimal], ...] = (
    (Decimal("97"), LetterGrade.A_PLUS, Decimal("4.0")),
    (Decimal("93"), LetterGrade.A, Decimal("4.0")),
    (Decimal("90"), LetterGrade.A_MINUS, Decimal("3.7")),
    (Decimal("87"), LetterGrade.B_PLUS, Decimal("3.3")),
    (Decimal("83"), LetterGrade.B, Decimal("3.0")),
    (Decimal("80"), LetterGrade.B_MINUS, Decimal("2.7")),
    (Decimal("77"), LetterGrade.C_PLUS, Decimal("2.3")),
    (Decimal("73"), LetterGrade.C, Decimal("2.0")),
    (Decimal("70"), LetterGrade.C_MINUS, Decimal("1.7")),
    (Decimal("67"), LetterGrade.D_PLUS, Decimal("1.3")),
    (Decimal("63"), LetterGrade.D, Decimal("1.0")),
    (Decimal("60"), LetterGrade.D_MINUS, Decimal("0.7")),
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _validate_credit_hours(credit_hours: int) -> int:
    if (isinstance(credit_hours, bool) or not isinstance(credit_hours, int)
            or not MIN_CREDIT_HOURS <= credit_hours <= MAX_CREDIT_HOURS):
        raise ValidationError(
            f"Credit hours must be between {MIN_CREDIT_HOURS} and {MAX_CREDIT_HOURS}",
            error_code=ErrorCode.INVALID_CREDIT_HOURS,
            details={"credit_hours": credit_hours},
        )
    return credit_hours


def _validate_text(value: Optional[str], label: str, min_length: int, max_length: int,
                   error_code: ErrorCode) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} cannot be empty", error_code=error_code)

    trimmed = value.strip()
    if not min_length <= len(trimmed) <= max_length:
        raise ValidationError(
            f"{label} must be between {min_length} and {max_length} characters",
            error_code=error_code,
        )
    return trimmed


def subtract_years(day: date, years: int) -> date:
    """Return the same calendar day ``years`` earlier (29 Feb maps to 28 Feb)."""
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        return day.replace(year=day.year - years, day=28)


class AbstractEntity(ABC):
    """Base abstract entity with identity, timestamps and versioning."""

    def __init__(self, entity_id: Any):
        self._id = entity_id
        self._created_at = utc_now()
        self._updated_at = self._created_at
        self._version = 1

    @property
    def id(self):
        """Get the entity ID."""
        return self._id

    @property
    def created_at(self) -> datetime:
        """Get creation timestamp."""
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        """Get last update timestamp."""
        return self._updated_at

    @property
    def version(self) -> int:
        """Get current version."""
        return self._version

    def touch(self) -> None:
        """Record a mutation."""
        self._updated_at = utc_now()
        self._version += 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert entity to dictionary."""
        return {
            'id': str(self._id),
            'created_at': self._created_at.isoformat(),
            'updated_at': self._updated_at.isoformat(),
            'version': self._version,
        }

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._id))

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self._id})"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self._id}, version={self._version})"


class Grade(AbstractEntity):
    """Outcome of one completed assessment."""

    MIN_POINTS = Decimal("0.0")
    MAX_POINTS = Decimal("4.0")
    MIN_SCORE = Decimal("0")
    MAX_SCORE = Decimal("100")
    PASSING_POINTS = Decimal("2.0")
    HONOR_POINTS = Decimal("3.5")
    MAX_COMMENTS_LENGTH = 500
    MAX_GRADER_LENGTH = 100

    def __init__(self, letter_grade: Union[LetterGrade, str], grade_points: Number, graded_by: str,
                 numeric_score: Optional[Number] = None, comments: Optional[str] = None,
                 entity_id: Optional[uuid.UUID] = None, graded_date: Optional[datetime] = None):
        super().__init__(entity_id or uuid.uuid4())
        self._letter_grade = self._validate_letter_grade(letter_grade)
        self._grade_points = self._validate_grade_points(grade_points)
        self._numeric_score = self._validate_numeric_score(numeric_score)
        self._comments = self._validate_comments(comments)
        self._graded_by = self._validate_graded_by(graded_by)
        self._graded_date = graded_date or self._created_at

    @classmethod
    def create(cls, letter_grade: Union[LetterGrade, str], grade_points: Number, graded_by: str,
               numeric_score: Optional[Number] = None, comments: Optional[str] = None) -> "Grade":
        """Create a grade from an explicit letter grade and grade points."""
        return cls(letter_grade, grade_points, graded_by, numeric_score, comments)

    @classmethod
    def create_from_numeric_score(cls, numeric_score: Number, graded_by: str,
                                  comments: Optional[str] = None) -> "Grade":
        """Create a grade by converting a 0-100 score through the grading scale."""
        score = to_decimal(numeric_score, "Numeric score", ErrorCode.INVALID_NUMERIC_SCORE)
        letter_grade, grade_points = cls.convert_numeric_score(score)
        return cls(letter_grade, grade_points, graded_by, score, comments)

    @classmethod
    def convert_numeric_score(cls, numeric_score: Number) -> Tuple[LetterGrade, Decimal]:
        """Map a numeric score onto its letter grade and grade points."""
        score = to_decimal(numeric_score, "Numeric score", ErrorCode.INVALID_NUMERIC_SCORE)
        if not cls.MIN_SCORE <= score <= cls.MAX_SCORE:
            raise ValidationError(
                f"Numeric score must be between {cls.MIN_SCORE} and {cls.MAX_SCORE}",
                error_code=ErrorCode.INVALID_NUMERIC_SCORE,
                details={"numeric_score": str(score)},
            )

        for lower_bound, letter_grade, grade_points in NUMERIC_GRADE_SCALE:
            if score >= lower_bound:
                return letter_grade, grade_points
        return LetterGrade.F, Decimal("0.0")

    @property
    def letter_grade(self) -> LetterGrade:
        return self._letter_grade

    @property
    def grade_points(self) -> Decimal:
        return self._grade_points

    @property
    def numeric_score(self) -> Optional[Decimal]:
        return self._numeric_score

    @property
    def comments(self) -> Optional[str]:
        return self._comments

    @property
    def graded_by(self) -> str:
        return self._graded_by

    @property
    def graded_date(self) -> datetime:
        return self._graded_date

    @property
    def is_passing(self) -> bool:
        return self._grade_points >= self.PASSING_POINTS

    @property
    def is_honor_grade(self) -> bool:
        return self._grade_points >= self.HONOR_POINTS

    def update_grade(self, letter_grade: Union[LetterGrade, str], grade_points: Number,
                     numeric_score: Optional[Number] = None, comments: Optional[str] = None) -> None:
        """Overwrite the grade outcome."""
        validated_letter = self._validate_letter_grade(letter_grade)
        validated_points = self._validate_grade_points(grade_points)
        validated_score = self._validate_numeric_score(numeric_score)
        validated_comments = self._validate_comments(comments)

        self._letter_grade = validated_letter
        self._grade_points = validated_points
        self._numeric_score = validated_score
        self._comments = validated_comments
        self.touch()

    def update_comments(self, comments: Optional[str]) -> None:
        """Replace the grader's comments."""
        self._comments = self._validate_comments(comments)
        self.touch()

    @staticmethod
    def _validate_letter_grade(letter_grade: Union[LetterGrade, str]) -> LetterGrade:
        if isinstance(letter_grade, LetterGrade):
            return letter_grade
        if not isinstance(letter_grade, str) or not letter_grade.strip():
            raise ValidationError("Letter grade cannot be empty", error_code=ErrorCode.INVALID_GRADE)

        normalized = letter_grade.strip().upper()
        try:
            return LetterGrade(normalized)
        except ValueError:
            raise ValidationError(
                f"Invalid letter grade: {letter_grade}",
                error_code=ErrorCode.INVALID_GRADE,
                details={"letter_grade": letter_grade},
            ) from None

    @classmethod
    def _validate_grade_points(cls, grade_points: Number) -> Decimal:
        points = to_decimal(grade_points, "Grade points", ErrorCode.INVALID_GRADE_POINTS)
        if not cls.MIN_POINTS <= points <= cls.MAX_POINTS:
            raise ValidationError(
                f"Grade points must be between {cls.MIN_POINTS} and {cls.MAX_POINTS}",
                error_code=ErrorCode.INVALID_GRADE_POINTS,
                details={"grade_points": str(points)},
            )
        return round_two_places(points)

    @classmethod
    def _validate_numeric_score(cls, numeric_score: Optional[Number]) -> Optional[Decimal]:
        if numeric_score is None:
            return None

        score = to_decimal(numeric_score, "Numeric score", ErrorCode.INVALID_NUMERIC_SCORE)
        if not cls.MIN_SCORE <= score <= cls.MAX_SCORE:
            raise ValidationError(
                f"Numeric score must be between {cls.MIN_SCORE} and {cls.MAX_SCORE}",
                error_code=ErrorCode.INVALID_NUMERIC_SCORE,
                details={"numeric_score": str(score)},
            )
        return round_two_places(score)

    @classmethod
    def _validate_comments(cls, comments: Optional[str]) -> Optional[str]:
        if comments is None:
            return None
        if not isinstance(comments, str):
            raise ValidationError("Comments must be text", error_code=ErrorCode.INVALID_COMMENTS)

        trimmed = comments.strip()
        if len(trimmed) > cls.MAX_COMMENTS_LENGTH:
            raise ValidationError(
                f"Comments cannot exceed {cls.MAX_COMMENTS_LENGTH} characters",
                error_code=ErrorCode.INVALID_COMMENTS,
            )
        return trimmed or None

    @classmethod
    def _validate_graded_by(cls, graded_by: str) -> str:
        if not isinstance(graded_by, str) or not graded_by.strip():
            raise ValidationError("Graded by cannot be empty", error_code=ErrorCode.INVALID_GRADER)

        trimmed = graded_by.strip()
        if len(trimmed) > cls.MAX_GRADER_LENGTH:
            raise ValidationError(
                f"Graded by cannot exceed {cls.MAX_GRADER_LENGTH} characters",
                error_code=ErrorCode.INVALID_GRADER,
            )
        return trimmed

    def to_dict(self) -> Dict[str, Any]:
        """Convert grade to dictionary."""
        base_dict = super().to_dict()
        base_dict.update({
            'letter_grade': self._letter_grade.value,
            'grade_points': str(self._grade_points),
            'numeric_score': str(self._numeric_score) if self._numeric_score is not None else None,
            'comments': self._comments,
            'graded_by': self._graded_by,
            'graded_date': self._graded_date.isoformat(),
        })
        return base_dict


class Enrollment(AbstractEntity):
    """A student's registration in one course.

    Active -> Completed (terminal) once graded, or Active -> Withdrawn, which
    may be reactivated. A completed enrollment rejects every mutation.
    """

    def __init__(self, student_id: StudentId, course_id: CourseId, credit_hours: int,
                 entity_id: Optional[uuid.UUID] = None, enrollment_date: Optional[datetime] = None):
        super().__init__(entity_id or uuid.uuid4())
        if not isinstance(student_id, StudentId):
            raise ValidationError("Enrollment requires a StudentId", error_code=ErrorCode.INVALID_IDENTIFIER)
        if not isinstance(course_id, CourseId):
            raise ValidationError("Enrollment requires a CourseId", error_code=ErrorCode.INVALID_IDENTIFIER)

        self._student_id = student_id
        self._course_id = course_id
        self._credit_hours = _validate_credit_hours(credit_hours)
        self._enrollment_date = enrollment_date or self._created_at
        self._completion_date: Optional[datetime] = None
        self._status = EnrollmentStatus.ACTIVE
        self._grade: Optional[Grade] = None

    @classmethod
    def create(cls, student_id: StudentId, course_id: CourseId, credit_hours: int) -> "Enrollment":
        """Create a new active enrollment."""
        return cls(student_id, course_id, credit_hours)

    @property
    def student_id(self) -> StudentId:
        return self._student_id

    @property
    def course_id(self) -> CourseId:
        return self._course_id

    @property
    def credit_hours(self) -> int:
        return self._credit_hours

    @property
    def enrollment_date(self) -> datetime:
        return self._enrollment_date

    @property
    def completion_date(self) -> Optional[datetime]:
        return self._completion_date

    @property
    def status(self) -> EnrollmentStatus:
        return self._status

    @property
    def grade(self) -> Optional[Grade]:
        return self._grade

    @property
    def is_active(self) -> bool:
        return self._status == EnrollmentStatus.ACTIVE

    @property
    def is_completed(self) -> bool:
        return self._status == EnrollmentStatus.COMPLETED

    @property
    def is_withdrawn(self) -> bool:
        return self._status == EnrollmentStatus.WITHDRAWN

    def assign_grade(self, grade: Grade) -> None:
        """Attach a grade to an active enrollment."""
        if self._status != EnrollmentStatus.ACTIVE:
            raise StateError(
                "Cannot assign grade to inactive enrollment",
                error_code=ErrorCode.NOT_ACTIVE,
                details={"status": self._status.value},
            )
        if not isinstance(grade, Grade):
            raise ValidationError("A grade is required", error_code=ErrorCode.INVALID_GRADE)

        self._grade = grade
        self.touch()

    def update_grade_comments(self, comments: Optional[str]) -> None:
        """Replace the comments on the attached grade."""
        if self._status == EnrollmentStatus.COMPLETED:
            raise StateError(
                "Cannot change the grade of a completed enrollment",
                error_code=ErrorCode.ALREADY_COMPLETED,
            )
        if self._grade is None:
            raise StateError(
                "Enrollment has no grade",
                error_code=ErrorCode.MISSING_GRADE,
            )

        self._grade.update_comments(comments)
        self.touch()

    def complete(self) -> None:
        """Complete a graded, active enrollment."""
        if self._status != EnrollmentStatus.ACTIVE:
            raise StateError(
                "Can only complete active enrollments",
                error_code=ErrorCode.NOT_ACTIVE,
                details={"status": self._status.value},
            )
        if self._grade is None:
            raise StateError(
                "Cannot complete enrollment without a grade",
                error_code=ErrorCode.MISSING_GRADE,
            )

        self._status = EnrollmentStatus.COMPLETED
        self._completion_date = utc_now()
        self.touch()

    def withdraw(self) -> None:
        """Withdraw from the course."""
        if self._status == EnrollmentStatus.COMPLETED:
            raise StateError(
                "Cannot withdraw from completed enrollment",
                error_code=ErrorCode.ALREADY_COMPLETED,
            )

        self._status = EnrollmentStatus.WITHDRAWN
        self._completion_date = utc_now()
        self.touch()

    def reactivate(self) -> None:
        """Return a withdrawn enrollment to active."""
        if self._status == EnrollmentStatus.COMPLETED:
            raise StateError(
                "Cannot reactivate completed enrollment",
                error_code=ErrorCode.ALREADY_COMPLETED,
            )

        self._status = EnrollmentStatus.ACTIVE
        self._completion_date = None
        self.touch()

    def to_dict(self) -> Dict[str, Any]:
        """Convert enrollment to dictionary."""
        base_dict = super().to_dict()
        base_dict.update({
            'student_id': str(self._student_id),
            'course_id': str(self._course_id),
            'credit_hours': self._credit_hours,
            'enrollment_date': self._enrollment_date.isoformat(),
            'completion_date': self._completion_date.isoformat() if self._completion_date else None,
            'status': self._status.value,
            'grade': self._grade.to_dict() if self._grade else None,
        })
        return base_dict


class Course(AbstractEntity):
    """Course offering with capacity policy and prerequisite set."""

    DEFAULT_MAX_ENROLLMENT = 30
    MIN_MAX_ENROLLMENT = 1
    MAX_MAX_ENROLLMENT = 500

    def __init__(self, code: CourseCode, name: str, description: Optional[str], credit_hours: int,
                 department: str, max_enrollment: int = DEFAULT_MAX_ENROLLMENT,
                 entity_id: Optional[CourseId] = None):
        super().__init__(entity_id or CourseId.new())
        if not isinstance(code, CourseCode):
            raise ValidationError("Course requires a CourseCode", error_code=ErrorCode.INVALID_COURSE_CODE)

        self._code = code
        self._name = self._validate_name(name)
        self._description = self._validate_description(description)
        self._credit_hours = _validate_credit_hours(credit_hours)
        self._department = self._validate_department(department)
        self._max_enrollment = self._validate_max_enrollment(max_enrollment)
        self._is_active = True
        self._prerequisites: List[CourseId] = []
        self._enrollments: List[Enrollment] = []

    @classmethod
    def create(cls, code: CourseCode, name: str, description: Optional[str], credit_hours: int,
               department: str, max_enrollment: int = DEFAULT_MAX_ENROLLMENT) -> "Course":
        """Create a new, active course."""
        return cls(code, name, description, credit_hours, department, max_enrollment)

    @property
    def code(self) -> CourseCode:
        return self._code

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def credit_hours(self) -> int:
        return self._credit_hours

    @property
    def department(self) -> str:
        return self._department

    @property
    def max_enrollment(self) -> int:
        return self._max_enrollment

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def prerequisites(self) -> Tuple[CourseId, ...]:
        return tuple(self._prerequisites)

    @property
    def enrollments(self) -> Tuple[Enrollment, ...]:
        return tuple(self._enrollments)

    @property
    def active_enrollments(self) -> Tuple[Enrollment, ...]:
        return tuple(e for e in self._enrollments if e.is_active)

    @property
    def current_enrollment_count(self) -> int:
        return sum(1 for e in self._enrollments if e.is_active)

    @property
    def available_seats(self) -> int:
        return max(self._max_enrollment - self.current_enrollment_count, 0)

    def update_course_info(self, name: str, description: Optional[str], credit_hours: int,
                           department: str) -> None:
        """Update descriptive course information."""
        validated_name = self._validate_name(name)
        validated_description = self._validate_description(description)
        validated_credit_hours = _validate_credit_hours(credit_hours)
        validated_department = self._validate_department(department)

        self._name = validated_name
        self._description = validated_description
        self._credit_hours = validated_credit_hours
        self._department = validated_department
        self.touch()

    def update_max_enrollment(self, max_enrollment: int) -> None:
        """Change the enrollment capacity."""
        self._max_enrollment = self._validate_max_enrollment(max_enrollment)
        self.touch()

    def add_prerequisite(self, prerequisite_course_id: CourseId) -> None:
        """Add a prerequisite course."""
        if not isinstance(prerequisite_course_id, CourseId):
            raise ValidationError("Prerequisite must be a CourseId", error_code=ErrorCode.INVALID_IDENTIFIER)
        if prerequisite_course_id == self._id:
            raise StateError(
                "Course cannot be a prerequisite for itself",
                error_code=ErrorCode.SELF_PREREQUISITE,
            )
        if prerequisite_course_id in self._prerequisites:
            raise StateError(
                "Prerequisite already exists",
                error_code=ErrorCode.DUPLICATE_PREREQUISITE,
                details={"prerequisite_course_id": str(prerequisite_course_id)},
            )

        self._prerequisites.append(prerequisite_course_id)
        self.touch()

    def remove_prerequisite(self, prerequisite_course_id: CourseId) -> None:
        """Remove a prerequisite course if present."""
        if prerequisite_course_id in self._prerequisites:
            self._prerequisites.remove(prerequisite_course_id)
            self.touch()

    def deactivate(self) -> None:
        """Stop accepting enrollments."""
        self._is_active = False
        self.touch()

    def reactivate(self) -> None:
        """Resume accepting enrollments."""
        self._is_active = True
        self.touch()

    def can_enroll(self) -> bool:
        """Check whether the course is active and has a free seat."""
        return self._is_active and self.current_enrollment_count < self._max_enrollment

    def add_enrollment(self, enrollment: Enrollment) -> None:
        """Accept an enrollment into this course."""
        if enrollment.course_id != self._id:
            raise StateError(
                "Enrollment must belong to this course",
                error_code=ErrorCode.MISMATCHED_COURSE,
                details={"course_id": str(self._id), "enrollment_course_id": str(enrollment.course_id)},
            )
        if not self.can_enroll():
            raise StateError(
                "Course is full or inactive",
                error_code=ErrorCode.COURSE_FULL,
                details={
                    "is_active": self._is_active,
                    "current_enrollment_count": self.current_enrollment_count,
                    "max_enrollment": self._max_enrollment,
                },
            )

        self._enrollments.append(enrollment)
        self.touch()

    @staticmethod
    def _validate_name(name: str) -> str:
        return _validate_text(name, "Course name", 3, 100, ErrorCode.INVALID_NAME)

    @staticmethod
    def _validate_description(description: Optional[str]) -> str:
        if description is None:
            return ""
        if not isinstance(description, str):
            raise ValidationError(
                "Course description must be text",
                error_code=ErrorCode.INVALID_DESCRIPTION,
                details={"description": repr(description)},
            )
        return description.strip()

    @staticmethod
    def _validate_department(department: str) -> str:
        return _validate_text(department, "Department", 2, 50, ErrorCode.INVALID_DEPARTMENT)

    @classmethod
    def _validate_max_enrollment(cls, max_enrollment: int) -> int:
        if (isinstance(max_enrollment, bool) or not isinstance(max_enrollment, int)
                or not cls.MIN_MAX_ENROLLMENT <= max_enrollment <= cls.MAX_MAX_ENROLLMENT):
            raise ValidationError(
                f"Max enrollment must be between {cls.MIN_MAX_ENROLLMENT} and {cls.MAX_MAX_ENROLLMENT}",
                error_code=ErrorCode.INVALID_MAX_ENROLLMENT,
                details={"max_enrollment": max_enrollment},
            )
        return max_enrollment

    def to_dict(self) -> Dict[str, Any]:
        """Convert course to dictionary."""
        base_dict = super().to_dict()
        base_dict.update({
            'code': self._code.value,
            'name': self._name,
            'description': self._description,
            'credit_hours': self._credit_hours,
            'department': self._department,
            'max_enrollment': self._max_enrollment,
            'is_active': self._is_active,
            'prerequisites': [str(p) for p in self._prerequisites],
        })
        return base_dict


class Student(AbstractEntity):
    """Learner aggregate owning its enrollments."""

    MIN_AGE = 13
    MAX_AGE = 120

    def __init__(self, first_name: str, last_name: str, email: Email, date_of_birth: date,
                 entity_id: Optional[StudentId] = None, enrollment_date: Optional[datetime] = None):
        super().__init__(entity_id or StudentId.new())
        self._enrollment_date = enrollment_date or self._created_at
        self._first_name = self._validate_name(first_name, "First name")
        self._last_name = self._validate_name(last_name, "Last name")
        self._email = self._validate_email(email)
        self._date_of_birth = self._validate_date_of_birth(date_of_birth, self._enrollment_date.date())
        self._is_active = True
        self._enrollments: List[Enrollment] = []

    @classmethod
    def create(cls, first_name: str, last_name: str, email: Email, date_of_birth: date) -> "Student":
        """Create a new, active student enrolled as of now."""
        return cls(first_name, last_name, email, date_of_birth)

    @property
    def first_name(self) -> str:
        return self._first_name

    @property
    def last_name(self) -> str:
        return self._last_name

    @property
    def full_name(self) -> str:
        return f"{self._first_name} {self._last_name}"

    @property
    def email(self) -> Email:
        return self._email

    @property
    def date_of_birth(self) -> date:
        return self._date_of_birth

    @property
    def age(self) -> int:
        today = utc_now().date()
        before_birthday = (today.month, today.day) < (self._date_of_birth.month, self._date_of_birth.day)
        return today.year - self._date_of_birth.year - int(before_birthday)

    @property
    def enrollment_date(self) -> datetime:
        return self._enrollment_date

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def enrollments(self) -> Tuple[Enrollment, ...]:
        return tuple(self._enrollments)

    @property
    def active_enrollments(self) -> Tuple[Enrollment, ...]:
        return tuple(e for e in self._enrollments if e.is_active)

    @property
    def completed_enrollments(self) -> Tuple[Enrollment, ...]:
        return tuple(e for e in self._enrollments if e.is_completed and e.grade is not None)

    @property
    def total_completed_credit_hours(self) -> int:
        return sum(e.credit_hours for e in self.completed_enrollments)

    def update_personal_info(self, first_name: str, last_name: str, email: Email) -> None:
        """Update name and e-mail address."""
        validated_first_name = self._validate_name(first_name, "First name")
        validated_last_name = self._validate_name(last_name, "Last name")
        validated_email = self._validate_email(email)

        self._first_name = validated_first_name
        self._last_name = validated_last_name
        self._email = validated_email
        self.touch()

    def deactivate(self) -> None:
        """Deactivate the student."""
        self._is_active = False
        self.touch()

    def reactivate(self) -> None:
        """Reactivate the student."""
        self._is_active = True
        self.touch()

    def add_enrollment(self, enrollment: Enrollment) -> None:
        """Attach an enrollment owned by this student."""
        if enrollment.student_id != self._id:
            raise StateError(
                "Enrollment must belong to this student",
                error_code=ErrorCode.MISMATCHED_STUDENT,
                details={"student_id": str(self._id), "enrollment_student_id": str(enrollment.student_id)},
            )
        if any(e.course_id == enrollment.course_id and e.is_active for e in self._enrollments):
            raise StateError(
                "Student is already enrolled in this course",
                error_code=ErrorCode.DUPLICATE_ACTIVE_ENROLLMENT,
                details={"course_id": str(enrollment.course_id)},
            )

        self._enrollments.append(enrollment)
        self.touch()

    def calculate_gpa(self) -> GPA:
        """Credit-hour weighted GPA over completed, graded enrollments."""
        completed = self.completed_enrollments
        if not completed:
            return GPA(Decimal("0.0"))

        total_points = sum((e.grade.grade_points * e.credit_hours for e in completed), Decimal("0"))
        total_credits = sum(e.credit_hours for e in completed)
        return GPA(total_points / Decimal(total_credits))

    @staticmethod
    def _validate_name(name: str, label: str) -> str:
        return _validate_text(name, label, 2, 50, ErrorCode.INVALID_NAME)

    @staticmethod
    def _validate_email(email: Email) -> Email:
        if not isinstance(email, Email):
            raise ValidationError("Student requires an Email", error_code=ErrorCode.INVALID_EMAIL)
        return email

    @classmethod
    def _validate_date_of_birth(cls, date_of_birth: date, as_of: date) -> date:
        if isinstance(date_of_birth, datetime):
            date_of_birth = date_of_birth.date()
        if not isinstance(date_of_birth, date):
            raise ValidationError("Date of birth must be a date", error_code=ErrorCode.INVALID_AGE)

        earliest = subtract_years(as_of, cls.MAX_AGE)
        latest = subtract_years(as_of, cls.MIN_AGE)
        if not earliest <= date_of_birth <= latest:
            raise ValidationError(
                f"Invalid date of birth - student must be between {cls.MIN_AGE} and {cls.MAX_AGE} years old",
                error_code=ErrorCode.INVALID_AGE,
                details={"date_of_birth": date_of_birth.isoformat()},
            )
        return date_of_birth

    def to_dict(self) -> Dict[str, Any]:
        """Convert student to dictionary."""
        base_dict = super().to_dict()
        base_dict.update({
            'first_name': self._first_name,
            'last_name': self._last_name,
            'email': self._email.value,
            'date_of_birth': self._date_of_birth.isoformat(),
            'enrollment_date': self._enrollment_date.isoformat(),
            'is_active': self._is_active,
        })
        return base_dict
