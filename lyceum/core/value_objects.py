"""
Validated, immutable value objects for the academic domain.

Each value object normalises and validates its input at construction and
compares by value. Conversion back to primitives is always explicit through
the ``value`` attribute or ``str()``.
"""

import re
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Union

from .enums import ErrorCode
from .exceptions import ValidationError


TWO_PLACES = Decimal("0.01")

Number = Union[int, float, str, Decimal]


def to_decimal(value: Any, field_name: str, error_code: ErrorCode) -> Decimal:
    """Convert a number to ``Decimal`` without binary float artefacts."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number", error_code=error_code)
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field_name} must be a number", error_code=error_code) from None
    if not result.is_finite():
        raise ValidationError(f"{field_name} must be a finite number", error_code=error_code)
    return result


def round_two_places(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class _Identifier:
    """Opaque 128-bit identifier."""

    value: uuid.UUID

    def __post_init__(self):
        if not isinstance(self.value, uuid.UUID):
            raise ValidationError(
                f"{type(self).__name__} must wrap a UUID",
                error_code=ErrorCode.INVALID_IDENTIFIER,
            )

    @classmethod
    def new(cls):
        return cls(uuid.uuid4())

    @classmethod
    def from_string(cls, value: str):
        try:
            return cls(uuid.UUID(str(value).strip()))
        except (ValueError, AttributeError):
            raise ValidationError(
                f"Invalid {cls.__name__} format: {value!r}",
                error_code=ErrorCode.INVALID_IDENTIFIER,
            ) from None

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class StudentId(_Identifier):
    """Unique identifier of a student."""


@dataclass(frozen=True)
class CourseId(_Identifier):
    """Unique identifier of a course."""


@dataclass(frozen=True)
class Email:
    """Lower-cased, trimmed e-mail address."""

    PATTERN = re.compile(r"^[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}$")

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValidationError("Email cannot be empty", error_code=ErrorCode.INVALID_EMAIL)

        formatted = self.value.strip().lower()
        if not self.PATTERN.match(formatted):
            raise ValidationError(
                f"Invalid email format: {self.value!r}",
                error_code=ErrorCode.INVALID_EMAIL,
            )
        object.__setattr__(self, "value", formatted)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CourseCode:
    """Upper-cased alphanumeric course code of 3 to 10 characters."""

    PATTERN = re.compile(r"^[A-Z0-9]+$")
    MIN_LENGTH = 3
    MAX_LENGTH = 10

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValidationError("Course code cannot be empty", error_code=ErrorCode.INVALID_COURSE_CODE)

        formatted = self.value.strip().upper()
        if not self.MIN_LENGTH <= len(formatted) <= self.MAX_LENGTH:
            raise ValidationError(
                f"Course code must be between {self.MIN_LENGTH} and {self.MAX_LENGTH} characters",
                error_code=ErrorCode.INVALID_COURSE_CODE,
            )
        if not self.PATTERN.match(formatted):
            raise ValidationError(
                "Course code can only contain letters and numbers",
                error_code=ErrorCode.INVALID_COURSE_CODE,
            )
        object.__setattr__(self, "value", formatted)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class GPA:
    """Grade-point average in [0.00, 4.00], rounded to two decimal places."""

    MIN_VALUE = Decimal("0.0")
    MAX_VALUE = Decimal("4.0")
    HONOR_ROLL_THRESHOLD = Decimal("3.5")
    PASSING_THRESHOLD = Decimal("2.0")

    value: Decimal

    def __post_init__(self):
        raw = to_decimal(self.value, "GPA", ErrorCode.INVALID_GPA)
        if not self.MIN_VALUE <= raw <= self.MAX_VALUE:
            raise ValidationError(
                f"GPA must be between {self.MIN_VALUE} and {self.MAX_VALUE}",
                error_code=ErrorCode.INVALID_GPA,
            )
        object.__setattr__(self, "value", round_two_places(raw))

    @property
    def is_honor_roll(self) -> bool:
        return self.value >= self.HONOR_ROLL_THRESHOLD

    @property
    def is_passing(self) -> bool:
        return self.value >= self.PASSING_THRESHOLD

    def __str__(self) -> str:
        return f"{self.value:.2f}"
