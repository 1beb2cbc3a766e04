# tests/test_services.py

from decimal import Decimal

import pytest

from lyceum.core.enums import EnrollmentStatus, ErrorCode, LetterGrade
from lyceum.core.exceptions import (
    DuplicateEntityError, ResourceNotFoundError, StateError, ValidationError
)
from lyceum.core.entities import subtract_years
from lyceum.core.value_objects import StudentId

from conftest import utc_today


@pytest.fixture
def ada(student_service):
    return student_service.create_student("Ada", "Lovelace", "ada@example.com", subtract_years(utc_today(), 20))


@pytest.fixture
def grace(student_service):
    return student_service.create_student("Grace", "Hopper", "grace@example.com", subtract_years(utc_today(), 30))


@pytest.fixture
def intro(course_service):
    return course_service.create_course("CS101", "Intro to Computing", "Basics", 3, "Computer Science")


@pytest.fixture
def calculus(course_service):
    return course_service.create_course("MATH101", "Calculus I", "Limits", 4, "Mathematics")


def test_create_student_rejects_duplicate_email(student_service, ada):
    with pytest.raises(DuplicateEntityError) as exc_info:
        student_service.create_student("Ada", "King", "ADA@example.com", subtract_years(utc_today(), 25))

    assert exc_info.value.error_code == ErrorCode.DUPLICATE_EMAIL


def test_update_student_keeps_own_email(student_service, ada, grace):
    updated = student_service.update_student(ada.id, "Augusta", "King", "ada@example.com")
    assert updated.full_name == "Augusta King"

    with pytest.raises(DuplicateEntityError):
        student_service.update_student(ada.id, "Augusta", "King", "grace@example.com")

    assert student_service.get_student(ada.id).email.value == "ada@example.com"


def test_list_students(student_service, ada, grace):
    student_service.deactivate_student(grace.id)

    assert len(student_service.list_students()) == 2
    assert student_service.list_students(active_only=True) == [ada]
    assert student_service.list_students(search="love") == [ada]


def test_get_unknown_student(student_service):
    with pytest.raises(ResourceNotFoundError) as exc_info:
        student_service.get_student(StudentId.new())
    assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    with pytest.raises(ValidationError):
        student_service.get_student("not-an-id")


def test_create_course_rejects_duplicate_code(course_service, intro):
    with pytest.raises(DuplicateEntityError) as exc_info:
        course_service.create_course("cs101", "Another Intro", "", 3, "Computer Science")

    assert exc_info.value.error_code == ErrorCode.DUPLICATE_COURSE_CODE


def test_list_courses(course_service, intro, calculus):
    course_service.deactivate_course(calculus.id)

    assert course_service.get_course_by_code("math101") == calculus
    assert course_service.list_courses(department="Mathematics") == [calculus]
    assert course_service.list_courses(active_only=True) == [intro]
    assert course_service.list_courses(available_only=True) == [intro]


def test_prerequisites(course_service, intro, calculus):
    course = course_service.add_prerequisite(calculus.id, intro.id)
    assert course.prerequisites == (intro.id,)

    with pytest.raises(StateError):
        course_service.add_prerequisite(calculus.id, intro.id)

    with pytest.raises(ResourceNotFoundError):
        course_service.add_prerequisite(calculus.id, "00000000-0000-0000-0000-000000000000")

    course = course_service.remove_prerequisite(calculus.id, intro.id)
    assert course.prerequisites == ()
    assert course_service.get_course(calculus.id).prerequisites == ()


def test_deleting_course_clears_it_from_prerequisites(course_service, intro, calculus):
    course_service.add_prerequisite(calculus.id, intro.id)

    course_service.delete_course(intro.id)

    assert course_service.get_course(calculus.id).prerequisites == ()
    with pytest.raises(ResourceNotFoundError):
        course_service.get_course(intro.id)


def test_enroll_student(enrollment_service, course_service, ada, intro):
    enrollment = enrollment_service.enroll_student(ada.id, intro.id)

    assert enrollment.status == EnrollmentStatus.ACTIVE
    assert enrollment.credit_hours == 3
    assert course_service.get_course(intro.id).current_enrollment_count == 1

    with pytest.raises(DuplicateEntityError) as exc_info:
        enrollment_service.enroll_student(ada.id, intro.id)
    assert exc_info.value.error_code == ErrorCode.DUPLICATE_ACTIVE_ENROLLMENT


def test_enroll_inactive_student(enrollment_service, student_service, ada, intro):
    student_service.deactivate_student(ada.id)

    with pytest.raises(StateError) as exc_info:
        enrollment_service.enroll_student(ada.id, intro.id)

    assert exc_info.value.error_code == ErrorCode.STUDENT_INACTIVE


def test_enroll_in_full_course(enrollment_service, course_service, ada, grace, intro):
    course_service.update_max_enrollment(intro.id, 1)
    enrollment_service.enroll_student(ada.id, intro.id)

    with pytest.raises(StateError) as exc_info:
        enrollment_service.enroll_student(grace.id, intro.id)

    assert exc_info.value.error_code == ErrorCode.COURSE_FULL
    assert enrollment_service.list_enrollments(course_id=intro.id)[0].student_id == ada.id


def test_grade_complete_and_gpa(enrollment_service, student_service, ada, intro, calculus):
    first = enrollment_service.enroll_student(ada.id, intro.id)
    second = enrollment_service.enroll_student(ada.id, calculus.id)

    enrollment_service.assign_grade(first.id, "A", 4.0, "Prof. Hopper")
    graded = enrollment_service.assign_numeric_grade(second.id, 85, "Prof. Noether", "Steady")
    assert graded.grade.letter_grade == LetterGrade.B
    enrollment_service.complete_enrollment(first.id)
    enrollment_service.complete_enrollment(second.id)

    assert student_service.calculate_gpa(ada.id).value == Decimal("3.43")
    assert len(enrollment_service.list_enrollments(student_id=ada.id, status="completed")) == 2

    stats = enrollment_service.get_statistics()
    assert stats["total_enrollments"] == 2
    assert stats["by_status"]["completed"] == 2
    assert stats["passing"] == 2


def test_update_grade_comments(enrollment_service, ada, intro):
    enrollment = enrollment_service.enroll_student(ada.id, intro.id)

    with pytest.raises(StateError) as exc_info:
        enrollment_service.update_grade_comments(enrollment.id, "Nice")
    assert exc_info.value.error_code == ErrorCode.MISSING_GRADE

    enrollment_service.assign_numeric_grade(enrollment.id, 91, "Prof. Hopper")
    updated = enrollment_service.update_grade_comments(enrollment.id, "Nice")

    assert enrollment_service.get_enrollment(enrollment.id).grade.comments == "Nice"
    assert updated.grade.comments == "Nice"


def test_completed_enrollment_comments_are_frozen(enrollment_service, ada, intro):
    enrollment = enrollment_service.enroll_student(ada.id, intro.id)
    enrollment_service.assign_numeric_grade(enrollment.id, 95, "Prof. Hopper", "Excellent")
    completed = enrollment_service.complete_enrollment(enrollment.id)

    with pytest.raises(StateError) as exc_info:
        enrollment_service.update_grade_comments(enrollment.id, "changed after completion")
    assert exc_info.value.error_code == ErrorCode.ALREADY_COMPLETED

    stored = enrollment_service.get_enrollment(enrollment.id)
    assert stored.grade.comments == "Excellent"
    assert stored.version == completed.version


def test_complete_without_grade(enrollment_service, ada, intro):
    enrollment = enrollment_service.enroll_student(ada.id, intro.id)

    with pytest.raises(StateError) as exc_info:
        enrollment_service.complete_enrollment(enrollment.id)

    assert exc_info.value.error_code == ErrorCode.MISSING_GRADE
    assert enrollment_service.get_enrollment(enrollment.id).is_active


def test_withdraw_then_reenroll(enrollment_service, ada, intro):
    first = enrollment_service.enroll_student(ada.id, intro.id)
    enrollment_service.withdraw_enrollment(first.id)

    second = enrollment_service.enroll_student(ada.id, intro.id)

    assert second.id != first.id
    with pytest.raises(DuplicateEntityError):
        enrollment_service.reactivate_enrollment(first.id)
    assert enrollment_service.get_enrollment(first.id).is_withdrawn


def test_reactivate_rechecks_capacity(enrollment_service, course_service, ada, grace, intro):
    course_service.update_max_enrollment(intro.id, 1)
    first = enrollment_service.enroll_student(ada.id, intro.id)
    enrollment_service.withdraw_enrollment(first.id)
    enrollment_service.enroll_student(grace.id, intro.id)

    with pytest.raises(StateError) as exc_info:
        enrollment_service.reactivate_enrollment(first.id)
    assert exc_info.value.error_code == ErrorCode.COURSE_FULL


def test_reactivate_withdrawn_enrollment(enrollment_service, ada, intro):
    enrollment = enrollment_service.enroll_student(ada.id, intro.id)
    enrollment_service.withdraw_enrollment(enrollment.id)

    reactivated = enrollment_service.reactivate_enrollment(enrollment.id)

    assert reactivated.is_active
    assert reactivated.completion_date is None


def test_delete_student_with_active_enrollment(enrollment_service, student_service, ada, intro):
    enrollment = enrollment_service.enroll_student(ada.id, intro.id)

    with pytest.raises(StateError) as exc_info:
        student_service.delete_student(ada.id)
    assert exc_info.value.error_code == ErrorCode.HAS_ACTIVE_ENROLLMENTS

    enrollment_service.withdraw_enrollment(enrollment.id)
    student_service.delete_student(ada.id)

    assert student_service.list_students() == []
    assert enrollment_service.list_enrollments() == []


def test_delete_course_with_active_enrollment(enrollment_service, course_service, ada, intro):
    enrollment_service.enroll_student(ada.id, intro.id)

    with pytest.raises(StateError) as exc_info:
        course_service.delete_course(intro.id)

    assert exc_info.value.error_code == ErrorCode.HAS_ACTIVE_ENROLLMENTS


def test_list_enrollments_rejects_unknown_status(enrollment_service):
    with pytest.raises(ValidationError) as exc_info:
        enrollment_service.list_enrollments(status="pending")

    assert exc_info.value.error_code == ErrorCode.INVALID_STATUS
