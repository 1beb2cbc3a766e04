# tests/test_repositories.py

from decimal import Decimal

import pytest

from lyceum.core.entities import Enrollment, Grade
from lyceum.core.enums import EnrollmentStatus, ErrorCode, LetterGrade
from lyceum.core.exceptions import DuplicateEntityError, LyceumException
from lyceum.core.value_objects import CourseCode, CourseId, Email, StudentId

from conftest import make_course, make_student


def test_student_round_trip(uow_factory, sample_student):
    with uow_factory() as uow:
        uow.students.add(sample_student)
        assert uow.save_changes() == 1

    with uow_factory() as uow:
        loaded = uow.students.get_by_id(sample_student.id)

    assert loaded == sample_student
    assert loaded.email == sample_student.email
    assert loaded.date_of_birth == sample_student.date_of_birth
    assert loaded.enrollment_date == sample_student.enrollment_date
    assert loaded.version == sample_student.version
    assert loaded.is_active


def test_unsaved_changes_are_discarded(uow_factory, sample_student):
    with uow_factory() as uow:
        uow.students.add(sample_student)

    with uow_factory() as uow:
        assert uow.students.get_by_id(sample_student.id) is None
        assert uow.students.count() == 0


def test_rollback_discards_staged_changes(uow_factory, sample_student):
    with uow_factory() as uow:
        uow.students.add(sample_student)
        uow.rollback()
        assert uow.save_changes() == 0


def test_changes_made_after_staging_are_saved(uow_factory, sample_student):
    with uow_factory() as uow:
        uow.students.add(sample_student)
        sample_student.deactivate()
        uow.students.update(sample_student)
        assert uow.save_changes() == 1

    with uow_factory() as uow:
        assert not uow.students.get_by_id(sample_student.id).is_active


def test_aggregates_load_their_enrollments(uow_factory, sample_student, sample_course):
    enrollment = Enrollment.create(sample_student.id, sample_course.id, 3)
    sample_course.add_enrollment(enrollment)
    sample_student.add_enrollment(enrollment)
    enrollment.assign_grade(Grade.create("A-", 3.7, "Prof. Hopper", 91.25, "Great"))
    other = CourseId.new()
    sample_course.add_prerequisite(other)

    with uow_factory() as uow:
        uow.students.add(sample_student)
        uow.courses.add(sample_course)
        uow.enrollments.add(enrollment)
        uow.save_changes()

    with uow_factory() as uow:
        student = uow.students.get_by_id(sample_student.id)
        course = uow.courses.get_by_id(sample_course.id)
        loaded = uow.enrollments.get_by_id(enrollment.id)

    assert [e.id for e in student.enrollments] == [enrollment.id]
    assert course.current_enrollment_count == 1
    assert course.prerequisites == (other,)
    assert loaded.status == EnrollmentStatus.ACTIVE
    assert loaded.grade.letter_grade == LetterGrade.A_MINUS
    assert loaded.grade.grade_points == Decimal("3.70")
    assert loaded.grade.numeric_score == Decimal("91.25")
    assert loaded.grade.comments == "Great"
    assert loaded.grade.id == enrollment.grade.id


def test_lookups(uow_factory):
    ada = make_student()
    grace = make_student("Grace", "Hopper", "grace@example.com")
    grace.deactivate()
    course = make_course("MATH101")

    with uow_factory() as uow:
        uow.students.add(ada)
        uow.students.add(grace)
        uow.courses.add(course)
        uow.save_changes()

    with uow_factory() as uow:
        assert uow.students.get_by_email(Email("GRACE@example.com")) == grace
        assert uow.students.get_active_students() == [ada]
        assert uow.students.search_by_name("hop") == [grace]
        assert not uow.students.is_email_unique(Email("ada@example.com"))
        assert uow.students.is_email_unique(Email("ada@example.com"), exclude_id=ada.id)
        assert uow.students.exists(ada.id)
        assert not uow.students.exists(StudentId.new())
        assert uow.students.count(lambda s: s.is_active) == 1
        assert uow.courses.get_by_code(CourseCode("math101")) == course
        assert uow.courses.get_by_department("computer science") == [course]
        assert uow.courses.get_available_courses() == [course]
        assert not uow.courses.is_course_code_unique(CourseCode("MATH101"))
        assert uow.courses.first_or_none(lambda c: c.credit_hours > 5) is None


def test_enrollment_lookups(uow_factory, sample_student, sample_course):
    active = Enrollment.create(sample_student.id, sample_course.id, 3)
    completed = Enrollment.create(sample_student.id, CourseId.new(), 3)
    completed.assign_grade(Grade.create("B", 3.0, "Prof. Hopper"))
    completed.complete()

    with uow_factory() as uow:
        uow.enrollments.add(active)
        uow.enrollments.add(completed)
        uow.save_changes()

    with uow_factory() as uow:
        assert len(uow.enrollments.get_by_student(sample_student.id)) == 2
        assert uow.enrollments.get_by_course(sample_course.id) == [active]
        assert uow.enrollments.get_active_enrollment(sample_student.id, sample_course.id) == active
        assert uow.enrollments.get_completed_enrollments(sample_student.id) == [completed]
        assert uow.enrollments.is_student_enrolled(sample_student.id, sample_course.id)
        assert not uow.enrollments.is_student_enrolled(sample_student.id, completed.course_id)


def test_removing_student_removes_enrollments(uow_factory, sample_student, sample_course):
    enrollment = Enrollment.create(sample_student.id, sample_course.id, 3)
    sample_student.add_enrollment(enrollment)

    with uow_factory() as uow:
        uow.students.add(sample_student)
        uow.enrollments.add(enrollment)
        uow.save_changes()

    with uow_factory() as uow:
        uow.students.remove(uow.students.get_by_id(sample_student.id))
        assert uow.save_changes() == 2

    with uow_factory() as uow:
        assert uow.students.count() == 0
        assert uow.enrollments.count() == 0


def test_failed_transaction_applies_nothing(uow_factory, sample_student):
    with uow_factory() as uow:
        uow.students.add(sample_student)
        uow.save_changes()

    with uow_factory() as uow:
        uow.students.add(make_student("Grace", "Hopper", "grace@example.com"))
        uow.students.add(sample_student)
        with pytest.raises(LyceumException):
            uow.save_changes()

    with uow_factory() as uow:
        assert uow.students.count() == 1


def test_concurrent_registrations_with_same_email(uow_factory):
    first = uow_factory()
    second = uow_factory()
    assert first.students.is_email_unique(Email("dup@example.com"))
    assert second.students.is_email_unique(Email("dup@example.com"))

    first.students.add(make_student("Ada", "Lovelace", "dup@example.com"))
    second.students.add(make_student("Grace", "Hopper", "dup@example.com"))
    first.save_changes()

    with pytest.raises(DuplicateEntityError) as exc_info:
        second.save_changes()
    assert exc_info.value.error_code == ErrorCode.DUPLICATE_EMAIL

    with uow_factory() as uow:
        assert uow.students.count(lambda s: s.email == Email("dup@example.com")) == 1


def test_updating_to_a_taken_email_is_rejected(uow_factory):
    ada = make_student()
    grace = make_student("Grace", "Hopper", "grace@example.com")
    with uow_factory() as uow:
        uow.students.add(ada)
        uow.students.add(grace)
        uow.save_changes()

    grace.update_personal_info("Grace", "Hopper", Email("ada@example.com"))
    with uow_factory() as uow:
        uow.students.update(grace)
        with pytest.raises(DuplicateEntityError):
            uow.save_changes()

    with uow_factory() as uow:
        assert uow.students.get_by_id(grace.id).email == Email("grace@example.com")


def test_course_codes_are_unique_in_storage(uow_factory):
    with uow_factory() as uow:
        uow.courses.add(make_course("CS101"))
        uow.courses.add(make_course("cs101"))
        with pytest.raises(DuplicateEntityError) as exc_info:
            uow.save_changes()

    assert exc_info.value.error_code == ErrorCode.DUPLICATE_COURSE_CODE
    with uow_factory() as uow:
        assert uow.courses.count() == 0
