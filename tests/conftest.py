# tests/conftest.py

from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient

from lyceum.api.rest_api import LyceumRestAPI
from lyceum.core.entities import Course, Enrollment, Grade, Student, subtract_years
from lyceum.core.value_objects import CourseCode, CourseId, Email
from lyceum.persistence import SQLiteDatabase, unit_of_work_factory
from lyceum.services import CourseService, EnrollmentService, StudentService


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def make_student(first_name="Ada", last_name="Lovelace", email="ada@example.com", years_old=20):
    return Student.create(first_name, last_name, Email(email), subtract_years(utc_today(), years_old))


def make_course(code="CS101", credit_hours=3, max_enrollment=30):
    return Course.create(
        CourseCode(code), "Introduction to Computing", "Programming fundamentals",
        credit_hours, "Computer Science", max_enrollment,
    )


def make_completed_enrollment(student, credit_hours, letter_grade, grade_points):
    enrollment = Enrollment.create(student.id, CourseId.new(), credit_hours)
    enrollment.assign_grade(Grade.create(letter_grade, grade_points, "Prof. Hopper"))
    enrollment.complete()
    return enrollment


@pytest.fixture
def sample_student():
    return make_student()


@pytest.fixture
def sample_course():
    return make_course()


@pytest.fixture
def sample_enrollment(sample_student, sample_course):
    return Enrollment.create(sample_student.id, sample_course.id, sample_course.credit_hours)


@pytest.fixture
def sample_grade():
    return Grade.create("B+", 3.3, "Prof. Hopper", 88.5, "Solid work")


@pytest.fixture
def database(tmp_path):
    return SQLiteDatabase(str(tmp_path / "lyceum_test.db"))


@pytest.fixture
def uow_factory(database):
    return unit_of_work_factory(database)


@pytest.fixture
def student_service(uow_factory):
    return StudentService(uow_factory)


@pytest.fixture
def course_service(uow_factory):
    return CourseService(uow_factory)


@pytest.fixture
def enrollment_service(uow_factory):
    return EnrollmentService(uow_factory)


@pytest.fixture
def client(student_service, course_service, enrollment_service):
    api = LyceumRestAPI(student_service, course_service, enrollment_service)
    return TestClient(api.app)
