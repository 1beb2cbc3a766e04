# tests/test_rest_api.py

import uuid

from lyceum.core.entities import subtract_years

from conftest import utc_today


def create_student(client, email="ada@example.com", first_name="Ada", last_name="Lovelace"):
    response = client.post("/students", json={
        "first_name": first_name,
        "last_name": last_name,
        "email": email,
        "date_of_birth": subtract_years(utc_today(), 20).isoformat(),
    })
    assert response.status_code == 201
    return response.json()["data"]


def create_course(client, code="CS101", credit_hours=3, max_enrollment=30):
    response = client.post("/courses", json={
        "code": code,
        "name": "Intro to Computing",
        "description": "Basics",
        "credit_hours": credit_hours,
        "department": "Computer Science",
        "max_enrollment": max_enrollment,
    })
    assert response.status_code == 201
    return response.json()["data"]


def enroll(client, student_id, course_id):
    response = client.post("/enrollments", json={"student_id": student_id, "course_id": course_id})
    assert response.status_code == 201
    return response.json()["data"]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_create_and_get_student(client):
    student = create_student(client, email=" Ada@Example.COM ")

    assert student["email"] == "ada@example.com"
    assert student["full_name"] == "Ada Lovelace"
    assert student["age"] == 20
    assert student["gpa"] == 0.0

    response = client.get(f"/students/{student['id']}")
    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["data"]["id"] == student["id"]
    assert body["errors"] == []
    assert body["timestamp"]


def test_validation_error_envelope(client):
    response = client.post("/students", json={
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "not-an-email",
        "date_of_birth": "2000-01-01",
    })

    body = response.json()
    assert response.status_code == 400
    assert body["success"] is False
    assert body["data"] is None
    assert body["error_code"] == "invalid_email"
    assert body["errors"]


def test_malformed_request_is_a_bad_request(client):
    response = client.post("/students", json={"first_name": "Ada"})

    assert response.status_code == 400
    assert response.json()["error_code"] == "invalid_request"


def test_unknown_student_is_not_found(client):
    response = client.get(f"/students/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json()["error_code"] == "not_found"


def test_duplicate_email_is_a_conflict(client):
    create_student(client)
    response = client.post("/students", json={
        "first_name": "Ada",
        "last_name": "King",
        "email": "ada@example.com",
        "date_of_birth": "2000-01-01",
    })

    assert response.status_code == 409
    assert response.json()["error_code"] == "duplicate_email"


def test_list_students_is_paged(client):
    for index in range(3):
        create_student(client, email=f"student{index}@example.com")

    response = client.get("/students", params={"page_number": 2, "page_size": 2})
    page = response.json()["data"]

    assert response.status_code == 200
    assert page["total_count"] == 3
    assert page["total_pages"] == 2
    assert len(page["items"]) == 1
    assert page["has_previous_page"] is True
    assert page["has_next_page"] is False


def test_enrollment_grading_flow(client):
    student = create_student(client)
    intro = create_course(client, "CS101", credit_hours=3)
    calculus = create_course(client, "MATH101", credit_hours=4)

    first = enroll(client, student["id"], intro["id"])
    second = enroll(client, student["id"], calculus["id"])

    response = client.post(f"/enrollments/{first['id']}/grade", json={
        "letter_grade": "A", "grade_points": 4.0, "graded_by": "Prof. Hopper",
    })
    assert response.status_code == 200
    assert response.json()["data"]["grade"]["is_honor_grade"] is True

    response = client.post(f"/enrollments/{second['id']}/numeric-grade", json={
        "numeric_score": 84, "graded_by": "Prof. Noether",
    })
    assert response.json()["data"]["grade"]["letter_grade"] == "B"

    for enrollment in (first, second):
        response = client.post(f"/enrollments/{enrollment['id']}/complete")
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "completed"

    gpa = client.get(f"/students/{student['id']}/gpa").json()["data"]
    assert gpa["gpa"] == 3.43
    assert gpa["completed_credit_hours"] == 7

    response = client.post(f"/enrollments/{first['id']}/withdraw")
    assert response.status_code == 409
    assert response.json()["error_code"] == "already_completed"


def test_full_course_is_a_conflict(client):
    course = create_course(client, max_enrollment=1)
    enroll(client, create_student(client)["id"], course["id"])

    response = client.post("/enrollments", json={
        "student_id": create_student(client, email="grace@example.com")["id"],
        "course_id": course["id"],
    })

    assert response.status_code == 409
    assert response.json()["error_code"] == "course_full"
    assert client.get(f"/courses/{course['id']}").json()["data"]["available_seats"] == 0


def test_course_prerequisites(client):
    intro = create_course(client, "CS101")
    advanced = create_course(client, "CS201")

    response = client.post(f"/courses/{advanced['id']}/prerequisites",
                           json={"prerequisite_course_id": intro["id"]})
    assert response.json()["data"]["prerequisites"] == [intro["id"]]

    response = client.post(f"/courses/{advanced['id']}/prerequisites",
                           json={"prerequisite_course_id": advanced["id"]})
    assert response.status_code == 409
    assert response.json()["error_code"] == "self_prerequisite"

    response = client.delete(f"/courses/{advanced['id']}/prerequisites/{intro['id']}")
    assert response.json()["data"]["prerequisites"] == []


def test_get_course_by_code(client):
    course = create_course(client, "CS101")

    response = client.get("/courses/code/cs101")

    assert response.status_code == 200
    assert response.json()["data"]["id"] == course["id"]


def test_delete_student(client):
    student = create_student(client)

    response = client.delete(f"/students/{student['id']}")

    assert response.status_code == 200
    assert client.get(f"/students/{student['id']}").status_code == 404
