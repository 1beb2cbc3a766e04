"""
REST API implementation for the Lyceum platform using FastAPI.
"""

import logging
import math
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..core.entities import Course, Enrollment, Grade, Student
from ..core.exceptions import (
    DuplicateEntityError, LyceumException, ResourceNotFoundError, StateError, ValidationError
)
from ..services import CourseService, EnrollmentService, StudentService


logger = logging.getLogger(__name__)

# Checked in order, so subclasses must precede their bases.
STATUS_CODES = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ResourceNotFoundError, status.HTTP_404_NOT_FOUND),
    (StateError, status.HTTP_409_CONFLICT),
    (DuplicateEntityError, status.HTTP_409_CONFLICT),
)


# Pydantic models for API
class StudentCreate(BaseModel):
    first_name: str = Field(..., max_length=100)
    last_name: str = Field(..., max_length=100)
    email: str = Field(..., max_length=254)
    date_of_birth: date


class StudentUpdate(BaseModel):
    first_name: str = Field(..., max_length=100)
    last_name: str = Field(..., max_length=100)
    email: str = Field(..., max_length=254)


class StudentResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    full_name: str
    email: str
    date_of_birth: date
    age: int
    enrollment_date: datetime
    is_active: bool
    gpa: float
    active_enrollment_count: int
    total_completed_credit_hours: int
    created_at: datetime
    updated_at: datetime
    version: int


class GPAResponse(BaseModel):
    student_id: str
    gpa: float
    is_honor_roll: bool
    is_passing: bool
    completed_credit_hours: int


class CourseCreate(BaseModel):
    code: str = Field(..., max_length=20)
    name: str = Field(..., max_length=200)
    description: str = Field("", max_length=2000)
    credit_hours: int
    department: str = Field(..., max_length=100)
    max_enrollment: int = Course.DEFAULT_MAX_ENROLLMENT


class CourseUpdate(BaseModel):
    name: str = Field(..., max_length=200)
    description: str = Field("", max_length=2000)
    credit_hours: int
    department: str = Field(..., max_length=100)


class MaxEnrollmentUpdate(BaseModel):
    max_enrollment: int


class PrerequisiteRequest(BaseModel):
    prerequisite_course_id: str


class CourseResponse(BaseModel):
    id: str
    code: str
    name: str
    description: str
    credit_hours: int
    department: str
    max_enrollment: int
    is_active: bool
    current_enrollment_count: int
    available_seats: int
    can_enroll: bool
    prerequisites: List[str] = []
    created_at: datetime
    updated_at: datetime
    version: int


class EnrollmentCreate(BaseModel):
    student_id: str
    course_id: str
    credit_hours: Optional[int] = None


class GradeRequest(BaseModel):
    letter_grade: str = Field(..., max_length=5)
    grade_points: float
    graded_by: str = Field(..., max_length=200)
    numeric_score: Optional[float] = None
    comments: Optional[str] = Field(None, max_length=1000)


class NumericGradeRequest(BaseModel):
    numeric_score: float
    graded_by: str = Field(..., max_length=200)
    comments: Optional[str] = Field(None, max_length=1000)


class CommentsRequest(BaseModel):
    comments: Optional[str] = Field(None, max_length=1000)


class GradeResponse(BaseModel):
    id: str
    letter_grade: str
    grade_points: float
    numeric_score: Optional[float] = None
    comments: Optional[str] = None
    graded_by: str
    graded_date: datetime
    is_passing: bool
    is_honor_grade: bool


class EnrollmentResponse(BaseModel):
    id: str
    student_id: str
    course_id: str
    credit_hours: int
    status: str
    enrollment_date: datetime
    completion_date: Optional[datetime] = None
    grade: Optional[GradeResponse] = None
    created_at: datetime
    updated_at: datetime
    version: int


class PagedResult(BaseModel):
    items: List[Any]
    total_count: int
    page_number: int
    page_size: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


def paginate(items: List[Any], page_number: int, page_size: int) -> PagedResult:
    """Slice ``items`` into one page."""
    total_count = len(items)
    total_pages = math.ceil(total_count / page_size) if total_count else 0
    start = (page_number - 1) * page_size
    return PagedResult(
        items=items[start:start + page_size],
        total_count=total_count,
        page_number=page_number,
        page_size=page_size,
        total_pages=total_pages,
        has_next_page=page_number < total_pages,
        has_previous_page=page_number > 1,
    )


def envelope(success: bool, data: Any = None, message: Optional[str] = None,
             errors: Optional[List[str]] = None, error_code: Optional[str] = None) -> Dict[str, Any]:
    """Uniform response body shared by every endpoint."""
    return {
        "success": success,
        "data": jsonable_encoder(data),
        "message": message,
        "errors": errors or [],
        "error_code": error_code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class LyceumRestAPI:
    """REST API implementation for the Lyceum platform."""

    def __init__(self, student_service: StudentService, course_service: CourseService,
                 enrollment_service: EnrollmentService):
        self._student_service = student_service
        self._course_service = course_service
        self._enrollment_service = enrollment_service

        # Create FastAPI app
        self.app = FastAPI(
            title="Lyceum Student Management API",
            description="Students, courses, enrollments and grades",
            version=__version__,
            docs_url="/docs",
            redoc_url="/redoc"
        )

        # Add CORS middleware
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._setup_exception_handlers()
        self._setup_routes()

    def _setup_exception_handlers(self):
        """Translate raised errors into the response envelope."""

        @self.app.exception_handler(LyceumException)
        async def lyceum_exception_handler(request: Request, exc: LyceumException):
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
            for exception_type, mapped_status in STATUS_CODES:
                if isinstance(exc, exception_type):
                    status_code = mapped_status
                    break

            if status_code >= 500:
                logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
            error_code = getattr(exc.error_code, "value", exc.error_code)
            return JSONResponse(
                status_code=status_code,
                content=envelope(False, message=exc.message, errors=[exc.message], error_code=error_code),
            )

        @self.app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            errors = [
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            ]
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=envelope(False, message="Invalid request", errors=errors, error_code="invalid_request"),
            )

    def _setup_routes(self):
        """Setup API routes."""

        @self.app.get("/", response_model=Dict[str, str])
        async def root():
            """Root endpoint."""
            return {
                "message": "Lyceum Student Management API",
                "version": __version__,
                "docs": "/docs"
            }

        @self.app.get("/health", response_model=Dict[str, str])
        async def health_check():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

        # Student endpoints
        @self.app.post("/students", status_code=status.HTTP_201_CREATED)
        def create_student(student_data: StudentCreate):
            """Register a new student."""
            student = self._student_service.create_student(
                first_name=student_data.first_name,
                last_name=student_data.last_name,
                email=student_data.email,
                date_of_birth=student_data.date_of_birth,
            )
            return envelope(True, self._student_to_response(student), "Student created successfully")

        @self.app.get("/students")
        def list_students(active_only: bool = False, search: Optional[str] = None,
                          page_number: int = Query(1, ge=1), page_size: int = Query(10, ge=1, le=100)):
            """List students."""
            students = self._student_service.list_students(active_only=active_only, search=search)
            page = paginate([self._student_to_response(s) for s in students], page_number, page_size)
            return envelope(True, page, "Students retrieved successfully")

        @self.app.get("/students/{student_id}")
        def get_student(student_id: str):
            """Get a student by ID."""
            student = self._student_service.get_student(student_id)
            return envelope(True, self._student_to_response(student))

        @self.app.put("/students/{student_id}")
        def update_student(student_id: str, student_data: StudentUpdate):
            """Update a student's personal information."""
            student = self._student_service.update_student(
                student_id,
                first_name=student_data.first_name,
                last_name=student_data.last_name,
                email=student_data.email,
            )
            return envelope(True, self._student_to_response(student), "Student updated successfully")

        @self.app.post("/students/{student_id}/deactivate")
        def deactivate_student(student_id: str):
            student = self._student_service.deactivate_student(student_id)
            return envelope(True, self._student_to_response(student), "Student deactivated")

        @self.app.post("/students/{student_id}/reactivate")
        def reactivate_student(student_id: str):
            student = self._student_service.reactivate_student(student_id)
            return envelope(True, self._student_to_response(student), "Student reactivated")

        @self.app.delete("/students/{student_id}")
        def delete_student(student_id: str):
            """Delete a student without active enrollments."""
            self._student_service.delete_student(student_id)
            return envelope(True, message="Student deleted successfully")

        @self.app.get("/students/{student_id}/gpa")
        def get_student_gpa(student_id: str):
            """Get a student's GPA."""
            student = self._student_service.get_student(student_id)
            gpa = student.calculate_gpa()
            return envelope(True, GPAResponse(
                student_id=str(student.id),
                gpa=float(gpa.value),
                is_honor_roll=gpa.is_honor_roll,
                is_passing=gpa.is_passing,
                completed_credit_hours=student.total_completed_credit_hours,
            ))

        @self.app.get("/students/{student_id}/enrollments")
        def get_student_enrollments(student_id: str):
            """Get a student's enrollments."""
            self._student_service.get_student(student_id)
            enrollments = self._enrollment_service.list_enrollments(student_id=student_id)
            return envelope(True, [self._enrollment_to_response(e) for e in enrollments])

        # Course endpoints
        @self.app.post("/courses", status_code=status.HTTP_201_CREATED)
        def create_course(course_data: CourseCreate):
            """Create a new course."""
            course = self._course_service.create_course(
                code=course_data.code,
                name=course_data.name,
                description=course_data.description,
                credit_hours=course_data.credit_hours,
                department=course_data.department,
                max_enrollment=course_data.max_enrollment,
            )
            return envelope(True, self._course_to_response(course), "Course created successfully")

        @self.app.get("/courses")
        def list_courses(department: Optional[str] = None, active_only: bool = False,
                         available_only: bool = False, page_number: int = Query(1, ge=1),
                         page_size: int = Query(10, ge=1, le=100)):
            """List courses."""
            courses = self._course_service.list_courses(
                department=department, active_only=active_only, available_only=available_only
            )
            page = paginate([self._course_to_response(c) for c in courses], page_number, page_size)
            return envelope(True, page, "Courses retrieved successfully")

        @self.app.get("/courses/code/{code}")
        def get_course_by_code(code: str):
            """Get a course by its code."""
            course = self._course_service.get_course_by_code(code)
            return envelope(True, self._course_to_response(course))

        @self.app.get("/courses/{course_id}")
        def get_course(course_id: str):
            """Get a course by ID."""
            course = self._course_service.get_course(course_id)
            return envelope(True, self._course_to_response(course))

        @self.app.put("/courses/{course_id}")
        def update_course(course_id: str, course_data: CourseUpdate):
            """Update course information."""
            course = self._course_service.update_course(
                course_id,
                name=course_data.name,
                description=course_data.description,
                credit_hours=course_data.credit_hours,
                department=course_data.department,
            )
            return envelope(True, self._course_to_response(course), "Course updated successfully")

        @self.app.put("/courses/{course_id}/max-enrollment")
        def update_max_enrollment(course_id: str, data: MaxEnrollmentUpdate):
            course = self._course_service.update_max_enrollment(course_id, data.max_enrollment)
            return envelope(True, self._course_to_response(course), "Max enrollment updated")

        @self.app.post("/courses/{course_id}/prerequisites")
        def add_prerequisite(course_id: str, data: PrerequisiteRequest):
            """Add a prerequisite course."""
            course = self._course_service.add_prerequisite(course_id, data.prerequisite_course_id)
            return envelope(True, self._course_to_response(course), "Prerequisite added")

        @self.app.delete("/courses/{course_id}/prerequisites/{prerequisite_course_id}")
        def remove_prerequisite(course_id: str, prerequisite_course_id: str):
            """Remove a prerequisite course."""
            course = self._course_service.remove_prerequisite(course_id, prerequisite_course_id)
            return envelope(True, self._course_to_response(course), "Prerequisite removed")

        @self.app.post("/courses/{course_id}/deactivate")
        def deactivate_course(course_id: str):
            course = self._course_service.deactivate_course(course_id)
            return envelope(True, self._course_to_response(course), "Course deactivated")

        @self.app.post("/courses/{course_id}/reactivate")
        def reactivate_course(course_id: str):
            course = self._course_service.reactivate_course(course_id)
            return envelope(True, self._course_to_response(course), "Course reactivated")

        @self.app.delete("/courses/{course_id}")
        def delete_course(course_id: str):
            """Delete a course without active enrollments."""
            self._course_service.delete_course(course_id)
            return envelope(True, message="Course deleted successfully")

        @self.app.get("/courses/{course_id}/enrollments")
        def get_course_enrollments(course_id: str):
            """Get a course's enrollments."""
            self._course_service.get_course(course_id)
            enrollments = self._enrollment_service.list_enrollments(course_id=course_id)
            return envelope(True, [self._enrollment_to_response(e) for e in enrollments])

        # Enrollment endpoints
        @self.app.post("/enrollments", status_code=status.HTTP_201_CREATED)
        def enroll_student(enrollment_data: EnrollmentCreate):
            """Enroll a student in a course."""
            enrollment = self._enrollment_service.enroll_student(
                enrollment_data.student_id,
                enrollment_data.course_id,
                credit_hours=enrollment_data.credit_hours,
            )
            return envelope(True, self._enrollment_to_response(enrollment), "Enrollment created successfully")

        @self.app.get("/enrollments")
        def list_enrollments(student_id: Optional[str] = None, course_id: Optional[str] = None,
                             enrollment_status: Optional[str] = Query(None, alias="status"),
                             page_number: int = Query(1, ge=1), page_size: int = Query(10, ge=1, le=100)):
            """List enrollments."""
            enrollments = self._enrollment_service.list_enrollments(
                student_id=student_id, course_id=course_id, status=enrollment_status
            )
            page = paginate([self._enrollment_to_response(e) for e in enrollments], page_number, page_size)
            return envelope(True, page, "Enrollments retrieved successfully")

        @self.app.get("/enrollments/{enrollment_id}")
        def get_enrollment(enrollment_id: str):
            """Get an enrollment by ID."""
            enrollment = self._enrollment_service.get_enrollment(enrollment_id)
            return envelope(True, self._enrollment_to_response(enrollment))

        @self.app.post("/enrollments/{enrollment_id}/grade")
        def assign_grade(enrollment_id: str, grade_data: GradeRequest):
            """Assign a letter grade."""
            enrollment = self._enrollment_service.assign_grade(
                enrollment_id,
                letter_grade=grade_data.letter_grade,
                grade_points=grade_data.grade_points,
                graded_by=grade_data.graded_by,
                numeric_score=grade_data.numeric_score,
                comments=grade_data.comments,
            )
            return envelope(True, self._enrollment_to_response(enrollment), "Grade assigned successfully")

        @self.app.post("/enrollments/{enrollment_id}/numeric-grade")
        def assign_numeric_grade(enrollment_id: str, grade_data: NumericGradeRequest):
            """Assign a grade from a numeric score."""
            enrollment = self._enrollment_service.assign_numeric_grade(
                enrollment_id,
                numeric_score=grade_data.numeric_score,
                graded_by=grade_data.graded_by,
                comments=grade_data.comments,
            )
            return envelope(True, self._enrollment_to_response(enrollment), "Grade assigned successfully")

        @self.app.put("/enrollments/{enrollment_id}/grade/comments")
        def update_grade_comments(enrollment_id: str, data: CommentsRequest):
            enrollment = self._enrollment_service.update_grade_comments(enrollment_id, data.comments)
            return envelope(True, self._enrollment_to_response(enrollment), "Grade comments updated")

        @self.app.post("/enrollments/{enrollment_id}/complete")
        def complete_enrollment(enrollment_id: str):
            enrollment = self._enrollment_service.complete_enrollment(enrollment_id)
            return envelope(True, self._enrollment_to_response(enrollment), "Enrollment completed")

        @self.app.post("/enrollments/{enrollment_id}/withdraw")
        def withdraw_enrollment(enrollment_id: str):
            enrollment = self._enrollment_service.withdraw_enrollment(enrollment_id)
            return envelope(True, self._enrollment_to_response(enrollment), "Enrollment withdrawn")

        @self.app.post("/enrollments/{enrollment_id}/reactivate")
        def reactivate_enrollment(enrollment_id: str):
            enrollment = self._enrollment_service.reactivate_enrollment(enrollment_id)
            return envelope(True, self._enrollment_to_response(enrollment), "Enrollment reactivated")

        # Statistics endpoints
        @self.app.get("/statistics")
        def get_statistics():
            """Get enrollment statistics."""
            return envelope(True, {"enrollment": self._enrollment_service.get_statistics()},
                            "Statistics retrieved successfully")

    def _student_to_response(self, student: Student) -> StudentResponse:
        """Convert Student entity to response model."""
        return StudentResponse(
            id=str(student.id),
            first_name=student.first_name,
            last_name=student.last_name,
            full_name=student.full_name,
            email=student.email.value,
            date_of_birth=student.date_of_birth,
            age=student.age,
            enrollment_date=student.enrollment_date,
            is_active=student.is_active,
            gpa=float(student.calculate_gpa().value),
            active_enrollment_count=len(student.active_enrollments),
            total_completed_credit_hours=student.total_completed_credit_hours,
            created_at=student.created_at,
            updated_at=student.updated_at,
            version=student.version
        )

    def _course_to_response(self, course: Course) -> CourseResponse:
        """Convert Course entity to response model."""
        return CourseResponse(
            id=str(course.id),
            code=course.code.value,
            name=course.name,
            description=course.description,
            credit_hours=course.credit_hours,
            department=course.department,
            max_enrollment=course.max_enrollment,
            is_active=course.is_active,
            current_enrollment_count=course.current_enrollment_count,
            available_seats=course.available_seats,
            can_enroll=course.can_enroll(),
            prerequisites=[str(p) for p in course.prerequisites],
            created_at=course.created_at,
            updated_at=course.updated_at,
            version=course.version
        )

    def _grade_to_response(self, grade: Grade) -> GradeResponse:
        """Convert Grade entity to response model."""
        return GradeResponse(
            id=str(grade.id),
            letter_grade=grade.letter_grade.value,
            grade_points=float(grade.grade_points),
            numeric_score=float(grade.numeric_score) if grade.numeric_score is not None else None,
            comments=grade.comments,
            graded_by=grade.graded_by,
            graded_date=grade.graded_date,
            is_passing=grade.is_passing,
            is_honor_grade=grade.is_honor_grade
        )

    def _enrollment_to_response(self, enrollment: Enrollment) -> EnrollmentResponse:
        """Convert Enrollment entity to response model."""
        return EnrollmentResponse(
            id=str(enrollment.id),
            student_id=str(enrollment.student_id),
            course_id=str(enrollment.course_id),
            credit_hours=enrollment.credit_hours,
            status=enrollment.status.value,
            enrollment_date=enrollment.enrollment_date,
            completion_date=enrollment.completion_date,
            grade=self._grade_to_response(enrollment.grade) if enrollment.grade else None,
            created_at=enrollment.created_at,
            updated_at=enrollment.updated_at,
            version=enrollment.version
        )
