"""
Main entry point for the Lyceum platform.
"""

import copy
import json
import logging
import os
from datetime import date
from typing import Any, Dict, Mapping, Optional

from .api.rest_api import LyceumRestAPI
from .core.exceptions import ConfigurationError
from .core.value_objects import CourseCode, Email
from .persistence import DatabaseFactory, unit_of_work_factory
from .services import CourseService, EnrollmentService, StudentService


logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'database_type': 'sqlite',
    'database_config': {'database_path': 'lyceum.db'},
    'host': '0.0.0.0',
    'port': 8000,
    'log_level': 'INFO',
}


def load_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Build the platform configuration.

    Values from the JSON file at ``path`` override the defaults, and the
    ``LYCEUM_DATABASE_PATH`` / ``LYCEUM_LOG_LEVEL`` environment variables
    override both.
    """
    environ = os.environ if environ is None else environ
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path:
        try:
            with open(path, 'r') as f:
                overrides = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
        if not isinstance(overrides, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a JSON object")

        database_overrides = overrides.pop('database_config', None) or {}
        config.update(overrides)
        config['database_config'].update(database_overrides)

    if environ.get('LYCEUM_DATABASE_PATH'):
        config['database_config']['database_path'] = environ['LYCEUM_DATABASE_PATH']
    if environ.get('LYCEUM_LOG_LEVEL'):
        config['log_level'] = environ['LYCEUM_LOG_LEVEL']

    return config


class LyceumPlatform:
    """Main platform class that wires storage, services and the REST API."""

    def __init__(self, config: Optional[dict] = None):
        self._config = config or copy.deepcopy(DEFAULT_CONFIG)
        self._database = None
        self._student_service = None
        self._course_service = None
        self._enrollment_service = None
        self._rest_app = None

        # Initialize platform
        self._initialize_platform()

    @property
    def student_service(self) -> StudentService:
        return self._student_service

    @property
    def course_service(self) -> CourseService:
        return self._course_service

    @property
    def enrollment_service(self) -> EnrollmentService:
        return self._enrollment_service

    @property
    def rest_api(self) -> LyceumRestAPI:
        return self._rest_app

    def _initialize_platform(self):
        """Initialize the platform with all services."""
        print("Initializing Lyceum platform...")

        # Initialize database
        db_type = self._config.get('database_type', 'sqlite')
        db_config = self._config.get('database_config', {})
        self._database = DatabaseFactory.create_database(db_type, **db_config)
        print(f"✓ Database initialized: {db_type}")

        # Initialize services
        uow_factory = unit_of_work_factory(self._database)
        self._student_service = StudentService(uow_factory)
        self._course_service = CourseService(uow_factory)
        self._enrollment_service = EnrollmentService(uow_factory)
        print("✓ Services initialized")

        # Initialize API
        self._rest_app = LyceumRestAPI(
            self._student_service,
            self._course_service,
            self._enrollment_service
        )
        print("✓ API initialized")

        print("✓ Lyceum platform initialized successfully!")

    def start_rest_server(self, host: Optional[str] = None, port: Optional[int] = None):
        """Start the REST server and block until it exits."""
        import uvicorn

        host = host or self._config.get('host', DEFAULT_CONFIG['host'])
        port = port or self._config.get('port', DEFAULT_CONFIG['port'])

        print(f"✓ REST server starting on {host}:{port}")
        print(f"  - REST API: http://localhost:{port}")
        print(f"  - API Docs: http://localhost:{port}/docs")
        uvicorn.run(
            self._rest_app.app,
            host=host,
            port=port,
            log_level=str(self._config.get('log_level', 'INFO')).lower()
        )

    def create_sample_data(self):
        """Create sample courses and students, skipping any that already exist."""
        print("Creating sample data...")

        courses = [
            ("CS101", "Introduction to Computer Science", "Programming fundamentals", 3, "Computer Science", 30),
            ("CS201", "Data Structures", "Lists, trees, graphs and their algorithms", 4, "Computer Science", 25),
            ("MATH101", "Calculus I", "Limits, derivatives and integrals", 4, "Mathematics", 40),
        ]
        existing_codes = {c.code for c in self._course_service.list_courses()}
        for code, name, description, credit_hours, department, max_enrollment in courses:
            if CourseCode(code) in existing_codes:
                continue
            self._course_service.create_course(code, name, description, credit_hours, department, max_enrollment)

        intro = self._course_service.get_course_by_code("CS101")
        data_structures = self._course_service.get_course_by_code("CS201")
        if intro.id not in data_structures.prerequisites:
            self._course_service.add_prerequisite(data_structures.id, intro.id)

        students = [
            ("Alice", "Johnson", "alice@university.edu", date(2003, 4, 12)),
            ("Bob", "Smith", "bob@university.edu", date(2002, 9, 30)),
            ("Carol", "Davis", "carol@university.edu", date(2004, 1, 5)),
        ]
        existing_emails = {s.email for s in self._student_service.list_students()}
        for first_name, last_name, email, date_of_birth in students:
            if Email(email) not in existing_emails:
                self._student_service.create_student(first_name, last_name, email, date_of_birth)

        print("✓ Sample data created")

    def run_demo(self):
        """Run a demonstration of the platform."""
        print("Running Lyceum platform demonstration...")

        self.create_sample_data()

        student = self._student_service.list_students(search="Alice")[0]
        intro = self._course_service.get_course_by_code("CS101")
        calculus = self._course_service.get_course_by_code("MATH101")

        print("\n=== Enrollment Demo ===")
        for course, score in ((intro, 95), (calculus, 84)):
            if self._enrollment_service.list_enrollments(student_id=student.id, course_id=course.id):
                continue
            enrollment = self._enrollment_service.enroll_student(student.id, course.id)
            enrollment = self._enrollment_service.assign_numeric_grade(enrollment.id, score, "Dr. Turing")
            self._enrollment_service.complete_enrollment(enrollment.id)
            print(f"{student.full_name} completed {course.code} with {enrollment.grade.letter_grade.value}")

        gpa = self._student_service.calculate_gpa(student.id)
        print(f"GPA for {student.full_name}: {gpa} (honor roll: {gpa.is_honor_roll})")

        print("\n=== Platform Statistics ===")
        print(f"Enrollment Service: {self._enrollment_service.get_statistics()}")

        print("\n✓ Demo completed")


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Lyceum Student Management Platform")
    parser.add_argument("--host", type=str, help="REST server host")
    parser.add_argument("--port", type=int, help="REST server port")
    parser.add_argument("--demo", action="store_true", help="Run demo mode")
    parser.add_argument("--config", type=str, help="Configuration file path")

    args = parser.parse_args()

    # Load configuration
    config = load_config(args.config)
    logging.basicConfig(
        level=str(config.get('log_level', 'INFO')).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    platform = LyceumPlatform(config)

    try:
        if args.demo:
            platform.run_demo()
        else:
            platform.start_rest_server(args.host, args.port)
    except KeyboardInterrupt:
        print("\nShutting down...")


if __name__ == "__main__":
    main()
