"""CLI script to seed a small demo data set through the domain service.
Usage: python scripts/seed_demo.py [--backend sql|json] [--data-dir DIR]
"""
import sys
import argparse
import pathlib
from typing import Optional
# Ensure `backend/` is on sys.path so `school_api` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from school_api.database import engine, create_db_and_tables
from school_api.errors import SchoolError
from school_api.models import EntityKind
from school_api.repositories import JsonFileStore, SqlStore
from school_api.services import SchoolService


def seed(svc: SchoolService):
    """Create one teacher, course and student with two tests and print averages."""
    teacher = svc.create(EntityKind.TEACHER, {
        'first_name': 'Ada', 'last_name': 'Byron', 'email': 'ada@school.test', 'department': 'Math', 'room': 'B12',
    })
    course = svc.create(EntityKind.COURSE, {
        'code': 'MTH101', 'name': 'Algebra', 'teacher_id': teacher.id, 'semester': '1', 'room': 'B12',
    })
    student = svc.create(EntityKind.STUDENT, {
        'first_name': 'Sam', 'last_name': 'Lee', 'grade': 11, 'student_number': 'S-0001',
    })
    for name, mark in (('Quiz 1', 8), ('Quiz 2', 5)):
        svc.create(EntityKind.TEST, {
            'student_id': student.id, 'course_id': course.id, 'name': name,
            'date': '2024-09-15', 'mark': mark, 'out_of': 10,
        })
    print(f'Seeded teacher {teacher.id}, course {course.id}, student {student.id}')
    print(f'Student average: {svc.average_for_student(student.id).average}')
    print(f'Course average: {svc.average_for_course(course.id).average}')


def main(backend: str = 'sql', data_dir: Optional[str] = None):
    try:
        if backend == 'json':
            seed(SchoolService(JsonFileStore(pathlib.Path(data_dir) if data_dir else ROOT / 'data')))
            return
        create_db_and_tables()
        with Session(engine) as session:
            seed(SchoolService(SqlStore(session)))
    except SchoolError as e:
        print(f'Seeding failed: {e.message} {e.details}')
        sys.exit(1)


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--backend', choices=['sql', 'json'], default='sql', help='Storage backend to seed')
    parser.add_argument('--data-dir', help='Directory for the JSON backend')
    args = parser.parse_args()
    main(backend=args.backend, data_dir=args.data_dir)
