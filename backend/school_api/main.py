"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the School API. Controllers
are intentionally thin: they accept requests, build a `SchoolService`
over the request's store, delegate, and return JSON responses. Domain
errors are translated to status codes by a single exception handler.

Endpoints implemented, for each of teachers, courses, students, tests:
- GET /{kind}
- GET /{kind}/{id}
- POST /{kind}
- PUT /{kind}/{id}
- DELETE /{kind}/{id}

plus:
- GET /
- GET /students/{id}/average
- GET /courses/{id}/average
"""

from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from typing import Optional, Type
import json
import logging
import time
import uuid
from .config import settings
from .database import create_db_and_tables, get_store
from .errors import SchoolError
from .models import EntityKind
from .schemas import AverageOut, CourseIn, PayloadIn, StudentIn, TeacherIn, TestIn
from .services import SchoolService

app = FastAPI(title="School API")
logger = logging.getLogger("school_api.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

if settings.STORAGE_BACKEND == "sql":
    create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
            ensure_ascii=True,
        ),
    )
    return response


@app.exception_handler(SchoolError)
async def school_error_handler(request: Request, exc: SchoolError):
    content = {"error": exc.message}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    # already logged by request_context_middleware
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def get_service(store=Depends(get_store)) -> SchoolService:
    """Build the request-scoped `SchoolService`."""
    return SchoolService(store)


def _dump(record) -> dict:
    return record.model_dump()


@app.get('/', response_class=PlainTextResponse)
def root():
    return "School API running"


def _register_crud(kind: EntityKind, schema: Type[PayloadIn]):
    """Add the five CRUD routes for `kind`, all sharing one body schema."""
    prefix = f"/{kind.value}"
    label = kind.label.lower()

    def list_records(svc: SchoolService = Depends(get_service)):
        return [_dump(r) for r in svc.list_records(kind)]

    def get_record(record_id: int, svc: SchoolService = Depends(get_service)):
        return _dump(svc.get(kind, record_id))

    def create_record(payload: schema, svc: SchoolService = Depends(get_service)):
        return _dump(svc.create(kind, payload.model_dump(exclude_unset=True)))

    def update_record(record_id: int, payload: schema, svc: SchoolService = Depends(get_service)):
        """Partial update: only the fields present in the body change."""
        return _dump(svc.update(kind, record_id, payload.model_dump(exclude_unset=True)))

    def delete_record(record_id: int, svc: SchoolService = Depends(get_service)):
        return _dump(svc.delete(kind, record_id))

    if kind is not EntityKind.TEST:
        app.add_api_route(prefix, list_records, methods=["GET"], name=f"list_{kind.value}")
    app.add_api_route(f"{prefix}/{{record_id}}", get_record, methods=["GET"], name=f"get_{label}")
    app.add_api_route(prefix, create_record, methods=["POST"], status_code=201, name=f"create_{label}")
    app.add_api_route(f"{prefix}/{{record_id}}", update_record, methods=["PUT"], name=f"update_{label}")
    app.add_api_route(f"{prefix}/{{record_id}}", delete_record, methods=["DELETE"], name=f"delete_{label}")


@app.get('/tests')
def list_tests(student_id: Optional[int] = None, course_id: Optional[int] = None,
               svc: SchoolService = Depends(get_service)):
    """List tests, optionally only those of one student and/or course."""
    return [_dump(t) for t in svc.list_records(EntityKind.TEST, student_id=student_id, course_id=course_id)]


@app.get('/students/{student_id}/average', response_model=AverageOut)
def student_average(student_id: int, svc: SchoolService = Depends(get_service)):
    """Unweighted average percentage over all of a student's tests."""
    avg = svc.average_for_student(student_id)
    return AverageOut(average=avg.average, count=avg.count)


@app.get('/courses/{course_id}/average', response_model=AverageOut)
def course_average(course_id: int, svc: SchoolService = Depends(get_service)):
    """Unweighted average percentage over all tests written in a course."""
    avg = svc.average_for_course(course_id)
    return AverageOut(average=avg.average, count=avg.count)


_register_crud(EntityKind.TEACHER, TeacherIn)
_register_crud(EntityKind.COURSE, CourseIn)
_register_crud(EntityKind.STUDENT, StudentIn)
_register_crud(EntityKind.TEST, TestIn)
