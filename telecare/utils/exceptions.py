from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, List, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from telecare.middleware.tracing import TRACE_ID_CTX_VAR


# ---------------- Domain errors ----------------

class ErrorKind(str, Enum):
    MISSING_FIELD = "missing_field"
    EMPTY_REQUIRED_LIST = "empty_required_list"
    OUT_OF_RANGE = "out_of_range"
    INVALID_TYPE = "invalid_type"
    INVALID_VALUE = "invalid_value"


@dataclass(frozen=True)
class FieldError:
    field: str
    kind: ErrorKind
    message: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


class TelecareError(Exception):
    """Base class for errors the API maps onto the error envelope."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    @property
    def details(self) -> Any:
        return None


class AssessmentValidationError(TelecareError):
    """Caller input is malformed. Carries every failing field, not just the first."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid assessment request"

    def __init__(self, errors: List[FieldError], message: Optional[str] = None):
        super().__init__(message)
        self.errors = list(errors)

    @property
    def details(self) -> List[dict]:
        return [e.to_dict() for e in self.errors]

    @property
    def fields(self) -> List[str]:
        return [e.field for e in self.errors]


class AccessDenied(TelecareError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "You do not have permission to access this patient's data"


class AssessmentNotFound(TelecareError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Assessment not found"


class PatientNotFound(TelecareError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Patient not found"


class PersistenceFailure(TelecareError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Assessment could not be saved; please resubmit"


class BackendUnavailable(TelecareError):
    """The text-generation backend failed. Absorbed by the engine, never sent to callers."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Analysis backend unavailable"


# ---------------- Error envelope ----------------

def status_to_code(status_code: int) -> str:
    mapping = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        413: "PAYLOAD_TOO_LARGE",
        415: "UNSUPPORTED_MEDIA_TYPE",
        422: "UNPROCESSABLE_ENTITY",
        429: "TOO_MANY_REQUESTS",
        500: "INTERNAL_SERVER_ERROR",
        503: "SERVICE_UNAVAILABLE",
    }
    return mapping.get(status_code, f"HTTP_{status_code}")


def error_envelope(status_code: int, message: str, details: Any = None) -> JSONResponse:
    body = {
        "error": message,
        "code": status_to_code(status_code),
        "message": message,
        "details": details,
        "trace_id": TRACE_ID_CTX_VAR.get(),
    }
    return JSONResponse(status_code=status_code, content=body)


async def handle_telecare_error(request: Request, exc: TelecareError):
    return error_envelope(exc.status_code, exc.message, exc.details)


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    detail: Any = exc.detail
    message = detail if isinstance(detail, str) else "HTTP error"
    response = error_envelope(exc.status_code, message, detail)
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def handle_request_validation(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return error_envelope(status.HTTP_422_UNPROCESSABLE_ENTITY, "Request could not be parsed", details)


async def handle_unhandled_exception(request: Request, exc: Exception):
    return error_envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred",
        str(exc),
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(TelecareError, handle_telecare_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unhandled_exception)
