"""Exception handlers mapping domain errors to JSON responses."""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import structlog
from ..errors import Rejected, UnsupportedCategory

log = structlog.get_logger()


def _error(status_code: int, error: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message, **extra})


async def rejected_handler(request: Request, exc: Rejected):
    log.warning("event.rejected", reason=str(exc))
    return _error(503, "Rejected", str(exc))


async def unsupported_category_handler(request: Request, exc: UnsupportedCategory):
    log.warning("event.unsupported_category", event_type=str(exc.category))
    return _error(400, "UnsupportedCategory", str(exc))


async def validation_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        msg = err.get("msg", "invalid").removeprefix("Value error, ")
        problems.append(f"{field} - {msg}" if field else msg)
    message = "Validation failed: " + "; ".join(problems)
    log.warning("request.validation_failed", problems=problems)
    return _error(400, "ValidationError", message, problems=problems)


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(Rejected, rejected_handler)
    app.add_exception_handler(UnsupportedCategory, unsupported_category_handler)
    app.add_exception_handler(RequestValidationError, validation_handler)
