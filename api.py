"""FastAPI endpoints for the calculator and its history.

Routes
------
GET    /health             Liveness check
POST   /v1/add             {"a": x, "b": y} -> {"result": x + y}
POST   /v1/subtract        {"a": x, "b": y} -> {"result": x - y}
POST   /v1/multiply        {"a": x, "b": y} -> {"result": x * y}
POST   /v1/divide          {"a": x, "b": y} -> {"result": x / y}
GET    /v1/calculate       ?op=&a=&b= query-string variant
GET    /v1/history         Recorded calls, newest first (?limit=n)
DELETE /v1/history         Clear the history

Request errors are rendered as a Problem envelope with HTTP status 400.
Unknown routes and methods keep their 404/405 status in the same envelope.
"""
from __future__ import annotations

import math
import re
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from calculator import DivisionByZeroError
from models import (
    CalcRequest,
    CalcResponse,
    HistoryEntry,
    Operator,
    Problem,
    StatusResponse,
)
from service import CalculatorService

router = APIRouter(tags=["calculator"])

MAX_BODY_BYTES = 1 << 20

# Plain decimal literals only: no underscores, padding or hex.
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)

OPERATOR_ALIASES: dict[str, Operator] = {
    "add": Operator.ADD,
    "+": Operator.ADD,
    "subtract": Operator.SUBTRACT,
    "-": Operator.SUBTRACT,
    "multiply": Operator.MULTIPLY,
    "*": Operator.MULTIPLY,
    "x": Operator.MULTIPLY,
    "divide": Operator.DIVIDE,
    "/": Operator.DIVIDE,
}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ApiProblem(Exception):
    """Raised by endpoints; rendered as a Problem envelope by the app."""

    def __init__(self, title: str, detail: str, status: int = 400) -> None:
        self.title = title
        self.detail = detail
        self.status = status
        super().__init__(f"{title}: {detail}")

    def to_problem(self) -> Problem:
        return Problem(title=self.title, status=self.status, detail=self.detail)


def problem_response(
    problem: Problem, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status, content=problem.model_dump(), headers=headers
    )


async def handle_api_problem(request: Request, exc: ApiProblem) -> JSONResponse:
    return problem_response(exc.to_problem())


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Map FastAPI validation failures onto the Problem envelope."""
    errors = exc.errors()
    in_body = any(err.get("loc", ("",))[0] == "body" for err in errors)
    title = "invalid_json" if in_body else "invalid_input"
    detail = errors[0].get("msg", "invalid request") if errors else "invalid request"
    return problem_response(Problem(title=title, status=400, detail=detail))


async def handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render framework errors (unparseable bodies, unknown routes) as Problems."""
    if exc.status_code == 400:
        title = "invalid_json"
    else:
        title = HTTPStatus(exc.status_code).phrase.lower().replace(" ", "_")
    problem = Problem(title=title, status=exc.status_code, detail=str(exc.detail))
    return problem_response(problem, headers=getattr(exc, "headers", None))


def _calculation_error(e: DivisionByZeroError) -> ApiProblem:
    return ApiProblem("calculation_error", str(e))


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_service(request: Request) -> CalculatorService:
    """Return the service instance owned by the running app."""
    return request.app.state.service


async def require_json_body(request: Request) -> None:
    """Enforce a JSON content type."""
    content_type = request.headers.get("content-type", "")
    if not content_type.lower().startswith("application/json"):
        raise ApiProblem("invalid_json", "Content-Type must be application/json")


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class BodySizeLimitMiddleware:
    """Reject request bodies larger than ``max_bytes`` before they are parsed.

    A declared Content-Length over the cap is refused without reading the
    body. Bodies without a length are counted chunk by chunk as they arrive.
    """

    def __init__(self, app: ASGIApp, max_bytes: int = MAX_BODY_BYTES) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers") or [])
        declared = headers.get(b"content-length")
        if declared and declared.isdigit() and int(declared) > self.max_bytes:
            response = problem_response(
                Problem(
                    title="invalid_json", status=400, detail="request body too large"
                )
            )
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise HTTPException(
                        status_code=400, detail="request body too large"
                    )
            return message

        await self.app(scope, limited_receive, send)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require_finite(a: float, b: float) -> None:
    # Overflowing literals such as 1e400 parse to inf and are rejected here.
    if not (math.isfinite(a) and math.isfinite(b)):
        raise ApiProblem("invalid_input", "inputs must be finite numbers")


def _run(
    service: CalculatorService, operator: Operator, a: float, b: float
) -> CalcResponse:
    try:
        result = service.execute(operator, a, b)
    except DivisionByZeroError as e:
        raise _calculation_error(e) from e
    return CalcResponse(result=result)


def _binary(
    service: CalculatorService, operator: Operator, payload: CalcRequest
) -> CalcResponse:
    _require_finite(payload.a, payload.b)
    return _run(service, operator, payload.a, payload.b)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/health", response_model=StatusResponse)
def health() -> StatusResponse:
    return StatusResponse(status="ok")


@router.post(
    "/v1/add",
    response_model=CalcResponse,
    dependencies=[Depends(require_json_body)],
)
def add(
    payload: CalcRequest, service: CalculatorService = Depends(get_service)
) -> CalcResponse:
    """Add b to a."""
    return _binary(service, Operator.ADD, payload)


@router.post(
    "/v1/subtract",
    response_model=CalcResponse,
    dependencies=[Depends(require_json_body)],
)
def subtract(
    payload: CalcRequest, service: CalculatorService = Depends(get_service)
) -> CalcResponse:
    """Subtract b from a."""
    return _binary(service, Operator.SUBTRACT, payload)


@router.post(
    "/v1/multiply",
    response_model=CalcResponse,
    dependencies=[Depends(require_json_body)],
)
def multiply(
    payload: CalcRequest, service: CalculatorService = Depends(get_service)
) -> CalcResponse:
    """Multiply a by b."""
    return _binary(service, Operator.MULTIPLY, payload)


@router.post(
    "/v1/divide",
    response_model=CalcResponse,
    dependencies=[Depends(require_json_body)],
)
def divide(
    payload: CalcRequest, service: CalculatorService = Depends(get_service)
) -> CalcResponse:
    """Divide a by b. A zero divisor yields a calculation_error problem."""
    return _binary(service, Operator.DIVIDE, payload)


@router.get("/v1/calculate", response_model=CalcResponse)
def calculate(
    op: str | None = Query(default=None, description="Operator or symbol"),
    a: str | None = Query(default=None, description="First operand"),
    b: str | None = Query(default=None, description="Second operand"),
    service: CalculatorService = Depends(get_service),
) -> CalcResponse:
    """Query-string variant of the four binary operations."""
    if not op or not a or not b:
        raise ApiProblem("missing_params", "op, a, and b are required")

    if not (_DECIMAL_RE.fullmatch(a) and _DECIMAL_RE.fullmatch(b)):
        raise ApiProblem("invalid_input", "a and b must be valid finite numbers")
    av, bv = float(a), float(b)
    if not (math.isfinite(av) and math.isfinite(bv)):
        raise ApiProblem("invalid_input", "a and b must be valid finite numbers")

    operator = OPERATOR_ALIASES.get(op.strip().lower())
    if operator is None:
        raise ApiProblem("invalid_op", "use add|subtract|multiply|divide")

    return _run(service, operator, av, bv)


@router.get("/v1/history", response_model=list[HistoryEntry])
def get_history(
    limit: int | None = Query(
        default=None, description="Max entries; zero, negative or absent means all"
    ),
    service: CalculatorService = Depends(get_service),
) -> list[HistoryEntry]:
    """List recorded calls, newest first."""
    return service.get_history(limit or 0)


@router.delete("/v1/history", response_model=StatusResponse)
def clear_history(
    service: CalculatorService = Depends(get_service),
) -> StatusResponse:
    """Clear the history. Safe to call repeatedly."""
    service.clear_history()
    return StatusResponse(status="cleaned")
