"""FastAPI observation middleware and problem-detail responses."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ...correlation import (
    PARENT_SPAN_ID_KEY,
    TRACE_ID_KEY,
    generate_correlation_id,
    get_correlation_id,
    parse_traceparent,
    set_correlation_id,
)
from ...exceptions import HelloObservationError
from ...observation import create
from ...problems import PROBLEM_JSON_MEDIA_TYPE, ErrorTranslator, default_translator
from ...registry import ObservationRegistry, get_observation_registry

if TYPE_CHECKING:
    from fastapi import FastAPI, Request
    from starlette.responses import Response

    from ...problems import ProblemDetail

CORRELATION_HEADER = "X-Correlation-ID"
TRACE_HEADER = "X-Trace-Id"


def status_class(status_code: int) -> str:
    """``404`` becomes ``4xx``."""
    return f"{status_code // 100}xx"


def request_attributes(request: Request) -> dict[str, str]:
    """Query and path parameters of ``request``; path parameters win."""
    attributes = {key: str(value) for key, value in request.query_params.items()}
    attributes.update({key: str(value) for key, value in request.path_params.items()})
    return attributes


def problem_response(problem: ProblemDetail) -> JSONResponse:
    return JSONResponse(
        problem.model_dump(),
        status_code=problem.status,
        media_type=PROBLEM_JSON_MEDIA_TYPE,
    )


def install_problem_details(
    app: FastAPI,
    translator: ErrorTranslator | None = None,
) -> None:
    """Render package errors raised by routes as problem details."""
    translator = translator or default_translator()

    async def handle(request: Request, exc: Exception) -> Response:
        return problem_response(translator.translate(exc, request_attributes(request)))

    app.add_exception_handler(HelloObservationError, handle)


class ObservationMiddleware(BaseHTTPMiddleware):
    """Runs every HTTP request inside an ``http.server.requests`` observation.

    Order of Operations:
    1. Correlation: take ``X-Correlation-ID`` from the request or generate one.
    2. Trace: seed the trace id and parent span from ``traceparent``.
    3. Observe: call the rest of the app inside the observation and tag the
       result with the response status class.
    4. Translate: unhandled exceptions become a 500 problem detail.
    5. Headers: echo the correlation id and trace id on the response.
    """

    def __init__(
        self,
        app: Any,
        *,
        registry: ObservationRegistry | None = None,
        translator: ErrorTranslator | None = None,
    ) -> None:
        super().__init__(app)
        self._registry = registry
        self.translator = translator or default_translator()

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        previous = get_correlation_id()
        correlation_id = (
            request.headers.get(CORRELATION_HEADER) or generate_correlation_id()
        )
        set_correlation_id(correlation_id)
        context = create(
            "http.server.requests",
            f"http {request.method.lower()}",
            tags={"method": request.method},
        )
        parent = parse_traceparent(request.headers.get("traceparent"))
        if parent is not None:
            context.put(TRACE_ID_KEY, parent[0])
            context.put(PARENT_SPAN_ID_KEY, parent[1])
        registry = self._registry or get_observation_registry()

        async def handle() -> Response:
            response: Response = await call_next(request)
            context.tag_result("status", status_class(response.status_code))
            return response

        try:
            response = await registry.observe_async(context, handle)
        except Exception as exc:  # noqa: BLE001
            response = problem_response(
                self.translator.translate(exc, request_attributes(request))
            )
        finally:
            set_correlation_id(previous)
        response.headers[CORRELATION_HEADER] = correlation_id
        trace_id = context.get(TRACE_ID_KEY)
        if trace_id:
            response.headers[TRACE_HEADER] = trace_id
        return response
