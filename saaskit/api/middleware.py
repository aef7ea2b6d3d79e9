"""Middleware for the FastAPI application.

This module contains middleware that process requests and responses,
and the exception handlers registered on the app.
"""

import time
import traceback
import uuid
from typing import Union

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from saaskit.core.config import settings
from saaskit.core.exceptions import (
    ExternalServiceError,
    ImmutableFieldError,
    InvalidPlanError,
    InvalidStateError,
    NotFoundException,
    PaymentRequiredException,
    PermissionException,
    SaasKitException,
    unpack_validation_error,
)
from saaskit.core.logging import logger


async def add_request_id(request: Request, call_next: callable) -> Response:
    """Middleware to generate and add a request ID to the request for tracing.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    request.state.request_id = str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


async def log_requests(request: Request, call_next: callable) -> Response:
    """Middleware to log incoming requests.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.with_context(
        request_id=getattr(request.state, "request_id", ""),
        status_code=response.status_code,
    ).info(
        f"Handled request {request.method} {request.url.path} in {duration:.2f} seconds. "
        f"Response code: {response.status_code}"
    )
    return response


async def exception_logging_middleware(request: Request, call_next: callable) -> Response:
    """Middleware to log unhandled exceptions.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

        response_content = {
            "detail": f"Internal Server Error: {exc.__class__.__name__}: {str(exc)}"
        }

        # Include stack trace only in development mode
        if settings.LOCAL_DEVELOPMENT or settings.DEBUG:
            response_content["trace"] = traceback.format_exc()

        return JSONResponse(status_code=500, content=response_content)


async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    """Exception handler for validation errors that occur during request processing.

    Example of JSON output:
        {
            "errors": [
                {"body.plan": "Field required"},
                {"body.user_id": "Input should be a valid UUID"}
            ]
        }

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (Union[RequestValidationError, ValidationError]): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 422 Unprocessable Entity status response that details the validation
            errors.

    """
    error_messages = unpack_validation_error(exc)
    logger.error(f"Validation error: {error_messages}")
    return JSONResponse(status_code=422, content=error_messages)


async def permission_exception_handler(request: Request, exc: PermissionException) -> JSONResponse:
    """Exception handler for PermissionException.

    Returns:
    -------
        JSONResponse: A 403 Forbidden status response that details the error message.

    """
    return JSONResponse(status_code=403, content={"detail": str(exc)})


async def not_found_exception_handler(request: Request, exc: NotFoundException) -> JSONResponse:
    """Exception handler for NotFoundException.

    Returns:
    -------
        JSONResponse: A 404 Not Found status response that details the error message.

    """
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def invalid_state_exception_handler(request: Request, exc: InvalidStateError) -> JSONResponse:
    """Exception handler for InvalidStateError.

    Returns:
    -------
        JSONResponse: A 400 Bad Request status response that details the error message.

    """
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def invalid_plan_exception_handler(request: Request, exc: InvalidPlanError) -> JSONResponse:
    """Exception handler for InvalidPlanError.

    Returns:
    -------
        JSONResponse: A 400 Bad Request status response that details the error message.

    """
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def payment_required_exception_handler(
    request: Request, exc: PaymentRequiredException
) -> JSONResponse:
    """Exception handler for PaymentRequiredException.

    Returns:
    -------
        JSONResponse: A 402 Payment Required status response with the tiers that grant access.

    """
    return JSONResponse(
        status_code=402,
        content={"detail": str(exc), "required_tiers": exc.required_tiers},
    )


async def external_service_exception_handler(
    request: Request, exc: ExternalServiceError
) -> JSONResponse:
    """Exception handler for ExternalServiceError.

    Returns:
    -------
        JSONResponse: A 503 Service Unavailable status response.

    """
    logger.error(f"External service error: {exc}")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


async def saaskit_exception_handler(request: Request, exc: SaasKitException) -> JSONResponse:
    """Generic exception handler for the remaining SaasKitException types.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (SaasKitException): The exception object that was raised.

    Returns:
    -------
        JSONResponse: HTTP response with appropriate status code and error details.

    """
    status_code_map = {
        ImmutableFieldError: 400,
    }
    status_code = status_code_map.get(type(exc), 500)

    return JSONResponse(status_code=status_code, content={"detail": str(exc)})
