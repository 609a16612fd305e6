# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL responses.

Every failure leaves the API as an RFC 7807 problem document with HAL links.
Workflow errors raised by the domain layer are mapped to HTTP statuses here,
so routes let them propagate.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Dict, Any, Tuple
from opentelemetry import trace
from pydantic import ValidationError
import logging

from ..domain.errors import (
    WorkflowError,
    OutOfTurnError,
    ReportCompletedError,
    ReauthenticationError,
    ReportLockedError,
    InvalidReferenceMonthError
)
from ..services.hal import HalFormatter
from ..services.repositories import TransitionConflictError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

# HTTP status for each workflow failure
WORKFLOW_ERROR_STATUS = {
    OutOfTurnError: 409,
    ReportCompletedError: 409,
    ReauthenticationError: 401,
    ReportLockedError: 403,
    InvalidReferenceMonthError: 400,
}

# Problem type and title for plain HTTP errors raised by Flask/werkzeug
HTTP_ERROR_TYPES = {
    400: ("bad-request", "Bad Request"),
    401: ("authentication-required", "Authentication Required"),
    403: ("insufficient-permissions", "Insufficient Permissions"),
    404: ("resource-not-found", "Resource Not Found"),
    405: ("method-not-allowed", "Method Not Allowed"),
    409: ("resource-conflict", "Resource Conflict"),
    415: ("unsupported-media-type", "Unsupported Media Type"),
    500: ("internal-server-error", "Internal Server Error"),
    503: ("service-unavailable", "Service Unavailable"),
}


class ErrorHandlerMiddleware:
    """Centralized HTTP error handling with HAL response formatting."""

    def __init__(self, app: Flask, base_url: str):
        self.app = app
        self.hal_formatter = HalFormatter(base_url)
        self.app.register_error_handler(HTTPException, self.handle_http_error)
        self.app.register_error_handler(Exception, self.handle_unexpected_error)

    def is_production(self) -> bool:
        return self.app.config.get('ENVIRONMENT') == 'production'

    def handle_http_error(self, error: HTTPException) -> Tuple[Dict[str, Any], int]:
        """
        Render a werkzeug HTTP error (404 for unknown URLs, 405, ...) as a problem document.

        Returns:
            Tuple of (error response dict, status code)
        """
        status_code = error.code or 500
        error_type, title = HTTP_ERROR_TYPES.get(status_code, ("http-error", error.name))

        with tracer.start_as_current_span("error_handler.http_error") as span:
            span.set_attributes({
                "error.type": error_type,
                "error.status": status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            detail = str(error.description) if error.description else title
            log_extra = {
                "error_type": error_type,
                "status_code": status_code,
                "detail": detail,
                "path": request.path,
                "method": request.method,
                "ip_address": request.remote_addr
            }

            if status_code >= 500:
                logger.error(f"Server error: {title}", extra=log_extra)
                if self.is_production():
                    detail = "An internal server error occurred"
            else:
                logger.warning(f"Client error: {title}", extra=log_extra)

            error_response = self.hal_formatter.builder.build_error_response(
                error_type,
                title,
                status_code,
                detail,
                request.path
            )
            return error_response, status_code

    def handle_unexpected_error(self, error: Exception) -> Tuple[Dict[str, Any], int]:
        """
        Handle exceptions no other handler claimed.

        Returns:
            Tuple of (error response dict, status code)
        """
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_type": "unexpected-error",
                    "error_class": error.__class__.__name__,
                    "path": request.path,
                    "method": request.method
                },
                exc_info=error
            )

            detail = "An unexpected error occurred"
            if not self.is_production():
                detail = f"{error.__class__.__name__}: {str(error)}"

            error_response = self.hal_formatter.format_server_error(detail, request.path)
            return error_response, 500


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class AuthenticationException(CustomException):
    """Exception for authentication errors."""

    def __init__(self, message: str):
        super().__init__(message, 401, "authentication-required")


class AuthorizationException(CustomException):
    """Exception for authorization errors."""

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundException(CustomException):
    """Exception for resource not found errors."""

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


def register_custom_error_handlers(app: Flask, hal_formatter: HalFormatter):
    """
    Register handlers for custom exceptions, workflow errors and
    validation errors raised while handling a request.

    Args:
        app: Flask application
        hal_formatter: HAL formatter instance
    """

    formatters = {
        AuthenticationException: hal_formatter.format_authentication_error,
        AuthorizationException: hal_formatter.format_authorization_error,
        NotFoundException: hal_formatter.format_not_found_error,
    }

    @app.errorhandler(CustomException)
    def handle_custom_exception(error: CustomException):
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            logger.warning(
                f"Custom exception: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "error_message": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            formatter = formatters.get(type(error), hal_formatter.format_server_error)
            return jsonify(formatter(error.message, request.path)), error.status_code

    @app.errorhandler(WorkflowError)
    def handle_workflow_error(error: WorkflowError):
        status_code = WORKFLOW_ERROR_STATUS.get(type(error), 400)

        with tracer.start_as_current_span("error_handler.workflow_error") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            logger.warning(
                f"Workflow error: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": status_code,
                    "error_message": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            extra = {}
            if isinstance(error, OutOfTurnError):
                extra["awaited_role"] = error.awaited_role

            error_response = hal_formatter.builder.build_error_response(
                error.error_type,
                "Workflow Error",
                status_code,
                error.message,
                request.path,
                extra=extra
            )
            return jsonify(error_response), status_code

    @app.errorhandler(TransitionConflictError)
    def handle_transition_conflict(error: TransitionConflictError):
        logger.warning(
            "Concurrent report update rejected",
            extra={"report_id": error.report_id, "path": request.path}
        )
        error_response = hal_formatter.format_conflict_error(
            error.message,
            request.path,
            error_type=error.error_type
        )
        return jsonify(error_response), 409

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        validation_errors = [
            {
                "field": ".".join(str(part) for part in item["loc"]),
                "message": item["msg"],
                "type": item["type"]
            }
            for item in error.errors()
        ]
        logger.warning(
            "Validation failed",
            extra={"path": request.path, "error_count": len(validation_errors)}
        )
        error_response = hal_formatter.format_validation_error(
            "Request validation failed",
            request.path,
            validation_errors
        )
        return jsonify(error_response), 400
