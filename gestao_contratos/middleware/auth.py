# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and user context extraction.

This module provides Flask middleware for validating JWT tokens and building
the user context stored on ``flask.g`` for request processing.
"""

from functools import wraps
from flask import request, jsonify, g, current_app
from typing import Optional, Dict, Any, Callable
from opentelemetry import trace
import logging

from ..models.entities import UserContext
from ..services.auth import TokenValidationError
from ..services.hal import PROBLEM_BASE_URI

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


def _problem(error_type: str, title: str, status: int, detail: str):
    return jsonify({
        "type": f"{PROBLEM_BASE_URI}/{error_type}",
        "title": title,
        "status": status,
        "detail": detail,
        "instance": request.path
    }), status


class AuthMiddleware:
    """
    JWT authentication middleware for Flask applications.

    Handles token extraction, validation and user context building for
    protected endpoints.
    """

    def __init__(self, auth_service):
        """
        Initialize the authentication middleware.

        Args:
            auth_service: JWT authentication service
        """
        self.auth_service = auth_service

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from request headers.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '')

        if not auth_header:
            return None

        # Handle "Bearer <token>" format
        if auth_header.startswith('Bearer '):
            return auth_header[7:]

        return auth_header

    def build_user_context(self, token_payload: Dict[str, Any], request_info: Dict[str, Any]) -> UserContext:
        """
        Build user context from validated token payload and request information.

        Args:
            token_payload: Decoded JWT payload
            request_info: Request metadata (IP, user agent)

        Returns:
            UserContext object for request processing
        """
        return UserContext(
            user_id=token_payload["sub"],
            email=token_payload["email"],
            name=token_payload.get("name"),
            department=token_payload.get("department"),
            permissions=token_payload.get("permissions", []),
            token_payload=token_payload,
            ip_address=request_info.get("ip_address"),
            user_agent=request_info.get("user_agent")
        )

    def get_request_info(self) -> Dict[str, Any]:
        """
        Extract request metadata for user context.

        Returns:
            Dictionary with request information
        """
        return {
            "ip_address": request.remote_addr,
            "user_agent": request.headers.get('User-Agent', ''),
            "request_id": request.headers.get('X-Request-ID')
        }


def require_auth(auth_middleware: AuthMiddleware) -> Callable:
    """
    Decorator to require JWT authentication for Flask routes.

    The authenticated user is available as ``g.user_context`` inside the view.

    Args:
        auth_middleware: Configured AuthMiddleware instance

    Returns:
        Decorator function
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            with tracer.start_as_current_span("auth.middleware.validate_request") as span:
                span.set_attribute("auth.operation", "validate_request")

                token = auth_middleware.extract_token_from_request()
                if not token:
                    span.set_attribute("auth.result", "missing_token")
                    logger.warning("Authentication failed: missing token")
                    return _problem(
                        "authentication-required", "Authentication Required", 401,
                        "Missing authorization token"
                    )

                try:
                    token_payload = auth_middleware.auth_service.validate_token(token, "access")
                    user_context = auth_middleware.build_user_context(
                        token_payload,
                        auth_middleware.get_request_info()
                    )
                except (TokenValidationError, KeyError) as e:
                    span.set_attribute("auth.result", "invalid_token")
                    logger.warning(f"Authentication failed: {str(e)}")
                    return _problem("invalid-token", "Invalid Token", 401, str(e))

                g.user_context = user_context

                span.set_attributes({
                    "auth.result": "success",
                    "user.id": user_context.user_id
                })

                logger.debug(
                    "Authentication successful",
                    extra={
                        "user_id": user_context.user_id,
                        "ip_address": user_context.ip_address
                    }
                )

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_jwt(f: Callable) -> Callable:
    """Require authentication using the middleware attached to the current app."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        return require_auth(current_app.auth_middleware)(f)(*args, **kwargs)
    return decorated_function
