# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Authentication endpoints.
"""

from flask import jsonify, current_app, request
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from ..models.requests import LoginRequest
from ..models.responses import ErrorResponse
from ..services.auth import AuthenticationError
from ..middleware.error_handler import AuthenticationException

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
auth_tag = Tag(name="Authentication", description="User authentication")
auth_bp = APIBlueprint(
    'auth',
    __name__,
    url_prefix='/api/auth',
    abp_tags=[auth_tag]
)


@auth_bp.post('/login', responses={"401": ErrorResponse})
def login(body: LoginRequest):
    """
    Authenticate user and return a JWT access token.
    """
    with tracer.start_as_current_span(
        "auth.login",
        attributes={
            "operation": "login",
            "ip_address": request.remote_addr or ""
        }
    ) as span:
        try:
            user = current_app.credential_verifier.authenticate(body.email, body.password)
        except AuthenticationError:
            span.set_status(Status(StatusCode.ERROR, "Invalid credentials"))
            logger.warning(
                "Login attempt failed",
                extra={"email": body.email, "ip_address": request.remote_addr}
            )
            raise AuthenticationException("Invalid email or password")

        tokens = current_app.auth_service.generate_tokens(user)
        span.set_attribute("user.id", user.id)

        logger.info(
            "User logged in",
            extra={"user_id": user.id, "ip_address": request.remote_addr}
        )

        base_url = current_app.config['BASE_URL']
        return jsonify({
            **tokens,
            "user": {
                "id": user.id,
                "email": user.email,
                "name": user.name,
                "department": user.department,
                "permissions": user.permissions
            },
            "_links": {
                "self": {"href": f"{base_url}/api/auth/login"},
                "agreements": {"href": f"{base_url}/api/agreements"},
                "alerts": {"href": f"{base_url}/api/agreements/alerts"}
            }
        })
