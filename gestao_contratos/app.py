# SPDX-License-Identifier: Apache-2.0

"""
Contract Management API - Flask Application Entry Point

This module builds the Flask application with OpenAPI 3.0 support,
configures middleware and wires the storage, identity and HAL services
used by the agreement and fiscalization routes.

Run with ``flask --app gestao_contratos.app:create_app run``.
"""

import os
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag

from .domain.alerts import parse_thresholds
from .observability.config import setup_observability
from .observability.middleware import add_observability_middleware
from .middleware.error_handler import ErrorHandlerMiddleware, register_custom_error_handlers
from .middleware.auth import AuthMiddleware
from .models.responses import HealthCheckResponse
from .services.hal import create_hal_formatter
from .services.mongodb import MongoDBService
from .services.auth import AuthService, PasswordVerifier
from .services.repositories import (
    AgreementRepository,
    AmendmentRepository,
    FiscalizationRepository,
    UserRepository
)
from .routes.agreements import agreements_bp
from .routes.auth import auth_bp
from .routes.fiscalization import fiscalization_bp

SERVICE_NAME = "gestao-contratos-api"
SERVICE_VERSION = "1.0.0"

# OpenAPI info
info = Info(
    title="Gestão de Contratos API",
    version=SERVICE_VERSION,
    description="Agreement lifecycle and fiscalization workflow API with HAL responses"
)

# Route groups tag themselves through their blueprints
health_tag = Tag(name="Health", description="System health and status")


def load_config() -> Dict[str, Any]:
    """Read application settings from the environment."""
    environment = os.getenv('ENVIRONMENT', 'development')
    return {
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',
        'DOCS_ENABLED': os.getenv('DOCS_ENABLED', 'true').lower() == 'true',
        'OTEL_ENABLED': os.getenv('OTEL_ENABLED', 'true').lower() == 'true',
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/gestao_contratos_dev'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'gestao_contratos_dev'),
        'BASE_URL': os.getenv('BASE_URL', 'http://localhost:5000').rstrip('/'),
        'EXPIRY_ALERT_THRESHOLDS': parse_thresholds(os.getenv('EXPIRY_ALERT_THRESHOLDS')),
        'CREATE_INDEXES': os.getenv('CREATE_INDEXES', 'false').lower() == 'true',
    }


def create_app(
    config: Optional[Dict[str, Any]] = None,
    mongodb_service: Optional[MongoDBService] = None,
    auth_service: Optional[AuthService] = None
) -> OpenAPI:
    """
    Build the Flask application.

    Args:
        config: Overrides for the environment-derived settings
        mongodb_service: Storage service, built from the settings when omitted
        auth_service: JWT service, built from JWT_PRIVATE_KEY/JWT_PUBLIC_KEY when omitted

    Returns:
        Configured OpenAPI (Flask) application
    """
    settings = load_config()
    settings.update(config or {})

    # Initialize observability first
    setup_observability()

    app = OpenAPI(
        __name__,
        info=info,
        doc_ui=settings['DOCS_ENABLED'],
        validation_error_status=400
    )
    app.config.update(settings)

    add_observability_middleware(app)

    # Initialize services
    mongodb_service = mongodb_service or MongoDBService(
        app.config['MONGODB_URI'],
        app.config['MONGODB_DATABASE']
    )
    auth_service = auth_service or AuthService()
    if app.config['CREATE_INDEXES']:
        mongodb_service.create_indexes()

    user_repository = UserRepository(mongodb_service)

    # Initialize middleware
    hal_formatter = create_hal_formatter(app.config['BASE_URL'])
    auth_middleware = AuthMiddleware(auth_service)
    ErrorHandlerMiddleware(app, app.config['BASE_URL'])
    register_custom_error_handlers(app, hal_formatter)

    # Make services available to routes
    app.mongodb_service = mongodb_service
    app.auth_service = auth_service
    app.auth_middleware = auth_middleware
    app.hal_formatter = hal_formatter
    app.agreement_repository = AgreementRepository(mongodb_service)
    app.amendment_repository = AmendmentRepository(mongodb_service)
    app.fiscalization_repository = FiscalizationRepository(mongodb_service)
    app.credential_verifier = PasswordVerifier(user_repository, auth_service)
    app.clock = date.today

    # Register routes
    app.register_api(auth_bp)
    app.register_api(agreements_bp)
    app.register_api(fiscalization_bp)

    @app.get('/api/healthz', tags=[health_tag], responses={"200": HealthCheckResponse, "503": HealthCheckResponse})
    def health_check():
        """Health check with MongoDB status"""
        mongodb_health = app.mongodb_service.health_check()
        status = "healthy" if mongodb_health.get("status") == "healthy" else "unhealthy"

        health_response = app.hal_formatter.builder.build_resource_response(
            {
                "status": status,
                "service": SERVICE_NAME,
                "version": SERVICE_VERSION,
                "environment": app.config['ENVIRONMENT'],
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "dependencies": {"mongodb": mongodb_health}
            },
            "/api/healthz"
        )
        return jsonify(health_response), 200 if status == "healthy" else 503

    return app


if __name__ == '__main__':
    # Development server
    application = create_app()
    application.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=application.config['DEBUG']
    )
