# SPDX-License-Identifier: Apache-2.0

"""
Authentication service for JWT token management and password hashing.

This module provides JWT token generation and validation using RS256 signing,
bcrypt password hashing, and the credential verifier used to re-authenticate
users when they sign a fiscalization report.
"""

import os
import jwt
import bcrypt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from opentelemetry import trace
import logging

from ..models.entities import User

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when authentication fails."""
    pass


class TokenValidationError(Exception):
    """Raised when token validation fails."""
    pass


def generate_dev_key_pair() -> Tuple[str, str]:
    """Generate RSA key pair for development use."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048
    )

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ).decode('utf-8')

    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode('utf-8')

    return private_pem, public_pem


class AuthService:
    """
    JWT authentication service with RS256 signing and bcrypt password hashing.
    """

    def __init__(self, private_key: Optional[str] = None, public_key: Optional[str] = None):
        """
        Initialize the authentication service.

        Args:
            private_key: RS256 private key for token signing (PEM format)
            public_key: RS256 public key for token verification (PEM format)
        """
        private_key = private_key or os.getenv("JWT_PRIVATE_KEY")
        public_key = public_key or os.getenv("JWT_PUBLIC_KEY")

        if not private_key or not public_key:
            # Both halves must come from the same pair
            logger.warning("No JWT key pair configured, generating development key pair")
            private_key, public_key = generate_dev_key_pair()

        self.private_key = private_key
        self.public_key = public_key
        self.algorithm = "RS256"
        self.access_token_expire_minutes = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    def hash_password(self, password: str) -> str:
        """
        Hash a password using bcrypt with salt.

        Args:
            password: Plain text password to hash

        Returns:
            Hashed password string
        """
        with tracer.start_as_current_span("auth.hash_password") as span:
            span.set_attribute("auth.operation", "hash_password")

            salt = bcrypt.gensalt(rounds=12)
            hashed = bcrypt.hashpw(password.encode('utf-8'), salt)

            logger.debug("Password hashed successfully")
            return hashed.decode('utf-8')

    def verify_password(self, password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Args:
            password: Plain text password to verify
            hashed_password: Stored hashed password

        Returns:
            True if password matches, False otherwise
        """
        with tracer.start_as_current_span("auth.verify_password") as span:
            span.set_attribute("auth.operation", "verify_password")

            try:
                result = bcrypt.checkpw(
                    password.encode('utf-8'),
                    hashed_password.encode('utf-8')
                )
            except ValueError as e:
                # Malformed stored hash
                span.set_attribute("auth.verification_result", "error")
                logger.error(f"Password verification error: {str(e)}")
                return False

            span.set_attribute("auth.verification_result", "success" if result else "failed")
            logger.debug(f"Password verification: {'success' if result else 'failed'}")
            return result

    def generate_tokens(self, user: User) -> Dict[str, Any]:
        """
        Generate an access token for a user.

        Args:
            user: User entity to generate the token for

        Returns:
            Dictionary containing access_token and metadata
        """
        with tracer.start_as_current_span("auth.generate_tokens") as span:
            span.set_attributes({
                "auth.operation": "generate_tokens",
                "user.id": user.id
            })

            now = datetime.now(timezone.utc)
            access_exp = now + timedelta(minutes=self.access_token_expire_minutes)

            access_payload = {
                "sub": user.id,
                "email": user.email,
                "name": user.name,
                "department": user.department,
                "permissions": user.permissions,
                "iat": now,
                "exp": access_exp,
                "type": "access"
            }

            try:
                access_token = jwt.encode(
                    access_payload,
                    self.private_key,
                    algorithm=self.algorithm
                )
            except (jwt.PyJWTError, ValueError) as e:
                span.set_attribute("auth.tokens_generated", "error")
                logger.error(f"Token generation failed: {str(e)}")
                raise AuthenticationError(f"Failed to generate tokens: {str(e)}")

            span.set_attribute("auth.tokens_generated", "success")
            logger.info(
                "JWT token generated successfully",
                extra={
                    "user_id": user.id,
                    "access_expires_at": access_exp.isoformat()
                }
            )

            return {
                "access_token": access_token,
                "token_type": "Bearer",
                "expires_in": self.access_token_expire_minutes * 60,
                "access_expires_at": access_exp.isoformat()
            }

    def validate_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """
        Validate and decode a JWT token.

        Args:
            token: JWT token string to validate
            token_type: Expected token type

        Returns:
            Decoded token payload

        Raises:
            TokenValidationError: If token is invalid or expired
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attributes({
                "auth.operation": "validate_token",
                "auth.token_type": token_type
            })

            try:
                payload = jwt.decode(
                    token,
                    self.public_key,
                    algorithms=[self.algorithm],
                    options={"verify_exp": True}
                )
            except jwt.ExpiredSignatureError:
                span.set_attribute("auth.validation_result", "expired")
                logger.warning("Token validation failed: token expired")
                raise TokenValidationError("Token has expired")
            except jwt.InvalidTokenError as e:
                span.set_attribute("auth.validation_result", "invalid")
                logger.warning(f"Token validation failed: {str(e)}")
                raise TokenValidationError(f"Invalid token: {str(e)}")

            if payload.get("type") != token_type:
                span.set_attribute("auth.validation_result", "invalid")
                raise TokenValidationError(f"Invalid token type. Expected {token_type}")

            span.set_attributes({
                "auth.validation_result": "success",
                "user.id": payload.get("sub")
            })
            logger.debug(
                "Token validated successfully",
                extra={"user_id": payload.get("sub"), "token_type": token_type}
            )
            return payload


class PasswordVerifier:
    """
    Re-authenticates a user against the stored password hash.

    Used at signing time: a valid session is not enough to sign a report,
    the signer types the password again.
    """

    def __init__(self, user_repository, auth_service: AuthService):
        self.user_repository = user_repository
        self.auth_service = auth_service

    def authenticate(self, email: str, password: str) -> User:
        """
        Look up an active user by e-mail and check the password.

        Raises:
            AuthenticationError: If the user is unknown, inactive, or the password is wrong
        """
        user = self.user_repository.find_by_email(email)
        if user is None or not user.is_active:
            logger.warning("Authentication failed: unknown or inactive user", extra={"email": email})
            raise AuthenticationError("Invalid credentials")

        if not password or not self.auth_service.verify_password(password, user.password_hash):
            logger.warning("Authentication failed: wrong password", extra={"user_id": user.id})
            raise AuthenticationError("Invalid credentials")

        return user

    def reauthenticate(self, email: str, credential: str) -> bool:
        with tracer.start_as_current_span("auth.reauthenticate") as span:
            try:
                self.authenticate(email, credential)
            except AuthenticationError:
                span.set_attribute("auth.verification_result", "failed")
                return False
            span.set_attribute("auth.verification_result", "success")
            return True
