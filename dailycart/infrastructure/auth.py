"""Bearer token authentication.

Tokens are HS256 JWTs carrying ``sub`` (the subject id) and ``role``.
Issuing them is somebody else's job; this module only verifies them.
"""

import jwt
import structlog

from dailycart.domain.exceptions import AuthenticationError
from dailycart.domain.value_objects import Principal, Role
from dailycart.infrastructure.config import settings

logger = structlog.get_logger()


class JwtAuthenticator:
    """Turns a bearer token into a Principal."""

    def __init__(self, secret: str | None = None, algorithm: str | None = None) -> None:
        self._secret = secret or settings.jwt_secret
        self._algorithm = algorithm or settings.jwt_algorithm

    def authenticate(self, token: str | None) -> Principal:
        """Verify a token and extract the principal.

        Args:
            token: Raw JWT, without the "Bearer " prefix.

        Returns:
            The authenticated principal.

        Raises:
            AuthenticationError: Missing, invalid or expired token, or
                claims that do not name a known role.
        """
        if not token:
            raise AuthenticationError("Missing bearer token")

        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired") from None
        except jwt.PyJWTError as exc:
            logger.info("Rejected bearer token", reason=str(exc))
            raise AuthenticationError("Invalid bearer token") from None

        subject = claims.get("sub")
        role = claims.get("role")
        if not subject or not isinstance(subject, str):
            raise AuthenticationError("Token has no subject")
        try:
            return Principal(subject_id=subject, role=Role(role))
        except ValueError:
            raise AuthenticationError(f"Unknown role: {role}", details={"role": role}) from None

    def authenticate_header(self, authorization: str | None) -> Principal:
        """Authenticate an ``Authorization: Bearer <token>`` header value."""
        if not authorization:
            raise AuthenticationError("Missing Authorization header")
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token:
            raise AuthenticationError("Invalid Authorization header format. Use 'Bearer <token>'")
        return self.authenticate(token.strip())
