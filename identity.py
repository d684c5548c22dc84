# Identity provider adapter.
# Callers present `Authorization: Bearer <token>`; the token is a signed,
# timestamped user id. Everything past this point only sees the opaque id.
import logging
from typing import Optional

from flask import request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from errors import AuthenticationError

logger = logging.getLogger(__name__)

TOKEN_SALT = "gameplay-analysis-identity"


class TokenIdentityProvider:
    def __init__(self, secret_key: str, max_age_seconds: int):
        self._serializer = URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)
        self.max_age_seconds = max_age_seconds

    def issue_token(self, user_id: str) -> str:
        if not user_id:
            raise ValueError("user_id is required")
        return self._serializer.dumps({"uid": user_id})

    def verify(self, token: Optional[str]) -> str:
        """Return the user id carried by `token`, or raise AuthenticationError."""
        if not token:
            raise AuthenticationError()
        try:
            data = self._serializer.loads(token, max_age=self.max_age_seconds)
        except SignatureExpired:
            raise AuthenticationError("Session expired. Please sign in again.")
        except BadSignature:
            logger.info("Rejected bearer token with bad signature")
            raise AuthenticationError()

        user_id = data.get("uid") if isinstance(data, dict) else None
        if not user_id:
            raise AuthenticationError()
        return user_id

    def user_from_header(self, header_value: Optional[str]) -> str:
        scheme, _, token = (header_value or "").partition(" ")
        if scheme.lower() != "bearer":
            raise AuthenticationError()
        return self.verify(token.strip())


def current_user_id(provider: TokenIdentityProvider) -> str:
    """User id for the request being handled, from its Authorization header."""
    return provider.user_from_header(request.headers.get("Authorization"))
