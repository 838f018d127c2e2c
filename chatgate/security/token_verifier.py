"""
Bearer token verification.

Tokens are HS256 JWTs signed by the auth service with the shared secret. The
caller's stable identifier is carried in the ``userId`` claim.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import jwt

from chatgate.config import Config

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
SUBJECT_CLAIM = "userId"
BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Identity:
    subject: str
    claims: dict[str, Any] = field(default_factory=dict, compare=False)


def extract_bearer_token(authorization: str | None) -> str | None:
    """
    Pull the raw token out of an ``Authorization`` header value.

    Returns None when the header is absent or not of the form
    ``Bearer <token>``.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class TokenVerifier:
    """Verifies bearer tokens against the shared secret."""

    def __init__(self, secret: str | None = None, algorithms: list[str] | None = None):
        self.secret = secret if secret is not None else Config.SHARED_TOKEN_SECRET
        self.algorithms = algorithms or [ALGORITHM]

    def verify(self, raw_token: str) -> Identity | None:
        """Return the caller identity, or None if the token does not verify."""
        if not self.secret:
            logger.error("SHARED_TOKEN_SECRET is not configured; rejecting token")
            return None

        try:
            payload = jwt.decode(raw_token, self.secret, algorithms=self.algorithms)
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired token")
            return None
        except jwt.InvalidTokenError as e:
            logger.info(f"Rejected invalid token: {e!s}")
            return None

        subject = payload.get(SUBJECT_CLAIM)
        if subject is None or subject == "":
            logger.info(f"Token verified but has no {SUBJECT_CLAIM} claim")
            return None

        return Identity(subject=str(subject), claims=payload)
