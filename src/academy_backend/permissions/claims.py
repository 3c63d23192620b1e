"""
Signed session claims.

A claim set is issued at login and carries the user id and the names of the
roles the user held at that moment. Verification never consults the store,
so role changes become visible with the next issued token; the token lifetime
bounds that window.
"""

import datetime
import logging
from typing import Iterable, Optional

from jose import jwt, JWTError, ExpiredSignatureError

from academy_backend.errors import Unauthenticated
from academy_backend.permissions.principal import Principal
from academy_backend.settings import settings

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token of an `Authorization: Bearer ...` header value"""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class ClaimVerifier:

    def __init__(self, secret: str, algorithm: str = "HS256", ttl: datetime.timedelta = datetime.timedelta(hours=8)):
        if not secret:
            raise ValueError("A signing secret is required")
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    @classmethod
    def from_settings(cls) -> "ClaimVerifier":
        return cls(
            secret=settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            ttl=datetime.timedelta(hours=settings.TOKEN_TTL_HOURS),
        )

    def issue(self, user_id: str, roles: Iterable[str], now: Optional[datetime.datetime] = None) -> str:
        """Sign a claim set for a freshly authenticated user"""
        issued_at = now or datetime.datetime.now(datetime.timezone.utc)
        payload = {
            "userId": str(user_id),
            "roles": sorted(set(roles)),
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: Optional[str]) -> Principal:
        """
        Verify signature and expiry of a token and return its Principal.

        Raises:
            Unauthenticated: token absent, malformed, badly signed, expired
                or without a user id
        """
        if not token:
            raise Unauthenticated("Missing credentials")

        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise Unauthenticated("Session expired")
        except JWTError as e:
            logger.debug(f"Token verification failed: {e}")
            raise Unauthenticated("Invalid token")

        user_id = payload.get("userId")
        if not user_id:
            raise Unauthenticated("Invalid token")

        roles = payload.get("roles") or []
        if not isinstance(roles, list):
            raise Unauthenticated("Invalid token")

        return Principal(user_id=str(user_id), roles=roles)
